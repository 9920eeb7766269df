"""Configuration management for the Flipbook Viewer."""
import os
import logging
from dotenv import load_dotenv

# Load environment variables
load_dotenv()

# Document Store (magazine records)
SUPABASE_URL = os.getenv("SUPABASE_URL")
SUPABASE_KEY = os.getenv("SUPABASE_KEY")
MAGAZINES_TABLE = os.getenv("MAGAZINES_TABLE", "magazines")

# Server Configuration
PORT = int(os.getenv("PORT", "8000"))
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_FORMAT = os.getenv("LOG_FORMAT", "text")  # "text" or "json"

# CORS Configuration
CORS_ORIGINS = os.getenv(
    "CORS_ORIGINS",
    "http://localhost:5173,http://localhost:3000"
).split(",")

# Source fetching
FETCH_TIMEOUT = float(os.getenv("FETCH_TIMEOUT", "60"))
MAX_SOURCE_BYTES = int(os.getenv("MAX_SOURCE_BYTES", str(100 * 1024 * 1024)))

# Rendering Configuration
RENDER_SCALE = 1.5  # multiplier of native page size
JPEG_QUALITY = 90  # 0-100
PUBLISH_EVERY = int(os.getenv("PUBLISH_EVERY", "1"))  # pages per published snapshot

# Layout Configuration
COMPACT_BREAKPOINT = 768  # px, viewports narrower than this are compact
COMPACT_MARGIN = 32
COMPACT_MAX_WIDTH = 360
COMPACT_HEIGHT_FRACTION = 0.65
COMPACT_MAX_HEIGHT = 480
WIDE_WIDTH_FRACTION = 0.6
WIDE_MAX_WIDTH = 520
WIDE_HEIGHT_FRACTION = 0.75
WIDE_MAX_HEIGHT = 720

# Gesture Configuration
SWIPE_THRESHOLD = 50  # px of horizontal travel

# Logging Configuration
logging.basicConfig(
    level=getattr(logging, LOG_LEVEL),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
