"""
Batch render script for the Flipbook Viewer.

Renders every page of a PDF to JPEG files, the same way the viewer does:
1. Fetches the document (URL or local path)
2. Renders pages one at a time at the viewer's fixed scale
3. Writes page-001.jpg, page-002.jpg, ... as each page is ready
4. Reports skipped pages

Usage:
    python render_document.py <reference> [--output-dir pages]
"""
import argparse
import asyncio
import base64
import sys
import logging
from pathlib import Path
from typing import List, Optional

# Add backend to path
sys.path.insert(0, str(Path(__file__).parent))

from models.render import PageRaster, RenderSession
from services.document_renderer import DocumentRenderer
from services.errors import EmptyDocument, SourceUnavailable
from services.source_fetcher import SourceFetcher

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

DATA_URL_PREFIX = "data:image/jpeg;base64,"


def write_raster(raster: PageRaster, output_dir: Path) -> Path:
    """Decode a raster's data URL and write it as a JPEG file."""
    path = output_dir / f"page-{raster.page_index + 1:03d}.jpg"
    path.write_bytes(base64.b64decode(raster.data_url[len(DATA_URL_PREFIX):]))
    return path


async def render_to_directory(
    reference: str,
    output_dir: Path,
    renderer: Optional[DocumentRenderer] = None
) -> RenderSession:
    """
    Render a document into `output_dir`, writing each page as soon as it exists.

    Raises:
        SourceUnavailable: If the document cannot be fetched or opened
        EmptyDocument: If the document has no pages
    """
    renderer = renderer or DocumentRenderer(fetcher=SourceFetcher(allow_local=True))
    output_dir.mkdir(parents=True, exist_ok=True)

    session = await renderer.open(reference)
    logger.info(f"Rendering {session.total_pages} pages into {output_dir}")

    try:
        async for step, session in renderer.stream(session):
            if step.raster is not None:
                path = write_raster(step.raster, output_dir)
                logger.info(f"  ✓ Page {step.page_index + 1}/{session.total_pages} -> {path.name}")
            elif step.error is not None:
                logger.warning(f"  ✗ Page {step.page_index + 1}/{session.total_pages} skipped")
    finally:
        session = await renderer.close(session)

    return session


def main(argv: Optional[List[str]] = None) -> int:
    """Render a document from the command line. Returns the exit code."""
    parser = argparse.ArgumentParser(description="Render a PDF into flipbook page images")
    parser.add_argument("reference", help="PDF URL or local path")
    parser.add_argument("--output-dir", default="pages", help="Directory for page-NNN.jpg files")
    args = parser.parse_args(argv)

    try:
        logger.info("=" * 60)
        logger.info(f"Rendering {args.reference}")
        logger.info("=" * 60)

        session = asyncio.run(render_to_directory(args.reference, Path(args.output_dir)))

        logger.info("=" * 60)
        logger.info(f"Pages rendered: {session.produced_count}/{session.total_pages}")
        if session.failed_pages:
            logger.info(f"Pages skipped: {', '.join(str(p + 1) for p in session.failed_pages)}")
        logger.info("=" * 60)
        return 0

    except EmptyDocument:
        logger.info("No pages found")
        return 0
    except SourceUnavailable as e:
        logger.error(f"Document unavailable: {e.error.message}")
        return 1
    except KeyboardInterrupt:
        logger.warning("Rendering interrupted by user")
        return 1


if __name__ == "__main__":
    sys.exit(main())
