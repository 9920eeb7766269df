"""Shared fixtures for the Flipbook Viewer test suite."""
import sys
from pathlib import Path

# Add backend to path
sys.path.insert(0, str(Path(__file__).parent.parent / "backend"))

import fitz  # PyMuPDF
import pytest
from unittest.mock import AsyncMock, Mock

from services.source_fetcher import SourceFetcher


def build_pdf(pages: int = 3, width: float = 200, height: float = 300) -> bytes:
    """Build an in-memory PDF with one line of text per page."""
    document = fitz.open()
    for i in range(pages):
        page = document.new_page(width=width, height=height)
        page.insert_text((20, 40), f"Page {i + 1}")
    data = document.tobytes()
    document.close()
    return data


@pytest.fixture
def make_pdf():
    """Factory fixture for PDF bytes."""
    return build_pdf


@pytest.fixture
def make_fetcher():
    """Factory for a SourceFetcher stub that returns fixed bytes (or raises)."""
    def factory(data: bytes = b"", side_effect=None):
        fetcher = Mock(spec=SourceFetcher)
        fetcher.fetch = AsyncMock(return_value=data, side_effect=side_effect)
        return fetcher
    return factory
