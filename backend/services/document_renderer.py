"""
Paginated document renderer.

Turns a PDF reference into JPEG page rasters one page at a time, so the caller
can display each page as soon as it exists instead of waiting for the whole
document. Pages are always rendered sequentially in increasing order.
"""
import asyncio
import base64
import logging
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import replace
from typing import AsyncIterator, Callable, Optional, Tuple

import fitz  # PyMuPDF

from config import JPEG_QUALITY, RENDER_SCALE
from models.render import PageRaster, RenderSession, RenderStep, Viewport
from services.errors import EmptyDocument, PageRenderError, SourceUnavailable
from services.render_session import apply_step, new_session
from services.source_fetcher import SourceFetcher

logger = logging.getLogger(__name__)

# MuPDF is not thread-safe, so every call into it goes through one worker.
_MUPDF_EXECUTOR = ThreadPoolExecutor(max_workers=1, thread_name_prefix="mupdf")


class DocumentRenderer:
    """Opens source documents and renders their pages incrementally."""

    def __init__(
        self,
        fetcher: Optional[SourceFetcher] = None,
        scale: float = RENDER_SCALE,
        jpeg_quality: int = JPEG_QUALITY
    ):
        """
        Initialize the renderer.

        Args:
            fetcher: Source of document bytes (defaults to SourceFetcher())
            scale: Fixed multiplier of native page size
            jpeg_quality: JPEG quality, 0-100
        """
        self.fetcher = fetcher or SourceFetcher()
        self.scale = scale
        self.jpeg_quality = jpeg_quality

    async def open(self, reference: str, viewport: Optional[Viewport] = None) -> RenderSession:
        """
        Open a document and start a session.

        Args:
            reference: Document URL or local path
            viewport: Optional initial viewport

        Returns:
            RenderSession with `total_pages` set and no rasters yet

        Raises:
            SourceUnavailable: If the document cannot be fetched or parsed
            EmptyDocument: If the document has no pages
        """
        data = await self.fetcher.fetch(reference)
        document = await self._run(self._open_document, data, reference)

        page_count = document.page_count
        if page_count == 0:
            await self._run(document.close)
            logger.warning(f"Document has no pages: {reference}")
            raise EmptyDocument(details={"reference": reference})

        logger.info(f"Opened document with {page_count} pages: {reference}")
        session = new_session(reference, viewport)
        return replace(session, total_pages=page_count, document=document)

    async def render_next(self, session: RenderSession) -> RenderStep:
        """
        Render the page at the session's render cursor.

        A page that fails to decode comes back as a step carrying a
        PageRenderError; the caller skips it and continues with the next page.

        Returns:
            RenderStep with the raster, the page error, or done=True once the
            cursor is past the last page
        """
        if session.document is None:
            raise ValueError("Session has no open document; call open() first")

        page_index = session.next_page_index
        if page_index >= session.total_pages:
            return RenderStep(page_index=page_index, done=True)

        start_time = time.time()
        try:
            raster = await self._run(self._rasterize, session.document, page_index)
        except Exception as e:
            error = PageRenderError(
                page_index,
                f"Failed to render page {page_index + 1}: {str(e)}",
                {"reference": session.reference, "error_type": type(e).__name__}
            )
            logger.error(
                f"Page render error: page={page_index + 1}, error={e}",
                exc_info=True,
                extra={"error_code": error.error.code, "error_details": error.error.details}
            )
            return RenderStep(page_index=page_index, error=error)

        latency_ms = int((time.time() - start_time) * 1000)
        logger.debug(
            f"Rendered page {page_index + 1}/{session.total_pages} "
            f"({raster.width}x{raster.height}) in {latency_ms}ms"
        )
        return RenderStep(page_index=page_index, raster=raster)

    async def stream(
        self,
        session: RenderSession,
        should_stop: Optional[Callable[[], bool]] = None
    ) -> AsyncIterator[Tuple[RenderStep, RenderSession]]:
        """
        Lazily render the remaining pages, one at a time.

        Yields `(step, session)` after each page, where `session` already has
        the step applied. The final item is a done step. When `should_stop`
        returns True no further page is started, and a page that finishes after
        the stop request is discarded.
        """
        while True:
            if should_stop is not None and should_stop():
                logger.info(f"Rendering stopped before page {session.next_page_index + 1}")
                return

            step = await self.render_next(session)

            if should_stop is not None and should_stop():
                logger.info(f"Rendering stopped; discarding page {step.page_index + 1}")
                return

            session = apply_step(session, step)
            yield step, session

            if step.done:
                return

    async def render_all(self, session: RenderSession) -> RenderSession:
        """Render every remaining page and return the final session."""
        async for _, session in self.stream(session):
            pass
        if session.failed_pages:
            logger.warning(
                f"Rendered {session.produced_count}/{session.total_pages} pages; "
                f"skipped pages {[p + 1 for p in session.failed_pages]}"
            )
        return session

    async def close(self, session: RenderSession) -> RenderSession:
        """Release the source document held by the session."""
        if session.document is None:
            return session
        await self._run(session.document.close)
        return replace(session, document=None)

    async def _run(self, func, *args):
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(_MUPDF_EXECUTOR, func, *args)

    def _open_document(self, data: bytes, reference: str) -> "fitz.Document":
        try:
            document = fitz.open(stream=data, filetype="pdf")
        except Exception as e:
            logger.error(f"Failed to open document {reference}: {str(e)}")
            raise SourceUnavailable(
                "The document could not be opened as a PDF",
                {"reference": reference, "original_error": str(e)}
            ) from e

        if document.needs_pass:
            document.close()
            raise SourceUnavailable(
                "The document is password protected",
                {"reference": reference}
            )
        return document

    def _rasterize(self, document: "fitz.Document", page_index: int) -> PageRaster:
        page = document.load_page(page_index)
        pixmap = page.get_pixmap(matrix=fitz.Matrix(self.scale, self.scale), alpha=False)
        jpeg = pixmap.tobytes("jpeg", jpg_quality=self.jpeg_quality)
        return PageRaster(
            page_index=page_index,
            data_url="data:image/jpeg;base64," + base64.b64encode(jpeg).decode("ascii"),
            width=pixmap.width,
            height=pixmap.height
        )
