"""Unit tests for DocumentRenderer."""
import sys
sys.path.insert(0, 'backend')

import asyncio
import base64
import pytest
from unittest.mock import MagicMock, patch
from services.document_renderer import DocumentRenderer
from services.errors import EmptyDocument, PageRenderError, SourceUnavailable
from services.render_session import apply_step, new_session


def _failing_on(renderer: DocumentRenderer, bad_pages):
    """Make the renderer fail to decode the given 0-based pages."""
    original = renderer._rasterize

    def rasterize(document, page_index):
        if page_index in bad_pages:
            raise RuntimeError(f"corrupt content stream on page {page_index}")
        return original(document, page_index)

    renderer._rasterize = rasterize


class TestOpen:
    """Test suite for DocumentRenderer.open()."""

    def test_open_reports_page_count(self, make_pdf, make_fetcher):
        renderer = DocumentRenderer(fetcher=make_fetcher(make_pdf(pages=4)))

        session = asyncio.run(renderer.open("https://example.com/issue.pdf"))

        assert session.total_pages == 4
        assert session.rasters == ()
        assert session.current_index is None
        assert session.document is not None

    def test_fetch_failure_raises_source_unavailable(self, make_fetcher):
        fetcher = make_fetcher(side_effect=SourceUnavailable("Network error: boom"))
        renderer = DocumentRenderer(fetcher=fetcher)

        with pytest.raises(SourceUnavailable):
            asyncio.run(renderer.open("https://example.com/missing.pdf"))

    def test_corrupt_bytes_raise_source_unavailable(self, make_fetcher):
        renderer = DocumentRenderer(fetcher=make_fetcher(b"this is not a pdf at all"))

        with pytest.raises(SourceUnavailable) as exc_info:
            asyncio.run(renderer.open("https://example.com/broken.pdf"))

        assert exc_info.value.error.code == "SOURCE_UNAVAILABLE"
        assert exc_info.value.error.details["reference"] == "https://example.com/broken.pdf"

    def test_zero_pages_raise_empty_document(self, make_fetcher):
        renderer = DocumentRenderer(fetcher=make_fetcher(b"%PDF-1.7"))
        empty = MagicMock(page_count=0)

        with patch.object(renderer, "_open_document", return_value=empty):
            with pytest.raises(EmptyDocument, match="No pages found"):
                asyncio.run(renderer.open("https://example.com/empty.pdf"))

        empty.close.assert_called_once()

    def test_password_protected_raises_source_unavailable(self, make_fetcher):
        renderer = DocumentRenderer(fetcher=make_fetcher(b"%PDF-1.7"))
        locked = MagicMock(needs_pass=True)

        with patch("services.document_renderer.fitz.open", return_value=locked):
            with pytest.raises(SourceUnavailable, match="password"):
                asyncio.run(renderer.open("https://example.com/locked.pdf"))


class TestRenderNext:
    """Test suite for DocumentRenderer.render_next()."""

    def test_renders_first_page_as_jpeg(self, make_pdf, make_fetcher):
        renderer = DocumentRenderer(fetcher=make_fetcher(make_pdf(pages=2, width=200, height=300)))

        async def run():
            session = await renderer.open("issue.pdf")
            return await renderer.render_next(session)

        step = asyncio.run(run())

        assert step.page_index == 0
        assert step.error is None
        assert step.done is False
        assert step.raster.data_url.startswith("data:image/jpeg;base64,")
        # Fixed 1.5x scale of a 200x300 pt page
        assert (step.raster.width, step.raster.height) == (300, 450)
        jpeg = base64.b64decode(step.raster.data_url.split(",", 1)[1])
        assert jpeg[:2] == b"\xff\xd8"

    def test_done_after_last_page(self, make_pdf, make_fetcher):
        renderer = DocumentRenderer(fetcher=make_fetcher(make_pdf(pages=1)))

        async def run():
            session = await renderer.open("issue.pdf")
            session = apply_step(session, await renderer.render_next(session))
            return session, await renderer.render_next(session)

        session, step = asyncio.run(run())

        assert session.produced_count == 1
        assert session.is_complete
        assert step.done is True
        assert step.raster is None

    def test_failed_page_returns_error_step(self, make_pdf, make_fetcher):
        renderer = DocumentRenderer(fetcher=make_fetcher(make_pdf(pages=2)))
        _failing_on(renderer, {0})

        async def run():
            session = await renderer.open("issue.pdf")
            return await renderer.render_next(session)

        step = asyncio.run(run())

        assert step.raster is None
        assert isinstance(step.error, PageRenderError)
        assert step.error.page_index == 0
        assert step.error.error.code == "PAGE_RENDER_ERROR"

    def test_requires_open_session(self):
        renderer = DocumentRenderer(fetcher=MagicMock())
        with pytest.raises(ValueError, match="open"):
            asyncio.run(renderer.render_next(new_session("issue.pdf")))


class TestStream:
    """Test suite for incremental rendering."""

    def test_render_all_pages_in_order(self, make_pdf, make_fetcher):
        renderer = DocumentRenderer(fetcher=make_fetcher(make_pdf(pages=5)))

        async def run():
            session = await renderer.open("issue.pdf")
            return await renderer.render_all(session)

        session = asyncio.run(run())

        assert [r.page_index for r in session.rasters] == [0, 1, 2, 3, 4]
        assert session.current_index == 0
        assert session.failed_pages == ()

    def test_one_bad_page_does_not_abort(self, make_pdf, make_fetcher):
        """A 6-page document whose page 3 fails yields the other 5 pages."""
        renderer = DocumentRenderer(fetcher=make_fetcher(make_pdf(pages=6)))
        _failing_on(renderer, {2})

        async def run():
            session = await renderer.open("issue.pdf")
            return await renderer.render_all(session)

        session = asyncio.run(run())

        assert session.produced_count == 5
        assert [r.page_index for r in session.rasters] == [0, 1, 3, 4, 5]
        assert session.failed_pages == (2,)

    def test_each_page_visible_before_next_exists(self, make_pdf, make_fetcher):
        """Every yielded snapshot holds exactly the pages produced so far."""
        renderer = DocumentRenderer(fetcher=make_fetcher(make_pdf(pages=4)))

        async def run():
            session = await renderer.open("issue.pdf")
            seen = []
            async for step, snapshot in renderer.stream(session):
                if step.raster is not None:
                    seen.append([r.page_index for r in snapshot.rasters])
            return seen

        assert asyncio.run(run()) == [[0], [0, 1], [0, 1, 2], [0, 1, 2, 3]]

    def test_stream_ends_with_done_step(self, make_pdf, make_fetcher):
        renderer = DocumentRenderer(fetcher=make_fetcher(make_pdf(pages=2)))

        async def run():
            session = await renderer.open("issue.pdf")
            return [step async for step, _ in renderer.stream(session)]

        steps = asyncio.run(run())
        assert [s.done for s in steps] == [False, False, True]

    def test_stop_prevents_further_pages(self, make_pdf, make_fetcher):
        renderer = DocumentRenderer(fetcher=make_fetcher(make_pdf(pages=5)))
        stop = {"requested": False}

        async def run():
            session = await renderer.open("issue.pdf")
            produced = []
            async for step, _ in renderer.stream(session, should_stop=lambda: stop["requested"]):
                produced.append(step.page_index)
                if len(produced) == 2:
                    stop["requested"] = True
            return produced

        assert asyncio.run(run()) == [0, 1]

    def test_in_flight_page_discarded_after_stop(self, make_pdf, make_fetcher):
        """A page whose decode finishes after the stop request is not yielded."""
        renderer = DocumentRenderer(fetcher=make_fetcher(make_pdf(pages=5)))
        stop = {"requested": False}
        original = renderer._rasterize

        def rasterize(document, page_index):
            if page_index == 1:
                stop["requested"] = True
            return original(document, page_index)

        renderer._rasterize = rasterize

        async def run():
            session = await renderer.open("issue.pdf")
            return [step.page_index async for step, _ in
                    renderer.stream(session, should_stop=lambda: stop["requested"])]

        assert asyncio.run(run()) == [0]


class TestClose:
    def test_close_releases_document(self, make_pdf, make_fetcher):
        renderer = DocumentRenderer(fetcher=make_fetcher(make_pdf(pages=1)))

        async def run():
            session = await renderer.open("issue.pdf")
            session = await renderer.render_all(session)
            return await renderer.close(session)

        session = asyncio.run(run())

        assert session.document is None
        assert session.produced_count == 1
