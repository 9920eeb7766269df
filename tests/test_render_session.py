"""Unit tests for pure render session operations."""
import sys
sys.path.insert(0, 'backend')

import pytest
from dataclasses import replace
from models.render import PageRaster, RenderStep, Viewport
from services.errors import PageRenderError
from services.render_session import (
    apply_step,
    go_to,
    new_session,
    next_page,
    prev_page,
    progress,
    with_viewport,
)


def _raster(page_index: int) -> PageRaster:
    return PageRaster(page_index=page_index, data_url=f"data:image/jpeg;base64,{page_index}", width=300, height=450)


def _produced(count: int, total: int = 10):
    session = replace(new_session("https://example.com/issue.pdf"), total_pages=total)
    for i in range(count):
        session = apply_step(session, RenderStep(page_index=i, raster=_raster(i)))
    return session


class TestApplyStep:
    """Test suite for apply_step()."""

    def test_first_raster_sets_current_index(self):
        session = _produced(0)
        assert session.current_index is None

        session = apply_step(session, RenderStep(page_index=0, raster=_raster(0)))

        assert session.current_index == 0
        assert session.produced_count == 1
        assert session.next_page_index == 1

    def test_append_keeps_current_index(self):
        session = go_to(_produced(3), 2)
        session = apply_step(session, RenderStep(page_index=3, raster=_raster(3)))
        assert session.current_index == 2
        assert session.produced_count == 4

    def test_failed_page_is_skipped(self):
        session = _produced(2)
        error = PageRenderError(2, "bad page")

        session = apply_step(session, RenderStep(page_index=2, error=error))

        assert session.produced_count == 2
        assert session.failed_pages == (2,)
        assert session.next_page_index == 3

    def test_raster_indices_strictly_increasing(self):
        """Rasters appear in the order they were produced, with increasing page indices."""
        session = _produced(2)
        session = apply_step(session, RenderStep(page_index=2, error=PageRenderError(2, "bad")))
        session = apply_step(session, RenderStep(page_index=3, raster=_raster(3)))

        indices = [r.page_index for r in session.rasters]
        assert indices == [0, 1, 3]
        assert all(a < b for a, b in zip(indices, indices[1:]))

    def test_out_of_order_step_rejected(self):
        session = _produced(3)
        with pytest.raises(ValueError, match="increasing page order"):
            apply_step(session, RenderStep(page_index=1, raster=_raster(1)))

    def test_done_step_is_noop(self):
        session = _produced(3, total=3)
        assert apply_step(session, RenderStep(page_index=3, done=True)) is session

    def test_original_snapshot_unchanged(self):
        """Operations return new snapshots."""
        session = _produced(1)
        apply_step(session, RenderStep(page_index=1, raster=_raster(1)))
        assert session.produced_count == 1


class TestNavigation:
    """Test suite for go_to(), next_page() and prev_page()."""

    def test_navigation_before_first_raster_is_noop(self):
        session = _produced(0)
        assert next_page(session).current_index is None
        assert prev_page(session).current_index is None
        assert go_to(session, 3).current_index is None

    def test_next_and_prev(self):
        session = _produced(3)
        session = next_page(session)
        assert session.current_index == 1
        session = prev_page(session)
        assert session.current_index == 0

    def test_prev_at_first_page_is_noop(self):
        session = _produced(3)
        assert prev_page(session).current_index == 0

    def test_next_at_last_produced_page_is_noop(self):
        """The last produced page is the boundary, not the document's page count."""
        session = go_to(_produced(3, total=10), 2)
        assert next_page(session).current_index == 2

    def test_go_to_clamps(self):
        session = _produced(4)
        assert go_to(session, 99).current_index == 3
        assert go_to(session, -5).current_index == 0

    def test_index_stays_in_range(self):
        session = _produced(4)
        for move in [next_page] * 10 + [prev_page] * 10 + [next_page] * 2:
            session = move(session)
            assert 0 <= session.current_index <= session.produced_count - 1


class TestProgress:
    """Test suite for progress()."""

    def test_progress_counts_produced_pages(self):
        """Viewing page 2 with 3 of 10 pages produced reports 2 of 3."""
        session = go_to(_produced(3, total=10), 1)
        result = progress(session)
        assert (result.current, result.total) == (2, 3)
        assert result.ratio == pytest.approx(2 / 3)

    def test_progress_before_first_raster(self):
        result = progress(_produced(0))
        assert (result.current, result.total, result.ratio) == (0, 0, 0.0)
        assert result.can_go_prev is False
        assert result.can_go_next is False

    def test_progress_button_states(self):
        first = progress(_produced(3))
        assert first.can_go_prev is False
        assert first.can_go_next is True

        last = progress(go_to(_produced(3), 2))
        assert last.can_go_prev is True
        assert last.can_go_next is False


class TestViewport:
    def test_with_viewport(self):
        session = _produced(1)
        updated = with_viewport(session, Viewport(375, 667))
        assert updated.viewport == Viewport(375, 667)
        assert with_viewport(updated, Viewport(375, 667)) is updated
