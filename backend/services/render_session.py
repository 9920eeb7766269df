"""
Pure operations on render session snapshots.

Each function takes a RenderSession and returns a new one; nothing here touches
the source document, the display, or global state.
"""
import logging
from dataclasses import replace
from typing import Optional

from models.render import Progress, RenderSession, RenderStep, Viewport

logger = logging.getLogger(__name__)


def new_session(reference: str, viewport: Optional[Viewport] = None) -> RenderSession:
    """Create an empty session for a document reference."""
    return RenderSession(reference=reference, viewport=viewport)


def apply_step(session: RenderSession, step: RenderStep) -> RenderSession:
    """
    Fold one render step into the session.

    A raster is appended atomically and the render cursor moves past it. A
    failed page is recorded and skipped. A done step leaves the session as is.

    Raises:
        ValueError: If the step would break strictly increasing page order
    """
    if step.done:
        return session

    if step.page_index < session.next_page_index:
        raise ValueError(
            f"Page {step.page_index} arrived after page {session.next_page_index - 1}; "
            "rasters must be produced in increasing page order"
        )

    if step.raster is None:
        return replace(
            session,
            next_page_index=step.page_index + 1,
            failed_pages=session.failed_pages + (step.page_index,)
        )

    if session.rasters and step.raster.page_index <= session.rasters[-1].page_index:
        raise ValueError(
            f"Raster for page {step.raster.page_index} is not after page "
            f"{session.rasters[-1].page_index}"
        )

    return replace(
        session,
        rasters=session.rasters + (step.raster,),
        next_page_index=step.page_index + 1,
        current_index=0 if session.current_index is None else session.current_index
    )


def go_to(session: RenderSession, index: int) -> RenderSession:
    """Jump to a produced page, clamped to `[0, produced_count - 1]`."""
    if not session.rasters:
        return session

    target = max(0, min(index, session.produced_count - 1))
    if target != index:
        logger.debug(f"Clamped page index {index} to {target}")
    if target == session.current_index:
        return session
    return replace(session, current_index=target)


def next_page(session: RenderSession) -> RenderSession:
    """Advance one page; no-op at the last produced page."""
    if session.current_index is None:
        return session
    return go_to(session, session.current_index + 1)


def prev_page(session: RenderSession) -> RenderSession:
    """Go back one page; no-op at the first page."""
    if session.current_index is None:
        return session
    return go_to(session, session.current_index - 1)


def progress(session: RenderSession) -> Progress:
    """
    Reading progress.

    `total` counts the pages produced so far, which is less than the
    document's page count while rendering is still running.
    """
    total = session.produced_count
    if session.current_index is None or total == 0:
        return Progress(current=0, total=total, ratio=0.0, can_go_prev=False, can_go_next=False)

    current = session.current_index + 1
    return Progress(
        current=current,
        total=total,
        ratio=current / total,
        can_go_prev=session.current_index > 0,
        can_go_next=session.current_index < total - 1
    )


def with_viewport(session: RenderSession, viewport: Viewport) -> RenderSession:
    if session.viewport == viewport:
        return session
    return replace(session, viewport=viewport)
