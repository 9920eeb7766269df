"""Live viewing sessions: one render loop per open document."""
import asyncio
import logging
import uuid
from typing import Dict, Optional

from config import PUBLISH_EVERY
from models.render import RenderSession, Viewport
from services.document_renderer import DocumentRenderer
from services.errors import EmptyDocument, RenderError
from services.gesture_classifier import SwipeAdapter, Point
from services.layout import ViewportProvider
from services.magazine_repository import MagazineRepository
from services.render_session import apply_step, go_to, next_page, new_session, prev_page, with_viewport

logger = logging.getLogger(__name__)

RENDERING = "rendering"
READY = "ready"
EMPTY = "empty"
FAILED = "failed"
CLOSED = "closed"


class ViewerSession:
    """
    One open document plus its viewing state.

    `session` is the latest published-or-not snapshot. Only the render loop
    appends rasters to it; navigation only moves the current index.
    """

    def __init__(self, session_id: str, session: RenderSession):
        self.session_id = session_id
        self.session = session
        self.status = RENDERING
        self.message: Optional[str] = None
        self.error: Optional[RenderError] = None
        self.closed = False
        self.version = 0
        self.viewport_provider = ViewportProvider(session.viewport)
        self.swipe_adapter = SwipeAdapter()
        self.task: Optional[asyncio.Task] = None
        self._changed = asyncio.Event()
        self._unsubscribe = self.viewport_provider.subscribe(self._on_viewport)

    def publish(self) -> None:
        """Make the current snapshot visible to waiting readers."""
        self.version += 1
        changed, self._changed = self._changed, asyncio.Event()
        changed.set()

    async def wait_for_update(self, version: int, timeout: Optional[float] = None) -> int:
        """Wait until a snapshot newer than `version` is published. Returns the new version."""
        if self.version != version:
            return self.version
        try:
            await asyncio.wait_for(self._changed.wait(), timeout)
        except asyncio.TimeoutError:
            pass
        return self.version

    @property
    def finished(self) -> bool:
        return self.status != RENDERING

    def _on_viewport(self, viewport: Viewport) -> None:
        self.session = with_viewport(self.session, viewport)
        self.publish()

    def detach(self) -> None:
        self._unsubscribe()


class ViewerSessionManager:
    """Creates, drives and closes viewing sessions."""

    def __init__(
        self,
        renderer: Optional[DocumentRenderer] = None,
        magazine_repository: Optional[MagazineRepository] = None,
        publish_every: int = PUBLISH_EVERY
    ):
        """
        Initialize the session manager.

        Args:
            renderer: Page renderer (defaults to DocumentRenderer())
            magazine_repository: Needed only to open sessions by magazine id
            publish_every: Pages rendered between published snapshots
        """
        if publish_every < 1:
            raise ValueError("publish_every must be at least 1")

        self.renderer = renderer or DocumentRenderer()
        self.magazine_repository = magazine_repository
        self.publish_every = publish_every
        self.sessions: Dict[str, ViewerSession] = {}
        logger.info(f"ViewerSessionManager initialized (publish_every={publish_every})")

    async def create(
        self,
        reference: Optional[str] = None,
        magazine_id: Optional[str] = None,
        viewport: Optional[Viewport] = None
    ) -> ViewerSession:
        """
        Open a document and start rendering it in the background.

        Raises:
            SourceUnavailable: If the document cannot be fetched or opened
            MagazineNotFound, MagazineNotReadable: For magazine lookups
        """
        if magazine_id:
            if self.magazine_repository is None:
                raise ValueError("Opening by magazine id requires a magazine repository")
            reference = await asyncio.to_thread(
                self.magazine_repository.get_readable_file_url, magazine_id
            )
        if not reference:
            raise ValueError("A document reference or magazine id is required")

        session_id = self._generate_session_id()

        try:
            session = await self.renderer.open(reference, viewport)
        except EmptyDocument as e:
            entry = ViewerSession(session_id, new_session(reference, viewport))
            entry.status = EMPTY
            entry.message = e.error.message
            self.sessions[session_id] = entry
            entry.publish()
            logger.info(f"Created session {session_id} for empty document")
            return entry

        entry = ViewerSession(session_id, session)
        self.sessions[session_id] = entry
        entry.task = asyncio.create_task(self._render_loop(entry))
        logger.info(f"Created session {session_id}: {session.total_pages} pages")
        return entry

    def get(self, session_id: str) -> ViewerSession:
        """
        Raises:
            KeyError: If the session does not exist
        """
        return self.sessions[session_id]

    def navigate(self, session_id: str, action: str, index: Optional[int] = None) -> ViewerSession:
        entry = self.get(session_id)
        if action == "next":
            entry.session = next_page(entry.session)
        elif action == "prev":
            entry.session = prev_page(entry.session)
        elif action == "goto":
            if index is None:
                raise ValueError("goto requires an index")
            entry.session = go_to(entry.session, index)
        else:
            raise ValueError(f"Unknown navigation action: {action}")
        entry.publish()
        return entry

    def swipe(self, session_id: str, start: Point, end: Point) -> Optional[str]:
        """Apply a completed drag. Returns the action taken, if any."""
        entry = self.get(session_id)
        result = entry.swipe_adapter.swipe(start, end, entry.session)
        if result.action is not None:
            entry.session = result.session
            entry.publish()
        return result.action

    def update_viewport(self, session_id: str, width: float, height: float) -> ViewerSession:
        entry = self.get(session_id)
        entry.viewport_provider.update(width, height)
        return entry

    async def close(self, session_id: str) -> None:
        """
        Close a session.

        No further pages are started; a page already being decoded finishes
        and is discarded.

        Raises:
            KeyError: If the session does not exist or is already closing
        """
        entry = self.sessions.pop(session_id, None)
        if entry is None:
            raise KeyError(session_id)

        entry.closed = True
        try:
            if entry.task is not None:
                await entry.task
        finally:
            entry.status = CLOSED
            entry.detach()
            entry.publish()
            logger.info(f"Closed session {session_id}")

    async def close_all(self) -> None:
        for session_id in list(self.sessions):
            await self.close(session_id)

    async def _render_loop(self, entry: ViewerSession) -> None:
        pending = 0
        try:
            async for step, _ in self.renderer.stream(entry.session, should_stop=lambda: entry.closed):
                if step.done:
                    break
                # Apply to the latest snapshot so concurrent navigation is kept
                entry.session = apply_step(entry.session, step)
                pending += 1
                if pending >= self.publish_every:
                    entry.publish()
                    pending = 0
        except Exception as e:
            entry.status = FAILED
            entry.error = RenderError(
                code="RENDER_LOOP_ERROR",
                message=f"Rendering stopped unexpectedly: {str(e)}",
                details={"error_type": type(e).__name__}
            )
            logger.error(f"Render loop failed for session {entry.session_id}: {e}", exc_info=True)
        else:
            if not entry.closed:
                if entry.session.produced_count == 0:
                    entry.status = EMPTY
                    entry.message = "No pages found"
                else:
                    entry.status = READY
                logger.info(
                    f"Session {entry.session_id} finished: {entry.session.produced_count}/"
                    f"{entry.session.total_pages} pages, skipped {len(entry.session.failed_pages)}"
                )
        finally:
            entry.session = await self.renderer.close(entry.session)
            entry.publish()

    def _generate_session_id(self) -> str:
        return f"view_{uuid.uuid4().hex[:12]}"
