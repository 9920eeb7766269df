"""
Touch gesture handling for compact viewports.

`classify_swipe` maps the two endpoints of a drag to a navigation action and is
independent of any UI. `SwipeAdapter` feeds raw touch events into it and applies
the result to a render session.
"""
from dataclasses import dataclass
import logging
from typing import Optional, Tuple

from config import SWIPE_THRESHOLD
from models.render import RenderSession
from services.layout import is_compact
from services.render_session import next_page, prev_page

logger = logging.getLogger(__name__)

NEXT = "next"
PREV = "prev"

Point = Tuple[float, float]


def classify_swipe(start: Point, end: Point, threshold: float = SWIPE_THRESHOLD) -> Optional[str]:
    """
    Classify a drag.

    A drag is a swipe when its horizontal travel exceeds both `threshold` and
    its vertical travel. Rightward swipes go back, leftward swipes go forward.

    Returns:
        NEXT, PREV, or None for vertical-dominant or short drags
    """
    delta_x = end[0] - start[0]
    delta_y = end[1] - start[1]

    if abs(delta_x) > abs(delta_y) and abs(delta_x) > threshold:
        return PREV if delta_x > 0 else NEXT
    return None


@dataclass
class SwipeResult:
    """Result of a completed touch."""
    action: Optional[str]
    session: RenderSession


class SwipeAdapter:
    """Turns touch start/end events into page navigation."""

    def __init__(self, threshold: float = SWIPE_THRESHOLD):
        self.threshold = threshold
        self._start: Optional[Point] = None

    def touch_start(self, x: float, y: float) -> None:
        self._start = (x, y)

    def touch_end(self, x: float, y: float, session: RenderSession) -> SwipeResult:
        """
        Finish a touch and navigate if it was a swipe.

        Gestures are ignored on wide viewports and when no touch started.
        """
        start, self._start = self._start, None
        if start is None:
            return SwipeResult(action=None, session=session)

        if session.viewport is not None and not is_compact(session.viewport.width):
            logger.debug("Ignoring swipe on wide viewport")
            return SwipeResult(action=None, session=session)

        action = classify_swipe(start, (x, y), self.threshold)
        if action == NEXT:
            session = next_page(session)
        elif action == PREV:
            session = prev_page(session)

        logger.debug(f"Swipe {start} -> {(x, y)} classified as {action}")
        return SwipeResult(action=action, session=session)

    def swipe(self, start: Point, end: Point, session: RenderSession) -> SwipeResult:
        """Convenience for a drag whose endpoints are already known."""
        self.touch_start(*start)
        return self.touch_end(end[0], end[1], session)
