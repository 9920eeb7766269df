"""Flipbook sizing and viewport tracking."""
import logging
from typing import Callable, List, Optional

from config import (
    COMPACT_BREAKPOINT,
    COMPACT_HEIGHT_FRACTION,
    COMPACT_MARGIN,
    COMPACT_MAX_HEIGHT,
    COMPACT_MAX_WIDTH,
    WIDE_HEIGHT_FRACTION,
    WIDE_MAX_HEIGHT,
    WIDE_MAX_WIDTH,
    WIDE_WIDTH_FRACTION,
)
from models.render import Dimensions, Viewport

logger = logging.getLogger(__name__)

COMPACT_HINT = "Swipe or use arrows to navigate"
WIDE_HINT = "Click page edges to flip"


def is_compact(viewport_width: float) -> bool:
    """Viewports narrower than the breakpoint use touch navigation."""
    return viewport_width < COMPACT_BREAKPOINT


def dimensions(viewport_width: float, viewport_height: float, compact: bool) -> Dimensions:
    """
    Flipbook size for a viewport.

    Compact: width = min(w - margin, compact max), height = min(h * fraction, compact max).
    Wide: width = min(w * fraction, wide max), height = min(h * fraction, wide max).
    """
    if compact:
        return Dimensions(
            width=min(viewport_width - COMPACT_MARGIN, COMPACT_MAX_WIDTH),
            height=min(viewport_height * COMPACT_HEIGHT_FRACTION, COMPACT_MAX_HEIGHT)
        )
    return Dimensions(
        width=min(viewport_width * WIDE_WIDTH_FRACTION, WIDE_MAX_WIDTH),
        height=min(viewport_height * WIDE_HEIGHT_FRACTION, WIDE_MAX_HEIGHT)
    )


def dimensions_for(viewport: Viewport) -> Dimensions:
    return dimensions(viewport.width, viewport.height, is_compact(viewport.width))


def navigation_hint(compact: bool) -> str:
    return COMPACT_HINT if compact else WIDE_HINT


class ViewportProvider:
    """
    Source of the current viewport size.

    The presentation shell pushes size changes in through `update`; anything
    that needs the size either asks `current()` or subscribes for changes.
    """

    def __init__(self, initial: Optional[Viewport] = None):
        self._viewport = initial
        self._listeners: List[Callable[[Viewport], None]] = []

    def current(self) -> Optional[Viewport]:
        return self._viewport

    def update(self, width: float, height: float) -> Viewport:
        """Record a new size and notify subscribers if it changed."""
        viewport = Viewport(width=width, height=height)
        if viewport == self._viewport:
            return viewport

        self._viewport = viewport
        logger.debug(f"Viewport changed to {width}x{height}")
        for listener in list(self._listeners):
            listener(viewport)
        return viewport

    def subscribe(self, listener: Callable[[Viewport], None]) -> Callable[[], None]:
        """Register a change listener. Returns a function that unsubscribes it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe
