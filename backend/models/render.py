"""Render session data models."""
from dataclasses import dataclass, field
from typing import Any, Optional, Tuple


@dataclass(frozen=True)
class Viewport:
    """Display size reported by the presentation shell."""
    width: float
    height: float


@dataclass(frozen=True)
class Dimensions:
    """Computed flipbook size for a viewport."""
    width: float
    height: float


@dataclass(frozen=True)
class PageRaster:
    """Encoded image of a single source page."""
    page_index: int  # 0-based index into the source document
    data_url: str  # data:image/jpeg;base64,...
    width: int
    height: int


@dataclass(frozen=True)
class Progress:
    """Reading progress over the pages produced so far."""
    current: int  # 1-based, 0 before the first raster
    total: int  # produced count, not the document's page count
    ratio: float
    can_go_prev: bool
    can_go_next: bool


@dataclass(frozen=True)
class RenderSession:
    """
    Immutable snapshot of one viewing session.

    Every operation returns a new snapshot. `rasters` is append-only with
    strictly increasing `page_index`; `current_index` is None until the first
    raster exists and always within `[0, len(rasters) - 1]` afterwards.
    """
    reference: str
    total_pages: Optional[int] = None
    rasters: Tuple[PageRaster, ...] = ()
    current_index: Optional[int] = None
    next_page_index: int = 0
    failed_pages: Tuple[int, ...] = ()
    viewport: Optional[Viewport] = None
    document: Any = field(default=None, compare=False, repr=False)

    @property
    def produced_count(self) -> int:
        return len(self.rasters)

    @property
    def is_complete(self) -> bool:
        return self.total_pages is not None and self.next_page_index >= self.total_pages


@dataclass(frozen=True)
class RenderStep:
    """Outcome of rendering one page."""
    page_index: int
    raster: Optional[PageRaster] = None
    error: Optional[Exception] = None
    done: bool = False
