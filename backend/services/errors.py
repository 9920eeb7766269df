"""Structured errors raised by the renderer and its collaborators."""
from dataclasses import dataclass, field
from typing import Any, Dict, Optional


@dataclass
class RenderError:
    """Structured error information."""
    code: str
    message: str
    details: Dict[str, Any] = field(default_factory=dict)


class RendererError(Exception):
    """Base exception carrying a structured RenderError."""

    code = "RENDERER_ERROR"

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.error = RenderError(code=self.code, message=message, details=details or {})
        super().__init__(message)


class SourceUnavailable(RendererError):
    """The source document could not be fetched or opened. Fatal to the session."""

    code = "SOURCE_UNAVAILABLE"


class PageRenderError(RendererError):
    """A single page failed to decode. The page is skipped."""

    code = "PAGE_RENDER_ERROR"

    def __init__(self, page_index: int, message: str, details: Optional[Dict[str, Any]] = None):
        self.page_index = page_index
        super().__init__(message, {"page_index": page_index, **(details or {})})


class EmptyDocument(RendererError):
    """The source document has no pages."""

    code = "EMPTY_DOCUMENT"

    def __init__(self, message: str = "No pages found", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, details)


class MagazineNotFound(RendererError):
    code = "MAGAZINE_NOT_FOUND"


class MagazineNotReadable(RendererError):
    code = "MAGAZINE_NOT_READABLE"
