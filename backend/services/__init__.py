"""Services for the Flipbook Viewer."""
from .errors import RendererError, SourceUnavailable, PageRenderError, EmptyDocument, MagazineNotFound, MagazineNotReadable
from .source_fetcher import SourceFetcher
from .document_renderer import DocumentRenderer
from .gesture_classifier import SwipeAdapter, classify_swipe
from .layout import ViewportProvider, dimensions
from .magazine_repository import MagazineRepository
from .viewer_sessions import ViewerSession, ViewerSessionManager

__all__ = ['RendererError', 'SourceUnavailable', 'PageRenderError', 'EmptyDocument', 'MagazineNotFound', 'MagazineNotReadable', 'SourceFetcher', 'DocumentRenderer', 'SwipeAdapter', 'classify_swipe', 'ViewportProvider', 'dimensions', 'MagazineRepository', 'ViewerSession', 'ViewerSessionManager']
