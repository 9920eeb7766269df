"""Data models for the Flipbook Viewer."""
from .render import Viewport, Dimensions, PageRaster, Progress, RenderSession, RenderStep
from .magazine import Magazine

__all__ = [
    "Viewport",
    "Dimensions",
    "PageRaster",
    "Progress",
    "RenderSession",
    "RenderStep",
    "Magazine",
]
