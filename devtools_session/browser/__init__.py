"""Browser access: Playwright connection, page registry, and accessibility extraction."""
from .accessibility import AccessibilityExtractor, AXNode
from .connection import BrowserConnection
from .pages import DialogWatch, PageIdAllocator, PageRegistry

__all__ = [
    "AccessibilityExtractor",
    "AXNode",
    "BrowserConnection",
    "DialogWatch",
    "PageIdAllocator",
    "PageRegistry",
]
