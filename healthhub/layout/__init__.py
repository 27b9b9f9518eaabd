"""Dashboard layout engine, card registry and layout persistence."""

from .engine import DEFAULT_LAYOUTS, LAYOUT_PAGES, LayoutEngine, default_layout
from .repository import LayoutRepository

__all__ = ["DEFAULT_LAYOUTS", "LAYOUT_PAGES", "LayoutEngine", "LayoutRepository", "default_layout"]
