"""Developer-facing rendering."""

from .debug_view import DebugView

__all__ = ["DebugView"]
