"""Cursor module — palm-to-screen mapping and smoothing."""

from core.cursor.smoother import CursorSmoother

__all__ = ["CursorSmoother"]
