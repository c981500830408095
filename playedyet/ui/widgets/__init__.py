"""Custom widgets for the TUI application."""

from .progress import ImageRefreshProgressWidget

__all__ = [
    "ImageRefreshProgressWidget",
]
