"""Terminal user interface built on Textual."""

from .app import PlayedYetApp
from .screens import (
    BacklogScreen,
    LibraryScreen,
    MainMenuScreen,
    SettingsScreen,
    StatsScreen,
    get_screen_by_name,
)

__all__ = [
    "BacklogScreen",
    "LibraryScreen",
    "MainMenuScreen",
    "PlayedYetApp",
    "SettingsScreen",
    "StatsScreen",
    "get_screen_by_name",
]
