"""Screen components for the TUI application."""

from .backlog import BacklogScreen
from .base import BaseScreen
from .forms import BacklogFormScreen, ConfirmScreen, GameFormScreen
from .library import LibraryScreen
from .main_menu import MainMenuScreen
from .settings import SettingsScreen
from .stats import StatsScreen

# Screen registry for navigation
_SCREEN_REGISTRY: dict[str, type[BaseScreen]] = {
    "main_menu": MainMenuScreen,
    "library": LibraryScreen,
    "backlog": BacklogScreen,
    "stats": StatsScreen,
    "settings": SettingsScreen,
}


def get_screen_by_name(name: str) -> BaseScreen | None:
    """Get a new screen instance by its registered name, or None if unknown."""
    screen_class = _SCREEN_REGISTRY.get(name)
    if screen_class:
        return screen_class()
    return None


def register_screen(name: str, screen_class: type[BaseScreen]) -> None:
    """Register a screen class with a name for navigation."""
    _SCREEN_REGISTRY[name] = screen_class


def get_registered_screens() -> list[str]:
    return list(_SCREEN_REGISTRY.keys())


__all__ = [
    "BacklogFormScreen",
    "BacklogScreen",
    "BaseScreen",
    "ConfirmScreen",
    "GameFormScreen",
    "LibraryScreen",
    "MainMenuScreen",
    "SettingsScreen",
    "StatsScreen",
    "get_registered_screens",
    "get_screen_by_name",
    "register_screen",
]
