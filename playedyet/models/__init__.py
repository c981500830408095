"""Data models for the PlayedYet game library tracker."""

from .config import AppConfig
from .game import BacklogGame, BacklogInput, GameCollections, GameInput, PlayedGame
from .progress import ImageRefreshProgress

__all__ = [
    "AppConfig",
    "BacklogGame",
    "BacklogInput",
    "GameCollections",
    "GameInput",
    "ImageRefreshProgress",
    "PlayedGame",
]
