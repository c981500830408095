"""Game record data models."""

from dataclasses import dataclass, field
from typing import Any


def _as_tags(value: Any) -> list[str]:
    """Coerce a stored tags value into a list of strings."""
    if not value:
        return []
    return [str(tag) for tag in value]


def _as_optional_float(value: Any) -> float | None:
    if value is None or value == "":
        return None
    return float(value)


@dataclass(frozen=True)
class GameInput:
    """User-entered fields for a new played game."""
    title: str
    genre: str = ""
    tags: list[str] = field(default_factory=list)
    hours: float = 0.0
    rating: float | None = None
    difficulty: str = ""
    platform: str = ""


@dataclass(frozen=True)
class BacklogInput:
    """User-entered fields for a new backlog entry."""
    title: str
    genre: str = ""
    tags: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class PlayedGame:
    """A game that has been played, with hours, rating and completion tracking."""
    id: int
    title: str
    genre: str
    tags: list[str]
    hours: float
    created_at: str
    rating: float | None = None  # 0-10 scale, None displays as "-"
    difficulty: str = ""
    platform: str = ""
    is_finished: bool = False
    completion_date: str | None = None  # ISO-8601
    image_url: str | None = None  # Absolute path of the cached cover

    def to_dict(self) -> dict[str, Any]:
        """Convert to the camelCase document shape."""
        return {
            "id": self.id,
            "title": self.title,
            "genre": self.genre,
            "tags": list(self.tags),
            "hours": self.hours,
            "rating": self.rating,
            "difficulty": self.difficulty,
            "platform": self.platform,
            "isFinished": self.is_finished,
            "completionDate": self.completion_date,
            "createdAt": self.created_at,
            "imageUrl": self.image_url,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "PlayedGame":
        """Build a played game from its document form.

        Raises:
            KeyError: If ``id`` or ``title`` is missing
            TypeError: If a value has the wrong shape
            ValueError: If a numeric field cannot be parsed
        """
        return cls(
            id=int(data["id"]),
            title=str(data["title"]),
            genre=str(data.get("genre") or ""),
            tags=_as_tags(data.get("tags")),
            hours=float(data.get("hours") or 0.0),
            created_at=str(data.get("createdAt") or ""),
            rating=_as_optional_float(data.get("rating")),
            difficulty=str(data.get("difficulty") or ""),
            platform=str(data.get("platform") or ""),
            is_finished=bool(data.get("isFinished", False)),
            completion_date=data.get("completionDate") or None,
            image_url=data.get("imageUrl") or None,
        )


@dataclass(frozen=True)
class BacklogGame:
    """A game waiting to be played."""
    id: int
    title: str
    genre: str
    tags: list[str]
    created_at: str

    def to_dict(self) -> dict[str, Any]:
        """Convert to the camelCase document shape."""
        return {
            "id": self.id,
            "title": self.title,
            "genre": self.genre,
            "tags": list(self.tags),
            "createdAt": self.created_at,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "BacklogGame":
        """Build a backlog entry from its document form."""
        return cls(
            id=int(data["id"]),
            title=str(data["title"]),
            genre=str(data.get("genre") or ""),
            tags=_as_tags(data.get("tags")),
            created_at=str(data.get("createdAt") or ""),
        )


@dataclass(frozen=True)
class GameCollections:
    """The whole persisted state: played games and the backlog."""
    games: list[PlayedGame] = field(default_factory=list)
    to_play_games: list[BacklogGame] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "games": [game.to_dict() for game in self.games],
            "toPlayGames": [game.to_dict() for game in self.to_play_games],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "GameCollections":
        """Build collections from a document, treating missing lists as empty."""
        return cls(
            games=[PlayedGame.from_dict(item) for item in data.get("games") or []],
            to_play_games=[BacklogGame.from_dict(item) for item in data.get("toPlayGames") or []],
        )
