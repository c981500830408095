"""The game library store: two collections, their persistence and statistics."""

import dataclasses
import math
import time
from collections.abc import AsyncIterator, Callable, Iterable, Mapping
from datetime import UTC, datetime
from typing import Any

import structlog

from ..models import (
    BacklogGame,
    BacklogInput,
    GameCollections,
    GameInput,
    ImageRefreshProgress,
    PlayedGame,
)
from .blob_store import BlobStore
from .errors import ValidationError
from .images import ImageAcquisitionService

log = structlog.stdlib.get_logger()

DATA_FILE = "data.json"

# Patch keys that are silently dropped: identity, creation time and the
# cover path are owned by the store.
_PROTECTED_FIELDS = frozenset({"id", "created_at", "image_url"})
_PATCHABLE_FIELDS = frozenset(
    f.name for f in dataclasses.fields(PlayedGame)
) - _PROTECTED_FIELDS


class MonotonicIdGenerator:
    """Millisecond timestamps that never repeat within a process."""

    def __init__(self, clock_ms: Callable[[], int] | None = None) -> None:
        self._clock_ms = clock_ms or (lambda: time.time_ns() // 1_000_000)
        self._last = 0

    def __call__(self) -> int:
        candidate = max(self._clock_ms(), self._last + 1)
        self._last = candidate
        return candidate


def utc_now() -> datetime:
    return datetime.now(UTC)


def to_iso(moment: datetime) -> str:
    """Format a datetime as an ISO-8601 UTC string with a ``Z`` suffix."""
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=UTC)
    return moment.astimezone(UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def parse_hours(value: Any, field: str = "hours") -> float:
    """Parse a decimal hours value.

    Raises:
        ValidationError: If the value is not a finite, non-negative number
    """
    try:
        hours = float(value)
    except (TypeError, ValueError):
        raise ValidationError("Hours must be a number", field=field, value=value) from None
    if not math.isfinite(hours) or hours < 0:
        raise ValidationError("Hours must be zero or more", field=field, value=value)
    return hours


def _parse_rating(value: Any) -> float | None:
    if value is None or value == "":
        return None
    try:
        rating = float(value)
    except (TypeError, ValueError):
        raise ValidationError("Rating must be a number", field="rating", value=value) from None
    if not math.isfinite(rating) or not 0 <= rating <= 10:
        raise ValidationError("Rating must be between 0 and 10", field="rating", value=value)
    return rating


def _require_title(value: Any) -> str:
    title = str(value or "").strip()
    if not title:
        raise ValidationError("Title is required", field="title", value=value)
    return title


def _parse_tags(value: Any) -> list[str]:
    if value is None:
        return []
    if not isinstance(value, (list, tuple)) or not all(isinstance(tag, str) for tag in value):
        raise ValidationError("Tags must be a list of strings", field="tags", value=value)
    return list(value)


def _check_text(value: Any, field: str, optional: bool = False) -> str | None:
    if value is None and optional:
        return None
    if not isinstance(value, str):
        raise ValidationError(f"{field} must be text", field=field, value=value)
    return value


class GameStore:
    """Owns the played and backlog collections.

    Memory is the source of truth once ``initialize`` has run. Every mutator
    updates memory first and then calls ``save``, which overwrites the whole
    collections document. Operations on an unknown id are silent no-ops.
    """

    def __init__(
        self,
        blob_store: BlobStore,
        image_service: ImageAcquisitionService,
        id_generator: Callable[[], int] | None = None,
        clock: Callable[[], datetime] | None = None,
        data_path: str = DATA_FILE,
    ) -> None:
        """Initialize the game store.

        Args:
            blob_store: Storage for the collections document
            image_service: Cover art acquisition used when adding or renaming games
            id_generator: Source of new record ids
            clock: Source of creation timestamps
            data_path: Relative path of the collections document
        """
        self._blob_store = blob_store
        self._image_service = image_service
        self._id_generator = id_generator or MonotonicIdGenerator()
        self._clock = clock or utc_now
        self._data_path = data_path

        self._games: list[PlayedGame] = []
        self._to_play_games: list[BacklogGame] = []
        self.initialized: bool = False
        self.last_save_succeeded: bool = True

    @property
    def games(self) -> tuple[PlayedGame, ...]:
        return tuple(self._games)

    @property
    def to_play_games(self) -> tuple[BacklogGame, ...]:
        return tuple(self._to_play_games)

    def snapshot(self) -> GameCollections:
        """Current state as a collections document."""
        return GameCollections(games=list(self._games), to_play_games=list(self._to_play_games))

    async def initialize(self) -> None:
        """Load the persisted document, falling back to empty collections.

        Safe to call repeatedly; each call replaces in-memory state with what
        is on disk.
        """
        try:
            if not await self._blob_store.exists(self._data_path):
                log.info("No library file yet, starting empty", path=self._data_path)
                collections = GameCollections()
            else:
                data = await self._blob_store.read_json(self._data_path)
                collections = GameCollections.from_dict(data)
        except (OSError, ValueError, KeyError, TypeError) as e:
            log.error("Error loading data", path=self._data_path, error=str(e))
            collections = GameCollections()

        self._games = list(collections.games)
        self._to_play_games = list(collections.to_play_games)
        self.initialized = True
        log.info(
            "Library loaded",
            games=len(self._games),
            to_play_games=len(self._to_play_games),
        )

    async def save(self) -> bool:
        """Write both collections to storage.

        Returns:
            True on success; False if the write failed (the error is logged)
        """
        try:
            await self._blob_store.write_json(self._data_path, self.snapshot().to_dict())
        except (OSError, ValueError) as e:
            log.error("Error saving games", path=self._data_path, error=str(e))
            self.last_save_succeeded = False
            return False

        self.last_save_succeeded = True
        log.debug("Library saved", games=len(self._games), to_play_games=len(self._to_play_games))
        return True

    def get_game(self, game_id: int) -> PlayedGame | None:
        return next((g for g in self._games if g.id == game_id), None)

    def get_to_play_game(self, game_id: int) -> BacklogGame | None:
        return next((g for g in self._to_play_games if g.id == game_id), None)

    async def add_game(self, game: GameInput) -> PlayedGame:
        """Create a played game, fetch its cover and persist.

        The cover lookup is awaited before the record is stored; a failed
        lookup leaves ``image_url`` as None.

        Raises:
            ValidationError: If the title is blank, hours negative or rating out of range
        """
        title = _require_title(game.title)
        hours = parse_hours(game.hours)
        rating = _parse_rating(game.rating)

        image_url = await self._image_service.acquire(title)

        record = PlayedGame(
            id=self._new_id(g.id for g in self._games),
            title=title,
            genre=game.genre,
            tags=list(game.tags),
            hours=hours,
            created_at=to_iso(self._clock()),
            rating=rating,
            difficulty=game.difficulty,
            platform=game.platform,
            is_finished=False,
            completion_date=None,
            image_url=image_url,
        )
        self._games.append(record)
        await self.save()

        log.info("Game added", game_id=record.id, title=record.title, has_cover=image_url is not None)
        return record

    async def add_to_play_game(self, game: BacklogInput) -> BacklogGame:
        """Create a backlog entry and persist.

        Raises:
            ValidationError: If the title is blank
        """
        record = BacklogGame(
            id=self._new_id(g.id for g in self._to_play_games),
            title=_require_title(game.title),
            genre=game.genre,
            tags=list(game.tags),
            created_at=to_iso(self._clock()),
        )
        self._to_play_games.append(record)
        await self.save()

        log.info("Backlog game added", game_id=record.id, title=record.title)
        return record

    async def move_to_played(self, game_id: int, hours: float = 0.0) -> PlayedGame | None:
        """Start playing a backlog game.

        The backlog entry is removed and a new played record (fresh id and
        creation time) is appended; both changes are written in one save.

        Returns:
            The new played game, or None if the backlog id is unknown
        """
        backlog_game = self.get_to_play_game(game_id)
        if backlog_game is None:
            log.debug("Backlog game not found, nothing to move", game_id=game_id)
            return None

        hours = parse_hours(hours)
        image_url = await self._image_service.acquire(backlog_game.title)

        self._to_play_games = [g for g in self._to_play_games if g.id != game_id]
        record = PlayedGame(
            id=self._new_id([*(g.id for g in self._games), game_id]),
            title=backlog_game.title,
            genre=backlog_game.genre,
            tags=list(backlog_game.tags),
            hours=hours,
            created_at=to_iso(self._clock()),
            image_url=image_url,
        )
        self._games.append(record)
        await self.save()

        log.info("Backlog game moved to played", backlog_id=game_id, game_id=record.id, title=record.title)
        return record

    async def update_game(self, game_id: int, patch: Mapping[str, Any]) -> bool:
        """Merge ``patch`` into a played game.

        ``id``, ``created_at`` and ``image_url`` are never taken from the patch.
        A changed title re-runs cover acquisition and stores its result even
        when that is None.

        Returns:
            True if the game was found and updated

        Raises:
            ValidationError: If the patch has unknown fields or invalid values
        """
        unknown = set(patch) - _PATCHABLE_FIELDS - _PROTECTED_FIELDS
        if unknown:
            raise ValidationError(f"Unknown game fields: {', '.join(sorted(unknown))}", field="patch")

        changes = {key: value for key, value in patch.items() if key in _PATCHABLE_FIELDS}
        if "title" in changes:
            changes["title"] = _require_title(changes["title"])
        if "hours" in changes:
            changes["hours"] = parse_hours(changes["hours"])
        if "rating" in changes:
            changes["rating"] = _parse_rating(changes["rating"])
        if "tags" in changes:
            changes["tags"] = _parse_tags(changes["tags"])
        for text_field in ("genre", "difficulty", "platform"):
            if text_field in changes:
                changes[text_field] = _check_text(changes[text_field], text_field)
        if "completion_date" in changes:
            changes["completion_date"] = _check_text(changes["completion_date"], "completion_date", optional=True)
        if "is_finished" in changes and not isinstance(changes["is_finished"], bool):
            raise ValidationError("is_finished must be true or false", field="is_finished", value=changes["is_finished"])

        index = self._index_of_game(game_id)
        if index is None:
            log.debug("Game not found, update skipped", game_id=game_id)
            return False

        current = self._games[index]
        image_url = current.image_url
        if "title" in changes and changes["title"] != current.title:
            image_url = await self._image_service.acquire(changes["title"])

        # The game may have been removed while the cover was being fetched
        index = self._index_of_game(game_id)
        if index is None:
            return False

        self._games[index] = dataclasses.replace(self._games[index], **changes, image_url=image_url)
        await self.save()

        log.info("Game updated", game_id=game_id, fields=sorted(changes))
        return True

    async def update_game_hours(self, game_id: int, hours: Any) -> bool:
        """Overwrite a game's hours.

        Raises:
            ValidationError: If ``hours`` is not a valid number
        """
        parsed = parse_hours(hours)
        index = self._index_of_game(game_id)
        if index is None:
            return False

        self._games[index] = dataclasses.replace(self._games[index], hours=parsed)
        await self.save()
        log.info("Game hours updated", game_id=game_id, hours=parsed)
        return True

    async def toggle_finished(self, game_id: int) -> bool:
        index = self._index_of_game(game_id)
        if index is None:
            return False

        game = self._games[index]
        self._games[index] = dataclasses.replace(game, is_finished=not game.is_finished)
        await self.save()
        log.info("Game finished flag toggled", game_id=game_id, is_finished=not game.is_finished)
        return True

    async def delete_game(self, game_id: int) -> bool:
        remaining = [g for g in self._games if g.id != game_id]
        if len(remaining) == len(self._games):
            return False

        self._games = remaining
        await self.save()
        log.info("Game deleted", game_id=game_id)
        return True

    async def delete_to_play_game(self, game_id: int) -> bool:
        remaining = [g for g in self._to_play_games if g.id != game_id]
        if len(remaining) == len(self._to_play_games):
            return False

        self._to_play_games = remaining
        await self.save()
        log.info("Backlog game deleted", game_id=game_id)
        return True

    async def replace_all(self, collections: GameCollections) -> bool:
        """Replace both collections wholesale (used by import) and persist."""
        self._games = list(collections.games)
        self._to_play_games = list(collections.to_play_games)
        log.info(
            "Library replaced",
            games=len(self._games),
            to_play_games=len(self._to_play_games),
        )
        return await self.save()

    async def clear_all(self) -> bool:
        """Delete every played and backlog record and persist."""
        self._games = []
        self._to_play_games = []
        log.warning("All library data cleared")
        return await self.save()

    async def refresh_images(self) -> AsyncIterator[ImageRefreshProgress]:
        """Re-fetch the cover of every played game, one at a time.

        A game keeps its previous cover when nothing new is found. Progress is
        yielded after each game and the library is saved once at the end.
        """
        game_ids = [g.id for g in self._games]
        total = len(game_ids)
        updated = 0
        log.info("Cover refresh started", total_games=total)

        for processed, game_id in enumerate(game_ids, start=1):
            game = self.get_game(game_id)
            if game is None:
                continue

            new_path = await self._image_service.acquire(game.title, force_refresh=True)
            index = self._index_of_game(game_id)
            if new_path and index is not None:
                self._games[index] = dataclasses.replace(self._games[index], image_url=new_path)
                updated += 1

            yield ImageRefreshProgress(
                current_title=game.title,
                games_processed=processed,
                total_games=total,
                covers_updated=updated,
            )

        await self.save()
        log.info("Cover refresh completed", total_games=total, covers_updated=updated)

    def get_stats_by_genre(self) -> dict[str, float]:
        """Total hours per genre; every game counts once."""
        stats: dict[str, float] = {}
        for game in self._games:
            stats[game.genre] = stats.get(game.genre, 0.0) + game.hours
        return stats

    def get_stats_by_tag(self) -> dict[str, float]:
        """Total hours per tag.

        A game adds its full hours to each of its non-empty tags, so the
        values can sum to more than the total playtime.
        """
        stats: dict[str, float] = {}
        for game in self._games:
            for tag in game.tags:
                if tag:
                    stats[tag] = stats.get(tag, 0.0) + game.hours
        return stats

    def get_total_hours(self) -> float:
        return sum(game.hours for game in self._games)

    def get_top_genre(self) -> str:
        """Genre with the most hours; the later genre wins a tie."""
        top_genre, top_hours = "None", 0.0
        for genre, hours in self.get_stats_by_genre().items():
            if hours >= top_hours:
                top_genre, top_hours = genre, hours
        return top_genre

    def _index_of_game(self, game_id: int) -> int | None:
        for index, game in enumerate(self._games):
            if game.id == game_id:
                return index
        return None

    def _new_id(self, existing_ids: Iterable[int]) -> int:
        taken = set(existing_ids)
        new_id = self._id_generator()
        while new_id in taken:
            new_id = self._id_generator()
        return new_id
