"""Backup export and import of the whole library."""

import json
from collections.abc import Callable
from datetime import UTC, date, datetime
from pathlib import Path

import structlog

from ..models import GameCollections
from .errors import ImportFormatError
from .game_store import GameStore

log = structlog.stdlib.get_logger()

BACKUP_PREFIX = "playedyet-backup"


def backup_filename(day: date) -> str:
    """File name for a backup taken on ``day``."""
    return f"{BACKUP_PREFIX}-{day.isoformat()}.json"


def utc_today() -> date:
    """Current calendar date in UTC, which names backup files."""
    return datetime.now(UTC).date()


def parse_backup(text: str) -> GameCollections:
    """Parse backup file contents.

    Raises:
        ImportFormatError: If the document is not a valid library backup
    """
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise ImportFormatError(reason=f"not valid JSON: {e}") from e

    if not isinstance(data, dict):
        raise ImportFormatError(reason="top level is not an object")

    for key in ("games", "toPlayGames"):
        if key not in data:
            raise ImportFormatError(reason=f"missing '{key}'")
        if not isinstance(data[key], list):
            raise ImportFormatError(reason=f"'{key}' is not a list")

    try:
        collections = GameCollections.from_dict(data)
    except (KeyError, TypeError, ValueError, AttributeError) as e:
        raise ImportFormatError(reason=f"unreadable game record: {e}") from e

    for label, records in (("games", collections.games), ("toPlayGames", collections.to_play_games)):
        ids = [record.id for record in records]
        if len(ids) != len(set(ids)):
            raise ImportFormatError(reason=f"duplicate ids in '{label}'")

    return collections


class BackupService:
    """Writes and reads library backups; never mutates the store itself."""

    def __init__(self, store: GameStore, today: Callable[[], date] | None = None) -> None:
        self.store = store
        self._today = today or utc_today

    def export_to(self, directory: Path) -> Path:
        """Write the current library to ``directory``.

        Returns:
            The path of the backup file

        Raises:
            OSError: If the file cannot be written
        """
        directory = directory.expanduser()
        directory.mkdir(parents=True, exist_ok=True)
        target = directory / backup_filename(self._today())

        text = json.dumps(self.store.snapshot().to_dict(), indent=2, ensure_ascii=False)
        temp_path = target.with_name(target.name + ".tmp")
        try:
            temp_path.write_text(text, encoding="utf-8")
            temp_path.replace(target)
        except OSError as e:
            log.error("Failed to export backup", path=str(target), error=str(e))
            temp_path.unlink(missing_ok=True)
            raise

        log.info(
            "Backup exported",
            path=str(target),
            games=len(self.store.games),
            to_play_games=len(self.store.to_play_games),
        )
        return target

    def load_backup(self, path: Path) -> GameCollections:
        """Read and parse a backup file.

        Raises:
            ImportFormatError: If the file content is not a valid backup
            OSError: If the file cannot be read
        """
        path = path.expanduser()
        try:
            text = path.read_text(encoding="utf-8")
        except UnicodeDecodeError as e:
            raise ImportFormatError(reason="file is not UTF-8 text") from e

        collections = parse_backup(text)
        log.info(
            "Backup parsed",
            path=str(path),
            games=len(collections.games),
            to_play_games=len(collections.to_play_games),
        )
        return collections
