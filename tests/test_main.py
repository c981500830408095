"""Tests for the command-line entry point."""

import asyncio
import json
from pathlib import Path

import pytest

from playedyet import main as entry
from playedyet.main import ApplicationContext, format_summary, parse_arguments


class TestParseArguments:
    def test_defaults(self) -> None:
        args = parse_arguments([])

        assert args.data_dir is None
        assert args.log_level is None
        assert args.log_dir is None
        assert args.no_tui is False

    def test_all_options(self) -> None:
        args = parse_arguments(["--data-dir", "lib", "--log-level", "DEBUG", "--log-dir", "logs", "--no-tui"])

        assert args.data_dir == Path("lib")
        assert args.log_level == "DEBUG"
        assert args.log_dir == Path("logs")
        assert args.no_tui is True

    def test_invalid_log_level_exits(self) -> None:
        with pytest.raises(SystemExit):
            parse_arguments(["--log-level", "LOUD"])


class TestApplicationContext:
    def test_services_share_the_data_directory(self, tmp_path: Path) -> None:
        context = ApplicationContext(data_dir=tmp_path)

        assert context.config_service.config_path == tmp_path / "config.json"
        assert context.store is context.store
        assert context.backup_service is context.backup_service

    def test_summary_of_loaded_library(self, tmp_path: Path) -> None:
        (tmp_path / "data.json").write_text(
            json.dumps(
                {
                    "games": [
                        {"id": 1, "title": "Celeste", "genre": "Platformer", "hours": 10.5},
                        {"id": 2, "title": "Doom", "genre": "Shooter", "hours": 2},
                    ],
                    "toPlayGames": [{"id": 3, "title": "Hades"}],
                }
            ),
            encoding="utf-8",
        )
        context = ApplicationContext(data_dir=tmp_path)

        asyncio.run(context.store.initialize())

        assert format_summary(context) == "2 played, 1 to play, 12.5 hours"


def test_no_tui_prints_summary(tmp_path: Path, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]) -> None:
    monkeypatch.setattr(entry, "setup_signal_handlers", lambda context: None)

    with pytest.raises(SystemExit) as exc_info:
        entry.main(["--no-tui", "--data-dir", str(tmp_path), "--log-dir", str(tmp_path / "logs")])

    assert exc_info.value.code == 0
    output = capsys.readouterr().out
    assert "Library: 0 played, 0 to play, 0.0 hours" in output
    assert "Top genre: None" in output
