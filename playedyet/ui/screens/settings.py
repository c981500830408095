"""Settings screen: API key, backups, cover refresh and data reset."""

import asyncio
from pathlib import Path
from typing import ClassVar, override

from textual.app import ComposeResult
from textual.binding import Binding
from textual.containers import Container, Horizontal, Vertical
from textual.message import Message
from textual.widgets import Button, Input, Label, Static

import structlog

from playedyet.models import GameCollections, ImageRefreshProgress
from playedyet.services.errors import ImportFormatError, ValidationError
from playedyet.ui.widgets.progress import ImageRefreshProgressWidget

from .base import BaseScreen
from .forms import ConfirmScreen

log = structlog.stdlib.get_logger()

REPLACE_WARNING = "This will replace all your current data. Are you sure you want to continue?"
CLEAR_WARNING = "Are you sure you want to delete all data? This action cannot be undone."


class SettingsScreen(BaseScreen):
    """Settings and maintenance actions.

    - Save the RAWG API key used for cover lookups
    - Export the library to a dated JSON backup, or import one
    - Re-fetch every cover image with live progress
    - Clear all data
    """

    class RefreshProgress(Message):
        """Posted after each game during a cover refresh."""

        progress: ImageRefreshProgress

        def __init__(self, progress: ImageRefreshProgress) -> None:
            super().__init__()
            self.progress = progress

    class RefreshComplete(Message):
        """Posted when a cover refresh finishes."""

        covers_updated: int
        total_games: int

        def __init__(self, covers_updated: int, total_games: int) -> None:
            super().__init__()
            self.covers_updated = covers_updated
            self.total_games = total_games

    class RefreshFailed(Message):
        """Posted when a cover refresh stops on an error."""

        error: Exception

        def __init__(self, error: Exception) -> None:
            super().__init__()
            self.error = error

    SCREEN_TITLE: ClassVar[str] = "Settings"
    SCREEN_NAME: ClassVar[str] = "settings"

    CSS: ClassVar[str] = """
    SettingsScreen {
        align: center middle;
    }

    #settings-container {
        width: 90;
        height: auto;
        max-height: 95%;
        padding: 1 2;
        border: solid $primary;
        background: $surface;
        overflow-y: auto;
    }

    #settings-title {
        text-align: center;
        text-style: bold;
        color: $primary;
        margin-bottom: 1;
    }

    .section-title {
        text-style: bold;
        color: $secondary;
        margin-top: 1;
    }

    .form-row {
        height: auto;
    }

    .form-row Input {
        width: 1fr;
    }

    .form-row Button {
        margin-left: 1;
    }

    .form-help {
        color: $text-muted;
    }

    #refresh-progress {
        display: none;
        margin-top: 1;
    }

    #refresh-progress.running {
        display: block;
    }

    #danger-zone {
        height: auto;
        margin-top: 1;
        border: solid $error;
        padding: 0 1;
    }
    """

    BINDINGS: ClassVar[list[Binding]] = [
        Binding("escape", "go_back", "Back", show=True),
        Binding("ctrl+s", "save_api_key", "Save Key", show=True),
    ]

    _refreshing: bool

    def __init__(self) -> None:
        super().__init__()
        self._refreshing = False

    @override
    def compose(self) -> ComposeResult:
        with Container(id="settings-container"):
            yield Static("⚙ Settings", id="settings-title")

            yield Static("RAWG API key", classes="section-title")
            yield Label("Used to find cover images. Get one at rawg.io/apidocs", classes="form-help")
            with Horizontal(classes="form-row"):
                yield Input(id="input-api-key", password=True, placeholder="API key")
                yield Button("Save", id="btn-save-key", variant="primary")

            yield Static("Backup", classes="section-title")
            with Horizontal(classes="form-row"):
                yield Input(str(Path.home()), id="input-export-dir", placeholder="Export directory")
                yield Button("Export", id="btn-export", variant="default")
            with Horizontal(classes="form-row"):
                yield Input(id="input-import-file", placeholder="Backup file to import")
                yield Button("Import", id="btn-import", variant="default")

            yield Static("Cover images", classes="section-title")
            yield Button("Update all cover images", id="btn-refresh-covers", variant="default")
            yield ImageRefreshProgressWidget(id="refresh-progress")

            with Vertical(id="danger-zone"):
                yield Static("Danger zone", classes="section-title")
                yield Button("Clear all data", id="btn-clear", variant="error")

            yield Button("Back", id="btn-back", variant="default")

    @override
    async def on_mount(self) -> None:
        await super().on_mount()
        self.query_one("#input-api-key", Input).value = self.game_app.config_service.get_api_key()

    async def on_button_pressed(self, event: Button.Pressed) -> None:
        button_id = event.button.id

        if button_id == "btn-save-key":
            self.action_save_api_key()
        elif button_id == "btn-export":
            self._export_backup()
        elif button_id == "btn-import":
            self._import_backup()
        elif button_id == "btn-refresh-covers":
            self._start_cover_refresh()
        elif button_id == "btn-clear":
            self._confirm_clear()
        elif button_id == "btn-back":
            await self.action_go_back()

    def action_save_api_key(self) -> None:
        api_key = self.query_one("#input-api-key", Input).value
        try:
            self.game_app.config_service.save_api_key(api_key)
        except ValidationError as e:
            self.notify_warning(e.message)
            return
        except OSError as e:
            self.handle_exception(e, "save API key")
            return
        self.notify_success("API key saved successfully!")

    def _export_backup(self) -> None:
        directory = self.query_one("#input-export-dir", Input).value.strip()
        if not directory:
            self.notify_warning("Please choose a directory to export to")
            return
        try:
            path = self.game_app.backup_service.export_to(Path(directory))
        except OSError as e:
            self.handle_exception(e, "export backup", {"directory": directory})
            return
        self.notify_success(f"Backup saved to {path}")

    def _import_backup(self) -> None:
        file_name = self.query_one("#input-import-file", Input).value.strip()
        if not file_name:
            self.notify_warning("Please choose a backup file to import")
            return

        try:
            collections = self.game_app.backup_service.load_backup(Path(file_name))
        except ImportFormatError as e:
            log.warning("Backup rejected", path=file_name, reason=e.reason)
            self.notify_error(e.message)
            return
        except OSError as e:
            self.handle_exception(e, "import backup", {"path": file_name})
            return

        def on_result(confirmed: bool | None) -> None:
            if confirmed:
                self.run_worker(self._replace_library(collections), name="import_backup", exclusive=True)

        self.app.push_screen(ConfirmScreen(REPLACE_WARNING, "Replace"), on_result)

    async def _replace_library(self, collections: GameCollections) -> None:
        saved = await self.store.replace_all(collections)
        if saved:
            self.notify_success(
                f"Imported {len(collections.games)} games and {len(collections.to_play_games)} to play"
            )
        else:
            self.notify_warning("Data imported but could not be saved to disk")

    def _confirm_clear(self) -> None:
        def on_result(confirmed: bool | None) -> None:
            if confirmed:
                self.run_worker(self._clear_all(), name="clear_all", exclusive=True)

        self.app.push_screen(ConfirmScreen(CLEAR_WARNING, "Delete everything"), on_result)

    async def _clear_all(self) -> None:
        await self.store.clear_all()
        self.notify_success("All data has been cleared")
        self.warn_if_save_failed()

    def _start_cover_refresh(self) -> None:
        if self._refreshing:
            self.notify_warning("Cover refresh is already running")
            return

        fetcher = self.game_app.metadata_fetcher
        if fetcher is None or not fetcher.has_api_key():
            self.notify_warning("Please configure your RAWG API key first")
            return

        if not self.store.games:
            self.notify_warning("No games to update")
            return

        self._set_refreshing(True)
        progress_widget = self.query_one("#refresh-progress", ImageRefreshProgressWidget)
        progress_widget.reset()
        progress_widget.set_status("Starting...")

        self.run_worker(self._run_cover_refresh(), name="cover_refresh", exclusive=True)

    async def _run_cover_refresh(self) -> None:
        """Drive the store's cover refresh (executed in worker)."""
        last: ImageRefreshProgress | None = None
        try:
            async for progress in self.store.refresh_images():
                last = progress
                self.post_message(self.RefreshProgress(progress))
        except asyncio.CancelledError:
            log.info("Cover refresh worker cancelled")
            raise
        except Exception as e:
            log.error("Cover refresh failed", error=str(e))
            self.post_message(self.RefreshFailed(e))
            return

        self.post_message(
            self.RefreshComplete(
                covers_updated=last.covers_updated if last else 0,
                total_games=last.total_games if last else 0,
            )
        )

    def on_settings_screen_refresh_progress(self, event: RefreshProgress) -> None:
        self.query_one("#refresh-progress", ImageRefreshProgressWidget).update_progress(event.progress)

    def on_settings_screen_refresh_complete(self, event: RefreshComplete) -> None:
        self._set_refreshing(False)
        self.query_one("#refresh-progress", ImageRefreshProgressWidget).set_complete(
            True, f"✓ Updated {event.covers_updated} of {event.total_games} covers"
        )
        if self.store.last_save_succeeded:
            self.notify_success("All game images have been updated!")
        else:
            self.notify_warning("Covers updated but the library could not be saved")

    def on_settings_screen_refresh_failed(self, event: RefreshFailed) -> None:
        self._set_refreshing(False)
        self.query_one("#refresh-progress", ImageRefreshProgressWidget).set_complete(False)
        self.handle_exception(event.error, "refresh cover images")

    def _set_refreshing(self, running: bool) -> None:
        self._refreshing = running
        self.query_one("#btn-refresh-covers", Button).disabled = running
        progress_widget = self.query_one("#refresh-progress", ImageRefreshProgressWidget)
        if running:
            progress_widget.add_class("running")
        else:
            progress_widget.remove_class("running")
