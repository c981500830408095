"""Main menu screen for the TUI application."""

from typing import ClassVar, override

from textual.app import ComposeResult
from textual.binding import Binding
from textual.containers import Container, Vertical
from textual.widgets import Button, Static

import structlog

from .base import BaseScreen

log = structlog.stdlib.get_logger()


class MainMenuScreen(BaseScreen):
    """Main menu screen providing navigation to all application features.

    This screen displays the primary navigation options:
    - Library: Games already played
    - To Play: The backlog
    - Statistics: Playtime breakdowns
    - Settings: API key, backups and maintenance
    """

    SCREEN_TITLE: ClassVar[str] = "Main Menu"
    SCREEN_NAME: ClassVar[str] = "main_menu"

    CSS: ClassVar[str] = """
    MainMenuScreen {
        align: center middle;
    }

    #menu-container {
        width: 60;
        height: auto;
        padding: 2 4;
        border: solid $primary;
        background: $surface;
    }

    #menu-title {
        text-align: center;
        text-style: bold;
        color: $primary;
        margin-bottom: 1;
    }

    #menu-summary {
        text-align: center;
        color: $text-muted;
        margin-bottom: 2;
    }

    .menu-button {
        width: 100%;
        margin-bottom: 1;
    }

    .menu-button:focus {
        background: $primary;
    }
    """

    BINDINGS: ClassVar[list[Binding]] = [
        Binding("1", "navigate('library')", "Library", show=False),
        Binding("2", "navigate('backlog')", "To Play", show=False),
        Binding("3", "navigate('stats')", "Statistics", show=False),
        Binding("4", "navigate('settings')", "Settings", show=False),
    ]

    # (option id, label, target screen)
    MENU_OPTIONS: ClassVar[list[tuple[str, str, str]]] = [
        ("library", "1. Library", "library"),
        ("backlog", "2. To Play", "backlog"),
        ("stats", "3. Statistics", "stats"),
        ("settings", "4. Settings", "settings"),
    ]

    @override
    def compose(self) -> ComposeResult:
        with Container(id="menu-container"):
            yield Static("🎮 Played Yet", id="menu-title")
            yield Static("", id="menu-summary")

            with Vertical(id="menu-buttons"):
                for option_id, label, _ in self.MENU_OPTIONS:
                    yield Button(label, id=f"btn-{option_id}", classes="menu-button")

    @override
    async def on_mount(self) -> None:
        await super().on_mount()
        self._update_summary()

    @override
    def on_screen_resume(self) -> None:
        super().on_screen_resume()
        self._update_summary()

    def _update_summary(self) -> None:
        store = self.game_app.store
        self.query_one("#menu-summary", Static).update(
            f"{len(store.games)} played · {len(store.to_play_games)} to play · "
            f"{store.get_total_hours():.1f} hours"
        )

    async def on_button_pressed(self, event: Button.Pressed) -> None:
        button_id = event.button.id
        if not button_id:
            return

        option = button_id.removeprefix("btn-")
        for opt_id, _, target in self.MENU_OPTIONS:
            if opt_id == option:
                log.info("Menu option selected", option=option, target=target)
                await self.action_navigate(target)
                return

        log.warning("Unknown menu option", button_id=button_id)

    async def action_navigate(self, screen_name: str) -> None:
        """Navigate to a screen by its registered name."""
        await self.game_app.push_screen_with_tracking(screen_name)

    @override
    async def action_go_back(self) -> None:
        """From the main menu, back quits the application."""
        log.info("Quit requested from main menu")
        self.game_app.exit()
