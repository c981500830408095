"""Main Textual application with screen management."""

from typing import ClassVar, override

from textual.app import App, ComposeResult
from textual.binding import Binding, BindingType
from textual.widgets import Footer, Header

import structlog

from playedyet.services.backup import BackupService
from playedyet.services.config import ConfigurationService
from playedyet.services.game_store import GameStore
from playedyet.services.metadata import RawgMetadataFetcher

log = structlog.stdlib.get_logger()


class PlayedYetApp(App[None]):
    """Root TUI application for the personal game library.

    Owns the navigation stack and hands the injected services to screens.
    The game store is loaded from disk when the app mounts.
    """

    CSS: ClassVar[str] = """
    Screen {
        background: $surface;
    }

    .title {
        text-align: center;
        text-style: bold;
        color: $primary;
        margin-bottom: 1;
    }
    """

    BINDINGS: ClassVar[list[BindingType]] = [
        Binding("ctrl+q", "quit", "Quit", show=True, priority=True),
        Binding("escape", "go_back", "Back", show=True),
        Binding("?", "show_help", "Help", show=True),
    ]

    _navigation_stack: list[str]

    def __init__(
        self,
        store: GameStore,
        config_service: ConfigurationService,
        backup_service: BackupService,
        metadata_fetcher: RawgMetadataFetcher | None = None,
    ) -> None:
        """Initialize the application with its services.

        Args:
            store: The game library store
            config_service: Configuration service for the API key and settings
            backup_service: Export/import of the library
            metadata_fetcher: Cover art lookup; None disables cover refresh
        """
        super().__init__()
        self.title = "Played Yet"  # type: ignore[assignment]
        self.sub_title = "Personal Game Library"  # type: ignore[assignment]
        self.store = store
        self.config_service = config_service
        self.backup_service = backup_service
        self.metadata_fetcher = metadata_fetcher
        self._navigation_stack = []

        log.info("PlayedYetApp initialized")

    @property
    def navigation_stack(self) -> list[str]:
        """Get a copy of the current navigation stack."""
        return self._navigation_stack.copy()

    @override
    def compose(self) -> ComposeResult:
        yield Header()
        yield Footer()

    async def on_mount(self) -> None:
        """Load configuration and the library, then show the main menu."""
        log.info("Application mounted, loading library")

        try:
            self.config_service.load_config()
        except Exception as e:
            log.error("Failed to load configuration", error=str(e))

        if not self.store.initialized:
            await self.store.initialize()

        await self.push_screen_with_tracking("main_menu")

    async def push_screen_with_tracking(self, screen_name: str) -> None:
        """Push a screen and track it in the navigation stack."""
        # Lazy import to avoid circular dependency
        from playedyet.ui.screens import get_screen_by_name

        screen = get_screen_by_name(screen_name)
        if screen:
            self._navigation_stack.append(screen_name)
            await self.push_screen(screen)
            log.info("Screen pushed", screen=screen_name, stack_depth=len(self._navigation_stack))
        else:
            log.warning("Unknown screen requested", screen=screen_name)

    async def action_go_back(self) -> None:
        """Navigate back to the previous screen."""
        if len(self._navigation_stack) > 1:
            current = self._navigation_stack.pop()
            log.info("Navigating back", from_screen=current, stack_depth=len(self._navigation_stack))
            _ = self.pop_screen()
        else:
            log.debug("Already at root screen, cannot go back")

    async def action_show_help(self) -> None:
        log.info("Help requested")
        self.notify("Press ctrl+q to quit, 'escape' to go back, '/' to search lists")
