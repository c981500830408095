"""Progress widget for the bulk cover refresh."""

from typing import ClassVar, override

from textual.app import ComposeResult
from textual.containers import Vertical
from textual.reactive import reactive
from textual.widget import Widget
from textual.widgets import ProgressBar, Static

import structlog

from playedyet.models.progress import ImageRefreshProgress

log = structlog.stdlib.get_logger()


class ImageRefreshProgressWidget(Widget):
    """Shows how far a cover refresh has got and which game it is on."""

    DEFAULT_CSS: ClassVar[str] = """
    ImageRefreshProgressWidget {
        height: auto;
        padding: 1;
        border: solid $primary-darken-2;
        background: $surface;
    }

    ImageRefreshProgressWidget .progress-status {
        margin-bottom: 1;
    }

    ImageRefreshProgressWidget .progress-bar-container {
        height: 3;
    }

    ImageRefreshProgressWidget .current-item {
        color: $text-muted;
        text-style: italic;
    }
    """

    status: reactive[str] = reactive("Ready", init=False)
    progress_value: reactive[float] = reactive(0.0, init=False)
    current_game: reactive[str] = reactive("", init=False)
    games_processed: reactive[int] = reactive(0, init=False)
    total_games: reactive[int] = reactive(0, init=False)

    def __init__(
        self,
        name: str | None = None,
        id: str | None = None,
        classes: str | None = None,
    ) -> None:
        super().__init__(name=name, id=id, classes=classes)

    @override
    def compose(self) -> ComposeResult:
        yield Static("Ready", id="progress-status", classes="progress-status")
        with Vertical(classes="progress-bar-container"):
            yield ProgressBar(id="progress-bar", total=100, show_eta=False)
        yield Static("", id="current-item", classes="current-item")

    def update_progress(self, progress: ImageRefreshProgress) -> None:
        self.games_processed = progress.games_processed
        self.total_games = progress.total_games
        self.current_game = progress.current_title
        self.progress_value = progress.percentage
        self.status = f"{progress.games_processed}/{progress.total_games} ({progress.percentage:.1f}%)"
        self._refresh_display()

    def set_status(self, status: str) -> None:
        self.status = status
        self._refresh_display()

    def set_complete(self, success: bool = True, message: str = "") -> None:
        """Mark the refresh as finished."""
        self.progress_value = 100.0 if success else self.progress_value
        self.current_game = ""
        if message:
            self.status = message
        elif success:
            self.status = "✓ Covers updated"
        else:
            self.status = "✗ Cover refresh failed"
        self._refresh_display()

    def reset(self) -> None:
        self.status = "Ready"
        self.progress_value = 0.0
        self.current_game = ""
        self.games_processed = 0
        self.total_games = 0
        self._refresh_display()

    def _refresh_display(self) -> None:
        if not self.is_mounted:
            return
        self.query_one("#progress-status", Static).update(self.status)
        self.query_one("#progress-bar", ProgressBar).update(progress=self.progress_value)
        current = self.query_one("#current-item", Static)
        current.update(f"Current: {self.current_game}" if self.current_game else "")
