"""Backlog screen: games still to be played."""

from collections.abc import Iterable
from typing import ClassVar, override

from textual.app import ComposeResult
from textual.binding import Binding
from textual.containers import Container, Horizontal
from textual.widgets import Button, DataTable, Input, Static

import structlog

from playedyet.models import BacklogGame, BacklogInput
from playedyet.services.errors import ValidationError

from .base import BaseScreen
from .forms import BacklogFormScreen, ConfirmScreen

log = structlog.stdlib.get_logger()


def filter_backlog(games: Iterable[BacklogGame], search_query: str) -> list[BacklogGame]:
    """Case-insensitive match of the query against titles and tags."""
    query = search_query.lower().strip()
    if not query:
        return list(games)
    return [
        g for g in games
        if query in g.title.lower() or any(query in tag.lower() for tag in g.tags)
    ]


class BacklogScreen(BaseScreen):
    """Lists backlog entries and moves them to the library when play starts."""

    SCREEN_TITLE: ClassVar[str] = "To Play"
    SCREEN_NAME: ClassVar[str] = "backlog"

    CSS: ClassVar[str] = """
    BacklogScreen {
        align: center middle;
    }

    #backlog-container {
        width: 90%;
        height: 90%;
        padding: 1 2;
        border: solid $primary;
        background: $surface;
    }

    #backlog-title {
        text-align: center;
        text-style: bold;
        color: $primary;
        margin-bottom: 1;
    }

    #backlog-table {
        height: 1fr;
        margin-top: 1;
    }

    #backlog-count {
        color: $text-muted;
        margin-top: 1;
    }

    #button-row {
        margin-top: 1;
        height: auto;
        align: center middle;
    }

    #button-row Button {
        margin: 0 1;
    }
    """

    BINDINGS: ClassVar[list[Binding]] = [
        Binding("escape", "go_back", "Back", show=True),
        Binding("/", "focus_search", "Search", show=True),
        Binding("a", "add_game", "Add", show=True),
        Binding("p", "start_playing", "Start Playing", show=True),
        Binding("d", "delete_game", "Delete", show=True),
    ]

    _filtered_games: list[BacklogGame]

    def __init__(self) -> None:
        super().__init__()
        self._filtered_games = []

    @override
    def compose(self) -> ComposeResult:
        with Container(id="backlog-container"):
            yield Static("📋 To Play", id="backlog-title")
            yield Input(placeholder="Search title or tag...", id="search-input")
            yield DataTable(id="backlog-table")
            yield Static("", id="backlog-count")
            with Horizontal(id="button-row"):
                yield Button("Add", id="btn-add", variant="primary")
                yield Button("Start Playing", id="btn-play", variant="success")
                yield Button("Delete", id="btn-delete", variant="error")
                yield Button("Back", id="btn-back", variant="default")

    @override
    async def on_mount(self) -> None:
        await super().on_mount()
        table = self.query_one("#backlog-table", DataTable)
        table.add_columns("Title", "Genre", "Tags", "Added")
        table.cursor_type = "row"
        self.refresh_games()

    @override
    def on_screen_resume(self) -> None:
        super().on_screen_resume()
        self.refresh_games()

    def refresh_games(self) -> None:
        search = self.query_one("#search-input", Input).value
        self._filtered_games = filter_backlog(self.store.to_play_games, search)

        table = self.query_one("#backlog-table", DataTable)
        table.clear()
        for game in self._filtered_games:
            table.add_row(
                game.title[:40],
                game.genre,
                ", ".join(game.tags),
                game.created_at[:10],
                key=str(game.id),
            )

        self.query_one("#backlog-count", Static).update(
            f"{len(self._filtered_games)} of {len(self.store.to_play_games)} games"
        )

    def selected_game(self) -> BacklogGame | None:
        table = self.query_one("#backlog-table", DataTable)
        if 0 <= table.cursor_row < len(self._filtered_games):
            return self._filtered_games[table.cursor_row]
        return None

    def on_input_changed(self, event: Input.Changed) -> None:
        if event.input.id == "search-input":
            self.refresh_games()

    async def on_button_pressed(self, event: Button.Pressed) -> None:
        button_id = event.button.id

        if button_id == "btn-add":
            self.action_add_game()
        elif button_id == "btn-play":
            self.action_start_playing()
        elif button_id == "btn-delete":
            self.action_delete_game()
        elif button_id == "btn-back":
            await self.action_go_back()

    def action_focus_search(self) -> None:
        self.query_one("#search-input", Input).focus()

    def action_add_game(self) -> None:
        def on_result(game: BacklogInput | None) -> None:
            if game is not None:
                self.run_worker(self._add_game(game), name="add_backlog_game")

        self.app.push_screen(BacklogFormScreen(), on_result)

    def action_start_playing(self) -> None:
        game = self.selected_game()
        if game is None:
            self.notify_warning("No game selected")
            return
        self.run_worker(self._start_playing(game), name="start_playing", exclusive=True)

    def action_delete_game(self) -> None:
        game = self.selected_game()
        if game is None:
            self.notify_warning("No game selected")
            return

        def on_result(confirmed: bool | None) -> None:
            if confirmed:
                self.run_worker(self._delete_game(game.id), name="delete_backlog_game")

        self.app.push_screen(ConfirmScreen("Are you sure you want to delete this game?", "Delete"), on_result)

    async def _add_game(self, game: BacklogInput) -> None:
        try:
            added = await self.store.add_to_play_game(game)
        except ValidationError as e:
            self.handle_exception(e, "add backlog game")
            return

        self.refresh_games()
        self.notify_success(f"Added '{added.title}' to your backlog")
        self.warn_if_save_failed()

    async def _start_playing(self, game: BacklogGame) -> None:
        played = await self.store.move_to_played(game.id)
        self.refresh_games()
        if played is None:
            log.debug("Backlog game vanished before it could be moved", game_id=game.id)
            return
        self.notify_success(f"'{played.title}' moved to your library")
        self.warn_if_save_failed()

    async def _delete_game(self, game_id: int) -> None:
        await self.store.delete_to_play_game(game_id)
        self.refresh_games()
        self.notify_success("Game deleted")
        self.warn_if_save_failed()
