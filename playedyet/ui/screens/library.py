"""Library screen listing played games with search, filters and editing."""

from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, ClassVar, override

from textual.app import ComposeResult
from textual.binding import Binding
from textual.containers import Container, Horizontal, Vertical
from textual.widgets import Button, DataTable, Input, Select, Static

import structlog

from playedyet.models import GameInput, PlayedGame
from playedyet.services.errors import ValidationError

from .base import BaseScreen
from .forms import ConfirmScreen, GameFormScreen, format_hours

log = structlog.stdlib.get_logger()


def completion_year(game: PlayedGame) -> int | None:
    """Year a game was completed, or None if there is no usable date."""
    if not game.completion_date:
        return None
    try:
        return datetime.fromisoformat(game.completion_date).year
    except ValueError:
        return None


def format_completion_date(completion_date: str | None) -> str:
    """Stored completion timestamp as ``dd/mm/yyyy``; empty when unset."""
    if not completion_date:
        return ""
    try:
        return datetime.fromisoformat(completion_date).strftime("%d/%m/%Y")
    except ValueError:
        return ""


def format_total_playtime(hours: float) -> str:
    return f"{hours:.1f} hours"


@dataclass(frozen=True)
class LibraryFilters:
    """Active library filters; None means the filter is off."""
    search: str = ""
    genre: str | None = None
    tag: str | None = None
    year: int | None = None
    platform: str | None = None


@dataclass(frozen=True)
class FilterOptions:
    """Values offered by the library's filter dropdowns."""
    genres: list[str] = field(default_factory=list)
    tags: list[str] = field(default_factory=list)
    years: list[int] = field(default_factory=list)
    platforms: list[str] = field(default_factory=list)


def filter_games(games: Iterable[PlayedGame], filters: LibraryFilters) -> list[PlayedGame]:
    """Apply the library filters, keeping the original order.

    The search text matches case-insensitively against the title or any tag.
    """
    result = list(games)

    query = filters.search.lower().strip()
    if query:
        result = [
            g for g in result
            if query in g.title.lower() or any(query in tag.lower() for tag in g.tags)
        ]

    if filters.genre is not None:
        result = [g for g in result if g.genre == filters.genre]

    if filters.tag is not None:
        result = [g for g in result if filters.tag in g.tags]

    if filters.year is not None:
        result = [g for g in result if completion_year(g) == filters.year]

    if filters.platform is not None:
        result = [g for g in result if g.platform == filters.platform]

    return result


def collect_filter_options(games: Iterable[PlayedGame]) -> FilterOptions:
    """Distinct non-empty filter values; years newest first, the rest sorted."""
    games = list(games)
    years = {year for g in games if (year := completion_year(g)) is not None}
    return FilterOptions(
        genres=sorted({g.genre for g in games if g.genre}),
        tags=sorted({tag for g in games for tag in g.tags if tag}),
        years=sorted(years, reverse=True),
        platforms=sorted({g.platform for g in games if g.platform}),
    )


def game_row(game: PlayedGame) -> tuple[str, ...]:
    """Table cells for one played game."""
    return (
        game.title[:40],
        game.genre,
        ", ".join(game.tags),
        format_hours(game.hours),
        "-" if game.rating is None else f"{game.rating:g}/10",
        game.platform,
        "✓" if game.is_finished else "",
        format_completion_date(game.completion_date),
        "🖼" if game.image_url else "",
    )


def _select_value(select: Select[Any]) -> Any:
    value = select.value
    return value if isinstance(value, (str, int)) and not isinstance(value, bool) else None


class LibraryScreen(BaseScreen):
    """Played games table.

    Provides live search, genre/tag/year/platform filters, the total
    playtime and add/edit/finish/delete actions on the selected row.
    """

    SCREEN_TITLE: ClassVar[str] = "Library"
    SCREEN_NAME: ClassVar[str] = "library"

    CSS: ClassVar[str] = """
    LibraryScreen {
        align: center middle;
    }

    #library-container {
        width: 95%;
        height: 95%;
        padding: 1 2;
        border: solid $primary;
        background: $surface;
    }

    #library-title {
        text-align: center;
        text-style: bold;
        color: $primary;
        margin-bottom: 1;
    }

    #filter-row {
        height: 3;
    }

    #search-input {
        width: 2fr;
    }

    #filter-row Select {
        width: 1fr;
        margin-left: 1;
    }

    #stats-row {
        height: auto;
        margin: 1 0;
    }

    .library-stat {
        color: $text-muted;
        margin-right: 2;
    }

    #games-table {
        height: 1fr;
    }

    #no-results {
        text-align: center;
        color: $text-muted;
        padding: 2;
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
        Binding("e", "edit_game", "Edit", show=True),
        Binding("t", "toggle_finished", "Finished", show=True),
        Binding("d", "delete_game", "Delete", show=True),
    ]

    _filtered_games: list[PlayedGame]

    def __init__(self) -> None:
        super().__init__()
        self._filtered_games = []

    @override
    def compose(self) -> ComposeResult:
        with Container(id="library-container"):
            yield Static("🎮 Played Games", id="library-title")
            with Horizontal(id="filter-row"):
                yield Input(placeholder="Search title or tag...", id="search-input")
                yield Select[str]([], id="genre-select", prompt="All genres")
                yield Select[str]([], id="tag-select", prompt="All tags")
                yield Select[int]([], id="year-select", prompt="All years")
                yield Select[str]([], id="platform-select", prompt="All platforms")
            with Horizontal(id="stats-row"):
                yield Static("Total playtime: 0.0 hours", id="stat-playtime", classes="library-stat")
                yield Static("Showing: 0", id="stat-showing", classes="library-stat")
            with Vertical(id="table-section"):
                yield DataTable(id="games-table")
            yield Static("No games yet. Press 'a' to add one!", id="no-results")
            with Horizontal(id="button-row"):
                yield Button("Add", id="btn-add", variant="primary")
                yield Button("Edit", id="btn-edit", variant="default")
                yield Button("Finished", id="btn-toggle", variant="default")
                yield Button("Delete", id="btn-delete", variant="error")
                yield Button("Back", id="btn-back", variant="default")

    @override
    async def on_mount(self) -> None:
        await super().on_mount()
        table = self.query_one("#games-table", DataTable)
        table.add_columns("Title", "Genre", "Tags", "Hours", "Rating", "Platform", "Done", "Completed", "Cover")
        table.cursor_type = "row"
        self.refresh_games()

    @override
    def on_screen_resume(self) -> None:
        super().on_screen_resume()
        self.refresh_games()

    def refresh_games(self) -> None:
        """Rebuild the filter options and table from the store."""
        options = collect_filter_options(self.store.games)
        self._set_options("#genre-select", options.genres)
        self._set_options("#tag-select", options.tags)
        self._set_options("#year-select", options.years)
        self._set_options("#platform-select", options.platforms)
        self._apply_filters()

    def current_filters(self) -> LibraryFilters:
        return LibraryFilters(
            search=self.query_one("#search-input", Input).value,
            genre=_select_value(self.query_one("#genre-select", Select)),
            tag=_select_value(self.query_one("#tag-select", Select)),
            year=_select_value(self.query_one("#year-select", Select)),
            platform=_select_value(self.query_one("#platform-select", Select)),
        )

    def _set_options(self, selector: str, values: list[Any]) -> None:
        select = self.query_one(selector, Select)
        previous = _select_value(select)
        with select.prevent(Select.Changed):
            select.set_options([(str(value), value) for value in values])
            if previous in values:
                select.value = previous

    def _apply_filters(self) -> None:
        self._filtered_games = filter_games(self.store.games, self.current_filters())

        table = self.query_one("#games-table", DataTable)
        table.clear()
        for game in self._filtered_games:
            table.add_row(*game_row(game), key=str(game.id))

        self.query_one("#stat-playtime", Static).update(
            f"Total playtime: {format_total_playtime(self.store.get_total_hours())}"
        )
        self.query_one("#stat-showing", Static).update(
            f"Showing: {len(self._filtered_games)} of {len(self.store.games)}"
        )

        no_results = self.query_one("#no-results", Static)
        if self._filtered_games:
            no_results.display = False
        else:
            no_results.display = True
            if self.store.games:
                no_results.update("No games match your search criteria. Try different filters.")
            else:
                no_results.update("No games yet. Press 'a' to add one!")

    def selected_game(self) -> PlayedGame | None:
        table = self.query_one("#games-table", DataTable)
        if not self._filtered_games or table.cursor_row < 0:
            return None
        if table.cursor_row >= len(self._filtered_games):
            return None
        return self._filtered_games[table.cursor_row]

    def on_input_changed(self, event: Input.Changed) -> None:
        if event.input.id == "search-input":
            self._apply_filters()

    def on_select_changed(self, event: Select.Changed) -> None:
        self._apply_filters()

    async def on_button_pressed(self, event: Button.Pressed) -> None:
        button_id = event.button.id

        if button_id == "btn-add":
            self.action_add_game()
        elif button_id == "btn-edit":
            self.action_edit_game()
        elif button_id == "btn-toggle":
            self.action_toggle_finished()
        elif button_id == "btn-delete":
            self.action_delete_game()
        elif button_id == "btn-back":
            await self.action_go_back()

    def action_focus_search(self) -> None:
        self.query_one("#search-input", Input).focus()

    def action_add_game(self) -> None:
        def on_result(fields: dict[str, Any] | None) -> None:
            if fields is not None:
                self.run_worker(self._add_game(fields), name="add_game")

        self.app.push_screen(GameFormScreen(), on_result)

    def action_edit_game(self) -> None:
        game = self.selected_game()
        if game is None:
            self.notify_warning("No game selected")
            return

        def on_result(fields: dict[str, Any] | None) -> None:
            if fields is not None:
                self.run_worker(self._update_game(game.id, fields), name="update_game")

        self.app.push_screen(GameFormScreen(game), on_result)

    def action_toggle_finished(self) -> None:
        game = self.selected_game()
        if game is None:
            self.notify_warning("No game selected")
            return
        self.run_worker(self._toggle_finished(game.id), name="toggle_finished")

    def action_delete_game(self) -> None:
        game = self.selected_game()
        if game is None:
            self.notify_warning("No game selected")
            return

        def on_result(confirmed: bool | None) -> None:
            if confirmed:
                self.run_worker(self._delete_game(game.id), name="delete_game")

        self.app.push_screen(ConfirmScreen("Are you sure you want to delete this game?", "Delete"), on_result)

    async def _add_game(self, fields: dict[str, Any]) -> None:
        self.notify(f"Adding '{fields['title']}'...")
        try:
            game = await self.store.add_game(GameInput(**fields))
        except ValidationError as e:
            self.handle_exception(e, "add game")
            return

        self.refresh_games()
        if game.image_url is None:
            self.notify_warning(f"Added '{game.title}' without a cover image")
        else:
            self.notify_success(f"Added '{game.title}'")
        self.warn_if_save_failed()

    async def _update_game(self, game_id: int, fields: dict[str, Any]) -> None:
        try:
            await self.store.update_game(game_id, fields)
        except ValidationError as e:
            self.handle_exception(e, "update game")
            return

        self.refresh_games()
        self.notify_success("Game updated")
        self.warn_if_save_failed()

    async def _toggle_finished(self, game_id: int) -> None:
        await self.store.toggle_finished(game_id)
        self.refresh_games()
        self.warn_if_save_failed()

    async def _delete_game(self, game_id: int) -> None:
        await self.store.delete_game(game_id)
        self.refresh_games()
        self.notify_success("Game deleted")
        self.warn_if_save_failed()
