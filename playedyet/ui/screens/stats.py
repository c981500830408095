"""Statistics screen: playtime totals and breakdowns by genre and tag."""

from dataclasses import dataclass
from typing import ClassVar, override

from textual.app import ComposeResult
from textual.containers import Container, Horizontal, VerticalScroll
from textual.widgets import Button, ProgressBar, Static

import structlog

from .base import BaseScreen

log = structlog.stdlib.get_logger()


@dataclass(frozen=True)
class StatRow:
    label: str
    hours: float
    percentage: float  # Share of total playtime, 0-100


def build_stat_rows(stats: dict[str, float], total_hours: float) -> list[StatRow]:
    """Rows sorted by hours, largest first.

    Percentages are taken against the total playtime, so tag rows can add up
    to more than 100.
    """
    rows = [
        StatRow(
            label=label or "(none)",
            hours=hours,
            percentage=(hours / total_hours * 100) if total_hours > 0 else 0.0,
        )
        for label, hours in stats.items()
    ]
    return sorted(rows, key=lambda row: row.hours, reverse=True)


class StatsScreen(BaseScreen):
    """Read-only view of the library statistics."""

    SCREEN_TITLE: ClassVar[str] = "Statistics"
    SCREEN_NAME: ClassVar[str] = "stats"

    CSS: ClassVar[str] = """
    StatsScreen {
        align: center middle;
    }

    #stats-container {
        width: 90;
        height: 90%;
        padding: 1 2;
        border: solid $primary;
        background: $surface;
    }

    #stats-title {
        text-align: center;
        text-style: bold;
        color: $primary;
        margin-bottom: 1;
    }

    #summary-row {
        height: auto;
        margin-bottom: 1;
    }

    .summary-card {
        width: 1fr;
        padding: 0 1;
        border: solid $primary-darken-2;
        text-align: center;
    }

    .section-title {
        text-style: bold;
        color: $secondary;
        margin-top: 1;
    }

    .stat-label {
        margin-top: 1;
    }

    .stat-bar {
        width: 100%;
    }

    #stats-body {
        height: 1fr;
    }
    """

    @override
    def compose(self) -> ComposeResult:
        with Container(id="stats-container"):
            yield Static("📈 Statistics", id="stats-title")
            with Horizontal(id="summary-row"):
                yield Static("", id="total-hours", classes="summary-card")
                yield Static("", id="total-games", classes="summary-card")
                yield Static("", id="top-genre", classes="summary-card")
            yield VerticalScroll(id="stats-body")
            yield Button("Back", id="btn-back", variant="default")

    @override
    async def on_mount(self) -> None:
        await super().on_mount()
        await self.refresh_stats()

    @override
    def on_screen_resume(self) -> None:
        super().on_screen_resume()
        self.run_worker(self.refresh_stats(), name="refresh_stats", exclusive=True)

    async def refresh_stats(self) -> None:
        store = self.store
        total_hours = store.get_total_hours()

        self.query_one("#total-hours", Static).update(f"Total hours\n{total_hours:.1f}")
        self.query_one("#total-games", Static).update(f"Games played\n{len(store.games)}")
        self.query_one("#top-genre", Static).update(f"Top genre\n{store.get_top_genre()}")

        body = self.query_one("#stats-body", VerticalScroll)
        await body.remove_children()

        widgets: list[Static | ProgressBar] = [Static("Hours by genre", classes="section-title")]
        widgets.extend(self._row_widgets(build_stat_rows(store.get_stats_by_genre(), total_hours)))
        widgets.append(Static("Hours by tag", classes="section-title"))
        widgets.extend(self._row_widgets(build_stat_rows(store.get_stats_by_tag(), total_hours)))
        await body.mount_all(widgets)

        log.debug("Statistics refreshed", total_hours=total_hours, games=len(store.games))

    def _row_widgets(self, rows: list[StatRow]) -> list[Static | ProgressBar]:
        if not rows:
            return [Static("No data yet", classes="stat-label")]

        widgets: list[Static | ProgressBar] = []
        for row in rows:
            widgets.append(
                Static(f"{row.label}: {row.hours:.1f}h ({row.percentage:.1f}%)", classes="stat-label")
            )
            bar = ProgressBar(total=100, show_eta=False, show_percentage=False, classes="stat-bar")
            bar.progress = min(row.percentage, 100.0)
            widgets.append(bar)
        return widgets

    async def on_button_pressed(self, event: Button.Pressed) -> None:
        if event.button.id == "btn-back":
            await self.action_go_back()
