"""Modal forms for adding and editing games, plus a yes/no confirmation."""

import math
from datetime import date, datetime
from typing import Any, ClassVar, override

from textual.app import ComposeResult
from textual.binding import Binding
from textual.containers import Horizontal, Vertical
from textual.screen import ModalScreen
from textual.widgets import Button, Input, Label, Static

import structlog

from playedyet.models import BacklogInput, PlayedGame

log = structlog.stdlib.get_logger()


def parse_tags(text: str) -> list[str]:
    """Split comma-separated tags, trimming each and dropping empty ones."""
    return [tag.strip() for tag in text.split(",") if tag.strip()]


def parse_hours_input(text: str) -> float:
    """Parse hours typed as decimal (``12.5``) or ``HH:MM`` (``12:30``).

    An empty field means zero hours.

    Raises:
        ValueError: If the text is neither form or is negative
    """
    text = text.strip()
    if not text:
        return 0.0

    if ":" in text:
        hours_part, _, minutes_part = text.partition(":")
        if not hours_part.isdigit() or not minutes_part.isdigit():
            raise ValueError(f"Invalid time: {text}")
        minutes = int(minutes_part)
        if minutes >= 60:
            raise ValueError(f"Minutes must be below 60: {text}")
        return int(hours_part) + minutes / 60

    hours = float(text)
    if not math.isfinite(hours) or hours < 0:
        raise ValueError(f"Hours must be zero or more: {text}")
    return hours


def parse_completion_date(text: str) -> str | None:
    """Turn a ``YYYY-MM-DD`` field into the stored ISO timestamp.

    Raises:
        ValueError: If the text is not a valid calendar date
    """
    text = text.strip()
    if not text:
        return None
    day = date.fromisoformat(text)
    return f"{day.isoformat()}T00:00:00.000Z"


def completion_date_field_value(completion_date: str | None) -> str:
    """Stored completion timestamp as ``YYYY-MM-DD`` for editing."""
    if not completion_date:
        return ""
    try:
        return datetime.fromisoformat(completion_date).date().isoformat()
    except ValueError:
        return ""


def format_hours(hours: float) -> str:
    """Decimal hours as zero-padded ``HH:MM``, rounded to the minute."""
    total_minutes = round(hours * 60)
    return f"{total_minutes // 60:02d}:{total_minutes % 60:02d}"


def validate_game_form(values: dict[str, str], editing: bool = False) -> tuple[dict[str, Any], list[str]]:
    """Validate raw game form fields.

    Returns:
        The parsed fields keyed by game attribute name, and a list of
        problems (empty when the form is valid)
    """
    errors: list[str] = []
    fields: dict[str, Any] = {
        "title": values.get("title", "").strip(),
        "genre": values.get("genre", "").strip(),
        "tags": parse_tags(values.get("tags", "")),
        "difficulty": values.get("difficulty", "").strip(),
        "platform": values.get("platform", "").strip(),
    }

    if not fields["title"]:
        errors.append("Title is required")

    try:
        fields["hours"] = parse_hours_input(values.get("hours", ""))
    except ValueError:
        errors.append("Hours must be a number or HH:MM")

    rating_text = values.get("rating", "").strip()
    if rating_text:
        try:
            rating = float(rating_text)
        except ValueError:
            errors.append("Rating must be a number")
        else:
            if not 0 <= rating <= 10:
                errors.append("Rating must be between 0 and 10")
            fields["rating"] = rating
    else:
        fields["rating"] = None

    if editing:
        try:
            fields["completion_date"] = parse_completion_date(values.get("completion_date", ""))
        except ValueError:
            errors.append("Completion date must be YYYY-MM-DD")

    return fields, errors


class ConfirmScreen(ModalScreen[bool]):
    """Yes/no question; dismisses with True only on confirmation."""

    CSS: ClassVar[str] = """
    ConfirmScreen {
        align: center middle;
    }

    #confirm-dialog {
        width: 60;
        height: auto;
        padding: 1 2;
        border: thick $warning;
        background: $surface;
    }

    #confirm-message {
        margin-bottom: 1;
    }

    #confirm-buttons {
        height: auto;
        align: center middle;
    }

    #confirm-buttons Button {
        margin: 0 1;
    }
    """

    BINDINGS: ClassVar[list[Binding]] = [
        Binding("escape", "cancel", "Cancel", show=True),
    ]

    def __init__(self, message: str, confirm_label: str = "Yes") -> None:
        super().__init__()
        self._message = message
        self._confirm_label = confirm_label

    @override
    def compose(self) -> ComposeResult:
        with Vertical(id="confirm-dialog"):
            yield Static(self._message, id="confirm-message")
            with Horizontal(id="confirm-buttons"):
                yield Button(self._confirm_label, id="btn-confirm", variant="error")
                yield Button("Cancel", id="btn-cancel", variant="default")

    def on_button_pressed(self, event: Button.Pressed) -> None:
        self.dismiss(event.button.id == "btn-confirm")

    def action_cancel(self) -> None:
        self.dismiss(False)


class FormScreen(ModalScreen[Any]):
    """Shared layout and behavior of the add/edit forms."""

    CSS: ClassVar[str] = """
    FormScreen {
        align: center middle;
    }

    .form-dialog {
        width: 70;
        height: auto;
        max-height: 90%;
        padding: 1 2;
        border: thick $primary;
        background: $surface;
    }

    .form-title {
        text-align: center;
        text-style: bold;
        color: $primary;
        margin-bottom: 1;
    }

    .form-label {
        margin-top: 1;
    }

    .form-errors {
        color: $error;
        margin-top: 1;
    }

    .form-buttons {
        height: auto;
        margin-top: 1;
        align: center middle;
    }

    .form-buttons Button {
        margin: 0 1;
    }
    """

    BINDINGS: ClassVar[list[Binding]] = [
        Binding("escape", "cancel", "Cancel", show=True),
    ]

    def field_values(self) -> dict[str, str]:
        return {inp.id.removeprefix("field-"): inp.value for inp in self.query(Input) if inp.id}

    def show_errors(self, errors: list[str]) -> None:
        self.query_one(".form-errors", Static).update("\n".join(errors))

    def submit(self) -> None:
        raise NotImplementedError

    def on_button_pressed(self, event: Button.Pressed) -> None:
        if event.button.id == "btn-save":
            self.submit()
        else:
            self.dismiss(None)

    def on_input_submitted(self, event: Input.Submitted) -> None:
        self.submit()

    def action_cancel(self) -> None:
        self.dismiss(None)

    def form_buttons(self) -> ComposeResult:
        yield Static("", classes="form-errors")
        with Horizontal(classes="form-buttons"):
            yield Button("Save", id="btn-save", variant="primary")
            yield Button("Cancel", id="btn-cancel", variant="default")


class GameFormScreen(FormScreen):
    """Add or edit a played game.

    Dismisses with the parsed fields keyed by game attribute name, or None
    when cancelled. Editing adds the completion date field.
    """

    def __init__(self, game: PlayedGame | None = None) -> None:
        super().__init__()
        self._game = game

    @property
    def editing(self) -> bool:
        return self._game is not None

    @override
    def compose(self) -> ComposeResult:
        game = self._game
        with Vertical(classes="form-dialog"):
            yield Static("Edit Game" if game else "Add Game", classes="form-title")
            yield Label("Title", classes="form-label")
            yield Input(game.title if game else "", id="field-title", placeholder="Game title")
            yield Label("Genre", classes="form-label")
            yield Input(game.genre if game else "", id="field-genre", placeholder="RPG, Action...")
            yield Label("Tags (comma separated)", classes="form-label")
            yield Input(", ".join(game.tags) if game else "", id="field-tags")
            yield Label("Hours (decimal or HH:MM)", classes="form-label")
            yield Input(format_hours(game.hours) if game else "", id="field-hours", placeholder="12:30")
            yield Label("Rating (0-10)", classes="form-label")
            yield Input(
                "" if not game or game.rating is None else f"{game.rating:g}",
                id="field-rating",
            )
            yield Label("Difficulty", classes="form-label")
            yield Input(game.difficulty if game else "", id="field-difficulty")
            yield Label("Platform", classes="form-label")
            yield Input(game.platform if game else "", id="field-platform")
            if game:
                yield Label("Completion date (YYYY-MM-DD)", classes="form-label")
                yield Input(
                    completion_date_field_value(game.completion_date),
                    id="field-completion_date",
                )
            yield from self.form_buttons()

    @override
    def submit(self) -> None:
        fields, errors = validate_game_form(self.field_values(), editing=self.editing)
        if errors:
            self.show_errors(errors)
            log.debug("Game form rejected", errors=errors)
            return
        self.dismiss(fields)


class BacklogFormScreen(FormScreen):
    """Add a game to the backlog."""

    @override
    def compose(self) -> ComposeResult:
        with Vertical(classes="form-dialog"):
            yield Static("Add To Play", classes="form-title")
            yield Label("Title", classes="form-label")
            yield Input(id="field-title", placeholder="Game title")
            yield Label("Genre", classes="form-label")
            yield Input(id="field-genre")
            yield Label("Tags (comma separated)", classes="form-label")
            yield Input(id="field-tags")
            yield from self.form_buttons()

    @override
    def submit(self) -> None:
        values = self.field_values()
        title = values.get("title", "").strip()
        if not title:
            self.show_errors(["Title is required"])
            return
        self.dismiss(
            BacklogInput(
                title=title,
                genre=values.get("genre", "").strip(),
                tags=parse_tags(values.get("tags", "")),
            )
        )
