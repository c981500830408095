"""Shared behaviour for every PlayedYet screen."""

from typing import TYPE_CHECKING, ClassVar, Literal

from textual.binding import Binding
from textual.screen import Screen

import structlog

from playedyet.services.errors import (
    ErrorSeverity,
    UserFriendlyError,
    get_error_service,
    handle_error,
)
from playedyet.services.game_store import GameStore

if TYPE_CHECKING:
    from playedyet.ui.app import PlayedYetApp

log = structlog.stdlib.get_logger()

NotifySeverity = Literal["information", "warning", "error"]

_LOG_METHOD_BY_SEVERITY = {
    "information": "info",
    "warning": "warning",
    "error": "error",
}


class BaseScreen(Screen[None]):
    """Screen with back navigation, store access and logged notifications.

    Subclasses override compose() for their layout and on_screen_resume()
    to refresh what they show when the user comes back to them.
    """

    BINDINGS: ClassVar[list[Binding]] = [
        Binding("escape", "go_back", "Back", show=True),
    ]

    SCREEN_TITLE: ClassVar[str] = "Screen"
    SCREEN_NAME: ClassVar[str] = "base"

    _is_active: bool

    def __init__(self, name: str | None = None) -> None:
        super().__init__(name=name or self.SCREEN_NAME)
        self._is_active = False

    @property
    def game_app(self) -> "PlayedYetApp":
        """The running PlayedYetApp.

        Raises:
            RuntimeError: If the screen is not attached to a PlayedYetApp
        """
        from playedyet.ui.app import PlayedYetApp

        if isinstance(self.app, PlayedYetApp):
            return self.app
        raise RuntimeError("Screen is not attached to a PlayedYetApp")

    @property
    def store(self) -> GameStore:
        return self.game_app.store

    @property
    def screen_is_active(self) -> bool:
        return self._is_active

    async def on_mount(self) -> None:
        self._is_active = True
        log.debug("Screen shown", screen=self.SCREEN_NAME)

    async def on_unmount(self) -> None:
        self._is_active = False
        log.debug("Screen closed", screen=self.SCREEN_NAME)

    def on_screen_resume(self) -> None:
        self._is_active = True

    def on_screen_suspend(self) -> None:
        self._is_active = False

    async def action_go_back(self) -> None:
        await self.game_app.action_go_back()

    def _notify(self, message: str, severity: NotifySeverity) -> None:
        self.notify(message, severity=severity)
        getattr(log, _LOG_METHOD_BY_SEVERITY[severity])("User notified", message=message, screen=self.SCREEN_NAME)

    def notify_error(self, message: str) -> None:
        self._notify(message, "error")

    def notify_success(self, message: str) -> None:
        self._notify(message, "information")

    def notify_warning(self, message: str) -> None:
        self._notify(message, "warning")

    def warn_if_save_failed(self) -> None:
        """Tell the user when the last store write did not reach disk."""
        if not self.store.last_save_succeeded:
            self.notify_warning("Changes could not be saved to disk")

    def handle_exception(
        self,
        error: Exception,
        operation: str,
        context: dict[str, str | int | float | bool] | None = None,
    ) -> UserFriendlyError:
        """Report an exception through the error service and notify the user.

        Validation problems show as warnings, everything else as errors.
        """
        user_error = handle_error(error=error, operation=operation, component=self.SCREEN_NAME, context=context)
        message = get_error_service().create_user_message(user_error, include_suggestions=False)
        if user_error.severity == ErrorSeverity.WARNING:
            self.notify_warning(message)
        else:
            self.notify_error(message)
        return user_error
