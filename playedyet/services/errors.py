"""Error handling for the PlayedYet application.

This module provides:
- Exception classes for each failure kind (storage, network, validation,
  import format, configuration)
- Conversion of arbitrary exceptions into user-facing messages with
  suggested actions
- A process-wide error handling service that logs technical details and
  keeps a short history

Not-found conditions are not errors here: store operations on a missing id
are silent no-ops.
"""

import json
import time
from collections import Counter, deque
from dataclasses import dataclass
from enum import Enum
from typing import Any

import httpx
import structlog

log = structlog.stdlib.get_logger()


class ErrorCategory(Enum):
    """Categories of errors for classification and handling."""
    NETWORK = "network"
    STORAGE = "storage"
    VALIDATION = "validation"
    CONFIGURATION = "configuration"
    UNEXPECTED = "unexpected"


class ErrorSeverity(Enum):
    """Severity levels for errors."""
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


@dataclass(frozen=True)
class UserFriendlyError:
    """User-facing error representation with suggested actions."""
    message: str
    category: ErrorCategory
    severity: ErrorSeverity
    suggested_actions: list[str]
    technical_details: str | None = None


class AppError(Exception):
    """Base exception class for application errors."""

    def __init__(
        self,
        message: str,
        category: ErrorCategory = ErrorCategory.UNEXPECTED,
        severity: ErrorSeverity = ErrorSeverity.ERROR,
        suggested_actions: list[str] | None = None,
        technical_details: str | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.category = category
        self.severity = severity
        self.suggested_actions = suggested_actions or []
        self.technical_details = technical_details

    def to_user_friendly(self) -> UserFriendlyError:
        """Convert to user-friendly error representation."""
        return UserFriendlyError(
            message=self.message,
            category=self.category,
            severity=self.severity,
            suggested_actions=self.suggested_actions,
            technical_details=self.technical_details,
        )


class NetworkError(AppError):
    """Raised when the metadata service or a cover download fails."""

    def __init__(
        self,
        message: str,
        original_error: Exception | None = None,
        url: str | None = None,
        status_code: int | None = None,
    ) -> None:
        suggested_actions = [
            "Check your internet connection",
            "Try again in a few moments",
        ]
        if status_code in (401, 403):
            suggested_actions = [
                "Check that your RAWG API key is correct",
                "Update the key in Settings",
            ]
        elif status_code == 429:
            suggested_actions = ["Wait a few minutes before refreshing covers again"]

        details: list[str] = []
        if status_code:
            details.append(f"Status: {status_code}")
        if url:
            details.append(f"URL: {url}")
        if original_error:
            details.append(f"{type(original_error).__name__}: {original_error}")

        super().__init__(
            message=message,
            category=ErrorCategory.NETWORK,
            severity=ErrorSeverity.ERROR,
            suggested_actions=suggested_actions,
            technical_details="\n".join(details) or None,
        )
        self.original_error = original_error
        self.url = url
        self.status_code = status_code


class StorageError(AppError):
    """Raised when the local data directory cannot be read or written."""

    def __init__(
        self,
        message: str,
        original_error: Exception | None = None,
        path: str | None = None,
        operation: str | None = None,
    ) -> None:
        details: list[str] = []
        if path:
            details.append(f"Path: {path}")
        if operation:
            details.append(f"Operation: {operation}")
        if original_error:
            details.append(f"{type(original_error).__name__}: {original_error}")

        super().__init__(
            message=message,
            category=ErrorCategory.STORAGE,
            severity=ErrorSeverity.ERROR,
            suggested_actions=self._get_suggested_actions(original_error),
            technical_details="\n".join(details) or None,
        )
        self.original_error = original_error
        self.path = path
        self.operation = operation

    @staticmethod
    def _get_suggested_actions(original_error: Exception | None) -> list[str]:
        if isinstance(original_error, PermissionError):
            return [
                "Check permissions on the data directory",
                "Start the application with a different --data-dir",
            ]
        if isinstance(original_error, OSError) and "no space" in str(original_error).lower():
            return ["Free up disk space"]
        return [
            "Check the data directory exists and is writable",
            "Ensure sufficient disk space",
        ]


class ValidationError(AppError):
    """Raised when user input is missing or malformed."""

    def __init__(
        self,
        message: str,
        field: str | None = None,
        value: Any = None,
    ) -> None:
        technical_details = None
        if field:
            technical_details = f"Field: {field}"
        if value is not None:
            technical_details = (technical_details or "") + f"\nValue: {str(value)[:100]}"

        super().__init__(
            message=message,
            category=ErrorCategory.VALIDATION,
            severity=ErrorSeverity.WARNING,
            suggested_actions=["Review the highlighted field and try again"],
            technical_details=technical_details,
        )
        self.field = field
        self.value = value


class ImportFormatError(ValidationError):
    """Raised when a backup file does not hold a valid collections document."""

    def __init__(self, message: str = "Invalid backup file format!", reason: str | None = None) -> None:
        super().__init__(message=message, field="backup", value=reason)
        self.reason = reason
        self.suggested_actions = [
            "Choose a file created by Export",
            "The file must contain both 'games' and 'toPlayGames' lists",
        ]


class ConfigurationError(AppError):
    """Raised when the configuration cannot be used."""

    def __init__(
        self,
        message: str,
        setting: str | None = None,
        expected: str | None = None,
    ) -> None:
        suggested_actions = ["Check the settings screen"]
        if expected:
            suggested_actions.append(f"Expected: {expected}")

        super().__init__(
            message=message,
            category=ErrorCategory.CONFIGURATION,
            severity=ErrorSeverity.ERROR,
            suggested_actions=suggested_actions,
            technical_details=f"Setting: {setting}" if setting else None,
        )
        self.setting = setting
        self.expected = expected


_HTTP_STATUS_MESSAGES: dict[int, str] = {
    401: "The RAWG API rejected the API key.",
    403: "Access denied by the RAWG API. Check your API key.",
    404: "The cover or game could not be found.",
    429: "RAWG is rate limiting requests. Wait a moment and retry.",
    500: "The metadata server encountered an error. Please try again later.",
    502: "The metadata server is temporarily unavailable.",
    503: "The metadata service is temporarily unavailable.",
}


class ErrorHandlingService:
    """Turns exceptions into user-facing errors and remembers recent ones."""

    def __init__(self, max_history_size: int = 100) -> None:
        self._history: deque[tuple[float, AppError]] = deque(maxlen=max_history_size)
        log.debug("Error handling service ready", max_history_size=max_history_size)

    def handle_error(
        self,
        error: Exception,
        operation: str,
        component: str,
        context: dict[str, Any] | None = None,
    ) -> UserFriendlyError:
        """Classify, log and record an error.

        Args:
            error: The exception that was raised
            operation: What was being attempted, e.g. "export backup"
            component: Screen or service name reporting the error
            context: Extra structured fields (path, url, field, value)

        Returns:
            The user-facing form of the error
        """
        context = context or {}
        app_error = self._to_app_error(error, operation, context)

        emit = log.warning if app_error.severity == ErrorSeverity.WARNING else log.error
        emit(
            "Operation failed",
            error_message=app_error.message,
            category=app_error.category.value,
            severity=app_error.severity.value,
            operation=operation,
            component=component,
            technical_details=app_error.technical_details,
            context=context or None,
        )

        self._history.append((time.time(), app_error))
        return app_error.to_user_friendly()

    def _to_app_error(self, error: Exception, operation: str, context: dict[str, Any]) -> AppError:
        if isinstance(error, AppError):
            return error
        if isinstance(error, httpx.HTTPError):
            return self._from_http_error(error, context)
        if isinstance(error, OSError):
            return self._from_os_error(error, operation, context)

        # JSONDecodeError subclasses ValueError, so it must be checked first
        if isinstance(error, json.JSONDecodeError):
            return ValidationError("The file is not valid JSON.", field="json_content")
        if isinstance(error, ValueError):
            return ValidationError(str(error), field=context.get("field"), value=context.get("value"))
        if isinstance(error, TypeError):
            return ValidationError(f"Invalid data type: {error}", field=context.get("field"))

        return AppError(
            message="Something went wrong. Please try again.",
            category=ErrorCategory.UNEXPECTED,
            technical_details=f"{type(error).__name__}: {error}",
        )

    @staticmethod
    def _from_http_error(error: httpx.HTTPError, context: dict[str, Any]) -> NetworkError:
        if isinstance(error, httpx.HTTPStatusError):
            status_code = error.response.status_code
            return NetworkError(
                message=_HTTP_STATUS_MESSAGES.get(status_code, f"The server answered with HTTP {status_code}."),
                original_error=error,
                url=str(error.request.url),
                status_code=status_code,
            )
        if isinstance(error, httpx.TimeoutException):
            message = "The metadata server took too long to answer."
        else:
            message = "Could not reach the metadata server. Check your connection."
        return NetworkError(message=message, original_error=error, url=context.get("url"))

    @staticmethod
    def _from_os_error(error: OSError, operation: str, context: dict[str, Any]) -> StorageError:
        if isinstance(error, PermissionError):
            message = "Permission denied while accessing your library files."
        elif isinstance(error, FileNotFoundError):
            message = "That file or folder does not exist."
        else:
            message = f"A storage error occurred: {error}"
        return StorageError(message=message, original_error=error, path=context.get("path"), operation=operation)

    def get_recent_errors(self, count: int = 10) -> list[AppError]:
        """Most recent errors, oldest first."""
        if count <= 0:
            return []
        return [app_error for _, app_error in list(self._history)[-count:]]

    def get_error_count_by_category(self) -> dict[ErrorCategory, int]:
        return dict(Counter(app_error.category for _, app_error in self._history))

    def create_user_message(self, error: UserFriendlyError, include_suggestions: bool = True) -> str:
        """Message text for a notification, optionally with up to three suggestions."""
        if not include_suggestions or not error.suggested_actions:
            return error.message
        bullets = "\n".join(f"  • {action}" for action in error.suggested_actions[:3])
        return f"{error.message}\n\nSuggested actions:\n{bullets}"


_error_service: ErrorHandlingService | None = None


def get_error_service() -> ErrorHandlingService:
    """Process-wide error handling service, created on first use."""
    global _error_service
    if _error_service is None:
        _error_service = ErrorHandlingService()
    return _error_service


def handle_error(
    error: Exception,
    operation: str,
    component: str,
    context: dict[str, Any] | None = None,
) -> UserFriendlyError:
    return get_error_service().handle_error(error, operation, component, context)
