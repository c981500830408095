"""Tests for error conversion into user-friendly messages."""

import json

import httpx
import pytest
from hypothesis import given, settings, strategies as st

from playedyet.services.errors import (
    AppError,
    ErrorCategory,
    ErrorHandlingService,
    ErrorSeverity,
    ImportFormatError,
    NetworkError,
    StorageError,
    ValidationError,
)


def http_status_error(status_code: int) -> httpx.HTTPStatusError:
    request = httpx.Request("GET", "https://api.rawg.io/api/games")
    response = httpx.Response(status_code, request=request)
    return httpx.HTTPStatusError(f"status {status_code}", request=request, response=response)


error_strategy = st.one_of(
    st.builds(lambda msg: httpx.ConnectError(msg), st.text(max_size=50)),
    st.builds(lambda msg: httpx.ReadTimeout(msg), st.text(max_size=50)),
    st.builds(http_status_error, st.sampled_from([401, 403, 404, 429, 500, 502, 503, 418])),
    st.builds(lambda msg: PermissionError(msg), st.text(max_size=50)),
    st.builds(lambda msg: FileNotFoundError(msg), st.text(max_size=50)),
    st.builds(lambda msg: OSError(msg), st.text(max_size=50)),
    st.builds(lambda msg: ValueError(msg), st.text(min_size=1, max_size=50)),
    st.builds(lambda msg: TypeError(msg), st.text(max_size=50)),
    st.builds(lambda msg: RuntimeError(msg), st.text(max_size=50)),
)


class TestErrorConversion:
    @given(error_strategy)
    @settings(max_examples=100)
    def test_every_error_becomes_user_friendly(self, error: Exception) -> None:
        """Any exception yields a categorized, non-empty user message."""
        service = ErrorHandlingService()

        user_error = service.handle_error(error, "test operation", "tests")

        assert user_error.message
        assert isinstance(user_error.category, ErrorCategory)
        assert isinstance(user_error.severity, ErrorSeverity)
        assert service.get_recent_errors(1)[0].message == user_error.message

    @pytest.mark.parametrize(
        ("error", "category"),
        [
            (httpx.ConnectError("offline"), ErrorCategory.NETWORK),
            (http_status_error(401), ErrorCategory.NETWORK),
            (PermissionError("denied"), ErrorCategory.STORAGE),
            (OSError("disk"), ErrorCategory.STORAGE),
            (json.JSONDecodeError("bad", "{", 0), ErrorCategory.VALIDATION),
            (ValueError("bad value"), ErrorCategory.VALIDATION),
            (RuntimeError("boom"), ErrorCategory.UNEXPECTED),
        ],
    )
    def test_category_mapping(self, error: Exception, category: ErrorCategory) -> None:
        user_error = ErrorHandlingService().handle_error(error, "op", "tests")
        assert user_error.category == category

    def test_api_key_rejection_suggests_settings(self) -> None:
        user_error = ErrorHandlingService().handle_error(http_status_error(401), "search", "tests")

        assert "API key" in user_error.message
        assert any("Settings" in action for action in user_error.suggested_actions)

    def test_app_errors_pass_through_unchanged(self) -> None:
        error = StorageError("Could not save", path="data.json", operation="save")

        user_error = ErrorHandlingService().handle_error(error, "save", "tests")

        assert user_error.message == "Could not save"
        assert user_error.category == ErrorCategory.STORAGE

    def test_import_format_error_is_a_validation_warning(self) -> None:
        error = ImportFormatError(reason="missing 'toPlayGames'")

        assert isinstance(error, ValidationError)
        assert error.message == "Invalid backup file format!"
        assert error.severity == ErrorSeverity.WARNING
        assert error.reason == "missing 'toPlayGames'"


class TestHistory:
    def test_history_is_bounded(self) -> None:
        service = ErrorHandlingService(max_history_size=3)

        for index in range(5):
            service.handle_error(ValueError(f"error {index}"), "op", "tests")

        assert [e.message for e in service.get_recent_errors(10)] == ["error 2", "error 3", "error 4"]

    def test_counts_by_category(self) -> None:
        service = ErrorHandlingService()
        service.handle_error(OSError("a"), "op", "tests")
        service.handle_error(OSError("b"), "op", "tests")
        service.handle_error(NetworkError("c"), "op", "tests")

        counts = service.get_error_count_by_category()

        assert counts[ErrorCategory.STORAGE] == 2
        assert counts[ErrorCategory.NETWORK] == 1


class TestUserMessages:
    def test_suggestions_are_capped_at_three(self) -> None:
        error = AppError("Something failed", suggested_actions=["one", "two", "three", "four"])
        service = ErrorHandlingService()

        message = service.create_user_message(error.to_user_friendly())

        assert message.startswith("Something failed")
        assert "  • three" in message
        assert "four" not in message

    def test_suggestions_can_be_left_out(self) -> None:
        error = AppError("Something failed", suggested_actions=["one"])

        message = ErrorHandlingService().create_user_message(error.to_user_friendly(), include_suggestions=False)

        assert message == "Something failed"
