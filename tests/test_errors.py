"""
Pytest tests for error classification, storm damping and reporting.
Run with: uv run pytest tests/test_errors.py -v
"""

import asyncio
import logging
from unittest.mock import Mock, patch

import pytest
import requests

from holiday_crm.services.errors import (
    AppError,
    ErrorClassifier,
    ErrorCode,
    ErrorTracker,
    SentryErrorTracker,
    StorageError,
    ValidationError,
    api_error_code,
    api_error_status,
)


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 100.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def http_error(status: int, body: bytes = b'{"message": "Server said no"}') -> requests.HTTPError:
    response = requests.Response()
    response.status_code = status
    response._content = body
    return requests.HTTPError(f"{status} Error", response=response)


class TestApiErrorCodes:
    def test_round_trip_status(self):
        assert api_error_code(404) == "API_ERROR_404"
        assert api_error_status("API_ERROR_429") == 429

    def test_non_api_codes(self):
        assert api_error_status("NOT_FOUND") is None
        assert api_error_status("API_ERROR_abc") is None
        assert api_error_status("") is None


class TestDatabaseClassification:
    """Mapping of Postgres / PostgREST codes."""

    def setup_method(self):
        self.classifier = ErrorClassifier()

    @pytest.mark.parametrize("db_code,expected", [
        ("23505", ErrorCode.DUPLICATE_ENTRY),
        ("23503", ErrorCode.FOREIGN_KEY_VIOLATION),
        ("42P01", ErrorCode.TABLE_NOT_FOUND),
        ("PGRST116", ErrorCode.NOT_FOUND),
    ])
    def test_known_codes(self, db_code, expected):
        error = self.classifier.handle_database_error(StorageError(db_code, "raw message"))
        assert error.code == expected.value
        assert error.details == {"db_code": db_code}

    def test_unknown_code_keeps_message(self):
        error = self.classifier.handle_database_error(StorageError("XX000", "internal error"))
        assert error.code == ErrorCode.DATABASE_ERROR.value
        assert error.message == "internal error"

    def test_no_code(self):
        error = self.classifier.handle_database_error(StorageError(None, "broken"))
        assert error.code == ErrorCode.DATABASE_ERROR.value
        assert error.message == "Database operation failed"


class TestApiClassification:
    """Classification of arbitrary failures."""

    def setup_method(self):
        self.classifier = ErrorClassifier()

    def test_http_status_preserved(self):
        error = self.classifier.handle_api_error(http_error(503))
        assert error.code == "API_ERROR_503"
        assert error.message == "Server said no"

    def test_http_without_json_body(self):
        error = self.classifier.handle_api_error(http_error(502, b"<html>Bad gateway</html>"))
        assert error.code == "API_ERROR_502"
        assert error.message == "An API error occurred"

    def test_connection_error_is_network(self):
        error = self.classifier.handle_api_error(requests.ConnectionError("connection refused"))
        assert error.code == ErrorCode.NETWORK_ERROR.value

    def test_timeout_is_network(self):
        assert self.classifier.handle_api_error(asyncio.TimeoutError()).code == ErrorCode.NETWORK_ERROR.value
        assert self.classifier.handle_api_error(requests.Timeout()).code == ErrorCode.NETWORK_ERROR.value

    def test_storage_error_routed_to_database_mapping(self):
        error = self.classifier.handle_api_error(StorageError("23505", "duplicate key"))
        assert error.code == ErrorCode.DUPLICATE_ENTRY.value

    def test_app_error_passes_through(self):
        original = ValidationError("guests", "guests must be a positive number")
        assert self.classifier.handle_api_error(original) is original

    def test_unknown_error(self):
        error = self.classifier.handle_api_error(RuntimeError("something odd"))
        assert error.code == ErrorCode.UNKNOWN_ERROR.value
        assert error.message == "something odd"
        assert error.details == {"type": "RuntimeError"}
        assert error.timestamp


class TestErrorStormDamping:
    """Repeated identical messages degrade to RATE_LIMITED_ERROR."""

    def setup_method(self):
        self.clock = FakeClock()
        self.classifier = ErrorClassifier(clock=self.clock)

    def test_sixth_occurrence_within_a_second_is_rate_limited(self):
        codes = []
        for _ in range(6):
            codes.append(self.classifier.handle_api_error(RuntimeError("boom")).code)
            self.clock.advance(0.1)

        assert codes[:5] == [ErrorCode.UNKNOWN_ERROR.value] * 5
        assert codes[5] == ErrorCode.RATE_LIMITED_ERROR.value

    def test_rate_limited_details_name_original(self):
        for _ in range(5):
            self.classifier.handle_api_error(RuntimeError("boom"))
        error = self.classifier.handle_api_error(RuntimeError("boom"))
        assert error.code == ErrorCode.RATE_LIMITED_ERROR.value
        assert error.details["original_error"] == "boom"

    def test_spaced_occurrences_are_not_rate_limited(self):
        for _ in range(10):
            error = self.classifier.handle_api_error(RuntimeError("boom"))
            self.clock.advance(1.5)
        assert error.code == ErrorCode.UNKNOWN_ERROR.value

    def test_distinct_messages_counted_separately(self):
        for i in range(10):
            error = self.classifier.handle_api_error(RuntimeError(f"boom {i}"))
        assert error.code == ErrorCode.UNKNOWN_ERROR.value

    def test_resolve_code_does_not_count(self):
        for _ in range(10):
            assert self.classifier.resolve_code(RuntimeError("boom")) == ErrorCode.UNKNOWN_ERROR.value
        assert self.classifier.handle_api_error(RuntimeError("boom")).code == ErrorCode.UNKNOWN_ERROR.value

    def test_clear_error_counts(self):
        for _ in range(5):
            self.classifier.handle_api_error(RuntimeError("boom"))
        self.classifier.clear_error_counts()
        assert self.classifier.handle_api_error(RuntimeError("boom")).code == ErrorCode.UNKNOWN_ERROR.value

    def test_classifiers_are_isolated(self):
        other = ErrorClassifier(clock=self.clock)
        for _ in range(6):
            self.classifier.handle_api_error(RuntimeError("boom"))
        assert other.handle_api_error(RuntimeError("boom")).code == ErrorCode.UNKNOWN_ERROR.value


class TestReporting:
    """Severity selection, structured logging and tracking."""

    @pytest.mark.parametrize("code,level", [
        ("SECURITY_BREACH", "error"),
        ("CRITICAL_FAILURE", "error"),
        ("VALIDATION_ERROR", "warn"),
        ("NOT_FOUND", "warn"),
        ("RATE_LIMITED_ERROR", "info"),
        ("API_ERROR_500", "error"),
        ("NETWORK_ERROR", "error"),
    ])
    def test_log_level(self, code, level):
        assert ErrorClassifier.get_log_level(code) == level

    def test_log_error_writes_structured_record(self, caplog):
        classifier = ErrorClassifier()
        error = AppError(ErrorCode.NOT_FOUND, "Booking not found", {"booking_id": "b1"})

        with caplog.at_level(logging.DEBUG, logger="holiday_crm.services.errors"):
            classifier.log_error(error, "BookingLifecycle.cancel")

        record = caplog.records[-1]
        assert record.levelno == logging.WARNING
        assert record.error_code == "NOT_FOUND"
        assert record.error_context == "BookingLifecycle.cancel"
        assert record.error_details == {"booking_id": "b1"}
        assert "[BookingLifecycle.cancel] NOT_FOUND: Booking not found" in record.getMessage()

    def test_tracker_only_used_in_production(self):
        tracker = Mock(spec=ErrorTracker)
        error = AppError(ErrorCode.DATABASE_ERROR, "db down")

        ErrorClassifier(production=False, tracker=tracker).log_error(error, "ctx")
        tracker.send_to_tracking.assert_not_called()

        ErrorClassifier(production=True, tracker=tracker).log_error(error, "ctx")
        tracker.send_to_tracking.assert_called_once_with(error, "ctx")

    def test_failing_tracker_never_raises(self):
        tracker = Mock(spec=ErrorTracker)
        tracker.send_to_tracking.side_effect = RuntimeError("tracker offline")
        classifier = ErrorClassifier(production=True, tracker=tracker)

        classifier.log_error(AppError(ErrorCode.DATABASE_ERROR, "db down"), "ctx")

    def test_report_classifies_and_logs(self, caplog):
        classifier = ErrorClassifier()
        with caplog.at_level(logging.ERROR, logger="holiday_crm.services.errors"):
            error = classifier.report(StorageError("XX000", "db down"), "BookingLifecycle.create")
        assert error.code == ErrorCode.DATABASE_ERROR.value
        assert any(r.error_context == "BookingLifecycle.create" for r in caplog.records)

    def test_base_tracker_is_abstract(self):
        with pytest.raises(TypeError):
            ErrorTracker()


class TestSentryErrorTracker:
    """Forwarding to Sentry."""

    def test_init_and_capture(self):
        with patch("holiday_crm.services.errors.sentry_sdk") as sentry:
            tracker = SentryErrorTracker("https://key@sentry.example/1", environment="production", release="1.0.0")
            error = AppError(ErrorCode.DATABASE_ERROR, "db down", {"db_code": "XX000"})
            tracker.send_to_tracking(error, "BookingLifecycle.create")

        sentry.init.assert_called_once()
        assert sentry.init.call_args.kwargs["dsn"] == "https://key@sentry.example/1"
        assert sentry.init.call_args.kwargs["environment"] == "production"

        sentry.capture_message.assert_called_once()
        args, kwargs = sentry.capture_message.call_args
        assert args[0] == "db down"
        assert kwargs["tags"] == {"code": "DATABASE_ERROR", "context": "BookingLifecycle.create"}
