"""
Error classification, de-duplication and reporting for the booking core.

This module maps heterogeneous failures (storage, HTTP, network, validation)
onto a small closed taxonomy so callers only ever branch on ``AppError.code``:
- Database error codes from the remote store (Postgres / PostgREST)
- HTTP-like failures with their status preserved in the code
- Transport failures that never reached the server
- Rate limiting of error storms (same message repeated within a window)
- Severity-based logging and optional forwarding to an error tracker
"""

import asyncio
import logging
import threading
import time
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Dict, Optional, Union

import requests
import sentry_sdk

logger = logging.getLogger(__name__)


class ErrorCode(str, Enum):
    """Closed taxonomy of application error codes."""

    # Storage
    DUPLICATE_ENTRY = "DUPLICATE_ENTRY"
    FOREIGN_KEY_VIOLATION = "FOREIGN_KEY_VIOLATION"
    TABLE_NOT_FOUND = "TABLE_NOT_FOUND"
    NOT_FOUND = "NOT_FOUND"
    DATABASE_ERROR = "DATABASE_ERROR"

    # Transport
    NETWORK_ERROR = "NETWORK_ERROR"

    # Caller
    VALIDATION_ERROR = "VALIDATION_ERROR"
    AUTHENTICATION_ERROR = "AUTHENTICATION_ERROR"
    AUTHORIZATION_ERROR = "AUTHORIZATION_ERROR"

    # Synthesised locally
    RATE_LIMITED_ERROR = "RATE_LIMITED_ERROR"
    UNKNOWN_ERROR = "UNKNOWN_ERROR"


API_ERROR_PREFIX = "API_ERROR_"


def api_error_code(status: int) -> str:
    """Code for a server response with an HTTP-like error status."""
    return f"{API_ERROR_PREFIX}{status}"


def api_error_status(code: str) -> Optional[int]:
    """Status embedded in an ``API_ERROR_<status>`` code, if any."""
    if not code or not code.startswith(API_ERROR_PREFIX):
        return None
    try:
        return int(code[len(API_ERROR_PREFIX):])
    except ValueError:
        return None


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class AppError(Exception):
    """
    Classified application error.

    Attributes:
        code: Taxonomy code (``ErrorCode`` value or ``API_ERROR_<status>``)
        message: User-presentable message
        details: Optional extra data for logs and trackers
        timestamp: ISO-8601 UTC creation time
    """

    def __init__(
        self,
        code: Union[ErrorCode, str],
        message: str,
        details: Optional[Any] = None,
        timestamp: Optional[str] = None,
    ):
        super().__init__(message)
        self.code = code.value if isinstance(code, ErrorCode) else str(code)
        self.message = message
        self.details = details
        self.timestamp = timestamp or _utc_now_iso()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code,
            "message": self.message,
            "details": self.details,
            "timestamp": self.timestamp,
        }

    def __repr__(self) -> str:
        return f"{type(self).__name__}(code={self.code!r}, message={self.message!r})"


class ValidationError(AppError):
    """Rejected input; ``field`` names the offending field for the UI."""

    def __init__(self, field: str, message: str):
        super().__init__(ErrorCode.VALIDATION_ERROR, message, {"field": field})
        self.field = field


class StorageError(Exception):
    """
    Raw failure raised by a storage variant.

    ``code`` carries the Postgres / PostgREST error code when the store
    reports one (``23505``, ``PGRST116``, ...).
    """

    def __init__(self, code: Optional[str], message: str, details: Optional[Any] = None):
        super().__init__(message)
        self.code = code
        self.message = message
        self.details = details


# Postgres / PostgREST code -> (taxonomy code, message)
DATABASE_ERROR_CODES: Dict[str, tuple] = {
    "23505": (ErrorCode.DUPLICATE_ENTRY, "This record already exists"),
    "23503": (ErrorCode.FOREIGN_KEY_VIOLATION, "Referenced record does not exist"),
    "42P01": (ErrorCode.TABLE_NOT_FOUND, "Database table not found"),
    "PGRST116": (ErrorCode.NOT_FOUND, "Record not found"),
}

NETWORK_ERROR_MESSAGE = "Unable to connect to the server. Please check your internet connection."
RATE_LIMITED_MESSAGE = "Too many similar errors. Please wait before retrying."


class ErrorTracker(ABC):
    """Destination for classified errors forwarded in production."""

    @abstractmethod
    def send_to_tracking(self, error: AppError, context: Optional[str] = None) -> None:
        """Forward one classified error."""


class SentryErrorTracker(ErrorTracker):
    """Forward classified errors to Sentry as tagged messages."""

    def __init__(self, dsn: str, environment: str = "production", release: Optional[str] = None):
        sentry_sdk.init(
            dsn=dsn,
            environment=environment,
            release=release,
            send_default_pii=False,
        )
        logger.info(f"Sentry error tracking enabled for environment '{environment}'")

    def send_to_tracking(self, error: AppError, context: Optional[str] = None) -> None:
        sentry_sdk.capture_message(
            error.message,
            level="error",
            tags={"code": error.code, "context": context or "Unknown"},
            extras={"details": error.details, "timestamp": error.timestamp},
        )


class ErrorClassifier:
    """
    Classify failures into ``AppError`` and damp repeated error storms.

    The de-duplication counters are owned by the instance, so tests and
    independent contexts can each hold their own classifier. Counter updates
    are guarded by a lock and are safe to share between threads.

    Features:
    - Database code mapping (duplicate, foreign key, missing table, not found)
    - HTTP status preservation (``API_ERROR_<status>``)
    - Network failure detection (request sent, no response)
    - Rate limiting: more than ``threshold`` identical messages, each within
      ``window_seconds`` of the previous, degrade to ``RATE_LIMITED_ERROR``
    - Severity-based logging with production forwarding to an ``ErrorTracker``
    """

    def __init__(
        self,
        production: bool = False,
        tracker: Optional[ErrorTracker] = None,
        window_seconds: float = 1.0,
        threshold: int = 5,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Initialize error classifier.

        Args:
            production: Forward logged errors to ``tracker`` when True
            tracker: Error tracking collaborator
            window_seconds: Maximum gap between repeats counted as one storm
            threshold: Repeats tolerated before degrading to RATE_LIMITED_ERROR
            clock: Monotonic clock in seconds, injectable for tests
        """
        self.production = production
        self.tracker = tracker
        self.window_seconds = window_seconds
        self.threshold = threshold
        self._clock = clock
        self._error_counts: Dict[str, int] = {}
        self._last_errors: Dict[str, float] = {}
        self._lock = threading.Lock()

    @staticmethod
    def create_error(code: Union[ErrorCode, str], message: str, details: Optional[Any] = None) -> AppError:
        return AppError(code, message, details)

    # ------------------------------------------------------------------
    # Classification
    # ------------------------------------------------------------------

    def handle_database_error(self, error: Any) -> AppError:
        """
        Map a raw storage failure to an ``AppError`` by its database code.

        Args:
            error: Exception raised by the storage collaborator

        Returns:
            AppError: Classified error (``DATABASE_ERROR`` when the code is unknown)
        """
        db_code = getattr(error, "code", None)
        if db_code:
            mapped = DATABASE_ERROR_CODES.get(str(db_code))
            if mapped:
                code, message = mapped
                return self.create_error(code, message, {"db_code": db_code})
            return self.create_error(
                ErrorCode.DATABASE_ERROR,
                _message_of(error) or "Database operation failed",
                {"db_code": db_code},
            )
        return self.create_error(ErrorCode.DATABASE_ERROR, "Database operation failed")

    def handle_api_error(self, error: Any) -> AppError:
        """
        Classify any failure, degrading error storms to ``RATE_LIMITED_ERROR``.

        Args:
            error: Any exception (or error-like object) from a data-access call

        Returns:
            AppError: Classified error
        """
        error_key = _message_of(error) or "unknown"
        if self._register_occurrence(error_key):
            return self.create_error(
                ErrorCode.RATE_LIMITED_ERROR,
                RATE_LIMITED_MESSAGE,
                {"original_error": error_key, "original_type": type(error).__name__},
            )
        return self._classify(error)

    def resolve_code(self, error: Any) -> str:
        """Code ``error`` would classify to, leaving the storm counters untouched."""
        return self._classify(error).code

    def _classify(self, error: Any) -> AppError:
        if isinstance(error, AppError):
            return error

        if isinstance(error, StorageError):
            return self.handle_database_error(error)

        response = getattr(error, "response", None)
        if response is not None:
            status = getattr(response, "status_code", None) or getattr(response, "status", None)
            data = _response_data(response)
            message = (data.get("message") if isinstance(data, dict) else None) or "An API error occurred"
            return self.create_error(api_error_code(int(status or 0)), message, data)

        if isinstance(error, (asyncio.TimeoutError, TimeoutError, requests.Timeout)):
            return self.create_error(ErrorCode.NETWORK_ERROR, NETWORK_ERROR_MESSAGE, {"reason": "timeout"})

        if isinstance(error, requests.RequestException) or getattr(error, "request", None) is not None:
            return self.create_error(ErrorCode.NETWORK_ERROR, NETWORK_ERROR_MESSAGE, {"reason": _message_of(error)})

        return self.create_error(
            ErrorCode.UNKNOWN_ERROR,
            _message_of(error) or "An unexpected error occurred",
            {"type": type(error).__name__},
        )

    def _register_occurrence(self, error_key: str) -> bool:
        """Record one occurrence of ``error_key``; True once it is storming."""
        now = self._clock()
        with self._lock:
            last = self._last_errors.get(error_key)
            if last is not None and now - last < self.window_seconds:
                count = self._error_counts.get(error_key, 0) + 1
            else:
                count = 1
            self._error_counts[error_key] = count
            self._last_errors[error_key] = now
        return count > self.threshold

    def clear_error_counts(self) -> None:
        """Forget all storm counters."""
        with self._lock:
            self._error_counts.clear()
            self._last_errors.clear()

    # ------------------------------------------------------------------
    # Reporting
    # ------------------------------------------------------------------

    @staticmethod
    def get_log_level(code: str) -> str:
        """Severity for a code: ``error``, ``warn``, ``info`` or ``log``."""
        if "CRITICAL" in code or "SECURITY" in code:
            return "error"
        if "VALIDATION" in code or "NOT_FOUND" in code:
            return "warn"
        if "RATE_LIMITED" in code:
            return "info"
        return "error"

    def log_error(self, error: AppError, context: Optional[str] = None) -> None:
        """
        Write a structured log record for ``error`` and forward it in production.

        Never raises: a failing tracker is logged and ignored.
        """
        context = context or "Unknown"
        try:
            level = _LOG_LEVELS[self.get_log_level(error.code)]
            logger.log(
                level,
                f"[{context}] {error.code}: {error.message}",
                extra={
                    "error_code": error.code,
                    "error_context": context,
                    "error_details": error.details,
                    "error_timestamp": error.timestamp,
                },
            )
        except Exception as e:
            logger.warning(f"Failed to log classified error from {context}: {e}")

        if self.production and self.tracker is not None:
            try:
                self.tracker.send_to_tracking(error, context)
            except Exception as e:
                logger.warning(f"Error tracker rejected {error.code} from {context}: {e}")

    def report(self, error: Any, context: str) -> AppError:
        """Classify ``error``, log it under ``context`` and return the classification."""
        app_error = self.handle_api_error(error)
        self.log_error(app_error, context)
        return app_error


_LOG_LEVELS = {
    "error": logging.ERROR,
    "warn": logging.WARNING,
    "info": logging.INFO,
    "log": logging.DEBUG,
}


def _message_of(error: Any) -> str:
    message = getattr(error, "message", None)
    if isinstance(message, str) and message:
        return message
    try:
        return str(error)
    except Exception:
        return ""


def _response_data(response: Any) -> Any:
    try:
        return response.json()
    except Exception:
        return {"text": getattr(response, "text", "")}
