"""
Retry with exponential backoff for data-access operations.

Every storage call made by the booking lifecycle goes through
``RetryExecutor.with_retry``. Failures the ``ErrorClassifier`` places in the
non-retryable set (validation, auth, not-found, duplicates and 4xx other than
429) fail immediately; everything else is retried with jittered exponential
backoff until attempts run out.
"""

import asyncio
import logging
import random
from typing import Awaitable, Callable, Optional, TypeVar

from .errors import ErrorClassifier, ErrorCode, api_error_status

logger = logging.getLogger(__name__)

T = TypeVar("T")

NON_RETRYABLE_CODES = frozenset(
    {
        ErrorCode.VALIDATION_ERROR.value,
        ErrorCode.AUTHENTICATION_ERROR.value,
        ErrorCode.AUTHORIZATION_ERROR.value,
        ErrorCode.NOT_FOUND.value,
        ErrorCode.DUPLICATE_ENTRY.value,
    }
)

JITTER_RATIO = 0.1


class RetryExecutor:
    """
    Retry a fallible coroutine factory with jittered exponential backoff.

    Features:
    - ``max_retries`` is the total number of attempts
    - Delay before retry n is ``initial * multiplier**(n-1)`` plus up to 10% jitter
    - Optional per-attempt timeout; a timed out attempt counts as a network failure
    - Cancellation through task cancellation or a caller-owned ``asyncio.Event``
    - The last error is re-raised unchanged once attempts run out
    """

    def __init__(
        self,
        classifier: Optional[ErrorClassifier] = None,
        max_retries: int = 3,
        initial_delay_ms: float = 1000,
        backoff_multiplier: float = 2.0,
        attempt_timeout_ms: Optional[float] = 10000,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        rng: Optional[random.Random] = None,
    ):
        """
        Initialize retry executor.

        Args:
            classifier: Classifier consulted for retryability
            max_retries: Default total attempts
            initial_delay_ms: Default first backoff delay in milliseconds
            backoff_multiplier: Default factor applied to the delay after each attempt
            attempt_timeout_ms: Timeout for a single attempt, None to disable
            sleep: Coroutine used for backoff waits, injectable for tests
            rng: Random source for jitter
        """
        self.classifier = classifier or ErrorClassifier()
        self.max_retries = max_retries
        self.initial_delay_ms = initial_delay_ms
        self.backoff_multiplier = backoff_multiplier
        self.attempt_timeout_ms = attempt_timeout_ms
        self._sleep = sleep
        self._rng = rng or random.Random()

    def should_not_retry(self, error: BaseException) -> bool:
        """True when ``error`` belongs to the fail-fast set."""
        code = self.classifier.resolve_code(error)
        if code in NON_RETRYABLE_CODES:
            return True
        status = api_error_status(code)
        return status is not None and 400 <= status < 500 and status != 429

    async def with_retry(
        self,
        operation: Callable[[], Awaitable[T]],
        max_retries: Optional[int] = None,
        initial_delay_ms: Optional[float] = None,
        backoff_multiplier: Optional[float] = None,
        cancel_event: Optional[asyncio.Event] = None,
        operation_name: str = "operation",
    ) -> T:
        """
        Run ``operation`` until it succeeds, fails fast, or attempts run out.

        Args:
            operation: Zero-argument callable returning a fresh awaitable per attempt
            max_retries: Total attempts for this call
            initial_delay_ms: First backoff delay for this call
            backoff_multiplier: Backoff factor for this call
            cancel_event: When set, abandons the loop before the next attempt
            operation_name: Label used in log records

        Returns:
            The operation's result

        Raises:
            asyncio.CancelledError: If the caller cancelled the retry loop
            Exception: The last failure, unchanged
        """
        attempts = self.max_retries if max_retries is None else max_retries
        delay_ms = self.initial_delay_ms if initial_delay_ms is None else initial_delay_ms
        multiplier = self.backoff_multiplier if backoff_multiplier is None else backoff_multiplier

        if attempts < 1:
            raise ValueError("max_retries must be at least 1")

        last_error: Optional[Exception] = None

        for attempt in range(1, attempts + 1):
            if cancel_event is not None and cancel_event.is_set():
                raise asyncio.CancelledError(f"{operation_name} cancelled before attempt {attempt}")

            try:
                return await self._run_attempt(operation)
            except Exception as e:
                last_error = e

                if self.should_not_retry(e):
                    logger.debug(f"{operation_name} failed with non-retryable error: {e!r}")
                    raise

                if attempt >= attempts:
                    break

                jitter_ms = self._rng.random() * JITTER_RATIO * delay_ms
                wait_ms = delay_ms + jitter_ms
                logger.warning(
                    f"{operation_name} attempt {attempt}/{attempts} failed: {e!r}; "
                    f"retrying in {wait_ms:.0f}ms"
                )
                await self._wait(wait_ms / 1000.0, cancel_event, operation_name)
                delay_ms *= multiplier

        logger.error(f"{operation_name} failed after {attempts} attempts")
        raise last_error

    async def _run_attempt(self, operation: Callable[[], Awaitable[T]]) -> T:
        if self.attempt_timeout_ms is None:
            return await operation()
        return await asyncio.wait_for(operation(), timeout=self.attempt_timeout_ms / 1000.0)

    async def _wait(self, seconds: float, cancel_event: Optional[asyncio.Event], operation_name: str) -> None:
        if cancel_event is None:
            await self._sleep(seconds)
            return

        try:
            await asyncio.wait_for(cancel_event.wait(), timeout=seconds)
        except asyncio.TimeoutError:
            return
        raise asyncio.CancelledError(f"{operation_name} cancelled during backoff")


async def with_retry(
    operation: Callable[[], Awaitable[T]],
    max_retries: int = 3,
    initial_delay_ms: float = 1000,
    backoff_multiplier: float = 2.0,
    classifier: Optional[ErrorClassifier] = None,
) -> T:
    """Retry ``operation`` with a one-off executor and default settings."""
    executor = RetryExecutor(
        classifier=classifier,
        max_retries=max_retries,
        initial_delay_ms=initial_delay_ms,
        backoff_multiplier=backoff_multiplier,
    )
    return await executor.with_retry(operation)
