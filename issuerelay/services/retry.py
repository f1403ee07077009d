"""Bounded exponential-backoff retry around single remote calls"""

import logging
import time
from typing import Any, Callable, Optional, TypeVar

import httpx

logger = logging.getLogger(__name__)

T = TypeVar("T")

RETRYABLE = "retryable"
TERMINAL = "terminal"

# Observer signature: (error, attempt_number, retries_left)
RetryObserver = Callable[[Exception, int, int], None]


def _status_code(exc: Exception) -> Optional[int]:
    """HTTP status carried by an error, whichever client raised it."""
    for attr in ("status_code", "response_code", "status"):
        rc = getattr(exc, attr, None)
        if isinstance(rc, int):
            return rc
    response = getattr(exc, "response", None)
    rc = getattr(response, "status_code", None)
    return rc if isinstance(rc, int) else None


def classify_error(exc: Exception) -> str:
    """Decide whether a failed remote call is worth another attempt."""
    rc = _status_code(exc)
    if rc is not None:
        if rc in (401, 403):
            return TERMINAL
        if rc in (408, 429):
            return RETRYABLE
        if 400 <= rc < 500:
            return TERMINAL
        if rc >= 500:
            return RETRYABLE
        return TERMINAL
    if isinstance(exc, (httpx.TransportError, ConnectionError, TimeoutError)):
        return RETRYABLE
    # If we can't classify, don't retry to avoid hiding real issues.
    return TERMINAL


def log_retry(error: Exception, attempt: int, retries_left: int) -> None:
    logger.warning(f"Attempt {attempt} failed ({error}). {retries_left} retries left.")


class RetryExecutor:
    """Run a callable, retrying transient failures with doubling delays.

    The last error is re-raised unchanged once attempts are exhausted, and
    immediately for terminal errors (auth failures, other 4xx).
    """

    def __init__(
        self,
        max_attempts: int = 3,
        initial_delay_ms: int = 1000,
        *,
        factor: float = 2,
        on_retry: Optional[RetryObserver] = log_retry,
        sleep: Callable[[float], Any] = time.sleep,
    ):
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.max_attempts = max_attempts
        self.initial_delay_ms = initial_delay_ms
        self.factor = factor
        self.on_retry = on_retry
        self._sleep = sleep

    def delay_for(self, attempt: int) -> float:
        """Seconds to wait after failed attempt number ``attempt`` (1-based)."""
        return (self.initial_delay_ms / 1000.0) * (self.factor ** (attempt - 1))

    def execute(self, operation: Callable[[], T]) -> T:
        attempt = 1
        while True:
            try:
                return operation()
            except Exception as e:
                if classify_error(e) == TERMINAL:
                    logger.error(f"Non-retryable error encountered: {e}")
                    raise
                retries_left = self.max_attempts - attempt
                if retries_left <= 0:
                    raise
                if self.on_retry is not None:
                    self.on_retry(e, attempt, retries_left)
                self._sleep(self.delay_for(attempt))
                attempt += 1
