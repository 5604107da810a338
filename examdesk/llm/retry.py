"""Retry policy for outbound calls (oracle, metered APIs)."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Callable, FrozenSet, Optional, TypeVar

import requests

logger = logging.getLogger(__name__)

T = TypeVar("T")


class RetryableStatusError(Exception):
    """Raised by a call wrapper when the upstream answered with a retryable status."""

    def __init__(self, status_code: int, body: str = ""):
        super().__init__(f"HTTP {status_code}: {body[:200]}")
        self.status_code = status_code
        self.body = body


class RetriesExhaustedError(Exception):
    def __init__(self, attempts: int, last_error: BaseException):
        super().__init__(f"gave up after {attempts} attempts: {last_error}")
        self.attempts = attempts
        self.last_error = last_error


@dataclass(frozen=True)
class RetryPolicy:
    """Linear backoff: attempt N waits backoff_seconds * N before retrying."""

    max_attempts: int = 3
    backoff_seconds: float = 2.0
    retryable_statuses: FrozenSet[int] = frozenset({429, 503})
    sleep: Callable[[float], None] = field(default=time.sleep, compare=False, repr=False)

    def delay_for(self, attempt: int) -> float:
        return self.backoff_seconds * attempt

    def is_retryable_status(self, status_code: int) -> bool:
        return status_code in self.retryable_statuses

    def is_retryable(self, exc: BaseException) -> bool:
        if isinstance(exc, RetryableStatusError):
            return self.is_retryable_status(exc.status_code)
        return isinstance(exc, (requests.ConnectionError, requests.Timeout))

    def run(self, func: Callable[[], T], *, label: str = "call") -> T:
        """Run func, retrying retryable failures; anything else propagates as-is."""
        attempts = max(1, int(self.max_attempts))
        last: Optional[BaseException] = None
        for attempt in range(1, attempts + 1):
            try:
                return func()
            except Exception as e:
                if not self.is_retryable(e):
                    raise
                last = e
                if attempt == attempts:
                    break
                delay = self.delay_for(attempt)
                logger.warning(f"{label} attempt {attempt} failed: {e}. Retrying in {delay:.1f}s")
                self.sleep(delay)
        logger.error(f"{label} failed after {attempts} attempts: {last}")
        raise RetriesExhaustedError(attempts, last)  # type: ignore[arg-type]
