"""Retry policy for requests to the chunk storage service.

Chunk appends are not idempotent: a request that timed out may still have
been stored, and replaying it would duplicate a slice of the document.  The
policy is therefore off unless ``retry_max_attempts`` is raised above 1,
which is only safe against a sink that de-duplicates on its own.

:class:`RetryPolicy` answers two questions for the transport loop: may the
failed attempt be repeated, and how long to wait first.
"""

from __future__ import annotations

import random
from dataclasses import dataclass

import httpx

from imagepdf.config import ImagePdfConfig

RETRYABLE_STATUSES: frozenset[int] = frozenset({429, 500, 502, 503, 504})

RETRYABLE_EXCEPTIONS: tuple[type[Exception], ...] = (
    httpx.TimeoutException,
    httpx.NetworkError,
)


@dataclass(frozen=True)
class RetryPolicy:
    """Attempt budget and backoff curve.

    Attributes
    ----------
    max_attempts:
        Total attempts including the first one.
    base_delay:
        Delay before the second attempt, doubled on every further one.
    max_delay:
        Ceiling for the computed delay.
    jitter:
        Scale each delay to a random 50-100 % of its value.
    """

    max_attempts: int = 1
    base_delay: float = 1.0
    max_delay: float = 30.0
    jitter: bool = True

    @classmethod
    def from_config(cls, config: ImagePdfConfig) -> RetryPolicy:
        return cls(
            max_attempts=config.retry_max_attempts,
            base_delay=config.retry_base_delay,
            max_delay=config.retry_max_delay,
            jitter=config.retry_jitter,
        )

    @property
    def enabled(self) -> bool:
        return self.max_attempts > 1

    def has_attempts_left(self, attempt: int) -> bool:
        """Whether another attempt may follow the 0-indexed *attempt*."""
        return attempt + 1 < self.max_attempts

    def retryable_status(self, status_code: int, attempt: int) -> bool:
        return status_code in RETRYABLE_STATUSES and self.has_attempts_left(attempt)

    def retryable_exception(self, exc: Exception, attempt: int) -> bool:
        return isinstance(exc, RETRYABLE_EXCEPTIONS) and self.has_attempts_left(attempt)

    def delay(self, attempt: int, retry_after: float | None = None) -> float:
        """Seconds to sleep after the failed 0-indexed *attempt*.

        A server-provided ``Retry-After`` replaces the exponential curve but
        is still subject to jitter.
        """
        if retry_after is not None:
            seconds = max(0.0, retry_after)
        else:
            seconds = min(self.base_delay * (2 ** attempt), self.max_delay)
        if self.jitter:
            seconds *= 0.5 + random.random() * 0.5
        return seconds
