"""Retry policy and linear backoff schedule for the transport client.

The schedule is a plain iterator of delays so it can be unit tested
without timers; the client owns the sleeping.
"""

from __future__ import annotations

from collections.abc import Callable, Iterator
from dataclasses import dataclass, field

from educore.core.config import Settings
from educore.infrastructure.exceptions import (
    NetworkError,
    ServerError,
    TransportError,
)


def default_should_retry(error: TransportError) -> bool:
    """Retry only when no response arrived or the server answered 5xx."""
    return isinstance(error, NetworkError | ServerError)


@dataclass(frozen=True)
class RetryPolicy:
    """How many attempts a request gets and how long to wait between them.

    Attributes:
        max_attempts: Total attempts including the first (>= 1).
        base_delay: Seconds; the wait after attempt n is base_delay * n.
        should_retry: Predicate deciding whether a failure is retry-eligible.
    """

    max_attempts: int = 3
    base_delay: float = 1.0
    should_retry: Callable[[TransportError], bool] = field(
        default=default_should_retry, compare=False
    )

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError(f"max_attempts must be >= 1, got: {self.max_attempts}")
        if self.base_delay < 0:
            raise ValueError("base_delay must not be negative")

    @classmethod
    def from_settings(cls, settings: Settings) -> RetryPolicy:
        """Build the default policy from client settings."""
        return cls(
            max_attempts=settings.api_retry_attempts,
            base_delay=settings.api_retry_delay_seconds,
        )

    def delays(self) -> Iterator[float]:
        """Yield the wait before each retry: base_delay * 1, * 2, ... (max_attempts - 1 values)."""
        for attempt in range(1, self.max_attempts):
            yield self.base_delay * attempt


NO_RETRY = RetryPolicy(max_attempts=1, base_delay=0.0)
