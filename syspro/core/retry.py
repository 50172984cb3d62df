"""
core/retry.py
-------------

Retry policy for network requests.

:class:`RetryPolicy` is a pure decision object: given the exception
raised by an attempt and the number of retries already performed it
says whether to try again and how long to wait first.  It never sleeps
itself; the request executor owns the loop.

Each attempt of the loop ends in exactly one of :class:`AttemptSucceeded`
or :class:`AttemptFailed`.
"""

from __future__ import annotations

from typing import NamedTuple, Union

import httpx

from syspro.core.config import Settings
from syspro.errors import NetworkFailureKind, classify_network_error

# HTTP status codes worth retrying even though the server answered.
RETRY_STATUS = {409}


class AttemptSucceeded(NamedTuple):
    response: httpx.Response
    num_retries: int


class AttemptFailed(NamedTuple):
    error: Exception
    num_retries: int


AttemptResult = Union[AttemptSucceeded, AttemptFailed]


class RetryPolicy:
    """Decide whether a failed attempt is retried and for how long to back off.

    Delays grow exponentially from ``initial_delay`` and are capped at
    ``max_delay``.  No jitter is applied so the schedule is monotonic.
    """

    def __init__(self, max_retries: int = 0, initial_delay: float = 0.5, max_delay: float = 2.0) -> None:
        self.max_retries = max_retries
        self.initial_delay = initial_delay
        self.max_delay = max(max_delay, initial_delay)

    @classmethod
    def from_settings(cls, settings: Settings) -> "RetryPolicy":
        return cls(
            max_retries=settings.max_network_retries,
            initial_delay=settings.initial_network_retry_delay,
            max_delay=settings.max_network_retry_delay,
        )

    def should_retry(self, error: Exception, num_retries: int) -> bool:
        if num_retries >= self.max_retries:
            return False

        if isinstance(error, httpx.RequestError):
            kind = classify_network_error(error)
            # Timeouts (on open or read) and refused or reset connections may be
            # intermittent. TLS handshake failures are not.
            return kind in (NetworkFailureKind.TIMEOUT, NetworkFailureKind.CONNECTION)

        if isinstance(error, httpx.HTTPStatusError):
            return error.response.status_code in RETRY_STATUS

        return False

    def sleep_time(self, num_retries: int) -> float:
        """Backoff before retry number ``num_retries`` (1-based)."""
        exponent = max(num_retries - 1, 0)
        # Cap the exponent; the delay saturates long before this.
        delay = self.initial_delay * (2 ** min(exponent, 32))
        return min(delay, self.max_delay)
