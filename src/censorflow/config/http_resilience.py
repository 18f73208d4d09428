"""HTTP transport settings for moderation providers.

A provider talks to its vendor in two ways: it submits content (``POST``) and it polls
task status (``GET``). Polls are idempotent and are retried inside the transport;
submissions are retried one level up by ``ResilientProvider`` so every attempt shows up
in the API log with its retry count.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Final

import httpx

from censorflow.domain.errors import RETRYABLE_STATUS_CODES

if TYPE_CHECKING:
    from collections.abc import Mapping

SUBMIT_METHOD: Final[str] = "POST"
POLL_METHOD: Final[str] = "GET"


@dataclass(slots=True, frozen=True)
class RetryPolicy:
    """Transport retries for task polls.

    The status codes are the ones ``ProviderError.retryable`` accepts, so a status the
    transport gives up on surfaces with the same classification.
    """

    total: int = 3
    backoff_factor: float = 0.5
    max_backoff_wait: float = 30.0
    backoff_jitter: float = 1.0
    respect_retry_after_header: bool = True
    methods: frozenset[str] = frozenset({POLL_METHOD})
    status_codes: frozenset[int] = RETRYABLE_STATUS_CODES
    retry_on_exceptions: tuple[type[httpx.HTTPError], ...] = (
        httpx.TimeoutException,
        httpx.NetworkError,
        httpx.RemoteProtocolError,
    )

    def __post_init__(self) -> None:
        if SUBMIT_METHOD in self.methods:
            raise ValueError("Submissions are retried by the provider wrapper, not the transport")


@dataclass(slots=True, frozen=True)
class RateLimit:
    max_calls: int
    per_seconds: float


@dataclass(slots=True, frozen=True)
class ResilienceConfig:
    """How one provider's HTTP client reaches its vendor."""

    name: str
    base_url: str | None = None
    submit_timeout_seconds: float = 10.0
    poll_timeout_seconds: float = 5.0
    retry: RetryPolicy = field(default_factory=RetryPolicy)
    ratelimit: RateLimit | None = None
    default_headers: Mapping[str, str] | None = None

    def timeout_for(self, method: str) -> float:
        if method.upper() == SUBMIT_METHOD:
            return self.submit_timeout_seconds
        return self.poll_timeout_seconds
