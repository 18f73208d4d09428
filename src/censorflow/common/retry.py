"""Exponential backoff for provider calls."""

from __future__ import annotations

import asyncio
import random
from dataclasses import dataclass
from logging import getLogger
from typing import TYPE_CHECKING

from censorflow.domain.errors import is_retryable

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

log = getLogger(__name__)


@dataclass(slots=True, frozen=True)
class RetryConfig:
    max_retries: int = 3
    initial_delay: float = 1.0
    max_delay: float = 30.0
    multiplier: float = 2.0
    jitter: float = 0.1
    retry_if: Callable[[BaseException], bool] = is_retryable
    on_retry: Callable[[int, BaseException, float], None] | None = None


class Retryer:
    """Retries an awaitable factory while ``retry_if`` accepts the raised error."""

    def __init__(
        self,
        config: RetryConfig | None = None,
        *,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self.config = config or RetryConfig()
        self._sleep = sleep

    def delay_for(self, attempt: int) -> float:
        delay = self.config.initial_delay * (self.config.multiplier**attempt)
        if self.config.jitter > 0:
            spread = delay * self.config.jitter
            delay += random.uniform(-spread, spread)  # noqa: S311
        return min(delay, self.config.max_delay)

    async def call[T](self, func: Callable[[], Awaitable[T]]) -> T:
        attempt = 0
        while True:
            try:
                value = await func()
            except Exception as exc:
                if attempt >= self.config.max_retries or not self.config.retry_if(exc):
                    raise
                delay = self.delay_for(attempt)
                attempt += 1
                if self.config.on_retry is not None:
                    self.config.on_retry(attempt, exc, delay)
                log.debug("Retrying after %.2fs (attempt %s): %s", delay, attempt, exc)
                await self._sleep(delay)
                continue
            return value
