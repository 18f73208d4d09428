from __future__ import annotations

import asyncio

import pytest

from censorflow.common.retry import RetryConfig, Retryer
from censorflow.domain.errors import NetworkError, ValidationError


def _retryer(sleeps: list[float], **overrides: object) -> Retryer:
    async def fake_sleep(delay: float) -> None:
        sleeps.append(delay)

    config = RetryConfig(**{"jitter": 0.0, **overrides})  # type: ignore[arg-type]
    return Retryer(config, sleep=fake_sleep)


def test_delay_grows_and_is_capped() -> None:
    retryer = _retryer([], initial_delay=1.0, multiplier=3.0, max_delay=10.0)

    assert [retryer.delay_for(n) for n in range(4)] == [1.0, 3.0, 9.0, 10.0]


def test_jitter_stays_within_spread() -> None:
    retryer = Retryer(RetryConfig(initial_delay=2.0, jitter=0.5))

    delays = {retryer.delay_for(0) for _ in range(50)}

    assert all(1.0 <= delay <= 3.0 for delay in delays)


def test_call_retries_until_success() -> None:
    sleeps: list[float] = []
    seen: list[tuple[int, float]] = []
    attempts = 0

    async def flaky() -> str:
        nonlocal attempts
        attempts += 1
        if attempts < 3:
            raise NetworkError("connection reset")
        return "ok"

    retryer = _retryer(sleeps, on_retry=lambda n, _exc, delay: seen.append((n, delay)))

    assert asyncio.run(retryer.call(flaky)) == "ok"
    assert attempts == 3
    assert sleeps == [1.0, 2.0]
    assert seen == [(1, 1.0), (2, 2.0)]


def test_call_gives_up_after_max_retries() -> None:
    sleeps: list[float] = []

    async def always_down() -> None:
        raise NetworkError("down")

    with pytest.raises(NetworkError):
        asyncio.run(_retryer(sleeps, max_retries=2).call(always_down))

    assert len(sleeps) == 2


def test_non_retryable_errors_are_not_retried() -> None:
    sleeps: list[float] = []

    async def invalid() -> None:
        raise ValidationError("text", "empty")

    with pytest.raises(ValidationError):
        asyncio.run(_retryer(sleeps).call(invalid))

    assert sleeps == []


def test_custom_retry_predicate() -> None:
    sleeps: list[float] = []
    attempts = 0

    async def fails_once() -> int:
        nonlocal attempts
        attempts += 1
        if attempts == 1:
            raise ValueError("transient")
        return attempts

    retryer = _retryer(sleeps, retry_if=lambda exc: isinstance(exc, ValueError))

    assert asyncio.run(retryer.call(fails_once)) == 2
