"""Tests for resilience/polling.py and resilience/retry.py."""
from __future__ import annotations

import time

import pytest

from binbuild.core.exceptions import (
    APIConnectionError,
    BadRequestError,
    ConflictError,
    PollTimeoutError,
)
from binbuild.resilience.polling import poll_until
from binbuild.resilience.retry import RetryPolicy, retry_on_conflict


# ---------------------------------------------------------------------------
# poll_until
# ---------------------------------------------------------------------------


async def test_poll_until_first_attempt_is_immediate() -> None:
    calls = 0

    async def condition() -> bool:
        nonlocal calls
        calls += 1
        return True

    start = time.monotonic()
    await poll_until(condition, interval=10.0, timeout=30.0)
    assert calls == 1
    assert time.monotonic() - start < 1.0


async def test_poll_until_retries_at_interval() -> None:
    calls = 0

    async def condition() -> bool:
        nonlocal calls
        calls += 1
        return calls >= 4

    start = time.monotonic()
    await poll_until(condition, interval=0.02, timeout=5.0)
    elapsed = time.monotonic() - start
    assert calls == 4
    # three sleeps between four attempts
    assert elapsed >= 0.06


async def test_poll_until_times_out_within_one_interval() -> None:
    async def never() -> bool:
        return False

    start = time.monotonic()
    with pytest.raises(PollTimeoutError):
        await poll_until(never, interval=0.05, timeout=0.2)
    elapsed = time.monotonic() - start
    assert 0.2 <= elapsed < 0.2 + 0.05 + 0.1


async def test_poll_until_propagates_condition_errors() -> None:
    calls = 0

    async def boom() -> bool:
        nonlocal calls
        calls += 1
        raise BadRequestError("bad")

    with pytest.raises(BadRequestError):
        await poll_until(boom, interval=0.01, timeout=1.0)
    assert calls == 1


# ---------------------------------------------------------------------------
# retry_on_conflict
# ---------------------------------------------------------------------------


async def test_retry_on_conflict_refreshes_then_succeeds() -> None:
    events: list[str] = []
    conflicts = [ConflictError("stale"), ConflictError("stale")]

    async def mutate() -> None:
        events.append("mutate")
        if conflicts:
            raise conflicts.pop(0)

    async def refresh() -> None:
        events.append("refresh")

    await retry_on_conflict(mutate, refresh, interval=0.01, timeout=1.0)
    assert events == ["mutate", "refresh", "mutate", "refresh", "mutate"]


async def test_retry_on_conflict_gives_up_at_deadline() -> None:
    attempts = 0

    async def mutate() -> None:
        nonlocal attempts
        attempts += 1
        raise ConflictError("stale")

    async def refresh() -> None:
        return None

    start = time.monotonic()
    with pytest.raises(PollTimeoutError):
        await retry_on_conflict(mutate, refresh, interval=0.02, timeout=0.1)
    assert time.monotonic() - start < 0.1 + 0.02 + 0.1
    assert attempts >= 2


async def test_retry_on_conflict_stops_on_other_errors() -> None:
    refreshed = False

    async def mutate() -> None:
        raise BadRequestError("invalid")

    async def refresh() -> None:
        nonlocal refreshed
        refreshed = True

    with pytest.raises(BadRequestError):
        await retry_on_conflict(mutate, refresh, interval=0.01, timeout=1.0)
    assert refreshed is False


async def test_retry_on_conflict_stops_when_refresh_fails() -> None:
    async def mutate() -> None:
        raise ConflictError("stale")

    async def refresh() -> None:
        raise APIConnectionError("down")

    with pytest.raises(APIConnectionError):
        await retry_on_conflict(mutate, refresh, interval=0.01, timeout=1.0)


# ---------------------------------------------------------------------------
# RetryPolicy
# ---------------------------------------------------------------------------


async def test_retry_policy_retries_connection_errors() -> None:
    calls = 0

    async def flaky() -> str:
        nonlocal calls
        calls += 1
        if calls < 3:
            raise APIConnectionError("reset")
        return "ok"

    policy = RetryPolicy(max_retries=3, backoff_base=0.0, jitter=False)
    assert await policy.execute(flaky) == "ok"
    assert calls == 3


async def test_retry_policy_does_not_retry_api_errors() -> None:
    calls = 0

    async def rejected() -> None:
        nonlocal calls
        calls += 1
        raise BadRequestError("nope")

    policy = RetryPolicy(max_retries=3, backoff_base=0.0)
    with pytest.raises(BadRequestError):
        await policy.execute(rejected)
    assert calls == 1


async def test_retry_policy_exhausts() -> None:
    calls = 0

    async def down() -> None:
        nonlocal calls
        calls += 1
        raise APIConnectionError("down")

    policy = RetryPolicy(max_retries=2, backoff_base=0.0, jitter=False)
    with pytest.raises(APIConnectionError):
        await policy.execute(down)
    assert calls == 3


def test_retry_policy_delay_is_capped() -> None:
    policy = RetryPolicy(backoff_base=1.0, backoff_max=4.0, jitter=False)
    assert policy._compute_delay(0) == 1.0
    assert policy._compute_delay(1) == 2.0
    assert policy._compute_delay(5) == 4.0
