"""Tests for the rate-limited batch scheduler."""

from __future__ import annotations

import asyncio

import pytest

from cf2mr.batching import chunk_requests, cooldown_count, split_chunks
from tests.conftest import SleepRecorder


async def _double(value: int) -> int:
    await asyncio.sleep(0)
    return value * 2


def test_split_chunks_keeps_order_and_remainder():
    assert split_chunks([1, 2, 3, 4, 5], 2) == [[1, 2], [3, 4], [5]]
    assert split_chunks([], 3) == []


def test_split_chunks_rejects_zero_size():
    with pytest.raises(ValueError):
        split_chunks([1], 0)


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "total,chunk_size,expected_waits",
    [(0, 3, 0), (1, 3, 0), (3, 3, 0), (4, 3, 1), (7, 3, 2), (10, 1, 9)],
)
async def test_cooldown_between_chunks_only(total, chunk_size, expected_waits):
    sleeper = SleepRecorder()
    items = list(range(total))

    results = await chunk_requests(items, _double, chunk_size, cooldown=60, sleep=sleeper)

    assert results == [item * 2 for item in items]
    assert sleeper.calls == [60] * expected_waits
    assert cooldown_count(total, chunk_size) == expected_waits


@pytest.mark.asyncio
async def test_items_run_one_at_a_time():
    running = 0
    peak = 0

    async def action(value: int) -> int:
        nonlocal running, peak
        running += 1
        peak = max(peak, running)
        await asyncio.sleep(0)
        running -= 1
        return value

    results = await chunk_requests(list(range(6)), action, 3, cooldown=0, sleep=SleepRecorder())

    assert results == list(range(6))
    assert peak == 1


@pytest.mark.asyncio
async def test_failure_aborts_remaining_items():
    seen = []
    sleeper = SleepRecorder()

    async def action(value: int) -> int:
        seen.append(value)
        if value == 3:
            raise RuntimeError("boom")
        return value

    with pytest.raises(RuntimeError, match="boom"):
        await chunk_requests(list(range(6)), action, 2, cooldown=60, sleep=sleeper)

    assert seen == [0, 1, 2, 3]
    assert sleeper.calls == [60]


@pytest.mark.asyncio
async def test_wrapped_action_keeps_every_result():
    sleeper = SleepRecorder()

    async def risky(value: int) -> int:
        if value == 3:
            raise RuntimeError("boom")
        return value

    async def wrapped(value: int):
        try:
            return await risky(value)
        except RuntimeError as exc:
            return str(exc)

    results = await chunk_requests(list(range(6)), wrapped, 2, cooldown=60, sleep=sleeper)

    assert results == [0, 1, 2, "boom", 4, 5]
    assert sleeper.calls == [60, 60]
