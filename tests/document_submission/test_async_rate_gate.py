"""Tests for AsyncRateGate under asyncio."""

import asyncio

import pytest

from CrptKit.DocumentSubmission.errors import ConfigurationError
from CrptKit.DocumentSubmission.ratelimit import AsyncRateGate, TimeUnit

WINDOW_MS = 200
WINDOW_S = WINDOW_MS / 1000


def test_construction_validates_limit():
    with pytest.raises(ConfigurationError):
        AsyncRateGate(TimeUnit.SECONDS, 0)


def test_k_plus_one_tasks():
    """K tasks are admitted at once; the next one after the window."""

    async def scenario():
        loop = asyncio.get_running_loop()
        gate = AsyncRateGate(TimeUnit.MILLISECONDS, 2, time_delay=WINDOW_MS)
        stamps = []

        async def _task():
            await gate.acquire()
            stamps.append(loop.time())

        await asyncio.gather(*(_task() for _ in range(3)))
        gate.close()
        return sorted(stamps)

    stamps = asyncio.run(scenario())
    assert stamps[1] - stamps[0] < WINDOW_S
    assert stamps[2] - stamps[0] >= WINDOW_S * 0.95


def test_cancelled_waiter_does_not_corrupt_count():
    async def scenario():
        gate = AsyncRateGate(TimeUnit.MILLISECONDS, 1, time_delay=WINDOW_MS)
        await gate.acquire()
        waiter = asyncio.create_task(gate.acquire())
        await asyncio.sleep(0.01)
        waiter.cancel()
        with pytest.raises(asyncio.CancelledError):
            await waiter
        assert gate.available_permits == 0
        await asyncio.sleep(WINDOW_S * 1.5)
        available = gate.available_permits
        gate.close()
        return available

    assert asyncio.run(scenario()) == 1


def test_permit_released_even_if_holder_cancelled():
    """Cancelling after acquisition still lets the timer return the permit."""

    async def scenario():
        gate = AsyncRateGate(TimeUnit.MILLISECONDS, 1, time_delay=50)

        async def _holder():
            await gate.acquire()
            await asyncio.sleep(10)

        task = asyncio.create_task(_holder())
        await asyncio.sleep(0.01)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task
        await asyncio.sleep(0.1)
        available = gate.available_permits
        gate.close()
        return available

    assert asyncio.run(scenario()) == 1


def test_close_returns_pending_permits():
    async def scenario():
        gate = AsyncRateGate(TimeUnit.HOURS, 2)
        await gate.acquire()
        await gate.acquire()
        assert gate.available_permits == 0
        gate.close()
        return gate.available_permits

    assert asyncio.run(scenario()) == 2


def test_acquire_after_close_raises():
    async def scenario():
        gate = AsyncRateGate(TimeUnit.SECONDS, 1)
        gate.close()
        await gate.acquire()

    with pytest.raises(ConfigurationError, match="closed"):
        asyncio.run(scenario())
