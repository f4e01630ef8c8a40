"""
Concurrency Limiter Tests

Tests for the mutable-capacity admission gate.
"""

import asyncio

import pytest

from deep_research.orchestration.limiter import ConcurrencyLimiter


def test_rejects_zero_capacity():
    with pytest.raises(ValueError):
        ConcurrencyLimiter(0)


def test_bounds_concurrent_tasks():
    """No more than `capacity` tasks run at once."""

    async def run():
        limiter = ConcurrencyLimiter(2)
        running = 0
        peak = 0

        async def work(i):
            nonlocal running, peak
            running += 1
            peak = max(peak, running)
            await asyncio.sleep(0.01)
            running -= 1
            return i

        results = await asyncio.gather(*(limiter.schedule(work, i) for i in range(6)))
        return results, peak, limiter

    results, peak, limiter = asyncio.run(run())
    assert results == list(range(6))
    assert peak == 2
    assert limiter.active_count == 0
    assert limiter.pending_count == 0


def test_releases_slot_on_failure():
    async def run():
        limiter = ConcurrencyLimiter(1)

        async def fail():
            raise RuntimeError("boom")

        async def ok():
            return "ok"

        with pytest.raises(RuntimeError):
            await limiter.schedule(fail)
        return await limiter.schedule(ok), limiter.active_count

    assert asyncio.run(run()) == ("ok", 0)


def test_growing_capacity_admits_waiters():
    async def run():
        limiter = ConcurrencyLimiter(1)
        gate = asyncio.Event()
        started = []

        async def work(i):
            started.append(i)
            await gate.wait()

        tasks = [asyncio.create_task(limiter.schedule(work, i)) for i in range(3)]
        await asyncio.sleep(0)
        assert started == [0]
        assert limiter.pending_count == 2

        limiter.capacity = 2
        await asyncio.sleep(0)
        assert started == [0, 1]

        gate.set()
        await asyncio.gather(*tasks)
        return started

    assert asyncio.run(run()) == [0, 1, 2]


def test_expanded_restores_capacity_on_error():
    limiter = ConcurrencyLimiter(2)

    with pytest.raises(RuntimeError):
        with limiter.expanded():
            assert limiter.capacity == 3
            raise RuntimeError("recursive call failed")

    assert limiter.capacity == 2


def test_nested_holders_do_not_deadlock():
    """A slot holder can wait on children scheduled through the same limiter."""

    async def run():
        limiter = ConcurrencyLimiter(1)

        async def leaf(i):
            await asyncio.sleep(0)
            return i

        async def parent():
            with limiter.expanded():
                return await asyncio.gather(*(limiter.schedule(leaf, i) for i in range(3)))

        result = await asyncio.wait_for(limiter.schedule(parent), timeout=5)
        return result, limiter.capacity, limiter.active_count

    assert asyncio.run(run()) == ([0, 1, 2], 1, 0)


def test_cancelled_waiter_does_not_leak_slot():
    async def run():
        limiter = ConcurrencyLimiter(1)
        gate = asyncio.Event()

        async def hold():
            await gate.wait()

        holder = asyncio.create_task(limiter.schedule(hold))
        await asyncio.sleep(0)
        waiter = asyncio.create_task(limiter.schedule(hold))
        await asyncio.sleep(0)

        waiter.cancel()
        with pytest.raises(asyncio.CancelledError):
            await waiter

        gate.set()
        await holder
        return limiter.active_count, limiter.pending_count

    assert asyncio.run(run()) == (0, 0)
