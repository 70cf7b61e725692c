"""Tests for the weighted concurrency limiter."""

import asyncio

import pytest

from indexer_service.control import ConcurrencyLimiter


class TestAcquireRelease:
    @pytest.mark.asyncio
    async def test_acquire_within_capacity_is_immediate(self) -> None:
        limiter = ConcurrencyLimiter(5)

        await limiter.acquire(3)
        await limiter.acquire(2)

        assert limiter.in_use == 5
        assert limiter.available == 0

    @pytest.mark.asyncio
    async def test_acquire_blocks_until_release(self) -> None:
        limiter = ConcurrencyLimiter(5)
        await limiter.acquire(4)

        waiter = asyncio.create_task(limiter.acquire(2))
        await asyncio.sleep(0)
        assert not waiter.done()

        limiter.release(1)
        await asyncio.wait_for(waiter, timeout=1)
        assert limiter.in_use == 5

    @pytest.mark.asyncio
    async def test_waiters_served_in_order(self) -> None:
        limiter = ConcurrencyLimiter(5)
        await limiter.acquire(5)
        granted = []

        async def take(n, tag):
            await limiter.acquire(n)
            granted.append(tag)

        big = asyncio.create_task(take(5, "big"))
        await asyncio.sleep(0)
        small = asyncio.create_task(take(1, "small"))
        await asyncio.sleep(0)

        # a single free slot must not let the later small request jump ahead
        limiter.release(1)
        await asyncio.sleep(0)
        assert granted == []

        limiter.release(4)
        await asyncio.wait_for(big, timeout=1)
        assert granted == ["big"]

        limiter.release(5)
        await asyncio.wait_for(small, timeout=1)
        assert granted == ["big", "small"]

    @pytest.mark.asyncio
    async def test_more_than_capacity_rejected(self) -> None:
        limiter = ConcurrencyLimiter(4)

        with pytest.raises(ValueError):
            await limiter.acquire(5)

    @pytest.mark.asyncio
    async def test_release_more_than_held_rejected(self) -> None:
        limiter = ConcurrencyLimiter(4)
        await limiter.acquire(1)

        with pytest.raises(ValueError):
            limiter.release(2)

    def test_capacity_must_be_positive(self) -> None:
        with pytest.raises(ValueError):
            ConcurrencyLimiter(0)

    @pytest.mark.asyncio
    async def test_cancelled_waiter_does_not_leak_slots(self) -> None:
        limiter = ConcurrencyLimiter(2)
        await limiter.acquire(2)

        waiter = asyncio.create_task(limiter.acquire(1))
        await asyncio.sleep(0)
        waiter.cancel()
        with pytest.raises(asyncio.CancelledError):
            await waiter

        limiter.release(2)
        assert limiter.in_use == 0

        await asyncio.wait_for(limiter.acquire(2), timeout=1)
        assert limiter.in_use == 2

    @pytest.mark.asyncio
    async def test_exports_slot_gauges(self, metrics) -> None:
        limiter = ConcurrencyLimiter(7, metrics)
        await limiter.acquire(3)

        assert metrics.slots_capacity._value.get() == 7
        assert metrics.slots_in_use._value.get() == 3

        limiter.release(3)
        assert metrics.slots_in_use._value.get() == 0
