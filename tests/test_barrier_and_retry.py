"""Tests for the phase barrier and the fixed-attempt retry combinator."""

import asyncio

import pytest

from indexer_service.control import PhaseBarrier
from indexer_service.errors import RetryExhausted
from indexer_service.execution import with_retry


class TestPhaseBarrier:
    @pytest.mark.asyncio
    async def test_wait_returns_immediately_when_empty(self) -> None:
        barrier = PhaseBarrier()

        await asyncio.wait_for(barrier.wait(), timeout=1)

    @pytest.mark.asyncio
    async def test_wait_blocks_until_all_done(self) -> None:
        barrier = PhaseBarrier()
        barrier.add(2)

        waiter = asyncio.create_task(barrier.wait())
        barrier.done()
        await asyncio.sleep(0)
        assert not waiter.done()

        barrier.done()
        await asyncio.wait_for(waiter, timeout=1)
        assert barrier.pending == 0

    @pytest.mark.asyncio
    async def test_add_during_phase_extends_it(self) -> None:
        barrier = PhaseBarrier()
        barrier.add(1)
        waiter = asyncio.create_task(barrier.wait())

        # a parent adding children before finishing keeps the phase open
        barrier.add(2)
        barrier.done()
        await asyncio.sleep(0)
        assert not waiter.done()

        barrier.done()
        barrier.done()
        await asyncio.wait_for(waiter, timeout=1)

    def test_done_without_add_rejected(self) -> None:
        with pytest.raises(ValueError):
            PhaseBarrier().done()


class TestWithRetry:
    @pytest.mark.asyncio
    async def test_first_success_short_circuits(self) -> None:
        calls = []

        async def op():
            calls.append(1)
            return "ok"

        assert await with_retry(3, op) == "ok"
        assert len(calls) == 1

    @pytest.mark.asyncio
    async def test_succeeds_on_last_attempt(self) -> None:
        calls = []

        async def op():
            calls.append(1)
            if len(calls) < 3:
                raise RuntimeError("flaky")
            return len(calls)

        assert await with_retry(3, op) == 3

    @pytest.mark.asyncio
    async def test_exhausted_after_exact_budget(self) -> None:
        calls = []
        errors = []

        async def op():
            calls.append(1)
            raise RuntimeError(f"boom {len(calls)}")

        with pytest.raises(RetryExhausted) as exc_info:
            await with_retry(4, op, on_error=lambda n, e: errors.append(n))

        assert len(calls) == 4
        assert errors == [1, 2, 3, 4]
        assert exc_info.value.attempts == 4
        assert str(exc_info.value.last_error) == "boom 4"

    @pytest.mark.asyncio
    async def test_budget_must_be_positive(self) -> None:
        async def op():
            return None

        with pytest.raises(ValueError):
            await with_retry(0, op)
