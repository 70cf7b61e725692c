import asyncio
from collections import deque
from typing import Optional

from indexer_service.metrics import MetricsContext


class ConcurrencyLimiter:
    """
    Weighted counting gate over a fixed number of slots.

    ``acquire(n)`` waits until n slots are free and takes them all at once;
    ``release(n)`` hands them back. Waiters are served in arrival order so a
    large request is not starved by a stream of single-slot ones.
    """

    def __init__(self, capacity: int, metrics: Optional[MetricsContext] = None):
        if capacity < 1:
            raise ValueError(f"capacity must be positive, got {capacity}")
        self.capacity = capacity
        self.metrics = metrics

        self._in_use = 0
        self._waiters: deque[tuple[int, asyncio.Future]] = deque()

        if metrics is not None:
            metrics.slots_capacity.set(capacity)

    @property
    def in_use(self) -> int:
        return self._in_use

    @property
    def available(self) -> int:
        return self.capacity - self._in_use

    async def acquire(self, n: int = 1):
        if n < 1:
            raise ValueError(f"must acquire at least one slot, got {n}")
        if n > self.capacity:
            # would wait forever
            raise ValueError(f"cannot acquire {n} slots, capacity is {self.capacity}")

        if not self._waiters and self._in_use + n <= self.capacity:
            self._grant(n)
            return

        fut = asyncio.get_running_loop().create_future()
        self._waiters.append((n, fut))
        try:
            await fut
        except asyncio.CancelledError:
            if fut.done() and not fut.cancelled():
                # granted right before the cancel landed
                self.release(n)
            else:
                self._wake()
            raise

    def release(self, n: int = 1):
        if n < 1 or n > self._in_use:
            raise ValueError(f"cannot release {n} slots, {self._in_use} in use")
        self._in_use -= n
        self._refresh_metrics()
        self._wake()

    def _grant(self, n: int):
        self._in_use += n
        self._refresh_metrics()

    def _wake(self):
        while self._waiters:
            n, fut = self._waiters[0]
            if fut.done():
                self._waiters.popleft()
                continue
            if self._in_use + n > self.capacity:
                return
            self._waiters.popleft()
            self._grant(n)
            fut.set_result(None)

    def _refresh_metrics(self):
        if self.metrics is not None:
            self.metrics.slots_in_use.set(self._in_use)
