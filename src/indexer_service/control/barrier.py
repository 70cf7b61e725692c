import asyncio


class PhaseBarrier:
    """Counts outstanding tasks of one phase; wait() returns once all are done."""

    def __init__(self):
        self._pending = 0
        self._idle = asyncio.Event()
        self._idle.set()

    @property
    def pending(self) -> int:
        return self._pending

    def add(self, n: int = 1):
        if n < 0:
            raise ValueError(f"cannot add a negative count: {n}")
        self._pending += n
        if self._pending > 0:
            self._idle.clear()

    def done(self):
        if self._pending <= 0:
            raise ValueError("done() called more times than add()")
        self._pending -= 1
        if self._pending == 0:
            self._idle.set()

    async def wait(self):
        await self._idle.wait()
