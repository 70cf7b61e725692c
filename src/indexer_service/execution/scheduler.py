import asyncio
from dataclasses import dataclass
from typing import Optional

from indexer_service.control import ConcurrencyLimiter, PhaseBarrier
from indexer_service.execution.task_runner import TaskRunner
from indexer_service.logging import log
from indexer_service.metrics import MetricsContext
from indexer_service.types import (
    DISCOVERY_KINDS,
    Height,
    IndexingTask,
    TaskKind,
    TaskResult,
)

_STOP = object()


@dataclass
class PhaseStats:
    name: str
    scheduled: int = 0
    succeeded: int = 0
    failed: int = 0
    discovered: int = 0


class TaskScheduler:
    """
    Work queue drained by a fixed pool of workers.

    Every queued task already holds one limiter slot, taken by whoever
    submitted it, so workers never wait on the limiter and the queue always
    drains. Account addresses reported by Nodes/Apps tasks go to a separate
    discovery queue; a single feeder takes one slot per address before
    handing the task to the workers.
    """

    def __init__(
        self,
        runner: TaskRunner,
        limiter: ConcurrencyLimiter,
        *,
        max_workers: Optional[int] = None,
        metrics: Optional[MetricsContext] = None,
    ):
        self.runner = runner
        self.limiter = limiter
        self.max_workers = max_workers or limiter.capacity
        self.metrics = metrics

        self.queue: asyncio.Queue = asyncio.Queue()
        self.discovered: asyncio.Queue = asyncio.Queue()
        self.workers: list[asyncio.Task] = []
        self.feeder: Optional[asyncio.Task] = None

        self.barrier = PhaseBarrier()
        self.stats = PhaseStats(name="idle")
        self._seen_accounts: set[tuple[Height, str]] = set()
        self._closed = False

    # --------------------------------------------------
    def start(self):
        if self.workers:
            return
        for wid in range(self.max_workers):
            self.workers.append(asyncio.create_task(self._worker_loop(wid)))
        self.feeder = asyncio.create_task(self._feeder_loop())
        log.info("task_scheduler_started", extra={"workers": self.max_workers})

    def begin_phase(self, name: str):
        if self.barrier.pending:
            raise RuntimeError(f"phase {self.stats.name} still has {self.barrier.pending} tasks")
        self.barrier = PhaseBarrier()
        self.stats = PhaseStats(name=name)
        self._seen_accounts.clear()

    async def submit(self, tasks: list[IndexingTask]):
        """
        Take one slot per task in a single acquire, then enqueue them all.
        Blocks the caller while capacity is exhausted.
        """
        if self._closed:
            raise RuntimeError("scheduler already closed")
        if not tasks:
            return

        await self.limiter.acquire(len(tasks))
        self.barrier.add(len(tasks))
        for task in tasks:
            self._enqueue(task)

    async def wait_phase(self) -> PhaseStats:
        await self.barrier.wait()
        return self.stats

    # --------------------------------------------------
    def _enqueue(self, task: IndexingTask):
        self.stats.scheduled += 1
        self.queue.put_nowait(task)
        if self.metrics is not None:
            self.metrics.task_submitted_inc(task.kind.value)
            self.metrics.queue_size.set(self.queue.qsize())

    async def _worker_loop(self, wid: int):
        while True:
            item = await self.queue.get()
            if item is _STOP:
                self.queue.task_done()
                break

            if self.metrics is not None:
                self.metrics.queue_size.set(self.queue.qsize())

            try:
                result = await self.runner.run(item)
            except Exception as e:
                log.exception(
                    "task_crashed",
                    extra={**item.describe(), "worker": wid, "error": str(e)[:200]},
                )
                result = TaskResult(task=item, ok=False, error=e)
            finally:
                self.limiter.release(1)

            self._handle_result(result)
            self.barrier.done()
            self.queue.task_done()

    def _handle_result(self, result: TaskResult):
        if result.ok:
            self.stats.succeeded += 1
        else:
            self.stats.failed += 1

        task = result.task
        if task.kind not in DISCOVERY_KINDS or not result.addresses:
            return

        fresh = []
        for address in result.addresses:
            key = (task.height, address)
            if key in self._seen_accounts:
                continue
            self._seen_accounts.add(key)
            fresh.append(address)

        if not fresh:
            return

        # counted before the parent is marked done so the phase cannot close early
        self.barrier.add(len(fresh))
        self.stats.discovered += len(fresh)
        for address in fresh:
            self.discovered.put_nowait(
                IndexingTask(kind=TaskKind.ACCOUNTS, height=task.height, address=address)
            )
        if self.metrics is not None:
            self.metrics.pending_accounts.set(self.discovered.qsize())

    async def _feeder_loop(self):
        while True:
            item = await self.discovered.get()
            await self.limiter.acquire(1)
            self._enqueue(item)
            if self.metrics is not None:
                self.metrics.pending_accounts.set(self.discovered.qsize())

    # --------------------------------------------------
    async def close(self):
        if self._closed:
            return
        self._closed = True

        # the feeder may be parked on the limiter, stop it outright
        if self.feeder is not None:
            self.feeder.cancel()
        for _ in self.workers:
            self.queue.put_nowait(_STOP)

        tasks = list(self.workers)
        if self.feeder is not None:
            tasks.append(self.feeder)
        await asyncio.gather(*tasks, return_exceptions=True)
        log.info("task_scheduler_closed")
