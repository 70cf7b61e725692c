import time
from typing import Optional

from indexer_service.errors import RetryExhausted
from indexer_service.execution.retry import with_retry
from indexer_service.indexing import Indexer
from indexer_service.logging import log
from indexer_service.metrics import MetricsContext
from indexer_service.reader import ChainReader, ReaderPair
from indexer_service.types import IndexingTask, TaskResult


class TaskRunner:
    """
    Runs one indexing task: ``retry_budget`` attempts on the primary reader,
    then the same on the fallback. Never raises for an exhausted task, the
    failure is logged and returned.
    """

    def __init__(
        self,
        indexer: Indexer,
        readers: ReaderPair,
        retry_budget: int,
        metrics: Optional[MetricsContext] = None,
    ):
        if retry_budget < 1:
            raise ValueError(f"retry budget must be at least 1, got {retry_budget}")
        self.indexer = indexer
        self.readers = readers
        self.retry_budget = retry_budget
        self.metrics = metrics

    async def _run_on(self, task: IndexingTask, reader: ChainReader) -> list[str]:
        kind = task.kind.value

        async def attempt():
            if self.metrics is not None:
                self.metrics.task_attempt_inc(kind, reader.name)
            return await self.indexer.index(task, reader)

        def on_error(n: int, e: Exception):
            log.debug(
                "task_attempt_failed",
                extra={**task.describe(), "reader": reader.name, "attempt": n, "error": str(e)[:200]},
            )

        return await with_retry(self.retry_budget, attempt, on_error)

    async def run(self, task: IndexingTask) -> TaskResult:
        kind = task.kind.value
        start = time.perf_counter()
        last_error: Optional[BaseException] = None

        for position, reader in enumerate(self.readers.readers()):
            if position > 0 and self.metrics is not None:
                self.metrics.task_failover_inc(kind)

            try:
                addresses = await self._run_on(task, reader)
            except RetryExhausted as e:
                last_error = e.last_error
                log.error(
                    f"index_{kind}_{'main' if position == 0 else 'fallback'}_node_failed",
                    extra={
                        **self.readers.describe(),
                        **task.describe(),
                        "reader": reader.name,
                        "attempts": e.attempts,
                        "error": str(e.last_error)[:500],
                    },
                )
                continue

            if self.metrics is not None:
                self.metrics.task_completed_inc(kind, reader.name)
                self.metrics.task_latency_observe(kind, time.perf_counter() - start)

            log.info(
                f"{kind}_indexed",
                extra={**self.readers.describe(), **task.describe(), "reader": reader.name},
            )
            return TaskResult(task=task, ok=True, reader=reader.name, addresses=addresses)

        if self.metrics is not None:
            self.metrics.task_failed_inc(kind)
            self.metrics.task_latency_observe(kind, time.perf_counter() - start)

        return TaskResult(task=task, ok=False, error=last_error)
