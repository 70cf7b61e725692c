import time
import asyncio
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from indexer_service.control import ConcurrencyLimiter
from indexer_service.execution import PhaseStats, TaskRunner, TaskScheduler
from indexer_service.logging import log
from indexer_service.metrics import MetricsContext
from indexer_service.planning import BaseHeightResolver
from indexer_service.types import (
    PHASE1_KINDS,
    Bounded,
    Height,
    IndexingTask,
    RunMode,
    TaskKind,
)


class OrchestratorState(str, Enum):
    IDLE = "IDLE"
    RESOLVING_RANGE = "RESOLVING_RANGE"
    SCHEDULING_PHASE1 = "SCHEDULING_PHASE1"
    AWAITING_PHASE1 = "AWAITING_PHASE1"
    SCHEDULING_PHASE2 = "SCHEDULING_PHASE2"
    AWAITING_PHASE2 = "AWAITING_PHASE2"
    SLEEPING = "SLEEPING"
    TERMINATED = "TERMINATED"
    FAILED = "FAILED"


@dataclass
class IterationReport:
    heights: range
    phase1: Optional[PhaseStats] = None
    phase2: Optional[PhaseStats] = None
    duration_sec: float = 0.0

    @property
    def failed(self) -> int:
        return sum(p.failed for p in (self.phase1, self.phase2) if p is not None)


class Orchestrator:
    """
    Top level indexing loop.

    Each iteration resolves a height range, runs phase 1 (raw entities) for
    every height, waits for all of it, then runs phase 2 (calculated fields).
    Bounded runs stop after one iteration; continuous runs sleep and repeat.
    Task failures never stop the loop, only a failed range resolution does.
    """

    def __init__(
        self,
        *,
        resolver: BaseHeightResolver,
        runner: TaskRunner,
        run_mode: RunMode,
        concurrency: int,
        poll_interval: float,
        metrics: Optional[MetricsContext] = None,
    ):
        self.resolver = resolver
        self.run_mode = run_mode
        self.poll_interval = poll_interval
        self.metrics = metrics

        # owned here, handed to the scheduler, never module level
        self.limiter = ConcurrencyLimiter(concurrency, metrics)
        self.scheduler = TaskScheduler(runner, self.limiter, metrics=metrics)

        self.state = OrchestratorState.IDLE
        self.iterations = 0

    @property
    def bounded(self) -> bool:
        return isinstance(self.run_mode, Bounded)

    def _transition(self, state: OrchestratorState, **extra):
        self.state = state
        log.debug("orchestrator_state", extra={"state": state.value, **extra})

    def compute_took(self, height: Height) -> bool:
        # first height of a backfill has nothing earlier in the run to measure against
        if self.bounded:
            return height != self.run_mode.from_height
        return True

    # --------------------------------------------------
    async def run(self):
        log.info(
            "🚀 orchestrator_start",
            extra={
                "mode": "bounded" if self.bounded else "continuous",
                "concurrency": self.limiter.capacity,
                "poll_interval": self.poll_interval,
            },
        )
        self.scheduler.start()

        try:
            while True:
                await self.run_once()

                if self.bounded:
                    self._transition(OrchestratorState.TERMINATED)
                    log.info("🏁 bounded_run_finished", extra={"iterations": self.iterations})
                    return

                self._transition(OrchestratorState.SLEEPING)
                await asyncio.sleep(self.poll_interval)
        except Exception as e:
            self._transition(OrchestratorState.FAILED, error=str(e))
            raise
        finally:
            await self.scheduler.close()

    async def run_once(self) -> IterationReport:
        self.scheduler.start()
        start = time.perf_counter()

        self._transition(OrchestratorState.RESOLVING_RANGE)
        heights = await self.resolver.resolve()
        report = IterationReport(heights=heights)

        if len(heights) > 0:
            report.phase1 = await self._run_phase1(heights)
            report.phase2 = await self._run_phase2(heights)

        report.duration_sec = time.perf_counter() - start
        self.iterations += 1

        if self.metrics is not None and len(heights) > 0:
            self.metrics.heights_indexed.inc(len(heights))
            self.metrics.iteration_duration.observe(report.duration_sec)

        log.info(
            "✅ iteration_done",
            extra={
                "iteration": self.iterations,
                "from": heights.start if len(heights) else None,
                "to": heights[-1] if len(heights) else None,
                "heights": len(heights),
                "succeeded": sum(
                    p.succeeded for p in (report.phase1, report.phase2) if p is not None
                ),
                "failed": report.failed,
                "accounts_discovered": report.phase1.discovered if report.phase1 else 0,
                "cost_sec": round(report.duration_sec, 2),
            },
        )
        return report

    async def _run_phase1(self, heights: range) -> PhaseStats:
        self._transition(OrchestratorState.SCHEDULING_PHASE1, heights=len(heights))
        self.scheduler.begin_phase("phase1")

        for height in heights:
            await self.scheduler.submit(
                [IndexingTask(kind=kind, height=height) for kind in PHASE1_KINDS]
            )

        self._transition(OrchestratorState.AWAITING_PHASE1)
        return await self.scheduler.wait_phase()

    async def _run_phase2(self, heights: range) -> PhaseStats:
        self._transition(OrchestratorState.SCHEDULING_PHASE2, heights=len(heights))
        self.scheduler.begin_phase("phase2")

        for height in heights:
            await self.scheduler.submit(
                [
                    IndexingTask(
                        kind=TaskKind.CALCULATED_FIELDS,
                        height=height,
                        compute_took=self.compute_took(height),
                    )
                ]
            )

        self._transition(OrchestratorState.AWAITING_PHASE2)
        return await self.scheduler.wait_phase()
