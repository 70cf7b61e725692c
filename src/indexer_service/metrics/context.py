import os
from dataclasses import dataclass
from typing import Any

from . import definitions as m


@dataclass(frozen=True)
class MetricsContext:
    chain: str
    job: str

    # -------- Lag --------
    chain_latest_height: Any
    checkpoint_height: Any
    checkpoint_lag: Any

    # -------- Throughput --------
    heights_indexed: Any
    iteration_duration: Any

    # -------- Scheduling --------
    slots_in_use: Any
    slots_capacity: Any
    queue_size: Any
    pending_accounts: Any

    # -------- Tasks (dynamic labels) --------
    task_submitted: Any
    task_completed: Any
    task_failed: Any
    task_attempts: Any
    task_failover: Any
    task_latency: Any

    # ===== lag helpers =====
    def observe_chain_head(self, latest: int):
        self.chain_latest_height.set(latest)

    def observe_checkpoint(self, checkpoint: int, latest: int):
        self.checkpoint_height.set(checkpoint)
        self.checkpoint_lag.set(max(0, latest - checkpoint))

    # ===== task helpers =====
    def task_submitted_inc(self, kind: str):
        self.task_submitted.labels(chain=self.chain, job=self.job, kind=kind).inc()

    def task_completed_inc(self, kind: str, reader: str):
        self.task_completed.labels(
            chain=self.chain, job=self.job, kind=kind, reader=reader,
        ).inc()

    def task_failed_inc(self, kind: str):
        self.task_failed.labels(chain=self.chain, job=self.job, kind=kind).inc()

    def task_attempt_inc(self, kind: str, reader: str):
        self.task_attempts.labels(
            chain=self.chain, job=self.job, kind=kind, reader=reader,
        ).inc()

    def task_failover_inc(self, kind: str):
        self.task_failover.labels(chain=self.chain, job=self.job, kind=kind).inc()

    def task_latency_observe(self, kind: str, seconds: float):
        self.task_latency.labels(chain=self.chain, job=self.job, kind=kind).observe(seconds)

    @classmethod
    def from_env(cls) -> "MetricsContext":
        chain = os.getenv("CHAIN", "pocket")
        job = os.getenv("JOB_NAME", "indexer")

        base = dict(chain=chain, job=job)

        return cls(
            chain=chain,
            job=job,

            # Lag
            chain_latest_height=m.CHAIN_LATEST_HEIGHT.labels(**base),
            checkpoint_height=m.CHECKPOINT_HEIGHT.labels(**base),
            checkpoint_lag=m.CHECKPOINT_LAG.labels(**base),

            # Throughput
            heights_indexed=m.HEIGHTS_INDEXED.labels(**base),
            iteration_duration=m.ITERATION_DURATION.labels(**base),

            # Scheduling
            slots_in_use=m.SLOTS_IN_USE.labels(**base),
            slots_capacity=m.SLOTS_CAPACITY.labels(**base),
            queue_size=m.QUEUE_SIZE.labels(**base),
            pending_accounts=m.PENDING_ACCOUNTS.labels(**base),

            # Tasks
            task_submitted=m.TASK_SUBMITTED,
            task_completed=m.TASK_COMPLETED,
            task_failed=m.TASK_FAILED,
            task_attempts=m.TASK_ATTEMPTS,
            task_failover=m.TASK_FAILOVER,
            task_latency=m.TASK_LATENCY,
        )
