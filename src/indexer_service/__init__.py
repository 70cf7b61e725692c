# control
from indexer_service.control import ConcurrencyLimiter, PhaseBarrier

# planning
from indexer_service.planning import (
    BaseHeightResolver,
    BoundedHeightResolver,
    ContinuousHeightResolver,
    build_resolver,
)

# execution
from indexer_service.execution import PhaseStats, TaskRunner, TaskScheduler, with_retry

# loop
from indexer_service.orchestrator import IterationReport, Orchestrator, OrchestratorState

__all__ = [
    # control
    "ConcurrencyLimiter",
    "PhaseBarrier",

    # planning
    "BaseHeightResolver",
    "BoundedHeightResolver",
    "ContinuousHeightResolver",
    "build_resolver",

    # execution
    "PhaseStats",
    "TaskRunner",
    "TaskScheduler",
    "with_retry",

    # loop
    "IterationReport",
    "Orchestrator",
    "OrchestratorState",
]
