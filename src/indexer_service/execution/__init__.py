from .retry import with_retry
from .task_runner import TaskRunner
from .scheduler import PhaseStats, TaskScheduler

__all__ = [
    "with_retry",
    "TaskRunner",
    "PhaseStats",
    "TaskScheduler",
]
