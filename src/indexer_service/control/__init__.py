from .barrier import PhaseBarrier
from .limiter import ConcurrencyLimiter

__all__ = [
    "PhaseBarrier",
    "ConcurrencyLimiter",
]
