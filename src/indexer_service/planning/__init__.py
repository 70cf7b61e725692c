from .range_resolver import (
    BaseHeightResolver,
    BoundedHeightResolver,
    ContinuousHeightResolver,
    build_resolver,
)

__all__ = [
    "BaseHeightResolver",
    "BoundedHeightResolver",
    "ContinuousHeightResolver",
    "build_resolver",
]
