from abc import ABC, abstractmethod
from typing import Optional

from indexer_service.errors import (
    ConfigurationError,
    NoPreviousHeight,
    RangeResolutionError,
)
from indexer_service.logging import log
from indexer_service.metrics import MetricsContext
from indexer_service.reader import ReaderPair
from indexer_service.store import BaseStore
from indexer_service.types import GENESIS_HEIGHT, Bounded, Height, RunMode


# -------------------------
# One resolve() per loop iteration
# no retry here, a failed resolve is fatal
# -------------------------
class BaseHeightResolver(ABC):
    def __init__(
        self,
        store: BaseStore,
        readers: ReaderPair,
        metrics: Optional[MetricsContext] = None,
    ):
        self.store = store
        self.readers = readers
        self.metrics = metrics

    async def resolve(self) -> range:
        max_recorded = await self._max_recorded_height()
        lower = self.lower_bound(max_recorded)

        latest = await self._current_height()
        upper = self.upper_bound(latest)

        if self.metrics is not None:
            self.metrics.observe_chain_head(latest)
            if max_recorded is not None:
                self.metrics.observe_checkpoint(max_recorded, latest)

        heights = range(lower, upper + 1)

        log.info(
            "heights_resolved",
            extra={
                "from": lower,
                "to": upper,
                "count": len(heights),
                "latest": latest,
                "max_recorded": max_recorded,
            },
        )
        return heights

    async def _max_recorded_height(self) -> Optional[Height]:
        try:
            return await self.store.get_max_recorded_height()
        except NoPreviousHeight:
            return None
        except Exception as e:
            raise RangeResolutionError(f"store unreachable: {e}") from e

    async def _current_height(self) -> Height:
        last_exc: Exception | None = None

        for reader in self.readers.readers():
            try:
                return await reader.get_current_height()
            except Exception as e:
                log.warning(
                    "current_height_failed",
                    extra={"reader": reader.name, "error": str(e)[:200]},
                )
                last_exc = e

        raise RangeResolutionError(
            f"no reader could answer current height: {last_exc}"
        ) from last_exc

    @abstractmethod
    def lower_bound(self, max_recorded: Optional[Height]) -> Height:
        pass

    @abstractmethod
    def upper_bound(self, latest: Height) -> Height:
        pass


class ContinuousHeightResolver(BaseHeightResolver):
    """
    Tailing resolver
    - resumes from the store checkpoint
    - upper bound follows the chain head
    """

    def lower_bound(self, max_recorded: Optional[Height]) -> Height:
        if max_recorded is None:
            return GENESIS_HEIGHT
        return max_recorded + 1

    def upper_bound(self, latest: Height) -> Height:
        return latest


class BoundedHeightResolver(BaseHeightResolver):
    """
    Backfill resolver
    - fixed [from_height, to_height], store state ignored
    - refuses heights the chain has not produced yet
    """

    def __init__(
        self,
        store: BaseStore,
        readers: ReaderPair,
        from_height: Height,
        to_height: Height,
        metrics: Optional[MetricsContext] = None,
    ):
        if to_height < from_height:
            raise ConfigurationError(
                f"to height {to_height} is lower than from height {from_height}"
            )
        super().__init__(store, readers, metrics)
        self.from_height = from_height
        self.to_height = to_height

    def lower_bound(self, max_recorded: Optional[Height]) -> Height:
        return self.from_height

    def upper_bound(self, latest: Height) -> Height:
        if self.to_height > latest:
            raise ConfigurationError(
                f"to height {self.to_height} is higher than current height {latest}"
            )
        return self.to_height


def build_resolver(
    run_mode: RunMode,
    store: BaseStore,
    readers: ReaderPair,
    metrics: Optional[MetricsContext] = None,
) -> BaseHeightResolver:
    if isinstance(run_mode, Bounded):
        return BoundedHeightResolver(
            store,
            readers,
            run_mode.from_height,
            run_mode.to_height,
            metrics,
        )
    return ContinuousHeightResolver(store, readers, metrics)
