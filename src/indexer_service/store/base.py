from abc import ABC, abstractmethod
from typing import Optional

from indexer_service.types import (
    Account,
    App,
    Block,
    CalculatedFields,
    Height,
    Node,
    Transaction,
)


# -------------------------
# Persistent store contract
# every write is an upsert keyed by (kind, height[, address])
# -------------------------
class BaseStore(ABC):
    @abstractmethod
    async def get_max_recorded_height(self) -> Height:
        """Raises NoPreviousHeight when nothing has been recorded yet."""

    @abstractmethod
    async def write_block(self, block: Block) -> None: ...

    @abstractmethod
    async def write_transactions(self, txs: list[Transaction]) -> None: ...

    @abstractmethod
    async def write_nodes(self, nodes: list[Node]) -> None: ...

    @abstractmethod
    async def write_apps(self, apps: list[App]) -> None: ...

    @abstractmethod
    async def write_accounts(self, accounts: list[Account]) -> None: ...

    async def write_account(self, account: Account) -> None:
        await self.write_accounts([account])

    @abstractmethod
    async def read_block(self, height: Height) -> Optional[Block]: ...

    @abstractmethod
    async def count_accounts(self, height: Height) -> int: ...

    @abstractmethod
    async def count_apps(self, height: Height) -> int: ...

    @abstractmethod
    async def count_nodes(self, height: Height) -> int: ...

    @abstractmethod
    async def write_calculated_fields(self, fields: CalculatedFields) -> None: ...

    async def close(self) -> None:
        return None
