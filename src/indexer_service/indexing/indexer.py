import re
from datetime import datetime

from indexer_service.errors import IndexerError
from indexer_service.reader import ChainReader
from indexer_service.store import BaseStore
from indexer_service.types import (
    GENESIS_HEIGHT,
    CalculatedFields,
    Height,
    IndexingTask,
    TaskKind,
)

_FRACTION = re.compile(r"\.(\d+)")


def parse_block_time(value: str) -> datetime:
    """
    Node timestamps carry nanoseconds, datetime keeps microseconds.
    """
    value = value.replace("Z", "+00:00")
    value = _FRACTION.sub(lambda mt: "." + mt.group(1)[:6].ljust(6, "0"), value, count=1)
    return datetime.fromisoformat(value)


def took_ms(current: str, previous: str) -> int:
    delta = parse_block_time(current) - parse_block_time(previous)
    return int(delta.total_seconds() * 1000)


class Indexer:
    """
    Reads one record kind at one height from a reader and writes it to the store.

    The reader is passed per call so the same indexer serves primary and
    fallback attempts.
    """

    def __init__(self, store: BaseStore):
        self.store = store

    async def index(self, task: IndexingTask, reader: ChainReader) -> list[str]:
        """Returns the account addresses observed, empty for non discovery kinds."""
        if task.kind == TaskKind.BLOCK:
            await self.index_block(task.height, reader)
        elif task.kind == TaskKind.TRANSACTIONS:
            await self.index_transactions(task.height, reader)
        elif task.kind == TaskKind.NODES:
            return await self.index_nodes(task.height, reader)
        elif task.kind == TaskKind.APPS:
            return await self.index_apps(task.height, reader)
        elif task.kind == TaskKind.ACCOUNTS:
            if task.address:
                await self.index_account(task.address, task.height, reader)
            else:
                await self.index_accounts(task.height, reader)
        elif task.kind == TaskKind.CALCULATED_FIELDS:
            await self.index_calculated_fields(task.height, task.compute_took)
        else:
            raise IndexerError(f"unknown task kind: {task.kind}")
        return []

    async def index_block(self, height: Height, reader: ChainReader):
        block = await reader.get_block(height)
        await self.store.write_block(block)

    async def index_transactions(self, height: Height, reader: ChainReader):
        txs = await reader.get_transactions(height)
        await self.store.write_transactions(txs)

    async def index_nodes(self, height: Height, reader: ChainReader) -> list[str]:
        nodes = await reader.get_nodes(height)
        await self.store.write_nodes(nodes)
        return [n.address for n in nodes if n.address]

    async def index_apps(self, height: Height, reader: ChainReader) -> list[str]:
        apps = await reader.get_apps(height)
        await self.store.write_apps(apps)
        return [a.address for a in apps if a.address]

    async def index_accounts(self, height: Height, reader: ChainReader):
        accounts = await reader.get_accounts(height)
        await self.store.write_accounts(accounts)

    async def index_account(self, address: str, height: Height, reader: ChainReader):
        account = await reader.get_account(address, height)
        await self.store.write_account(account)

    async def index_calculated_fields(self, height: Height, compute_took: bool):
        block = await self.store.read_block(height)
        if block is None:
            raise IndexerError(f"block {height} not recorded, cannot calculate fields")

        took = None
        # genesis has no previous block to measure against
        if compute_took and height > GENESIS_HEIGHT:
            previous = await self.store.read_block(height - 1)
            if previous is None:
                raise IndexerError(f"previous block {height - 1} not recorded")
            took = took_ms(block.time, previous.time)

        await self.store.write_calculated_fields(
            CalculatedFields(
                height=height,
                accounts_quantity=await self.store.count_accounts(height),
                apps_quantity=await self.store.count_apps(height),
                nodes_quantity=await self.store.count_nodes(height),
                took=took,
            )
        )
