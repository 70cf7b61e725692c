import asyncio
from contextlib import contextmanager
from typing import Optional

import psycopg2
from psycopg2.extras import execute_values
from psycopg2.pool import ThreadedConnectionPool

from indexer_service.errors import NoPreviousHeight
from indexer_service.logging import log
from indexer_service.store import schema
from indexer_service.store.base import BaseStore
from indexer_service.types import (
    Account,
    App,
    Block,
    CalculatedFields,
    Height,
    Node,
    Transaction,
)


def _dedupe(rows: list[tuple], key_len: int) -> list[tuple]:
    # one statement cannot upsert the same key twice
    seen: dict[tuple, tuple] = {}
    for row in rows:
        seen[row[:key_len]] = row
    return list(seen.values())


class PostgresStore(BaseStore):
    """
    psycopg2 store; blocking calls run in worker threads so the event loop
    keeps scheduling while the database works.
    """

    def __init__(self, pool: ThreadedConnectionPool, max_connections: Optional[int] = None):
        self.pool = pool
        self.max_connections = max_connections or pool.maxconn
        # getconn() raises once the pool is exhausted instead of waiting
        self._slots = asyncio.Semaphore(self.max_connections)

    @classmethod
    def from_connection_string(cls, dsn: str, max_connections: int = 20) -> "PostgresStore":
        try:
            pool = ThreadedConnectionPool(1, max_connections, dsn)
        except psycopg2.Error as e:
            log.error("postgres_connect_failed", extra={"error": str(e)})
            raise

        log.info("postgres_pool_ready", extra={"max_connections": max_connections})
        return cls(pool, max_connections)

    async def _run(self, fn, *args):
        async with self._slots:
            return await asyncio.to_thread(fn, *args)

    # -----------------------------
    # connection handling
    # -----------------------------
    @contextmanager
    def _cursor(self):
        conn = self.pool.getconn()
        try:
            with conn.cursor() as cur:
                yield cur
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            self.pool.putconn(conn)

    def _execute(self, sql: str, params: tuple = ()):
        with self._cursor() as cur:
            cur.execute(sql, params)

    def _execute_values(self, sql: str, rows: list[tuple]):
        if not rows:
            return
        with self._cursor() as cur:
            execute_values(cur, sql, rows)

    def _fetchone(self, sql: str, params: tuple = ()):
        with self._cursor() as cur:
            cur.execute(sql, params)
            return cur.fetchone()

    def create_tables(self):
        self._execute(schema.CREATE_TABLES)
        log.info("postgres_tables_ready")

    # -----------------------------
    # reads
    # -----------------------------
    async def get_max_recorded_height(self) -> Height:
        row = await self._run(self._fetchone, schema.SELECT_MAX_HEIGHT)
        if row is None or row[0] is None:
            raise NoPreviousHeight("no block recorded yet")
        return int(row[0])

    async def read_block(self, height: Height) -> Optional[Block]:
        row = await self._run(self._fetchone, schema.SELECT_BLOCK, (height,))
        if row is None:
            return None
        return Block(
            height=int(row[0]),
            hash=row[1],
            time=row[2],
            proposer_address=row[3],
            tx_count=int(row[4]),
        )

    async def _count(self, table: str, height: Height) -> int:
        row = await self._run(
            self._fetchone, schema.COUNT_AT_HEIGHT[table], (height,)
        )
        return int(row[0]) if row else 0

    async def count_accounts(self, height: Height) -> int:
        return await self._count("accounts", height)

    async def count_apps(self, height: Height) -> int:
        return await self._count("apps", height)

    async def count_nodes(self, height: Height) -> int:
        return await self._count("nodes", height)

    # -----------------------------
    # writes
    # -----------------------------
    async def write_block(self, block: Block) -> None:
        await self._run(
            self._execute,
            schema.UPSERT_BLOCK,
            (block.height, block.hash, block.time, block.proposer_address, block.tx_count),
        )

    async def write_transactions(self, txs: list[Transaction]) -> None:
        rows = [
            (
                tx.hash, tx.height, tx.index, tx.from_address, tx.to_address,
                tx.message_type, tx.fee, tx.amount, tx.result_code,
            )
            for tx in txs
        ]
        await self._run(
            self._execute_values, schema.UPSERT_TRANSACTIONS, _dedupe(rows, 1)
        )

    async def write_nodes(self, nodes: list[Node]) -> None:
        rows = [
            (n.address, n.height, n.public_key, n.service_url, n.tokens, n.jailed, n.status)
            for n in nodes
        ]
        await self._run(self._execute_values, schema.UPSERT_NODES, _dedupe(rows, 2))

    async def write_apps(self, apps: list[App]) -> None:
        rows = [
            (a.address, a.height, a.public_key, a.staked_tokens, a.jailed, a.status)
            for a in apps
        ]
        await self._run(self._execute_values, schema.UPSERT_APPS, _dedupe(rows, 2))

    async def write_accounts(self, accounts: list[Account]) -> None:
        rows = [(a.address, a.height, a.balance) for a in accounts]
        await self._run(
            self._execute_values, schema.UPSERT_ACCOUNTS, _dedupe(rows, 2)
        )

    async def write_calculated_fields(self, fields: CalculatedFields) -> None:
        await self._run(
            self._execute,
            schema.UPDATE_CALCULATED_FIELDS,
            (
                fields.accounts_quantity,
                fields.apps_quantity,
                fields.nodes_quantity,
                fields.took,
                fields.height,
            ),
        )

    async def close(self) -> None:
        self.pool.closeall()
