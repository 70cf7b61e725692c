"""Pytest configuration and shared in-memory fakes."""

import asyncio
import time
from datetime import datetime, timedelta, timezone

import pytest

from indexer_service.errors import NoPreviousHeight, ReaderRequestError
from indexer_service.metrics import MetricsContext
from indexer_service.reader import ReaderPair, RequestTrace
from indexer_service.store import BaseStore
from indexer_service.types import Account, App, Block, Node, Transaction

GENESIS_TIME = datetime(2022, 1, 1, tzinfo=timezone.utc)


def block_time(height: int) -> str:
    """Fifteen minutes per block, nanosecond precision like a real node."""
    ts = GENESIS_TIME + timedelta(minutes=15 * height)
    return ts.strftime("%Y-%m-%dT%H:%M:%S") + ".123456789Z"


class FakeChainReader:
    """
    Deterministic chain. ``fail`` makes every call raise; ``delays`` maps
    (method, height) to a sleep before answering.
    """

    def __init__(self, name="main", latest=100, fail=False, fail_height=False, delays=None):
        self.name = name
        self.latest = latest
        self.fail = fail
        self.fail_height = fail_height
        self.delays = delays or {}
        self.calls: list[tuple] = []

    async def _enter(self, method, height=None, address=None):
        self.calls.append((method, height, address))
        delay = self.delays.get((method, height))
        if delay:
            await asyncio.sleep(delay)
        if self.fail:
            raise ReaderRequestError(f"{self.name} is down")

    def count(self, method=None):
        return sum(1 for c in self.calls if method is None or c[0] == method)

    async def get_current_height(self):
        self.calls.append(("height", None, None))
        if self.fail or self.fail_height:
            raise ReaderRequestError(f"{self.name} is down")
        return self.latest

    async def get_block(self, height):
        await self._enter("block", height)
        return Block(
            height=height,
            hash=f"hash{height}",
            time=block_time(height),
            proposer_address=f"proposer{height % 4}",
            tx_count=2,
        )

    async def get_transactions(self, height):
        await self._enter("transactions", height)
        return [
            Transaction(
                hash=f"tx{height}-{i}",
                height=height,
                index=i,
                from_address=f"acc{i}",
                to_address=f"acc{i + 1}",
                message_type="send",
                fee=10000,
                amount=100 * i,
            )
            for i in range(2)
        ]

    async def get_nodes(self, height):
        await self._enter("nodes", height)
        return [
            Node(
                address=f"node{i}",
                height=height,
                service_url=f"https://node{i}.example",
                tokens=15000,
                jailed=False,
                status=2,
            )
            for i in range(3)
        ]

    async def get_apps(self, height):
        await self._enter("apps", height)
        # node1 is also staked as an app, its account must be indexed once
        return [
            App(address=a, height=height, public_key=f"pk-{a}", staked_tokens=5000, jailed=False, status=2)
            for a in ("app0", "node1")
        ]

    async def get_accounts(self, height):
        await self._enter("accounts", height)
        return [Account(address=f"acc{i}", height=height, balance=1000 + i) for i in range(2)]

    async def get_account(self, address, height):
        await self._enter("account", height, address)
        return Account(address=address, height=height, balance=42)


class CannedClient:
    """Client double answering by (path, page); records every payload."""

    def __init__(self, responses):
        self.responses = responses
        self.requests: list[tuple[str, dict]] = []

    async def call(self, base_url, path, payload):
        self.requests.append((path, payload))
        page = payload.get("page") or (payload.get("opts") or {}).get("page")
        return self.responses[(path, page)], RequestTrace(path=path, attempts=2, total_ms=12.34)


class FakeStore(BaseStore):
    """Upsert semantics keyed like the postgres tables."""

    def __init__(self, max_height=None, fail_max=False):
        self.initial_max = max_height
        self.fail_max = fail_max
        self.max_calls = 0

        self.blocks: dict[int, Block] = {}
        self.transactions: dict[str, Transaction] = {}
        self.nodes: dict[tuple, Node] = {}
        self.apps: dict[tuple, App] = {}
        self.accounts: dict[tuple, Account] = {}
        self.calculated: dict[int, object] = {}

        # (event, height, monotonic time)
        self.events: list[tuple] = []

    def _event(self, name, height):
        self.events.append((name, height, time.monotonic()))

    def snapshot(self):
        return (
            dict(self.blocks),
            dict(self.transactions),
            dict(self.nodes),
            dict(self.apps),
            dict(self.accounts),
            dict(self.calculated),
        )

    async def get_max_recorded_height(self):
        self.max_calls += 1
        if self.fail_max:
            raise ConnectionError("database is gone")
        if self.initial_max is not None:
            return self.initial_max
        if not self.blocks:
            raise NoPreviousHeight("empty")
        return max(self.blocks)

    async def write_block(self, block):
        self.blocks[block.height] = block
        self._event("write_block", block.height)

    async def write_transactions(self, txs):
        for tx in txs:
            self.transactions[tx.hash] = tx
        if txs:
            self._event("write_transactions", txs[0].height)

    async def write_nodes(self, nodes):
        for n in nodes:
            self.nodes[(n.address, n.height)] = n
        if nodes:
            self._event("write_nodes", nodes[0].height)

    async def write_apps(self, apps):
        for a in apps:
            self.apps[(a.address, a.height)] = a
        if apps:
            self._event("write_apps", apps[0].height)

    async def write_accounts(self, accounts):
        for a in accounts:
            self.accounts[(a.address, a.height)] = a
        if accounts:
            self._event("write_accounts", accounts[0].height)

    async def read_block(self, height):
        self._event("read_block", height)
        return self.blocks.get(height)

    async def count_accounts(self, height):
        return sum(1 for (_, h) in self.accounts if h == height)

    async def count_apps(self, height):
        return sum(1 for (_, h) in self.apps if h == height)

    async def count_nodes(self, height):
        return sum(1 for (_, h) in self.nodes if h == height)

    async def write_calculated_fields(self, fields):
        self.calculated[fields.height] = fields
        self._event("write_calculated_fields", fields.height)


@pytest.fixture
def metrics():
    return MetricsContext.from_env()


@pytest.fixture
def store():
    return FakeStore()


@pytest.fixture
def primary():
    return FakeChainReader("main")


@pytest.fixture
def fallback():
    return FakeChainReader("fallback")


@pytest.fixture
def readers(primary, fallback):
    return ReaderPair(primary=primary, fallback=fallback)
