"""Tests for per-kind indexing and calculated fields."""

from datetime import datetime, timezone

import pytest

from indexer_service.errors import IndexerError
from indexer_service.indexing import Indexer, parse_block_time, took_ms
from indexer_service.types import IndexingTask, TaskKind

from .conftest import FakeChainReader, FakeStore


class TestBlockTime:
    def test_nanoseconds_truncated(self) -> None:
        parsed = parse_block_time("2022-03-01T10:00:05.123456789Z")

        assert parsed == datetime(2022, 3, 1, 10, 0, 5, 123456, tzinfo=timezone.utc)

    def test_short_fraction_padded(self) -> None:
        assert parse_block_time("2022-03-01T10:00:05.5Z").microsecond == 500000

    def test_no_fraction(self) -> None:
        assert parse_block_time("2022-03-01T10:00:05Z").second == 5

    def test_took_is_milliseconds_between_blocks(self) -> None:
        assert took_ms("2022-03-01T10:15:00.250Z", "2022-03-01T10:00:00Z") == 900250


class TestIndex:
    @pytest.mark.asyncio
    async def test_block_written(self) -> None:
        store, reader = FakeStore(), FakeChainReader()

        addresses = await Indexer(store).index(IndexingTask(TaskKind.BLOCK, 4), reader)

        assert addresses == []
        assert store.blocks[4].hash == "hash4"

    @pytest.mark.asyncio
    async def test_accounts_listing_vs_single_address(self) -> None:
        store, reader = FakeStore(), FakeChainReader()
        indexer = Indexer(store)

        await indexer.index(IndexingTask(TaskKind.ACCOUNTS, 4), reader)
        await indexer.index(IndexingTask(TaskKind.ACCOUNTS, 4, address="node7"), reader)

        assert reader.count("accounts") == 1
        assert reader.count("account") == 1
        assert set(store.accounts) == {("acc0", 4), ("acc1", 4), ("node7", 4)}


class TestCalculatedFields:
    @staticmethod
    async def seed(store, *heights):
        reader = FakeChainReader()
        indexer = Indexer(store)
        for h in heights:
            for kind in (TaskKind.BLOCK, TaskKind.NODES, TaskKind.APPS, TaskKind.ACCOUNTS):
                await indexer.index(IndexingTask(kind, h), reader)
        return indexer

    @pytest.mark.asyncio
    async def test_counts_and_took(self) -> None:
        store = FakeStore()
        indexer = await self.seed(store, 5, 6)

        await indexer.index_calculated_fields(6, compute_took=True)

        fields = store.calculated[6]
        assert (fields.nodes_quantity, fields.apps_quantity, fields.accounts_quantity) == (3, 2, 2)
        assert fields.took == 15 * 60 * 1000

    @pytest.mark.asyncio
    async def test_took_skipped_when_not_requested(self) -> None:
        store = FakeStore()
        indexer = await self.seed(store, 6)

        await indexer.index_calculated_fields(6, compute_took=False)

        assert store.calculated[6].took is None
        assert [e[1] for e in store.events if e[0] == "read_block"] == [6]

    @pytest.mark.asyncio
    async def test_genesis_has_no_took(self) -> None:
        store = FakeStore()
        indexer = await self.seed(store, 1)

        await indexer.index_calculated_fields(1, compute_took=True)

        assert store.calculated[1].took is None

    @pytest.mark.asyncio
    async def test_missing_block_fails(self) -> None:
        with pytest.raises(IndexerError):
            await Indexer(FakeStore()).index_calculated_fields(6, compute_took=False)

    @pytest.mark.asyncio
    async def test_missing_previous_block_fails(self) -> None:
        store = FakeStore()
        indexer = await self.seed(store, 6)

        with pytest.raises(IndexerError):
            await indexer.index_calculated_fields(6, compute_took=True)
        assert store.calculated == {}
