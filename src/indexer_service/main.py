import sys
import asyncio

from prometheus_client import start_http_server

from indexer_service.config import ServiceConfig
from indexer_service.errors import ConfigurationError, IndexerError
from indexer_service.execution import TaskRunner
from indexer_service.indexing import Indexer
from indexer_service.logging import log, setup_logging
from indexer_service.metrics import MetricsContext
from indexer_service.orchestrator import Orchestrator
from indexer_service.planning import build_resolver
from indexer_service.reader import AsyncRpcClient, ChainReader, ReaderPair
from indexer_service.store import BaseStore, PostgresStore


def build_readers(config: ServiceConfig) -> ReaderPair:
    """Each node gets its own client so transport settings stay independent."""
    primary = ChainReader(
        "main",
        config.main_node,
        AsyncRpcClient(timeout=config.client_timeout, retries=config.client_retries),
        page_size=config.page_size,
    )

    fallback = None
    if config.fallback_node:
        fallback = ChainReader(
            "fallback",
            config.fallback_node,
            AsyncRpcClient(timeout=config.client_timeout, retries=config.client_retries),
            page_size=config.page_size,
        )

    return ReaderPair(primary=primary, fallback=fallback)


def build_orchestrator(
    config: ServiceConfig,
    store: BaseStore,
    readers: ReaderPair,
    metrics: MetricsContext | None = None,
) -> Orchestrator:
    resolver = build_resolver(config.run_mode, store, readers, metrics)
    runner = TaskRunner(Indexer(store), readers, config.service_retries, metrics)

    return Orchestrator(
        resolver=resolver,
        runner=runner,
        run_mode=config.run_mode,
        concurrency=config.concurrency,
        poll_interval=config.poll_interval,
        metrics=metrics,
    )


async def run_service(config: ServiceConfig):
    metrics = MetricsContext.from_env()
    readers = build_readers(config)

    store = await asyncio.to_thread(
        PostgresStore.from_connection_string,
        config.connection_string,
        config.db_pool_size,
    )
    await asyncio.to_thread(store.create_tables)

    try:
        orchestrator = build_orchestrator(config, store, readers, metrics)
        await orchestrator.run()
    finally:
        for reader in readers.readers():
            await reader.client.close()
        await store.close()


def main() -> int:
    try:
        config = ServiceConfig.from_env()
    except ConfigurationError as e:
        log.error("setup_service_failed", extra={"error": str(e)})
        return 1

    setup_logging(config.log_level)

    if config.metrics_port > 0:
        # Prometheus metrics endpoint
        start_http_server(config.metrics_port)

    log.info(
        "▶️ service_start",
        extra={
            "main_node": config.main_node,
            "fallback_node": config.fallback_node,
            "concurrency": config.concurrency,
            "service_retries": config.service_retries,
        },
    )

    try:
        asyncio.run(run_service(config))
    except ConfigurationError as e:
        log.error("invalid_height_range", extra={"error": str(e)})
        return 1
    except IndexerError as e:
        log.error("start_service_failed", extra={"error": str(e)})
        return 1
    except Exception as e:
        log.exception("start_service_failed", extra={"error": str(e)})
        return 1

    log.info("execution_finished")
    return 0


if __name__ == "__main__":
    sys.exit(main())
