import os
from dataclasses import dataclass
from typing import Optional

from indexer_service.errors import ConfigurationError
from indexer_service.types import PHASE1_KINDS, Bounded, Continuous, RunMode


# -----------------------------
# Environment helpers
# -----------------------------
def get_int(name: str, default: int) -> int:
    """Integer env var; missing or malformed values fall back to the default."""
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def get_string(name: str, default: str = "") -> str:
    return os.getenv(name) or default


def must_get_string(name: str) -> str:
    value = os.getenv(name)
    if not value:
        raise ConfigurationError(f"missing required environment variable: {name}")
    return value


def build_run_mode(from_height: int, to_height: int) -> RunMode:
    """
    Bounded only when both bounds are positive, continuous otherwise.
    """
    if from_height > 0 and to_height > 0:
        if to_height < from_height:
            raise ConfigurationError(
                f"to height {to_height} is lower than from height {from_height}"
            )
        return Bounded(from_height=from_height, to_height=to_height)
    return Continuous()


@dataclass(frozen=True)
class ServiceConfig:
    connection_string: str
    main_node: str
    fallback_node: Optional[str]

    run_mode: RunMode

    client_timeout_ms: int = 60000
    client_retries: int = 3
    service_retries: int = 3
    concurrency: int = 100
    request_interval_ms: int = 5000

    page_size: int = 1000
    db_pool_size: int = 20
    metrics_port: int = 8000
    log_level: str = "INFO"

    def __post_init__(self):
        if self.service_retries < 1:
            raise ConfigurationError(
                f"SERVICE_RETRIES must be at least 1, got {self.service_retries}"
            )
        if self.concurrency < len(PHASE1_KINDS):
            raise ConfigurationError(
                f"CONCURRENCY must be at least {len(PHASE1_KINDS)}, got {self.concurrency}"
            )
        if self.page_size < 1:
            raise ConfigurationError(f"PAGE_SIZE must be positive, got {self.page_size}")

    @property
    def poll_interval(self) -> float:
        return self.request_interval_ms / 1000

    @property
    def client_timeout(self) -> float:
        return self.client_timeout_ms / 1000

    @classmethod
    def from_env(cls) -> "ServiceConfig":
        run_mode = build_run_mode(
            get_int("FROM_HEIGHT", -1),
            get_int("TO_HEIGHT", -1),
        )

        return cls(
            connection_string=must_get_string("CONNECTION_STRING"),
            main_node=must_get_string("MAIN_NODE"),
            fallback_node=get_string("FALLBACK_NODE") or None,
            run_mode=run_mode,
            client_timeout_ms=get_int("CLIENT_TIMEOUT", 60000),
            client_retries=get_int("CLIENT_RETRIES", 3),
            service_retries=get_int("SERVICE_RETRIES", 3),
            concurrency=get_int("CONCURRENCY", 100),
            request_interval_ms=get_int("REQUEST_INTERVAL", 5000),
            page_size=get_int("PAGE_SIZE", 1000),
            db_pool_size=get_int("DB_POOL_SIZE", 20),
            metrics_port=get_int("METRICS_PORT", 8000),
            log_level=get_string("LOG_LEVEL", "INFO"),
        )
