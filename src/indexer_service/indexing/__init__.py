from .indexer import Indexer, parse_block_time, took_ms

__all__ = [
    "Indexer",
    "parse_block_time",
    "took_ms",
]
