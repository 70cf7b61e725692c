from .client import AsyncRpcClient, RequestTrace
from .chain_reader import ChainReader, ReaderPair

__all__ = [
    "AsyncRpcClient",
    "RequestTrace",
    "ChainReader",
    "ReaderPair",
]
