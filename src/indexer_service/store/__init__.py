from .base import BaseStore
from .postgres import PostgresStore

__all__ = [
    "BaseStore",
    "PostgresStore",
]
