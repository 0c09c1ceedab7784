# Balance/UTXO store package

from indexer.store.base import (
    LedgerConflictError,
    LedgerStore,
    LedgerStoreError,
    StoredBlock,
    StoredOutput,
)
from indexer.store.memory import InMemoryLedgerStore
from indexer.store.sql import SqlLedgerStore

__all__ = [
    "LedgerStore",
    "LedgerStoreError",
    "LedgerConflictError",
    "StoredBlock",
    "StoredOutput",
    "InMemoryLedgerStore",
    "SqlLedgerStore",
]
