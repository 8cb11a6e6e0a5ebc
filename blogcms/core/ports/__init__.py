# blogcms: Ports (Protocol Interfaces)
# Abstract interfaces for adapters; no implementations here

from blogcms.core.ports.store import (
    SERVER_TIMESTAMP,
    DocumentNotFoundError,
    DocumentSnapshot,
    DocumentStorePort,
    FieldFilter,
    StoreError,
    TransactionAbortedError,
    TransactionOrderError,
    TransactionPort,
)
from blogcms.core.ports.time import TimePort

__all__ = [
    # Document store
    "SERVER_TIMESTAMP",
    "DocumentNotFoundError",
    "DocumentSnapshot",
    "DocumentStorePort",
    "FieldFilter",
    "StoreError",
    "TransactionAbortedError",
    "TransactionOrderError",
    "TransactionPort",
    # Time
    "TimePort",
]
