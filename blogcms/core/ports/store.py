"""
Document Store Interface.

Protocol-based interface for a hosted transactional document database.
Implementations: in-memory (tests, local runs), Google Cloud Firestore.

Transaction contract:
- Every read issued inside a transaction must precede every write.
  A read after a write raises TransactionOrderError.
- Writes are buffered and applied atomically at commit; if the
  transaction function raises, nothing is applied.
- Reads are tracked; a document changed by someone else before commit
  causes the transaction function to be re-run. When the store gives up,
  TransactionAbortedError is raised.
- SERVER_TIMESTAMP values are resolved by the store when the write lands.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass
from typing import Any, Literal, Protocol, TypeVar

T = TypeVar("T")

FilterOp = Literal["==", "!=", "<", "<=", ">", ">=", "array-contains", "in"]


class _ServerTimestamp:
    """Sentinel replaced with the commit time by the store."""

    _instance: _ServerTimestamp | None = None

    def __new__(cls) -> _ServerTimestamp:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "SERVER_TIMESTAMP"


SERVER_TIMESTAMP: Any = _ServerTimestamp()


# --- Errors ---


class StoreError(Exception):
    """Base class for document store failures."""


class DocumentNotFoundError(StoreError):
    """Raised when updating a document that does not exist."""

    def __init__(self, collection: str, doc_id: str) -> None:
        self.collection = collection
        self.doc_id = doc_id
        super().__init__(f"Document {collection}/{doc_id} not found")


class TransactionOrderError(StoreError):
    """Raised when a transaction reads after it has written."""


class TransactionAbortedError(StoreError):
    """Raised when a transaction could not commit within its attempt limit."""

    def __init__(self, attempts: int) -> None:
        self.attempts = attempts
        super().__init__(f"Transaction aborted after {attempts} attempts due to contention")


# --- Values ---


@dataclass(frozen=True)
class DocumentSnapshot:
    """Point-in-time view of a document (``data`` is None when missing)."""

    collection: str
    id: str
    data: dict[str, Any] | None

    @property
    def exists(self) -> bool:
        return self.data is not None

    def to_dict(self) -> dict[str, Any]:
        return dict(self.data or {})

    def get(self, field: str, default: Any = None) -> Any:
        if self.data is None:
            return default
        return self.data.get(field, default)


@dataclass(frozen=True)
class FieldFilter:
    """A single where-clause."""

    field: str
    op: FilterOp
    value: Any


# --- Ports ---


class TransactionPort(Protocol):
    """Handle passed to a transaction function."""

    async def get(self, collection: str, doc_id: str) -> DocumentSnapshot:
        """Read a document. Must not follow any write."""
        ...

    def set(self, collection: str, doc_id: str, data: dict[str, Any]) -> None:
        """Buffer a full overwrite."""
        ...

    def update(self, collection: str, doc_id: str, data: dict[str, Any]) -> None:
        """Buffer a partial update; dotted keys (``a.b``) address nested fields."""
        ...

    def delete(self, collection: str, doc_id: str) -> None:
        """Buffer a delete."""
        ...


class DocumentStorePort(Protocol):
    """Transactional document database."""

    def new_id(self, collection: str) -> str:
        """Allocate an unused document id."""
        ...

    async def get(self, collection: str, doc_id: str) -> DocumentSnapshot:
        ...

    async def set(self, collection: str, doc_id: str, data: dict[str, Any]) -> None:
        ...

    async def update(self, collection: str, doc_id: str, data: dict[str, Any]) -> None:
        """
        Partial update; dotted keys address nested fields.

        Raises DocumentNotFoundError if the document is missing.
        """
        ...

    async def delete(self, collection: str, doc_id: str) -> None:
        ...

    async def query(
        self,
        collection: str,
        *,
        where: Sequence[FieldFilter] = (),
        order_by: str | None = None,
        descending: bool = False,
        limit: int | None = None,
        start_after: DocumentSnapshot | None = None,
    ) -> list[DocumentSnapshot]:
        """
        Query a collection.

        Documents missing the ``order_by`` field are excluded. Ties are
        broken by document id in the same direction. ``start_after`` is an
        exclusive cursor taken from a previous page.
        """
        ...

    async def run_transaction(self, fn: Callable[[TransactionPort], Awaitable[T]]) -> T:
        """Run ``fn`` inside a transaction and return its result."""
        ...
