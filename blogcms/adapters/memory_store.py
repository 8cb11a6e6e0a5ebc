"""
In-Memory Document Store Adapter.

In-process implementation of DocumentStorePort for tests and local runs.
Mirrors the hosted store's transaction contract closely enough that code
which breaks the contract fails here too:

- reads after writes inside a transaction raise TransactionOrderError
- writes are buffered and applied all-or-nothing at commit
- optimistic concurrency: a transaction whose read set changed before
  commit is re-run, up to ``max_attempts`` times
- every read yields to the event loop, so concurrent coroutines interleave
  the way remote calls would
"""

from __future__ import annotations

import asyncio
import copy
import logging
import operator
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass
from typing import Any, Literal, TypeVar
from uuid import uuid4

from blogcms.adapters.clock import SystemClock
from blogcms.core.ports.store import (
    SERVER_TIMESTAMP,
    DocumentNotFoundError,
    DocumentSnapshot,
    FieldFilter,
    TransactionAbortedError,
    TransactionOrderError,
    TransactionPort,
)
from blogcms.core.ports.time import TimePort

logger = logging.getLogger(__name__)

T = TypeVar("T")

DocKey = tuple[str, str]

_MISSING = object()

_COMPARATORS: dict[str, Callable[[Any, Any], bool]] = {
    "==": operator.eq,
    "!=": operator.ne,
    "<": operator.lt,
    "<=": operator.le,
    ">": operator.gt,
    ">=": operator.ge,
}


@dataclass(frozen=True)
class _Write:
    kind: Literal["set", "update", "delete"]
    key: DocKey
    data: dict[str, Any] | None = None


def _resolve_sentinels(value: Any, now: Any) -> Any:
    if value is SERVER_TIMESTAMP:
        return now
    if isinstance(value, dict):
        return {k: _resolve_sentinels(v, now) for k, v in value.items()}
    if isinstance(value, list):
        return [_resolve_sentinels(v, now) for v in value]
    return copy.deepcopy(value)


def _set_path(data: dict[str, Any], path: str, value: Any) -> None:
    """Set a dotted field path (``a.b.c``), creating intermediate maps."""
    *parents, leaf = path.split(".")
    for part in parents:
        child = data.get(part)
        if not isinstance(child, dict):
            child = data[part] = {}
        data = child
    data[leaf] = value


def _matches(data: dict[str, Any], flt: FieldFilter) -> bool:
    value = data.get(flt.field, _MISSING)
    if value is _MISSING:
        return False
    if flt.op == "array-contains":
        return isinstance(value, list) and flt.value in value
    if flt.op == "in":
        return value in flt.value
    try:
        return _COMPARATORS[flt.op](value, flt.value)
    except TypeError:
        return False


def _sort_key(value: Any, doc_id: str) -> tuple[Any, ...]:
    # Nulls order first, matching the hosted store.
    return (value is not None, value, doc_id)


class InMemoryTransaction:
    """TransactionPort bound to one attempt of a transaction function."""

    def __init__(self, store: InMemoryDocumentStore) -> None:
        self._store = store
        self.read_versions: dict[DocKey, int] = {}
        self.writes: list[_Write] = []

    async def get(self, collection: str, doc_id: str) -> DocumentSnapshot:
        if self.writes:
            raise TransactionOrderError(
                "Transactions require all reads to be executed before all writes"
            )
        await asyncio.sleep(0)
        key = (collection, doc_id)
        self.read_versions.setdefault(key, self._store._version(key))
        return self._store._snapshot(key)

    def set(self, collection: str, doc_id: str, data: dict[str, Any]) -> None:
        self.writes.append(_Write("set", (collection, doc_id), data))

    def update(self, collection: str, doc_id: str, data: dict[str, Any]) -> None:
        self.writes.append(_Write("update", (collection, doc_id), data))

    def delete(self, collection: str, doc_id: str) -> None:
        self.writes.append(_Write("delete", (collection, doc_id)))


class InMemoryDocumentStore:
    """DocumentStorePort backed by process memory."""

    def __init__(self, clock: TimePort | None = None, *, max_attempts: int = 5) -> None:
        self._clock = clock or SystemClock()
        self._max_attempts = max_attempts
        self._docs: dict[DocKey, dict[str, Any]] = {}
        self._versions: dict[DocKey, int] = {}
        self.commits = 0
        self.retries = 0

    # --- internals ---

    def _version(self, key: DocKey) -> int:
        return self._versions.get(key, 0)

    def _snapshot(self, key: DocKey) -> DocumentSnapshot:
        data = self._docs.get(key)
        return DocumentSnapshot(
            collection=key[0],
            id=key[1],
            data=copy.deepcopy(data) if data is not None else None,
        )

    def _apply(self, writes: Sequence[_Write]) -> None:
        """Apply a batch atomically: stage everything, then swap in."""
        now = self._clock.now_utc()
        staged: dict[DocKey, dict[str, Any] | None] = {}

        for write in writes:
            current = staged[write.key] if write.key in staged else self._docs.get(write.key)
            if write.kind == "set":
                staged[write.key] = _resolve_sentinels(write.data or {}, now)
            elif write.kind == "update":
                if current is None:
                    raise DocumentNotFoundError(*write.key)
                merged = copy.deepcopy(current)
                for path, value in _resolve_sentinels(write.data or {}, now).items():
                    _set_path(merged, path, value)
                staged[write.key] = merged
            else:
                staged[write.key] = None

        for key, data in staged.items():
            if data is None:
                self._docs.pop(key, None)
            else:
                self._docs[key] = data
            self._versions[key] = self._version(key) + 1
        self.commits += 1

    # --- DocumentStorePort ---

    def new_id(self, collection: str) -> str:
        while True:
            doc_id = uuid4().hex[:20]
            if (collection, doc_id) not in self._docs:
                return doc_id

    async def get(self, collection: str, doc_id: str) -> DocumentSnapshot:
        await asyncio.sleep(0)
        return self._snapshot((collection, doc_id))

    async def set(self, collection: str, doc_id: str, data: dict[str, Any]) -> None:
        await asyncio.sleep(0)
        self._apply([_Write("set", (collection, doc_id), data)])

    async def update(self, collection: str, doc_id: str, data: dict[str, Any]) -> None:
        await asyncio.sleep(0)
        self._apply([_Write("update", (collection, doc_id), data)])

    async def delete(self, collection: str, doc_id: str) -> None:
        await asyncio.sleep(0)
        self._apply([_Write("delete", (collection, doc_id))])

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
        await asyncio.sleep(0)
        rows = [
            (key[1], data)
            for key, data in self._docs.items()
            if key[0] == collection and all(_matches(data, f) for f in where)
        ]

        if order_by is not None:
            rows = [(doc_id, data) for doc_id, data in rows if order_by in data]

        def key_of(doc_id: str, data: dict[str, Any]) -> tuple[Any, ...]:
            value = data.get(order_by) if order_by is not None else None
            return _sort_key(value, doc_id)

        rows.sort(key=lambda row: key_of(*row), reverse=descending)

        if start_after is not None:
            cursor = key_of(start_after.id, start_after.data or {})
            if descending:
                rows = [row for row in rows if key_of(*row) < cursor]
            else:
                rows = [row for row in rows if key_of(*row) > cursor]

        if limit is not None:
            rows = rows[:limit]

        return [self._snapshot((collection, doc_id)) for doc_id, _ in rows]

    async def run_transaction(self, fn: Callable[[TransactionPort], Awaitable[T]]) -> T:
        for attempt in range(1, self._max_attempts + 1):
            txn = InMemoryTransaction(self)
            result = await fn(txn)

            # No suspension point between validation and apply.
            stale = [
                key
                for key, version in txn.read_versions.items()
                if self._version(key) != version
            ]
            if not stale:
                self._apply(txn.writes)
                return result

            self.retries += 1
            logger.warning(
                "Transaction conflict on %s, retrying (attempt %d/%d)",
                "/".join(stale[0]),
                attempt,
                self._max_attempts,
            )

        raise TransactionAbortedError(self._max_attempts)
