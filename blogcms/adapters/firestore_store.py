"""
Firestore Document Store Adapter.

DocumentStorePort implementation on google-cloud-firestore's AsyncClient.
Credentials come from the environment (GOOGLE_APPLICATION_CREDENTIALS or
the Firestore emulator via FIRESTORE_EMULATOR_HOST).
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable, Sequence
from typing import Any, TypeVar

from google.api_core.exceptions import NotFound
from google.cloud import firestore
from google.cloud.firestore_v1.base_query import FieldFilter as FirestoreFieldFilter

from blogcms.core.ports.store import (
    SERVER_TIMESTAMP,
    DocumentNotFoundError,
    DocumentSnapshot,
    FieldFilter,
    TransactionAbortedError,
    TransactionOrderError,
    TransactionPort,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

_OPS = {"array-contains": "array_contains"}


def _encode(value: Any) -> Any:
    if value is SERVER_TIMESTAMP:
        return firestore.SERVER_TIMESTAMP
    if isinstance(value, dict):
        return {k: _encode(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_encode(v) for v in value]
    return value


def to_snapshot(collection: str, snap: Any) -> DocumentSnapshot:
    """Convert a Firestore snapshot to the port's snapshot."""
    return DocumentSnapshot(
        collection=collection,
        id=snap.id,
        data=snap.to_dict() if snap.exists else None,
    )


class FirestoreTransaction:
    """TransactionPort over a Firestore AsyncTransaction."""

    def __init__(self, store: FirestoreDocumentStore, transaction: Any) -> None:
        self._store = store
        self._transaction = transaction
        self._wrote = False

    async def get(self, collection: str, doc_id: str) -> DocumentSnapshot:
        if self._wrote:
            raise TransactionOrderError(
                "Transactions require all reads to be executed before all writes"
            )
        snap = await self._store.ref(collection, doc_id).get(transaction=self._transaction)
        return to_snapshot(collection, snap)

    def set(self, collection: str, doc_id: str, data: dict[str, Any]) -> None:
        self._wrote = True
        self._transaction.set(self._store.ref(collection, doc_id), _encode(data))

    def update(self, collection: str, doc_id: str, data: dict[str, Any]) -> None:
        self._wrote = True
        self._transaction.update(self._store.ref(collection, doc_id), _encode(data))

    def delete(self, collection: str, doc_id: str) -> None:
        self._wrote = True
        self._transaction.delete(self._store.ref(collection, doc_id))


class FirestoreDocumentStore:
    """DocumentStorePort backed by Cloud Firestore."""

    def __init__(
        self,
        client: Any | None = None,
        *,
        project: str | None = None,
        max_attempts: int = 5,
    ) -> None:
        self._client = client if client is not None else firestore.AsyncClient(project=project)
        self._max_attempts = max_attempts

    def ref(self, collection: str, doc_id: str) -> Any:
        return self._client.collection(collection).document(doc_id)

    def new_id(self, collection: str) -> str:
        return self._client.collection(collection).document().id

    async def get(self, collection: str, doc_id: str) -> DocumentSnapshot:
        snap = await self.ref(collection, doc_id).get()
        return to_snapshot(collection, snap)

    async def set(self, collection: str, doc_id: str, data: dict[str, Any]) -> None:
        await self.ref(collection, doc_id).set(_encode(data))

    async def update(self, collection: str, doc_id: str, data: dict[str, Any]) -> None:
        try:
            await self.ref(collection, doc_id).update(_encode(data))
        except NotFound as e:
            raise DocumentNotFoundError(collection, doc_id) from e

    async def delete(self, collection: str, doc_id: str) -> None:
        await self.ref(collection, doc_id).delete()

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
        query: Any = self._client.collection(collection)
        for flt in where:
            query = query.where(
                filter=FirestoreFieldFilter(flt.field, _OPS.get(flt.op, flt.op), flt.value)
            )
        if order_by is not None:
            direction = firestore.Query.DESCENDING if descending else firestore.Query.ASCENDING
            query = query.order_by(order_by, direction=direction)
        if start_after is not None:
            # Cursor from the live document so ties on order_by resolve by id.
            cursor = await self.ref(collection, start_after.id).get()
            query = query.start_after(cursor)
        if limit is not None:
            query = query.limit(limit)

        return [to_snapshot(collection, snap) async for snap in query.stream()]

    async def run_transaction(self, fn: Callable[[TransactionPort], Awaitable[T]]) -> T:
        transaction = self._client.transaction(max_attempts=self._max_attempts)

        @firestore.async_transactional
        async def _run(txn: Any) -> T:
            return await fn(FirestoreTransaction(self, txn))

        try:
            return await _run(transaction)
        except ValueError as e:
            if "Failed to commit transaction" in str(e):
                logger.warning("Firestore transaction exhausted %d attempts", self._max_attempts)
                raise TransactionAbortedError(self._max_attempts) from e
            raise
