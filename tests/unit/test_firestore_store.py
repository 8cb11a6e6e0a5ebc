"""
Firestore adapter tests against a mocked AsyncClient.

Skipped when the optional firestore extra is not installed.
"""

from unittest.mock import AsyncMock, MagicMock

import pytest

firestore = pytest.importorskip("google.cloud.firestore")

from google.api_core.exceptions import NotFound  # noqa: E402

from blogcms.adapters.firestore_store import (  # noqa: E402
    FirestoreDocumentStore,
    FirestoreTransaction,
    _encode,
)
from blogcms.core.ports.store import (  # noqa: E402
    SERVER_TIMESTAMP,
    DocumentNotFoundError,
    TransactionOrderError,
)


def _snapshot(doc_id: str, data: dict | None) -> MagicMock:
    snap = MagicMock()
    snap.id = doc_id
    snap.exists = data is not None
    snap.to_dict.return_value = data
    return snap


@pytest.fixture
def client() -> MagicMock:
    return MagicMock()


@pytest.fixture
def fs_store(client: MagicMock) -> FirestoreDocumentStore:
    return FirestoreDocumentStore(client)


def test_encode_maps_server_timestamp():
    encoded = _encode({"at": SERVER_TIMESTAMP, "items": [{"at": SERVER_TIMESTAMP}], "n": 1})
    assert encoded["at"] is firestore.SERVER_TIMESTAMP
    assert encoded["items"][0]["at"] is firestore.SERVER_TIMESTAMP
    assert encoded["n"] == 1


@pytest.mark.asyncio
async def test_get_converts_snapshot(client: MagicMock, fs_store: FirestoreDocumentStore):
    doc_ref = client.collection.return_value.document.return_value
    doc_ref.get = AsyncMock(return_value=_snapshot("en_hello", {"postId": "p1"}))

    snap = await fs_store.get("blogSlugIndex", "en_hello")

    client.collection.assert_called_with("blogSlugIndex")
    assert snap.exists is True
    assert snap.get("postId") == "p1"


@pytest.mark.asyncio
async def test_update_missing_document(client: MagicMock, fs_store: FirestoreDocumentStore):
    doc_ref = client.collection.return_value.document.return_value
    doc_ref.update = AsyncMock(side_effect=NotFound("no document"))

    with pytest.raises(DocumentNotFoundError):
        await fs_store.update("blogPosts", "p1", {"status": "published"})


@pytest.mark.asyncio
async def test_transaction_rejects_read_after_write(fs_store: FirestoreDocumentStore):
    txn = FirestoreTransaction(fs_store, MagicMock())
    txn.set("blogSlugIndex", "en_hello", {"postId": "p1"})

    with pytest.raises(TransactionOrderError):
        await txn.get("blogPosts", "p1")


def test_transaction_writes_are_buffered_on_native_transaction(
    client: MagicMock, fs_store: FirestoreDocumentStore
):
    native = MagicMock()
    txn = FirestoreTransaction(fs_store, native)

    txn.set("blogSlugIndex", "en_hello", {"claimedAt": SERVER_TIMESTAMP})
    txn.delete("blogSlugIndex", "en_old")

    native.set.assert_called_once()
    assert native.set.call_args.args[1]["claimedAt"] is firestore.SERVER_TIMESTAMP
    native.delete.assert_called_once()
