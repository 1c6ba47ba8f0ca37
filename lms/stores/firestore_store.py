"""Cloud Firestore implementation of DocumentStore.

Wraps the async client from the Firebase Admin SDK.  Every call that
reaches the network is funnelled through ``_guard`` so Google API errors
surface as ``StoreError`` (502) instead of leaking client-library types
into the services.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Sequence
from typing import Any, TypeVar

from google.api_core import exceptions as gexc
from google.cloud import firestore
from google.cloud.firestore_v1.base_query import FieldFilter as _FirestoreFilter

from lms.core.errors import NotFoundError, StoreError
from lms.stores.document_store import (
    Document,
    FieldFilter,
    collection_path,
    document_path,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def _guard(op: str, path: str, awaitable: Awaitable[T]) -> T:
    try:
        return await awaitable
    except gexc.NotFound:
        raise NotFoundError(f"No document at {path}") from None
    except gexc.GoogleAPICallError as e:
        logger.error("Firestore %s failed  path=%s error=%s", op, path, e)
        raise StoreError(f"Document store {op} failed") from e


class _FirestoreBatch:
    def __init__(self, client: firestore.AsyncClient) -> None:
        self._client = client
        self._batch = client.batch()
        self._size = 0

    def set(self, path: str, data: dict[str, Any], *, merge: bool = False) -> None:
        self._batch.set(self._client.document(document_path(path)), data, merge=merge)
        self._size += 1

    def update(self, path: str, data: dict[str, Any]) -> None:
        self._batch.update(self._client.document(document_path(path)), data)
        self._size += 1

    def delete(self, path: str) -> None:
        self._batch.delete(self._client.document(document_path(path)))
        self._size += 1

    async def commit(self) -> None:
        await _guard("batch commit", f"<{self._size} writes>", self._batch.commit())


class FirestoreDocumentStore:
    """Satisfies the DocumentStore Protocol using Cloud Firestore."""

    def __init__(self, client: firestore.AsyncClient) -> None:
        self._client = client

    async def get(self, path: str) -> Document | None:
        ref = self._client.document(document_path(path))
        snap = await _guard("get", path, ref.get())
        if not snap.exists:
            return None
        return Document(id=snap.id, path=path, data=snap.to_dict() or {})

    async def set(
        self, path: str, data: dict[str, Any], *, merge: bool = False
    ) -> None:
        ref = self._client.document(document_path(path))
        await _guard("set", path, ref.set(data, merge=merge))

    async def add(self, collection: str, data: dict[str, Any]) -> str:
        ref = self._client.collection(collection_path(collection)).document()
        await _guard("add", ref.path, ref.set(data))
        return ref.id

    async def update(self, path: str, data: dict[str, Any]) -> None:
        ref = self._client.document(document_path(path))
        await _guard("update", path, ref.update(data))

    async def delete(self, path: str) -> None:
        ref = self._client.document(document_path(path))
        await _guard("delete", path, ref.delete())

    async def query(
        self,
        collection: str,
        *,
        where: Sequence[FieldFilter] = (),
        order_by: str | None = None,
        descending: bool = False,
        limit: int | None = None,
    ) -> list[Document]:
        q: Any = self._client.collection(collection_path(collection))
        for flt in where:
            q = q.where(filter=_FirestoreFilter(flt.field, flt.op, flt.value))
        if order_by is not None:
            direction = (
                firestore.Query.DESCENDING if descending else firestore.Query.ASCENDING
            )
            q = q.order_by(order_by, direction=direction)
        if limit is not None:
            q = q.limit(limit)

        async def _collect() -> list[Document]:
            return [
                Document(id=snap.id, path=snap.reference.path, data=snap.to_dict() or {})
                async for snap in q.stream()
            ]

        return await _guard("query", collection, _collect())

    def batch(self) -> _FirestoreBatch:
        return _FirestoreBatch(self._client)

    async def aclose(self) -> None:
        # The channel belongs to the Firebase app; lms.db.firebase deletes
        # the app on shutdown.
        return None
