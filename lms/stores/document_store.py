"""Document store abstraction.

The service keeps no tables of its own: every record lives in a
hierarchical document database addressed by slash-separated paths, e.g.

    courses/{courseId}
    users/{uid}/completedSubCourses/{courseId}
    certificates/{verificationId}

A path with an even number of segments names a document; an odd number
names a collection.  ``DocumentStore`` is the narrow surface the services
use.  ``InMemoryDocumentStore`` backs tests and local development;
``lms.stores.firestore_store.FirestoreDocumentStore`` backs production.

Write semantics match the hosted store:

  set(merge=False)  replace the whole document
  set(merge=True)   deep-merge nested maps into the existing document
  update()          replace the given top-level fields; the document must exist
  batch()           a group of writes committed atomically, at most
                    MAX_BATCH_WRITES of them
"""

from __future__ import annotations

import copy
import uuid
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any, Literal, Protocol, runtime_checkable

from lms.core.errors import NotFoundError, StoreError

# The hosted store refuses larger batches.
MAX_BATCH_WRITES = 500

FilterOp = Literal["==", "!=", "<", "<=", ">", ">=", "in"]


@dataclass(frozen=True, slots=True)
class FieldFilter:
    field: str
    op: FilterOp
    value: Any


@dataclass(frozen=True, slots=True)
class Document:
    """A snapshot of one stored document."""

    id: str
    path: str
    data: dict[str, Any] = field(default_factory=dict)


def split_path(path: str) -> list[str]:
    parts = [p for p in path.strip("/").split("/") if p]
    if not parts:
        raise StoreError("Empty document path")
    return parts


def document_path(*segments: str) -> str:
    path = "/".join(segments)
    if len(split_path(path)) % 2 != 0:
        raise StoreError(f"Not a document path: {path}")
    return path


def collection_path(*segments: str) -> str:
    path = "/".join(segments)
    if len(split_path(path)) % 2 != 1:
        raise StoreError(f"Not a collection path: {path}")
    return path


def new_document_id() -> str:
    # Same alphabet and length as the hosted store's auto ids.
    return uuid.uuid4().hex[:20]


@runtime_checkable
class WriteBatch(Protocol):
    def set(self, path: str, data: dict[str, Any], *, merge: bool = False) -> None: ...
    def update(self, path: str, data: dict[str, Any]) -> None: ...
    def delete(self, path: str) -> None: ...
    async def commit(self) -> None: ...


@runtime_checkable
class DocumentStore(Protocol):
    async def get(self, path: str) -> Document | None: ...

    async def set(
        self, path: str, data: dict[str, Any], *, merge: bool = False
    ) -> None: ...

    async def add(self, collection: str, data: dict[str, Any]) -> str:
        """Create a document with a generated id; return the id."""
        ...

    async def update(self, path: str, data: dict[str, Any]) -> None: ...

    async def delete(self, path: str) -> None: ...

    async def query(
        self,
        collection: str,
        *,
        where: Sequence[FieldFilter] = (),
        order_by: str | None = None,
        descending: bool = False,
        limit: int | None = None,
    ) -> list[Document]: ...

    def batch(self) -> WriteBatch: ...

    async def aclose(self) -> None: ...


# ---------------------------------------------------------------------------
# In-memory implementation
# ---------------------------------------------------------------------------


def deep_merge(base: dict[str, Any], incoming: dict[str, Any]) -> dict[str, Any]:
    merged = dict(base)
    for key, value in incoming.items():
        current = merged.get(key)
        if isinstance(current, dict) and isinstance(value, dict):
            merged[key] = deep_merge(current, value)
        else:
            merged[key] = copy.deepcopy(value)
    return merged


_MISSING = object()


def _matches(data: dict[str, Any], flt: FieldFilter) -> bool:
    value = data.get(flt.field, _MISSING)
    if value is _MISSING:
        return False
    try:
        if flt.op == "==":
            return value == flt.value
        if flt.op == "!=":
            return value != flt.value
        if flt.op == "in":
            return value in flt.value
        if flt.op == "<":
            return value < flt.value
        if flt.op == "<=":
            return value <= flt.value
        if flt.op == ">":
            return value > flt.value
        if flt.op == ">=":
            return value >= flt.value
    except TypeError:
        # Mixed types never match, as in the hosted store.
        return False
    raise StoreError(f"Unsupported filter operator: {flt.op}")


class _InMemoryBatch:
    def __init__(self, store: InMemoryDocumentStore) -> None:
        self._store = store
        self._ops: list[tuple[str, str, dict[str, Any], bool]] = []
        self._committed = False

    def set(self, path: str, data: dict[str, Any], *, merge: bool = False) -> None:
        self._ops.append(("set", document_path(path), copy.deepcopy(data), merge))

    def update(self, path: str, data: dict[str, Any]) -> None:
        self._ops.append(("update", document_path(path), copy.deepcopy(data), False))

    def delete(self, path: str) -> None:
        self._ops.append(("delete", document_path(path), {}, False))

    async def commit(self) -> None:
        if self._committed:
            raise StoreError("Batch already committed")
        if len(self._ops) > MAX_BATCH_WRITES:
            raise StoreError(
                f"Batch of {len(self._ops)} writes exceeds the limit of {MAX_BATCH_WRITES}"
            )
        self._committed = True
        self._store._apply(self._ops)


class InMemoryDocumentStore:
    """Dict-backed store with the same read/write semantics as the hosted one.

    Reads return deep copies, so callers can never mutate stored state
    without going through a write.
    """

    def __init__(self) -> None:
        self._docs: dict[str, dict[str, Any]] = {}

    def _apply(self, ops: list[tuple[str, str, dict[str, Any], bool]]) -> None:
        # Validate first so a failing op leaves nothing half-written.
        staged = dict(self._docs)
        for kind, path, data, merge in ops:
            if kind == "set":
                if merge and path in staged:
                    staged[path] = deep_merge(staged[path], data)
                else:
                    staged[path] = data
            elif kind == "update":
                if path not in staged:
                    raise NotFoundError(f"No document to update: {path}")
                staged[path] = {**staged[path], **data}
            else:
                staged.pop(path, None)
        self._docs = staged

    async def get(self, path: str) -> Document | None:
        path = document_path(path)
        data = self._docs.get(path)
        if data is None:
            return None
        return Document(id=split_path(path)[-1], path=path, data=copy.deepcopy(data))

    async def set(
        self, path: str, data: dict[str, Any], *, merge: bool = False
    ) -> None:
        batch = self.batch()
        batch.set(path, data, merge=merge)
        await batch.commit()

    async def add(self, collection: str, data: dict[str, Any]) -> str:
        doc_id = new_document_id()
        await self.set(f"{collection_path(collection)}/{doc_id}", data)
        return doc_id

    async def update(self, path: str, data: dict[str, Any]) -> None:
        batch = self.batch()
        batch.update(path, data)
        await batch.commit()

    async def delete(self, path: str) -> None:
        batch = self.batch()
        batch.delete(path)
        await batch.commit()

    async def query(
        self,
        collection: str,
        *,
        where: Sequence[FieldFilter] = (),
        order_by: str | None = None,
        descending: bool = False,
        limit: int | None = None,
    ) -> list[Document]:
        parent = "/".join(split_path(collection_path(collection)))
        depth = len(split_path(parent)) + 1

        docs: list[Document] = []
        for path, data in self._docs.items():
            parts = split_path(path)
            if len(parts) != depth or "/".join(parts[:-1]) != parent:
                continue
            if not all(_matches(data, flt) for flt in where):
                continue
            docs.append(Document(id=parts[-1], path=path, data=copy.deepcopy(data)))

        if order_by is not None:
            # Documents without the ordering field are excluded, as in the
            # hosted store.
            docs = [d for d in docs if order_by in d.data]
            docs.sort(key=lambda d: d.data[order_by], reverse=descending)
        else:
            docs.sort(key=lambda d: d.id)

        if limit is not None:
            docs = docs[:limit]
        return docs

    def batch(self) -> _InMemoryBatch:
        return _InMemoryBatch(self)

    async def aclose(self) -> None:
        return None

    def clear(self) -> None:
        self._docs.clear()
