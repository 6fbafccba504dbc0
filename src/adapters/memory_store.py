"""In-memory document and blob stores.

Why:
- Deterministic stand-ins for the remote stores in tests and local demos.
- They follow the same rules as the remote side: ids and timestamps are
  assigned by the store, writes to one document are atomic, and there is no
  transaction across documents.

Each call yields to the event loop once before touching state, so concurrent
workflows interleave around remote calls as they would against a real store.
"""

from __future__ import annotations

import asyncio
import copy
import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Mapping

from core.domain.errors import InvalidArgument, NotFound
from core.domain.transforms import (
    DELETE_FIELD,
    SERVER_TIMESTAMP,
    ArrayRemove,
    ArrayUnion,
    FieldTransform,
)
from core.interfaces.remote_store import BlobMetadata, OrderBy


class ServerClock:
    """Strictly increasing UTC timestamps."""

    def __init__(self, now: Callable[[], datetime] | None = None) -> None:
        self._now = now or (lambda: datetime.now(timezone.utc))
        self._last: datetime | None = None

    def tick(self) -> datetime:
        stamp = self._now()
        if self._last is not None and stamp <= self._last:
            stamp = self._last + timedelta(microseconds=1)
        self._last = stamp
        return stamp


def _sort_key(field: str):
    def key(doc: Mapping[str, Any]) -> tuple[bool, Any]:
        value = doc.get(field)
        return (value is None, value)

    return key


class InMemoryDocumentStore:
    def __init__(self, clock: ServerClock | None = None) -> None:
        self._clock = clock or ServerClock()
        self._collections: dict[str, dict[str, dict[str, Any]]] = {}
        self.calls: list[tuple[str, str]] = []

    def _docs(self, collection: str) -> dict[str, dict[str, Any]]:
        return self._collections.setdefault(collection, {})

    async def _enter(self, operation: str, collection: str) -> None:
        self.calls.append((operation, collection))
        await asyncio.sleep(0)

    def count(self, operation: str, collection: str | None = None) -> int:
        return sum(
            1 for op, coll in self.calls if op == operation and collection in (None, coll)
        )

    async def list(
        self,
        collection: str,
        filters: Mapping[str, Any] | None = None,
        order_by: OrderBy | None = None,
    ) -> list[dict[str, Any]]:
        await self._enter("list", collection)
        docs = [
            {**copy.deepcopy(doc), "id": doc_id}
            for doc_id, doc in self._docs(collection).items()
            if all(doc.get(k) == v for k, v in (filters or {}).items())
        ]
        if order_by is not None:
            # None values sort last in both directions.
            present = [d for d in docs if d.get(order_by.field) is not None]
            missing = [d for d in docs if d.get(order_by.field) is None]
            present.sort(key=_sort_key(order_by.field), reverse=order_by.descending)
            docs = present + missing
        return docs

    async def get(self, collection: str, doc_id: str) -> dict[str, Any]:
        await self._enter("get", collection)
        doc = self._docs(collection).get(doc_id)
        if doc is None:
            raise NotFound(f"{collection}/{doc_id}")
        return {**copy.deepcopy(doc), "id": doc_id}

    async def create(self, collection: str) -> str:
        await self._enter("create", collection)
        return uuid.uuid4().hex[:20]

    async def set(self, collection: str, doc_id: str, record: Mapping[str, Any]) -> datetime:
        await self._enter("set", collection)
        stamp = self._clock.tick()
        doc: dict[str, Any] = {}
        for key, value in record.items():
            if key == "id":
                continue
            self._apply(doc, key, value, stamp, allow_delete=False)
        self._docs(collection)[doc_id] = doc
        return stamp

    async def update(
        self, collection: str, doc_id: str, partial: Mapping[str, Any]
    ) -> datetime:
        await self._enter("update", collection)
        doc = self._docs(collection).get(doc_id)
        if doc is None:
            raise NotFound(f"{collection}/{doc_id}")
        stamp = self._clock.tick()
        staged = copy.deepcopy(doc)
        for key, value in partial.items():
            if key == "id":
                continue
            self._apply(staged, key, value, stamp, allow_delete=True)
        self._docs(collection)[doc_id] = staged
        return stamp

    async def delete(self, collection: str, doc_id: str) -> None:
        await self._enter("delete", collection)
        if self._docs(collection).pop(doc_id, None) is None:
            raise NotFound(f"{collection}/{doc_id}")

    @staticmethod
    def _apply(
        doc: dict[str, Any],
        key: str,
        value: Any,
        stamp: datetime,
        *,
        allow_delete: bool,
    ) -> None:
        if not isinstance(value, FieldTransform):
            doc[key] = copy.deepcopy(value)
        elif value is SERVER_TIMESTAMP:
            doc[key] = stamp
        elif value is DELETE_FIELD:
            if not allow_delete:
                raise InvalidArgument(f"DELETE_FIELD is only valid in updates ({key})")
            doc.pop(key, None)
        elif isinstance(value, ArrayUnion):
            current = list(doc.get(key) or [])
            for item in value.values:
                if item not in current:
                    current.append(copy.deepcopy(item))
            doc[key] = current
        elif isinstance(value, ArrayRemove):
            doc[key] = [item for item in doc.get(key) or [] if item not in value.values]
        else:
            raise InvalidArgument(f"Unsupported transform {value!r}")


class InMemoryBlobStore:
    def __init__(self, base_url: str = "memory://blobs") -> None:
        self._base_url = base_url.rstrip("/")
        self._objects: dict[str, tuple[bytes, BlobMetadata]] = {}
        self.calls: list[tuple[str, str]] = []

    async def _enter(self, operation: str, path: str) -> None:
        self.calls.append((operation, path))
        await asyncio.sleep(0)

    async def upload(self, path: str, data: bytes, metadata: BlobMetadata) -> None:
        await self._enter("upload", path)
        self._objects[path] = (bytes(data), metadata)

    async def get_url(self, path: str) -> str:
        await self._enter("get_url", path)
        if path not in self._objects:
            raise NotFound(f"blob {path}")
        return f"{self._base_url}/{path}"

    async def delete(self, path: str) -> None:
        await self._enter("delete", path)
        if self._objects.pop(path, None) is None:
            raise NotFound(f"blob {path}")

    def exists(self, path: str) -> bool:
        return path in self._objects

    def read(self, path: str) -> bytes:
        return self._objects[path][0]

    def metadata(self, path: str) -> BlobMetadata:
        return self._objects[path][1]

    def paths(self) -> list[str]:
        return sorted(self._objects)

