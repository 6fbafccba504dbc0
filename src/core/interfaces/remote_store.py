"""Contracts of the remote document and blob stores.

Why Protocol:
- The Core depends on a structural contract, not on a concrete backend.
- The in-memory adapter (tests, demos) and the HTTP gateway adapter are
  interchangeable without inheritance.

Rules of the contract:
- Every call is a coroutine and may fail with `NotFound`,
  `PermissionDenied` or `Unavailable` from `core.domain.errors`.
- There are no multi-document transactions; a single `set`/`update` is
  atomic on its own document, including any field transforms it carries.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Mapping, Protocol, runtime_checkable


@dataclass(frozen=True)
class OrderBy:
    field: str
    descending: bool = True


@dataclass(frozen=True)
class BlobMetadata:
    """Out-of-band metadata stored with a blob object."""

    content_type: str = "application/octet-stream"
    custom: Mapping[str, str] = field(default_factory=dict)


@runtime_checkable
class DocumentStore(Protocol):
    async def list(
        self,
        collection: str,
        filters: Mapping[str, Any] | None = None,
        order_by: OrderBy | None = None,
    ) -> list[dict[str, Any]]:
        """Return matching documents; each mapping includes its `id`."""

        ...

    async def get(self, collection: str, doc_id: str) -> dict[str, Any]:
        ...

    async def create(self, collection: str) -> str:
        """Allocate a new document id without writing anything."""

        ...

    async def set(self, collection: str, doc_id: str, record: Mapping[str, Any]) -> datetime:
        """Write the full record; returns the server timestamp of the write."""

        ...

    async def update(self, collection: str, doc_id: str, partial: Mapping[str, Any]) -> datetime:
        """Merge `partial` into an existing document (NotFound if absent)."""

        ...

    async def delete(self, collection: str, doc_id: str) -> None:
        ...


@runtime_checkable
class BlobStore(Protocol):
    async def upload(self, path: str, data: bytes, metadata: BlobMetadata) -> None:
        ...

    async def get_url(self, path: str) -> str:
        ...

    async def delete(self, path: str) -> None:
        ...
