"""Query cache and per-collection entity access.

Two pieces:
- `CacheContext` holds cached query results for one application session,
  keyed by `QueryScope`. It is passed in explicitly (no module globals), and
  every consumer of the session shares it.
- `EntityCache[T]` is the typed front for one collection: `fetch` reads
  through the context, and `create`/`update`/`delete` write to the remote
  store and then invalidate every cached scope of the collection.

Invalidation is collection-wide on purpose: a partial update may change which
filters a record matches (e.g. reassigning `opportunityId`), and predicting
that per scope is not worth the risk for the data volumes involved.
"""

from __future__ import annotations

import asyncio
import logging
import time
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Generic, Iterator, Mapping, TypeVar

from pydantic import BaseModel, ValidationError

from core.domain.errors import CrmError, InvalidArgument, NotFound
from core.domain.models import Entity, QueryScope
from core.domain.transforms import SERVER_TIMESTAMP
from core.domain.wire import to_create_payload, to_update_payload
from core.interfaces.remote_store import DocumentStore, OrderBy

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=Entity)


def _copies(records: list[Any]) -> list[Any]:
    """Hand out private copies; cached instances are only replaced by a re-fetch."""

    return [r.model_copy(deep=True) if isinstance(r, BaseModel) else r for r in records]


@dataclass
class _Entry:
    records: list[Any]
    expires_at: float | None = None


class CacheContext:
    """Session-scoped cache of query results.

    Entries stay valid until their collection is invalidated. An entry stored
    with a TTL additionally expires by time (used for the current-user lookup).
    """

    def __init__(self, *, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._entries: dict[QueryScope, _Entry] = {}
        self._inflight: dict[QueryScope, asyncio.Task] = {}
        self._generations: dict[str, int] = {}

    def generation(self, collection: str) -> int:
        return self._generations.get(collection, 0)

    def get(self, scope: QueryScope) -> list[Any] | None:
        entry = self._entries.get(scope)
        if entry is None:
            return None
        if entry.expires_at is not None and self._clock() >= entry.expires_at:
            del self._entries[scope]
            return None
        return _copies(entry.records)

    def put(
        self,
        scope: QueryScope,
        records: list[Any],
        *,
        generation: int | None = None,
        ttl: float | None = None,
    ) -> bool:
        """Store `records` for `scope`.

        When `generation` is given and the collection has been invalidated
        since, the records are not stored and False is returned.
        """

        if generation is not None and generation != self.generation(scope.collection):
            return False
        expires_at = self._clock() + ttl if ttl is not None else None
        self._entries[scope] = _Entry(records=list(records), expires_at=expires_at)
        return True

    def invalidate(self, collection: str) -> int:
        """Mark every scope of `collection` for re-fetch on next access."""

        self._generations[collection] = self.generation(collection) + 1
        stale = [scope for scope in self._entries if scope.collection == collection]
        for scope in stale:
            del self._entries[scope]
        # In-flight loads keep running for their awaiting callers; new callers
        # start a fresh load.
        for scope in [s for s in self._inflight if s.collection == collection]:
            del self._inflight[scope]
        logger.debug("Invalidated %d scope(s) of %s", len(stale), collection)
        return len(stale)

    async def load(
        self,
        scope: QueryScope,
        loader: Callable[[], Awaitable[list[Any]]],
        *,
        ttl: float | None = None,
    ) -> list[Any]:
        """Return the cached records for `scope` or load them once.

        Concurrent callers for the same scope share a single in-flight load.
        """

        cached = self.get(scope)
        if cached is not None:
            logger.debug("Cache hit %s", scope)
            return cached

        task = self._inflight.get(scope)
        if task is None:
            logger.debug("Cache miss %s", scope)
            task = asyncio.ensure_future(
                self._run_load(scope, loader, self.generation(scope.collection), ttl)
            )
            self._inflight[scope] = task
        records = await asyncio.shield(task)
        return _copies(records)

    async def _run_load(
        self,
        scope: QueryScope,
        loader: Callable[[], Awaitable[list[Any]]],
        generation: int,
        ttl: float | None,
    ) -> list[Any]:
        try:
            records = await loader()
            if not self.put(scope, records, generation=generation, ttl=ttl):
                logger.debug("Discarding load of %s: invalidated while in flight", scope)
            return records
        finally:
            if self._inflight.get(scope) is asyncio.current_task():
                del self._inflight[scope]


@dataclass
class CacheStatus:
    """Pending/error state of one collection, for a UI layer to render."""

    is_loading: bool = False
    is_creating: bool = False
    is_updating: bool = False
    is_deleting: bool = False
    last_error: CrmError | None = None

    @property
    def is_pending(self) -> bool:
        return self.is_loading or self.is_creating or self.is_updating or self.is_deleting


@dataclass
class _Pending:
    counts: dict[str, int] = field(default_factory=dict)
    last_error: CrmError | None = None


class EntityCache(Generic[T]):
    """Typed access to one remote collection through the shared cache."""

    def __init__(
        self,
        collection: str,
        model: type[T],
        *,
        store: DocumentStore,
        context: CacheContext,
        order_by: OrderBy | None = None,
    ) -> None:
        self._collection = collection
        self._model = model
        self._store = store
        self._context = context
        self._order_by = order_by
        self._pending = _Pending()

    @property
    def collection(self) -> str:
        return self._collection

    @property
    def model(self) -> type[T]:
        return self._model

    @property
    def status(self) -> CacheStatus:
        counts = self._pending.counts
        return CacheStatus(
            is_loading=counts.get("fetch", 0) > 0,
            is_creating=counts.get("create", 0) > 0,
            is_updating=counts.get("update", 0) > 0,
            is_deleting=counts.get("delete", 0) > 0,
            last_error=self._pending.last_error,
        )

    @contextmanager
    def _track(self, operation: str) -> Iterator[None]:
        counts = self._pending.counts
        counts[operation] = counts.get(operation, 0) + 1
        try:
            yield
        except CrmError as exc:
            self._pending.last_error = exc
            raise
        else:
            self._pending.last_error = None
        finally:
            counts[operation] -= 1

    def scope(self, filters: Mapping[str, Any] | None = None) -> QueryScope:
        return QueryScope.of(self._collection, filters)

    def invalidate(self) -> None:
        self._context.invalidate(self._collection)

    def _validate(self, record: Mapping[str, Any]) -> T:
        try:
            return self._model.model_validate(record)
        except ValidationError as exc:
            raise InvalidArgument(
                f"Malformed {self._collection} record {record.get('id')!r}: {exc.errors()[:1]}"
            ) from exc

    async def fetch(self, filters: Mapping[str, Any] | None = None) -> list[T]:
        """Records matching `filters` (exact-scope cache, shared in-flight load)."""

        scope = self.scope(filters)

        async def _load() -> list[T]:
            records = await self._store.list(
                self._collection, scope.filter_dict() or None, self._order_by
            )
            return [self._validate(record) for record in records]

        with self._track("fetch"):
            return await self._context.load(scope, _load)

    async def get(self, doc_id: str) -> T:
        """Single remote read; bypasses the cache."""

        if not doc_id:
            raise InvalidArgument(f"{self._collection}: id is required")
        with self._track("fetch"):
            record = await self._store.get(self._collection, doc_id)
            return self._validate({**record, "id": doc_id})

    async def create(self, data: Mapping[str, Any] | BaseModel) -> T:
        """Create a record; client-supplied id/timestamps and None fields are dropped."""

        with self._track("create"):
            payload = to_create_payload(self._model, data)
            doc_id = await self._store.create(self._collection)
            written_at = await self._store.set(
                self._collection,
                doc_id,
                {**payload, "createdAt": SERVER_TIMESTAMP, "updatedAt": SERVER_TIMESTAMP},
            )
            self._context.invalidate(self._collection)
            logger.info("Created %s/%s", self._collection, doc_id)
            return self._validate(
                {**payload, "id": doc_id, "createdAt": written_at, "updatedAt": written_at}
            )

    async def update(self, doc_id: str, data: Mapping[str, Any] | BaseModel) -> None:
        """Write only the supplied fields plus a refreshed `updatedAt`."""

        with self._track("update"):
            if not doc_id:
                raise InvalidArgument(f"{self._collection}: id is required")
            payload = to_update_payload(self._model, data)
            await self._store.update(
                self._collection, doc_id, {**payload, "updatedAt": SERVER_TIMESTAMP}
            )
            self._context.invalidate(self._collection)
            logger.info("Updated %s/%s fields=%s", self._collection, doc_id, sorted(payload))

    async def delete(self, doc_id: str) -> None:
        """Remove a record; an already-absent record counts as deleted."""

        with self._track("delete"):
            if not doc_id:
                raise InvalidArgument(f"{self._collection}: id is required")
            try:
                await self._store.delete(self._collection, doc_id)
            except NotFound:
                logger.debug("%s/%s already absent", self._collection, doc_id)
            self._context.invalidate(self._collection)
            logger.info("Deleted %s/%s", self._collection, doc_id)
