from __future__ import annotations

from datetime import datetime, timezone

import pytest

from adapters.memory_store import InMemoryDocumentStore, ServerClock
from core.domain.errors import InvalidArgument, NotFound
from core.domain.transforms import DELETE_FIELD, SERVER_TIMESTAMP, ArrayRemove, ArrayUnion
from core.interfaces.remote_store import BlobStore, DocumentStore, OrderBy


def test_adapters_satisfy_the_protocols(documents, blobs):
    assert isinstance(documents, DocumentStore)
    assert isinstance(blobs, BlobStore)


def test_server_clock_never_repeats():
    frozen = datetime(2024, 1, 1, tzinfo=timezone.utc)
    clock = ServerClock(now=lambda: frozen)
    first, second = clock.tick(), clock.tick()
    assert second > first == frozen


@pytest.mark.asyncio
async def test_transforms_are_resolved_on_write(documents):
    stamp = await documents.set("leads", "L1", {"tags": ["a"], "createdAt": SERVER_TIMESTAMP})
    await documents.update("leads", "L1", {"tags": ArrayUnion(["a", "b"]), "note": "x"})
    await documents.update("leads", "L1", {"tags": ArrayRemove(["a"]), "note": DELETE_FIELD})

    doc = await documents.get("leads", "L1")
    assert doc == {"id": "L1", "tags": ["b"], "createdAt": stamp}


@pytest.mark.asyncio
async def test_delete_field_is_rejected_on_set(documents):
    with pytest.raises(InvalidArgument):
        await documents.set("leads", "L1", {"note": DELETE_FIELD})


@pytest.mark.asyncio
async def test_missing_documents_raise_not_found(documents):
    with pytest.raises(NotFound):
        await documents.get("leads", "nope")
    with pytest.raises(NotFound):
        await documents.update("leads", "nope", {"a": 1})
    with pytest.raises(NotFound):
        await documents.delete("leads", "nope")


@pytest.mark.asyncio
async def test_list_filters_and_orders_with_missing_values_last():
    store = InMemoryDocumentStore()
    await store.set("interactions", "a", {"date": "2024-01-02", "leadId": "L"})
    await store.set("interactions", "b", {"date": "2024-01-03", "leadId": "L"})
    await store.set("interactions", "c", {"leadId": "L"})
    await store.set("interactions", "d", {"date": "2024-01-04", "leadId": "M"})

    docs = await store.list("interactions", {"leadId": "L"}, OrderBy("date"))
    assert [d["id"] for d in docs] == ["b", "a", "c"]


@pytest.mark.asyncio
async def test_returned_documents_are_copies(documents):
    await documents.set("leads", "L1", {"tags": ["a"]})
    doc = await documents.get("leads", "L1")
    doc["tags"].append("b")
    assert (await documents.get("leads", "L1"))["tags"] == ["a"]
