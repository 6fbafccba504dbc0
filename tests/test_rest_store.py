from __future__ import annotations

import json
from datetime import datetime, timezone

import httpx
import pytest

from adapters.http_client import build_async_client
from adapters.rest_store import HttpBlobStore, HttpDocumentStore, encode_payload
from core.config import AppSettings
from core.domain.enums import CandidateStatus, LeadStatus
from core.domain.errors import InvalidArgument, NotFound, PermissionDenied, Unavailable
from core.domain.transforms import DELETE_FIELD, SERVER_TIMESTAMP, ArrayUnion
from core.interfaces.remote_store import BlobMetadata, OrderBy


def _client(handler) -> httpx.AsyncClient:
    settings = AppSettings(remote_base_url="https://gateway.test", remote_api_token="t0k")
    return build_async_client(settings, transport=httpx.MockTransport(handler))


def test_encode_payload_maps_transforms():
    encoded = encode_payload(
        {
            "updatedAt": SERVER_TIMESTAMP,
            "opportunityId": DELETE_FIELD,
            "attachments": ArrayUnion([{"id": "1-a.txt"}]),
            "status": "new",
        }
    )
    assert encoded == {
        "updatedAt": {"$serverTimestamp": True},
        "opportunityId": {"$delete": True},
        "attachments": {"$arrayUnion": [{"id": "1-a.txt"}]},
        "status": "new",
    }


def test_encode_payload_dumps_enums_and_datetimes_as_json():
    stamp = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)
    encoded = encode_payload(
        {"status": CandidateStatus.SCREENING, "lastContactedAt": stamp, "skills": ArrayUnion([LeadStatus.NEW])}
    )
    assert encoded["status"] == "screening"
    assert encoded["lastContactedAt"].startswith("2024-05-01T12:00:00")
    assert encoded["skills"] == {"$arrayUnion": ["new"]}
    json.dumps(encoded)


@pytest.mark.asyncio
async def test_list_sends_filters_and_ordering():
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"documents": [{"id": "c1", "name": "A"}]})

    store = HttpDocumentStore(_client(handler))
    docs = await store.list("candidates", {"opportunityId": "OPP1"}, OrderBy("createdAt"))
    await store.aclose()

    assert docs == [{"id": "c1", "name": "A"}]
    (request,) = seen
    assert request.url.path == "/documents/candidates"
    assert request.url.params["where.opportunityId"] == "OPP1"
    assert request.url.params["orderBy"] == "createdAt"
    assert request.url.params["direction"] == "desc"
    assert request.headers["Authorization"] == "Bearer t0k"


@pytest.mark.asyncio
async def test_update_returns_the_server_time():
    bodies: list[dict] = []

    def handler(request: httpx.Request) -> httpx.Response:
        bodies.append(json.loads(request.content))
        return httpx.Response(200, json={"serverTime": "2024-05-01T10:00:00Z"})

    store = HttpDocumentStore(_client(handler))
    stamp = await store.update("leads", "L1", {"notes": "x", "updatedAt": SERVER_TIMESTAMP})
    await store.aclose()

    assert stamp.year == 2024 and stamp.tzinfo is not None
    assert bodies == [{"notes": "x", "updatedAt": {"$serverTimestamp": True}}]


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("status", "error"),
    [(404, NotFound), (403, PermissionDenied), (401, PermissionDenied), (503, Unavailable), (429, Unavailable), (400, InvalidArgument)],
)
async def test_http_status_maps_to_error_kind(status, error):
    store = HttpDocumentStore(_client(lambda request: httpx.Response(status)))
    with pytest.raises(error):
        await store.get("leads", "L1")
    await store.aclose()


@pytest.mark.asyncio
async def test_transport_errors_are_unavailable():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("refused", request=request)

    store = HttpDocumentStore(_client(handler))
    with pytest.raises(Unavailable):
        await store.create("leads")
    await store.aclose()


@pytest.mark.asyncio
async def test_blob_upload_carries_metadata_headers():
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        if request.url.path.endswith("/url"):
            return httpx.Response(200, json={"url": "https://cdn.test/x"})
        return httpx.Response(204)

    store = HttpBlobStore(_client(handler))
    path = "candidates/c1/1-My_CV.pdf"
    await store.upload(
        path,
        b"data",
        BlobMetadata(content_type="application/pdf", custom={"originalName": "My CV.pdf"}),
    )
    url = await store.get_url(path)
    await store.aclose()

    upload, lookup = seen
    assert upload.method == "PUT"
    assert upload.url.path == f"/blobs/{path}"
    assert upload.headers["Content-Type"] == "application/pdf"
    assert upload.headers["X-Blob-Meta-originalName"] == "My%20CV.pdf"
    assert upload.content == b"data"
    assert lookup.url.path == f"/blobs/{path}/url"
    assert url == "https://cdn.test/x"
