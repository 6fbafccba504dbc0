"""HTTP gateway adapters for the document and blob stores.

The gateway speaks plain JSON:

- `GET    /documents/{collection}`        list (`where.<field>`, `orderBy`, `direction`)
- `POST   /documents/{collection}`        allocate an id -> `{"id": ...}`
- `GET    /documents/{collection}/{id}`   read one document
- `PUT    /documents/{collection}/{id}`   full write   -> `{"serverTime": ...}`
- `PATCH  /documents/{collection}/{id}`   partial write -> `{"serverTime": ...}`
- `DELETE /documents/{collection}/{id}`
- `PUT    /blobs/{path}`, `DELETE /blobs/{path}`, `GET /blobs/{path}/url`

Field transforms travel as single-key objects (`{"$arrayUnion": [...]}`) and
are resolved by the gateway on the one document being written.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Mapping
from urllib.parse import quote

import httpx
from pydantic import TypeAdapter

from core.domain.errors import CrmError, InvalidArgument, NotFound, PermissionDenied, Unavailable
from core.domain.transforms import DELETE_FIELD, SERVER_TIMESTAMP, ArrayRemove, ArrayUnion
from core.interfaces.remote_store import BlobMetadata, OrderBy

logger = logging.getLogger(__name__)

_DATETIME = TypeAdapter(datetime)
_JSON = TypeAdapter(Any)

BLOB_META_PREFIX = "X-Blob-Meta-"


def encode_value(value: Any) -> Any:
    if value is SERVER_TIMESTAMP:
        return {"$serverTimestamp": True}
    if value is DELETE_FIELD:
        return {"$delete": True}
    if isinstance(value, ArrayUnion):
        return {"$arrayUnion": _JSON.dump_python(list(value.values), mode="json")}
    if isinstance(value, ArrayRemove):
        return {"$arrayRemove": _JSON.dump_python(list(value.values), mode="json")}
    return _JSON.dump_python(value, mode="json")


def encode_payload(payload: Mapping[str, Any]) -> dict[str, Any]:
    return {key: encode_value(value) for key, value in payload.items()}


def _query_param(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(_JSON.dump_python(value, mode="json"))


def error_for_response(response: httpx.Response) -> CrmError:
    detail = f"{response.request.method} {response.request.url.path}: HTTP {response.status_code}"
    code = response.status_code
    if code == 404:
        return NotFound(detail)
    if code in (401, 403):
        return PermissionDenied(detail)
    if code == 429 or code >= 500:
        return Unavailable(detail)
    return InvalidArgument(detail)


class _GatewayClient:
    def __init__(self, client: httpx.AsyncClient) -> None:
        self._client = client

    async def _request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        try:
            response = await self._client.request(method, url, **kwargs)
        except httpx.HTTPError as exc:
            logger.warning("%s %s failed: %s", method, url, exc)
            raise Unavailable(f"{method} {url}: {exc}") from exc
        if not response.is_success:
            raise error_for_response(response)
        return response

    async def aclose(self) -> None:
        await self._client.aclose()


class HttpDocumentStore(_GatewayClient):
    @staticmethod
    def _doc_url(collection: str, doc_id: str | None = None) -> str:
        url = f"/documents/{quote(collection, safe='')}"
        if doc_id is not None:
            url += f"/{quote(doc_id, safe='')}"
        return url

    @staticmethod
    def _server_time(response: httpx.Response) -> datetime:
        return _DATETIME.validate_python(response.json()["serverTime"])

    async def list(
        self,
        collection: str,
        filters: Mapping[str, Any] | None = None,
        order_by: OrderBy | None = None,
    ) -> list[dict[str, Any]]:
        params = {f"where.{k}": _query_param(v) for k, v in (filters or {}).items()}
        if order_by is not None:
            params["orderBy"] = order_by.field
            params["direction"] = "desc" if order_by.descending else "asc"
        response = await self._request("GET", self._doc_url(collection), params=params)
        return list(response.json().get("documents", []))

    async def get(self, collection: str, doc_id: str) -> dict[str, Any]:
        response = await self._request("GET", self._doc_url(collection, doc_id))
        return {**response.json(), "id": doc_id}

    async def create(self, collection: str) -> str:
        response = await self._request("POST", self._doc_url(collection))
        return str(response.json()["id"])

    async def set(self, collection: str, doc_id: str, record: Mapping[str, Any]) -> datetime:
        response = await self._request(
            "PUT", self._doc_url(collection, doc_id), json=encode_payload(record)
        )
        return self._server_time(response)

    async def update(
        self, collection: str, doc_id: str, partial: Mapping[str, Any]
    ) -> datetime:
        response = await self._request(
            "PATCH", self._doc_url(collection, doc_id), json=encode_payload(partial)
        )
        return self._server_time(response)

    async def delete(self, collection: str, doc_id: str) -> None:
        await self._request("DELETE", self._doc_url(collection, doc_id))


class HttpBlobStore(_GatewayClient):
    @staticmethod
    def _blob_url(path: str) -> str:
        return f"/blobs/{quote(path, safe='/')}"

    async def upload(self, path: str, data: bytes, metadata: BlobMetadata) -> None:
        headers = {"Content-Type": metadata.content_type}
        for key, value in metadata.custom.items():
            headers[f"{BLOB_META_PREFIX}{key}"] = quote(value, safe="")
        await self._request("PUT", self._blob_url(path), content=data, headers=headers)

    async def get_url(self, path: str) -> str:
        response = await self._request("GET", self._blob_url(path) + "/url")
        return str(response.json()["url"])

    async def delete(self, path: str) -> None:
        await self._request("DELETE", self._blob_url(path))
