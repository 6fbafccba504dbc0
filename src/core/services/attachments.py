"""Attachment lifecycle: blob objects and their embedded metadata records.

An attachment exists twice: as a blob object in the blob store and as an
`Attachment` record embedded in the owner's `attachments` list. The remote
stores offer no transaction spanning both, so each workflow is an explicit
ordered pipeline and a failure after a remote step took effect is reported as
`PartialFailure`:

- upload fails after the blob is stored -> orphaned blob (never referenced,
  so never shown as an attachment);
- delete fails after the blob is removed -> dangling record.

Neither window is repaired automatically; a reconciliation pass is out of
scope for this layer.
"""

from __future__ import annotations

import logging
import mimetypes
import re
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Callable, Mapping

from core.domain.enums import OwnerType
from core.domain.errors import CrmError, InvalidArgument, NotFound, PartialFailure
from core.domain.models import Attachment, Entity
from core.domain.transforms import ArrayRemove, ArrayUnion
from core.interfaces.remote_store import BlobMetadata, BlobStore
from core.services.entity_cache import EntityCache

logger = logging.getLogger(__name__)

_UNSAFE_CHARS = re.compile(r"[^a-zA-Z0-9.-]")


class UploadStep(str, Enum):
    VALIDATE = "validate"
    UPLOAD_BLOB = "upload_blob"
    RESOLVE_URL = "resolve_url"
    LINK_RECORD = "link_record"


class DeleteStep(str, Enum):
    VALIDATE = "validate"
    DELETE_BLOB = "delete_blob"
    UNLINK_RECORD = "unlink_record"


@dataclass(frozen=True)
class UploadFile:
    """Bytes to upload plus the name and media type the user supplied."""

    name: str
    data: bytes
    content_type: str = "application/octet-stream"

    @property
    def size(self) -> int:
        return len(self.data)

    @classmethod
    def from_path(cls, path: Path, *, content_type: str | None = None) -> "UploadFile":
        guessed, _ = mimetypes.guess_type(path.name)
        return cls(
            name=path.name,
            data=path.read_bytes(),
            content_type=content_type or guessed or "application/octet-stream",
        )


def sanitize_filename(name: str) -> str:
    """Replace every character outside `[A-Za-z0-9.-]` with `_`."""

    return _UNSAFE_CHARS.sub("_", name)


def blob_path(owner_type: OwnerType, owner_id: str, attachment_id: str) -> str:
    return f"{owner_type.value}/{owner_id}/{attachment_id}"


class _KeyClock:
    """Millisecond stamps that never repeat within one process."""

    def __init__(self, now_ms: Callable[[], int]) -> None:
        self._now_ms = now_ms
        self._last = 0

    def next(self) -> int:
        stamp = max(self._now_ms(), self._last + 1)
        self._last = stamp
        return stamp


def _wall_clock_ms() -> int:
    return time.time_ns() // 1_000_000


class AttachmentLifecycle:
    """Upload and delete attachments while keeping blob and record in step."""

    def __init__(
        self,
        blobs: BlobStore,
        owners: Mapping[OwnerType, EntityCache[Entity]],
        *,
        now_ms: Callable[[], int] = _wall_clock_ms,
    ) -> None:
        self._blobs = blobs
        self._owners = dict(owners)
        self._keys = _KeyClock(now_ms)

    def storage_key(self, filename: str) -> str:
        """Collision-free key from the upload time and the sanitized name."""

        return f"{self._keys.next()}-{sanitize_filename(filename)}"

    def _owner_cache(self, owner_type: OwnerType | str) -> tuple[OwnerType, EntityCache[Entity]]:
        try:
            parsed = OwnerType.parse(owner_type)
        except ValueError as exc:
            raise InvalidArgument(f"Unsupported attachment owner: {owner_type!r}") from exc
        cache = self._owners.get(parsed)
        if cache is None:
            raise InvalidArgument(f"No collection registered for {parsed.value}")
        return parsed, cache

    async def upload(
        self,
        file: UploadFile | None,
        owner_type: OwnerType | str | None,
        owner_id: str | None,
        uploaded_by: str | None,
    ) -> Attachment:
        if not file or not file.name or not owner_type or not owner_id or not uploaded_by:
            raise InvalidArgument("file, owner_type, owner_id and uploaded_by are required")
        owner, cache = self._owner_cache(owner_type)

        key = self.storage_key(file.name)
        path = blob_path(owner, owner_id, key)
        completed: list[str] = [UploadStep.VALIDATE.value]

        # Nothing has been written yet; a failure here leaves no partial state.
        await self._blobs.upload(
            path,
            file.data,
            BlobMetadata(
                content_type=file.content_type,
                custom={"uploadedBy": uploaded_by, "originalName": file.name},
            ),
        )
        completed.append(UploadStep.UPLOAD_BLOB.value)

        try:
            url = await self._blobs.get_url(path)
        except CrmError as exc:
            raise self._orphaned(UploadStep.RESOLVE_URL, completed, path, exc, None) from exc
        completed.append(UploadStep.RESOLVE_URL.value)

        attachment = Attachment(
            id=key,
            name=file.name,
            size=file.size,
            type=file.content_type,
            url=url,
            uploaded_by=uploaded_by,
            uploaded_at=datetime.now(timezone.utc),
        )

        try:
            await cache.update(owner_id, {"attachments": ArrayUnion([attachment])})
        except CrmError as exc:
            raise self._orphaned(UploadStep.LINK_RECORD, completed, path, exc, attachment) from exc

        logger.info("Attached %s to %s/%s", key, owner.value, owner_id)
        return attachment

    @staticmethod
    def _orphaned(
        step: UploadStep,
        completed: list[str],
        path: str,
        cause: CrmError,
        attachment: Attachment | None,
    ) -> PartialFailure:
        logger.warning("Upload stopped at %s; blob %s is orphaned (%s)", step.value, path, cause)
        return PartialFailure(
            f"Blob {path} was stored but is not referenced by its owner",
            step=step.value,
            completed=completed,
            attachment=attachment,
            cause=cause,
        )

    async def delete(
        self,
        owner_type: OwnerType | str | None,
        owner_id: str | None,
        attachment: Attachment | None,
    ) -> None:
        if not owner_type or not owner_id or attachment is None:
            raise InvalidArgument("owner_type, owner_id and attachment are required")
        owner, cache = self._owner_cache(owner_type)
        path = blob_path(owner, owner_id, attachment.id)
        completed: list[str] = [DeleteStep.VALIDATE.value]

        # Any other failure propagates and leaves the record in place, so the
        # record keeps naming a blob that may still exist.
        try:
            await self._blobs.delete(path)
        except NotFound:
            logger.debug("Blob %s already absent; unlinking record", path)
        completed.append(DeleteStep.DELETE_BLOB.value)

        try:
            await cache.update(owner_id, {"attachments": ArrayRemove([attachment])})
        except CrmError as exc:
            logger.warning("Blob %s deleted but its record still dangles (%s)", path, exc)
            raise PartialFailure(
                f"Blob {path} was deleted but its record is still embedded",
                step=DeleteStep.UNLINK_RECORD.value,
                completed=completed,
                attachment=attachment,
                cause=exc,
            ) from exc

        logger.info("Removed attachment %s from %s/%s", attachment.id, owner.value, owner_id)
