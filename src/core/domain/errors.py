"""Error taxonomy of the synchronization layer.

Why a small hierarchy instead of bare exceptions:
- Callers (CLI, UI glue) render failures by *kind*, not by message.
- Adapters translate backend-specific failures (HTTP status, transport
  errors) into these types so the Core never sees `httpx` exceptions.
"""

from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING, ClassVar, Sequence

if TYPE_CHECKING:
    from core.domain.models import Attachment


class ErrorKind(str, Enum):
    INVALID_ARGUMENT = "invalid_argument"
    NOT_FOUND = "not_found"
    PERMISSION_DENIED = "permission_denied"
    UNAVAILABLE = "unavailable"
    PARTIAL_FAILURE = "partial_failure"


class CrmError(Exception):
    """Base class; every failure surfaced by the Core carries a kind."""

    kind: ClassVar[ErrorKind]

    def __init__(self, message: str = "") -> None:
        super().__init__(message or self.kind.value)
        self.message = message or self.kind.value


class InvalidArgument(CrmError):
    """A required input was missing or malformed; no remote call was made."""

    kind = ErrorKind.INVALID_ARGUMENT


class NotFound(CrmError):
    kind = ErrorKind.NOT_FOUND


class PermissionDenied(CrmError):
    kind = ErrorKind.PERMISSION_DENIED


class Unavailable(CrmError):
    """Transient remote failure (network, 5xx, throttling)."""

    kind = ErrorKind.UNAVAILABLE


class PartialFailure(CrmError):
    """A multi-step workflow stopped after some remote steps took effect.

    `attachment` is the record the workflow was handling: an orphaned blob's
    record for a failed upload, or the dangling record for a failed delete.
    """

    kind = ErrorKind.PARTIAL_FAILURE

    def __init__(
        self,
        message: str,
        *,
        step: str,
        completed: Sequence[str],
        attachment: "Attachment | None" = None,
        cause: BaseException | None = None,
    ) -> None:
        super().__init__(message)
        self.step = step
        self.completed = tuple(completed)
        self.attachment = attachment
        self.cause = cause

    @property
    def cause_kind(self) -> ErrorKind | None:
        if isinstance(self.cause, CrmError):
            return self.cause.kind
        return None
