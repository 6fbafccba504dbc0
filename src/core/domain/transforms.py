"""Field transforms: sentinel values resolved by the document store.

A transform is placed as the *value* of a field in a write payload. The store
resolves it atomically against the single target document, which is the only
atomicity the remote store offers (there are no multi-document transactions).
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Sequence


class FieldTransform:
    """Marker base class for sentinel values in write payloads."""

    __slots__ = ()


class _ServerTimestamp(FieldTransform):
    __slots__ = ()

    def __repr__(self) -> str:
        return "SERVER_TIMESTAMP"


class _DeleteField(FieldTransform):
    __slots__ = ()

    def __repr__(self) -> str:
        return "DELETE_FIELD"


SERVER_TIMESTAMP = _ServerTimestamp()
"""Replaced by the store with its own clock at write time."""

DELETE_FIELD = _DeleteField()
"""Removes the field from the stored document (update only)."""


@dataclass(frozen=True)
class ArrayUnion(FieldTransform):
    """Append each value not already present in the stored array."""

    values: tuple[Any, ...]

    def __init__(self, values: Sequence[Any]) -> None:
        object.__setattr__(self, "values", tuple(values))


@dataclass(frozen=True)
class ArrayRemove(FieldTransform):
    """Remove every element equal to one of the values."""

    values: tuple[Any, ...]

    def __init__(self, values: Sequence[Any]) -> None:
        object.__setattr__(self, "values", tuple(values))
