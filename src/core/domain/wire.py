"""Serialization of write payloads.

Pure functions from a sparse, caller-supplied mapping (or model) to the wire
mapping sent to the document store. Only *present* fields survive: absent
values are omitted, never sent as a null placeholder.
"""

from __future__ import annotations

import logging
from functools import lru_cache
from typing import Annotated, Any, Mapping

from pydantic import BaseModel, TypeAdapter, ValidationError

from core.domain.errors import InvalidArgument
from core.domain.models import SERVER_FIELDS, Entity
from core.domain.transforms import ArrayRemove, ArrayUnion, FieldTransform

logger = logging.getLogger(__name__)

_PLACEHOLDER_ID = "_pending_"


def _field_names(model: type[Entity]) -> dict[str, str]:
    """Map both attribute and wire names to the wire name."""

    names: dict[str, str] = {}
    for attr, info in model.model_fields.items():
        wire = info.alias or attr
        names[attr] = wire
        names[wire] = wire
    return names


@lru_cache(maxsize=None)
def _adapter_for(model: type[Entity], wire_name: str) -> TypeAdapter:
    for attr, info in model.model_fields.items():
        if (info.alias or attr) == wire_name:
            if info.metadata:
                return TypeAdapter(Annotated[(info.annotation, *info.metadata)])
            return TypeAdapter(info.annotation)
    raise KeyError(wire_name)


def _as_mapping(data: Mapping[str, Any] | BaseModel) -> dict[str, Any]:
    if isinstance(data, BaseModel):
        return data.model_dump(by_alias=True, exclude_unset=True)
    return dict(data)


def _dump_value(value: Any) -> Any:
    if isinstance(value, BaseModel):
        return value.model_dump(by_alias=True, exclude_none=True)
    if isinstance(value, (list, tuple)):
        return [_dump_value(v) for v in value]
    return value


def _dump_transform(value: FieldTransform) -> FieldTransform:
    if isinstance(value, ArrayUnion):
        return ArrayUnion([_dump_value(v) for v in value.values])
    if isinstance(value, ArrayRemove):
        return ArrayRemove([_dump_value(v) for v in value.values])
    return value


def strip_absent(
    model: type[Entity], data: Mapping[str, Any] | BaseModel
) -> dict[str, Any]:
    """Normalize keys to wire names and drop server, unknown and None fields."""

    names = _field_names(model)
    out: dict[str, Any] = {}
    for key, value in _as_mapping(data).items():
        wire = names.get(key)
        if wire is None:
            logger.warning("Dropping unknown field %r for %s", key, model.__name__)
            continue
        if wire in SERVER_FIELDS or value is None:
            continue
        out[wire] = value
    return out


def to_create_payload(
    model: type[Entity], data: Mapping[str, Any] | BaseModel
) -> dict[str, Any]:
    """Full record for a new document, validated as a whole.

    Raises `InvalidArgument` when a required field is missing or a value has
    the wrong type; no remote call has been made at that point.
    """

    present = strip_absent(model, data)
    for key, value in present.items():
        if isinstance(value, FieldTransform):
            raise InvalidArgument(f"Field transforms are not allowed on create ({key})")
    try:
        validated = model.model_validate({**present, "id": _PLACEHOLDER_ID})
    except ValidationError as exc:
        raise InvalidArgument(f"Invalid {model.__name__}: {exc}") from exc
    wire = validated.model_dump(by_alias=True, exclude_none=True)
    for key in SERVER_FIELDS:
        wire.pop(key, None)
    return wire


def to_update_payload(
    model: type[Entity], data: Mapping[str, Any] | BaseModel
) -> dict[str, Any]:
    """Partial record containing only the supplied fields.

    Each plain value is validated against its field type; transforms pass
    through with nested models dumped by alias.
    """

    present = strip_absent(model, data)
    out: dict[str, Any] = {}
    for key, value in present.items():
        if isinstance(value, FieldTransform):
            out[key] = _dump_transform(value)
            continue
        adapter = _adapter_for(model, key)
        try:
            parsed = adapter.validate_python(value)
        except ValidationError as exc:
            raise InvalidArgument(f"Invalid value for {model.__name__}.{key}: {exc}") from exc
        out[key] = adapter.dump_python(parsed, by_alias=True, exclude_none=True)
    return out
