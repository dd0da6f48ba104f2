from __future__ import annotations

import dataclasses
from datetime import date, datetime, time
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, Mapping

from pydantic import BaseModel

from metaforge.core.binder import build_nested
from metaforge.core.catalog import build_field_table
from metaforge.core.errors import BindingError, StoreError


def encode_value(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (datetime, date, time)):
        return value.isoformat()
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json")
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return {f.name: encode_value(getattr(value, f.name)) for f in dataclasses.fields(value)}
    if isinstance(value, (list, tuple, set, frozenset)):
        return [encode_value(v) for v in value]
    if isinstance(value, dict):
        return {str(k): encode_value(v) for k, v in value.items()}
    return value


def to_properties(instance: Any) -> Dict[str, Any]:
    """JSON-safe property map of a record instance (writable fields only)."""
    return {
        name: encode_value(getattr(instance, name, None))
        for name in build_field_table(type(instance))
    }


def from_properties(record_type: type, properties: Mapping[str, Any]) -> Any:
    try:
        return build_nested(record_type, properties)
    except BindingError as e:
        raise StoreError(f"Stored {record_type.__name__} document is invalid: {e}") from e


def object_name(instance: Any) -> str:
    pk = getattr(instance, "primary_key", None)
    if callable(pk):
        name = pk()
    else:
        name = getattr(instance, "name", None) or getattr(instance, "Name", None)
    return str(name or "")
