from __future__ import annotations

import dataclasses
import inspect
import logging
from dataclasses import dataclass, field
from datetime import date, datetime, time
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional

from pydantic import BaseModel

from .catalog import FieldSpec, RecordTypeDescriptor, build_field_table
from .errors import BindingError

_log = logging.getLogger("metaforge.binder")

NAME_KEY = "name"
OBJECT_NAME_ALIAS = "objectname"

_TRUE = {"true", "yes", "y", "1", "on"}
_FALSE = {"false", "no", "n", "0", "off"}

_NO_MATCH = object()


def normalize_key(key: str) -> str:
    """Case- and separator-insensitive form of a property or field name."""
    return "".join(ch for ch in str(key).lower() if ch not in "_- .")


# ------------------------------------------------------------
# Coercion chain: exact -> numeric -> boolean -> date/time -> enum
# ------------------------------------------------------------
def _exact(value: Any, target: Any, **_: Any) -> Any:
    if target in (Any, object, inspect.Parameter.empty) or target is None:
        return value
    if not inspect.isclass(target):
        return _NO_MATCH
    if isinstance(value, bool) and target is not bool and issubclass(target, (int, float)):
        return _NO_MATCH
    if isinstance(value, target):
        return value
    return _NO_MATCH


def _numeric(value: Any, target: Any, **_: Any) -> Any:
    if target is bool or target not in (int, float, Decimal):
        return _NO_MATCH
    if isinstance(value, bool):
        return target(int(value))
    if isinstance(value, (int, float, Decimal)):
        try:
            if target is int and not isinstance(value, int) and value != int(value):
                raise BindingError(f"{value!r} is not an integer")
            return target(value)
        except (OverflowError, ValueError, InvalidOperation) as e:
            raise BindingError(f"{value!r} is not a valid {target.__name__}") from e
    if isinstance(value, str):
        text = value.strip()
        try:
            if target is int:
                try:
                    return int(text)
                except ValueError:
                    as_float = float(text)
                    if as_float != int(as_float):
                        raise BindingError(f"'{value}' is not an integer")
                    return int(as_float)
            if target is Decimal:
                return Decimal(text)
            return float(text)
        except (ValueError, OverflowError, InvalidOperation) as e:
            raise BindingError(f"'{value}' is not a valid {target.__name__}") from e
    return _NO_MATCH


def _boolean(value: Any, target: Any, **_: Any) -> Any:
    if target is not bool:
        return _NO_MATCH
    if isinstance(value, (int, float)) and value in (0, 1):
        return bool(value)
    if isinstance(value, str):
        text = value.strip().lower()
        if text in _TRUE:
            return True
        if text in _FALSE:
            return False
    raise BindingError(f"{value!r} is not a valid boolean")


def _temporal(value: Any, target: Any, **_: Any) -> Any:
    if target not in (datetime, date, time):
        return _NO_MATCH
    if isinstance(value, datetime) and target is date:
        return value.date()
    if isinstance(value, str):
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            if target is datetime:
                return datetime.fromisoformat(text)
            if target is date:
                return date.fromisoformat(text[:10])
            return time.fromisoformat(text)
        except ValueError as e:
            raise BindingError(f"'{value}' is not a valid {target.__name__}") from e
    raise BindingError(f"{value!r} is not a valid {target.__name__}")


def _enumeration(value: Any, target: Any, *, pattern_shaped: bool = False, **_: Any) -> Any:
    if not (inspect.isclass(target) and issubclass(target, Enum)):
        return _NO_MATCH
    if isinstance(value, str):
        return match_enum(target, value, pattern_shaped=pattern_shaped)
    for member in target:
        if member.value == value:
            return member
    raise BindingError(f"{value!r} is not a member of {target.__name__}")


_CHAIN = (_exact, _numeric, _boolean, _temporal, _enumeration)


def match_enum(enum_type: type, raw: str, *, pattern_shaped: bool = False) -> Enum:
    """
    Resolve a string to an enum member.

    Exact case-insensitive member name first, then member value. Pattern or
    template enumerations also try lower-case, upper-case, ``+Pattern`` and
    ``+Template`` spellings.
    """
    text = raw.strip()
    by_name = {m.name.lower(): m for m in enum_type}
    by_value = {str(m.value).lower(): m for m in enum_type}

    def lookup(s: str) -> Optional[Enum]:
        return by_name.get(s.lower()) or by_value.get(s.lower())

    hit = lookup(text)
    if hit is not None:
        return hit

    if pattern_shaped:
        for spelling in (text.lower(), text.upper(), f"{text}Pattern", f"{text}Template"):
            hit = lookup(spelling)
            if hit is not None:
                return hit

    allowed = ", ".join(m.name for m in enum_type)
    raise BindingError(f"'{raw}' is not a member of {enum_type.__name__} (allowed: {allowed})")


def coerce_value(value: Any, target: Any, *, pattern_shaped: bool = False) -> Any:
    for step in _CHAIN:
        out = step(value, target, pattern_shaped=pattern_shaped)
        if out is not _NO_MATCH:
            return out

    if target is str:
        if isinstance(value, Enum):
            return str(value.value)
        if isinstance(value, (int, float, Decimal, bool)):
            return str(value)
    if isinstance(value, Mapping) and inspect.isclass(target) and (
        dataclasses.is_dataclass(target) or issubclass(target, BaseModel)
    ):
        return build_nested(target, value)

    tname = getattr(target, "__name__", str(target))
    raise BindingError(f"Cannot convert {type(value).__name__} {value!r} to {tname}")


def coerce_field(spec: FieldSpec, value: Any) -> Any:
    if value is None:
        if spec.optional or spec.target in (Any, object):
            return None
        raise BindingError(f"Field '{spec.name}' does not accept null", field=spec.name)

    try:
        if spec.is_collection:
            if isinstance(value, str):
                items = [v.strip() for v in value.split(",") if v.strip()]
            elif isinstance(value, (list, tuple, set, frozenset)):
                items = list(value)
            else:
                raise BindingError(f"Field '{spec.name}' expects a list")
            coerced = [coerce_value(v, spec.item_type) for v in items]
            return spec.target(coerced) if spec.target in (set, tuple, frozenset) else coerced

        return coerce_value(value, spec.target, pattern_shaped=spec.pattern_shaped)
    except BindingError as e:
        if e.field is None:
            raise BindingError(f"Field '{spec.name}': {e}", field=spec.name) from e
        raise


def build_nested(target: type, data: Mapping[str, Any]) -> Any:
    """Instantiate an element type (e.g. a table field) from a mapping."""
    table = {normalize_key(k): v for k, v in build_field_table(target).items()}
    kwargs: Dict[str, Any] = {}
    for key, raw in data.items():
        spec = table.get(normalize_key(key))
        if spec is None:
            raise BindingError(f"{target.__name__} has no field '{key}'")
        kwargs[spec.name] = coerce_field(spec, raw)
    try:
        return target(**kwargs)
    except (TypeError, ValueError) as e:
        raise BindingError(f"Cannot build {target.__name__}: {e}") from e


# ------------------------------------------------------------
# Binder
# ------------------------------------------------------------
@dataclass
class BindReport:
    bound: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)


class PropertyBinder:
    """Maps an untyped parameter bag onto a fresh record instance."""

    def __init__(self, logger: Optional[logging.Logger] = None):
        self._log = logger or _log

    def bind(
        self,
        instance: Any,
        bag: Mapping[str, Any],
        descriptor: Optional[RecordTypeDescriptor] = None,
    ) -> List[str]:
        return self.bind_with_report(instance, bag, descriptor).warnings

    def bind_with_report(
        self,
        instance: Any,
        bag: Mapping[str, Any],
        descriptor: Optional[RecordTypeDescriptor] = None,
    ) -> BindReport:
        report = BindReport()
        fields = descriptor.fields if descriptor is not None else build_field_table(type(instance))
        index = {normalize_key(k): spec for k, spec in fields.items()}
        type_name = type(instance).__name__

        for key, value in self._apply_aliases(bag).items():
            spec = index.get(normalize_key(key))
            if spec is None:
                report.warnings.append(f"Property '{key}' not found on {type_name}; skipped")
                continue
            try:
                setattr(instance, spec.name, coerce_field(spec, value))
            except BindingError as e:
                report.warnings.append(str(e))
                continue
            except (AttributeError, TypeError, ValueError, OverflowError) as e:
                report.warnings.append(f"Field '{spec.name}' could not be set: {e}")
                continue
            report.bound.append(spec.name)

        if report.warnings:
            self._log.debug(
                "bind type=%s bound=%s warnings=%s", type_name, len(report.bound), len(report.warnings)
            )
        return report

    @staticmethod
    def _apply_aliases(bag: Mapping[str, Any]) -> Dict[str, Any]:
        folded = {normalize_key(k) for k in bag}
        out: Dict[str, Any] = {}
        for key, value in bag.items():
            if normalize_key(key) == OBJECT_NAME_ALIAS and NAME_KEY not in folded:
                out["Name"] = value
                continue
            out[key] = value
        return out
