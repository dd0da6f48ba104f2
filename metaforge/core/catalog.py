from __future__ import annotations

import dataclasses
import importlib
import inspect
import logging
import re
import typing
from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType, ModuleType, UnionType
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple, Union

from pydantic import BaseModel

from .errors import ConfigurationError

_log = logging.getLogger("metaforge.catalog")

DEFAULT_NAME_PATTERN = r"^Ax[A-Z]"

# Type names carrying one of these words are infrastructure, not records.
_EXCLUDED_NAME_PARTS = ("Collection", "Base", "Helper", "Util")

_PATTERN_WORDS = ("pattern", "template")


@dataclass(frozen=True)
class FieldSpec:
    name: str
    annotation: Any
    target: Any
    optional: bool = False
    is_collection: bool = False
    item_type: Any = None

    @property
    def enum_type(self) -> Optional[type]:
        if inspect.isclass(self.target) and issubclass(self.target, Enum):
            return self.target
        return None

    @property
    def pattern_shaped(self) -> bool:
        """True for enumeration fields that name a pattern or template."""
        enum_type = self.enum_type
        if enum_type is None:
            return False
        haystack = f"{self.name} {enum_type.__name__}".lower()
        return any(w in haystack for w in _PATTERN_WORDS)


@dataclass(frozen=True)
class RecordTypeDescriptor:
    name: str
    type_handle: type
    fields: Mapping[str, FieldSpec]

    def new_instance(self) -> Any:
        return self.type_handle()


def _unwrap(annotation: Any) -> Tuple[Any, bool, bool, Any]:
    """Returns (target, optional, is_collection, item_type) for an annotation."""
    optional = False
    origin = typing.get_origin(annotation)
    if origin is Union or origin is UnionType:
        args = [a for a in typing.get_args(annotation) if a is not type(None)]
        optional = len(args) != len(typing.get_args(annotation))
        if len(args) == 1:
            annotation = args[0]
            origin = typing.get_origin(annotation)

    if origin in (list, set, tuple, frozenset):
        args = typing.get_args(annotation)
        item = args[0] if args else Any
        return origin, optional, True, item
    if annotation in (list, set, tuple, frozenset):
        return annotation, optional, True, Any

    return annotation, optional, False, None


def field_spec_for(name: str, annotation: Any) -> FieldSpec:
    target, optional, is_collection, item = _unwrap(annotation)
    return FieldSpec(
        name=name,
        annotation=annotation,
        target=target,
        optional=optional,
        is_collection=is_collection,
        item_type=item,
    )


def build_field_table(cls: type) -> Dict[str, FieldSpec]:
    """
    Writable-field setter table for a record class.

    Supports dataclasses (init fields) and pydantic models (model_fields).
    Names starting with ``internal`` or containing ``readonly`` are skipped.
    """
    try:
        hints = typing.get_type_hints(cls)
    except Exception:
        hints = {}

    names: List[str] = []
    if dataclasses.is_dataclass(cls):
        names = [f.name for f in dataclasses.fields(cls) if f.init]
    elif inspect.isclass(cls) and issubclass(cls, BaseModel):
        names = list(cls.model_fields.keys())
        for n, info in cls.model_fields.items():
            hints.setdefault(n, info.annotation)

    table: Dict[str, FieldSpec] = {}
    for n in names:
        low = n.lower()
        if low.startswith("internal") or "readonly" in low or n.startswith("_"):
            continue
        table[n] = field_spec_for(n, hints.get(n, Any))
    return table


def _is_default_constructible(cls: type) -> bool:
    if dataclasses.is_dataclass(cls):
        for f in dataclasses.fields(cls):
            if not f.init:
                continue
            if f.default is dataclasses.MISSING and f.default_factory is dataclasses.MISSING:
                return False
        return True
    if issubclass(cls, BaseModel):
        return all(not info.is_required() for info in cls.model_fields.values())
    return False


class TypeCatalog:
    """
    Enumerates and caches the concrete, creatable record types of a type
    registry.

    The registry is a module, its dotted import name, or an iterable of
    classes. Loading problems are fatal (ConfigurationError); after
    ``discover()`` the catalog is read-only until ``rediscover()``.
    """

    def __init__(
        self,
        registry: Union[str, ModuleType, Iterable[type]],
        *,
        name_pattern: str = DEFAULT_NAME_PATTERN,
        logger: Optional[logging.Logger] = None,
    ):
        self._log = logger or _log
        self._classes, self.source = self._load_registry(registry)
        try:
            self._pattern = re.compile(name_pattern)
        except re.error as e:
            raise ConfigurationError(f"Invalid type name pattern {name_pattern!r}: {e}") from e
        self._entries: Optional[Mapping[str, RecordTypeDescriptor]] = None
        self._folded: Mapping[str, str] = MappingProxyType({})

    # --- public ---

    def discover(self) -> Mapping[str, RecordTypeDescriptor]:
        if self._entries is None:
            self._publish(self._scan())
        return self._entries  # type: ignore[return-value]

    def rediscover(self) -> Mapping[str, RecordTypeDescriptor]:
        self._publish(self._scan())
        return self._entries  # type: ignore[return-value]

    def get(self, type_name: str) -> Optional[RecordTypeDescriptor]:
        entries = self.discover()
        if not type_name:
            return None
        hit = entries.get(type_name)
        if hit is not None:
            return hit
        real = self._folded.get(type_name.lower())
        return entries.get(real) if real else None

    def names(self) -> List[str]:
        return list(self.discover().keys())

    def __contains__(self, type_name: object) -> bool:
        return isinstance(type_name, str) and self.get(type_name) is not None

    def __len__(self) -> int:
        return len(self.discover())

    # --- internals ---

    def _publish(self, entries: Dict[str, RecordTypeDescriptor]) -> None:
        self._entries = MappingProxyType(entries)
        self._folded = MappingProxyType({k.lower(): k for k in entries})

    def _load_registry(self, registry: Any) -> Tuple[List[type], str]:
        if isinstance(registry, str):
            try:
                module = importlib.import_module(registry)
            except Exception as e:
                raise ConfigurationError(f"Cannot load type registry '{registry}': {e}") from e
            return self._module_classes(module), module.__name__

        if isinstance(registry, ModuleType):
            return self._module_classes(registry), registry.__name__

        try:
            classes = [c for c in registry if inspect.isclass(c)]
        except TypeError as e:
            raise ConfigurationError(f"Unsupported type registry: {registry!r}") from e
        return classes, "<explicit>"

    @staticmethod
    def _module_classes(module: ModuleType) -> List[type]:
        return [
            obj
            for obj in vars(module).values()
            if inspect.isclass(obj) and obj.__module__ == module.__name__
        ]

    def _is_record_type(self, cls: type) -> bool:
        name = cls.__name__
        if not self._pattern.search(name):
            return False
        if any(part in name for part in _EXCLUDED_NAME_PARTS):
            return False
        if inspect.isabstract(cls) or issubclass(cls, Enum):
            return False
        if not (dataclasses.is_dataclass(cls) or issubclass(cls, BaseModel)):
            return False
        return _is_default_constructible(cls)

    def _scan(self) -> Dict[str, RecordTypeDescriptor]:
        entries: Dict[str, RecordTypeDescriptor] = {}
        for cls in sorted(self._classes, key=lambda c: c.__name__):
            if not self._is_record_type(cls):
                continue
            name = cls.__name__
            if name in entries and entries[name].type_handle is not cls:
                raise ConfigurationError(f"Duplicate record type name: {name}")
            entries[name] = RecordTypeDescriptor(
                name=name,
                type_handle=cls,
                fields=MappingProxyType(build_field_table(cls)),
            )

        self._log.info("Discovered %d record types from %s", len(entries), self.source)
        return entries
