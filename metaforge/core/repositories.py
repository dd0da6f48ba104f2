from __future__ import annotations

import hashlib
import inspect
import logging
from dataclasses import dataclass, field
from pathlib import PurePath
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional, Tuple, TypeVar

from .catalog import RecordTypeDescriptor, TypeCatalog
from .heuristics import (
    EXACT,
    INCOMPATIBLE,
    MethodHeuristics,
    OperationHandle,
    operations_of,
    type_match,
)

_log = logging.getLogger("metaforge.repositories")

_SCALARS = (str, bytes, int, float, bool, PurePath)


@dataclass(frozen=True)
class RepositoryBinding:
    type_name: str
    accessor: Any = field(compare=False, repr=False)
    accessor_label: str
    create_operation: Optional[OperationHandle] = None
    read_operation: Optional[OperationHandle] = None
    operations: Tuple[OperationHandle, ...] = field(default=(), repr=False)
    generic: bool = False

    def signature(self) -> Dict[str, str]:
        return {
            "accessor": self.accessor_label,
            "create": self.create_operation.signature_key() if self.create_operation else "",
            "read": self.read_operation.signature_key() if self.read_operation else "",
            "generic": "1" if self.generic else "0",
        }


def describe_bindings(bindings: Mapping[str, RepositoryBinding]) -> Dict[str, Dict[str, str]]:
    return {name: bindings[name].signature() for name in sorted(bindings)}


def bindings_fingerprint(bindings: Mapping[str, RepositoryBinding]) -> str:
    """
    Stable fingerprint for a binding map.

    - Deterministic across restarts (no object ids)
    - Sorted by type name
    """
    h = hashlib.sha256()
    for name, sig in describe_bindings(bindings).items():
        h.update(f"{name}|{sig['accessor']}|{sig['create']}|{sig['read']}|{sig['generic']}".encode("utf-8"))
        h.update(b"\0")
    return h.hexdigest()[:16]


def _is_wildcard(annotation: Any) -> bool:
    return annotation in (inspect.Parameter.empty, Any, object) or isinstance(annotation, TypeVar)


class RepositoryResolver:
    """
    Discovers which store member can create (or read) each record type.

    A generic, type-keyed accessor (``store.objects[AxTable]``) is preferred:
    when one exists it is bound to every catalog entry. Named per-type members
    (``store.tables``) are scanned only when no generic accessor exists.
    """

    def __init__(
        self,
        catalog: TypeCatalog,
        heuristics: Optional[MethodHeuristics] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self._catalog = catalog
        self._heuristics = heuristics or MethodHeuristics()
        self._log = logger or _log

    def discover(self, store: Any, *, require_create: bool = True) -> Mapping[str, RepositoryBinding]:
        entries = self._catalog.discover()
        members = self._members(store)

        generic = self._find_generic(members, entries, require_create=require_create)
        if generic is not None:
            label, accessor = generic
            bindings = self._bind_generic(label, accessor, entries, require_create=require_create)
            mode = "generic"
        else:
            bindings = self._bind_named(members, entries, require_create=require_create)
            mode = "named"

        self._log.info(
            "Repository discovery store=%s mode=%s bound=%d of %d",
            type(store).__name__, mode, len(bindings), len(entries),
        )
        return MappingProxyType(dict(sorted(bindings.items())))

    # --- internals ---

    @staticmethod
    def _members(store: Any) -> List[Tuple[str, Any]]:
        out: List[Tuple[str, Any]] = []
        for name in sorted(dir(store)):
            if name.startswith("_"):
                continue
            try:
                value = getattr(store, name)
            except Exception:
                continue
            if value is None or isinstance(value, _SCALARS):
                continue
            if inspect.isroutine(value) or inspect.isclass(value) or inspect.ismodule(value):
                continue
            out.append((name, value))
        return out

    def _qualifies(self, ops: List[OperationHandle], target: type, *, require_create: bool) -> Tuple[
        Optional[OperationHandle], Optional[OperationHandle]
    ]:
        create = self._heuristics.select_method(ops, target, arity=2)
        read = self._heuristics.select_read_method(ops)
        if require_create and create is None:
            return None, None
        if not require_create and create is None and read is None:
            return None, None
        return create, read

    def _find_generic(
        self,
        members: List[Tuple[str, Any]],
        entries: Mapping[str, RecordTypeDescriptor],
        *,
        require_create: bool,
    ) -> Optional[Tuple[str, Any]]:
        if not entries:
            return None
        probe = next(iter(entries.values())).type_handle
        for name, value in members:
            if not hasattr(type(value), "__getitem__"):
                continue
            try:
                coll = value[probe]
            except (LookupError, TypeError, ValueError):
                continue
            create, read = self._qualifies(operations_of(coll), probe, require_create=require_create)
            if create is not None or read is not None:
                self._log.debug("Generic accessor found: %s", name)
                return name, value
        return None

    def _bind_generic(
        self,
        label: str,
        accessor: Any,
        entries: Mapping[str, RecordTypeDescriptor],
        *,
        require_create: bool,
    ) -> Dict[str, RepositoryBinding]:
        out: Dict[str, RepositoryBinding] = {}
        for name, entry in entries.items():
            try:
                coll = accessor[entry.type_handle]
            except (LookupError, TypeError, ValueError):
                continue
            ops = operations_of(coll)
            create, read = self._qualifies(ops, entry.type_handle, require_create=require_create)
            if create is None and read is None:
                continue
            out[name] = RepositoryBinding(
                type_name=name,
                accessor=coll,
                accessor_label=f"{label}[{name}]",
                create_operation=create,
                read_operation=read,
                operations=tuple(ops),
                generic=True,
            )
        return out

    def _bind_named(
        self,
        members: List[Tuple[str, Any]],
        entries: Mapping[str, RecordTypeDescriptor],
        *,
        require_create: bool,
    ) -> Dict[str, RepositoryBinding]:
        member_ops = [(name, value, operations_of(value)) for name, value in members]
        out: Dict[str, RepositoryBinding] = {}

        for type_name, entry in entries.items():
            best: Optional[Tuple[int, str, RepositoryBinding]] = None
            for member_name, value, ops in member_ops:
                typed_ops = [
                    op for op in ops
                    if op.params and not _is_wildcard(op.params[0].annotation)
                ]
                create, read = self._qualifies(typed_ops, entry.type_handle, require_create=True)
                if create is None and not require_create:
                    read = self._typed_reader(ops, entry.type_handle)
                if create is None and read is None:
                    continue

                level = type_match(create.params[0].annotation, entry.type_handle) if create else EXACT
                if level == INCOMPATIBLE:
                    continue
                if read is None:
                    read = self._heuristics.select_read_method(ops)
                candidate = RepositoryBinding(
                    type_name=type_name,
                    accessor=value,
                    accessor_label=member_name,
                    create_operation=create,
                    read_operation=read,
                    operations=tuple(ops),
                )
                key = (-level, member_name)
                if best is None or key < (best[0], best[1]):
                    best = (-level, member_name, candidate)

            if best is not None:
                out[type_name] = best[2]
        return out

    def _typed_reader(self, ops: List[OperationHandle], target: type) -> Optional[OperationHandle]:
        readers = [
            op for op in ops
            if op.arity == 1 and not op.returns_void and not _is_wildcard(op.returns)
            and type_match(op.returns, target) != INCOMPATIBLE
        ]
        return self._heuristics.select_read_method(readers)
