from __future__ import annotations

import inspect
from typing import Any, Dict, List, Mapping

from .binder import coerce_field, normalize_key
from .catalog import RecordTypeDescriptor, field_spec_for
from .errors import BindingError
from .heuristics import OperationHandle, _annotation_name, operations_of
from .results import MethodCapability, ObjectCapabilities, ParameterInfo, PropertyCapability

_MODIFYING = (
    "add", "set", "apply", "create", "update", "modify", "insert",
    "remove", "delete", "clear", "reset", "configure",
)
_READ_ONLY = (
    "get", "find", "search", "list", "enumerate", "count", "contains",
    "equals", "compare", "validate", "check", "test",
)
_COLLECTION_VERBS = ("append", "extend", "insert", "remove", "clear", "pop")

_IDENTIFYING_SUFFIXES = ("name", "label", "description")


def is_modification_method(op: OperationHandle) -> bool:
    name = op.name.lower()
    if name.startswith("_") or name == "primary_key":
        return False
    if any(p in name for p in _MODIFYING):
        return True
    if any(p in name for p in _READ_ONLY):
        return False
    return op.returns_void


def modification_methods(instance: Any) -> List[OperationHandle]:
    return [op for op in operations_of(instance) if is_modification_method(op)]


def _describe(op: OperationHandle) -> str:
    n = op.arity
    params = "no parameters" if n == 0 else f"{n} parameter{'s' if n > 1 else ''}"
    return f"{op.name} - {_annotation_name(op.returns)} method with {params}"


def discover_capabilities(descriptor: RecordTypeDescriptor) -> ObjectCapabilities:
    caps = ObjectCapabilities(object_type=descriptor.name)
    bases = [b.__name__ for b in descriptor.type_handle.__mro__[1:] if b is not object]
    caps.base_type = bases[0] if bases else None

    for op in modification_methods(descriptor.new_instance()):
        caps.modification_methods.append(MethodCapability(
            name=op.name,
            return_type=_annotation_name(op.returns),
            description=_describe(op),
            parameters=[
                ParameterInfo(
                    name=p.name,
                    type=_annotation_name(p.annotation),
                    is_optional=p.has_default,
                )
                for p in op.params
            ],
        ))

    for spec in descriptor.fields.values():
        enum_type = spec.enum_type
        caps.writable_properties.append(PropertyCapability(
            name=spec.name,
            type=_annotation_name(spec.item_type if spec.is_collection else spec.target),
            is_collection=spec.is_collection,
            enum_values=[m.name for m in enum_type] if enum_type else [],
            collection_methods=sorted(_COLLECTION_VERBS) if spec.is_collection else [],
        ))
    return caps


def prepare_arguments(op: OperationHandle, params: Mapping[str, Any]) -> List[Any]:
    """Positional arguments for ``op`` from a loosely-typed parameter bag."""
    folded = {normalize_key(k): v for k, v in (params or {}).items()}
    args: List[Any] = []
    for p in op.params:
        key = normalize_key(p.name)
        if key not in folded:
            if p.has_default:
                break
            raise BindingError(f"Missing parameter '{p.name}' for {op.name}", field=p.name)
        annotation = p.annotation if p.annotation is not inspect.Parameter.empty else Any
        args.append(coerce_field(field_spec_for(p.name, annotation), folded[key]))
    return args


def object_state(obj: Any) -> Dict[str, Any]:
    """Collection counts plus identifying string properties of an object."""
    state: Dict[str, Any] = {}
    for name in sorted(vars(obj)) if hasattr(obj, "__dict__") else []:
        if name.startswith("_"):
            continue
        value = getattr(obj, name)
        if isinstance(value, (list, tuple, set, dict)):
            state[f"{name}_count"] = len(value)
        elif isinstance(value, str) and name.lower().endswith(_IDENTIFYING_SUFFIXES):
            state[name] = value
    return state
