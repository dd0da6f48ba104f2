from __future__ import annotations

import dataclasses
import logging
from dataclasses import dataclass, field
from datetime import date, datetime, time
from decimal import Decimal
from pathlib import Path
from types import ModuleType
from typing import Any, Dict, Iterable, List, Mapping, Optional, Union

from metaforge.store.codec import encode_value, object_name, to_properties
from metaforge.store.disk import DiskMetadataStore
from metaforge.observability.metrics import inc_creation, inc_named

from .binder import PropertyBinder, normalize_key
from .capabilities import (
    discover_capabilities,
    modification_methods,
    object_state,
    prepare_arguments,
)
from .catalog import FieldSpec, RecordTypeDescriptor, TypeCatalog
from .config import Configuration, load_configuration
from .errors import BindingError, StoreError, TypeResolutionError
from .heuristics import MethodHeuristics, OperationHandle, name_priority
from .providers import DualProviderResolver
from .repositories import RepositoryBinding, RepositoryResolver, bindings_fingerprint
from .results import CreationResult, CreationStatistics, ModificationResult, ObjectCapabilities
from .save_context import SaveContext, SaveContextBuilder
from .state_machine import CreationState, ensure_transition

_log = logging.getLogger("metaforge.factory")

MODEL_KEY = "model"
UNKNOWN_TYPE_LABEL = "unknown"

_JSON_TYPES = (
    (bool, "boolean"),
    (int, "integer"),
    (float, "number"),
    (Decimal, "number"),
    (str, "string"),
    (datetime, "datetime"),
    (date, "date"),
    (time, "time"),
)


@dataclass
class _CreationRun:
    type_name: str
    catalogued: bool = False
    state: CreationState = CreationState.VALIDATED
    trail: List[str] = field(default_factory=lambda: [CreationState.VALIDATED.value])

    def advance(self, dst: CreationState) -> None:
        ensure_transition(self.state, dst)
        self.state = dst
        self.trail.append(dst.value)


def _json_type(spec: FieldSpec) -> str:
    if spec.is_collection:
        return "array"
    target = spec.target
    if spec.enum_type is not None:
        return "enum"
    for py_type, name in _JSON_TYPES:
        if target is py_type:
            return name
    if dataclasses.is_dataclass(target):
        return "object"
    return "any"


class ObjectFactory:
    """
    Creates, reads and modifies record objects by type name.

    Discovery (catalog plus repository bindings for both stores) runs once
    here; every map built during construction is read-only afterwards and
    only ``rediscover()`` replaces it.
    """

    def __init__(
        self,
        config: Configuration,
        logger: Optional[logging.Logger] = None,
        *,
        primary_store: Any = None,
        secondary_store: Any = None,
        registry: Union[str, ModuleType, Iterable[type], None] = None,
    ):
        self.config = config
        self._log = logger or _log

        # Unreachable stores raise ConfigurationError here.
        self.primary_store = primary_store if primary_store is not None else DiskMetadataStore(
            config.primary_store_path, create=config.create_missing_primary
        )
        self.secondary_store = secondary_store if secondary_store is not None else DiskMetadataStore(
            config.secondary_store_path, read_only=True
        )

        self._catalog = TypeCatalog(
            registry if registry is not None else config.type_registry,
            name_pattern=config.type_name_pattern,
        )
        self._heuristics = MethodHeuristics()
        self._resolver = RepositoryResolver(self._catalog, self._heuristics)
        self._binder = PropertyBinder()
        self._save_context = SaveContextBuilder(self.primary_store)

        self._discover()

    @classmethod
    def from_config_file(
        cls, path: Optional[Path] = None, logger: Optional[logging.Logger] = None
    ) -> "ObjectFactory":
        return cls(load_configuration(path), logger)

    def _discover(self) -> None:
        self._catalog.discover()
        self._primary = self._resolver.discover(self.primary_store)
        self._secondary = self._resolver.discover(self.secondary_store, require_create=False)
        self._provider = DualProviderResolver(self._primary, self._secondary)

        stats = self.get_creation_statistics()
        self._log.info(
            "Object factory ready types=%d bound=%d unbound=%d fingerprint=%s",
            stats.total_types, stats.bound_types, stats.unbound_types, bindings_fingerprint(self._primary),
        )
        if stats.unbound:
            self._log.warning("No repository binding for: %s", ", ".join(stats.unbound))

    def rediscover(self) -> None:
        self._catalog.rediscover()
        self._discover()

    @property
    def catalog(self) -> TypeCatalog:
        return self._catalog

    @property
    def bindings(self) -> Mapping[str, RepositoryBinding]:
        return self._primary

    # ------------------------------------------------------------
    # Creation
    # ------------------------------------------------------------
    def create_object(self, type_name: str, params: Optional[Mapping[str, Any]] = None) -> CreationResult:
        bag = dict(params or {})
        model = self._pop_model(bag)
        run = _CreationRun(type_name=type_name)
        warnings: List[str] = []

        entry = self._catalog.get(type_name)
        if entry is None:
            return self._fail(run, f"Unknown object type: {type_name}", warnings)
        run.type_name = entry.name
        run.catalogued = True

        try:
            instance = entry.new_instance()
        except Exception as e:
            return self._fail(run, f"Cannot instantiate {entry.name}: {e}", warnings)
        run.advance(CreationState.INSTANTIATED)

        try:
            report = self._binder.bind_with_report(instance, bag, entry)
        except Exception as e:
            self._log.exception("Unexpected failure binding %s", entry.name)
            return self._fail(run, f"Cannot bind parameters for {entry.name}: {e}", warnings)
        warnings.extend(report.warnings)
        if not report.bound:
            return self._fail(run, f"No parameters could be bound for {entry.name}", warnings)
        run.advance(CreationState.BOUND)

        binding = self._primary.get(entry.name)
        if binding is None or binding.create_operation is None:
            return self._fail(run, f"No repository binding for object type: {entry.name}", warnings)
        run.advance(CreationState.RESOLVED)

        save_context, ctx_warnings = self._save_context.build(model)
        warnings.extend(ctx_warnings)

        name = object_name(instance)
        try:
            self._provider.write(entry.name, instance, save_context, binding.create_operation)
        except (StoreError, TypeResolutionError) as e:
            return self._fail(run, str(e), warnings, name=name)
        except Exception as e:
            self._log.exception("Unexpected failure creating %s '%s'", entry.name, name)
            return self._fail(run, f"Failed to create {entry.name} '{name}': {e}", warnings, name=name)
        run.advance(CreationState.PERSISTED)

        inc_creation(entry.name, True)
        self._log.info(
            "Created %s '%s' model=%s via %s.%s warnings=%d",
            entry.name, name, save_context.name, binding.accessor_label,
            binding.create_operation.name, len(warnings),
        )
        return CreationResult(
            success=True,
            object_type_name=entry.name,
            object_name=name,
            warnings=warnings,
            properties={
                "message": f"Successfully created {entry.name} '{name}' in model '{save_context.name}'",
                "model": save_context.name,
                "layer": save_context.layer_name,
                "save_context": save_context.to_dict(),
                "repository": binding.accessor_label,
                "bound_fields": list(report.bound),
                "states": list(run.trail),
            },
        )

    def _pop_model(self, bag: Dict[str, Any]) -> str:
        for key in list(bag):
            if normalize_key(key) == MODEL_KEY:
                value = bag.pop(key)
                if value:
                    return str(value)
        return self.config.default_model

    def _fail(
        self, run: _CreationRun, error: str, warnings: List[str], *, name: Optional[str] = None
    ) -> CreationResult:
        run.advance(CreationState.FAILED)
        # Uncatalogued names share one label.
        inc_creation(run.type_name if run.catalogued else UNKNOWN_TYPE_LABEL, False)
        self._log.warning("Create %s failed at %s: %s", run.type_name, run.trail[-2], error)
        result = CreationResult.failure(run.type_name, error, name=name, warnings=warnings)
        result.properties["states"] = list(run.trail)
        return result

    # ------------------------------------------------------------
    # Read / save
    # ------------------------------------------------------------
    def get_existing_object(self, type_name: str, name: str) -> Optional[Any]:
        entry = self._catalog.get(type_name)
        if entry is None or not name:
            return None
        return self._provider.read(entry.name, name)

    def save_object(
        self, type_name: str, name: str, instance: Any, *, model: Optional[str] = None
    ) -> bool:
        """
        Persist a modified object into the primary store.

        An update-family operation of the binding is preferred; the create
        operation is the fallback when the store has nothing else. Without an
        explicit model the context already stored with the object is reused.
        """
        entry = self._catalog.get(type_name)
        if entry is None or instance is None:
            return False
        if not isinstance(instance, entry.type_handle):
            self._log.warning("save %s '%s': got %s instance", entry.name, name, type(instance).__name__)
            return False
        actual = object_name(instance)
        if name and actual and actual.lower() != name.lower():
            self._log.warning("save %s: name mismatch '%s' != '%s'", entry.name, name, actual)
            return False

        binding = self._primary.get(entry.name)
        if binding is None:
            return False
        op = self._save_operation(binding, entry.type_handle)
        if op is None:
            return False

        save_context = None if model else self._stored_context(binding, name or actual)
        if save_context is None:
            save_context, _ = self._save_context.build(model or self.config.default_model)
        try:
            self._provider.write(entry.name, instance, save_context, op)
        except (StoreError, TypeResolutionError) as e:
            self._log.warning("save %s '%s' failed: %s", entry.name, name, e)
            return False
        self._log.info("Saved %s '%s' via %s.%s", entry.name, name, binding.accessor_label, op.name)
        return True

    def _stored_context(self, binding: RepositoryBinding, name: str) -> Optional[SaveContext]:
        """Save context already recorded for an object in the primary store, if any."""
        read_document = getattr(binding.accessor, "read_document", None)
        if read_document is None or not name:
            return None
        try:
            doc = read_document(name)
        except StoreError as e:
            self._log.warning("Cannot read stored context for %s '%s': %s", binding.type_name, name, e)
            return None
        if not doc or not isinstance(doc.get("model"), dict):
            return None
        try:
            return SaveContext.from_dict(doc["model"])
        except (TypeError, ValueError):
            return None

    def _save_operation(self, binding: RepositoryBinding, target: type) -> Optional[OperationHandle]:
        ranked = self._heuristics.rank(binding.operations, target, arity=2)
        updates = [op for op in ranked if 1 < name_priority(op.name) <= 4]
        if updates:
            return updates[0]
        return binding.create_operation

    # ------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------
    def get_supported_types(self) -> Dict[str, str]:
        return {
            name: b.accessor_label
            for name, b in self._primary.items()
            if b.create_operation is not None
        }

    def get_creation_statistics(self) -> CreationStatistics:
        supported = self.get_supported_types()
        names = self._catalog.names()
        unbound = [n for n in names if n not in supported]
        return CreationStatistics(
            total_types=len(names),
            bound_types=len(supported),
            unbound_types=len(unbound),
            unbound=unbound,
        )

    def discover_capabilities(self, type_name: str) -> ObjectCapabilities:
        entry = self._catalog.get(type_name)
        if entry is None:
            return ObjectCapabilities(
                object_type=type_name, success=False, error=f"Unknown object type: {type_name}"
            )
        return discover_capabilities(entry)

    def get_parameter_schemas(self, type_name: str) -> Dict[str, Dict[str, Any]]:
        entry = self._require(type_name)
        out: Dict[str, Dict[str, Any]] = {}
        for name, spec in entry.fields.items():
            schema: Dict[str, Any] = {
                "type": _json_type(spec),
                "required": name.lower() == "name",
            }
            if spec.enum_type is not None:
                schema["enum"] = [m.name for m in spec.enum_type]
            out[name] = schema
        return out

    def inspect_object(self, type_name: str, name: str) -> Optional[Dict[str, Any]]:
        entry = self._catalog.get(type_name)
        if entry is None:
            return None
        hit = self._provider.read_with_source(entry.name, name)
        if hit is None:
            return None
        obj, source = hit
        return {
            "type": entry.name,
            "name": object_name(obj) or name,
            "source": source,
            "state": object_state(obj),
            "properties": to_properties(obj),
        }

    def list_models(self) -> List[str]:
        manifest = getattr(self.primary_store, "models", None)
        if manifest is None:
            return []
        try:
            return list(manifest.list_models())
        except Exception as e:
            self._log.warning("list_models failed: %s", e)
            return []

    def list_objects_for_model(self, model: str) -> Dict[str, List[str]]:
        out: Dict[str, List[str]] = {}
        for type_name, binding in self._primary.items():
            lister = getattr(binding.accessor, "list_for_model", None)
            if not callable(lister):
                continue
            names = list(lister(model))
            if names:
                out[type_name] = names
        return out

    def get_status(self) -> Dict[str, Any]:
        stats = self.get_creation_statistics()
        return {
            "initialized": True,
            "type_registry": self._catalog.source,
            "primary_store": _describe_store(self.primary_store),
            "secondary_store": _describe_store(self.secondary_store),
            "default_model": self.config.default_model,
            "statistics": stats.to_dict(),
            "secondary_types": len(self._secondary),
            "fingerprint": bindings_fingerprint(self._primary),
        }

    # ------------------------------------------------------------
    # Modification
    # ------------------------------------------------------------
    def execute_modification(
        self,
        type_name: str,
        name: str,
        method_name: str,
        params: Optional[Mapping[str, Any]] = None,
    ) -> ModificationResult:
        result = ModificationResult(
            success=False, object_type=type_name, object_name=name, method_name=method_name
        )
        entry = self._catalog.get(type_name)
        if entry is None:
            result.error = f"Unknown object type: {type_name}"
            return result
        result.object_type = entry.name

        hit = self._provider.read_with_source(entry.name, name)
        if hit is None:
            result.error = f"{entry.name} '{name}' not found"
            return result
        obj, source = hit

        op = self._find_method(obj, method_name)
        if op is None:
            available = ", ".join(o.name for o in modification_methods(obj))
            result.error = f"Method '{method_name}' not found on {entry.name} (available: {available})"
            return result
        result.method_name = op.name

        try:
            args = prepare_arguments(op, params or {})
        except BindingError as e:
            result.error = str(e)
            return result

        try:
            returned = op(*args)
        except Exception as e:
            self._log.warning("%s.%s failed on '%s': %s", entry.name, op.name, name, e)
            result.error = f"Method {op.name} failed: {e}"
            return result

        inc_named(f"modify_{entry.name}.{op.name}")
        result.success = True
        result.return_value = encode_value(returned) if not op.returns_void else None
        result.saved = self.save_object(entry.name, name, obj)
        if result.saved:
            result.message = f"Executed {op.name} on {entry.name} '{name}' and saved"
            if source != "primary":
                result.message += f" (copied from {source} store)"
        else:
            result.message = f"Executed {op.name} on {entry.name} '{name}'"
            result.warnings.append("Method executed but the object could not be saved")
        return result

    @staticmethod
    def _find_method(obj: Any, method_name: str) -> Optional[OperationHandle]:
        ops = modification_methods(obj)
        for op in ops:
            if op.name == method_name:
                return op
        wanted = normalize_key(method_name or "")
        for op in ops:
            if normalize_key(op.name) == wanted:
                return op
        return None

    def _require(self, type_name: str) -> RecordTypeDescriptor:
        entry = self._catalog.get(type_name)
        if entry is None:
            raise TypeResolutionError(f"Unknown object type: {type_name}", type_name=type_name)
        return entry


def _describe_store(store: Any) -> Dict[str, Any]:
    describe = getattr(store, "describe", None)
    if callable(describe):
        return describe()
    return {"kind": type(store).__name__}
