from __future__ import annotations

import logging
from typing import Any, Mapping, Optional, Tuple

from .errors import StoreError, TypeResolutionError
from .heuristics import OperationHandle
from .repositories import RepositoryBinding
from .save_context import SaveContext

_log = logging.getLogger("metaforge.providers")

PRIMARY = "primary"
SECONDARY = "secondary"


class DualProviderResolver:
    """
    Read fallback across two backing stores.

    primary   - customization layer, the only write target
    secondary - standard/shipped layer, read-only reference data
    """

    def __init__(
        self,
        primary: Mapping[str, RepositoryBinding],
        secondary: Optional[Mapping[str, RepositoryBinding]] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self._primary = primary
        self._secondary = secondary or {}
        self._log = logger or _log

    def read(self, type_name: str, name: str) -> Optional[Any]:
        hit = self.read_with_source(type_name, name)
        return hit[0] if hit is not None else None

    def read_with_source(self, type_name: str, name: str) -> Optional[Tuple[Any, str]]:
        for label, bindings in ((PRIMARY, self._primary), (SECONDARY, self._secondary)):
            obj = self._read_one(label, bindings.get(type_name), type_name, name)
            if obj is not None:
                return obj, label
        return None

    def source_of(self, type_name: str, name: str) -> Optional[str]:
        hit = self.read_with_source(type_name, name)
        return hit[1] if hit is not None else None

    def write(
        self,
        type_name: str,
        instance: Any,
        save_context: SaveContext,
        operation: Optional[OperationHandle] = None,
    ) -> Any:
        binding = self._primary.get(type_name)
        if binding is None:
            raise TypeResolutionError(
                f"No repository binding for object type: {type_name}", type_name=type_name
            )
        op = operation or binding.create_operation
        if op is None:
            raise TypeResolutionError(
                f"No write operation for object type: {type_name}", type_name=type_name
            )
        try:
            return op(instance, save_context)
        except StoreError:
            raise
        except Exception as e:
            raise StoreError(f"{binding.accessor_label}.{op.name} failed: {e}") from e

    def _read_one(
        self, label: str, binding: Optional[RepositoryBinding], type_name: str, name: str
    ) -> Optional[Any]:
        if binding is None or binding.read_operation is None:
            return None
        try:
            return binding.read_operation(name)
        except Exception as e:
            self._log.warning("read failed store=%s type=%s name=%s: %s", label, type_name, name, e)
            return None
