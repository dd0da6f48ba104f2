from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional


@dataclass
class CreationResult:
    success: bool
    object_type_name: str
    object_name: Optional[str] = None
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    properties: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @staticmethod
    def failure(type_name: str, error: str, *, name: Optional[str] = None, warnings: Optional[List[str]] = None) -> "CreationResult":
        return CreationResult(
            success=False,
            object_type_name=type_name,
            object_name=name,
            errors=[error],
            warnings=list(warnings or []),
        )


@dataclass(frozen=True)
class CreationStatistics:
    total_types: int
    bound_types: int
    unbound_types: int
    unbound: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class ParameterInfo:
    name: str
    type: str
    is_optional: bool = False


@dataclass
class MethodCapability:
    name: str
    return_type: str
    description: str
    parameters: List[ParameterInfo] = field(default_factory=list)


@dataclass
class PropertyCapability:
    name: str
    type: str
    is_collection: bool = False
    enum_values: List[str] = field(default_factory=list)
    collection_methods: List[str] = field(default_factory=list)


@dataclass
class ObjectCapabilities:
    object_type: str
    success: bool = True
    error: Optional[str] = None
    modification_methods: List[MethodCapability] = field(default_factory=list)
    writable_properties: List[PropertyCapability] = field(default_factory=list)
    base_type: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class ModificationResult:
    success: bool
    object_type: str
    object_name: str
    method_name: str
    message: str = ""
    error: Optional[str] = None
    return_value: Any = None
    saved: bool = False
    warnings: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
