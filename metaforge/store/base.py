from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import asdict, dataclass
from typing import Any, Dict, Generic, List, Optional, TypeVar

from metaforge.core.save_context import SaveContext

T = TypeVar("T")


@dataclass
class ModelInfo:
    name: str
    identity_id: int = 1
    layer: int = 14
    sequence_id: int = 0
    precedence: int = 0
    module: str = ""
    publisher: str = ""
    description: str = ""
    display_name: str = ""
    version: str = "1.0.0.0"

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @staticmethod
    def from_dict(d: Dict[str, Any]) -> "ModelInfo":
        return ModelInfo(
            name=d["name"],
            identity_id=int(d.get("identity_id", 1)),
            layer=int(d.get("layer", 14)),
            sequence_id=int(d.get("sequence_id", 0)),
            precedence=int(d.get("precedence", 0)),
            module=d.get("module") or d["name"],
            publisher=d.get("publisher", ""),
            description=d.get("description", ""),
            display_name=d.get("display_name") or d["name"],
            version=d.get("version", "1.0.0.0"),
        )


class RecordCollection(ABC, Generic[T]):
    """Typed collection of one record type inside a backing store."""

    @abstractmethod
    def create(self, instance: T, save_info: SaveContext) -> None:
        """Persist a new object; fails if the name is taken."""

    @abstractmethod
    def update(self, instance: T, save_info: SaveContext) -> None:
        """Persist an existing object (creates it when missing)."""

    @abstractmethod
    def read(self, name: str) -> Optional[T]:
        """Return the object or None."""

    @abstractmethod
    def delete(self, name: str, save_info: SaveContext) -> None:
        """Remove the object; no-op when missing."""

    @abstractmethod
    def list_names(self) -> List[str]:
        ...


class GenericRepository(ABC):
    """One accessor serving every record type, keyed by the type handle."""

    @abstractmethod
    def __getitem__(self, type_handle: type) -> RecordCollection:
        ...


class ModelManifest(ABC):
    @abstractmethod
    def read(self, name: str) -> Optional[ModelInfo]:
        ...

    @abstractmethod
    def list_models(self) -> List[str]:
        ...


class MetadataStore(ABC):
    objects: GenericRepository
    models: ModelManifest
    read_only: bool

    @abstractmethod
    def describe(self) -> Dict[str, Any]:
        ...
