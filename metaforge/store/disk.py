from __future__ import annotations

import json
import logging
import os
import re
from pathlib import Path
from typing import Any, Dict, List, Optional

from metaforge.core.errors import ConfigurationError, StoreError
from metaforge.core.save_context import SaveContext

from .base import GenericRepository, MetadataStore, ModelInfo, ModelManifest, RecordCollection, T
from .codec import from_properties, object_name, to_properties

_log = logging.getLogger("metaforge.store")

MODELS_DIR = "_models"

_NAME_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


def _atomic_write(path: Path, obj: Dict[str, Any]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_suffix(path.suffix + ".tmp")
    tmp.write_text(json.dumps(obj, indent=2, sort_keys=True), encoding="utf-8")
    tmp.replace(path)


def _reserve(path: Path) -> bool:
    """Claim a new document path; False when another writer already holds it."""
    path.parent.mkdir(parents=True, exist_ok=True)
    try:
        fd = os.open(path, os.O_CREAT | os.O_EXCL | os.O_WRONLY)
    except FileExistsError:
        return False
    os.close(fd)
    return True


def _check_name(name: str, what: str = "Object") -> str:
    if not name:
        raise StoreError(f"{what} name is required")
    if not _NAME_RE.match(name):
        raise StoreError(f"{what} name '{name}' is not a valid identifier")
    return name


class DiskCollection(RecordCollection[T]):
    """
    File-backed collection for one record type.

    Path: <root>/<model>/<TypeName>/<name>.json
    """

    def __init__(self, store: "DiskMetadataStore", record_type: type):
        self._store = store
        self.record_type = record_type
        self.type_name = record_type.__name__

    # --- writes ---

    def create(self, instance: T, save_info: SaveContext) -> None:
        self._store.ensure_writable()
        name = _check_name(object_name(instance))
        existing = self._locate(name)
        if existing is not None:
            raise StoreError(f"{self.type_name} '{name}' already exists in model '{existing.parent.parent.name}'")
        path = self._path(save_info.name, name)
        try:
            reserved = _reserve(path)
        except OSError as e:
            raise StoreError(f"Cannot write {self.type_name} '{name}': {e}") from e
        if not reserved:
            raise StoreError(f"{self.type_name} '{name}' already exists in model '{save_info.name}'")
        try:
            self._write(path, name, instance, save_info)
        except StoreError:
            path.unlink(missing_ok=True)
            raise
        _log.info("created %s:%s model=%s", self.type_name, name, save_info.name)

    def update(self, instance: T, save_info: SaveContext) -> None:
        self._store.ensure_writable()
        name = _check_name(object_name(instance))
        path = self._locate(name) or self._path(save_info.name, name)
        self._write(path, name, instance, save_info)
        _log.info("updated %s:%s model=%s", self.type_name, name, save_info.name)

    def delete(self, name: str, save_info: SaveContext) -> None:
        self._store.ensure_writable()
        path = self._locate(name)
        if path is None:
            return
        path.unlink()
        _log.info("deleted %s:%s", self.type_name, name)

    # --- reads ---

    def read(self, name: str) -> Optional[T]:
        found = self.read_document(name)
        if found is None:
            return None
        return from_properties(self.record_type, found.get("properties") or {})

    def read_document(self, name: str) -> Optional[Dict[str, Any]]:
        path = self._locate(name)
        if path is None:
            return None
        try:
            doc = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            raise StoreError(f"Cannot read {self.type_name} '{name}': {e}") from e
        if not isinstance(doc, dict):
            raise StoreError(f"Stored {self.type_name} '{name}' is not a JSON object")
        return doc

    def list_names(self) -> List[str]:
        return sorted({p.stem for p in self._store.root.glob(f"*/{self.type_name}/*.json")})

    def list_for_model(self, model: str) -> List[str]:
        d = self._store.root / model / self.type_name
        if not d.is_dir():
            return []
        return sorted(p.stem for p in d.glob("*.json"))

    # --- internals ---

    def _path(self, model: str, name: str) -> Path:
        return self._store.root / _check_name(model, "Model") / self.type_name / f"{name}.json"

    def _locate(self, name: str) -> Optional[Path]:
        if not name:
            return None
        wanted = name.lower()
        for p in sorted(self._store.root.glob(f"*/{self.type_name}/*.json")):
            if p.parent.parent.name == MODELS_DIR:
                continue
            if p.stem.lower() == wanted:
                return p
        return None

    def _write(self, path: Path, name: str, instance: Any, save_info: SaveContext) -> None:
        if not isinstance(instance, self.record_type):
            raise StoreError(
                f"Expected {self.type_name} instance, got {type(instance).__name__}"
            )
        doc = {
            "type": self.type_name,
            "name": name,
            "model": save_info.to_dict(),
            "properties": to_properties(instance),
        }
        try:
            _atomic_write(path, doc)
        except OSError as e:
            raise StoreError(f"Cannot write {self.type_name} '{name}': {e}") from e


class DiskObjectRepository(GenericRepository):
    """``store.objects[AxTable]`` -> the AxTable collection."""

    def __init__(self, store: "DiskMetadataStore"):
        self._store = store
        self._collections: Dict[type, DiskCollection] = {}

    def __getitem__(self, type_handle: type) -> DiskCollection:
        if not isinstance(type_handle, type):
            raise KeyError(type_handle)
        coll = self._collections.get(type_handle)
        if coll is None:
            coll = DiskCollection(self._store, type_handle)
            self._collections[type_handle] = coll
        return coll


class DiskModelManifest(ModelManifest):
    """Model descriptors stored at <root>/_models/<name>.json."""

    def __init__(self, store: "DiskMetadataStore"):
        self._store = store

    def _dir(self) -> Path:
        return self._store.root / MODELS_DIR

    def read(self, name: str) -> Optional[ModelInfo]:
        if not name:
            return None
        d = self._dir()
        if not d.is_dir():
            return None
        wanted = name.lower()
        for p in sorted(d.glob("*.json")):
            if p.stem.lower() != wanted:
                continue
            try:
                return ModelInfo.from_dict(json.loads(p.read_text(encoding="utf-8")))
            except (OSError, ValueError, KeyError) as e:
                raise StoreError(f"Cannot read model descriptor '{name}': {e}") from e
        return None

    def list_models(self) -> List[str]:
        d = self._dir()
        if not d.is_dir():
            return []
        return sorted(p.stem for p in d.glob("*.json"))

    def create(self, info: ModelInfo) -> None:
        self._store.ensure_writable()
        _check_name(info.name, "Model")
        _atomic_write(self._dir() / f"{info.name}.json", info.to_dict())


class DiskMetadataStore(MetadataStore):
    """
    JSON-file metadata store.

    The primary (custom) store is writable; the secondary (standard) store is
    opened read-only and any write raises StoreError.
    """

    def __init__(self, root: str | Path, *, read_only: bool = False, create: bool = False):
        self.root = Path(root).expanduser()
        self.read_only = read_only

        if not self.root.exists():
            if not create or read_only:
                raise ConfigurationError(f"Metadata store path does not exist: {self.root}")
            try:
                self.root.mkdir(parents=True, exist_ok=True)
            except OSError as e:
                raise ConfigurationError(f"Cannot create metadata store at {self.root}: {e}") from e
            _log.warning("Metadata store path did not exist, created: %s", self.root)

        if not self.root.is_dir():
            raise ConfigurationError(f"Metadata store path is not a directory: {self.root}")
        if not read_only and not os.access(self.root, os.W_OK):
            raise ConfigurationError(f"Metadata store path is not writable: {self.root}")

        self.objects = DiskObjectRepository(self)
        self.models = DiskModelManifest(self)

    def ensure_writable(self) -> None:
        if self.read_only:
            raise StoreError(f"Metadata store {self.root} is read-only")

    def describe(self) -> Dict[str, Any]:
        return {
            "kind": "disk",
            "root": str(self.root),
            "read_only": self.read_only,
        }

