from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import List, Optional

import pytest
from fastapi.testclient import TestClient

from metaforge.api.deps import get_factory
from metaforge.api.main import app
from metaforge.core.config import Configuration
from metaforge.core.factory import ObjectFactory
from metaforge.core.save_context import default_save_context
from metaforge.observability.metrics import reset_metrics
from metaforge.store.base import ModelInfo
from metaforge.store.disk import DiskMetadataStore


# ------------------------------------------------------------
# Record types used by the factory tests (registry: name ends with "Record")
# ------------------------------------------------------------
class LayoutPattern(Enum):
    Custom = "Custom"
    SimplePattern = "SimplePattern"
    WorkspaceTemplate = "WorkspaceTemplate"


class Color(str, Enum):
    RED = "Red"
    BLUE = "Blue"


@dataclass
class WidgetRecord:
    name: str = ""
    label: str = ""
    size: int = 0
    enabled: bool = False
    layout: LayoutPattern = LayoutPattern.Custom
    color: Color = Color.RED
    tags: List[str] = field(default_factory=list)
    released: Optional[datetime] = None

    def add_tag(self, tag: str) -> None:
        self.tags.append(tag)

    def set_size(self, size: int) -> int:
        self.size = size
        return self.size

    def get_tag_count(self) -> int:
        return len(self.tags)


@dataclass
class GadgetRecord:
    name: str = ""
    weight: float = 0.0


@dataclass
class NeedsArgsRecord:
    name: str


@dataclass
class WidgetHelperRecord:
    name: str = ""


RECORD_TYPES = [WidgetRecord, GadgetRecord, NeedsArgsRecord, WidgetHelperRecord, Color]
RECORD_PATTERN = r"Record$"


@pytest.fixture(autouse=True)
def _reset_metrics():
    reset_metrics()
    yield


@pytest.fixture()
def primary_store(tmp_path: Path) -> DiskMetadataStore:
    store = DiskMetadataStore(tmp_path / "custom", create=True)
    store.models.create(ModelInfo(name="Core", identity_id=42, layer=12, sequence_id=7, precedence=3))
    return store


@pytest.fixture()
def secondary_store(tmp_path: Path) -> DiskMetadataStore:
    """Read-only store seeded with WidgetRecord 'Legacy' and 'Shared'."""
    root = tmp_path / "standard"
    seed = DiskMetadataStore(root, create=True)
    ctx = default_save_context("Standard")
    seed.objects[WidgetRecord].create(WidgetRecord(name="Legacy", label="From standard", size=3), ctx)
    seed.objects[WidgetRecord].create(WidgetRecord(name="Shared", label="standard copy"), ctx)
    return DiskMetadataStore(root, read_only=True)


@pytest.fixture()
def config(tmp_path: Path) -> Configuration:
    return Configuration(
        primary_store_path=str(tmp_path / "custom"),
        secondary_store_path=str(tmp_path / "standard"),
        type_name_pattern=RECORD_PATTERN,
    )


@pytest.fixture()
def factory(config, primary_store, secondary_store) -> ObjectFactory:
    return ObjectFactory(
        config,
        primary_store=primary_store,
        secondary_store=secondary_store,
        registry=RECORD_TYPES,
    )


@pytest.fixture()
def ax_factory(tmp_path: Path) -> ObjectFactory:
    """Factory over the bundled metamodel registry and fresh disk stores."""
    (tmp_path / "std").mkdir()
    cfg = Configuration(
        primary_store_path=str(tmp_path / "usr"),
        secondary_store_path=str(tmp_path / "std"),
    )
    return ObjectFactory(cfg)


@pytest.fixture()
def client(factory):
    app.dependency_overrides[get_factory] = lambda: factory
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
