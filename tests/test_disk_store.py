import json
from datetime import datetime
from pathlib import Path

import pytest

from metaforge.core.errors import ConfigurationError, StoreError
from metaforge.core.save_context import default_save_context
from metaforge.metamodel import AxTable, FieldKind, TableField, TableGroup
from metaforge.store.base import ModelInfo
from metaforge.store.disk import DiskMetadataStore

from conftest import LayoutPattern, WidgetRecord


def test_create_writes_document_under_model_dir(primary_store):
    ctx = default_save_context("Core")
    w = WidgetRecord(name="Alpha", size=3, layout=LayoutPattern.SimplePattern, released=datetime(2024, 1, 2))
    primary_store.objects[WidgetRecord].create(w, ctx)

    path = primary_store.root / "Core" / "WidgetRecord" / "Alpha.json"
    doc = json.loads(path.read_text(encoding="utf-8"))
    assert doc["type"] == "WidgetRecord"
    assert doc["name"] == "Alpha"
    assert doc["model"]["name"] == "Core"
    assert doc["properties"]["layout"] == "SimplePattern"
    assert doc["properties"]["released"] == "2024-01-02T00:00:00"
    assert not list(path.parent.glob("*.tmp"))


def test_read_restores_typed_instance(primary_store):
    ctx = default_save_context("Core")
    table = AxTable(name="CustTable", table_group=TableGroup.MAIN)
    table.add_field(TableField(name="AccountNum", kind=FieldKind.STRING, mandatory=True))
    primary_store.objects[AxTable].create(table, ctx)

    back = primary_store.objects[AxTable].read("custtable")
    assert back == table
    assert back.fields[0].kind is FieldKind.STRING


def test_create_rejects_existing_name(primary_store):
    coll = primary_store.objects[WidgetRecord]
    coll.create(WidgetRecord(name="Dup"), default_save_context("Core"))
    with pytest.raises(StoreError, match="already exists in model 'Core'"):
        coll.create(WidgetRecord(name="dup"), default_save_context("Other"))


def test_update_overwrites_in_place(primary_store):
    coll = primary_store.objects[WidgetRecord]
    coll.create(WidgetRecord(name="Beta", size=1), default_save_context("Core"))
    coll.update(WidgetRecord(name="Beta", size=2), default_save_context("Other"))
    assert coll.read("Beta").size == 2
    assert coll.list_names() == ["Beta"]
    assert coll.list_for_model("Core") == ["Beta"]
    assert coll.list_for_model("Other") == []


def test_delete_is_noop_when_missing(primary_store):
    coll = primary_store.objects[WidgetRecord]
    coll.delete("Ghost", default_save_context("Core"))
    coll.create(WidgetRecord(name="Gone"), default_save_context("Core"))
    coll.delete("Gone", default_save_context("Core"))
    assert coll.read("Gone") is None


def test_invalid_names_and_types_are_rejected(primary_store):
    coll = primary_store.objects[WidgetRecord]
    with pytest.raises(StoreError):
        coll.create(WidgetRecord(name=""), default_save_context("Core"))
    with pytest.raises(StoreError):
        coll.create(WidgetRecord(name="../escape"), default_save_context("Core"))
    with pytest.raises(StoreError):
        coll.create(AxTable(name="Wrong"), default_save_context("Core"))


def test_read_only_store_rejects_writes(secondary_store):
    with pytest.raises(StoreError, match="read-only"):
        secondary_store.objects[WidgetRecord].create(WidgetRecord(name="New"), default_save_context("Core"))
    assert secondary_store.objects[WidgetRecord].read("Legacy").size == 3


def test_missing_root_handling(tmp_path: Path):
    with pytest.raises(ConfigurationError):
        DiskMetadataStore(tmp_path / "absent")
    with pytest.raises(ConfigurationError):
        DiskMetadataStore(tmp_path / "absent", read_only=True, create=True)

    store = DiskMetadataStore(tmp_path / "made", create=True)
    assert store.root.is_dir()
    assert store.describe() == {"kind": "disk", "root": str(store.root), "read_only": False}


def test_root_must_be_a_directory(tmp_path: Path):
    f = tmp_path / "file"
    f.write_text("x", encoding="utf-8")
    with pytest.raises(ConfigurationError):
        DiskMetadataStore(f)


def test_model_manifest(primary_store):
    assert primary_store.models.list_models() == ["Core"]
    info = primary_store.models.read("CORE")
    assert info.identity_id == 42
    assert info.display_name == "Core"
    assert primary_store.models.read("Nope") is None

    primary_store.models.create(ModelInfo(name="Extra"))
    assert primary_store.models.list_models() == ["Core", "Extra"]


def test_model_directory_is_not_an_object_model(primary_store):
    primary_store.objects[WidgetRecord].create(WidgetRecord(name="Core"), default_save_context("Core"))
    assert primary_store.objects[WidgetRecord].list_names() == ["Core"]


def test_corrupt_document_is_a_store_error(primary_store):
    d = primary_store.root / "Core" / "WidgetRecord"
    d.mkdir(parents=True)
    (d / "Broken.json").write_text("{not json", encoding="utf-8")
    with pytest.raises(StoreError):
        primary_store.objects[WidgetRecord].read("Broken")


def test_create_never_overwrites_a_concurrent_create(primary_store, monkeypatch):
    coll = primary_store.objects[WidgetRecord]
    coll.create(WidgetRecord(name="Racer", label="first"), default_save_context("Core"))

    # Another writer got past the existence check before the first file landed.
    monkeypatch.setattr(coll, "_locate", lambda name: None)
    with pytest.raises(StoreError, match="already exists in model 'Core'"):
        coll.create(WidgetRecord(name="Racer", label="second"), default_save_context("Core"))

    monkeypatch.undo()
    assert coll.read("Racer").label == "first"
