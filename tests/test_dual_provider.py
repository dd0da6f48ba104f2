import pytest

from metaforge.core.catalog import TypeCatalog
from metaforge.core.errors import StoreError, TypeResolutionError
from metaforge.core.providers import PRIMARY, SECONDARY, DualProviderResolver
from metaforge.core.repositories import RepositoryResolver
from metaforge.core.save_context import default_save_context

from conftest import RECORD_PATTERN, RECORD_TYPES, WidgetRecord


def _resolver(primary_store, secondary_store):
    repo = RepositoryResolver(TypeCatalog(RECORD_TYPES, name_pattern=RECORD_PATTERN))
    return DualProviderResolver(
        repo.discover(primary_store),
        repo.discover(secondary_store, require_create=False),
    )


def test_read_prefers_primary_then_secondary_then_none(primary_store, secondary_store):
    ctx = default_save_context("Core")
    primary_store.objects[WidgetRecord].create(WidgetRecord(name="Shared", label="custom copy"), ctx)
    dual = _resolver(primary_store, secondary_store)

    both = dual.read("WidgetRecord", "Shared")
    assert both.label == "custom copy"
    assert dual.source_of("WidgetRecord", "Shared") == PRIMARY

    only_secondary = dual.read("WidgetRecord", "Legacy")
    assert only_secondary.label == "From standard"
    assert dual.source_of("WidgetRecord", "Legacy") == SECONDARY

    assert dual.read("WidgetRecord", "Nowhere") is None
    assert dual.source_of("WidgetRecord", "Nowhere") is None
    assert dual.read("GadgetRecord", "Legacy") is None


def test_write_targets_primary_only(primary_store, secondary_store):
    dual = _resolver(primary_store, secondary_store)
    dual.write("WidgetRecord", WidgetRecord(name="Fresh"), default_save_context("Core"))

    assert primary_store.objects[WidgetRecord].read("Fresh") is not None
    assert secondary_store.objects[WidgetRecord].read("Fresh") is None


def test_write_without_binding_raises(primary_store, secondary_store):
    dual = _resolver(primary_store, secondary_store)
    with pytest.raises(TypeResolutionError):
        dual.write("MissingRecord", WidgetRecord(name="X"), default_save_context("Core"))


def test_write_store_failure_surfaces_as_store_error(primary_store, secondary_store):
    dual = _resolver(primary_store, secondary_store)
    ctx = default_save_context("Core")
    dual.write("WidgetRecord", WidgetRecord(name="Dup"), ctx)
    with pytest.raises(StoreError, match="already exists"):
        dual.write("WidgetRecord", WidgetRecord(name="Dup"), ctx)


def test_failing_secondary_read_is_a_miss(primary_store):
    class BrokenCollection:
        def read(self, name: str) -> WidgetRecord:
            raise RuntimeError("disk on fire")

    class BrokenStore:
        def __init__(self):
            self.widgets = BrokenCollection()

    repo = RepositoryResolver(TypeCatalog([WidgetRecord], name_pattern=RECORD_PATTERN))
    secondary = repo.discover(BrokenStore(), require_create=False)
    assert "WidgetRecord" in secondary

    dual = DualProviderResolver(repo.discover(primary_store), secondary)
    assert dual.read("WidgetRecord", "Anything") is None
