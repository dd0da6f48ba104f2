from typing import Dict, Optional

from metaforge.core.catalog import TypeCatalog
from metaforge.core.repositories import RepositoryResolver, bindings_fingerprint, describe_bindings
from metaforge.core.save_context import SaveContext
from metaforge.metamodel import AxClass, AxEnum, AxObjectBase, AxTable

from conftest import RECORD_PATTERN, RECORD_TYPES


# ------------------------------------------------------------
# Named per-type layout (no generic accessor)
# ------------------------------------------------------------
class TableRepo:
    def __init__(self):
        self.saved: Dict[str, AxTable] = {}

    def save(self, table: AxTable, info: SaveContext) -> None:
        self.saved[table.name] = table

    def create(self, table: AxTable, info: SaveContext) -> None:
        self.saved[table.name] = table

    def read(self, name: str) -> Optional[AxTable]:
        return self.saved.get(name)


class AnyObjectRepo:
    """Accepts every record through the shared base class."""

    def add(self, obj: AxObjectBase, info: SaveContext) -> None:
        pass


class NamedStore:
    name = "named"

    def __init__(self):
        self.tables = TableRepo()
        self.objects_any = AnyObjectRepo()


class GenericAccessor:
    def __init__(self):
        self.made = {}

    def __getitem__(self, type_handle):
        if not isinstance(type_handle, type):
            raise KeyError(type_handle)
        return self.made.setdefault(type_handle, TableRepoLike())


class TableRepoLike:
    def create(self, obj, info: SaveContext) -> None:
        pass

    def read(self, name: str):
        return None


class GenericStore:
    def __init__(self):
        self.tables = TableRepo()
        self.everything = GenericAccessor()


def _catalog():
    return TypeCatalog([AxTable, AxClass, AxEnum], name_pattern=r"^Ax[A-Z]")


def test_generic_accessor_is_preferred_and_binds_every_type():
    bindings = RepositoryResolver(_catalog()).discover(GenericStore())
    assert list(bindings) == ["AxClass", "AxEnum", "AxTable"]
    for name, b in bindings.items():
        assert b.generic is True
        assert b.accessor_label == f"everything[{name}]"
        assert b.create_operation.name == "create"
        assert b.read_operation.name == "read"


def test_named_members_exact_type_beats_base_class():
    bindings = RepositoryResolver(_catalog()).discover(NamedStore())
    assert bindings["AxTable"].accessor_label == "tables"
    # TableRepo.save and create are both exact; name priority picks create
    assert bindings["AxTable"].create_operation.name == "create"
    assert bindings["AxTable"].read_operation.name == "read"
    assert bindings["AxClass"].accessor_label == "objects_any"
    assert bindings["AxEnum"].create_operation.name == "add"
    assert all(not b.generic for b in bindings.values())


def test_unbound_types_are_absent():
    class OnlyTables:
        def __init__(self):
            self.tables = TableRepo()

    bindings = RepositoryResolver(_catalog()).discover(OnlyTables())
    assert list(bindings) == ["AxTable"]


def test_disk_store_binds_through_objects_indexer(primary_store):
    catalog = TypeCatalog(RECORD_TYPES, name_pattern=RECORD_PATTERN)
    bindings = RepositoryResolver(catalog).discover(primary_store)
    assert bindings["WidgetRecord"].accessor_label == "objects[WidgetRecord]"
    assert bindings["WidgetRecord"].create_operation.name == "create"
    assert bindings["WidgetRecord"].read_operation.name == "read"


def test_rediscovery_is_deterministic(primary_store):
    catalog = TypeCatalog(RECORD_TYPES, name_pattern=RECORD_PATTERN)
    resolver = RepositoryResolver(catalog)
    first = resolver.discover(primary_store)
    catalog.rediscover()
    second = resolver.discover(primary_store)

    assert first == second
    assert describe_bindings(first) == describe_bindings(second)
    assert bindings_fingerprint(first) == bindings_fingerprint(second)

    named_a = RepositoryResolver(_catalog()).discover(NamedStore())
    named_b = RepositoryResolver(_catalog()).discover(NamedStore())
    assert bindings_fingerprint(named_a) == bindings_fingerprint(named_b)
    assert bindings_fingerprint(named_a) != bindings_fingerprint(first)
