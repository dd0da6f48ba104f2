from typing import Any, Optional, TypeVar

from metaforge.core.heuristics import (
    ASSIGNABLE,
    EXACT,
    INCOMPATIBLE,
    MethodHeuristics,
    name_priority,
    operations_of,
    type_match,
)
from metaforge.core.save_context import SaveContext
from metaforge.metamodel import AxObjectBase, AxTable

T = TypeVar("T")


class SameSignatureRepo:
    def Update(self, instance: AxTable, ctx: SaveContext) -> None: ...
    def Create(self, instance: AxTable, ctx: SaveContext) -> None: ...
    def Write(self, instance: AxTable, ctx: SaveContext) -> None: ...


class MixedRepo:
    def create(self, instance: Any, ctx: SaveContext) -> None: ...
    def update(self, instance: AxTable, ctx: SaveContext) -> None: ...
    def equals(self, a: AxTable, b: AxTable) -> bool: ...
    def close(self, a: AxTable, b: Any) -> None: ...
    def _create_raw(self, instance: AxTable, ctx: SaveContext) -> None: ...
    def create_many(self, items: list) -> None: ...
    def read(self, name: str) -> Optional[AxTable]: ...
    def get(self, name: str) -> Optional[AxTable]: ...
    def delete(self, name: str) -> None: ...
    def count(self, flag: bool) -> int: ...


def test_create_wins_over_update_and_write():
    h = MethodHeuristics()
    ops = operations_of(SameSignatureRepo())
    for _ in range(5):
        assert h.select_method(ops, AxTable).name == "Create"
    assert h.select_method(list(reversed(ops)), AxTable).name == "Create"


def test_exact_type_beats_assignable_even_with_worse_name():
    h = MethodHeuristics()
    picked = h.select_method(operations_of(MixedRepo()), AxTable)
    assert picked.name == "update"


def test_infrastructure_and_wrong_arity_are_filtered():
    h = MethodHeuristics()
    names = {op.name for op in h.filter_candidates(operations_of(MixedRepo()), arity=2)}
    assert "equals" not in names
    assert "close" not in names
    assert "_create_raw" not in names
    assert "create_many" not in names
    assert names == {"create", "update"}


def test_no_candidate_returns_none():
    h = MethodHeuristics()
    assert h.select_method([], AxTable) is None
    assert h.select_method(operations_of(SameSignatureRepo()), int) is None


def test_read_method_prefers_read_over_get():
    h = MethodHeuristics()
    picked = h.select_read_method(operations_of(MixedRepo()))
    # delete returns None, count takes a bool
    assert picked.name == "read"


def test_name_priority_table():
    assert name_priority("CreateObject") == 1
    assert name_priority("save") == 2
    assert name_priority("writeThrough") == 3
    assert name_priority("Update") == 4
    assert name_priority("readOne") == 5
    assert name_priority("get") == 6
    assert name_priority("persist") == 10


def test_type_match_levels():
    assert type_match(AxTable, AxTable) == EXACT
    assert type_match("AxTable", AxTable) == EXACT
    assert type_match(AxObjectBase, AxTable) == ASSIGNABLE
    assert type_match(Any, AxTable) == ASSIGNABLE
    assert type_match(T, AxTable) == ASSIGNABLE
    assert type_match(Optional[AxTable], AxTable) == ASSIGNABLE
    assert type_match(str, AxTable) == INCOMPATIBLE


def test_operations_resolve_string_annotations():
    ops = {op.name: op for op in operations_of(MixedRepo())}
    assert ops["update"].params[0].annotation is AxTable
    assert ops["update"].arity == 2
    assert ops["delete"].returns_void
    assert not ops["read"].returns_void
