from __future__ import annotations

import inspect
import typing
from dataclasses import dataclass, field
from types import UnionType
from typing import Any, Callable, Iterable, List, Optional, Sequence, Tuple, TypeVar, Union

# Lowest wins; first matching substring decides.
NAME_PRIORITY: Tuple[Tuple[str, int], ...] = (
    ("create", 1),
    ("save", 2),
    ("write", 3),
    ("update", 4),
    ("read", 5),
    ("get", 6),
)
DEFAULT_PRIORITY = 10

_INFRASTRUCTURE_NAMES = frozenset({
    "tostring", "str", "repr", "format",
    "equals", "eq", "ne", "compare", "compareto",
    "hash", "gethashcode",
    "gettype", "type",
    "dispose", "close", "finalize",
    "getenumerator", "iter", "enumerate", "next",
    "copy", "clone", "memberwiseclone",
})

EXACT = 2
ASSIGNABLE = 1
INCOMPATIBLE = 0


@dataclass(frozen=True)
class ParamSpec:
    name: str
    annotation: Any = inspect.Parameter.empty
    has_default: bool = False


@dataclass(frozen=True)
class OperationHandle:
    """A callable member of a repository/record object plus its signature."""

    name: str
    func: Callable[..., Any] = field(compare=False, repr=False)
    params: Tuple[ParamSpec, ...] = ()
    returns: Any = inspect.Signature.empty
    owner: str = ""

    @property
    def arity(self) -> int:
        return len(self.params)

    @property
    def returns_void(self) -> bool:
        return self.returns is None or self.returns is type(None)

    def signature_key(self) -> str:
        params = ",".join(_annotation_name(p.annotation) for p in self.params)
        return f"{self.owner}.{self.name}({params})->{_annotation_name(self.returns)}"

    def __call__(self, *args: Any, **kwargs: Any) -> Any:
        return self.func(*args, **kwargs)


def _annotation_name(annotation: Any) -> str:
    if annotation is inspect.Parameter.empty or annotation is inspect.Signature.empty:
        return "?"
    if annotation is None or annotation is type(None):
        return "None"
    if isinstance(annotation, TypeVar):
        return f"~{annotation.__name__}"
    if inspect.isclass(annotation):
        return annotation.__name__
    return str(annotation).replace("typing.", "")


def _is_infrastructure(name: str) -> bool:
    if name.startswith("_"):
        return True
    return name.lower().replace("_", "") in _INFRASTRUCTURE_NAMES


def operations_of(obj: Any, *, owner: str = "") -> List[OperationHandle]:
    """Public callable members of ``obj`` with resolved parameter annotations."""
    ops: List[OperationHandle] = []
    for name in sorted(dir(obj)):
        if name.startswith("__"):
            continue
        try:
            member = getattr(obj, name)
        except Exception:
            continue
        if not callable(member) or inspect.isclass(member):
            continue
        try:
            sig = inspect.signature(member)
        except (TypeError, ValueError):
            continue
        try:
            hints = typing.get_type_hints(member)
        except Exception:
            hints = {}

        params: List[ParamSpec] = []
        for p in sig.parameters.values():
            if p.kind in (inspect.Parameter.VAR_POSITIONAL, inspect.Parameter.VAR_KEYWORD):
                continue
            if p.kind is inspect.Parameter.KEYWORD_ONLY and p.default is not inspect.Parameter.empty:
                continue
            params.append(ParamSpec(
                name=p.name,
                annotation=hints.get(p.name, p.annotation),
                has_default=p.default is not inspect.Parameter.empty,
            ))

        ops.append(OperationHandle(
            name=name,
            func=member,
            params=tuple(params),
            returns=hints.get("return", sig.return_annotation),
            owner=owner or type(obj).__name__,
        ))
    return ops


def name_priority(name: str) -> int:
    low = (name or "").lower()
    for needle, prio in NAME_PRIORITY:
        if needle in low:
            return prio
    return DEFAULT_PRIORITY


def type_match(annotation: Any, target_type: Optional[type]) -> int:
    """EXACT, ASSIGNABLE or INCOMPATIBLE for a parameter annotation vs a type."""
    if target_type is None:
        return ASSIGNABLE
    if annotation is target_type:
        return EXACT
    if isinstance(annotation, str):
        return EXACT if annotation == target_type.__name__ else INCOMPATIBLE
    if annotation in (inspect.Parameter.empty, Any, object):
        return ASSIGNABLE
    if isinstance(annotation, TypeVar):
        bound = annotation.__bound__
        if bound is None:
            return ASSIGNABLE
        return ASSIGNABLE if type_match(bound, target_type) else INCOMPATIBLE

    origin = typing.get_origin(annotation)
    if origin is Union or origin is UnionType:
        best = max((type_match(a, target_type) for a in typing.get_args(annotation)), default=0)
        return ASSIGNABLE if best else INCOMPATIBLE
    if origin is not None:
        annotation = origin

    if inspect.isclass(annotation):
        try:
            if issubclass(target_type, annotation):
                return ASSIGNABLE
        except TypeError:
            return INCOMPATIBLE
    return INCOMPATIBLE


def _accepts_str(annotation: Any) -> bool:
    if annotation in (str, inspect.Parameter.empty, Any, "str"):
        return True
    origin = typing.get_origin(annotation)
    if origin is Union or origin is UnionType:
        return str in typing.get_args(annotation)
    return False


class MethodHeuristics:
    """
    Picks the right operation among structurally equivalent candidates.

    Order of preference:
      1) drop infrastructure members and wrong arity
      2) exact first-parameter type over assignable
      3) name priority (create < save < write < update < read < get < other)
      4) name, for a deterministic result
    """

    def filter_candidates(
        self, candidates: Iterable[OperationHandle], *, arity: int
    ) -> List[OperationHandle]:
        return [
            c for c in candidates
            if not _is_infrastructure(c.name) and c.arity == arity
        ]

    def rank(
        self, candidates: Iterable[OperationHandle], target_type: Optional[type] = None, *, arity: int = 2
    ) -> List[OperationHandle]:
        scored = []
        for c in self.filter_candidates(candidates, arity=arity):
            match = type_match(c.params[0].annotation, target_type) if c.params else ASSIGNABLE
            if match == INCOMPATIBLE:
                continue
            scored.append((-match, name_priority(c.name), c.name, c))
        scored.sort(key=lambda t: (t[0], t[1], t[2]))
        return [t[3] for t in scored]

    def select_method(
        self, candidates: Sequence[OperationHandle], target_type: Optional[type] = None, *, arity: int = 2
    ) -> Optional[OperationHandle]:
        ranked = self.rank(candidates, target_type, arity=arity)
        return ranked[0] if ranked else None

    def select_read_method(self, candidates: Sequence[OperationHandle]) -> Optional[OperationHandle]:
        readers = [
            c for c in self.filter_candidates(candidates, arity=1)
            if _accepts_str(c.params[0].annotation) and not c.returns_void
        ]
        if not readers:
            return None
        readers.sort(key=lambda c: (name_priority(c.name), c.name))
        return readers[0]
