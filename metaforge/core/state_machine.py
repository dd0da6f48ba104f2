# metaforge/core/state_machine.py
from __future__ import annotations

from enum import Enum
from typing import Dict, Set, Tuple


class CreationState(str, Enum):
    VALIDATED = "VALIDATED"
    INSTANTIATED = "INSTANTIATED"
    BOUND = "BOUND"
    RESOLVED = "RESOLVED"
    PERSISTED = "PERSISTED"
    FAILED = "FAILED"


_ALLOWED: Set[Tuple[CreationState, CreationState]] = {
    (CreationState.VALIDATED, CreationState.INSTANTIATED),
    (CreationState.INSTANTIATED, CreationState.BOUND),
    (CreationState.BOUND, CreationState.RESOLVED),
    (CreationState.RESOLVED, CreationState.PERSISTED),

    # failure is reachable from every active state
    (CreationState.VALIDATED, CreationState.FAILED),
    (CreationState.INSTANTIATED, CreationState.FAILED),
    (CreationState.BOUND, CreationState.FAILED),
    (CreationState.RESOLVED, CreationState.FAILED),
}

_TERMINAL: Set[CreationState] = {
    CreationState.PERSISTED,
    CreationState.FAILED,
}


def is_terminal(state: CreationState) -> bool:
    return state in _TERMINAL


def can_transition(src: CreationState, dst: CreationState) -> bool:
    if src == dst:
        return True
    if src in _TERMINAL:
        return False
    return (src, dst) in _ALLOWED


def ensure_transition(src: CreationState, dst: CreationState) -> None:
    if not can_transition(src, dst):
        raise ValueError(f"Illegal transition: {src.value} -> {dst.value}")


def allowed_next(src: CreationState) -> Dict[str, bool]:
    out: Dict[str, bool] = {}
    for a, b in _ALLOWED:
        if a == src:
            out[b.value] = True
    return out
