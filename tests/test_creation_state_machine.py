import pytest

from metaforge.core.state_machine import (
    CreationState,
    allowed_next,
    can_transition,
    ensure_transition,
    is_terminal,
)

_CHAIN = [
    CreationState.VALIDATED,
    CreationState.INSTANTIATED,
    CreationState.BOUND,
    CreationState.RESOLVED,
    CreationState.PERSISTED,
]


def test_linear_chain_is_allowed():
    for src, dst in zip(_CHAIN, _CHAIN[1:]):
        ensure_transition(src, dst)


def test_failed_reachable_from_every_active_state():
    for state in _CHAIN[:-1]:
        assert can_transition(state, CreationState.FAILED)


def test_terminal_states_do_not_move():
    assert is_terminal(CreationState.PERSISTED)
    assert is_terminal(CreationState.FAILED)
    assert not can_transition(CreationState.PERSISTED, CreationState.FAILED)
    assert not can_transition(CreationState.FAILED, CreationState.VALIDATED)
    assert allowed_next(CreationState.FAILED) == {}


def test_skipping_steps_is_illegal():
    with pytest.raises(ValueError, match="VALIDATED -> BOUND"):
        ensure_transition(CreationState.VALIDATED, CreationState.BOUND)
    with pytest.raises(ValueError):
        ensure_transition(CreationState.BOUND, CreationState.INSTANTIATED)


def test_allowed_next_from_bound():
    assert allowed_next(CreationState.BOUND) == {"RESOLVED": True, "FAILED": True}
