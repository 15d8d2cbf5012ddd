from asset_transfer.errors import InvalidStateError
from asset_transfer.utils.fsm import TransitionValidator
import pytest


def test_transition_validator_allows_valid():
    fsm = TransitionValidator({'A': {'B'}, 'B': set()})
    assert fsm.assert_can_transition('A', 'B') is True


def test_transition_validator_blocks_invalid():
    fsm = TransitionValidator({'A': {'B'}, 'B': set()})
    with pytest.raises(InvalidStateError) as exc:
        fsm.assert_can_transition('A', 'C')
    assert exc.value.status == 409
    assert exc.value.context == {'current': 'A', 'target': 'C'}


def test_transition_validator_terminal_states():
    fsm = TransitionValidator({'A': {'B'}, 'B': set()})
    assert fsm.is_terminal('B')
    assert not fsm.is_terminal('A')
    assert fsm.targets('missing') == frozenset()


def test_transition_validator_rejects_dangling_targets():
    with pytest.raises(ValueError):
        TransitionValidator({'A': {'B'}})
