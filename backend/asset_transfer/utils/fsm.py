from __future__ import annotations
"""Finite state machine graph for enforcing allowed status transitions.

Usage:
    from asset_transfer.utils.fsm import TransitionValidator
    FSM = TransitionValidator({
        'Draft': {'PendingManagerApproval', 'Rejected'},
        'Rejected': set(),
    })
    FSM.assert_can_transition(current_status, target_status)

Raises InvalidStateError if the edge is not in the graph.
"""
from typing import Dict, Iterable, FrozenSet
from asset_transfer.errors import InvalidStateError


class TransitionValidator:
    def __init__(self, graph: Dict[str, Iterable[str]], field_name: str = 'status'):
        self.graph: Dict[str, FrozenSet[str]] = {k: frozenset(v) for k, v in graph.items()}
        self.field_name = field_name
        unknown = {t for targets in self.graph.values() for t in targets} - set(self.graph)
        if unknown:
            raise ValueError(f"Targets without a graph entry: {sorted(unknown)}")

    def targets(self, current: str) -> FrozenSet[str]:
        return self.graph.get(current, frozenset())

    def is_terminal(self, state: str) -> bool:
        return state in self.graph and not self.graph[state]

    def can_transition(self, current: str, target: str) -> bool:
        return target in self.targets(current)

    def assert_can_transition(self, current: str, target: str):
        if not self.can_transition(current, target):
            raise InvalidStateError(
                f"Invalid {self.field_name} transition {current} -> {target}",
                current=current, target=target,
            )
        return True

__all__ = ['TransitionValidator']
