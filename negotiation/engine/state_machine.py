"""Canonical state transition helpers for negotiation entities."""

from __future__ import annotations

from negotiation.core.enums import ContractStatus
from negotiation.core.exceptions import IllegalTransitionError


class InvalidTransitionError(IllegalTransitionError):
    """Raised when a disallowed state transition is attempted."""

    def __init__(self, current: str, target: str) -> None:
        super().__init__(None, None, f"Transition not allowed: {current} -> {target}")
        self.current = current
        self.target = target


class StateMachine:
    """Forward-only state machine over a fixed transition map."""

    def __init__(self, transitions: dict[str, set[str]]) -> None:
        self._transitions = transitions

    def can_transition(self, current: str, target: str) -> bool:
        return target in self._transitions.get(current, set())

    def assert_transition(self, current: str, target: str) -> None:
        if not self.can_transition(current=current, target=target):
            raise InvalidTransitionError(current, target)

    def is_terminal(self, state: str) -> bool:
        return not self._transitions.get(state)


CONTRACT_STATUS_MACHINE = StateMachine(
    {
        ContractStatus.NEGOTIATING.value: {
            ContractStatus.ACTIVE.value,
            ContractStatus.COMPLETED.value,
            ContractStatus.CANCELLED.value,
        },
        ContractStatus.COMPLETED.value: {ContractStatus.ACTIVE.value},
        ContractStatus.ACTIVE.value: set(),
        ContractStatus.CANCELLED.value: set(),
    }
)
