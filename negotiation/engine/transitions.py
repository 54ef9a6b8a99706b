"""Negotiation engine: pure transition logic over a contract's step history.

Nothing here performs I/O. Given the ordered history of a contract and a
response to its current step, ``transition`` decides what the completed step
records, which step (if any) comes next, and whether the contract reaches a
terminal status. Errors are raised, never swallowed.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from negotiation.core.enums import (
    ContractStatus,
    PartyRole,
    PaymentStatus,
    ResponseType,
    StepStatus,
    StepType,
)
from negotiation.core.exceptions import IllegalTransitionError, StaleStepError
from negotiation.engine.records import NewStep, Response, StepRecord, Transition
from negotiation.engine.state_machine import CONTRACT_STATUS_MACHINE
from negotiation.schemas.step_payloads import is_offer, validate_answers, validate_details

LEGAL_RESPONSES: dict[StepType, frozenset[ResponseType]] = {
    StepType.INITIAL_OFFER: frozenset(),
    StepType.COUNTER_OFFER: frozenset(
        {ResponseType.ACCEPT, ResponseType.COUNTER, ResponseType.CLARIFICATION, ResponseType.REJECT}
    ),
    StepType.CLARIFICATION: frozenset({ResponseType.CLARIFICATION}),
    StepType.CONTRACT_REVIEW: frozenset({ResponseType.ACCEPT, ResponseType.REJECT}),
    StepType.SIGNATURE: frozenset({ResponseType.SIGNATURE, ResponseType.CANCEL}),
    StepType.PAYMENT: frozenset({ResponseType.PAYMENT, ResponseType.CANCEL}),
}

_missing_step_types = set(StepType) - set(LEGAL_RESPONSES)
if _missing_step_types:
    raise RuntimeError(f"Transition table missing step types: {sorted(t.value for t in _missing_step_types)}")
del _missing_step_types

OFFER_STEP_TYPES = frozenset({StepType.INITIAL_OFFER, StepType.COUNTER_OFFER})
SIGNATURES_REQUIRED = len(PartyRole)


def current_step(history: Sequence[StepRecord]) -> StepRecord | None:
    """Return the single pending step of a history, or ``None`` when terminal."""
    for step in reversed(history):
        if step.is_pending:
            return step
    return None


def previous_offer(history: Sequence[StepRecord]) -> dict[str, Any] | None:
    """Return the most recently completed offer terms."""
    for step in reversed(history):
        if (
            step.status is StepStatus.COMPLETED
            and step.step_type in OFFER_STEP_TYPES
            and is_offer(step.details)
        ):
            return dict(step.details)
    return None


def current_round(history: Sequence[StepRecord]) -> int:
    rounds = [step.round_number for step in history if step.round_number is not None]
    return max(rounds, default=0)


def _next_number(history: Sequence[StepRecord]) -> int:
    return max((step.step_number for step in history), default=0) + 1


def _resolve_status(target: ContractStatus) -> ContractStatus:
    CONTRACT_STATUS_MACHINE.assert_transition(ContractStatus.NEGOTIATING.value, target.value)
    return target


def open_negotiation(
    initial_details: dict[str, Any],
    initiator: PartyRole = PartyRole.BUSINESS,
    request_review: bool = False,
) -> tuple[NewStep, NewStep]:
    """Build the first two steps of a new negotiation.

    The initial offer is recorded complete; the counterparty then either
    responds to it with a counter-offer step or, with ``request_review``, goes
    straight to reviewing the offered terms.
    """
    details = validate_details(StepType.INITIAL_OFFER, initial_details)
    first = NewStep(
        step_number=1,
        step_type=StepType.INITIAL_OFFER,
        responder_role=initiator,
        status=StepStatus.COMPLETED,
        details=details,
        round_number=None,
    )
    if request_review:
        second = NewStep(step_number=2, step_type=StepType.CONTRACT_REVIEW, responder_role=initiator.other)
    else:
        second = NewStep(
            step_number=2,
            step_type=StepType.COUNTER_OFFER,
            responder_role=initiator.other,
            round_number=1,
        )
    return first, second


def transition(
    history: Sequence[StepRecord],
    response: Response,
    require_activation: bool = False,
) -> Transition:
    """Compute the outcome of ``response`` against the current step of ``history``."""
    step = current_step(history)
    if step is None or step.id != response.step_id:
        raise StaleStepError(response.step_id, step.id if step else None)

    if response.response_type not in LEGAL_RESPONSES[step.step_type]:
        raise IllegalTransitionError(step.step_type.value, response.response_type.value)
    if step.step_type is StepType.CLARIFICATION and not step.details.get("questions"):
        raise IllegalTransitionError(
            step.step_type.value,
            response.response_type.value,
            "Clarification step has no questions to answer",
        )

    details = validate_details(step.step_type, response.details, response.response_type)
    handler = _HANDLERS[step.step_type]
    return handler(history, step, response.response_type, details, require_activation)


def _cancel(step: StepRecord, response_type: ResponseType, details: dict[str, Any]) -> Transition:
    return Transition(
        completed_step_id=step.id,
        completed_details=details,
        response_type=response_type,
        contract_status=_resolve_status(ContractStatus.CANCELLED),
    )


def _on_counter_offer(history, step, response_type, details, require_activation) -> Transition:
    number = _next_number(history)
    if response_type is ResponseType.REJECT:
        return _cancel(step, response_type, details)

    if response_type is ResponseType.ACCEPT:
        accepted = previous_offer(history)
        if accepted is None:
            raise IllegalTransitionError(step.step_type.value, response_type.value, "There is no offer to accept")
        return Transition(
            completed_step_id=step.id,
            completed_details=accepted,
            response_type=response_type,
            next_step=NewStep(
                step_number=number,
                step_type=StepType.CONTRACT_REVIEW,
                responder_role=step.responder_role.other,
            ),
        )

    if response_type is ResponseType.COUNTER:
        return Transition(
            completed_step_id=step.id,
            completed_details=details,
            response_type=response_type,
            next_step=NewStep(
                step_number=number,
                step_type=StepType.COUNTER_OFFER,
                responder_role=step.responder_role.other,
                round_number=(step.round_number or current_round(history)) + 1,
            ),
        )

    # clarification questions
    return Transition(
        completed_step_id=step.id,
        completed_details=details,
        response_type=response_type,
        next_step=NewStep(
            step_number=number,
            step_type=StepType.CLARIFICATION,
            responder_role=step.responder_role.other,
            details={"questions": list(details["questions"])},
        ),
    )


def _on_clarification(history, step, response_type, details, require_activation) -> Transition:
    validate_answers(step.details["questions"], details)
    return Transition(
        completed_step_id=step.id,
        completed_details=details,
        response_type=response_type,
        next_step=NewStep(
            step_number=_next_number(history),
            step_type=StepType.COUNTER_OFFER,
            # control returns to the party who asked
            responder_role=step.responder_role.other,
            details={"answers": list(details["answers"])},
            round_number=current_round(history) or 1,
        ),
    )


def _on_contract_review(history, step, response_type, details, require_activation) -> Transition:
    if response_type is ResponseType.REJECT:
        return _cancel(step, response_type, details)
    return Transition(
        completed_step_id=step.id,
        completed_details=details,
        response_type=response_type,
        next_step=NewStep(
            step_number=_next_number(history),
            step_type=StepType.SIGNATURE,
            responder_role=step.responder_role.other,
        ),
    )


def _signed_roles(history: Sequence[StepRecord]) -> set[PartyRole]:
    return {
        step.responder_role
        for step in history
        if step.step_type is StepType.SIGNATURE
        and step.status is StepStatus.COMPLETED
        and step.response_type is ResponseType.SIGNATURE
    }


def _on_signature(history, step, response_type, details, require_activation) -> Transition:
    if response_type is ResponseType.CANCEL:
        return _cancel(step, response_type, details)

    signed = _signed_roles(history) | {step.responder_role}
    if len(signed) >= SIGNATURES_REQUIRED:
        next_step = NewStep(
            step_number=_next_number(history),
            step_type=StepType.PAYMENT,
            responder_role=PartyRole.BUSINESS,
        )
    else:
        next_step = NewStep(
            step_number=_next_number(history),
            step_type=StepType.SIGNATURE,
            responder_role=step.responder_role.other,
        )
    return Transition(
        completed_step_id=step.id,
        completed_details=details,
        response_type=response_type,
        next_step=next_step,
    )


def _on_payment(history, step, response_type, details, require_activation) -> Transition:
    if response_type is ResponseType.PAYMENT and details.get("paymentStatus") == PaymentStatus.PAID.value:
        target = ContractStatus.COMPLETED if require_activation else ContractStatus.ACTIVE
    else:
        target = ContractStatus.CANCELLED
    return Transition(
        completed_step_id=step.id,
        completed_details=details,
        response_type=response_type,
        contract_status=_resolve_status(target),
    )


def _never_pending(history, step, response_type, details, require_activation) -> Transition:
    raise IllegalTransitionError(step.step_type.value, response_type.value)


_HANDLERS = {
    StepType.INITIAL_OFFER: _never_pending,
    StepType.COUNTER_OFFER: _on_counter_offer,
    StepType.CLARIFICATION: _on_clarification,
    StepType.CONTRACT_REVIEW: _on_contract_review,
    StepType.SIGNATURE: _on_signature,
    StepType.PAYMENT: _on_payment,
}

if set(_HANDLERS) != set(StepType):
    raise RuntimeError("Every step type needs a transition handler")
