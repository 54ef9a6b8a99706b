from __future__ import annotations

from dataclasses import replace
from datetime import datetime, timezone

import pytest

from negotiation.core.enums import ContractStatus, PartyRole, ResponseType, StepStatus, StepType
from negotiation.core.exceptions import IllegalTransitionError, StaleStepError, ValidationError
from negotiation.engine.records import NewStep, Response, StepRecord
from negotiation.engine.transitions import (
    LEGAL_RESPONSES,
    current_step,
    open_negotiation,
    previous_offer,
    transition,
)

NOW = datetime(2026, 10, 19, tzinfo=timezone.utc)


def _record(step: NewStep) -> StepRecord:
    return StepRecord(
        id=f"step-{step.step_number}",
        contract_id="contract-1",
        step_number=step.step_number,
        step_type=step.step_type,
        status=step.status,
        responder_role=step.responder_role,
        details=dict(step.details),
        created_at=NOW,
        response_type=step.response_type,
        round_number=step.round_number,
    )


def _start(offer, **kwargs) -> list[StepRecord]:
    return [_record(step) for step in open_negotiation(offer, **kwargs)]


def _respond(history, response_type, details=None, **kwargs):
    step = current_step(history)
    outcome = transition(history, Response(step.id, response_type, details or {}), **kwargs)
    updated = [
        replace(
            item,
            status=StepStatus.COMPLETED,
            details=outcome.completed_details,
            response_type=outcome.response_type,
            completed_at=NOW,
        )
        if item.id == outcome.completed_step_id
        else item
        for item in history
    ]
    if outcome.next_step is not None:
        updated.append(_record(outcome.next_step))
    return updated, outcome


def _through_signatures(history, make_signature):
    history, _ = _respond(history, ResponseType.ACCEPT)
    history, _ = _respond(history, ResponseType.ACCEPT, {"reviewed": True})
    history, _ = _respond(history, ResponseType.SIGNATURE, make_signature("Business Owner"))
    history, _ = _respond(history, ResponseType.SIGNATURE, make_signature("Agency Manager"))
    return history


def test_open_negotiation_builds_completed_offer_and_pending_counter(make_offer):
    history = _start(make_offer())

    assert [(s.step_number, s.step_type, s.status) for s in history] == [
        (1, StepType.INITIAL_OFFER, StepStatus.COMPLETED),
        (2, StepType.COUNTER_OFFER, StepStatus.PENDING),
    ]
    assert history[0].responder_role is PartyRole.BUSINESS
    assert history[1].responder_role is PartyRole.AGENCY
    assert history[1].round_number == 1


def test_open_negotiation_can_start_with_review_by_agency_initiator(make_offer):
    history = _start(make_offer(), initiator=PartyRole.AGENCY, request_review=True)

    assert history[1].step_type is StepType.CONTRACT_REVIEW
    assert history[1].responder_role is PartyRole.BUSINESS


def test_open_negotiation_validates_offer(make_offer):
    offer = make_offer()
    del offer["price"]
    with pytest.raises(ValidationError) as exc:
        open_negotiation(offer)
    assert exc.value.missing_fields == ["price"]


def test_counter_then_accept_scenario(make_offer):
    history = _start(make_offer(price=15000))

    history, outcome = _respond(history, ResponseType.COUNTER, make_offer(price=18000))
    assert outcome.contract_status is None
    step_three = current_step(history)
    assert step_three.step_number == 3
    assert step_three.step_type is StepType.COUNTER_OFFER
    assert step_three.responder_role is PartyRole.BUSINESS
    assert step_three.round_number == 2
    assert previous_offer(history)["price"] == 18000

    history, outcome = _respond(history, ResponseType.ACCEPT)
    assert outcome.completed_details["price"] == 18000
    step_four = current_step(history)
    assert step_four.step_number == 4
    assert step_four.step_type is StepType.CONTRACT_REVIEW
    assert step_four.responder_role is PartyRole.AGENCY


def test_stale_step_id_is_rejected(make_offer):
    history = _start(make_offer())
    with pytest.raises(StaleStepError) as exc:
        transition(history, Response("step-1", ResponseType.ACCEPT, {}))
    assert exc.value.current_step_id == "step-2"


def test_terminal_history_has_no_current_step(make_offer):
    history = _start(make_offer())
    history, _ = _respond(history, ResponseType.REJECT, {"reason": "Too expensive"})

    assert current_step(history) is None
    with pytest.raises(StaleStepError):
        transition(history, Response("step-2", ResponseType.ACCEPT, {}))


def test_response_not_in_table_is_illegal(make_offer, make_payment):
    history = _start(make_offer())
    with pytest.raises(IllegalTransitionError) as exc:
        transition(history, Response("step-2", ResponseType.PAYMENT, make_payment()))
    assert exc.value.step_type == "counter_offer"
    assert exc.value.response_type == "payment"


def test_reject_at_counter_offer_cancels(make_offer):
    history = _start(make_offer())
    history, outcome = _respond(history, ResponseType.REJECT)

    assert outcome.contract_status is ContractStatus.CANCELLED
    assert outcome.next_step is None
    assert len(history) == 2


def test_clarification_returns_control_to_asker(make_offer):
    history = _start(make_offer())
    questions = ["Do you collect on public holidays?", "Are bins provided?"]

    history, _ = _respond(history, ResponseType.CLARIFICATION, {"questions": questions})
    clarification = current_step(history)
    assert clarification.step_type is StepType.CLARIFICATION
    assert clarification.responder_role is PartyRole.BUSINESS
    assert clarification.details == {"questions": questions}
    assert previous_offer(history)["price"] == 15000

    answers = [
        {"question": questions[0], "answer": "No"},
        {"question": questions[1], "answer": "Yes, two 240L bins"},
    ]
    history, _ = _respond(history, ResponseType.CLARIFICATION, {"answers": answers})
    follow_up = current_step(history)
    assert follow_up.step_type is StepType.COUNTER_OFFER
    assert follow_up.responder_role is PartyRole.AGENCY
    assert follow_up.details == {"answers": answers}
    assert follow_up.round_number == 1


def test_clarification_requires_an_answer_per_question(make_offer):
    history = _start(make_offer())
    history, _ = _respond(history, ResponseType.CLARIFICATION, {"questions": ["Q1?", "Q2?"]})

    with pytest.raises(ValidationError) as exc:
        _respond(history, ResponseType.CLARIFICATION, {"answers": [{"question": "Q1?", "answer": "A1"}]})
    assert exc.value.missing_fields == ["answers.1"]


def test_clarification_without_questions_is_illegal(make_offer):
    history = _start(make_offer())
    history, _ = _respond(history, ResponseType.CLARIFICATION, {"questions": ["Q1?"]})
    history[-1] = replace(history[-1], details={})

    with pytest.raises(IllegalTransitionError):
        _respond(history, ResponseType.CLARIFICATION, {"answers": [{"question": "Q1?", "answer": "A1"}]})


def test_clarification_without_questions_is_illegal_before_answers_are_checked(make_offer):
    history = _start(make_offer())
    history, _ = _respond(history, ResponseType.CLARIFICATION, {"questions": ["Q1?"]})
    history[-1] = replace(history[-1], details={})

    with pytest.raises(IllegalTransitionError):
        _respond(history, ResponseType.CLARIFICATION, {"answers": "not a list"})


def test_review_accept_leads_to_signature_by_other_party(make_offer):
    history = _start(make_offer())
    history, _ = _respond(history, ResponseType.ACCEPT)
    history, _ = _respond(history, ResponseType.ACCEPT, {"reviewed": True})

    signature = current_step(history)
    assert signature.step_type is StepType.SIGNATURE
    assert signature.responder_role is PartyRole.AGENCY


def test_both_signatures_lead_to_payment_by_business(make_offer, make_signature):
    history = _through_signatures(_start(make_offer()), make_signature)

    signatures = [s for s in history if s.step_type is StepType.SIGNATURE]
    assert {s.responder_role for s in signatures} == {PartyRole.BUSINESS, PartyRole.AGENCY}
    payment = current_step(history)
    assert payment.step_type is StepType.PAYMENT
    assert payment.responder_role is PartyRole.BUSINESS


def test_signature_cancel_ends_negotiation(make_offer):
    history = _start(make_offer())
    history, _ = _respond(history, ResponseType.ACCEPT)
    history, _ = _respond(history, ResponseType.ACCEPT, {"reviewed": True})
    history, outcome = _respond(history, ResponseType.CANCEL, {"reason": "Changed our mind"})

    assert outcome.contract_status is ContractStatus.CANCELLED
    assert current_step(history) is None


@pytest.mark.parametrize(
    ("payment_status", "require_activation", "expected"),
    [
        ("paid", False, ContractStatus.ACTIVE),
        ("paid", True, ContractStatus.COMPLETED),
        ("failed", False, ContractStatus.CANCELLED),
    ],
)
def test_payment_outcomes(make_offer, make_signature, make_payment, payment_status, require_activation, expected):
    history = _through_signatures(_start(make_offer()), make_signature)
    history, outcome = _respond(
        history,
        ResponseType.PAYMENT,
        make_payment(payment_status),
        require_activation=require_activation,
    )

    assert outcome.contract_status is expected
    assert outcome.next_step is None
    assert len(history) == 6


def test_payment_cancel_ends_negotiation(make_offer, make_signature):
    history = _through_signatures(_start(make_offer()), make_signature)
    _, outcome = _respond(history, ResponseType.CANCEL)
    assert outcome.contract_status is ContractStatus.CANCELLED


def test_initial_offer_never_accepts_responses():
    assert LEGAL_RESPONSES[StepType.INITIAL_OFFER] == frozenset()
    assert set(LEGAL_RESPONSES) == set(StepType)
