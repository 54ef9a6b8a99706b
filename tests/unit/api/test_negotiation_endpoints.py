from __future__ import annotations

import pytest
from fastapi import HTTPException

from negotiation.api.v1 import health, negotiations
from negotiation.core.enums import ContractStatus, PartyRole, ResponseType, StepType
from negotiation.core.exceptions import PersistenceError
from negotiation.schemas.negotiations import NegotiationCreateRequest, StepResponseRequest


def _create(controller, make_offer):
    payload = NegotiationCreateRequest(business_id="B", agency_id="A", initial_offer=make_offer())
    return negotiations.create_negotiation(payload, controller=controller)


def test_health_endpoint_reports_service():
    response = health.health()
    assert response["status"] == "ok"
    assert response["service"] == "Contract Negotiation"


def test_create_returns_history_and_current_step(controller, make_offer):
    response = _create(controller, make_offer)

    assert response.contract.status is ContractStatus.NEGOTIATING
    assert len(response.steps) == 2
    assert response.current_step.step_type is StepType.COUNTER_OFFER
    assert response.previous_offer["price"] == 15000


def test_submit_response_advances(controller, make_offer):
    created = _create(controller, make_offer)
    response = negotiations.submit_response(
        created.contract.id,
        created.current_step.id,
        StepResponseRequest(response_type=ResponseType.COUNTER, details=make_offer(price=18000)),
        controller=controller,
    )

    assert response.current_step.step_number == 3
    assert response.current_step.responder_role is PartyRole.BUSINESS


def test_stale_response_maps_to_409(controller, make_offer):
    created = _create(controller, make_offer)
    with pytest.raises(HTTPException) as exc:
        negotiations.submit_response(
            created.contract.id,
            created.steps[0].id,
            StepResponseRequest(response_type=ResponseType.ACCEPT),
            controller=controller,
        )
    assert exc.value.status_code == 409
    assert exc.value.detail["error_code"] == "conflict"


def test_invalid_details_map_to_422_with_fields(controller, make_offer):
    created = _create(controller, make_offer)
    with pytest.raises(HTTPException) as exc:
        negotiations.submit_response(
            created.contract.id,
            created.current_step.id,
            StepResponseRequest(response_type=ResponseType.CLARIFICATION, details={"questions": []}),
            controller=controller,
        )
    assert exc.value.status_code == 422
    assert exc.value.detail["missing_fields"] == ["questions"]


def test_illegal_response_maps_to_400(controller, make_offer):
    created = _create(controller, make_offer)
    with pytest.raises(HTTPException) as exc:
        negotiations.submit_response(
            created.contract.id,
            created.current_step.id,
            StepResponseRequest(response_type=ResponseType.PAYMENT),
            controller=controller,
        )
    assert exc.value.status_code == 400


def test_unknown_contract_maps_to_404(controller):
    with pytest.raises(HTTPException) as exc:
        negotiations.get_negotiation("missing", controller=controller)
    assert exc.value.status_code == 404


def test_persistence_failure_maps_to_503(monkeypatch, controller, make_offer):
    created = _create(controller, make_offer)

    def _fail(**kwargs):
        raise PersistenceError("storage unavailable")

    monkeypatch.setattr(controller, "submit_response", _fail)
    with pytest.raises(HTTPException) as exc:
        negotiations.submit_response(
            created.contract.id,
            created.current_step.id,
            StepResponseRequest(response_type=ResponseType.ACCEPT),
            controller=controller,
        )
    assert exc.value.status_code == 503


def test_current_step_is_none_after_reject(controller, make_offer):
    created = _create(controller, make_offer)
    negotiations.submit_response(
        created.contract.id,
        created.current_step.id,
        StepResponseRequest(response_type=ResponseType.REJECT, details={"reason": "Too expensive"}),
        controller=controller,
    )

    assert negotiations.get_current_step(created.contract.id, controller=controller) is None
    listed = negotiations.list_negotiations(
        party_id="B", role=PartyRole.BUSINESS, contract_status=ContractStatus.CANCELLED, controller=controller
    )
    assert [c.id for c in listed] == [created.contract.id]
