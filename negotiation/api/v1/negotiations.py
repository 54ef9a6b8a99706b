"""Contract negotiation endpoints for API v1."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Query, status

from negotiation.core.dependencies import get_controller
from negotiation.core.enums import ContractStatus, PartyRole
from negotiation.core.exceptions import (
    ConflictError,
    IllegalTransitionError,
    NegotiationException,
    NotFoundError,
    PersistenceError,
    ValidationError,
)
from negotiation.schemas.common import ErrorEnvelope
from negotiation.schemas.negotiations import (
    ContractResponse,
    NegotiationCreateRequest,
    NegotiationResponse,
    StepResponse,
    StepResponseRequest,
)
from negotiation.services.negotiation_controller import NegotiationController

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/negotiations", tags=["negotiations"])


def map_negotiation_error(exc: NegotiationException) -> HTTPException:
    """Translate a negotiation error into an HTTP error with an ``ErrorEnvelope`` body."""
    if isinstance(exc, ValidationError):
        code, error_code = 422, "validation_error"
    elif isinstance(exc, IllegalTransitionError):
        code, error_code = status.HTTP_400_BAD_REQUEST, "illegal_transition"
    elif isinstance(exc, ConflictError):
        code, error_code = status.HTTP_409_CONFLICT, "conflict"
    elif isinstance(exc, NotFoundError):
        code, error_code = status.HTTP_404_NOT_FOUND, "not_found"
    elif isinstance(exc, PersistenceError):
        code, error_code = status.HTTP_503_SERVICE_UNAVAILABLE, "persistence_error"
    else:
        code, error_code = status.HTTP_500_INTERNAL_SERVER_ERROR, "internal_error"

    envelope = ErrorEnvelope(
        error_code=error_code,
        detail=str(exc),
        missing_fields=getattr(exc, "missing_fields", None),
    )
    return HTTPException(status_code=code, detail=envelope.model_dump())


@router.post("", status_code=status.HTTP_201_CREATED, response_model=NegotiationResponse)
def create_negotiation(
    payload: NegotiationCreateRequest,
    controller: NegotiationController = Depends(get_controller),
) -> NegotiationResponse:
    try:
        view = controller.create_negotiation(
            business_id=payload.business_id,
            agency_id=payload.agency_id,
            initial_offer_details=payload.initial_offer,
            title=payload.title,
            description=payload.description,
            initiator=payload.initiator,
            request_review=payload.request_review,
        )
    except NegotiationException as exc:
        raise map_negotiation_error(exc) from exc
    return NegotiationResponse.model_validate(view)


@router.get("", response_model=list[ContractResponse])
def list_negotiations(
    party_id: str = Query(min_length=1),
    role: PartyRole = Query(),
    contract_status: ContractStatus | None = Query(default=None, alias="status"),
    controller: NegotiationController = Depends(get_controller),
) -> list[ContractResponse]:
    try:
        records = controller.list_negotiations(party_id=party_id, role=role, status=contract_status)
    except NegotiationException as exc:
        raise map_negotiation_error(exc) from exc
    return [ContractResponse.model_validate(record) for record in records]


@router.get("/{contract_id}", response_model=NegotiationResponse)
def get_negotiation(
    contract_id: str,
    controller: NegotiationController = Depends(get_controller),
) -> NegotiationResponse:
    try:
        view = controller.get_negotiation(contract_id)
    except NegotiationException as exc:
        raise map_negotiation_error(exc) from exc
    return NegotiationResponse.model_validate(view)


@router.get("/{contract_id}/current-step", response_model=StepResponse | None)
def get_current_step(
    contract_id: str,
    controller: NegotiationController = Depends(get_controller),
) -> StepResponse | None:
    try:
        step = controller.get_current_step(contract_id)
    except NegotiationException as exc:
        raise map_negotiation_error(exc) from exc
    return StepResponse.model_validate(step) if step is not None else None


@router.post("/{contract_id}/steps/{step_id}/responses", response_model=NegotiationResponse)
def submit_response(
    contract_id: str,
    step_id: str,
    payload: StepResponseRequest,
    controller: NegotiationController = Depends(get_controller),
) -> NegotiationResponse:
    try:
        view = controller.submit_response(
            contract_id=contract_id,
            step_id=step_id,
            response_type=payload.response_type,
            details=payload.details,
        )
    except NegotiationException as exc:
        if isinstance(exc, PersistenceError):
            logger.error(
                "api.negotiation.persistence_failed",
                extra={"event": "api.negotiation.persistence_failed", "contract_id": contract_id},
            )
        raise map_negotiation_error(exc) from exc
    return NegotiationResponse.model_validate(view)


@router.post("/{contract_id}/activate", response_model=ContractResponse)
def activate_negotiation(
    contract_id: str,
    controller: NegotiationController = Depends(get_controller),
) -> ContractResponse:
    try:
        record = controller.activate(contract_id)
    except NegotiationException as exc:
        raise map_negotiation_error(exc) from exc
    return ContractResponse.model_validate(record)
