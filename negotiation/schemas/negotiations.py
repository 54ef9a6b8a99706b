"""Negotiation request/response schemas for the HTTP API."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from negotiation.core.enums import ContractStatus, PartyRole, ResponseType, StepStatus, StepType


class NegotiationCreateRequest(BaseModel):
    business_id: str = Field(min_length=1, max_length=64)
    agency_id: str = Field(min_length=1, max_length=64)
    initial_offer: dict[str, Any]
    title: str | None = Field(default=None, min_length=1, max_length=255)
    description: str | None = Field(default=None, max_length=10000)
    initiator: PartyRole = PartyRole.BUSINESS
    request_review: bool = False


class StepResponseRequest(BaseModel):
    response_type: ResponseType
    details: dict[str, Any] = Field(default_factory=dict)


class ContractResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    business_id: str
    agency_id: str
    initiator_role: PartyRole
    title: str
    description: str | None = None
    status: ContractStatus
    created_at: datetime
    updated_at: datetime | None = None


class StepResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    contract_id: str
    step_number: int
    step_type: StepType
    status: StepStatus
    responder_role: PartyRole
    response_type: ResponseType | None = None
    round_number: int | None = None
    details: dict[str, Any]
    created_at: datetime
    completed_at: datetime | None = None


class NegotiationResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    contract: ContractResponse
    steps: list[StepResponse]
    current_step: StepResponse | None = None
    previous_offer: dict[str, Any] | None = None
