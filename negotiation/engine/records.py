"""Plain records exchanged between the engine, repository and controller."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from negotiation.core.enums import ContractStatus, PartyRole, ResponseType, StepStatus, StepType


@dataclass(frozen=True)
class ContractRecord:
    id: str
    business_id: str
    agency_id: str
    initiator_role: PartyRole
    title: str
    description: str | None
    status: ContractStatus
    created_at: datetime
    updated_at: datetime | None = None


@dataclass(frozen=True)
class StepRecord:
    id: str
    contract_id: str
    step_number: int
    step_type: StepType
    status: StepStatus
    responder_role: PartyRole
    details: dict[str, Any]
    created_at: datetime
    response_type: ResponseType | None = None
    round_number: int | None = None
    completed_at: datetime | None = None

    @property
    def is_pending(self) -> bool:
        return self.status is StepStatus.PENDING


@dataclass(frozen=True)
class NewStep:
    """A step the engine wants appended; ids and timestamps come from storage."""

    step_number: int
    step_type: StepType
    responder_role: PartyRole
    status: StepStatus = StepStatus.PENDING
    details: dict[str, Any] = field(default_factory=dict)
    response_type: ResponseType | None = None
    round_number: int | None = None


@dataclass(frozen=True)
class Response:
    step_id: str
    response_type: ResponseType
    details: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class Transition:
    completed_step_id: str
    completed_details: dict[str, Any]
    response_type: ResponseType
    next_step: NewStep | None = None
    contract_status: ContractStatus | None = None
