"""Canonical enum values for the negotiation schema.

Values are lower snake case and are persisted as-is.
"""

from __future__ import annotations

import enum


class PartyRole(str, enum.Enum):
    BUSINESS = "business"
    AGENCY = "agency"

    @property
    def other(self) -> "PartyRole":
        return PartyRole.AGENCY if self is PartyRole.BUSINESS else PartyRole.BUSINESS


class ContractStatus(str, enum.Enum):
    NEGOTIATING = "negotiating"
    ACTIVE = "active"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class StepType(str, enum.Enum):
    INITIAL_OFFER = "initial_offer"
    COUNTER_OFFER = "counter_offer"
    CLARIFICATION = "clarification"
    CONTRACT_REVIEW = "contract_review"
    SIGNATURE = "signature"
    PAYMENT = "payment"


class StepStatus(str, enum.Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    SUPERSEDED = "superseded"


class ResponseType(str, enum.Enum):
    ACCEPT = "accept"
    COUNTER = "counter"
    CLARIFICATION = "clarification"
    REJECT = "reject"
    SIGNATURE = "signature"
    PAYMENT = "payment"
    CANCEL = "cancel"


class PaymentMethod(str, enum.Enum):
    MPESA = "mpesa"
    CREDIT_CARD = "credit_card"
    BANK_TRANSFER = "bank_transfer"


class PaymentStatus(str, enum.Enum):
    PAID = "paid"
    FAILED = "failed"
