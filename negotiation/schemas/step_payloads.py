"""Per-step payload schemas and validation.

Every step type has a fixed payload shape. Payloads travel and are stored with
camelCase keys; the models accept snake_case names too. Validation is pure: it
returns a normalized copy and never touches the input mapping.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from datetime import date, datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic import ValidationError as PydanticValidationError
from pydantic.alias_generators import to_camel

from negotiation.core.enums import PaymentMethod, PaymentStatus, ResponseType, StepType
from negotiation.core.exceptions import IllegalTransitionError, ValidationError


class PayloadModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="forbid",
        str_strip_whitespace=True,
        allow_inf_nan=False,
    )


def _distinct(values: list[str]) -> list[str]:
    seen: list[str] = []
    for value in values:
        if value not in seen:
            seen.append(value)
    return seen


class ServiceScope(PayloadModel):
    waste_types: list[str] = Field(min_length=1)
    collection_frequency: str = Field(min_length=1)
    estimated_volume: float | None = Field(default=None, ge=0)
    additional_services: list[str] = Field(default_factory=list)

    @field_validator("waste_types", "additional_services")
    @classmethod
    def _no_blank_entries(cls, values: list[str]) -> list[str]:
        cleaned = [value.strip() for value in values]
        if any(not value for value in cleaned):
            raise ValueError("entries must not be blank")
        return _distinct(cleaned)


class Timeline(PayloadModel):
    contract_duration_months: int = Field(gt=0)
    start_date: date | None = None
    end_date: date | None = None

    @model_validator(mode="after")
    def _end_after_start(self) -> "Timeline":
        if self.start_date and self.end_date and self.end_date < self.start_date:
            raise ValueError("endDate must not be before startDate")
        return self


class AdditionalTerms(PayloadModel):
    payment_terms: str = Field(min_length=1)
    cancellation_policy: str = Field(min_length=1)
    special_requirements: str | None = None


class OfferDetails(PayloadModel):
    """Terms proposed by an initial offer or a counter-offer."""

    price: float = Field(ge=0)
    service_scope: ServiceScope
    timeline: Timeline
    additional_terms: AdditionalTerms


class ClarificationQuestions(PayloadModel):
    questions: list[str] = Field(min_length=1)

    @field_validator("questions")
    @classmethod
    def _no_blank_questions(cls, values: list[str]) -> list[str]:
        cleaned = [value.strip() for value in values]
        if any(not value for value in cleaned):
            raise ValueError("questions must not be blank")
        return cleaned


class ClarificationAnswer(PayloadModel):
    question: str = Field(min_length=1)
    answer: str = Field(min_length=1)


class ClarificationAnswers(PayloadModel):
    answers: list[ClarificationAnswer] = Field(min_length=1)


class ContractReviewDetails(PayloadModel):
    reviewed: bool = False
    rejection_reason: str | None = None


class SignatureDetails(PayloadModel):
    signature_blob: str = Field(min_length=1)
    signer_name: str = Field(min_length=1)
    signer_title: str | None = None
    signed_at: datetime


class PaymentDetails(PayloadModel):
    method: PaymentMethod
    provider_reference: str = Field(min_length=1)
    payment_status: PaymentStatus


class DecisionDetails(PayloadModel):
    reason: str | None = None


# (step type, response type) -> payload model. ``None`` is the payload a step
# is created with rather than one it is completed with.
PAYLOAD_MODELS: dict[StepType, dict[ResponseType | None, type[PayloadModel]]] = {
    StepType.INITIAL_OFFER: {None: OfferDetails},
    StepType.COUNTER_OFFER: {
        ResponseType.ACCEPT: DecisionDetails,
        ResponseType.COUNTER: OfferDetails,
        ResponseType.CLARIFICATION: ClarificationQuestions,
        ResponseType.REJECT: DecisionDetails,
    },
    StepType.CLARIFICATION: {
        None: ClarificationQuestions,
        ResponseType.CLARIFICATION: ClarificationAnswers,
    },
    StepType.CONTRACT_REVIEW: {
        ResponseType.ACCEPT: ContractReviewDetails,
        ResponseType.REJECT: ContractReviewDetails,
    },
    StepType.SIGNATURE: {
        ResponseType.SIGNATURE: SignatureDetails,
        ResponseType.CANCEL: DecisionDetails,
    },
    StepType.PAYMENT: {
        ResponseType.PAYMENT: PaymentDetails,
        ResponseType.CANCEL: DecisionDetails,
    },
}

_missing_step_types = set(StepType) - set(PAYLOAD_MODELS)
if _missing_step_types:
    raise RuntimeError(f"Payload schemas missing for step types: {sorted(t.value for t in _missing_step_types)}")
del _missing_step_types


def payload_model_for(step_type: StepType, response_type: ResponseType | None = None) -> type[PayloadModel]:
    """Return the payload model for a step/response combination."""
    try:
        return PAYLOAD_MODELS[step_type][response_type]
    except KeyError:
        raise IllegalTransitionError(
            step_type.value,
            response_type.value if response_type else None,
        ) from None


def _error_location(error: Mapping[str, Any]) -> str:
    parts = [str(part) for part in error.get("loc", ()) if part != "__root__"]
    return ".".join(parts) or "details"


def validate_details(
    step_type: StepType,
    details: Mapping[str, Any] | None,
    response_type: ResponseType | None = None,
) -> dict[str, Any]:
    """Validate ``details`` for a step type and return the normalized payload.

    Raises ``ValidationError`` listing every failing field (dotted camelCase
    paths), or ``IllegalTransitionError`` if the combination has no schema.
    """
    model = payload_model_for(step_type, response_type)
    try:
        parsed = model.model_validate(dict(details or {}))
    except PydanticValidationError as exc:
        fields = _distinct([_error_location(error) for error in exc.errors()])
        raise ValidationError(fields) from exc

    if step_type is StepType.CONTRACT_REVIEW and response_type is ResponseType.ACCEPT and not parsed.reviewed:
        raise ValidationError(["reviewed"], "Contract must be reviewed before it can be accepted")

    return parsed.model_dump(mode="json", by_alias=True, exclude_none=True)


def validate_answers(questions: Sequence[str], details: Mapping[str, Any]) -> None:
    """Check that every question has a matching non-empty answer."""
    answered = {
        str(item.get("question", "")).strip(): str(item.get("answer", "")).strip()
        for item in details.get("answers", [])
    }
    missing = [f"answers.{index}" for index, question in enumerate(questions) if not answered.get(question.strip())]
    if missing:
        raise ValidationError(missing, "Every clarification question needs an answer")


def is_offer(details: Mapping[str, Any] | None) -> bool:
    return bool(details) and "price" in details
