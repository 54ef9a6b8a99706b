"""Negotiation step model module."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import JSON, DateTime, Enum, ForeignKey, Index, Integer, String, UniqueConstraint, text
from sqlalchemy.orm import Mapped, mapped_column

from negotiation.core.enums import PartyRole, ResponseType, StepStatus, StepType
from negotiation.models.base import Base, new_id, utcnow


def _values(enum_cls):
    return [member.value for member in enum_cls]


class NegotiationStep(Base):
    __tablename__ = "negotiation_steps"
    __table_args__ = (
        UniqueConstraint("contract_id", "step_number", name="uq_negotiation_steps_contract_number"),
        # At most one open step per contract.
        Index(
            "uq_negotiation_steps_one_pending",
            "contract_id",
            unique=True,
            sqlite_where=text("status = 'pending'"),
            postgresql_where=text("status = 'pending'"),
        ),
    )

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=new_id)
    contract_id: Mapped[str] = mapped_column(
        ForeignKey("contract_negotiations.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    step_number: Mapped[int] = mapped_column(Integer, nullable=False)
    step_type: Mapped[StepType] = mapped_column(
        Enum(StepType, native_enum=False, values_callable=_values, length=32), nullable=False
    )
    status: Mapped[StepStatus] = mapped_column(
        Enum(StepStatus, native_enum=False, values_callable=_values, length=16),
        default=StepStatus.PENDING,
        nullable=False,
    )
    responder_role: Mapped[PartyRole] = mapped_column(
        Enum(PartyRole, native_enum=False, values_callable=_values, length=16), nullable=False
    )
    response_type: Mapped[ResponseType | None] = mapped_column(
        Enum(ResponseType, native_enum=False, values_callable=_values, length=16)
    )
    round_number: Mapped[int | None] = mapped_column(Integer)
    details: Mapped[dict[str, Any]] = mapped_column(JSON, default=dict, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
