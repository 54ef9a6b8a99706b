"""Contract negotiation model module."""

from __future__ import annotations

from sqlalchemy import Enum, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from negotiation.core.enums import ContractStatus, PartyRole
from negotiation.models.base import AuditMixin, Base, new_id


class ContractNegotiation(Base, AuditMixin):
    __tablename__ = "contract_negotiations"
    __table_args__ = (
        Index("idx_contract_negotiations_business_status", "business_id", "status"),
        Index("idx_contract_negotiations_agency_status", "agency_id", "status"),
    )

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=new_id)
    business_id: Mapped[str] = mapped_column(String(64), nullable=False)
    agency_id: Mapped[str] = mapped_column(String(64), nullable=False)
    initiator_role: Mapped[PartyRole] = mapped_column(
        Enum(PartyRole, native_enum=False, values_callable=lambda e: [m.value for m in e], length=16),
        default=PartyRole.BUSINESS,
        nullable=False,
    )
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    status: Mapped[ContractStatus] = mapped_column(
        Enum(ContractStatus, native_enum=False, values_callable=lambda e: [m.value for m in e], length=16),
        default=ContractStatus.NEGOTIATING,
        nullable=False,
    )
