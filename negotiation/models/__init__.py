"""SQLAlchemy model package for the negotiation schema."""

from negotiation.models.base import Base
from negotiation.models.contract_negotiation import ContractNegotiation
from negotiation.models.negotiation_step import NegotiationStep

__all__ = [
    "Base",
    "ContractNegotiation",
    "NegotiationStep",
]
