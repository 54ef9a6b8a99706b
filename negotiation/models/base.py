"""Shared SQLAlchemy base and common mixins for negotiation models."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone

from sqlalchemy import DateTime
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


def utcnow() -> datetime:
    """Timezone-aware UTC timestamp helper."""
    return datetime.now(timezone.utc)


def new_id() -> str:
    """Opaque identifier for contracts and steps."""
    return uuid.uuid4().hex


class Base(DeclarativeBase):
    """Declarative base class for the negotiation schema."""


class AuditMixin:
    """Standard audit fields for domain models."""

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)
