"""Dependency providers for API handlers."""

from __future__ import annotations

from collections.abc import Generator

from fastapi import Depends
from sqlalchemy.orm import Session

from negotiation.core.config import Config, get_config
from negotiation.database.db import get_db
from negotiation.repositories.step_repository import SqlAlchemyStepRepository
from negotiation.services.negotiation_controller import NegotiationController


def get_settings() -> Config:
    """Return validated application configuration."""
    return get_config()


def get_db_session() -> Generator[Session, None, None]:
    """Yield SQLAlchemy session for dependency injection."""
    yield from get_db()


def get_controller(
    db: Session = Depends(get_db_session),
    settings: Config = Depends(get_settings),
) -> NegotiationController:
    """Build a controller bound to the request's session."""
    return NegotiationController(repository=SqlAlchemyStepRepository(db=db), config=settings)
