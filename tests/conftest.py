from __future__ import annotations

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from negotiation.core.config import get_config
from negotiation.models import Base
from negotiation.repositories.step_repository import SqlAlchemyStepRepository
from negotiation.services.negotiation_controller import NegotiationController


def _offer(price: float = 15000, frequency: str = "Weekly", waste_types: list[str] | None = None) -> dict:
    return {
        "price": price,
        "serviceScope": {
            "wasteTypes": waste_types if waste_types is not None else ["General Waste"],
            "collectionFrequency": frequency,
            "additionalServices": [],
        },
        "timeline": {"contractDurationMonths": 3},
        "additionalTerms": {
            "paymentTerms": "Monthly billing, 14-day payment window",
            "cancellationPolicy": "30-day written notice required",
        },
    }


def _signature(name: str = "Jane Wanjiru") -> dict:
    return {
        "signatureBlob": "data:image/png;base64,iVBORw0KGgoAAAANSUhEUgAAAAEAAAAB",
        "signerName": name,
        "signedAt": "2026-10-19T10:00:00+00:00",
    }


def _payment(status: str = "paid") -> dict:
    return {"method": "mpesa", "providerReference": "QK7TX2B9LM", "paymentStatus": status}


@pytest.fixture
def make_offer():
    return _offer


@pytest.fixture
def make_signature():
    return _signature


@pytest.fixture
def make_payment():
    return _payment


@pytest.fixture
def session_factory():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield sessionmaker(autoflush=False, bind=engine)
    engine.dispose()


@pytest.fixture
def session(session_factory):
    db = session_factory()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def repository(session):
    return SqlAlchemyStepRepository(db=session)


@pytest.fixture
def events():
    return []


@pytest.fixture
def controller(repository, events):
    return NegotiationController(repository=repository, config=get_config(), on_change=events.append)
