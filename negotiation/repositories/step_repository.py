"""Step repository: durable storage of contracts and their negotiation steps.

``StepRepository`` is the storage contract the controller depends on.
``SqlAlchemyStepRepository`` implements it on a SQLAlchemy session, using
conditional updates so that a step can only be completed while it is still
pending and a contract status only moves from the status the caller saw.
"""

from __future__ import annotations

import copy
import logging
from abc import ABC, abstractmethod
from typing import Any

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from negotiation.core.enums import ContractStatus, PartyRole, ResponseType, StepStatus
from negotiation.core.exceptions import NotFoundError, PersistenceError
from negotiation.engine.records import ContractRecord, NewStep, StepRecord
from negotiation.models import ContractNegotiation, NegotiationStep
from negotiation.models.base import new_id, utcnow
from negotiation.services.base_service import BaseService

logger = logging.getLogger(__name__)


class StepRepository(ABC):
    """Storage contract for negotiations."""

    @abstractmethod
    def load_contract(self, contract_id: str) -> ContractRecord:
        """Return the contract or raise ``NotFoundError``."""

    @abstractmethod
    def load_steps(self, contract_id: str) -> list[StepRecord]:
        """Return the steps of a contract ordered by step number."""

    @abstractmethod
    def atomic_advance(
        self,
        contract_id: str,
        completing_step_id: str,
        completed_details: dict[str, Any],
        response_type: ResponseType,
        next_step: NewStep | None = None,
        new_contract_status: ContractStatus | None = None,
        expected_contract_status: ContractStatus = ContractStatus.NEGOTIATING,
    ) -> bool:
        """Complete a pending step, append its successor and move the contract status.

        All or nothing. Returns ``False`` without changing anything when the step
        is no longer pending or the contract is no longer in the expected status.
        """

    @abstractmethod
    def create_contract(
        self,
        business_id: str,
        agency_id: str,
        initiator_role: PartyRole,
        title: str,
        description: str | None,
        initial_step: NewStep,
        first_pending_step: NewStep,
    ) -> ContractRecord:
        """Persist a contract with its first two steps in one transaction."""

    @abstractmethod
    def list_contracts(
        self,
        party_id: str,
        role: PartyRole,
        status: ContractStatus | None = None,
    ) -> list[ContractRecord]:
        """Return contracts in which ``party_id`` takes part as ``role``."""

    @abstractmethod
    def update_contract_status(
        self,
        contract_id: str,
        expected: ContractStatus,
        new: ContractStatus,
    ) -> bool:
        """Move the contract status only if it still equals ``expected``."""


def to_contract_record(model: ContractNegotiation) -> ContractRecord:
    return ContractRecord(
        id=model.id,
        business_id=model.business_id,
        agency_id=model.agency_id,
        initiator_role=PartyRole(model.initiator_role),
        title=model.title,
        description=model.description,
        status=ContractStatus(model.status),
        created_at=model.created_at,
        updated_at=model.updated_at,
    )


def to_step_record(model: NegotiationStep) -> StepRecord:
    return StepRecord(
        id=model.id,
        contract_id=model.contract_id,
        step_number=model.step_number,
        step_type=model.step_type,
        status=StepStatus(model.status),
        responder_role=PartyRole(model.responder_role),
        details=copy.deepcopy(model.details or {}),
        created_at=model.created_at,
        response_type=ResponseType(model.response_type) if model.response_type else None,
        round_number=model.round_number,
        completed_at=model.completed_at,
    )


class SqlAlchemyStepRepository(BaseService, StepRepository):
    """Step repository backed by a SQLAlchemy session."""

    def __init__(self, db: Session | None = None) -> None:
        super().__init__(db=db)

    def _step_model(self, contract_id: str, step: NewStep) -> NegotiationStep:
        now = utcnow()
        return NegotiationStep(
            id=new_id(),
            contract_id=contract_id,
            step_number=step.step_number,
            step_type=step.step_type,
            status=step.status,
            responder_role=step.responder_role,
            response_type=step.response_type,
            round_number=step.round_number,
            details=copy.deepcopy(step.details),
            created_at=now,
            completed_at=now if step.status is StepStatus.COMPLETED else None,
        )

    def load_contract(self, contract_id: str) -> ContractRecord:
        try:
            model = self.db.get(ContractNegotiation, contract_id, populate_existing=True)
        except SQLAlchemyError as exc:
            self.rollback()
            raise PersistenceError(f"Failed to load contract {contract_id}") from exc
        if model is None:
            raise NotFoundError(f"Contract negotiation {contract_id} not found")
        return to_contract_record(model)

    def load_steps(self, contract_id: str) -> list[StepRecord]:
        query = (
            select(NegotiationStep)
            .where(NegotiationStep.contract_id == contract_id)
            .order_by(NegotiationStep.step_number)
            .execution_options(populate_existing=True)
        )
        try:
            rows = self.db.scalars(query).all()
        except SQLAlchemyError as exc:
            self.rollback()
            raise PersistenceError(f"Failed to load steps for contract {contract_id}") from exc
        return [to_step_record(row) for row in rows]

    def atomic_advance(
        self,
        contract_id: str,
        completing_step_id: str,
        completed_details: dict[str, Any],
        response_type: ResponseType,
        next_step: NewStep | None = None,
        new_contract_status: ContractStatus | None = None,
        expected_contract_status: ContractStatus = ContractStatus.NEGOTIATING,
    ) -> bool:
        now = utcnow()
        try:
            completed = self.db.execute(
                update(NegotiationStep)
                .where(
                    NegotiationStep.id == completing_step_id,
                    NegotiationStep.contract_id == contract_id,
                    NegotiationStep.status == StepStatus.PENDING,
                )
                .values(
                    status=StepStatus.COMPLETED,
                    details=copy.deepcopy(completed_details),
                    response_type=response_type,
                    completed_at=now,
                )
                .execution_options(synchronize_session=False)
            )
            if completed.rowcount != 1:
                self.rollback()
                return False

            # Guards the contract row as well, so no step can advance once the
            # contract has left the status the caller loaded.
            touched = self.db.execute(
                update(ContractNegotiation)
                .where(
                    ContractNegotiation.id == contract_id,
                    ContractNegotiation.status == expected_contract_status,
                )
                .values(status=new_contract_status or expected_contract_status, updated_at=now)
                .execution_options(synchronize_session=False)
            )
            if touched.rowcount != 1:
                self.rollback()
                return False

            if next_step is not None:
                self.db.add(self._step_model(contract_id, next_step))
                self.db.flush()
            self.commit()
        except IntegrityError:
            # Another writer inserted the same step number or pending step first.
            self.rollback()
            logger.info(
                "repository.advance.integrity_conflict",
                extra={"event": "repository.advance.integrity_conflict", "contract_id": contract_id},
            )
            return False
        except SQLAlchemyError as exc:
            self.rollback()
            logger.exception(
                "repository.persistence_failed",
                extra={"event": "repository.persistence_failed", "contract_id": contract_id},
            )
            raise PersistenceError(f"Failed to advance contract {contract_id}") from exc
        return True

    def create_contract(
        self,
        business_id: str,
        agency_id: str,
        initiator_role: PartyRole,
        title: str,
        description: str | None,
        initial_step: NewStep,
        first_pending_step: NewStep,
    ) -> ContractRecord:
        now = utcnow()
        contract = ContractNegotiation(
            id=new_id(),
            business_id=business_id,
            agency_id=agency_id,
            initiator_role=initiator_role,
            title=title,
            description=description,
            status=ContractStatus.NEGOTIATING,
            created_at=now,
            updated_at=now,
        )
        try:
            self.db.add(contract)
            self.db.flush()
            self.db.add_all(
                [
                    self._step_model(contract.id, initial_step),
                    self._step_model(contract.id, first_pending_step),
                ]
            )
            self.db.flush()
            record = to_contract_record(contract)
            self.commit()
        except SQLAlchemyError as exc:
            self.rollback()
            logger.exception(
                "repository.persistence_failed",
                extra={"event": "repository.persistence_failed"},
            )
            raise PersistenceError("Failed to create contract negotiation") from exc
        return record

    def list_contracts(
        self,
        party_id: str,
        role: PartyRole,
        status: ContractStatus | None = None,
    ) -> list[ContractRecord]:
        column = ContractNegotiation.business_id if role is PartyRole.BUSINESS else ContractNegotiation.agency_id
        query = select(ContractNegotiation).where(column == party_id)
        if status is not None:
            query = query.where(ContractNegotiation.status == status)
        query = query.order_by(ContractNegotiation.created_at.desc())
        try:
            rows = self.db.scalars(query).all()
        except SQLAlchemyError as exc:
            self.rollback()
            raise PersistenceError(f"Failed to list contracts for {role.value} {party_id}") from exc
        return [to_contract_record(row) for row in rows]

    def update_contract_status(
        self,
        contract_id: str,
        expected: ContractStatus,
        new: ContractStatus,
    ) -> bool:
        try:
            result = self.db.execute(
                update(ContractNegotiation)
                .where(ContractNegotiation.id == contract_id, ContractNegotiation.status == expected)
                .values(status=new, updated_at=utcnow())
                .execution_options(synchronize_session=False)
            )
            if result.rowcount != 1:
                self.rollback()
                return False
            self.commit()
        except SQLAlchemyError as exc:
            self.rollback()
            raise PersistenceError(f"Failed to update contract {contract_id}") from exc
        return True

