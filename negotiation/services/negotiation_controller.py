"""Negotiation controller: runs engine transitions against the step repository."""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Any

from negotiation.core.config import Config, get_config
from negotiation.core.enums import ContractStatus, PartyRole, ResponseType
from negotiation.core.exceptions import ConflictError, IllegalTransitionError, StaleStepError, ValidationError
from negotiation.engine.records import ContractRecord, Response, StepRecord
from negotiation.engine.state_machine import InvalidTransitionError
from negotiation.engine.transitions import current_step, open_negotiation, previous_offer, transition
from negotiation.repositories.step_repository import StepRepository

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class NegotiationView:
    """A contract with its history, as the screens consume it."""

    contract: ContractRecord
    steps: list[StepRecord]
    current_step: StepRecord | None
    previous_offer: dict[str, Any] | None


@dataclass(frozen=True)
class NegotiationEvent:
    """Emitted after every durable change to a negotiation."""

    contract_id: str
    contract_status: ContractStatus
    completed_step_id: str | None = None
    next_step_id: str | None = None
    response_type: ResponseType | None = None


ChangeListener = Callable[[NegotiationEvent], None]


class NegotiationController:
    """Entry point for the UI/API layer.

    Loads state, asks the engine for the next state and persists it with a
    conditional write. A response against a step that is no longer current
    raises ``ConflictError`` and nothing is written; the caller reloads.
    """

    def __init__(
        self,
        repository: StepRepository,
        config: Config | None = None,
        on_change: ChangeListener | None = None,
    ) -> None:
        self.repository = repository
        self.config = config or get_config()
        self.on_change = on_change

    def _view(self, contract_id: str) -> NegotiationView:
        contract = self.repository.load_contract(contract_id)
        steps = self.repository.load_steps(contract_id)
        return NegotiationView(
            contract=contract,
            steps=steps,
            current_step=current_step(steps),
            previous_offer=previous_offer(steps),
        )

    def _notify(self, event: NegotiationEvent) -> None:
        # Listeners run after the commit; their failures never reach the caller.
        if self.on_change is None:
            return
        try:
            self.on_change(event)
        except Exception:
            logger.exception(
                "negotiation.listener_failed",
                extra={"event": "negotiation.listener_failed", "contract_id": event.contract_id},
            )

    def get_negotiation(self, contract_id: str) -> NegotiationView:
        return self._view(contract_id)

    def get_current_step(self, contract_id: str) -> StepRecord | None:
        """Return the pending step of a contract, or ``None`` once it is terminal."""
        self.repository.load_contract(contract_id)
        return current_step(self.repository.load_steps(contract_id))

    def list_negotiations(
        self,
        party_id: str,
        role: PartyRole | str,
        status: ContractStatus | str | None = None,
    ) -> list[ContractRecord]:
        role = PartyRole(role)
        status = ContractStatus(status) if status is not None else None
        return self.repository.list_contracts(party_id, role, status)

    def create_negotiation(
        self,
        business_id: str,
        agency_id: str,
        initial_offer_details: Mapping[str, Any],
        title: str | None = None,
        description: str | None = None,
        initiator: PartyRole | str = PartyRole.BUSINESS,
        request_review: bool = False,
    ) -> NegotiationView:
        if not business_id or not agency_id:
            raise ValidationError(
                [name for name, value in (("businessId", business_id), ("agencyId", agency_id)) if not value]
            )
        initiator = PartyRole(initiator)
        initial_step, first_pending = open_negotiation(
            dict(initial_offer_details),
            initiator=initiator,
            request_review=request_review,
        )
        contract = self.repository.create_contract(
            business_id=business_id,
            agency_id=agency_id,
            initiator_role=initiator,
            title=title or self.config.DEFAULT_CONTRACT_TITLE,
            description=description if description is not None else self.config.DEFAULT_CONTRACT_DESCRIPTION,
            initial_step=initial_step,
            first_pending_step=first_pending,
        )
        logger.info(
            "negotiation.created",
            extra={"event": "negotiation.created", "contract_id": contract.id, "status": contract.status.value},
        )
        view = self._view(contract.id)
        self._notify(
            NegotiationEvent(
                contract_id=contract.id,
                contract_status=contract.status,
                next_step_id=view.current_step.id if view.current_step else None,
            )
        )
        return view

    def submit_response(
        self,
        contract_id: str,
        step_id: str,
        response_type: ResponseType | str,
        details: Mapping[str, Any] | None = None,
    ) -> NegotiationView:
        """Apply a response to the current step of a contract.

        Raises ``ConflictError`` when ``step_id`` is no longer the current step,
        ``ValidationError`` for bad details, ``IllegalTransitionError`` for a
        response the step does not allow, ``NotFoundError`` for an unknown
        contract and ``PersistenceError`` for storage failures.
        """
        try:
            response_type = ResponseType(response_type)
        except ValueError:
            raise IllegalTransitionError(None, str(response_type)) from None

        contract = self.repository.load_contract(contract_id)
        history = self.repository.load_steps(contract_id)
        log_extra = {"contract_id": contract_id, "step_id": step_id, "response_type": response_type.value}

        try:
            outcome = transition(
                history,
                Response(step_id=step_id, response_type=response_type, details=dict(details or {})),
                require_activation=self.config.REQUIRE_ACTIVATION,
            )
        except StaleStepError as exc:
            logger.info("negotiation.response.stale", extra={"event": "negotiation.response.stale", **log_extra})
            raise ConflictError(contract_id, step_id) from exc
        except IllegalTransitionError:
            logger.warning(
                "negotiation.response.illegal",
                extra={"event": "negotiation.response.illegal", **log_extra},
            )
            raise

        advanced = self.repository.atomic_advance(
            contract_id=contract_id,
            completing_step_id=outcome.completed_step_id,
            completed_details=outcome.completed_details,
            response_type=outcome.response_type,
            next_step=outcome.next_step,
            new_contract_status=outcome.contract_status,
            expected_contract_status=contract.status,
        )
        if not advanced:
            logger.info(
                "negotiation.response.conflict",
                extra={"event": "negotiation.response.conflict", **log_extra},
            )
            raise ConflictError(contract_id, step_id)

        view = self._view(contract_id)
        logger.info(
            "negotiation.response.accepted",
            extra={"event": "negotiation.response.accepted", "status": view.contract.status.value, **log_extra},
        )
        self._notify(
            NegotiationEvent(
                contract_id=contract_id,
                contract_status=view.contract.status,
                completed_step_id=outcome.completed_step_id,
                next_step_id=view.current_step.id if view.current_step else None,
                response_type=response_type,
            )
        )
        return view

    def activate(self, contract_id: str) -> ContractRecord:
        """Activate a contract whose payment completed it."""
        contract = self.repository.load_contract(contract_id)
        if contract.status is not ContractStatus.COMPLETED:
            raise InvalidTransitionError(contract.status.value, ContractStatus.ACTIVE.value)
        if not self.repository.update_contract_status(contract_id, contract.status, ContractStatus.ACTIVE):
            raise ConflictError(contract_id)
        activated = self.repository.load_contract(contract_id)
        logger.info(
            "negotiation.activated",
            extra={"event": "negotiation.activated", "contract_id": contract_id, "status": activated.status.value},
        )
        self._notify(NegotiationEvent(contract_id=contract_id, contract_status=activated.status))
        return activated
