"""Custom exceptions for the negotiation service."""

from __future__ import annotations

from collections.abc import Iterable


class NegotiationException(Exception):
    """Base exception for the negotiation service."""

    pass


class ValidationError(NegotiationException):
    """Raised when step details fail the payload schema."""

    def __init__(self, missing_fields: Iterable[str], message: str | None = None) -> None:
        self.missing_fields = list(missing_fields)
        super().__init__(message or f"Invalid or missing fields: {', '.join(self.missing_fields)}")


class IllegalTransitionError(NegotiationException):
    """Raised when a response type is not permitted from the current step."""

    def __init__(self, step_type: str | None, response_type: str | None, message: str | None = None) -> None:
        self.step_type = step_type
        self.response_type = response_type
        super().__init__(message or f"Response '{response_type}' is not allowed for step '{step_type}'")


class StaleStepError(NegotiationException):
    """Raised by the engine when the responded step is no longer current."""

    def __init__(self, step_id: str, current_step_id: str | None) -> None:
        self.step_id = step_id
        self.current_step_id = current_step_id
        super().__init__(f"Step {step_id} is not the current step (current: {current_step_id})")


class ConflictError(NegotiationException):
    """Raised when another write already advanced the step; caller must reload."""

    def __init__(self, contract_id: str, step_id: str | None = None, message: str | None = None) -> None:
        self.contract_id = contract_id
        self.step_id = step_id
        super().__init__(message or f"Negotiation {contract_id} changed concurrently; reload and retry")


class NotFoundError(NegotiationException):
    """Raised when a contract or step is not found."""

    pass


class PersistenceError(NegotiationException):
    """Raised when the storage layer fails."""

    pass


class ConfigurationError(NegotiationException):
    """Raised when configuration is invalid."""

    pass
