"""Domain exceptions for the Intent Escrow.

These exceptions are framework-agnostic and represent business rule violations.
Every one of them is fatal to the call that raised it: no write performed by
that call is kept.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable


class EscrowIntentError(Exception):
    """Base exception for all domain errors."""

    def __init__(self, message: str, code: str = "ESCROW_INTENT_ERROR") -> None:
        self.message = message
        self.code = code
        super().__init__(self.message)


# --- Initialization Errors ---


class AlreadyInitializedError(EscrowIntentError):
    """Raised on a second attempt to initialize the escrow contract."""

    def __init__(self, owner_id: str) -> None:
        super().__init__(
            message=f"Already initialized (owner: {owner_id})",
            code="ALREADY_INITIALIZED",
        )
        self.owner_id = owner_id


class ContractNotInitializedError(EscrowIntentError):
    """Raised when an operation runs before the contract has an owner."""

    def __init__(self) -> None:
        super().__init__(
            message="Escrow contract is not initialized",
            code="NOT_INITIALIZED",
        )


# --- Intent Errors ---


class IntentNotFoundError(EscrowIntentError):
    """Raised when an intent ID does not exist."""

    def __init__(self, intent_id: str) -> None:
        super().__init__(
            message=f"Intent not found: {intent_id}",
            code="INTENT_NOT_FOUND",
        )
        self.intent_id = intent_id


class InvalidIntentError(EscrowIntentError):
    """Raised when creation input is out of range (empty id, negative amount)."""

    def __init__(self, message: str) -> None:
        super().__init__(message=message, code="INVALID_INTENT")


class DuplicateIntentError(EscrowIntentError):
    """Raised when an intent ID is reused and duplicate IDs are rejected."""

    def __init__(self, intent_id: str) -> None:
        super().__init__(
            message=f"Intent already exists: {intent_id}",
            code="DUPLICATE_INTENT",
        )
        self.intent_id = intent_id


# --- Authorization Errors ---


class UnauthorizedError(EscrowIntentError):
    """Raised when the caller does not hold a role the operation requires.

    Example: a client calling submit_work (only the freelancer may submit).
    """

    def __init__(self, operation: str, caller: str, required_roles: Iterable[str]) -> None:
        roles = " or ".join(sorted(str(r) for r in required_roles))
        super().__init__(
            message=f"Only the {roles} can {operation.replace('_', ' ')} (caller: {caller})",
            code="UNAUTHORIZED",
        )
        self.operation = operation
        self.caller = caller
        self.required_roles = tuple(sorted(str(r) for r in required_roles))


# --- State Machine Errors ---


class InvalidStateTransitionError(EscrowIntentError):
    """Raised when the intent's current status does not allow an operation.

    Example: APPROVED -> dispute_work after the work was already approved.
    """

    def __init__(self, current_state: str, attempted_event: str) -> None:
        super().__init__(
            message=f"Invalid state transition: {current_state} -> {attempted_event}",
            code="INVALID_STATE",
        )
        self.current_state = current_state
        self.attempted_event = attempted_event
