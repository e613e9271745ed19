"""Domain layer — pure business logic with zero storage dependencies."""

from intent_escrow.domain.authorization import (
    OPERATION_ROLES,
    authorize,
    permitted_operations,
    roles_of,
)
from intent_escrow.domain.enums import EventType, IntentStatus, Role
from intent_escrow.domain.exceptions import (
    AlreadyInitializedError,
    ContractNotInitializedError,
    DuplicateIntentError,
    EscrowIntentError,
    IntentNotFoundError,
    InvalidIntentError,
    InvalidStateTransitionError,
    UnauthorizedError,
)
from intent_escrow.domain.models import ContractState, Intent, IntentEvent
from intent_escrow.domain.repository_protocol import (
    AccountIndex,
    Clock,
    ContractStateStore,
    EventLog,
    IntentRegistry,
)
from intent_escrow.domain.state_machine import (
    IntentStateMachine,
    resolution_event,
    validate_transition,
)

__all__ = [
    "EventType",
    "IntentStatus",
    "Role",
    "EscrowIntentError",
    "AlreadyInitializedError",
    "ContractNotInitializedError",
    "DuplicateIntentError",
    "IntentNotFoundError",
    "InvalidIntentError",
    "InvalidStateTransitionError",
    "UnauthorizedError",
    "ContractState",
    "Intent",
    "IntentEvent",
    "AccountIndex",
    "Clock",
    "ContractStateStore",
    "EventLog",
    "IntentRegistry",
    "IntentStateMachine",
    "resolution_event",
    "validate_transition",
    "OPERATION_ROLES",
    "authorize",
    "permitted_operations",
    "roles_of",
]
