"""Domain enumerations for the Intent Escrow.

These enums define the canonical states and types used throughout the system.
They are framework-agnostic (no SQLAlchemy, no pydantic imports).
"""

import enum


class IntentStatus(enum.StrEnum):
    """Lifecycle states of an escrow intent.

    State transitions are enforced by the IntentStateMachine guard.
    See domain/state_machine.py for the transition table.
    """

    CREATED = "CREATED"
    APPROVED = "APPROVED"
    DISPUTED = "DISPUTED"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


class EventType(enum.StrEnum):
    """Types of audit events recorded in the intent event log.

    Every successful mutating call produces exactly one event.
    """

    # Lifecycle events
    INTENT_CREATED = "INTENT_CREATED"
    WORK_SUBMITTED = "WORK_SUBMITTED"
    WORK_APPROVED = "WORK_APPROVED"
    WORK_DISPUTED = "WORK_DISPUTED"
    INTENT_CANCELLED = "INTENT_CANCELLED"

    # Dispute resolution events
    DISPUTE_RESOLVED_FREELANCER = "DISPUTE_RESOLVED_FREELANCER"
    DISPUTE_RESOLVED_CLIENT = "DISPUTE_RESOLVED_CLIENT"


class Role(enum.StrEnum):
    """Parts an account can play with respect to a single intent."""

    CLIENT = "client"
    FREELANCER = "freelancer"
    OWNER = "owner"
