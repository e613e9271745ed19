"""Domain records for the Intent Escrow.

Records are frozen dataclasses: a transition never edits a stored intent in
place, it builds a new record with ``dataclasses.replace`` and writes it back
through the registry.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field, replace

from intent_escrow.domain.enums import EventType, IntentStatus

MAX_AMOUNT = 2**128 - 1
MAX_TIMESTAMP = 2**64 - 1


@dataclass(frozen=True)
class Intent:
    """A work agreement between a client and a freelancer.

    Attributes:
        intent_id: Identifier chosen by the client at creation.
        client: Account that created the intent.
        freelancer: Account expected to deliver the work.
        amount: Agreed value, recorded for reference only (never transferred).
        deadline: Informational timestamp, not enforced by any transition.
        description: Free-text task description.
        proof_link: Link to delivered work, set on submission.
        notes: Optional freelancer notes, set on submission.
        status: Current lifecycle state.
        created_at: Clock value at creation.
        updated_at: Clock value of the last successful transition.
    """

    intent_id: str
    client: str
    freelancer: str
    amount: int
    deadline: int
    description: str
    status: IntentStatus = IntentStatus.CREATED
    proof_link: str | None = None
    notes: str | None = None
    created_at: int = 0
    updated_at: int = 0

    @property
    def parties(self) -> tuple[str, ...]:
        """Accounts indexed for this intent, client first, without repeats."""
        if self.client == self.freelancer:
            return (self.client,)
        return (self.client, self.freelancer)

    def with_status(self, status: IntentStatus, updated_at: int, **changes: str | None) -> Intent:
        """Return a copy moved to ``status`` with ``updated_at`` refreshed."""
        return replace(self, status=status, updated_at=updated_at, **changes)


@dataclass(frozen=True)
class ContractState:
    """Contract-level state: the privileged owner and the creation counter."""

    owner_id: str
    total_intents: int = 0


@dataclass(frozen=True)
class IntentEvent:
    """One entry of the append-only audit trail."""

    intent_id: str
    event_type: EventType
    old_status: IntentStatus | None
    new_status: IntentStatus
    actor: str
    created_at: int
    metadata: dict | None = None
    id: uuid.UUID = field(default_factory=uuid.uuid4)
