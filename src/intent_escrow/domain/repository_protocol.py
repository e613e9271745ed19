"""Storage Protocols.

Defines the interfaces the service layer talks to. These are Protocols
(structural subtyping) so the in-memory and SQLAlchemy backends don't need to
inherit from a base class — they just need to match the shape.

The domain layer has ZERO imports from SQLAlchemy or any storage engine.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from intent_escrow.domain.models import ContractState, Intent, IntentEvent

# Host clock: returns an unsigned integer timestamp (nanoseconds by default)
Clock = Callable[[], int]


@runtime_checkable
class IntentRegistry(Protocol):
    """Canonical mapping from intent ID to intent record."""

    async def put(self, intent: Intent) -> None:
        """Insert or overwrite the record stored under ``intent.intent_id``."""
        ...

    async def get(self, intent_id: str) -> Intent | None:
        """Return the record, or None when the ID is unknown."""
        ...


@runtime_checkable
class AccountIndex(Protocol):
    """Append-only mapping from account ID to the intent IDs it takes part in."""

    async def append(self, account_id: str, intent_id: str) -> None:
        ...

    async def list(self, account_id: str) -> list[str]:
        """Return IDs in append order; an unknown account yields an empty list."""
        ...


@runtime_checkable
class ContractStateStore(Protocol):
    """Owner and creation counter, written once by initialize()."""

    async def initialize(self, owner_id: str) -> ContractState:
        """Create the contract state. Raises AlreadyInitializedError if it exists."""
        ...

    async def get(self) -> ContractState | None:
        ...

    async def increment_total(self) -> int:
        """Add one to the creation counter and return the new value."""
        ...


@runtime_checkable
class EventLog(Protocol):
    """Append-only audit trail of successful mutating calls."""

    async def record(self, event: IntentEvent) -> IntentEvent:
        ...

    async def get_by_intent(self, intent_id: str) -> list[IntentEvent]:
        """Return events for one intent in chronological order."""
        ...
