"""In-memory storage backend.

All state lives in one explicit ``InMemoryEscrowState`` object that the caller
owns and hands to the repositories; nothing is module-level. The service
finishes every check before its first write, so a rejected call leaves this
state untouched.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import TYPE_CHECKING

from intent_escrow.domain.exceptions import AlreadyInitializedError, ContractNotInitializedError
from intent_escrow.domain.models import ContractState

if TYPE_CHECKING:
    from intent_escrow.domain.models import Intent, IntentEvent


@dataclass
class InMemoryEscrowState:
    """Registry, account index, contract state and event log of one escrow."""

    intents: dict[str, Intent] = field(default_factory=dict)
    account_intents: dict[str, list[str]] = field(default_factory=dict)
    contract: ContractState | None = None
    events: list[IntentEvent] = field(default_factory=list)


class InMemoryIntentRegistry:
    """Dict-backed intent registry."""

    def __init__(self, state: InMemoryEscrowState) -> None:
        self._state = state

    async def put(self, intent: Intent) -> None:
        self._state.intents[intent.intent_id] = intent

    async def get(self, intent_id: str) -> Intent | None:
        return self._state.intents.get(intent_id)

    async def delete(self, intent_id: str) -> None:
        """Drop a record; index entries pointing at it are left in place."""
        self._state.intents.pop(intent_id, None)


class InMemoryAccountIndex:
    """Dict-of-lists account index."""

    def __init__(self, state: InMemoryEscrowState) -> None:
        self._state = state

    async def append(self, account_id: str, intent_id: str) -> None:
        self._state.account_intents.setdefault(account_id, []).append(intent_id)

    async def list(self, account_id: str) -> list[str]:
        return list(self._state.account_intents.get(account_id, ()))


class InMemoryContractStateStore:
    """Holds the single ContractState of an in-memory escrow."""

    def __init__(self, state: InMemoryEscrowState) -> None:
        self._state = state

    async def initialize(self, owner_id: str) -> ContractState:
        if self._state.contract is not None:
            raise AlreadyInitializedError(self._state.contract.owner_id)
        self._state.contract = ContractState(owner_id=owner_id)
        return self._state.contract

    async def get(self) -> ContractState | None:
        return self._state.contract

    async def increment_total(self) -> int:
        if self._state.contract is None:
            raise ContractNotInitializedError()
        contract = self._state.contract
        self._state.contract = replace(contract, total_intents=contract.total_intents + 1)
        return self._state.contract.total_intents


class InMemoryEventLog:
    """List-backed append-only event log."""

    def __init__(self, state: InMemoryEscrowState) -> None:
        self._state = state

    async def record(self, event: IntentEvent) -> IntentEvent:
        self._state.events.append(event)
        return event

    async def get_by_intent(self, intent_id: str) -> list[IntentEvent]:
        return [e for e in self._state.events if e.intent_id == intent_id]
