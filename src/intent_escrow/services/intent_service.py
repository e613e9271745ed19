"""Intent Escrow Service — core business logic for the intent lifecycle.

This is the application layer that coordinates between:
    - Domain state machine (transition guard)
    - Authorization rules (who may call what)
    - Repositories (registry, account index, contract state, event log)

It is the only component that writes an intent's status. Every mutating call
checks the caller first and the current status second, and performs no write
until both checks have passed.
"""

from __future__ import annotations

import time
from typing import TYPE_CHECKING

from statemachine.exceptions import TransitionNotAllowed

from intent_escrow.domain.authorization import authorize, permitted_operations
from intent_escrow.domain.enums import EventType, IntentStatus
from intent_escrow.domain.exceptions import (
    ContractNotInitializedError,
    DuplicateIntentError,
    IntentNotFoundError,
    InvalidIntentError,
    InvalidStateTransitionError,
)
from intent_escrow.domain.models import MAX_AMOUNT, MAX_TIMESTAMP, Intent, IntentEvent
from intent_escrow.domain.state_machine import IntentStateMachine, resolution_event
from intent_escrow.logging_config import get_logger

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from intent_escrow.domain.models import ContractState
    from intent_escrow.domain.repository_protocol import (
        AccountIndex,
        Clock,
        ContractStateStore,
        EventLog,
        IntentRegistry,
    )
    from intent_escrow.infrastructure.memory import InMemoryEscrowState

logger = get_logger(__name__)


class IntentEscrowService:
    """Manages the escrow intent lifecycle."""

    def __init__(
        self,
        registry: IntentRegistry,
        index: AccountIndex,
        contract: ContractStateStore,
        events: EventLog,
        clock: Clock | None = None,
        reject_duplicate_ids: bool = False,
    ) -> None:
        self._registry = registry
        self._index = index
        self._contract = contract
        self._events = events
        self._clock = clock or time.time_ns
        self._reject_duplicate_ids = reject_duplicate_ids

    @classmethod
    def in_memory(
        cls,
        state: InMemoryEscrowState | None = None,
        clock: Clock | None = None,
        reject_duplicate_ids: bool = False,
    ) -> IntentEscrowService:
        """Build a service over an explicit in-memory state object."""
        from intent_escrow.infrastructure.memory import (
            InMemoryAccountIndex,
            InMemoryContractStateStore,
            InMemoryEscrowState,
            InMemoryEventLog,
            InMemoryIntentRegistry,
        )

        state = state if state is not None else InMemoryEscrowState()
        return cls(
            registry=InMemoryIntentRegistry(state),
            index=InMemoryAccountIndex(state),
            contract=InMemoryContractStateStore(state),
            events=InMemoryEventLog(state),
            clock=clock,
            reject_duplicate_ids=reject_duplicate_ids,
        )

    @classmethod
    def from_session(
        cls,
        session: AsyncSession,
        clock: Clock | None = None,
        reject_duplicate_ids: bool = False,
    ) -> IntentEscrowService:
        """Build a service whose writes go through one database session."""
        from intent_escrow.infrastructure.database.repositories import (
            AccountIndexRepository,
            ContractStateRepository,
            EventRepository,
            IntentRepository,
        )

        return cls(
            registry=IntentRepository(session),
            index=AccountIndexRepository(session),
            contract=ContractStateRepository(session),
            events=EventRepository(session),
            clock=clock,
            reject_duplicate_ids=reject_duplicate_ids,
        )

    # ------------------------------------------------------------------
    # Initialization
    # ------------------------------------------------------------------

    async def initialize(self, owner_id: str) -> ContractState:
        """Set the contract owner. Succeeds exactly once."""
        contract = await self._contract.initialize(owner_id)
        logger.info("contract.initialized", owner=owner_id)
        return contract

    # ------------------------------------------------------------------
    # Creation
    # ------------------------------------------------------------------

    async def create_intent(
        self,
        caller: str,
        intent_id: str,
        freelancer: str,
        amount: int,
        deadline: int,
        description: str,
    ) -> Intent:
        """Create a new intent in CREATED state with the caller as client."""
        await self._get_contract_or_raise()

        if not intent_id:
            raise InvalidIntentError("intent_id must not be empty")
        if not 0 <= amount <= MAX_AMOUNT:
            raise InvalidIntentError(f"amount out of range: {amount}")
        if not 0 <= deadline <= MAX_TIMESTAMP:
            raise InvalidIntentError(f"deadline out of range: {deadline}")

        previous = await self._registry.get(intent_id)
        if previous is not None and self._reject_duplicate_ids:
            raise DuplicateIntentError(intent_id)

        now = self._clock()
        intent = Intent(
            intent_id=intent_id,
            client=caller,
            freelancer=freelancer,
            amount=amount,
            deadline=deadline,
            description=description,
            status=IntentStatus.CREATED,
            created_at=now,
            updated_at=now,
        )

        await self._registry.put(intent)
        total = await self._contract.increment_total()
        for account_id in intent.parties:
            await self._index.append(account_id, intent_id)

        metadata: dict = {"amount": str(amount), "freelancer": freelancer}
        if previous is not None:
            metadata["overwrote_status"] = previous.status.value
            logger.warning(
                "intent.overwritten",
                intent_id=intent_id,
                previous_client=previous.client,
                previous_status=previous.status.value,
            )

        await self._record(intent, EventType.INTENT_CREATED, None, caller, metadata)
        logger.info(
            "intent.created",
            intent_id=intent_id,
            client=caller,
            freelancer=freelancer,
            amount=str(amount),
            total_intents=total,
        )
        return intent

    # ------------------------------------------------------------------
    # Work Submission
    # ------------------------------------------------------------------

    async def submit_work(
        self,
        caller: str,
        intent_id: str,
        proof_link: str,
        notes: str | None = None,
    ) -> Intent:
        """Freelancer submits work; the intent moves straight to APPROVED."""
        intent = await self._transition(
            caller,
            intent_id,
            operation="submit_work",
            event_name="submit_work",
            event_type=EventType.WORK_SUBMITTED,
            changes={"proof_link": proof_link, "notes": notes},
            metadata={"proof_link": proof_link},
        )
        logger.info("intent.work_submitted", intent_id=intent_id, freelancer=caller)
        return intent

    # ------------------------------------------------------------------
    # Client Review
    # ------------------------------------------------------------------

    async def approve_work(self, caller: str, intent_id: str) -> Intent:
        """Client approves submitted work. APPROVED -> COMPLETED."""
        intent = await self._transition(
            caller,
            intent_id,
            operation="approve_work",
            event_name="approve_work",
            event_type=EventType.WORK_APPROVED,
        )
        logger.info("intent.approved", intent_id=intent_id, client=caller)
        return intent

    async def dispute_work(self, caller: str, intent_id: str) -> Intent:
        """Client disputes submitted work. APPROVED -> DISPUTED."""
        intent = await self._transition(
            caller,
            intent_id,
            operation="dispute_work",
            event_name="dispute_work",
            event_type=EventType.WORK_DISPUTED,
        )
        logger.info("intent.disputed", intent_id=intent_id, client=caller)
        return intent

    # ------------------------------------------------------------------
    # Cancellation & Disputes
    # ------------------------------------------------------------------

    async def cancel_intent(self, caller: str, intent_id: str) -> Intent:
        """Client or owner cancels a CREATED or DISPUTED intent."""
        intent = await self._transition(
            caller,
            intent_id,
            operation="cancel_intent",
            event_name="cancel_intent",
            event_type=EventType.INTENT_CANCELLED,
        )
        logger.info("intent.cancelled", intent_id=intent_id, by=caller)
        return intent

    async def resolve_dispute(self, caller: str, intent_id: str, complete: bool) -> Intent:
        """Owner settles a dispute: COMPLETED if ``complete`` else CANCELLED."""
        event_type = (
            EventType.DISPUTE_RESOLVED_FREELANCER
            if complete
            else EventType.DISPUTE_RESOLVED_CLIENT
        )
        intent = await self._transition(
            caller,
            intent_id,
            operation="resolve_dispute",
            event_name=resolution_event(complete),
            event_type=event_type,
            metadata={"complete": complete},
        )
        logger.info(
            "intent.dispute_resolved",
            intent_id=intent_id,
            complete=complete,
            status=intent.status.value,
        )
        return intent

    # ------------------------------------------------------------------
    # Read helpers
    # ------------------------------------------------------------------

    async def get_intent(self, intent_id: str) -> Intent | None:
        """Return the intent, or None when the ID is unknown."""
        return await self._registry.get(intent_id)

    async def get_user_intents(self, account_id: str) -> list[Intent]:
        """Return the account's intents in creation order.

        IDs in the index without a backing record are skipped.
        """
        intents = []
        for intent_id in await self._index.list(account_id):
            intent = await self._registry.get(intent_id)
            if intent is not None:
                intents.append(intent)
        return intents

    async def get_total_intents(self) -> int:
        """Return the number of successful creations."""
        contract = await self._get_contract_or_raise()
        return contract.total_intents

    async def get_status(self, intent_id: str, account_id: str | None = None) -> dict:
        """Get intent status with allowed events (and the account's options)."""
        intent = await self._get_intent_or_raise(intent_id)
        sm = IntentStateMachine(current_status=intent.status.value)
        allowed_events = sm.get_allowed_events()
        status: dict = {
            "intent_id": intent.intent_id,
            "status": intent.status.value,
            "allowed_events": allowed_events,
        }
        if account_id is not None:
            contract = await self._get_contract_or_raise()
            status["allowed_operations"] = permitted_operations(
                intent, account_id, contract.owner_id, allowed_events
            )
        return status

    async def get_events(self, intent_id: str) -> list[IntentEvent]:
        """Get audit trail."""
        return await self._events.get_by_intent(intent_id)

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    async def _transition(
        self,
        caller: str,
        intent_id: str,
        operation: str,
        event_name: str,
        event_type: EventType,
        changes: dict | None = None,
        metadata: dict | None = None,
    ) -> Intent:
        """Authorize, guard, and apply one lifecycle transition."""
        contract = await self._get_contract_or_raise()
        intent = await self._get_intent_or_raise(intent_id)

        authorize(operation, intent, caller, contract.owner_id)
        new_status = self._fire_transition(intent, event_name)

        updated = intent.with_status(new_status, self._clock(), **(changes or {}))
        await self._registry.put(updated)
        await self._record(updated, event_type, intent.status, caller, metadata)
        return updated

    async def _record(
        self,
        intent: Intent,
        event_type: EventType,
        old_status: IntentStatus | None,
        actor: str,
        metadata: dict | None,
    ) -> None:
        await self._events.record(
            IntentEvent(
                intent_id=intent.intent_id,
                event_type=event_type,
                old_status=old_status,
                new_status=intent.status,
                actor=actor,
                created_at=intent.updated_at,
                metadata=metadata,
            )
        )

    async def _get_contract_or_raise(self) -> ContractState:
        contract = await self._contract.get()
        if contract is None:
            raise ContractNotInitializedError()
        return contract

    async def _get_intent_or_raise(self, intent_id: str) -> Intent:
        intent = await self._registry.get(intent_id)
        if intent is None:
            raise IntentNotFoundError(intent_id)
        return intent

    def _fire_transition(self, intent: Intent, event_name: str) -> IntentStatus:
        """Validate and fire a state machine transition.

        Raises InvalidStateTransitionError if the transition is illegal.
        """
        sm = IntentStateMachine(current_status=intent.status.value)
        try:
            getattr(sm, event_name)()
        except TransitionNotAllowed as err:
            raise InvalidStateTransitionError(intent.status.value, event_name) from err
        return IntentStatus(sm.status)
