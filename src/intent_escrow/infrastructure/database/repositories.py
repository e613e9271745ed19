"""Repository classes for database access.

Repositories encapsulate all SQL queries and translate between ORM records and
domain records. They accept an AsyncSession and never manage their own
transactions (that's the caller's responsibility, see engine.session_scope).
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from intent_escrow.domain.enums import EventType, IntentStatus
from intent_escrow.domain.exceptions import AlreadyInitializedError, ContractNotInitializedError
from intent_escrow.domain.models import ContractState, Intent, IntentEvent
from intent_escrow.infrastructure.database.orm_models import (
    CONTRACT_ROW_ID,
    AccountIntentRecord,
    ContractStateRecord,
    IntentEventRecord,
    IntentRecord,
)

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession


def _to_intent(record: IntentRecord) -> Intent:
    return Intent(
        intent_id=record.intent_id,
        client=record.client,
        freelancer=record.freelancer,
        amount=int(record.amount),
        deadline=int(record.deadline),
        description=record.description,
        status=IntentStatus(record.status),
        proof_link=record.proof_link,
        notes=record.notes,
        created_at=record.created_at,
        updated_at=record.updated_at,
    )


def _to_event(record: IntentEventRecord) -> IntentEvent:
    return IntentEvent(
        id=record.event_id,
        intent_id=record.intent_id,
        event_type=EventType(record.event_type),
        old_status=IntentStatus(record.old_status) if record.old_status else None,
        new_status=IntentStatus(record.new_status),
        actor=record.actor,
        metadata=record.metadata_json,
        created_at=record.created_at,
    )


class IntentRepository:
    """Data access for the intent registry."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def put(self, intent: Intent) -> None:
        """Insert or overwrite the intent (merge on the primary key)."""
        await self._session.merge(
            IntentRecord(
                intent_id=intent.intent_id,
                client=intent.client,
                freelancer=intent.freelancer,
                amount=str(intent.amount),
                deadline=str(intent.deadline),
                description=intent.description,
                proof_link=intent.proof_link,
                notes=intent.notes,
                status=intent.status.value,
                created_at=intent.created_at,
                updated_at=intent.updated_at,
            )
        )
        await self._session.flush()

    async def get(self, intent_id: str) -> Intent | None:
        """Fetch an intent by its ID."""
        record = await self._session.get(IntentRecord, intent_id, populate_existing=True)
        return _to_intent(record) if record is not None else None


class AccountIndexRepository:
    """Data access for the append-only account index."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def append(self, account_id: str, intent_id: str) -> None:
        self._session.add(AccountIntentRecord(account_id=account_id, intent_id=intent_id))
        await self._session.flush()

    async def list(self, account_id: str) -> list[str]:
        """Return the account's intent IDs in insertion order."""
        result = await self._session.execute(
            select(AccountIntentRecord.intent_id)
            .where(AccountIntentRecord.account_id == account_id)
            .order_by(AccountIntentRecord.id.asc())
        )
        return list(result.scalars().all())


class ContractStateRepository:
    """Data access for the single contract state row."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def initialize(self, owner_id: str) -> ContractState:
        """Insert the contract row. Raises AlreadyInitializedError if present."""
        existing = await self._session.get(ContractStateRecord, CONTRACT_ROW_ID)
        if existing is not None:
            raise AlreadyInitializedError(existing.owner_id)

        record = ContractStateRecord(id=CONTRACT_ROW_ID, owner_id=owner_id, total_intents=0)
        self._session.add(record)
        try:
            await self._session.flush()
        except IntegrityError as err:
            # Another initializer committed first
            raise AlreadyInitializedError(owner_id) from err
        return ContractState(owner_id=record.owner_id, total_intents=record.total_intents)

    async def get(self) -> ContractState | None:
        record = await self._session.get(ContractStateRecord, CONTRACT_ROW_ID)
        if record is None:
            return None
        return ContractState(owner_id=record.owner_id, total_intents=record.total_intents)

    async def increment_total(self) -> int:
        """Increment the creation counter."""
        record = await self._session.get(ContractStateRecord, CONTRACT_ROW_ID)
        if record is None:
            raise ContractNotInitializedError()
        record.total_intents += 1
        await self._session.flush()
        return record.total_intents


class EventRepository:
    """Data access for the append-only audit event log."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def record(self, event: IntentEvent) -> IntentEvent:
        """Append a new audit event. This is the ONLY write operation allowed."""
        self._session.add(
            IntentEventRecord(
                event_id=event.id,
                intent_id=event.intent_id,
                event_type=event.event_type.value,
                old_status=event.old_status.value if event.old_status else None,
                new_status=event.new_status.value,
                actor=event.actor,
                metadata_json=event.metadata,
                created_at=event.created_at,
            )
        )
        await self._session.flush()
        return event

    async def get_by_intent(self, intent_id: str) -> list[IntentEvent]:
        """Fetch all events for an intent in chronological order."""
        result = await self._session.execute(
            select(IntentEventRecord)
            .where(IntentEventRecord.intent_id == intent_id)
            .order_by(IntentEventRecord.id.asc())
        )
        return [_to_event(r) for r in result.scalars().all()]
