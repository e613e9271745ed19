"""SQLAlchemy 2.0 ORM models for the Intent Escrow.

Four tables:
    1. escrow_contract  — Single row: the owner and the creation counter.
    2. escrow_intents   — The intent registry, keyed by the client-chosen ID.
    3. account_intents  — Append-only account index (account -> intent ID).
    4. intent_events    — Append-only audit log of every successful call.

Design decisions:
    - Client-chosen string IDs as the registry primary key (upsert via merge).
    - Intent and account IDs are opaque and unbounded, so they are Text columns.
    - Unsigned 128/64-bit values (amount, deadline) stored as decimal strings
      so PostgreSQL and SQLite both keep them exact.
    - account_intents carries no foreign key: index entries are history
      pointers and may outlive the record they name.
    - Insertion order of account_intents is its autoincrement key.
    - JSON metadata maps to JSONB on PostgreSQL.
"""

from __future__ import annotations

import uuid

from sqlalchemy import (
    JSON,
    BigInteger,
    CheckConstraint,
    Index,
    Integer,
    String,
    Text,
    Uuid,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

CONTRACT_ROW_ID = 1

_STATUS_VALUES = "'CREATED', 'APPROVED', 'DISPUTED', 'COMPLETED', 'CANCELLED'"


class Base(DeclarativeBase):
    """Base class for all ORM models."""

    pass


# ---------------------------------------------------------------------------
# 1. escrow_contract
# ---------------------------------------------------------------------------
class ContractStateRecord(Base):
    """The one-time initialized contract state."""

    __tablename__ = "escrow_contract"

    id: Mapped[int] = mapped_column(
        Integer,
        primary_key=True,
        default=CONTRACT_ROW_ID,
        comment="Always 1: a second insert violates the primary key",
    )
    owner_id: Mapped[str] = mapped_column(
        Text,
        nullable=False,
        comment="Account allowed to cancel any intent and resolve disputes",
    )
    total_intents: Mapped[int] = mapped_column(
        BigInteger,
        nullable=False,
        default=0,
        comment="Count of successful creations, never decremented",
    )

    def __repr__(self) -> str:
        return f"<ContractStateRecord owner={self.owner_id} total={self.total_intents}>"


# ---------------------------------------------------------------------------
# 2. escrow_intents
# ---------------------------------------------------------------------------
class IntentRecord(Base):
    """A work agreement between a client and a freelancer."""

    __tablename__ = "escrow_intents"

    # --- Primary Key ---
    intent_id: Mapped[str] = mapped_column(
        Text,
        primary_key=True,
        comment="Identifier chosen by the client",
    )

    # --- Participants ---
    client: Mapped[str] = mapped_column(
        Text,
        nullable=False,
        comment="Account that created the intent",
    )
    freelancer: Mapped[str] = mapped_column(
        Text,
        nullable=False,
        comment="Account that submits the work",
    )

    # --- Terms ---
    amount: Mapped[str] = mapped_column(
        String(40),
        nullable=False,
        comment="Unsigned 128-bit amount as a decimal string (reference only)",
    )
    deadline: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        comment="Unsigned 64-bit timestamp as a decimal string (not enforced)",
    )
    description: Mapped[str] = mapped_column(Text, nullable=False)

    # --- Submission ---
    proof_link: Mapped[str | None] = mapped_column(Text, nullable=True, default=None)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True, default=None)

    # --- Status (Enum-guarded) ---
    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default="CREATED",
        comment="Current lifecycle state (guarded by IntentStateMachine)",
    )

    # --- Timestamps (host clock) ---
    created_at: Mapped[int] = mapped_column(BigInteger, nullable=False)
    updated_at: Mapped[int] = mapped_column(BigInteger, nullable=False)

    __table_args__ = (
        CheckConstraint(f"status IN ({_STATUS_VALUES})", name="ck_intent_status"),
        Index("idx_intent_status", "status"),
    )

    def __repr__(self) -> str:
        return f"<IntentRecord id={self.intent_id} status={self.status}>"


# ---------------------------------------------------------------------------
# 3. account_intents
# ---------------------------------------------------------------------------
class AccountIntentRecord(Base):
    """One entry of an account's intent history."""

    __tablename__ = "account_intents"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    account_id: Mapped[str] = mapped_column(Text, nullable=False)
    intent_id: Mapped[str] = mapped_column(
        Text,
        nullable=False,
        comment="Reference into escrow_intents; may point at a missing record",
    )

    __table_args__ = (Index("idx_account_intents_account", "account_id", "id"),)

    def __repr__(self) -> str:
        return f"<AccountIntentRecord account={self.account_id} intent={self.intent_id}>"


# ---------------------------------------------------------------------------
# 4. intent_events (Append-Only Audit Log)
# ---------------------------------------------------------------------------
class IntentEventRecord(Base):
    """Immutable audit record of a successful call against an intent.

    This table is APPEND-ONLY. No UPDATE or DELETE operations are permitted
    at the application level.
    """

    __tablename__ = "intent_events"

    id: Mapped[int] = mapped_column(
        Integer,
        primary_key=True,
        autoincrement=True,
        comment="Insertion order within the log",
    )
    event_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        nullable=False,
        unique=True,
        default=uuid.uuid4,
    )
    intent_id: Mapped[str] = mapped_column(Text, nullable=False)
    event_type: Mapped[str] = mapped_column(String(40), nullable=False)
    old_status: Mapped[str | None] = mapped_column(
        String(20),
        nullable=True,
        comment="Status before this event (null for creation)",
    )
    new_status: Mapped[str] = mapped_column(String(20), nullable=False)
    actor: Mapped[str] = mapped_column(Text, nullable=False)
    metadata_json: Mapped[dict | None] = mapped_column(
        "metadata",
        JSON().with_variant(JSONB, "postgresql"),
        nullable=True,
        default=None,
    )
    created_at: Mapped[int] = mapped_column(BigInteger, nullable=False)

    __table_args__ = (
        Index("idx_event_intent", "intent_id", "id"),
        Index("idx_event_type", "event_type"),
    )

    def __repr__(self) -> str:
        return (
            f"<IntentEventRecord id={self.event_id} type={self.event_type} "
            f"{self.old_status}->{self.new_status}>"
        )
