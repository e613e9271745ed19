"""Pydantic schemas for framing escrow intents.

These schemas define the request/response shapes a host uses to carry calls
into the service and results back out. They are separate from the domain
records to keep validation and serialization out of the core.
"""

from __future__ import annotations

import uuid

from pydantic import BaseModel, ConfigDict, Field, field_serializer

from intent_escrow.domain.models import MAX_AMOUNT, MAX_TIMESTAMP

# ---------------------------------------------------------------------------
# Request Schemas
# ---------------------------------------------------------------------------


class CreateIntentRequest(BaseModel):
    """Request body for creating a new intent (the caller becomes the client)."""

    intent_id: str = Field(
        ...,
        min_length=1,
        description="Identifier chosen by the client",
        examples=["intent-2024-001"],
    )
    freelancer: str = Field(
        ...,
        min_length=1,
        description="Account ID of the freelancer",
        examples=["bob.near"],
    )
    amount: int = Field(
        ...,
        ge=0,
        le=MAX_AMOUNT,
        description="Agreed amount in the smallest unit (recorded, never moved)",
        examples=[10**24],
    )
    deadline: int = Field(
        default=0,
        ge=0,
        le=MAX_TIMESTAMP,
        description="Informational deadline timestamp in nanoseconds",
    )
    description: str = Field(
        ...,
        max_length=5000,
        description="Human-readable description of the work",
    )


class SubmitWorkRequest(BaseModel):
    """Request body for a freelancer submitting work."""

    proof_link: str = Field(
        ...,
        min_length=1,
        max_length=2048,
        description="Link to the delivered work",
        examples=["https://github.com/bob/delivery/pull/1"],
    )
    notes: str | None = Field(
        default=None,
        max_length=5000,
        description="Optional notes for the client",
    )


class ResolveDisputeRequest(BaseModel):
    """Request body for the owner settling a dispute."""

    complete: bool = Field(
        ...,
        description="True completes the intent for the freelancer, False cancels it",
    )


# ---------------------------------------------------------------------------
# Response Schemas
# ---------------------------------------------------------------------------


class IntentResponse(BaseModel):
    """Response schema for an intent."""

    model_config = ConfigDict(from_attributes=True)

    intent_id: str
    client: str
    freelancer: str
    amount: int
    deadline: int
    description: str
    proof_link: str | None
    notes: str | None
    status: str
    created_at: int
    updated_at: int

    @field_serializer("amount", "deadline", when_used="json")
    def serialize_big_int(self, value: int) -> str:
        # 128-bit values do not survive JSON number parsing in most clients
        return str(value)


class IntentEventResponse(BaseModel):
    """Response schema for an audit event."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    intent_id: str
    event_type: str
    old_status: str | None
    new_status: str
    actor: str
    metadata: dict | None = None
    created_at: int


class IntentStatusResponse(BaseModel):
    """Lightweight status check response."""

    intent_id: str
    status: str
    allowed_events: list[str] = Field(
        description="State machine events that can fire from the current status"
    )
    allowed_operations: list[str] | None = Field(
        default=None,
        description="Operations the queried account may perform now",
    )
