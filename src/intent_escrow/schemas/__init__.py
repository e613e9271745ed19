"""Pydantic schemas."""

from intent_escrow.schemas.intent import (
    CreateIntentRequest,
    IntentEventResponse,
    IntentResponse,
    IntentStatusResponse,
    ResolveDisputeRequest,
    SubmitWorkRequest,
)

__all__ = [
    "CreateIntentRequest",
    "IntentEventResponse",
    "IntentResponse",
    "IntentStatusResponse",
    "ResolveDisputeRequest",
    "SubmitWorkRequest",
]
