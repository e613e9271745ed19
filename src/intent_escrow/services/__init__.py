"""Application services — use case orchestration."""

from intent_escrow.services.intent_service import IntentEscrowService

__all__ = ["IntentEscrowService"]
