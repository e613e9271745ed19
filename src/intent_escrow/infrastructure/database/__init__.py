"""Database infrastructure — engine, ORM models, and repositories."""

from intent_escrow.infrastructure.database.engine import (
    close_db,
    init_db,
    session_scope,
)
from intent_escrow.infrastructure.database.orm_models import (
    AccountIntentRecord,
    Base,
    ContractStateRecord,
    IntentEventRecord,
    IntentRecord,
)
from intent_escrow.infrastructure.database.repositories import (
    AccountIndexRepository,
    ContractStateRepository,
    EventRepository,
    IntentRepository,
)

__all__ = [
    "Base",
    "AccountIntentRecord",
    "ContractStateRecord",
    "IntentEventRecord",
    "IntentRecord",
    "AccountIndexRepository",
    "ContractStateRepository",
    "EventRepository",
    "IntentRepository",
    "session_scope",
    "init_db",
    "close_db",
]
