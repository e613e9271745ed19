"""Who may perform which lifecycle operation.

Roles are derived per intent: the creator is the client, the named
freelancer is the freelancer, and the contract owner is the owner for every
intent. One account can hold several roles at once.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from intent_escrow.domain.enums import Role
from intent_escrow.domain.exceptions import UnauthorizedError

if TYPE_CHECKING:
    from intent_escrow.domain.models import Intent

OPERATION_ROLES: dict[str, frozenset[Role]] = {
    "submit_work": frozenset({Role.FREELANCER}),
    "approve_work": frozenset({Role.CLIENT}),
    "dispute_work": frozenset({Role.CLIENT}),
    "cancel_intent": frozenset({Role.CLIENT, Role.OWNER}),
    "resolve_dispute": frozenset({Role.OWNER}),
}

# State machine event fired by each operation (resolve_dispute fires one of two)
OPERATION_EVENTS: dict[str, frozenset[str]] = {
    "submit_work": frozenset({"submit_work"}),
    "approve_work": frozenset({"approve_work"}),
    "dispute_work": frozenset({"dispute_work"}),
    "cancel_intent": frozenset({"cancel_intent"}),
    "resolve_dispute": frozenset(
        {"dispute_resolved_for_freelancer", "dispute_resolved_for_client"}
    ),
}


def roles_of(intent: Intent, account_id: str, owner_id: str) -> frozenset[Role]:
    """Return every role ``account_id`` holds for ``intent``."""
    roles = set()
    if account_id == intent.client:
        roles.add(Role.CLIENT)
    if account_id == intent.freelancer:
        roles.add(Role.FREELANCER)
    if account_id == owner_id:
        roles.add(Role.OWNER)
    return frozenset(roles)


def authorize(operation: str, intent: Intent, caller: str, owner_id: str) -> None:
    """Raise UnauthorizedError unless ``caller`` may perform ``operation``."""
    required = OPERATION_ROLES[operation]
    if not required & roles_of(intent, caller, owner_id):
        raise UnauthorizedError(operation, caller, required)


def permitted_operations(
    intent: Intent,
    account_id: str,
    owner_id: str,
    allowed_events: list[str],
) -> list[str]:
    """Operations ``account_id`` could perform right now.

    Combines the caller's roles with the events the state machine allows from
    the intent's current status.
    """
    roles = roles_of(intent, account_id, owner_id)
    events = set(allowed_events)
    return [
        operation
        for operation, required in OPERATION_ROLES.items()
        if required & roles and OPERATION_EVENTS[operation] & events
    ]
