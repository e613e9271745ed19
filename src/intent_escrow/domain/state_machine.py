"""Escrow Intent State Machine Guard.

Uses python-statemachine to enforce legal state transitions at the domain level.
However a host drives the service, an illegal transition (e.g. CREATED ->
COMPLETED) raises TransitionNotAllowed before any write happens.

The state machine is instantiated per call at the intent's current status and
validates the transition before the new record is written back.

Transition table:
    CREATED    -> APPROVED    (submit_work)
    CREATED    -> CANCELLED   (cancel_intent)
    APPROVED   -> COMPLETED   (approve_work)
    APPROVED   -> DISPUTED    (dispute_work)
    DISPUTED   -> CANCELLED   (cancel_intent)
    DISPUTED   -> COMPLETED   (dispute_resolved_for_freelancer)
    DISPUTED   -> CANCELLED   (dispute_resolved_for_client)
"""

from __future__ import annotations

from statemachine import State, StateMachine

INTENT_EVENTS = frozenset(
    {
        "submit_work",
        "approve_work",
        "dispute_work",
        "cancel_intent",
        "dispute_resolved_for_freelancer",
        "dispute_resolved_for_client",
    }
)


class IntentStateMachine(StateMachine):
    """State machine that guards escrow intent lifecycle transitions.

    Usage:
        sm = IntentStateMachine(current_status="APPROVED")
        sm.dispute_work()  # transitions to DISPUTED
        sm.status          # "DISPUTED"
    """

    # --- States ---
    CREATED = State("CREATED", initial=True)
    APPROVED = State("APPROVED")
    DISPUTED = State("DISPUTED")
    COMPLETED = State("COMPLETED", final=True)
    CANCELLED = State("CANCELLED", final=True)

    # --- Events / Transitions ---

    # Submission is accepted as approval straight away
    submit_work = CREATED.to(APPROVED)

    # Client review
    approve_work = APPROVED.to(COMPLETED)
    dispute_work = APPROVED.to(DISPUTED)

    # Cancellation by client or owner
    cancel_intent = CREATED.to(CANCELLED) | DISPUTED.to(CANCELLED)

    # Owner resolution
    dispute_resolved_for_freelancer = DISPUTED.to(COMPLETED)
    dispute_resolved_for_client = DISPUTED.to(CANCELLED)

    def __init__(self, current_status: str = "CREATED") -> None:
        """Initialize the state machine at a given status.

        Args:
            current_status: The current IntentStatus value (e.g., "APPROVED").
                           Must match one of the State value strings exactly.
        """
        valid_values = {s.value for s in self.states}
        if current_status not in valid_values:
            valid = ", ".join(sorted(valid_values))
            raise ValueError(
                f"Unknown status '{current_status}'. Valid states: {valid}"
            )
        super().__init__(start_value=current_status)

    @property
    def status(self) -> str:
        """Return the current state value as a string (matches IntentStatus enum)."""
        return str(self.current_state.value)

    def get_allowed_events(self) -> list[str]:
        """Return a list of event names that can fire from the current state."""
        return [event.id for event in self.allowed_events]


def resolution_event(complete: bool) -> str:
    """Map an owner's dispute decision to the state machine event it fires."""
    if complete:
        return "dispute_resolved_for_freelancer"
    return "dispute_resolved_for_client"


def validate_transition(current_status: str, event_name: str) -> str:
    """Validate a state transition and return the new status.

    Creates a temporary state machine, fires the named event, and returns the
    resulting status string.

    Raises:
        TransitionNotAllowed: If the transition is illegal.
        ValueError: If the status or event name is invalid.
    """
    sm = IntentStateMachine(current_status=current_status)

    if event_name not in INTENT_EVENTS:
        raise ValueError(
            f"Unknown event '{event_name}'. "
            f"Allowed events from {current_status}: {sm.get_allowed_events()}"
        )

    getattr(sm, event_name)()
    return sm.status
