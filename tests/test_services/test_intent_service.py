"""Tests for IntentEscrowService on the in-memory backend.

Covers every lifecycle operation: who may call it, from which status, what it
writes, and that a rejected call leaves the stored intent untouched.
"""

from __future__ import annotations

import pytest

from intent_escrow.domain.enums import EventType, IntentStatus
from intent_escrow.domain.exceptions import (
    AlreadyInitializedError,
    ContractNotInitializedError,
    DuplicateIntentError,
    IntentNotFoundError,
    InvalidIntentError,
    InvalidStateTransitionError,
    UnauthorizedError,
)
from intent_escrow.infrastructure.memory import InMemoryEscrowState, InMemoryIntentRegistry
from intent_escrow.services.intent_service import IntentEscrowService
from tests.helpers import CLIENT, FREELANCER, ONE_NEAR, OWNER, STRANGER, StepClock

pytestmark = pytest.mark.asyncio


async def _approved(svc: IntentEscrowService, data: dict) -> None:
    await svc.create_intent(CLIENT, **data)
    await svc.submit_work(FREELANCER, data["intent_id"], "https://p", "note")


async def _disputed(svc: IntentEscrowService, data: dict) -> None:
    await _approved(svc, data)
    await svc.dispute_work(CLIENT, data["intent_id"])


class TestInitialize:
    async def test_second_initialize_fails(
        self, svc: IntentEscrowService, state: InMemoryEscrowState
    ) -> None:
        with pytest.raises(AlreadyInitializedError):
            await svc.initialize(STRANGER)
        assert state.contract.owner_id == OWNER

    async def test_operations_require_initialization(self, sample_intent_data: dict) -> None:
        fresh = IntentEscrowService.in_memory()
        with pytest.raises(ContractNotInitializedError):
            await fresh.create_intent(CLIENT, **sample_intent_data)
        with pytest.raises(ContractNotInitializedError):
            await fresh.get_total_intents()


class TestCreateIntent:
    async def test_creates_in_created_state(
        self, svc: IntentEscrowService, sample_intent_data: dict
    ) -> None:
        intent = await svc.create_intent(CLIENT, **sample_intent_data)

        assert intent.status == IntentStatus.CREATED
        assert intent.client == CLIENT
        assert intent.freelancer == FREELANCER
        assert intent.amount == ONE_NEAR
        assert intent.proof_link is None
        assert intent.notes is None
        assert intent.created_at == intent.updated_at
        assert await svc.get_total_intents() == 1
        assert await svc.get_intent("i1") == intent

    async def test_indexes_both_parties(
        self, svc: IntentEscrowService, sample_intent_data: dict
    ) -> None:
        await svc.create_intent(CLIENT, **sample_intent_data)
        assert [i.intent_id for i in await svc.get_user_intents(CLIENT)] == ["i1"]
        assert [i.intent_id for i in await svc.get_user_intents(FREELANCER)] == ["i1"]
        assert await svc.get_user_intents(STRANGER) == []

    async def test_self_dealing_indexed_once(
        self, svc: IntentEscrowService, state: InMemoryEscrowState, sample_intent_data: dict
    ) -> None:
        await svc.create_intent(CLIENT, **{**sample_intent_data, "freelancer": CLIENT})
        assert state.account_intents[CLIENT] == ["i1"]

    async def test_records_creation_event(
        self, svc: IntentEscrowService, sample_intent_data: dict
    ) -> None:
        await svc.create_intent(CLIENT, **sample_intent_data)
        [event] = await svc.get_events("i1")
        assert event.event_type == EventType.INTENT_CREATED
        assert event.old_status is None
        assert event.new_status == IntentStatus.CREATED
        assert event.actor == CLIENT

    @pytest.mark.parametrize(
        "override",
        [
            {"intent_id": ""},
            {"amount": -1},
            {"amount": 2**128},
            {"deadline": -5},
            {"deadline": 2**64},
        ],
    )
    async def test_rejects_out_of_range_input(
        self, svc: IntentEscrowService, sample_intent_data: dict, override: dict
    ) -> None:
        with pytest.raises(InvalidIntentError):
            await svc.create_intent(CLIENT, **{**sample_intent_data, **override})
        assert await svc.get_total_intents() == 0

    async def test_accepts_ids_of_any_length(
        self, svc: IntentEscrowService, sample_intent_data: dict
    ) -> None:
        intent_id = "i" * 500
        client = "c" * 300 + ".near"
        freelancer = "f" * 300 + ".near"

        intent = await svc.create_intent(
            client, **{**sample_intent_data, "intent_id": intent_id, "freelancer": freelancer}
        )

        assert intent.intent_id == intent_id
        assert [i.intent_id for i in await svc.get_user_intents(client)] == [intent_id]
        assert [i.intent_id for i in await svc.get_user_intents(freelancer)] == [intent_id]

    async def test_reused_id_overwrites_by_default(
        self, svc: IntentEscrowService, sample_intent_data: dict
    ) -> None:
        await _approved(svc, sample_intent_data)
        again = await svc.create_intent(CLIENT, **{**sample_intent_data, "description": "v2"})

        assert again.status == IntentStatus.CREATED
        assert (await svc.get_intent("i1")).description == "v2"
        assert await svc.get_total_intents() == 2
        # Both index entries resolve to the surviving record
        assert [i.description for i in await svc.get_user_intents(CLIENT)] == ["v2", "v2"]

    async def test_reused_id_rejected_when_configured(
        self, state: InMemoryEscrowState, clock: StepClock, sample_intent_data: dict
    ) -> None:
        strict = IntentEscrowService.in_memory(state, clock=clock, reject_duplicate_ids=True)
        await strict.initialize(OWNER)
        await strict.create_intent(CLIENT, **sample_intent_data)

        with pytest.raises(DuplicateIntentError):
            await strict.create_intent(STRANGER, **sample_intent_data)
        assert await strict.get_total_intents() == 1
        assert (await strict.get_intent("i1")).client == CLIENT
        assert state.account_intents.get(STRANGER) is None


class TestSubmitWork:
    async def test_freelancer_submits(
        self, svc: IntentEscrowService, sample_intent_data: dict
    ) -> None:
        created = await svc.create_intent(CLIENT, **sample_intent_data)
        intent = await svc.submit_work(FREELANCER, "i1", "https://p", "note")

        assert intent.status == IntentStatus.APPROVED
        assert intent.proof_link == "https://p"
        assert intent.notes == "note"
        assert intent.updated_at > created.updated_at
        assert intent.created_at == created.created_at

    async def test_notes_optional(self, svc: IntentEscrowService, sample_intent_data: dict) -> None:
        await svc.create_intent(CLIENT, **sample_intent_data)
        intent = await svc.submit_work(FREELANCER, "i1", "https://p")
        assert intent.notes is None

    @pytest.mark.parametrize("caller", [CLIENT, OWNER, STRANGER])
    async def test_only_freelancer(
        self, svc: IntentEscrowService, sample_intent_data: dict, caller: str
    ) -> None:
        before = await svc.create_intent(CLIENT, **sample_intent_data)
        with pytest.raises(UnauthorizedError):
            await svc.submit_work(caller, "i1", "https://p", "note")
        assert await svc.get_intent("i1") == before

    async def test_twice_is_invalid_state(
        self, svc: IntentEscrowService, sample_intent_data: dict
    ) -> None:
        await _approved(svc, sample_intent_data)
        before = await svc.get_intent("i1")
        with pytest.raises(InvalidStateTransitionError) as exc_info:
            await svc.submit_work(FREELANCER, "i1", "https://other")
        assert exc_info.value.current_state == "APPROVED"
        assert await svc.get_intent("i1") == before

    async def test_unknown_intent(self, svc: IntentEscrowService) -> None:
        with pytest.raises(IntentNotFoundError):
            await svc.submit_work(FREELANCER, "nope", "https://p")

    async def test_unauthorized_checked_before_status(
        self, svc: IntentEscrowService, sample_intent_data: dict
    ) -> None:
        await _approved(svc, sample_intent_data)
        with pytest.raises(UnauthorizedError):
            await svc.submit_work(CLIENT, "i1", "https://p")


class TestClientReview:
    async def test_approve(self, svc: IntentEscrowService, sample_intent_data: dict) -> None:
        await _approved(svc, sample_intent_data)
        intent = await svc.approve_work(CLIENT, "i1")
        assert intent.status == IntentStatus.COMPLETED

    async def test_dispute(self, svc: IntentEscrowService, sample_intent_data: dict) -> None:
        await _approved(svc, sample_intent_data)
        intent = await svc.dispute_work(CLIENT, "i1")
        assert intent.status == IntentStatus.DISPUTED

    @pytest.mark.parametrize("caller", [FREELANCER, OWNER, STRANGER])
    async def test_only_client_reviews(
        self, svc: IntentEscrowService, sample_intent_data: dict, caller: str
    ) -> None:
        await _approved(svc, sample_intent_data)
        with pytest.raises(UnauthorizedError):
            await svc.approve_work(caller, "i1")
        with pytest.raises(UnauthorizedError):
            await svc.dispute_work(caller, "i1")
        assert (await svc.get_intent("i1")).status == IntentStatus.APPROVED

    async def test_review_requires_submission(
        self, svc: IntentEscrowService, sample_intent_data: dict
    ) -> None:
        await svc.create_intent(CLIENT, **sample_intent_data)
        with pytest.raises(InvalidStateTransitionError):
            await svc.approve_work(CLIENT, "i1")
        with pytest.raises(InvalidStateTransitionError):
            await svc.dispute_work(CLIENT, "i1")


class TestCancelIntent:
    @pytest.mark.parametrize("caller", [CLIENT, OWNER])
    async def test_cancel_created(
        self, svc: IntentEscrowService, sample_intent_data: dict, caller: str
    ) -> None:
        await svc.create_intent(CLIENT, **sample_intent_data)
        intent = await svc.cancel_intent(caller, "i1")
        assert intent.status == IntentStatus.CANCELLED

    @pytest.mark.parametrize("caller", [CLIENT, OWNER])
    async def test_cancel_disputed(
        self, svc: IntentEscrowService, sample_intent_data: dict, caller: str
    ) -> None:
        await _disputed(svc, sample_intent_data)
        intent = await svc.cancel_intent(caller, "i1")
        assert intent.status == IntentStatus.CANCELLED

    @pytest.mark.parametrize("caller", [FREELANCER, STRANGER])
    async def test_others_cannot_cancel(
        self, svc: IntentEscrowService, sample_intent_data: dict, caller: str
    ) -> None:
        await svc.create_intent(CLIENT, **sample_intent_data)
        with pytest.raises(UnauthorizedError):
            await svc.cancel_intent(caller, "i1")

    async def test_cannot_cancel_approved(
        self, svc: IntentEscrowService, sample_intent_data: dict
    ) -> None:
        await _approved(svc, sample_intent_data)
        with pytest.raises(InvalidStateTransitionError):
            await svc.cancel_intent(OWNER, "i1")


class TestResolveDispute:
    async def test_resolve_complete(
        self, svc: IntentEscrowService, sample_intent_data: dict
    ) -> None:
        await _disputed(svc, sample_intent_data)
        intent = await svc.resolve_dispute(OWNER, "i1", complete=True)
        assert intent.status == IntentStatus.COMPLETED
        assert (await svc.get_events("i1"))[-1].event_type == EventType.DISPUTE_RESOLVED_FREELANCER

    async def test_resolve_cancel(self, svc: IntentEscrowService, sample_intent_data: dict) -> None:
        await _disputed(svc, sample_intent_data)
        intent = await svc.resolve_dispute(OWNER, "i1", complete=False)
        assert intent.status == IntentStatus.CANCELLED
        assert (await svc.get_events("i1"))[-1].event_type == EventType.DISPUTE_RESOLVED_CLIENT

    @pytest.mark.parametrize("caller", [CLIENT, FREELANCER, STRANGER])
    async def test_only_owner(
        self, svc: IntentEscrowService, sample_intent_data: dict, caller: str
    ) -> None:
        await _disputed(svc, sample_intent_data)
        with pytest.raises(UnauthorizedError):
            await svc.resolve_dispute(caller, "i1", complete=True)
        assert (await svc.get_intent("i1")).status == IntentStatus.DISPUTED

    async def test_requires_dispute(
        self, svc: IntentEscrowService, sample_intent_data: dict
    ) -> None:
        await _approved(svc, sample_intent_data)
        with pytest.raises(InvalidStateTransitionError):
            await svc.resolve_dispute(OWNER, "i1", complete=True)


class TestScenarios:
    async def test_happy_path_then_late_dispute(self, svc: IntentEscrowService) -> None:
        intent = await svc.create_intent(CLIENT, "i1", FREELANCER, ONE_NEAR, 0, "desc")
        assert intent.status == IntentStatus.CREATED
        assert await svc.get_total_intents() == 1

        intent = await svc.submit_work(FREELANCER, "i1", "https://p", "note")
        assert intent.status == IntentStatus.APPROVED

        intent = await svc.approve_work(CLIENT, "i1")
        assert intent.status == IntentStatus.COMPLETED

        with pytest.raises(InvalidStateTransitionError):
            await svc.dispute_work(CLIENT, "i1")

    async def test_dispute_resolved_against_freelancer(self, svc: IntentEscrowService) -> None:
        await svc.create_intent(CLIENT, "i1", FREELANCER, ONE_NEAR, 0, "desc")
        await svc.submit_work(FREELANCER, "i1", "https://p", "note")

        intent = await svc.dispute_work(CLIENT, "i1")
        assert intent.status == IntentStatus.DISPUTED

        intent = await svc.resolve_dispute(OWNER, "i1", complete=False)
        assert intent.status == IntentStatus.CANCELLED

        with pytest.raises(InvalidStateTransitionError):
            await svc.resolve_dispute(OWNER, "i1", complete=False)

        events = await svc.get_events("i1")
        assert [e.event_type for e in events] == [
            EventType.INTENT_CREATED,
            EventType.WORK_SUBMITTED,
            EventType.WORK_DISPUTED,
            EventType.DISPUTE_RESOLVED_CLIENT,
        ]

    async def test_repeating_any_transition_is_invalid_state(
        self, svc: IntentEscrowService
    ) -> None:
        await svc.create_intent(CLIENT, "a", FREELANCER, 1, 0, "a")
        await svc.cancel_intent(CLIENT, "a")
        with pytest.raises(InvalidStateTransitionError):
            await svc.cancel_intent(CLIENT, "a")

        await svc.create_intent(CLIENT, "b", FREELANCER, 1, 0, "b")
        await svc.submit_work(FREELANCER, "b", "https://p")
        await svc.approve_work(CLIENT, "b")
        with pytest.raises(InvalidStateTransitionError):
            await svc.approve_work(CLIENT, "b")

        await svc.create_intent(CLIENT, "c", FREELANCER, 1, 0, "c")
        await svc.submit_work(FREELANCER, "c", "https://p")
        await svc.dispute_work(CLIENT, "c")
        with pytest.raises(InvalidStateTransitionError):
            await svc.dispute_work(CLIENT, "c")
        assert (await svc.get_intent("c")).status == IntentStatus.DISPUTED

    @pytest.mark.parametrize(
        ("prepare", "operation"),
        [
            (_approved, lambda svc: svc.approve_work(CLIENT, "i1")),
            (_approved, lambda svc: svc.dispute_work(CLIENT, "i1")),
            (_disputed, lambda svc: svc.cancel_intent(OWNER, "i1")),
            (_disputed, lambda svc: svc.resolve_dispute(OWNER, "i1", complete=True)),
        ],
        ids=["approve", "dispute", "cancel", "resolve"],
    )
    async def test_transition_advances_updated_at(
        self, svc: IntentEscrowService, sample_intent_data: dict, prepare, operation
    ) -> None:
        await prepare(svc, sample_intent_data)
        before = await svc.get_intent("i1")

        after = await operation(svc)

        assert after.updated_at > before.updated_at
        assert after.created_at == before.created_at
        assert (await svc.get_events("i1"))[-1].created_at == after.updated_at


class TestQueries:
    async def test_user_intents_in_creation_order(self, svc: IntentEscrowService) -> None:
        await svc.create_intent(CLIENT, "a", FREELANCER, 1, 0, "a")
        await svc.create_intent(STRANGER, "b", CLIENT, 1, 0, "b")
        await svc.create_intent(FREELANCER, "c", STRANGER, 1, 0, "c")
        await svc.create_intent(CLIENT, "d", STRANGER, 1, 0, "d")

        assert [i.intent_id for i in await svc.get_user_intents(CLIENT)] == ["a", "b", "d"]
        assert [i.intent_id for i in await svc.get_user_intents(FREELANCER)] == ["a", "c"]
        assert [i.intent_id for i in await svc.get_user_intents(STRANGER)] == ["b", "c", "d"]

    async def test_user_intents_include_terminal(self, svc: IntentEscrowService) -> None:
        await svc.create_intent(CLIENT, "a", FREELANCER, 1, 0, "a")
        await svc.cancel_intent(CLIENT, "a")
        [intent] = await svc.get_user_intents(FREELANCER)
        assert intent.status == IntentStatus.CANCELLED

    async def test_user_intents_skip_missing_records(
        self, svc: IntentEscrowService, state: InMemoryEscrowState
    ) -> None:
        await svc.create_intent(CLIENT, "a", FREELANCER, 1, 0, "a")
        await svc.create_intent(CLIENT, "b", FREELANCER, 1, 0, "b")
        await InMemoryIntentRegistry(state).delete("a")

        assert [i.intent_id for i in await svc.get_user_intents(CLIENT)] == ["b"]

    async def test_get_intent_unknown(self, svc: IntentEscrowService) -> None:
        assert await svc.get_intent("missing") is None

    async def test_get_status(self, svc: IntentEscrowService, sample_intent_data: dict) -> None:
        await _approved(svc, sample_intent_data)
        status = await svc.get_status("i1", account_id=CLIENT)
        assert status["status"] == "APPROVED"
        assert set(status["allowed_events"]) == {"approve_work", "dispute_work"}
        assert status["allowed_operations"] == ["approve_work", "dispute_work"]

        freelancer_view = await svc.get_status("i1", account_id=FREELANCER)
        assert freelancer_view["allowed_operations"] == []

    async def test_get_status_unknown(self, svc: IntentEscrowService) -> None:
        with pytest.raises(IntentNotFoundError):
            await svc.get_status("missing")
