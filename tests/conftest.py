"""Shared test fixtures for the Intent Escrow test suite.

Provides:
    - A deterministic host clock
    - An initialized in-memory service
    - Async test support via pytest-asyncio
"""

from __future__ import annotations

import pytest
import pytest_asyncio

from intent_escrow.infrastructure.memory import InMemoryEscrowState
from intent_escrow.services.intent_service import IntentEscrowService

from tests.helpers import FREELANCER, ONE_NEAR, OWNER, StepClock


# ---------------------------------------------------------------------------
# Domain Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def clock() -> StepClock:
    return StepClock()


@pytest.fixture
def sample_intent_data() -> dict:
    """Return valid create_intent arguments (caller excluded)."""
    return {
        "intent_id": "i1",
        "freelancer": FREELANCER,
        "amount": ONE_NEAR,
        "deadline": 0,
        "description": "desc",
    }


# ---------------------------------------------------------------------------
# Service Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def state() -> InMemoryEscrowState:
    return InMemoryEscrowState()


@pytest_asyncio.fixture
async def svc(state: InMemoryEscrowState, clock: StepClock) -> IntentEscrowService:
    """An in-memory service initialized with OWNER as contract owner."""
    service = IntentEscrowService.in_memory(state, clock=clock)
    await service.initialize(OWNER)
    return service
