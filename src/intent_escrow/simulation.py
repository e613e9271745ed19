"""Intent Escrow — End-to-End Simulation.

Simulates three scenarios with ClientBot, FreelancerBot and OwnerBot accounts:

    Scenario 1: Happy Path
        - Client creates an intent for the freelancer
        - Freelancer submits work -> APPROVED
        - Client approves -> COMPLETED; a late dispute is rejected

    Scenario 2: Dispute Resolved For Client
        - Freelancer submits, client disputes -> DISPUTED
        - Owner resolves against the freelancer -> CANCELLED
        - A second resolution is rejected

    Scenario 3: Guard Rails
        - Wrong callers and wrong states are rejected without side effects
        - Owner cancels an untouched intent -> CANCELLED

Usage:
    # In-memory state (default, no database):
    intent-escrow-sim

    # SQLite in-memory database through the SQLAlchemy backend:
    intent-escrow-sim --sqlite

    # Run a specific scenario:
    intent-escrow-sim --sqlite --scenario 2
"""

from __future__ import annotations

import argparse
import asyncio
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from intent_escrow.config import get_settings
from intent_escrow.domain.exceptions import EscrowIntentError
from intent_escrow.infrastructure.memory import InMemoryEscrowState
from intent_escrow.logging_config import bind_call_context, get_logger, setup_logging
from intent_escrow.schemas.intent import (
    CreateIntentRequest,
    IntentEventResponse,
    IntentResponse,
    IntentStatusResponse,
    ResolveDisputeRequest,
    SubmitWorkRequest,
)
from intent_escrow.services.intent_service import IntentEscrowService

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Awaitable

    from intent_escrow.domain.models import Intent

logger = get_logger("simulation")

SQLITE_MEMORY_URL = "sqlite+aiosqlite:///:memory:"
ONE_NEAR = 10**24


# ---------------------------------------------------------------------------
# Host: one unit of work per call
# ---------------------------------------------------------------------------
@dataclass
class EscrowHost:
    """Plays the host environment: opens one atomic unit per call."""

    backend: str = "memory"
    database_url: str | None = None
    state: InMemoryEscrowState = field(default_factory=InMemoryEscrowState)

    async def start(self, owner_id: str) -> None:
        if self.backend == "database":
            from intent_escrow.infrastructure.database.engine import init_db

            await init_db(self.database_url)
        async with self.call() as svc:
            await svc.initialize(owner_id)

    async def stop(self) -> None:
        if self.backend == "database":
            from intent_escrow.infrastructure.database.engine import close_db

            await close_db()

    @asynccontextmanager
    async def call(self, caller: str | None = None) -> AsyncIterator[IntentEscrowService]:
        """Yield a service; the database backend commits or rolls back on exit."""
        bind_call_context(caller)
        settings = get_settings()
        if self.backend == "database":
            from intent_escrow.infrastructure.database.engine import session_scope

            async with session_scope() as session:
                yield IntentEscrowService.from_session(
                    session,
                    reject_duplicate_ids=settings.reject_duplicate_intent_ids,
                )
        else:
            yield IntentEscrowService.in_memory(
                self.state,
                reject_duplicate_ids=settings.reject_duplicate_intent_ids,
            )


# ---------------------------------------------------------------------------
# Bot Accounts
# ---------------------------------------------------------------------------
@dataclass
class ClientBot:
    """Simulated client that creates intents and reviews work."""

    account_id: str = "client.near"

    async def create_intent(
        self,
        host: EscrowHost,
        intent_id: str,
        freelancer: str,
        amount: int,
        description: str,
    ) -> Intent:
        request = CreateIntentRequest(
            intent_id=intent_id,
            freelancer=freelancer,
            amount=amount,
            description=description,
        )
        async with host.call(self.account_id) as svc:
            intent = await svc.create_intent(self.account_id, **request.model_dump())
        logger.info("🔵 CLIENT: Intent created", intent_id=intent_id, amount=str(amount))
        return intent

    async def approve(self, host: EscrowHost, intent_id: str) -> Intent:
        async with host.call(self.account_id) as svc:
            intent = await svc.approve_work(self.account_id, intent_id)
        logger.info("🔵 CLIENT: Work approved", intent_id=intent_id)
        return intent

    async def dispute(self, host: EscrowHost, intent_id: str) -> Intent:
        async with host.call(self.account_id) as svc:
            intent = await svc.dispute_work(self.account_id, intent_id)
        logger.info("🔵 CLIENT: Work disputed", intent_id=intent_id)
        return intent

    async def cancel(self, host: EscrowHost, intent_id: str) -> Intent:
        async with host.call(self.account_id) as svc:
            return await svc.cancel_intent(self.account_id, intent_id)


@dataclass
class FreelancerBot:
    """Simulated freelancer that submits work."""

    account_id: str = "freelancer.near"

    async def submit(
        self,
        host: EscrowHost,
        intent_id: str,
        proof_link: str,
        notes: str | None = None,
    ) -> Intent:
        request = SubmitWorkRequest(proof_link=proof_link, notes=notes)
        async with host.call(self.account_id) as svc:
            intent = await svc.submit_work(self.account_id, intent_id, **request.model_dump())
        logger.info("🟢 FREELANCER: Work submitted", intent_id=intent_id)
        return intent

    async def approve(self, host: EscrowHost, intent_id: str) -> Intent:
        async with host.call(self.account_id) as svc:
            return await svc.approve_work(self.account_id, intent_id)


@dataclass
class OwnerBot:
    """Simulated contract owner that settles disputes."""

    account_id: str = "owner.near"

    async def resolve(self, host: EscrowHost, intent_id: str, complete: bool) -> Intent:
        request = ResolveDisputeRequest(complete=complete)
        async with host.call(self.account_id) as svc:
            intent = await svc.resolve_dispute(self.account_id, intent_id, request.complete)
        logger.info("🟣 OWNER: Dispute resolved", intent_id=intent_id, complete=complete)
        return intent

    async def cancel(self, host: EscrowHost, intent_id: str) -> Intent:
        async with host.call(self.account_id) as svc:
            intent = await svc.cancel_intent(self.account_id, intent_id)
        logger.info("🟣 OWNER: Intent cancelled", intent_id=intent_id)
        return intent


# ---------------------------------------------------------------------------
# Print helpers
# ---------------------------------------------------------------------------
def banner(text: str) -> None:
    """Print a prominent banner."""
    width = 70
    print("\n" + "=" * width)
    print(f"  {text}")
    print("=" * width + "\n")


def section(text: str) -> None:
    """Print a section header."""
    print(f"\n--- {text} ---\n")


def print_intent(intent: Intent) -> None:
    print(f"  {IntentResponse.model_validate(intent).model_dump_json(indent=2)}")


async def expect_rejection(label: str, action: Awaitable[Intent]) -> EscrowIntentError:
    """Await ``action`` and return the domain error it must raise."""
    try:
        await action
    except EscrowIntentError as exc:
        print(f"  ⛔ {label}: {exc.code} ({exc.message})")
        return exc
    raise AssertionError(f"{label} was expected to be rejected")


async def print_audit_trail(host: EscrowHost, intent_id: str) -> None:
    """Print the event log of one intent."""
    section(f"Audit Trail: {intent_id}")
    async with host.call() as svc:
        events = await svc.get_events(intent_id)
    for evt in events:
        row = IntentEventResponse.model_validate(evt)
        print(f"  {row.event_type:<28} {row.old_status or '-':>10} -> {row.new_status:<10} by {row.actor}")


# ===========================================================================
# Scenarios
# ===========================================================================
async def scenario_1_happy_path(host: EscrowHost) -> Intent:
    banner("SCENARIO 1: Happy Path")
    client, freelancer = ClientBot(), FreelancerBot()

    await client.create_intent(host, "i1", freelancer.account_id, ONE_NEAR, "Build a landing page")
    await freelancer.submit(host, "i1", "https://proof.example/i1", "Deployed to staging")
    intent = await client.approve(host, "i1")
    print_intent(intent)

    await expect_rejection("Late dispute", client.dispute(host, "i1"))
    await print_audit_trail(host, "i1")
    return intent


async def scenario_2_dispute(host: EscrowHost) -> Intent:
    banner("SCENARIO 2: Dispute Resolved For Client")
    client, freelancer, owner = ClientBot(), FreelancerBot(), OwnerBot(get_settings().owner_account_id)

    await client.create_intent(host, "i2", freelancer.account_id, ONE_NEAR, "Write API docs")
    await freelancer.submit(host, "i2", "https://proof.example/i2")
    await client.dispute(host, "i2")
    intent = await owner.resolve(host, "i2", complete=False)
    print_intent(intent)

    await expect_rejection("Second resolution", owner.resolve(host, "i2", complete=True))
    await print_audit_trail(host, "i2")
    return intent


async def scenario_3_guard_rails(host: EscrowHost) -> Intent:
    banner("SCENARIO 3: Guard Rails")
    client, freelancer, owner = ClientBot(), FreelancerBot(), OwnerBot(get_settings().owner_account_id)

    await client.create_intent(host, "i3", freelancer.account_id, 5 * ONE_NEAR, "Audit a contract")

    section("Rejected calls")
    await expect_rejection("Freelancer approves", freelancer.approve(host, "i3"))
    await expect_rejection("Client approves before submission", client.approve(host, "i3"))
    await expect_rejection("Unknown intent", client.cancel(host, "missing"))

    async with host.call() as svc:
        status = IntentStatusResponse.model_validate(
            await svc.get_status("i3", account_id=client.account_id)
        )
    print(f"  Status after rejected calls: {status.model_dump_json()}")

    section("Owner cancels")
    intent = await owner.cancel(host, "i3")
    print_intent(intent)

    async with host.call() as svc:
        mine = await svc.get_user_intents(client.account_id)
        total = await svc.get_total_intents()
    print(f"  Client intents: {[i.intent_id for i in mine]} (total created: {total})")
    return intent


SCENARIOS = {
    1: scenario_1_happy_path,
    2: scenario_2_dispute,
    3: scenario_3_guard_rails,
}


# ===========================================================================
# Main
# ===========================================================================
async def run(
    scenarios: list[int],
    backend: str = "memory",
    database_url: str | None = None,
) -> dict[int, Intent]:
    """Run the given scenarios against a fresh host and return their results."""
    host = EscrowHost(backend=backend, database_url=database_url)
    await host.start(get_settings().owner_account_id)

    results: dict[int, Intent] = {}
    try:
        for num in scenarios:
            results[num] = await SCENARIOS[num](host)
    finally:
        await host.stop()
    return results


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description="Intent Escrow Simulation")
    parser.add_argument(
        "--scenario",
        type=int,
        choices=sorted(SCENARIOS),
        default=0,
        help="Run a specific scenario (1, 2, or 3). Default: run all.",
    )
    parser.add_argument(
        "--backend",
        choices=("memory", "database"),
        default=None,
        help="Storage backend. Default: STORAGE_BACKEND setting.",
    )
    parser.add_argument(
        "--sqlite",
        action="store_true",
        help="Use the database backend on an in-memory SQLite database.",
    )
    args = parser.parse_args(argv)

    settings = get_settings()
    setup_logging(log_level="INFO", json_logs=not settings.is_development)

    backend = args.backend or settings.storage_backend
    database_url = None
    if args.sqlite:
        backend, database_url = "database", SQLITE_MEMORY_URL

    scenarios = [args.scenario] if args.scenario else sorted(SCENARIOS)
    asyncio.run(run(scenarios, backend=backend, database_url=database_url))
    banner("✅ ALL SCENARIOS COMPLETED")


if __name__ == "__main__":
    main()
