"""Account IDs and a deterministic clock shared by the test modules."""

from __future__ import annotations

OWNER = "owner.near"
CLIENT = "client.near"
FREELANCER = "freelancer.near"
STRANGER = "stranger.near"

ONE_NEAR = 10**24


class StepClock:
    """Clock that advances by a fixed step on every read."""

    def __init__(self, start: int = 1_700_000_000_000_000_000, step: int = 1_000) -> None:
        self.now = start
        self.step = step

    def __call__(self) -> int:
        self.now += self.step
        return self.now
