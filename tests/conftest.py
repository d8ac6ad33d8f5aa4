"""
Shared fixtures for the farm sync tests.
"""

import asyncio
from typing import Any

import pytest


class FakeClock:
    """Millisecond clock that only moves when told to."""

    def __init__(self, now: float = 0.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, ms: float) -> None:
        self.now += ms


class CountingProducer:
    """Async producer that counts calls and can be held open with a gate."""

    def __init__(self, value: Any = None, error: Exception | None = None, gated: bool = False) -> None:
        self.value = value
        self.error = error
        self.calls = 0
        self.gate = asyncio.Event()
        if not gated:
            self.gate.set()

    async def __call__(self) -> Any:
        self.calls += 1
        await self.gate.wait()
        if self.error is not None:
            raise self.error
        return self.value

    def release(self) -> None:
        self.gate.set()


@pytest.fixture
def clock():
    """Create a fake clock starting at t=0."""
    return FakeClock()


@pytest.fixture
def herd():
    """Sample animals as the backend returns them."""
    return [
        {"_id": "g1", "tagId": "GT-001", "name": "Daisy", "species": "Goat", "status": "Alive"},
        {"_id": "g2", "tagId": "GT-002", "name": "Billy", "species": "Goat", "status": "Alive"},
        {"_id": "c1", "tagId": "CT-001", "name": "Bessie", "species": "Cattle", "purchaseCost": 450000},
    ]
