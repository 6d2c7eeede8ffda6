"""
pytest configuration and shared fixtures for the COVID Tracker tests.

Key concern: tests must never reach the real disease.sh API.
We achieve this by:
  1. Setting LOAD_ON_STARTUP=false before the app is imported, and patching
     start_tracker / stop_tracker to no-ops so the lifespan stays offline.
  2. Providing FakeProvider, an in-memory stand-in for DiseaseShClient whose
     answers (or ProviderErrors) are configured per scope, and whose calls
     can be held open with asyncio.Events to force completion orders.
  3. Overriding the get_orchestrator dependency with an orchestrator that
     talks to the FakeProvider.

Provider-client tests use httpx.MockTransport instead (see test_provider_client.py).
"""

import asyncio
import os
from typing import Optional
from unittest.mock import AsyncMock, patch

import pytest
from httpx import ASGITransport, AsyncClient

# Set env vars BEFORE importing the app so Settings picks them up correctly
os.environ.setdefault("LOAD_ON_STARTUP", "false")
os.environ.setdefault("ENVIRONMENT", "test")

from covid_tracker.models.stats import GLOBAL_SCOPE, HistoricalPayload, HistoryRange, Snapshot  # noqa: E402
from covid_tracker.services.orchestrator import FetchOrchestrator  # noqa: E402
from covid_tracker.services.provider_client import ProviderError  # noqa: E402


def make_snapshot(scope: str = GLOBAL_SCOPE, cases: int = 1000, deaths: int = 50, recovered: int = 800, **extra) -> Snapshot:
    return Snapshot(scope=scope, cases=cases, deaths=deaths, recovered=recovered, **extra)


def make_history(days: int = 3, start_cases: int = 10) -> HistoricalPayload:
    keys = [f"1/{d}/24" for d in range(1, days + 1)]
    return HistoricalPayload(
        cases={k: start_cases + i * 5 for i, k in enumerate(keys)},
        deaths={k: i for i, k in enumerate(keys)},
        recovered={k: 0 for k in keys},
    )


class FakeProvider:
    """
    In-memory provider.

    snapshots / histories map a scope to either a model or an Exception
    instance (raised when requested). gates map a scope to an asyncio.Event
    the call waits on before answering (entities_gate does the same for the
    country list); use them to reorder completions.
    """

    def __init__(self) -> None:
        self.snapshots: dict[str, object] = {GLOBAL_SCOPE: make_snapshot()}
        self.entities: object = {
            "Germany": make_snapshot("Germany", cases=500, deaths=10, recovered=400),
            "France": make_snapshot("France", cases=700, deaths=20, recovered=600),
        }
        self.histories: dict[str, object] = {GLOBAL_SCOPE: make_history()}
        self.snapshot_gates: dict[str, asyncio.Event] = {}
        self.history_gates: dict[str, asyncio.Event] = {}
        self.entities_gate: Optional[asyncio.Event] = None
        self.calls: list[tuple] = []

    @staticmethod
    def _answer(value, scope: str):
        if isinstance(value, Exception):
            raise value
        if value is None:
            raise ProviderError(f"no fake answer for {scope}", scope=scope)
        return value

    async def get_snapshot(self, scope: str = GLOBAL_SCOPE) -> Snapshot:
        self.calls.append(("snapshot", scope))
        gate = self.snapshot_gates.get(scope)
        if gate is not None:
            await gate.wait()
        return self._answer(self.snapshots.get(scope), scope)

    async def get_entities(self) -> dict[str, Snapshot]:
        self.calls.append(("entities",))
        if self.entities_gate is not None:
            await self.entities_gate.wait()
        return self._answer(self.entities, "entities")

    async def get_history(self, scope: str, history_range: HistoryRange) -> HistoricalPayload:
        self.calls.append(("history", scope, history_range))
        gate = self.history_gates.get(scope)
        if gate is not None:
            await gate.wait()
        return self._answer(self.histories.get(scope, HistoricalPayload()), scope)


@pytest.fixture(autouse=True)
def offline_lifespan():
    """
    Patch the orchestrator lifecycle for every test.

    - start_tracker → no-op AsyncMock (startup never calls the provider)
    - stop_tracker → no-op AsyncMock
    """
    with (
        patch("covid_tracker.core.tracker.start_tracker", new_callable=AsyncMock),
        patch("covid_tracker.core.tracker.stop_tracker", new_callable=AsyncMock),
    ):
        yield


@pytest.fixture()
def fake_provider() -> FakeProvider:
    return FakeProvider()


@pytest.fixture()
def orchestrator(fake_provider) -> FetchOrchestrator:
    return FetchOrchestrator(fake_provider, history_range=HistoryRange.LAST_30)


@pytest.fixture()
async def client(orchestrator):
    """
    HTTPX async test client wired to the FastAPI app, backed by the fake provider.

    Usage:
        async def test_something(client):
            response = await client.get("/health")
            assert response.status_code == 200
    """
    from covid_tracker.core.rate_limit import limiter
    from covid_tracker.core.tracker import get_orchestrator
    from covid_tracker.main import app

    # Reset in-memory rate-limit counters so tests are independent.
    try:
        limiter._limiter.storage.reset()
    except Exception:
        pass  # not every storage backend supports reset

    app.dependency_overrides[get_orchestrator] = lambda: orchestrator
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()
