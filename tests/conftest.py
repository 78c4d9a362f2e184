"""Pytest fixtures for the issuance journey tests."""

from typing import List

import httpx
import pytest

from issuance.integrations.clients.mocks import SANDBOX_API_KEY, create_sandbox_app
from issuance.integrations.clients.real_http import ApiTransport, IssuanceApiClient
from issuance.integrations.contracts.interfaces import Product
from issuance.journey import DiagnosticRecorder, IssuanceJourney, PollingCoordinator

SANDBOX_URL = "http://sandbox/api/v1"


class FakeClock:
    """Virtual clock for poll loops: records every requested sleep, never waits."""

    def __init__(self):
        self.sleeps: List[float] = []

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)

    @property
    def elapsed(self) -> float:
        return sum(self.sleeps)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def recorder():
    return DiagnosticRecorder(history_size=20)


@pytest.fixture
def product():
    return Product(
        id="prod-tl10",
        slug="term-life-10",
        name="Term Life 10",
        term_years=10,
        min_coverage=50_000,
        max_coverage=1_000_000,
        base_rate=0.08,
    )


@pytest.fixture
def sandbox_app():
    return create_sandbox_app(SANDBOX_API_KEY)


@pytest.fixture
def sandbox_store(sandbox_app):
    return sandbox_app.state.store


@pytest.fixture
def sandbox_api(sandbox_app, recorder):
    """Domain client wired to the in-process sandbox."""
    transport = ApiTransport(
        SANDBOX_URL,
        SANDBOX_API_KEY,
        transport=httpx.ASGITransport(app=sandbox_app),
        observer=recorder,
    )
    return IssuanceApiClient(transport)


@pytest.fixture
def sandbox_journey(sandbox_api, recorder, clock):
    coordinator = PollingCoordinator(interval_seconds=2.0, max_attempts=15, sleep=clock.sleep)
    return IssuanceJourney(sandbox_api, coordinator, recorder)


def mock_api(handler, *, api_key: str = "test-key", observer=None) -> IssuanceApiClient:
    """Domain client whose HTTP traffic is answered by ``handler`` (an httpx.MockTransport handler)."""
    transport = ApiTransport(
        "http://issuance.test/api/v1",
        api_key,
        transport=httpx.MockTransport(handler),
        observer=observer,
    )
    return IssuanceApiClient(transport)


@pytest.fixture
def make_api():
    return mock_api
