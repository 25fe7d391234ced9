"""Shared test fixtures and server singleton injection."""

from __future__ import annotations

import asyncio
import base64
from typing import Any

import pytest

from autoagent_mcp.config import Settings
from autoagent_mcp.data.leads import LeadStore
from autoagent_mcp.search.cache import LRUCache
from autoagent_mcp.search.models import Dealer, SearchParams, SearchResult, Vehicle
from autoagent_mcp.search.orchestrator import VehicleSearchService
from autoagent_mcp.server import (
    set_lead_key,
    set_lead_store,
    set_search_cache,
    set_search_service,
    set_settings,
)

TEST_KEY = bytes(range(32))
TEST_KEY_B64 = base64.b64encode(TEST_KEY).decode("ascii")


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def make_listing(index: int = 1, **overrides: Any) -> dict[str, Any]:
    listing: dict[str, Any] = {
        "id": f"mc-{index}",
        "price": 20_000 + index * 100,
        "miles": 10_000 + index,
        "build": {"year": 2022, "make": "Toyota", "model": "Camry"},
        "dealer": {"name": f"Dealer {index}"},
    }
    listing.update(overrides)
    return listing


def make_result(count: int = 1) -> SearchResult:
    vehicles = tuple(
        Vehicle(
            id=f"mc-{i}",
            year=2022,
            make="Toyota",
            model="Camry",
            price=28500,
            dealer=Dealer(name="Seattle Auto"),
        )
        for i in range(count)
    )
    return SearchResult(vehicles=vehicles, total_count=count)


class FakeListingsClient:
    """In-memory listings adapter that records calls."""

    def __init__(self, result: SearchResult | None = None, *, error=None, delay=0.0):
        self.result = result or make_result()
        self.error = error
        self.delay = delay
        self.calls: list[SearchParams] = []
        self.entered = 0
        self.exited = 0

    async def __aenter__(self) -> FakeListingsClient:
        self.entered += 1
        return self

    async def __aexit__(self, *args: Any) -> None:
        self.exited += 1

    async def search_vehicles(self, params: SearchParams) -> SearchResult:
        self.calls.append(params)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return self.result


def make_service(
    client: FakeListingsClient | None,
    *,
    cache: LRUCache | None = None,
    timeout: float = 5.0,
) -> VehicleSearchService:
    return VehicleSearchService(
        cache if cache is not None else LRUCache(max_size=10, ttl_seconds=60),
        lambda: client,
        timeout_seconds=timeout,
    )


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def settings() -> Settings:
    return Settings(
        marketcheck_api_key="test-key",
        marketcheck_base_url="https://mc.test",
        widget_host="https://widgets.test",
        lead_enc_key=TEST_KEY_B64,
        dashboard_ingest_url="https://dashboard.test/api/ingest/lead",
        dashboard_ingest_token="ingest-token",
    )


@pytest.fixture()
def lead_store() -> LeadStore:
    store = LeadStore(":memory:")
    yield store
    store.close()


@pytest.fixture(autouse=True)
def _inject_server_state(settings: Settings, lead_store: LeadStore):
    """Give every test fresh server singletons."""
    set_settings(settings)
    set_search_cache(LRUCache(max_size=200, ttl_seconds=60))
    set_lead_store(lead_store)
    set_lead_key(TEST_KEY)
    yield
    set_settings(None)
    set_search_cache(None)
    set_search_service(None)
    set_lead_store(None)
    set_lead_key(None)
