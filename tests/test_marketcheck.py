"""Tests for the MarketCheck listings adapter."""

from __future__ import annotations

import json
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import aiohttp
import pytest
from conftest import make_listing

from autoagent_mcp.clients.marketcheck import (
    MarketCheckClient,
    build_search_query,
    normalize_listing,
    parse_search_payload,
)
from autoagent_mcp.errors import (
    ConfigurationError,
    UpstreamHttpError,
    UpstreamNetworkError,
    UpstreamProtocolError,
    UpstreamTimeoutError,
)
from autoagent_mcp.search.models import SearchParams, parse_search_params

SEATTLE_USED = SearchParams(location="Seattle, WA", condition="used")


def _mock_response(body: Any = None, *, status: int = 200, reason: str = "OK") -> AsyncMock:
    mock_ctx = AsyncMock()
    mock_ctx.__aenter__ = AsyncMock(return_value=mock_ctx)
    mock_ctx.__aexit__ = AsyncMock(return_value=False)
    mock_ctx.status = status
    mock_ctx.reason = reason
    text = body if isinstance(body, str) else json.dumps(body)
    mock_ctx.text = AsyncMock(return_value=text)
    return mock_ctx


def _client_with_response(mock_ctx: Any) -> MarketCheckClient:
    client = MarketCheckClient("test-key", "https://mc.test/")
    client.session = MagicMock()
    client.session.get = MagicMock(return_value=mock_ctx)
    return client


def _payload(listings: list[dict[str, Any]], num_found: int | None = None) -> dict[str, Any]:
    return {
        "listings": listings,
        "num_found": len(listings) if num_found is None else num_found,
        "page": 1,
        "pageSize": 20,
    }


# ── Query building ────────────────────────────────────────────────


class TestBuildSearchQuery:
    def test_all_parameters(self):
        params = parse_search_params(
            {
                "location": "Seattle, WA",
                "condition": "used",
                "maxPrice": 30000,
                "make": "Toyota",
                "model": "RAV4",
                "radiusMiles": 50,
            }
        )
        query = build_search_query("k", params)
        assert query == {
            "api_key": "k",
            "location": "Seattle, WA",
            "car_type": "used",
            "price_range": "0-30000",
            "make": "Toyota",
            "model": "RAV4",
            "radius": "50",
            "page": "1",
            "pageSize": "20",
        }

    def test_required_only(self):
        query = build_search_query(
            "k", SearchParams(location="New York, NY", condition="new")
        )
        assert query["car_type"] == "new"
        for absent in ("price_range", "make", "model", "radius"):
            assert absent not in query


# ── Normalization ─────────────────────────────────────────────────


class TestNormalizeListing:
    def test_full_listing(self):
        vehicle = normalize_listing(
            {
                "id": "mc-123",
                "build": {
                    "year": 2022,
                    "make": "Toyota",
                    "model": "Camry",
                    "trim": "LE",
                    "engine": "2.5L 4-Cylinder",
                    "transmission": "Automatic",
                    "drivetrain": "FWD",
                },
                "price": 28500,
                "miles": 15000,
                "vin": "4T1B11HK5JU000001",
                "media": {
                    "photo_links": [
                        "https://example.com/image1.jpg",
                        "https://example.com/image2.jpg",
                    ]
                },
                "dealer": {
                    "name": "Test Dealer",
                    "street": "123 Main St",
                    "city": "Seattle",
                    "state": "WA",
                    "zip": "98101",
                    "latitude": "47.6062",
                    "longitude": "-122.3321",
                },
            }
        )
        data = vehicle.to_dict()
        assert data == {
            "id": "mc-123",
            "year": 2022,
            "make": "Toyota",
            "model": "Camry",
            "price": 28500,
            "mileage": 15000,
            "imageUrl": "https://example.com/image1.jpg",
            "features": ["LE", "2.5L 4-Cylinder", "Automatic", "FWD"],
            "vin": "4T1B11HK5JU000001",
            "dealer": {
                "name": "Test Dealer",
                "address": "123 Main St, Seattle, WA, 98101",
                "lat": 47.6062,
                "lng": -122.3321,
            },
        }

    def test_seattle_camry_minimal_listing(self):
        vehicle = normalize_listing(
            {
                "id": "mc-1",
                "price": 28500,
                "build": {"year": 2022, "make": "Toyota", "model": "Camry"},
                "dealer": {"name": "Seattle Auto"},
            }
        )
        assert vehicle.id == "mc-1"
        assert (vehicle.year, vehicle.make, vehicle.model) == (2022, "Toyota", "Camry")
        assert vehicle.price == 28500
        assert vehicle.dealer.to_dict() == {"name": "Seattle Auto"}
        assert vehicle.mileage is None
        assert vehicle.image_url is None
        assert vehicle.features == []
        assert vehicle.vin is None

    def test_address_skips_missing_parts(self):
        vehicle = normalize_listing(
            make_listing(dealer={"name": "D", "city": "Tacoma", "zip": "98402"})
        )
        assert vehicle.dealer.address == "Tacoma, 98402"

    def test_malformed_listing_defaults_to_zero_values(self):
        vehicle = normalize_listing({"build": "garbage", "price": "n/a"})
        assert vehicle.id == ""
        assert vehicle.year == 0
        assert vehicle.make == ""
        assert vehicle.price == 0
        assert vehicle.dealer.name == ""

    def test_non_finite_numbers_treated_as_missing(self):
        vehicle = normalize_listing(
            make_listing(
                miles=float("inf"),
                price=float("nan"),
                build={"year": float("nan"), "make": "Toyota"},
                dealer={"name": "D", "latitude": float("nan"), "longitude": "-Infinity"},
            )
        )
        assert vehicle.mileage is None
        assert vehicle.price == 0
        assert vehicle.year == 0
        assert vehicle.dealer.lat is None
        assert vehicle.dealer.lng is None

    def test_invalid_vin_dropped(self):
        assert normalize_listing(make_listing(vin="BAD-VIN-IOQ")).vin is None

    def test_string_numbers_parsed(self):
        vehicle = normalize_listing(
            make_listing(price="$31,995", miles="42,000", build={"year": "2021"})
        )
        assert vehicle.price == 31995
        assert vehicle.mileage == 42000
        assert vehicle.year == 2021


class TestParseSearchPayload:
    def test_caps_at_twenty(self):
        result = parse_search_payload(
            _payload([make_listing(i) for i in range(25)], num_found=311)
        )
        assert len(result.vehicles) == 20
        assert result.total_count == 20

    def test_total_count_uses_num_found_when_small(self):
        result = parse_search_payload(_payload([make_listing(1)], num_found=1))
        assert result.total_count == 1

    def test_skips_non_dict_entries(self):
        result = parse_search_payload(_payload([make_listing(1), "junk", None]))
        assert [v.id for v in result.vehicles] == ["mc-1"]

    @pytest.mark.parametrize("payload", [[], "text", {"results": []}, {"listings": {}}])
    def test_unexpected_shape(self, payload):
        with pytest.raises(UpstreamProtocolError):
            parse_search_payload(payload)


# ── Client ────────────────────────────────────────────────────────


class TestMarketCheckClient:
    async def test_search_builds_request(self):
        client = _client_with_response(_mock_response(_payload([])))
        await client.search_vehicles(SEATTLE_USED)

        args, kwargs = client.session.get.call_args
        assert args[0] == "https://mc.test/v2/search/car/active"
        assert kwargs["params"]["location"] == "Seattle, WA"
        assert kwargs["params"]["car_type"] == "used"
        assert kwargs["params"]["api_key"] == "test-key"
        assert kwargs["timeout"].total == 2.0

    async def test_search_normalizes(self):
        client = _client_with_response(
            _mock_response(
                _payload(
                    [
                        {
                            "id": "mc-1",
                            "price": 28500,
                            "build": {"year": 2022, "make": "Toyota", "model": "Camry"},
                            "dealer": {"name": "Seattle Auto"},
                        }
                    ]
                )
            )
        )
        result = await client.search_vehicles(SEATTLE_USED)
        assert result.total_count == 1
        assert result.vehicles[0].to_dict() == {
            "id": "mc-1",
            "year": 2022,
            "make": "Toyota",
            "model": "Camry",
            "price": 28500,
            "features": [],
            "dealer": {"name": "Seattle Auto"},
        }

    async def test_http_error(self):
        client = _client_with_response(
            _mock_response({}, status=503, reason="Service Unavailable")
        )
        with pytest.raises(UpstreamHttpError) as exc_info:
            await client.search_vehicles(SEATTLE_USED)
        assert exc_info.value.status == 503
        assert exc_info.value.status_text == "Service Unavailable"
        assert "503" in str(exc_info.value)

    async def test_redirect_status_is_http_error(self):
        client = _client_with_response(_mock_response({}, status=302, reason="Found"))
        with pytest.raises(UpstreamHttpError) as exc_info:
            await client.search_vehicles(SEATTLE_USED)
        assert exc_info.value.status == 302

    async def test_infinity_literal_in_body(self):
        body = '{"listings": [{"id": "mc-1", "miles": Infinity, "price": 1}], "num_found": 1}'
        client = _client_with_response(_mock_response(body))

        result = await client.search_vehicles(SEATTLE_USED)

        assert result.total_count == 1
        assert result.vehicles[0].mileage is None
        assert result.vehicles[0].price == 1

    async def test_timeout(self):
        client = MarketCheckClient("test-key")
        client.session = MagicMock()
        client.session.get = MagicMock(side_effect=TimeoutError())
        with pytest.raises(UpstreamTimeoutError) as exc_info:
            await client.search_vehicles(SEATTLE_USED)
        assert "api_key" not in exc_info.value.details["params"]

    async def test_network_error(self):
        client = MarketCheckClient("test-key")
        client.session = MagicMock()
        client.session.get = MagicMock(side_effect=aiohttp.ClientError("refused"))
        with pytest.raises(UpstreamNetworkError):
            await client.search_vehicles(SEATTLE_USED)

    async def test_non_json_body(self):
        client = _client_with_response(_mock_response("<html>oops</html>"))
        with pytest.raises(UpstreamProtocolError):
            await client.search_vehicles(SEATTLE_USED)

    async def test_empty_body(self):
        client = _client_with_response(_mock_response(""))
        with pytest.raises(UpstreamProtocolError):
            await client.search_vehicles(SEATTLE_USED)

    async def test_requires_context_manager(self):
        client = MarketCheckClient("test-key")
        with pytest.raises(RuntimeError, match="context manager"):
            await client.search_vehicles(SEATTLE_USED)

    async def test_missing_key_fails_on_enter(self):
        with pytest.raises(ConfigurationError):
            async with MarketCheckClient("  "):
                pass

    def test_base_url_trailing_slash_stripped(self):
        assert MarketCheckClient("k", "https://mc.test///").base_url == "https://mc.test"
