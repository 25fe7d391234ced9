"""Async MarketCheck listings client."""

from __future__ import annotations

import json
import logging
from typing import Any

import aiohttp

from autoagent_mcp.constants import MAX_RESULTS, VIN_RE
from autoagent_mcp.errors import (
    ConfigurationError,
    UpstreamHttpError,
    UpstreamNetworkError,
    UpstreamProtocolError,
    UpstreamTimeoutError,
)
from autoagent_mcp.normalization import (
    clean_text,
    join_address,
    non_empty_parts,
    parse_float,
    parse_int,
    parse_price,
)
from autoagent_mcp.search.models import Dealer, SearchParams, SearchResult, Vehicle

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://mc-api.marketcheck.com"
DEFAULT_TIMEOUT_SECONDS = 2.0
SEARCH_PATH = "/v2/search/car/active"


def build_search_query(api_key: str, params: SearchParams) -> dict[str, str]:
    """Map search params onto MarketCheck's query vocabulary (first page only)."""
    query: dict[str, str] = {"api_key": api_key}
    if params.location:
        query["location"] = params.location
    if params.condition in ("new", "used"):
        query["car_type"] = params.condition
    if params.max_price is not None:
        query["price_range"] = f"0-{params.max_price}"
    if params.make:
        query["make"] = params.make
    if params.model:
        query["model"] = params.model
    if params.radius_miles is not None:
        query["radius"] = str(params.radius_miles)
    query["page"] = "1"
    query["pageSize"] = str(MAX_RESULTS)
    return query


def _as_dict(value: Any) -> dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _first_photo(listing: dict[str, Any]) -> str | None:
    # photo_links is an ordered list of URLs; the first one is the lead photo.
    links = _as_dict(listing.get("media")).get("photo_links")
    if isinstance(links, list):
        for link in links:
            url = clean_text(link)
            if url:
                return url
    return None


def normalize_listing(listing: dict[str, Any]) -> Vehicle:
    """Map one MarketCheck listing onto :class:`Vehicle`.

    Missing required fields fall back to zero values so one malformed
    listing never sinks the whole page.
    """
    build = _as_dict(listing.get("build"))
    dealer = _as_dict(listing.get("dealer"))

    features: list[str] = []
    if build:
        features = non_empty_parts(
            (
                build.get("trim"),
                build.get("engine"),
                build.get("transmission"),
                build.get("drivetrain"),
            )
        )

    vin = clean_text(listing.get("vin"))
    if vin is not None and not VIN_RE.fullmatch(vin):
        vin = None

    return Vehicle(
        id=clean_text(listing.get("id")) or "",
        year=parse_int(build.get("year")) or 0,
        make=clean_text(build.get("make")) or "",
        model=clean_text(build.get("model")) or "",
        price=parse_price(listing.get("price")) or 0,
        mileage=parse_int(listing.get("miles")),
        image_url=_first_photo(listing),
        features=features,
        vin=vin.upper() if vin else None,
        dealer=Dealer(
            name=clean_text(dealer.get("name")) or "",
            address=join_address(
                dealer.get("street"),
                dealer.get("city"),
                dealer.get("state"),
                dealer.get("zip"),
            ),
            lat=parse_float(dealer.get("latitude")),
            lng=parse_float(dealer.get("longitude")),
        ),
    )


def parse_search_payload(payload: Any) -> SearchResult:
    """Normalize a MarketCheck search response, capped at ``MAX_RESULTS``."""
    if not isinstance(payload, dict):
        raise UpstreamProtocolError(
            "MarketCheck response was not a JSON object.",
            details={"type": type(payload).__name__},
        )
    listings = payload.get("listings")
    if not isinstance(listings, list):
        raise UpstreamProtocolError(
            "MarketCheck response is missing the listings array.",
            details={"keys": sorted(payload)},
        )

    vehicles = tuple(
        normalize_listing(item)
        for item in listings[:MAX_RESULTS]
        if isinstance(item, dict)
    )
    num_found = parse_int(payload.get("num_found"))
    if num_found is None:
        num_found = len(listings)
    return SearchResult(vehicles=vehicles, total_count=min(num_found, MAX_RESULTS))


class MarketCheckClient:
    """Async client for the MarketCheck active-inventory search endpoint."""

    def __init__(
        self,
        api_key: str,
        base_url: str = DEFAULT_BASE_URL,
        *,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
    ) -> None:
        self.api_key = api_key.strip()
        self.base_url = base_url.rstrip("/")
        self.session: aiohttp.ClientSession | None = None
        self._timeout = aiohttp.ClientTimeout(total=timeout_seconds)

    async def __aenter__(self) -> MarketCheckClient:
        if not self.api_key:
            raise ConfigurationError("MARKETCHECK_API_KEY is not configured.")
        self.session = aiohttp.ClientSession(
            headers={"Content-Type": "application/json"},
        )
        return self

    async def __aexit__(self, *args: Any) -> None:
        if self.session:
            await self.session.close()

    async def _request(self, path: str, *, params: dict[str, str]) -> Any:
        if not self.session:
            raise RuntimeError("Client not entered as context manager")

        url = f"{self.base_url}{path}"
        safe_params = {k: v for k, v in params.items() if k != "api_key"}
        try:
            async with self.session.get(url, params=params, timeout=self._timeout) as resp:
                if not 200 <= resp.status < 300:
                    raise UpstreamHttpError(
                        resp.status,
                        resp.reason or "",
                        details={"path": path},
                    )
                raw_text = await resp.text()
        except UpstreamHttpError:
            raise
        except TimeoutError as exc:
            raise UpstreamTimeoutError(
                "MarketCheck request timed out.",
                details={"path": path, "params": safe_params},
            ) from exc
        except aiohttp.ClientError as exc:
            logger.error("MarketCheck client error (%s): %s", path, exc)
            raise UpstreamNetworkError(
                "MarketCheck request failed due to a network/client error.",
                details={"path": path, "error": str(exc)},
            ) from exc

        if not raw_text:
            raise UpstreamProtocolError("MarketCheck returned an empty body.")
        try:
            return json.loads(raw_text)
        except json.JSONDecodeError as exc:
            raise UpstreamProtocolError(
                "MarketCheck returned a non-JSON body.",
                details={"path": path, "body": raw_text[:200]},
            ) from exc

    async def search_vehicles(self, params: SearchParams) -> SearchResult:
        """Search active listings and return at most ``MAX_RESULTS`` vehicles."""
        query = build_search_query(self.api_key, params)
        try:
            payload = await self._request(SEARCH_PATH, params=query)
            return parse_search_payload(payload)
        except (UpstreamHttpError, UpstreamTimeoutError, UpstreamProtocolError) as exc:
            logger.error(
                "MarketCheck API error: code=%s status=%s message=%s",
                exc.code,
                exc.status,
                exc,
            )
            raise
