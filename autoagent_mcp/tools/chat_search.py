"""Generic ``search`` and ``fetch`` tools expected by chat-client connectors."""

from __future__ import annotations

import json
import logging
from typing import Any
from urllib.parse import quote, urlsplit

import aiohttp

from autoagent_mcp.config import Settings
from autoagent_mcp.errors import SearchError
from autoagent_mcp.search.models import SearchParams, Vehicle
from autoagent_mcp.search.orchestrator import VehicleSearchService
from autoagent_mcp.tools.response import build_tool_result, format_error, render
from autoagent_mcp.tools.search_vehicles import build_search_tool_result, run_vehicle_search

logger = logging.getLogger(__name__)

DEFAULT_LOCATION = "Seattle, WA"
DEFAULT_CONDITION = "used"

# keyword -> canonical spelling
_KNOWN_MAKES = {"toyota": "Toyota", "honda": "Honda", "subaru": "Subaru"}
_KNOWN_MODELS = {"camry": "Camry", "cr-v": "CR-V", "outback": "Outback"}

FETCH_TIMEOUT = aiohttp.ClientTimeout(total=10)
FETCH_MAX_CHARS = 50_000
FETCH_HEADERS = {
    "User-Agent": "AutoAgent-MCP-Server/1.0.0",
    "Accept": "text/html,text/plain,application/json,*/*",
}


def _match_keyword(text: str, table: dict[str, str]) -> str | None:
    for keyword, canonical in table.items():
        if keyword in text:
            return canonical
    return None


def query_to_params(query: str) -> SearchParams:
    """Default location/condition plus any make/model keyword found in the query."""
    lowered = query.lower()
    return SearchParams(
        location=DEFAULT_LOCATION,
        condition=DEFAULT_CONDITION,
        make=_match_keyword(lowered, _KNOWN_MAKES),
        model=_match_keyword(lowered, _KNOWN_MODELS),
    )


def _result_entry(vehicle: Vehicle, index: int, settings: Settings) -> dict[str, str]:
    ident = vehicle.id or vehicle.vin or f"vehicle-{index}"
    price = f"${vehicle.price:,.0f}" if vehicle.price else "N/A"
    return {
        "id": ident,
        "title": f"{vehicle.year} {vehicle.make} {vehicle.model} - {price}",
        "url": f"{settings.widget_host}/vehicle/{quote(ident, safe='')}",
    }


async def search_impl(service: VehicleSearchService, settings: Settings, query: Any) -> str:
    if not isinstance(query, str) or not query.strip():
        return format_error(
            "INVALID_PARAMS", "Invalid parameters: query is required and must be a string"
        )

    try:
        outcome = await run_vehicle_search(service, settings, query_to_params(query))
    except SearchError as exc:
        return render(exc.to_payload())

    results = [
        _result_entry(vehicle, i, settings)
        for i, vehicle in enumerate(outcome.result.vehicles)
    ]
    widget = build_search_tool_result(outcome, settings)
    total = outcome.result.total_count
    return render(
        build_tool_result(
            f"Found {total} vehicles. Results: {json.dumps({'results': results})}",
            structured={
                "results": results,
                "totalCount": total,
                "searchParams": outcome.params.to_dict(),
            },
            components=widget["components"],
        )
    )


def _is_fetchable(url: str) -> bool:
    parts = urlsplit(url)
    return parts.scheme in ("http", "https") and bool(parts.netloc)


async def fetch_impl(url: Any, *, session: aiohttp.ClientSession | None = None) -> str:
    """GET a URL and return its (truncated) text content."""
    if not isinstance(url, str) or not url.strip():
        return format_error(
            "INVALID_PARAMS", "Invalid parameters: url is required and must be a string"
        )
    url = url.strip()
    if not _is_fetchable(url):
        return format_error("INVALID_PARAMS", "Invalid URL format")

    owns_session = session is None
    if session is None:
        session = aiohttp.ClientSession()
    try:
        async with session.get(url, headers=FETCH_HEADERS, timeout=FETCH_TIMEOUT) as resp:
            if resp.status >= 400:
                return format_error(
                    "HTTP_ERROR",
                    f"HTTP {resp.status}: {resp.reason}",
                    {"status": resp.status},
                )
            content_type = resp.headers.get("Content-Type", "")
            if "application/json" in content_type:
                content = json.dumps(await resp.json(), indent=2)
            else:
                content = await resp.text()
            status = resp.status
    except TimeoutError:
        return format_error("TIMEOUT", "Request timeout: URL took too long to respond")
    except aiohttp.ClientError as exc:
        logger.error("fetch failed for %s: %s", url, exc)
        return format_error("NETWORK_ERROR", f"Network error: {exc}")
    except ValueError as exc:
        # JSON content type with an unparseable body
        logger.error("fetch got malformed JSON from %s: %s", url, exc)
        return format_error("FETCH_ERROR", f"Fetch failed: {exc}")
    finally:
        if owns_session:
            await session.close()

    if len(content) > FETCH_MAX_CHARS:
        content = content[:FETCH_MAX_CHARS] + "\n\n... (content truncated)"

    return render(
        build_tool_result(
            f"Content from {url}:\n\n{content}",
            structured={
                "url": url,
                "status": status,
                "contentType": content_type,
                "contentLength": len(content),
                "content": content,
            },
        )
    )
