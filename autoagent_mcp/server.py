"""AutoAgent MCP server: FastMCP entry point for vehicle search and lead capture."""

from __future__ import annotations

import logging

from mcp.server.fastmcp import FastMCP

from autoagent_mcp.clients.marketcheck import MarketCheckClient
from autoagent_mcp.config import Settings, configure_logging, load_dotenv
from autoagent_mcp.constants import SERVER_NAME
from autoagent_mcp.crypto import load_key
from autoagent_mcp.data.leads import LeadStore
from autoagent_mcp.search.cache import LRUCache
from autoagent_mcp.search.models import SearchResult
from autoagent_mcp.search.orchestrator import VehicleSearchService
from autoagent_mcp.tools.chat_search import fetch_impl, search_impl
from autoagent_mcp.tools.ping import ping_micro_ui_impl, ping_ui_impl
from autoagent_mcp.tools.response import log_and_return_tool_error
from autoagent_mcp.tools.search_vehicles import search_vehicles_impl
from autoagent_mcp.tools.submit_lead import submit_lead_impl

load_dotenv()

mcp = FastMCP(SERVER_NAME)
logger = logging.getLogger(__name__)

_settings_ref: Settings | None = None
_search_cache_ref: LRUCache[SearchResult] | None = None
_search_service_ref: VehicleSearchService | None = None
_lead_store_ref: LeadStore | None = None
_lead_key_ref: bytes | None = None


def get_settings() -> Settings:
    global _settings_ref  # noqa: PLW0603
    if _settings_ref is None:
        _settings_ref = Settings.from_env()
    return _settings_ref


def set_settings(settings: Settings | None) -> None:
    """Inject settings for testing. Dependent singletons are rebuilt lazily."""
    global _settings_ref, _search_service_ref  # noqa: PLW0603
    _settings_ref = settings
    _search_service_ref = None


def get_search_cache() -> LRUCache[SearchResult]:
    """Process-wide search result cache, sized from settings on first use."""
    global _search_cache_ref  # noqa: PLW0603
    if _search_cache_ref is None:
        settings = get_settings()
        _search_cache_ref = LRUCache(
            max_size=settings.cache_max_size,
            ttl_seconds=settings.cache_ttl_seconds,
        )
    return _search_cache_ref


def set_search_cache(cache: LRUCache[SearchResult] | None) -> None:
    global _search_cache_ref, _search_service_ref  # noqa: PLW0603
    _search_cache_ref = cache
    _search_service_ref = None


def create_marketcheck_client() -> MarketCheckClient | None:
    """A fresh adapter per search, or ``None`` when no API key is configured."""
    settings = get_settings()
    if not settings.marketcheck_api_key:
        return None
    return MarketCheckClient(
        settings.marketcheck_api_key,
        settings.marketcheck_base_url,
        timeout_seconds=settings.marketcheck_timeout_seconds,
    )


def get_search_service() -> VehicleSearchService:
    global _search_service_ref  # noqa: PLW0603
    if _search_service_ref is None:
        _search_service_ref = VehicleSearchService(
            get_search_cache(),
            create_marketcheck_client,
            timeout_seconds=get_settings().search_timeout_seconds,
        )
    return _search_service_ref


def set_search_service(service: VehicleSearchService | None) -> None:
    global _search_service_ref  # noqa: PLW0603
    _search_service_ref = service


def get_lead_store() -> LeadStore:
    global _lead_store_ref  # noqa: PLW0603
    if _lead_store_ref is None:
        _lead_store_ref = LeadStore(get_settings().db_path)
    return _lead_store_ref


def set_lead_store(store: LeadStore | None) -> None:
    global _lead_store_ref  # noqa: PLW0603
    _lead_store_ref = store


def get_lead_key() -> bytes:
    global _lead_key_ref  # noqa: PLW0603
    if _lead_key_ref is None:
        _lead_key_ref = load_key(get_settings())
    return _lead_key_ref


def set_lead_key(key: bytes | None) -> None:
    global _lead_key_ref  # noqa: PLW0603
    _lead_key_ref = key


# ── Tool registrations ──────────────────────────────────────────────


@mcp.tool(name="search-vehicles")
async def search_vehicles(
    location: str,
    condition: str,
    maxPrice: float | None = None,  # noqa: N803
    make: str = "",
    model: str = "",
    radiusMiles: float | None = None,  # noqa: N803
) -> str:
    """Search for vehicles based on location, price, make, model, and other criteria.

    condition: 'new' or 'used'. radiusMiles defaults to the upstream's own radius.
    """
    try:
        return await search_vehicles_impl(
            get_search_service(),
            get_settings(),
            {
                "location": location,
                "condition": condition,
                "maxPrice": maxPrice,
                "make": make or None,
                "model": model or None,
                "radiusMiles": radiusMiles,
            },
        )
    except Exception as exc:
        return log_and_return_tool_error(
            tool_name="search-vehicles",
            exc=exc,
            user_message=(
                "I am having trouble searching vehicles right now. "
                "Please try again in a moment."
            ),
        )


@mcp.tool(name="submit-lead")
async def submit_lead(
    vehicleId: str,  # noqa: N803
    vin: str,
    user: dict,
    consent: bool,
    dealerId: str = "",  # noqa: N803
) -> str:
    """Submit a lead for a vehicle test drive or quote request.

    user: {name, email, phone?, preferredTime?}. consent must be true.
    """
    try:
        return await submit_lead_impl(
            get_lead_store(),
            get_lead_key(),
            get_settings(),
            {
                "vehicleId": vehicleId,
                "vin": vin,
                "dealerId": dealerId or None,
                "user": user,
                "consent": consent,
            },
        )
    except Exception as exc:
        return log_and_return_tool_error(
            tool_name="submit-lead",
            exc=exc,
            user_message=(
                "I am having trouble submitting that request right now. "
                "Please try again in a moment."
            ),
        )


@mcp.tool(name="ping-ui")
def ping_ui() -> str:
    """Test UI component loading and chat-client bridge connectivity."""
    return ping_ui_impl(get_settings())


@mcp.tool(name="ping-micro-ui")
def ping_micro_ui() -> str:
    """Ultra-minimal UI test with immediate ui:ready emission."""
    return ping_micro_ui_impl(get_settings())


@mcp.tool(name="search")
async def search(query: str) -> str:
    """Search vehicle listings from a free-text query; returns [{id, title, url}]."""
    try:
        return await search_impl(get_search_service(), get_settings(), query)
    except Exception as exc:
        return log_and_return_tool_error(
            tool_name="search",
            exc=exc,
            user_message="Search failed. Please try again in a moment.",
        )


@mcp.tool(name="fetch")
async def fetch(url: str) -> str:
    """Fetch the content of a URL (text or JSON), truncated to 50,000 characters."""
    try:
        return await fetch_impl(url)
    except Exception as exc:
        return log_and_return_tool_error(
            tool_name="fetch",
            exc=exc,
            user_message="Fetching that URL failed. Please try again in a moment.",
        )


def main() -> None:
    configure_logging(get_settings().log_level)
    logger.info("Starting %s", SERVER_NAME)
    mcp.run()


if __name__ == "__main__":
    main()
