"""``search-vehicles`` tool implementation."""

from __future__ import annotations

import logging
from typing import Any

from autoagent_mcp.config import Settings
from autoagent_mcp.errors import SearchError
from autoagent_mcp.search.orchestrator import SearchOutcome, VehicleSearchService
from autoagent_mcp.tools.response import (
    build_tool_result,
    iframe,
    new_run_id,
    render,
    validate_tool_result,
    widget_url,
)

logger = logging.getLogger(__name__)

TOOL_NAME = "search-vehicles"


def build_search_tool_result(
    outcome: SearchOutcome, settings: Settings, *, run_id: str | None = None
) -> dict[str, Any]:
    run_id = run_id or new_run_id()
    result = outcome.result
    url = widget_url(settings.widget_host, "vehicle-results", run_id, diag=settings.diag)
    logger.debug("diag.tool run_id=%s url=%s", run_id, url)
    return validate_tool_result(
        build_tool_result(
            f"Found {result.total_count} vehicles (run {run_id})",
            structured={
                "results": {
                    **result.to_dict(),
                    "searchParams": outcome.params.to_dict(),
                }
            },
            components=[iframe(url)],
        )
    )


async def run_vehicle_search(
    service: VehicleSearchService, settings: Settings, params: Any
) -> SearchOutcome:
    """Run a search and emit the ``search`` log event for both outcomes."""
    has_key = bool(settings.marketcheck_api_key)
    try:
        outcome = await service.search(params)
    except SearchError as exc:
        logger.error(
            "search_error has_key=%s code=%s message=%s", has_key, exc.code, exc
        )
        raise
    logger.info(
        "search has_key=%s from_cache=%s results=%d ms=%d",
        has_key,
        outcome.from_cache,
        len(outcome.result.vehicles),
        outcome.elapsed_ms,
    )
    return outcome


async def search_vehicles_impl(
    service: VehicleSearchService,
    settings: Settings,
    params: dict[str, Any],
) -> str:
    """Search live listings (cache first) and return the rendered tool envelope."""
    try:
        outcome = await run_vehicle_search(service, settings, params)
    except SearchError as exc:
        return render(exc.to_payload())
    return render(build_search_tool_result(outcome, settings))
