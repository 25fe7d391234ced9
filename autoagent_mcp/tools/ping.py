"""Diagnostic widget tools used to check iframe delivery in the chat client."""

from __future__ import annotations

import logging

from autoagent_mcp.config import Settings
from autoagent_mcp.tools.response import (
    build_tool_result,
    iframe,
    new_run_id,
    render,
    validate_tool_result,
    widget_url,
)

logger = logging.getLogger(__name__)


def ping_ui_impl(settings: Settings, *, run_id: str | None = None) -> str:
    run_id = run_id or new_run_id()
    url = widget_url(settings.widget_host, "ping", run_id, diag=True)
    logger.info("diag.tool tool=ping-ui run_id=%s url=%s", run_id, url)
    result = build_tool_result(f"Pinging UI (run {run_id})", components=[iframe(url)])
    return render(validate_tool_result(result))


def ping_micro_ui_impl(settings: Settings, *, run_id: str | None = None) -> str:
    """Smallest possible widget, for checking that the iframe bridge loads at all."""
    run_id = run_id or new_run_id()
    url = widget_url(settings.widget_host, "micro", run_id, diag=True)
    logger.info("diag.tool tool=ping-micro-ui run_id=%s url=%s", run_id, url)
    result = build_tool_result(
        f"Pinging MICRO UI (run {run_id})", components=[iframe(url)]
    )
    return render(validate_tool_result(result))
