"""Shared tool response helpers: the content/components envelope and error payloads."""

from __future__ import annotations

import json
import logging
import uuid
from typing import Any
from urllib.parse import quote, urlsplit

logger = logging.getLogger(__name__)


class ToolResultShapeError(ValueError):
    """A tool produced an envelope the chat client cannot render."""


def new_run_id() -> str:
    return str(uuid.uuid4())


def widget_url(host: str, widget: str, run_id: str, *, diag: bool = False) -> str:
    url = f"{host.rstrip('/')}/widget/{widget}?rid={quote(run_id, safe='')}"
    if diag:
        url += "&diag=1"
    return url


def build_tool_result(
    text: str,
    *,
    structured: Any = None,
    components: list[dict[str, str]] | None = None,
) -> dict[str, Any]:
    result: dict[str, Any] = {"content": [{"type": "text", "text": text}]}
    if structured is not None:
        result["structuredContent"] = structured
    result["components"] = components or []
    return result


def iframe(url: str) -> dict[str, str]:
    return {"type": "iframe", "url": url}


def _is_absolute_url(url: Any) -> bool:
    if not isinstance(url, str):
        return False
    parts = urlsplit(url)
    return parts.scheme in ("http", "https") and bool(parts.netloc)


def validate_tool_result(result: Any, *, require_components: bool = True) -> dict[str, Any]:
    """Check the envelope shape; raises :class:`ToolResultShapeError`."""
    if not isinstance(result, dict):
        raise ToolResultShapeError("tool result must be an object")

    content = result.get("content")
    if not isinstance(content, list) or not content:
        raise ToolResultShapeError("content must be a non-empty list")
    for item in content:
        if (
            not isinstance(item, dict)
            or item.get("type") != "text"
            or not isinstance(item.get("text"), str)
        ):
            raise ToolResultShapeError("content items must be {type: 'text', text: str}")

    components = result.get("components")
    if not isinstance(components, list):
        raise ToolResultShapeError("components must be a list")
    if require_components and not components:
        raise ToolResultShapeError("components must be a non-empty list")
    for component in components:
        if not isinstance(component, dict) or component.get("type") != "iframe":
            raise ToolResultShapeError("components must be iframes")
        if not _is_absolute_url(component.get("url")):
            raise ToolResultShapeError(
                f"component url must be an absolute http(s) URL: {component.get('url')!r}"
            )
    return result


def render(result: dict[str, Any]) -> str:
    return json.dumps(result, indent=2, default=str)


def format_error(code: str, message: str, details: dict[str, Any] | None = None) -> str:
    payload: dict[str, Any] = {"error": True, "code": code, "message": message}
    if details:
        payload["details"] = details
    return render(payload)


def log_and_return_tool_error(*, tool_name: str, exc: Exception, user_message: str) -> str:
    """Log an unexpected tool failure and return a user-safe error payload."""
    logger.exception("Tool %s failed: %s", tool_name, exc)
    return format_error("INTERNAL_ERROR", user_message)
