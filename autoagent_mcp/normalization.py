"""Best-effort field parsing for upstream listing payloads.

Upstream listings are loosely typed (numbers arrive as strings, parts go
missing), so every helper here returns ``None`` rather than raising.
"""

from __future__ import annotations

import math
from collections.abc import Iterable
from typing import Any


def _finite(value: float) -> float | None:
    return value if math.isfinite(value) else None


def clean_numeric_string(raw: str) -> str:
    """Keep only digits, ``'.'``, and ``'-'``."""
    return "".join(c for c in raw if c.isdigit() or c in {".", "-"})


def parse_price(value: Any) -> float | None:
    """Best-effort price parsing.  Returns ``None`` for unparseable input."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return _finite(value)
    if isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            return None
        cleaned = clean_numeric_string(stripped)
        if not cleaned:
            return None
        try:
            return _finite(float(cleaned))
        except ValueError:
            return None
    return None


def parse_int(value: Any) -> int | None:
    """Best-effort integer parsing.  Returns ``None`` for unparseable input."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if math.isfinite(value) else None
    if isinstance(value, str):
        parsed = parse_price(value)
        if parsed is None:
            return None
        return int(parsed)
    return None


def parse_float(value: Any) -> float | None:
    """Best-effort float parsing that preserves sign (for lat/lng)."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        try:
            return _finite(float(value))
        except OverflowError:
            return None
    if isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            return None
        try:
            return _finite(float(stripped))
        except ValueError:
            return None
    return None


def clean_text(value: Any) -> str | None:
    """Stripped string form of a scalar, ``None`` when empty or not a scalar."""
    if value is None or isinstance(value, (bool, dict, list)):
        return None
    text = str(value).strip()
    return text or None


def non_empty_parts(values: Iterable[Any]) -> list[str]:
    return [text for text in (clean_text(v) for v in values) if text]


def join_address(*parts: Any) -> str | None:
    """``"street, city, state, zip"`` skipping missing parts."""
    present = non_empty_parts(parts)
    return ", ".join(present) if present else None
