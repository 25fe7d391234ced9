"""Deterministic cache keys for vehicle searches."""

from __future__ import annotations

import json
from typing import Any

from autoagent_mcp.search.models import SearchParams, parse_search_params


def derive_cache_key(params: SearchParams | dict[str, Any]) -> str:
    """Canonical JSON of the present search attributes, keys sorted.

    Absent optionals are left out, so a search without ``maxPrice`` never
    collides with one that sets it.
    """
    if not isinstance(params, SearchParams):
        params = parse_search_params(params)
    return json.dumps(params.to_dict(), sort_keys=True, separators=(",", ":"))
