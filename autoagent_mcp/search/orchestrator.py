"""Vehicle search pipeline: validate, cache lookup, upstream call, store.

Failure policy: upstream problems (missing credentials, HTTP errors,
timeouts, malformed responses) surface as typed :mod:`autoagent_mcp.errors`
exceptions. There is no static sample-data fallback, and failed searches
never touch the cache.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Protocol

from autoagent_mcp.errors import ConfigurationError, UpstreamTimeoutError
from autoagent_mcp.search.cache import LRUCache
from autoagent_mcp.search.keys import derive_cache_key
from autoagent_mcp.search.models import SearchParams, SearchResult, parse_search_params

logger = logging.getLogger(__name__)

DEFAULT_SEARCH_TIMEOUT_SECONDS = 5.0


class ListingsClient(Protocol):
    """What the orchestrator needs from an upstream adapter."""

    async def __aenter__(self) -> ListingsClient: ...

    async def __aexit__(self, *args: Any) -> None: ...

    async def search_vehicles(self, params: SearchParams) -> SearchResult: ...


ClientFactory = Callable[[], "ListingsClient | None"]


@dataclass(frozen=True)
class SearchOutcome:
    result: SearchResult
    params: SearchParams
    cache_key: str
    from_cache: bool
    elapsed_ms: int


class VehicleSearchService:
    """Ties the shared result cache to the upstream listings adapter.

    ``client_factory`` returns a fresh adapter per upstream call, or ``None``
    when no credentials are configured.
    """

    def __init__(
        self,
        cache: LRUCache[SearchResult],
        client_factory: ClientFactory,
        *,
        timeout_seconds: float = DEFAULT_SEARCH_TIMEOUT_SECONDS,
    ) -> None:
        self._cache = cache
        self._client_factory = client_factory
        self._timeout = timeout_seconds

    @property
    def cache(self) -> LRUCache[SearchResult]:
        return self._cache

    async def search(self, raw_params: Any) -> SearchOutcome:
        started = time.monotonic()
        params = parse_search_params(raw_params)
        key = derive_cache_key(params)

        cached = self._cache.get(key)
        if cached is not None:
            return SearchOutcome(cached, params, key, True, _elapsed_ms(started))

        client = self._client_factory()
        if client is None:
            raise ConfigurationError(
                "MarketCheck API key not configured. "
                "Please set MARKETCHECK_API_KEY environment variable."
            )

        try:
            result = await asyncio.wait_for(
                self._call_upstream(client, params), timeout=self._timeout
            )
        except TimeoutError as exc:
            raise UpstreamTimeoutError(
                f"Vehicle search timed out after {self._timeout:g}s.",
                details={"timeout_seconds": self._timeout},
            ) from exc

        self._cache.set(key, result)
        return SearchOutcome(result, params, key, False, _elapsed_ms(started))

    async def _call_upstream(
        self, client: ListingsClient, params: SearchParams
    ) -> SearchResult:
        async with client as active:
            return await active.search_vehicles(params)


def _elapsed_ms(started: float) -> int:
    return int((time.monotonic() - started) * 1000)
