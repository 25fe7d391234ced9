"""Error taxonomy for the vehicle search pipeline."""

from __future__ import annotations

from typing import Any


class SearchError(RuntimeError):
    """Base for search failures, carrying structured metadata for tool responses."""

    default_code = "SEARCH_ERROR"

    def __init__(
        self,
        message: str,
        *,
        code: str | None = None,
        status: int | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.code = code or self.default_code
        self.status = status
        self.details = details or {}

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"error": True, "code": self.code, "message": str(self)}
        if self.status is not None:
            payload["status"] = self.status
        if self.details:
            payload["details"] = self.details
        return payload


class ValidationError(SearchError, ValueError):
    """Malformed or out-of-range input. Never reaches the cache or upstream."""

    default_code = "INVALID_PARAMS"


class ConfigurationError(SearchError):
    """Upstream credentials are missing."""

    default_code = "MISSING_API_KEY"


class UpstreamError(SearchError):
    default_code = "UPSTREAM_ERROR"


class UpstreamHttpError(UpstreamError):
    default_code = "UPSTREAM_HTTP_ERROR"

    def __init__(
        self,
        status: int,
        status_text: str = "",
        *,
        details: dict[str, Any] | None = None,
    ) -> None:
        message = f"HTTP {status}: {status_text}" if status_text else f"HTTP {status}"
        super().__init__(message, status=status, details=details)
        self.status_text = status_text


class UpstreamTimeoutError(UpstreamError):
    """Raised when either the adapter or the orchestrator deadline expires."""

    default_code = "TIMEOUT"


class UpstreamProtocolError(UpstreamError):
    default_code = "UPSTREAM_PROTOCOL_ERROR"


class UpstreamNetworkError(UpstreamError):
    default_code = "NETWORK_ERROR"
