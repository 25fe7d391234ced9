"""Dealer dashboard: lead ingest endpoint, health check and lead listing."""

from __future__ import annotations

import argparse
import hmac
import logging
from datetime import datetime, timezone
from typing import Any

from aiohttp import web

from autoagent_mcp.config import Settings, configure_logging, load_dotenv
from autoagent_mcp.constants import SERVER_VERSION
from autoagent_mcp.crypto import CryptoKeyError, decode_key, decrypt_json
from autoagent_mcp.data.leads import DashboardLeadStore

logger = logging.getLogger(__name__)

SETTINGS_KEY = web.AppKey("settings", Settings)
STORE_KEY = web.AppKey("lead_store", DashboardLeadStore)

_REQUIRED_FIELDS = ("leadId", "vehicleId", "createdAt", "encPayload")


def is_decrypted_lead(data: Any) -> bool:
    """Shape check for a decrypted lead payload."""
    if not isinstance(data, dict):
        return False
    user = data.get("user")
    if not isinstance(user, dict):
        return False
    for optional in ("phone", "preferredTime"):
        if user.get(optional) is not None and not isinstance(user[optional], str):
            return False
    for optional in ("dealerId", "vin"):
        if data.get(optional) is not None and not isinstance(data[optional], str):
            return False
    return (
        isinstance(user.get("name"), str)
        and isinstance(user.get("email"), str)
        and isinstance(data.get("vehicleId"), str)
    )


def _check_bearer(request: web.Request, expected: str) -> str | None:
    header = request.headers.get("Authorization", "")
    if not header.startswith("Bearer "):
        return "Missing or invalid authorization header"
    if not hmac.compare_digest(header[len("Bearer "):], expected):
        return "Invalid token"
    return None


async def ingest_lead(request: web.Request) -> web.Response:
    settings = request.app[SETTINGS_KEY]
    if not settings.dashboard_ingest_token:
        return web.json_response({"error": "Dashboard ingest not configured"}, status=500)

    auth_error = _check_bearer(request, settings.dashboard_ingest_token)
    if auth_error:
        return web.json_response({"error": auth_error}, status=401)

    try:
        body = await request.json()
    except ValueError:
        return web.json_response({"error": "Request body must be JSON"}, status=400)
    if not isinstance(body, dict) or any(not body.get(f) for f in _REQUIRED_FIELDS):
        return web.json_response(
            {"error": f"Missing required fields: {', '.join(_REQUIRED_FIELDS)}"},
            status=400,
        )

    try:
        created_at = int(body["createdAt"])
    except (TypeError, ValueError):
        return web.json_response({"error": "createdAt must be an integer"}, status=400)

    request.app[STORE_KEY].upsert(
        lead_id=str(body["leadId"]),
        vehicle_id=str(body["vehicleId"]),
        enc_payload=str(body["encPayload"]),
        created_at=created_at,
        dealer_id=body.get("dealerId"),
        vin=body.get("vin"),
    )
    logger.info("Lead ingested (lead_id=%s)", body["leadId"])
    return web.json_response({"ok": True})


async def health(request: web.Request) -> web.Response:
    return web.json_response(
        {
            "status": "healthy",
            "service": "dealer-dashboard",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "version": SERVER_VERSION,
        }
    )


def _decrypt_for_display(enc_payload: str, key: bytes | None) -> dict[str, Any] | None:
    if key is None or not enc_payload:
        return None
    try:
        data = decrypt_json(enc_payload, key)
    except ValueError as exc:
        logger.warning("Could not decrypt lead payload: %s", exc)
        return None
    return data if is_decrypted_lead(data) else None


async def list_leads(request: web.Request) -> web.Response:
    settings = request.app[SETTINGS_KEY]
    try:
        limit = int(request.query.get("limit", "100"))
    except ValueError:
        return web.json_response({"error": "limit must be an integer"}, status=400)
    limit = max(1, min(limit, 500))

    key: bytes | None = None
    if settings.lead_enc_key:
        try:
            key = decode_key(settings.lead_enc_key)
        except CryptoKeyError as exc:
            logger.error("Invalid LEAD_ENC_KEY: %s", exc)

    leads = []
    for row in request.app[STORE_KEY].recent(limit):
        leads.append(
            {
                "id": row["id"],
                "dealerId": row["dealer_id"],
                "vehicleId": row["vehicle_id"],
                "vin": row["vin"],
                "createdAt": row["created_at"],
                "lead": _decrypt_for_display(row["enc_payload"], key),
            }
        )
    return web.json_response(
        {"count": len(leads), "canDecrypt": key is not None, "leads": leads}
    )


def create_app(settings: Settings, store: DashboardLeadStore | None = None) -> web.Application:
    app = web.Application()
    app[SETTINGS_KEY] = settings
    app[STORE_KEY] = store or DashboardLeadStore(settings.dashboard_db_path)
    app.router.add_post("/api/ingest/lead", ingest_lead)
    app.router.add_get("/api/leads", list_leads)
    app.router.add_get("/health", health)
    return app


def main() -> None:
    load_dotenv()
    settings = Settings.from_env()
    configure_logging(settings.log_level)
    parser = argparse.ArgumentParser(description="AutoAgent dealer dashboard")
    parser.add_argument("--host", default="127.0.0.1")
    parser.add_argument("--port", type=int, default=3001)
    args = parser.parse_args()
    web.run_app(create_app(settings), host=args.host, port=args.port)


if __name__ == "__main__":
    main()
