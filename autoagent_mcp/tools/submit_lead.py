"""``submit-lead`` tool implementation: validate, seal, store, forward."""

from __future__ import annotations

import asyncio
import logging
import re
import secrets
import string
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

from autoagent_mcp.clients.dashboard import LeadEnvelope, forward_lead
from autoagent_mcp.config import Settings
from autoagent_mcp.constants import VIN_RE
from autoagent_mcp.crypto import encrypt_json
from autoagent_mcp.data.leads import LeadStore, now_ms
from autoagent_mcp.tools.response import build_tool_result, format_error, render

logger = logging.getLogger(__name__)

TOOL_NAME = "submit-lead"

RATE_LIMIT_MAX_LEADS = 5
RATE_LIMIT_WINDOW_SECONDS = 24 * 60 * 60

_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
_LEAD_ID_ALPHABET = string.ascii_letters + string.digits + "_-"
_LEAD_ID_LENGTH = 21

Forwarder = Callable[..., Awaitable[bool]]

_background_tasks: set[asyncio.Task[Any]] = set()


@dataclass(frozen=True)
class LeadUser:
    name: str
    email: str
    phone: str | None = None
    preferred_time: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"name": self.name, "email": self.email}
        if self.phone is not None:
            data["phone"] = self.phone
        if self.preferred_time is not None:
            data["preferredTime"] = self.preferred_time
        return data


@dataclass(frozen=True)
class LeadRequest:
    vehicle_id: str
    vin: str
    user: LeadUser
    consent: bool
    dealer_id: str | None = None


def new_lead_id() -> str:
    return "".join(secrets.choice(_LEAD_ID_ALPHABET) for _ in range(_LEAD_ID_LENGTH))


def _optional_str(value: Any) -> str | None:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def parse_lead_request(raw: Any) -> LeadRequest:
    """Validate raw ``submit-lead`` arguments; raises ``ValueError`` listing every problem."""
    if not isinstance(raw, dict):
        raise ValueError("Invalid input: expected an object")

    problems: list[str] = []

    vehicle_id = raw.get("vehicleId")
    if not isinstance(vehicle_id, str) or not vehicle_id.strip():
        problems.append("vehicleId is required")

    vin = raw.get("vin")
    if not isinstance(vin, str) or not VIN_RE.fullmatch(vin.strip()):
        problems.append("Invalid VIN format")

    user = raw.get("user")
    name = email = None
    if not isinstance(user, dict):
        problems.append("user is required")
        user = {}
    else:
        name = user.get("name")
        if not isinstance(name, str) or not name.strip():
            problems.append("Name is required")
        email = user.get("email")
        if not isinstance(email, str) or not _EMAIL_RE.fullmatch(email.strip()):
            problems.append("Invalid email format")

    if raw.get("consent") is not True:
        problems.append("Consent must be true")

    if problems:
        raise ValueError(f"Invalid input: {', '.join(problems)}")

    return LeadRequest(
        vehicle_id=vehicle_id.strip(),
        vin=vin.strip().upper(),
        user=LeadUser(
            name=name.strip(),
            email=email.strip(),
            phone=_optional_str(user.get("phone")),
            preferred_time=_optional_str(user.get("preferredTime")),
        ),
        consent=True,
        dealer_id=_optional_str(raw.get("dealerId")),
    )


def _schedule(coro: Awaitable[Any]) -> asyncio.Task[Any]:
    task = asyncio.ensure_future(coro)
    _background_tasks.add(task)
    task.add_done_callback(_background_tasks.discard)
    return task


async def drain_background_tasks() -> None:
    """Wait for scheduled lead forwards (used at shutdown and in tests)."""
    if _background_tasks:
        await asyncio.gather(*list(_background_tasks), return_exceptions=True)


async def submit_lead_impl(
    store: LeadStore,
    encryption_key: bytes,
    settings: Settings,
    params: Any,
    *,
    ip_address: str | None = None,
    forwarder: Forwarder | None = None,
) -> str:
    """Store an encrypted lead and schedule its forward to the dealer dashboard."""
    forwarder = forwarder or forward_lead
    try:
        lead = parse_lead_request(params)
    except ValueError as exc:
        return format_error("INVALID_PARAMS", str(exc))

    if ip_address:
        recent = store.count_recent_by_ip(ip_address, RATE_LIMIT_WINDOW_SECONDS)
        if recent >= RATE_LIMIT_MAX_LEADS:
            return format_error(
                "RATE_LIMITED",
                f"Rate limit exceeded. Maximum {RATE_LIMIT_MAX_LEADS} leads per IP per 24 hours.",
            )

    lead_id = new_lead_id()
    enc_payload = encrypt_json(
        {
            "user": lead.user.to_dict(),
            "vehicleId": lead.vehicle_id,
            "dealerId": lead.dealer_id,
            "vin": lead.vin,
        },
        encryption_key,
    )
    created_at = now_ms()
    store.insert(
        lead_id=lead_id,
        vehicle_id=lead.vehicle_id,
        enc_payload=enc_payload,
        consent=lead.consent,
        created_at=created_at,
        dealer_id=lead.dealer_id,
        vin=lead.vin,
        ip_address=ip_address,
    )

    _schedule(
        forwarder(
            LeadEnvelope(
                lead_id=lead_id,
                vehicle_id=lead.vehicle_id,
                created_at=created_at,
                enc_payload=enc_payload,
                dealer_id=lead.dealer_id,
                vin=lead.vin,
            ),
            ingest_url=settings.dashboard_ingest_url,
            ingest_token=settings.dashboard_ingest_token,
        )
    )

    logger.info(
        "lead_created lead_id=%s vehicle_id=%s dealer_id=%s vin=%s ts=%d",
        lead_id,
        lead.vehicle_id,
        lead.dealer_id,
        lead.vin,
        created_at,
    )

    structured: dict[str, Any] = {
        "leadId": lead_id,
        "vehicleId": lead.vehicle_id,
        "vin": lead.vin,
    }
    if lead.dealer_id is not None:
        structured["dealerId"] = lead.dealer_id
    return render(
        build_tool_result(
            "Lead submitted. We'll confirm with the dealer.",
            structured=structured,
        )
    )
