"""Fire-and-forget lead forwarding to the dealer dashboard."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

import aiohttp

logger = logging.getLogger(__name__)

_REQUEST_TIMEOUT = aiohttp.ClientTimeout(total=5)


@dataclass(frozen=True)
class LeadEnvelope:
    lead_id: str
    vehicle_id: str
    created_at: int
    enc_payload: str
    dealer_id: str | None = None
    vin: str | None = None

    def to_json(self) -> dict[str, Any]:
        return {
            "leadId": self.lead_id,
            "dealerId": self.dealer_id,
            "vehicleId": self.vehicle_id,
            "vin": self.vin,
            "createdAt": self.created_at,
            "encPayload": self.enc_payload,
        }


async def forward_lead(
    lead: LeadEnvelope,
    *,
    ingest_url: str | None,
    ingest_token: str | None,
    session: aiohttp.ClientSession | None = None,
) -> bool:
    """POST the sealed lead to the dashboard ingest endpoint.

    Never raises: the lead is already stored locally, so a failed forward is
    only logged. Returns whether the dashboard accepted it.
    """
    if not ingest_url or not ingest_token:
        logger.warning(
            "Dashboard ingest not configured - skipping lead forwarding (lead_id=%s)",
            lead.lead_id,
        )
        return False

    owns_session = session is None
    if session is None:
        session = aiohttp.ClientSession()
    try:
        async with session.post(
            ingest_url,
            json=lead.to_json(),
            headers={"Authorization": f"Bearer {ingest_token}"},
            timeout=_REQUEST_TIMEOUT,
        ) as resp:
            if resp.status >= 400:
                logger.error(
                    "Failed to forward lead to dashboard (lead_id=%s): HTTP %s %s",
                    lead.lead_id,
                    resp.status,
                    resp.reason,
                )
                return False
    except (aiohttp.ClientError, TimeoutError) as exc:
        logger.error(
            "Failed to forward lead to dashboard (lead_id=%s): %s", lead.lead_id, exc
        )
        return False
    finally:
        if owns_session:
            await session.close()

    logger.info(
        "Lead forwarded to dashboard (lead_id=%s dealer_id=%s vehicle_id=%s)",
        lead.lead_id,
        lead.dealer_id,
        lead.vehicle_id,
    )
    return True
