"""Shared external API clients."""

from autoagent_mcp.clients.dashboard import LeadEnvelope, forward_lead
from autoagent_mcp.clients.marketcheck import MarketCheckClient

__all__ = [
    "LeadEnvelope",
    "MarketCheckClient",
    "forward_lead",
]
