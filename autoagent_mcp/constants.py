"""Shared constants used across multiple modules.

Single source of truth for the VIN pattern, result caps and search vocabulary.
"""

from __future__ import annotations

import re

VIN_RE = re.compile(r"^[A-HJ-NPR-Z0-9]{11,17}$", re.IGNORECASE)

CONDITIONS: frozenset[str] = frozenset({"new", "used"})

MAX_RESULTS = 20
MAX_RADIUS_MILES = 500

SERVER_NAME = "autoagent-mcp-server"
SERVER_VERSION = "1.0.0"
