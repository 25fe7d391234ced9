"""SQLite lead persistence for the MCP server and the dealer dashboard."""

from __future__ import annotations

import os
import sqlite3
import threading
import time
from typing import Any

_SERVER_SCHEMA = """\
CREATE TABLE IF NOT EXISTS leads (
    id           TEXT PRIMARY KEY,
    dealer_id    TEXT,
    vehicle_id   TEXT NOT NULL,
    vin          TEXT,
    enc_payload  TEXT NOT NULL,
    consent      INTEGER NOT NULL,
    created_at   INTEGER NOT NULL,
    ip_address   TEXT
);
CREATE INDEX IF NOT EXISTS idx_leads_ip_created
    ON leads(ip_address, created_at);
"""

_DASHBOARD_SCHEMA = """\
CREATE TABLE IF NOT EXISTS leads (
    id           TEXT PRIMARY KEY,
    dealer_id    TEXT,
    vehicle_id   TEXT,
    vin          TEXT,
    enc_payload  TEXT,
    created_at   INTEGER
);
CREATE INDEX IF NOT EXISTS idx_leads_created_at
    ON leads(created_at);
"""


def now_ms() -> int:
    return int(time.time() * 1000)


def _connect(db_path: str) -> sqlite3.Connection:
    if db_path != ":memory:":
        directory = os.path.dirname(db_path)
        if directory:
            os.makedirs(directory, exist_ok=True)
    conn = sqlite3.connect(db_path, check_same_thread=False)
    conn.row_factory = sqlite3.Row
    if db_path != ":memory:":
        conn.execute("PRAGMA journal_mode=WAL")
    return conn


class _SqliteStore:
    _schema = ""

    def __init__(self, db_path: str = ":memory:") -> None:
        self._lock = threading.RLock()
        self._conn = _connect(db_path)
        with self._lock:
            self._conn.executescript(self._schema)

    def count(self) -> int:
        with self._lock:
            row = self._conn.execute("SELECT COUNT(*) FROM leads").fetchone()
            return int(row[0])

    def close(self) -> None:
        with self._lock:
            self._conn.close()


class LeadStore(_SqliteStore):
    """Thread-safe store for leads captured by the ``submit-lead`` tool."""

    _schema = _SERVER_SCHEMA

    def insert(
        self,
        *,
        lead_id: str,
        vehicle_id: str,
        enc_payload: str,
        consent: bool,
        created_at: int,
        dealer_id: str | None = None,
        vin: str | None = None,
        ip_address: str | None = None,
    ) -> None:
        with self._lock:
            self._conn.execute(
                """INSERT INTO leads
                   (id, dealer_id, vehicle_id, vin, enc_payload, consent,
                    created_at, ip_address)
                   VALUES (?, ?, ?, ?, ?, ?, ?, ?)""",
                (
                    lead_id,
                    dealer_id,
                    vehicle_id,
                    vin,
                    enc_payload,
                    1 if consent else 0,
                    created_at,
                    ip_address,
                ),
            )
            self._conn.commit()

    def count_recent_by_ip(
        self, ip_address: str, window_seconds: float, *, now: int | None = None
    ) -> int:
        """Leads from ``ip_address`` created within the trailing window."""
        cutoff = (now if now is not None else now_ms()) - int(window_seconds * 1000)
        with self._lock:
            row = self._conn.execute(
                "SELECT COUNT(*) FROM leads WHERE ip_address = ? AND created_at > ?",
                (ip_address, cutoff),
            ).fetchone()
            return int(row[0])

    def list_all(self) -> list[dict[str, Any]]:
        """All leads, newest first."""
        with self._lock:
            rows = self._conn.execute(
                """SELECT id, dealer_id, vehicle_id, vin, enc_payload, consent,
                          created_at, ip_address
                   FROM leads ORDER BY created_at DESC"""
            ).fetchall()
        leads = [dict(r) for r in rows]
        for lead in leads:
            lead["consent"] = bool(lead["consent"])
        return leads


class DashboardLeadStore(_SqliteStore):
    """Lead copies received by the dashboard ingest endpoint."""

    _schema = _DASHBOARD_SCHEMA

    def upsert(
        self,
        *,
        lead_id: str,
        vehicle_id: str,
        enc_payload: str,
        created_at: int,
        dealer_id: str | None = None,
        vin: str | None = None,
    ) -> None:
        with self._lock:
            self._conn.execute(
                """INSERT OR REPLACE INTO leads
                   (id, dealer_id, vehicle_id, vin, enc_payload, created_at)
                   VALUES (?, ?, ?, ?, ?, ?)""",
                (lead_id, dealer_id, vehicle_id, vin, enc_payload, created_at),
            )
            self._conn.commit()

    def recent(self, limit: int = 100) -> list[dict[str, Any]]:
        with self._lock:
            rows = self._conn.execute(
                """SELECT id, dealer_id, vehicle_id, vin, enc_payload, created_at
                   FROM leads ORDER BY created_at DESC LIMIT ?""",
                (limit,),
            ).fetchall()
            return [dict(r) for r in rows]
