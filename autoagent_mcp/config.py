"""Environment-driven settings for the MCP server and the dealer dashboard."""

from __future__ import annotations

import logging
import os
import sys
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parent.parent
DATA_DIR = Path(__file__).resolve().parent / "data"


def load_dotenv(path: Path = PROJECT_ROOT / ".env") -> None:
    """Load ``KEY=VALUE`` lines into ``os.environ`` without overriding (no extra dependency)."""
    if not path.is_file():
        return
    for line in path.read_text().splitlines():
        line = line.strip()
        if line and not line.startswith("#") and "=" in line:
            k, _, v = line.partition("=")
            os.environ.setdefault(k.strip(), v.strip())


def _int_env(env: Mapping[str, str], name: str, default: int) -> int:
    raw = env.get(name, "").strip()
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from exc
    if value < 0:
        raise ValueError(f"{name} must be >= 0, got {value}")
    return value


def _text_env(env: Mapping[str, str], name: str) -> str | None:
    value = env.get(name, "").strip()
    return value or None


@dataclass(frozen=True)
class Settings:
    marketcheck_api_key: str | None = None
    marketcheck_base_url: str = "https://mc-api.marketcheck.com"
    marketcheck_timeout_ms: int = 2000
    search_timeout_ms: int = 5000
    cache_max_size: int = 200
    cache_ttl_seconds: int = 60
    widget_host: str = "http://localhost:3000"
    diag: bool = False
    dashboard_ingest_url: str | None = None
    dashboard_ingest_token: str | None = None
    lead_enc_key: str | None = None
    environment: str = "development"
    db_path: str = str(DATA_DIR / "autoagent.db")
    dashboard_db_path: str = str(DATA_DIR / "dashboard.db")
    log_level: str = "INFO"

    @property
    def is_production(self) -> bool:
        return self.environment.lower() == "production"

    @property
    def marketcheck_timeout_seconds(self) -> float:
        return self.marketcheck_timeout_ms / 1000

    @property
    def search_timeout_seconds(self) -> float:
        return self.search_timeout_ms / 1000

    @classmethod
    def from_env(cls, env: Mapping[str, str] | None = None) -> Settings:
        env = os.environ if env is None else env
        defaults = cls()
        return cls(
            marketcheck_api_key=_text_env(env, "MARKETCHECK_API_KEY"),
            marketcheck_base_url=(
                _text_env(env, "MARKETCHECK_BASE_URL") or defaults.marketcheck_base_url
            ),
            marketcheck_timeout_ms=_int_env(
                env, "MARKETCHECK_TIMEOUT_MS", defaults.marketcheck_timeout_ms
            ),
            search_timeout_ms=_int_env(env, "SEARCH_TIMEOUT_MS", defaults.search_timeout_ms),
            cache_max_size=_int_env(env, "SEARCH_CACHE_MAX_SIZE", defaults.cache_max_size),
            cache_ttl_seconds=_int_env(
                env, "SEARCH_CACHE_TTL_SECONDS", defaults.cache_ttl_seconds
            ),
            widget_host=(_text_env(env, "WIDGET_HOST") or defaults.widget_host).rstrip("/"),
            diag=env.get("AA_DIAG", "").strip() == "1",
            dashboard_ingest_url=_text_env(env, "DASHBOARD_INGEST_URL"),
            dashboard_ingest_token=_text_env(env, "DASHBOARD_INGEST_TOKEN"),
            lead_enc_key=_text_env(env, "LEAD_ENC_KEY"),
            environment=_text_env(env, "AUTOAGENT_ENV") or defaults.environment,
            db_path=_text_env(env, "AUTOAGENT_DB_PATH") or defaults.db_path,
            dashboard_db_path=(
                _text_env(env, "DASHBOARD_DB_PATH") or defaults.dashboard_db_path
            ),
            log_level=(_text_env(env, "LOG_LEVEL") or defaults.log_level).upper(),
        )


def configure_logging(level: str = "INFO") -> None:
    """Log to stderr; stdout belongs to the MCP stdio transport."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        stream=sys.stderr,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
