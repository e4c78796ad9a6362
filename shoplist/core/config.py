"""
Configuration helpers for the shoplist backend.

Settings are read once from the environment so routers/services/repositories
never fetch os.environ directly.
"""

from dataclasses import dataclass
from functools import lru_cache
import os

STORAGE_BACKENDS = ("memory", "sql", "parse")
DEFAULT_PARSE_SERVER_URL = "https://parseapi.back4app.com/"


@dataclass(frozen=True)
class Settings:
    """Typed view of environment variables."""

    app_env: str
    storage_backend: str
    database_url: str
    parse_server_url: str
    parse_app_id: str
    parse_client_key: str
    parse_master_key: str
    parse_timeout_seconds: float
    session_ttl_seconds: int
    log_level: str


@lru_cache
def get_settings() -> Settings:
    """Read the current environment and build a Settings instance."""
    def _int(value: str, default: int = 0) -> int:
        try:
            return int(value)
        except (TypeError, ValueError):
            return default

    def _float(value: str, default: float = 0.0) -> float:
        try:
            return float(value)
        except (TypeError, ValueError):
            return default

    return Settings(
        app_env=(os.getenv("APP_ENV") or "dev").lower(),
        storage_backend=(os.getenv("STORAGE_BACKEND") or "memory").strip().lower(),
        database_url=os.getenv("DATABASE_URL", ""),
        parse_server_url=os.getenv("PARSE_SERVER_URL", DEFAULT_PARSE_SERVER_URL),
        parse_app_id=os.getenv("PARSE_APP_ID", ""),
        parse_client_key=os.getenv("PARSE_CLIENT_KEY", ""),
        parse_master_key=os.getenv("PARSE_MASTER_KEY", ""),
        parse_timeout_seconds=_float(os.getenv("PARSE_TIMEOUT_SECONDS", "10"), 10.0),
        session_ttl_seconds=_int(os.getenv("SESSION_TTL_SECONDS", "86400"), 86400),
        log_level=(os.getenv("LOG_LEVEL") or "INFO").upper(),
    )
