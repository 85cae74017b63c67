"""eventsync configuration.

Settings are read once from the environment (and an optional `.env` next to
the package) and frozen for the lifetime of the process.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path

from dotenv import load_dotenv


def _as_int(value: str | None, default: int) -> int:
    try:
        return int(str(value).strip())
    except Exception:
        return int(default)


def _as_float(value: str | None, default: float) -> float:
    try:
        return float(str(value).strip())
    except Exception:
        return float(default)


def _as_path(value: str | None, default: Path) -> Path:
    raw = (value or "").strip()
    return Path(raw) if raw else default


@dataclass(frozen=True)
class Settings:
    base_dir: Path
    db_path: Path
    sqlite_busy_timeout_ms: int

    # Auth
    auth_jwt_secret: str
    auth_jwt_alg: str
    auth_access_token_min: int

    # Realtime
    allowed_origin: str
    connection_idle_timeout_sec: float
    connection_outbox_size: int
    ws_heartbeat_sec: float


class ConfigurationError(RuntimeError):
    pass


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    base_dir = Path(__file__).resolve().parents[1]
    load_dotenv(dotenv_path=base_dir / ".env", override=False)

    db_path = _as_path(os.getenv("EVENTSYNC_DATABASE_PATH"), base_dir / ".runtime" / "data" / "eventsync.db")
    if not db_path.is_absolute():
        db_path = base_dir / db_path

    return Settings(
        base_dir=base_dir,
        db_path=db_path,
        sqlite_busy_timeout_ms=_as_int(os.getenv("EVENTSYNC_SQLITE_BUSY_TIMEOUT_MS"), 5000),
        auth_jwt_secret=os.getenv("AUTH_JWT_SECRET", "").strip(),
        auth_jwt_alg=os.getenv("AUTH_JWT_ALG", "HS256").strip() or "HS256",
        auth_access_token_min=max(1, _as_int(os.getenv("AUTH_ACCESS_TOKEN_MIN"), 60)),
        allowed_origin=(os.getenv("FRONTEND_URL") or "http://localhost:3000").strip().rstrip("/"),
        connection_idle_timeout_sec=max(0.05, _as_float(os.getenv("EVENTSYNC_CONNECTION_IDLE_TIMEOUT_SEC"), 5.0)),
        connection_outbox_size=max(1, _as_int(os.getenv("EVENTSYNC_CONNECTION_OUTBOX_SIZE"), 256)),
        ws_heartbeat_sec=max(1.0, _as_float(os.getenv("EVENTSYNC_WS_HEARTBEAT_SEC"), 25.0)),
    )


def require_runtime_settings(settings: Settings) -> None:
    """Fail fast on misconfiguration that would otherwise surface per request."""
    if not settings.auth_jwt_secret:
        raise ConfigurationError("AUTH_JWT_SECRET is not configured; refusing to start.")
