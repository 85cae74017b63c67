"""Shared helpers for SQLite repositories."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Any


def utcnow_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def new_id(prefix: str | None = None) -> str:
    value = uuid.uuid4().hex
    return f"{prefix}_{value}" if prefix else value


def row_to_dict(row) -> dict[str, Any]:
    return dict(row) if row else {}


def clamp_limit(limit: int, *, upper: int = 500) -> int:
    return max(1, min(int(limit), upper))


def assignments(fields: dict[str, Any], allowed: tuple[str, ...]) -> tuple[str, list[Any]]:
    """Build a `col = ?, ...` clause for the allowed keys present in `fields`."""
    cols = [name for name in allowed if name in fields]
    return ", ".join(f"{name} = ?" for name in cols), [fields[name] for name in cols]
