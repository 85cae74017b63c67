"""Event repository (SQLite)."""

from __future__ import annotations

from typing import Any

from eventsync.infra.db.sqlite import get_db
from eventsync.infra.repos._common import assignments, clamp_limit, new_id, row_to_dict, utcnow_iso

_UPDATABLE = ("name", "description", "location", "date")


async def create_event(
    *,
    name: str,
    description: str = "",
    location: str = "",
    date: str | None = None,
    created_by: str | None = None,
) -> dict:
    eid = new_id("evt")
    now = utcnow_iso()
    row = {
        "id": eid,
        "name": name.strip() or "Event",
        "description": description or "",
        "location": location or "",
        "date": date,
        "created_by": created_by,
        "created_at": now,
        "updated_at": now,
    }
    db = await get_db()
    try:
        await db.execute(
            "INSERT INTO events(id, name, description, location, date, created_by, created_at, updated_at) "
            "VALUES (:id, :name, :description, :location, :date, :created_by, :created_at, :updated_at)",
            row,
        )
        await db.commit()
        return row
    finally:
        await db.close()


async def get_event(event_id: str) -> dict | None:
    db = await get_db()
    try:
        cur = await db.execute("SELECT * FROM events WHERE id = ? LIMIT 1", (event_id,))
        row = await cur.fetchone()
        return row_to_dict(row) if row else None
    finally:
        await db.close()


async def list_events(limit: int = 50, offset: int = 0) -> list[dict]:
    db = await get_db()
    try:
        cur = await db.execute(
            "SELECT * FROM events ORDER BY created_at DESC LIMIT ? OFFSET ?",
            (clamp_limit(limit), max(0, int(offset))),
        )
        rows = await cur.fetchall()
        return [row_to_dict(r) for r in rows]
    finally:
        await db.close()


async def update_event(event_id: str, fields: dict[str, Any]) -> dict | None:
    clause, params = assignments(fields, _UPDATABLE)
    if not clause:
        return await get_event(event_id)
    db = await get_db()
    try:
        cur = await db.execute(
            f"UPDATE events SET {clause}, updated_at = ? WHERE id = ?",
            (*params, utcnow_iso(), event_id),
        )
        if not cur.rowcount:
            await db.rollback()
            return None
        cur = await db.execute("SELECT * FROM events WHERE id = ? LIMIT 1", (event_id,))
        row = row_to_dict(await cur.fetchone())
        await db.commit()
        return row
    finally:
        await db.close()


async def delete_event(event_id: str) -> bool:
    db = await get_db()
    try:
        cur = await db.execute("DELETE FROM events WHERE id = ?", (event_id,))
        await db.commit()
        return bool(cur.rowcount)
    finally:
        await db.close()
