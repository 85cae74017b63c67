"""Attendee repository (SQLite)."""

from __future__ import annotations

from eventsync.infra.db.sqlite import get_db
from eventsync.infra.repos._common import clamp_limit, new_id, row_to_dict, utcnow_iso


async def add_attendee(*, event_id: str, name: str, email: str = "") -> dict:
    row = {
        "id": new_id("att"),
        "event_id": event_id,
        "name": name.strip(),
        "email": (email or "").strip(),
        "created_at": utcnow_iso(),
    }
    db = await get_db()
    try:
        await db.execute(
            "INSERT INTO attendees(id, event_id, name, email, created_at) "
            "VALUES (:id, :event_id, :name, :email, :created_at)",
            row,
        )
        await db.commit()
        return row
    finally:
        await db.close()


async def get_attendee(attendee_id: str) -> dict | None:
    db = await get_db()
    try:
        cur = await db.execute("SELECT * FROM attendees WHERE id = ? LIMIT 1", (attendee_id,))
        row = await cur.fetchone()
        return row_to_dict(row) if row else None
    finally:
        await db.close()


async def list_attendees(*, event_id: str | None = None, limit: int = 500, offset: int = 0) -> list[dict]:
    where = "WHERE event_id = ?" if event_id else ""
    params: tuple = (event_id,) if event_id else ()
    db = await get_db()
    try:
        cur = await db.execute(
            f"SELECT * FROM attendees {where} ORDER BY created_at ASC LIMIT ? OFFSET ?",
            (*params, clamp_limit(limit, upper=5000), max(0, int(offset))),
        )
        rows = await cur.fetchall()
        return [row_to_dict(r) for r in rows]
    finally:
        await db.close()


async def delete_attendee(attendee_id: str) -> bool:
    db = await get_db()
    try:
        cur = await db.execute("DELETE FROM attendees WHERE id = ?", (attendee_id,))
        await db.commit()
        return bool(cur.rowcount)
    finally:
        await db.close()
