"""Task repository (SQLite)."""

from __future__ import annotations

from typing import Any

from eventsync.infra.db.sqlite import get_db
from eventsync.infra.repos._common import assignments, clamp_limit, new_id, row_to_dict, utcnow_iso

_UPDATABLE = ("name", "description", "status", "deadline", "assignee_id")


async def create_task(
    *,
    event_id: str,
    name: str,
    description: str = "",
    status: str = "pending",
    deadline: str | None = None,
    assignee_id: str | None = None,
) -> dict:
    now = utcnow_iso()
    row = {
        "id": new_id("tsk"),
        "event_id": event_id,
        "name": name.strip(),
        "description": description or "",
        "status": (status or "pending").strip(),
        "deadline": deadline,
        "assignee_id": assignee_id,
        "created_at": now,
        "updated_at": now,
    }
    db = await get_db()
    try:
        await db.execute(
            "INSERT INTO tasks(id, event_id, name, description, status, deadline, assignee_id, created_at, updated_at) "
            "VALUES (:id, :event_id, :name, :description, :status, :deadline, :assignee_id, :created_at, :updated_at)",
            row,
        )
        await db.commit()
        return row
    finally:
        await db.close()


async def get_task(task_id: str) -> dict | None:
    db = await get_db()
    try:
        cur = await db.execute("SELECT * FROM tasks WHERE id = ? LIMIT 1", (task_id,))
        row = await cur.fetchone()
        return row_to_dict(row) if row else None
    finally:
        await db.close()


async def list_tasks(
    *,
    event_id: str | None = None,
    status: str | None = None,
    limit: int = 500,
    offset: int = 0,
) -> list[dict]:
    clauses = []
    params: list[Any] = []
    if event_id:
        clauses.append("event_id = ?")
        params.append(event_id)
    if status:
        clauses.append("status = ?")
        params.append(status)
    where = f"WHERE {' AND '.join(clauses)}" if clauses else ""
    db = await get_db()
    try:
        cur = await db.execute(
            f"SELECT * FROM tasks {where} ORDER BY created_at ASC LIMIT ? OFFSET ?",
            (*params, clamp_limit(limit, upper=5000), max(0, int(offset))),
        )
        rows = await cur.fetchall()
        return [row_to_dict(r) for r in rows]
    finally:
        await db.close()


async def update_task(task_id: str, fields: dict[str, Any]) -> dict | None:
    """Apply a partial update and return the committed row, or None if absent."""
    clause, params = assignments(fields, _UPDATABLE)
    if not clause:
        return await get_task(task_id)
    db = await get_db()
    try:
        cur = await db.execute(
            f"UPDATE tasks SET {clause}, updated_at = ? WHERE id = ?",
            (*params, utcnow_iso(), task_id),
        )
        if not cur.rowcount:
            await db.rollback()
            return None
        # Read back before commit; the write lock is still held.
        cur = await db.execute("SELECT * FROM tasks WHERE id = ? LIMIT 1", (task_id,))
        row = row_to_dict(await cur.fetchone())
        await db.commit()
        return row
    finally:
        await db.close()


async def update_task_status(task_id: str, status: str) -> dict | None:
    return await update_task(task_id, {"status": status.strip()})


async def delete_task(task_id: str) -> bool:
    db = await get_db()
    try:
        cur = await db.execute("DELETE FROM tasks WHERE id = ?", (task_id,))
        await db.commit()
        return bool(cur.rowcount)
    finally:
        await db.close()
