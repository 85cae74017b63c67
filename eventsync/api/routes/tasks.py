"""Task routes.

Every successful task mutation hands a `TaskChangeEvent` to the broadcast hub
after the row is committed. Failed or rejected mutations publish nothing.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from eventsync.api.auth import get_current_identity
from eventsync.api.deps import get_hub
from eventsync.core.task_events import TaskChangeEvent
from eventsync.core.usecases.tokens import Identity
from eventsync.infra.repos.attendees import get_attendee
from eventsync.infra.repos.events import get_event
from eventsync.infra.repos.tasks import create_task, delete_task, get_task, list_tasks, update_task, update_task_status
from eventsync.realtime.hub import BroadcastHub


router = APIRouter(prefix="/api", tags=["tasks"])

_NULLABLE = {"deadline", "assignee_id"}


class CreateTaskRequest(BaseModel):
    event_id: str = Field(min_length=1)
    name: str = Field(min_length=1, max_length=200)
    description: str = Field(default="", max_length=5000)
    status: str = Field(default="pending", min_length=1, max_length=64)
    deadline: str | None = None
    assignee_id: str | None = None


class UpdateTaskRequest(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=200)
    description: str | None = Field(default=None, max_length=5000)
    status: str | None = Field(default=None, min_length=1, max_length=64)
    deadline: str | None = None
    assignee_id: str | None = None


class UpdateTaskStatusRequest(BaseModel):
    status: str = Field(min_length=1, max_length=64)


async def _require_assignee(assignee_id: str | None) -> None:
    if assignee_id and not await get_attendee(assignee_id):
        raise HTTPException(status_code=404, detail="Attendee not found")


@router.post("/tasks")
async def api_create_task(req: CreateTaskRequest, _identity=Depends(get_current_identity)):
    if not await get_event(req.event_id):
        raise HTTPException(status_code=404, detail="Event not found")
    await _require_assignee(req.assignee_id)
    return await create_task(
        event_id=req.event_id,
        name=req.name,
        description=req.description,
        status=req.status,
        deadline=req.deadline,
        assignee_id=req.assignee_id,
    )


@router.get("/tasks")
async def api_list_tasks(
    event_id: str | None = None,
    status: str | None = None,
    limit: int = 500,
    offset: int = 0,
    _identity=Depends(get_current_identity),
):
    rows = await list_tasks(event_id=event_id, status=status, limit=limit, offset=offset)
    return {"tasks": rows}


@router.get("/tasks/{task_id}")
async def api_get_task(task_id: str, _identity=Depends(get_current_identity)):
    row = await get_task(task_id)
    if not row:
        raise HTTPException(status_code=404, detail="Task not found")
    return row


@router.put("/tasks/{task_id}")
async def api_update_task(
    task_id: str,
    req: UpdateTaskRequest,
    identity: Identity = Depends(get_current_identity),
    hub: BroadcastHub = Depends(get_hub),
):
    fields = req.model_dump(exclude_unset=True)
    # deadline and assignee can be cleared; the rest are NOT NULL columns.
    fields = {k: v for k, v in fields.items() if v is not None or k in _NULLABLE}
    await _require_assignee(fields.get("assignee_id"))
    row = await update_task(task_id, fields)
    if not row:
        raise HTTPException(status_code=404, detail="Task not found")
    if fields:
        await hub.publish(TaskChangeEvent.from_task(row, originator=identity.subject))
    return row


@router.put("/tasks/{task_id}/status")
async def api_update_task_status(
    task_id: str,
    req: UpdateTaskStatusRequest,
    identity: Identity = Depends(get_current_identity),
    hub: BroadcastHub = Depends(get_hub),
):
    row = await update_task_status(task_id, req.status)
    if not row:
        raise HTTPException(status_code=404, detail="Task not found")
    await hub.publish(TaskChangeEvent.from_task(row, originator=identity.subject))
    return row


@router.delete("/tasks/{task_id}")
async def api_delete_task(task_id: str, _identity=Depends(get_current_identity)):
    if not await delete_task(task_id):
        raise HTTPException(status_code=404, detail="Task not found")
    return {"id": task_id, "deleted": True}
