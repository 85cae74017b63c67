"""Event + attendee routes."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from eventsync.api.auth import get_current_identity
from eventsync.core.usecases.tokens import Identity
from eventsync.infra.repos.attendees import add_attendee, delete_attendee, list_attendees
from eventsync.infra.repos.events import create_event, delete_event, get_event, list_events, update_event


router = APIRouter(prefix="/api", tags=["events"])


class CreateEventRequest(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    description: str = Field(default="", max_length=5000)
    location: str = Field(default="", max_length=500)
    date: str | None = None


class UpdateEventRequest(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=200)
    description: str | None = Field(default=None, max_length=5000)
    location: str | None = Field(default=None, max_length=500)
    date: str | None = None


@router.post("/events")
async def api_create_event(req: CreateEventRequest, identity: Identity = Depends(get_current_identity)):
    return await create_event(
        name=req.name,
        description=req.description,
        location=req.location,
        date=req.date,
        created_by=identity.subject,
    )


@router.get("/events")
async def api_list_events(limit: int = 50, offset: int = 0, _identity=Depends(get_current_identity)):
    rows = await list_events(limit=limit, offset=offset)
    return {"events": rows}


@router.get("/events/{event_id}")
async def api_get_event(event_id: str, _identity=Depends(get_current_identity)):
    row = await get_event(event_id)
    if not row:
        raise HTTPException(status_code=404, detail="Event not found")
    return row


@router.put("/events/{event_id}")
async def api_update_event(event_id: str, req: UpdateEventRequest, _identity=Depends(get_current_identity)):
    row = await update_event(event_id, req.model_dump(exclude_unset=True, exclude_none=True))
    if not row:
        raise HTTPException(status_code=404, detail="Event not found")
    return row


@router.delete("/events/{event_id}")
async def api_delete_event(event_id: str, _identity=Depends(get_current_identity)):
    if not await delete_event(event_id):
        raise HTTPException(status_code=404, detail="Event not found")
    return {"id": event_id, "deleted": True}


class CreateAttendeeRequest(BaseModel):
    event_id: str = Field(min_length=1)
    name: str = Field(min_length=1, max_length=200)
    email: str = Field(default="", max_length=320)


@router.post("/attendees")
async def api_add_attendee(req: CreateAttendeeRequest, _identity=Depends(get_current_identity)):
    if not await get_event(req.event_id):
        raise HTTPException(status_code=404, detail="Event not found")
    return await add_attendee(event_id=req.event_id, name=req.name, email=req.email)


@router.get("/attendees")
async def api_list_attendees(
    event_id: str | None = None,
    limit: int = 500,
    offset: int = 0,
    _identity=Depends(get_current_identity),
):
    rows = await list_attendees(event_id=event_id, limit=limit, offset=offset)
    return {"attendees": rows}


@router.delete("/attendees/{attendee_id}")
async def api_delete_attendee(attendee_id: str, _identity=Depends(get_current_identity)):
    if not await delete_attendee(attendee_id):
        raise HTTPException(status_code=404, detail="Attendee not found")
    return {"id": attendee_id, "deleted": True}
