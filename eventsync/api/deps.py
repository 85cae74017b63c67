"""Request-scoped access to the realtime objects created at startup."""

from __future__ import annotations

from fastapi import Request

from eventsync.realtime.hub import BroadcastHub


def get_hub(request: Request) -> BroadcastHub:
    return request.app.state.hub
