"""System diagnostics."""

from __future__ import annotations

import platform
import time

from fastapi import APIRouter, Depends

from eventsync.api.auth import get_current_identity
from eventsync.api.deps import get_hub
from eventsync.config import get_settings
from eventsync.infra.db.sqlite import get_db
from eventsync.realtime.hub import BroadcastHub


router = APIRouter(prefix="/api/system", tags=["system"])


@router.get("/readiness")
async def api_readiness(_identity=Depends(get_current_identity), hub: BroadcastHub = Depends(get_hub)):
    settings = get_settings()
    checks = {
        "database": {"ok": False},
        "auth": {"ok": bool(settings.auth_jwt_secret), "algorithm": settings.auth_jwt_alg},
        "realtime": {
            "ok": True,
            "connections": len(hub.registry),
            "delivery_failures": hub.failures,
            "allowed_origin": settings.allowed_origin,
        },
        "platform": {"ok": True, "value": platform.platform()},
    }

    try:
        db = await get_db()
        try:
            cur = await db.execute("SELECT 1 AS ok")
            row = await cur.fetchone()
            checks["database"]["ok"] = bool(row and int(row["ok"]) == 1)
        finally:
            await db.close()
    except Exception as exc:
        checks["database"]["error"] = str(exc)

    return {"timestamp": int(time.time()), "checks": checks}
