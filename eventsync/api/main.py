"""FastAPI entrypoint for eventsync."""

from __future__ import annotations

import time
import uuid
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Request, WebSocket
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from loguru import logger
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from eventsync.api.routes.auth import router as auth_router
from eventsync.api.routes.events import router as events_router
from eventsync.api.routes.system import router as system_router
from eventsync.api.routes.tasks import router as tasks_router
from eventsync.api.ws.tasks import stream_task_updates
from eventsync.config import get_settings, require_runtime_settings
from eventsync.infra.db.sqlite import init_db
from eventsync.observability.context import CORRELATION_HEADER, get_correlation_id, set_correlation_id
from eventsync.observability.metrics import HTTP_REQUEST_LATENCY_SEC, HTTP_REQUESTS_TOTAL
from eventsync.realtime.hub import BroadcastHub
from eventsync.realtime.registry import ConnectionRegistry


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()
    require_runtime_settings(settings)
    try:
        info = await init_db(settings=settings)
    except Exception as exc:
        raise RuntimeError(f"Database initialization failed for {settings.db_path}.") from exc
    logger.info("database ready at {} (applied migrations: {})", info["db_path"], info["applied"] or "none")

    registry = ConnectionRegistry(outbox_size=settings.connection_outbox_size)
    app.state.registry = registry
    app.state.hub = BroadcastHub(registry, send_timeout_sec=settings.connection_idle_timeout_sec)
    yield
    closed = await registry.close_all()
    logger.info("shutdown: closed {} realtime connections", closed)


settings = get_settings()

app = FastAPI(
    title="eventsync",
    description="Shared events, attendees and tasks with live task updates",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[settings.allowed_origin],
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization", CORRELATION_HEADER],
    allow_credentials=settings.allowed_origin != "*",
)

app.include_router(auth_router)
app.include_router(events_router)
app.include_router(tasks_router)
app.include_router(system_router)


@app.middleware("http")
async def correlation_and_metrics_middleware(request: Request, call_next):
    incoming_correlation = request.headers.get(CORRELATION_HEADER) or str(uuid.uuid4())
    set_correlation_id(incoming_correlation)
    start = time.perf_counter()
    status_code = 500
    try:
        response = await call_next(request)
        status_code = int(getattr(response, "status_code", 500))
        response.headers[CORRELATION_HEADER] = incoming_correlation
        return response
    finally:
        route = request.scope.get("route")
        path = getattr(route, "path", request.url.path)
        duration = max(0.0, time.perf_counter() - start)
        HTTP_REQUESTS_TOTAL.labels(request.method, path, str(status_code)).inc()
        HTTP_REQUEST_LATENCY_SEC.labels(request.method, path).observe(duration)
        set_correlation_id("")


@app.exception_handler(HTTPException)
async def http_exception_handler(_request: Request, exc: HTTPException):
    detail = exc.detail
    if isinstance(detail, dict):
        code = detail.get("code", "http_error")
        message = detail.get("message", "Request failed.")
        details = detail.get("details", {})
        if not isinstance(details, dict):
            details = {"detail": details}
    else:
        code = "http_error"
        message = str(detail)
        details = {}
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "code": code,
            "message": message,
            "details": {**details, "correlation_id": get_correlation_id()},
        },
        headers=exc.headers,
    )


@app.exception_handler(Exception)
async def unhandled_exception_handler(_request: Request, exc: Exception):
    logger.opt(exception=exc).error("unhandled error (correlation_id={})", get_correlation_id())
    return JSONResponse(
        status_code=500,
        content={
            "code": "internal_error",
            "message": "Internal server error.",
            "details": {"correlation_id": get_correlation_id()},
        },
    )


@app.get("/api/health")
async def health():
    return {"status": "ok", "service": "eventsync"}


@app.get("/metrics")
async def metrics():
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)


@app.websocket("/ws/tasks")
async def ws_tasks(websocket: WebSocket):
    await stream_task_updates(websocket)
