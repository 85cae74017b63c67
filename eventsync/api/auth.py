"""Access gate for HTTP routes and WebSocket upgrades."""

from __future__ import annotations

from fastapi import HTTPException, Security, WebSocket, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from loguru import logger

from eventsync.config import Settings, get_settings
from eventsync.core.usecases.tokens import AuthError, Identity, verify_token
from eventsync.observability.metrics import record_auth_rejection

BEARER = HTTPBearer(auto_error=False)

WS_CLOSE_UNAUTHORIZED = 4401
WS_CLOSE_FORBIDDEN_ORIGIN = 4403


def _unauthorized(error: AuthError) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail={"code": f"auth_{error.kind.value}", "message": str(error), "details": {}},
        headers={"WWW-Authenticate": "Bearer"},
    )


def verify_credential(token: str | None, *, settings: Settings | None = None) -> Identity:
    settings = settings or get_settings()
    return verify_token(token, secret=settings.auth_jwt_secret, algorithm=settings.auth_jwt_alg)


async def get_current_identity(
    credentials: HTTPAuthorizationCredentials | None = Security(BEARER),
) -> Identity:
    token = None
    if credentials and credentials.scheme.lower() == "bearer":
        token = credentials.credentials
    try:
        return verify_credential(token)
    except AuthError as exc:
        record_auth_rejection("http", exc.kind.value)
        raise _unauthorized(exc) from exc


def origin_allowed(origin: str | None, *, settings: Settings | None = None) -> bool:
    """Browsers always send Origin on upgrades; non-browser clients may omit it."""
    if not origin:
        return True
    allowed = (settings or get_settings()).allowed_origin
    return allowed == "*" or origin.strip().rstrip("/") == allowed


def extract_websocket_token(websocket: WebSocket) -> str | None:
    auth_header = websocket.headers.get("authorization", "")
    if auth_header.lower().startswith("bearer "):
        return auth_header[7:].strip()
    # Socket.IO-style clients can only pass the token in the query string.
    return websocket.query_params.get("token")


async def authenticate_websocket(websocket: WebSocket) -> Identity | None:
    """Gate a WebSocket handshake. Rejected sockets are closed before accept."""
    settings = get_settings()
    if not origin_allowed(websocket.headers.get("origin"), settings=settings):
        record_auth_rejection("websocket", "origin")
        logger.info("websocket upgrade refused: origin {} not allowed", websocket.headers.get("origin"))
        await websocket.close(code=WS_CLOSE_FORBIDDEN_ORIGIN)
        return None

    try:
        return verify_credential(extract_websocket_token(websocket), settings=settings)
    except AuthError as exc:
        record_auth_rejection("websocket", exc.kind.value)
        logger.info("websocket upgrade refused: {}", exc.kind.value)
        await websocket.close(code=WS_CLOSE_UNAUTHORIZED, reason=exc.kind.value)
        return None
