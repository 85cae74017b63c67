"""Auth routes.

Credential issuance is owned by the identity provider in production. The
token route here only exists so local clients and smoke tests can obtain a
token signed with the configured secret.
"""

from __future__ import annotations

import os

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from eventsync.api.auth import get_current_identity
from eventsync.config import get_settings
from eventsync.core.usecases.tokens import Identity, issue_access_token


router = APIRouter(prefix="/api/auth", tags=["auth"])


class TokenRequest(BaseModel):
    username: str = Field(min_length=1, max_length=128)
    password: str = Field(min_length=0, max_length=512)


@router.post("/token")
async def issue_token(req: TokenRequest):
    settings = get_settings()
    admin_user = os.getenv("AUTH_ADMIN_USERNAME", "admin")
    admin_pass = os.getenv("AUTH_ADMIN_PASSWORD", "")
    if not admin_pass or req.username != admin_user or req.password != admin_pass:
        raise HTTPException(
            status_code=401,
            detail={"code": "invalid_credentials", "message": "Invalid credentials", "details": {}},
        )

    token = issue_access_token(
        subject=req.username,
        secret=settings.auth_jwt_secret,
        algorithm=settings.auth_jwt_alg,
        ttl_minutes=settings.auth_access_token_min,
    )
    return {"access_token": token, "token_type": "bearer", "expires_in": settings.auth_access_token_min * 60}


@router.get("/whoami")
async def whoami(identity: Identity = Depends(get_current_identity)):
    return {"subject": identity.subject, "claims": dict(identity.claims)}
