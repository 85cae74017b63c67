"""Bearer token verification.

`verify_token` is a pure function of the credential, the verification key and
the clock. The checks run in a fixed order and the first failing one decides
the error kind:

    presence -> structure -> signature -> expiry
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Iterable, Mapping

import jwt


class AuthErrorKind(str, Enum):
    MISSING = "missing"
    MALFORMED = "malformed"
    INVALID_SIGNATURE = "invalid_signature"
    EXPIRED = "expired"


_MESSAGES = {
    AuthErrorKind.MISSING: "Authentication required.",
    AuthErrorKind.MALFORMED: "Malformed access token.",
    AuthErrorKind.INVALID_SIGNATURE: "Invalid access token.",
    AuthErrorKind.EXPIRED: "Access token expired.",
}


class AuthError(PermissionError):
    def __init__(self, kind: AuthErrorKind, message: str | None = None):
        self.kind = AuthErrorKind(kind)
        super().__init__(message or _MESSAGES[self.kind])


@dataclass(frozen=True)
class Identity:
    subject: str
    claims: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "claims", MappingProxyType(dict(self.claims)))


_RESERVED_CLAIMS = {"sub", "exp", "iat", "nbf"}


def issue_access_token(
    *,
    subject: str,
    secret: str,
    algorithm: str = "HS256",
    ttl_minutes: int = 60,
    claims: Mapping[str, Any] | None = None,
    now: float | None = None,
) -> str:
    """Sign a short-lived token. Issuance proper lives outside this service;
    this is used by the dev token route and by tests."""
    issued_at = int(now if now is not None else time.time())
    payload: dict[str, Any] = {k: v for k, v in (claims or {}).items() if k not in _RESERVED_CLAIMS}
    payload.update(
        {
            "sub": subject,
            "iat": issued_at,
            "exp": issued_at + max(1, int(ttl_minutes)) * 60,
        }
    )
    return jwt.encode(payload, secret, algorithm=algorithm)


def verify_token(
    credential: str | None,
    *,
    secret: str,
    algorithm: str | Iterable[str] = "HS256",
    now: float | None = None,
) -> Identity:
    token = (credential or "").strip()
    if not token:
        raise AuthError(AuthErrorKind.MISSING)

    algorithms = [algorithm] if isinstance(algorithm, str) else list(algorithm)
    try:
        # exp is checked below, after the signature, so an expired but
        # otherwise valid token is always reported as expired.
        payload = jwt.decode(
            token,
            secret,
            algorithms=algorithms,
            options={"verify_exp": False, "verify_iat": False, "verify_nbf": False, "require": ["sub", "exp"]},
        )
    except (jwt.InvalidSignatureError, jwt.InvalidAlgorithmError) as exc:
        raise AuthError(AuthErrorKind.INVALID_SIGNATURE) from exc
    except jwt.PyJWTError as exc:
        raise AuthError(AuthErrorKind.MALFORMED) from exc

    subject = payload.get("sub")
    exp = payload.get("exp")
    if not isinstance(subject, str) or not subject.strip():
        raise AuthError(AuthErrorKind.MALFORMED, "Invalid token payload.")
    if isinstance(exp, bool) or not isinstance(exp, (int, float)):
        raise AuthError(AuthErrorKind.MALFORMED, "Invalid token payload.")

    current = time.time() if now is None else float(now)
    if float(exp) <= current:
        raise AuthError(AuthErrorKind.EXPIRED)

    claims = {k: v for k, v in payload.items() if k != "sub"}
    return Identity(subject=subject.strip(), claims=claims)
