from __future__ import annotations

from collections.abc import Iterable
from typing import Any

import jwt
from fastapi import HTTPException, Request, status

from config.settings import get_settings
from security.identity import CallerIdentity, normalize_roles

_BEARER = "bearer"


def get_bearer_token(request: Request) -> str | None:
    """Token from ``Authorization: Bearer <token>``, or None when absent or malformed."""
    header = request.headers.get("authorization")
    if not header:
        return None
    scheme, _, token = header.strip().partition(" ")
    token = token.strip()
    if scheme.lower() != _BEARER or not token or " " in token:
        return None
    return token


def verify_jwt(token: str, secret: str, algorithms: Iterable[str]) -> dict[str, Any]:
    """
    Verify signature and expiry of an HMAC-signed token and return its claims.

    Raises HTTPException(401) for anything that does not verify.
    """
    try:
        claims = jwt.decode(token, secret, algorithms=list(algorithms))
    except jwt.ExpiredSignatureError as e:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="JWT expired") from e
    except jwt.InvalidTokenError as e:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid JWT") from e
    if not isinstance(claims, dict):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid JWT claims")
    return claims


def _extract_roles(claims: dict[str, Any]) -> frozenset[str]:
    """
    Roles carried by the token. Supports:
      - roles: list of strings, or one comma-separated string
      - role: a single string
    """
    raw = claims.get("roles")
    if isinstance(raw, str):
        found = raw.split(",")
    elif isinstance(raw, list):
        found = [r for r in raw if isinstance(r, str)]
    else:
        found = []
    single = claims.get("role")
    if isinstance(single, str):
        found.append(single)
    return normalize_roles(found)


def identity_from_claims(claims: dict[str, Any]) -> CallerIdentity:
    """
    Map verified claims to a caller identity.

    The principal is taken from ``sub`` (falling back to ``subject`` or ``user``).
    Verified claims without any of them are refused: a valid token never
    collapses into the anonymous caller.
    """
    for key in ("sub", "subject", "user"):
        value = claims.get(key)
        if isinstance(value, str) and value.strip():
            return CallerIdentity.of(value.strip(), _extract_roles(claims))
    raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="JWT has no subject")


async def caller_identity(request: Request) -> CallerIdentity:
    """
    FastAPI dependency resolving the caller of a request.

    Behavior:
      - No Authorization header: the anonymous identity.
      - Bearer token present but APP_JWT_SECRET unset: 500 (misconfiguration).
      - Invalid or expired token: 401.
      - Otherwise the identity carried by the token's claims.
    """
    token = get_bearer_token(request)
    if not token:
        return CallerIdentity.anonymous()

    settings = get_settings()
    secret = settings.jwt_secret
    if not secret:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Auth misconfigured"
        )
    claims = verify_jwt(token, secret, settings.jwt_algorithms or ["HS256"])
    return identity_from_claims(claims)


__all__ = ["get_bearer_token", "verify_jwt", "identity_from_claims", "caller_identity"]
