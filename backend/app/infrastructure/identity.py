"""Identity Resolution: bearer access token -> Caller (user id + parsed role claim).

Invariants:
    - No token, bad signature, expired token or non-UUID subject -> None (unauthenticated)
    - Role claim read from app_metadata.role, then user_metadata.role, then role
    - Unknown role strings yield Caller(role=None); the guard forbids every operation

Design Decisions:
    - PyJWT HS256 verification against the provider's shared secret: the token is
      the only identity input, no session cookie lookup
    - Resolution returns None instead of raising: the Authorization Guard owns
      the Unauthenticated decision so routes have one failure path
"""

import logging
from uuid import UUID

import jwt
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from app.config import Settings, get_settings
from app.core.authorization import Caller
from app.core.domain_types import Role, UserId

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


def _role_claim(claims: dict) -> object:
    for container in ("app_metadata", "user_metadata"):
        meta = claims.get(container)
        if isinstance(meta, dict) and meta.get("role") is not None:
            return meta["role"]
    return claims.get("role")


def resolve_caller(token: str, settings: Settings) -> Caller | None:
    """Decode and verify an access token; None when it does not identify anyone."""
    try:
        claims = jwt.decode(
            token,
            settings.auth_jwt_secret,
            algorithms=[settings.auth_jwt_algorithm],
            audience=settings.auth_jwt_audience,
            options={
                "require": ["sub", "exp"],
                "verify_aud": settings.auth_jwt_audience is not None,
            },
        )
    except jwt.PyJWTError as e:
        logger.info(f"Rejected access token: {type(e).__name__}")
        return None

    try:
        user_id = UserId(UUID(str(claims["sub"])))
    except ValueError:
        logger.info("Rejected access token: subject is not a UUID")
        return None
    return Caller(user_id=user_id, role=Role.parse(_role_claim(claims)))


async def get_caller(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    settings: Settings = Depends(get_settings),
) -> Caller | None:
    """FastAPI dependency: the resolved caller, or None for anonymous requests."""
    if credentials is None or not credentials.credentials:
        return None
    return resolve_caller(credentials.credentials, settings)
