"""
Authentication for DrawerHub.

Identity is issued elsewhere; requests carry it as ``Authorization: Bearer
<identity token>``, a JWT whose ``sub`` is the external user id (``uid``).
The token is verified with PyJWT and resolved to the local, non-deleted user.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt
import structlog
from fastapi import Depends, Request
from fastapi.security import APIKeyHeader
from sqlalchemy.ext.asyncio import AsyncSession

from drawerhub.core.config import Settings
from drawerhub.core.database import get_session
from drawerhub.core.errors import AuthenticationError
from drawerhub.models.user import User
from drawerhub.services import users as user_service

log = structlog.get_logger()

api_key_header = APIKeyHeader(name="Authorization", auto_error=False)

DEFAULT_TOKEN_LIFETIME = timedelta(hours=1)


# ---------------------------------------------------------------------------
# Identity tokens
# ---------------------------------------------------------------------------

def create_identity_token(
    subject: str,
    settings: Settings,
    *,
    expires_delta: timedelta | None = None,
    claims: dict | None = None,
) -> str:
    """Sign an identity token for ``subject``. Used by tooling and tests.

    ``claims`` adds profile claims (``email``, ``name``, ``picture``).
    """
    now = datetime.now(timezone.utc)
    payload = {
        "sub": subject,
        "iat": now,
        "exp": now + (expires_delta or DEFAULT_TOKEN_LIFETIME),
    }
    if settings.identity_issuer:
        payload["iss"] = settings.identity_issuer
    if claims:
        payload.update(claims)
    return jwt.encode(
        payload, settings.identity_secret, algorithm=settings.identity_algorithm
    )


def decode_identity_claims(token: str, settings: Settings) -> dict:
    """Verify the token and return its claims. Raises jwt.PyJWTError on failure."""
    options = {"require": ["sub", "exp"]}
    return jwt.decode(
        token,
        settings.identity_secret,
        algorithms=[settings.identity_algorithm],
        issuer=settings.identity_issuer,
        options=options,
    )


def decode_identity_token(token: str, settings: Settings) -> str:
    """Verify the token and return its subject."""
    return decode_identity_claims(token, settings)["sub"]


def _bearer(authorization: Optional[str]) -> str:
    if not authorization or not authorization.startswith("Bearer "):
        raise AuthenticationError("Authentication required")
    token = authorization[len("Bearer "):].strip()
    if not token:
        raise AuthenticationError("Authentication required")
    return token


# ---------------------------------------------------------------------------
# Dependencies
# ---------------------------------------------------------------------------

async def get_identity_claims(
    request: Request,
    authorization: Optional[str] = Depends(api_key_header),
) -> dict:
    """Verified claims of the bearer token, whether or not a local user exists."""
    token = _bearer(authorization)
    settings: Settings = request.app.state.settings

    try:
        return decode_identity_claims(token, settings)
    except jwt.PyJWTError as exc:
        log.info("auth.token_rejected", reason=type(exc).__name__)
        raise AuthenticationError("Invalid or expired identity token") from exc


async def get_current_user(
    claims: dict = Depends(get_identity_claims),
    session: AsyncSession = Depends(get_session),
) -> User:
    """Resolve the bearer token to an active user or fail with 401."""
    uid = claims["sub"]
    user = await user_service.get_user_by_uid(session, uid)
    if user is None:
        log.info("auth.unknown_subject", uid=uid)
        raise AuthenticationError("User not found")

    structlog.contextvars.bind_contextvars(user_id=str(user.id))
    return user
