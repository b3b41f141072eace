"""
User lookups and first-login provisioning. Profiles are owned by the identity
provider; this service maps an external subject to the local row.
"""

from __future__ import annotations

import uuid
from typing import Optional

import structlog
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from drawerhub.core.errors import AuthenticationError
from drawerhub.models.user import User

log = structlog.get_logger()


async def get_user_by_uid(session: AsyncSession, uid: str) -> Optional[User]:
    """Active user for an external identity subject, or None."""
    result = await session.execute(
        select(User).where(User.uid == uid, User.deleted_at.is_(None))
    )
    return result.scalar_one_or_none()


async def get_user(session: AsyncSession, user_id: uuid.UUID) -> Optional[User]:
    result = await session.execute(
        select(User).where(User.id == user_id, User.deleted_at.is_(None))
    )
    return result.scalar_one_or_none()


async def register_user(
    session: AsyncSession,
    uid: str,
    *,
    email: Optional[str] = None,
    display_name: Optional[str] = None,
    user_code: Optional[str] = None,
    image_url: Optional[str] = None,
) -> User:
    """Insert the local row for a subject the identity provider already knows.

    Used by provisioning scripts and tests. Commits on the given session.
    """
    user = User(
        uid=uid,
        email=email,
        display_name=display_name,
        user_code=user_code,
        image_url=image_url,
    )
    session.add(user)
    await session.commit()
    await session.refresh(user)
    log.info("user.registered", user_id=str(user.id), uid=uid)
    return user


async def sign_up_or_login(session: AsyncSession, claims: dict) -> tuple[User, bool]:
    """Return the local user for verified identity ``claims``, creating it on
    first login. The flag is True when the row was created by this call.

    Profile fields come from the ``email``, ``name`` and ``picture`` claims;
    without ``name`` the display name is the local part of the email.
    A soft-deleted user stays locked out.
    """
    uid = claims["sub"]
    result = await session.execute(select(User).where(User.uid == uid))
    user = result.scalar_one_or_none()
    if user is not None:
        if user.deleted_at is not None:
            log.info("auth.deleted_subject", uid=uid)
            raise AuthenticationError("User not found")
        return user, False

    email = claims.get("email")
    display_name = claims.get("name") or (email.split("@")[0] if email else None)
    try:
        user = await register_user(
            session,
            uid,
            email=email,
            display_name=display_name,
            image_url=claims.get("picture"),
        )
    except IntegrityError:
        # Lost a race with a concurrent first login for the same subject.
        await session.rollback()
        user = await get_user_by_uid(session, uid)
        if user is None:
            raise
        return user, False
    return user, True
