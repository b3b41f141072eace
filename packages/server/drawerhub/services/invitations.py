"""
Invitation service — issue, preview and redeem drawer invitation tokens.
"""

from __future__ import annotations

import secrets
import uuid
from dataclasses import dataclass
from datetime import timedelta
from typing import Optional

import structlog
from sqlalchemy import or_, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from drawerhub.core.database import TransactionCoordinator
from drawerhub.core.errors import (
    ConflictError,
    InvitationExhaustedError,
    InvitationExpiredError,
    NotFoundError,
)
from drawerhub.core.permissions import check_role, owner_only
from drawerhub.models.base import utcnow
from drawerhub.models.drawer import Drawer
from drawerhub.models.invitation import DrawerInvitation
from drawerhub.models.user import User
from drawerhub.services import join_requests, membership
from drawerhub_shared.schemas.common import DrawerRole

log = structlog.get_logger()

DEFAULT_TTL = timedelta(days=30)
_NOT_FOUND = "Invalid or expired invitation"


@dataclass
class InvitationPreview:
    drawer: Drawer
    inviter_name: Optional[str]


def generate_invitation_token() -> str:
    """256 bits from the OS CSPRNG, URL-safe."""
    return secrets.token_urlsafe(32)


def _usable(now):
    """SQL condition: the invitation can still be redeemed at ``now``."""
    return (
        or_(
            DrawerInvitation.max_uses.is_(None),
            DrawerInvitation.uses_count < DrawerInvitation.max_uses,
        ),
        DrawerInvitation.expires_at > now,
    )


async def issue_invitation(
    coordinator: TransactionCoordinator,
    drawer_id: uuid.UUID,
    inviter_id: uuid.UUID,
    *,
    max_uses: Optional[int] = 1,
    ttl: timedelta = DEFAULT_TTL,
) -> DrawerInvitation:
    """Create an invitation token. Owner only; ``max_uses=None`` means unlimited."""
    async with coordinator.transaction("invitation.issue") as session:
        await check_role(
            session, drawer_id, inviter_id, owner_only,
            lock=True, message="Only the drawer owner can invite",
        )
        invitation = DrawerInvitation(
            drawer_id=drawer_id,
            inviter_id=inviter_id,
            token=generate_invitation_token(),
            max_uses=max_uses,
            expires_at=utcnow() + ttl,
        )
        session.add(invitation)
        await session.flush()

    log.info(
        "invitation.issued",
        drawer_id=str(drawer_id),
        invitation_id=str(invitation.id),
        max_uses=max_uses,
        expires_at=str(invitation.expires_at),
    )
    return invitation


async def preview_invitation(session: AsyncSession, token: str) -> InvitationPreview:
    """Drawer summary for a usable token.

    Expired, exhausted and unknown tokens all raise the same NotFoundError so
    a caller cannot probe for the existence of an invitation.
    """
    result = await session.execute(
        select(Drawer, User.display_name)
        .join(DrawerInvitation, DrawerInvitation.drawer_id == Drawer.id)
        .join(User, User.id == DrawerInvitation.inviter_id)
        .where(
            DrawerInvitation.token == token,
            Drawer.deleted_at.is_(None),
            *_usable(utcnow()),
        )
    )
    row = result.one_or_none()
    if row is None:
        raise NotFoundError(_NOT_FOUND)
    drawer, inviter_name = row
    return InvitationPreview(drawer=drawer, inviter_name=inviter_name)


async def consume_invitation(
    session: AsyncSession, invitation_id: uuid.UUID
) -> int:
    """Spend one use in a single conditional UPDATE and return the new count.

    Two concurrent redemptions of a one-use token cannot both pass: the
    second UPDATE matches zero rows once the first has taken the last use.
    """
    result = await session.execute(
        update(DrawerInvitation)
        .where(DrawerInvitation.id == invitation_id, *_usable(utcnow()))
        .values(uses_count=DrawerInvitation.uses_count + 1)
        .returning(DrawerInvitation.uses_count)
        .execution_options(synchronize_session=False)
    )
    uses_count = result.scalar_one_or_none()
    if uses_count is None:
        raise InvitationExhaustedError()
    return uses_count


async def _classify(session: AsyncSession, token: str) -> DrawerInvitation:
    """Load the invitation for redemption, failing with the precise reason."""
    now = utcnow()
    result = await session.execute(
        select(DrawerInvitation, (DrawerInvitation.expires_at > now).label("live"))
        .join(Drawer, Drawer.id == DrawerInvitation.drawer_id)
        .where(DrawerInvitation.token == token, Drawer.deleted_at.is_(None))
    )
    row = result.one_or_none()
    if row is None:
        raise NotFoundError(_NOT_FOUND)

    invitation, live = row
    if not live:
        raise InvitationExpiredError()
    if invitation.max_uses is not None and invitation.uses_count >= invitation.max_uses:
        raise InvitationExhaustedError()
    return invitation


async def redeem_invitation(
    coordinator: TransactionCoordinator, token: str, user_id: uuid.UUID
) -> Drawer:
    """Join a drawer with an invitation token.

    Membership insert, count increment and usage increment commit together or
    not at all.
    """
    async with coordinator.transaction("invitation.redeem") as session:
        invitation = await _classify(session, token)
        drawer_id = invitation.drawer_id

        if await membership.get_member(session, drawer_id, user_id) is not None:
            raise ConflictError("Already a member of this drawer")

        await membership.add_member(session, drawer_id, user_id, DrawerRole.MEMBER)
        await membership.increment_count(session, drawer_id)
        uses_count = await consume_invitation(session, invitation.id)
        await join_requests.close_pending_requests(session, drawer_id, user_id)
        await membership.touch_activity(session, drawer_id)

        drawer = await membership.get_active_drawer(session, drawer_id)
        await session.refresh(drawer)

    log.info(
        "invitation.redeemed",
        drawer_id=str(drawer_id),
        invitation_id=str(invitation.id),
        user_id=str(user_id),
        uses_count=uses_count,
    )
    return drawer
