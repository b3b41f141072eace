"""
Join request workflow: PENDING -> APPROVED | REJECTED, one way only.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from typing import Optional

import structlog
from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from drawerhub.core.database import TransactionCoordinator
from drawerhub.core.errors import ConflictError, ForbiddenError, NotFoundError
from drawerhub.core.permissions import check_role, owner_only
from drawerhub.models.base import utcnow
from drawerhub.models.drawer import Drawer, DrawerSettings
from drawerhub.models.join_request import DrawerJoinRequest
from drawerhub.models.user import User
from drawerhub.services import membership
from drawerhub_shared.schemas.common import (
    JOIN_REQUEST_TRANSITIONS,
    DrawerRole,
    JoinRequestStatus,
)
from drawerhub_shared.schemas.join_requests import JoinOutcome

log = structlog.get_logger()


@dataclass
class JoinAttempt:
    outcome: JoinOutcome
    request: Optional[DrawerJoinRequest] = None


async def _get_settings(
    session: AsyncSession, drawer_id: uuid.UUID
) -> Optional[DrawerSettings]:
    result = await session.execute(
        select(DrawerSettings)
        .join(Drawer, Drawer.id == DrawerSettings.drawer_id)
        .where(DrawerSettings.drawer_id == drawer_id, Drawer.deleted_at.is_(None))
    )
    return result.scalar_one_or_none()


async def _pending_request_exists(
    session: AsyncSession, drawer_id: uuid.UUID, user_id: uuid.UUID
) -> bool:
    result = await session.execute(
        select(DrawerJoinRequest.id).where(
            DrawerJoinRequest.drawer_id == drawer_id,
            DrawerJoinRequest.user_id == user_id,
            DrawerJoinRequest.status == JoinRequestStatus.PENDING.value,
        )
    )
    return result.first() is not None


async def close_pending_requests(
    session: AsyncSession, drawer_id: uuid.UUID, user_id: uuid.UUID
) -> int:
    """Mark the user's PENDING requests APPROVED once they joined another way.

    Called by join paths that grant membership without an approval, so a
    satisfied request does not linger in the owner's queue.
    """
    result = await session.execute(
        update(DrawerJoinRequest)
        .where(
            DrawerJoinRequest.drawer_id == drawer_id,
            DrawerJoinRequest.user_id == user_id,
            DrawerJoinRequest.status == JoinRequestStatus.PENDING.value,
        )
        .values(status=JoinRequestStatus.APPROVED.value, updated_at=utcnow())
        .execution_options(synchronize_session=False)
    )
    if result.rowcount:
        log.info(
            "join_request.closed",
            drawer_id=str(drawer_id),
            user_id=str(user_id),
            count=result.rowcount,
        )
    return result.rowcount


async def request_join(
    coordinator: TransactionCoordinator, drawer_id: uuid.UUID, user_id: uuid.UUID
) -> JoinAttempt:
    """Ask to join a drawer.

    Approval-gated drawers get a PENDING request. Public drawers without
    approval are joined on the spot. Private, ungated drawers are closed.
    """
    async with coordinator.transaction("join_request.create") as session:
        settings = await _get_settings(session, drawer_id)
        if settings is None:
            raise NotFoundError("Drawer not found")

        if not settings.is_public and not settings.require_approval:
            raise ForbiddenError("This drawer is private")

        if await membership.get_member(session, drawer_id, user_id) is not None:
            raise ConflictError("Already a member of this drawer")

        if settings.require_approval:
            if await _pending_request_exists(session, drawer_id, user_id):
                raise ConflictError("A join request is already pending")
            join_request = DrawerJoinRequest(
                drawer_id=drawer_id,
                user_id=user_id,
                status=JoinRequestStatus.PENDING.value,
            )
            session.add(join_request)
            await session.flush()
            attempt = JoinAttempt(outcome=JoinOutcome.PENDING, request=join_request)
        else:
            await membership.add_member(session, drawer_id, user_id, DrawerRole.MEMBER)
            await membership.increment_count(session, drawer_id)
            await membership.touch_activity(session, drawer_id)
            await close_pending_requests(session, drawer_id, user_id)
            attempt = JoinAttempt(outcome=JoinOutcome.JOINED)

    log.info(
        "join_request.submitted",
        drawer_id=str(drawer_id),
        user_id=str(user_id),
        outcome=attempt.outcome.value,
    )
    return attempt


async def _transition(
    session: AsyncSession,
    drawer_id: uuid.UUID,
    request_id: uuid.UUID,
    target: JoinRequestStatus,
) -> DrawerJoinRequest:
    """Move a PENDING request to ``target`` with a conditional UPDATE."""
    if target not in JOIN_REQUEST_TRANSITIONS[JoinRequestStatus.PENDING]:
        raise ValueError(f"Invalid join request target state: {target}")

    result = await session.execute(
        select(DrawerJoinRequest).where(
            DrawerJoinRequest.id == request_id,
            DrawerJoinRequest.drawer_id == drawer_id,
        )
    )
    join_request = result.scalar_one_or_none()
    if join_request is None:
        raise NotFoundError("Join request not found")

    updated = await session.execute(
        update(DrawerJoinRequest)
        .where(
            DrawerJoinRequest.id == request_id,
            DrawerJoinRequest.status == JoinRequestStatus.PENDING.value,
        )
        .values(status=target.value, updated_at=utcnow())
        .execution_options(synchronize_session=False)
    )
    if updated.rowcount != 1:
        raise ConflictError("Join request has already been processed")

    await session.refresh(join_request)
    return join_request


async def approve_request(
    coordinator: TransactionCoordinator,
    drawer_id: uuid.UUID,
    request_id: uuid.UUID,
    approver_id: uuid.UUID,
) -> DrawerJoinRequest:
    async with coordinator.transaction("join_request.approve") as session:
        await check_role(
            session, drawer_id, approver_id, owner_only,
            lock=True, message="Only the drawer owner can approve requests",
        )
        join_request = await _transition(
            session, drawer_id, request_id, JoinRequestStatus.APPROVED
        )
        await membership.add_member(
            session, drawer_id, join_request.user_id, DrawerRole.MEMBER
        )
        await membership.increment_count(session, drawer_id)
        await membership.touch_activity(session, drawer_id)

    log.info(
        "join_request.approved",
        drawer_id=str(drawer_id),
        request_id=str(request_id),
        user_id=str(join_request.user_id),
    )
    return join_request


async def reject_request(
    coordinator: TransactionCoordinator,
    drawer_id: uuid.UUID,
    request_id: uuid.UUID,
    approver_id: uuid.UUID,
) -> DrawerJoinRequest:
    async with coordinator.transaction("join_request.reject") as session:
        await check_role(
            session, drawer_id, approver_id, owner_only,
            lock=True, message="Only the drawer owner can reject requests",
        )
        join_request = await _transition(
            session, drawer_id, request_id, JoinRequestStatus.REJECTED
        )

    log.info(
        "join_request.rejected",
        drawer_id=str(drawer_id),
        request_id=str(request_id),
    )
    return join_request


async def list_pending_requests(
    session: AsyncSession, drawer_id: uuid.UUID, approver_id: uuid.UUID
) -> list[tuple[DrawerJoinRequest, User]]:
    """Pending requests with the requester's profile, oldest first. Owner only."""
    await check_role(session, drawer_id, approver_id, owner_only)
    result = await session.execute(
        select(DrawerJoinRequest, User)
        .join(User, User.id == DrawerJoinRequest.user_id)
        .where(
            DrawerJoinRequest.drawer_id == drawer_id,
            DrawerJoinRequest.status == JoinRequestStatus.PENDING.value,
        )
        .order_by(DrawerJoinRequest.created_at.asc())
    )
    return [(join_request, user) for join_request, user in result.all()]
