"""
Drawer member API endpoints.

GET    /api/v1/drawers/{id}/members      — List active members
PATCH  /api/v1/drawers/{id}/users/{uid}  — Change a member's role (owner)
DELETE /api/v1/drawers/{id}/users        — Remove a member (owner, body ``userId``)
"""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Body, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from drawerhub.core.auth import get_current_user
from drawerhub.core.database import TransactionCoordinator, get_coordinator, get_session
from drawerhub.models.user import User
from drawerhub.services import drawers as drawer_service
from drawerhub_shared.schemas.common import APIResponse, DrawerRole
from drawerhub_shared.schemas.members import (
    KickMemberRequest,
    MemberResponse,
    MemberRoleUpdateRequest,
)

router = APIRouter()


@router.get("/{drawer_id}/members", response_model=APIResponse[list[MemberResponse]])
async def list_members(
    drawer_id: uuid.UUID,
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    rows = await drawer_service.list_members(session, drawer_id)
    items = [
        MemberResponse(
            user_id=profile.id,
            display_name=profile.display_name,
            user_code=profile.user_code,
            email=profile.email,
            image_url=profile.image_url,
            role=DrawerRole(member.role),
            notification_level=member.notification_level,
            nickname_in_drawer=member.nickname_in_drawer,
            joined_at=member.joined_at,
        )
        for member, profile in rows
    ]
    return APIResponse(data=items)


@router.patch("/{drawer_id}/users/{user_id}", response_model=APIResponse[None])
async def change_member_role(
    drawer_id: uuid.UUID,
    user_id: uuid.UUID,
    body: MemberRoleUpdateRequest,
    user: User = Depends(get_current_user),
    coordinator: TransactionCoordinator = Depends(get_coordinator),
):
    await drawer_service.change_member_role(
        coordinator, drawer_id, user_id, body.role, user.id
    )
    return APIResponse(message="Member role updated")


@router.delete("/{drawer_id}/users", response_model=APIResponse[None])
async def kick_member(
    drawer_id: uuid.UUID,
    body: KickMemberRequest = Body(...),
    user: User = Depends(get_current_user),
    coordinator: TransactionCoordinator = Depends(get_coordinator),
):
    await drawer_service.kick_member(coordinator, drawer_id, body.user_id, user.id)
    return APIResponse(message="Member removed")
