"""
Invitation API endpoints.

GET    /api/v1/drawers/invitations/{code}  — Preview an invitation (public)
POST   /api/v1/drawers/join                — Redeem an invitation code
POST   /api/v1/drawers/{id}/invitations    — Issue an invitation (owner)
"""

from __future__ import annotations

import uuid
from datetime import timedelta
from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from drawerhub.api.deps import get_app_settings
from drawerhub.core.auth import get_current_user
from drawerhub.core.config import Settings
from drawerhub.core.database import TransactionCoordinator, get_coordinator, get_session
from drawerhub.models.user import User
from drawerhub.services import invitations as invitation_service
from drawerhub_shared.schemas.common import APIResponse
from drawerhub_shared.schemas.invitations import (
    InvitationCreateRequest,
    InvitationPreviewResponse,
    InvitationResponse,
    JoinByInvitationRequest,
    JoinResultResponse,
)

router = APIRouter()


@router.get(
    "/invitations/{invitation_code}",
    response_model=APIResponse[InvitationPreviewResponse],
)
async def preview_invitation(
    invitation_code: str,
    session: AsyncSession = Depends(get_session),
):
    """Summary of the drawer behind an invitation. No authentication required."""
    preview = await invitation_service.preview_invitation(session, invitation_code)
    drawer = preview.drawer
    return APIResponse(
        data=InvitationPreviewResponse(
            drawer_id=drawer.id,
            drawer_name=drawer.name,
            description=drawer.description,
            image_url=drawer.image_url,
            thumbnail_url=drawer.thumbnail_url,
            member_count=drawer.member_count,
            inviter_name=preview.inviter_name,
        )
    )


@router.post("/join", response_model=APIResponse[JoinResultResponse])
async def join_by_invitation(
    body: JoinByInvitationRequest,
    user: User = Depends(get_current_user),
    coordinator: TransactionCoordinator = Depends(get_coordinator),
):
    drawer = await invitation_service.redeem_invitation(
        coordinator, body.invitation_code, user.id
    )
    return APIResponse(
        data=JoinResultResponse(drawer_id=drawer.id, member_count=drawer.member_count),
        message="Joined the drawer",
    )


@router.post(
    "/{drawer_id}/invitations",
    response_model=APIResponse[InvitationResponse],
    status_code=201,
)
async def issue_invitation(
    drawer_id: uuid.UUID,
    body: Optional[InvitationCreateRequest] = None,
    user: User = Depends(get_current_user),
    coordinator: TransactionCoordinator = Depends(get_coordinator),
    settings: Settings = Depends(get_app_settings),
):
    """Issue an invitation token (owner only)."""
    body = body or InvitationCreateRequest()
    max_uses = (
        body.max_uses
        if "max_uses" in body.model_fields_set
        else settings.invitation_default_max_uses
    )
    ttl = timedelta(days=body.expires_in_days or settings.invitation_ttl_days)

    invitation = await invitation_service.issue_invitation(
        coordinator, drawer_id, user.id, max_uses=max_uses, ttl=ttl
    )
    return APIResponse(
        data=InvitationResponse(
            id=invitation.id,
            invitation_code=invitation.token,
            max_uses=invitation.max_uses,
            expires_at=invitation.expires_at,
        ),
        message="Invitation created",
    )
