"""
Join request API endpoints.

POST   /api/v1/drawers/{id}/requests        — Ask to join
GET    /api/v1/drawers/{id}/requests        — Pending requests (owner)
PATCH  /api/v1/drawers/{id}/requests/{rid}  — Approve (owner)
DELETE /api/v1/drawers/{id}/requests/{rid}  — Reject (owner)
"""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from drawerhub.core.auth import get_current_user
from drawerhub.core.database import TransactionCoordinator, get_coordinator, get_session
from drawerhub.models.user import User
from drawerhub.services import join_requests as join_request_service
from drawerhub_shared.schemas.common import APIResponse, JoinRequestStatus
from drawerhub_shared.schemas.join_requests import (
    JoinOutcome,
    JoinRequestItem,
    JoinRequestResult,
)

router = APIRouter()


@router.post(
    "/{drawer_id}/requests",
    response_model=APIResponse[JoinRequestResult],
    status_code=201,
)
async def request_join(
    drawer_id: uuid.UUID,
    user: User = Depends(get_current_user),
    coordinator: TransactionCoordinator = Depends(get_coordinator),
):
    """Queue a request on approval-gated drawers, join open public ones directly."""
    attempt = await join_request_service.request_join(coordinator, drawer_id, user.id)
    result = JoinRequestResult(
        outcome=attempt.outcome,
        request_id=attempt.request.id if attempt.request else None,
    )
    message = (
        "Join request submitted"
        if attempt.outcome is JoinOutcome.PENDING
        else "Joined the drawer"
    )
    return APIResponse(data=result, message=message)


@router.get("/{drawer_id}/requests", response_model=APIResponse[list[JoinRequestItem]])
async def list_pending_requests(
    drawer_id: uuid.UUID,
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    rows = await join_request_service.list_pending_requests(session, drawer_id, user.id)
    items = [
        JoinRequestItem(
            request_id=join_request.id,
            user_id=requester.id,
            display_name=requester.display_name,
            user_code=requester.user_code,
            email=requester.email,
            image_url=requester.image_url,
            status=JoinRequestStatus(join_request.status),
            created_at=join_request.created_at,
        )
        for join_request, requester in rows
    ]
    return APIResponse(data=items)


@router.patch(
    "/{drawer_id}/requests/{request_id}",
    response_model=APIResponse[JoinRequestResult],
)
async def approve_request(
    drawer_id: uuid.UUID,
    request_id: uuid.UUID,
    user: User = Depends(get_current_user),
    coordinator: TransactionCoordinator = Depends(get_coordinator),
):
    join_request = await join_request_service.approve_request(
        coordinator, drawer_id, request_id, user.id
    )
    return APIResponse(
        data=JoinRequestResult(outcome=JoinOutcome.JOINED, request_id=join_request.id),
        message="Join request approved",
    )


@router.delete("/{drawer_id}/requests/{request_id}", response_model=APIResponse[None])
async def reject_request(
    drawer_id: uuid.UUID,
    request_id: uuid.UUID,
    user: User = Depends(get_current_user),
    coordinator: TransactionCoordinator = Depends(get_coordinator),
):
    await join_request_service.reject_request(coordinator, drawer_id, request_id, user.id)
    return APIResponse(message="Join request rejected")
