"""
Drawer API endpoints.

GET    /api/v1/drawers                 — List the caller's drawers
GET    /api/v1/drawers/search          — Keyword search over public drawers
POST   /api/v1/drawers                 — Create a drawer (caller becomes owner)
PATCH  /api/v1/drawers/{id}/info       — Update name/description/images (admin+)
PATCH  /api/v1/drawers/{id}/settings   — Update visibility flags (owner)
PATCH  /api/v1/drawers/{id}/master     — Transfer ownership (owner)
POST   /api/v1/drawers/{id}/leave      — Leave a drawer
DELETE /api/v1/drawers/{id}            — Soft-delete a drawer (owner)
"""

from __future__ import annotations

import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from drawerhub.api.deps import get_app_settings
from drawerhub.core.auth import get_current_user
from drawerhub.core.config import Settings
from drawerhub.core.database import TransactionCoordinator, get_coordinator, get_session
from drawerhub.models.user import User
from drawerhub.services import drawers as drawer_service
from drawerhub_shared.schemas.common import APIResponse, DrawerRole
from drawerhub_shared.schemas.drawers import (
    DrawerCreatedResponse,
    DrawerCreateRequest,
    DrawerInfoResponse,
    DrawerInfoUpdateRequest,
    DrawerResponse,
    DrawerSettingsResponse,
    DrawerSettingsUpdateRequest,
    MyDrawerItem,
    TransferMasterRequest,
)

router = APIRouter()


@router.get("", response_model=APIResponse[list[MyDrawerItem]])
async def list_my_drawers(
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    """Drawers the caller belongs to, most recently active first."""
    rows = await drawer_service.list_my_drawers(session, user.id)
    items = [
        MyDrawerItem(
            **DrawerResponse.model_validate(drawer).model_dump(),
            role=DrawerRole(member.role),
            notification_level=member.notification_level,
            joined_at=member.joined_at,
        )
        for drawer, member in rows
    ]
    return APIResponse(data=items)


@router.get("/search", response_model=APIResponse[list[DrawerResponse]])
async def search_drawers(
    q: str = Query("", description="Keyword, at least 2 characters"),
    limit: Optional[int] = Query(None, ge=1),
    offset: int = Query(0, ge=0),
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
    settings: Settings = Depends(get_app_settings),
):
    limit = min(limit or settings.search_default_limit, settings.search_max_limit)
    drawers = await drawer_service.search_drawers(session, q, limit=limit, offset=offset)
    return APIResponse(data=[DrawerResponse.model_validate(d) for d in drawers])


@router.post("", response_model=APIResponse[DrawerCreatedResponse], status_code=201)
async def create_drawer(
    body: DrawerCreateRequest,
    user: User = Depends(get_current_user),
    coordinator: TransactionCoordinator = Depends(get_coordinator),
):
    """Create a drawer. The creator becomes its owner."""
    drawer, owner = await drawer_service.create_drawer(coordinator, user.id, body)
    data = DrawerCreatedResponse(
        **DrawerResponse.model_validate(drawer).model_dump(),
        role=DrawerRole(owner.role),
    )
    return APIResponse(data=data, message="Drawer created")


@router.patch("/{drawer_id}/info", response_model=APIResponse[DrawerInfoResponse])
async def update_drawer_info(
    drawer_id: uuid.UUID,
    body: DrawerInfoUpdateRequest,
    user: User = Depends(get_current_user),
    coordinator: TransactionCoordinator = Depends(get_coordinator),
):
    drawer = await drawer_service.update_info(coordinator, drawer_id, user.id, body)
    return APIResponse(data=DrawerInfoResponse.model_validate(drawer))


@router.patch("/{drawer_id}/settings", response_model=APIResponse[DrawerSettingsResponse])
async def update_drawer_settings(
    drawer_id: uuid.UUID,
    body: DrawerSettingsUpdateRequest,
    user: User = Depends(get_current_user),
    coordinator: TransactionCoordinator = Depends(get_coordinator),
):
    settings = await drawer_service.update_settings(coordinator, drawer_id, user.id, body)
    return APIResponse(data=DrawerSettingsResponse.model_validate(settings))


@router.patch("/{drawer_id}/master", response_model=APIResponse[None])
async def transfer_master(
    drawer_id: uuid.UUID,
    body: TransferMasterRequest,
    user: User = Depends(get_current_user),
    coordinator: TransactionCoordinator = Depends(get_coordinator),
):
    """Hand ownership to another member. The caller becomes an admin."""
    await drawer_service.transfer_master(coordinator, drawer_id, user.id, body.user_id)
    return APIResponse(message="Ownership transferred")


@router.post("/{drawer_id}/leave", response_model=APIResponse[None])
async def leave_drawer(
    drawer_id: uuid.UUID,
    user: User = Depends(get_current_user),
    coordinator: TransactionCoordinator = Depends(get_coordinator),
):
    await drawer_service.leave_drawer(coordinator, drawer_id, user.id)
    return APIResponse(message="Left the drawer")


@router.delete("/{drawer_id}", response_model=APIResponse[None])
async def delete_drawer(
    drawer_id: uuid.UUID,
    user: User = Depends(get_current_user),
    coordinator: TransactionCoordinator = Depends(get_coordinator),
):
    await drawer_service.delete_drawer(coordinator, drawer_id, user.id)
    return APIResponse(message="Drawer deleted")
