"""
Drawer service — creation, search, info/settings updates, ownership transfer,
membership removal and soft deletion.
"""

from __future__ import annotations

import uuid
from typing import Optional

import structlog
from sqlalchemy import or_, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from drawerhub.core.database import TransactionCoordinator
from drawerhub.core.errors import (
    ConflictError,
    ForbiddenError,
    NotFoundError,
    ValidationError,
)
from drawerhub.core.permissions import any_member, at_least, check_role, owner_only
from drawerhub.models.base import utcnow
from drawerhub.models.drawer import Drawer, DrawerSettings
from drawerhub.models.drawer_user import DrawerUser
from drawerhub.models.user import User
from drawerhub.services import membership
from drawerhub_shared.schemas.common import DrawerRole
from drawerhub_shared.schemas.drawers import (
    DrawerCreateRequest,
    DrawerInfoUpdateRequest,
    DrawerSettingsUpdateRequest,
)

log = structlog.get_logger()

MIN_KEYWORD_LENGTH = 2


def _escape_like(keyword: str) -> str:
    return keyword.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------

async def search_drawers(
    session: AsyncSession, keyword: str, limit: int = 20, offset: int = 0
) -> list[Drawer]:
    """Public drawers whose name or description contains ``keyword``."""
    keyword = (keyword or "").strip()
    if len(keyword) < MIN_KEYWORD_LENGTH:
        raise ValidationError(
            f"Search keyword must be at least {MIN_KEYWORD_LENGTH} characters"
        )

    pattern = f"%{_escape_like(keyword)}%"
    result = await session.execute(
        select(Drawer)
        .join(DrawerSettings, DrawerSettings.drawer_id == Drawer.id)
        .where(
            Drawer.deleted_at.is_(None),
            DrawerSettings.is_public.is_(True),
            or_(
                Drawer.name.ilike(pattern, escape="\\"),
                Drawer.description.ilike(pattern, escape="\\"),
            ),
        )
        .order_by(Drawer.last_activity_at.desc())
        .limit(limit)
        .offset(offset)
    )
    return list(result.scalars().all())


async def list_my_drawers(
    session: AsyncSession, user_id: uuid.UUID
) -> list[tuple[Drawer, DrawerUser]]:
    return await membership.get_my_drawers(session, user_id)


async def list_members(
    session: AsyncSession, drawer_id: uuid.UUID
) -> list[tuple[DrawerUser, User]]:
    if await membership.get_active_drawer(session, drawer_id) is None:
        raise NotFoundError("Drawer not found")
    return await membership.get_members(session, drawer_id)


# ---------------------------------------------------------------------------
# Create / update / delete
# ---------------------------------------------------------------------------

async def create_drawer(
    coordinator: TransactionCoordinator,
    owner_id: uuid.UUID,
    req: DrawerCreateRequest,
) -> tuple[Drawer, DrawerUser]:
    """Create a drawer with default settings; the creator becomes its owner."""
    name = (req.name or "").strip()
    if not name:
        raise ValidationError("Drawer name is required")

    async with coordinator.transaction("drawer.create") as session:
        drawer = Drawer(
            name=name,
            description=req.description,
            image_url=req.image_url,
            thumbnail_url=req.thumbnail_url,
            member_count=0,
        )
        session.add(drawer)
        await session.flush()

        # Private, unsearchable, no approval. require_approval only matters
        # once a drawer is public.
        session.add(DrawerSettings(drawer_id=drawer.id))
        owner = await membership.add_member(
            session, drawer.id, owner_id, DrawerRole.OWNER
        )
        await membership.increment_count(session, drawer.id)
        await session.refresh(drawer)

    log.info("drawer.created", drawer_id=str(drawer.id), owner_id=str(owner_id))
    return drawer, owner


async def update_info(
    coordinator: TransactionCoordinator,
    drawer_id: uuid.UUID,
    user_id: uuid.UUID,
    req: DrawerInfoUpdateRequest,
) -> Drawer:
    """Partial update of name/description/images. Admin or owner."""
    name: Optional[str] = None
    if req.name is not None:
        name = req.name.strip()
        if not name:
            raise ValidationError("Drawer name cannot be empty")

    async with coordinator.transaction("drawer.update_info") as session:
        await check_role(
            session, drawer_id, user_id, at_least(DrawerRole.ADMIN), lock=True
        )
        drawer = await membership.get_active_drawer(session, drawer_id)

        if name is not None:
            drawer.name = name
        if req.description is not None:
            drawer.description = req.description
        if req.image_url is not None:
            drawer.image_url = req.image_url
        if req.thumbnail_url is not None:
            drawer.thumbnail_url = req.thumbnail_url
        drawer.updated_at = utcnow()
        session.add(drawer)
        await session.flush()

    log.info("drawer.info_updated", drawer_id=str(drawer_id), user_id=str(user_id))
    return drawer


async def update_settings(
    coordinator: TransactionCoordinator,
    drawer_id: uuid.UUID,
    user_id: uuid.UUID,
    req: DrawerSettingsUpdateRequest,
) -> DrawerSettings:
    """Partial update of visibility flags. Owner only."""
    async with coordinator.transaction("drawer.update_settings") as session:
        await check_role(session, drawer_id, user_id, owner_only, lock=True)
        result = await session.execute(
            select(DrawerSettings).where(DrawerSettings.drawer_id == drawer_id)
        )
        settings = result.scalar_one()

        if req.is_public is not None:
            settings.is_public = req.is_public
        if req.is_searchable is not None:
            settings.is_searchable = req.is_searchable
        if req.require_approval is not None:
            settings.require_approval = req.require_approval
        settings.updated_at = utcnow()
        session.add(settings)
        await session.flush()

    log.info(
        "drawer.settings_updated",
        drawer_id=str(drawer_id),
        is_public=settings.is_public,
        require_approval=settings.require_approval,
    )
    return settings


async def delete_drawer(
    coordinator: TransactionCoordinator, drawer_id: uuid.UUID, owner_id: uuid.UUID
) -> None:
    """Soft delete. Memberships stay as they are; the drawer drops out of every query."""
    async with coordinator.transaction("drawer.delete") as session:
        await check_role(session, drawer_id, owner_id, owner_only, lock=True)
        now = utcnow()
        await session.execute(
            update(Drawer)
            .where(Drawer.id == drawer_id, Drawer.deleted_at.is_(None))
            .values(deleted_at=now, updated_at=now)
            .execution_options(synchronize_session=False)
        )

    log.info("drawer.deleted", drawer_id=str(drawer_id), owner_id=str(owner_id))


# ---------------------------------------------------------------------------
# Membership changes
# ---------------------------------------------------------------------------

async def transfer_master(
    coordinator: TransactionCoordinator,
    drawer_id: uuid.UUID,
    current_owner_id: uuid.UUID,
    candidate_id: uuid.UUID,
) -> None:
    """Hand ownership to another active member; the old owner becomes admin.

    Both role writes and the verification read share one transaction, so no
    committed state ever has zero or two owners.
    """
    if candidate_id == current_owner_id:
        raise ValidationError("You are already the owner of this drawer")

    async with coordinator.transaction("drawer.transfer_master") as session:
        await check_role(
            session, drawer_id, current_owner_id, owner_only,
            lock=True, message="Only the drawer owner can transfer ownership",
        )
        candidate = await membership.get_member(
            session, drawer_id, candidate_id, lock=True
        )
        if candidate is None:
            raise NotFoundError("The new owner must be a member of this drawer")

        # Demote first: the active-owner unique index never sees two owners.
        await membership.update_role(
            session, drawer_id, current_owner_id, DrawerRole.ADMIN
        )
        await membership.update_role(session, drawer_id, candidate_id, DrawerRole.OWNER)

        owners = await membership.list_active_owners(session, drawer_id)
        if owners != [candidate_id]:
            raise ConflictError("Ownership changed concurrently; try again")

    log.info(
        "drawer.master_transferred",
        drawer_id=str(drawer_id),
        from_user=str(current_owner_id),
        to_user=str(candidate_id),
    )


async def change_member_role(
    coordinator: TransactionCoordinator,
    drawer_id: uuid.UUID,
    target_id: uuid.UUID,
    role: DrawerRole,
    requester_id: uuid.UUID,
) -> DrawerUser:
    """Set a member's role. Owner only; ownership moves via ``transfer_master``."""
    if role is DrawerRole.OWNER:
        raise ValidationError("Use the master transfer to assign a new owner")

    async with coordinator.transaction("drawer.change_role") as session:
        await check_role(session, drawer_id, requester_id, owner_only, lock=True)
        target = await membership.get_member(session, drawer_id, target_id, lock=True)
        if target is None:
            raise NotFoundError("Member not found in this drawer")
        if target.role == DrawerRole.OWNER.value:
            raise ForbiddenError("The owner's role can only change through a master transfer")

        await membership.update_role(session, drawer_id, target_id, role)
        await session.refresh(target)

    log.info(
        "member.role_changed",
        drawer_id=str(drawer_id),
        user_id=str(target_id),
        role=role.value,
    )
    return target


async def leave_drawer(
    coordinator: TransactionCoordinator, drawer_id: uuid.UUID, user_id: uuid.UUID
) -> None:
    async with coordinator.transaction("drawer.leave") as session:
        member = await check_role(session, drawer_id, user_id, any_member, lock=True)
        if member.role == DrawerRole.OWNER.value:
            raise ForbiddenError(
                "The owner cannot leave the drawer; transfer ownership first"
            )
        await membership.remove_member(session, drawer_id, user_id)
        await membership.decrement_count(session, drawer_id)

    log.info("member.left", drawer_id=str(drawer_id), user_id=str(user_id))


async def kick_member(
    coordinator: TransactionCoordinator,
    drawer_id: uuid.UUID,
    target_id: uuid.UUID,
    requester_id: uuid.UUID,
) -> None:
    async with coordinator.transaction("drawer.kick") as session:
        await check_role(
            session, drawer_id, requester_id, owner_only,
            lock=True, message="Only the drawer owner can remove members",
        )
        target = await membership.get_member(session, drawer_id, target_id, lock=True)
        if target is None:
            raise NotFoundError("Member not found in this drawer")
        if target.role == DrawerRole.OWNER.value:
            raise ForbiddenError("The owner cannot be removed from the drawer")

        await membership.remove_member(session, drawer_id, target_id)
        await membership.decrement_count(session, drawer_id)

    log.info(
        "member.kicked",
        drawer_id=str(drawer_id),
        user_id=str(target_id),
        by=str(requester_id),
    )
