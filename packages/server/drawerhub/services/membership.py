"""
Membership ledger: drawer_users rows and the drawer's denormalized member count.

Every function takes the session it runs on. Writers assume the caller has
already authorized the action and that a row change and its matching count
change run in the same transaction; the count is never recomputed on read,
so a missed pairing is drift.
"""

from __future__ import annotations

import uuid
from typing import Optional

import structlog
from sqlalchemy import func, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from drawerhub.core.errors import ConflictError
from drawerhub.models.base import utcnow
from drawerhub.models.drawer import Drawer
from drawerhub.models.drawer_user import DrawerUser
from drawerhub.models.user import User
from drawerhub_shared.schemas.common import DrawerRole

log = structlog.get_logger()


async def get_active_drawer(
    session: AsyncSession, drawer_id: uuid.UUID
) -> Optional[Drawer]:
    result = await session.execute(
        select(Drawer).where(Drawer.id == drawer_id, Drawer.deleted_at.is_(None))
    )
    return result.scalar_one_or_none()


async def get_member(
    session: AsyncSession,
    drawer_id: uuid.UUID,
    user_id: uuid.UUID,
    *,
    include_deleted: bool = False,
    lock: bool = False,
) -> Optional[DrawerUser]:
    stmt = select(DrawerUser).where(
        DrawerUser.drawer_id == drawer_id, DrawerUser.user_id == user_id
    )
    if not include_deleted:
        stmt = stmt.where(DrawerUser.deleted_at.is_(None))
    if lock:
        stmt = stmt.with_for_update()
    result = await session.execute(stmt)
    return result.scalar_one_or_none()


async def add_member(
    session: AsyncSession,
    drawer_id: uuid.UUID,
    user_id: uuid.UUID,
    role: Optional[DrawerRole] = None,
) -> DrawerUser:
    """Insert a membership, or revive the soft-deleted one.

    A revived row keeps its identity and original ``joined_at``; its role is
    kept unless ``role`` is given. New rows default to MEMBER. An already
    active membership is a ConflictError, so a paired ``increment_count``
    can never double count.
    """
    existing = await get_member(session, drawer_id, user_id, include_deleted=True)
    now = utcnow()

    if existing is None:
        member = DrawerUser(
            drawer_id=drawer_id,
            user_id=user_id,
            role=(DrawerRole.MEMBER if role is None else role).value,
            joined_at=now,
        )
        session.add(member)
        try:
            await session.flush()
        except IntegrityError as exc:
            raise ConflictError("Already a member of this drawer") from exc
    elif existing.deleted_at is None:
        raise ConflictError("Already a member of this drawer")
    else:
        values: dict = {"deleted_at": None, "updated_at": now}
        if role is not None:
            values["role"] = role.value
        # Conditional on the row still being deleted: two concurrent revivals
        # cannot both succeed.
        result = await session.execute(
            update(DrawerUser)
            .where(
                DrawerUser.drawer_id == drawer_id,
                DrawerUser.user_id == user_id,
                DrawerUser.deleted_at.is_not(None),
            )
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            raise ConflictError("Already a member of this drawer")
        await session.refresh(existing)
        member = existing

    log.info(
        "member.added",
        drawer_id=str(drawer_id),
        user_id=str(user_id),
        role=member.role,
        revived=existing is not None,
    )
    return member


async def remove_member(
    session: AsyncSession, drawer_id: uuid.UUID, user_id: uuid.UUID
) -> bool:
    """Soft-delete the active membership. Returns False if there was none."""
    now = utcnow()
    result = await session.execute(
        update(DrawerUser)
        .where(
            DrawerUser.drawer_id == drawer_id,
            DrawerUser.user_id == user_id,
            DrawerUser.deleted_at.is_(None),
        )
        .values(deleted_at=now, updated_at=now)
        .execution_options(synchronize_session="fetch")
    )
    removed = result.rowcount == 1
    if removed:
        log.info("member.removed", drawer_id=str(drawer_id), user_id=str(user_id))
    return removed


async def update_role(
    session: AsyncSession,
    drawer_id: uuid.UUID,
    user_id: uuid.UUID,
    role: DrawerRole,
) -> bool:
    """Overwrite an active member's role. The single-owner rule is the caller's job."""
    result = await session.execute(
        update(DrawerUser)
        .where(
            DrawerUser.drawer_id == drawer_id,
            DrawerUser.user_id == user_id,
            DrawerUser.deleted_at.is_(None),
        )
        .values(role=role.value, updated_at=utcnow())
        .execution_options(synchronize_session="fetch")
    )
    return result.rowcount == 1


async def increment_count(session: AsyncSession, drawer_id: uuid.UUID) -> None:
    await session.execute(
        update(Drawer)
        .where(Drawer.id == drawer_id)
        .values(member_count=Drawer.member_count + 1, updated_at=utcnow())
        .execution_options(synchronize_session=False)
    )


async def decrement_count(session: AsyncSession, drawer_id: uuid.UUID) -> None:
    await session.execute(
        update(Drawer)
        .where(Drawer.id == drawer_id, Drawer.member_count > 0)
        .values(member_count=Drawer.member_count - 1, updated_at=utcnow())
        .execution_options(synchronize_session=False)
    )


async def touch_activity(session: AsyncSession, drawer_id: uuid.UUID) -> None:
    now = utcnow()
    await session.execute(
        update(Drawer)
        .where(Drawer.id == drawer_id)
        .values(last_activity_at=now, updated_at=now)
        .execution_options(synchronize_session=False)
    )


async def get_member_count(session: AsyncSession, drawer_id: uuid.UUID) -> int:
    result = await session.execute(
        select(Drawer.member_count).where(Drawer.id == drawer_id)
    )
    return result.scalar_one()


async def count_active_members(session: AsyncSession, drawer_id: uuid.UUID) -> int:
    result = await session.execute(
        select(func.count())
        .select_from(DrawerUser)
        .where(DrawerUser.drawer_id == drawer_id, DrawerUser.deleted_at.is_(None))
    )
    return result.scalar_one()


async def list_active_owners(
    session: AsyncSession, drawer_id: uuid.UUID
) -> list[uuid.UUID]:
    result = await session.execute(
        select(DrawerUser.user_id).where(
            DrawerUser.drawer_id == drawer_id,
            DrawerUser.role == DrawerRole.OWNER.value,
            DrawerUser.deleted_at.is_(None),
        )
    )
    return list(result.scalars().all())


# ---------------------------------------------------------------------------
# Read joins
# ---------------------------------------------------------------------------

async def get_my_drawers(
    session: AsyncSession, user_id: uuid.UUID
) -> list[tuple[Drawer, DrawerUser]]:
    """Active drawers the user belongs to, most recently active first."""
    result = await session.execute(
        select(Drawer, DrawerUser)
        .join(DrawerUser, DrawerUser.drawer_id == Drawer.id)
        .where(
            DrawerUser.user_id == user_id,
            DrawerUser.deleted_at.is_(None),
            Drawer.deleted_at.is_(None),
        )
        .order_by(Drawer.last_activity_at.desc())
    )
    return [(drawer, member) for drawer, member in result.all()]


async def get_members(
    session: AsyncSession, drawer_id: uuid.UUID
) -> list[tuple[DrawerUser, User]]:
    """Active members with their profile, oldest membership first."""
    result = await session.execute(
        select(DrawerUser, User)
        .join(User, User.id == DrawerUser.user_id)
        .where(DrawerUser.drawer_id == drawer_id, DrawerUser.deleted_at.is_(None))
        .order_by(DrawerUser.joined_at.asc())
    )
    return [(member, user) for member, user in result.all()]
