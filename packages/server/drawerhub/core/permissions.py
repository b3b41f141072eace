"""
Role checks for drawer operations.

``check_role`` is read-only. When it guards a mutation it must run on the
mutation's own transaction with ``lock=True`` so the caller's membership row
is locked for the rest of the unit and cannot change underneath it.
"""

from __future__ import annotations

import uuid
from collections.abc import Callable

from sqlalchemy.ext.asyncio import AsyncSession

from drawerhub.core.errors import ForbiddenError, NotFoundError, NotMemberError
from drawerhub.models.drawer_user import DrawerUser
from drawerhub.services import membership
from drawerhub_shared.schemas.common import DrawerRole, role_at_least

RolePredicate = Callable[[DrawerRole], bool]


def owner_only(role: DrawerRole) -> bool:
    return role is DrawerRole.OWNER


def at_least(minimum: DrawerRole) -> RolePredicate:
    """Predicate: role is ``minimum`` or more privileged."""

    def _allowed(role: DrawerRole) -> bool:
        return role_at_least(role, minimum)

    return _allowed


def any_member(role: DrawerRole) -> bool:
    return True


async def check_role(
    session: AsyncSession,
    drawer_id: uuid.UUID,
    user_id: uuid.UUID,
    allowed: RolePredicate,
    *,
    lock: bool = False,
    message: str | None = None,
) -> DrawerUser:
    """Return the caller's active membership if its role satisfies ``allowed``."""
    drawer = await membership.get_active_drawer(session, drawer_id)
    if drawer is None:
        raise NotFoundError("Drawer not found")

    member = await membership.get_member(session, drawer_id, user_id, lock=lock)
    if member is None:
        raise NotMemberError()

    if not allowed(DrawerRole(member.role)):
        raise ForbiddenError(message)
    return member
