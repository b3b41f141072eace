from enum import Enum
from typing import Generic, Optional, TypeVar

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

T = TypeVar("T")


class DrawerRole(int, Enum):
    """Membership role. The value is what goes over the wire."""

    OWNER = 0
    ADMIN = 1
    MODERATOR = 2
    MEMBER = 3


# Highest privilege first. Rank comparisons go through this list, not the values.
ROLE_ORDER: list[DrawerRole] = [
    DrawerRole.OWNER,
    DrawerRole.ADMIN,
    DrawerRole.MODERATOR,
    DrawerRole.MEMBER,
]


def role_rank(role: DrawerRole) -> int:
    return ROLE_ORDER.index(role)


def role_at_least(role: DrawerRole, minimum: DrawerRole) -> bool:
    """True if ``role`` carries at least the privilege of ``minimum``."""
    return role_rank(role) <= role_rank(minimum)


class JoinRequestStatus(int, Enum):
    PENDING = 0
    APPROVED = 1
    REJECTED = 2


JOIN_REQUEST_TRANSITIONS: dict[JoinRequestStatus, list[JoinRequestStatus]] = {
    JoinRequestStatus.PENDING: [JoinRequestStatus.APPROVED, JoinRequestStatus.REJECTED],
    JoinRequestStatus.APPROVED: [],
    JoinRequestStatus.REJECTED: [],
}


class CamelModel(BaseModel):
    """Wire model: camelCase on the way out, either spelling on the way in."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class APIResponse(CamelModel, Generic[T]):
    success: bool = True
    data: Optional[T] = None
    message: Optional[str] = None


class ErrorResponse(BaseModel):
    success: bool = False
    status: int
    message: str
