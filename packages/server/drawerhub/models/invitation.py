"""Drawer invitation tokens."""

from datetime import datetime
from typing import Optional
import uuid

import sqlalchemy as sa
from sqlmodel import Field, SQLModel

from .base import UUIDMixin, utcnow


class DrawerInvitation(UUIDMixin, SQLModel, table=True):
    __tablename__ = "drawer_invitations"
    __table_args__ = (
        sa.CheckConstraint(
            "max_uses IS NULL OR uses_count <= max_uses",
            name="ck_drawer_invitations_uses_within_cap",
        ),
    )

    drawer_id: uuid.UUID = Field(foreign_key="drawers.id", nullable=False, index=True)
    inviter_id: uuid.UUID = Field(foreign_key="users.id", nullable=False)
    token: str = Field(unique=True, index=True, nullable=False)
    max_uses: Optional[int] = Field(default=None, nullable=True)  # None = unlimited
    uses_count: int = Field(default=0, nullable=False)
    expires_at: datetime = Field(nullable=False, sa_type=sa.DateTime(timezone=True))
    created_at: datetime = Field(
        default_factory=utcnow,
        nullable=False,
        sa_type=sa.DateTime(timezone=True),
    )
