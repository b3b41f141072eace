"""Drawer membership (join table between drawers and users)."""

from datetime import datetime
from typing import Optional
import uuid

import sqlalchemy as sa
from sqlmodel import Field, SQLModel

from .base import SoftDeleteMixin, TimestampMixin, utcnow

_ACTIVE_OWNER = sa.text("role = 0 AND deleted_at IS NULL")


class DrawerUser(TimestampMixin, SoftDeleteMixin, SQLModel, table=True):
    __tablename__ = "drawer_users"
    __table_args__ = (
        # At most one active owner per drawer.
        sa.Index(
            "uq_drawer_users_active_owner",
            "drawer_id",
            unique=True,
            postgresql_where=_ACTIVE_OWNER,
            sqlite_where=_ACTIVE_OWNER,
        ),
        sa.Index("ix_drawer_users_user_active", "user_id", "deleted_at"),
    )

    drawer_id: uuid.UUID = Field(foreign_key="drawers.id", primary_key=True)
    user_id: uuid.UUID = Field(foreign_key="users.id", primary_key=True)
    role: int = Field(nullable=False, default=3)  # DrawerRole value
    notification_level: int = Field(nullable=False, default=1)
    nickname_in_drawer: Optional[str] = None
    joined_at: datetime = Field(
        default_factory=utcnow,
        nullable=False,
        sa_type=sa.DateTime(timezone=True),
    )
