"""Drawer and its 1:1 settings row."""

from datetime import datetime
from typing import Optional
import uuid

import sqlalchemy as sa
from sqlmodel import Field, SQLModel

from .base import SoftDeleteMixin, TimestampMixin, UUIDMixin, utcnow


class Drawer(UUIDMixin, TimestampMixin, SoftDeleteMixin, SQLModel, table=True):
    __tablename__ = "drawers"
    __table_args__ = (
        sa.CheckConstraint("member_count >= 0", name="ck_drawers_member_count_non_negative"),
    )

    name: str = Field(nullable=False, index=True)
    description: Optional[str] = None
    image_url: Optional[str] = None
    thumbnail_url: Optional[str] = None
    # Denormalized: must equal the number of active drawer_users rows.
    member_count: int = Field(default=0, nullable=False)
    last_activity_at: datetime = Field(
        default_factory=utcnow,
        nullable=False,
        index=True,
        sa_type=sa.DateTime(timezone=True),
    )


class DrawerSettings(SQLModel, table=True):
    __tablename__ = "drawer_settings"

    drawer_id: uuid.UUID = Field(foreign_key="drawers.id", primary_key=True)
    is_public: bool = Field(default=False, nullable=False)
    is_searchable: bool = Field(default=False, nullable=False)
    require_approval: bool = Field(default=False, nullable=False)
    updated_at: datetime = Field(
        default_factory=utcnow,
        nullable=False,
        sa_column_kwargs={"onupdate": utcnow},
        sa_type=sa.DateTime(timezone=True),
    )
