"""Approval-gated join requests."""

import uuid

from sqlmodel import Field, SQLModel

from .base import TimestampMixin, UUIDMixin


class DrawerJoinRequest(UUIDMixin, TimestampMixin, SQLModel, table=True):
    __tablename__ = "drawer_join_requests"

    drawer_id: uuid.UUID = Field(foreign_key="drawers.id", nullable=False, index=True)
    user_id: uuid.UUID = Field(foreign_key="users.id", nullable=False, index=True)
    status: int = Field(nullable=False, default=0)  # JoinRequestStatus value
