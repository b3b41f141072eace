"""User model. Rows are keyed to the external identity subject (``uid``)."""

from datetime import datetime
from typing import Optional

import sqlalchemy as sa
from sqlmodel import Field, SQLModel

from .base import SoftDeleteMixin, UUIDMixin, utcnow


class User(UUIDMixin, SoftDeleteMixin, SQLModel, table=True):
    __tablename__ = "users"

    uid: str = Field(unique=True, index=True, nullable=False)
    email: Optional[str] = Field(default=None, index=True)
    display_name: Optional[str] = None
    user_code: Optional[str] = Field(default=None, unique=True)
    image_url: Optional[str] = None
    created_at: datetime = Field(
        default_factory=utcnow,
        nullable=False,
        sa_type=sa.DateTime(timezone=True),
    )
