"""Drawer membership schemas."""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Optional

from pydantic import Field

from .common import CamelModel, DrawerRole


class MemberRoleUpdateRequest(CamelModel):
    role: DrawerRole


class KickMemberRequest(CamelModel):
    user_id: uuid.UUID = Field(..., description="Member to remove")


class MemberResponse(CamelModel):
    user_id: uuid.UUID
    display_name: Optional[str] = None
    user_code: Optional[str] = None
    email: Optional[str] = None
    image_url: Optional[str] = None
    role: DrawerRole
    notification_level: int
    nickname_in_drawer: Optional[str] = None
    joined_at: datetime
