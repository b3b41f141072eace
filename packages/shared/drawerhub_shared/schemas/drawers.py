"""
Drawer-related Pydantic schemas shared by the server and its clients.

Covers: drawer create/update requests, drawer and settings responses,
search results, the caller's drawer list, and master transfer.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Optional

from pydantic import Field

from .common import CamelModel, DrawerRole


# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------

class DrawerCreateRequest(CamelModel):
    name: str = Field(..., max_length=100, description="Drawer display name")
    description: Optional[str] = Field(None, max_length=1000)
    image_url: Optional[str] = None
    thumbnail_url: Optional[str] = None


class DrawerInfoUpdateRequest(CamelModel):
    """Partial update. Omitted (or null) fields keep their current value."""

    name: Optional[str] = Field(None, max_length=100)
    description: Optional[str] = Field(None, max_length=1000)
    image_url: Optional[str] = None
    thumbnail_url: Optional[str] = None


class DrawerSettingsUpdateRequest(CamelModel):
    is_public: Optional[bool] = None
    is_searchable: Optional[bool] = None
    require_approval: Optional[bool] = None


class TransferMasterRequest(CamelModel):
    user_id: uuid.UUID = Field(..., description="Member who becomes the new owner")


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------

class DrawerResponse(CamelModel):
    id: uuid.UUID
    name: str
    description: Optional[str] = None
    image_url: Optional[str] = None
    thumbnail_url: Optional[str] = None
    member_count: int
    last_activity_at: Optional[datetime] = None
    created_at: datetime


class DrawerCreatedResponse(DrawerResponse):
    role: DrawerRole


class DrawerInfoResponse(CamelModel):
    id: uuid.UUID
    name: str
    description: Optional[str] = None
    image_url: Optional[str] = None
    thumbnail_url: Optional[str] = None


class DrawerSettingsResponse(CamelModel):
    is_public: bool
    is_searchable: bool
    require_approval: bool


class MyDrawerItem(DrawerResponse):
    role: DrawerRole
    notification_level: int
    joined_at: datetime
