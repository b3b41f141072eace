"""Invitation schemas: issue, preview, redeem."""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Optional

from pydantic import Field

from .common import CamelModel


class InvitationCreateRequest(CamelModel):
    max_uses: Optional[int] = Field(
        default=1,
        ge=1,
        description="Redemption cap (null = unlimited)",
    )
    expires_in_days: Optional[int] = Field(
        default=None,
        ge=1,
        le=365,
        description="Lifetime of the token in days (server default when omitted)",
    )


class JoinByInvitationRequest(CamelModel):
    invitation_code: str = Field(..., min_length=1, max_length=128)


class InvitationResponse(CamelModel):
    id: uuid.UUID
    invitation_code: str
    max_uses: Optional[int] = None
    expires_at: datetime


class InvitationPreviewResponse(CamelModel):
    drawer_id: uuid.UUID
    drawer_name: str
    description: Optional[str] = None
    image_url: Optional[str] = None
    thumbnail_url: Optional[str] = None
    member_count: int
    inviter_name: Optional[str] = None


class JoinResultResponse(CamelModel):
    drawer_id: uuid.UUID
    member_count: int
