"""User profile and sign-in schemas."""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Optional

from .common import CamelModel


class UserResponse(CamelModel):
    id: uuid.UUID
    uid: str
    email: Optional[str] = None
    display_name: Optional[str] = None
    user_code: Optional[str] = None
    image_url: Optional[str] = None
    created_at: datetime


class SignInResponse(CamelModel):
    user: UserResponse
    created: bool
