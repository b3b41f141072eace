"""Join request schemas."""

from __future__ import annotations

import uuid
from datetime import datetime
from enum import Enum
from typing import Optional

from .common import CamelModel, JoinRequestStatus


class JoinOutcome(str, Enum):
    PENDING = "pending"
    JOINED = "joined"


class JoinRequestResult(CamelModel):
    """Result of asking to join: either queued for approval or joined directly."""

    outcome: JoinOutcome
    request_id: Optional[uuid.UUID] = None


class JoinRequestItem(CamelModel):
    request_id: uuid.UUID
    user_id: uuid.UUID
    display_name: Optional[str] = None
    user_code: Optional[str] = None
    email: Optional[str] = None
    image_url: Optional[str] = None
    status: JoinRequestStatus
    created_at: datetime
