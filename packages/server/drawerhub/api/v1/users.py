"""
User API endpoints.

POST   /api/v1/users/auth   — Sign up or log in with an identity token
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Response
from sqlalchemy.ext.asyncio import AsyncSession

from drawerhub.core.auth import get_identity_claims
from drawerhub.core.database import get_session
from drawerhub.services import users as user_service
from drawerhub_shared.schemas.common import APIResponse
from drawerhub_shared.schemas.users import SignInResponse, UserResponse

router = APIRouter()


@router.post("/auth", response_model=APIResponse[SignInResponse])
async def sign_up_or_login(
    response: Response,
    claims: dict = Depends(get_identity_claims),
    session: AsyncSession = Depends(get_session),
):
    """Provision the local user on first login (201), return it otherwise (200)."""
    user, created = await user_service.sign_up_or_login(session, claims)
    if created:
        response.status_code = 201
    return APIResponse(
        data=SignInResponse(user=UserResponse.model_validate(user), created=created),
        message="Signed up" if created else "Logged in",
    )
