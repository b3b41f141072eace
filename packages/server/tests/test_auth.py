"""
Authentication tests: identity token handling, the current-user dependency
and sign-up on first login.
"""

from __future__ import annotations

from datetime import timedelta

import jwt
import pytest
from sqlalchemy import update

from drawerhub.core.auth import create_identity_token, decode_identity_token
from drawerhub.core.errors import AuthenticationError
from drawerhub.models.base import utcnow
from drawerhub.models.user import User
from drawerhub.services import users as user_service


class TestIdentityToken:

    def test_round_trip_subject(self, settings):
        token = create_identity_token("uid-123", settings)
        assert decode_identity_token(token, settings) == "uid-123"

    def test_expired_token_rejected(self, settings):
        token = create_identity_token("uid-123", settings, expires_delta=timedelta(seconds=-5))
        with pytest.raises(jwt.ExpiredSignatureError):
            decode_identity_token(token, settings)

    def test_wrong_secret_rejected(self, settings):
        other = settings.model_copy(update={"identity_secret": "someone-else"})
        token = create_identity_token("uid-123", other)
        with pytest.raises(jwt.InvalidSignatureError):
            decode_identity_token(token, settings)

    def test_issuer_enforced_when_configured(self, settings):
        strict = settings.model_copy(update={"identity_issuer": "https://id.example.com"})
        token = create_identity_token("uid-123", settings)
        with pytest.raises(jwt.PyJWTError):
            decode_identity_token(token, strict)
        assert decode_identity_token(create_identity_token("uid-1", strict), strict) == "uid-1"


class TestCurrentUser:

    @pytest.mark.asyncio
    async def test_missing_header(self, client):
        response = await client.get("/api/v1/drawers")
        assert response.status_code == 401
        assert response.json() == {
            "success": False,
            "status": 401,
            "message": "Authentication required",
        }

    @pytest.mark.asyncio
    async def test_garbage_token(self, client):
        response = await client.get(
            "/api/v1/drawers", headers={"Authorization": "Bearer not-a-jwt"}
        )
        assert response.status_code == 401
        assert response.json()["message"] == "Invalid or expired identity token"

    @pytest.mark.asyncio
    async def test_unknown_subject(self, client, settings, users):
        token = create_identity_token("uid-nobody", settings)
        response = await client.get(
            "/api/v1/drawers", headers={"Authorization": f"Bearer {token}"}
        )
        assert response.status_code == 401
        assert response.json()["message"] == "User not found"

    @pytest.mark.asyncio
    async def test_known_subject(self, client, users, auth_headers):
        response = await client.get("/api/v1/drawers", headers=auth_headers(users.alice))
        assert response.status_code == 200
        assert response.json() == {"success": True, "data": [], "message": None}


class TestSignUpOrLogin:

    @pytest.mark.asyncio
    async def test_first_login_provisions_user(self, client, settings):
        token = create_identity_token(
            "uid-newcomer",
            settings,
            claims={"email": "dana@example.com", "name": "Dana", "picture": "https://img/d.png"},
        )
        headers = {"Authorization": f"Bearer {token}"}

        response = await client.post("/api/v1/users/auth", headers=headers)
        assert response.status_code == 201
        body = response.json()
        assert body["message"] == "Signed up"
        assert body["data"]["created"] is True
        profile = body["data"]["user"]
        assert profile["uid"] == "uid-newcomer"
        assert profile["displayName"] == "Dana"
        assert profile["imageUrl"] == "https://img/d.png"

        # The same token now passes the current-user dependency.
        response = await client.get("/api/v1/drawers", headers=headers)
        assert response.status_code == 200

        response = await client.post("/api/v1/users/auth", headers=headers)
        assert response.status_code == 200
        assert response.json()["message"] == "Logged in"
        assert response.json()["data"]["created"] is False
        assert response.json()["data"]["user"]["id"] == profile["id"]

    @pytest.mark.asyncio
    async def test_existing_user_logs_in(self, client, users, auth_headers):
        response = await client.post("/api/v1/users/auth", headers=auth_headers(users.alice))
        assert response.status_code == 200
        assert response.json()["data"]["user"]["id"] == str(users.alice.id)

    @pytest.mark.asyncio
    async def test_requires_valid_token(self, client):
        response = await client.post("/api/v1/users/auth")
        assert response.status_code == 401
        response = await client.post(
            "/api/v1/users/auth", headers={"Authorization": "Bearer not-a-jwt"}
        )
        assert response.status_code == 401

    async def test_display_name_falls_back_to_email(self, database):
        async with database.session() as session:
            user, created = await user_service.sign_up_or_login(
                session, {"sub": "uid-eve", "email": "eve.l@example.com"}
            )
        assert created
        assert user.display_name == "eve.l"

    async def test_deleted_user_stays_locked_out(self, coordinator, database, users):
        async with coordinator.transaction("test.delete_user") as session:
            await session.execute(
                update(User).where(User.id == users.bob.id).values(deleted_at=utcnow())
            )
        async with database.session() as session:
            with pytest.raises(AuthenticationError):
                await user_service.sign_up_or_login(session, {"sub": users.bob.uid})
