"""
Shared fixtures: a file-backed SQLite database per test, seeded users,
the transaction coordinator, and an HTTP client bound to the app.
"""

from __future__ import annotations

from dataclasses import dataclass

import pytest
from httpx import ASGITransport, AsyncClient

from drawerhub.core.auth import create_identity_token
from drawerhub.core.config import Settings
from drawerhub.core.database import Database, TransactionCoordinator
from drawerhub.main import create_app
from drawerhub.models.drawer import Drawer
from drawerhub.models.user import User
from drawerhub.services import drawers as drawer_service
from drawerhub.services import users as user_service
from drawerhub_shared.schemas.drawers import (
    DrawerCreateRequest,
    DrawerSettingsUpdateRequest,
)


@dataclass
class Users:
    owner: User
    alice: User
    bob: User
    carol: User


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        database_url=f"sqlite+aiosqlite:///{tmp_path}/drawers.db",
        identity_secret="test-secret",
        log_json=False,
        log_level="WARNING",
    )


@pytest.fixture
async def database(settings):
    db = Database(settings.database_url)
    await db.create_all()
    yield db
    await db.dispose()


@pytest.fixture
def coordinator(database) -> TransactionCoordinator:
    return TransactionCoordinator(database.session_factory)


@pytest.fixture
async def users(database) -> Users:
    async with database.session() as session:
        seeded = {}
        for name in ("owner", "alice", "bob", "carol"):
            seeded[name] = await user_service.register_user(
                session,
                uid=f"uid-{name}",
                email=f"{name}@example.com",
                display_name=name.title(),
                user_code=f"code-{name}",
            )
    return Users(**seeded)


@pytest.fixture
def make_drawer(coordinator, users):
    """Factory: create a drawer owned by ``owner`` (default: users.owner)."""

    async def _make(
        name: str = "Climbing Crew",
        *,
        owner: User | None = None,
        public: bool = False,
        approval: bool = False,
        description: str | None = None,
    ) -> Drawer:
        owner = owner or users.owner
        drawer, _ = await drawer_service.create_drawer(
            coordinator,
            owner.id,
            DrawerCreateRequest(name=name, description=description),
        )
        if public or approval:
            await drawer_service.update_settings(
                coordinator,
                drawer.id,
                owner.id,
                DrawerSettingsUpdateRequest(is_public=public, require_approval=approval),
            )
        return drawer

    return _make


@pytest.fixture
async def app(settings, database):
    application = create_app(settings)
    await application.state.db.dispose()
    application.state.db = database
    return application


@pytest.fixture
async def client(app):
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


@pytest.fixture
def auth_headers(settings):
    """Build a Bearer header for a seeded user."""

    def _headers(user: User) -> dict[str, str]:
        token = create_identity_token(user.uid, settings)
        return {"Authorization": f"Bearer {token}"}

    return _headers
