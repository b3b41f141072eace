#!/usr/bin/env python3
"""Seed a development database with users, a few drawers, an invitation and a
pending join request, then print identity tokens for the seeded users.

Usage:
    python scripts/seed_dev_data.py

Reads DRAWER_DATABASE_URL / DRAWER_IDENTITY_SECRET like the server does.
Creates the tables first when they do not exist.
"""

import asyncio
from datetime import timedelta

from drawerhub.core.auth import create_identity_token
from drawerhub.core.config import get_settings
from drawerhub.core.database import Database, TransactionCoordinator
from drawerhub.services import drawers as drawer_service
from drawerhub.services import invitations as invitation_service
from drawerhub.services import join_requests as join_request_service
from drawerhub.services import users as user_service
from drawerhub_shared.schemas.drawers import (
    DrawerCreateRequest,
    DrawerSettingsUpdateRequest,
)

USERS = [
    ("dev-alice", "alice@drawers.dev", "Alice", "ALICE01"),
    ("dev-bob", "bob@drawers.dev", "Bob", "BOB0001"),
    ("dev-carol", "carol@drawers.dev", "Carol", "CAROL01"),
]


async def seed():
    settings = get_settings()
    db = Database(settings.database_url)
    await db.create_all()
    coordinator = TransactionCoordinator(db.session_factory)

    seeded = {}
    async with db.session() as session:
        for uid, email, name, code in USERS:
            user = await user_service.get_user_by_uid(session, uid)
            if user is None:
                user = await user_service.register_user(
                    session, uid, email=email, display_name=name, user_code=code
                )
            seeded[name] = user
    alice, bob, carol = seeded["Alice"], seeded["Bob"], seeded["Carol"]

    # Public drawer anyone can join directly
    open_drawer, _ = await drawer_service.create_drawer(
        coordinator,
        alice.id,
        DrawerCreateRequest(name="Weekend Hikes", description="Trails and meetups"),
    )
    await drawer_service.update_settings(
        coordinator, open_drawer.id, alice.id,
        DrawerSettingsUpdateRequest(is_public=True, is_searchable=True),
    )
    await join_request_service.request_join(coordinator, open_drawer.id, bob.id)

    # Moderated drawer with a pending request from Carol
    moderated, _ = await drawer_service.create_drawer(
        coordinator, bob.id, DrawerCreateRequest(name="Book Club")
    )
    await drawer_service.update_settings(
        coordinator, moderated.id, bob.id,
        DrawerSettingsUpdateRequest(is_public=True, require_approval=True),
    )
    await join_request_service.request_join(coordinator, moderated.id, carol.id)

    # Private drawer reachable by invitation only
    private, _ = await drawer_service.create_drawer(
        coordinator, carol.id, DrawerCreateRequest(name="Family Photos")
    )
    invitation = await invitation_service.issue_invitation(
        coordinator, private.id, carol.id, max_uses=5, ttl=timedelta(days=7)
    )

    await db.dispose()

    print("Seeded drawers:")
    for drawer in (open_drawer, moderated, private):
        print(f"  {drawer.name:<16} {drawer.id}")
    print(f"Invitation code for 'Family Photos': {invitation.token}")
    print("Identity tokens (valid 24h):")
    for name, user in seeded.items():
        token = create_identity_token(user.uid, settings, expires_delta=timedelta(hours=24))
        print(f"  {name:<6} {token}")


if __name__ == "__main__":
    asyncio.run(seed())
