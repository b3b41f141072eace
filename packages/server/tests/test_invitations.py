"""
Invitation service tests.

Tests cover:
- Issue (owner only), preview, redeem
- Expired, exhausted and unknown tokens
- Unlimited invitations
- Concurrent redemption of a single-use token
"""

from __future__ import annotations

import asyncio
from datetime import timedelta

import pytest
from sqlalchemy import update
from sqlmodel import select

from drawerhub.core.errors import (
    ConflictError,
    ForbiddenError,
    InvitationExhaustedError,
    InvitationExpiredError,
    NotFoundError,
    NotMemberError,
)
from drawerhub.models.base import utcnow
from drawerhub.models.invitation import DrawerInvitation
from drawerhub.services import drawers as drawer_service
from drawerhub.services import invitations as invitation_service
from drawerhub.services import membership
from drawerhub_shared.schemas.common import DrawerRole


async def _uses(database, invitation_id) -> int:
    async with database.session() as session:
        result = await session.execute(
            select(DrawerInvitation.uses_count).where(DrawerInvitation.id == invitation_id)
        )
        return result.scalar_one()


async def _expire(coordinator, invitation_id) -> None:
    async with coordinator.transaction("test.expire") as session:
        await session.execute(
            update(DrawerInvitation)
            .where(DrawerInvitation.id == invitation_id)
            .values(expires_at=utcnow() - timedelta(minutes=1))
        )


class TestIssue:

    async def test_owner_issues_token(self, coordinator, make_drawer, users):
        drawer = await make_drawer()
        invitation = await invitation_service.issue_invitation(
            coordinator, drawer.id, users.owner.id, max_uses=5, ttl=timedelta(days=7)
        )
        assert len(invitation.token) >= 43
        assert invitation.max_uses == 5
        assert invitation.uses_count == 0
        assert invitation.expires_at > utcnow() + timedelta(days=6)

    async def test_tokens_are_unique(self, coordinator, make_drawer, users):
        drawer = await make_drawer()
        tokens = {
            (await invitation_service.issue_invitation(coordinator, drawer.id, users.owner.id)).token
            for _ in range(5)
        }
        assert len(tokens) == 5

    async def test_non_owner_cannot_issue(self, coordinator, make_drawer, users):
        drawer = await make_drawer()
        invitation = await invitation_service.issue_invitation(
            coordinator, drawer.id, users.owner.id
        )
        await invitation_service.redeem_invitation(coordinator, invitation.token, users.alice.id)

        with pytest.raises(ForbiddenError):
            await invitation_service.issue_invitation(coordinator, drawer.id, users.alice.id)
        with pytest.raises(NotMemberError):
            await invitation_service.issue_invitation(coordinator, drawer.id, users.bob.id)


class TestPreview:

    async def test_preview_shows_drawer_and_inviter(self, coordinator, database, make_drawer, users):
        drawer = await make_drawer("Book Club", description="Monthly reads")
        invitation = await invitation_service.issue_invitation(
            coordinator, drawer.id, users.owner.id
        )
        async with database.session() as session:
            preview = await invitation_service.preview_invitation(session, invitation.token)
        assert preview.drawer.id == drawer.id
        assert preview.drawer.name == "Book Club"
        assert preview.drawer.member_count == 1
        assert preview.inviter_name == "Owner"

    async def test_unusable_tokens_look_the_same(self, coordinator, database, make_drawer, users):
        drawer = await make_drawer()
        expired = await invitation_service.issue_invitation(coordinator, drawer.id, users.owner.id)
        await _expire(coordinator, expired.id)
        spent = await invitation_service.issue_invitation(coordinator, drawer.id, users.owner.id)
        await invitation_service.redeem_invitation(coordinator, spent.token, users.alice.id)

        async with database.session() as session:
            for token in (expired.token, spent.token, "no-such-token"):
                with pytest.raises(NotFoundError, match="Invalid or expired invitation"):
                    await invitation_service.preview_invitation(session, token)


class TestRedeem:

    async def test_single_use_token(self, coordinator, database, make_drawer, users):
        """One-use token: first redemption joins, second is exhausted."""
        drawer = await make_drawer()
        invitation = await invitation_service.issue_invitation(
            coordinator, drawer.id, users.owner.id, max_uses=1
        )

        joined = await invitation_service.redeem_invitation(
            coordinator, invitation.token, users.alice.id
        )
        assert joined.id == drawer.id
        assert joined.member_count == 2

        for _ in range(2):
            with pytest.raises(InvitationExhaustedError):
                await invitation_service.redeem_invitation(
                    coordinator, invitation.token, users.bob.id
                )

        async with database.session() as session:
            assert await membership.get_member_count(session, drawer.id) == 2
            assert await membership.get_member(session, drawer.id, users.bob.id) is None
            member = await membership.get_member(session, drawer.id, users.alice.id)
            assert member.role == DrawerRole.MEMBER.value
        assert await _uses(database, invitation.id) == 1

    async def test_expired_token(self, coordinator, database, make_drawer, users):
        drawer = await make_drawer()
        invitation = await invitation_service.issue_invitation(
            coordinator, drawer.id, users.owner.id
        )
        await _expire(coordinator, invitation.id)

        for _ in range(2):
            with pytest.raises(InvitationExpiredError):
                await invitation_service.redeem_invitation(
                    coordinator, invitation.token, users.alice.id
                )
        assert await _uses(database, invitation.id) == 0

    async def test_unknown_token(self, coordinator, users):
        with pytest.raises(NotFoundError):
            await invitation_service.redeem_invitation(coordinator, "nope", users.alice.id)

    async def test_deleted_drawer_token(self, coordinator, make_drawer, users):
        drawer = await make_drawer()
        invitation = await invitation_service.issue_invitation(
            coordinator, drawer.id, users.owner.id
        )
        await drawer_service.delete_drawer(coordinator, drawer.id, users.owner.id)
        with pytest.raises(NotFoundError):
            await invitation_service.redeem_invitation(
                coordinator, invitation.token, users.alice.id
            )

    async def test_existing_member_does_not_spend_a_use(
        self, coordinator, database, make_drawer, users
    ):
        drawer = await make_drawer()
        invitation = await invitation_service.issue_invitation(
            coordinator, drawer.id, users.owner.id, max_uses=3
        )
        with pytest.raises(ConflictError, match="Already a member"):
            await invitation_service.redeem_invitation(
                coordinator, invitation.token, users.owner.id
            )
        assert await _uses(database, invitation.id) == 0
        async with database.session() as session:
            assert await membership.get_member_count(session, drawer.id) == 1

    async def test_unlimited_token(self, coordinator, database, make_drawer, users):
        drawer = await make_drawer()
        invitation = await invitation_service.issue_invitation(
            coordinator, drawer.id, users.owner.id, max_uses=None
        )
        async with database.session() as session:
            result = await session.execute(
                select(DrawerInvitation.max_uses).where(DrawerInvitation.id == invitation.id)
            )
            assert result.scalar_one() is None

        for user in (users.alice, users.bob, users.carol):
            await invitation_service.redeem_invitation(coordinator, invitation.token, user.id)

        assert await _uses(database, invitation.id) == 3
        async with database.session() as session:
            assert await membership.get_member_count(session, drawer.id) == 4
            assert await membership.count_active_members(session, drawer.id) == 4

    async def test_rejoin_after_leaving(self, coordinator, database, make_drawer, users):
        drawer = await make_drawer()
        invitation = await invitation_service.issue_invitation(
            coordinator, drawer.id, users.owner.id, max_uses=2
        )
        await invitation_service.redeem_invitation(coordinator, invitation.token, users.alice.id)
        await drawer_service.leave_drawer(coordinator, drawer.id, users.alice.id)
        rejoined = await invitation_service.redeem_invitation(
            coordinator, invitation.token, users.alice.id
        )
        assert rejoined.member_count == 2
        async with database.session() as session:
            assert await membership.count_active_members(session, drawer.id) == 2

    async def test_concurrent_redemption_of_single_use_token(
        self, coordinator, database, make_drawer, users
    ):
        """Two users race for the last use: exactly one joins."""
        drawer = await make_drawer()
        invitation = await invitation_service.issue_invitation(
            coordinator, drawer.id, users.owner.id, max_uses=1
        )

        results = await asyncio.gather(
            invitation_service.redeem_invitation(coordinator, invitation.token, users.alice.id),
            invitation_service.redeem_invitation(coordinator, invitation.token, users.bob.id),
            return_exceptions=True,
        )
        successes = [r for r in results if not isinstance(r, BaseException)]
        assert len(successes) == 1
        (loser,) = [r for r in results if isinstance(r, BaseException)]
        assert isinstance(loser, InvitationExhaustedError)

        assert await _uses(database, invitation.id) == 1
        async with database.session() as session:
            assert await membership.get_member_count(session, drawer.id) == 2
            assert await membership.count_active_members(session, drawer.id) == 2
