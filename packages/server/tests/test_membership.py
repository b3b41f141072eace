"""
Membership ledger and authorization guard tests.

Tests cover:
- add_member insert, revive and duplicate handling
- remove_member / count pairing
- check_role outcomes for missing drawer, non-member and insufficient role
- transaction rollback through the coordinator
"""

from __future__ import annotations

import uuid

import pytest

from drawerhub.core.errors import (
    ConflictError,
    ForbiddenError,
    NotFoundError,
    NotMemberError,
)
from drawerhub.core.permissions import any_member, at_least, check_role, owner_only
from drawerhub.services import drawers as drawer_service
from drawerhub.services import membership
from drawerhub_shared.schemas.common import DrawerRole


class TestLedger:

    async def test_creator_is_only_member(self, database, make_drawer, users):
        drawer = await make_drawer()
        async with database.session() as session:
            assert await membership.get_member_count(session, drawer.id) == 1
            assert await membership.count_active_members(session, drawer.id) == 1
            assert await membership.list_active_owners(session, drawer.id) == [users.owner.id]

    async def test_add_and_remove_pair_with_count(self, coordinator, database, make_drawer, users):
        drawer = await make_drawer()
        async with coordinator.transaction("test.add") as session:
            member = await membership.add_member(session, drawer.id, users.alice.id)
            await membership.increment_count(session, drawer.id)
        assert member.role == DrawerRole.MEMBER.value

        async with coordinator.transaction("test.remove") as session:
            assert await membership.remove_member(session, drawer.id, users.alice.id)
            await membership.decrement_count(session, drawer.id)

        async with database.session() as session:
            assert await membership.get_member(session, drawer.id, users.alice.id) is None
            assert await membership.get_member_count(session, drawer.id) == 1
            assert await membership.count_active_members(session, drawer.id) == 1

    async def test_remove_missing_member_returns_false(self, coordinator, make_drawer, users):
        drawer = await make_drawer()
        async with coordinator.transaction("test.remove") as session:
            assert not await membership.remove_member(session, drawer.id, users.bob.id)

    async def test_add_active_member_conflicts(self, coordinator, make_drawer, users):
        drawer = await make_drawer()
        with pytest.raises(ConflictError):
            async with coordinator.transaction("test.add") as session:
                await membership.add_member(session, drawer.id, users.owner.id)

    async def test_revive_keeps_joined_at_and_takes_new_role(
        self, coordinator, database, make_drawer, users
    ):
        drawer = await make_drawer()
        async with coordinator.transaction("test.add") as session:
            first = await membership.add_member(
                session, drawer.id, users.alice.id, DrawerRole.ADMIN
            )
            await membership.increment_count(session, drawer.id)
        async with coordinator.transaction("test.remove") as session:
            await membership.remove_member(session, drawer.id, users.alice.id)
            await membership.decrement_count(session, drawer.id)
        async with coordinator.transaction("test.revive") as session:
            revived = await membership.add_member(
                session, drawer.id, users.alice.id, DrawerRole.MEMBER
            )
            await membership.increment_count(session, drawer.id)

        assert revived.deleted_at is None
        assert revived.role == DrawerRole.MEMBER.value
        assert revived.joined_at.replace(tzinfo=None) == first.joined_at.replace(tzinfo=None)
        async with database.session() as session:
            assert await membership.get_member_count(session, drawer.id) == 2
            assert await membership.count_active_members(session, drawer.id) == 2

    async def test_decrement_never_goes_negative(self, coordinator, database, make_drawer):
        drawer = await make_drawer()
        async with coordinator.transaction("test.decrement") as session:
            await membership.decrement_count(session, drawer.id)
            await membership.decrement_count(session, drawer.id)
        async with database.session() as session:
            assert await membership.get_member_count(session, drawer.id) == 0

    async def test_my_drawers_excludes_left_and_deleted(
        self, coordinator, database, make_drawer, users
    ):
        kept = await make_drawer("Kept")
        gone = await make_drawer("Gone")
        await drawer_service.delete_drawer(coordinator, gone.id, users.owner.id)
        async with database.session() as session:
            rows = await membership.get_my_drawers(session, users.owner.id)
        assert [drawer.id for drawer, _ in rows] == [kept.id]


class TestTransactionCoordinator:

    async def test_rollback_discards_all_writes(self, coordinator, database, make_drawer, users):
        drawer = await make_drawer()
        with pytest.raises(ConflictError):
            async with coordinator.transaction("test.partial") as session:
                await membership.add_member(session, drawer.id, users.alice.id)
                await membership.increment_count(session, drawer.id)
                raise ConflictError("abort")

        async with database.session() as session:
            assert await membership.get_member(session, drawer.id, users.alice.id) is None
            assert await membership.get_member_count(session, drawer.id) == 1

    async def test_unexpected_errors_propagate(self, coordinator):
        with pytest.raises(RuntimeError):
            async with coordinator.transaction("test.boom"):
                raise RuntimeError("boom")


class TestCheckRole:

    async def test_missing_drawer(self, database, users):
        async with database.session() as session:
            with pytest.raises(NotFoundError):
                await check_role(session, uuid.uuid4(), users.owner.id, any_member)

    async def test_non_member(self, database, make_drawer, users):
        drawer = await make_drawer()
        async with database.session() as session:
            with pytest.raises(NotMemberError):
                await check_role(session, drawer.id, users.alice.id, any_member)

    async def test_role_predicates(self, coordinator, database, make_drawer, users):
        drawer = await make_drawer()
        async with coordinator.transaction("test.add") as session:
            await membership.add_member(session, drawer.id, users.alice.id, DrawerRole.ADMIN)
            await membership.add_member(session, drawer.id, users.bob.id, DrawerRole.MODERATOR)
            await membership.increment_count(session, drawer.id)
            await membership.increment_count(session, drawer.id)

        async with database.session() as session:
            owner = await check_role(session, drawer.id, users.owner.id, owner_only)
            assert owner.role == DrawerRole.OWNER.value
            await check_role(session, drawer.id, users.alice.id, at_least(DrawerRole.ADMIN))
            with pytest.raises(ForbiddenError):
                await check_role(session, drawer.id, users.bob.id, at_least(DrawerRole.ADMIN))
            with pytest.raises(ForbiddenError, match="Owners only"):
                await check_role(
                    session, drawer.id, users.alice.id, owner_only, message="Owners only"
                )
