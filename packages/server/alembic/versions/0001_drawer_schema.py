"""Drawer schema: users, drawers, settings, memberships, invitations, join requests.

Revision ID: 0001_drawer_schema
Revises:
Create Date: 2026-10-18 09:00:00.000000
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

revision: str = "0001_drawer_schema"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

UUID = postgresql.UUID(as_uuid=True)


def _timestamp(name: str, nullable: bool = False) -> sa.Column:
    if nullable:
        return sa.Column(name, sa.DateTime(timezone=True), nullable=True)
    return sa.Column(
        name, sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")
    )


def upgrade() -> None:
    # users (provisioned from the identity provider)
    op.create_table(
        "users",
        sa.Column("id", UUID, primary_key=True),
        sa.Column("uid", sa.Text(), nullable=False),
        sa.Column("email", sa.Text(), nullable=True),
        sa.Column("display_name", sa.Text(), nullable=True),
        sa.Column("user_code", sa.Text(), nullable=True, unique=True),
        sa.Column("image_url", sa.Text(), nullable=True),
        _timestamp("created_at"),
        _timestamp("deleted_at", nullable=True),
    )
    op.create_index("ix_users_uid", "users", ["uid"], unique=True)
    op.create_index("ix_users_email", "users", ["email"])

    # drawers
    op.create_table(
        "drawers",
        sa.Column("id", UUID, primary_key=True),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("image_url", sa.Text(), nullable=True),
        sa.Column("thumbnail_url", sa.Text(), nullable=True),
        sa.Column("member_count", sa.Integer(), nullable=False, server_default="0"),
        _timestamp("last_activity_at"),
        _timestamp("created_at"),
        _timestamp("updated_at"),
        _timestamp("deleted_at", nullable=True),
        sa.CheckConstraint("member_count >= 0", name="ck_drawers_member_count_non_negative"),
    )
    op.create_index("ix_drawers_name", "drawers", ["name"])
    op.create_index("ix_drawers_last_activity_at", "drawers", ["last_activity_at"])

    # drawer_settings (1:1 with drawers)
    op.create_table(
        "drawer_settings",
        sa.Column("drawer_id", UUID, sa.ForeignKey("drawers.id"), primary_key=True),
        sa.Column("is_public", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("is_searchable", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("require_approval", sa.Boolean(), nullable=False, server_default=sa.false()),
        _timestamp("updated_at"),
    )

    # drawer_users (memberships, soft-deleted on leave/kick)
    op.create_table(
        "drawer_users",
        sa.Column("drawer_id", UUID, sa.ForeignKey("drawers.id"), primary_key=True),
        sa.Column("user_id", UUID, sa.ForeignKey("users.id"), primary_key=True),
        sa.Column("role", sa.Integer(), nullable=False, server_default="3"),
        sa.Column("notification_level", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("nickname_in_drawer", sa.Text(), nullable=True),
        _timestamp("joined_at"),
        _timestamp("created_at"),
        _timestamp("updated_at"),
        _timestamp("deleted_at", nullable=True),
    )
    op.create_index(
        "uq_drawer_users_active_owner",
        "drawer_users",
        ["drawer_id"],
        unique=True,
        postgresql_where=sa.text("role = 0 AND deleted_at IS NULL"),
    )
    op.create_index("ix_drawer_users_user_active", "drawer_users", ["user_id", "deleted_at"])

    # drawer_invitations
    op.create_table(
        "drawer_invitations",
        sa.Column("id", UUID, primary_key=True),
        sa.Column("drawer_id", UUID, sa.ForeignKey("drawers.id"), nullable=False),
        sa.Column("inviter_id", UUID, sa.ForeignKey("users.id"), nullable=False),
        sa.Column("token", sa.Text(), nullable=False),
        sa.Column("max_uses", sa.Integer(), nullable=True),
        sa.Column("uses_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        _timestamp("created_at"),
        sa.CheckConstraint(
            "max_uses IS NULL OR uses_count <= max_uses",
            name="ck_drawer_invitations_uses_within_cap",
        ),
    )
    op.create_index("ix_drawer_invitations_token", "drawer_invitations", ["token"], unique=True)
    op.create_index("ix_drawer_invitations_drawer_id", "drawer_invitations", ["drawer_id"])

    # drawer_join_requests
    op.create_table(
        "drawer_join_requests",
        sa.Column("id", UUID, primary_key=True),
        sa.Column("drawer_id", UUID, sa.ForeignKey("drawers.id"), nullable=False),
        sa.Column("user_id", UUID, sa.ForeignKey("users.id"), nullable=False),
        sa.Column("status", sa.Integer(), nullable=False, server_default="0"),
        _timestamp("created_at"),
        _timestamp("updated_at"),
    )
    op.create_index("ix_drawer_join_requests_drawer_id", "drawer_join_requests", ["drawer_id"])
    op.create_index("ix_drawer_join_requests_user_id", "drawer_join_requests", ["user_id"])


def downgrade() -> None:
    op.drop_table("drawer_join_requests")
    op.drop_table("drawer_invitations")
    op.drop_index("ix_drawer_users_user_active", table_name="drawer_users")
    op.drop_index("uq_drawer_users_active_owner", table_name="drawer_users")
    op.drop_table("drawer_users")
    op.drop_table("drawer_settings")
    op.drop_table("drawers")
    op.drop_table("users")
