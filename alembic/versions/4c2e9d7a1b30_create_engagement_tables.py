"""Create engagement tables

Revision ID: 4c2e9d7a1b30
Revises:
Create Date: 2026-10-19 09:12:41.508113

"""
from collections.abc import Sequence

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision: str = '4c2e9d7a1b30'
down_revision: str | Sequence[str] | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def _id() -> sa.Column:
    return sa.Column("id", sa.String(36), primary_key=True)


def _created_at(name: str = "created_at") -> sa.Column:
    return sa.Column(
        name, sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now(),
    )


def upgrade() -> None:
    """Create users, clans, LFG, builds, forum and chat tables."""

    # --- clans (users.clan_id points here) ---
    op.create_table(
        "clans",
        _id(),
        sa.Column("name", sa.String(100), nullable=False, unique=True),
        sa.Column("tag", sa.String(6), nullable=False, unique=True),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column("logo_url", sa.String(500), nullable=True),
        sa.Column("banner_url", sa.String(500), nullable=True),
        sa.Column("owner_id", sa.String(36), nullable=False),
        sa.Column("is_recruiting", sa.Boolean, nullable=True, server_default=sa.true()),
        sa.Column("member_count", sa.Integer, nullable=False, server_default="1"),
        sa.Column("max_members", sa.Integer, nullable=True, server_default="50"),
        sa.Column("discord_invite", sa.String(200), nullable=True),
        sa.Column("primary_game", sa.String(100), nullable=True),
        sa.Column("requirements", sa.Text, nullable=True),
        _created_at(),
        _created_at("updated_at"),
    )

    # --- users ---
    op.create_table(
        "users",
        _id(),
        sa.Column("email", sa.String(255), nullable=True, unique=True),
        sa.Column("username", sa.String(50), nullable=True, unique=True),
        sa.Column("first_name", sa.String(100), nullable=True),
        sa.Column("last_name", sa.String(100), nullable=True),
        sa.Column("profile_image_url", sa.String(500), nullable=True),
        sa.Column("bio", sa.Text, nullable=True),
        sa.Column("vip_tier", sa.String(20), nullable=False, server_default="none"),
        sa.Column("games_played", sa.Integer, nullable=True, server_default="0"),
        sa.Column("total_posts", sa.Integer, nullable=True, server_default="0"),
        sa.Column("reputation", sa.Integer, nullable=True, server_default="0"),
        sa.Column(
            "clan_id", sa.String(36),
            sa.ForeignKey("clans.id", ondelete="SET NULL"), nullable=True,
        ),
        sa.Column("clan_role", sa.String(20), nullable=True),
        _created_at(),
        _created_at("updated_at"),
    )
    op.create_index("ix_users_clan_id", "users", ["clan_id"])

    # --- lfg ---
    op.create_table(
        "lfg_posts",
        _id(),
        sa.Column("author_id", sa.String(36), nullable=False),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column("game", sa.String(100), nullable=False),
        sa.Column("platform", sa.String(50), nullable=False),
        sa.Column("region", sa.String(50), nullable=True),
        sa.Column("skill_level", sa.String(20), nullable=False, server_default="intermediate"),
        sa.Column("role_needed", sa.String(20), nullable=False, server_default="any"),
        sa.Column("players_needed", sa.Integer, nullable=False, server_default="1"),
        sa.Column("players_joined", sa.Integer, nullable=False, server_default="0"),
        sa.Column("scheduled_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("is_active", sa.Boolean, nullable=True, server_default=sa.true()),
        _created_at(),
        _created_at("updated_at"),
    )
    op.create_index("ix_lfg_posts_active_created", "lfg_posts", ["is_active", "created_at"])

    op.create_table(
        "lfg_participants",
        _id(),
        sa.Column(
            "lfg_post_id", sa.String(36),
            sa.ForeignKey("lfg_posts.id", ondelete="CASCADE"), nullable=False,
        ),
        sa.Column("user_id", sa.String(36), nullable=False),
        sa.Column("role", sa.String(20), nullable=False, server_default="any"),
        _created_at("joined_at"),
        sa.UniqueConstraint("lfg_post_id", "user_id", name="uq_lfg_participants_post_user"),
    )

    # --- builds ---
    op.create_table(
        "builds",
        _id(),
        sa.Column("author_id", sa.String(36), nullable=False),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column("game", sa.String(100), nullable=False),
        sa.Column("character", sa.String(100), nullable=True),
        sa.Column("category", sa.String(100), nullable=True),
        sa.Column("content", sa.Text, nullable=False),
        sa.Column("image_url", sa.String(500), nullable=True),
        sa.Column("upvotes", sa.Integer, nullable=False, server_default="0"),
        sa.Column("downvotes", sa.Integer, nullable=False, server_default="0"),
        sa.Column("view_count", sa.Integer, nullable=False, server_default="0"),
        sa.Column("is_featured", sa.Boolean, nullable=True, server_default=sa.false()),
        _created_at(),
        _created_at("updated_at"),
    )
    op.create_index("ix_builds_upvotes_created", "builds", ["upvotes", "created_at"])

    op.create_table(
        "build_votes",
        _id(),
        sa.Column(
            "build_id", sa.String(36),
            sa.ForeignKey("builds.id", ondelete="CASCADE"), nullable=False,
        ),
        sa.Column("user_id", sa.String(36), nullable=False),
        sa.Column("direction", sa.String(4), nullable=False),
        _created_at(),
        sa.UniqueConstraint("build_id", "user_id", name="uq_build_votes_build_user"),
    )

    # --- forum ---
    op.create_table(
        "forum_categories",
        _id(),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column("icon", sa.String(50), nullable=True),
        sa.Column("color", sa.String(30), nullable=True),
        sa.Column("order", sa.Integer, nullable=True, server_default="0"),
        sa.Column("thread_count", sa.Integer, nullable=False, server_default="0"),
        _created_at(),
    )

    op.create_table(
        "forum_threads",
        _id(),
        sa.Column(
            "category_id", sa.String(36),
            sa.ForeignKey("forum_categories.id", ondelete="CASCADE"), nullable=False,
        ),
        sa.Column("author_id", sa.String(36), nullable=False),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("content", sa.Text, nullable=False),
        sa.Column("is_pinned", sa.Boolean, nullable=True, server_default=sa.false()),
        sa.Column("is_locked", sa.Boolean, nullable=True, server_default=sa.false()),
        sa.Column("view_count", sa.Integer, nullable=False, server_default="0"),
        sa.Column("reply_count", sa.Integer, nullable=False, server_default="0"),
        sa.Column("last_reply_at", sa.DateTime(timezone=True), nullable=True),
        _created_at(),
        _created_at("updated_at"),
    )
    op.create_index(
        "ix_forum_threads_category", "forum_threads",
        ["category_id", "is_pinned", "created_at"],
    )

    op.create_table(
        "forum_replies",
        _id(),
        sa.Column(
            "thread_id", sa.String(36),
            sa.ForeignKey("forum_threads.id", ondelete="CASCADE"), nullable=False,
        ),
        sa.Column("author_id", sa.String(36), nullable=False),
        sa.Column("content", sa.Text, nullable=False),
        sa.Column("parent_reply_id", sa.String(36), nullable=True),
        _created_at(),
    )
    op.create_index(
        "ix_forum_replies_thread_created", "forum_replies", ["thread_id", "created_at"],
    )

    # --- chat ---
    op.create_table(
        "chat_messages",
        _id(),
        sa.Column("sender_id", sa.String(36), nullable=False),
        sa.Column("recipient_id", sa.String(36), nullable=True),
        sa.Column("clan_id", sa.String(36), nullable=True),
        sa.Column("content", sa.Text, nullable=False),
        sa.Column("is_read", sa.Boolean, nullable=True, server_default=sa.false()),
        _created_at(),
    )
    op.create_index("ix_chat_messages_recipient", "chat_messages", ["recipient_id", "created_at"])
    op.create_index("ix_chat_messages_clan", "chat_messages", ["clan_id", "created_at"])


def downgrade() -> None:
    """Drop every engagement table, children first."""
    for table in (
        "chat_messages",
        "forum_replies",
        "forum_threads",
        "forum_categories",
        "build_votes",
        "builds",
        "lfg_participants",
        "lfg_posts",
        "users",
        "clans",
    ):
        op.drop_table(table)
