"""
rallypoint.database.models — SQLAlchemy 2.0 Data Models
========================================================

Tables:
- users              — Community member profiles + VIP tier
- clans              — Player clans (member_count derived from users.clan_id)
- lfg_posts          — Looking-for-group postings (players_joined counter)
- lfg_participants   — One row per (post, user) membership
- builds             — Shared builds / guides (up/down vote tallies)
- build_votes        — One row per (build, user) vote
- forum_categories   — Forum sections (thread_count counter)
- forum_threads      — Threads (reply_count / last_reply_at counters)
- forum_replies      — Immutable replies
- chat_messages      — Direct and clan chat

Every counter column is denormalized from a fact table and only moves
through the service layer (relative ``col = col ± 1`` updates).
"""

from __future__ import annotations

import enum
import uuid
from datetime import datetime

from sqlalchemy import (
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


def new_id() -> str:
    """Primary keys are UUID strings generated client-side."""
    return str(uuid.uuid4())


# ---------------------------------------------------------------------------
# Base
# ---------------------------------------------------------------------------
class Base(DeclarativeBase):
    """Shared base for all Rallypoint ORM models."""


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------
class VipTier(enum.StrEnum):
    """Paid membership tiers, cheapest first."""
    NONE = "none"
    BRONZE = "bronze"
    SAPPHIRE = "sapphire"
    DIAMOND = "diamond"
    FOUNDERS = "founders"


class SkillLevel(enum.StrEnum):
    BEGINNER = "beginner"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"
    EXPERT = "expert"
    PRO = "pro"


class GameRole(enum.StrEnum):
    """Roles an LFG post can ask for.  ``ANY`` is the join default."""
    TANK = "tank"
    DPS = "dps"
    SUPPORT = "support"
    HEALER = "healer"
    FLEX = "flex"
    ANY = "any"


class VoteDirection(enum.StrEnum):
    UP = "up"
    DOWN = "down"

    @property
    def counter(self) -> str:
        """Name of the Build column this direction tallies into."""
        return "upvotes" if self is VoteDirection.UP else "downvotes"


# ---------------------------------------------------------------------------
# Users — community member profiles
# ---------------------------------------------------------------------------
class User(Base):
    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    email: Mapped[str | None] = mapped_column(String(255), unique=True, default=None)
    username: Mapped[str | None] = mapped_column(String(50), unique=True, default=None)
    first_name: Mapped[str | None] = mapped_column(String(100), default=None)
    last_name: Mapped[str | None] = mapped_column(String(100), default=None)
    profile_image_url: Mapped[str | None] = mapped_column(String(500), default=None)
    bio: Mapped[str | None] = mapped_column(Text, default=None)
    vip_tier: Mapped[str] = mapped_column(
        String(20), nullable=False, default=VipTier.NONE.value
    )
    games_played: Mapped[int] = mapped_column(Integer, default=0)
    total_posts: Mapped[int] = mapped_column(Integer, default=0)
    reputation: Mapped[int] = mapped_column(Integer, default=0)
    clan_id: Mapped[str | None] = mapped_column(
        String(36), ForeignKey("clans.id", ondelete="SET NULL"), nullable=True
    )
    clan_role: Mapped[str | None] = mapped_column(String(20), default=None)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    __table_args__ = (
        Index("ix_users_clan_id", "clan_id"),
    )

    def __repr__(self) -> str:
        return f"<User id={self.id} username={self.username!r} tier={self.vip_tier}>"


# ---------------------------------------------------------------------------
# Clans
# ---------------------------------------------------------------------------
class Clan(Base):
    __tablename__ = "clans"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    name: Mapped[str] = mapped_column(String(100), nullable=False, unique=True)
    tag: Mapped[str] = mapped_column(String(6), nullable=False, unique=True)
    description: Mapped[str | None] = mapped_column(Text, default=None)
    logo_url: Mapped[str | None] = mapped_column(String(500), default=None)
    banner_url: Mapped[str | None] = mapped_column(String(500), default=None)
    owner_id: Mapped[str] = mapped_column(String(36), nullable=False)
    is_recruiting: Mapped[bool] = mapped_column(Boolean, default=True)
    member_count: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    max_members: Mapped[int | None] = mapped_column(Integer, nullable=True, default=50)  # None = unlimited
    discord_invite: Mapped[str | None] = mapped_column(String(200), default=None)
    primary_game: Mapped[str | None] = mapped_column(String(100), default=None)
    requirements: Mapped[str | None] = mapped_column(Text, default=None)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    def __repr__(self) -> str:
        return f"<Clan id={self.id} tag={self.tag!r} members={self.member_count}>"


# ---------------------------------------------------------------------------
# LFG — postings and their participants
# ---------------------------------------------------------------------------
class LfgPost(Base):
    __tablename__ = "lfg_posts"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    author_id: Mapped[str] = mapped_column(String(36), nullable=False)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, default=None)
    game: Mapped[str] = mapped_column(String(100), nullable=False)
    platform: Mapped[str] = mapped_column(String(50), nullable=False)
    region: Mapped[str | None] = mapped_column(String(50), default=None)
    skill_level: Mapped[str] = mapped_column(
        String(20), nullable=False, default=SkillLevel.INTERMEDIATE.value
    )
    role_needed: Mapped[str] = mapped_column(
        String(20), nullable=False, default=GameRole.ANY.value
    )
    players_needed: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    players_joined: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    scheduled_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    participants: Mapped[list[LfgParticipant]] = relationship(
        back_populates="post", cascade="all, delete-orphan", passive_deletes=True
    )

    __table_args__ = (
        Index("ix_lfg_posts_active_created", "is_active", "created_at"),
    )

    def __repr__(self) -> str:
        return (
            f"<LfgPost id={self.id} game={self.game!r} "
            f"joined={self.players_joined}/{self.players_needed}>"
        )


class LfgParticipant(Base):
    __tablename__ = "lfg_participants"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    lfg_post_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("lfg_posts.id", ondelete="CASCADE"), nullable=False
    )
    user_id: Mapped[str] = mapped_column(String(36), nullable=False)
    role: Mapped[str] = mapped_column(String(20), nullable=False, default=GameRole.ANY.value)
    joined_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    post: Mapped[LfgPost] = relationship(back_populates="participants")

    __table_args__ = (
        UniqueConstraint("lfg_post_id", "user_id", name="uq_lfg_participants_post_user"),
    )

    def __repr__(self) -> str:
        return f"<LfgParticipant post={self.lfg_post_id} user={self.user_id} role={self.role}>"


# ---------------------------------------------------------------------------
# Builds — shared guides with per-user votes
# ---------------------------------------------------------------------------
class Build(Base):
    __tablename__ = "builds"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    author_id: Mapped[str] = mapped_column(String(36), nullable=False)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, default=None)
    game: Mapped[str] = mapped_column(String(100), nullable=False)
    character: Mapped[str | None] = mapped_column(String(100), default=None)
    category: Mapped[str | None] = mapped_column(String(100), default=None)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    image_url: Mapped[str | None] = mapped_column(String(500), default=None)
    upvotes: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    downvotes: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    view_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    is_featured: Mapped[bool] = mapped_column(Boolean, default=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    votes: Mapped[list[BuildVote]] = relationship(
        back_populates="build", cascade="all, delete-orphan", passive_deletes=True
    )

    __table_args__ = (
        Index("ix_builds_upvotes_created", "upvotes", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<Build id={self.id} title={self.title!r} +{self.upvotes}/-{self.downvotes}>"


class BuildVote(Base):
    __tablename__ = "build_votes"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    build_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("builds.id", ondelete="CASCADE"), nullable=False
    )
    user_id: Mapped[str] = mapped_column(String(36), nullable=False)
    direction: Mapped[str] = mapped_column(String(4), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    build: Mapped[Build] = relationship(back_populates="votes")

    __table_args__ = (
        UniqueConstraint("build_id", "user_id", name="uq_build_votes_build_user"),
    )

    def __repr__(self) -> str:
        return f"<BuildVote build={self.build_id} user={self.user_id} dir={self.direction}>"


# ---------------------------------------------------------------------------
# Forum — categories, threads, replies
# ---------------------------------------------------------------------------
class ForumCategory(Base):
    __tablename__ = "forum_categories"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, default=None)
    icon: Mapped[str | None] = mapped_column(String(50), default=None)
    color: Mapped[str | None] = mapped_column(String(30), default=None)
    sort_order: Mapped[int] = mapped_column("order", Integer, default=0)
    thread_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    def __repr__(self) -> str:
        return f"<ForumCategory id={self.id} name={self.name!r} threads={self.thread_count}>"


class ForumThread(Base):
    __tablename__ = "forum_threads"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    category_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("forum_categories.id", ondelete="CASCADE"), nullable=False
    )
    author_id: Mapped[str] = mapped_column(String(36), nullable=False)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    is_pinned: Mapped[bool] = mapped_column(Boolean, default=False)
    is_locked: Mapped[bool] = mapped_column(Boolean, default=False)
    view_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    reply_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    last_reply_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    __table_args__ = (
        Index("ix_forum_threads_category", "category_id", "is_pinned", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<ForumThread id={self.id} title={self.title!r} replies={self.reply_count}>"


class ForumReply(Base):
    __tablename__ = "forum_replies"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    thread_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("forum_threads.id", ondelete="CASCADE"), nullable=False
    )
    author_id: Mapped[str] = mapped_column(String(36), nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    parent_reply_id: Mapped[str | None] = mapped_column(String(36), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    __table_args__ = (
        Index("ix_forum_replies_thread_created", "thread_id", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<ForumReply id={self.id} thread={self.thread_id}>"


# ---------------------------------------------------------------------------
# Chat — direct or clan-wide messages
# ---------------------------------------------------------------------------
class ChatMessage(Base):
    __tablename__ = "chat_messages"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    sender_id: Mapped[str] = mapped_column(String(36), nullable=False)
    recipient_id: Mapped[str | None] = mapped_column(String(36), nullable=True)
    clan_id: Mapped[str | None] = mapped_column(String(36), nullable=True)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    is_read: Mapped[bool] = mapped_column(Boolean, default=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    __table_args__ = (
        Index("ix_chat_messages_recipient", "recipient_id", "created_at"),
        Index("ix_chat_messages_clan", "clan_id", "created_at"),
    )

    def __repr__(self) -> str:
        target = f"clan={self.clan_id}" if self.clan_id else f"to={self.recipient_id}"
        return f"<ChatMessage id={self.id} from={self.sender_id} {target}>"
