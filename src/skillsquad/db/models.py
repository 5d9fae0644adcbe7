"""ORM models for profiles, challenges, squads and the duel queue.

The production schema is created by the Alembic migrations; the same
metadata is used with ``create_all`` for the SQLite test database, so the
column types stay portable (``Uuid``, ``JSON`` with a JSONB variant).
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import (
    JSON,
    Boolean,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
    Uuid,
    false,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column, relationship

from skillsquad.db.base import Base

JSONType = JSON().with_variant(JSONB(), "postgresql")

# Squad lifecycle
SQUAD_FORMING = "forming"
SQUAD_READY = "ready"
SQUAD_ACTIVE = "active"
SQUAD_COMPLETED = "completed"

# Queue entry lifecycle
QUEUE_WAITING = "waiting"
QUEUE_MATCHED = "matched"

ROLE_LEADER = "leader"
ROLE_MEMBER = "member"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ---------------------------------------------------------------------------
# Profiles & skills
# ---------------------------------------------------------------------------


class Profile(Base):
    """Maps to the 'profiles' table. Bots are ordinary profiles."""

    __tablename__ = "profiles"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    username: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    display_name: Mapped[str | None] = mapped_column(String(128), nullable=True)
    avatar_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    current_level: Mapped[int] = mapped_column(Integer, nullable=False, default=1, server_default="1")
    total_xp: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)

    skill_levels: Mapped[list[SkillLevel]] = relationship("SkillLevel", back_populates="user")


class SkillArea(Base):
    """A subject area (e.g. frontend, backend) that levels are tracked for."""

    __tablename__ = "skill_areas"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String(64), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    icon: Mapped[str | None] = mapped_column(String(64), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)


class SkillLevel(Base):
    """Per-skill-area level and XP for a user."""

    __tablename__ = "user_skill_levels"
    __table_args__ = (
        UniqueConstraint("user_id", "skill_area_id", name="user_skill_levels_user_area_key"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False)
    skill_area_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("skill_areas.id", ondelete="CASCADE"), nullable=False
    )
    level: Mapped[int] = mapped_column(Integer, nullable=False, default=1, server_default="1")
    xp: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    assessment_completed: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=false()
    )
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)

    user: Mapped[Profile] = relationship("Profile", back_populates="skill_levels")


# ---------------------------------------------------------------------------
# Challenges
# ---------------------------------------------------------------------------


class Challenge(Base):
    """A timed activity. Read-only to the matchmaking handlers."""

    __tablename__ = "challenges"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    title: Mapped[str] = mapped_column(String(256), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    challenge_type: Mapped[str] = mapped_column(String(16), nullable=False, default="squad")
    skill_area_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("skill_areas.id", ondelete="CASCADE"), nullable=False
    )
    difficulty_level: Mapped[int] = mapped_column(Integer, nullable=False, default=1, server_default="1")
    time_limit: Mapped[int | None] = mapped_column(Integer, nullable=True)
    max_squad_size: Mapped[int | None] = mapped_column(Integer, nullable=True, default=3)
    status: Mapped[str] = mapped_column(String(16), nullable=False, default="upcoming")
    starts_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    ends_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    content: Mapped[dict[str, Any]] = mapped_column(JSONType, nullable=False, default=dict)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)


# ---------------------------------------------------------------------------
# Squads
# ---------------------------------------------------------------------------


class Squad(Base):
    """A team bound to one challenge. Duels are two one-member squads."""

    __tablename__ = "squads"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    challenge_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("challenges.id", ondelete="CASCADE"), nullable=False
    )
    name: Mapped[str] = mapped_column(String(64), nullable=False)
    status: Mapped[str] = mapped_column(String(16), nullable=False, default=SQUAD_FORMING)
    average_level: Mapped[float] = mapped_column(Float, nullable=False, default=1.0)
    opponent_squad_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("squads.id", ondelete="SET NULL"), nullable=True
    )
    bot_mode: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default=false())
    total_score: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)

    members: Mapped[list[SquadMember]] = relationship(
        "SquadMember", back_populates="squad", cascade="all, delete-orphan"
    )


class SquadMember(Base):
    """Squad membership. A user appears at most once per squad."""

    __tablename__ = "squad_members"
    __table_args__ = (
        UniqueConstraint("squad_id", "user_id", name="squad_members_squad_user_key"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    squad_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("squads.id", ondelete="CASCADE"), nullable=False)
    user_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False)
    role: Mapped[str] = mapped_column(String(16), nullable=False, default=ROLE_MEMBER)
    joined_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)

    squad: Mapped[Squad] = relationship("Squad", back_populates="members")
    user: Mapped[Profile] = relationship("Profile")


# ---------------------------------------------------------------------------
# Duel queue
# ---------------------------------------------------------------------------


class MatchQueueEntry(Base):
    """A user's pending duel request. One row per (user, challenge), reused on every search."""

    __tablename__ = "match_queue"
    __table_args__ = (
        UniqueConstraint("user_id", "challenge_id", name="match_queue_user_challenge_key"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False)
    challenge_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("challenges.id", ondelete="CASCADE"), nullable=False
    )
    status: Mapped[str] = mapped_column(String(16), nullable=False, default=QUEUE_WAITING)
    squad_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("squads.id", ondelete="SET NULL"), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)


# ---------------------------------------------------------------------------
# Submissions
# ---------------------------------------------------------------------------


class ChallengeSubmission(Base):
    """A member's answers for a challenge, scored on insert."""

    __tablename__ = "challenge_submissions"
    __table_args__ = (
        UniqueConstraint("squad_id", "user_id", name="challenge_submissions_squad_user_key"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    challenge_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("challenges.id", ondelete="CASCADE"), nullable=False
    )
    squad_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("squads.id", ondelete="CASCADE"), nullable=False)
    user_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False)
    answers: Mapped[dict[str, Any]] = mapped_column(JSONType, nullable=False, default=dict)
    score: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    time_taken: Mapped[int | None] = mapped_column(Integer, nullable=True)
    submitted_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)
