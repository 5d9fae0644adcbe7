"""Matchmaking schema: profiles, skills, challenges, squads, duel queue, submissions.

Revision ID: 001_matchmaking_tables
Revises:
Create Date: 2026-10-19
"""

from collections.abc import Sequence

from alembic import op

revision: str = "001_matchmaking_tables"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    # --- Profiles & skills ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS profiles (
            id UUID PRIMARY KEY,
            username VARCHAR(64) UNIQUE NOT NULL,
            display_name VARCHAR(128),
            avatar_url TEXT,
            current_level INTEGER NOT NULL DEFAULT 1,
            total_xp INTEGER NOT NULL DEFAULT 0,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)
    op.execute("""
        CREATE TABLE IF NOT EXISTS skill_areas (
            id UUID PRIMARY KEY,
            name VARCHAR(64) NOT NULL,
            description TEXT,
            icon VARCHAR(64),
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)
    op.execute("""
        CREATE TABLE IF NOT EXISTS user_skill_levels (
            id UUID PRIMARY KEY,
            user_id UUID NOT NULL REFERENCES profiles(id) ON DELETE CASCADE,
            skill_area_id UUID NOT NULL REFERENCES skill_areas(id) ON DELETE CASCADE,
            level INTEGER NOT NULL DEFAULT 1,
            xp INTEGER NOT NULL DEFAULT 0,
            assessment_completed BOOLEAN NOT NULL DEFAULT false,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            CONSTRAINT user_skill_levels_user_area_key UNIQUE (user_id, skill_area_id)
        )
    """)

    # --- Challenges ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS challenges (
            id UUID PRIMARY KEY,
            title VARCHAR(256) NOT NULL,
            description TEXT,
            challenge_type VARCHAR(16) NOT NULL DEFAULT 'squad',
            skill_area_id UUID NOT NULL REFERENCES skill_areas(id) ON DELETE CASCADE,
            difficulty_level INTEGER NOT NULL DEFAULT 1,
            time_limit INTEGER,
            max_squad_size INTEGER DEFAULT 3,
            status VARCHAR(16) NOT NULL DEFAULT 'upcoming',
            starts_at TIMESTAMPTZ,
            ends_at TIMESTAMPTZ,
            content JSONB NOT NULL DEFAULT '{}',
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)

    # --- Squads ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS squads (
            id UUID PRIMARY KEY,
            challenge_id UUID NOT NULL REFERENCES challenges(id) ON DELETE CASCADE,
            name VARCHAR(64) NOT NULL,
            status VARCHAR(16) NOT NULL DEFAULT 'forming',
            average_level DOUBLE PRECISION NOT NULL DEFAULT 1,
            opponent_squad_id UUID REFERENCES squads(id) ON DELETE SET NULL,
            bot_mode BOOLEAN NOT NULL DEFAULT false,
            total_score INTEGER NOT NULL DEFAULT 0,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS idx_squads_challenge_status
        ON squads(challenge_id, status, average_level)
    """)
    op.execute("""
        CREATE TABLE IF NOT EXISTS squad_members (
            id UUID PRIMARY KEY,
            squad_id UUID NOT NULL REFERENCES squads(id) ON DELETE CASCADE,
            user_id UUID NOT NULL REFERENCES profiles(id) ON DELETE CASCADE,
            role VARCHAR(16) NOT NULL DEFAULT 'member',
            joined_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            CONSTRAINT squad_members_squad_user_key UNIQUE (squad_id, user_id)
        )
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS idx_squad_members_user
        ON squad_members(user_id)
    """)

    # --- Duel queue ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS match_queue (
            id UUID PRIMARY KEY,
            user_id UUID NOT NULL REFERENCES profiles(id) ON DELETE CASCADE,
            challenge_id UUID NOT NULL REFERENCES challenges(id) ON DELETE CASCADE,
            status VARCHAR(16) NOT NULL DEFAULT 'waiting',
            squad_id UUID REFERENCES squads(id) ON DELETE SET NULL,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            CONSTRAINT match_queue_user_challenge_key UNIQUE (user_id, challenge_id)
        )
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS idx_match_queue_waiting
        ON match_queue(challenge_id, created_at)
        WHERE status = 'waiting'
    """)

    # --- Submissions ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS challenge_submissions (
            id UUID PRIMARY KEY,
            challenge_id UUID NOT NULL REFERENCES challenges(id) ON DELETE CASCADE,
            squad_id UUID NOT NULL REFERENCES squads(id) ON DELETE CASCADE,
            user_id UUID NOT NULL REFERENCES profiles(id) ON DELETE CASCADE,
            answers JSONB NOT NULL DEFAULT '{}',
            score INTEGER NOT NULL DEFAULT 0,
            time_taken INTEGER,
            submitted_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            CONSTRAINT challenge_submissions_squad_user_key UNIQUE (squad_id, user_id)
        )
    """)


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS challenge_submissions CASCADE")
    op.execute("DROP TABLE IF EXISTS match_queue CASCADE")
    op.execute("DROP TABLE IF EXISTS squad_members CASCADE")
    op.execute("DROP TABLE IF EXISTS squads CASCADE")
    op.execute("DROP TABLE IF EXISTS challenges CASCADE")
    op.execute("DROP TABLE IF EXISTS user_skill_levels CASCADE")
    op.execute("DROP TABLE IF EXISTS skill_areas CASCADE")
    op.execute("DROP TABLE IF EXISTS profiles CASCADE")
