"""Pydantic schemas for challenge submissions."""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any

from pydantic import Field

from skillsquad.matchmaking.schemas import CamelModel


class SubmitChallengeRequest(CamelModel):
    user_id: uuid.UUID | None = None
    squad_id: uuid.UUID | None = None
    answers: dict[str, Any] = Field(default_factory=dict)
    time_taken: int | None = Field(None, ge=0)


class SubmissionResponse(CamelModel):
    id: uuid.UUID
    challenge_id: uuid.UUID
    squad_id: uuid.UUID
    user_id: uuid.UUID
    score: int
    time_taken: int | None = None
    submitted_at: datetime
    squad_total_score: int
    squad_status: str
