"""Pydantic schemas for the matchmaking functions and endpoints.

Request and response bodies use camelCase on the wire.
"""

from __future__ import annotations

import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# --- Requests ---


class FindOpponentRequest(CamelModel):
    user_id: uuid.UUID | None = None
    challenge_id: uuid.UUID | None = None


class CreateDuelRequest(CamelModel):
    challenge_id: uuid.UUID | None = None
    user1_id: uuid.UUID | None = None
    user2_id: uuid.UUID | None = None


class MatchSquadRequest(CamelModel):
    user_id: uuid.UUID | None = None
    challenge_id: uuid.UUID | None = None
    skill_area_id: uuid.UUID | None = None


class BotMatchRequest(CamelModel):
    user_id: uuid.UUID | None = None
    challenge_id: uuid.UUID | None = None


# --- Responses ---


class DuelMatchedResponse(CamelModel):
    status: str = "matched"
    squad_id: uuid.UUID
    opponent_squad_id: uuid.UUID | None = None


class DuelWaitingResponse(CamelModel):
    status: str = "waiting"
    message: str
    poll_interval_seconds: int
    timeout_seconds: int


class DuelCreatedResponse(CamelModel):
    squad_id: uuid.UUID
    opponent_squad_id: uuid.UUID


class MatchSquadResponse(CamelModel):
    squad_id: uuid.UUID
    message: str
    status: str


class BotMatchResponse(CamelModel):
    user_squad_id: uuid.UUID
    opponent_squad_id: uuid.UUID


class QueueEntryResponse(CamelModel):
    user_id: uuid.UUID
    challenge_id: uuid.UUID
    status: str
    squad_id: uuid.UUID | None = None
    created_at: datetime
    updated_at: datetime


class SquadMemberResponse(CamelModel):
    user_id: uuid.UUID
    username: str
    display_name: str | None = None
    avatar_url: str | None = None
    role: str


class SquadResponse(CamelModel):
    id: uuid.UUID
    challenge_id: uuid.UUID
    name: str
    status: str
    average_level: float
    opponent_squad_id: uuid.UUID | None = None
    bot_mode: bool
    total_score: int
    members: list[SquadMemberResponse] = []
