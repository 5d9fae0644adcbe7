"""Publish match notifications over Redis pub/sub.

Clients waiting on a duel or squad subscribe to ``ws:user:{user_id}``
instead of polling. Every match is also announced on ``pubsub:match_update``.
Publishing happens after the match is committed, so failures are logged
and never surface to the caller.
"""

from __future__ import annotations

import json
import uuid
from collections.abc import Iterable

import structlog

logger = structlog.get_logger()

MATCH_UPDATE_CHANNEL = "pubsub:match_update"


def user_channel(user_id: uuid.UUID | str) -> str:
    return f"ws:user:{user_id}"


async def publish_squad_matched(
    redis: object | None,
    challenge_id: uuid.UUID,
    pairings: Iterable[tuple[uuid.UUID, uuid.UUID, uuid.UUID | None]],
    kind: str,
) -> int:
    """Notify each participant of their squad and opponent squad.

    ``pairings`` yields ``(user_id, squad_id, opponent_squad_id)``.
    Returns the number of messages published.
    """
    if redis is None:
        return 0

    published = 0
    try:
        for user_id, squad_id, opponent_squad_id in pairings:
            payload = {
                "event": "squad_matched",
                "data": {
                    "kind": kind,
                    "challengeId": str(challenge_id),
                    "squadId": str(squad_id),
                    "opponentSquadId": str(opponent_squad_id) if opponent_squad_id else None,
                },
            }
            await redis.publish(user_channel(user_id), json.dumps(payload))  # type: ignore[attr-defined]
            published += 1

        await redis.publish(  # type: ignore[attr-defined]
            MATCH_UPDATE_CHANNEL,
            json.dumps({"event": "match_update", "data": {"kind": kind, "challengeId": str(challenge_id)}}),
        )
        published += 1
    except Exception:
        logger.warning("match_event_publish_failed", challenge_id=str(challenge_id), kind=kind, exc_info=True)

    return published
