"""Matchmaking error types.

Each error carries the HTTP status the API returns for it; the global
exception handler renders them as ``{"error": message}``.
"""

from __future__ import annotations


class MatchmakingError(ValueError):
    """Base class for errors raised by the matchmaking handlers."""

    status_code = 500


class InvalidParameters(MatchmakingError):
    """Missing or inconsistent request identifiers. Raised before any write."""

    status_code = 400


class NotFound(MatchmakingError):
    """A referenced profile, skill level, challenge or squad does not exist."""

    status_code = 404


class InsufficientBots(MatchmakingError):
    """Not enough bot profiles to fill a practice match."""

    status_code = 409


class LinkageError(MatchmakingError):
    """Two squads cannot be linked as opponents."""

    status_code = 409


class AlreadySubmitted(MatchmakingError):
    """The user already submitted answers for this squad."""

    status_code = 409


class StoreUnavailable(MatchmakingError):
    """The data store rejected a write the handler cannot continue without."""

    status_code = 503


def require_ids(**ids: object) -> None:
    """Raise InvalidParameters naming every missing identifier."""
    missing = [name for name, value in ids.items() if not value]
    if missing:
        raise InvalidParameters(f"Missing required parameters: {' and '.join(missing)}")
