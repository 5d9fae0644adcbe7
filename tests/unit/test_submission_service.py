"""Challenge submission and squad scoring tests."""

from __future__ import annotations

import pytest

from skillsquad.challenges.submission_service import POINTS_PER_ANSWER, score_answers, submit_challenge
from skillsquad.db.models import Squad
from skillsquad.matchmaking.bot_service import create_bot_squad_match
from skillsquad.matchmaking.duel_service import create_duel_match
from skillsquad.matchmaking.errors import AlreadySubmitted, InvalidParameters, NotFound
from skillsquad.matchmaking.squad_service import match_squad
from tests.conftest import create_bots, create_challenge, create_leveled_user, create_profile, random_id


async def _squad(db, squad_id) -> Squad:
    return await db.get(Squad, squad_id, populate_existing=True)


class TestScoreAnswers:
    def test_counts_non_blank(self):
        assert score_answers({"q0": "GET /items", "q1": "", "q2": "   ", "q3": None}) == POINTS_PER_ANSWER

    def test_empty(self):
        assert score_answers({}) == 0

    def test_non_string_answers(self):
        assert score_answers({"q0": 3, "q1": ["a"]}) == 2 * POINTS_PER_ANSWER


class TestSubmitChallenge:
    """Submissions update the squad score and complete finished squads."""

    @pytest.mark.asyncio
    async def test_duel_submission_completes_squad(self, db_session, duel_challenge):
        alice = await create_profile(db_session, "alice")
        bob = await create_profile(db_session, "bob")
        squad, opponent = await create_duel_match(db_session, duel_challenge.id, alice.id, bob.id)
        await db_session.commit()

        submission = await submit_challenge(
            db_session, duel_challenge.id, squad.id, alice.id, {"q0": "a", "q1": "b"}, time_taken=42,
        )

        assert submission.score == 2 * POINTS_PER_ANSWER
        squad = await _squad(db_session, squad.id)
        assert squad.total_score == 2 * POINTS_PER_ANSWER
        assert squad.status == "completed"
        assert (await _squad(db_session, opponent.id)).status == "active"

    @pytest.mark.asyncio
    async def test_squad_completes_when_all_members_submit(self, db_session, skill_area, squad_challenge):
        users = [await create_leveled_user(db_session, f"user{n}", skill_area, 2) for n in range(3)]
        await db_session.commit()
        squad_id = None
        for user in users:
            squad_id = (await match_squad(db_session, user.id, squad_challenge.id))["squad_id"]

        await submit_challenge(db_session, squad_challenge.id, squad_id, users[0].id, {"q0": "x"})
        await submit_challenge(db_session, squad_challenge.id, squad_id, users[1].id, {"q0": "x", "q1": "y"})
        assert (await _squad(db_session, squad_id)).status == "ready"

        await submit_challenge(db_session, squad_challenge.id, squad_id, users[2].id, {})
        squad = await _squad(db_session, squad_id)
        assert squad.status == "completed"
        assert squad.total_score == 3 * POINTS_PER_ANSWER

    @pytest.mark.asyncio
    async def test_bot_leader_completes_both_squads(self, db_session, squad_challenge):
        user = await create_profile(db_session, "alice")
        await create_bots(db_session, 5)
        await db_session.commit()
        match = await create_bot_squad_match(db_session, user.id, squad_challenge.id)

        await submit_challenge(db_session, squad_challenge.id, match["user_squad_id"], user.id, {"q0": "x"})

        assert (await _squad(db_session, match["user_squad_id"])).status == "completed"
        assert (await _squad(db_session, match["opponent_squad_id"])).status == "completed"

    @pytest.mark.asyncio
    async def test_duplicate_submission(self, db_session, duel_challenge):
        alice = await create_profile(db_session, "alice")
        bob = await create_profile(db_session, "bob")
        squad, _ = await create_duel_match(db_session, duel_challenge.id, alice.id, bob.id)
        await db_session.commit()
        await submit_challenge(db_session, duel_challenge.id, squad.id, alice.id, {"q0": "a"})

        with pytest.raises(AlreadySubmitted):
            await submit_challenge(db_session, duel_challenge.id, squad.id, alice.id, {"q0": "b"})

    @pytest.mark.asyncio
    async def test_non_member(self, db_session, duel_challenge):
        alice = await create_profile(db_session, "alice")
        bob = await create_profile(db_session, "bob")
        squad, _ = await create_duel_match(db_session, duel_challenge.id, alice.id, bob.id)
        await db_session.commit()

        with pytest.raises(InvalidParameters, match="not a member"):
            await submit_challenge(db_session, duel_challenge.id, squad.id, bob.id, {"q0": "a"})

    @pytest.mark.asyncio
    async def test_squad_from_other_challenge(self, db_session, skill_area, duel_challenge):
        other = await create_challenge(db_session, skill_area, title="Other")
        alice = await create_profile(db_session, "alice")
        bob = await create_profile(db_session, "bob")
        squad, _ = await create_duel_match(db_session, duel_challenge.id, alice.id, bob.id)
        await db_session.commit()

        with pytest.raises(InvalidParameters, match="does not belong"):
            await submit_challenge(db_session, other.id, squad.id, alice.id, {"q0": "a"})

    @pytest.mark.asyncio
    async def test_unknown_squad(self, db_session, duel_challenge):
        with pytest.raises(NotFound, match="Squad not found"):
            await submit_challenge(db_session, duel_challenge.id, random_id(), random_id(), {})

    @pytest.mark.asyncio
    async def test_missing_parameters(self, db_session, duel_challenge):
        with pytest.raises(InvalidParameters, match="squadId"):
            await submit_challenge(db_session, duel_challenge.id, None, random_id(), {})
