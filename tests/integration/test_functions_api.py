"""Callable matchmaking functions over HTTP."""

from __future__ import annotations

import pytest
from httpx import AsyncClient

from tests.conftest import create_bots, create_leveled_user, create_profile, random_id

BASE = "/functions/v1"


class TestFindOpponent:
    """POST /functions/v1/find-1v1-opponent"""

    @pytest.mark.asyncio
    async def test_waiting_then_matched(self, client: AsyncClient, db_session, duel_challenge, mock_redis):
        alice = await create_profile(db_session, "alice")
        bob = await create_profile(db_session, "bob")
        await db_session.commit()

        first = await client.post(
            f"{BASE}/find-1v1-opponent",
            json={"userId": str(alice.id), "challengeId": str(duel_challenge.id)},
        )
        assert first.status_code == 200
        body = first.json()
        assert body["status"] == "waiting"
        assert body["message"] == "Searching for opponent..."
        assert body["pollIntervalSeconds"] == 3
        assert body["timeoutSeconds"] == 120

        second = await client.post(
            f"{BASE}/find-1v1-opponent",
            json={"userId": str(bob.id), "challengeId": str(duel_challenge.id)},
        )
        assert second.status_code == 200
        matched = second.json()
        assert matched["status"] == "matched"
        assert matched["squadId"] != matched["opponentSquadId"]
        assert mock_redis.publish.await_count == 3

        poll = await client.post(
            f"{BASE}/find-1v1-opponent",
            json={"userId": str(alice.id), "challengeId": str(duel_challenge.id)},
        )
        assert poll.json() == {
            "status": "matched",
            "squadId": matched["opponentSquadId"],
            "opponentSquadId": matched["squadId"],
        }

    @pytest.mark.asyncio
    async def test_missing_parameters(self, client: AsyncClient, database):
        resp = await client.post(f"{BASE}/find-1v1-opponent", json={})
        assert resp.status_code == 400
        assert resp.json() == {"error": "Missing required parameters: userId and challengeId"}

    @pytest.mark.asyncio
    async def test_malformed_id(self, client: AsyncClient, database):
        resp = await client.post(
            f"{BASE}/find-1v1-opponent", json={"userId": "not-a-uuid", "challengeId": str(random_id())},
        )
        assert resp.status_code == 400
        assert resp.json()["error"] == "Invalid request parameters"

    @pytest.mark.asyncio
    async def test_unknown_challenge(self, client: AsyncClient, db_session):
        alice = await create_profile(db_session, "alice")
        await db_session.commit()

        resp = await client.post(
            f"{BASE}/find-1v1-opponent",
            json={"userId": str(alice.id), "challengeId": str(random_id())},
        )
        assert resp.status_code == 404
        assert resp.json() == {"error": "Challenge not found"}


class TestCreateDuel:
    """POST /functions/v1/create-1v1-match"""

    @pytest.mark.asyncio
    async def test_creates_pair(self, client: AsyncClient, db_session, duel_challenge, mock_redis):
        alice = await create_profile(db_session, "alice")
        bob = await create_profile(db_session, "bob")
        await db_session.commit()

        resp = await client.post(f"{BASE}/create-1v1-match", json={
            "challengeId": str(duel_challenge.id),
            "user1Id": str(alice.id),
            "user2Id": str(bob.id),
        })

        assert resp.status_code == 200
        body = resp.json()
        squad = await client.get(f"/api/v1/squads/{body['squadId']}")
        assert squad.json()["opponentSquadId"] == body["opponentSquadId"]
        assert mock_redis.publish.await_count == 3

    @pytest.mark.asyncio
    async def test_self_duel_rejected(self, client: AsyncClient, db_session, duel_challenge):
        alice = await create_profile(db_session, "alice")
        await db_session.commit()

        resp = await client.post(f"{BASE}/create-1v1-match", json={
            "challengeId": str(duel_challenge.id),
            "user1Id": str(alice.id),
            "user2Id": str(alice.id),
        })

        assert resp.status_code == 400
        assert "error" in resp.json()


class TestMatchSquad:
    """POST /functions/v1/match-squad"""

    @pytest.mark.asyncio
    async def test_creates_and_joins(self, client: AsyncClient, db_session, skill_area, squad_challenge):
        alice = await create_leveled_user(db_session, "alice", skill_area, 3)
        bob = await create_leveled_user(db_session, "bob", skill_area, 4)
        await db_session.commit()

        first = await client.post(f"{BASE}/match-squad", json={
            "userId": str(alice.id), "challengeId": str(squad_challenge.id), "skillAreaId": str(skill_area.id),
        })
        second = await client.post(f"{BASE}/match-squad", json={
            "userId": str(bob.id), "challengeId": str(squad_challenge.id),
        })

        assert first.status_code == second.status_code == 200
        assert first.json() == {
            "squadId": first.json()["squadId"],
            "message": "Successfully matched to squad",
            "status": "forming",
        }
        assert second.json()["squadId"] == first.json()["squadId"]

        detail = await client.get(f"/api/v1/squads/{first.json()['squadId']}")
        assert detail.json()["averageLevel"] == 3.5
        assert [m["username"] for m in detail.json()["members"]] == ["alice", "bob"]

    @pytest.mark.asyncio
    async def test_missing_skill_level(self, client: AsyncClient, db_session, squad_challenge):
        user = await create_profile(db_session, "newcomer")
        await db_session.commit()

        resp = await client.post(f"{BASE}/match-squad", json={
            "userId": str(user.id), "challengeId": str(squad_challenge.id),
        })

        assert resp.status_code == 404
        assert resp.json() == {"error": "User skill level not found"}

    @pytest.mark.asyncio
    async def test_missing_challenge_id(self, client: AsyncClient, database):
        resp = await client.post(f"{BASE}/match-squad", json={"userId": str(random_id())})
        assert resp.status_code == 400
        assert resp.json() == {"error": "Missing required parameters: challengeId"}


class TestBotMatch:
    """POST /functions/v1/create-bot-squad-match"""

    @pytest.mark.asyncio
    async def test_creates_practice_match(self, client: AsyncClient, db_session, squad_challenge):
        user = await create_profile(db_session, "alice")
        await create_bots(db_session, 5)
        await db_session.commit()

        resp = await client.post(f"{BASE}/create-bot-squad-match", json={
            "userId": str(user.id), "challengeId": str(squad_challenge.id),
        })

        assert resp.status_code == 200
        body = resp.json()
        assert set(body) == {"userSquadId", "opponentSquadId"}

        user_squad = (await client.get(f"/api/v1/squads/{body['userSquadId']}")).json()
        assert user_squad["botMode"] is True
        assert user_squad["name"] == "User Squad"
        assert user_squad["members"][0]["userId"] == str(user.id)
        assert user_squad["members"][0]["role"] == "leader"
        assert len(user_squad["members"]) == 3

    @pytest.mark.asyncio
    async def test_not_enough_bots(self, client: AsyncClient, db_session, squad_challenge):
        user = await create_profile(db_session, "alice")
        await create_bots(db_session, 2)
        await db_session.commit()

        resp = await client.post(f"{BASE}/create-bot-squad-match", json={
            "userId": str(user.id), "challengeId": str(squad_challenge.id),
        })

        assert resp.status_code == 409
        assert resp.json() == {"error": "Not enough bot profiles available"}


class TestPreflight:
    """OPTIONS on every function."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "name", ["find-1v1-opponent", "create-1v1-match", "match-squad", "create-bot-squad-match"],
    )
    async def test_preflight_succeeds(self, client: AsyncClient, name):
        resp = await client.options(f"{BASE}/{name}")
        assert resp.status_code == 200
        assert resp.headers["access-control-allow-origin"] == "*"
        assert "content-type" in resp.headers["access-control-allow-headers"]
