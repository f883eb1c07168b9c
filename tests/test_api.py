"""
Tests for the HTTP and socket surface.

Tests cover:
- Dice pool, roll and challenge routes
- Campaign, member and character routes
- Error bodies and status codes
- Socket subscription and event delivery
"""

from sleeper.database.schema import DicePoolRecord, RollHistoryRecord
from sleeper.realtime.events import decode_frame
from sleeper.web.app import socketio

from tests.conftest import add_challenge, add_pool


class TestDiceRoutes:
    """Tests for /api/characters/<id>/pool, /api/dice and /api/rolls."""

    def test_roll_pool(self, login, dice, world):
        dice.queue_d6(3, 5, 1)
        response = login(world["alice"]).post(f"/api/characters/{world['aria'].id}/pool")

        assert response.status_code == 201
        assert [d["die_result"] for d in response.get_json()["dice"]] == [3, 5, 1]

    def test_roll_pool_twice(self, login, dice, world):
        dice.queue_d6(1, 1, 1)
        client = login(world["alice"])
        client.post(f"/api/characters/{world['aria'].id}/pool")

        response = client.post(f"/api/characters/{world['aria'].id}/pool")
        assert response.status_code == 409
        assert "already been rolled" in response.get_json()["error"]

    def test_manual_pool(self, login, world):
        response = login(world["alice"]).post(
            f"/api/characters/{world['aria'].id}/pool/manual",
            json={"dice_results": [6, 6, 1]},
        )
        assert response.status_code == 201
        assert [d["die_result"] for d in response.get_json()["dice"]] == [6, 6, 1]

    def test_manual_pool_wrong_count(self, login, world):
        response = login(world["alice"]).post(
            f"/api/characters/{world['aria'].id}/pool/manual",
            json={"dice_results": [6]},
        )
        assert response.status_code == 400
        assert response.get_json()["error"] == "Expected 3 dice results, got 1"

    def test_manual_pool_bad_body(self, login, world):
        response = login(world["alice"]).post(
            f"/api/characters/{world['aria'].id}/pool/manual",
            json={"dice_results": "six"},
        )
        assert response.status_code == 400

    def test_get_pool_missing(self, login, world):
        response = login(world["alice"]).get(f"/api/characters/{world['aria'].id}/pool")
        assert response.status_code == 404
        assert response.get_json() == {"error": "No dice pool found"}

    def test_get_pool(self, login, world, test_session):
        add_pool(test_session, world["aria"], [2, 3, 4])
        response = login(world["bob"]).get(f"/api/characters/{world['aria'].id}/pool")
        assert response.status_code == 200
        assert len(response.get_json()["dice"]) == 3

    def test_anonymous_forbidden(self, client, world):
        response = client.get(f"/api/characters/{world['aria'].id}/pool")
        assert response.status_code == 403

    def test_header_identity(self, client, world, test_session):
        add_pool(test_session, world["aria"], [2, 3, 4])
        response = client.get(
            f"/api/characters/{world['aria'].id}/pool",
            headers={"X-User-Id": str(world["alice"].id)},
        )
        assert response.status_code == 200

    def test_edit_die(self, login, world, test_session):
        pool = add_pool(test_session, world["aria"], [2, 3, 4])
        die_id = pool.dice[1].id

        response = login(world["gm"]).patch(f"/api/dice/{die_id}", json={"die_result": 6})
        assert response.status_code == 200
        assert [d["die_result"] for d in response.get_json()["dice"]] == [2, 6, 4]

    def test_edit_die_as_player(self, login, world, test_session):
        pool = add_pool(test_session, world["aria"], [2, 3, 4])
        response = login(world["alice"]).patch(f"/api/dice/{pool.dice[0].id}", json={"die_result": 6})
        assert response.status_code == 403

    def test_record_roll(self, login, world, test_session):
        pool = add_pool(test_session, world["aria"], [4, 4, 4])
        response = login(world["alice"]).post("/api/rolls", json={
            "character_id": world["aria"].id,
            "pool_dice_id": pool.dice[0].id,
            "d20_roll": 11,
            "skill_applied": True,
            "action_type": "Pick lock",
        })

        assert response.status_code == 201
        data = response.get_json()
        assert data["modified_d6"] == 5
        assert data["outcome"] == "success"
        assert data["success"] is True

    def test_record_roll_server_d20(self, login, dice, world, test_session):
        pool = add_pool(test_session, world["aria"], [4, 4, 4])
        dice.queue_d20(3)
        response = login(world["alice"]).post("/api/rolls", json={
            "character_id": world["aria"].id,
            "pool_dice_id": pool.dice[0].id,
        })
        assert response.status_code == 201
        assert response.get_json()["d20_roll"] == 3
        assert response.get_json()["outcome"] == "failure"

    def test_record_roll_used_die(self, login, world, test_session):
        pool = add_pool(test_session, world["aria"], [4, 4, 4], used={0})
        response = login(world["alice"]).post("/api/rolls", json={
            "character_id": world["aria"].id,
            "pool_dice_id": pool.dice[0].id,
            "d20_roll": 11,
        })
        assert response.status_code == 409

    def test_record_roll_missing_field(self, login, world):
        response = login(world["alice"]).post("/api/rolls", json={"character_id": world["aria"].id})
        assert response.status_code == 400
        assert "pool_dice_id" in response.get_json()["error"]

    def test_record_roll_boolean_numbers_rejected(self, login, world, test_session):
        """Test that JSON booleans are not taken as 1 for numeric fields."""
        pool = add_pool(test_session, world["aria"], [4, 4, 4])
        client = login(world["alice"])
        for field in ("d20_roll", "other_modifiers"):
            response = client.post("/api/rolls", json={
                "character_id": world["aria"].id,
                "pool_dice_id": pool.dice[0].id,
                field: True,
            })
            assert response.status_code == 400, field
            assert field in response.get_json()["error"]

        test_session.expire_all()
        assert test_session.query(RollHistoryRecord).count() == 0

    def test_manual_pool_boolean_faces_rejected(self, login, world, test_session):
        response = login(world["alice"]).post(
            f"/api/characters/{world['aria'].id}/pool/manual",
            json={"dice_results": [True, 2, 3]},
        )
        assert response.status_code == 400
        assert test_session.query(DicePoolRecord).count() == 0

    def test_edit_die_boolean_rejected(self, login, world, test_session):
        pool = add_pool(test_session, world["aria"], [2, 3, 4])
        response = login(world["gm"]).patch(f"/api/dice/{pool.dice[0].id}", json={"die_result": True})
        assert response.status_code == 400

    def test_roll_history(self, login, world, test_session):
        pool = add_pool(test_session, world["aria"], [4, 4, 4])
        client = login(world["alice"])
        for die in pool.dice:
            client.post("/api/rolls", json={
                "character_id": world["aria"].id,
                "pool_dice_id": die.id,
                "d20_roll": 10,
            })

        response = client.get(f"/api/rolls?campaign_id={world['campaign'].id}")
        assert response.status_code == 200
        assert len(response.get_json()) == 3

        response = client.get("/api/rolls")
        assert response.status_code == 400


class TestChallengeRoutes:
    """Tests for /api/challenges."""

    def test_create_and_list(self, login, world):
        client = login(world["gm"])
        response = client.post("/api/challenges", json={
            "campaign_id": world["campaign"].id,
            "description": "Cross the ravine",
            "difficulty_modifier": 1,
        })
        assert response.status_code == 201

        response = login(world["alice"]).get(f"/api/campaigns/{world['campaign'].id}/challenges")
        assert response.status_code == 200
        [challenge] = response.get_json()
        assert challenge["description"] == "Cross the ravine"
        assert challenge["total_attempts"] == 0

    def test_player_cannot_create(self, login, world):
        response = login(world["alice"]).post("/api/challenges", json={
            "campaign_id": world["campaign"].id,
            "description": "Cross the ravine",
        })
        assert response.status_code == 403

    def test_difficulty_out_of_range(self, login, world):
        response = login(world["gm"]).post("/api/challenges", json={
            "campaign_id": world["campaign"].id,
            "description": "Cross the ravine",
            "difficulty_modifier": 5,
        })
        assert response.status_code == 400

    def test_complete(self, login, world, test_session):
        challenge = add_challenge(test_session, world["campaign"], world["gm"])
        client = login(world["gm"])

        response = client.post(f"/api/challenges/{challenge.id}/complete")
        assert response.status_code == 200
        assert response.get_json()["is_active"] is False

        response = client.post(f"/api/challenges/{challenge.id}/complete")
        assert response.status_code == 409


class TestCampaignRoutes:
    """Tests for /api/campaigns."""

    def test_create_campaign(self, login, world):
        response = login(world["gm"]).post("/api/campaigns", json={"name": "Second Dawn"})
        assert response.status_code == 201
        data = response.get_json()
        assert data["current_day"] == 1
        assert data["gm_user_id"] == world["gm"].id

    def test_player_cannot_create_campaign(self, login, world):
        response = login(world["alice"]).post("/api/campaigns", json={"name": "Mine"})
        assert response.status_code == 403

    def test_get_campaign(self, login, world):
        response = login(world["bob"]).get(f"/api/campaigns/{world['campaign'].id}")
        assert response.status_code == 200
        assert response.get_json()["name"] == "The Long Night"

    def test_unknown_campaign(self, login, world):
        response = login(world["gm"]).get("/api/campaigns/999")
        assert response.status_code == 404

    def test_increment_day(self, login, world):
        response = login(world["gm"]).post(f"/api/campaigns/{world['campaign'].id}/increment-day")
        assert response.status_code == 200
        assert response.get_json()["current_day"] == 2

    def test_increment_day_as_player(self, login, world):
        response = login(world["alice"]).post(f"/api/campaigns/{world['campaign'].id}/increment-day")
        assert response.status_code == 403
        assert response.get_json()["error"] == "Only the GM can increment the day"

    def test_state_snapshot(self, login, world, test_session):
        add_pool(test_session, world["aria"], [1, 2, 3])
        add_challenge(test_session, world["campaign"], world["gm"])

        response = login(world["alice"]).get(f"/api/campaigns/{world['campaign'].id}/state")
        assert response.status_code == 200
        state = response.get_json()
        assert state["campaign"]["current_day"] == 1
        assert [c["name"] for c in state["characters"]] == ["Aria", "Bram"]
        assert state["pools"][str(world["aria"].id)]["dice"][0]["die_result"] == 1
        assert state["pools"][str(world["bram"].id)] is None
        assert len(state["challenges"]) == 1

    def test_state_snapshot_lists_counted_rolls(self, login, world, test_session):
        pool = add_pool(test_session, world["aria"], [4, 4, 4])
        challenge = add_challenge(test_session, world["campaign"], world["gm"])
        client = login(world["alice"])
        roll = client.post("/api/rolls", json={
            "character_id": world["aria"].id,
            "pool_dice_id": pool.dice[0].id,
            "challenge_id": challenge.id,
            "d20_roll": 12,
        }).get_json()

        state = client.get(f"/api/campaigns/{world['campaign'].id}/state").get_json()
        assert [r["id"] for r in state["rolls"]] == [roll["id"]]
        assert state["rolls"][0]["character_name"] == "Aria"
        assert state["challenges"][0]["total_attempts"] == 1

    def test_members(self, login, world):
        client = login(world["gm"])
        response = client.get(f"/api/campaigns/{world['campaign'].id}/members")
        members = response.get_json()
        assert members[0]["user_id"] == world["gm"].id
        assert members[0]["is_gm"] is True
        assert {m["username"] for m in members} == {"gm", "alice", "bob"}

        response = client.post(
            f"/api/campaigns/{world['campaign'].id}/members",
            json={"user_id": world["outsider"].id},
        )
        assert response.status_code == 201

        response = client.delete(f"/api/campaigns/{world['campaign'].id}/members/{world['outsider'].id}")
        assert response.status_code == 200

        response = client.delete(f"/api/campaigns/{world['campaign'].id}/members/{world['gm'].id}")
        assert response.status_code == 403

    def test_add_existing_member(self, login, world):
        response = login(world["gm"]).post(
            f"/api/campaigns/{world['campaign'].id}/members",
            json={"user_id": world["alice"].id},
        )
        assert response.status_code == 201
        assert response.get_json()["user_id"] == world["alice"].id

    def test_player_creates_own_character(self, login, world):
        client = login(world["bob"])
        response = client.post(f"/api/campaigns/{world['campaign'].id}/characters", json={
            "name": "Cleo",
            "skill_name": "Medicine",
            "skill_modifier": 2,
            "assigned_user_id": world["alice"].id,
        })
        assert response.status_code == 201
        assert response.get_json()["user_id"] == world["bob"].id

        response = client.get(f"/api/campaigns/{world['campaign'].id}/characters")
        assert [c["name"] for c in response.get_json()] == ["Aria", "Bram", "Cleo"]

    def test_gm_assigns_character(self, login, world):
        response = login(world["gm"]).post(f"/api/campaigns/{world['campaign'].id}/characters", json={
            "name": "Dax",
            "assigned_user_id": world["alice"].id,
        })
        assert response.status_code == 201
        assert response.get_json()["user_id"] == world["alice"].id


class TestSockets:
    """Tests for the campaign socket."""

    def test_member_receives_events(self, app, login, world, hub):
        socket = socketio.test_client(
            app, query_string=f"campaign_id={world['campaign'].id}&user_id={world['bob'].id}"
        )
        assert socket.is_connected()
        assert hub.connection_count(world["campaign"].id) == 1

        login(world["gm"]).post(f"/api/campaigns/{world['campaign'].id}/increment-day")
        hub.wait_idle()

        received = [m for m in socket.get_received() if m["name"] == "campaign_event"]
        events = [event for message in received for event in decode_frame(message["args"][0])]
        assert [(event.type.value, event.current_day) for event in events] == [("day_incremented", 2)]

        socket.disconnect()
        assert hub.connection_count(world["campaign"].id) == 0

    def test_outsider_refused(self, app, world, hub):
        socket = socketio.test_client(
            app, query_string=f"campaign_id={world['campaign'].id}&user_id={world['outsider'].id}"
        )
        assert not socket.is_connected()
        assert hub.connection_count(world["campaign"].id) == 0

    def test_missing_campaign_refused(self, app, world):
        socket = socketio.test_client(app, query_string=f"user_id={world['bob'].id}")
        assert not socket.is_connected()


class TestRosterRoutes:
    """Tests for campaign listing and character edits."""

    def test_list_campaigns_for_member(self, login, world):
        response = login(world["alice"]).get("/api/campaigns")
        assert response.status_code == 200
        assert [c["name"] for c in response.get_json()] == ["The Long Night"]

        response = login(world["outsider"]).get("/api/campaigns")
        assert response.get_json() == []

    def test_admin_lists_every_campaign(self, login, world):
        login(world["gm"]).post("/api/campaigns", json={"name": "Second Dawn"})
        response = login(world["admin"]).get("/api/campaigns")
        assert {c["name"] for c in response.get_json()} == {"The Long Night", "Second Dawn"}

    def test_get_character(self, login, world):
        response = login(world["bob"]).get(f"/api/characters/{world['aria'].id}")
        assert response.status_code == 200
        assert response.get_json()["skill_name"] == "Lockpicking"

        response = login(world["outsider"]).get(f"/api/characters/{world['aria'].id}")
        assert response.status_code == 403

    def test_owner_updates_character(self, login, world):
        response = login(world["alice"]).put(
            f"/api/characters/{world['aria'].id}",
            json={"skill_modifier": 2, "weakness_name": "Crowds"},
        )
        assert response.status_code == 200
        data = response.get_json()
        assert data["skill_modifier"] == 2
        assert data["weakness_name"] == "Crowds"
        assert data["name"] == "Aria"
        assert data["max_daily_dice"] == 3

    def test_other_player_cannot_update(self, login, world):
        response = login(world["bob"]).put(f"/api/characters/{world['aria'].id}", json={"name": "Mine"})
        assert response.status_code == 403

    def test_null_modifier_rejected(self, login, world):
        response = login(world["alice"]).put(
            f"/api/characters/{world['aria'].id}", json={"skill_modifier": None}
        )
        assert response.status_code == 400

    def test_health(self, client):
        assert client.get("/health").get_json() == {"status": "ok"}
