"""Tests for dormduty.routes.rooms, dormduty.routes.laundry and dormduty.routes.leaderboard."""

from datetime import datetime, timedelta, timezone

from dormduty.models import User


class TestRooms:
    def test_create_room_moves_creator_in(self, client, db, make_user, headers):
        make_user("dana")
        response = client.post("/api/rooms", json={"name": "  Room 303 "}, headers=headers("dana"))
        assert response.status_code == 201
        body = response.json()
        assert body["success"] is True
        assert body["name"] == "Room 303"
        assert [m["id"] for m in body["room"]["members"]] == ["dana"]

        db.expire_all()
        assert db.query(User).filter(User.id == "dana").first().room_id == body["roomId"]

    def test_name_required(self, client, make_user, headers):
        make_user("dana")
        response = client.post("/api/rooms", json={"name": " "}, headers=headers("dana"))
        assert response.status_code == 400
        assert response.json() == {"error": "Room name is required"}

    def test_cannot_create_for_someone_else(self, client, make_user, headers):
        make_user("dana")
        response = client.post("/api/rooms", json={"name": "X", "createdBy": "erin"}, headers=headers("dana"))
        assert response.status_code == 403

    def test_get_one_room(self, client, roommates, room, headers):
        response = client.get("/api/rooms", params={"roomId": room.id}, headers=headers("alice"))
        assert response.status_code == 200
        assert response.json()["room"]["name"] == "Room 101"
        assert len(response.json()["room"]["members"]) == 3

    def test_get_unknown_room(self, client, roommates, headers):
        response = client.get("/api/rooms", params={"roomId": "nope"}, headers=headers("alice"))
        assert response.status_code == 404

    def test_list_rooms(self, client, roommates, other_room, headers):
        response = client.get("/api/rooms", headers=headers("alice"))
        assert {r["name"] for r in response.json()["rooms"]} == {"Room 101", "Room 202"}

    def test_rename_room(self, client, roommates, room, headers):
        response = client.put(
            "/api/rooms", json={"roomId": room.id, "updates": {"name": "The Den"}}, headers=headers("bob")
        )
        assert response.status_code == 200
        assert response.json()["room"]["name"] == "The Den"

    def test_rename_other_room_forbidden(self, client, roommates, other_room, headers):
        response = client.put(
            "/api/rooms", json={"roomId": other_room.id, "updates": {"name": "Mine"}}, headers=headers("alice")
        )
        assert response.status_code == 403


class TestLaundry:
    def test_empty_board_is_null(self, client, roommates, headers):
        response = client.get("/api/laundry", headers=headers("alice"))
        assert response.status_code == 200
        assert response.json() == {"data": None}

    def test_first_write_creates_then_updates(self, client, roommates, headers):
        end = (datetime.now(timezone.utc) + timedelta(minutes=45)).isoformat()
        created = client.patch(
            "/api/laundry", json={"updates": {"washerUserId": "alice", "washerTimerEnd": end}}, headers=headers("alice")
        )
        assert created.status_code == 201
        data = created.json()["data"]
        assert data["washer_user"] == "alice"
        assert 44 * 60 < data["washer_remaining_seconds"] <= 45 * 60

        updated = client.patch("/api/laundry", json={"updates": {"dryerUserId": "bob"}}, headers=headers("bob"))
        assert updated.status_code == 200
        data = updated.json()["data"]
        assert data["dryer_user"] == "bob"
        assert data["washer_user"] == "alice"

    def test_explicit_null_clears_machine(self, client, roommates, headers):
        client.patch("/api/laundry", json={"updates": {"washerUserId": "alice"}}, headers=headers("alice"))
        response = client.patch("/api/laundry", json={"updates": {"washerUserId": None}}, headers=headers("alice"))
        assert response.json()["data"]["washer_user"] is None

    def test_missing_updates(self, client, roommates, headers):
        assert client.patch("/api/laundry", json={}, headers=headers("alice")).status_code == 400
        assert client.patch("/api/laundry", json={"updates": {}}, headers=headers("alice")).status_code == 400

    def test_machine_user_must_be_roommate(self, client, roommates, other_room, make_user, headers):
        make_user("mallory", room=other_room)
        response = client.patch("/api/laundry", json={"updates": {"dryerUserId": "mallory"}}, headers=headers("alice"))
        assert response.status_code == 400

    def test_finished_timer_has_zero_remaining(self, client, roommates, headers):
        end = (datetime.now(timezone.utc) - timedelta(minutes=5)).isoformat()
        response = client.patch("/api/laundry", json={"updates": {"dryerTimerEnd": end}}, headers=headers("alice"))
        assert response.json()["data"]["dryer_remaining_seconds"] == 0


class TestLeaderboard:
    def test_ranked_by_aura(self, client, room, make_user, headers):
        make_user("alice", room=room, aura=10)
        make_user("bob", room=room, aura=30)
        make_user("carol", room=room, aura=20)

        body = client.get("/api/leaderboard", headers=headers("alice")).json()
        assert [(u["id"], u["rank"]) for u in body["data"]] == [("bob", 1), ("carol", 2), ("alice", 3)]
        assert body["pagination"] == {"page": 1, "limit": 10, "total": 3}

    def test_pagination_continues_ranks(self, client, room, make_user, headers):
        for index, aura in enumerate([50, 40, 30, 20, 10]):
            make_user(f"user{index}", room=room, aura=aura)

        body = client.get("/api/leaderboard", params={"limit": "2", "page": "2"}, headers=headers("user0")).json()
        assert [(u["id"], u["rank"]) for u in body["data"]] == [("user2", 3), ("user3", 4)]

    def test_limit_is_clamped_and_garbage_ignored(self, client, roommates, headers):
        body = client.get("/api/leaderboard", params={"limit": "500", "page": "abc"}, headers=headers("alice")).json()
        assert body["pagination"]["limit"] == 50
        assert body["pagination"]["page"] == 1

        body = client.get("/api/leaderboard", params={"limit": "0"}, headers=headers("alice")).json()
        assert body["pagination"]["limit"] == 1

    def test_other_room_forbidden(self, client, roommates, other_room, headers):
        response = client.get("/api/leaderboard", params={"roomId": other_room.id}, headers=headers("alice"))
        assert response.status_code == 403
