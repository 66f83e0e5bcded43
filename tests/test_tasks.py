"""Tests for dormduty.routes.tasks and dormduty.services.aura - chores and aura points."""

from datetime import timedelta

from dormduty import config
from dormduty.models import Task, User
from dormduty.services.aura import adjust_aura, completion_award
from dormduty.shared.validators import utcnow


def aura_of(db, user_id):
    db.expire_all()
    return db.query(User).filter(User.id == user_id).first().aura_points


def create_task(client, headers, user_id="alice", **payload):
    body = {"taskName": "Take out trash", **payload}
    response = client.post("/api/tasks", json=body, headers=headers(user_id))
    assert response.status_code == 201, response.json()
    return response.json()["data"]


class TestAuraRules:
    def test_on_time_completion_earns_full_award(self):
        task = Task(aura_awarded=20, due_date=utcnow() + timedelta(days=1))
        assert completion_award(task, utcnow()) == 20

    def test_overdue_completion_is_halved_rounding_down(self):
        task = Task(aura_awarded=15, due_date=utcnow() - timedelta(days=1))
        assert completion_award(task, utcnow()) == 7

    def test_balance_clamped_at_zero(self):
        user = User(id="u", name="U", email="u@example.com", aura_points=5)
        assert adjust_aura(user, -20) == 0


class TestCreateTask:
    def test_caller_is_default_assignee(self, client, roommates, headers):
        task = create_task(client, headers)
        assert task["user_id"] == "alice"
        assert task["aura_awarded"] == config.DEFAULT_TASK_AURA
        assert task["priority"] == "medium"
        assert task["completed"] is False

    def test_assign_to_roommate(self, client, roommates, headers):
        task = create_task(client, headers, assignedUserId="bob", priority="HIGH", auraAwarded=25)
        assert task["user_id"] == "bob"
        assert task["priority"] == "high"
        assert task["aura_awarded"] == 25

    def test_assignee_must_be_roommate(self, client, roommates, other_room, make_user, headers):
        make_user("mallory", room=other_room)
        response = client.post(
            "/api/tasks", json={"taskName": "Dishes", "assignedUserId": "mallory"}, headers=headers("alice")
        )
        assert response.status_code == 400

    def test_blank_name_rejected(self, client, roommates, headers):
        response = client.post("/api/tasks", json={"taskName": "   "}, headers=headers("alice"))
        assert response.status_code == 400

    def test_invalid_priority_rejected(self, client, roommates, headers):
        response = client.post("/api/tasks", json={"taskName": "Dishes", "priority": "someday"}, headers=headers("alice"))
        assert response.status_code == 400

    def test_other_room_forbidden(self, client, roommates, other_room, headers):
        response = client.post(
            "/api/tasks", json={"taskName": "Dishes", "roomId": other_room.id}, headers=headers("alice")
        )
        assert response.status_code == 403

    def test_user_id_must_be_the_caller(self, client, roommates, headers):
        response = client.post("/api/tasks", json={"taskName": "Dishes", "userId": "bob"}, headers=headers("alice"))
        assert response.status_code == 403
        assert response.json() == {"error": "userId does not match the authenticated user"}

    def test_matching_user_id_is_accepted(self, client, roommates, headers):
        assert create_task(client, headers, userId="alice")["user_id"] == "alice"


class TestListTasks:
    def test_ordered_by_due_date_with_undated_last(self, client, roommates, headers):
        now = utcnow()
        create_task(client, headers, taskName="Undated")
        create_task(client, headers, taskName="Later", dueDate=(now + timedelta(days=3)).isoformat())
        create_task(client, headers, taskName="Sooner", dueDate=(now + timedelta(days=1)).isoformat())

        names = [t["task_name"] for t in client.get("/api/tasks", headers=headers("bob")).json()["data"]]
        assert names == ["Sooner", "Later", "Undated"]

    def test_only_incomplete(self, client, roommates, headers):
        done = create_task(client, headers, taskName="Done")
        create_task(client, headers, taskName="Open")
        client.patch("/api/tasks", json={"taskId": done["id"], "updates": {"completed": True}}, headers=headers("alice"))

        response = client.get("/api/tasks", params={"onlyIncomplete": "true"}, headers=headers("alice"))
        assert [t["task_name"] for t in response.json()["data"]] == ["Open"]

    def test_stats(self, client, roommates, headers):
        overdue = (utcnow() - timedelta(days=1)).isoformat()
        done = create_task(client, headers, taskName="Done")
        create_task(client, headers, taskName="Late", dueDate=overdue, priority="urgent")
        client.patch("/api/tasks", json={"taskId": done["id"], "updates": {"completed": True}}, headers=headers("alice"))

        stats = client.get("/api/tasks/stats", headers=headers("alice")).json()["data"]
        assert stats == {
            "total": 2,
            "completed": 1,
            "pending": 1,
            "overdue": 1,
            "highPriority": 1,
            "completionRate": 50.0,
        }

    def test_user_without_room(self, client, make_user, headers):
        make_user("dana")
        assert client.get("/api/tasks", headers=headers("dana")).status_code == 403


class TestUpdateTask:
    def test_completion_credits_assignee(self, client, db, roommates, headers):
        task = create_task(client, headers, assignedUserId="bob", auraAwarded=20)
        response = client.patch(
            "/api/tasks", json={"taskId": task["id"], "updates": {"completed": True}}, headers=headers("alice")
        )
        assert response.status_code == 200
        assert response.json()["data"]["completed"] is True
        assert response.json()["data"]["completed_at"] is not None
        assert aura_of(db, "bob") == 20

    def test_overdue_completion_is_halved(self, client, db, roommates, headers):
        overdue = (utcnow() - timedelta(hours=2)).isoformat()
        task = create_task(client, headers, auraAwarded=15, dueDate=overdue)
        client.patch("/api/tasks", json={"taskId": task["id"], "updates": {"completed": True}}, headers=headers("alice"))
        assert aura_of(db, "alice") == 7

    def test_completing_twice_credits_once(self, client, db, roommates, headers):
        task = create_task(client, headers, auraAwarded=10)
        for _ in range(2):
            client.patch("/api/tasks", json={"taskId": task["id"], "updates": {"completed": True}}, headers=headers("alice"))
        assert aura_of(db, "alice") == 10

    def test_reopening_revokes_what_was_granted(self, client, db, roommates, headers):
        task = create_task(client, headers, auraAwarded=10)
        client.patch("/api/tasks", json={"taskId": task["id"], "updates": {"completed": True}}, headers=headers("alice"))
        response = client.patch(
            "/api/tasks", json={"taskId": task["id"], "updates": {"completed": False}}, headers=headers("alice")
        )
        assert response.json()["data"]["completed"] is False
        assert response.json()["data"]["completed_at"] is None
        assert aura_of(db, "alice") == 0

    def test_reopen_and_reassign_returns_aura_from_previous_assignee(self, client, db, roommates, headers):
        task = create_task(client, headers, auraAwarded=10)
        client.patch("/api/tasks", json={"taskId": task["id"], "updates": {"completed": True}}, headers=headers("alice"))
        client.patch(
            "/api/tasks",
            json={"taskId": task["id"], "updates": {"completed": False, "assignedUserId": "bob"}},
            headers=headers("alice"),
        )
        assert aura_of(db, "alice") == 0
        assert aura_of(db, "bob") == 0

    def test_partial_update_keeps_other_fields(self, client, roommates, headers):
        task = create_task(client, headers, notes="Blue bin", priority="low")
        response = client.patch(
            "/api/tasks", json={"taskId": task["id"], "updates": {"taskName": "Recycling"}}, headers=headers("bob")
        )
        data = response.json()["data"]
        assert data["task_name"] == "Recycling"
        assert data["notes"] == "Blue bin"
        assert data["priority"] == "low"

    def test_explicit_null_unassigns(self, client, roommates, headers):
        task = create_task(client, headers)
        response = client.patch(
            "/api/tasks", json={"taskId": task["id"], "updates": {"assignedUserId": None}}, headers=headers("alice")
        )
        assert response.json()["data"]["user_id"] is None

    def test_empty_updates_rejected(self, client, roommates, headers):
        task = create_task(client, headers)
        response = client.patch("/api/tasks", json={"taskId": task["id"], "updates": {}}, headers=headers("alice"))
        assert response.status_code == 400

    def test_missing_task_id(self, client, roommates, headers):
        response = client.patch("/api/tasks", json={"updates": {"completed": True}}, headers=headers("alice"))
        assert response.status_code == 400
        assert response.json() == {"error": "taskId is required"}

    def test_unknown_task(self, client, roommates, headers):
        response = client.patch(
            "/api/tasks", json={"taskId": "nope", "updates": {"completed": True}}, headers=headers("alice")
        )
        assert response.status_code == 404

    def test_other_rooms_task_forbidden(self, client, roommates, other_room, make_user, headers):
        make_user("mallory", room=other_room)
        task = create_task(client, headers, user_id="mallory")
        response = client.patch(
            "/api/tasks", json={"taskId": task["id"], "updates": {"completed": True}}, headers=headers("alice")
        )
        assert response.status_code == 403


class TestDeleteTask:
    def test_delete(self, client, roommates, headers):
        task = create_task(client, headers)
        response = client.request("DELETE", "/api/tasks", json={"taskId": task["id"]}, headers=headers("bob"))
        assert response.status_code == 200
        assert response.json() == {"data": {"id": task["id"]}}
        assert client.get("/api/tasks", headers=headers("alice")).json()["data"] == []

    def test_delete_requires_task_id(self, client, roommates, headers):
        response = client.request("DELETE", "/api/tasks", json={}, headers=headers("alice"))
        assert response.status_code == 400

    def test_delete_with_someone_elses_user_id(self, client, roommates, headers):
        task = create_task(client, headers)
        response = client.request(
            "DELETE", "/api/tasks", json={"taskId": task["id"], "userId": "carol"}, headers=headers("bob")
        )
        assert response.status_code == 403
