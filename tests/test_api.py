"""
End-to-end tests through the HTTP API
"""
from unittest.mock import patch

from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session

from diary.models.program import ScheduledActivity


def type_id(client, name="Walking"):
    types = client.get("/api/v1/activity-types/").json()
    return next(t["id"] for t in types if t["name"] == name)


def create_program(client, **overrides):
    body = {
        "activity_type_id": type_id(client),
        "name": "Yoga",
        "duration_minutes": 30,
        "frequency_type": "specific_days",
        "frequency_value": "3,1",
        "start_date": "2024-01-01",
    }
    body.update(overrides)
    return client.post("/api/v1/programs/", json=body)


def day_entries(client, day):
    body = client.get("/api/v1/schedule/day", params={"day": day}).json()
    return [(e["program"]["id"], e["status"]) for e in body["entries"]]


class TestHealth:

    def test_root(self, client):
        assert client.get("/").json() == {"message": "System Operational"}


class TestActivityTypes:

    def test_seeded_catalog(self, client):
        names = [t["name"] for t in client.get("/api/v1/activity-types/").json()]
        assert len(names) == 10
        assert names == sorted(names)  # all unused, so alphabetical

    def test_create_custom_type(self, client):
        resp = client.post("/api/v1/activity-types/", json={"name": "Climbing", "color": "#123456"})
        assert resp.status_code == 201
        assert resp.json()["is_custom"] is True
        assert "Climbing" in [t["name"] for t in client.get("/api/v1/activity-types/").json()]

    def test_duplicate_type(self, client):
        resp = client.post("/api/v1/activity-types/", json={"name": "Yoga"})
        assert resp.status_code == 409

    def test_usage_moves_type_to_top(self, client):
        gym = type_id(client, "Gym")
        client.post("/api/v1/logs/", json={"activity_type_id": gym, "duration_minutes": 40})
        types = client.get("/api/v1/activity-types/").json()
        assert types[0]["name"] == "Gym"
        assert types[0]["usage_count"] == 1


class TestPrograms:

    def test_create_normalizes_rule(self, client):
        resp = create_program(client)
        assert resp.status_code == 201
        body = resp.json()
        assert body["frequency_value"] == "1,3"
        assert body["schedule_label"] == "Tue, Thu"
        assert body["next_due"] == "2024-01-02"

    def test_start_date_defaults_to_today(self, client):
        body = create_program(client, frequency_type="daily", frequency_value=None, start_date=None).json()
        assert body["start_date"] == "2024-01-02"

    def test_invalid_rule_is_rejected(self, client):
        assert create_program(client, frequency_type="interval", frequency_value=None).status_code == 422
        assert create_program(client, frequency_value="8").status_code == 422
        assert create_program(client, frequency_type="hourly").status_code == 422

    def test_unknown_activity_type_is_rejected(self, client):
        assert create_program(client, activity_type_id=999).status_code == 422

    def test_reminder_requires_time(self, client):
        assert create_program(client, reminder_enabled=True).status_code == 422
        assert create_program(client, reminder_enabled=True, reminder_time="07:30").status_code == 201

    def test_update_revalidates_rule(self, client):
        program_id = create_program(client).json()["id"]

        resp = client.put(f"/api/v1/programs/{program_id}", json={"frequency_type": "interval"})
        assert resp.status_code == 422  # "1,3" is not a day count

        resp = client.put(f"/api/v1/programs/{program_id}",
                          json={"frequency_type": "interval", "frequency_value": "2"})
        assert resp.status_code == 200
        assert resp.json()["schedule_label"] == "Every 2 days"

    def test_deactivate_hides_from_day(self, client):
        program_id = create_program(client).json()["id"]
        assert day_entries(client, "2024-01-02") == [(program_id, "pending")]

        client.put(f"/api/v1/programs/{program_id}", json={"is_active": False})
        assert day_entries(client, "2024-01-02") == []
        listed = client.get("/api/v1/programs/", params={"active_only": True}).json()
        assert listed == []

    def test_delete(self, client):
        program_id = create_program(client).json()["id"]
        client.put(f"/api/v1/schedule/{program_id}/2024-01-02", json={"status": "completed"})

        assert client.delete(f"/api/v1/programs/{program_id}").status_code == 204
        assert client.get(f"/api/v1/programs/{program_id}").status_code == 404
        assert client.get("/api/v1/logs/", params={"day": "2024-01-02"}).json()[0]["scheduled_activity_id"] is None

    def test_week_summary(self, client):
        program_id = create_program(client).json()["id"]
        client.put(f"/api/v1/schedule/{program_id}/2024-01-02", json={"status": "completed"})

        summary = client.get(f"/api/v1/programs/{program_id}/week").json()
        assert summary["week_start"] == "2024-01-01"
        assert summary["scheduled"] == 2
        assert summary["completed"] == 1


class TestSchedule:

    def test_tue_thu_scenario(self, client):
        program_id = create_program(client).json()["id"]

        assert day_entries(client, "2024-01-02") == [(program_id, "pending")]

        resp = client.put(f"/api/v1/schedule/{program_id}/2024-01-02",
                          json={"status": "completed", "actual_duration_minutes": 45})
        assert resp.status_code == 200
        assert resp.json()["status"] == "completed"

        assert day_entries(client, "2024-01-02") == [(program_id, "completed")]
        assert day_entries(client, "2024-01-03") == []

        [mirror] = client.get("/api/v1/logs/", params={"day": "2024-01-02"}).json()
        assert mirror["scheduled_activity_id"] == program_id
        assert mirror["duration_minutes"] == 45

    def test_day_defaults_to_today(self, client):
        program_id = create_program(client).json()["id"]
        body = client.get("/api/v1/schedule/day").json()
        assert body["day"] == "2024-01-02"
        assert [e["program"]["id"] for e in body["entries"]] == [program_id]

    def test_idempotent_completion(self, client):
        program_id = create_program(client).json()["id"]
        first = client.put(f"/api/v1/schedule/{program_id}/2024-01-02", json={"status": "completed"}).json()
        second = client.put(f"/api/v1/schedule/{program_id}/2024-01-02", json={"status": "completed"}).json()

        assert first["id"] == second["id"]
        assert len(client.get("/api/v1/logs/", params={"day": "2024-01-02"}).json()) == 1

    def test_not_due_day_is_rejected(self, client):
        program_id = create_program(client).json()["id"]
        resp = client.put(f"/api/v1/schedule/{program_id}/2024-01-03", json={"status": "completed"})
        assert resp.status_code == 422

    def test_unknown_program(self, client):
        resp = client.put("/api/v1/schedule/999/2024-01-02", json={"status": "completed"})
        assert resp.status_code == 404

    def test_pending_is_not_a_recordable_status(self, client):
        program_id = create_program(client).json()["id"]
        resp = client.put(f"/api/v1/schedule/{program_id}/2024-01-02", json={"status": "pending"})
        assert resp.status_code == 422

    def test_clear_status(self, client):
        program_id = create_program(client).json()["id"]
        client.put(f"/api/v1/schedule/{program_id}/2024-01-02", json={"status": "completed"})

        assert client.delete(f"/api/v1/schedule/{program_id}/2024-01-02").status_code == 204
        assert day_entries(client, "2024-01-02") == [(program_id, "pending")]
        assert client.get("/api/v1/logs/", params={"day": "2024-01-02"}).json() == []

    def test_reconcile(self, client):
        resp = client.post("/api/v1/schedule/reconcile", json={})
        assert resp.json() == {"day": "2024-01-02", "repaired": 0, "unreconciled": []}

    def test_program_without_activity_type(self, client, db):
        program_id = create_program(client, name="Rowing plan").json()["id"]
        walk_id = create_program(client, name="Walk", frequency_type="daily", frequency_value=None).json()["id"]
        db.query(ScheduledActivity).filter(ScheduledActivity.id == program_id)\
            .update({ScheduledActivity.activity_type_id: None}, synchronize_session=False)
        db.commit()

        body = client.get("/api/v1/schedule/day", params={"day": "2024-01-02"}).json()
        assert [e["program"]["id"] for e in body["entries"]] == [walk_id]
        [diagnostic] = body["diagnostics"]
        assert diagnostic["program_id"] == program_id
        assert diagnostic["kind"] == "configuration"

        resp = client.put(f"/api/v1/schedule/{program_id}/2024-01-02", json={"status": "completed"})
        assert resp.status_code == 422

    def test_invalid_rule_is_listed_under_diagnostics(self, client, db):
        program_id = create_program(client, name="Broken").json()["id"]
        db.query(ScheduledActivity).filter(ScheduledActivity.id == program_id)\
            .update({ScheduledActivity.frequency_value: "9"}, synchronize_session=False)
        db.commit()

        body = client.get("/api/v1/schedule/day", params={"day": "2024-01-02"}).json()
        assert body["entries"] == []
        assert [(d["program_id"], d["kind"]) for d in body["diagnostics"]] == [(program_id, "validation")]

    def test_storage_error_is_a_503(self, client):
        program_id = create_program(client).json()["id"]
        with patch.object(Session, "commit", side_effect=OperationalError("COMMIT", {}, Exception("disk full"))):
            resp = client.put(f"/api/v1/schedule/{program_id}/2024-01-02", json={"status": "completed"})
        assert resp.status_code == 503


class TestActivityLogs:

    def test_custom_type_is_created_on_first_use(self, client):
        resp = client.post("/api/v1/logs/", json={"custom_type_name": "Kayak", "duration_minutes": 60})
        assert resp.status_code == 201
        body = resp.json()
        assert body["date"] == "2024-01-02"
        assert body["time"] == "09:30"

        kayak = next(t for t in client.get("/api/v1/activity-types/").json() if t["name"] == "Kayak")
        assert kayak["usage_count"] == 1
        assert kayak["is_custom"] is True

    def test_type_reference_required(self, client):
        assert client.post("/api/v1/logs/", json={"duration_minutes": 20}).status_code == 422

    def test_intensity_range(self, client):
        body = {"activity_type_id": type_id(client), "duration_minutes": 20, "intensity": 11}
        assert client.post("/api/v1/logs/", json=body).status_code == 422

    def test_unknown_type(self, client):
        resp = client.post("/api/v1/logs/", json={"activity_type_id": 999, "duration_minutes": 20})
        assert resp.status_code == 404

    def test_recent_logs_newest_first(self, client):
        walking = type_id(client)
        for day in ("2024-01-01", "2024-01-03", "2024-01-02"):
            client.post("/api/v1/logs/", json={"activity_type_id": walking, "duration_minutes": 20, "date": day})

        recent = client.get("/api/v1/logs/recent", params={"limit": 2}).json()
        assert [log["date"] for log in recent] == ["2024-01-03", "2024-01-02"]
