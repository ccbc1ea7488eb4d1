"""Tests for the whole-record REST resources and per-user scoping."""
from sqlalchemy import text

from worktracker.models import entities


ENGAGEMENT = {
    "id": "e-101",
    "engagementNumber": "ENG-2023-001",
    "orgId": "ORG-ACME",
    "accountName": "Acme Corp",
    "name": "Cloud Migration Phase 1",
    "status": "Active",
    "timeline": [
        {"id": "t1", "date": "2023-10-01T10:00:00Z", "content": "Kickoff meeting", "type": "meeting"},
    ],
    "files": [],
}


def _task(task_id, date, created_at, **extra):
    return {
        "id": task_id,
        "content": f"Task {task_id}",
        "isCompleted": False,
        "type": "daily",
        "date": date,
        "createdAt": created_at,
        "subtasks": [],
        **extra,
    }


class TestWholeRecordUpsert:
    """Records are created or fully replaced by id."""

    def test_engagement_roundtrip(self, client, auth_headers):
        response = client.post("/api/engagements", json=ENGAGEMENT, headers=auth_headers)
        assert response.status_code == 200

        response = client.get("/api/engagements", headers=auth_headers)
        assert response.status_code == 200
        [engagement] = response.json()
        assert engagement["timeline"] == ENGAGEMENT["timeline"]
        assert engagement["files"] == []
        assert engagement["accountName"] == "Acme Corp"

    def test_legacy_file_type_key_read_as_mime_type(self, client, auth_headers):
        """Files saved by older clients carry the MIME type under "type"."""
        legacy_file = {
            "id": "f-1",
            "name": "sow.pdf",
            "type": "application/pdf",
            "size": 2048,
            "data": "data:application/pdf;base64,JVBERi0=",
            "uploadDate": "2023-10-02T09:00:00Z",
        }
        response = client.post(
            "/api/engagements", json={**ENGAGEMENT, "files": [legacy_file]}, headers=auth_headers
        )
        assert response.status_code == 200

        [engagement] = client.get("/api/engagements", headers=auth_headers).json()
        [stored] = engagement["files"]
        assert stored["mimeType"] == "application/pdf"
        assert "type" not in stored
        assert stored["size"] == 2048

    def test_legacy_file_blob_in_database(self, client, auth_headers, db_session):
        owner_id = db_session.execute(
            text("SELECT id FROM users WHERE email = 'alice@example.com'")
        ).scalar_one()
        db_session.execute(
            text(
                'INSERT INTO engagements (id, "userId", name, status, timeline, files) '
                "VALUES ('e-old', :owner, 'Legacy', 'Active', '[]', :files)"
            ),
            {"owner": owner_id, "files": '[{"id": "f-9", "name": "notes.txt", "type": "text/plain", "size": 12}]'},
        )
        db_session.commit()

        [engagement] = client.get("/api/engagements", headers=auth_headers).json()
        [stored] = engagement["files"]
        assert stored["mimeType"] == "text/plain"
        assert stored["name"] == "notes.txt"

    def test_save_replaces_whole_record(self, client, auth_headers):
        client.post("/api/engagements", json=ENGAGEMENT, headers=auth_headers)
        updated = {**ENGAGEMENT, "status": "At Risk", "timeline": []}
        client.post("/api/engagements", json=updated, headers=auth_headers)

        [engagement] = client.get("/api/engagements", headers=auth_headers).json()
        assert engagement["status"] == "At Risk"
        assert engagement["timeline"] == []

    def test_engagement_rejects_unknown_status(self, client, auth_headers):
        response = client.post("/api/engagements", json={**ENGAGEMENT, "status": "Paused"}, headers=auth_headers)
        assert response.status_code == 400
        assert "error" in response.json()


class TestTasks:
    """Task flags, filters and nested subtasks."""

    def test_task_booleans_stored_as_integers(self, client, auth_headers, db_session):
        task = _task("task-1", "2024-05-01", "2024-05-01T09:00:00Z", isCompleted=True, isPriority=True)
        client.post("/api/tasks", json=task, headers=auth_headers)

        row = db_session.get(entities.Task, "task-1")
        assert row.is_completed is True
        raw = db_session.execute(text('SELECT "isCompleted", "isPriority" FROM tasks WHERE id = :id'), {"id": "task-1"}).first()
        assert tuple(raw) == (1, 1)
        assert type(raw[0]) is int

        [fetched] = client.get("/api/tasks", headers=auth_headers).json()
        assert fetched["isCompleted"] is True
        assert fetched["isPriority"] is True

    def test_tasks_filtered_by_date_newest_first(self, client, auth_headers):
        client.post("/api/tasks", json=_task("a", "2024-05-01", "2024-05-01T08:00:00Z"), headers=auth_headers)
        client.post("/api/tasks", json=_task("b", "2024-05-01", "2024-05-01T10:00:00Z"), headers=auth_headers)
        client.post("/api/tasks", json=_task("c", "2024-05-02", "2024-05-02T09:00:00Z"), headers=auth_headers)

        response = client.get("/api/tasks", params={"date": "2024-05-01"}, headers=auth_headers)
        assert [t["id"] for t in response.json()] == ["b", "a"]

    def test_tasks_filtered_by_type(self, client, auth_headers):
        client.post("/api/tasks", json=_task("d", "2024-05-01", "2024-05-01T08:00:00Z"), headers=auth_headers)
        weekly = _task("w", "2024-04-29", "2024-05-01T08:00:00Z", type="weekly")
        client.post("/api/tasks", json=weekly, headers=auth_headers)

        response = client.get("/api/tasks", params={"type": "weekly"}, headers=auth_headers)
        assert [t["id"] for t in response.json()] == ["w"]

    def test_task_subtasks_roundtrip(self, client, auth_headers):
        subtasks = [{"id": "s1", "content": "Draft", "isCompleted": True}, {"id": "s2", "content": "Send", "isCompleted": False}]
        client.post(
            "/api/tasks",
            json=_task("t", "2024-05-01", "2024-05-01T08:00:00Z", subtasks=subtasks),
            headers=auth_headers,
        )
        [task] = client.get("/api/tasks", headers=auth_headers).json()
        assert task["subtasks"] == subtasks

    def test_task_requires_id(self, client, auth_headers):
        task = _task("", "2024-05-01", "2024-05-01T08:00:00Z")
        response = client.post("/api/tasks", json=task, headers=auth_headers)
        assert response.status_code == 400


class TestUserScoping:
    """Records of other users behave as if they did not exist."""

    def test_records_scoped_to_owner(self, client, auth_headers, other_headers):
        client.post("/api/engagements", json=ENGAGEMENT, headers=auth_headers)

        assert client.get("/api/engagements", headers=other_headers).json() == []

        response = client.delete("/api/engagements/e-101", headers=other_headers)
        assert response.status_code == 404
        assert len(client.get("/api/engagements", headers=auth_headers).json()) == 1

    def test_saving_another_users_id_is_rejected(self, client, auth_headers, other_headers):
        client.post("/api/engagements", json=ENGAGEMENT, headers=auth_headers)

        response = client.post("/api/engagements", json={**ENGAGEMENT, "name": "Hijack"}, headers=other_headers)
        assert response.status_code == 404

        [engagement] = client.get("/api/engagements", headers=auth_headers).json()
        assert engagement["name"] == "Cloud Migration Phase 1"

    def test_delete_record(self, client, auth_headers):
        client.post("/api/engagements", json=ENGAGEMENT, headers=auth_headers)
        response = client.delete("/api/engagements/e-101", headers=auth_headers)
        assert response.status_code == 200
        assert response.json() == {"message": "Deleted"}
        assert client.get("/api/engagements", headers=auth_headers).json() == []

    def test_delete_missing_record_is_404(self, client, auth_headers):
        response = client.delete("/api/notes/does-not-exist", headers=auth_headers)
        assert response.status_code == 404
        assert "not found" in response.json()["error"]


class TestOtherResources:
    """Highlights, calendar events, links and notes."""

    def test_highlight_follow_up_flag(self, client, auth_headers):
        highlight = {
            "id": "h-1",
            "content": "Closed the renewal",
            "impact": "Revenue retained",
            "date": "2024-05-01",
            "needsFollowUp": True,
            "followUpContext": "Send recap",
            "createdAt": "2024-05-01T09:00:00Z",
        }
        client.post("/api/highlights", json=highlight, headers=auth_headers)
        [fetched] = client.get("/api/highlights", headers=auth_headers).json()
        assert fetched["needsFollowUp"] is True
        assert fetched["followUpContext"] == "Send recap"

    def test_calendar_sorted_by_date_and_time(self, client, auth_headers):
        def event(event_id, date, start):
            return {"id": event_id, "title": event_id, "date": date, "startTime": start, "endTime": "23:00", "type": "work"}

        client.post("/api/calendar", json=event("late", "2024-05-02", "09:00"), headers=auth_headers)
        client.post("/api/calendar", json=event("afternoon", "2024-05-01", "14:00"), headers=auth_headers)
        client.post("/api/calendar", json=event("morning", "2024-05-01", "08:30"), headers=auth_headers)

        events = client.get("/api/calendar", headers=auth_headers).json()
        assert [e["id"] for e in events] == ["morning", "afternoon", "late"]
        assert events[0]["momSent"] is False

    def test_links_and_notes(self, client, auth_headers):
        link = {"id": "l-1", "title": "Docs", "url": "https://example.com/docs", "category": "Reference"}
        note = {"id": "n-1", "title": "Standup", "content": "Notes", "tags": ["team", "daily"]}
        assert client.post("/api/links", json=link, headers=auth_headers).status_code == 200
        assert client.post("/api/notes", json=note, headers=auth_headers).status_code == 200

        [fetched_link] = client.get("/api/links", headers=auth_headers).json()
        assert fetched_link["url"] == "https://example.com/docs"
        [fetched_note] = client.get("/api/notes", headers=auth_headers).json()
        assert fetched_note["tags"] == ["team", "daily"]


class TestSettings:
    """Per-user JSON settings."""

    def test_settings_roundtrip(self, client, auth_headers, other_headers):
        assert client.get("/api/settings/tabOrder", headers=auth_headers).json() is None

        order = ["tasks", "home", "engagements"]
        response = client.post("/api/settings/tabOrder", json=order, headers=auth_headers)
        assert response.status_code == 200

        assert client.get("/api/settings/tabOrder", headers=auth_headers).json() == order
        assert client.get("/api/settings/tabOrder", headers=other_headers).json() is None

        client.post("/api/settings/tabOrder", json=["home"], headers=auth_headers)
        assert client.get("/api/settings/tabOrder", headers=auth_headers).json() == ["home"]

    def test_healthz(self, client):
        response = client.get("/healthz")
        assert response.status_code == 200

