"""Tests for ideas and their conversion into internal projects."""
from sqlalchemy import text
from sqlalchemy.exc import OperationalError

from worktracker.core.dates import today_key
from worktracker.services import persistence


def _idea(**extra):
    return {
        "id": "idea-1",
        "title": "Automated Status Tool",
        "description": "Script to pull Jira tickets into a weekly status doc.",
        "entries": [
            {"id": "ie-1", "content": "Script to pull Jira tickets into a weekly status doc.", "timestamp": "2024-01-01T09:00:00Z"},
            {"id": "ie-2", "content": "Could also post to Slack.", "timestamp": "2024-01-03T09:00:00Z"},
        ],
        "category": "Process",
        "priority": "High",
        "status": "New",
        "createdAt": "2024-01-01T09:00:00Z",
        **extra,
    }


class TestIdeaEntries:
    """Entries round-trip and keep the description mirror."""

    def test_idea_roundtrip(self, client, auth_headers):
        response = client.post("/api/ideas", json=_idea(), headers=auth_headers)
        assert response.status_code == 200

        [idea] = client.get("/api/ideas", headers=auth_headers).json()
        assert [e["id"] for e in idea["entries"]] == ["ie-1", "ie-2"]
        assert idea["convertedToProjectId"] is None

    def test_description_mirrors_first_entry(self, client, auth_headers):
        entries = [{"id": "ie-9", "content": "Rewritten pitch", "timestamp": "2024-01-05T09:00:00Z"}]
        client.post("/api/ideas", json=_idea(description="stale", entries=entries), headers=auth_headers)
        [idea] = client.get("/api/ideas", headers=auth_headers).json()
        assert idea["description"] == "Rewritten pitch"

    def test_legacy_description_read_as_entry(self, client, auth_headers, db_session):
        client.post("/api/ideas", json=_idea(entries=[]), headers=auth_headers)
        db_session.execute(text("UPDATE ideas SET entries = NULL WHERE id = 'idea-1'"))
        db_session.commit()

        [idea] = client.get("/api/ideas", headers=auth_headers).json()
        assert idea["entries"] == [{
            "id": "idea-1-entry-0",
            "content": "Script to pull Jira tickets into a weekly status doc.",
            "timestamp": "2024-01-01T09:00:00Z",
        }]


class TestConversion:
    """Converting an idea creates a project and marks the idea implemented."""

    def test_convert_idea_to_project(self, client, auth_headers):
        client.post("/api/ideas", json=_idea(), headers=auth_headers)

        response = client.post("/api/ideas/idea-1/convert-to-project", headers=auth_headers)
        assert response.status_code == 201
        project = response.json()
        assert project["name"] == "Automated Status Tool"
        assert project["status"] == "Not Started"
        assert project["tasks"] == []
        assert project["researchNotes"] == []
        assert project["description"] == "Script to pull Jira tickets into a weekly status doc."
        assert project["startDate"] == today_key()
        assert project["dueDate"] == ""
        assert project["sourceIdeaId"] == "idea-1"
        assert project["sourceIdeaTitle"] == "Automated Status Tool"

        [idea] = client.get("/api/ideas", headers=auth_headers).json()
        assert idea["status"] == "Implemented"
        assert idea["convertedToProjectId"] == project["id"]
        assert idea["updatedAt"]

        [stored] = client.get("/api/projects", headers=auth_headers).json()
        assert stored["id"] == project["id"]

    def test_convert_with_overrides(self, client, auth_headers):
        client.post("/api/ideas", json=_idea(engagementId="e-101", engagementName="Cloud Migration"), headers=auth_headers)

        overrides = {
            "name": "Status Bot",
            "status": "In Progress",
            "dueDate": "2024-06-30",
            "tasks": [{"id": "pt-1", "content": "Prototype", "isCompleted": False}],
        }
        response = client.post("/api/ideas/idea-1/convert-to-project", json=overrides, headers=auth_headers)
        assert response.status_code == 201
        project = response.json()
        assert project["name"] == "Status Bot"
        assert project["status"] == "In Progress"
        assert project["dueDate"] == "2024-06-30"
        assert [t["content"] for t in project["tasks"]] == ["Prototype"]
        assert project["sourceEngagementId"] == "e-101"
        assert project["sourceEngagementName"] == "Cloud Migration"

    def test_reconverting_returns_existing_project(self, client, auth_headers):
        client.post("/api/ideas", json=_idea(), headers=auth_headers)
        first = client.post("/api/ideas/idea-1/convert-to-project", headers=auth_headers).json()

        response = client.post("/api/ideas/idea-1/convert-to-project", headers=auth_headers)
        assert response.status_code == 200
        assert response.json()["id"] == first["id"]
        assert len(client.get("/api/projects", headers=auth_headers).json()) == 1

    def test_convert_missing_idea_is_404(self, client, auth_headers):
        response = client.post("/api/ideas/nope/convert-to-project", headers=auth_headers)
        assert response.status_code == 404
        assert client.get("/api/projects", headers=auth_headers).json() == []

    def test_convert_other_users_idea_is_404(self, client, auth_headers, other_headers):
        client.post("/api/ideas", json=_idea(), headers=auth_headers)
        response = client.post("/api/ideas/idea-1/convert-to-project", headers=other_headers)
        assert response.status_code == 404

    def test_failed_conversion_leaves_nothing_behind(self, client, auth_headers, monkeypatch):
        """A storage failure mid-conversion rolls back both writes."""
        client.post("/api/ideas", json=_idea(), headers=auth_headers)
        save_project = persistence.save_project

        def save_then_fail(db, user_id, project):
            save_project(db, user_id, project)
            db.flush()
            raise OperationalError("INSERT INTO projects", {}, Exception("database is locked"))

        monkeypatch.setattr(persistence, "save_project", save_then_fail)

        response = client.post("/api/ideas/idea-1/convert-to-project", headers=auth_headers)
        assert response.status_code == 500
        assert response.json() == {"error": "database is locked"}

        [idea] = client.get("/api/ideas", headers=auth_headers).json()
        assert idea["status"] == "New"
        assert idea["convertedToProjectId"] is None
        assert client.get("/api/projects", headers=auth_headers).json() == []

