"""Tests for startup schema evolution and orphaned-row adoption."""
import asyncio

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, inspect, text
from sqlalchemy.pool import StaticPool

from worktracker import main
from worktracker.core import config
from worktracker.database import Base
from worktracker.services.migrations import (
    add_missing_columns,
    assign_orphaned_rows,
    migrate_to_multi_tenancy,
)


@pytest.fixture
def legacy_engine():
    """A database laid out the way releases before per-user scoping left it."""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    with engine.begin() as conn:
        conn.execute(text(
            "CREATE TABLE engagements (id TEXT PRIMARY KEY, engagementNumber TEXT, orgId TEXT, "
            "accountName TEXT, name TEXT, status TEXT, timeline TEXT, files TEXT, "
            "aiSummary TEXT, lastSummaryDate TEXT)"
        ))
        conn.execute(text(
            "CREATE TABLE ideas (id TEXT PRIMARY KEY, title TEXT, description TEXT, "
            "category TEXT, priority TEXT, status TEXT, createdAt TEXT)"
        ))
        conn.execute(text("CREATE TABLE settings (key TEXT PRIMARY KEY, value TEXT)"))
        conn.execute(text(
            "CREATE TABLE project_tasks (id TEXT PRIMARY KEY, projectId TEXT, content TEXT, isCompleted INTEGER)"
        ))
        conn.execute(text(
            "INSERT INTO engagements (id, name, status, timeline, files) "
            "VALUES ('e-1', 'Legacy', 'Active', '[]', '[]'), ('e-2', 'Older', 'Completed', '[]', '[]')"
        ))
        conn.execute(text(
            "INSERT INTO ideas (id, title, description, category, priority, status, createdAt) "
            "VALUES ('i-1', 'Old idea', 'From before entries', 'General', 'Low', 'New', '2023-01-01T00:00:00Z')"
        ))
        conn.execute(text(
            "INSERT INTO settings (key, value) VALUES ('tabOrder', '[\"tasks\", \"home\"]')"
        ))
        conn.execute(text(
            "INSERT INTO project_tasks (id, projectId, content, isCompleted) VALUES ('t-1', 'p-1', 'Draft', 1)"
        ))
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


def _add_user(engine, user_id, email):
    with engine.begin() as conn:
        conn.execute(
            text(
                'INSERT INTO users (id, email, "passwordHash", name, "createdAt") '
                "VALUES (:id, :email, 'x', 'Owner', '2024-01-01T00:00:00Z')"
            ),
            {"id": user_id, "email": email},
        )


def _columns(engine, table):
    return {col["name"] for col in inspect(engine).get_columns(table)}


def _primary_key(engine, table):
    return set(inspect(engine).get_pk_constraint(table)["constrained_columns"])


class TestColumnMigrations:
    """Additive schema changes for older database files."""

    def test_missing_columns_added(self, legacy_engine):
        added = add_missing_columns(legacy_engine)

        assert ("engagements", "userId") in added
        assert ("ideas", "entries") in added
        assert ("ideas", "convertedToProjectId") in added
        assert "userId" in _columns(legacy_engine, "engagements")
        assert {"entries", "updatedAt", "userId"} <= _columns(legacy_engine, "ideas")

    def test_column_migration_is_idempotent(self, legacy_engine):
        add_missing_columns(legacy_engine)
        assert add_missing_columns(legacy_engine) == []


class TestTableRebuild:
    """Tables whose primary key changed are rebuilt with their rows kept."""

    def test_legacy_settings_gain_surrogate_key(self, legacy_engine):
        add_missing_columns(legacy_engine)

        assert _primary_key(legacy_engine, "settings") == {"id"}
        assert {"id", "userId", "key", "value"} <= _columns(legacy_engine, "settings")
        with legacy_engine.connect() as conn:
            row = conn.execute(text('SELECT id, key, value, "userId" FROM settings')).one()
        assert row.id is not None
        assert (row.key, row.value, row.userId) == ("tabOrder", '["tasks", "home"]', None)

    def test_project_tasks_keyed_by_project_and_id(self, legacy_engine):
        add_missing_columns(legacy_engine)

        assert _primary_key(legacy_engine, "project_tasks") == {"projectId", "id"}
        with legacy_engine.connect() as conn:
            row = conn.execute(
                text('SELECT id, "projectId", content, "isCompleted", position FROM project_tasks')
            ).one()
        assert tuple(row) == ("t-1", "p-1", "Draft", 1, 0)

    def test_rebuild_is_idempotent(self, legacy_engine):
        add_missing_columns(legacy_engine)
        add_missing_columns(legacy_engine)

        with legacy_engine.connect() as conn:
            assert conn.execute(text("SELECT COUNT(*) FROM settings")).scalar() == 1
            assert conn.execute(text("SELECT COUNT(*) FROM project_tasks")).scalar() == 1
        assert "settings_rebuild" not in inspect(legacy_engine).get_table_names()

    def test_legacy_settings_served_per_user_after_migration(self, client, db_session, login, monkeypatch):
        """A database from before user scoping serves and stores settings per user."""
        monkeypatch.setattr(config, "LEGACY_OWNER_EMAIL", None)
        engine = db_session.get_bind()
        with engine.begin() as conn:
            conn.execute(text("DROP TABLE settings"))
            conn.execute(text("CREATE TABLE settings (key TEXT PRIMARY KEY, value TEXT)"))
            conn.execute(text("INSERT INTO settings (key, value) VALUES ('tabOrder', '[\"tasks\", \"home\"]')"))

        owner_headers = login("owner@example.com")
        assert migrate_to_multi_tenancy(engine, "owner@example.com") == {"settings": 1}

        response = client.get("/api/settings/tabOrder", headers=owner_headers)
        assert response.status_code == 200
        assert response.json() == ["tasks", "home"]

        other_headers = login("other@example.com")
        response = client.post("/api/settings/tabOrder", json=["home"], headers=other_headers)
        assert response.status_code == 200

        assert client.get("/api/settings/tabOrder", headers=other_headers).json() == ["home"]
        assert client.get("/api/settings/tabOrder", headers=owner_headers).json() == ["tasks", "home"]


class TestOrphanAssignment:
    """Rows without an owner go to the legacy account."""

    def test_orphaned_rows_assigned_to_legacy_owner(self, legacy_engine):
        _add_user(legacy_engine, "u-1", "owner@example.com")

        changes = migrate_to_multi_tenancy(legacy_engine, "Owner@Example.com")

        assert changes == {"engagements": 2, "ideas": 1, "settings": 1}
        with legacy_engine.connect() as conn:
            owners = conn.execute(text('SELECT DISTINCT "userId" FROM engagements')).scalars().all()
        assert owners == ["u-1"]

    def test_rows_left_unassigned_without_legacy_user(self, legacy_engine):
        assert migrate_to_multi_tenancy(legacy_engine, "owner@example.com") == {}
        with legacy_engine.connect() as conn:
            orphans = conn.execute(text('SELECT COUNT(*) FROM engagements WHERE "userId" IS NULL')).scalar()
        assert orphans == 2

    def test_rows_left_unassigned_without_legacy_email(self, legacy_engine):
        _add_user(legacy_engine, "u-1", "owner@example.com")
        assert migrate_to_multi_tenancy(legacy_engine, None) == {}

    def test_assign_skips_owned_rows(self, legacy_engine):
        add_missing_columns(legacy_engine)
        with legacy_engine.begin() as conn:
            conn.execute(text("UPDATE engagements SET \"userId\" = 'someone' WHERE id = 'e-1'"))
            assert assign_orphaned_rows(conn, "u-1") == {"engagements": 1, "ideas": 1, "settings": 1}
            owner = conn.execute(text("SELECT \"userId\" FROM engagements WHERE id = 'e-1'")).scalar()
        assert owner == "someone"


class TestRegistrationAdoption:
    """Registering the legacy account adopts orphaned rows."""

    def test_registering_legacy_owner_adopts_orphans(self, client, db_session, monkeypatch):
        monkeypatch.setattr(config, "LEGACY_OWNER_EMAIL", "owner@example.com")
        db_session.execute(text(
            "INSERT INTO engagements (id, name, status, timeline, files) VALUES ('e-9', 'Legacy', 'Active', '[]', '[]')"
        ))
        db_session.commit()

        client.post(
            "/api/auth/register",
            json={"email": "owner@example.com", "password": "secret123", "name": "Owner"},
        )
        token = client.post(
            "/api/auth/login", json={"email": "owner@example.com", "password": "secret123"}
        ).json()["token"]

        engagements = client.get("/api/engagements", headers={"Authorization": f"Bearer {token}"}).json()
        assert [e["id"] for e in engagements] == ["e-9"]

    def test_other_users_do_not_adopt_orphans(self, client, db_session, login, monkeypatch):
        monkeypatch.setattr(config, "LEGACY_OWNER_EMAIL", "owner@example.com")
        db_session.execute(text(
            "INSERT INTO engagements (id, name, status, timeline, files) VALUES ('e-9', 'Legacy', 'Active', '[]', '[]')"
        ))
        db_session.commit()

        headers = login("someone@example.com")
        assert client.get("/api/engagements", headers=headers).json() == []



class TestStartup:
    """Application startup prepares the database before serving."""

    def test_init_database_runs_off_the_event_loop(self, monkeypatch):
        calls = []

        def fake_init_database():
            try:
                asyncio.get_running_loop()
                calls.append("event loop")
            except RuntimeError:
                calls.append("worker thread")

        monkeypatch.setattr(main, "init_database", fake_init_database)
        monkeypatch.setattr(main, "configure_logging", lambda: None)

        with TestClient(main.app):
            pass

        assert calls == ["worker thread"]
