"""Startup schema evolution and adoption of rows created before user scoping.

Columns are added when the live table lacks them. Tables whose primary key
changed since an older release are rebuilt with their rows copied across.
Running the pass on every start is a no-op once applied.
"""
import logging
import time

from sqlalchemy import MetaData, Table, inspect, text
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.schema import CreateTable

from worktracker.models.entities import Setting
from worktracker.models.project import ProjectTask, ResearchNote

logger = logging.getLogger(__name__)

# Tables whose rows belong to a single user
USER_SCOPED_TABLES = [
    "engagements",
    "tasks",
    "projects",
    "highlights",
    "ideas",
    "calendar_events",
    "useful_links",
    "notes",
    "settings",
]

# (table, column, SQL type) added to databases created by older releases
COLUMN_MIGRATIONS = [
    ("ideas", "updatedAt", "TEXT"),
    ("ideas", "entries", "TEXT"),
    ("ideas", "aiSummary", "TEXT"),
    ("ideas", "lastSummaryDate", "TEXT"),
    ("ideas", "engagementId", "TEXT"),
    ("ideas", "engagementName", "TEXT"),
    ("ideas", "convertedToProjectId", "TEXT"),
    ("projects", "sourceIdeaId", "TEXT"),
    ("projects", "sourceIdeaTitle", "TEXT"),
    ("projects", "sourceEngagementId", "TEXT"),
    ("projects", "sourceEngagementName", "TEXT"),
    ("tasks", "engagementName", "TEXT"),
    ("tasks", "projectName", "TEXT"),
    ("project_tasks", "position", "INTEGER NOT NULL DEFAULT 0"),
    ("research_notes", "position", "INTEGER NOT NULL DEFAULT 0"),
] + [(table, "userId", "TEXT") for table in USER_SCOPED_TABLES]

# Tables rebuilt when their live primary key differs from the model
REBUILT_TABLES = [Setting.__table__, ProjectTask.__table__, ResearchNote.__table__]


def _primary_key_changed(conn: Connection, table: Table) -> bool:
    live = set(inspect(conn).get_pk_constraint(table.name)["constrained_columns"])
    return live != {col.name for col in table.primary_key.columns}


def rebuild_table(conn: Connection, table: Table) -> None:
    """Recreate ``table`` from its model and copy the shared columns over.

    SQLite cannot alter a primary key in place, so the rows move through a
    staging table that then takes the original name.
    """
    meta = MetaData()
    for fk in table.foreign_keys:
        fk.column.table.to_metadata(meta)
    staging = table.to_metadata(meta, name=f"{table.name}_rebuild")

    live_columns = {col["name"] for col in inspect(conn).get_columns(table.name)}
    shared = ", ".join(f'"{col.name}"' for col in table.columns if col.name in live_columns)

    conn.execute(CreateTable(staging))
    conn.execute(text(f"INSERT INTO {staging.name} ({shared}) SELECT {shared} FROM {table.name}"))
    conn.execute(text(f"DROP TABLE {table.name}"))
    conn.execute(text(f"ALTER TABLE {staging.name} RENAME TO {table.name}"))
    for index in table.indexes:
        index.create(conn, checkfirst=True)
    logger.info("Migration: rebuilt table %s with primary key (%s)", table.name,
                ", ".join(col.name for col in table.primary_key.columns))


def add_missing_columns(engine: Engine) -> list[tuple[str, str]]:
    """Apply every column migration whose column is absent.

    Tables that do not exist are skipped; ``create_all`` creates them with
    the full column set. Tables listed in ``REBUILT_TABLES`` are rebuilt
    first when their primary key is out of date.

    Returns:
        The (table, column) pairs that were added.
    """
    added = []
    inspector = inspect(engine)
    existing_tables = set(inspector.get_table_names())
    with engine.begin() as conn:
        for model_table in REBUILT_TABLES:
            if model_table.name in existing_tables and _primary_key_changed(conn, model_table):
                rebuild_table(conn, model_table)
        for table, column, sql_type in COLUMN_MIGRATIONS:
            if table not in existing_tables:
                continue
            columns = {col["name"] for col in inspect(conn).get_columns(table)}
            if column in columns:
                continue
            conn.execute(text(f'ALTER TABLE {table} ADD COLUMN "{column}" {sql_type}'))
            logger.info("Migration: added column %s.%s", table, column)
            added.append((table, column))
    return added


def find_user_id_by_email(conn: Connection, email: str) -> str | None:
    row = conn.execute(
        text("SELECT id FROM users WHERE LOWER(email) = LOWER(:email)"),
        {"email": email},
    ).first()
    return row[0] if row else None


def assign_orphaned_rows(conn: Connection, user_id: str) -> dict[str, int]:
    """Give every row without an owner to ``user_id``.

    Returns:
        Rows updated per table (tables with no changes are omitted).
    """
    existing_tables = set(inspect(conn).get_table_names())
    changes = {}
    for table in USER_SCOPED_TABLES:
        if table not in existing_tables:
            continue
        result = conn.execute(
            text(f'UPDATE {table} SET "userId" = :user_id WHERE "userId" IS NULL'),
            {"user_id": user_id},
        )
        if result.rowcount:
            changes[table] = result.rowcount
            logger.info("Migration: assigned %d rows in %s to user %s", result.rowcount, table, user_id)
    return changes


def migrate_to_multi_tenancy(engine: Engine, legacy_email: str | None, delay_seconds: float = 0.0) -> dict[str, int]:
    """Add owner columns, then hand orphaned rows to the legacy account.

    When the legacy account has not registered yet the rows stay orphaned;
    registration of that email adopts them later.
    """
    add_missing_columns(engine)

    if not legacy_email:
        logger.info("Migration: no legacy owner configured; orphaned rows left unassigned")
        return {}

    if delay_seconds > 0:
        time.sleep(delay_seconds)

    with engine.begin() as conn:
        user_id = find_user_id_by_email(conn, legacy_email)
        if user_id is None:
            logger.info(
                "Migration: user %s not found. Existing data will remain unassigned until user registers.",
                legacy_email,
            )
            return {}
        logger.info("Migration: assigning existing data to user %s (%s)", legacy_email, user_id)
        return assign_orphaned_rows(conn, user_id)
