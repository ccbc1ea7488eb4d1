"""Translate whole-record saves from the client into relational writes.

Every function here takes an open session and leaves the commit to the
caller, so a router can group several writes into one transaction.
Records cross this boundary as pydantic schemas; rows never leave it.
"""
import json
import logging
import uuid
from typing import Any, TypeVar

from sqlalchemy import inspect
from sqlalchemy.orm import Session

from worktracker.core.dates import today_key, utc_now_iso
from worktracker.models import entities
from worktracker.models.project import InternalProject, ProjectTask, ResearchNote
from worktracker.schemas import records

logger = logging.getLogger(__name__)

RecordT = TypeVar("RecordT", bound=records.WireModel)

_PROTECTED_COLUMNS = {"id", "user_id"}


class RecordNotFoundError(Exception):
    """Raised when a record does not exist for the requesting user."""
    pass


def _column_keys(model) -> set[str]:
    return {attr.key for attr in inspect(model).column_attrs}


def get_owned(db: Session, model, record_id: str, user_id: str):
    """Fetch a row by primary key only if it belongs to ``user_id``."""
    return db.query(model).filter(model.id == record_id, model.user_id == user_id).first()


def list_owned(db: Session, model, user_id: str, *criteria) -> list:
    return db.query(model).filter(model.user_id == user_id, *criteria).all()


def upsert_row(db: Session, model, user_id: str, record: records.WireModel, exclude: set[str] = frozenset()):
    """Insert or fully replace the row keyed by ``record.id``.

    Args:
        db: Database session.
        model: ORM class whose attribute names match the schema's fields.
        user_id: Owner of the record.
        record: The complete incoming record.
        exclude: Schema fields that are not stored on the row itself.

    Returns:
        The pending ORM row.

    Raises:
        RecordNotFoundError: If the id is taken by a row of another user.
    """
    row = db.get(model, record.id)
    if row is not None and row.user_id != user_id:
        raise RecordNotFoundError(f"{model.__name__} '{record.id}' not found")
    if row is None:
        row = model(id=record.id, user_id=user_id)
        db.add(row)

    data = record.model_dump(mode="json")
    for key in _column_keys(model) - _PROTECTED_COLUMNS - set(exclude):
        if key in data:
            setattr(row, key, data[key])
    return row


def delete_owned(db: Session, model, record_id: str, user_id: str) -> None:
    row = get_owned(db, model, record_id, user_id)
    if row is None:
        raise RecordNotFoundError(f"{model.__name__} '{record_id}' not found")
    db.delete(row)


def to_record(schema: type[RecordT], row) -> RecordT:
    """Shape an ORM row into its typed wire record."""
    return schema.model_validate(row)


# =============================================================================
# Ideas
# =============================================================================

def idea_from_row(row: entities.Idea) -> records.Idea:
    """Read an idea, upgrading rows saved before entries existed."""
    idea = to_record(records.Idea, row)
    if not idea.entries and idea.description:
        idea.entries = [
            records.IdeaEntry(
                id=f"{idea.id}-entry-0",
                content=idea.description,
                timestamp=idea.created_at,
            )
        ]
    return idea


def save_idea(db: Session, user_id: str, idea: records.Idea) -> entities.Idea:
    row = upsert_row(db, entities.Idea, user_id, idea)
    if idea.entries:
        row.description = idea.entries[0].content
    return row


# =============================================================================
# Internal projects (aggregate with child tables)
# =============================================================================

def _replace_children(db: Session, project: records.InternalProject) -> None:
    """Delete every child row of the project, then insert the incoming arrays.

    Child rows missing from the incoming arrays are gone after this call.
    Concurrent editors saving stale arrays overwrite each other.
    """
    db.query(ProjectTask).filter(ProjectTask.project_id == project.id).delete()
    db.query(ResearchNote).filter(ResearchNote.project_id == project.id).delete()
    db.flush()

    for position, task in enumerate(project.tasks):
        db.add(ProjectTask(
            id=task.id,
            project_id=project.id,
            content=task.content,
            is_completed=task.is_completed,
            position=position,
        ))
    for position, note in enumerate(project.research_notes):
        db.add(ResearchNote(
            id=note.id,
            project_id=project.id,
            content=note.content,
            date=note.date,
            created_at=note.created_at,
            position=position,
        ))


def save_project(db: Session, user_id: str, project: records.InternalProject) -> InternalProject:
    """Upsert the project row and reconcile its tasks and research notes."""
    row = upsert_row(db, InternalProject, user_id, project, exclude={"tasks", "research_notes"})
    _replace_children(db, project)
    return row


def _assemble_project(row: InternalProject, tasks: list[ProjectTask], notes: list[ResearchNote]) -> records.InternalProject:
    project = to_record(records.InternalProject, row)
    project.tasks = [to_record(records.ProjectTask, t) for t in tasks]
    project.research_notes = [to_record(records.ResearchNote, n) for n in notes]
    return project


def list_projects(db: Session, user_id: str) -> list[records.InternalProject]:
    rows = list_owned(db, InternalProject, user_id)
    project_ids = [row.id for row in rows]
    if not project_ids:
        return []

    tasks_by_project: dict[str, list[ProjectTask]] = {pid: [] for pid in project_ids}
    for task in (
        db.query(ProjectTask)
        .filter(ProjectTask.project_id.in_(project_ids))
        .order_by(ProjectTask.position)
        .all()
    ):
        tasks_by_project[task.project_id].append(task)

    notes_by_project: dict[str, list[ResearchNote]] = {pid: [] for pid in project_ids}
    for note in (
        db.query(ResearchNote)
        .filter(ResearchNote.project_id.in_(project_ids))
        .order_by(ResearchNote.position)
        .all()
    ):
        notes_by_project[note.project_id].append(note)

    return [_assemble_project(row, tasks_by_project[row.id], notes_by_project[row.id]) for row in rows]


def load_project(db: Session, row: InternalProject) -> records.InternalProject:
    tasks = db.query(ProjectTask).filter(ProjectTask.project_id == row.id).order_by(ProjectTask.position).all()
    notes = db.query(ResearchNote).filter(ResearchNote.project_id == row.id).order_by(ResearchNote.position).all()
    return _assemble_project(row, tasks, notes)


def delete_project(db: Session, project_id: str, user_id: str) -> None:
    row = get_owned(db, InternalProject, project_id, user_id)
    if row is None:
        raise RecordNotFoundError(f"InternalProject '{project_id}' not found")
    db.query(ProjectTask).filter(ProjectTask.project_id == project_id).delete()
    db.query(ResearchNote).filter(ResearchNote.project_id == project_id).delete()
    db.delete(row)


# =============================================================================
# Idea -> project conversion
# =============================================================================

def convert_idea_to_project(
    db: Session,
    user_id: str,
    idea_id: str,
    overrides: records.ConvertIdeaRequest | None = None,
) -> tuple[records.InternalProject, bool]:
    """Create a project from an idea and mark the idea implemented.

    Both writes share the caller's transaction. An idea that already points
    at an existing project is not converted again.

    Returns:
        The project and whether it was created by this call.

    Raises:
        RecordNotFoundError: If the idea does not exist for the user.
    """
    idea_row = get_owned(db, entities.Idea, idea_id, user_id)
    if idea_row is None:
        raise RecordNotFoundError(f"Idea '{idea_id}' not found")

    if idea_row.converted_to_project_id:
        existing = get_owned(db, InternalProject, idea_row.converted_to_project_id, user_id)
        if existing is not None:
            return load_project(db, existing), False
        logger.info(
            "Idea %s points at missing project %s; converting again",
            idea_id, idea_row.converted_to_project_id,
        )

    idea = idea_from_row(idea_row)
    overrides = overrides or records.ConvertIdeaRequest()

    project = records.InternalProject(
        id=str(uuid.uuid4()),
        name=overrides.name or idea.title,
        description=overrides.description if overrides.description is not None else idea.preview(),
        status=overrides.status or records.ProjectStatus.NOT_STARTED,
        start_date=overrides.start_date or today_key(),
        due_date=overrides.due_date or "",
        created_at=utc_now_iso(),
        tasks=overrides.tasks or [],
        research_notes=overrides.research_notes or [],
        source_idea_id=idea.id,
        source_idea_title=idea.title,
        source_engagement_id=idea.engagement_id,
        source_engagement_name=idea.engagement_name,
    )
    save_project(db, user_id, project)

    idea_row.converted_to_project_id = project.id
    idea_row.status = records.IdeaStatus.IMPLEMENTED.value
    idea_row.updated_at = utc_now_iso()
    return project, True


# =============================================================================
# Settings
# =============================================================================

def get_setting(db: Session, user_id: str, key: str) -> Any:
    row = db.query(entities.Setting).filter(
        entities.Setting.user_id == user_id,
        entities.Setting.key == key,
    ).first()
    return json.loads(row.value) if row else None


def save_setting(db: Session, user_id: str, key: str, value: Any) -> None:
    row = db.query(entities.Setting).filter(
        entities.Setting.user_id == user_id,
        entities.Setting.key == key,
    ).first()
    if row is None:
        row = entities.Setting(user_id=user_id, key=key)
        db.add(row)
    row.value = json.dumps(value)
