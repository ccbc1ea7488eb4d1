"""REST routes for the whole-record resources.

Each family follows the same shape: ``GET`` lists the caller's records,
``POST`` creates or fully replaces one record keyed by its id, and
``DELETE`` removes it. Records belonging to other users behave as if they
did not exist.
"""
from typing import Annotated, Any

from fastapi import APIRouter, Body, Depends, Query
from sqlalchemy.orm import Session

from worktracker.core.auth import get_current_user
from worktracker.database import get_db
from worktracker.models import entities
from worktracker.models.user import User
from worktracker.schemas import records
from worktracker.services import persistence

router = APIRouter(prefix="/api", tags=["records"])

CurrentUser = Annotated[User, Depends(get_current_user)]

DELETED = {"message": "Deleted"}


# =============================================================================
# Engagements
# =============================================================================

@router.get("/engagements", response_model=list[records.Engagement])
def list_engagements(current_user: CurrentUser, db: Session = Depends(get_db)):
    rows = persistence.list_owned(db, entities.Engagement, current_user.id)
    return [persistence.to_record(records.Engagement, row) for row in rows]


@router.post("/engagements", response_model=records.Engagement)
def save_engagement(engagement: records.Engagement, current_user: CurrentUser, db: Session = Depends(get_db)):
    row = persistence.upsert_row(db, entities.Engagement, current_user.id, engagement)
    db.commit()
    return persistence.to_record(records.Engagement, row)


@router.delete("/engagements/{engagement_id}")
def delete_engagement(engagement_id: str, current_user: CurrentUser, db: Session = Depends(get_db)):
    persistence.delete_owned(db, entities.Engagement, engagement_id, current_user.id)
    db.commit()
    return DELETED


# =============================================================================
# Tasks
# =============================================================================

@router.get("/tasks", response_model=list[records.Task])
def list_tasks(
    current_user: CurrentUser,
    db: Session = Depends(get_db),
    date: str | None = Query(None, description="Day key, or week start for weekly tasks"),
    task_type: records.TaskType | None = Query(None, alias="type"),
):
    criteria = []
    if date:
        criteria.append(entities.Task.date == date)
    if task_type:
        criteria.append(entities.Task.type == task_type)
    rows = persistence.list_owned(db, entities.Task, current_user.id, *criteria)
    rows.sort(key=lambda row: row.created_at or "", reverse=True)
    return [persistence.to_record(records.Task, row) for row in rows]


@router.post("/tasks", response_model=records.Task)
def save_task(task: records.Task, current_user: CurrentUser, db: Session = Depends(get_db)):
    row = persistence.upsert_row(db, entities.Task, current_user.id, task)
    db.commit()
    return persistence.to_record(records.Task, row)


@router.delete("/tasks/{task_id}")
def delete_task(task_id: str, current_user: CurrentUser, db: Session = Depends(get_db)):
    persistence.delete_owned(db, entities.Task, task_id, current_user.id)
    db.commit()
    return DELETED


# =============================================================================
# Highlights
# =============================================================================

@router.get("/highlights", response_model=list[records.Highlight])
def list_highlights(current_user: CurrentUser, db: Session = Depends(get_db)):
    rows = persistence.list_owned(db, entities.Highlight, current_user.id)
    return [persistence.to_record(records.Highlight, row) for row in rows]


@router.post("/highlights", response_model=records.Highlight)
def save_highlight(highlight: records.Highlight, current_user: CurrentUser, db: Session = Depends(get_db)):
    row = persistence.upsert_row(db, entities.Highlight, current_user.id, highlight)
    db.commit()
    return persistence.to_record(records.Highlight, row)


@router.delete("/highlights/{highlight_id}")
def delete_highlight(highlight_id: str, current_user: CurrentUser, db: Session = Depends(get_db)):
    persistence.delete_owned(db, entities.Highlight, highlight_id, current_user.id)
    db.commit()
    return DELETED


# =============================================================================
# Calendar events
# =============================================================================

@router.get("/calendar", response_model=list[records.CalendarEvent])
def list_calendar_events(current_user: CurrentUser, db: Session = Depends(get_db)):
    rows = persistence.list_owned(db, entities.CalendarEvent, current_user.id)
    rows.sort(key=lambda row: (row.date or "", row.start_time or ""))
    return [persistence.to_record(records.CalendarEvent, row) for row in rows]


@router.post("/calendar", response_model=records.CalendarEvent)
def save_calendar_event(event: records.CalendarEvent, current_user: CurrentUser, db: Session = Depends(get_db)):
    row = persistence.upsert_row(db, entities.CalendarEvent, current_user.id, event)
    db.commit()
    return persistence.to_record(records.CalendarEvent, row)


@router.delete("/calendar/{event_id}")
def delete_calendar_event(event_id: str, current_user: CurrentUser, db: Session = Depends(get_db)):
    persistence.delete_owned(db, entities.CalendarEvent, event_id, current_user.id)
    db.commit()
    return DELETED


# =============================================================================
# Useful links
# =============================================================================

@router.get("/links", response_model=list[records.UsefulLink])
def list_links(current_user: CurrentUser, db: Session = Depends(get_db)):
    rows = persistence.list_owned(db, entities.UsefulLink, current_user.id)
    return [persistence.to_record(records.UsefulLink, row) for row in rows]


@router.post("/links", response_model=records.UsefulLink)
def save_link(link: records.UsefulLink, current_user: CurrentUser, db: Session = Depends(get_db)):
    row = persistence.upsert_row(db, entities.UsefulLink, current_user.id, link)
    db.commit()
    return persistence.to_record(records.UsefulLink, row)


@router.delete("/links/{link_id}")
def delete_link(link_id: str, current_user: CurrentUser, db: Session = Depends(get_db)):
    persistence.delete_owned(db, entities.UsefulLink, link_id, current_user.id)
    db.commit()
    return DELETED


# =============================================================================
# Notes
# =============================================================================

@router.get("/notes", response_model=list[records.Note])
def list_notes(current_user: CurrentUser, db: Session = Depends(get_db)):
    rows = persistence.list_owned(db, entities.Note, current_user.id)
    rows.sort(key=lambda row: row.updated_at or "", reverse=True)
    return [persistence.to_record(records.Note, row) for row in rows]


@router.post("/notes", response_model=records.Note)
def save_note(note: records.Note, current_user: CurrentUser, db: Session = Depends(get_db)):
    row = persistence.upsert_row(db, entities.Note, current_user.id, note)
    db.commit()
    return persistence.to_record(records.Note, row)


@router.delete("/notes/{note_id}")
def delete_note(note_id: str, current_user: CurrentUser, db: Session = Depends(get_db)):
    persistence.delete_owned(db, entities.Note, note_id, current_user.id)
    db.commit()
    return DELETED


# =============================================================================
# Settings
# =============================================================================

@router.get("/settings/{key}")
def get_setting(key: str, current_user: CurrentUser, db: Session = Depends(get_db)) -> Any:
    return persistence.get_setting(db, current_user.id, key)


@router.post("/settings/{key}")
def save_setting(
    key: str,
    current_user: CurrentUser,
    value: Any = Body(None),
    db: Session = Depends(get_db),
):
    persistence.save_setting(db, current_user.id, key, value)
    db.commit()
    return {"message": "Saved"}
