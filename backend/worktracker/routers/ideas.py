"""Routes for ideas, including conversion of an idea into a project."""
import logging
from typing import Annotated

from fastapi import APIRouter, Body, Depends, Response, status
from sqlalchemy.orm import Session

from worktracker.core.auth import get_current_user
from worktracker.database import get_db
from worktracker.models import entities
from worktracker.models.user import User
from worktracker.schemas import records
from worktracker.services import persistence

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/ideas", tags=["ideas"])

CurrentUser = Annotated[User, Depends(get_current_user)]


@router.get("", response_model=list[records.Idea])
def list_ideas(current_user: CurrentUser, db: Session = Depends(get_db)):
    rows = persistence.list_owned(db, entities.Idea, current_user.id)
    rows.sort(key=lambda row: row.created_at or "", reverse=True)
    return [persistence.idea_from_row(row) for row in rows]


@router.post("", response_model=records.Idea)
def save_idea(idea: records.Idea, current_user: CurrentUser, db: Session = Depends(get_db)):
    row = persistence.save_idea(db, current_user.id, idea)
    db.commit()
    return persistence.idea_from_row(row)


@router.delete("/{idea_id}")
def delete_idea(idea_id: str, current_user: CurrentUser, db: Session = Depends(get_db)):
    persistence.delete_owned(db, entities.Idea, idea_id, current_user.id)
    db.commit()
    return {"message": "Deleted"}


@router.post(
    "/{idea_id}/convert-to-project",
    response_model=records.InternalProject,
    status_code=status.HTTP_201_CREATED,
)
def convert_to_project(
    idea_id: str,
    response: Response,
    current_user: CurrentUser,
    overrides: records.ConvertIdeaRequest | None = Body(None),
    db: Session = Depends(get_db),
):
    """Create a project from the idea and mark the idea implemented.

    Returns 201 with the new project, or 200 with the project the idea was
    already converted into.
    """
    project, created = persistence.convert_idea_to_project(db, current_user.id, idea_id, overrides)
    db.commit()
    if created:
        logger.info("Converted idea %s into project %s", idea_id, project.id)
    else:
        response.status_code = status.HTTP_200_OK
    return project
