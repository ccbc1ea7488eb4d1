"""Routes for internal projects and their nested tasks and research notes."""
from typing import Annotated

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from worktracker.core.auth import get_current_user
from worktracker.database import get_db
from worktracker.models.user import User
from worktracker.schemas import records
from worktracker.services import persistence

router = APIRouter(prefix="/api/projects", tags=["projects"])

CurrentUser = Annotated[User, Depends(get_current_user)]


@router.get("", response_model=list[records.InternalProject])
def list_projects(current_user: CurrentUser, db: Session = Depends(get_db)):
    return persistence.list_projects(db, current_user.id)


@router.post("", response_model=records.InternalProject)
def save_project(project: records.InternalProject, current_user: CurrentUser, db: Session = Depends(get_db)):
    """Save the whole project; its task and note arrays replace the stored ones."""
    row = persistence.save_project(db, current_user.id, project)
    db.commit()
    return persistence.load_project(db, row)


@router.delete("/{project_id}")
def delete_project(project_id: str, current_user: CurrentUser, db: Session = Depends(get_db)):
    persistence.delete_project(db, project_id, current_user.id)
    db.commit()
    return {"message": "Deleted"}
