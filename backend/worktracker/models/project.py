"""Internal project aggregate: the project row plus its child tables."""
from sqlalchemy import Column, ForeignKey, Integer, String, Text

from worktracker.database import Base
from worktracker.models.types import BoolFlag


class InternalProject(Base):
    __tablename__ = "projects"

    id = Column(String(64), primary_key=True)
    user_id = Column("userId", String(36), nullable=True, index=True)
    name = Column(String(255))
    description = Column(Text)
    status = Column(String(20))  # Not Started | In Progress | On Hold | Completed
    start_date = Column("startDate", String(10))
    due_date = Column("dueDate", String(10))
    created_at = Column("createdAt", String(40))
    source_idea_id = Column("sourceIdeaId", String(64), nullable=True)
    source_idea_title = Column("sourceIdeaTitle", String(255), nullable=True)
    source_engagement_id = Column("sourceEngagementId", String(64), nullable=True)
    source_engagement_name = Column("sourceEngagementName", String(255), nullable=True)


class ProjectTask(Base):
    __tablename__ = "project_tasks"

    # Child ids are unique within their project only
    id = Column(String(64), primary_key=True)
    project_id = Column("projectId", String(64), ForeignKey("projects.id"), primary_key=True, index=True)
    content = Column(Text)
    is_completed = Column("isCompleted", BoolFlag, default=False)
    position = Column(Integer, nullable=False, default=0, server_default="0")  # order within the project


class ResearchNote(Base):
    __tablename__ = "research_notes"

    # Child ids are unique within their project only
    id = Column(String(64), primary_key=True)
    project_id = Column("projectId", String(64), ForeignKey("projects.id"), primary_key=True, index=True)
    content = Column(Text)
    date = Column(String(10))
    created_at = Column("createdAt", String(40))
    position = Column(Integer, nullable=False, default=0, server_default="0")
