"""Database models for the per-user work records.

Column names keep the camelCase spelling of the existing database file so
that older files open without a rename; attributes are snake_case.
"""
from sqlalchemy import Column, Index, Integer, String, Text, UniqueConstraint

from worktracker.database import Base
from worktracker.models.types import BoolFlag, JSONList


class Engagement(Base):
    """Client engagement with embedded timeline and files."""
    __tablename__ = "engagements"

    id = Column(String(64), primary_key=True)
    user_id = Column("userId", String(36), nullable=True, index=True)
    engagement_number = Column("engagementNumber", String(100))
    org_id = Column("orgId", String(100))
    account_name = Column("accountName", String(255))
    name = Column(String(255))
    status = Column(String(20))  # Active | On Hold | Completed | At Risk
    timeline = Column(JSONList, default=list)
    files = Column(JSONList, default=list)
    ai_summary = Column("aiSummary", Text, nullable=True)
    last_summary_date = Column("lastSummaryDate", String(40), nullable=True)


class Task(Base):
    """Standalone daily or weekly task."""
    __tablename__ = "tasks"

    id = Column(String(64), primary_key=True)
    user_id = Column("userId", String(36), nullable=True, index=True)
    content = Column(Text)
    is_completed = Column("isCompleted", BoolFlag, default=False)
    type = Column(String(10))  # daily | weekly
    date = Column(String(10))  # day key or week-start key
    created_at = Column("createdAt", String(40))
    is_priority = Column("isPriority", BoolFlag, default=False)
    engagement_id = Column("engagementId", String(64), nullable=True)
    engagement_name = Column("engagementName", String(255), nullable=True)
    project_id = Column("projectId", String(64), nullable=True)
    project_name = Column("projectName", String(255), nullable=True)
    subtasks = Column(JSONList, default=list)

    __table_args__ = (
        Index("ix_tasks_user_type_date", "userId", "type", "date"),
    )


class Highlight(Base):
    __tablename__ = "highlights"

    id = Column(String(64), primary_key=True)
    user_id = Column("userId", String(36), nullable=True, index=True)
    content = Column(Text)
    impact = Column(Text)
    date = Column(String(10))
    needs_follow_up = Column("needsFollowUp", BoolFlag, default=False)
    follow_up_context = Column("followUpContext", Text, nullable=True)
    created_at = Column("createdAt", String(40))


class Idea(Base):
    """Idea with chronological entries; may be converted into a project."""
    __tablename__ = "ideas"

    id = Column(String(64), primary_key=True)
    user_id = Column("userId", String(36), nullable=True, index=True)
    title = Column(String(255))
    description = Column(Text)  # mirror of the first entry
    entries = Column(JSONList, default=list)
    category = Column(String(20))
    priority = Column(String(10))
    status = Column(String(20))  # New | Planned | In Progress | Implemented | Discarded
    created_at = Column("createdAt", String(40))
    updated_at = Column("updatedAt", String(40), nullable=True)
    ai_summary = Column("aiSummary", Text, nullable=True)
    last_summary_date = Column("lastSummaryDate", String(40), nullable=True)
    engagement_id = Column("engagementId", String(64), nullable=True)
    engagement_name = Column("engagementName", String(255), nullable=True)
    converted_to_project_id = Column("convertedToProjectId", String(64), nullable=True)


class CalendarEvent(Base):
    __tablename__ = "calendar_events"

    id = Column(String(64), primary_key=True)
    user_id = Column("userId", String(36), nullable=True, index=True)
    title = Column(String(255))
    description = Column(Text, nullable=True)
    date = Column(String(10))
    start_time = Column("startTime", String(5))  # HH:mm
    end_time = Column("endTime", String(5))
    type = Column(String(10))  # meeting | work | personal
    meeting_notes = Column("meetingNotes", Text, nullable=True)
    mom_sent = Column("momSent", BoolFlag, default=False)


class UsefulLink(Base):
    __tablename__ = "useful_links"

    id = Column(String(64), primary_key=True)
    user_id = Column("userId", String(36), nullable=True, index=True)
    title = Column(String(255))
    url = Column(Text)
    category = Column(String(100))
    description = Column(Text, nullable=True)
    created_at = Column("createdAt", String(40))


class Note(Base):
    __tablename__ = "notes"

    id = Column(String(64), primary_key=True)
    user_id = Column("userId", String(36), nullable=True, index=True)
    title = Column(String(255))
    content = Column(Text)
    tags = Column(JSONList, default=list)
    created_at = Column("createdAt", String(40))
    updated_at = Column("updatedAt", String(40))


class Setting(Base):
    """Arbitrary JSON value stored per user under a key (e.g. tab order)."""
    __tablename__ = "settings"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column("userId", String(36), nullable=True)
    key = Column(String(100), nullable=False)
    value = Column(Text, nullable=False)  # JSON string

    __table_args__ = (
        UniqueConstraint("userId", "key", name="uq_settings_user_key"),
    )
