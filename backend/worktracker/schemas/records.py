"""Pydantic schemas for the work records exchanged over the REST API.

Every model serialises with camelCase aliases and also accepts snake_case
names, so the same classes serve the HTTP boundary, the client store and
ORM read shaping (``from_attributes``).
"""
from enum import Enum
from typing import Literal

from pydantic import AliasChoices, BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from worktracker.core.dates import utc_now_iso


class WireModel(BaseModel):
    """Base for all records on the wire."""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
        use_enum_values=True,
        validate_default=True,
    )

    def to_wire(self) -> dict:
        """JSON-ready dict using the camelCase field names."""
        return self.model_dump(mode="json", by_alias=True)


class EngagementStatus(str, Enum):
    ACTIVE = "Active"
    ON_HOLD = "On Hold"
    COMPLETED = "Completed"
    AT_RISK = "At Risk"


class ProjectStatus(str, Enum):
    NOT_STARTED = "Not Started"
    IN_PROGRESS = "In Progress"
    ON_HOLD = "On Hold"
    COMPLETED = "Completed"


class IdeaStatus(str, Enum):
    NEW = "New"
    PLANNED = "Planned"
    IN_PROGRESS = "In Progress"
    IMPLEMENTED = "Implemented"
    DISCARDED = "Discarded"


TaskType = Literal["daily", "weekly"]


# Engagements
class TimelineEntry(WireModel):
    id: str
    date: str = Field(..., description="ISO 8601 datetime string")
    content: str
    type: Literal["update", "milestone", "issue", "meeting"] = "update"


class EngagementFile(WireModel):
    id: str
    name: str
    # Older clients saved the MIME type under "type"
    mime_type: str = Field("", validation_alias=AliasChoices("mimeType", "mime_type", "type"), serialization_alias="mimeType")
    size: int = 0
    data: str = Field("", description="Base64 data URI")
    upload_date: str = Field(default_factory=utc_now_iso)


class Engagement(WireModel):
    id: str = Field(..., min_length=1)
    engagement_number: str = ""
    org_id: str = ""
    account_name: str = ""
    name: str
    status: EngagementStatus = EngagementStatus.ACTIVE
    timeline: list[TimelineEntry] = Field(default_factory=list)
    files: list[EngagementFile] = Field(default_factory=list)
    ai_summary: str | None = None
    last_summary_date: str | None = None


# Tasks
class Subtask(WireModel):
    id: str
    content: str
    is_completed: bool = False


class Task(WireModel):
    id: str = Field(..., min_length=1)
    content: str
    is_completed: bool = False
    type: TaskType = "daily"
    date: str = Field(..., description="YYYY-MM-DD day key, or week start for weekly tasks")
    created_at: str = Field(default_factory=utc_now_iso)
    is_priority: bool = False
    subtasks: list[Subtask] = Field(default_factory=list)
    engagement_id: str | None = None
    engagement_name: str | None = None
    project_id: str | None = None
    project_name: str | None = None


# Highlights
class Highlight(WireModel):
    id: str = Field(..., min_length=1)
    content: str
    impact: str = ""
    date: str
    needs_follow_up: bool = False
    follow_up_context: str | None = None
    created_at: str = Field(default_factory=utc_now_iso)


# Internal projects
class ProjectTask(WireModel):
    id: str
    content: str
    is_completed: bool = False


class ResearchNote(WireModel):
    id: str
    date: str
    content: str
    created_at: str = Field(default_factory=utc_now_iso)


class InternalProject(WireModel):
    id: str = Field(..., min_length=1)
    name: str
    description: str = ""
    status: ProjectStatus = ProjectStatus.NOT_STARTED
    start_date: str = ""
    due_date: str = ""
    created_at: str = Field(default_factory=utc_now_iso)
    tasks: list[ProjectTask] = Field(default_factory=list)
    research_notes: list[ResearchNote] = Field(default_factory=list)
    source_idea_id: str | None = None
    source_idea_title: str | None = None
    source_engagement_id: str | None = None
    source_engagement_name: str | None = None


# Ideas
class IdeaEntry(WireModel):
    id: str
    content: str
    timestamp: str = Field(default_factory=utc_now_iso)


class Idea(WireModel):
    id: str = Field(..., min_length=1)
    title: str
    description: str = Field("", description="Mirror of the first entry, kept for older clients")
    entries: list[IdeaEntry] = Field(default_factory=list)
    category: Literal["Team", "Product", "Process", "General"] = "General"
    priority: Literal["Low", "Medium", "High"] = "Medium"
    status: IdeaStatus = IdeaStatus.NEW
    created_at: str = Field(default_factory=utc_now_iso)
    updated_at: str | None = None
    ai_summary: str | None = None
    last_summary_date: str | None = None
    engagement_id: str | None = None
    engagement_name: str | None = None
    converted_to_project_id: str | None = None

    @property
    def is_converted(self) -> bool:
        return self.converted_to_project_id is not None

    def preview(self) -> str:
        """First entry content, falling back to the legacy description."""
        if self.entries:
            return self.entries[0].content
        return self.description


class ConvertIdeaRequest(WireModel):
    """Optional overrides for the project created from an idea."""
    name: str | None = None
    description: str | None = None
    status: ProjectStatus | None = None
    start_date: str | None = None
    due_date: str | None = None
    tasks: list[ProjectTask] | None = None
    research_notes: list[ResearchNote] | None = None


# Calendar, links, notes
class CalendarEvent(WireModel):
    id: str = Field(..., min_length=1)
    title: str
    description: str | None = None
    date: str
    start_time: str = Field(..., description="HH:mm, 24h")
    end_time: str = Field(..., description="HH:mm, 24h")
    type: Literal["meeting", "work", "personal"] = "meeting"
    meeting_notes: str | None = None
    mom_sent: bool = False


class UsefulLink(WireModel):
    id: str = Field(..., min_length=1)
    title: str
    url: str
    category: str = ""
    description: str | None = None
    created_at: str = Field(default_factory=utc_now_iso)


class Note(WireModel):
    id: str = Field(..., min_length=1)
    title: str
    content: str = ""
    tags: list[str] = Field(default_factory=list)
    created_at: str = Field(default_factory=utc_now_iso)
    updated_at: str = Field(default_factory=utc_now_iso)
