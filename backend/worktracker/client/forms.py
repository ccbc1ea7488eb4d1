"""Factories for new records, mirroring what the entry forms produce."""
import uuid

from worktracker.core.dates import date_key_for, today_key, utc_now_iso
from worktracker.schemas import records


def new_id() -> str:
    return str(uuid.uuid4())


def new_engagement(
    name: str,
    account_name: str,
    engagement_number: str = "",
    org_id: str = "",
    status: records.EngagementStatus = records.EngagementStatus.ACTIVE,
    initial_update: str | None = None,
) -> records.Engagement:
    """A new engagement whose timeline starts with one seed entry."""
    now = utc_now_iso()
    seed = records.TimelineEntry(
        id=new_id(),
        date=now,
        content=initial_update or f"Engagement created: {name}",
        type="update",
    )
    return records.Engagement(
        id=new_id(),
        engagement_number=engagement_number,
        org_id=org_id,
        account_name=account_name,
        name=name,
        status=status,
        timeline=[seed],
    )


def new_task(
    content: str,
    task_type: records.TaskType = "daily",
    day: str | None = None,
    is_priority: bool = False,
    engagement: records.Engagement | None = None,
) -> records.Task:
    """A task bucketed under the day key, or the week start for weekly tasks."""
    return records.Task(
        id=new_id(),
        content=content.strip(),
        type=task_type,
        date=date_key_for(task_type, day),
        is_priority=is_priority,
        engagement_id=engagement.id if engagement else None,
        engagement_name=engagement.name if engagement else None,
    )


def new_subtask(content: str) -> records.Subtask:
    return records.Subtask(id=new_id(), content=content.strip())


def new_idea(
    title: str,
    description: str,
    category: str = "General",
    priority: str = "Medium",
    engagement: records.Engagement | None = None,
) -> records.Idea:
    """A new idea whose first entry is also mirrored into ``description``."""
    now = utc_now_iso()
    first_entry = records.IdeaEntry(id=new_id(), content=description, timestamp=now)
    return records.Idea(
        id=new_id(),
        title=title.strip(),
        description=description,
        entries=[first_entry],
        category=category,
        priority=priority,
        created_at=now,
        updated_at=now,
        engagement_id=engagement.id if engagement else None,
        engagement_name=engagement.name if engagement else None,
    )


def new_project(name: str, description: str = "", start_date: str | None = None, due_date: str = "") -> records.InternalProject:
    return records.InternalProject(
        id=new_id(),
        name=name.strip(),
        description=description,
        start_date=start_date or today_key(),
        due_date=due_date,
    )


def new_highlight(content: str, impact: str = "", needs_follow_up: bool = False, follow_up_context: str | None = None) -> records.Highlight:
    return records.Highlight(
        id=new_id(),
        content=content,
        impact=impact,
        date=today_key(),
        needs_follow_up=needs_follow_up,
        follow_up_context=follow_up_context if needs_follow_up else None,
    )


def new_event(title: str, date: str, start_time: str, end_time: str, event_type: str = "meeting", description: str | None = None) -> records.CalendarEvent:
    return records.CalendarEvent(
        id=new_id(),
        title=title,
        description=description,
        date=date,
        start_time=start_time,
        end_time=end_time,
        type=event_type,
    )


def new_link(title: str, url: str, category: str = "", description: str | None = None) -> records.UsefulLink:
    return records.UsefulLink(id=new_id(), title=title, url=url, category=category, description=description)


def new_note(title: str, content: str = "", tags: list[str] | None = None) -> records.Note:
    now = utc_now_iso()
    return records.Note(id=new_id(), title=title, content=content, tags=tags or [], created_at=now, updated_at=now)
