"""In-memory application state mirrored from the API, with optimistic writes.

Every mutation changes :class:`AppState` first and then issues the matching
REST call. A failed call is logged and otherwise ignored: local state is not
rolled back and nothing is retried.

Tasks come in two kinds. Standalone tasks are rows of their own. Tasks of
an internal project only exist inside the project aggregate, so changing or
removing one saves the whole project. :data:`TaskRef` names the two kinds
and the store dispatches on it.
"""
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

import httpx

from worktracker.client.api import DEFAULT_TAB_ORDER, ApiClient, ApiError
from worktracker.client.forms import new_id, new_subtask
from worktracker.client.summaries import SummaryError, TextGenerationClient
from worktracker.core.dates import today_key, utc_now_iso
from worktracker.schemas import records

logger = logging.getLogger(__name__)


@dataclass
class ViewState:
    tab: str = "home"
    view: str = "dashboard"  # dashboard | detail
    target_id: str | None = None


@dataclass
class AppState:
    engagements: list[records.Engagement] = field(default_factory=list)
    tasks: list[records.Task] = field(default_factory=list)
    highlights: list[records.Highlight] = field(default_factory=list)
    projects: list[records.InternalProject] = field(default_factory=list)
    ideas: list[records.Idea] = field(default_factory=list)
    calendar_events: list[records.CalendarEvent] = field(default_factory=list)
    links: list[records.UsefulLink] = field(default_factory=list)
    notes: list[records.Note] = field(default_factory=list)
    tab_order: list[str] = field(default_factory=lambda: list(DEFAULT_TAB_ORDER))
    view: ViewState = field(default_factory=ViewState)
    is_loaded: bool = False


@dataclass(frozen=True)
class StandaloneTask:
    task: records.Task


@dataclass(frozen=True)
class ProjectDerivedTask:
    project_id: str
    project_task: records.ProjectTask


TaskRef = StandaloneTask | ProjectDerivedTask


def project_task_view(project: records.InternalProject, project_task: records.ProjectTask) -> records.Task:
    """Present a project task as a daily task for today."""
    return records.Task(
        id=project_task.id,
        content=project_task.content,
        is_completed=project_task.is_completed,
        type="daily",
        date=today_key(),
        created_at=project.created_at,
        project_id=project.id,
        project_name=project.name,
    )


def _order_tasks(tasks: list[records.Task]) -> list[records.Task]:
    # Incomplete first, then priority, then newest
    newest_first = sorted(tasks, key=lambda t: t.created_at, reverse=True)
    return sorted(newest_first, key=lambda t: (t.is_completed, not t.is_priority))


class Store:
    """Application state container and its mutation entry points."""

    def __init__(self, api: ApiClient, summarizer: TextGenerationClient | None = None):
        self.api = api
        self.summarizer = summarizer
        self.state = AppState()
        self._project_task_index: dict[str, str] = {}

    # ------------------------------------------------------------------
    # Plumbing
    # ------------------------------------------------------------------

    def _persist(self, action: str, call: Callable[..., Any], *args) -> bool:
        """Issue a write; log and swallow any failure."""
        try:
            call(*args)
        except (ApiError, httpx.HTTPError) as e:
            logger.error("Failed to %s: %s", action, e)
            return False
        return True

    def _prepend(self, collection: str, item) -> None:
        setattr(self.state, collection, [item, *getattr(self.state, collection)])

    def _replace(self, collection: str, item) -> None:
        setattr(self.state, collection, [item if x.id == item.id else x for x in getattr(self.state, collection)])

    def _remove(self, collection: str, record_ids) -> None:
        ids = {record_ids} if isinstance(record_ids, str) else set(record_ids)
        setattr(self.state, collection, [x for x in getattr(self.state, collection) if x.id not in ids])

    def _find(self, collection: str, record_id: str):
        return next((x for x in getattr(self.state, collection) if x.id == record_id), None)

    def _set_projects(self, projects: list[records.InternalProject]) -> None:
        self.state.projects = projects
        self._project_task_index = {pt.id: p.id for p in projects for pt in p.tasks}

    # ------------------------------------------------------------------
    # Loading and navigation
    # ------------------------------------------------------------------

    def load(self) -> bool:
        """Fetch every collection; on failure the state stays unloaded."""
        try:
            engagements = self.api.fetch_engagements()
            tasks = self.api.fetch_tasks()
            highlights = self.api.fetch_highlights()
            projects = self.api.fetch_projects()
            ideas = self.api.fetch_ideas()
            events = self.api.fetch_calendar_events()
            links = self.api.fetch_links()
            notes = self.api.fetch_notes()
            tab_order = self.api.fetch_tab_order()
        except (ApiError, httpx.HTTPError) as e:
            logger.error("Failed to load initial data: %s", e)
            return False

        self.state.engagements = engagements
        self.state.tasks = tasks
        self.state.highlights = highlights
        self._set_projects(projects)
        self.state.ideas = ideas
        self.state.calendar_events = events
        self.state.links = links
        self.state.notes = notes
        self.state.tab_order = tab_order
        self.state.is_loaded = True
        return True

    def navigate(self, target_id: str) -> None:
        self.state.view = ViewState(tab=self.state.view.tab, view="detail", target_id=target_id)

    def back(self) -> None:
        self.state.view = ViewState(tab=self.state.view.tab, view="dashboard")

    def change_tab(self, tab: str) -> None:
        self.state.view = ViewState(tab=tab, view="dashboard")

    def reorder_tabs(self, order: list[str]) -> bool:
        self.state.tab_order = list(order)
        return self._persist("save tab order", self.api.save_tab_order, list(order))

    @property
    def current_engagement(self) -> records.Engagement | None:
        if self.state.view.view != "detail" or not self.state.view.target_id:
            return None
        return self._find("engagements", self.state.view.target_id)

    # ------------------------------------------------------------------
    # Engagements
    # ------------------------------------------------------------------

    def add_engagement(self, engagement: records.Engagement) -> bool:
        self._prepend("engagements", engagement)
        self.navigate(engagement.id)
        return self._persist("save engagement", self.api.save_engagement, engagement)

    def update_engagement(self, engagement: records.Engagement) -> bool:
        self._replace("engagements", engagement)
        return self._persist("save engagement", self.api.save_engagement, engagement)

    def delete_engagements(self, engagement_ids: list[str]) -> bool:
        """Delete engagements; leaves the detail view if it showed one of them."""
        self._remove("engagements", engagement_ids)
        results = [self._persist("delete engagement", self.api.delete_engagement, eid) for eid in engagement_ids]
        view = self.state.view
        if view.view == "detail" and view.target_id in engagement_ids:
            self.back()
        return all(results)

    def delete_engagement(self, engagement_id: str) -> bool:
        return self.delete_engagements([engagement_id])

    def _edit_engagement(self, engagement_id: str, **changes) -> bool:
        engagement = self._find("engagements", engagement_id)
        if engagement is None:
            logger.warning("Engagement %s is not loaded", engagement_id)
            return False
        return self.update_engagement(engagement.model_copy(update=changes))

    def append_timeline_entry(self, engagement_id: str, content: str, entry_type: str = "update", date: str | None = None) -> bool:
        engagement = self._find("engagements", engagement_id)
        if engagement is None:
            logger.warning("Engagement %s is not loaded", engagement_id)
            return False
        entry = records.TimelineEntry(id=new_id(), date=date or utc_now_iso(), content=content, type=entry_type)
        return self._edit_engagement(engagement_id, timeline=[*engagement.timeline, entry])

    def attach_file(self, engagement_id: str, file: records.EngagementFile) -> bool:
        engagement = self._find("engagements", engagement_id)
        if engagement is None:
            logger.warning("Engagement %s is not loaded", engagement_id)
            return False
        return self._edit_engagement(engagement_id, files=[*engagement.files, file])

    def remove_file(self, engagement_id: str, file_id: str) -> bool:
        engagement = self._find("engagements", engagement_id)
        if engagement is None:
            logger.warning("Engagement %s is not loaded", engagement_id)
            return False
        return self._edit_engagement(engagement_id, files=[f for f in engagement.files if f.id != file_id])

    def change_engagement_status(self, engagement_id: str, status: records.EngagementStatus | str) -> bool:
        return self._edit_engagement(engagement_id, status=records.EngagementStatus(status).value)

    def generate_engagement_summary(self, engagement_id: str) -> str | None:
        engagement = self._find("engagements", engagement_id)
        if engagement is None or self.summarizer is None:
            return None
        try:
            summary = self.summarizer.summarize_engagement(engagement)
        except SummaryError as e:
            logger.error("Failed to summarize engagement %s: %s", engagement_id, e)
            return None
        self._edit_engagement(engagement_id, ai_summary=summary, last_summary_date=utc_now_iso())
        return summary

    # ------------------------------------------------------------------
    # Tasks (standalone and project-derived)
    # ------------------------------------------------------------------

    @property
    def master_tasks(self) -> list[records.Task]:
        """Standalone tasks followed by every project task viewed as a task."""
        derived = [project_task_view(p, pt) for p in self.state.projects for pt in p.tasks]
        return [*self.state.tasks, *derived]

    def tasks_for(self, task_type: str, date_key: str) -> list[records.Task]:
        matching = [t for t in self.master_tasks if t.type == task_type and t.date == date_key]
        return _order_tasks(matching)

    def progress(self, task_type: str, date_key: str) -> int:
        """Completed share of the bucket's tasks as a whole percentage."""
        tasks = self.tasks_for(task_type, date_key)
        if not tasks:
            return 0
        return round(100 * sum(t.is_completed for t in tasks) / len(tasks))

    def task_ref(self, task: records.Task) -> TaskRef:
        if task.project_id:
            return ProjectDerivedTask(
                project_id=task.project_id,
                project_task=records.ProjectTask(id=task.id, content=task.content, is_completed=task.is_completed),
            )
        return StandaloneTask(task)

    def resolve_task(self, task_id: str) -> TaskRef | None:
        project_id = self._project_task_index.get(task_id)
        if project_id is not None:
            project = self._find("projects", project_id)
            project_task = next((pt for pt in project.tasks if pt.id == task_id), None) if project else None
            if project_task is not None:
                return ProjectDerivedTask(project_id, project_task)
        task = self._find("tasks", task_id)
        return StandaloneTask(task) if task is not None else None

    def _save_project_tasks(self, project_id: str, rewrite: Callable[[list[records.ProjectTask]], list[records.ProjectTask]]) -> bool:
        project = self._find("projects", project_id)
        if project is None:
            logger.warning("Project %s is not loaded", project_id)
            return False
        updated = project.model_copy(update={"tasks": rewrite(project.tasks)})
        return self.update_project(updated)

    def add_task(self, task: records.Task) -> bool:
        ref = self.task_ref(task)
        if isinstance(ref, ProjectDerivedTask):
            return self._save_project_tasks(ref.project_id, lambda tasks: [*tasks, ref.project_task])
        self._prepend("tasks", task)
        return self._persist("save task", self.api.save_task, task)

    def update_task(self, task: records.Task) -> bool:
        """Apply a task edit; project tasks only take content and completion."""
        ref = self.task_ref(task)
        if isinstance(ref, ProjectDerivedTask):
            changed = ref.project_task

            def rewrite(tasks):
                return [
                    pt.model_copy(update={"content": changed.content, "is_completed": changed.is_completed})
                    if pt.id == changed.id else pt
                    for pt in tasks
                ]
            return self._save_project_tasks(ref.project_id, rewrite)

        self._replace("tasks", task)
        return self._persist("save task", self.api.save_task, task)

    def delete_task(self, task_id: str) -> bool:
        ref = self.resolve_task(task_id)
        if isinstance(ref, ProjectDerivedTask):
            return self._save_project_tasks(ref.project_id, lambda tasks: [pt for pt in tasks if pt.id != task_id])
        self._remove("tasks", task_id)
        return self._persist("delete task", self.api.delete_task, task_id)

    def toggle_task(self, task_id: str) -> bool:
        task = next((t for t in self.master_tasks if t.id == task_id), None)
        if task is None:
            return False
        return self.update_task(task.model_copy(update={"is_completed": not task.is_completed}))

    def add_subtask(self, task_id: str, content: str) -> bool:
        task = self._find("tasks", task_id)
        if task is None:
            logger.warning("Subtasks are only kept on standalone tasks (%s)", task_id)
            return False
        return self.update_task(task.model_copy(update={"subtasks": [*task.subtasks, new_subtask(content)]}))

    def toggle_subtask(self, task_id: str, subtask_id: str) -> bool:
        task = self._find("tasks", task_id)
        if task is None:
            return False
        subtasks = [
            st.model_copy(update={"is_completed": not st.is_completed}) if st.id == subtask_id else st
            for st in task.subtasks
        ]
        return self.update_task(task.model_copy(update={"subtasks": subtasks}))

    # ------------------------------------------------------------------
    # Internal projects
    # ------------------------------------------------------------------

    def add_project(self, project: records.InternalProject) -> bool:
        self._set_projects([project, *self.state.projects])
        return self._persist("save project", self.api.save_project, project)

    def update_project(self, project: records.InternalProject) -> bool:
        self._set_projects([project if p.id == project.id else p for p in self.state.projects])
        return self._persist("save project", self.api.save_project, project)

    def delete_project(self, project_id: str) -> bool:
        self._set_projects([p for p in self.state.projects if p.id != project_id])
        return self._persist("delete project", self.api.delete_project, project_id)

    # ------------------------------------------------------------------
    # Ideas
    # ------------------------------------------------------------------

    def add_idea(self, idea: records.Idea) -> bool:
        self._prepend("ideas", idea)
        return self._persist("save idea", self.api.save_idea, idea)

    def update_idea(self, idea: records.Idea) -> bool:
        self._replace("ideas", idea)
        return self._persist("save idea", self.api.save_idea, idea)

    def delete_idea(self, idea_id: str) -> bool:
        self._remove("ideas", idea_id)
        return self._persist("delete idea", self.api.delete_idea, idea_id)

    def _set_idea_entries(self, idea: records.Idea, entries: list[records.IdeaEntry]) -> bool:
        description = entries[0].content if entries else idea.description
        return self.update_idea(idea.model_copy(update={
            "entries": entries,
            "description": description,
            "updated_at": utc_now_iso(),
        }))

    def add_idea_entry(self, idea_id: str, content: str) -> bool:
        idea = self._find("ideas", idea_id)
        if idea is None:
            logger.warning("Idea %s is not loaded", idea_id)
            return False
        entry = records.IdeaEntry(id=new_id(), content=content.strip(), timestamp=utc_now_iso())
        return self._set_idea_entries(idea, [*idea.entries, entry])

    def remove_idea_entry(self, idea_id: str, entry_id: str) -> bool:
        idea = self._find("ideas", idea_id)
        if idea is None:
            return False
        return self._set_idea_entries(idea, [e for e in idea.entries if e.id != entry_id])

    def convert_idea(self, idea_id: str, overrides: records.ConvertIdeaRequest | None = None) -> records.InternalProject | None:
        """Turn an idea into a project once the server confirms it.

        Unlike the other mutations this waits for the server, because the
        project id comes from the response.
        """
        idea = self._find("ideas", idea_id)
        if idea is not None and idea.is_converted:
            existing = self._find("projects", idea.converted_to_project_id)
            if existing is not None:
                return existing

        try:
            project = self.api.convert_idea_to_project(idea_id, overrides)
        except (ApiError, httpx.HTTPError) as e:
            logger.error("Failed to convert idea %s to project: %s", idea_id, e)
            return None

        if idea is not None:
            self._replace("ideas", idea.model_copy(update={
                "converted_to_project_id": project.id,
                "status": records.IdeaStatus.IMPLEMENTED.value,
            }))
        if self._find("projects", project.id) is None:
            self._set_projects([project, *self.state.projects])
        self.state.view = ViewState(tab="projects", view="detail", target_id=project.id)
        return project

    def generate_idea_summary(self, idea_id: str) -> str | None:
        idea = self._find("ideas", idea_id)
        if idea is None or self.summarizer is None:
            return None
        try:
            summary = self.summarizer.summarize_idea(idea)
        except SummaryError as e:
            logger.error("Failed to summarize idea %s: %s", idea_id, e)
            return None
        self.update_idea(idea.model_copy(update={"ai_summary": summary, "last_summary_date": utc_now_iso()}))
        return summary

    # ------------------------------------------------------------------
    # Highlights, calendar events, links, notes
    # ------------------------------------------------------------------

    def add_highlight(self, highlight: records.Highlight) -> bool:
        self._prepend("highlights", highlight)
        return self._persist("save highlight", self.api.save_highlight, highlight)

    def update_highlight(self, highlight: records.Highlight) -> bool:
        self._replace("highlights", highlight)
        return self._persist("save highlight", self.api.save_highlight, highlight)

    def delete_highlight(self, highlight_id: str) -> bool:
        self._remove("highlights", highlight_id)
        return self._persist("delete highlight", self.api.delete_highlight, highlight_id)

    def add_event(self, event: records.CalendarEvent) -> bool:
        self._prepend("calendar_events", event)
        return self._persist("save calendar event", self.api.save_calendar_event, event)

    def update_event(self, event: records.CalendarEvent) -> bool:
        self._replace("calendar_events", event)
        return self._persist("save calendar event", self.api.save_calendar_event, event)

    def delete_event(self, event_id: str) -> bool:
        self._remove("calendar_events", event_id)
        return self._persist("delete calendar event", self.api.delete_calendar_event, event_id)

    def add_link(self, link: records.UsefulLink) -> bool:
        self._prepend("links", link)
        return self._persist("save link", self.api.save_link, link)

    def update_link(self, link: records.UsefulLink) -> bool:
        self._replace("links", link)
        return self._persist("save link", self.api.save_link, link)

    def delete_link(self, link_id: str) -> bool:
        self._remove("links", link_id)
        return self._persist("delete link", self.api.delete_link, link_id)

    def add_note(self, note: records.Note) -> bool:
        self._prepend("notes", note)
        return self._persist("save note", self.api.save_note, note)

    def update_note(self, note: records.Note) -> bool:
        self._replace("notes", note)
        return self._persist("save note", self.api.save_note, note)

    def delete_note(self, note_id: str) -> bool:
        self._remove("notes", note_id)
        return self._persist("delete note", self.api.delete_note, note_id)
