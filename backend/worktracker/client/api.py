"""HTTP client for the work tracker REST API.

Wraps an ``httpx.Client`` so callers (and tests, via FastAPI's
``TestClient``) can supply their own transport. Every call raises
:class:`ApiError` on a non-2xx response.
"""
import json
import logging
from typing import Any

import httpx

from worktracker.core import config
from worktracker.schemas import records

logger = logging.getLogger(__name__)

DEFAULT_TAB_ORDER = [
    "home",
    "engagements",
    "calendar",
    "tasks",
    "highlights",
    "projects",
    "ideas",
    "links",
    "notes",
]


class ApiError(Exception):
    """Raised when the API answers with a non-2xx status."""

    def __init__(self, status_code: int, message: str):
        super().__init__(message)
        self.status_code = status_code
        self.message = message


def error_message(response: httpx.Response, action: str) -> str:
    """Extract a readable message from an error response.

    Prefers a JSON ``error`` (or ``detail``) field, then the raw body text.
    """
    fallback = f"Failed to {action}"
    raw = response.text
    try:
        body = json.loads(raw)
    except ValueError:
        return f"{fallback}: {raw}" if raw else fallback
    if isinstance(body, dict):
        message = body.get("error") or body.get("detail")
        if message:
            return str(message)
    return fallback


class ApiClient:
    """Typed access to every REST resource."""

    def __init__(self, http: httpx.Client | None = None, base_path: str | None = None, token: str | None = None):
        # Only a client created here is closed by close()
        self._owns_http = http is None
        if http is None:
            http = httpx.Client(base_url=config.WORKTRACKER_API_URL)
            base_path = base_path or ""
        self.http = http
        self.base_path = "/api" if base_path is None else base_path.rstrip("/")
        self.token = token

    def close(self) -> None:
        if self._owns_http:
            self.http.close()

    def __enter__(self) -> "ApiClient":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def _headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self.token}"} if self.token else {}

    def _request(self, method: str, path: str, action: str, body: Any = None, params: dict | None = None) -> httpx.Response:
        kwargs: dict[str, Any] = {"headers": self._headers()}
        if body is not None:
            kwargs["json"] = body
        if params:
            kwargs["params"] = params
        response = self.http.request(method, f"{self.base_path}{path}", **kwargs)
        if response.is_error:
            raise ApiError(response.status_code, error_message(response, action))
        return response

    # Auth
    def login(self, email: str, password: str) -> dict:
        """Log in and keep the returned token for later calls."""
        data = self._request("POST", "/auth/login", "login", {"email": email, "password": password}).json()
        self.token = data["token"]
        return data["user"]

    def register(self, name: str, email: str, password: str) -> None:
        self._request("POST", "/auth/register", "register", {"name": name, "email": email, "password": password})

    def current_user(self) -> dict:
        return self._request("GET", "/auth/me", "get current user").json()

    def logout(self) -> None:
        self.token = None

    # Generic resource helpers
    def _fetch(self, path: str, schema: type[records.WireModel], action: str, params: dict | None = None) -> list:
        return [schema.model_validate(item) for item in self._request("GET", path, action, params=params).json()]

    def _save(self, path: str, record: records.WireModel, action: str) -> None:
        self._request("POST", path, action, record.to_wire())

    def _delete(self, path: str, record_id: str, action: str) -> None:
        self._request("DELETE", f"{path}/{record_id}", action)

    # Engagements
    def fetch_engagements(self) -> list[records.Engagement]:
        return self._fetch("/engagements", records.Engagement, "fetch engagements")

    def save_engagement(self, engagement: records.Engagement) -> None:
        self._save("/engagements", engagement, "save engagement")

    def delete_engagement(self, engagement_id: str) -> None:
        self._delete("/engagements", engagement_id, "delete engagement")

    # Tasks
    def fetch_tasks(self, date: str | None = None, task_type: str | None = None) -> list[records.Task]:
        params = {key: value for key, value in (("date", date), ("type", task_type)) if value}
        return self._fetch("/tasks", records.Task, "fetch tasks", params=params)

    def save_task(self, task: records.Task) -> None:
        self._save("/tasks", task, "save task")

    def delete_task(self, task_id: str) -> None:
        self._delete("/tasks", task_id, "delete task")

    # Highlights
    def fetch_highlights(self) -> list[records.Highlight]:
        return self._fetch("/highlights", records.Highlight, "fetch highlights")

    def save_highlight(self, highlight: records.Highlight) -> None:
        self._save("/highlights", highlight, "save highlight")

    def delete_highlight(self, highlight_id: str) -> None:
        self._delete("/highlights", highlight_id, "delete highlight")

    # Projects
    def fetch_projects(self) -> list[records.InternalProject]:
        return self._fetch("/projects", records.InternalProject, "fetch projects")

    def save_project(self, project: records.InternalProject) -> None:
        self._save("/projects", project, "save project")

    def delete_project(self, project_id: str) -> None:
        self._delete("/projects", project_id, "delete project")

    # Ideas
    def fetch_ideas(self) -> list[records.Idea]:
        return self._fetch("/ideas", records.Idea, "fetch ideas")

    def save_idea(self, idea: records.Idea) -> None:
        self._save("/ideas", idea, "save idea")

    def delete_idea(self, idea_id: str) -> None:
        self._delete("/ideas", idea_id, "delete idea")

    def convert_idea_to_project(self, idea_id: str, overrides: records.ConvertIdeaRequest | None = None) -> records.InternalProject:
        body = overrides.model_dump(mode="json", by_alias=True, exclude_none=True) if overrides else {}
        response = self._request("POST", f"/ideas/{idea_id}/convert-to-project", "convert idea to project", body)
        return records.InternalProject.model_validate(response.json())

    # Calendar
    def fetch_calendar_events(self) -> list[records.CalendarEvent]:
        return self._fetch("/calendar", records.CalendarEvent, "fetch calendar events")

    def save_calendar_event(self, event: records.CalendarEvent) -> None:
        self._save("/calendar", event, "save calendar event")

    def delete_calendar_event(self, event_id: str) -> None:
        self._delete("/calendar", event_id, "delete calendar event")

    # Links
    def fetch_links(self) -> list[records.UsefulLink]:
        return self._fetch("/links", records.UsefulLink, "fetch links")

    def save_link(self, link: records.UsefulLink) -> None:
        self._save("/links", link, "save link")

    def delete_link(self, link_id: str) -> None:
        self._delete("/links", link_id, "delete link")

    # Notes
    def fetch_notes(self) -> list[records.Note]:
        return self._fetch("/notes", records.Note, "fetch notes")

    def save_note(self, note: records.Note) -> None:
        self._save("/notes", note, "save note")

    def delete_note(self, note_id: str) -> None:
        self._delete("/notes", note_id, "delete note")

    # Settings
    def fetch_tab_order(self) -> list[str]:
        """Stored tab order with any newer tabs appended; the default on failure."""
        try:
            data = self._request("GET", "/settings/tabOrder", "fetch tab order").json()
        except (ApiError, httpx.HTTPError, ValueError) as e:
            logger.warning("Falling back to default tab order: %s", e)
            return list(DEFAULT_TAB_ORDER)
        if not isinstance(data, list) or not data:
            return list(DEFAULT_TAB_ORDER)
        return data + [tab for tab in DEFAULT_TAB_ORDER if tab not in data]

    def save_tab_order(self, order: list[str]) -> None:
        self._request("POST", "/settings/tabOrder", "save tab order", order)
