"""Prompt building and the HTTP text-generation service used for AI summaries.

The service is opaque: it receives ``{"model": ..., "prompt": ...}`` and
answers ``{"text": ...}``.
"""
import logging
from datetime import datetime

import httpx

from worktracker.core import config
from worktracker.schemas import records

logger = logging.getLogger(__name__)

NO_SUMMARY_TEXT = "Unable to generate summary at this time."
NO_ENTRIES_TEXT = "No entries yet to summarize."


class SummaryError(Exception):
    """Raised when the text-generation service cannot produce a summary."""
    pass


def _display_date(value: str) -> str:
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00")).strftime("%Y-%m-%d")
    except ValueError:
        return value


def build_engagement_prompt(engagement: records.Engagement) -> str:
    """Prompt for an executive summary of an engagement's timeline."""
    timeline = sorted(engagement.timeline, key=lambda entry: entry.date, reverse=True)
    timeline_text = "\n".join(
        f"- [{_display_date(entry.date)}] ({entry.type}): {entry.content}" for entry in timeline
    )
    return (
        "You are an AI assistant for a professional Work Tracker.\n"
        "Generate a concise but comprehensive executive summary of a client engagement "
        "based on its timeline of events.\n\n"
        "Engagement Details:\n"
        f"- Account: {engagement.account_name}\n"
        f"- Project: {engagement.name}\n"
        f"- Current Status: {engagement.status}\n\n"
        "Timeline of Events (Newest to Oldest):\n"
        f"{timeline_text}\n\n"
        "Provide a summary (max 150 words) that highlights:\n"
        "1. The most recent significant progress.\n"
        "2. Any active issues or risks mentioned (especially if status is At Risk).\n"
        "3. The overall trajectory of the engagement.\n\n"
        "Keep it professional and in paragraph form, without heavy markdown."
    )


def build_idea_prompt(idea: records.Idea) -> str | None:
    """Prompt summarising how an idea evolved, or None when it has no entries."""
    entries = sorted(idea.entries, key=lambda entry: entry.timestamp)
    entries_text = "\n".join(f"- [{_display_date(e.timestamp)}]: {e.content}" for e in entries)
    if not entries_text.strip():
        return None
    return (
        "You are an AI assistant helping to summarize the evolution of an idea.\n\n"
        f'Idea: "{idea.title}"\n'
        f"Category: {idea.category}\n"
        f"Priority: {idea.priority}\n"
        f"Status: {idea.status}\n\n"
        "Chronological Entries (Oldest to Newest):\n"
        f"{entries_text}\n\n"
        "Provide a brief summary (max 80 words) that captures:\n"
        "1. The core concept of the idea\n"
        "2. How the thinking has evolved over time\n"
        "3. Current state or next steps if mentioned\n\n"
        "Write in a natural, conversational tone without markdown."
    )


class TextGenerationClient:
    """Calls the configured text-generation endpoint."""

    def __init__(
        self,
        url: str | None = None,
        api_key: str | None = None,
        model: str | None = None,
        http: httpx.Client | None = None,
    ):
        self.url = url or config.TEXT_GENERATION_URL
        self.api_key = api_key or config.TEXT_GENERATION_API_KEY
        self.model = model or config.TEXT_GENERATION_MODEL
        self.http = http or httpx.Client(timeout=30.0)

    def generate(self, prompt: str) -> str:
        if not self.url:
            raise SummaryError("Text generation service is not configured")
        headers = {"Authorization": f"Bearer {self.api_key}"} if self.api_key else {}
        try:
            response = self.http.post(self.url, json={"model": self.model, "prompt": prompt}, headers=headers)
            response.raise_for_status()
            body = response.json()
            text = body.get("text") if isinstance(body, dict) else None
        except (httpx.HTTPError, ValueError) as e:
            logger.error("Text generation failed: %s", e)
            raise SummaryError("Failed to generate summary") from e
        return text or NO_SUMMARY_TEXT

    def summarize_engagement(self, engagement: records.Engagement) -> str:
        return self.generate(build_engagement_prompt(engagement))

    def summarize_idea(self, idea: records.Idea) -> str:
        prompt = build_idea_prompt(idea)
        if prompt is None:
            return NO_ENTRIES_TEXT
        return self.generate(prompt)
