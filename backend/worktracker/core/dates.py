"""Date keys used to bucket tasks and stamp records."""
from datetime import date, datetime, timezone

from dateutil.relativedelta import MO, relativedelta


def utc_now_iso() -> str:
    """Get current UTC datetime as ISO 8601 string."""
    return datetime.now(timezone.utc).isoformat()


def today_key() -> str:
    """Get current UTC date as YYYY-MM-DD string."""
    return datetime.now(timezone.utc).strftime("%Y-%m-%d")


def week_start_key(day: date | str | None = None) -> str:
    """Get the Monday starting the week that contains ``day``.

    Args:
        day: A date, a YYYY-MM-DD string, or None for today (UTC).

    Returns:
        The week's Monday as YYYY-MM-DD.
    """
    if day is None:
        day = datetime.now(timezone.utc).date()
    elif isinstance(day, str):
        day = datetime.strptime(day, "%Y-%m-%d").date()
    return (day + relativedelta(weekday=MO(-1))).strftime("%Y-%m-%d")


def date_key_for(task_type: str, day: date | str | None = None) -> str:
    """Bucket key for a task type: the day itself or its week start."""
    if task_type == "weekly":
        return week_start_key(day)
    if day is None:
        return today_key()
    if isinstance(day, str):
        return day
    return day.strftime("%Y-%m-%d")
