"""Default records for create actions, one builder per entity."""

from datetime import date
from urllib.parse import urlparse

from ..tools.dates import format_date


def title_from_url(url: str | None) -> str:
    # https://www.example.com/post -> "example"
    try:
        host = urlparse(url or "").hostname or ""
    except ValueError:
        host = ""
    host = host.removeprefix("www.")
    return host.split(".")[0] if host else "Article"


def build_task(params: dict, today: date) -> dict:
    return {
        "title": params["title"],
        "description": params.get("description") or "",
        "status": params.get("status") or "todo",
        "priority": params.get("priority") or "medium",
        "deadline": params.get("deadline") or format_date(today),
        "category": params.get("category") or "Work",
    }


def build_course(params: dict, today: date) -> dict:
    url = params.get("url")
    return {
        "name": params.get("name") or params.get("title"),
        "platform": "YouTube" if url else "Other",
        "youtube_url": url,
        "description": params.get("description") or "",
        "status": "not-started",
        "category": params.get("category") or "",
        "progress": 0,
    }


def build_reading(params: dict, today: date) -> dict:
    url = params.get("url")
    return {
        "title": params.get("title") or title_from_url(url),
        "source": url or "",
        "description": params.get("description") or "",
        "status": "to-read",
        "category": params.get("category") or "technical",
        "priority": params.get("priority") or "medium",
    }


def build_goal(params: dict, today: date) -> dict:
    return {
        "title": params["title"],
        "description": params.get("description") or "",
        "category": params.get("category") or "",
        "timeframe": params.get("timeframe") or "quarterly",
        "progress": 0,
        "target_date": params.get("targetDate"),
        "status": "active",
    }


BUILDERS = {
    "task": build_task,
    "course": build_course,
    "reading": build_reading,
    "goal": build_goal,
}


def build_record(entity: str, params: dict, today: date) -> dict:
    try:
        builder = BUILDERS[entity]
    except KeyError:
        raise ValueError(f"No default record for entity {entity!r}") from None
    return builder(params, today)
