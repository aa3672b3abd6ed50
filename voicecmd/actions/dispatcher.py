"""Apply a validated command to the data store."""

import asyncio
import logging
from datetime import date, timedelta
from typing import Awaitable, Callable

from .defaults import build_record
from .validator import missing_fields
from ..store.client import DataAccessError, DataStore, store_timeout
from ..tools.dates import format_date
from ..tools.models import ACTION_SPECS, ExecutionResult, FailureKind, ParsedCommand
from ..utils.timezone import today as local_today

logger = logging.getLogger(__name__)

ENTITY_LABELS = {
    "task": "Task",
    "course": "Course",
    "reading": "Reading item",
    "goal": "Goal",
}

ERROR_MESSAGES = {
    "create_task": "Error creating task",
    "show_tasks": "Error fetching tasks",
    "mark_task_done": "Error marking task as done",
    "delete_task": "Error deleting task",
    "update_task_priority": "Error updating task priority",
    "create_course": "Error creating course",
    "show_courses": "Error fetching courses",
    "mark_video_watched": "Error marking video as watched",
    "create_reading": "Error adding reading item",
    "show_reading": "Error fetching reading items",
    "mark_reading_read": "Error marking item as read",
    "create_goal": "Error creating goal",
    "update_goal_progress": "Error updating goal progress",
    "show_goals": "Error fetching goals",
    "show_dashboard_summary": "Error fetching dashboard summary",
    "show_stats": "Error fetching statistics",
}


class _StepFailed(Exception):
    def __init__(self, cause: Exception, mutation: bool):
        super().__init__(str(cause))
        self.cause = cause
        self.mutation = mutation


class _NotFound(Exception):
    def __init__(self, entity: str, title: str):
        super().__init__(title)
        self.entity = entity
        self.title = title


def find_by_title(records: list[dict], title: str, key: str = "title") -> dict | None:
    """First record whose `key` contains `title`, case-insensitively."""
    needle = title.lower()
    matches = [r for r in records if needle in str(r.get(key) or "").lower()]
    if len(matches) > 1:
        logger.warning("%d records match %r, using the first: %r", len(matches), title, matches[0].get(key))
    return matches[0] if matches else None


def filter_tasks(tasks: list[dict], which: str | None, today: date) -> list[dict]:
    if not which or which == "all":
        return tasks
    t = format_date(today)

    def deadline(task):
        return str(task.get("deadline") or "")[:10]

    if which == "today":
        return [x for x in tasks if deadline(x) == t]
    if which == "tomorrow":
        tomorrow = format_date(today + timedelta(days=1))
        return [x for x in tasks if deadline(x) == tomorrow]
    if which == "this week":
        sunday = format_date(today + timedelta(days=6 - today.weekday()))
        return [x for x in tasks if t <= deadline(x) <= sunday]
    if which == "overdue":
        return [x for x in tasks if deadline(x) and deadline(x) < t and x.get("status") != "done"]
    logger.info("Unknown task filter %r, showing all tasks", which)
    return tasks


_FIXED_PREVIEWS = {
    "show_courses": "Show courses",
    "show_reading": "Show reading list",
    "show_goals": "Show goals",
    "show_dashboard_summary": "Show dashboard summary",
    "show_stats": "Show progress statistics",
}


def describe_command(command: ParsedCommand) -> str:
    """One-line preview shown while waiting for confirmation."""
    p = command.parameters
    a = command.action
    if a == "create_task":
        text = f'Create task "{p.get("title")}"'
        if p.get("deadline"):
            text += f' due {p["deadline"]}'
        if p.get("priority"):
            text += f', priority {p["priority"]}'
        return text
    if a == "show_tasks":
        which = p.get("filter") or p.get("timeframe")
        return f"Show {which} tasks" if which and which != "all" else "Show all tasks"
    if a == "mark_task_done":
        return f'Mark task "{p.get("title")}" as done'
    if a == "delete_task":
        return f'Delete task "{p.get("title")}"'
    if a == "update_task_priority":
        return f'Set priority of task "{p.get("title")}" to {p.get("priority")}'
    if a == "create_course":
        text = f'Create course "{p.get("title") or p.get("name")}"'
        return text + f' from {p["url"]}' if p.get("url") else text
    if a == "mark_video_watched":
        return f'Mark video {p.get("videoNumber")} watched in course "{p.get("courseName")}"'
    if a == "create_reading":
        return f'Add "{p.get("title") or p.get("url")}" to the reading list'
    if a == "mark_reading_read":
        return f'Mark "{p.get("title")}" as read'
    if a == "create_goal":
        text = f'Create goal "{p.get("title")}"'
        return text + f' by {p["targetDate"]}' if p.get("targetDate") else text
    if a == "update_goal_progress":
        return f'Set goal "{p.get("title")}" progress to {p.get("progress")}%'
    return _FIXED_PREVIEWS.get(a, a)


class CommandExecutor:
    def __init__(
        self,
        store: DataStore,
        *,
        timeout: float | None = None,
        today: Callable[[], date] = local_today,
    ):
        self.store = store
        self.timeout = timeout if timeout is not None else store_timeout()
        self._today = today

    async def _call(self, coro: Awaitable, *, mutation: bool = False):
        try:
            return await asyncio.wait_for(coro, timeout=self.timeout)
        except (DataAccessError, asyncio.TimeoutError) as e:
            raise _StepFailed(e, mutation) from e

    async def _lookup(self, entity: str, title: str, key: str = "title") -> dict:
        records = await self._call(self.store.list(entity))
        record = find_by_title(records, title, key=key)
        if record is None:
            raise _NotFound(entity, title)
        return record

    async def execute(self, command: ParsedCommand) -> ExecutionResult:
        action = command.action
        spec = ACTION_SPECS.get(action)
        if spec is None:
            return ExecutionResult(
                False, f"Unknown action: {action}", display_type="error",
                action=action, failure=FailureKind.VALIDATION,
            )
        missing = missing_fields(action, command.parameters)
        if missing:
            return ExecutionResult(
                False, f"Missing {', '.join(missing)} for {action}", display_type="error",
                action=action, failure=FailureKind.VALIDATION,
            )

        handler = getattr(self, f"_{action}")
        try:
            result = await handler(command.parameters)
        except _NotFound as e:
            label = ENTITY_LABELS.get(e.entity, e.entity)
            logger.info("%s lookup found nothing for %r", action, e.title)
            return ExecutionResult(
                False, f'{label} "{e.title}" not found', display_type="error",
                action=action, failure=FailureKind.LOOKUP,
            )
        except _StepFailed as e:
            logger.error("%s failed (%s): %s", action, "mutation" if e.mutation else "read", e.cause)
            return ExecutionResult(
                False, ERROR_MESSAGES[action], display_type="error", action=action,
                failure=FailureKind.EXECUTION, retryable=spec.read_only or not e.mutation,
            )
        except Exception:
            logger.exception("Unexpected error executing %s", action)
            return ExecutionResult(
                False, ERROR_MESSAGES[action], display_type="error", action=action,
                failure=FailureKind.EXECUTION, retryable=spec.read_only,
            )
        result.action = action
        return result

    # ---- tasks ----

    async def _create_task(self, p: dict) -> ExecutionResult:
        record = await self._call(self.store.create("task", build_record("task", p, self._today())), mutation=True)
        return ExecutionResult(True, f'Task "{p["title"]}" created successfully!', data=record)

    async def _show_tasks(self, p: dict) -> ExecutionResult:
        filters = {k: p[k] for k in ("status", "priority", "category") if p.get(k)}
        tasks = await self._call(self.store.list("task", filters or None))
        tasks = filter_tasks(tasks, p.get("filter") or p.get("timeframe"), self._today())
        return ExecutionResult(True, f"Found {len(tasks)} task(s)", data=tasks, display_type="list")

    async def _mark_task_done(self, p: dict) -> ExecutionResult:
        task = await self._lookup("task", p["title"])
        await self._call(self.store.update("task", task["id"], {"status": "done"}), mutation=True)
        return ExecutionResult(True, f'Task "{task["title"]}" marked as done!')

    async def _delete_task(self, p: dict) -> ExecutionResult:
        task = await self._lookup("task", p["title"])
        await self._call(self.store.delete("task", task["id"]), mutation=True)
        return ExecutionResult(True, f'Task "{task["title"]}" deleted')

    async def _update_task_priority(self, p: dict) -> ExecutionResult:
        task = await self._lookup("task", p["title"])
        await self._call(self.store.update("task", task["id"], {"priority": p["priority"]}), mutation=True)
        return ExecutionResult(True, f'Task "{task["title"]}" priority updated to {p["priority"]}')

    # ---- courses ----

    async def _create_course(self, p: dict) -> ExecutionResult:
        fields = build_record("course", p, self._today())
        record = await self._call(self.store.create("course", fields), mutation=True)
        return ExecutionResult(True, f'Course "{fields["name"]}" created!', data=record)

    async def _show_courses(self, p: dict) -> ExecutionResult:
        courses = await self._call(self.store.list("course", {"status": p["status"]} if p.get("status") else None))
        return ExecutionResult(True, f"You have {len(courses)} course(s)", data=courses, display_type="list")

    async def _mark_video_watched(self, p: dict) -> ExecutionResult:
        course = await self._lookup("course", p["courseName"], key="name")
        n = p["videoNumber"]
        await self._call(self.store.update_lesson(course["id"], n, {"status": "completed"}), mutation=True)
        return ExecutionResult(True, f'Video {n} marked as watched in "{course["name"]}"')

    # ---- reading ----

    async def _create_reading(self, p: dict) -> ExecutionResult:
        fields = build_record("reading", p, self._today())
        record = await self._call(self.store.create("reading", fields), mutation=True)
        return ExecutionResult(True, f'Reading item "{fields["title"]}" added!', data=record)

    async def _show_reading(self, p: dict) -> ExecutionResult:
        filters = {k: p[k] for k in ("status", "category") if p.get(k)}
        items = await self._call(self.store.list("reading", filters or None))
        return ExecutionResult(True, f"You have {len(items)} reading item(s)", data=items, display_type="list")

    async def _mark_reading_read(self, p: dict) -> ExecutionResult:
        item = await self._lookup("reading", p["title"])
        await self._call(self.store.update("reading", item["id"], {"status": "completed"}), mutation=True)
        return ExecutionResult(True, f'"{item["title"]}" marked as read')

    # ---- goals ----

    async def _create_goal(self, p: dict) -> ExecutionResult:
        record = await self._call(self.store.create("goal", build_record("goal", p, self._today())), mutation=True)
        return ExecutionResult(True, f'Goal "{p["title"]}" created!', data=record)

    async def _update_goal_progress(self, p: dict) -> ExecutionResult:
        goal = await self._lookup("goal", p["title"])
        progress = p["progress"]
        await self._call(self.store.update("goal", goal["id"], {"progress": progress}), mutation=True)
        return ExecutionResult(True, f'Goal "{goal["title"]}" updated to {progress}% progress')

    async def _show_goals(self, p: dict) -> ExecutionResult:
        filters = {k: p[k] for k in ("status", "timeframe") if p.get(k)}
        goals = await self._call(self.store.list("goal", filters or None))
        return ExecutionResult(True, f"You have {len(goals)} goal(s)", data=goals, display_type="list")

    # ---- general ----

    async def _show_dashboard_summary(self, p: dict) -> ExecutionResult:
        stats = await self._call(self.store.dashboard_stats())
        message = (
            f"You have {stats.get('tasksToday', 0)} task(s) due today, "
            f"{stats.get('activeCourses', 0)} active course(s) "
            f"and {stats.get('readingItems', 0)} reading item(s)"
        )
        return ExecutionResult(True, message, data=stats, display_type="stats")

    async def _show_stats(self, p: dict) -> ExecutionResult:
        stats = await self._call(self.store.dashboard_stats())
        return ExecutionResult(True, "Here's your progress summary", data=stats, display_type="stats")
