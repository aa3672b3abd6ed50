import asyncio

import pytest

from voicecmd.actions.defaults import title_from_url
from voicecmd.actions.dispatcher import CommandExecutor, describe_command, find_by_title
from voicecmd.store.client import DataAccessError, DataAccessTimeout
from voicecmd.store.memory import InMemoryDataStore
from voicecmd.tools.models import ACTION_SPECS, FailureKind, ParsedCommand
from voicecmd.tools.slots import coerce_parameters

from conftest import REF


def run(store, action, entity, **params):
    executor = CommandExecutor(store, timeout=1, today=lambda: REF)
    return asyncio.run(executor.execute(ParsedCommand(action, entity, params, confidence=75)))


def test_create_task_fills_defaults():
    store = InMemoryDataStore()
    result = run(store, "create_task", "task", title="Review Report")
    assert result.success
    assert result.message == 'Task "Review Report" created successfully!'
    record = store.records["task"][0]
    assert record["status"] == "todo"
    assert record["priority"] == "medium"
    assert record["category"] == "Work"
    assert record["deadline"] == "2025-02-10"


def test_create_task_keeps_spoken_fields():
    store = InMemoryDataStore()
    run(store, "create_task", "task", title="Review Report", deadline="2025-02-11", priority="high")
    record = store.records["task"][0]
    assert (record["deadline"], record["priority"]) == ("2025-02-11", "high")


def test_mark_done_uses_first_fuzzy_match(store):
    result = run(store, "mark_task_done", "task", title="review")
    assert result.success
    assert result.message == 'Task "Review Report" marked as done!'
    assert store.records["task"][0]["status"] == "done"
    assert store.calls == [("list", "task", None), ("update", "task", 1)]


def test_lookup_failure_never_mutates(store):
    result = run(store, "delete_task", "task", title="Nonexistent")
    assert not result.success
    assert result.failure is FailureKind.LOOKUP
    assert result.message == 'Task "Nonexistent" not found'
    assert not store.called("update")
    assert not store.called("delete")


def test_update_priority_and_delete(store):
    assert run(store, "update_task_priority", "task", title="call client", priority="low").success
    assert store.records["task"][1]["priority"] == "low"
    assert run(store, "delete_task", "task", title="Pay Rent").success
    assert [t["title"] for t in store.records["task"]] == ["Review Report", "Call Client", "Review Budget"]


def test_goal_progress_zero(store):
    result = run(store, "update_goal_progress", "goal", title="react", progress=0)
    assert result.success
    assert result.message == 'Goal "Learn React" updated to 0% progress'
    assert store.records["goal"][0]["progress"] == 0


def test_mark_video_watched_updates_lesson(store):
    result = run(store, "mark_video_watched", "course", videoNumber=5, courseName="javascript")
    assert result.success
    assert store.lessons[(10, 5)]["status"] == "completed"


def test_mark_reading_read(store):
    assert run(store, "mark_reading_read", "reading", title="clean code").success
    assert store.records["reading"][0]["status"] == "completed"


def test_create_reading_from_url_only():
    store = InMemoryDataStore()
    result = run(store, "create_reading", "reading", url="https://www.example.com/post")
    assert result.message == 'Reading item "example" added!'
    record = store.records["reading"][0]
    assert (record["status"], record["category"], record["priority"]) == ("to-read", "technical", "medium")


def test_create_course_platform():
    store = InMemoryDataStore()
    run(store, "create_course", "course", title="JS", url="https://youtube.com/playlist?list=1")
    run(store, "create_course", "course", name="Piano")
    first, second = store.records["course"]
    assert (first["platform"], first["status"], first["progress"]) == ("YouTube", "not-started", 0)
    assert (second["name"], second["platform"]) == ("Piano", "Other")


def test_create_goal_defaults():
    store = InMemoryDataStore()
    run(store, "create_goal", "goal", title="Learn React", targetDate="2025-03-31")
    record = store.records["goal"][0]
    assert (record["status"], record["progress"], record["timeframe"]) == ("active", 0, "quarterly")
    assert record["target_date"] == "2025-03-31"


@pytest.mark.parametrize("which, titles", [
    ("today", ["Review Report"]),
    ("tomorrow", ["Call Client"]),
    ("this week", ["Review Report", "Call Client"]),
    ("overdue", ["Pay Rent"]),
    ("all", ["Review Report", "Call Client", "Pay Rent", "Review Budget"]),
])
def test_show_tasks_filters(store, which, titles):
    result = run(store, "show_tasks", "task", filter=which)
    assert result.display_type == "list"
    assert [t["title"] for t in result.data] == titles
    assert result.message == f"Found {len(titles)} task(s)"


def test_show_lists(store):
    assert run(store, "show_courses", "course").message == "You have 1 course(s)"
    assert run(store, "show_reading", "reading").message == "You have 1 reading item(s)"
    assert run(store, "show_goals", "goal").message == "You have 1 goal(s)"


def test_dashboard_summary(store):
    result = run(store, "show_dashboard_summary", "general")
    assert result.display_type == "stats"
    assert set(result.data) >= {"tasksToday", "activeCourses", "readingItems"}
    assert run(store, "show_stats", "general").message == "Here's your progress summary"


def test_invalid_command_is_not_sent_to_store(store):
    result = run(store, "mark_task_done", "task")
    assert result.failure is FailureKind.VALIDATION
    assert store.calls == []
    assert run(store, "fly_to_moon", "task", title="x").failure is FailureKind.VALIDATION


def test_failed_mutation_is_not_retryable(store):
    store.failures["update"] = DataAccessError("HTTP 500")
    result = run(store, "mark_task_done", "task", title="Review Report")
    assert not result.success
    assert result.failure is FailureKind.EXECUTION
    assert result.message == "Error marking task as done"
    assert not result.retryable


def test_failed_lookup_read_is_retryable(store):
    store.failures["list"] = DataAccessTimeout("slow")
    result = run(store, "mark_task_done", "task", title="Review Report")
    assert result.failure is FailureKind.EXECUTION
    assert result.retryable
    assert not store.called("update")


def test_failed_read_only_action_is_retryable(store):
    store.failures["dashboard_stats"] = DataAccessError("down")
    result = run(store, "show_stats", "general")
    assert result.failure is FailureKind.EXECUTION
    assert result.retryable


def test_store_timeout_becomes_execution_failure(store):
    store.delay = 0.5
    executor = CommandExecutor(store, timeout=0.01, today=lambda: REF)
    result = asyncio.run(executor.execute(ParsedCommand("show_tasks", "task", {}, 75)))
    assert result.failure is FailureKind.EXECUTION
    assert result.action == "show_tasks"


def test_unexpected_store_bug_is_contained(store):
    store.failures["create"] = KeyError("oops")
    result = run(store, "create_task", "task", title="X")
    assert result.failure is FailureKind.EXECUTION
    assert not result.retryable


def test_find_by_title_is_case_insensitive_substring():
    records = [{"title": "Review Report"}, {"title": "Review Budget"}]
    assert find_by_title(records, "REVIEW") is records[0]
    assert find_by_title(records, "budget") is records[1]
    assert find_by_title(records, "nope") is None


def test_title_from_url():
    assert title_from_url("https://blog.example.com/x") == "blog"
    assert title_from_url("not a url") == "Article"


def test_describe_command():
    cmd = ParsedCommand("create_task", "task", {"title": "Review Report", "deadline": "2025-02-11", "priority": "high"}, 75)
    assert describe_command(cmd) == 'Create task "Review Report" due 2025-02-11, priority high'
    assert describe_command(ParsedCommand("show_tasks", "task", {"filter": "today"}, 75)) == "Show today tasks"
    assert describe_command(ParsedCommand("show_reading", "reading", {}, 75)) == "Show reading list"


RECORD_KEYS = {
    "create_task": {},
    "create_course": {"title": "name", "url": "youtube_url"},
    "create_reading": {"url": "source"},
    "create_goal": {"targetDate": "target_date"},
}

SAMPLE_VALUES = {
    "title": "Sample", "name": "Sample", "url": "https://example.com/a",
    "description": "notes", "category": "Personal", "priority": "high",
    "deadline": "2025-02-20", "targetDate": "2025-03-31", "timeframe": "yearly",
    "status": "in-progress",
}


@pytest.mark.parametrize("action", sorted(RECORD_KEYS))
def test_create_persists_every_declared_field(action):
    spec = ACTION_SPECS[action]
    for field in spec.fields:
        params = coerce_parameters(action, {"title": "Sample", field: SAMPLE_VALUES[field]}, REF)
        assert params[field] == SAMPLE_VALUES[field], field
        store = InMemoryDataStore()
        assert run(store, action, spec.entity, **params).success
        record = store.records[spec.entity][0]
        assert record[RECORD_KEYS[action].get(field, field)] == SAMPLE_VALUES[field], field
