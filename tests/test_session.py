import asyncio

import pytest

from voicecmd.actions.dispatcher import CommandExecutor
from voicecmd.session import InvalidTransitionError, SessionState, SessionStore, VoiceSession
from voicecmd.store.memory import InMemoryDataStore
from voicecmd.store.runs import get_run, list_runs
from voicecmd.tools.models import FailureKind, ParsedCommand
from voicecmd.tools.nlp import match_command

from conftest import REF


async def pattern_parser(text):
    return match_command(text, now=REF)


def fixed(command):
    async def parser(text):
        return command
    return parser


def new_session(store, parser=pattern_parser, require_confirmation=True):
    executor = CommandExecutor(store, timeout=1, today=lambda: REF)
    return VoiceSession(executor, parser=parser, require_confirmation=require_confirmation)


def submit(session, text, **kwargs):
    session.start()
    asyncio.run(session.submit_transcript(text, **kwargs))


def test_confirm_then_execute():
    store = InMemoryDataStore()
    session = new_session(store)
    submit(session, "create task Review Report due tomorrow high priority")
    assert session.state is SessionState.AWAITING_CONFIRMATION
    assert session.preview == 'Create task "Review Report" due 2025-02-11, priority high'
    assert store.calls == []

    asyncio.run(session.confirm())
    assert session.state is SessionState.SUCCEEDED
    assert session.result.success
    assert store.records["task"][0]["title"] == "Review Report"

    session.acknowledge()
    assert session.state is SessionState.IDLE


def test_without_confirmation_executes_directly(store):
    session = new_session(store, require_confirmation=False)
    submit(session, "mark Review Report as done")
    assert session.state is SessionState.SUCCEEDED
    assert session.message == 'Task "Review Report" marked as done!'


def test_auto_confirm(store):
    session = new_session(store)
    submit(session, "show tasks today", auto_confirm=True)
    assert session.state is SessionState.SUCCEEDED
    assert session.result.display_type == "list"


def test_confidence_49_is_never_executed(store):
    cmd = ParsedCommand("delete_task", "task", {"title": "Review Report"}, confidence=49, source="semantic")
    session = new_session(store, parser=fixed(cmd), require_confirmation=False)
    submit(session, "delete review report maybe")
    assert session.state is SessionState.FAILED
    assert session.failure is FailureKind.PARSE
    assert store.calls == []


def test_unrecognized_transcript(store):
    session = new_session(store)
    submit(session, "asdf qwer zxcv")
    assert session.state is SessionState.FAILED
    assert session.failure is FailureKind.PARSE
    assert session.transcript == "asdf qwer zxcv"


def test_empty_transcript(store):
    session = new_session(store)
    submit(session, "   ")
    assert session.failure is FailureKind.PARSE


def test_missing_field_asks_for_clarification(store):
    cmd = ParsedCommand("mark_task_done", "task", {}, confidence=85)
    session = new_session(store, parser=fixed(cmd))
    submit(session, "mark it done")
    assert session.state is SessionState.FAILED
    assert session.failure is FailureKind.VALIDATION
    assert session.missing_fields == ["title"]
    assert session.message == "Which task?"


def test_lookup_failure_is_reported(store):
    session = new_session(store, require_confirmation=False)
    submit(session, "mark Nonexistent Task as done")
    assert session.state is SessionState.FAILED
    assert session.failure is FailureKind.LOOKUP
    assert not store.called("update")


def test_cancel_while_awaiting_confirmation(store):
    session = new_session(store)
    submit(session, "delete task Review Report")
    session.cancel()
    assert session.state is SessionState.IDLE
    assert session.command is None
    assert not store.called("delete")
    with pytest.raises(InvalidTransitionError):
        asyncio.run(session.confirm())


def test_parse_finishing_after_cancel_is_discarded(store):
    release = None

    async def slow_parser(text):
        await release.wait()
        return match_command(text, now=REF)

    session = new_session(store, parser=slow_parser, require_confirmation=False)

    async def scenario():
        nonlocal release
        release = asyncio.Event()
        session.start()
        task = asyncio.create_task(session.submit_transcript("delete task Review Report"))
        await asyncio.sleep(0)
        assert session.state is SessionState.PARSING
        session.cancel()
        release.set()
        await task

    asyncio.run(scenario())
    assert session.state is SessionState.IDLE
    assert store.calls == []


def test_retry_discards_previous_attempt(store):
    session = new_session(store)
    submit(session, "asdf qwer zxcv")
    session.retry()
    assert session.state is SessionState.LISTENING
    assert session.transcript is None
    assert session.failure is None
    asyncio.run(session.submit_transcript("show goals", auto_confirm=True))
    assert session.state is SessionState.SUCCEEDED


def test_illegal_transitions(store):
    session = new_session(store)
    with pytest.raises(InvalidTransitionError):
        asyncio.run(session.submit_transcript("show goals"))
    with pytest.raises(InvalidTransitionError):
        session.acknowledge()
    session.start()
    with pytest.raises(InvalidTransitionError):
        session.start()
    session.mark_transcribing()
    assert session.state is SessionState.TRANSCRIBING


def test_runs_are_logged(store):
    session = new_session(store, require_confirmation=False)
    submit(session, "show my goals")
    run = list_runs(limit=1)[0]
    assert get_run(run["run_id"]) is run
    assert run["session_id"] == session.session_id
    assert run["transcript"] == "show my goals"
    assert run["command"]["action"] == "show_goals"
    assert run["status"] == "executed"


def test_session_store_expires_idle_sessions():
    clock = [0.0]
    store = InMemoryDataStore()
    executor = CommandExecutor(store, timeout=1)
    sessions = SessionStore(
        lambda sid: VoiceSession(executor, session_id=sid, clock=lambda: clock[0]),
        ttl=60,
        clock=lambda: clock[0],
    )
    session = sessions.create("abc")
    assert sessions.get("abc") is session
    clock[0] = 61
    assert sessions.get("abc") is None
    assert sessions.get_or_create("abc") is not session


def test_session_store_drops_abandoned_sessions_on_create():
    clock = [0.0]
    executor = CommandExecutor(InMemoryDataStore(), timeout=1)
    sessions = SessionStore(
        lambda sid: VoiceSession(executor, session_id=sid, clock=lambda: clock[0]),
        ttl=10,
        clock=lambda: clock[0],
    )
    for _ in range(1000):
        sessions.get_or_create(None)
        clock[0] += 100
    assert len(sessions) == 1

    fresh = sessions.create()
    clock[0] += 5
    sessions.create()
    assert len(sessions) == 2
    assert sessions.get(fresh.session_id) is fresh
