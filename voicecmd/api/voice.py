"""FastAPI routes for the voice command session."""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from ..actions.dispatcher import CommandExecutor, describe_command
from ..actions.validator import clarification_question, is_actionable, missing_fields
from ..chat.command_parser import parse_command
from ..session import InvalidTransitionError, SessionState, SessionStore, VoiceSession
from ..store.client import build_store
from ..store.runs import list_runs
from ..tools.models import VoiceSessionResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/voice", tags=["voice"])

_executor: CommandExecutor | None = None
_sessions: SessionStore | None = None


def get_session_store() -> SessionStore:
    global _executor, _sessions
    if _sessions is None:
        executor = _executor = CommandExecutor(build_store())
        _sessions = SessionStore(lambda session_id: VoiceSession(executor, session_id=session_id))
    return _sessions


async def close_session_store() -> None:
    """Drop the shared sessions and close the data API client behind them."""
    global _executor, _sessions
    executor, _executor, _sessions = _executor, None, None
    aclose = getattr(executor.store, "aclose", None) if executor else None
    if aclose is not None:
        await aclose()
        logger.info("Data API client closed")


def get_parser():
    return parse_command


# --- Request Models ---

class StartRequest(BaseModel):
    session_id: Optional[str] = None


class CommandRequest(BaseModel):
    text: str
    session_id: Optional[str] = None
    auto_confirm: bool = False


class SessionRequest(BaseModel):
    session_id: str


class ParseRequest(BaseModel):
    text: str


def _existing(sessions: SessionStore, session_id: str) -> VoiceSession:
    session = sessions.get(session_id)
    if session is None:
        raise HTTPException(status_code=404, detail=f"Session {session_id} not found")
    return session


def _conflict(e: InvalidTransitionError) -> HTTPException:
    return HTTPException(status_code=409, detail=str(e))


# --- Session routes ---

@router.post("/start", response_model=VoiceSessionResponse)
async def voice_start(req: StartRequest, sessions: SessionStore = Depends(get_session_store)):
    session = sessions.get_or_create(req.session_id)
    try:
        session.start()
    except InvalidTransitionError as e:
        raise _conflict(e)
    return session.snapshot()


@router.post("/command", response_model=VoiceSessionResponse)
async def voice_command(req: CommandRequest, sessions: SessionStore = Depends(get_session_store)):
    session = sessions.get_or_create(req.session_id)
    try:
        if session.state in (SessionState.IDLE, SessionState.SUCCEEDED, SessionState.FAILED):
            session.start()
        await session.submit_transcript(req.text, auto_confirm=req.auto_confirm)
    except InvalidTransitionError as e:
        raise _conflict(e)
    logger.info("[%s] %r -> %s", session.session_id, req.text[:200], session.state.value)
    return session.snapshot()


@router.post("/confirm", response_model=VoiceSessionResponse)
async def voice_confirm(req: SessionRequest, sessions: SessionStore = Depends(get_session_store)):
    session = _existing(sessions, req.session_id)
    try:
        await session.confirm()
    except InvalidTransitionError as e:
        raise _conflict(e)
    return session.snapshot()


@router.post("/cancel", response_model=VoiceSessionResponse)
async def voice_cancel(req: SessionRequest, sessions: SessionStore = Depends(get_session_store)):
    session = _existing(sessions, req.session_id)
    try:
        session.cancel()
    except InvalidTransitionError as e:
        raise _conflict(e)
    return session.snapshot()


@router.post("/retry", response_model=VoiceSessionResponse)
async def voice_retry(req: SessionRequest, sessions: SessionStore = Depends(get_session_store)):
    session = _existing(sessions, req.session_id)
    try:
        session.retry()
    except InvalidTransitionError as e:
        raise _conflict(e)
    return session.snapshot()


@router.post("/acknowledge", response_model=VoiceSessionResponse)
async def voice_acknowledge(req: SessionRequest, sessions: SessionStore = Depends(get_session_store)):
    session = _existing(sessions, req.session_id)
    try:
        session.acknowledge()
    except InvalidTransitionError as e:
        raise _conflict(e)
    return session.snapshot()


@router.get("/session/{session_id}", response_model=VoiceSessionResponse)
async def voice_session(session_id: str, sessions: SessionStore = Depends(get_session_store)):
    return _existing(sessions, session_id).snapshot()


# --- Side-effect free helpers ---

@router.post("/parse")
async def voice_parse(req: ParseRequest, parser=Depends(get_parser)):
    command = await parser(req.text)
    if command is None:
        return {"command": None, "actionable": False, "missing_fields": [], "preview": None, "question": None}
    return {
        "command": command.to_dict(),
        "actionable": is_actionable(command),
        "missing_fields": missing_fields(command.action, command.parameters),
        "preview": describe_command(command),
        "question": clarification_question(command),
    }


@router.get("/runs")
async def voice_runs(limit: int = 20):
    return {"runs": list_runs(limit=min(max(limit, 1), 200))}
