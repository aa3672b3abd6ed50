import logging
import os
import time
import uuid
from enum import Enum
from typing import Awaitable, Callable

from .actions.dispatcher import CommandExecutor, describe_command
from .actions.validator import clarification_question, missing_fields
from .chat.command_parser import parse_command
from .store.runs import create_run, update_run
from .tools.models import ACTIONABLE_CONFIDENCE, FailureKind, ParsedCommand, VoiceSessionResponse

logger = logging.getLogger(__name__)

MESSAGES = {
  "listening": "Listening...",
  "empty": "I couldn't hear you clearly. Could you say it again?",
  "not_understood": "Sorry, I didn't understand that. Try something like \"create task Review Report due tomorrow\".",
  "confirm": "{preview}. Should I go ahead?",
  "cancelled": "Cancelled.",
}

Parser = Callable[[str], Awaitable[ParsedCommand | None]]


class SessionState(str, Enum):
  IDLE = "idle"
  LISTENING = "listening"
  TRANSCRIBING = "transcribing"
  PARSING = "parsing"
  AWAITING_CONFIRMATION = "awaiting_confirmation"
  EXECUTING = "executing"
  SUCCEEDED = "succeeded"
  FAILED = "failed"


S = SessionState

_CANCELLABLE = (S.IDLE, S.LISTENING, S.TRANSCRIBING, S.PARSING, S.AWAITING_CONFIRMATION)


class InvalidTransitionError(RuntimeError):
  def __init__(self, operation: str, state: SessionState):
    super().__init__(f"Cannot {operation} while {state.value}")
    self.operation = operation
    self.state = state


def confirmation_required() -> bool:
  return os.getenv("VOICE_REQUIRE_CONFIRMATION", "true").lower() in ("1", "true", "yes", "on")


class VoiceSession:
  """One user's voice interaction: transcript in, command result out.

  A transcript is handled start to finish before the next one is accepted.
  Cancel bumps the generation so a parse still in flight is thrown away.
  """

  def __init__(
    self,
    executor: CommandExecutor,
    *,
    session_id: str | None = None,
    parser: Parser = parse_command,
    require_confirmation: bool | None = None,
    clock: Callable[[], float] = time.monotonic,
  ):
    self.session_id = session_id or str(uuid.uuid4())
    self.executor = executor
    self.parser = parser
    self.require_confirmation = confirmation_required() if require_confirmation is None else require_confirmation
    self._clock = clock
    self._generation = 0
    self.run_id: str | None = None
    self.state = S.IDLE
    self.updated_at = clock()
    self._reset()

  def _reset(self) -> None:
    self.transcript = None
    self.command: ParsedCommand | None = None
    self.preview = None
    self.result = None
    self.failure: FailureKind | None = None
    self.message = None
    self.missing_fields: list[str] = []

  def _set(self, state: SessionState) -> None:
    logger.debug("[%s] %s -> %s", self.session_id, self.state.value, state.value)
    self.state = state
    self.updated_at = self._clock()

  def _require(self, operation: str, *allowed: SessionState) -> None:
    if self.state not in allowed:
      raise InvalidTransitionError(operation, self.state)

  def _fail(self, kind: FailureKind, message: str) -> None:
    self.failure = kind
    self.message = message
    self._set(S.FAILED)
    if self.run_id:
      update_run(self.run_id, status="error", failure=kind.value, error=message)

  # ---- transitions ----

  def start(self) -> None:
    self._require("start listening", S.IDLE, S.SUCCEEDED, S.FAILED)
    self._generation += 1
    self._reset()
    self.message = MESSAGES["listening"]
    self._set(S.LISTENING)

  def mark_transcribing(self) -> None:
    self._require("transcribe", S.LISTENING)
    self._set(S.TRANSCRIBING)

  async def submit_transcript(self, text: str, *, auto_confirm: bool = False) -> None:
    self._require("submit a transcript", S.LISTENING, S.TRANSCRIBING)
    text = (text or "").strip()
    self.transcript = text
    self._set(S.PARSING)
    generation = self._generation

    self.run_id = str(uuid.uuid4())
    create_run(self.run_id, "text", text)
    update_run(self.run_id, session_id=self.session_id, transcript=text, status="parsing")

    if not text:
      self._fail(FailureKind.PARSE, MESSAGES["empty"])
      return

    command = await self.parser(text)
    if generation != self._generation:
      logger.info("[%s] Parse finished after cancel, discarding", self.session_id)
      return

    if command is None or command.confidence < ACTIONABLE_CONFIDENCE:
      if command is not None:
        logger.info("[%s] Confidence %d too low for %s", self.session_id, command.confidence, command.action)
      self._fail(FailureKind.PARSE, MESSAGES["not_understood"])
      return

    self.command = command
    update_run(self.run_id, command=command.to_dict(), status="parsed")

    missing = missing_fields(command.action, command.parameters)
    if missing:
      self.missing_fields = missing
      self._fail(FailureKind.VALIDATION, clarification_question(command))
      return

    self.preview = describe_command(command)
    if self.require_confirmation and not auto_confirm:
      self.message = MESSAGES["confirm"].format(preview=self.preview)
      self._set(S.AWAITING_CONFIRMATION)
      update_run(self.run_id, status="awaiting_confirmation")
      return

    await self._execute()

  async def confirm(self) -> None:
    self._require("confirm", S.AWAITING_CONFIRMATION)
    await self._execute()

  async def _execute(self) -> None:
    self._set(S.EXECUTING)
    result = await self.executor.execute(self.command)
    self.result = result
    self.message = result.message
    if result.success:
      self._set(S.SUCCEEDED)
      update_run(self.run_id, result=result.to_dict(), status="executed")
    else:
      self.failure = result.failure
      self._set(S.FAILED)
      update_run(self.run_id, result=result.to_dict(), status="error", failure=result.failure.value if result.failure else None)

  def cancel(self) -> None:
    self._require("cancel", *_CANCELLABLE)
    self._generation += 1
    if self.run_id and self.state != S.IDLE:
      update_run(self.run_id, status="cancelled")
    self._reset()
    self.message = MESSAGES["cancelled"]
    self._set(S.IDLE)

  def retry(self) -> None:
    self._require(
      "retry", S.IDLE, S.LISTENING, S.TRANSCRIBING, S.PARSING,
      S.AWAITING_CONFIRMATION, S.SUCCEEDED, S.FAILED,
    )
    self._generation += 1
    self._reset()
    self.message = MESSAGES["listening"]
    self._set(S.LISTENING)

  def acknowledge(self) -> None:
    self._require("acknowledge", S.SUCCEEDED, S.FAILED)
    self._reset()
    self._set(S.IDLE)

  def snapshot(self) -> VoiceSessionResponse:
    return VoiceSessionResponse(
      session_id=self.session_id,
      state=self.state.value,
      transcript=self.transcript,
      command=self.command.to_dict() if self.command else None,
      preview=self.preview,
      result=self.result.to_dict() if self.result else None,
      failure=self.failure.value if self.failure else None,
      message=self.message,
      missing_fields=list(self.missing_fields),
    )


class SessionStore:
  """Sessions by id; idle ones expire after the TTL."""

  def __init__(
    self,
    factory: Callable[[str | None], VoiceSession],
    *,
    ttl: float | None = None,
    clock: Callable[[], float] = time.monotonic,
  ):
    self._factory = factory
    self._sessions: dict[str, VoiceSession] = {}
    self.ttl = ttl if ttl is not None else float(os.getenv("VOICE_SESSION_TTL_SECONDS", "1800"))
    self._clock = clock

  def _expired(self, session: VoiceSession) -> bool:
    return self._clock() - session.updated_at > self.ttl

  def _sweep(self) -> None:
    for sid in [sid for sid, s in self._sessions.items() if self._expired(s)]:
      logger.info("Voice session %s expired", sid)
      del self._sessions[sid]

  def create(self, session_id: str | None = None) -> VoiceSession:
    self._sweep()
    session = self._factory(session_id)
    self._sessions[session.session_id] = session
    return session

  def get(self, session_id: str | None) -> VoiceSession | None:
    if not session_id:
      return None
    session = self._sessions.get(session_id)
    if session is None:
      return None
    if self._expired(session):
      logger.info("Voice session %s expired", session_id)
      self._sessions.pop(session_id, None)
      return None
    return session

  def get_or_create(self, session_id: str | None = None) -> VoiceSession:
    return self.get(session_id) or self.create(session_id)

  def __len__(self) -> int:
    return len(self._sessions)
