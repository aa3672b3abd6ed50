from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from pydantic import BaseModel

ENTITIES = ("task", "course", "reading", "goal", "general")
PRIORITIES = ("high", "medium", "low")
DISPLAY_TYPES = ("confirmation", "list", "stats", "item", "error")

PARAMETER_NAMES = (
  "title", "name", "deadline", "priority", "description", "url", "filter",
  "timeframe", "targetDate", "videoNumber", "courseName", "progress",
  "category", "status",
)

# Commands below this are never executed, whatever parser produced them
ACTIONABLE_CONFIDENCE = 50


class FailureKind(str, Enum):
  PARSE = "parse"
  VALIDATION = "validation"
  LOOKUP = "lookup"
  EXECUTION = "execution"


@dataclass(frozen=True)
class ActionSpec:
  # 每个 action 的字段契约: required 中每组任选其一即可
  entity: str
  required: tuple[tuple[str, ...], ...] = ()
  optional: tuple[str, ...] = ()
  read_only: bool = False

  @property
  def fields(self) -> tuple[str, ...]:
    names = [name for group in self.required for name in group]
    return tuple(names) + tuple(n for n in self.optional if n not in names)


ACTION_SPECS: dict[str, ActionSpec] = {
  # task
  "create_task": ActionSpec(
    "task",
    required=(("title",),),
    optional=("deadline", "priority", "description", "category", "status"),
  ),
  "show_tasks": ActionSpec(
    "task",
    optional=("filter", "timeframe", "status", "priority", "category"),
    read_only=True,
  ),
  "mark_task_done": ActionSpec("task", required=(("title",),)),
  "delete_task": ActionSpec("task", required=(("title",),)),
  "update_task_priority": ActionSpec("task", required=(("title",), ("priority",))),
  # course
  "create_course": ActionSpec(
    "course",
    required=(("title", "name"),),
    optional=("url", "description", "category"),
  ),
  "show_courses": ActionSpec("course", optional=("status",), read_only=True),
  "mark_video_watched": ActionSpec("course", required=(("videoNumber",), ("courseName",))),
  # reading
  "create_reading": ActionSpec(
    "reading",
    required=(("title", "url"),),
    optional=("priority", "category", "description"),
  ),
  "show_reading": ActionSpec("reading", optional=("status", "category"), read_only=True),
  "mark_reading_read": ActionSpec("reading", required=(("title",),)),
  # goal
  "create_goal": ActionSpec(
    "goal",
    required=(("title",),),
    optional=("targetDate", "timeframe", "description", "category"),
  ),
  "update_goal_progress": ActionSpec("goal", required=(("title",), ("progress",))),
  "show_goals": ActionSpec("goal", optional=("status", "timeframe"), read_only=True),
  # general
  "show_dashboard_summary": ActionSpec("general", read_only=True),
  "show_stats": ActionSpec("general", read_only=True),
}

ACTIONS = tuple(ACTION_SPECS)


@dataclass
class ParsedCommand:
  # 解析结果, 每次语音交互新建, 不持久化
  action: str
  entity: str
  parameters: dict[str, Any] = field(default_factory=dict)
  confidence: int = 0
  original_text: str = ""
  source: str = "pattern"  # "semantic" | "pattern"

  @property
  def spec(self) -> ActionSpec | None:
    return ACTION_SPECS.get(self.action)

  def to_dict(self) -> dict:
    return {
      "action": self.action,
      "entity": self.entity,
      "parameters": dict(self.parameters),
      "confidence": self.confidence,
      "originalText": self.original_text,
      "source": self.source,
    }


@dataclass
class ExecutionResult:
  success: bool
  message: str
  data: Any = None
  display_type: str = "confirmation"
  action: str | None = None
  failure: FailureKind | None = None
  retryable: bool = False

  def to_dict(self) -> dict:
    return {
      "success": self.success,
      "message": self.message,
      "data": self.data,
      "displayType": self.display_type,
      "action": self.action,
      "failure": self.failure.value if self.failure else None,
      "retryable": self.retryable,
    }


class VoiceSessionResponse(BaseModel):
  # /voice/*
  session_id: str
  state: str
  transcript: str | None = None
  command: dict | None = None
  preview: str | None = None
  result: dict | None = None
  failure: str | None = None
  message: str | None = None
  missing_fields: list[str] = []
