"""Catalog of spoken command templates used by the fallback matcher.

Each template names its capture slots; the matcher tries templates with
more slots first, so "create task X due Y priority Z" wins over the looser
"create task X".
"""

import re
from dataclasses import dataclass, field

_CREATE_WORDS = "create|add|new|make"
_VERB_CREATE = rf"(?:{_CREATE_WORDS})"
_VERB_SHOW = r"(?:show|list|display|view|get)"
_LEVEL = r"high|medium|low"
_DONE = r"(?:done|complete|completed|finished)"
_URL = r"https?://\S+"


@dataclass(frozen=True)
class CommandPattern:
  regex: re.Pattern
  action: str
  entity: str
  slots: tuple[str, ...] = ()
  examples: tuple[str, ...] = field(default_factory=tuple)

  @property
  def specificity(self) -> int:
    return len(self.slots)


def _p(regex: str, action: str, entity: str, slots=(), examples=()) -> CommandPattern:
  return CommandPattern(
    regex=re.compile(regex, re.IGNORECASE),
    action=action,
    entity=entity,
    slots=tuple(slots),
    examples=tuple(examples),
  )


COMMAND_PATTERNS: list[CommandPattern] = [
  # ---- tasks ----
  _p(
    rf"\b{_VERB_CREATE} (?:a )?task (?P<title>.+?) due (?P<deadline>.+?) (?:with )?priority (?P<priority>{_LEVEL})\b",
    "create_task", "task", ("title", "deadline", "priority"),
    ["create task Review Report due tomorrow priority high"],
  ),
  _p(
    rf"\b{_VERB_CREATE} (?:a )?task (?P<title>.+?) due (?P<deadline>.+?) (?:with )?(?:a )?(?P<priority>{_LEVEL}) priority\b",
    "create_task", "task", ("title", "deadline", "priority"),
    ["create task Review Report due tomorrow high priority"],
  ),
  _p(
    rf"\b{_VERB_CREATE} (?:a )?task (?P<title>.+?) due (?P<deadline>.+?) description (?P<description>.+)",
    "create_task", "task", ("title", "deadline", "description"),
    ["add task Submit Proposal due Feb 24 description Send to management"],
  ),
  _p(
    rf"\b{_VERB_CREATE} (?:a )?task (?P<title>.+?) due (?P<deadline>.+)",
    "create_task", "task", ("title", "deadline"),
    ["create task Review Report due tomorrow", "add task Pay Rent due next Friday"],
  ),
  _p(
    rf"\b{_VERB_CREATE} (?:a )?task (?P<title>.+?) (?:with )?priority (?P<priority>{_LEVEL})\b",
    "create_task", "task", ("title", "priority"),
    ["add task Call Client priority high"],
  ),
  _p(
    rf"\b{_VERB_CREATE} (?:a )?task (?P<title>.+?) (?:with )?(?:a )?(?P<priority>{_LEVEL}) priority\b",
    "create_task", "task", ("title", "priority"),
    ["add task Call Client high priority"],
  ),
  _p(
    rf"\b{_VERB_CREATE} (?:a )?task (?P<title>.+?) description (?P<description>.+)",
    "create_task", "task", ("title", "description"),
    ["create task Review Report description Check Q4 numbers"],
  ),
  _p(
    rf"\b{_VERB_CREATE} (?:a )?task (?P<title>.+)",
    "create_task", "task", ("title",),
    ["create task Review Report", "add task Call Client"],
  ),
  _p(
    rf"\b{_VERB_SHOW} (?:me )?(?:my |all )?(?:the )?(?P<filter>overdue|late) tasks\b",
    "show_tasks", "task", ("filter",),
    ["show overdue tasks", "list late tasks"],
  ),
  _p(
    rf"\b{_VERB_SHOW} (?:me )?(?:my |all )?tasks? (?:for |due |on )?(?P<filter>today|tomorrow|this week|overdue)\b",
    "show_tasks", "task", ("filter",),
    ["show tasks today", "list tasks tomorrow", "show my tasks for this week"],
  ),
  _p(
    r"\bwhat tasks\b.*?\b(?P<filter>today|tomorrow|this week|overdue)\b",
    "show_tasks", "task", ("filter",),
    ["what tasks do I have today", "what tasks are due tomorrow"],
  ),
  _p(
    rf"\b{_VERB_SHOW} (?:me )?(?:my |all )?(?:of )?(?:my )?tasks?\b",
    "show_tasks", "task", (),
    ["show all tasks", "list tasks", "show me my tasks"],
  ),
  _p(
    rf"\b(?:mark|complete|finish) (?:the )?task (?P<title>.+?) (?:as )?{_DONE}\b",
    "mark_task_done", "task", ("title",),
    ["mark task Review Report as done"],
  ),
  _p(
    r"\b(?:complete|finish) (?:the )?task (?P<title>.+)",
    "mark_task_done", "task", ("title",),
    ["complete task Review Report"],
  ),
  _p(
    rf"\bmark (?:the )?(?P<title>.+?) (?:as )?{_DONE}\b",
    "mark_task_done", "task", ("title",),
    ["mark Review Report as done", "mark Call Client complete"],
  ),
  _p(
    r"\b(?:delete|remove) (?:the )?task (?P<title>.+)",
    "delete_task", "task", ("title",),
    ["delete task Review Report", "remove task Old Task"],
  ),
  _p(
    rf"\bchange (?:the )?(?:priority of )?(?P<title>.+?) to (?P<priority>{_LEVEL})(?: priority)?\b",
    "update_task_priority", "task", ("title", "priority"),
    ["change Review Report to high priority"],
  ),
  _p(
    rf"\bset (?:the )?priority (?:of|for) (?P<title>.+?) to (?P<priority>{_LEVEL})\b",
    "update_task_priority", "task", ("title", "priority"),
    ["set priority of Call Client to low"],
  ),

  # ---- courses ----
  _p(
    rf"\b{_VERB_CREATE} (?:a )?course (?P<title>.+?) (?:from|at|on) (?P<url>{_URL})",
    "create_course", "course", ("title", "url"),
    ["add course JavaScript from https://youtube.com/playlist?list=PL123"],
  ),
  _p(
    rf"\b{_VERB_CREATE} (?:a )?course (?P<title>.+)",
    "create_course", "course", ("title",),
    ["create course JavaScript Basics"],
  ),
  _p(
    rf"\b{_VERB_SHOW} (?:me )?(?:my |all )?courses?\b",
    "show_courses", "course", (),
    ["show courses", "list my courses"],
  ),
  _p(
    r"\bmark video (?P<videoNumber>\d+) (?:as )?(?:watched|complete|completed|done) (?:in|of|for) (?P<courseName>.+)",
    "mark_video_watched", "course", ("videoNumber", "courseName"),
    ["mark video 5 watched in JavaScript Course"],
  ),

  # ---- reading ----
  _p(
    rf"\b(?:{_CREATE_WORDS}|save) reading (?P<title>.+?) (?:from|at) (?P<url>{_URL})",
    "create_reading", "reading", ("title", "url"),
    ["add reading Clean Code from https://example.com/clean-code"],
  ),
  _p(
    rf"\b(?:add|save) (?:the )?(?:article|link) (?P<url>{_URL})",
    "create_reading", "reading", ("url",),
    ["save article https://example.com/article"],
  ),
  _p(
    rf"\b(?:{_CREATE_WORDS}|save) reading (?P<title>.+)",
    "create_reading", "reading", ("title",),
    ["add reading Clean Code Principles"],
  ),
  _p(
    r"\badd (?P<title>.+?) to (?:my )?reading list\b",
    "create_reading", "reading", ("title",),
    ["add Designing Data Intensive Applications to my reading list"],
  ),
  _p(
    rf"\b{_VERB_SHOW} (?:me )?(?:my )?(?:reading(?: list| items)?|articles|books)\b",
    "show_reading", "reading", (),
    ["show reading", "list articles", "show my reading list"],
  ),
  _p(
    r"\bmark (?P<title>.+?) as read\b",
    "mark_reading_read", "reading", ("title",),
    ["mark Clean Code as read"],
  ),

  # ---- goals ----
  _p(
    r"\b(?:update|set) (?:the )?goal (?P<title>.+?)(?: progress)? to (?P<progress>\d{1,3})(?:\s*(?:%|percent))?",
    "update_goal_progress", "goal", ("title", "progress"),
    ["update goal Learn React to 75 percent", "set goal Read 12 Books progress to 50%"],
  ),
  _p(
    rf"\b(?:{_CREATE_WORDS}|set) (?:a )?(?:new )?goal (?P<title>.+?) by (?P<targetDate>.+)",
    "create_goal", "goal", ("title", "targetDate"),
    ["create goal Learn React by March 31"],
  ),
  _p(
    rf"\b(?:{_CREATE_WORDS}|set) (?:a )?(?:new )?goal (?P<title>.+)",
    "create_goal", "goal", ("title",),
    ["create goal Read 12 Books"],
  ),
  _p(
    rf"\b{_VERB_SHOW} (?:me )?(?:my |all )?goals?\b",
    "show_goals", "goal", (),
    ["show goals", "list my goals"],
  ),

  # ---- general ----
  _p(
    r"\bwhat'?s on my plate\b",
    "show_dashboard_summary", "general", (),
    ["what's on my plate", "whats on my plate"],
  ),
  _p(
    r"\b(?:show|give) (?:me )?(?:my |the )?(?:dashboard|daily summary|summary)\b",
    "show_dashboard_summary", "general", (),
    ["show my dashboard", "give me the summary"],
  ),
  _p(
    r"\bshow (?:me )?(?:my )?(?:stats|statistics|progress)\b",
    "show_stats", "general", (),
    ["show my stats", "show progress"],
  ),

  # ---- Arabic ----
  _p(
    r"(?:أنشئ|أضف) مهمة (?P<title>.+)",
    "create_task", "task", ("title",),
    ["أنشئ مهمة مراجعة التقرير"],
  ),
  _p(
    r"(?:أظهر|اعرض) (?:المهام|مهام)",
    "show_tasks", "task", (),
    ["أظهر المهام"],
  ),
  _p(
    r"علم (?P<title>.+?) (?:كمكتمل|مكتمل)",
    "mark_task_done", "task", ("title",),
    ["علم المهمة كمكتمل"],
  ),
]


def sort_patterns_by_specificity(patterns: list[CommandPattern]) -> list[CommandPattern]:
  # sorted() is stable: library order breaks ties
  return sorted(patterns, key=lambda p: -p.specificity)


SORTED_PATTERNS = sort_patterns_by_specificity(COMMAND_PATTERNS)
