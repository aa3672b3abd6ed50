import logging
import re
from datetime import date, datetime

from .models import ACTION_SPECS, ParsedCommand
from .patterns import SORTED_PATTERNS, CommandPattern
from .slots import coerce_parameters, detect_priority
from ..utils.timezone import now as local_now

logger = logging.getLogger(__name__)

PATTERN_CONFIDENCE = 75

# 常见的语音识别错误
MISRECOGNITIONS = {
  "tusk": "task",
  "tusks": "tasks",
  "corce": "course",
  "govel": "goal",
  "reeding": "reading",
  "markt": "mark",
  "delet": "delete",
  "remov": "remove",
}

_MISRECOGNITION_RE = re.compile(
  r"\b(" + "|".join(sorted(MISRECOGNITIONS, key=len, reverse=True)) + r")\b",
  re.IGNORECASE,
)

_AUTO_PRIORITY_ACTIONS = ("create_task", "create_reading")


def normalize_text(raw: str) -> str:
  text = (raw or "").strip()
  text = re.sub(r"\s+", " ", text)
  text = _MISRECOGNITION_RE.sub(lambda m: MISRECOGNITIONS[m.group(1).lower()], text)
  return text


def _extract_slots(pattern: CommandPattern, m: re.Match) -> dict:
  out = {}
  for slot in pattern.slots:
    value = m.group(slot)
    if value is not None:
      out[slot] = value
  return out


def match_pattern(text: str) -> tuple[CommandPattern, re.Match] | None:
  for pattern in SORTED_PATTERNS:
    m = pattern.regex.search(text)
    if m:
      return pattern, m
  return None


def match_command(raw: str, now: date | datetime | None = None) -> ParsedCommand | None:
  """Parse a transcript with the pattern library.

  First matching template wins; slots that fail coercion are dropped.
  Returns None when nothing matches.
  """
  text = normalize_text(raw)
  if not text:
    return None
  if now is None:
    now = local_now()

  hit = match_pattern(text)
  if not hit:
    logger.info("No pattern matched %r", text)
    return None
  pattern, m = hit

  params = coerce_parameters(pattern.action, _extract_slots(pattern, m), now)
  if pattern.action in _AUTO_PRIORITY_ACTIONS and "priority" not in params:
    level = detect_priority(text)
    if level and "priority" in ACTION_SPECS[pattern.action].fields:
      params["priority"] = level

  logger.debug("Pattern %s matched %r -> %s", pattern.action, text, params)
  return ParsedCommand(
    action=pattern.action,
    entity=pattern.entity,
    parameters=params,
    confidence=PATTERN_CONFIDENCE,
    original_text=raw,
    source="pattern",
  )
