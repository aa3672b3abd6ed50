import logging
import re
from datetime import date, datetime, time
from typing import Any
from urllib.parse import urlparse

import dateparser

from .dates import format_date, resolve
from .models import ACTION_SPECS, PARAMETER_NAMES, PRIORITIES

logger = logging.getLogger(__name__)

DATE_SLOTS = ("deadline", "targetDate")

TASK_FILTERS = {
  "today": "today",
  "tomorrow": "tomorrow",
  "this week": "this week",
  "week": "this week",
  "overdue": "overdue",
  "late": "overdue",
  "all": "all",
}

_HIGH_KEYWORDS = re.compile(r"\b(urgent|important|critical|asap|immediately)\b", re.IGNORECASE)
_LOW_KEYWORDS = re.compile(r"\b(low priority|whenever|later|someday)\b", re.IGNORECASE)


def is_valid_url(value: str) -> bool:
  try:
    parsed = urlparse(value)
  except ValueError:
    return False
  return parsed.scheme in ("http", "https") and bool(parsed.netloc)


def detect_priority(text: str) -> str | None:
  if _HIGH_KEYWORDS.search(text):
    return "high"
  if _LOW_KEYWORDS.search(text):
    return "low"
  return None


def _text(value: Any) -> str | None:
  if value is None:
    return None
  t = re.sub(r"\s+", " ", str(value)).strip(" .,!?;:")
  return t or None


def _int_in_range(value: Any, low: int, high: int | None = None) -> int | None:
  if isinstance(value, bool):
    return None
  if isinstance(value, float):
    if not value.is_integer():
      return None
    value = int(value)
  if isinstance(value, str):
    digits = value.strip().rstrip("%").strip()
    if not digits.isdigit():
      return None
    value = int(digits)
  if not isinstance(value, int):
    return None
  if value < low or (high is not None and value > high):
    return None
  return value


def coerce_date(value: Any, now: date | datetime, lenient: bool = False) -> str | None:
  if isinstance(value, datetime):
    return format_date(value.date())
  if isinstance(value, date):
    return format_date(value)
  text = _text(value)
  if not text:
    return None
  d = resolve(text, now)
  if d:
    return format_date(d)
  if not lenient:
    return None
  # 模型偶尔返回非 ISO 的日期, 用 dateparser 兜底
  today = now.date() if isinstance(now, datetime) else now
  dt = dateparser.parse(text, settings={
    "PREFER_DATES_FROM": "future",
    "RELATIVE_BASE": datetime.combine(today, time()),
  })
  if dt:
    return format_date(dt.date())
  logger.info("Dropping unparseable date %r", text)
  return None


def coerce_value(name: str, value: Any, now: date | datetime, lenient_dates: bool = False) -> Any:
  """Coerce one raw slot value to its declared type; None means drop it."""
  if name in DATE_SLOTS:
    return coerce_date(value, now, lenient=lenient_dates)
  if name == "priority":
    t = _text(value)
    t = t.lower() if t else None
    return t if t in PRIORITIES else None
  if name == "url":
    t = _text(value)
    if t and t.endswith(")"):
      t = t.rstrip(")")
    return t if t and is_valid_url(t) else None
  if name == "videoNumber":
    return _int_in_range(value, 1)
  if name == "progress":
    return _int_in_range(value, 0, 100)
  if name == "filter":
    t = _text(value)
    if not t:
      return None
    t = t.lower()
    return TASK_FILTERS.get(t, t)
  if name in ("status", "timeframe"):
    t = _text(value)
    return t.lower() if t else None
  return _text(value)


def coerce_parameters(
  action: str,
  parameters: dict,
  now: date | datetime,
  lenient_dates: bool = False,
) -> dict:
  spec = ACTION_SPECS.get(action)
  allowed = spec.fields if spec else PARAMETER_NAMES
  out = {}
  for name, raw in (parameters or {}).items():
    if name not in allowed or raw is None:
      continue
    value = coerce_value(name, raw, now, lenient_dates=lenient_dates)
    if value is None:
      logger.debug("Dropping slot %s=%r for %s", name, raw, action)
      continue
    out[name] = value
  return out
