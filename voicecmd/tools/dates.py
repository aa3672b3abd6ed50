import calendar
import re
from datetime import date, datetime, timedelta

from ..utils.timezone import today as local_today

WEEKDAYS = {
  "monday": 0,
  "tuesday": 1,
  "wednesday": 2,
  "thursday": 3,
  "friday": 4,
  "saturday": 5,
  "sunday": 6,
}

MONTHS = {
  "jan": 1, "january": 1,
  "feb": 2, "february": 2,
  "mar": 3, "march": 3,
  "apr": 4, "april": 4,
  "may": 5,
  "jun": 6, "june": 6,
  "jul": 7, "july": 7,
  "aug": 8, "august": 8,
  "sep": 9, "sept": 9, "september": 9,
  "oct": 10, "october": 10,
  "nov": 11, "november": 11,
  "dec": 12, "december": 12,
}

NUMBER_WORDS = {
  "a": 1, "an": 1, "one": 1, "two": 2, "three": 3, "four": 4, "five": 5,
  "six": 6, "seven": 7, "eight": 8, "nine": 9, "ten": 10, "eleven": 11,
  "twelve": 12,
}

_WEEKDAY = "|".join(WEEKDAYS)
_MONTH = "|".join(sorted(MONTHS, key=len, reverse=True))
_NUMBER = r"\d{1,3}|" + "|".join(NUMBER_WORDS)

_RELATIVE_DAY_RE = re.compile(r"\b(day after tomorrow|today|tomorrow|yesterday)\b")
_WEEKDAY_RE = re.compile(rf"\b(next|this)\s+({_WEEKDAY})\b")
_IN_N_RE = re.compile(rf"\bin\s+({_NUMBER})\s+(day|week|month)s?\b")
_NEXT_PERIOD_RE = re.compile(r"\bnext\s+(week|month)\b")
_END_OF_RE = re.compile(r"\bend\s+of\s+(?:the\s+)?(week|month)\b")
_ISO_RE = re.compile(r"\b(\d{4})-(\d{1,2})-(\d{1,2})\b")
_MONTH_DAY_RE = re.compile(rf"\b({_MONTH})\.?\s+(\d{{1,2}})(?:st|nd|rd|th)?\b")
_DAY_MONTH_RE = re.compile(rf"\b(\d{{1,2}})(?:st|nd|rd|th)?\s+(?:of\s+)?({_MONTH})\b")

_ARABIC_RULES = [
  (re.compile(r"غدا"), lambda d: d + timedelta(days=1)),
  (re.compile(r"اليوم"), lambda d: d),
  (re.compile(r"أمس"), lambda d: d - timedelta(days=1)),
  (re.compile(r"الأسبوع\s+القادم"), lambda d: d + timedelta(days=7)),
  (re.compile(r"الشهر\s+القادم"), lambda d: _add_months(d, 1).replace(day=1)),
]


def _reference_day(reference_now: date | datetime | None) -> date:
  if reference_now is None:
    return local_today()
  if isinstance(reference_now, datetime):
    return reference_now.date()
  return reference_now


def _add_months(d: date, months: int) -> date:
  years, month_index = divmod(d.month - 1 + months, 12)
  year = d.year + years
  month = month_index + 1
  day = min(d.day, calendar.monthrange(year, month)[1])
  return date(year, month, day)


def _to_int(token: str) -> int:
  if token.isdigit():
    return int(token)
  return NUMBER_WORDS[token]


def next_weekday(today: date, weekday: int) -> date:
  # 严格在今天之后: 周一说 "next monday" 得到 +7
  ahead = weekday - today.weekday()
  if ahead <= 0:
    ahead += 7
  return today + timedelta(days=ahead)


def this_weekday(today: date, weekday: int) -> date:
  # 本周; 已经过去的星期几视为下一个
  ahead = weekday - today.weekday()
  if ahead < 0:
    ahead += 7
  return today + timedelta(days=ahead)


def _month_day(month: int, day: int, today: date) -> date | None:
  try:
    d = date(today.year, month, day)
  except ValueError:
    return None
  if d < today:
    try:
      d = date(today.year + 1, month, day)
    except ValueError:
      return None
  return d


def _resolve_english(text: str, today: date) -> date | None:
  m = _RELATIVE_DAY_RE.search(text)
  if m:
    word = m.group(1)
    if word == "today":
      return today
    if word == "tomorrow":
      return today + timedelta(days=1)
    if word == "yesterday":
      return today - timedelta(days=1)
    return today + timedelta(days=2)

  m = _WEEKDAY_RE.search(text)
  if m:
    weekday = WEEKDAYS[m.group(2)]
    if m.group(1) == "next":
      return next_weekday(today, weekday)
    return this_weekday(today, weekday)

  m = _IN_N_RE.search(text)
  if m:
    n = _to_int(m.group(1))
    unit = m.group(2)
    if unit == "day":
      return today + timedelta(days=n)
    if unit == "week":
      return today + timedelta(weeks=n)
    return _add_months(today, n)

  m = _NEXT_PERIOD_RE.search(text)
  if m:
    if m.group(1) == "week":
      return today + timedelta(days=7)
    return _add_months(today, 1).replace(day=1)

  m = _END_OF_RE.search(text)
  if m:
    if m.group(1) == "week":
      days_until_sunday = 6 - today.weekday()
      return today + timedelta(days=days_until_sunday or 7)
    last_day = calendar.monthrange(today.year, today.month)[1]
    return today.replace(day=last_day)

  m = _ISO_RE.search(text)
  if m:
    try:
      return date(int(m.group(1)), int(m.group(2)), int(m.group(3)))
    except ValueError:
      return None

  m = _MONTH_DAY_RE.search(text)
  if m:
    return _month_day(MONTHS[m.group(1)], int(m.group(2)), today)

  m = _DAY_MONTH_RE.search(text)
  if m:
    return _month_day(MONTHS[m.group(2)], int(m.group(1)), today)

  return None


def _resolve_arabic(text: str, today: date) -> date | None:
  for pattern, rule in _ARABIC_RULES:
    if pattern.search(text):
      return rule(today)
  return None


def resolve(text: str, reference_now: date | datetime | None = None) -> date | None:
  """Resolve a spoken date phrase to a calendar day.

  Returns None when no rule matches; callers treat that as "no date",
  not as an error.
  """
  if not text:
    return None
  normalized = text.lower().strip()
  today = _reference_day(reference_now)

  d = _resolve_english(normalized, today)
  if d:
    return d
  return _resolve_arabic(normalized, today)


def format_date(d: date) -> str:
  return d.strftime("%Y-%m-%d")


def resolve_iso(text: str, reference_now: date | datetime | None = None) -> str | None:
  d = resolve(text, reference_now)
  return format_date(d) if d else None
