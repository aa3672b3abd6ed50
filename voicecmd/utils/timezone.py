"""Local clock for resolving "today" against the user's calendar day."""

import os
from datetime import date, datetime
from zoneinfo import ZoneInfo

TIMEZONE = ZoneInfo(os.getenv("APP_TIMEZONE", "America/Toronto"))


def now() -> datetime:
    return datetime.now(TIMEZONE)


def today() -> date:
    return now().date()
