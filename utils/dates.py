"""
utils/dates.py
--------------
Calendar helpers. The business clock lives here so that the rest of the
code receives `today` / `now` as explicit arguments.
"""

from datetime import date, datetime, time
from zoneinfo import ZoneInfo

from dateutil.relativedelta import relativedelta

from config import TIMEZONE

TZ = ZoneInfo(TIMEZONE)


def now() -> datetime:
    """Current timezone-aware datetime in the business timezone."""
    return datetime.now(TZ)


def today() -> date:
    """Current date in the business timezone."""
    return now().date()


def month_start(d: date) -> date:
    return d.replace(day=1)


def month_end(d: date) -> date:
    """Last calendar day of the month containing `d`."""
    return d + relativedelta(day=31)


def next_month_start(d: date) -> date:
    return month_start(d) + relativedelta(months=1)


def same_month(a: date, b: date) -> bool:
    return (a.year, a.month) == (b.year, b.month)


def start_of_day(d: date) -> datetime:
    """Midnight of `d` in the business timezone."""
    return datetime.combine(d, time.min, tzinfo=TZ)


def parse_month(text: str) -> date:
    """
    Parse a 'YYYY-MM' string into the first day of that month.

    Raises:
        ValueError: If the text is not a valid month.
    """
    parsed = datetime.strptime(text.strip(), "%Y-%m")
    return date(parsed.year, parsed.month, 1)
