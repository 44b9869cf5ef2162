import re
from datetime import date, datetime, timezone
from typing import Optional, Union

DateLike = Union[str, date, datetime, None]

MONTHS = ["Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec"]

# YYYY, YYYY-MM or YYYY-MM-DD, optionally followed by a time part
_YMD_RE = re.compile(r"^\s*(\d{4})(?:[-/](\d{1,2}))?(?:[-/](\d{1,2}))?(?:[T\s].*)?$")


def today(now: DateLike = None) -> date:
    """Resolve an injectable 'now' to a date; defaults to the current UTC date."""
    if isinstance(now, datetime):
        return now.date()
    if isinstance(now, date):
        return now
    parsed = parse_date(now) if now else None
    return parsed or datetime.now(timezone.utc).date()


def parse_date(value: DateLike) -> Optional[date]:
    """
    Parse the partial ISO dates providers send ("2014", "2014-06", "2014-06-30").
    Missing month/day default to 1. Anything unparsable returns None.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str):
        return None
    m = _YMD_RE.match(value)
    if not m:
        return None
    year, month, day = int(m.group(1)), int(m.group(2) or 1), int(m.group(3) or 1)
    try:
        return date(year, month, day)
    except ValueError:
        return None


def months_between(start: DateLike, end: DateLike = None, now: DateLike = None) -> int:
    """Whole calendar months from start to end (or now), never negative; 0 when a bound is invalid."""
    a = parse_date(start)
    if a is None:
        return 0
    b = parse_date(end) if end else today(now)
    if b is None:
        return 0
    return max(0, (b.year - a.year) * 12 + (b.month - a.month))


def years_between(a: Optional[date], b: Optional[date]) -> float:
    """Fractional years between two dates, rounded to one decimal, never negative."""
    if not a or not b:
        return 0.0
    yrs = (b - a).days / 365.25
    return max(0.0, int(yrs * 10 + 0.5) / 10)


def years_ago(years: int, now: DateLike = None) -> date:
    ref = today(now)
    try:
        return ref.replace(year=ref.year - years)
    except ValueError:
        # Feb 29 -> Feb 28
        return ref.replace(year=ref.year - years, day=28)


def within_years(value: DateLike, years: int, now: DateLike = None) -> bool:
    d = parse_date(value)
    if d is None:
        return False
    return d >= years_ago(years, now)


def is_today(value: DateLike, now: DateLike = None) -> bool:
    d = parse_date(value)
    return d is not None and d == today(now)


def format_date(value: DateLike) -> str:
    if not value:
        return ""
    d = parse_date(value)
    return d.strftime("%b %d, %Y") if d else str(value)


def format_month_year(value: DateLike) -> str:
    if not value:
        return ""
    d = parse_date(value)
    if d is None:
        return str(value)
    return f"{MONTHS[d.month - 1]} {d.year}"


def format_range(start: DateLike, end: DateLike, now: DateLike = None) -> str:
    """Employment/education style ranges: 'Jan 2020 – Mar 2023', 'Jan 2020 – Present'."""
    if not start and not end:
        return "Unknown"
    start_str = format_month_year(start)
    if not end:
        return start_str
    end_str = "Present" if is_today(end, now) else format_month_year(end)
    return f"{start_str} – {end_str}" if start_str else end_str
