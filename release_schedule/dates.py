"""Parsing of the schedule site's date and time notations."""

import re
from datetime import date, datetime, time, timedelta
from typing import Optional

from .config import MONTHS

DATE_FORMAT = "%d.%m.%y"
DATE_PARSE_FORMAT = "%B %d, %Y"
TIME_FORMAT = "%H:%M"

_DOTTED_RE = re.compile(r"^(\d{1,2})\.(\d{1,2})\.(\d{2}|\d{4})$")
_AT_RE = re.compile(r"\bat\b", re.IGNORECASE)
_TIME_RE = re.compile(r"^(\d{1,2})(?::(\d{2}))?\s*([AaPp][Mm])$")


class InvalidDateFormat(ValueError):
    """Raised when date or time text matches none of the known shapes."""

    pass


def month_number(name: str) -> int:
    """Return 1-12 for an English month name."""
    try:
        return MONTHS.index(name.strip().lower()) + 1
    except ValueError:
        raise InvalidDateFormat(f"unknown month: {name!r}")


def starts_with_month(text: str) -> bool:
    lowered = text.strip().lower()
    return any(lowered.startswith(month) for month in MONTHS)


def pivot_year(two_digits: int) -> int:
    """Map a two-digit year: 00-30 -> 20xx, 31-99 -> 19xx."""
    if two_digits <= 30:
        return 2000 + two_digits
    return 1900 + two_digits


def parse_date(text: str, year: Optional[int] = None) -> date:
    """
    Parse schedule date text into a calendar date.

    Accepted shapes:
        "March 10" / "March 10 2025"   named month, fallback year if absent
        "March 10, 2025"               fixed reference format
        "10.03.25" / "10.03.2025"      dotted, two-digit years pivot at 30

    Raises:
        InvalidDateFormat: if the text matches none of them.
    """
    if not text or not text.strip():
        raise InvalidDateFormat("empty date string")

    cleaned = text.replace(":", "").strip()
    at_match = _AT_RE.search(cleaned)
    if at_match:
        cleaned = cleaned[: at_match.start()].strip()

    dotted = _DOTTED_RE.match(cleaned)
    if dotted:
        day, month, year_text = dotted.groups()
        full_year = pivot_year(int(year_text)) if len(year_text) == 2 else int(year_text)
        try:
            return date(full_year, int(month), int(day))
        except ValueError as e:
            raise InvalidDateFormat(f"invalid dotted date {text!r}: {e}")

    if not starts_with_month(cleaned):
        raise InvalidDateFormat(f"invalid date string: {text!r}")

    if "," in cleaned:
        try:
            return datetime.strptime(" ".join(cleaned.split()), DATE_PARSE_FORMAT).date()
        except ValueError as e:
            raise InvalidDateFormat(f"failed to parse date {text!r}: {e}")

    parts = cleaned.split()
    if len(parts) < 2:
        raise InvalidDateFormat(f"invalid date format: {text!r}")

    month = month_number(parts[0])
    if len(parts) > 2 and re.fullmatch(r"\d{4}", parts[2]):
        resolved_year = int(parts[2])
    else:
        resolved_year = year if year is not None else date.today().year

    try:
        return date(resolved_year, month, int(parts[1]))
    except ValueError as e:
        raise InvalidDateFormat(f"failed to parse date {text!r}: {e}")


def format_date(value: date) -> str:
    """Render a date in the canonical DD.MM.YY form."""
    return value.strftime(DATE_FORMAT)


def parse_time_kst(text: str) -> time:
    """Parse '... at 6 PM KST' style text into a wall-clock time."""
    if not text or not text.strip():
        raise InvalidDateFormat("empty time string")

    cleaned = text.replace("KST", "").strip()
    at_match = _AT_RE.search(cleaned)
    if at_match:
        cleaned = cleaned[at_match.end():].strip()

    match = _TIME_RE.match(cleaned)
    if not match:
        raise InvalidDateFormat(f"failed to parse time {text!r}")

    hour, minute, meridiem = match.groups()
    hour = int(hour)
    minute = int(minute or 0)
    if not 1 <= hour <= 12 or minute > 59:
        raise InvalidDateFormat(f"failed to parse time {text!r}")

    hour = hour % 12
    if meridiem.lower() == "pm":
        hour += 12
    return time(hour, minute)


def kst_to_local(value: time, offset_hours: int = -6) -> time:
    """Shift a KST time by a fixed offset, wrapping around midnight."""
    shifted = datetime.combine(date(2000, 1, 1), value) + timedelta(hours=offset_hours)
    return shifted.time()


def format_time(value: time) -> str:
    return value.strftime(TIME_FORMAT)
