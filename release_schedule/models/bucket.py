"""Time buckets: the month-scoped keys records are cached under."""

from dataclasses import dataclass
from datetime import date
from typing import Optional

from ..config import MONTHS
from ..dates import InvalidDateFormat, month_number


@dataclass(frozen=True)
class TimeBucket:
    """A calendar month, labelled "march" or "march-2025"."""

    label: str
    month: int
    year: int

    @classmethod
    def parse(cls, label: str, default_year: Optional[int] = None) -> "TimeBucket":
        """
        Parse a bucket label.

        Raises:
            InvalidDateFormat: if the month name or year is not recognised.
        """
        normalized = label.strip().lower()
        name, _, year_text = normalized.partition("-")
        month = month_number(name)
        if year_text:
            if not year_text.isdigit() or len(year_text) != 4:
                raise InvalidDateFormat(f"invalid bucket year: {label!r}")
            year = int(year_text)
        else:
            year = default_year if default_year is not None else date.today().year
        return cls(label=normalized, month=month, year=year)

    @staticmethod
    def current_month_name(today: Optional[date] = None) -> str:
        return MONTHS[(today or date.today()).month - 1]

    @property
    def key(self) -> str:
        """Canonical "<month>-<yyyy>" form, used for cache keys and file names."""
        return f"{self.month_name}-{self.year}"

    @property
    def month_name(self) -> str:
        return MONTHS[self.month - 1]

    def contains(self, value: date) -> bool:
        return value.year == self.year and value.month == self.month

    def matches_link(self, url: str) -> bool:
        """True if a schedule page URL belongs to this bucket."""
        lowered = url.lower()
        return self.month_name in lowered and str(self.year) in lowered

    def is_active(self, today: Optional[date] = None) -> bool:
        """Previous, current and next month change often and are 'active'."""
        today = today or date.today()
        distance = (self.year - today.year) * 12 + (self.month - today.month)
        return -1 <= distance <= 1
