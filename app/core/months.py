"""Pulse — Calendar Month Windows.

Every report is keyed by a "YYYY-MM" string. Windows are half-open:
[start_at, end_at), where end_at is midnight of the next month's first day.
"""

import re
from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from typing import List, Optional

MONTH_PATTERN = re.compile(r"^(\d{4})-(\d{2})$")


class InvalidMonthError(ValueError):
    """Raised when a month parameter is not a valid YYYY-MM string."""


@dataclass(frozen=True)
class MonthWindow:
    year: int
    month: int

    @property
    def key(self) -> str:
        return f"{self.year:04d}-{self.month:02d}"

    @property
    def first_day(self) -> date:
        return date(self.year, self.month, 1)

    @property
    def next_first_day(self) -> date:
        if self.month == 12:
            return date(self.year + 1, 1, 1)
        return date(self.year, self.month + 1, 1)

    @property
    def last_day(self) -> date:
        """Last calendar day; the inclusive cutoff for follower snapshots."""
        return self.next_first_day - timedelta(days=1)

    @property
    def start_at(self) -> datetime:
        return datetime.combine(self.first_day, datetime.min.time())

    @property
    def end_at(self) -> datetime:
        """Exclusive end instant; the as-of cutoff for metric snapshots."""
        return datetime.combine(self.next_first_day, datetime.min.time())

    def previous(self) -> "MonthWindow":
        if self.month == 1:
            return MonthWindow(self.year - 1, 12)
        return MonthWindow(self.year, self.month - 1)

    def __str__(self) -> str:
        return self.key


def parse_month(value: str) -> MonthWindow:
    """Parse a YYYY-MM string. Raises InvalidMonthError."""
    match = MONTH_PATTERN.match(value or "")
    if not match:
        raise InvalidMonthError(f"Invalid month {value!r}, expected YYYY-MM")
    year, month = int(match.group(1)), int(match.group(2))
    if not 1 <= month <= 12 or year < 1:
        raise InvalidMonthError(f"Invalid month {value!r}, expected YYYY-MM")
    return MonthWindow(year, month)


def current_month() -> MonthWindow:
    today = datetime.now(timezone.utc).date()
    return MonthWindow(today.year, today.month)


def resolve_month(value: Optional[str]) -> MonthWindow:
    """Parse an optional month parameter, defaulting to the current UTC month."""
    if not value:
        return current_month()
    return parse_month(value)


def month_range(end: MonthWindow, count: int) -> List[MonthWindow]:
    """The `count` months ending with `end`, oldest first."""
    if count < 1:
        raise InvalidMonthError(f"Month range must cover at least one month, got {count}")
    months = [end]
    while len(months) < count:
        months.append(months[-1].previous())
    return list(reversed(months))
