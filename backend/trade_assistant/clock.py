"""Demo clock and date coordinate helpers.

The demo dataset was generated around a fixed "today" (the anchor). Queries
phrased against the real calendar ("yesterday", "last week") are shifted into
the demo timeline by a whole-day offset, and dates read back from the store
are shifted the other way for display.

The offset is derived from the current date on every call so a long-running
process picks up the new value after midnight without a restart.
"""
from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Callable, Union

DEFAULT_DEMO_ANCHOR = date(2025, 11, 20)

DateLike = Union[str, date]

_ISO_DATE_RE = re.compile(r"^([0-9]{4})-([0-9]{2})-([0-9]{2})([T ].+)?$")


class ParseError(ValueError):
    """Raised when a date string cannot be interpreted as a calendar date."""


def parse_date(value: DateLike) -> date:
    """Return ``value`` as a :class:`date`, rejecting anything malformed."""

    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str):
        raise ParseError(f"Unsupported date value: {value!r}")
    text = value.strip()
    match = _ISO_DATE_RE.match(text)
    if not match:
        raise ParseError(f"Invalid date string: {value!r}. Expected 'YYYY-MM-DD'.")
    year, month, day = (int(part) for part in match.group(1, 2, 3))
    try:
        parsed = date(year, month, day)
    except ValueError as exc:
        raise ParseError(f"Invalid calendar date: {value!r}") from exc
    if match.group(4):
        # A time suffix must itself be well formed; only the date part is kept.
        timestamp = text[:-1] + "+00:00" if text.endswith("Z") else text
        if not timestamp.isascii():
            raise ParseError(f"Invalid timestamp: {value!r}")
        try:
            datetime.fromisoformat(timestamp)
        except ValueError as exc:
            raise ParseError(f"Invalid timestamp: {value!r}") from exc
    return parsed


def _shift(d: date, days: int) -> date:
    try:
        return d + timedelta(days=days)
    except OverflowError as exc:
        raise ParseError(f"Date out of range: {d.isoformat()} shifted by {days} days") from exc


def _short_date(d: date) -> str:
    return f"{d.strftime('%b')} {d.day}"


@dataclass(frozen=True)
class DemoClock:
    """Translate between the actual calendar and the frozen demo calendar."""

    anchor: date = DEFAULT_DEMO_ANCHOR
    today_provider: Callable[[], date] = field(default=date.today, compare=False)

    def today(self) -> date:
        return self.today_provider()

    def compute_offset(self) -> int:
        """Whole days from actual today to the demo anchor (positive when the anchor is later)."""

        return (self.anchor - self.today()).days

    def to_demo(self, actual: date) -> date:
        return _shift(actual, self.compute_offset())

    def to_demo_coordinate(self, actual: date) -> str:
        """Shift an actual calendar date into the demo timeline as ``YYYY-MM-DD``."""

        return self.to_demo(actual).isoformat()

    def to_actual_coordinate(self, demo: DateLike) -> date:
        """Shift a demo-database date back onto the actual calendar."""

        return _shift(parse_date(demo), -self.compute_offset())

    def demo_year(self, actual_year: int | None = None) -> int:
        """Demo-database year that corresponds to ``actual_year`` (default: the current year)."""

        if actual_year is None:
            actual_year = self.today().year
        return actual_year + round(self.compute_offset() / 365)

    def format_calendar_date(self, demo: DateLike) -> str:
        """``"Nov 19"``, or ``"Nov 19, 2024"`` when the year is not the current one."""

        actual = self.to_actual_coordinate(demo)
        if actual.year != self.today().year:
            return f"{_short_date(actual)}, {actual.year}"
        return _short_date(actual)

    def format_relative(self, demo: DateLike) -> str:
        actual = self.to_actual_coordinate(demo)
        diff = (self.today() - actual).days
        if diff == 0:
            return "Today"
        if diff == 1:
            return "Yesterday"
        if diff == -1:
            return "Tomorrow"
        if 0 < diff < 7:
            return f"{diff} days ago"
        if -7 < diff < 0:
            return f"In {abs(diff)} days"
        return self.format_calendar_date(demo)

    def format_range(self, start: DateLike, end: DateLike) -> str:
        start_text = _short_date(self.to_actual_coordinate(start))
        end_text = _short_date(self.to_actual_coordinate(end))
        if start_text == end_text:
            return start_text
        return f"{start_text} - {end_text}"

    def day_of_week(self, demo: DateLike) -> str:
        return self.to_actual_coordinate(demo).strftime("%A")


__all__ = [
    "DEFAULT_DEMO_ANCHOR",
    "DateLike",
    "DemoClock",
    "ParseError",
    "parse_date",
]
