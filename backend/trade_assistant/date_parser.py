"""Natural-language time expressions for trade queries.

Handles:
- Single days: "today", "yesterday", "November 18th", "Nov 18", "Monday"
- Calendar weeks and months: "last week", "this week", "last month", "this month"
- Rolling windows: "past 5 days", "last five days", "last 10 trading days"

Every resolved range is returned in demo-database coordinates so it can be
used directly as query bounds.
"""
from __future__ import annotations

import calendar
import re
from datetime import date, timedelta
from typing import Callable, List, Optional, Tuple

from .clock import DemoClock, ParseError
from .models import DateRange, ParsedTimeQuery

WORD_NUMBERS = {
    "one": 1, "two": 2, "three": 3, "four": 4, "five": 5,
    "six": 6, "seven": 7, "eight": 8, "nine": 9, "ten": 10,
    "eleven": 11, "twelve": 12, "thirteen": 13, "fourteen": 14, "fifteen": 15,
    "sixteen": 16, "seventeen": 17, "eighteen": 18, "nineteen": 19, "twenty": 20,
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

# Sunday-first numbering, matching the Sunday-Saturday calendar week.
WEEKDAYS = {
    "sunday": 0,
    "monday": 1,
    "tuesday": 2,
    "wednesday": 3,
    "thursday": 4,
    "friday": 5,
    "saturday": 6,
}

MONTH_PATTERN = "(" + "|".join(sorted(MONTHS, key=len, reverse=True)) + ")"
NUMBER_PATTERN = "(" + "|".join(sorted(WORD_NUMBERS, key=len, reverse=True)) + r"|\d+)"
WEEKDAY_PATTERN = "(" + "|".join(WEEKDAYS) + ")"

DIRECT_PHRASES = (
    "today", "yesterday", "this week", "last week", "past week",
    "this month", "last month", "past month",
    "monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday",
)

# Templates used to isolate the time phrase inside a longer sentence.
EXTRACTION_TEMPLATES = (
    re.compile(r"trades?\s+(?:for|from|on|over)\s+(?:the\s+)?(.+?)(?:\s+for\s+|\s+on\s+|\?|$)"),
    re.compile(r"(.+?)\s+trades?"),
    re.compile(r"show\s+(?:my\s+)?(.+?)\s+trades?"),
    re.compile(r"(?:for|over|in|during)\s+(?:the\s+)?(.+?)$"),
)
_DAYS_SEARCH_RE = re.compile(rf"((?:last|past)\s*{NUMBER_PATTERN}\s*(?:trading\s*)?days?)")
_CALENDAR_SEARCH_RE = re.compile(rf"\b({MONTH_PATTERN}\s+\d{{1,2}}(?:st|nd|rd|th)?)\b")

Resolver = Callable[[re.Match, date], Optional[ParsedTimeQuery]]


def parse_number(text: str) -> Optional[int]:
    """Parse "five" or "5"; ``None`` when neither form applies."""

    lowered = text.strip().lower()
    if lowered in WORD_NUMBERS:
        return WORD_NUMBERS[lowered]
    try:
        return int(lowered)
    except ValueError:
        return None


def _ordinal(day: int) -> str:
    if day in (1, 21, 31):
        return "st"
    if day in (2, 22):
        return "nd"
    if day in (3, 23):
        return "rd"
    return "th"


def _sunday_index(d: date) -> int:
    return (d.weekday() + 1) % 7


def _days_before(d: date, days: int) -> Optional[date]:
    """``d`` minus ``days``, or ``None`` when that falls outside the supported calendar."""

    try:
        return d - timedelta(days=days)
    except OverflowError:
        return None


class TimeExpressionParser:
    """Ordered regex cascade; the first rule that resolves wins.

    Rule order matters for overlapping phrases, so it is kept in one explicit
    list rather than spread across conditionals.
    """

    def __init__(self, clock: DemoClock | None = None):
        self.clock = clock or DemoClock()
        self._rules: List[Tuple[re.Pattern, Resolver]] = [
            (re.compile(r"^today$"), self._today),
            (re.compile(r"^yesterday$"), self._yesterday),
            (re.compile(rf"^(?:on\s+)?{MONTH_PATTERN}\s+(\d{{1,2}})(?:st|nd|rd|th)?$"), self._calendar_date),
            (re.compile(r"^(?:last|past)\s*week$"), self._last_week),
            (re.compile(r"^this\s*week$"), self._this_week),
            (re.compile(rf"^(?:last|past)\s*{NUMBER_PATTERN}\s*days?$"), self._last_n_days),
            (re.compile(rf"^(?:last|past)\s*{NUMBER_PATTERN}\s*trading\s*days?$"), self._last_n_trading_days),
            (re.compile(r"^(?:last|past)\s*month$"), self._last_month),
            (re.compile(r"^this\s*month$"), self._this_month),
            (re.compile(rf"^(?:last\s+|on\s+)?{WEEKDAY_PATTERN}(?:'s)?$"), self._weekday),
        ]

    @property
    def rules(self) -> List[Tuple[re.Pattern, Resolver]]:
        return list(self._rules)

    def parse(self, expression: str) -> Optional[ParsedTimeQuery]:
        """Resolve ``expression`` or return ``None`` when no rule applies."""

        text = re.sub(r"\s+", " ", (expression or "").strip().lower())
        if not text:
            return None
        today = self.clock.today()
        for pattern, resolver in self._rules:
            match = pattern.match(text)
            if not match:
                continue
            result = resolver(match, today)
            if result is not None:
                return result
        return None

    def extract_time_period(self, query: str) -> Optional[str]:
        """Best-effort isolation of the time phrase inside a full question.

        This is a heuristic: phrasings outside the templates and vocabulary
        below are simply not found.
        """

        lowered = (query or "").lower()
        candidates: List[str] = []
        for template in EXTRACTION_TEMPLATES:
            match = template.search(lowered)
            if match and match.group(1):
                candidates.append(match.group(1).strip())
        candidates.extend(phrase for phrase in DIRECT_PHRASES if phrase in lowered)
        days_match = _DAYS_SEARCH_RE.search(lowered)
        if days_match:
            candidates.append(days_match.group(1))
        calendar_match = _CALENDAR_SEARCH_RE.search(lowered)
        if calendar_match:
            candidates.append(calendar_match.group(1))

        for candidate in candidates:
            if self.parse(candidate) is not None:
                return candidate
        return None

    # Resolvers

    def _single_day(self, day: date, description: str, weekday: str | None = None) -> Optional[ParsedTimeQuery]:
        try:
            demo = self.clock.to_demo_coordinate(day)
        except ParseError:
            return None
        return ParsedTimeQuery(
            kind="specific",
            date_range=DateRange(start_date=demo, end_date=demo, description=description, day_count=1),
            day_of_week_name=weekday,
        )

    def _span(self, start: date | None, end: date, description: str, day_count: int) -> Optional[ParsedTimeQuery]:
        if start is None:
            return None
        try:
            start_demo = self.clock.to_demo_coordinate(start)
            end_demo = self.clock.to_demo_coordinate(end)
        except ParseError:
            return None
        return ParsedTimeQuery(
            kind="range",
            date_range=DateRange(
                start_date=start_demo,
                end_date=end_demo,
                description=description,
                day_count=day_count,
            ),
        )

    def _today(self, match: re.Match, today: date) -> Optional[ParsedTimeQuery]:
        return self._single_day(today, "today")

    def _yesterday(self, match: re.Match, today: date) -> Optional[ParsedTimeQuery]:
        day = _days_before(today, 1)
        return self._single_day(day, "yesterday") if day is not None else None

    def _calendar_date(self, match: re.Match, today: date) -> Optional[ParsedTimeQuery]:
        month = MONTHS[match.group(1)]
        day = int(match.group(2))
        try:
            target = date(today.year, month, day)
            # A bare month/day always refers to a past occurrence.
            if target > today:
                target = date(today.year - 1, month, day)
        except ValueError:
            return None
        description = f"{calendar.month_name[month]} {day}{_ordinal(day)}"
        return self._single_day(target, description)

    def _last_week(self, match: re.Match, today: date) -> Optional[ParsedTimeQuery]:
        weekday = _sunday_index(today)
        end = _days_before(today, 7 if weekday == 6 else weekday + 1)
        if end is None:
            return None
        return self._span(_days_before(end, 6), end, "last week", 7)

    def _this_week(self, match: re.Match, today: date) -> Optional[ParsedTimeQuery]:
        weekday = _sunday_index(today)
        return self._span(_days_before(today, weekday), today, "this week", weekday + 1)

    def _last_n_days(self, match: re.Match, today: date) -> Optional[ParsedTimeQuery]:
        count = parse_number(match.group(1))
        if count is None or count < 1:
            return None
        return self._span(_days_before(today, count - 1), today, f"last {count} days", count)

    def _last_n_trading_days(self, match: re.Match, today: date) -> Optional[ParsedTimeQuery]:
        count = parse_number(match.group(1))
        if count is None or count < 1:
            return None
        # Five trading days per seven calendar days; holidays are not modelled.
        calendar_days = -(-count * 7 // 5)
        return self._span(_days_before(today, calendar_days), today, f"last {count} trading days", count)

    def _last_month(self, match: re.Match, today: date) -> Optional[ParsedTimeQuery]:
        end = _days_before(today.replace(day=1), 1)
        if end is None:
            return None
        return self._span(end.replace(day=1), end, "last month", end.day)

    def _this_month(self, match: re.Match, today: date) -> Optional[ParsedTimeQuery]:
        return self._span(today.replace(day=1), today, "this month", today.day)

    def _weekday(self, match: re.Match, today: date) -> Optional[ParsedTimeQuery]:
        name = match.group(1)
        days_back = _sunday_index(today) - WEEKDAYS[name]
        if days_back <= 0:
            days_back += 7
        day = _days_before(today, days_back)
        return self._single_day(day, name.capitalize(), weekday=name) if day is not None else None


def parse_time_expression(expression: str, clock: DemoClock | None = None) -> Optional[ParsedTimeQuery]:
    return TimeExpressionParser(clock).parse(expression)


def extract_time_period_from_query(query: str, clock: DemoClock | None = None) -> Optional[str]:
    return TimeExpressionParser(clock).extract_time_period(query)


def is_time_based_query(query: str, clock: DemoClock | None = None) -> bool:
    return extract_time_period_from_query(query, clock) is not None


__all__ = [
    "TimeExpressionParser",
    "extract_time_period_from_query",
    "is_time_based_query",
    "parse_number",
    "parse_time_expression",
]
