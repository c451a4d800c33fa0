"""Lookup windows for fee and balance queries, in demo-database coordinates."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, timedelta
from typing import Optional

from ..clock import DemoClock, parse_date
from ..date_parser import TimeExpressionParser
from ..models import ParsedTimeQuery

FALLBACK_FEE_DAYS = 30
LATEST = "latest"


@dataclass(frozen=True)
class LookupWindow:
    start: Optional[date]
    end: Optional[date]
    description: str


def parsed_window(parsed: ParsedTimeQuery) -> LookupWindow:
    rng = parsed.date_range
    return LookupWindow(parse_date(rng.start_date), parse_date(rng.end_date), rng.description)


def fee_window(clock: DemoClock, parsed: Optional[ParsedTimeQuery]) -> LookupWindow:
    """The parsed range, or the trailing 30 demo days when the phrase was not understood."""

    if parsed is not None:
        return parsed_window(parsed)
    end = clock.to_demo(clock.today())
    return LookupWindow(end - timedelta(days=FALLBACK_FEE_DAYS), end, f"the last {FALLBACK_FEE_DAYS} days")


def balance_window(parser: TimeExpressionParser, clock: DemoClock, time_period: Optional[str]) -> LookupWindow:
    """Window for balance trends.

    ``"latest"``, a missing phrase, or one the parser does not understand
    leaves the window open so every stored snapshot is considered.
    ``"this year"`` runs from January 1st of the actual year to today.
    """

    text = (time_period or "").strip().lower()
    if not text or text == LATEST:
        return LookupWindow(None, None, "the available period")
    today = clock.today()
    if text == "this year":
        return LookupWindow(clock.to_demo(date(today.year, 1, 1)), clock.to_demo(today), "this year")
    parsed = parser.parse(text)
    if parsed is None:
        return LookupWindow(None, None, "the available period")
    return parsed_window(parsed)


__all__ = ["FALLBACK_FEE_DAYS", "LATEST", "LookupWindow", "balance_window", "fee_window", "parsed_window"]
