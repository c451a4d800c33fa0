from __future__ import annotations

from datetime import date

from trade_assistant.api.periods import balance_window, fee_window
from trade_assistant.clock import DemoClock
from trade_assistant.date_parser import TimeExpressionParser


def test_fee_window_falls_back_to_trailing_thirty_days(fixed_clock: DemoClock):
    window = fee_window(fixed_clock, None)
    assert (window.start, window.end) == (date(2025, 10, 21), date(2025, 11, 20))
    assert window.description == "the last 30 days"


def test_fee_window_uses_parsed_range(fixed_clock: DemoClock):
    window = fee_window(fixed_clock, TimeExpressionParser(fixed_clock).parse("last week"))
    assert (window.start, window.end) == (date(2025, 11, 10), date(2025, 11, 16))
    assert window.description == "last week"


def test_balance_window_is_open_for_latest_and_unknown_phrases(fixed_clock: DemoClock):
    parser = TimeExpressionParser(fixed_clock)
    for phrase in (None, "latest", "  Latest ", "xyzzy"):
        window = balance_window(parser, fixed_clock, phrase)
        assert (window.start, window.end) == (None, None), phrase
        assert window.description == "the available period"


def test_balance_window_for_this_year(fixed_clock: DemoClock):
    window = balance_window(TimeExpressionParser(fixed_clock), fixed_clock, "This Year")
    # Jan 1st 2024 shifted by the 351-day offset.
    assert (window.start, window.end) == (date(2024, 12, 17), date(2025, 11, 20))
    assert window.description == "this year"
