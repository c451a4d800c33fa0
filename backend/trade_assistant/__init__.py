"""Core package for the demo brokerage trade assistant."""

from .clock import DemoClock, ParseError, parse_date
from .date_parser import TimeExpressionParser, extract_time_period_from_query, parse_time_expression
from .matching import match_fifo, summarize_profits
from .models import DateRange, MatchedTradePair, ParsedTimeQuery, SecurityType, TradeRecord, TradeType
from .symbols import normalize_symbol

__all__ = [
    "DateRange",
    "DemoClock",
    "MatchedTradePair",
    "ParseError",
    "ParsedTimeQuery",
    "SecurityType",
    "TimeExpressionParser",
    "TradeRecord",
    "TradeType",
    "extract_time_period_from_query",
    "match_fifo",
    "normalize_symbol",
    "parse_date",
    "parse_time_expression",
    "summarize_profits",
]
