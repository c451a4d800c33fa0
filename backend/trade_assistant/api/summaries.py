"""Aggregations and money formatting shared by the voice and UI handlers."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional, Sequence

from ..models import SecurityType, TradeType
from .models import AccountBalance, TradeData

_CENT = Decimal("0.01")


def format_currency(value: Decimal | float) -> str:
    """``$1,234.56``; negatives render as ``-$1,234.56``."""

    amount = Decimal(str(value)).quantize(_CENT, rounding=ROUND_HALF_UP)
    sign = "-" if amount < 0 else ""
    return f"{sign}${abs(amount):,.2f}"


def format_number(value: Decimal | float) -> str:
    return f"{Decimal(str(value)).quantize(Decimal('1'), rounding=ROUND_HALF_UP):,}"


def plural(count: int, noun: str) -> str:
    return f"{count} {noun}{'' if count == 1 else 's'}"


def to_cents(value: Decimal) -> float:
    return float(value.quantize(_CENT, rounding=ROUND_HALF_UP))


@dataclass(frozen=True)
class PriceStats:
    count: int
    highest: Decimal
    lowest: Decimal
    average: Decimal
    highest_trade: TradeData
    lowest_trade: TradeData
    total_quantity: Decimal
    total_value: Decimal


def total_abs_net(trades: Sequence[TradeData]) -> Decimal:
    return sum((abs(Decimal(t.net_amount or 0)) for t in trades), Decimal("0"))


def average_price(trades: Sequence[TradeData]) -> Optional[Decimal]:
    """Mean positive price over the given trades, or ``None`` without prices."""

    prices = [t.price for t in trades if t.price > 0]
    if not prices:
        return None
    return sum(prices, Decimal("0")) / len(prices)


def price_stats(trades: Sequence[TradeData]) -> Optional[PriceStats]:
    """Highest/lowest/average price; the first trade wins ties on the extremes."""

    priced = [t for t in trades if t.price > 0]
    if not priced:
        return None
    highest_trade = max(priced, key=lambda t: t.price)
    lowest_trade = min(priced, key=lambda t: t.price)
    return PriceStats(
        count=len(trades),
        highest=highest_trade.price,
        lowest=lowest_trade.price,
        average=sum((t.price for t in priced), Decimal("0")) / len(priced),
        highest_trade=highest_trade,
        lowest_trade=lowest_trade,
        total_quantity=sum((t.quantity for t in trades), Decimal("0")),
        total_value=total_abs_net(trades),
    )


@dataclass(frozen=True)
class BalanceTrend:
    count: int
    average: Decimal
    highest: Decimal
    lowest: Decimal
    highest_row: AccountBalance
    lowest_row: AccountBalance


def balance_trend(rows: Sequence[AccountBalance], field: str) -> Optional[BalanceTrend]:
    """Average and extremes of one balance column; the first row wins ties."""

    if not rows:
        return None
    highest_row = max(rows, key=lambda r: r.amount(field))
    lowest_row = min(rows, key=lambda r: r.amount(field))
    return BalanceTrend(
        count=len(rows),
        average=sum((r.amount(field) for r in rows), Decimal("0")) / len(rows),
        highest=highest_row.amount(field),
        lowest=lowest_row.amount(field),
        highest_row=highest_row,
        lowest_row=lowest_row,
    )


def split_by_security(trades: Sequence[TradeData]) -> tuple[list[TradeData], list[TradeData]]:
    stocks = [t for t in trades if t.security_type == SecurityType.STOCK.value]
    options = [t for t in trades if t.security_type == SecurityType.OPTION.value]
    return stocks, options


def dominant_trade_type(trades: Sequence[TradeData]) -> str:
    """``"buy"`` or ``"sell"`` when every trade has that side, otherwise ``"all"``."""

    sides = {t.trade_type.upper() for t in trades}
    if sides == {TradeType.BUY.value}:
        return "buy"
    if sides == {TradeType.SELL.value}:
        return "sell"
    return "all"


__all__ = [
    "BalanceTrend",
    "PriceStats",
    "average_price",
    "balance_trend",
    "dominant_trade_type",
    "format_currency",
    "format_number",
    "plural",
    "price_stats",
    "split_by_security",
    "to_cents",
    "total_abs_net",
]
