"""FIFO matching of buy and sell trades into realized profit/loss pairs."""
from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Dict, Iterable, List, Sequence

from .models import MatchedTradePair, SecurityType, TradeRecord


@dataclass
class _OpenBuy:
    """Internal wrapper tracking whether a buy lot was already closed."""

    record: TradeRecord
    matched: bool = False


@dataclass(frozen=True)
class ProfitSummary:
    """Profitable subset of matched pairs, ready for display."""

    profitable_count: int
    total_profit: Decimal
    top: List[MatchedTradePair] = field(default_factory=list)
    matched_count: int = 0
    matched_total: Decimal = Decimal("0")


def _ordered(records: Iterable[TradeRecord]) -> List[TradeRecord]:
    return sorted(records, key=lambda r: (r.date, r.id))


def _partition(records: Iterable[TradeRecord]) -> Dict[SecurityType, List[TradeRecord]]:
    grouped: Dict[SecurityType, List[TradeRecord]] = {sec_type: [] for sec_type in SecurityType}
    for record in records:
        grouped[record.security_type].append(record)
    return grouped


def _pair(buy: TradeRecord, sell: TradeRecord) -> MatchedTradePair:
    quantity = buy.quantity
    return MatchedTradePair(
        security_type=buy.security_type,
        buy_id=buy.id,
        sell_id=sell.id,
        buy_date=buy.date,
        sell_date=sell.date,
        quantity=quantity,
        buy_price=buy.price,
        sell_price=sell.price,
        profit_loss=(sell.price - buy.price) * quantity,
        buy_net_amount=buy.net_amount,
        sell_net_amount=sell.net_amount,
    )


def match_fifo(buys: Sequence[TradeRecord], sells: Sequence[TradeRecord]) -> List[MatchedTradePair]:
    """Pair each sell with the earliest unmatched buy dated on or before it.

    Matching runs independently per security type (stocks, then options).
    A sell with no eligible buy is left unmatched; that is an open short or a
    data gap rather than an error.
    """

    buys_by_type = _partition(_ordered(buys))
    sells_by_type = _partition(_ordered(sells))

    pairs: List[MatchedTradePair] = []
    for sec_type in SecurityType:
        open_buys = [_OpenBuy(record) for record in buys_by_type[sec_type]]
        for sell in sells_by_type[sec_type]:
            candidate = next(
                (lot for lot in open_buys if not lot.matched and lot.record.date <= sell.date),
                None,
            )
            if candidate is None:
                continue
            candidate.matched = True
            pairs.append(_pair(candidate.record, sell))
    return pairs


def summarize_profits(pairs: Sequence[MatchedTradePair], limit: int = 3) -> ProfitSummary:
    """Rank profitable pairs by profit while keeping the true count and total."""

    profitable = sorted(
        (pair for pair in pairs if pair.profit_loss > 0),
        key=lambda pair: pair.profit_loss,
        reverse=True,
    )
    return ProfitSummary(
        profitable_count=len(profitable),
        total_profit=sum((pair.profit_loss for pair in profitable), Decimal("0")),
        top=profitable[: max(limit, 0)],
        matched_count=len(pairs),
        matched_total=sum((pair.profit_loss for pair in pairs), Decimal("0")),
    )


__all__ = ["ProfitSummary", "match_fifo", "summarize_profits"]
