"""FIFO buy/sell matching and profit summaries."""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from itertools import count

from trade_assistant.matching import match_fifo, summarize_profits
from trade_assistant.models import SecurityType, TradeRecord, TradeType

_ids = count(1)


def trade(
    when: date,
    price: str,
    quantity: str = "100",
    side: TradeType = TradeType.BUY,
    security: SecurityType = SecurityType.STOCK,
    trade_id: int | None = None,
) -> TradeRecord:
    qty = Decimal(quantity)
    px = Decimal(price)
    gross = qty * px
    return TradeRecord(
        id=trade_id if trade_id is not None else next(_ids),
        date=when,
        security_type=security,
        trade_type=side,
        quantity=qty,
        price=px,
        net_amount=-gross if side is TradeType.BUY else gross,
    )


def sell(when: date, price: str, quantity: str = "100", **kwargs) -> TradeRecord:
    return trade(when, price, quantity, side=TradeType.SELL, **kwargs)


def test_single_pair_profit():
    pairs = match_fifo([trade(date(2025, 9, 30), "171.20")], [sell(date(2025, 10, 28), "189.70")])
    assert len(pairs) == 1
    assert pairs[0].profit_loss == Decimal("1850.00")
    assert pairs[0].security_type is SecurityType.STOCK


def test_sell_before_only_buy_is_unmatched():
    pairs = match_fifo([trade(date(2025, 10, 20), "180.00", "50")], [sell(date(2025, 10, 1), "170.00")])
    assert pairs == []


def test_each_sell_takes_earliest_open_buy():
    first = trade(date(2025, 1, 2), "10")
    second = trade(date(2025, 1, 5), "12")
    sells = [sell(date(2025, 1, 10), "15"), sell(date(2025, 1, 12), "11")]
    pairs = match_fifo([second, first], sells)
    assert [(p.buy_id, p.sell_id) for p in pairs] == [(first.id, sells[0].id), (second.id, sells[1].id)]
    assert [p.profit_loss for p in pairs] == [Decimal("500"), Decimal("-100")]


def test_unmatched_early_sell_does_not_block_later_sells():
    early = sell(date(2025, 3, 1), "20")
    buy = trade(date(2025, 3, 5), "18")
    late = sell(date(2025, 3, 9), "21")
    pairs = match_fifo([buy], [early, late])
    assert len(pairs) == 1
    assert pairs[0].sell_id == late.id
    assert pairs[0].sell_date >= pairs[0].buy_date


def test_same_day_buy_and_sell_match():
    day = date(2025, 4, 1)
    pairs = match_fifo([trade(day, "5")], [sell(day, "6")])
    assert len(pairs) == 1


def test_security_types_never_cross_match():
    stock_buy = trade(date(2025, 5, 1), "100")
    option_sell = sell(date(2025, 5, 2), "3", "2", security=SecurityType.OPTION)
    assert match_fifo([stock_buy], [option_sell]) == []

    option_buy = trade(date(2025, 5, 1), "2.50", "2", security=SecurityType.OPTION)
    pairs = match_fifo([option_buy, stock_buy], [option_sell, sell(date(2025, 5, 3), "110")])
    assert [p.security_type for p in pairs] == [SecurityType.STOCK, SecurityType.OPTION]
    assert pairs[1].profit_loss == Decimal("1.00")


def test_each_record_used_at_most_once():
    buys = [trade(date(2025, 6, d), "10") for d in (1, 2, 3)]
    sells = [sell(date(2025, 6, d), "11") for d in (4, 5, 6, 7, 8)]
    pairs = match_fifo(buys, sells)
    assert len(pairs) == min(len(buys), len(sells))
    assert len({p.buy_id for p in pairs}) == len(pairs)
    assert len({p.sell_id for p in pairs}) == len(pairs)


def test_ties_on_date_break_by_id():
    day = date(2025, 7, 1)
    later_id = trade(day, "9", trade_id=902)
    earlier_id = trade(day, "8", trade_id=901)
    pairs = match_fifo([later_id, earlier_id], [sell(date(2025, 7, 2), "10")])
    assert pairs[0].buy_id == 901


def test_net_amount_profit_agrees_in_sign():
    pair = match_fifo([trade(date(2025, 9, 30), "171.20")], [sell(date(2025, 10, 28), "189.70")])[0]
    assert pair.net_profit_loss == Decimal("1850.00")
    assert (pair.net_profit_loss > 0) == (pair.profit_loss > 0)


def test_empty_inputs():
    assert match_fifo([], []) == []
    assert match_fifo([trade(date(2025, 1, 1), "1")], []) == []


def test_summary_ranks_profits_and_keeps_true_totals():
    buys = [trade(date(2025, 8, d), "10") for d in (1, 2, 3, 4, 5)]
    sells = [sell(date(2025, 8, 10 + i), price) for i, price in enumerate(["12", "15", "9", "11", "13"])]
    pairs = match_fifo(buys, sells)
    summary = summarize_profits(pairs, limit=3)
    assert summary.profitable_count == 4
    assert summary.total_profit == Decimal("1100")
    assert [p.profit_loss for p in summary.top] == [Decimal("500"), Decimal("300"), Decimal("200")]
    assert summary.matched_count == 5
    assert summary.matched_total == Decimal("1000")


def test_summary_without_profits():
    pairs = match_fifo([trade(date(2025, 8, 1), "10")], [sell(date(2025, 8, 2), "8")])
    summary = summarize_profits(pairs)
    assert summary.profitable_count == 0
    assert summary.top == []
    assert summary.total_profit == Decimal("0")
    assert summary.matched_total == Decimal("-200")
    assert summarize_profits(pairs, limit=0).top == []
