"""Webhook handlers answering voice-agent tool calls with spoken-style text."""

from __future__ import annotations

import logging
from datetime import date
from decimal import Decimal
from typing import Any, Optional

from fastapi import APIRouter, Body, Depends
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ..clock import DemoClock, parse_date
from ..config import AppSettings
from ..date_parser import TimeExpressionParser
from ..matching import match_fifo, summarize_profits
from ..models import SecurityType, TradeType
from ..symbols import normalize_symbol
from ..telemetry import QueryMetrics, trace_span
from .database import Database
from .models import BALANCE_QUERY_TYPES, FEE_KINDS, FEE_TABLE_TYPES, TREND_QUERY_FIELDS, AccountBalance
from .periods import balance_window, fee_window
from .queries import fetch_balances, fetch_fees, fetch_latest_balance, fetch_trades
from .schemas import VoiceResponse
from .summaries import (
    average_price,
    balance_trend,
    format_currency,
    format_number,
    plural,
    price_stats,
    split_by_security,
    to_cents,
    total_abs_net,
)

logger = logging.getLogger(__name__)

SYMBOL_PROMPT = "Please specify a stock symbol or company name."
PERIOD_HINT = 'Try "last week", "yesterday", "past 5 days", "this month", or a day name like "Monday".'


def get_param(payload: dict[str, Any], name: str) -> Optional[Any]:
    """Read a tool parameter sent top-level or nested under ``parameters``/``body``."""

    body = payload.get("body")
    sources = (
        payload,
        payload.get("parameters"),
        body,
        body.get("parameters") if isinstance(body, dict) else None,
    )
    for source in sources:
        if isinstance(source, dict) and source.get(name):
            return source[name]
    return None


def _side(trade_type: Optional[str]) -> Optional[TradeType]:
    if not trade_type or str(trade_type).strip().lower() == "all":
        return None
    return TradeType.from_text(str(trade_type))


def _balance_sentence(query_type: str, row: AccountBalance, as_of: str) -> str:
    def amount(name: str) -> str:
        return format_currency(row.amount(name))

    if query_type == "cash_balance":
        return (
            f"Your account cash balance as of {as_of} is {amount('cash_balance')}. "
            f"Your total account equity is {amount('account_equity')}."
        )
    if query_type == "buying_power":
        return f"Your day trading buying power as of {as_of} is {amount('day_trading_bp')}."
    if query_type == "nlv":
        return f"Your net liquidation value (account equity) as of {as_of} is {amount('account_equity')}."
    if query_type == "overnight_margin":
        return (
            f"Your overnight margin status as of {as_of}: "
            f"House Requirement: {amount('house_requirement')}, "
            f"House Excess/Deficit: {amount('house_excess_deficit')}, "
            f"Federal Requirement: {amount('fed_requirement')}, "
            f"Federal Excess/Deficit: {amount('fed_excess_deficit')}."
        )
    if query_type == "market_value":
        return (
            f"Market value of your positions as of {as_of}: "
            f"Stock Long: {amount('stock_lmv')}, Stock Short: {amount('stock_smv')}, "
            f"Options Long: {amount('options_lmv')}, Options Short: {amount('options_smv')}."
        )
    return (
        f"Your account summary as of {as_of}: "
        f"Cash Balance: {amount('cash_balance')}, Account Equity: {amount('account_equity')}, "
        f"Day Trading BP: {amount('day_trading_bp')}, "
        f"Stock Long Market Value: {amount('stock_lmv')}, Stock Short Market Value: {amount('stock_smv')}, "
        f"Options Long Market Value: {amount('options_lmv')}, Options Short Market Value: {amount('options_smv')}."
    )


def get_voice_router(database: Database, settings: AppSettings, clock: DemoClock) -> APIRouter:
    router = APIRouter(prefix="/voice", tags=["voice"])
    parser = TimeExpressionParser(clock)
    query_metrics = QueryMetrics()
    account = settings.account_code

    @router.post("/time-trades", response_model=VoiceResponse)
    async def time_trades(
        payload: dict[str, Any] = Body(...),
        session: AsyncSession = Depends(database.get_session),
    ) -> VoiceResponse:
        logger.info("Time trades request: %s", payload)
        time_period = get_param(payload, "time_period")
        raw_symbol = get_param(payload, "symbol")
        calculation = get_param(payload, "calculation")
        side = _side(get_param(payload, "trade_type"))

        if not time_period:
            return VoiceResponse(response=f"Please specify a time period. {PERIOD_HINT}")
        parsed = parser.parse(str(time_period))
        query_metrics.time_expression("voice", parsed)
        if parsed is None:
            return VoiceResponse(response=f'I couldn\'t understand the time period "{time_period}". {PERIOD_HINT}')

        period = parsed.date_range
        symbol = normalize_symbol(str(raw_symbol)) if raw_symbol else None
        logger.info("Parsed time period %r as %s..%s", period.description, period.start_date, period.end_date)
        try:
            trades = await fetch_trades(
                session,
                account,
                symbol=symbol,
                start=parse_date(period.start_date),
                end=parse_date(period.end_date),
                trade_type=side,
                newest_first=True,
            )
        except SQLAlchemyError:
            logger.exception("Time trades lookup failed")
            query_metrics.store_error("voice", "time_trades")
            return VoiceResponse(response="Sorry, there was an error looking up your trades for that time period.")

        symbol_text = f" for {symbol}" if symbol else ""
        when = period.description
        if parsed.is_specific and when not in ("today", "yesterday"):
            when = f"on {when}"
        if not trades:
            return VoiceResponse(
                response=f"No trades found{symbol_text} {when}.",
                data={"trade_count": 0, "time_period": period.description, "symbol": symbol, "trades": []},
            )

        stocks, options = split_by_security(trades)
        stats_text = ""
        if calculation == "average":
            avg = average_price(stocks)
            if avg is not None:
                stats_text = f" The average price was {format_currency(avg)}."

        if stocks and options:
            message = (
                f"You executed {len(trades)} trades{symbol_text} {when}: "
                f"{plural(len(stocks), 'stock trade')} and {plural(len(options), 'option trade')}."
            )
        else:
            span_text = ""
            if period.day_count > 1 and "day" not in period.description:
                span_text = f" over {period.day_count} days"
            message = f"You executed {plural(len(trades), 'trade')}{symbol_text} {when}{span_text}."
        message += f"{stats_text} Would you like a detailed list?"

        return VoiceResponse(
            response=message,
            data={
                "trade_count": len(trades),
                "stock_count": len(stocks),
                "option_count": len(options),
                "time_period": period.description,
                "display_range": clock.format_range(period.start_date, period.end_date),
                "day_count": period.day_count,
                "start_date": period.start_date,
                "end_date": period.end_date,
                "symbol": symbol,
                "total_value": to_cents(total_abs_net(trades)),
                "trades": [{**t.to_dict(), "display_date": clock.format_relative(t.date)} for t in trades],
            },
        )

    @router.post("/profitable-trades", response_model=VoiceResponse)
    async def profitable_trades(
        payload: dict[str, Any] = Body(...),
        session: AsyncSession = Depends(database.get_session),
    ) -> VoiceResponse:
        logger.info("Profitable trades request: %s", payload)
        raw_symbol = get_param(payload, "symbol")
        if not raw_symbol:
            return VoiceResponse(response=SYMBOL_PROMPT)
        symbol = normalize_symbol(str(raw_symbol))
        try:
            trades = await fetch_trades(session, account, symbol=symbol)
        except SQLAlchemyError:
            logger.exception("Profitable trades lookup failed for %s", symbol)
            query_metrics.store_error("voice", "profitable_trades")
            return VoiceResponse(response="Sorry, there was an error getting the profitable trades.")

        records = [t.to_record() for t in trades]
        buys = [r for r in records if r.trade_type is TradeType.BUY]
        sells = [r for r in records if r.trade_type is TradeType.SELL]
        if not buys or not sells:
            return VoiceResponse(
                response=(
                    f"No matched buy/sell pairs found for {symbol}. "
                    "You may have open positions that haven't been sold yet."
                )
            )

        with trace_span("fifo.match", {"trade.symbol": symbol, "trade.buys": len(buys), "trade.sells": len(sells)}):
            pairs = match_fifo(buys, sells)
        query_metrics.matched_pairs("voice", pairs)
        summary = summarize_profits(pairs, limit=settings.profitable_trades_limit)
        if summary.profitable_count == 0:
            if summary.matched_count:
                return VoiceResponse(
                    response=(
                        f"No profitable trades found for {symbol}. You have {plural(summary.matched_count, 'matched trade')} "
                        f"with a total loss of {format_currency(abs(summary.matched_total))}."
                    )
                )
            return VoiceResponse(response=f"No profitable trades found for {symbol}.")

        parts = [
            f"Found {plural(summary.profitable_count, 'profitable trade')} for {symbol} "
            f"with a total profit of {format_currency(summary.total_profit)}."
        ]
        for index, pair in enumerate(summary.top, start=1):
            parts.append(
                f"Trade {index}: {pair.security_type.label}, "
                f"bought {clock.format_calendar_date(pair.buy_date)} at {format_currency(pair.buy_price)}, "
                f"sold {clock.format_calendar_date(pair.sell_date)} at {format_currency(pair.sell_price)}, "
                f"profit {format_currency(pair.profit_loss)}."
            )
        return VoiceResponse(response=" ".join(parts))

    @router.post("/trade-summary", response_model=VoiceResponse)
    async def trade_summary(
        payload: dict[str, Any] = Body(...),
        session: AsyncSession = Depends(database.get_session),
    ) -> VoiceResponse:
        raw_symbol = get_param(payload, "symbol")
        if not raw_symbol:
            return VoiceResponse(response=SYMBOL_PROMPT)
        symbol = normalize_symbol(str(raw_symbol))
        try:
            trades = await fetch_trades(session, account, symbol=symbol)
        except SQLAlchemyError:
            logger.exception("Trade summary lookup failed for %s", symbol)
            query_metrics.store_error("voice", "trade_summary")
            return VoiceResponse(response="Sorry, there was an error looking up the trade summary.")

        stocks, options = split_by_security(trades)
        if not trades:
            return VoiceResponse(response=f"No trades found for {symbol}.")
        return VoiceResponse(
            response=(
                f"For {symbol}: Found {plural(len(stocks), 'stock trade')} and "
                f"{plural(len(options), 'option trade')}. Total: {plural(len(trades), 'trade')}."
            ),
            data={"symbol": symbol, "stock_count": len(stocks), "option_count": len(options)},
        )

    @router.post("/trade-stats", response_model=VoiceResponse)
    async def trade_stats(
        payload: dict[str, Any] = Body(...),
        session: AsyncSession = Depends(database.get_session),
    ) -> VoiceResponse:
        raw_symbol = get_param(payload, "symbol")
        if not raw_symbol:
            return VoiceResponse(response=SYMBOL_PROMPT)
        symbol = normalize_symbol(str(raw_symbol))
        side = _side(get_param(payload, "trade_type"))
        user_year = clock.today().year
        demo_year = clock.demo_year()
        try:
            trades = await fetch_trades(
                session,
                account,
                symbol=symbol,
                start=date(demo_year, 1, 1),
                end=date(demo_year, 12, 31),
                trade_type=side,
                security_type=SecurityType.STOCK,
                newest_first=True,
            )
        except SQLAlchemyError:
            logger.exception("Trade stats lookup failed for %s", symbol)
            query_metrics.store_error("voice", "trade_stats")
            return VoiceResponse(response="Sorry, there was an error getting the trade statistics.")

        side_noun = {TradeType.BUY: "buy ", TradeType.SELL: "sell "}.get(side, "")
        stats = price_stats(trades)
        if stats is None:
            return VoiceResponse(response=f"No {side_noun}trades found for {symbol} in {user_year}.")

        verb = {TradeType.BUY: "bought", TradeType.SELL: "sold"}.get(side, "traded")
        high, low = stats.highest_trade, stats.lowest_trade
        response = (
            f"{symbol} trade statistics for {user_year}: "
            f"Highest price {verb}: {format_currency(stats.highest)} on {clock.format_calendar_date(high.date)} "
            f"for {format_number(high.quantity)} shares. "
            f"Lowest price {verb}: {format_currency(stats.lowest)} on {clock.format_calendar_date(low.date)} "
            f"for {format_number(low.quantity)} shares. "
            f"Average price: {format_currency(stats.average)}. "
            f"Total: {format_number(stats.count)} trades, {format_number(stats.total_quantity)} shares, "
            f"{format_currency(stats.total_value)} total value."
        )
        return VoiceResponse(response=response)

    @router.post("/detailed-trades", response_model=VoiceResponse)
    async def detailed_trades(
        payload: dict[str, Any] = Body(...),
        session: AsyncSession = Depends(database.get_session),
    ) -> VoiceResponse:
        raw_symbol = get_param(payload, "symbol")
        if not raw_symbol:
            return VoiceResponse(response=SYMBOL_PROMPT)
        symbol = normalize_symbol(str(raw_symbol))
        try:
            trades = await fetch_trades(session, account, symbol=symbol, newest_first=True)
        except SQLAlchemyError:
            logger.exception("Detailed trades lookup failed for %s", symbol)
            query_metrics.store_error("voice", "detailed_trades")
            return VoiceResponse(response="Sorry, there was an error getting the detailed trades.")
        if not trades:
            return VoiceResponse(response=f"No trades found for {symbol}.")

        stocks, options = split_by_security(trades)
        stock_buys = [t for t in stocks if t.trade_type.upper() == TradeType.BUY.value]
        shares_bought = sum((t.quantity for t in stock_buys), Decimal("0"))
        total_cost = total_abs_net(stock_buys)
        last_price = stocks[0].price if stocks else Decimal("0")
        current_value = shares_bought * last_price
        profit_loss = current_value - total_cost
        pct = (profit_loss / total_cost * 100) if total_cost > 0 else Decimal("0")

        lines = [
            f"Detailed {symbol} trades:",
            f"Total shares purchased: {format_number(shares_bought)}",
            f"Total cost: {format_currency(total_cost)}",
            f"Current estimated value: {format_currency(current_value)}",
            f"Profit/Loss: {format_currency(profit_loss)} ({pct:.2f}%)",
            f"Stock trades: {len(stocks)}, Option trades: {len(options)}",
        ]
        return VoiceResponse(response="\n".join(lines))

    @router.post("/fees", response_model=VoiceResponse)
    async def fees(
        payload: dict[str, Any] = Body(...),
        session: AsyncSession = Depends(database.get_session),
    ) -> VoiceResponse:
        fee_type = get_param(payload, "fee_type")
        time_period = str(get_param(payload, "time_period") or "this month")
        raw_symbol = get_param(payload, "symbol")
        if fee_type not in FEE_KINDS:
            return VoiceResponse(
                response=(
                    "Please specify what type of fee you want to look up: "
                    "commissions, credit interest, debit interest, or locate fees."
                )
            )

        parsed = parser.parse(time_period)
        query_metrics.time_expression("voice", parsed)
        window = fee_window(clock, parsed)
        start, end, period_text = window.start, window.end, window.description

        symbol = normalize_symbol(str(raw_symbol)) if raw_symbol else None
        try:
            if fee_type == "commission":
                rows = await fetch_trades(session, account, start=start, end=end)
                total = sum((Decimal(r.commission or 0) for r in rows), Decimal("0"))
            else:
                rows = await fetch_fees(
                    session,
                    account,
                    FEE_TABLE_TYPES[fee_type],
                    start=start,
                    end=end,
                    symbol=symbol if fee_type == "locate_fee" else None,
                )
                total = sum((Decimal(r.amount or 0) for r in rows), Decimal("0"))
        except SQLAlchemyError:
            logger.exception("Fee lookup failed for %s", fee_type)
            query_metrics.store_error("voice", "fees")
            return VoiceResponse(response="Sorry, there was an error retrieving your fee information.")

        symbol_text = f" for stock {symbol}" if symbol and fee_type == "locate_fee" else ""
        if not rows:
            label = fee_type.replace("_", " ")
            return VoiceResponse(response=f"No {label} data found{symbol_text} for {period_text}.")

        amount = format_currency(abs(total))
        count = len(rows)
        if fee_type == "commission":
            response = f"The total commission you paid for {period_text} is {amount} across {plural(count, 'trade')}."
        elif fee_type == "credit_interest":
            response = f"The total credit interest you earned for {period_text} is {amount} across {plural(count, 'transaction')}."
        elif fee_type == "debit_interest":
            response = f"The total debit interest you paid for {period_text} is {amount} across {plural(count, 'transaction')}."
        else:
            response = f"The total locate fees you paid{symbol_text} for {period_text} is {amount} across {plural(count, 'transaction')}."
        return VoiceResponse(response=response)

    @router.post("/account-balance", response_model=VoiceResponse)
    async def account_balance(
        payload: dict[str, Any] = Body(...),
        session: AsyncSession = Depends(database.get_session),
    ) -> VoiceResponse:
        logger.info("Account balance request: %s", payload)
        query_type = str(get_param(payload, "query_type") or "account_summary").strip().lower()
        if query_type not in BALANCE_QUERY_TYPES:
            query_type = "account_summary"
        apology = "Sorry, there was an error retrieving your account balance."

        if query_type in TREND_QUERY_FIELDS:
            raw_period = get_param(payload, "time_period")
            window = balance_window(parser, clock, str(raw_period) if raw_period else None)
            try:
                rows = await fetch_balances(session, account, start=window.start, end=window.end)
            except SQLAlchemyError:
                logger.exception("Balance trend lookup failed for %s", query_type)
                query_metrics.store_error("voice", "account_balance")
                return VoiceResponse(response=apology)
            trend = balance_trend(rows, TREND_QUERY_FIELDS[query_type])
            if trend is None:
                return VoiceResponse(response=f"No balance data found for {window.description}.")
            kind = "debit" if query_type == "debit_balances" else "credit"
            return VoiceResponse(
                response=(
                    f"Your {kind} balance for {window.description}: "
                    f"Average: {format_currency(trend.average)}, "
                    f"Highest: {format_currency(trend.highest)} on {clock.format_calendar_date(trend.highest_row.date)}, "
                    f"Lowest: {format_currency(trend.lowest)} on {clock.format_calendar_date(trend.lowest_row.date)}."
                ),
                data={
                    "query_type": query_type,
                    "period": window.description,
                    "snapshots": trend.count,
                    "average": to_cents(trend.average),
                    "highest": to_cents(trend.highest),
                    "lowest": to_cents(trend.lowest),
                },
            )

        try:
            latest = await fetch_latest_balance(session, account)
        except SQLAlchemyError:
            logger.exception("Latest balance lookup failed")
            query_metrics.store_error("voice", "account_balance")
            return VoiceResponse(response=apology)
        if latest is None:
            return VoiceResponse(response="No account balance data found.")
        return VoiceResponse(
            response=_balance_sentence(query_type, latest, clock.format_calendar_date(latest.date)),
            data={"query_type": query_type, "date": latest.date.isoformat(), **latest.to_dict()},
        )

    return router


__all__ = ["get_param", "get_voice_router"]
