"""Structured endpoints backing the web dashboard."""

from __future__ import annotations

import logging
from datetime import date
from decimal import Decimal
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ..clock import DemoClock, parse_date
from ..config import AppSettings
from ..date_parser import TimeExpressionParser
from ..matching import match_fifo, summarize_profits
from ..models import DateRange, SecurityType, TradeType
from ..symbols import normalize_symbol
from ..telemetry import QueryMetrics, trace_span
from .database import Database
from .models import BALANCE_QUERY_TYPES, FEE_KINDS, FEE_TABLE_TYPES, TREND_QUERY_FIELDS
from .periods import balance_window, fee_window, parsed_window
from .queries import fetch_balances, fetch_fees, fetch_latest_balance, fetch_trades
from .schemas import (
    AccountBalanceRequest,
    AccountBalanceResponse,
    AveragePriceRequest,
    AveragePriceResponse,
    BalanceSnapshotSchema,
    BalanceTrendSchema,
    FeeRowSchema,
    FeesRequest,
    FeesResponse,
    MatchedTradeSchema,
    OptionStatsResponse,
    OptionStatsSchema,
    ProfitableTradesResponse,
    StatsRequest,
    SymbolRequest,
    TimePeriodSchema,
    TimeTradesRequest,
    TimeTradesResponse,
    TimeTradesSummarySchema,
    TradeRowSchema,
    TradeStatsResponse,
    TradeStatsSchema,
)
from .summaries import (
    average_price,
    balance_trend,
    dominant_trade_type,
    price_stats,
    split_by_security,
    to_cents,
    total_abs_net,
)

logger = logging.getLogger(__name__)

FEE_BREAKDOWN_ROWS = 10


def _store_unavailable() -> HTTPException:
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Trade store unavailable")


def _side_filter(trade_type: Optional[str]) -> tuple[Optional[TradeType], str]:
    """Trade-side filter plus its label; missing or ``"all"`` means no filter."""

    text = (trade_type or "").strip().lower()
    if not text or text == "all":
        return None, "all"
    side = TradeType.from_text(text)
    return side, "buy" if side is TradeType.BUY else "sell"


def get_ui_router(database: Database, settings: AppSettings, clock: DemoClock) -> APIRouter:
    router = APIRouter(prefix="/ui", tags=["ui"])
    parser = TimeExpressionParser(clock)
    query_metrics = QueryMetrics()
    account = settings.account_code

    def _explicit_range(start_text: str, end_text: str) -> DateRange:
        start, end = parse_date(start_text), parse_date(end_text)
        if start > end:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="start_date must not be after end_date")
        return DateRange(
            start_date=start.isoformat(),
            end_date=end.isoformat(),
            description=clock.format_range(start, end),
            day_count=(end - start).days + 1,
        )

    @router.post("/time-trades", response_model=TimeTradesResponse)
    async def time_trades(
        request: TimeTradesRequest,
        session: AsyncSession = Depends(database.get_session),
    ) -> TimeTradesResponse:
        if request.start_date and request.end_date:
            period = _explicit_range(request.start_date, request.end_date)
        elif request.time_period:
            parsed = parser.parse(request.time_period)
            query_metrics.time_expression("ui", parsed)
            if parsed is None:
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail=f"Invalid time period: {request.time_period}",
                )
            period = parsed.date_range
        else:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Time period is required")

        symbol = normalize_symbol(request.symbol) if request.symbol else None
        try:
            trades = await fetch_trades(
                session,
                account,
                symbol=symbol,
                start=parse_date(period.start_date),
                end=parse_date(period.end_date),
                newest_first=True,
            )
        except SQLAlchemyError as exc:
            logger.exception("UI time trades lookup failed")
            query_metrics.store_error("ui", "time_trades")
            raise _store_unavailable() from exc

        stocks, options = split_by_security(trades)
        avg = average_price(stocks)
        return TimeTradesResponse(
            time_period=TimePeriodSchema(
                description=period.description,
                display_range=clock.format_range(period.start_date, period.end_date),
                day_count=period.day_count,
                start_date=period.start_date,
                end_date=period.end_date,
            ),
            summary=TimeTradesSummarySchema(
                total_trades=len(trades),
                stock_count=len(stocks),
                option_count=len(options),
                total_value=to_cents(total_abs_net(trades)),
                average_price=to_cents(avg) if avg is not None else 0.0,
            ),
            trades=[TradeRowSchema(**t.to_dict(), display_date=clock.format_relative(t.date)) for t in trades],
            symbol=symbol,
        )

    @router.post("/profitable-trades", response_model=ProfitableTradesResponse)
    async def profitable_trades(
        request: SymbolRequest,
        session: AsyncSession = Depends(database.get_session),
    ) -> ProfitableTradesResponse:
        if not request.symbol:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Symbol is required")
        symbol = normalize_symbol(request.symbol)
        try:
            trades = await fetch_trades(session, account, symbol=symbol)
        except SQLAlchemyError as exc:
            logger.exception("UI profitable trades lookup failed for %s", symbol)
            query_metrics.store_error("ui", "profitable_trades")
            raise _store_unavailable() from exc

        records = [t.to_record() for t in trades]
        buys = [r for r in records if r.trade_type is TradeType.BUY]
        sells = [r for r in records if r.trade_type is TradeType.SELL]
        with trace_span("fifo.match", {"trade.symbol": symbol, "trade.buys": len(buys), "trade.sells": len(sells)}):
            pairs = match_fifo(buys, sells)
        query_metrics.matched_pairs("ui", pairs)
        summary = summarize_profits(pairs, limit=settings.profitable_trades_limit)
        return ProfitableTradesResponse(
            symbol=symbol,
            total_profitable_trades=summary.profitable_count,
            total_profit=to_cents(summary.total_profit),
            trades=[
                MatchedTradeSchema(
                    security_type=pair.security_type.label,
                    buy_date=pair.buy_date.isoformat(),
                    sell_date=pair.sell_date.isoformat(),
                    quantity=float(pair.quantity),
                    buy_price=float(pair.buy_price),
                    sell_price=float(pair.sell_price),
                    profit_loss=to_cents(pair.profit_loss),
                )
                for pair in summary.top
            ],
        )

    @router.post("/average-price", response_model=AveragePriceResponse)
    async def average_price_endpoint(
        request: AveragePriceRequest,
        session: AsyncSession = Depends(database.get_session),
    ) -> AveragePriceResponse:
        if not request.symbol:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Symbol is required")
        symbol = normalize_symbol(request.symbol)
        side, trade_type = _side_filter(request.trade_type)

        parsed = parser.parse(request.time_period) if request.time_period else None
        if parsed is not None:
            start, end = parse_date(parsed.date_range.start_date), parse_date(parsed.date_range.end_date)
            period_text = parsed.date_range.description
        else:
            year = clock.demo_year()
            start, end = date(year, 1, 1), date(year, 12, 31)
            period_text = str(clock.today().year)

        try:
            trades = await fetch_trades(
                session,
                account,
                symbol=symbol,
                start=start,
                end=end,
                trade_type=side,
                security_type=SecurityType.STOCK,
            )
        except SQLAlchemyError as exc:
            logger.exception("UI average price lookup failed for %s", symbol)
            query_metrics.store_error("ui", "average_price")
            raise _store_unavailable() from exc

        stats = price_stats(trades)
        if stats is None:
            return AveragePriceResponse(
                symbol=symbol,
                time_period=period_text,
                trade_type=trade_type,
                message=f"No {'' if side is None else trade_type + ' '}trades found for {symbol} in {period_text}.",
            )
        if side is None:
            trade_type = dominant_trade_type(trades)
        return AveragePriceResponse(
            symbol=symbol,
            time_period=period_text,
            trade_type=trade_type,
            average_price=to_cents(stats.average),
            highest_price=to_cents(stats.highest),
            lowest_price=to_cents(stats.lowest),
            total_trades=stats.count,
            total_shares=float(stats.total_quantity or Decimal("0")),
        )

    def _stats_year(year: Optional[int]) -> tuple[int, date, date]:
        user_year = year or clock.today().year
        demo_year = clock.demo_year(user_year)
        return user_year, date(demo_year, 1, 1), date(demo_year, 12, 31)

    @router.post("/trade-stats", response_model=TradeStatsResponse)
    async def trade_stats(
        request: StatsRequest,
        session: AsyncSession = Depends(database.get_session),
    ) -> TradeStatsResponse:
        if not request.symbol:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Symbol is required")
        symbol = normalize_symbol(request.symbol)
        side, side_label = _side_filter(request.trade_type)
        user_year, start, end = _stats_year(request.year)
        period_text = None
        if request.time_period:
            parsed = parser.parse(request.time_period)
            query_metrics.time_expression("ui", parsed)
            if parsed is not None:
                window = parsed_window(parsed)
                start, end, period_text = window.start, window.end, window.description

        try:
            trades = await fetch_trades(
                session,
                account,
                symbol=symbol,
                start=start,
                end=end,
                trade_type=side,
                security_type=SecurityType.STOCK,
                newest_first=True,
            )
        except SQLAlchemyError as exc:
            logger.exception("UI trade stats lookup failed for %s", symbol)
            query_metrics.store_error("ui", "trade_stats")
            raise _store_unavailable() from exc

        response = TradeStatsResponse(symbol=symbol, year=user_year, trade_type=side_label, time_period=period_text)
        stats = price_stats(trades)
        if stats is None:
            return response
        high, low = stats.highest_trade, stats.lowest_trade
        response.stats = TradeStatsSchema(
            highest_price=to_cents(stats.highest),
            highest_price_date=clock.format_calendar_date(high.date),
            highest_price_shares=float(high.quantity),
            lowest_price=to_cents(stats.lowest),
            lowest_price_date=clock.format_calendar_date(low.date),
            lowest_price_shares=float(low.quantity),
            average_price=to_cents(stats.average),
            total_trades=stats.count,
            total_shares=float(stats.total_quantity),
            total_value=to_cents(stats.total_value),
        )
        return response

    @router.post("/option-stats", response_model=OptionStatsResponse)
    async def option_stats(
        request: StatsRequest,
        session: AsyncSession = Depends(database.get_session),
    ) -> OptionStatsResponse:
        if not request.symbol:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Symbol is required")
        symbol = normalize_symbol(request.symbol)
        side, side_label = _side_filter(request.trade_type)
        user_year, start, end = _stats_year(request.year)
        try:
            trades = await fetch_trades(
                session,
                account,
                symbol=symbol,
                start=start,
                end=end,
                trade_type=side,
                security_type=SecurityType.OPTION,
                newest_first=True,
            )
        except SQLAlchemyError as exc:
            logger.exception("UI option stats lookup failed for %s", symbol)
            query_metrics.store_error("ui", "option_stats")
            raise _store_unavailable() from exc

        response = OptionStatsResponse(symbol=symbol, year=user_year, trade_type=side_label)
        stats = price_stats(trades)
        if stats is None:
            return response
        high, low = stats.highest_trade, stats.lowest_trade
        rights = [t.option_right for t in trades]
        response.option_stats = OptionStatsSchema(
            highest_premium=to_cents(stats.highest),
            highest_premium_date=clock.format_calendar_date(high.date),
            highest_premium_contracts=float(high.quantity),
            highest_premium_strike=float(high.strike) if high.strike is not None else None,
            highest_premium_call_put=high.option_right,
            lowest_premium=to_cents(stats.lowest),
            lowest_premium_date=clock.format_calendar_date(low.date),
            lowest_premium_contracts=float(low.quantity),
            lowest_premium_strike=float(low.strike) if low.strike is not None else None,
            lowest_premium_call_put=low.option_right,
            average_premium=to_cents(stats.average),
            total_trades=stats.count,
            total_contracts=float(stats.total_quantity),
            total_value=to_cents(stats.total_value),
            call_count=rights.count("Call"),
            put_count=rights.count("Put"),
        )
        return response

    @router.post("/fees", response_model=FeesResponse)
    async def fees(
        request: FeesRequest,
        session: AsyncSession = Depends(database.get_session),
    ) -> FeesResponse:
        if request.fee_type not in FEE_KINDS:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"fee_type must be one of: {', '.join(FEE_KINDS)}",
            )
        parsed = parser.parse(request.time_period)
        query_metrics.time_expression("ui", parsed)
        window = fee_window(clock, parsed)
        symbol = normalize_symbol(request.symbol) if request.symbol else None

        try:
            if request.fee_type == "commission":
                trades = await fetch_trades(session, account, start=window.start, end=window.end, newest_first=True)
                rows = [(t.date, abs(Decimal(t.commission or 0)), t.symbol) for t in trades]
            else:
                fee_rows = await fetch_fees(
                    session,
                    account,
                    FEE_TABLE_TYPES[request.fee_type],
                    start=window.start,
                    end=window.end,
                    symbol=symbol if request.fee_type == "locate_fee" else None,
                    newest_first=True,
                )
                rows = [(f.date, abs(Decimal(f.amount or 0)), f.symbol) for f in fee_rows]
        except SQLAlchemyError as exc:
            logger.exception("UI fee lookup failed for %s", request.fee_type)
            query_metrics.store_error("ui", "fees")
            raise _store_unavailable() from exc

        return FeesResponse(
            fee_type=request.fee_type,
            time_period=window.description,
            total_amount=to_cents(sum((amount for _, amount, _ in rows), Decimal("0"))),
            transaction_count=len(rows),
            symbol=symbol if request.fee_type == "locate_fee" else None,
            breakdown=[
                FeeRowSchema(
                    date=day.isoformat(),
                    display_date=clock.format_calendar_date(day),
                    amount=to_cents(amount),
                    symbol=row_symbol,
                )
                for day, amount, row_symbol in rows[:FEE_BREAKDOWN_ROWS]
            ],
        )

    @router.post("/account-balance", response_model=AccountBalanceResponse)
    async def account_balance(
        request: AccountBalanceRequest,
        session: AsyncSession = Depends(database.get_session),
    ) -> AccountBalanceResponse:
        query_type = request.query_type.strip().lower()
        if query_type not in BALANCE_QUERY_TYPES:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"query_type must be one of: {', '.join(BALANCE_QUERY_TYPES)}",
            )
        response = AccountBalanceResponse(query_type=query_type)

        if query_type in TREND_QUERY_FIELDS:
            window = balance_window(parser, clock, request.time_period)
            try:
                rows = await fetch_balances(session, account, start=window.start, end=window.end)
            except SQLAlchemyError as exc:
                logger.exception("UI balance trend lookup failed for %s", query_type)
                query_metrics.store_error("ui", "account_balance")
                raise _store_unavailable() from exc
            trend = balance_trend(rows, TREND_QUERY_FIELDS[query_type])
            if trend is None:
                return response
            response.date = rows[0].date.isoformat()
            response.display_date = clock.format_calendar_date(rows[0].date)
            response.balance_trend = BalanceTrendSchema(
                period=window.description,
                average=to_cents(trend.average),
                highest=to_cents(trend.highest),
                highest_date=clock.format_calendar_date(trend.highest_row.date),
                lowest=to_cents(trend.lowest),
                lowest_date=clock.format_calendar_date(trend.lowest_row.date),
                snapshots=trend.count,
            )
            return response

        try:
            latest = await fetch_latest_balance(session, account)
        except SQLAlchemyError as exc:
            logger.exception("UI latest balance lookup failed")
            query_metrics.store_error("ui", "account_balance")
            raise _store_unavailable() from exc
        if latest is None:
            return response
        response.date = latest.date.isoformat()
        response.display_date = clock.format_calendar_date(latest.date)
        response.balance = BalanceSnapshotSchema(**latest.to_dict())
        return response

    return router


__all__ = ["get_ui_router"]
