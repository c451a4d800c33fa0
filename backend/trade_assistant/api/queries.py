"""Row-store reads used by the request handlers."""

from __future__ import annotations

from datetime import date
from typing import Optional, Sequence

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..models import SecurityType, TradeType
from .models import AccountBalance, FeeAndInterest, TradeData


async def fetch_trades(
    session: AsyncSession,
    account_code: str,
    *,
    symbol: Optional[str] = None,
    start: Optional[date] = None,
    end: Optional[date] = None,
    trade_type: Optional[TradeType] = None,
    security_type: Optional[SecurityType] = None,
    newest_first: bool = False,
) -> Sequence[TradeData]:
    """Return trades for one account filtered by the given predicates.

    A symbol matches either the traded symbol or the option's underlying.
    Rows are ordered by ``(date, trade_id)`` so ties resolve deterministically.
    """

    stmt = select(TradeData).where(TradeData.account_code == account_code)
    if symbol:
        stmt = stmt.where(or_(TradeData.symbol == symbol, TradeData.underlying_symbol == symbol))
    if start is not None:
        stmt = stmt.where(TradeData.date >= start)
    if end is not None:
        stmt = stmt.where(TradeData.date <= end)
    if trade_type is not None:
        stmt = stmt.where(func.upper(TradeData.trade_type) == trade_type.value)
    if security_type is not None:
        stmt = stmt.where(TradeData.security_type == security_type.value)
    if newest_first:
        stmt = stmt.order_by(TradeData.date.desc(), TradeData.trade_id.desc())
    else:
        stmt = stmt.order_by(TradeData.date.asc(), TradeData.trade_id.asc())
    result = await session.execute(stmt)
    return result.scalars().all()


async def fetch_fees(
    session: AsyncSession,
    account_code: str,
    fee_type: str,
    *,
    start: date,
    end: date,
    symbol: Optional[str] = None,
    newest_first: bool = False,
) -> Sequence[FeeAndInterest]:
    stmt = (
        select(FeeAndInterest)
        .where(FeeAndInterest.account_code == account_code)
        .where(FeeAndInterest.type == fee_type)
        .where(FeeAndInterest.date >= start)
        .where(FeeAndInterest.date <= end)
    )
    if symbol:
        stmt = stmt.where(FeeAndInterest.symbol == symbol)
    if newest_first:
        stmt = stmt.order_by(FeeAndInterest.date.desc(), FeeAndInterest.id.desc())
    else:
        stmt = stmt.order_by(FeeAndInterest.date.asc(), FeeAndInterest.id.asc())
    result = await session.execute(stmt)
    return result.scalars().all()


async def fetch_balances(
    session: AsyncSession,
    account_code: str,
    *,
    start: Optional[date] = None,
    end: Optional[date] = None,
) -> Sequence[AccountBalance]:
    """Balance snapshots for one account, newest first."""

    stmt = select(AccountBalance).where(AccountBalance.account_code == account_code)
    if start is not None:
        stmt = stmt.where(AccountBalance.date >= start)
    if end is not None:
        stmt = stmt.where(AccountBalance.date <= end)
    stmt = stmt.order_by(AccountBalance.date.desc(), AccountBalance.id.desc())
    result = await session.execute(stmt)
    return result.scalars().all()


async def fetch_latest_balance(session: AsyncSession, account_code: str) -> Optional[AccountBalance]:
    stmt = (
        select(AccountBalance)
        .where(AccountBalance.account_code == account_code)
        .order_by(AccountBalance.date.desc(), AccountBalance.id.desc())
        .limit(1)
    )
    result = await session.execute(stmt)
    return result.scalars().first()


__all__ = ["fetch_balances", "fetch_fees", "fetch_latest_balance", "fetch_trades"]
