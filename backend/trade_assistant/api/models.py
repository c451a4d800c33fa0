"""ORM models for the demo brokerage tables."""

from __future__ import annotations

import datetime as dt
from decimal import Decimal
from typing import Optional

from sqlalchemy import Date, Index, Integer, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column

from ..models import SecurityType, TradeRecord, TradeType
from .database import Base

# Caller-facing fee kinds mapped to `fees_and_interest.type` values.
FEE_TABLE_TYPES = {
    "credit_interest": "CreditInt",
    "debit_interest": "DebitInt",
    "locate_fee": "LocateFee",
}
FEE_KINDS = ("commission", *FEE_TABLE_TYPES)

# Balance questions answered from the newest snapshot, and those averaged over a window.
SNAPSHOT_QUERY_TYPES = (
    "account_summary",
    "cash_balance",
    "buying_power",
    "nlv",
    "overnight_margin",
    "market_value",
)
TREND_QUERY_FIELDS = {
    "debit_balances": "debit_balance",
    "credit_balances": "credit_balance",
}
BALANCE_QUERY_TYPES = (*SNAPSHOT_QUERY_TYPES, *TREND_QUERY_FIELDS)


def _dec(value: Optional[Decimal]) -> Decimal:
    return Decimal(value) if value is not None else Decimal("0")


class TradeData(Base):
    __tablename__ = "trade_data"
    __table_args__ = (
        Index("ix_trade_data_account_date", "account_code", "date"),
        Index("ix_trade_data_symbol", "symbol"),
        Index("ix_trade_data_underlying_symbol", "underlying_symbol"),
    )

    trade_id: Mapped[int] = mapped_column(Integer, primary_key=True)
    account_code: Mapped[str] = mapped_column(String(16))
    date: Mapped[dt.date] = mapped_column(Date)
    symbol: Mapped[str] = mapped_column(String(32))
    underlying_symbol: Mapped[Optional[str]] = mapped_column(String(16), nullable=True)
    security_type: Mapped[str] = mapped_column(String(1))
    trade_type: Mapped[str] = mapped_column(String(1))
    stock_share_qty: Mapped[Optional[Decimal]] = mapped_column(Numeric(18, 4), nullable=True)
    stock_trade_price: Mapped[Optional[Decimal]] = mapped_column(Numeric(18, 6), nullable=True)
    option_contracts: Mapped[Optional[Decimal]] = mapped_column(Numeric(18, 4), nullable=True)
    option_trade_premium: Mapped[Optional[Decimal]] = mapped_column(Numeric(18, 6), nullable=True)
    strike: Mapped[Optional[Decimal]] = mapped_column(Numeric(18, 4), nullable=True)
    call_put: Mapped[Optional[str]] = mapped_column(String(1), nullable=True)
    net_amount: Mapped[Decimal] = mapped_column(Numeric(18, 2), default=Decimal("0"))
    commission: Mapped[Decimal] = mapped_column(Numeric(18, 4), default=Decimal("0"))

    @property
    def is_stock(self) -> bool:
        return self.security_type == SecurityType.STOCK.value

    @property
    def quantity(self) -> Decimal:
        """Shares for stock trades, contracts for option trades."""

        return _dec(self.stock_share_qty if self.is_stock else self.option_contracts)

    @property
    def price(self) -> Decimal:
        """Per-share price for stock trades, per-contract premium for options."""

        return _dec(self.stock_trade_price if self.is_stock else self.option_trade_premium)

    def to_record(self) -> TradeRecord:
        return TradeRecord(
            id=self.trade_id,
            date=self.date,
            security_type=SecurityType(self.security_type),
            trade_type=TradeType(self.trade_type.upper()),
            quantity=self.quantity,
            price=self.price,
            net_amount=_dec(self.net_amount),
            symbol=self.symbol,
        )

    @property
    def option_right(self) -> Optional[str]:
        """``"Call"`` or ``"Put"`` for option trades that record it."""

        return {"C": "Call", "P": "Put"}.get((self.call_put or "").upper())

    def to_dict(self) -> dict:
        return {
            "trade_id": self.trade_id,
            "date": self.date.isoformat(),
            "symbol": self.symbol,
            "underlying_symbol": self.underlying_symbol,
            "security_type": self.security_type,
            "trade_type": self.trade_type,
            "quantity": float(self.quantity),
            "price": float(self.price),
            "net_amount": float(_dec(self.net_amount)),
            "commission": float(_dec(self.commission)),
        }


class FeeAndInterest(Base):
    __tablename__ = "fees_and_interest"
    __table_args__ = (Index("ix_fees_and_interest_account_date", "account_code", "date"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    account_code: Mapped[str] = mapped_column(String(16))
    date: Mapped[dt.date] = mapped_column(Date)
    type: Mapped[str] = mapped_column(String(16))
    symbol: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    amount: Mapped[Decimal] = mapped_column(Numeric(18, 2), default=Decimal("0"))




class AccountBalance(Base):
    """End-of-day balance snapshot for one account."""

    __tablename__ = "account_balance"
    __table_args__ = (Index("ix_account_balance_account_date", "account_code", "date"),)

    AMOUNT_FIELDS = (
        "cash_balance",
        "account_equity",
        "day_trading_bp",
        "stock_lmv",
        "stock_smv",
        "options_lmv",
        "options_smv",
        "credit_balance",
        "debit_balance",
        "house_requirement",
        "house_excess_deficit",
        "fed_requirement",
        "fed_excess_deficit",
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    account_code: Mapped[str] = mapped_column(String(16))
    date: Mapped[dt.date] = mapped_column(Date)
    cash_balance: Mapped[Decimal] = mapped_column(Numeric(18, 2), default=Decimal("0"))
    account_equity: Mapped[Decimal] = mapped_column(Numeric(18, 2), default=Decimal("0"))
    day_trading_bp: Mapped[Decimal] = mapped_column(Numeric(18, 2), default=Decimal("0"))
    stock_lmv: Mapped[Decimal] = mapped_column(Numeric(18, 2), default=Decimal("0"))
    stock_smv: Mapped[Decimal] = mapped_column(Numeric(18, 2), default=Decimal("0"))
    options_lmv: Mapped[Decimal] = mapped_column(Numeric(18, 2), default=Decimal("0"))
    options_smv: Mapped[Decimal] = mapped_column(Numeric(18, 2), default=Decimal("0"))
    credit_balance: Mapped[Decimal] = mapped_column(Numeric(18, 2), default=Decimal("0"))
    debit_balance: Mapped[Decimal] = mapped_column(Numeric(18, 2), default=Decimal("0"))
    house_requirement: Mapped[Decimal] = mapped_column(Numeric(18, 2), default=Decimal("0"))
    house_excess_deficit: Mapped[Decimal] = mapped_column(Numeric(18, 2), default=Decimal("0"))
    fed_requirement: Mapped[Decimal] = mapped_column(Numeric(18, 2), default=Decimal("0"))
    fed_excess_deficit: Mapped[Decimal] = mapped_column(Numeric(18, 2), default=Decimal("0"))

    def amount(self, name: str) -> Decimal:
        return _dec(getattr(self, name))

    def to_dict(self) -> dict:
        return {name: float(self.amount(name)) for name in self.AMOUNT_FIELDS}


__all__ = [
    "BALANCE_QUERY_TYPES",
    "FEE_KINDS",
    "FEE_TABLE_TYPES",
    "SNAPSHOT_QUERY_TYPES",
    "TREND_QUERY_FIELDS",
    "AccountBalance",
    "FeeAndInterest",
    "TradeData",
]
