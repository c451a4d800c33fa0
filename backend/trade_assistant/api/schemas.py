"""Pydantic schemas for API payloads."""

from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, Field


class VoiceResponse(BaseModel):
    response: str = Field(..., description="Sentence suitable for text-to-speech")
    data: Optional[dict[str, Any]] = None


class TimeTradesRequest(BaseModel):
    time_period: Optional[str] = Field(default=None, examples=["last week"])
    start_date: Optional[str] = Field(default=None, description="Demo-database start date (YYYY-MM-DD)")
    end_date: Optional[str] = Field(default=None, description="Demo-database end date (YYYY-MM-DD)")
    symbol: Optional[str] = Field(default=None, examples=["AAPL"])


class SymbolRequest(BaseModel):
    symbol: Optional[str] = Field(default=None, examples=["apple"])


class AveragePriceRequest(BaseModel):
    symbol: Optional[str] = Field(default=None, examples=["NVDA"])
    trade_type: Optional[str] = Field(default=None, examples=["buy", "sell", "all"])
    time_period: Optional[str] = Field(default=None, examples=["last month"])


class StatsRequest(BaseModel):
    symbol: Optional[str] = Field(default=None, examples=["NVDA"])
    trade_type: Optional[str] = Field(default=None, examples=["buy", "sell"])
    year: Optional[int] = Field(default=None, ge=1900, le=2100, description="Calendar year as the user sees it")
    time_period: Optional[str] = Field(default=None, examples=["last month"])


class FeesRequest(BaseModel):
    fee_type: str = Field(default="commission", examples=["commission", "credit_interest", "locate_fee"])
    time_period: str = Field(default="this month", examples=["last month"])
    symbol: Optional[str] = Field(default=None, description="Only applies to locate fees")


class AccountBalanceRequest(BaseModel):
    query_type: str = Field(default="account_summary", examples=["cash_balance", "debit_balances"])
    time_period: Optional[str] = Field(default=None, examples=["latest", "this month"])


class TimePeriodSchema(BaseModel):
    description: str
    display_range: str
    day_count: int
    start_date: str
    end_date: str


class TimeTradesSummarySchema(BaseModel):
    total_trades: int
    stock_count: int
    option_count: int
    total_value: float
    average_price: float


class TradeRowSchema(BaseModel):
    trade_id: int
    date: str
    display_date: str
    symbol: str
    underlying_symbol: Optional[str] = None
    security_type: str
    trade_type: str
    quantity: float
    price: float
    net_amount: float
    commission: float


class TimeTradesResponse(BaseModel):
    time_period: TimePeriodSchema
    summary: TimeTradesSummarySchema
    trades: list[TradeRowSchema]
    symbol: Optional[str] = None


class MatchedTradeSchema(BaseModel):
    security_type: str
    buy_date: str
    sell_date: str
    quantity: float
    buy_price: float
    sell_price: float
    profit_loss: float


class ProfitableTradesResponse(BaseModel):
    symbol: str
    total_profitable_trades: int
    total_profit: float
    trades: list[MatchedTradeSchema]


class AveragePriceResponse(BaseModel):
    symbol: str
    time_period: str
    trade_type: str
    average_price: Optional[float] = None
    highest_price: Optional[float] = None
    lowest_price: Optional[float] = None
    total_trades: int = 0
    total_shares: float = 0.0
    message: Optional[str] = None


class TradeStatsSchema(BaseModel):
    highest_price: float
    highest_price_date: str
    highest_price_shares: float
    lowest_price: float
    lowest_price_date: str
    lowest_price_shares: float
    average_price: float
    total_trades: int
    total_shares: float
    total_value: float


class TradeStatsResponse(BaseModel):
    symbol: str
    year: int
    trade_type: str
    time_period: Optional[str] = None
    stats: Optional[TradeStatsSchema] = None


class OptionStatsSchema(BaseModel):
    highest_premium: float
    highest_premium_date: str
    highest_premium_contracts: float
    highest_premium_strike: Optional[float] = None
    highest_premium_call_put: Optional[str] = None
    lowest_premium: float
    lowest_premium_date: str
    lowest_premium_contracts: float
    lowest_premium_strike: Optional[float] = None
    lowest_premium_call_put: Optional[str] = None
    average_premium: float
    total_trades: int
    total_contracts: float
    total_value: float
    call_count: int
    put_count: int


class OptionStatsResponse(BaseModel):
    symbol: str
    year: int
    trade_type: str
    option_stats: Optional[OptionStatsSchema] = None


class FeeRowSchema(BaseModel):
    date: str
    display_date: str
    amount: float
    symbol: Optional[str] = None


class FeesResponse(BaseModel):
    fee_type: str
    time_period: str
    total_amount: float
    transaction_count: int
    symbol: Optional[str] = None
    breakdown: list[FeeRowSchema]


class BalanceSnapshotSchema(BaseModel):
    cash_balance: float
    account_equity: float
    day_trading_bp: float
    stock_lmv: float
    stock_smv: float
    options_lmv: float
    options_smv: float
    credit_balance: float
    debit_balance: float
    house_requirement: float
    house_excess_deficit: float
    fed_requirement: float
    fed_excess_deficit: float


class BalanceTrendSchema(BaseModel):
    period: str
    average: float
    highest: float
    highest_date: str
    lowest: float
    lowest_date: str
    snapshots: int


class AccountBalanceResponse(BaseModel):
    query_type: str
    date: Optional[str] = Field(default=None, description="Demo-database date of the newest snapshot used")
    display_date: Optional[str] = None
    balance: Optional[BalanceSnapshotSchema] = None
    balance_trend: Optional[BalanceTrendSchema] = None


class HealthResponse(BaseModel):
    status: str
    service: str
    demo_anchor_date: str
    date_offset_days: int


__all__ = [
    "AccountBalanceRequest",
    "AccountBalanceResponse",
    "AveragePriceRequest",
    "AveragePriceResponse",
    "BalanceSnapshotSchema",
    "BalanceTrendSchema",
    "FeeRowSchema",
    "FeesRequest",
    "FeesResponse",
    "HealthResponse",
    "MatchedTradeSchema",
    "OptionStatsResponse",
    "OptionStatsSchema",
    "ProfitableTradesResponse",
    "StatsRequest",
    "SymbolRequest",
    "TimePeriodSchema",
    "TimeTradesRequest",
    "TimeTradesResponse",
    "TimeTradesSummarySchema",
    "TradeRowSchema",
    "TradeStatsResponse",
    "TradeStatsSchema",
    "VoiceResponse",
]
