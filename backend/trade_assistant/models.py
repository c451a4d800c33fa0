"""Domain models shared by the date helpers, the matcher and the API."""
from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Literal, Optional


class SecurityType(str, Enum):
    STOCK = "S"
    OPTION = "O"

    @property
    def label(self) -> str:
        return "Stock" if self is SecurityType.STOCK else "Option"


class TradeType(str, Enum):
    BUY = "B"
    SELL = "S"

    @classmethod
    def from_text(cls, value: str) -> "TradeType":
        """Map loose input such as ``"sell"``, ``"sold"`` or ``"B"`` to a trade type."""

        return cls.SELL if value.strip().lower().startswith("s") else cls.BUY


@dataclass(frozen=True)
class TradeRecord:
    """A single executed trade as read from the trade store."""

    id: int
    date: date
    security_type: SecurityType
    trade_type: TradeType
    quantity: Decimal
    price: Decimal
    net_amount: Decimal
    symbol: str = ""


@dataclass(frozen=True)
class MatchedTradePair:
    """A buy lot closed by a later (or same-day) sell."""

    security_type: SecurityType
    buy_id: int
    sell_id: int
    buy_date: date
    sell_date: date
    quantity: Decimal
    buy_price: Decimal
    sell_price: Decimal
    profit_loss: Decimal
    buy_net_amount: Decimal = Decimal("0")
    sell_net_amount: Decimal = Decimal("0")

    @property
    def net_profit_loss(self) -> Decimal:
        """Profit computed from settlement amounts (buy net amount is negative)."""

        return self.sell_net_amount + self.buy_net_amount


@dataclass(frozen=True)
class DateRange:
    """An inclusive date range already expressed in demo-database coordinates."""

    start_date: str
    end_date: str
    description: str
    day_count: int


@dataclass(frozen=True)
class ParsedTimeQuery:
    kind: Literal["specific", "range"]
    date_range: DateRange
    day_of_week_name: Optional[str] = None

    @property
    def is_specific(self) -> bool:
        return self.kind == "specific"
