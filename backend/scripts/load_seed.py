"""Load a demo trades fixture into the trade store."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
from decimal import Decimal
from pathlib import Path
from typing import Any

from trade_assistant.api.database import Database
from trade_assistant.api.models import AccountBalance, FeeAndInterest, TradeData
from trade_assistant.clock import parse_date
from trade_assistant.config import get_settings
from trade_assistant.logging_setup import setup_logging

logger = logging.getLogger(__name__)

DEFAULT_SEED = Path(__file__).with_name("demo_trades.json")

_DECIMAL_FIELDS = (
    "stock_share_qty",
    "stock_trade_price",
    "option_contracts",
    "option_trade_premium",
    "net_amount",
    "commission",
    "strike",
)


def _trade(row: dict[str, Any], account_code: str) -> TradeData:
    values = {key: Decimal(str(row[key])) for key in _DECIMAL_FIELDS if row.get(key) is not None}
    return TradeData(
        trade_id=row["trade_id"],
        account_code=row.get("account_code", account_code),
        date=parse_date(row["date"]),
        symbol=row["symbol"],
        underlying_symbol=row.get("underlying_symbol"),
        security_type=row["security_type"],
        trade_type=row["trade_type"],
        call_put=row.get("call_put"),
        **values,
    )


def _fee(row: dict[str, Any], account_code: str) -> FeeAndInterest:
    return FeeAndInterest(
        account_code=row.get("account_code", account_code),
        date=parse_date(row["date"]),
        type=row["type"],
        symbol=row.get("symbol"),
        amount=Decimal(str(row["amount"])),
    )


def _balance(row: dict[str, Any], account_code: str) -> AccountBalance:
    amounts = {name: Decimal(str(row.get(name) or 0)) for name in AccountBalance.AMOUNT_FIELDS}
    return AccountBalance(
        account_code=row.get("account_code", account_code),
        date=parse_date(row["date"]),
        **amounts,
    )


async def load_seed(database: Database, payload: dict[str, Any], account_code: str) -> tuple[int, int, int]:
    """Create the tables if needed and insert every trade, fee and balance row."""

    await database.create_all()
    trades = [_trade(row, account_code) for row in payload.get("trades", [])]
    fees = [_fee(row, account_code) for row in payload.get("fees", [])]
    balances = [_balance(row, account_code) for row in payload.get("balances", [])]
    async with database.session() as session:
        session.add_all([*trades, *fees, *balances])
        await session.commit()
    return len(trades), len(fees), len(balances)


async def _run(seed_path: Path, database_url: str | None) -> None:
    settings = get_settings()
    database = Database(database_url or settings.database_url)
    try:
        payload = json.loads(seed_path.read_text())
        trade_count, fee_count, balance_count = await load_seed(database, payload, settings.account_code)
        logger.info(
            "Loaded %d trades, %d fee rows and %d balance snapshots from %s",
            trade_count,
            fee_count,
            balance_count,
            seed_path,
        )
    finally:
        await database.dispose()


def main() -> None:
    parser = argparse.ArgumentParser(description="Load demo trades into the trade assistant database")
    parser.add_argument("seed_file", nargs="?", default=str(DEFAULT_SEED))
    parser.add_argument("--database-url", default=None, help="Override DATABASE_URL")
    args = parser.parse_args()
    seed_path = Path(args.seed_file)
    if not seed_path.exists():
        raise SystemExit(f"Seed file not found: {seed_path}")
    setup_logging()
    asyncio.run(_run(seed_path, args.database_url))


if __name__ == "__main__":
    main()
