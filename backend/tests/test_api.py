"""End-to-end handler tests against a seeded SQLite trade store."""

from __future__ import annotations

import json
from contextlib import asynccontextmanager
from pathlib import Path

from httpx import ASGITransport, AsyncClient
from sqlalchemy import text

from scripts.load_seed import DEFAULT_SEED, load_seed
from trade_assistant.api.database import Database
from trade_assistant.api.main import create_app
from trade_assistant.clock import DemoClock
from trade_assistant.config import AppSettings

ACCOUNT = "C40421"


async def _database(tmp_path: Path) -> Database:
    url = f"sqlite+aiosqlite:///{tmp_path / 'trades.db'}"
    database = Database(url=url)
    await load_seed(database, json.loads(DEFAULT_SEED.read_text()), ACCOUNT)
    return database


def _client(database: Database, clock: DemoClock):
    settings = AppSettings(database_url=database.url, account_code=ACCOUNT, telemetry_enabled=False)
    app = create_app(database, settings=settings, clock=clock)

    @asynccontextmanager
    async def _manager():
        async with app.router.lifespan_context(app):
            transport = ASGITransport(app=app)
            async with AsyncClient(transport=transport, base_url="http://test") as client:
                yield client

    return _manager


async def test_health_reports_anchor_and_offset(tmp_path: Path, fixed_clock: DemoClock):
    database = await _database(tmp_path)
    async with _client(database, fixed_clock)() as client:
        response = await client.get("/health")
    assert response.status_code == 200
    assert response.json()["demo_anchor_date"] == "2025-11-20"
    assert response.json()["date_offset_days"] == 351


async def test_voice_time_trades_for_yesterday(tmp_path: Path, fixed_clock: DemoClock):
    database = await _database(tmp_path)
    async with _client(database, fixed_clock)() as client:
        response = await client.post("/voice/time-trades", json={"time_period": "yesterday"})
    assert response.status_code == 200
    payload = response.json()
    assert payload["response"] == "You executed 1 trade yesterday. Would you like a detailed list?"
    assert payload["data"]["trades"][0]["trade_id"] == 1004
    assert payload["data"]["trades"][0]["display_date"] == "Yesterday"


async def test_voice_reads_nested_parameters(tmp_path: Path, fixed_clock: DemoClock):
    database = await _database(tmp_path)
    async with _client(database, fixed_clock)() as client:
        response = await client.post(
            "/voice/time-trades", json={"body": {"parameters": {"time_period": "last week"}}}
        )
        summary = await client.post("/voice/trade-summary", json={"parameters": {"symbol": "nvidia"}})
    payload = response.json()
    assert payload["data"]["trade_count"] == 2
    assert "1 stock trade and 1 option trade" in payload["response"]
    assert summary.json()["response"] == "For NVDA: Found 1 stock trade and 2 option trades. Total: 3 trades."


async def test_voice_time_trades_prompts_for_missing_or_unknown_period(tmp_path: Path, fixed_clock: DemoClock):
    database = await _database(tmp_path)
    async with _client(database, fixed_clock)() as client:
        missing = await client.post("/voice/time-trades", json={})
        unknown = await client.post("/voice/time-trades", json={"time_period": "xyzzy"})
    assert missing.status_code == 200
    assert missing.json()["response"].startswith("Please specify a time period.")
    assert unknown.status_code == 200
    assert "couldn't understand" in unknown.json()["response"]


async def test_voice_time_trades_with_window_beyond_the_calendar(tmp_path: Path, fixed_clock: DemoClock):
    database = await _database(tmp_path)
    async with _client(database, fixed_clock)() as client:
        response = await client.post("/voice/time-trades", json={"time_period": "last 1000000 days"})
    assert response.status_code == 200
    assert "couldn't understand the time period \"last 1000000 days\"" in response.json()["response"]


async def test_voice_profitable_trades(tmp_path: Path, fixed_clock: DemoClock):
    database = await _database(tmp_path)
    async with _client(database, fixed_clock)() as client:
        response = await client.post("/voice/profitable-trades", json={"symbol": "apple"})
        missing = await client.post("/voice/profitable-trades", json={})
    message = response.json()["response"]
    assert message.startswith("Found 1 profitable trade for AAPL with a total profit of $1,000.00.")
    assert "bought Oct 15 at $150.00" in message
    assert "sold Nov 17 at $160.00" in message
    assert missing.json()["response"] == "Please specify a stock symbol or company name."


async def test_voice_trade_stats_and_detail(tmp_path: Path, fixed_clock: DemoClock):
    database = await _database(tmp_path)
    async with _client(database, fixed_clock)() as client:
        stats = await client.post("/voice/trade-stats", json={"symbol": "apple", "trade_type": "buy"})
        detail = await client.post("/voice/detailed-trades", json={"symbol": "AAPL"})
    stats_message = stats.json()["response"]
    assert stats_message.startswith("AAPL trade statistics for 2024:")
    assert "Highest price bought: $155.00 on Oct 29 for 50 shares." in stats_message
    assert "Average price: $152.50." in stats_message
    assert "$22,750.00 total value" in stats_message
    detail_message = detail.json()["response"]
    assert "Total shares purchased: 150" in detail_message
    assert "Profit/Loss: $50.00 (0.22%)" in detail_message


async def test_voice_fees(tmp_path: Path, fixed_clock: DemoClock):
    database = await _database(tmp_path)
    async with _client(database, fixed_clock)() as client:
        credit = await client.post("/voice/fees", json={"fee_type": "credit_interest", "time_period": "last month"})
        commission = await client.post("/voice/fees", json={"fee_type": "commission"})
        invalid = await client.post("/voice/fees", json={"fee_type": "wire"})
    assert credit.json()["response"] == (
        "The total credit interest you earned for last month is $12.45 across 1 transaction."
    )
    assert commission.json()["response"] == (
        "The total commission you paid for this month is $2.65 across 3 trades."
    )
    assert invalid.json()["response"].startswith("Please specify what type of fee")


async def test_ui_time_trades(tmp_path: Path, fixed_clock: DemoClock):
    database = await _database(tmp_path)
    async with _client(database, fixed_clock)() as client:
        response = await client.post("/ui/time-trades", json={"time_period": "this month"})
    assert response.status_code == 200
    payload = response.json()
    assert payload["time_period"]["start_date"] == "2025-11-17"
    assert payload["time_period"]["end_date"] == "2025-11-20"
    assert payload["time_period"]["display_range"] == "Dec 1 - Dec 4"
    assert payload["summary"] == {
        "total_trades": 3,
        "stock_count": 2,
        "option_count": 1,
        "total_value": 12442.5,
        "average_price": 277.13,
    }
    assert [row["trade_id"] for row in payload["trades"]] == [1004, 2003, 3001]


async def test_ui_time_trades_validation(tmp_path: Path, fixed_clock: DemoClock):
    database = await _database(tmp_path)
    async with _client(database, fixed_clock)() as client:
        malformed = await client.post(
            "/ui/time-trades", json={"start_date": "2025-13-01", "end_date": "2025-11-20"}
        )
        reversed_range = await client.post(
            "/ui/time-trades", json={"start_date": "2025-11-20", "end_date": "2025-11-01"}
        )
        explicit = await client.post(
            "/ui/time-trades", json={"start_date": "2025-10-01", "end_date": "2025-10-31", "symbol": "apple"}
        )
        out_of_calendar = await client.post(
            "/ui/time-trades", json={"start_date": "0001-01-01", "end_date": "2025-11-20"}
        )
        trailing_text = await client.post(
            "/ui/time-trades", json={"start_date": "2025-11-01 garbage", "end_date": "2025-11-20"}
        )
        missing = await client.post("/ui/time-trades", json={})
        unknown = await client.post("/ui/time-trades", json={"time_period": "xyzzy"})
    assert malformed.status_code == 422
    assert out_of_calendar.status_code == 422
    assert trailing_text.status_code == 422
    assert reversed_range.status_code == 400
    assert explicit.status_code == 200
    assert explicit.json()["summary"]["total_trades"] == 2
    assert explicit.json()["time_period"]["day_count"] == 31
    assert missing.status_code == 400
    assert unknown.status_code == 400


async def test_ui_profitable_trades(tmp_path: Path, fixed_clock: DemoClock):
    database = await _database(tmp_path)
    async with _client(database, fixed_clock)() as client:
        response = await client.post("/ui/profitable-trades", json={"symbol": "AAPL"})
        missing = await client.post("/ui/profitable-trades", json={})
    payload = response.json()
    assert payload["total_profitable_trades"] == 1
    assert payload["total_profit"] == 1000.0
    assert payload["trades"][0]["buy_date"] == "2025-10-01"
    assert payload["trades"][0]["security_type"] == "Stock"
    assert missing.status_code == 400


async def test_ui_average_price(tmp_path: Path, fixed_clock: DemoClock):
    database = await _database(tmp_path)
    async with _client(database, fixed_clock)() as client:
        buys = await client.post("/ui/average-price", json={"symbol": "aapl", "trade_type": "buy"})
        none = await client.post("/ui/average-price", json={"symbol": "MSFT"})
    payload = buys.json()
    assert payload["average_price"] == 152.5
    assert payload["highest_price"] == 155.0
    assert payload["lowest_price"] == 150.0
    assert payload["total_trades"] == 2
    assert payload["total_shares"] == 150.0
    assert payload["trade_type"] == "buy"
    assert payload["time_period"] == "2024"
    assert none.json()["average_price"] is None
    assert none.json()["message"] == "No trades found for MSFT in 2024."


async def test_store_failures(tmp_path: Path, fixed_clock: DemoClock):
    database = await _database(tmp_path)
    async with _client(database, fixed_clock)() as client:
        async with database.engine.begin() as connection:
            await connection.execute(text("DROP TABLE trade_data"))
        voice = await client.post("/voice/trade-summary", json={"symbol": "AAPL"})
        ui = await client.post("/ui/profitable-trades", json={"symbol": "AAPL"})
    assert voice.status_code == 200
    assert voice.json()["response"] == "Sorry, there was an error looking up the trade summary."
    assert ui.status_code == 500


async def test_voice_account_balance_snapshots(tmp_path: Path, fixed_clock: DemoClock):
    database = await _database(tmp_path)
    async with _client(database, fixed_clock)() as client:
        cash = await client.post("/voice/account-balance", json={"query_type": "cash_balance"})
        margin = await client.post("/voice/account-balance", json={"parameters": {"query_type": "overnight_margin"}})
        fallback = await client.post("/voice/account-balance", json={"query_type": "bogus"})
    assert cash.json()["response"] == (
        "Your account cash balance as of Dec 3 is $52,340.75. Your total account equity is $91,560.75."
    )
    assert cash.json()["data"]["date"] == "2025-11-19"
    assert "House Excess/Deficit: $79,497.75" in margin.json()["response"]
    summary = fallback.json()["response"]
    assert summary.startswith("Your account summary as of Dec 3: Cash Balance: $52,340.75")
    assert "Stock Short Market Value: -$1,500.00" in summary


async def test_voice_account_balance_trends(tmp_path: Path, fixed_clock: DemoClock):
    database = await _database(tmp_path)
    async with _client(database, fixed_clock)() as client:
        debit = await client.post(
            "/voice/account-balance", json={"query_type": "debit_balances", "time_period": "this month"}
        )
        credit = await client.post(
            "/voice/account-balance", json={"query_type": "credit_balances", "time_period": "latest"}
        )
        empty = await client.post(
            "/voice/account-balance", json={"query_type": "debit_balances", "time_period": "monday"}
        )
    assert debit.json()["response"] == (
        "Your debit balance for this month: Average: $400.00, Highest: $800.00 on Dec 1, Lowest: $0.00 on Dec 3."
    )
    assert credit.json()["response"] == (
        "Your credit balance for the available period: Average: $49,234.81, "
        "Highest: $52,340.75 on Dec 3, Lowest: $46,228.00 on Dec 1."
    )
    assert credit.json()["data"]["snapshots"] == 4
    assert empty.json()["response"] == "No balance data found for Monday."


async def test_ui_account_balance(tmp_path: Path, fixed_clock: DemoClock):
    database = await _database(tmp_path)
    async with _client(database, fixed_clock)() as client:
        snapshot = await client.post("/ui/account-balance", json={})
        trend = await client.post(
            "/ui/account-balance", json={"query_type": "debit_balances", "time_period": "last week"}
        )
        invalid = await client.post("/ui/account-balance", json={"query_type": "margin_call"})
    payload = snapshot.json()
    assert payload["query_type"] == "account_summary"
    assert payload["date"] == "2025-11-19"
    assert payload["display_date"] == "Dec 3"
    assert payload["balance"]["cash_balance"] == 52340.75
    assert payload["balance"]["options_smv"] == -310.0
    assert payload["balance_trend"] is None
    assert trend.json()["balance_trend"] == {
        "period": "last week",
        "average": 1200.0,
        "highest": 1200.0,
        "highest_date": "Nov 28",
        "lowest": 1200.0,
        "lowest_date": "Nov 28",
        "snapshots": 1,
    }
    assert invalid.status_code == 400


async def test_ui_trade_stats(tmp_path: Path, fixed_clock: DemoClock):
    database = await _database(tmp_path)
    async with _client(database, fixed_clock)() as client:
        buys = await client.post("/ui/trade-stats", json={"symbol": "apple", "trade_type": "buy"})
        last_month = await client.post("/ui/trade-stats", json={"symbol": "AAPL", "time_period": "last month"})
        none = await client.post("/ui/trade-stats", json={"symbol": "MSFT"})
        missing = await client.post("/ui/trade-stats", json={})
    payload = buys.json()
    assert payload["year"] == 2024
    assert payload["trade_type"] == "buy"
    assert payload["time_period"] is None
    assert payload["stats"] == {
        "highest_price": 155.0,
        "highest_price_date": "Oct 29",
        "highest_price_shares": 50.0,
        "lowest_price": 150.0,
        "lowest_price_date": "Oct 15",
        "lowest_price_shares": 100.0,
        "average_price": 152.5,
        "total_trades": 2,
        "total_shares": 150.0,
        "total_value": 22750.0,
    }
    assert last_month.json()["time_period"] == "last month"
    assert last_month.json()["stats"]["total_trades"] == 1
    assert last_month.json()["stats"]["highest_price"] == 160.0
    assert none.json()["stats"] is None
    assert missing.status_code == 400


async def test_ui_option_stats(tmp_path: Path, fixed_clock: DemoClock):
    database = await _database(tmp_path)
    async with _client(database, fixed_clock)() as client:
        nvda = await client.post("/ui/option-stats", json={"symbol": "nvidia"})
        sells = await client.post("/ui/option-stats", json={"symbol": "NVDA", "trade_type": "sell"})
        stock_only = await client.post("/ui/option-stats", json={"symbol": "AAPL"})
        bad_year = await client.post("/ui/option-stats", json={"symbol": "NVDA", "year": 99999})
    stats = nvda.json()["option_stats"]
    assert stats["highest_premium"] == 4.1
    assert stats["highest_premium_date"] == "Dec 2"
    assert stats["highest_premium_strike"] == 200.0
    assert stats["highest_premium_call_put"] == "Call"
    assert stats["lowest_premium"] == 3.2
    assert stats["lowest_premium_date"] == "Nov 26"
    assert stats["average_premium"] == 3.65
    assert stats["total_contracts"] == 4.0
    assert stats["total_value"] == 1460.0
    assert (stats["call_count"], stats["put_count"]) == (2, 0)
    assert sells.json()["trade_type"] == "sell"
    assert sells.json()["option_stats"]["total_trades"] == 1
    assert stock_only.json()["option_stats"] is None
    assert bad_year.status_code == 422


async def test_ui_fees(tmp_path: Path, fixed_clock: DemoClock):
    database = await _database(tmp_path)
    async with _client(database, fixed_clock)() as client:
        commission = await client.post("/ui/fees", json={})
        locate = await client.post(
            "/ui/fees", json={"fee_type": "locate_fee", "time_period": "last month", "symbol": "gamestop"}
        )
        invalid = await client.post("/ui/fees", json={"fee_type": "wire"})
    payload = commission.json()
    assert payload["fee_type"] == "commission"
    assert payload["time_period"] == "this month"
    assert payload["total_amount"] == 2.65
    assert payload["transaction_count"] == 3
    assert payload["breakdown"][0] == {"date": "2025-11-19", "display_date": "Dec 3", "amount": 1.0, "symbol": "AAPL"}
    assert [row["display_date"] for row in payload["breakdown"]] == ["Dec 3", "Dec 2", "Dec 1"]
    assert locate.json()["symbol"] == "GME"
    assert locate.json()["total_amount"] == 2.75
    assert locate.json()["breakdown"][0]["display_date"] == "Nov 28"
    assert invalid.status_code == 400


async def test_balance_store_failures(tmp_path: Path, fixed_clock: DemoClock):
    database = await _database(tmp_path)
    async with _client(database, fixed_clock)() as client:
        async with database.engine.begin() as connection:
            await connection.execute(text("DROP TABLE account_balance"))
        voice = await client.post("/voice/account-balance", json={"query_type": "debit_balances"})
        ui = await client.post("/ui/account-balance", json={"query_type": "cash_balance"})
    assert voice.status_code == 200
    assert voice.json()["response"] == "Sorry, there was an error retrieving your account balance."
    assert ui.status_code == 500
