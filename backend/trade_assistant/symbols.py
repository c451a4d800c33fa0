"""Ticker normalisation for spoken or typed company names."""

from __future__ import annotations

SYMBOL_MAP = {
    "apple": "AAPL",
    "google": "GOOGL",
    "alphabet": "GOOGL",
    "amazon": "AMZN",
    "microsoft": "MSFT",
    "tesla": "TSLA",
    "nvidia": "NVDA",
    "meta": "META",
    "facebook": "META",
    "netflix": "NFLX",
    "amd": "AMD",
    "intel": "INTC",
    "bank of america": "BAC",
    "citigroup": "C",
    "gamestop": "GME",
    "lucid": "LCID",
    "qualcomm": "QCOM",
}


def normalize_symbol(value: str) -> str:
    """Return the ticker for a company name, or the upper-cased input."""

    cleaned = " ".join(value.split())
    return SYMBOL_MAP.get(cleaned.lower(), cleaned.upper())


__all__ = ["SYMBOL_MAP", "normalize_symbol"]
