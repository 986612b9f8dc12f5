"""Instruments the analyzer can subscribe to (Deriv synthetic indices)."""

from __future__ import annotations

from typing import Dict, List

MARKETS: Dict[str, str] = {
    "R_100": "Volatility 100 Index",
    "R_75": "Volatility 75 Index",
    "R_50": "Volatility 50 Index",
    "R_25": "Volatility 25 Index",
    "R_10": "Volatility 10 Index",
    "1HZ100V": "Volatility 100 (1s)",
    "BOOM1000": "Boom 1000",
    "CRASH1000": "Crash 1000",
}

DEFAULT_MARKET = "R_100"


def is_known_market(symbol: str) -> bool:
    return symbol in MARKETS


def list_markets() -> List[Dict[str, str]]:
    return [{"value": k, "label": v} for k, v in MARKETS.items()]
