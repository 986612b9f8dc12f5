"""Indicators (SMA, RSI, volatility, momentum) over a tick window snapshot.

All functions are pure. Each one needs a minimum number of samples and
returns None below it: a short window is normal while the feed warms up.
"""

from __future__ import annotations

import statistics
from dataclasses import dataclass
from typing import List, Optional, Sequence

from tick_analyzer.models.market_models import IndicatorSet, Tick


def _prices(ticks: Sequence[Tick]) -> List[float]:
    return [float(t.price) for t in ticks]


def sma(ticks: Sequence[Tick], period: int) -> Optional[float]:
    """Mean of the last `period` prices. A flat window returns its price exactly."""
    prices = _prices(ticks)
    if period < 1 or len(prices) < period:
        return None
    return statistics.mean(prices[-period:])


def rsi(ticks: Sequence[Tick], period: int = 14) -> Optional[float]:
    """RSI over the last `period` price changes.

    Average gain and average loss are both divided by `period`, so flat or
    opposite-direction changes count as zero contributions.
    """
    prices = _prices(ticks)
    if period < 1 or len(prices) < period + 1:
        return None

    changes = [b - a for a, b in zip(prices, prices[1:])]
    recent = changes[-period:]

    avg_gain = sum(c for c in recent if c > 0) / period
    avg_loss = sum(-c for c in recent if c < 0) / period

    if avg_loss == 0.0:
        return 100.0
    rs = avg_gain / avg_loss
    return 100.0 - (100.0 / (1.0 + rs))


def volatility(ticks: Sequence[Tick], period: int = 20) -> Optional[float]:
    """Population standard deviation of the last `period` prices."""
    prices = _prices(ticks)
    if period < 1 or len(prices) < period:
        return None
    return statistics.pstdev(prices[-period:])


def momentum(ticks: Sequence[Tick], period: int = 10) -> Optional[float]:
    """Percent change from the price `period` samples back to the last price."""
    prices = _prices(ticks)
    if period < 1 or len(prices) < period:
        return None
    base = prices[-period]
    if base == 0.0:
        return None
    return (prices[-1] - base) / base * 100.0


@dataclass(frozen=True)
class IndicatorEngine:
    sma_fast_period: int = 20
    sma_slow_period: int = 50
    rsi_period: int = 14
    volatility_period: int = 20
    momentum_period: int = 10

    def __post_init__(self) -> None:
        for name in ("sma_fast_period", "sma_slow_period", "rsi_period", "volatility_period", "momentum_period"):
            if getattr(self, name) < 1:
                raise ValueError(f"{name} must be >= 1")

    def compute(self, ticks: Sequence[Tick]) -> IndicatorSet:
        return IndicatorSet(
            sma20=sma(ticks, self.sma_fast_period),
            sma50=sma(ticks, self.sma_slow_period),
            rsi14=rsi(ticks, self.rsi_period),
            volatility20=volatility(ticks, self.volatility_period),
            momentum10=momentum(ticks, self.momentum_period),
        )
