"""Market domain models."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional, Tuple, Union


@dataclass(frozen=True)
class Tick:
    symbol: str
    epoch: int
    price: float


def parse_tick(payload: Dict[str, Any]) -> Optional[Tick]:
    """Normalize a Deriv `tick` payload ({quote, epoch, symbol}).

    Returns None when the quote or epoch can't be parsed into finite numbers.
    """
    try:
        price = float(payload["quote"])
        epoch = int(payload["epoch"])
    except (KeyError, TypeError, ValueError):
        return None
    if not math.isfinite(price):
        return None
    return Tick(symbol=str(payload.get("symbol") or ""), epoch=epoch, price=price)


@dataclass(frozen=True)
class IndicatorSet:
    sma20: Optional[float] = None
    sma50: Optional[float] = None
    rsi14: Optional[float] = None
    volatility20: Optional[float] = None
    momentum10: Optional[float] = None


class SignalKind(str, Enum):
    BULLISH = "bullish"
    BEARISH = "bearish"
    WARNING = "warning"
    NEUTRAL = "neutral"


@dataclass(frozen=True)
class Signal:
    kind: SignalKind
    indicator: str         # "Moving Average" | "RSI" | "Momentum"
    message: str


class Action(str, Enum):
    STRONG_BUY = "STRONG_BUY"
    BUY = "BUY"
    NEUTRAL = "NEUTRAL"
    SELL = "SELL"
    STRONG_SELL = "STRONG_SELL"


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class Recommendation:
    symbol: str
    current_price: float
    indicators: IndicatorSet
    signals: Tuple[Signal, ...]
    trend_strength: int
    action: Action
    created_at: datetime = field(default_factory=_utc_now)


@dataclass(frozen=True)
class InsufficientData:
    """Analysis declined: the window does not hold enough ticks yet."""

    required: int
    available: int

    @property
    def message(self) -> str:
        return f"Need at least {self.required} ticks for analysis (have {self.available})"


AnalysisOutcome = Union[Recommendation, InsufficientData]
