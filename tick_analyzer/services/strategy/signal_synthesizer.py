"""Turns an indicator set into signals, a trend strength and an action."""

from __future__ import annotations

from typing import List, Optional, Sequence, Tuple

from tick_analyzer.models.market_models import (
    Action,
    AnalysisOutcome,
    IndicatorSet,
    InsufficientData,
    Recommendation,
    Signal,
    SignalKind,
    Tick,
)
from tick_analyzer.services.market.indicators import IndicatorEngine


def action_for_strength(trend_strength: int) -> Action:
    # Strong thresholds are checked before weak ones
    if trend_strength >= 3:
        return Action.STRONG_BUY
    if trend_strength >= 1:
        return Action.BUY
    if trend_strength <= -3:
        return Action.STRONG_SELL
    if trend_strength <= -1:
        return Action.SELL
    return Action.NEUTRAL


class SignalSynthesizer:
    """
    Rule-based recommendation:
    - Moving averages: price vs SMA20 vs SMA50 (+/-2 strong trend, +/-1 otherwise).
      Fires as soon as SMA20 exists; until SMA50 is available only the
      weak +/-1 branch (price vs SMA20) can apply.
    - RSI: overbought counts against, oversold counts for
    - Momentum: only moves above the threshold count
    """

    def __init__(
        self,
        engine: Optional[IndicatorEngine] = None,
        *,
        min_ticks: int = 20,
        rsi_overbought: float = 70.0,
        rsi_oversold: float = 30.0,
        momentum_threshold: float = 1.0,
    ) -> None:
        self.engine = engine or IndicatorEngine()
        self.min_ticks = int(min_ticks)
        self.rsi_overbought = float(rsi_overbought)
        self.rsi_oversold = float(rsi_oversold)
        self.momentum_threshold = float(momentum_threshold)

    def analyze(self, ticks: Sequence[Tick], symbol: Optional[str] = None) -> AnalysisOutcome:
        if len(ticks) < self.min_ticks:
            return InsufficientData(required=self.min_ticks, available=len(ticks))

        current_price = float(ticks[-1].price)
        ind = self.engine.compute(ticks)
        signals, strength = self.evaluate(current_price, ind)

        return Recommendation(
            symbol=symbol if symbol is not None else ticks[-1].symbol,
            current_price=current_price,
            indicators=ind,
            signals=tuple(signals),
            trend_strength=strength,
            action=action_for_strength(strength),
        )

    def evaluate(self, price: float, ind: IndicatorSet) -> Tuple[List[Signal], int]:
        signals: List[Signal] = []
        strength = 0

        # Moving-average trend; the strong branches need SMA50 as well
        if ind.sma20 is not None:
            sma20, sma50 = ind.sma20, ind.sma50
            if sma50 is not None and price > sma20 and sma20 > sma50:
                signals.append(Signal(SignalKind.BULLISH, "Moving Average", "Strong uptrend - Price > SMA20 > SMA50"))
                strength += 2
            elif sma50 is not None and price < sma20 and sma20 < sma50:
                signals.append(Signal(SignalKind.BEARISH, "Moving Average", "Strong downtrend - Price < SMA20 < SMA50"))
                strength -= 2
            elif price > sma20:
                signals.append(Signal(SignalKind.BULLISH, "Moving Average", "Price above SMA20"))
                strength += 1
            else:
                signals.append(Signal(SignalKind.BEARISH, "Moving Average", "Price below SMA20"))
                strength -= 1

        # RSI
        if ind.rsi14 is not None:
            value = ind.rsi14
            if value > self.rsi_overbought:
                signals.append(
                    Signal(SignalKind.WARNING, "RSI", f"Overbought: RSI at {value:.1f} (>{self.rsi_overbought:g})")
                )
                strength -= 1
            elif value < self.rsi_oversold:
                signals.append(
                    Signal(SignalKind.WARNING, "RSI", f"Oversold: RSI at {value:.1f} (<{self.rsi_oversold:g})")
                )
                strength += 1
            else:
                signals.append(Signal(SignalKind.NEUTRAL, "RSI", f"Neutral: RSI at {value:.1f}"))

        # Momentum (ignored inside +/- threshold)
        if ind.momentum10 is not None:
            value = ind.momentum10
            if value > self.momentum_threshold:
                signals.append(Signal(SignalKind.BULLISH, "Momentum", f"Positive momentum: +{value:.2f}%"))
                strength += 1
            elif value < -self.momentum_threshold:
                signals.append(Signal(SignalKind.BEARISH, "Momentum", f"Negative momentum: {value:.2f}%"))
                strength -= 1

        return signals, strength
