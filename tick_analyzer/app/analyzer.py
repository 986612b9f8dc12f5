"""Analyzer service: one feed session + the signal synthesizer behind it.

This is the surface the API and the CLI drive: market selection, manual
reconnect, "analyze now" and a status snapshot.
"""

from __future__ import annotations

from dataclasses import asdict
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from tick_analyzer.infrastructure.deriv.feed_session import Connector, FeedSession
from tick_analyzer.infrastructure.logging.logging import get_logger
from tick_analyzer.infrastructure.utils.config import AnalyzerConfig
from tick_analyzer.models.market_models import AnalysisOutcome, InsufficientData, Recommendation
from tick_analyzer.models.markets import MARKETS, is_known_market
from tick_analyzer.services.market.indicators import IndicatorEngine
from tick_analyzer.services.market.tick_window import TickWindow
from tick_analyzer.services.monitoring.event_log import EventLog
from tick_analyzer.services.strategy.signal_synthesizer import SignalSynthesizer

JsonDict = Dict[str, Any]


def _json_value(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, datetime):
        return value.isoformat()
    return value


def _dict_factory(items: List[Tuple[str, Any]]) -> JsonDict:
    return {k: _json_value(v) for k, v in items}


def recommendation_to_dict(rec: Recommendation) -> JsonDict:
    return asdict(rec, dict_factory=_dict_factory)


def outcome_to_dict(outcome: AnalysisOutcome) -> JsonDict:
    if isinstance(outcome, InsufficientData):
        return {
            "status": "insufficient_data",
            "required": outcome.required,
            "available": outcome.available,
            "message": outcome.message,
        }
    return {"status": "ok", "recommendation": recommendation_to_dict(outcome)}


class AnalyzerService:
    def __init__(self, session: FeedSession, synthesizer: SignalSynthesizer) -> None:
        self._logger = get_logger("analyzer")
        self.session = session
        self.synthesizer = synthesizer
        self.last_recommendation: Optional[Recommendation] = None
        self.analysis_error: Optional[str] = None

    @classmethod
    def from_config(cls, config: AnalyzerConfig, *, connector: Optional[Connector] = None) -> "AnalyzerService":
        feed = config.feed
        analysis = config.analysis

        session = FeedSession(
            websocket_url=config.deriv.websocket_url,
            app_id=config.deriv.app_id,
            api_token=config.deriv.api_token,
            window=TickWindow(capacity=feed.window_capacity),
            symbol=feed.symbol,
            events=EventLog(max_entries=feed.event_log_size),
            reconnect_delay_sec=feed.reconnect_delay_sec,
            resubscribe_delay_sec=feed.resubscribe_delay_sec,
            connector=connector,
        )

        engine = IndicatorEngine(
            sma_fast_period=analysis.sma_fast_period,
            sma_slow_period=analysis.sma_slow_period,
            rsi_period=analysis.rsi_period,
            volatility_period=analysis.volatility_period,
            momentum_period=analysis.momentum_period,
        )
        synthesizer = SignalSynthesizer(
            engine,
            min_ticks=analysis.min_ticks,
            rsi_overbought=analysis.rsi_overbought,
            rsi_oversold=analysis.rsi_oversold,
            momentum_threshold=analysis.momentum_threshold,
        )
        return cls(session, synthesizer)

    async def start(self) -> None:
        self._logger.info("analyzer_start", symbol=self.session.symbol)
        await self.session.connect()

    async def stop(self) -> None:
        await self.session.stop()
        self._logger.info("analyzer_stopped")

    async def reconnect(self) -> None:
        self.session.events.add("Manual reconnect requested")
        await self.session.connect()

    async def select_market(self, symbol: str) -> None:
        if not is_known_market(symbol):
            raise ValueError(f"Unknown market: {symbol}")
        if symbol != self.session.symbol:
            self.last_recommendation = None
            self.analysis_error = None
        await self.session.change_instrument(symbol)

    def analyze_now(self) -> AnalysisOutcome:
        snapshot = self.session.window.snapshot()
        outcome = self.synthesizer.analyze(snapshot, symbol=self.session.symbol)

        if isinstance(outcome, InsufficientData):
            self.analysis_error = outcome.message
            self._logger.info("analysis_declined", required=outcome.required, available=outcome.available)
            return outcome

        self.last_recommendation = outcome
        self.analysis_error = None
        self.session.events.add(f"Analysis complete: {outcome.action.value}")
        self._logger.info(
            "analysis_complete",
            symbol=outcome.symbol,
            action=outcome.action.value,
            trend_strength=outcome.trend_strength,
            price=outcome.current_price,
        )
        return outcome

    def status(self) -> JsonDict:
        s = self.session
        latest = s.window.latest
        return {
            "state": s.state.value,
            "connected": s.is_connected,
            "authorized": s.is_authorized,
            "public_access": s.public_access,
            "reconnect_pending": s.reconnect_pending,
            "symbol": s.symbol,
            "market": MARKETS.get(s.symbol, s.symbol),
            "ticks": len(s.window),
            "window_capacity": s.window.capacity,
            "last_price": latest.price if latest else None,
            "last_epoch": latest.epoch if latest else None,
            "last_error": s.last_error or self.analysis_error,
        }
