"""Headless loop: keep the feed running and log a recommendation periodically."""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Optional

from tick_analyzer.app.analyzer import AnalyzerService
from tick_analyzer.infrastructure.logging.logging import configure_logging, get_logger
from tick_analyzer.infrastructure.utils.config import load_config
from tick_analyzer.models.market_models import InsufficientData


async def run_engine(
    config_path: Optional[Path] = None,
    *,
    interval_sec: float = 30.0,
    symbol: Optional[str] = None,
    max_cycles: Optional[int] = None,
) -> None:
    config = load_config(config_path)
    configure_logging(config.log_level, json_logs=config.json_logs)
    log = get_logger("engine")
    log.info(
        "config_loaded",
        app_id=config.deriv.app_id,
        token_len=len(config.deriv.api_token),
        symbol=config.feed.symbol,
    )

    service = AnalyzerService.from_config(config)
    if symbol:
        await service.select_market(symbol)

    await service.start()
    cycles = 0
    try:
        while max_cycles is None or cycles < max_cycles:
            await asyncio.sleep(interval_sec)
            cycles += 1

            outcome = service.analyze_now()
            if isinstance(outcome, InsufficientData):
                log.info("waiting_for_ticks", status=service.status())
                continue

            log.info(
                "recommendation",
                symbol=outcome.symbol,
                action=outcome.action.value,
                trend_strength=outcome.trend_strength,
                price=outcome.current_price,
                sma20=outcome.indicators.sma20,
                sma50=outcome.indicators.sma50,
                rsi14=outcome.indicators.rsi14,
                volatility20=outcome.indicators.volatility20,
                momentum10=outcome.indicators.momentum10,
                signals=[s.message for s in outcome.signals],
            )
    finally:
        await service.stop()
