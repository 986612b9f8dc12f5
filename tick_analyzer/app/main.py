"""Entrypoint.

Usage:
  python -m tick_analyzer.app.main api                 # run FastAPI server (feed starts with it)
  python -m tick_analyzer.app.main watch --interval 30 # headless feed, logs a recommendation periodically
"""

from __future__ import annotations

import argparse
import asyncio
from pathlib import Path

import uvicorn

from tick_analyzer.app.engine import run_engine
from tick_analyzer.infrastructure.utils.config import get_config, reload_config
from tick_analyzer.models.markets import MARKETS


def main() -> None:
    parser = argparse.ArgumentParser("deriv-tick-analyzer")
    parser.add_argument("command", choices=["api", "watch"], help="What to run")
    parser.add_argument("--config", type=Path, default=None, help="Path to a YAML config file")
    parser.add_argument("--interval", type=float, default=30.0, help="Seconds between analyses (watch)")
    parser.add_argument("--symbol", choices=sorted(MARKETS), default=None, help="Instrument to subscribe to")
    args = parser.parse_args()

    if args.command == "watch":
        try:
            asyncio.run(run_engine(args.config, interval_sec=args.interval, symbol=args.symbol))
        except KeyboardInterrupt:
            pass
        return

    if args.command == "api":
        config = reload_config(args.config) if args.config else get_config()
        if args.symbol:
            config.feed.symbol = args.symbol
        uvicorn.run(
            "tick_analyzer.api.server:create_app",
            factory=True,
            host=config.api.host,
            port=config.api.port,
            reload=False,
        )
        return


if __name__ == "__main__":
    main()
