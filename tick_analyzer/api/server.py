# tick_analyzer/api/server.py
from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel

from tick_analyzer.api.state import get_state, set_state
from tick_analyzer.app.analyzer import AnalyzerService, outcome_to_dict, recommendation_to_dict
from tick_analyzer.infrastructure.logging.logging import configure_logging
from tick_analyzer.infrastructure.utils.config import AnalyzerConfig, get_config
from tick_analyzer.models.markets import list_markets


class MarketPayload(BaseModel):
    symbol: str


def create_app(
    config: Optional[AnalyzerConfig] = None,
    service: Optional[AnalyzerService] = None,
    *,
    autostart: bool = True,
) -> FastAPI:
    """Build the API. The feed session runs on the server's event loop."""
    cfg = config or get_config()

    @asynccontextmanager
    async def lifespan(_: FastAPI) -> AsyncIterator[None]:
        if config is None:
            configure_logging(cfg.log_level, json_logs=cfg.json_logs)
        svc = service or AnalyzerService.from_config(cfg)
        set_state(svc)
        if autostart:
            await svc.start()
        try:
            yield
        finally:
            await svc.stop()
            set_state(None)

    app = FastAPI(title="Deriv Tick Analyzer API", version="0.1.0", lifespan=lifespan)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=cfg.api.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/health")
    async def health():
        return {"ok": True}

    @app.get("/status")
    async def status():
        return get_state().status()

    @app.get("/markets")
    async def markets():
        return list_markets()

    @app.get("/events")
    async def events():
        return {"events": get_state().session.events.entries()}

    @app.get("/ticks")
    async def ticks(limit: int = 100):
        snapshot = get_state().session.window.snapshot()
        if limit > 0:
            snapshot = snapshot[-limit:]
        return [{"epoch": t.epoch, "price": t.price} for t in snapshot]

    @app.post("/market")
    async def select_market(payload: MarketPayload):
        s = get_state()
        try:
            await s.select_market(payload.symbol)
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))
        return s.status()

    @app.post("/reconnect")
    async def reconnect():
        s = get_state()
        await s.reconnect()
        return s.status()

    @app.post("/analyze")
    async def analyze():
        return outcome_to_dict(get_state().analyze_now())

    @app.get("/analysis")
    async def analysis():
        rec = get_state().last_recommendation
        if rec is None:
            raise HTTPException(status_code=404, detail="No analysis yet")
        return recommendation_to_dict(rec)

    return app
