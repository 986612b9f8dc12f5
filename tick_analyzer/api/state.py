# tick_analyzer/api/state.py
from __future__ import annotations

from typing import Optional

from tick_analyzer.app.analyzer import AnalyzerService

_state: Optional[AnalyzerService] = None


def set_state(service: Optional[AnalyzerService]) -> None:
    global _state
    _state = service


def get_state() -> AnalyzerService:
    if _state is None:
        raise RuntimeError("API state not initialized. Start the analyzer service first.")
    return _state
