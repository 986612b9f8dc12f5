"""Bounded rolling window of recent ticks."""

from __future__ import annotations

from collections import deque
from typing import Deque, Optional, Tuple

from tick_analyzer.models.market_models import Tick


class TickWindow:
    """
    FIFO buffer of the most recent ticks for the subscribed instrument.

    Pushing into a full window evicts the oldest tick. Analysis works on
    snapshot() copies, never on the live buffer.
    """

    def __init__(self, capacity: int = 100) -> None:
        if capacity < 1:
            raise ValueError("capacity must be >= 1")
        self._ticks: Deque[Tick] = deque(maxlen=int(capacity))

    @property
    def capacity(self) -> int:
        return self._ticks.maxlen or 0

    def __len__(self) -> int:
        return len(self._ticks)

    @property
    def latest(self) -> Optional[Tick]:
        return self._ticks[-1] if self._ticks else None

    def push(self, tick: Tick) -> None:
        self._ticks.append(tick)

    def clear(self) -> None:
        self._ticks.clear()

    def snapshot(self) -> Tuple[Tick, ...]:
        return tuple(self._ticks)
