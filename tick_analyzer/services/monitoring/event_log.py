"""In-memory event feed (last N connection/analysis events) for the API."""

from __future__ import annotations

from collections import deque
from datetime import datetime
from typing import Callable, Deque, List, Optional


class EventLog:
    def __init__(self, max_entries: int = 16, clock: Optional[Callable[[], datetime]] = None) -> None:
        self._entries: Deque[str] = deque(maxlen=max(1, int(max_entries)))
        self._clock = clock or datetime.now

    def add(self, message: str) -> str:
        entry = f"{self._clock().strftime('%H:%M:%S')}: {message}"
        self._entries.append(entry)
        return entry

    def entries(self) -> List[str]:
        return list(self._entries)

    def __len__(self) -> int:
        return len(self._entries)
