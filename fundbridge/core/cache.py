from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Hashable, Optional


@dataclass
class Entry:
    value: Any
    expires_at: float


class TTLCache:
    """
    Small expiring map. Purely a performance aid: a miss always falls
    back to the source of truth.

    ttl_seconds <= 0 disables caching.
    """

    def __init__(self, ttl_seconds: float, clock: Optional[Callable[[], float]] = None):
        self.ttl_seconds = float(ttl_seconds)
        self._clock = clock or time.monotonic
        self._entries: Dict[Hashable, Entry] = {}

    def get(self, key: Hashable) -> Optional[Any]:
        e = self._entries.get(key)
        if e is None:
            return None
        if e.expires_at <= self._clock():
            self._entries.pop(key, None)
            return None
        return e.value

    def set(self, key: Hashable, value: Any) -> None:
        if self.ttl_seconds <= 0:
            return
        self._entries[key] = Entry(value=value, expires_at=self._clock() + self.ttl_seconds)

    def clear(self) -> None:
        self._entries.clear()
