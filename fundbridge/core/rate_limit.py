from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Callable, Dict, Optional, Tuple


@dataclass
class Bucket:
    tokens: float
    last_ts: float


class InMemoryRateLimiter:
    """
    Token bucket:
      capacity tokens; refill rate tokens/sec.

    Keyed by (client_key, route_key). Per process only; it protects the
    RPC providers from a single noisy client, not the ledger.
    """
    def __init__(self, capacity: int, refill_per_sec: float, clock: Optional[Callable[[], float]] = None):
        self.capacity = float(capacity)
        self.refill_per_sec = float(refill_per_sec)
        self._clock = clock or time.monotonic
        self._buckets: Dict[Tuple[str, str], Bucket] = {}

    def allow(self, client_key: str, route_key: str, cost: float = 1.0) -> bool:
        now = self._clock()
        k = (client_key, route_key)
        b = self._buckets.get(k)
        if b is None:
            b = Bucket(tokens=self.capacity, last_ts=now)
            self._buckets[k] = b

        # refill
        elapsed = max(0.0, now - b.last_ts)
        b.tokens = min(self.capacity, b.tokens + elapsed * self.refill_per_sec)
        b.last_ts = now

        if b.tokens >= cost:
            b.tokens -= cost
            return True
        return False
