"""Thread-safe counters for gradient field queries."""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from typing import Dict


@dataclass
class QueryStats:
    """Accumulated ``query_direction`` statistics.

    A *hit* is a query that produced a direction; ``direct`` counts hits
    answered by the straight line to the goal.
    """

    requests: int = 0
    hits: int = 0
    direct: int = 0
    latency_ms_sum: float = 0.0
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)

    def update(self, *, hit: bool, latency_ms: float, direct: bool = False) -> None:
        """Add one query observation."""

        with self._lock:
            self.requests += 1
            self.hits += int(hit)
            self.direct += int(hit and direct)
            self.latency_ms_sum += max(0.0, latency_ms)

    def reset(self) -> None:
        with self._lock:
            self.requests = 0
            self.hits = 0
            self.direct = 0
            self.latency_ms_sum = 0.0

    def snapshot(self) -> Dict[str, int | float]:
        """Return counters with hit rate and average latency."""

        with self._lock:
            requests = self.requests
            return {
                "requests": requests,
                "hits": self.hits,
                "misses": requests - self.hits,
                "direct": self.direct,
                "hit_rate": (self.hits / requests) if requests else 0.0,
                "avg_latency_ms": (self.latency_ms_sum / requests) if requests else 0.0,
            }


__all__ = ["QueryStats"]
