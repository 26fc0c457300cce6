"""
Lightweight in-memory resize counters for observability and tuning.
"""

from threading import Lock
from typing import Dict

OUTCOMES = ("blank", "cached", "copied", "resized", "placeholder")


class ResizeMetrics:
    def __init__(self):
        self._lock = Lock()
        self._counts: Dict[str, int] = {outcome: 0 for outcome in OUTCOMES}

    def record(self, outcome: str) -> None:
        if outcome not in self._counts:
            return
        with self._lock:
            self._counts[outcome] += 1
            self._counts["total"] = self._counts.get("total", 0) + 1

    def snapshot(self) -> Dict[str, int]:
        """Return a copy of the current counters."""
        with self._lock:
            counts = dict(self._counts)
        counts.setdefault("total", 0)
        return counts
