"""Lightweight metrics with counters, gauges, and timers.

Exported as a dict for the diagnostics report.
"""

from __future__ import annotations

import threading
import time
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any


def _key(name: str, labels: dict[str, str] | None) -> str:
    if not labels:
        return name
    parts = [name] + [f"{k}={v}" for k, v in sorted(labels.items())]
    return "|".join(parts)


@dataclass
class MetricsRegistry:
    """Registry for counters, gauges, and timers."""

    counters: dict[str, float] = field(default_factory=dict)
    gauges: dict[str, float] = field(default_factory=dict)
    timers: dict[str, dict[str, float]] = field(default_factory=dict)  # sum, count, max, min
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)

    def inc(self, name: str, value: float = 1.0, *, labels: dict[str, str] | None = None) -> None:
        """Increment a counter by the given value."""
        k = _key(name, labels)
        with self._lock:
            self.counters[k] = float(self.counters.get(k, 0.0)) + float(value)

    def set_gauge(self, name: str, value: float, *, labels: dict[str, str] | None = None) -> None:
        """Set a gauge to the given value."""
        k = _key(name, labels)
        with self._lock:
            self.gauges[k] = float(value)

    def observe(self, name: str, value: float, *, labels: dict[str, str] | None = None) -> None:
        """Record a timer observation."""
        k = _key(name, labels)
        with self._lock:
            d = self.timers.get(k)
            if d is None:
                d = {"sum": 0.0, "count": 0.0, "max": value, "min": value}
                self.timers[k] = d
            d["sum"] += float(value)
            d["count"] += 1.0
            d["max"] = max(d["max"], float(value))
            d["min"] = min(d["min"], float(value))

    @contextmanager
    def time(self, name: str, *, labels: dict[str, str] | None = None) -> Iterator[None]:
        """Time a block and record the elapsed duration as an observation."""
        t0 = time.perf_counter()
        try:
            yield
        finally:
            self.observe(name, time.perf_counter() - t0, labels=labels)

    def as_dict(self) -> dict[str, Any]:
        """Export all metrics as a JSON-friendly dictionary."""
        with self._lock:
            return {
                "counters": dict(self.counters),
                "gauges": dict(self.gauges),
                "timers": {k: dict(v) for k, v in self.timers.items()},
            }
