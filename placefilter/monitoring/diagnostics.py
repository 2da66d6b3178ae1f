"""
Collects non-fatal category conditions.

Every occurrence is counted in the metrics registry under
``category_conditions|kind=<Kind>``. Distinct conditions are logged once as a
structured warning event and kept for the diagnostics report; repeats (the
same unknown place tag on every query, say) only bump the counter.
"""

from __future__ import annotations

import logging
import threading
from typing import Any, Dict, List, Optional, Tuple, Type

from placefilter.errors import CategoryCondition
from placefilter.monitoring.events import emit_event
from placefilter.monitoring.metrics import MetricsRegistry

logger = logging.getLogger(__name__)

CONDITION_COUNTER = "category_conditions"
DROPPED_COUNTER = "category_conditions.dropped"

# Distinct conditions kept for the report; later ones are counted only.
MAX_RETAINED_CONDITIONS = 1000


class DiagnosticsReporter:
    """Thread-safe sink for CategoryCondition instances."""

    def __init__(
        self,
        metrics: Optional[MetricsRegistry] = None,
        log: Optional[logging.Logger | logging.LoggerAdapter] = None,
        max_conditions: int = MAX_RETAINED_CONDITIONS,
    ):
        self.metrics = metrics or MetricsRegistry()
        self._log = log or logger
        self._max_conditions = max_conditions
        self._conditions: Dict[Tuple[str, str], CategoryCondition] = {}
        self._lock = threading.Lock()

    def report(self, condition: CategoryCondition) -> None:
        self.metrics.inc(CONDITION_COUNTER, labels={"kind": condition.kind})
        with self._lock:
            if condition.key in self._conditions:
                return
            if len(self._conditions) >= self._max_conditions:
                retained = False
            else:
                self._conditions[condition.key] = condition
                retained = True

        if not retained:
            self.metrics.inc(DROPPED_COUNTER)
            self._log.debug(f"Diagnostics full, not retaining: {condition}")
            return

        emit_event(
            self._log,
            f"category.{condition.kind}",
            condition.as_dict(),
            level="warning",
        )

    @property
    def conditions(self) -> List[CategoryCondition]:
        """Distinct conditions, in the order first reported."""
        with self._lock:
            return list(self._conditions.values())

    def of_kind(self, kind: Type[CategoryCondition]) -> List[CategoryCondition]:
        return [c for c in self.conditions if isinstance(c, kind)]

    def count(self, kind: Type[CategoryCondition]) -> int:
        return len(self.of_kind(kind))

    def as_dict(self) -> dict[str, Any]:
        return {
            "conditions": [c.as_dict() for c in self.conditions],
            "metrics": self.metrics.as_dict(),
        }
