# placefilter/normalization/hidden_set.py
"""
Expands a configured hide-list into the effective hidden category set.

Operators list category aliases to hide as a CSV value in the remote config
(e.g. ``"auto, education"``). Hiding a category hides all of its
descendants too, so one root alias is enough to hide a whole subtree.
"""

import logging
import threading
from typing import FrozenSet, Iterable, List, Optional

from placefilter.errors import UnknownCategory
from placefilter.monitoring.diagnostics import DiagnosticsReporter
from placefilter.normalization.closure_index import ClosureIndex
from placefilter.schemas.taxonomy import CategoryId

logger = logging.getLogger(__name__)

HiddenCategorySet = FrozenSet[CategoryId]


def parse_category_csv(value: Optional[str]) -> List[CategoryId]:
    """Split a CSV of aliases; whitespace around each alias is trimmed, empty segments dropped."""
    if not value:
        return []
    return [part.strip() for part in value.split(",") if part.strip()]


def resolve(
    hide_list: Iterable[CategoryId],
    index: ClosureIndex,
    *,
    reporter: Optional[DiagnosticsReporter] = None,
) -> HiddenCategorySet:
    """
    Union of every known alias in ``hide_list`` and its descendants.

    Unknown aliases (stale or misspelled config) are reported and skipped.
    A raw CSV string is rejected; split it with ``parse_category_csv`` first.
    """
    if isinstance(hide_list, str):
        raise TypeError(
            "resolve() expects an iterable of aliases, not a str; "
            "use parse_category_csv() for CSV values"
        )

    hidden = set()
    for alias in hide_list:
        if alias not in index:
            if reporter is not None:
                reporter.report(UnknownCategory(alias, source="hide_list"))
            else:
                logger.warning(f"Unknown category {alias!r} in hide-list. Ignoring")
            continue

        hidden.add(alias)
        hidden |= index.descendants(alias)

    return frozenset(hidden)


class HiddenSetResolver:
    """
    Owns the current HiddenCategorySet snapshot.

    The snapshot is resolved lazily on first access and replaced only by
    ``reload``. Replacement swaps a single reference, so readers always see
    either the old or the new frozenset, never a partial one.
    """

    def __init__(
        self,
        index: ClosureIndex,
        csv_value: str = "",
        *,
        reporter: Optional[DiagnosticsReporter] = None,
    ):
        self.index = index
        self.reporter = reporter
        self._csv_value = csv_value
        self._snapshot: Optional[HiddenCategorySet] = None
        self._write_lock = threading.Lock()

    @property
    def csv_value(self) -> str:
        return self._csv_value

    def snapshot(self) -> HiddenCategorySet:
        current = self._snapshot
        if current is not None:
            return current
        with self._write_lock:
            if self._snapshot is None:
                self._snapshot = self._resolve(self._csv_value)
            return self._snapshot

    def reload(self, csv_value: str) -> bool:
        """
        Re-resolve for a new config value.

        Returns:
            True if the value changed and a new snapshot was published.
        """
        with self._write_lock:
            if csv_value == self._csv_value and self._snapshot is not None:
                return False
            new_snapshot = self._resolve(csv_value)
            self._csv_value = csv_value
            self._snapshot = new_snapshot
        logger.info(f"Hidden category set reloaded: {len(new_snapshot)} categories")
        return True

    def _resolve(self, csv_value: str) -> HiddenCategorySet:
        return resolve(parse_category_csv(csv_value), self.index, reporter=self.reporter)
