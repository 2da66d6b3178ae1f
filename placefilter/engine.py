# placefilter/engine.py
"""
Place visibility engine: the one interface the place-listing pipeline uses.

Startup order is fixed: load taxonomy -> build closure index -> resolve the
hide-list -> build the policy. A broken taxonomy raises before an engine
exists. After startup the taxonomy and index are read-only; a config reload
builds a new immutable policy and publishes it with a single reference swap.
"""

import logging
import threading
from typing import Any, Dict, Iterable, List, NamedTuple, Optional

from placefilter.configs.config import Config
from placefilter.configs.remote_config import RemoteConfigKeys, RemoteConfigStore
from placefilter.configs.settings import Settings, get_settings
from placefilter.filtering.visibility import (
    RESTAURANT_ROOT_CATEGORIES,
    VisibilityPolicy,
    VisibilityStrategy,
    get_visibility_policy,
)
from placefilter.ingestion.taxonomy_loader import load_file
from placefilter.monitoring.diagnostics import DiagnosticsReporter
from placefilter.monitoring.events import emit_event
from placefilter.monitoring.logging import with_context
from placefilter.normalization.closure_index import ClosureIndex
from placefilter.normalization.hidden_set import HiddenCategorySet, HiddenSetResolver
from placefilter.schemas.taxonomy import CategoryId, PlaceView, Taxonomy

logger = logging.getLogger(__name__)


class _PublishedConfig(NamedTuple):
    """What readers see; replaced as a whole on reload."""

    policy: VisibilityPolicy
    hidden: HiddenCategorySet
    max_restaurant_km: float


class PlaceVisibilityEngine:
    """
    Wires taxonomy, closure index, hide-list resolver and visibility policy.
    """

    def __init__(
        self,
        taxonomy: Taxonomy,
        *,
        strategy: VisibilityStrategy = VisibilityStrategy.HIDE_LIST,
        hide_list_csv: str = "",
        max_restaurant_km: float = 1.0,
        restaurant_roots: Iterable[CategoryId] = RESTAURANT_ROOT_CATEGORIES,
        max_depth: Optional[int] = None,
        reporter: Optional[DiagnosticsReporter] = None,
    ):
        self.reporter = reporter or DiagnosticsReporter(
            log=with_context(logger, component="visibility")
        )
        self.strategy = strategy
        self.restaurant_roots = tuple(restaurant_roots)
        # None means the bundled defaults file
        self.remote_defaults: Optional[Dict[str, Any]] = None

        with self.reporter.metrics.time("closure_index.build"):
            self.index = ClosureIndex.build(taxonomy, reporter=self.reporter, max_depth=max_depth)
        self.resolver = HiddenSetResolver(self.index, hide_list_csv, reporter=self.reporter)

        self._reload_lock = threading.Lock()
        self._published = self._publish(self.resolver.snapshot(), max_restaurant_km)

        self.reporter.metrics.set_gauge("taxonomy.categories", len(taxonomy))
        self.reporter.metrics.set_gauge("taxonomy.roots", len(self.index.roots))
        emit_event(
            logger,
            "engine.ready",
            {
                "strategy": strategy.value,
                "categories": len(taxonomy),
                "hidden": len(self.hidden_categories),
            },
        )

    @classmethod
    def from_settings(
        cls,
        settings: Optional[Settings] = None,
        *,
        remote: Optional[RemoteConfigStore] = None,
        reporter: Optional[DiagnosticsReporter] = None,
    ) -> "PlaceVisibilityEngine":
        """
        Build the engine from process settings and the remote config store.
        """
        settings = settings or get_settings()
        defaults = Config.read_remote_defaults(settings.REMOTE_DEFAULTS_PATH)
        hide_list = RemoteConfigKeys.place_categories_to_hide_csv.value(remote, defaults)
        max_km = RemoteConfigKeys.max_restaurant_km.value(remote, defaults)

        engine = cls(
            load_file(settings.TAXONOMY_DATA_PATH),
            strategy=settings.VISIBILITY_STRATEGY,
            hide_list_csv=",".join(hide_list),
            max_restaurant_km=max_km,
            restaurant_roots=settings.RESTAURANT_ROOT_CATEGORIES,
            max_depth=settings.MAX_HIERARCHY_DEPTH,
            reporter=reporter,
        )
        engine.remote_defaults = defaults
        return engine

    # -------------------------------------------------------------------------
    # QUERY INTERFACE
    # -------------------------------------------------------------------------

    @property
    def policy(self) -> VisibilityPolicy:
        return self._published.policy

    @property
    def hidden_categories(self) -> HiddenCategorySet:
        """The expanded hide-list the live policy was built with."""
        return self._published.hidden

    @property
    def max_restaurant_km(self) -> float:
        return self._published.max_restaurant_km

    def should_show(self, categories: Iterable[CategoryId], distance_km: float) -> bool:
        """True if a place with these tags at this distance should be surfaced."""
        return self._published.policy.should_show(categories, distance_km)

    def filter_places(self, places: Iterable[PlaceView]) -> List[PlaceView]:
        places = list(places)
        kept = self._published.policy.filter(places)
        self.reporter.metrics.inc("places.evaluated", len(places))
        self.reporter.metrics.inc("places.hidden", len(places) - len(kept))
        return kept

    # -------------------------------------------------------------------------
    # CONFIG RELOAD
    # -------------------------------------------------------------------------

    def reload_config(self, remote: Optional[RemoteConfigStore], defaults: Optional[Dict] = None) -> bool:
        """
        Re-read the hide-list and restaurant distance and publish a new policy.

        Returns:
            True if anything changed.
        """
        if defaults is None:
            defaults = self.remote_defaults
        hide_list = RemoteConfigKeys.place_categories_to_hide_csv.value(remote, defaults)
        max_km = RemoteConfigKeys.max_restaurant_km.value(remote, defaults)
        return self.apply_config(",".join(hide_list), max_km)

    def apply_config(self, hide_list_csv: str, max_restaurant_km: float) -> bool:
        with self._reload_lock:
            hidden_changed = self.resolver.reload(hide_list_csv)
            km_changed = max_restaurant_km != self._published.max_restaurant_km
            if not (hidden_changed or km_changed):
                return False
            published = self._publish(self.resolver.snapshot(), max_restaurant_km)
            self._published = published

        emit_event(
            logger,
            "engine.config_reloaded",
            {
                "strategy": published.policy.strategy.value,
                "hidden": len(published.hidden),
                "max_restaurant_km": max_restaurant_km,
            },
        )
        return True

    def _publish(self, hidden: HiddenCategorySet, max_restaurant_km: float) -> _PublishedConfig:
        policy = get_visibility_policy(
            self.strategy,
            self.index,
            hidden=hidden,
            max_restaurant_km=max_restaurant_km,
            restaurant_roots=self.restaurant_roots,
            reporter=self.reporter,
        )
        return _PublishedConfig(policy, hidden, max_restaurant_km)

    def diagnostics(self) -> Dict[str, Any]:
        published = self._published
        return {
            "strategy": self.strategy.value,
            "categories": len(self.index.taxonomy),
            "roots": sorted(self.index.roots),
            "max_depth": self.index.max_depth,
            "hidden_categories": len(published.hidden),
            "max_restaurant_km": published.max_restaurant_km,
            **self.reporter.as_dict(),
        }
