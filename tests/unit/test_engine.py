"""
Unit tests for PlaceVisibilityEngine, the outward query interface.
"""

import json

import pytest

from placefilter.configs.remote_config import DictRemoteConfig
from placefilter.configs.settings import Settings
from placefilter.engine import PlaceVisibilityEngine
from placefilter.errors import CycleDetected, MalformedRecord, UnknownCategory
from placefilter.filtering.visibility import (
    RESTAURANT_ROOT_CATEGORIES,
    HideListVisibilityPolicy,
    RootCategoryVisibilityPolicy,
    VisibilityStrategy,
)
from placefilter.monitoring.diagnostics import DiagnosticsReporter
from placefilter.schemas.taxonomy import PlaceView


@pytest.fixture
def engine(small_taxonomy):
    return PlaceVisibilityEngine(small_taxonomy, hide_list_csv="auto, health", max_restaurant_km=1.0)


class TestQueries:
    """Tests for should_show / filter_places."""

    def test_hidden_subtree(self, engine):
        assert engine.should_show(["orthodontists"], 0.1) is False
        assert engine.should_show(["autorepair", "dentists"], 0.1) is False

    def test_visible_place(self, engine):
        assert engine.should_show(["bookstores"], 10.0) is True

    def test_restaurant_gate(self, engine):
        assert engine.should_show(["sicilian"], 0.9) is True
        assert engine.should_show(["sicilian"], 1.1) is False
        assert engine.should_show(["coffeeroasteries"], 1.1) is False

    def test_unknown_tags_do_not_crash(self, engine):
        assert engine.should_show(["mystery"], 5.0) is True
        assert engine.reporter.count(UnknownCategory) == 1

    def test_repeated_unknown_tag_stays_bounded(self, engine):
        """A long-running pipeline hitting the same unknown tag keeps one condition."""
        for _ in range(5000):
            assert engine.should_show(["pizza", "not_in_feed"], 0.1) is True

        assert [c.alias for c in engine.reporter.conditions] == ["not_in_feed"]
        report = engine.diagnostics()
        assert len(report["conditions"]) == 1
        assert report["metrics"]["counters"]["category_conditions|kind=UnknownCategory"] == 5000

    def test_filter_places_counts(self, engine):
        places = [
            PlaceView(categories=["bookstores"], distance_km=0.1),
            PlaceView(categories=["autorepair"], distance_km=0.1),
            PlaceView(categories=["pizza"], distance_km=3.0),
        ]
        kept = engine.filter_places(places)
        assert [p.categories for p in kept] == [["bookstores"]]

        counters = engine.reporter.metrics.as_dict()["counters"]
        assert counters["places.evaluated"] == 3
        assert counters["places.hidden"] == 2


class TestConfigReload:
    """Tests for atomic config replacement."""

    def test_reload_publishes_new_policy(self, engine):
        old_policy = engine.policy
        changed = engine.reload_config(
            DictRemoteConfig({"place_categories_to_hide_csv": "shopping", "max_restaurant_km": "5"}),
            defaults={},
        )
        assert changed is True
        assert engine.policy is not old_policy
        assert engine.max_restaurant_km == 5.0
        assert engine.should_show(["bookstores"], 0.1) is False
        assert engine.should_show(["autorepair"], 0.1) is True
        assert engine.should_show(["pizza"], 3.0) is True

        # the old policy is untouched
        assert old_policy.should_show(["bookstores"], 0.1) is True

    def test_reload_same_values_is_noop(self, engine):
        policy = engine.policy
        assert engine.apply_config("auto, health", 1.0) is False
        assert engine.policy is policy

    def test_hidden_categories_follow_live_policy(self, engine):
        """A resolver snapshot not yet published is not reported as live."""
        engine.resolver.reload("shopping")

        assert engine.hidden_categories == engine.policy.hidden
        assert "autorepair" in engine.hidden_categories
        assert engine.diagnostics()["hidden_categories"] == 5
        assert engine.should_show(["autorepair"], 0.1) is False

    def test_reload_publishes_hidden_set_with_policy(self, engine):
        engine.apply_config("shopping", 1.0)
        assert engine.hidden_categories is engine.policy.hidden
        assert engine.hidden_categories == {"shopping", "bookstores", "farmersmarket"}

    def test_reload_unknown_aliases_reported(self, engine):
        engine.apply_config("auto, bogus", 1.0)
        assert [c.alias for c in engine.reporter.of_kind(UnknownCategory)] == ["bogus"]
        assert engine.hidden_categories == {"auto", "autorepair"}


class TestConstruction:
    """Tests for engine startup."""

    def test_root_category_strategy(self, small_taxonomy):
        engine = PlaceVisibilityEngine(small_taxonomy, strategy=VisibilityStrategy.ROOT_CATEGORY)
        assert isinstance(engine.policy, RootCategoryVisibilityPolicy)
        assert engine.should_show(["pizza"], 100.0) is True
        assert engine.should_show(["dentists"], 0.0) is False

    def test_default_restaurant_roots(self, small_taxonomy):
        engine = PlaceVisibilityEngine(small_taxonomy)
        assert engine.restaurant_roots == tuple(RESTAURANT_ROOT_CATEGORIES)
        assert engine.should_show(["coffee"], 2.0) is False

    def test_cyclic_taxonomy_still_serves(self, make_taxonomy):
        reporter = DiagnosticsReporter()
        engine = PlaceVisibilityEngine(
            make_taxonomy({"a": ["b"], "b": ["a"], "c": []}), hide_list_csv="a", reporter=reporter
        )
        assert reporter.count(CycleDetected) == 1
        assert engine.hidden_categories == {"a", "b"}
        assert engine.should_show(["b"], 0.0) is False
        assert engine.should_show(["c"], 0.0) is True

    def test_from_settings_uses_bundled_resources(self):
        engine = PlaceVisibilityEngine.from_settings(Settings(), remote=DictRemoteConfig())
        assert isinstance(engine.policy, HideListVisibilityPolicy)
        assert "autorepair" in engine.hidden_categories
        assert engine.should_show(["autorepair"], 0.1) is False
        assert engine.should_show(["museums"], 20.0) is True
        assert engine.should_show(["ramen"], 2.0) is False

    def test_from_settings_remote_overrides(self):
        remote = DictRemoteConfig({"place_categories_to_hide_csv": "", "max_restaurant_km": "3"})
        engine = PlaceVisibilityEngine.from_settings(Settings(), remote=remote)
        assert engine.hidden_categories == frozenset()
        assert engine.should_show(["ramen"], 2.0) is True

    def test_from_settings_reload_keeps_settings_defaults(self, tmp_path):
        defaults = tmp_path / "defaults.yaml"
        defaults.write_text('place_categories_to_hide_csv: "nightlife"\n', encoding="utf-8")
        engine = PlaceVisibilityEngine.from_settings(
            Settings(REMOTE_DEFAULTS_PATH=defaults), remote=DictRemoteConfig()
        )
        assert "bars" in engine.hidden_categories
        assert engine.reload_config(DictRemoteConfig()) is False

    def test_malformed_taxonomy_is_fatal(self, tmp_path):
        path = tmp_path / "bad.json"
        path.write_text(json.dumps([{"alias": "food", "parents": "nope"}]), encoding="utf-8")
        with pytest.raises(MalformedRecord):
            PlaceVisibilityEngine.from_settings(
                Settings(TAXONOMY_DATA_PATH=path), remote=DictRemoteConfig()
            )

    def test_diagnostics(self, engine):
        report = engine.diagnostics()
        assert report["categories"] == 15
        assert report["strategy"] == "hide_list"
        assert "food" in report["roots"]
        assert report["max_depth"] == 3
        assert report["hidden_categories"] == 5
        assert report["metrics"]["gauges"]["taxonomy.categories"] == 15
        json.dumps(report)
