"""
Shared pytest fixtures for the place visibility engine test suite.

Provides small hand-built taxonomies, the bundled Yelp taxonomy and a fresh
diagnostics reporter per test.
"""

import os
from typing import Dict, List

import pytest

from placefilter.configs.settings import get_settings
from placefilter.ingestion.taxonomy_loader import load, load_bundled_taxonomy
from placefilter.monitoring.diagnostics import DiagnosticsReporter
from placefilter.normalization.closure_index import ClosureIndex


@pytest.fixture(autouse=True)
def _isolated_settings(monkeypatch):
    """Keep PLACEFILTER_* variables of the host out of the tests."""
    for key in list(os.environ):
        if key.startswith("PLACEFILTER_"):
            monkeypatch.delenv(key, raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def make_taxonomy():
    """
    Return a function that builds a Taxonomy from ``{alias: [parents]}``.

    Example:
        taxonomy = make_taxonomy({"root": [], "leaf": ["root"]})
    """

    def _make(spec: Dict[str, List[str]]):
        return load([{"alias": alias, "parents": parents} for alias, parents in spec.items()])

    return _make


@pytest.fixture
def reporter():
    """A fresh diagnostics reporter."""
    return DiagnosticsReporter()


@pytest.fixture
def chain_taxonomy(make_taxonomy):
    """Three-level chain root -> mid -> leaf."""
    return make_taxonomy({"root": [], "mid": ["root"], "leaf": ["mid"]})


@pytest.fixture
def small_taxonomy(make_taxonomy):
    """
    A multi-parent taxonomy shaped like Yelp's.

    food, restaurants, shopping, auto, health are roots; farmersmarket sits
    under both food and shopping; sicilian is three levels deep.
    """
    return make_taxonomy(
        {
            "food": [],
            "restaurants": [],
            "shopping": [],
            "auto": [],
            "health": [],
            "coffee": ["food"],
            "coffeeroasteries": ["coffee"],
            "farmersmarket": ["food", "shopping"],
            "italian": ["restaurants"],
            "sicilian": ["italian"],
            "pizza": ["restaurants"],
            "bookstores": ["shopping"],
            "autorepair": ["auto"],
            "dentists": ["health"],
            "orthodontists": ["dentists"],
        }
    )


@pytest.fixture
def small_index(small_taxonomy, reporter):
    return ClosureIndex.build(small_taxonomy, reporter=reporter, max_depth=3)


@pytest.fixture
def bundled_taxonomy():
    return load_bundled_taxonomy()


@pytest.fixture
def bundled_index(bundled_taxonomy):
    return ClosureIndex.build(bundled_taxonomy, max_depth=3)
