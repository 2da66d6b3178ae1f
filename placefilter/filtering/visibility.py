"""
Module for place visibility policies.

Two filtering strategies evolved independently and both are kept:

- HIDE_LIST: suppress restaurants beyond a distance, then hide a place when
  every one of its categories is in the expanded hide-list.
- ROOT_CATEGORY: no distance gate; hide a place when every root ancestor of
  its categories is in the fixed HIDDEN_ROOT_CATEGORIES set.

They disagree on some places (e.g. a place tagged with a child of a hidden
root and a child of a visible one), so callers choose one explicitly.
"""

import logging
from abc import ABC, abstractmethod
from enum import Enum
from typing import FrozenSet, Iterable, List, Optional, Sequence, Set

from placefilter.errors import UnknownCategory
from placefilter.monitoring.diagnostics import DiagnosticsReporter
from placefilter.normalization.closure_index import ClosureIndex
from placefilter.schemas.taxonomy import CategoryId, PlaceView

logger = logging.getLogger(__name__)

# Permanent roots of the restaurant subtree; overridable for tests.
RESTAURANT_ROOT_CATEGORIES: Sequence[CategoryId] = ("food", "restaurants")

# Root categories the app never surfaces. Fixed on purpose: not remote-configurable.
HIDDEN_ROOT_CATEGORIES: FrozenSet[CategoryId] = frozenset(
    {
        "auto",
        "bicycles",
        "education",
        "financialservices",
        "health",
        "homeservices",
        "localservices",
        "massmedia",
        "pets",
        "professional",
        "publicservicesgovt",
        "realestate",
        "religiousorgs",
    }
)


class VisibilityStrategy(Enum):
    """Available visibility policies."""

    HIDE_LIST = "hide_list"
    ROOT_CATEGORY = "root_category"


# =============================================================================
# DECISION FUNCTIONS
# =============================================================================


def restaurant_categories(
    index: ClosureIndex, roots: Iterable[CategoryId] = RESTAURANT_ROOT_CATEGORIES
) -> FrozenSet[CategoryId]:
    """All food or restaurant related categories: the roots plus their descendants."""
    return index.closure(roots)


def known_categories(
    categories: Iterable[CategoryId],
    index: ClosureIndex,
    reporter: Optional[DiagnosticsReporter] = None,
) -> Set[CategoryId]:
    """The place tags present in the taxonomy; the rest are reported and dropped."""
    known = set()
    for cid in categories:
        if cid in index:
            known.add(cid)
        elif reporter is not None:
            reporter.report(UnknownCategory(cid, source="place"))
    return known


def should_show(
    categories: Iterable[CategoryId],
    distance_km: float,
    hidden: FrozenSet[CategoryId],
    restaurant_categories: FrozenSet[CategoryId],
    max_restaurant_km: float,
    *,
    index: Optional[ClosureIndex] = None,
    reporter: Optional[DiagnosticsReporter] = None,
) -> bool:
    """
    Decide whether a place is surfaced, hide-list flavour.

    Args:
        categories: Place category tags.
        distance_km: Distance from the user to the place.
        hidden: Expanded hide-list snapshot.
        restaurant_categories: Closure of the restaurant roots.
        max_restaurant_km: Farthest distance at which restaurants are shown.
        index: When given, tags unknown to the taxonomy are dropped first.
        reporter: Sink for UnknownCategory conditions.

    Returns:
        False for distant restaurants and for places whose every tag is hidden.
    """
    if index is not None:
        category_set = known_categories(categories, index, reporter)
    else:
        category_set = set(categories)

    is_restaurant = not category_set.isdisjoint(restaurant_categories)
    if is_restaurant and distance_km > max_restaurant_km:
        return False

    if not category_set:
        return True

    return bool(category_set - hidden)


def should_show_by_root_categories(
    categories: Iterable[CategoryId],
    index: ClosureIndex,
    hidden_roots: FrozenSet[CategoryId] = HIDDEN_ROOT_CATEGORIES,
    *,
    reporter: Optional[DiagnosticsReporter] = None,
) -> bool:
    """
    Decide whether a place is surfaced, root-category flavour.

    Hidden only if every root ancestor of its known categories is in ``hidden_roots``.
    """
    roots: Set[CategoryId] = set()
    for cid in known_categories(categories, index, reporter):
        roots |= index.root_ancestors(cid)

    if not roots:
        return True
    return not roots <= hidden_roots


# =============================================================================
# POLICIES
# =============================================================================


class VisibilityPolicy(ABC):
    """
    Abstract base for visibility policies. Instances are immutable.
    """

    strategy: VisibilityStrategy

    @abstractmethod
    def should_show(self, categories: Iterable[CategoryId], distance_km: float) -> bool:
        """
        True if the place should be surfaced to the user.
        """

    def filter(self, places: Iterable[PlaceView]) -> List[PlaceView]:
        """
        Keep the places that should show, preserving order.
        """
        return [p for p in places if self.should_show(p.categories, p.distance_km)]


class HideListVisibilityPolicy(VisibilityPolicy):
    """
    Distance-gated restaurants + expanded hide-list.
    """

    strategy = VisibilityStrategy.HIDE_LIST

    def __init__(
        self,
        index: ClosureIndex,
        hidden: FrozenSet[CategoryId],
        max_restaurant_km: float,
        restaurant_roots: Iterable[CategoryId] = RESTAURANT_ROOT_CATEGORIES,
        reporter: Optional[DiagnosticsReporter] = None,
    ):
        self.index = index
        self.hidden = frozenset(hidden)
        self.max_restaurant_km = max_restaurant_km
        self.restaurant_categories = restaurant_categories(index, restaurant_roots)
        self.reporter = reporter

    def should_show(self, categories: Iterable[CategoryId], distance_km: float) -> bool:
        return should_show(
            categories,
            distance_km,
            self.hidden,
            self.restaurant_categories,
            self.max_restaurant_km,
            index=self.index,
            reporter=self.reporter,
        )


class RootCategoryVisibilityPolicy(VisibilityPolicy):
    """
    Root-ancestor based hiding. Distance is ignored.
    """

    strategy = VisibilityStrategy.ROOT_CATEGORY

    def __init__(
        self,
        index: ClosureIndex,
        hidden_roots: FrozenSet[CategoryId] = HIDDEN_ROOT_CATEGORIES,
        reporter: Optional[DiagnosticsReporter] = None,
    ):
        self.index = index
        self.hidden_roots = frozenset(hidden_roots)
        self.reporter = reporter

    def should_show(self, categories: Iterable[CategoryId], distance_km: float) -> bool:
        return should_show_by_root_categories(
            categories, self.index, self.hidden_roots, reporter=self.reporter
        )


def get_visibility_policy(
    strategy: VisibilityStrategy,
    index: ClosureIndex,
    *,
    hidden: FrozenSet[CategoryId] = frozenset(),
    max_restaurant_km: float = 1.0,
    restaurant_roots: Iterable[CategoryId] = RESTAURANT_ROOT_CATEGORIES,
    hidden_roots: FrozenSet[CategoryId] = HIDDEN_ROOT_CATEGORIES,
    reporter: Optional[DiagnosticsReporter] = None,
) -> VisibilityPolicy:
    """
    Factory function to build a visibility policy by strategy.

    Args:
        strategy: Which policy to build.
        index: Closure index shared by every policy.
        hidden: Expanded hide-list (HIDE_LIST only).
        max_restaurant_km: Restaurant distance gate (HIDE_LIST only).
        restaurant_roots: Roots of the restaurant subtree (HIDE_LIST only).
        hidden_roots: Hidden root categories (ROOT_CATEGORY only).
        reporter: Sink for non-fatal conditions.

    Returns:
        VisibilityPolicy instance
    """
    if strategy == VisibilityStrategy.HIDE_LIST:
        return HideListVisibilityPolicy(
            index, hidden, max_restaurant_km, restaurant_roots, reporter
        )
    elif strategy == VisibilityStrategy.ROOT_CATEGORY:
        return RootCategoryVisibilityPolicy(index, hidden_roots, reporter)
    else:
        raise ValueError(f"Unknown visibility strategy: {strategy}")
