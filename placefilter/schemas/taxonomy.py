# placefilter/schemas/taxonomy.py
"""
Data shapes for the place category taxonomy.

- CategoryRecord: one raw record of the external feed (validated on load)
- CategoryNode: an immutable taxonomy node (id + parent ids)
- Taxonomy: read-only mapping CategoryId -> CategoryNode
- PlaceView: the two place fields the visibility engine looks at
"""

from types import MappingProxyType
from typing import Dict, FrozenSet, Iterator, List, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, StrictStr, field_validator

CategoryId = str

# =============================================================================
# FEED RECORDS
# =============================================================================


class CategoryRecord(BaseModel):
    """One record of the category feed (Yelp categories JSON format)."""

    model_config = ConfigDict(extra="ignore")

    alias: StrictStr = Field(min_length=1, description="Category id, case sensitive")
    parents: List[StrictStr] = Field(description="Aliases of the parent categories")
    title: Optional[str] = Field(default=None, description="Human-readable name")

    @field_validator("parents", mode="before")
    @classmethod
    def _parents_must_be_list(cls, value):
        # tuples and sets would be coerced by pydantic; the feed contract is a JSON array
        if not isinstance(value, list):
            raise ValueError("parents must be a list of strings")
        return value


# =============================================================================
# TAXONOMY
# =============================================================================


class CategoryNode(BaseModel):
    """A category and its direct parents. Empty parents means a root."""

    model_config = ConfigDict(frozen=True)

    id: CategoryId
    parents: FrozenSet[CategoryId] = frozenset()
    title: Optional[str] = None

    @property
    def is_root(self) -> bool:
        return not self.parents


class Taxonomy(Mapping[CategoryId, CategoryNode]):
    """
    Immutable mapping of category id to node, built once from the feed.
    """

    def __init__(self, nodes: Dict[CategoryId, CategoryNode]):
        self._nodes = MappingProxyType(dict(nodes))

    def __getitem__(self, cid: CategoryId) -> CategoryNode:
        return self._nodes[cid]

    def __iter__(self) -> Iterator[CategoryId]:
        return iter(self._nodes)

    def __len__(self) -> int:
        return len(self._nodes)

    def __repr__(self) -> str:
        return f"Taxonomy({len(self)} categories)"

    def title_for(self, cid: CategoryId) -> Optional[str]:
        node = self._nodes.get(cid)
        return node.title if node else None


# =============================================================================
# PLACE VIEW
# =============================================================================


class PlaceView(BaseModel):
    """The place fields that matter for visibility decisions."""

    model_config = ConfigDict(frozen=True)

    categories: List[CategoryId] = Field(default_factory=list)
    distance_km: float = Field(ge=0)
    key: Optional[str] = Field(default=None, description="Upstream place key, informational")
