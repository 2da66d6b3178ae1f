# placefilter/normalization/closure_index.py
"""
Derived lookup structures over the category taxonomy.

The taxonomy is a multi-parent graph (a category can sit under several
parents) that is expected, but not guaranteed, to be acyclic. ClosureIndex
computes once, at build time:

- children: direct child map, with an entry for every category
- descendants: category -> all transitive children (never itself)
- root ancestors: category -> all parentless categories above it
- depth: longest root-to-category chain (a root has depth 1)

Walks are iterative with a visited set, so a cycle in the feed terminates
and is reported as CycleDetected instead of recursing forever. The index is
read-only after build and is shared across threads without locking.
"""

import logging
from types import MappingProxyType
from typing import Dict, FrozenSet, Iterable, List, Mapping, Optional, Set

from placefilter.errors import CycleDetected, DanglingParent, DepthExceeded
from placefilter.monitoring.diagnostics import DiagnosticsReporter
from placefilter.schemas.taxonomy import CategoryId, Taxonomy

logger = logging.getLogger(__name__)

_EMPTY: FrozenSet[CategoryId] = frozenset()


def _reach(start: CategoryId, edges: Mapping[CategoryId, Iterable[CategoryId]]) -> Set[CategoryId]:
    """All nodes reachable from ``start`` by one or more edges (may include start on a cycle)."""
    seen: Set[CategoryId] = set()
    stack: List[CategoryId] = list(edges.get(start, ()))
    while stack:
        node = stack.pop()
        if node in seen:
            continue
        seen.add(node)
        stack.extend(edges.get(node, ()))
    return seen


class ClosureIndex:
    """
    Descendant and root-ancestor closures of a Taxonomy.

    Use ``ClosureIndex.build(taxonomy)``; the constructor takes precomputed maps.
    """

    def __init__(
        self,
        taxonomy: Taxonomy,
        children: Dict[CategoryId, FrozenSet[CategoryId]],
        descendants: Dict[CategoryId, FrozenSet[CategoryId]],
        root_ancestors: Dict[CategoryId, FrozenSet[CategoryId]],
        depths: Dict[CategoryId, int],
    ):
        self.taxonomy = taxonomy
        self._children = MappingProxyType(children)
        self._descendants = MappingProxyType(descendants)
        self._root_ancestors = MappingProxyType(root_ancestors)
        self._depths = MappingProxyType(depths)
        self.roots: FrozenSet[CategoryId] = frozenset(
            cid for cid, node in taxonomy.items() if node.is_root
        )

    # -------------------------------------------------------------------------
    # BUILD
    # -------------------------------------------------------------------------

    @classmethod
    def build(
        cls,
        taxonomy: Taxonomy,
        *,
        reporter: Optional[DiagnosticsReporter] = None,
        max_depth: Optional[int] = None,
    ) -> "ClosureIndex":
        """
        Compute every closure for ``taxonomy``.

        Args:
            taxonomy: Loaded taxonomy.
            reporter: Sink for DanglingParent / CycleDetected / DepthExceeded.
            max_depth: Assumed maximum hierarchy depth. Deeper categories are
                reported, never truncated.

        Returns:
            The immutable index.
        """
        reporter = reporter or DiagnosticsReporter()

        parents = cls._known_parents(taxonomy, reporter)
        children = cls._child_map(taxonomy, parents)
        descendants = cls._descendant_map(children, reporter)
        root_ancestors = cls._root_ancestor_map(taxonomy, parents)
        depths = cls._depth_map(taxonomy, parents)

        if max_depth is not None:
            for cid, depth in sorted(depths.items()):
                if depth > max_depth:
                    reporter.report(DepthExceeded(cid, depth, max_depth))

        logger.info(
            f"Built closure index: {len(taxonomy)} categories, "
            f"max depth {max(depths.values(), default=0)}"
        )
        return cls(taxonomy, children, descendants, root_ancestors, depths)

    @staticmethod
    def _known_parents(
        taxonomy: Taxonomy, reporter: DiagnosticsReporter
    ) -> Dict[CategoryId, FrozenSet[CategoryId]]:
        """Parent edges restricted to categories that exist; dangling ones are reported."""
        known: Dict[CategoryId, FrozenSet[CategoryId]] = {}
        for cid, node in taxonomy.items():
            for parent in sorted(node.parents):
                if parent not in taxonomy:
                    reporter.report(DanglingParent(cid, parent))
            known[cid] = frozenset(p for p in node.parents if p in taxonomy)
        return known

    @staticmethod
    def _child_map(
        taxonomy: Taxonomy, parents: Mapping[CategoryId, FrozenSet[CategoryId]]
    ) -> Dict[CategoryId, FrozenSet[CategoryId]]:
        # Ensure leaf nodes have entries.
        children: Dict[CategoryId, Set[CategoryId]] = {cid: set() for cid in taxonomy}
        for cid, ps in parents.items():
            for parent in ps:
                children[parent].add(cid)
        return {cid: frozenset(cs) for cid, cs in children.items()}

    @staticmethod
    def _descendant_map(
        children: Mapping[CategoryId, FrozenSet[CategoryId]], reporter: DiagnosticsReporter
    ) -> Dict[CategoryId, FrozenSet[CategoryId]]:
        reach = {cid: _reach(cid, children) for cid in children}

        # A category that reaches itself sits on a cycle; report each cycle once.
        grouped: Set[CategoryId] = set()
        for cid in sorted(reach):
            if cid not in reach[cid] or cid in grouped:
                continue
            members = {cid} | {other for other in reach[cid] if cid in reach[other]}
            grouped |= members
            reporter.report(CycleDetected(tuple(members)))

        return {cid: frozenset(r - {cid}) for cid, r in reach.items()}

    @staticmethod
    def _root_ancestor_map(
        taxonomy: Taxonomy, parents: Mapping[CategoryId, FrozenSet[CategoryId]]
    ) -> Dict[CategoryId, FrozenSet[CategoryId]]:
        result: Dict[CategoryId, FrozenSet[CategoryId]] = {}
        for cid, node in taxonomy.items():
            if node.is_root:
                result[cid] = frozenset((cid,))
                continue
            result[cid] = frozenset(a for a in _reach(cid, parents) if taxonomy[a].is_root)
        return result

    @staticmethod
    def _depth_map(
        taxonomy: Taxonomy, parents: Mapping[CategoryId, FrozenSet[CategoryId]]
    ) -> Dict[CategoryId, int]:
        """Longest chain to a root, walking parents post-order; back edges are skipped."""
        depths: Dict[CategoryId, int] = {}
        for start in taxonomy:
            if start in depths:
                continue
            on_path = {start}
            stack = [(start, iter(sorted(parents[start])))]
            while stack:
                node, pending = stack[-1]
                for parent in pending:
                    if parent in depths or parent in on_path:
                        continue
                    on_path.add(parent)
                    stack.append((parent, iter(sorted(parents[parent]))))
                    break
                else:
                    stack.pop()
                    on_path.discard(node)
                    depths[node] = 1 + max(
                        (depths[p] for p in parents[node] if p in depths), default=0
                    )
        return depths

    # -------------------------------------------------------------------------
    # LOOKUPS
    # -------------------------------------------------------------------------

    def __contains__(self, cid: object) -> bool:
        return cid in self.taxonomy

    def children(self, cid: CategoryId) -> FrozenSet[CategoryId]:
        return self._children.get(cid, _EMPTY)

    def descendants(self, cid: CategoryId) -> FrozenSet[CategoryId]:
        """All transitive children of ``cid``, excluding ``cid``. Unknown ids have none."""
        return self._descendants.get(cid, _EMPTY)

    def root_ancestors(self, cid: CategoryId) -> FrozenSet[CategoryId]:
        """Parentless categories above ``cid`` (``{cid}`` for a root). Unknown ids have none."""
        return self._root_ancestors.get(cid, _EMPTY)

    def depth(self, cid: CategoryId) -> int:
        return self._depths.get(cid, 0)

    @property
    def max_depth(self) -> int:
        return max(self._depths.values(), default=0)

    @property
    def descendant_index(self) -> Mapping[CategoryId, FrozenSet[CategoryId]]:
        """Read-only category -> descendants mapping."""
        return self._descendants

    def closure(self, cids: Iterable[CategoryId]) -> FrozenSet[CategoryId]:
        """Known ``cids`` together with all their descendants."""
        out: Set[CategoryId] = set()
        for cid in cids:
            if cid in self.taxonomy:
                out.add(cid)
                out |= self.descendants(cid)
        return frozenset(out)
