# placefilter/errors.py
"""
Error taxonomy for the category visibility engine.

Only MalformedRecord is ever raised: it means the bundled taxonomy is broken
and the process must not start serving queries. The other conditions are
data-quality findings; they are built, handed to a DiagnosticsReporter and
the computation carries on without them.
"""

from typing import Tuple


class CategoryError(Exception):
    """Base class for category errors and conditions."""


class MalformedRecord(CategoryError):
    """A taxonomy record could not be parsed (fatal)."""

    def __init__(self, message: str, index: int = -1):
        self.index = index
        prefix = f"record #{index}: " if index >= 0 else ""
        super().__init__(prefix + message)


class CategoryCondition(CategoryError):
    """
    Non-fatal condition. Never raised to callers of the query interface.
    """

    kind = "condition"

    @property
    def key(self) -> Tuple[str, str]:
        """Identity of the condition; the message carries every field."""
        return (self.kind, str(self))

    def as_dict(self) -> dict:
        return {"kind": self.kind, "message": str(self)}


class UnknownCategory(CategoryCondition):
    """An alias referenced by configuration or a place is absent from the taxonomy."""

    kind = "UnknownCategory"

    def __init__(self, alias: str, source: str = "hide_list"):
        self.alias = alias
        self.source = source
        super().__init__(f"unknown category {alias!r} (from {source}), ignoring")

    def as_dict(self) -> dict:
        return {**super().as_dict(), "alias": self.alias, "source": self.source}


class DanglingParent(CategoryCondition):
    """A category names a parent that is not itself in the taxonomy."""

    kind = "DanglingParent"

    def __init__(self, alias: str, parent: str):
        self.alias = alias
        self.parent = parent
        super().__init__(f"category {alias!r} references missing parent {parent!r}")

    def as_dict(self) -> dict:
        return {**super().as_dict(), "alias": self.alias, "parent": self.parent}


class CycleDetected(CategoryCondition):
    """The parent graph is not acyclic."""

    kind = "CycleDetected"

    def __init__(self, members: Tuple[str, ...]):
        self.members = tuple(sorted(members))
        super().__init__(f"cycle detected among categories {list(self.members)}")

    def as_dict(self) -> dict:
        return {**super().as_dict(), "members": list(self.members)}


class DepthExceeded(CategoryCondition):
    """The hierarchy is deeper than the configured depth assumption."""

    kind = "DepthExceeded"

    def __init__(self, alias: str, depth: int, max_depth: int):
        self.alias = alias
        self.depth = depth
        self.max_depth = max_depth
        super().__init__(
            f"category {alias!r} sits {depth} levels deep (assumed at most {max_depth}); "
            "closure computed in full"
        )

    def as_dict(self) -> dict:
        return {
            **super().as_dict(),
            "alias": self.alias,
            "depth": self.depth,
            "max_depth": self.max_depth,
        }
