"""
Place category visibility engine.

Decides, for a candidate place described by its category tags and distance,
whether it should be surfaced, using a multi-parent category taxonomy and a
configurable hide-list.
"""

from .engine import PlaceVisibilityEngine
from .errors import (
    CategoryError,
    CycleDetected,
    DanglingParent,
    DepthExceeded,
    MalformedRecord,
    UnknownCategory,
)
from .filtering.visibility import VisibilityStrategy, get_visibility_policy

__version__ = "0.1.0"

__all__ = [
    "PlaceVisibilityEngine",
    "CategoryError",
    "CycleDetected",
    "DanglingParent",
    "DepthExceeded",
    "MalformedRecord",
    "UnknownCategory",
    "VisibilityStrategy",
    "get_visibility_policy",
]
