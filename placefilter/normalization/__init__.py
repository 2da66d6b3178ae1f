"""
Derived category structures.

This package contains:
- closure_index.py: descendant / root-ancestor closures over the taxonomy
- hidden_set.py: hide-list expansion and the hidden-set snapshot owner
"""

from .closure_index import ClosureIndex
from .hidden_set import HiddenSetResolver, parse_category_csv, resolve

__all__ = ["ClosureIndex", "HiddenSetResolver", "parse_category_csv", "resolve"]
