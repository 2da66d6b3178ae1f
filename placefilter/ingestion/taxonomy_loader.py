"""
taxonomy_loader.py

Parses the bundled category feed (Yelp categories JSON) into an immutable
Taxonomy.

The feed is build-time data shipped with the package. Any record that does
not parse is a packaging defect, so the loader raises MalformedRecord and the
engine never starts.

Usage:
    python -m placefilter.ingestion.taxonomy_loader [path]
"""

from __future__ import annotations

import json
import logging
import sys
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, Iterable, Optional, Union

from pydantic import ValidationError

from placefilter.configs.settings import get_settings
from placefilter.errors import MalformedRecord
from placefilter.schemas.taxonomy import CategoryNode, CategoryRecord, Taxonomy

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# RECORD PARSING
# ---------------------------------------------------------------------------

def _describe_errors(exc: ValidationError) -> str:
    return "; ".join(
        f"{'.'.join(str(p) for p in err['loc']) or 'record'}: {err['msg']}"
        for err in exc.errors()
    )


def parse_record(raw: Any, index: int = -1) -> CategoryRecord:
    """
    Validate one raw feed record.

    Parameters
    ----------
    raw : Any
        Decoded JSON object for one category.
    index : int
        Position in the feed, used in error messages.

    Returns
    -------
    CategoryRecord
        Validated record.
    """
    if not isinstance(raw, dict):
        raise MalformedRecord(f"expected an object, got {type(raw).__name__}", index)
    try:
        return CategoryRecord.model_validate(raw)
    except ValidationError as e:
        raise MalformedRecord(_describe_errors(e), index) from e


def load(raw_records: Iterable[Any]) -> Taxonomy:
    """
    Build a Taxonomy from already-decoded feed records.

    Parameters
    ----------
    raw_records : Iterable[Any]
        Sequence of ``{"alias": str, "parents": [str, ...]}`` objects.

    Returns
    -------
    Taxonomy
        One CategoryNode per record.
    """
    nodes: Dict[str, CategoryNode] = {}

    for i, raw in enumerate(raw_records):
        record = parse_record(raw, i)
        if record.alias in nodes:
            raise MalformedRecord(f"duplicate alias {record.alias!r}", i)
        nodes[record.alias] = CategoryNode(
            id=record.alias,
            parents=frozenset(record.parents),
            title=record.title,
        )

    logger.info(f"Loaded taxonomy with {len(nodes)} categories")
    return Taxonomy(nodes)


def load_bytes(blob: Union[bytes, str]) -> Taxonomy:
    """
    Parse a JSON array blob and build the Taxonomy.
    """
    try:
        data = json.loads(blob)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise MalformedRecord(f"taxonomy feed is not valid JSON: {e}") from e

    if not isinstance(data, list):
        raise MalformedRecord(f"taxonomy feed must be a JSON array, got {type(data).__name__}")

    return load(data)


def load_file(path: Union[str, Path]) -> Taxonomy:
    """
    Load a taxonomy JSON file.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Taxonomy file not found at: {path}")

    return load_bytes(path.read_bytes())


@lru_cache
def load_bundled_taxonomy(path: Optional[Path] = None) -> Taxonomy:
    """
    Load and cache the taxonomy at ``path`` (default: configured TAXONOMY_DATA_PATH).
    """
    return load_file(path or get_settings().TAXONOMY_DATA_PATH)


# ---------------------------------------------------------------------------
# ENTRYPOINT
# ---------------------------------------------------------------------------
if __name__ == "__main__":
    target = Path(sys.argv[1]) if len(sys.argv) > 1 else get_settings().TAXONOMY_DATA_PATH
    taxonomy = load_file(target)
    roots = sorted(cid for cid, node in taxonomy.items() if node.is_root)
    print(f"{len(taxonomy)} categories, {len(roots)} roots: {', '.join(roots)}")
