"""
Typed access to remotely configured values.

The remote store only hands back strings. Each key declares a ValueKind and
the matching parser turns the string into a typed value, or None when it does
not parse. Resolution order for a key:

1. the value fetched from the remote store, if it parses
2. the bundled YAML default (remote_config_defaults.yaml), if it parses
3. the default compiled into RemoteConfigKeys

Values are changed in the remote config console without a release; the
engine re-reads them through ``PlaceVisibilityEngine.reload_config``.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, Generic, List, Mapping, Optional, Protocol, TypeVar

from placefilter.configs.config import Config

logger = logging.getLogger(__name__)

T = TypeVar("T")


class ValueKind(str, Enum):
    """Kinds of remote-config values."""

    DOUBLE = "double"
    RADIUS = "radius"
    INT = "int"
    STRING = "string"
    STRING_ARRAY = "string_array"


# =============================================================================
# PARSERS
# =============================================================================


def parse_double(raw: str) -> Optional[float]:
    try:
        value = float(raw.strip())
    except ValueError:
        return None
    return value if math.isfinite(value) else None


def parse_radius(raw: str) -> Optional[float]:
    """Radii feed geo queries that misbehave on non-positive values."""
    value = parse_double(raw)
    if value is None or value <= 0:
        return None
    return value


def parse_int(raw: str) -> Optional[int]:
    try:
        return int(raw.strip())
    except ValueError:
        return None


def parse_string(raw: str) -> Optional[str]:
    return raw if raw != "" else None


def parse_string_array(raw: str) -> Optional[List[str]]:
    """Comma separated list; whitespace trimmed, empty segments dropped."""
    return [part.strip() for part in raw.split(",") if part.strip() != ""]


PARSERS: Dict[ValueKind, Callable[[str], Any]] = {
    ValueKind.DOUBLE: parse_double,
    ValueKind.RADIUS: parse_radius,
    ValueKind.INT: parse_int,
    ValueKind.STRING: parse_string,
    ValueKind.STRING_ARRAY: parse_string_array,
}


def parse_value(kind: ValueKind, raw: Any) -> Any:
    """Parse a raw value for the given kind. Returns None on failure."""
    if raw is None:
        return None
    if kind is ValueKind.STRING_ARRAY and isinstance(raw, list):
        raw = ",".join(str(item) for item in raw)
    elif not isinstance(raw, str):
        # YAML defaults come back typed (1.0, 30); normalize to the wire format
        raw = str(raw)
    return PARSERS[kind](raw)


# =============================================================================
# STORE
# =============================================================================


class RemoteConfigStore(Protocol):
    """The external remote-config collaborator: key -> raw string or None."""

    def get_string(self, key: str) -> Optional[str]: ...


class DictRemoteConfig:
    """In-memory RemoteConfigStore, used for tests and local runs."""

    def __init__(self, values: Optional[Mapping[str, Any]] = None):
        self._values: Dict[str, str] = {k: str(v) for k, v in (values or {}).items()}

    def get_string(self, key: str) -> Optional[str]:
        return self._values.get(key)

    def set(self, key: str, value: Any) -> None:
        self._values[key] = str(value)


# =============================================================================
# KEYS
# =============================================================================


@dataclass(frozen=True)
class RemoteConfigKey(Generic[T]):
    key: str
    kind: ValueKind
    default: T

    def value(
        self,
        store: Optional[RemoteConfigStore] = None,
        defaults: Optional[Mapping[str, Any]] = None,
    ) -> T:
        return resolve_value(self, store, defaults)


def resolve_value(
    config_key: RemoteConfigKey[T],
    store: Optional[RemoteConfigStore] = None,
    defaults: Optional[Mapping[str, Any]] = None,
) -> T:
    """Resolve a key: fetched value, then bundled default, then compiled default."""
    if store is not None:
        raw = store.get_string(config_key.key)
        if raw is not None:
            value = parse_value(config_key.kind, raw)
            if value is not None:
                return value
            if raw != "":
                logger.warning(
                    f"RemoteConfig: existing value for {config_key.key} "
                    f"is not a valid {config_key.kind.value}"
                )

    if defaults is None:
        defaults = Config.load_remote_defaults()
    if config_key.key in defaults:
        value = parse_value(config_key.kind, defaults[config_key.key])
        if value is not None:
            logger.debug(f"RemoteConfig: default value for {config_key.key} from bundled defaults")
            return value

    logger.debug(f"RemoteConfig: default value for {config_key.key} from compiled code")
    return config_key.default


class RemoteConfigKeys:
    """
    Keys of the values held in the remote config store.

    To add a value: declare the key here with its kind and a compiled
    default, set it in the remote config console, and read it with
    ``RemoteConfigKeys.<name>.value(store)``.
    """

    # The greatest absolute distance for which we'll show restaurants.
    max_restaurant_km = RemoteConfigKey("max_restaurant_km", ValueKind.DOUBLE, 1.0)

    # CSV of categories to hide, together with their descendants.
    # The real default lives in remote_config_defaults.yaml.
    place_categories_to_hide_csv = RemoteConfigKey("place_categories_to_hide_csv", ValueKind.STRING_ARRAY, [])

    @classmethod
    def all(cls) -> List[RemoteConfigKey]:
        return [v for v in vars(cls).values() if isinstance(v, RemoteConfigKey)]
