"""Structured events for engine traceability."""

from __future__ import annotations

import logging
from typing import Any


def emit_event(
    logger: logging.Logger | logging.LoggerAdapter,
    event: str,
    payload: dict[str, Any] | None = None,
    *,
    level: str = "info",
    stage: str | None = None,
) -> None:
    """Emit a structured event to the logger."""
    lvl = getattr(logging, level.upper(), logging.INFO)

    # JsonFormatter picks up event/payload/stage from the record
    extra: dict[str, Any] = {
        "event": event,
        "payload": payload or {},
    }
    if stage:
        extra["stage"] = stage

    logger.log(lvl, f"Event: {event}", extra=extra)
