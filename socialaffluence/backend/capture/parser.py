"""
capture/parser.py

Converts a dashboard `detection_update` WebSocket message into a
DetectionSnapshot.

Message shape (as sent by the browser capture loop):
    {
        "type": "detection_update",
        "timestamp": 1718000000123,          # optional, ms or s
        "counts": {"total": 4, "people": 3,
                   "classCounts": {"person": 3, "car": 1}}
    }

Only structure is checked here; count values (integers, non-negative) are
validated by AlertEngine.record() so every source gets the same rules.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Mapping
from typing import Any

from ..engine.errors import IngestionError
from ..models import DetectionSnapshot

logger = logging.getLogger(__name__)

# Anything above this is a JavaScript Date.now() value in milliseconds
_MS_TIMESTAMP_FLOOR = 1e11


def normalise_timestamp(raw: Any, received_at: float) -> float:
    """Return epoch seconds for *raw* (seconds or ms); *received_at* when absent."""
    if raw is None:
        return received_at
    if isinstance(raw, bool) or not isinstance(raw, (int, float)) or not math.isfinite(raw):
        raise IngestionError(f"invalid timestamp: {raw!r}")
    if raw > _MS_TIMESTAMP_FLOOR:
        return raw / 1000.0
    return float(raw)


def parse_detection_update(message: Mapping[str, Any], received_at: float) -> DetectionSnapshot:
    """
    Build a DetectionSnapshot from a detection_update message.

    Raises:
        IngestionError: missing or malformed `counts` / `classCounts`.
    """
    counts = message.get("counts")
    if not isinstance(counts, Mapping):
        raise IngestionError("detection_update requires a 'counts' object")

    class_counts = counts.get("classCounts")
    if not isinstance(class_counts, Mapping):
        raise IngestionError("detection_update requires 'counts.classCounts' object")

    timestamp = normalise_timestamp(message.get("timestamp"), received_at)
    return DetectionSnapshot(timestamp=timestamp, per_class_counts=dict(class_counts))
