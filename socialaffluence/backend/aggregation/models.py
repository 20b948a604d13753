"""
aggregation/models.py

Data models for the dashboard aggregation layer.

TimelineBucket — one sealed minute of detection counts
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass
class TimelineBucket:
    """
    Detection counts accumulated over one wall-clock minute.

    Produced by MinuteTimeline when a later minute begins.
    """

    minute_start: float
    """Unix timestamp of the minute's first second."""

    total: int = 0
    people: int = 0

    class_counts: dict[str, int] = field(default_factory=dict)
    """e.g. {'person': 41, 'car': 12}"""

    def to_dict(self) -> dict[str, Any]:
        return {
            "timestamp": self.minute_start,
            "total": self.total,
            "people": self.people,
            "class_counts": dict(self.class_counts),
        }

    def __repr__(self) -> str:
        return (
            f"TimelineBucket(minute={self.minute_start:.0f} "
            f"total={self.total} people={self.people})"
        )
