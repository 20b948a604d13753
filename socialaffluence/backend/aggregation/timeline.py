"""
aggregation/timeline.py

Dashboard aggregates fed by every accepted snapshot.

DetectionTotals — running totals since start (total, people, per class)
MinuteTimeline  — per-minute buckets for the analytics chart

Minute boundaries come from the snapshot timestamps, not the clock, so a
bucket seals when the first snapshot of a later minute arrives (or on flush()).
Minutes with no snapshots produce no bucket.

Thread safety: NOT thread-safe. Called exclusively from the event loop.
"""

from __future__ import annotations

import logging
from collections import deque

from ..models import DetectionSnapshot
from .models import TimelineBucket

logger = logging.getLogger(__name__)

PEOPLE_CLASS = "person"


def _minute_start(timestamp: float) -> float:
    return float(int(timestamp // 60) * 60)


class DetectionTotals:
    """Cumulative counts across the lifetime of the process."""

    def __init__(self) -> None:
        self.total = 0
        self.people = 0
        self.class_counts: dict[str, int] = {}

    def add(self, snapshot: DetectionSnapshot) -> None:
        for cls, count in snapshot.per_class_counts.items():
            if count <= 0:
                continue
            self.class_counts[cls] = self.class_counts.get(cls, 0) + count
            self.total += count
            if cls == PEOPLE_CLASS:
                self.people += count

    def as_dict(self) -> dict:
        return {
            "total": self.total,
            "people": self.people,
            "class_counts": dict(self.class_counts),
        }

    def reset(self) -> None:
        self.total = 0
        self.people = 0
        self.class_counts = {}


class MinuteTimeline:
    """
    Accumulates snapshots into one-minute buckets.

    Args:
        max_buckets: Number of sealed buckets to keep (oldest evicted).
    """

    def __init__(self, max_buckets: int = 60) -> None:
        self._sealed: deque[TimelineBucket] = deque(maxlen=max_buckets)
        self._current: TimelineBucket | None = None

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def add(self, snapshot: DetectionSnapshot) -> TimelineBucket | None:
        """
        Add a snapshot to its minute.

        Returns:
            The sealed previous bucket if this snapshot opened a new minute,
            else None.
        """
        minute = _minute_start(snapshot.timestamp)
        completed = None
        if self._current is None:
            self._current = TimelineBucket(minute_start=minute)
        elif minute > self._current.minute_start:
            completed = self._seal()
            self._current = TimelineBucket(minute_start=minute)
        self._accumulate(snapshot)
        return completed

    def flush(self) -> TimelineBucket | None:
        """Force the current minute closed. Returns None if nothing is open."""
        if self._current is None:
            return None
        return self._seal()

    def buckets(self, include_current: bool = False) -> list[TimelineBucket]:
        """Sealed buckets oldest first, optionally followed by the open minute."""
        out = list(self._sealed)
        if include_current and self._current is not None:
            out.append(self._current)
        return out

    def clear(self) -> None:
        self._sealed.clear()
        self._current = None

    @property
    def current(self) -> TimelineBucket | None:
        return self._current

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _accumulate(self, snapshot: DetectionSnapshot) -> None:
        bucket = self._current
        for cls, count in snapshot.per_class_counts.items():
            if count <= 0:
                continue
            bucket.class_counts[cls] = bucket.class_counts.get(cls, 0) + count
            bucket.total += count
            if cls == PEOPLE_CLASS:
                bucket.people += count

    def _seal(self) -> TimelineBucket:
        bucket = self._current
        self._sealed.append(bucket)
        self._current = None
        logger.debug("Minute sealed — %r", bucket)
        return bucket
