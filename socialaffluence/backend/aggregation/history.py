"""
aggregation/history.py

DetectionHistory — bounded sliding window of DetectionSnapshot entries.

Design:
  - Snapshots arrive in non-decreasing timestamp order (the engine enforces it)
  - All-zero snapshots are dropped: they contribute nothing to any count
  - Purge is eager: every record() evicts entries older than the fixed
    retention ceiling, measured from the newest snapshot's timestamp
  - count_in_window() takes `as_of` explicitly, never reads the clock

Window membership: as_of - window_seconds < timestamp <= as_of
(a snapshot exactly window_seconds old is already outside the window).

Thread safety: NOT thread-safe. Single writer (the owning AlertEngine).
"""

from __future__ import annotations

import logging
from collections import deque
from typing import Iterable, Iterator

from ..models import DetectionSnapshot

logger = logging.getLogger(__name__)


class DetectionHistory:
    """
    Retains recent snapshots and answers windowed per-class count queries.

    Args:
        retention_seconds: Fixed horizon; anything older than the newest
                           snapshot minus this is discarded.
    """

    def __init__(self, retention_seconds: int = 300) -> None:
        if retention_seconds <= 0:
            raise ValueError(f"retention_seconds must be positive — got {retention_seconds}")
        self.retention_seconds = retention_seconds
        self._entries: deque[DetectionSnapshot] = deque()
        logger.debug("DetectionHistory initialised — retention=%ds", retention_seconds)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def record(self, snapshot: DetectionSnapshot) -> bool:
        """
        Append *snapshot* if it carries at least one detection, then purge.

        Returns:
            True if the snapshot was retained, False if it was all-zero.
        """
        kept = snapshot.has_detections
        if kept:
            self._entries.append(snapshot)
        self.purge(snapshot.timestamp)
        return kept

    def count_in_window(
        self,
        class_types: Iterable[str],
        window_seconds: float,
        as_of: float,
    ) -> int:
        """Sum counts for *class_types* over snapshots inside (as_of - window, as_of]."""
        classes = tuple(class_types)
        window_start = as_of - window_seconds
        total = 0
        # Newest first: stop as soon as we cross the window start
        for snap in reversed(self._entries):
            if snap.timestamp <= window_start:
                break
            if snap.timestamp > as_of:
                continue
            total += snap.count_for(classes)
        return total

    def purge(self, as_of: float) -> int:
        """Evict entries at or beyond the retention horizon. Returns evicted count."""
        horizon = as_of - self.retention_seconds
        evicted = 0
        while self._entries and self._entries[0].timestamp <= horizon:
            self._entries.popleft()
            evicted += 1
        if evicted:
            logger.debug("History purged %d snapshot(s) — %d retained", evicted, len(self._entries))
        return evicted

    def clear(self) -> None:
        self._entries.clear()

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    @property
    def oldest_timestamp(self) -> float | None:
        return self._entries[0].timestamp if self._entries else None

    @property
    def newest_timestamp(self) -> float | None:
        return self._entries[-1].timestamp if self._entries else None

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[DetectionSnapshot]:
        return iter(self._entries)

    def __repr__(self) -> str:
        return (
            f"DetectionHistory(retention={self.retention_seconds}s "
            f"entries={len(self._entries)})"
        )
