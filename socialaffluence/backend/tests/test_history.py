"""
tests/test_history.py

Tests for aggregation/history.py — sliding-window retention and
windowed per-class counting. All timestamps are explicit; no clock involved.
"""

from __future__ import annotations

import pytest

from socialaffluence.backend.aggregation.history import DetectionHistory
from socialaffluence.backend.models import DetectionSnapshot


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def snap(t: float, **counts: int) -> DetectionSnapshot:
    return DetectionSnapshot(timestamp=float(t), per_class_counts=counts)


# ---------------------------------------------------------------------------
# Construction
# ---------------------------------------------------------------------------

class TestHistoryInit:

    def test_default_retention_is_five_minutes(self):
        assert DetectionHistory().retention_seconds == 300

    @pytest.mark.parametrize("retention", [0, -1])
    def test_non_positive_retention_rejected(self, retention):
        with pytest.raises(ValueError):
            DetectionHistory(retention)


# ---------------------------------------------------------------------------
# record()
# ---------------------------------------------------------------------------

class TestRecord:

    def test_snapshot_with_detections_is_kept(self):
        h = DetectionHistory()
        assert h.record(snap(1, person=2)) is True
        assert len(h) == 1

    def test_all_zero_snapshot_is_dropped(self):
        h = DetectionHistory()
        assert h.record(snap(1, person=0, car=0)) is False
        assert h.record(snap(2)) is False
        assert len(h) == 0

    def test_entries_at_retention_horizon_are_purged(self):
        h = DetectionHistory(300)
        h.record(snap(0, person=1))
        h.record(snap(300, person=1))   # 0 <= 300 - 300 → evicted
        assert len(h) == 1
        assert h.oldest_timestamp == 300

    def test_entries_inside_retention_survive(self):
        h = DetectionHistory(300)
        h.record(snap(0, person=1))
        h.record(snap(299.9, person=1))
        assert len(h) == 2

    def test_empty_snapshot_still_purges(self):
        """Purge is eager on every record, even when the snapshot is dropped."""
        h = DetectionHistory(300)
        h.record(snap(0, person=1))
        h.record(snap(400))
        assert len(h) == 0

    def test_clear(self):
        h = DetectionHistory()
        h.record(snap(1, person=1))
        h.clear()
        assert len(h) == 0
        assert h.newest_timestamp is None


# ---------------------------------------------------------------------------
# count_in_window()
# ---------------------------------------------------------------------------

class TestCountInWindow:

    def test_sums_only_requested_classes(self):
        h = DetectionHistory()
        h.record(snap(10, person=3, car=7))
        h.record(snap(11, person=2, dog=1))
        assert h.count_in_window(["person"], 30, 11) == 5
        assert h.count_in_window(["person", "dog"], 30, 11) == 6
        assert h.count_in_window(["car"], 30, 11) == 7

    def test_absent_class_counts_as_zero(self):
        h = DetectionHistory()
        h.record(snap(10, car=4))
        assert h.count_in_window(["person"], 30, 10) == 0

    def test_snapshot_exactly_window_old_is_excluded(self):
        h = DetectionHistory()
        h.record(snap(70, person=4))
        assert h.count_in_window(["person"], 30, 100) == 0

    def test_snapshot_just_inside_window_is_included(self):
        h = DetectionHistory()
        h.record(snap(70.001, person=4))
        assert h.count_in_window(["person"], 30, 100) == 4

    def test_snapshot_at_as_of_is_included(self):
        h = DetectionHistory()
        h.record(snap(100, person=2))
        assert h.count_in_window(["person"], 30, 100) == 2

    def test_snapshots_after_as_of_are_ignored(self):
        h = DetectionHistory()
        h.record(snap(50, person=1))
        h.record(snap(60, person=5))
        assert h.count_in_window(["person"], 30, 55) == 1

    def test_empty_history(self):
        assert DetectionHistory().count_in_window(["person"], 30, 0) == 0
