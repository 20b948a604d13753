"""
tests/test_parser.py

Tests for capture/parser.py — detection_update message parsing.
"""

from __future__ import annotations

import pytest

from socialaffluence.backend.capture.parser import normalise_timestamp, parse_detection_update
from socialaffluence.backend.engine.errors import IngestionError


def message(**overrides):
    msg = {
        "type": "detection_update",
        "timestamp": 1_718_000_000_500,
        "counts": {"total": 4, "people": 3, "classCounts": {"person": 3, "car": 1}},
    }
    msg.update(overrides)
    return msg


class TestNormaliseTimestamp:

    def test_milliseconds_converted(self):
        assert normalise_timestamp(1_718_000_000_500, 0.0) == pytest.approx(1_718_000_000.5)

    def test_seconds_kept(self):
        assert normalise_timestamp(1_718_000_000, 0.0) == 1_718_000_000.0

    def test_missing_uses_receive_time(self):
        assert normalise_timestamp(None, 42.0) == 42.0

    @pytest.mark.parametrize("raw", [True, "123", float("nan"), float("inf"), [1]])
    def test_invalid_rejected(self, raw):
        with pytest.raises(IngestionError):
            normalise_timestamp(raw, 0.0)


class TestParseDetectionUpdate:

    def test_valid_message(self):
        snapshot = parse_detection_update(message(), received_at=0.0)
        assert snapshot.timestamp == pytest.approx(1_718_000_000.5)
        assert snapshot.per_class_counts == {"person": 3, "car": 1}

    def test_class_counts_copied(self):
        msg = message()
        snapshot = parse_detection_update(msg, received_at=0.0)
        msg["counts"]["classCounts"]["person"] = 99
        assert snapshot.per_class_counts["person"] == 3

    def test_missing_timestamp(self):
        msg = message()
        del msg["timestamp"]
        assert parse_detection_update(msg, received_at=7.0).timestamp == 7.0

    def test_missing_counts(self):
        msg = message()
        del msg["counts"]
        with pytest.raises(IngestionError):
            parse_detection_update(msg, received_at=0.0)

    @pytest.mark.parametrize("class_counts", [None, [], "person=3"])
    def test_bad_class_counts(self, class_counts):
        with pytest.raises(IngestionError):
            parse_detection_update(
                message(counts={"classCounts": class_counts}), received_at=0.0
            )
