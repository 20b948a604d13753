"""
tests/test_notifier.py

Tests for engine/notifier.py — audible cue implementations and factory.
"""

from __future__ import annotations

import io
from unittest.mock import MagicMock

import pytest

from socialaffluence.backend.engine.models import TriggeredAlert
from socialaffluence.backend.engine.notifier import (
    MELODY,
    CallbackCue,
    ConsoleMelodyCue,
    NullCue,
    build_cue,
)


@pytest.fixture
def alert() -> TriggeredAlert:
    return TriggeredAlert(
        id="alert_1",
        rule_id="rule_1",
        rule_name="Crowd at entrance",
        triggered_at=10.0,
        detection_count=6,
        class_types=("person",),
        time_window_seconds=30,
        threshold=5,
    )


def test_melody_is_c_e_g():
    assert [note for note, _, _ in MELODY] == ["C5", "E5", "G5"]


class TestConsoleMelodyCue:

    def test_rings_once_per_note_and_prints_summary(self, alert):
        stream = io.StringIO()
        ConsoleMelodyCue(stream=stream, colour=False).notify(alert)
        out = stream.getvalue()
        assert out.startswith("\a\a\a")
        assert "Crowd at entrance: 6 detections of person in 30s (threshold=5)" in out
        assert out.endswith("\n")

    def test_colour_wraps_line(self, alert):
        stream = io.StringIO()
        ConsoleMelodyCue(stream=stream).notify(alert)
        assert "\033[93m" in stream.getvalue()


class TestBuildCue:

    def test_console(self):
        assert isinstance(build_cue("console"), ConsoleMelodyCue)

    def test_none(self):
        assert isinstance(build_cue("none"), NullCue)

    def test_websocket_forwards_to_callback(self, alert):
        callback = MagicMock()
        cue = build_cue("websocket", callback=callback)
        assert isinstance(cue, CallbackCue)
        cue.notify(alert)
        callback.assert_called_once_with(alert)

    def test_websocket_without_callback(self):
        with pytest.raises(ValueError):
            build_cue("websocket")

    def test_unknown_mode(self):
        with pytest.raises(ValueError):
            build_cue("trumpet")
