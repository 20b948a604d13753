"""
engine/notifier.py

Audible-cue capability invoked once per firing.

The engine only knows the AudibleCue protocol (a single notify() method);
whatever actually makes a sound lives behind it. Cue failures are caught by
the engine and never affect its state.

    NullCue          — sound suppressed
    ConsoleMelodyCue — coloured console line + terminal bell per melody note
    CallbackCue      — forwards to any callable (the server pushes play_cue
                       over the WebSocket with it)
"""

from __future__ import annotations

import sys
from typing import Callable, Protocol, TextIO

from .models import TriggeredAlert

# Gentle three-note chime: (note, frequency Hz, duration s)
MELODY: tuple[tuple[str, float, float], ...] = (
    ("C5", 523.25, 0.3),
    ("E5", 659.25, 0.3),
    ("G5", 783.99, 0.5),
)

_ANSI_ALERT = "\033[93m"
_ANSI_RESET = "\033[0m"


class AudibleCue(Protocol):
    def notify(self, alert: TriggeredAlert) -> None:
        ...


class NullCue:
    def notify(self, alert: TriggeredAlert) -> None:
        return None


class ConsoleMelodyCue:
    """Rings the terminal bell once per melody note and prints a summary line."""

    def __init__(self, stream: TextIO | None = None, colour: bool = True) -> None:
        self._stream = stream
        self._colour = colour

    def notify(self, alert: TriggeredAlert) -> None:
        stream = self._stream or sys.stdout
        line = (
            f"[ALERT ★] {alert.rule_name}: {alert.detection_count} detections "
            f"of {', '.join(alert.class_types)} in {alert.time_window_seconds}s "
            f"(threshold={alert.threshold})"
        )
        if self._colour:
            line = f"{_ANSI_ALERT}{line}{_ANSI_RESET}"
        stream.write("\a" * len(MELODY) + line + "\n")
        stream.flush()


class CallbackCue:
    def __init__(self, callback: Callable[[TriggeredAlert], None]) -> None:
        self._callback = callback

    def notify(self, alert: TriggeredAlert) -> None:
        self._callback(alert)


def build_cue(
    mode: str,
    callback: Callable[[TriggeredAlert], None] | None = None,
) -> AudibleCue:
    """Return the cue for a CUE_MODE setting ("console" | "websocket" | "none")."""
    if mode == "console":
        return ConsoleMelodyCue()
    if mode == "websocket":
        if callback is None:
            raise ValueError("websocket cue mode requires a callback")
        return CallbackCue(callback)
    if mode == "none":
        return NullCue()
    raise ValueError(f"Unknown cue mode: {mode!r}")
