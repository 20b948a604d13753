"""
engine/errors.py

Exception taxonomy for the alert engine.

ValidationError — malformed rule definition, rejected before storage
IngestionError  — malformed or out-of-order snapshot, rejected atomically
NotFoundError   — operation referenced an unknown rule id
SinkError       — audible cue failed; logged at the boundary, never raised
                  out of AlertEngine.record()
"""

from __future__ import annotations


class AlertEngineError(Exception):
    """Base class for every error the alert engine surfaces."""


class ValidationError(AlertEngineError):
    """A rule definition violates its invariants."""

    def __init__(self, message: str, field: str | None = None) -> None:
        super().__init__(message)
        self.field = field


class IngestionError(AlertEngineError):
    """A detection snapshot was rejected at record() time."""


class NotFoundError(AlertEngineError):
    """No rule exists with the given id."""

    def __init__(self, rule_id: str) -> None:
        super().__init__(f"Rule {rule_id!r} not found")
        self.rule_id = rule_id


class SinkError(AlertEngineError):
    """The notification sink failed to play the audible cue."""
