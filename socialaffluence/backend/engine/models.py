"""
engine/models.py

Data models for the alert engine.

AlertRule      — user-defined trigger condition, owned by the RuleStore
TriggeredAlert — emitted when a rule's windowed count reaches its threshold
                 and the rule is not re-arming
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


# ---------------------------------------------------------------------------
# AlertRule
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class AlertRule:
    """
    A user-defined trigger condition. Immutable: every change goes through
    RuleStore, which swaps in a validated replacement.

    Invariants (enforced by RuleStore before an instance is stored):
        class_types non-empty, time_window_seconds > 0, detection_threshold > 0.
    """

    id: str
    name: str
    class_types: tuple[str, ...]
    time_window_seconds: int
    detection_threshold: int
    enabled: bool = True
    reactivation_cooldown_seconds: int = 60
    """Minimum seconds after a firing before this rule may fire again."""

    created_at: float = 0.0
    """Unix timestamp of creation."""

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "class_types": list(self.class_types),
            "time_window_seconds": self.time_window_seconds,
            "detection_threshold": self.detection_threshold,
            "enabled": self.enabled,
            "reactivation_cooldown_seconds": self.reactivation_cooldown_seconds,
            "created_at": self.created_at,
        }

    def __repr__(self) -> str:
        return (
            f"AlertRule({self.name!r} {list(self.class_types)} "
            f">={self.detection_threshold} in {self.time_window_seconds}s "
            f"enabled={self.enabled})"
        )


# ---------------------------------------------------------------------------
# TriggeredAlert: immutable copy of the rule fields at firing time
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class TriggeredAlert:
    """A firing event record with a denormalised copy of the rule parameters."""

    id: str
    rule_id: str
    rule_name: str
    triggered_at: float
    detection_count: int
    """The aggregated windowed count that caused the trigger."""

    class_types: tuple[str, ...] = field(default_factory=tuple)
    time_window_seconds: int = 0
    threshold: int = 0

    @classmethod
    def from_rule(
        cls, alert_id: str, rule: AlertRule, triggered_at: float, detection_count: int
    ) -> "TriggeredAlert":
        return cls(
            id=alert_id,
            rule_id=rule.id,
            rule_name=rule.name,
            triggered_at=triggered_at,
            detection_count=detection_count,
            class_types=tuple(rule.class_types),
            time_window_seconds=rule.time_window_seconds,
            threshold=rule.detection_threshold,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "rule_id": self.rule_id,
            "rule_name": self.rule_name,
            "triggered_at": self.triggered_at,
            "detection_count": self.detection_count,
            "class_types": list(self.class_types),
            "time_window_seconds": self.time_window_seconds,
            "threshold": self.threshold,
        }

    def __repr__(self) -> str:
        return (
            f"TriggeredAlert({self.rule_name!r} count={self.detection_count} "
            f"threshold={self.threshold} at={self.triggered_at:.3f})"
        )
