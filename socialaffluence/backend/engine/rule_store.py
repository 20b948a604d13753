"""
engine/rule_store.py

RuleStore — in-memory, insertion-ordered registry of AlertRule objects.

Every create/update goes through validate_rule_fields(); a definition that
violates an invariant raises ValidationError and nothing is stored.
Ids and creation timestamps come from injected factories so tests can pin them.

Thread safety: NOT thread-safe. Called exclusively from the event loop.
"""

from __future__ import annotations

import logging
import time
from dataclasses import replace
from typing import Any, Callable, Iterable

from .errors import NotFoundError, ValidationError
from .ids import IdFactory, UuidIdFactory
from .models import AlertRule

logger = logging.getLogger(__name__)

_EDITABLE_FIELDS = frozenset({
    "name",
    "class_types",
    "time_window_seconds",
    "detection_threshold",
    "enabled",
    "reactivation_cooldown_seconds",
})


def _require_int(field: str, value: Any) -> int:
    # bool is a subclass of int; True must not pass as a threshold of 1
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(f"{field} must be an integer, got {value!r}", field=field)
    return value


def _normalise_class_types(value: Any) -> tuple[str, ...]:
    if isinstance(value, str) or not isinstance(value, Iterable):
        raise ValidationError(
            "class_types must be a list of class names", field="class_types"
        )
    seen: dict[str, None] = {}
    for item in value:
        if not isinstance(item, str) or not item.strip():
            raise ValidationError(
                f"class_types entries must be non-empty strings, got {item!r}",
                field="class_types",
            )
        seen.setdefault(item.strip(), None)
    if not seen:
        raise ValidationError("class_types must not be empty", field="class_types")
    return tuple(seen)


def validate_rule_fields(
    *,
    name: Any,
    class_types: Any,
    time_window_seconds: Any,
    detection_threshold: Any,
    reactivation_cooldown_seconds: Any,
    enabled: Any = True,
    min_window_seconds: int = 5,
    max_window_seconds: int = 300,
) -> dict[str, Any]:
    """Check every rule invariant and return the normalised field values."""
    if not isinstance(name, str) or not name.strip():
        raise ValidationError("name must be a non-empty string", field="name")

    classes = _normalise_class_types(class_types)

    window = _require_int("time_window_seconds", time_window_seconds)
    if window <= 0:
        raise ValidationError(
            f"time_window_seconds must be positive, got {window}",
            field="time_window_seconds",
        )
    if not min_window_seconds <= window <= max_window_seconds:
        raise ValidationError(
            f"time_window_seconds must be between {min_window_seconds} and "
            f"{max_window_seconds}, got {window}",
            field="time_window_seconds",
        )

    threshold = _require_int("detection_threshold", detection_threshold)
    if threshold <= 0:
        raise ValidationError(
            f"detection_threshold must be positive, got {threshold}",
            field="detection_threshold",
        )

    cooldown = _require_int("reactivation_cooldown_seconds", reactivation_cooldown_seconds)
    if cooldown < 0:
        raise ValidationError(
            f"reactivation_cooldown_seconds must not be negative, got {cooldown}",
            field="reactivation_cooldown_seconds",
        )

    if not isinstance(enabled, bool):
        raise ValidationError(f"enabled must be a boolean, got {enabled!r}", field="enabled")

    return {
        "name": name.strip(),
        "class_types": classes,
        "time_window_seconds": window,
        "detection_threshold": threshold,
        "reactivation_cooldown_seconds": cooldown,
        "enabled": enabled,
    }


class RuleStore:
    """
    Holds user-created alert rules in insertion order.

    Args:
        id_factory:               Produces "rule_…" identifiers.
        clock:                    Returns the current Unix time for created_at.
        default_cooldown_seconds: Applied when a rule is created without one.
        min_window_seconds:       Smallest accepted time window.
        max_window_seconds:       Largest accepted time window (≤ history retention).
    """

    def __init__(
        self,
        id_factory: IdFactory | None = None,
        clock: Callable[[], float] = time.time,
        default_cooldown_seconds: int = 60,
        min_window_seconds: int = 5,
        max_window_seconds: int = 300,
    ) -> None:
        self._ids = id_factory or UuidIdFactory()
        self._clock = clock
        self.default_cooldown_seconds = default_cooldown_seconds
        self.min_window_seconds = min_window_seconds
        self.max_window_seconds = max_window_seconds
        self._rules: dict[str, AlertRule] = {}

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def add(
        self,
        name: str,
        class_types: Iterable[str],
        time_window_seconds: int,
        detection_threshold: int,
        reactivation_cooldown_seconds: int | None = None,
        enabled: bool = True,
    ) -> AlertRule:
        if reactivation_cooldown_seconds is None:
            reactivation_cooldown_seconds = self.default_cooldown_seconds
        fields = self._validate(
            name=name,
            class_types=class_types,
            time_window_seconds=time_window_seconds,
            detection_threshold=detection_threshold,
            reactivation_cooldown_seconds=reactivation_cooldown_seconds,
            enabled=enabled,
        )
        rule = AlertRule(
            id=self._ids.new_id("rule"),
            created_at=self._clock(),
            **fields,
        )
        self._rules[rule.id] = rule
        logger.info("Rule created — %r id=%s", rule, rule.id)
        return rule

    def update(self, rule_id: str, **changes: Any) -> AlertRule:
        """Apply *changes* to an existing rule; all-or-nothing."""
        rule = self.require(rule_id)
        unknown = set(changes) - _EDITABLE_FIELDS
        if unknown:
            raise ValidationError(f"Unknown rule field(s): {sorted(unknown)}")

        merged = {
            "name": rule.name,
            "class_types": rule.class_types,
            "time_window_seconds": rule.time_window_seconds,
            "detection_threshold": rule.detection_threshold,
            "reactivation_cooldown_seconds": rule.reactivation_cooldown_seconds,
            "enabled": rule.enabled,
        }
        merged.update(changes)
        fields = self._validate(**merged)

        updated = replace(rule, **fields)
        self._rules[rule_id] = updated
        logger.info("Rule updated — %r id=%s changes=%s", updated, rule_id, sorted(changes))
        return updated

    def toggle(self, rule_id: str) -> AlertRule:
        current = self.require(rule_id)
        rule = replace(current, enabled=not current.enabled)
        self._rules[rule_id] = rule
        logger.info("Rule %s %s", rule_id, "enabled" if rule.enabled else "disabled")
        return rule

    def remove(self, rule_id: str) -> bool:
        """Remove a rule. Returns False (not an error) when it was already gone."""
        rule = self._rules.pop(rule_id, None)
        if rule is None:
            logger.debug("Rule %s already absent — delete is a no-op", rule_id)
            return False
        logger.info("Rule deleted — %r id=%s", rule, rule_id)
        return True

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get(self, rule_id: str) -> AlertRule | None:
        return self._rules.get(rule_id)

    def require(self, rule_id: str) -> AlertRule:
        rule = self._rules.get(rule_id)
        if rule is None:
            raise NotFoundError(rule_id)
        return rule

    def list(self) -> list[AlertRule]:
        return list(self._rules.values())

    def __len__(self) -> int:
        return len(self._rules)

    def __contains__(self, rule_id: object) -> bool:
        return rule_id in self._rules

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _validate(self, **fields: Any) -> dict[str, Any]:
        return validate_rule_fields(
            min_window_seconds=self.min_window_seconds,
            max_window_seconds=self.max_window_seconds,
            **fields,
        )
