"""
engine/engine.py

AlertEngine — ingests detection snapshots, keeps the sliding-window history,
evaluates every enabled rule after each snapshot and emits TriggeredAlerts.

Per record() call:
  1. Validate the snapshot (IngestionError, nothing mutated on rejection)
  2. Append it to the history (all-zero snapshots are dropped) and purge
  3. Evaluate each enabled rule once with now = snapshot.timestamp
  4. For each firing: prepend to the triggered list (capped), play the
     audible cue, publish to subscribers

Cooldown bookkeeping is keyed by rule id and lives here, not in the displayed
alert list: dismissing or evicting an alert never re-arms its rule, and
toggling a rule off and on keeps the original cooldown clock.

Single-writer: one engine per detection feed, driven from one event loop.
"""

from __future__ import annotations

import logging
import math
import time
from collections.abc import Mapping
from typing import Any, Callable, Iterable

from ..aggregation.history import DetectionHistory
from ..config import settings
from ..models import DetectionSnapshot
from .errors import IngestionError, SinkError
from .ids import IdFactory, UuidIdFactory
from .models import AlertRule, TriggeredAlert
from .notifier import AudibleCue, NullCue
from .rule_store import RuleStore

logger = logging.getLogger(__name__)

_RULE_TIMEOUT_MS = 50.0

AlertListener = Callable[[TriggeredAlert], None]


class AlertEngine:
    """
    Sliding-window alert rule engine.

    Args:
        rule_store:               Rule registry; a fresh RuleStore by default.
        history:                  Snapshot history; 300s retention by default.
        cue:                      Audible cue invoked once per firing.
        id_factory:               Produces "alert_…" ids (and rule ids for the
                                  default RuleStore).
        clock:                    Wall-clock source for rule creation times.
        max_triggered:            Size of the most-recent triggered-alert list.
        default_cooldown_seconds: Cooldown for rules created without one.
    """

    def __init__(
        self,
        rule_store: RuleStore | None = None,
        history: DetectionHistory | None = None,
        cue: AudibleCue | None = None,
        id_factory: IdFactory | None = None,
        clock: Callable[[], float] = time.time,
        max_triggered: int | None = None,
        default_cooldown_seconds: int | None = None,
    ) -> None:
        self._ids = id_factory or UuidIdFactory()
        if default_cooldown_seconds is None:
            default_cooldown_seconds = settings.DEFAULT_REACTIVATION_COOLDOWN_SECONDS
        self.rules = rule_store if rule_store is not None else RuleStore(
            id_factory=self._ids,
            clock=clock,
            default_cooldown_seconds=default_cooldown_seconds,
            min_window_seconds=settings.RULE_MIN_WINDOW_SECONDS,
            max_window_seconds=settings.RULE_MAX_WINDOW_SECONDS,
        )
        self.history = history if history is not None else DetectionHistory(
            settings.HISTORY_RETENTION_SECONDS
        )
        self.cue: AudibleCue = cue or NullCue()
        if max_triggered is None:
            max_triggered = settings.MAX_TRIGGERED_ALERTS
        if max_triggered < 0:
            raise ValueError(f"max_triggered must not be negative — got {max_triggered}")
        self.max_triggered = max_triggered

        # rule_id → triggered_at of its most recent firing
        self._last_fired: dict[str, float] = {}
        self._triggered: list[TriggeredAlert] = []
        self._listeners: list[AlertListener] = []
        self._last_timestamp: float | None = None

        self.stats: dict[str, int] = {
            "snapshots_recorded": 0,
            "snapshots_empty": 0,
            "snapshots_rejected": 0,
            "rules_evaluated": 0,
            "alerts_fired": 0,
            "alerts_cooldown": 0,
            "rule_errors": 0,
            "cue_failures": 0,
        }
        logger.info(
            "AlertEngine ready — retention=%ds max_triggered=%d default_cooldown=%ds",
            self.history.retention_seconds,
            self.max_triggered,
            self.rules.default_cooldown_seconds,
        )

    # ------------------------------------------------------------------
    # Ingress
    # ------------------------------------------------------------------

    def record(self, snapshot: DetectionSnapshot) -> list[TriggeredAlert]:
        """
        Ingest one snapshot and evaluate all enabled rules against it.

        Raises:
            IngestionError: malformed counts, negative counts, bad or
                            out-of-order timestamp. Engine state is unchanged.

        Returns:
            Alerts fired by this call, in evaluation order.
        """
        try:
            clean = self._validate_snapshot(snapshot)
        except IngestionError:
            self.stats["snapshots_rejected"] += 1
            raise

        self._last_timestamp = clean.timestamp
        if self.history.record(clean):
            self.stats["snapshots_recorded"] += 1
        else:
            self.stats["snapshots_empty"] += 1

        return self.evaluate(clean.timestamp)

    def evaluate(self, now: float) -> list[TriggeredAlert]:
        """Run one evaluation pass over every enabled rule at instant *now*."""
        fired: list[TriggeredAlert] = []
        # Ids are fixed up front; each rule is re-read so one deleted, edited
        # or disabled by a listener earlier in the pass is seen as it is now.
        for rule_id in [r.id for r in self.rules.list()]:
            rule = self.rules.get(rule_id)
            if rule is None or not rule.enabled:
                continue
            alert = self._safe_evaluate(rule, now)
            if alert is not None:
                fired.append(alert)
        return fired

    # ------------------------------------------------------------------
    # Rule management
    # ------------------------------------------------------------------

    def create_rule(
        self,
        name: str,
        class_types: Iterable[str],
        time_window_seconds: int,
        detection_threshold: int,
        reactivation_cooldown_seconds: int | None = None,
        enabled: bool = True,
    ) -> AlertRule:
        return self.rules.add(
            name=name,
            class_types=class_types,
            time_window_seconds=time_window_seconds,
            detection_threshold=detection_threshold,
            reactivation_cooldown_seconds=reactivation_cooldown_seconds,
            enabled=enabled,
        )

    def update_rule(self, rule_id: str, **changes: Any) -> AlertRule:
        return self.rules.update(rule_id, **changes)

    def toggle_rule(self, rule_id: str) -> AlertRule:
        return self.rules.toggle(rule_id)

    def delete_rule(self, rule_id: str) -> bool:
        self._last_fired.pop(rule_id, None)
        return self.rules.remove(rule_id)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def list_rules(self) -> list[AlertRule]:
        return self.rules.list()

    def get_rule(self, rule_id: str) -> AlertRule:
        return self.rules.require(rule_id)

    def list_triggered_alerts(self) -> list[TriggeredAlert]:
        """Most recent first, at most max_triggered entries."""
        return list(self._triggered)

    def dismiss_alert(self, alert_id: str) -> bool:
        """Remove an alert from the displayed list. Cooldowns are untouched."""
        for i, alert in enumerate(self._triggered):
            if alert.id == alert_id:
                del self._triggered[i]
                logger.debug("Alert %s dismissed", alert_id)
                return True
        return False

    def cooldown_remaining(self, rule_id: str, now: float) -> float:
        """Seconds until *rule_id* may fire again (0.0 when armed)."""
        last = self._last_fired.get(rule_id)
        rule = self.rules.get(rule_id)
        if last is None or rule is None:
            return 0.0
        return max(0.0, rule.reactivation_cooldown_seconds - (now - last))

    # ------------------------------------------------------------------
    # Egress
    # ------------------------------------------------------------------

    def subscribe(self, listener: AlertListener) -> None:
        self._listeners.append(listener)

    def unsubscribe(self, listener: AlertListener) -> None:
        try:
            self._listeners.remove(listener)
        except ValueError:
            pass

    # ------------------------------------------------------------------
    # Teardown
    # ------------------------------------------------------------------

    def reset(self) -> None:
        """Discard history, cooldowns and displayed alerts. Rules are kept."""
        self.history.clear()
        self._last_fired.clear()
        self._triggered.clear()
        self._last_timestamp = None

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _safe_evaluate(self, rule: AlertRule, now: float) -> TriggeredAlert | None:
        t0 = time.monotonic()
        self.stats["rules_evaluated"] += 1
        try:
            alert = self._evaluate_rule(rule, now)
        except Exception as exc:
            self.stats["rule_errors"] += 1
            logger.exception("Rule %r raised during evaluation: %s", rule.id, exc)
            return None
        elapsed_ms = (time.monotonic() - t0) * 1000
        if elapsed_ms > _RULE_TIMEOUT_MS:
            logger.warning("Rule %r took %.1fms", rule.id, elapsed_ms)
        if alert is not None:
            self._emit(alert)
        return alert

    def _evaluate_rule(self, rule: AlertRule, now: float) -> TriggeredAlert | None:
        count = self.history.count_in_window(
            rule.class_types, rule.time_window_seconds, now
        )
        if count < rule.detection_threshold:
            return None

        last_fired = self._last_fired.get(rule.id)
        if last_fired is not None and now - last_fired < rule.reactivation_cooldown_seconds:
            self.stats["alerts_cooldown"] += 1
            logger.debug(
                "Rule %r re-arming (%.0fs remaining) — count=%d",
                rule.id,
                rule.reactivation_cooldown_seconds - (now - last_fired),
                count,
            )
            return None

        alert = TriggeredAlert.from_rule(
            alert_id=self._ids.new_id("alert"),
            rule=rule,
            triggered_at=now,
            detection_count=count,
        )
        self._last_fired[rule.id] = now
        self._triggered.insert(0, alert)
        del self._triggered[self.max_triggered:]
        self.stats["alerts_fired"] += 1
        logger.warning(
            "ALERT rule=%r count=%d threshold=%d window=%ds classes=%s",
            rule.name,
            count,
            rule.detection_threshold,
            rule.time_window_seconds,
            list(rule.class_types),
        )
        return alert

    def _emit(self, alert: TriggeredAlert) -> None:
        """Fire-and-forget: cue and listener failures never reach the caller."""
        try:
            self.cue.notify(alert)
        except Exception as exc:
            self.stats["cue_failures"] += 1
            err = SinkError(f"audible cue failed for alert {alert.id}: {exc}")
            logger.error("%s", err)

        for listener in list(self._listeners):
            try:
                listener(alert)
            except Exception as exc:
                logger.exception("Alert listener %r failed: %s", listener, exc)

    def _validate_snapshot(self, snapshot: DetectionSnapshot) -> DetectionSnapshot:
        if not isinstance(snapshot, DetectionSnapshot):
            raise IngestionError(f"expected DetectionSnapshot, got {type(snapshot).__name__}")

        ts = snapshot.timestamp
        if isinstance(ts, bool) or not isinstance(ts, (int, float)) or not math.isfinite(ts):
            raise IngestionError(f"invalid snapshot timestamp: {ts!r}")
        if self._last_timestamp is not None and ts < self._last_timestamp:
            raise IngestionError(
                f"out-of-order snapshot: {ts} is earlier than {self._last_timestamp}"
            )

        counts = snapshot.per_class_counts
        if not isinstance(counts, Mapping):
            raise IngestionError(
                f"per_class_counts must be a mapping, got {type(counts).__name__}"
            )
        clean: dict[str, int] = {}
        for cls, count in counts.items():
            if not isinstance(cls, str) or not cls:
                raise IngestionError(f"class names must be non-empty strings, got {cls!r}")
            if isinstance(count, bool) or not isinstance(count, int):
                raise IngestionError(f"count for {cls!r} must be an integer, got {count!r}")
            if count < 0:
                raise IngestionError(f"negative count for {cls!r}: {count}")
            clean[cls] = count

        return DetectionSnapshot(timestamp=float(ts), per_class_counts=clean)
