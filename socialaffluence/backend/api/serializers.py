"""
api/serializers.py

Request / response models for the REST API.
Field-level semantics (window bounds, thresholds) are validated by the
engine's RuleStore so REST and in-process callers share one rule set.
"""

from __future__ import annotations

from pydantic import BaseModel, Field

from ..engine.models import AlertRule, TriggeredAlert


class RuleCreateRequest(BaseModel):
    name: str
    class_types: list[str]
    time_window_seconds: int = 30
    detection_threshold: int = 5
    reactivation_cooldown_seconds: int | None = None
    enabled: bool = True


class RuleUpdateRequest(BaseModel):
    name: str | None = None
    class_types: list[str] | None = None
    time_window_seconds: int | None = None
    detection_threshold: int | None = None
    reactivation_cooldown_seconds: int | None = None
    enabled: bool | None = None


class RuleResponse(BaseModel):
    id: str
    name: str
    class_types: list[str]
    time_window_seconds: int
    detection_threshold: int
    enabled: bool
    reactivation_cooldown_seconds: int
    created_at: float

    @classmethod
    def from_rule(cls, rule: AlertRule) -> "RuleResponse":
        return cls(**rule.to_dict())


class TriggeredAlertResponse(BaseModel):
    id: str
    rule_id: str
    rule_name: str
    triggered_at: float
    detection_count: int
    class_types: list[str]
    time_window_seconds: int
    threshold: int

    @classmethod
    def from_alert(cls, alert: TriggeredAlert) -> "TriggeredAlertResponse":
        return cls(**alert.to_dict())


class SnapshotRequest(BaseModel):
    timestamp: float | None = None
    """Epoch seconds or milliseconds; server receive time when omitted."""

    per_class_counts: dict[str, int] = Field(default_factory=dict)


class IngestResponse(BaseModel):
    accepted: bool
    timestamp: float
    total: int
    fired: list[TriggeredAlertResponse]


class TotalsResponse(BaseModel):
    total: int
    people: int
    class_counts: dict[str, int]


class TimelineBucketResponse(BaseModel):
    timestamp: float
    total: int
    people: int
    class_counts: dict[str, int]


class StatsResponse(BaseModel):
    rules_total: int
    rules_enabled: int
    history_size: int
    triggered_alerts: int
    engine: dict[str, int]
    metrics: dict[str, int]
    ws_connections: dict[str, int]
    pipeline_stats: dict
