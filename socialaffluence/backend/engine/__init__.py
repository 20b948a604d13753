"""engine/__init__.py"""
from .engine import AlertEngine
from .errors import (
    AlertEngineError,
    IngestionError,
    NotFoundError,
    SinkError,
    ValidationError,
)
from .models import AlertRule, TriggeredAlert
from .rule_store import RuleStore

__all__ = [
    "AlertEngine",
    "AlertRule",
    "TriggeredAlert",
    "RuleStore",
    "AlertEngineError",
    "IngestionError",
    "NotFoundError",
    "SinkError",
    "ValidationError",
]
