"""
aggregation/__init__.py

Public API for the aggregation sub-package.
"""

from .history import DetectionHistory
from .models import TimelineBucket
from .timeline import DetectionTotals, MinuteTimeline

__all__ = [
    "DetectionHistory",
    "DetectionTotals",
    "MinuteTimeline",
    "TimelineBucket",
]
