"""
capture/__init__.py

Public API for the capture sub-package.
"""

from .feed import DetectionFeed
from .parser import parse_detection_update
from .simulator import DetectionSimulator

__all__ = ["DetectionFeed", "DetectionSimulator", "parse_detection_update"]
