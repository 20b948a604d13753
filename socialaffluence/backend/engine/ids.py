"""
engine/ids.py

Identifier factories for rules and triggered alerts.

UuidIdFactory       — collision-free ids for production ("rule_3f2a…")
SequentialIdFactory — predictable ids for tests ("rule_1", "alert_2", …)
"""

from __future__ import annotations

import itertools
import uuid
from typing import Protocol


class IdFactory(Protocol):
    def new_id(self, kind: str) -> str:
        ...


class UuidIdFactory:
    def new_id(self, kind: str) -> str:
        return f"{kind}_{uuid.uuid4().hex}"


class SequentialIdFactory:
    """Monotonic counter shared across kinds; never reuses a value."""

    def __init__(self, start: int = 1) -> None:
        self._counter = itertools.count(start)

    def new_id(self, kind: str) -> str:
        return f"{kind}_{next(self._counter)}"
