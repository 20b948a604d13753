"""
backend/metrics.py

Lightweight thread-safe counters for the ingestion and broadcast pipeline.
No external dependencies — uses Python's threading.Lock.

Usage:
    from socialaffluence.backend.metrics import METRICS
    METRICS.snapshots_received.inc()
    print(METRICS.as_dict())
"""

import threading


class Counter:
    """A thread-safe integer counter."""

    __slots__ = ("_value", "_lock")

    def __init__(self) -> None:
        self._value = 0
        self._lock = threading.Lock()

    def inc(self, amount: int = 1) -> None:
        with self._lock:
            self._value += amount

    def reset(self) -> None:
        with self._lock:
            self._value = 0

    @property
    def value(self) -> int:
        with self._lock:
            return self._value

    def __repr__(self) -> str:  # pragma: no cover
        return f"Counter({self._value})"


class Metrics:
    """Singleton holding all pipeline counters."""

    def __init__(self) -> None:
        # --- Ingestion ---
        self.snapshots_received: Counter = Counter()
        """Snapshots handed to DetectionFeed.ingest() from any source."""

        self.snapshots_rejected: Counter = Counter()
        """Snapshots refused by the engine (IngestionError)."""

        # --- Outbound ---
        self.messages_dropped: Counter = Counter()
        """Outbound messages discarded because a queue was full."""

        # --- WebSocket ---
        self.ws_messages_received: Counter = Counter()
        self.ws_messages_invalid: Counter = Counter()
        """Frames that were not valid JSON objects."""

    def as_dict(self) -> dict:
        """Return all counters as a plain dict (safe for JSON serialisation)."""
        return {
            "snapshots_received": self.snapshots_received.value,
            "snapshots_rejected": self.snapshots_rejected.value,
            "messages_dropped": self.messages_dropped.value,
            "ws_messages_received": self.ws_messages_received.value,
            "ws_messages_invalid": self.ws_messages_invalid.value,
        }

    def reset_all(self) -> None:
        """Reset every counter to zero (useful in tests)."""
        for attr in vars(self).values():
            if isinstance(attr, Counter):
                attr.reset()


# Module-level singleton: import from here everywhere
METRICS = Metrics()
