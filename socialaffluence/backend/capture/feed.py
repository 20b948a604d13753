"""
capture/feed.py

DetectionFeed — the one ingestion path shared by REST, WebSocket and the
simulator. Keeps the engine, the dashboard totals and the minute timeline
in step for a single camera feed.

A feed has exactly one owning source at a time, so its engine only ever
sees one stream of snapshots:

    simulator → runs until a client sends its first snapshot
    client    → takes over; engine history, cooldowns, displayed alerts,
                totals and timeline are reset (rules are kept) and the
                simulator is refused from then on

The engine sees the snapshot first; if it rejects it, totals and timeline
are left exactly as they were.
"""

from __future__ import annotations

import logging
from typing import Callable

from ..aggregation.timeline import DetectionTotals, MinuteTimeline
from ..engine.engine import AlertEngine
from ..engine.errors import IngestionError
from ..engine.models import TriggeredAlert
from ..metrics import METRICS
from ..models import DetectionSnapshot

logger = logging.getLogger(__name__)

SOURCE_CLIENT = "client"
SOURCE_SIMULATOR = "simulator"


class DetectionFeed:
    """
    Args:
        engine:    The AlertEngine owned by this feed.
        totals:    Running dashboard totals.
        timeline:  Per-minute timeline.
        on_update: Called with a `detection_update` message for every
                   snapshot that carried detections.
    """

    def __init__(
        self,
        engine: AlertEngine,
        totals: DetectionTotals | None = None,
        timeline: MinuteTimeline | None = None,
        on_update: Callable[[dict], None] | None = None,
    ) -> None:
        self.engine = engine
        self.totals = totals or DetectionTotals()
        self.timeline = timeline or MinuteTimeline()
        self._on_update = on_update
        self.source: str | None = None

    @property
    def client_active(self) -> bool:
        return self.source == SOURCE_CLIENT

    def ingest(
        self,
        snapshot: DetectionSnapshot,
        source: str = SOURCE_CLIENT,
    ) -> list[TriggeredAlert]:
        """Record *snapshot*; returns the alerts it fired. Raises IngestionError."""
        METRICS.snapshots_received.inc()
        if source != self.source:
            self._claim(source)
        try:
            fired = self.engine.record(snapshot)
        except IngestionError as exc:
            METRICS.snapshots_rejected.inc()
            logger.info("Snapshot rejected: %s", exc)
            raise

        if snapshot.has_detections:
            self.totals.add(snapshot)
            self.timeline.add(snapshot)
            if self._on_update is not None:
                self._on_update(self.update_message(snapshot))
        return fired

    def update_message(self, snapshot: DetectionSnapshot) -> dict:
        return {
            "type": "detection_update",
            "timestamp": snapshot.timestamp,
            "counts": {
                "total": snapshot.total,
                "people": snapshot.per_class_counts.get("person", 0),
                "classCounts": dict(snapshot.per_class_counts),
            },
        }

    def totals_message(self) -> dict:
        return {
            "type": "total_metrics",
            "total": self.totals.total,
            "people": self.totals.people,
            "classCounts": dict(self.totals.class_counts),
        }

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _claim(self, source: str) -> None:
        if source not in (SOURCE_CLIENT, SOURCE_SIMULATOR):
            raise ValueError(f"Unknown detection source: {source!r}")
        if self.source == SOURCE_CLIENT:
            METRICS.snapshots_rejected.inc()
            raise IngestionError(f"{source} snapshots refused: client detection source is active")
        if self.source is not None:
            self.engine.reset()
            self.totals.reset()
            self.timeline.clear()
            logger.info("Detection source switched %s → %s; window state reset", self.source, source)
        else:
            logger.info("Detection source: %s", source)
        self.source = source
