"""
capture/simulator.py

DetectionSimulator — mocked Detection Source producing random per-class
counts at a fixed interval, for running the dashboard without a camera.

Stands down for good once a client detection source owns the feed.

Most ticks are quiet: each class independently shows up with probability
`presence` and then draws a count in [1, max_count].

Lifecycle:
    sim = DetectionSimulator(feed, classes=["person", "car"], interval=1.0)
    task = asyncio.create_task(sim.run(shutdown_event))
    ...
    shutdown_event.set()
"""

from __future__ import annotations

import asyncio
import logging
import random
import time
from typing import Callable, Sequence

from ..engine.errors import IngestionError
from ..models import DetectionSnapshot
from .feed import SOURCE_CLIENT, SOURCE_SIMULATOR, DetectionFeed

logger = logging.getLogger(__name__)


class DetectionSimulator:
    """
    Args:
        feed:      Destination for generated snapshots.
        classes:   Class names to draw counts for.
        interval:  Seconds between snapshots.
        max_count: Largest count drawn for a present class.
        presence:  Probability that a class appears in a given tick.
        seed:      Seed for the private random generator (reproducible runs).
        clock:     Timestamp source for generated snapshots.
    """

    def __init__(
        self,
        feed: DetectionFeed,
        classes: Sequence[str],
        interval: float = 1.0,
        max_count: int = 4,
        presence: float = 0.5,
        seed: int | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        if not classes:
            raise ValueError("simulator needs at least one class")
        if interval <= 0:
            raise ValueError(f"interval must be positive — got {interval}")
        self._feed = feed
        self._classes = list(classes)
        self._interval = interval
        self._max_count = max(1, max_count)
        self._presence = presence
        self._rng = random.Random(seed)
        self._clock = clock

        self.stats: dict[str, int] = {
            "snapshots_generated": 0,
            "alerts_fired": 0,
            "snapshots_rejected": 0,
            "ticks_skipped": 0,
        }

    def next_snapshot(self) -> DetectionSnapshot:
        counts: dict[str, int] = {}
        for cls in self._classes:
            if self._rng.random() < self._presence:
                counts[cls] = self._rng.randint(1, self._max_count)
        return DetectionSnapshot(timestamp=self._clock(), per_class_counts=counts)

    def tick(self) -> None:
        """Generate one snapshot and push it through the feed."""
        if self._feed.source == SOURCE_CLIENT:
            if not self.stats["ticks_skipped"]:
                logger.info("Client detection source active; simulator standing down")
            self.stats["ticks_skipped"] += 1
            return
        snapshot = self.next_snapshot()
        self.stats["snapshots_generated"] += 1
        try:
            fired = self._feed.ingest(snapshot, source=SOURCE_SIMULATOR)
        except IngestionError as exc:
            # Clock stepped backwards; the next tick will catch up.
            self.stats["snapshots_rejected"] += 1
            logger.warning("Simulated snapshot rejected: %s", exc)
            return
        self.stats["alerts_fired"] += len(fired)

    async def run(self, shutdown_event: asyncio.Event) -> None:
        logger.info(
            "Detection simulator started — classes=%s interval=%.1fs",
            self._classes,
            self._interval,
        )
        try:
            while not shutdown_event.is_set():
                self.tick()
                try:
                    await asyncio.wait_for(shutdown_event.wait(), timeout=self._interval)
                except asyncio.TimeoutError:
                    continue
        except asyncio.CancelledError:
            pass
        logger.info("Detection simulator exiting — stats=%s", self.stats)
