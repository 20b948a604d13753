"""
backend/pipeline.py

Outbound asyncio.Queue instances and the ring-buffer offer() helper that
lets the synchronous engine hand work to async broadcasters.

  alert_queue     =   500  — TriggeredAlerts waiting for WebSocket broadcast
  broadcast_queue = 1_000  — detection_update / play_cue messages

All queues use offer() which drops the *oldest* item when full
(ring-buffer semantics) rather than blocking the engine.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from .metrics import METRICS

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Queue definitions: import these from other modules
# ---------------------------------------------------------------------------

# Lazily initialised so tests can create fresh queues without import side effects.
# Call init_queues() once at startup (done inside main.py).

_queues_ready: bool = False

alert_queue: asyncio.Queue | None = None
broadcast_queue: asyncio.Queue | None = None


def init_queues(alert_size: int = 500, broadcast_size: int = 1_000) -> None:
    """
    Initialise all pipeline queues.
    Must be called from within a running asyncio event loop.
    """
    global alert_queue, broadcast_queue, _queues_ready
    alert_queue = asyncio.Queue(maxsize=alert_size)
    broadcast_queue = asyncio.Queue(maxsize=broadcast_size)
    _queues_ready = True
    logger.info(
        "Pipeline queues initialised — sizes: alert=%d broadcast=%d",
        alert_size,
        broadcast_size,
    )


# ---------------------------------------------------------------------------
# Ring-buffer put helper
# ---------------------------------------------------------------------------

def offer(queue: asyncio.Queue | None, item: Any) -> bool:
    """
    Non-blocking enqueue with ring-buffer drop semantics.

    If the queue is full, the *oldest* item is discarded to make room,
    METRICS.messages_dropped is incremented, and a warning is logged.

    Returns:
        True  — item was enqueued successfully.
        False — queues not initialised, or the item could not be enqueued.
    """
    if queue is None:
        logger.debug("offer() before init_queues() — item discarded")
        return False

    if queue.full():
        try:
            queue.get_nowait()  # discard oldest item
            METRICS.messages_dropped.inc()
            logger.warning(
                "Queue full (%d/%d) — oldest item dropped to make room",
                queue.qsize(),
                queue.maxsize,
            )
        except asyncio.QueueEmpty:
            pass

    try:
        queue.put_nowait(item)
        return True
    except asyncio.QueueFull:
        METRICS.messages_dropped.inc()
        logger.error("offer: queue still full after drop — item lost")
        return False
