"""
tests/test_pipeline.py

Tests for pipeline.py — queue init + offer() ring-buffer behavior.
"""

from __future__ import annotations

import asyncio

import pytest

from socialaffluence.backend.metrics import METRICS
from socialaffluence.backend.pipeline import init_queues, offer


@pytest.fixture(autouse=True)
def _reset_metrics():
    """Reset drop counter before each test."""
    METRICS.messages_dropped.reset()
    yield


class TestInitQueues:

    @pytest.mark.asyncio
    async def test_creates_queues_with_sizes(self):
        init_queues(alert_size=3, broadcast_size=7)
        from socialaffluence.backend import pipeline
        assert pipeline.alert_queue.maxsize == 3
        assert pipeline.broadcast_queue.maxsize == 7
        assert pipeline.alert_queue.empty()


class TestOffer:

    def test_none_queue_returns_false(self):
        assert offer(None, "item") is False

    @pytest.mark.asyncio
    async def test_puts_into_non_full_queue(self):
        q: asyncio.Queue = asyncio.Queue(maxsize=3)
        assert offer(q, "item1") is True
        assert q.qsize() == 1

    @pytest.mark.asyncio
    async def test_drops_oldest_when_full(self):
        q: asyncio.Queue = asyncio.Queue(maxsize=2)
        offer(q, "old_1")
        offer(q, "old_2")
        assert offer(q, "new") is True

        assert q.qsize() == 2
        assert q.get_nowait() == "old_2"
        assert q.get_nowait() == "new"
        assert METRICS.messages_dropped.value == 1
