"""
api/ws_manager.py

Outbound WebSocket fan-out for the dashboard.

Every server-pushed message is a JSON object with a "type"; publish() looks the
type up in ROUTES to decide which channels receive it:

    alert_triggered  → dashboard, alerts
    play_cue         → dashboard
    detection_update → dashboard
    total_metrics    → dashboard

Replies to a single client (pong, ack, error, the connect-time status) go
through send() and are not routed.

Thread safety: designed to be called exclusively from asyncio coroutines.
"""

from __future__ import annotations

import json
import logging

from fastapi import WebSocket

from ..engine.models import TriggeredAlert

logger = logging.getLogger(__name__)

DASHBOARD = "dashboard"
ALERTS = "alerts"
CHANNELS: tuple[str, ...] = (DASHBOARD, ALERTS)

ROUTES: dict[str, tuple[str, ...]] = {
    "alert_triggered": (DASHBOARD, ALERTS),
    "play_cue": (DASHBOARD,),
    "detection_update": (DASHBOARD,),
    "total_metrics": (DASHBOARD,),
}


# ---------------------------------------------------------------------------
# Message envelopes
# ---------------------------------------------------------------------------

def alert_triggered_message(alert: TriggeredAlert) -> dict:
    return {"type": "alert_triggered", "alert": alert.to_dict()}


def play_cue_message(alert: TriggeredAlert) -> dict:
    """Asks connected browsers to play the alert melody once."""
    return {"type": "play_cue", "alert_id": alert.id, "rule_id": alert.rule_id}


def _encode(message: dict) -> str:
    return json.dumps(message, default=str)


# ---------------------------------------------------------------------------
# Connection registry
# ---------------------------------------------------------------------------

class WebSocketManager:
    """Dashboard and alerts channels, plus type-based routing of pushed messages."""

    def __init__(self) -> None:
        self._clients: dict[str, set[WebSocket]] = {ch: set() for ch in CHANNELS}
        self.stats: dict[str, int] = {
            "published": 0,
            "delivered": 0,
            "unrouted": 0,
            "dead_clients": 0,
        }

    async def connect(self, websocket: WebSocket, channel: str) -> None:
        if channel not in self._clients:
            raise ValueError(f"Unknown WebSocket channel: {channel!r}")
        await websocket.accept()
        self._clients[channel].add(websocket)
        logger.info("WS client joined %s (%d connected)", channel, len(self._clients[channel]))

    async def disconnect(self, websocket: WebSocket, channel: str) -> None:
        clients = self._clients.get(channel)
        if clients is None or websocket not in clients:
            return
        clients.discard(websocket)
        logger.info("WS client left %s (%d connected)", channel, len(clients))

    async def send(self, websocket: WebSocket, message: dict) -> None:
        await websocket.send_text(_encode(message))

    async def publish(self, message: dict) -> int:
        """
        Route *message* by its "type" and push it to every subscribed client.

        Returns:
            Number of clients the message reached.
        """
        channels = ROUTES.get(message.get("type"))
        if channels is None:
            self.stats["unrouted"] += 1
            logger.warning("No WebSocket route for message type %r", message.get("type"))
            return 0

        self.stats["published"] += 1
        payload = _encode(message)
        delivered = 0
        for channel in channels:
            delivered += await self._fan_out(channel, payload)
        self.stats["delivered"] += delivered
        return delivered

    async def publish_alert(self, alert: TriggeredAlert) -> int:
        return await self.publish(alert_triggered_message(alert))

    def connection_count(self, channel: str) -> int:
        return len(self._clients.get(channel, ()))

    def all_counts(self) -> dict[str, int]:
        return {ch: len(clients) for ch, clients in self._clients.items()}

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    async def _fan_out(self, channel: str, payload: str) -> int:
        clients = self._clients[channel]
        sent = 0
        for ws in list(clients):
            try:
                await ws.send_text(payload)
                sent += 1
            except Exception as exc:
                # A client that cannot be written to is gone; drop it.
                clients.discard(ws)
                self.stats["dead_clients"] += 1
                logger.debug("Dropping WS client on %s: %s", channel, exc)
        return sent


# Global singleton, imported by routes and main.py
ws_manager = WebSocketManager()
