"""
api/main.py

FastAPI application factory, module-level wiring for the engine and feed,
and the dashboard WebSocket protocol.

WebSocket /ws (channel "dashboard"):
    server → client on connect:  system_status, total_metrics
    client → server:             ping → pong
                                 detection_update → ingested via DetectionFeed
    server → client broadcast:   detection_update, alert_triggered, play_cue
    malformed frames get an {"type": "error"} reply; unknown types are ignored
"""

from __future__ import annotations

import json
import logging
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, WebSocket
from fastapi.middleware.cors import CORSMiddleware
from fastapi.websockets import WebSocketDisconnect

from ..capture.feed import DetectionFeed
from ..capture.parser import parse_detection_update
from ..config import settings
from ..engine.engine import AlertEngine
from ..engine.errors import IngestionError
from ..metrics import METRICS
from .routes import alerts as alerts_router
from .routes import detections as detections_router
from .routes import rules as rules_router
from .routes import stats as stats_router
from .ws_manager import ALERTS, DASHBOARD, ws_manager

logger = logging.getLogger(__name__)

_engine: AlertEngine | None = None
_feed: DetectionFeed | None = None
_pipeline_stats_ref: dict = {}


def set_engine(engine: AlertEngine) -> None:
    global _engine
    _engine = engine


def get_engine() -> AlertEngine:
    if _engine is None:
        raise RuntimeError("Engine not initialised — call set_engine() first")
    return _engine


def set_feed(feed: DetectionFeed) -> None:
    global _feed
    _feed = feed


def get_feed() -> DetectionFeed:
    if _feed is None:
        raise RuntimeError("Detection feed not initialised — call set_feed() first")
    return _feed


def set_pipeline_stats(stats_dict: dict) -> None:
    global _pipeline_stats_ref
    _pipeline_stats_ref = stats_dict


def get_pipeline_stats() -> dict:
    return dict(_pipeline_stats_ref)


def system_status_message() -> dict:
    return {
        "type": "system_status",
        "status": {
            "camerasActive": settings.CAMERAS_ACTIVE,
            "isRecording": True,
            "analysisRate": 1,
            "aiDetectionActive": True,
            "cameraConnected": _feed is not None and _feed.client_active,
        },
    }


async def handle_client_message(websocket: WebSocket, raw: str) -> None:
    """Dispatch one text frame received on the dashboard socket."""
    METRICS.ws_messages_received.inc()
    try:
        data = json.loads(raw)
    except ValueError:
        METRICS.ws_messages_invalid.inc()
        await ws_manager.send(websocket, {"type": "error", "message": "invalid JSON"})
        return
    if not isinstance(data, dict):
        METRICS.ws_messages_invalid.inc()
        await ws_manager.send(websocket, {"type": "error", "message": "expected a JSON object"})
        return

    msg_type = data.get("type")
    if msg_type == "ping":
        await ws_manager.send(websocket, {"type": "pong"})
    elif msg_type == "detection_update":
        try:
            snapshot = parse_detection_update(data, received_at=time.time())
            fired = get_feed().ingest(snapshot)
        except IngestionError as exc:
            await ws_manager.send(websocket, {"type": "error", "message": str(exc)})
            return
        await ws_manager.send(websocket, {
            "type": "ack",
            "timestamp": snapshot.timestamp,
            "fired": [a.id for a in fired],
        })
    else:
        logger.debug("Unknown WebSocket message type: %r", msg_type)


def create_app() -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("FastAPI startup")
        yield
        logger.info("FastAPI shutdown")

    app = FastAPI(
        title="SocialAffluence — Live Detection Alerts",
        version="1.0.0",
        description="Sliding-window alert rules over live object-detection counts",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # REST routers
    app.include_router(rules_router.router,      prefix="/api")
    app.include_router(alerts_router.router,     prefix="/api")
    app.include_router(detections_router.router, prefix="/api")
    app.include_router(stats_router.router,      prefix="/api")

    # WebSockets
    @app.websocket("/ws")
    async def ws_dashboard(websocket: WebSocket):
        await ws_manager.connect(websocket, DASHBOARD)
        try:
            await ws_manager.send(websocket, system_status_message())
            if _feed is not None:
                await ws_manager.send(websocket, _feed.totals_message())
            while True:
                raw = await websocket.receive_text()
                await handle_client_message(websocket, raw)
        except WebSocketDisconnect:
            pass
        except Exception as exc:
            logger.error("WebSocket error: %s", exc)
        finally:
            await ws_manager.disconnect(websocket, DASHBOARD)

    @app.websocket("/ws/alerts")
    async def ws_alerts(websocket: WebSocket):
        await ws_manager.connect(websocket, ALERTS)
        try:
            while True:
                await websocket.receive_text()
        except (WebSocketDisconnect, Exception):
            await ws_manager.disconnect(websocket, ALERTS)

    @app.get("/health")
    async def health() -> dict:
        return {"status": "ok", "ws_connections": ws_manager.all_counts()}

    return app
