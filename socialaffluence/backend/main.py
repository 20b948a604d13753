from __future__ import annotations

import argparse
import asyncio
import logging
import signal
import sys
from typing import NoReturn

import uvicorn

from . import pipeline
from .aggregation import DetectionHistory, DetectionTotals, MinuteTimeline
from .api.main import create_app, set_engine, set_feed, set_pipeline_stats
from .api.ws_manager import play_cue_message, ws_manager
from .capture import DetectionFeed, DetectionSimulator
from .config import settings
from .engine import AlertEngine, TriggeredAlert
from .engine.notifier import build_cue
from .metrics import METRICS
from .pipeline import init_queues, offer

logger = logging.getLogger("socialaffluence.main")


# ---------------------------------------------------------------------------
# Alert consumer: alert_queue → WebSocket
# ---------------------------------------------------------------------------

async def alert_consumer(shutdown_event: asyncio.Event) -> None:
    """Broadcast every TriggeredAlert the engine published."""
    logger.info("Alert consumer started")
    while not shutdown_event.is_set():
        try:
            alert: TriggeredAlert = await asyncio.wait_for(
                pipeline.alert_queue.get(), timeout=0.5
            )
            pipeline.alert_queue.task_done()

            await ws_manager.publish_alert(alert)

        except asyncio.TimeoutError:
            continue
        except asyncio.CancelledError:
            break
    logger.info("Alert consumer exiting")


# ---------------------------------------------------------------------------
# Broadcast consumer: broadcast_queue → WebSocket
# ---------------------------------------------------------------------------

async def broadcast_consumer(shutdown_event: asyncio.Event) -> None:
    """Publish detection_update / play_cue messages along their WebSocket routes."""
    logger.info("Broadcast consumer started")
    while not shutdown_event.is_set():
        try:
            message: dict = await asyncio.wait_for(
                pipeline.broadcast_queue.get(), timeout=0.5
            )
            pipeline.broadcast_queue.task_done()
            await ws_manager.publish(message)
        except asyncio.TimeoutError:
            continue
        except asyncio.CancelledError:
            break
    logger.info("Broadcast consumer exiting")


async def stats_reporter(
    engine: AlertEngine,
    shutdown_event: asyncio.Event,
    interval: float = 30.0,
) -> None:
    while not shutdown_event.is_set():
        try:
            await asyncio.wait_for(shutdown_event.wait(), timeout=interval)
        except asyncio.TimeoutError:
            logger.info(
                "METRICS engine=%s pipeline=%s ws=%s",
                engine.stats, METRICS.as_dict(), ws_manager.all_counts(),
            )


# ---------------------------------------------------------------------------
# Main entry point
# ---------------------------------------------------------------------------

async def run(host: str, port: int, simulate: bool) -> None:
    shutdown_event = asyncio.Event()
    loop = asyncio.get_running_loop()

    init_queues(
        alert_size=settings.ALERT_QUEUE_SIZE,
        broadcast_size=settings.BROADCAST_QUEUE_SIZE,
    )

    def _signal_handler(_signum, _frame) -> None:
        logger.info("Shutdown signal received")
        loop.call_soon_threadsafe(shutdown_event.set)

    signal.signal(signal.SIGINT, _signal_handler)
    signal.signal(signal.SIGTERM, _signal_handler)

    # Alert engine, one per detection feed
    cue = build_cue(
        settings.CUE_MODE,
        callback=lambda alert: offer(pipeline.broadcast_queue, play_cue_message(alert)),
    )
    engine = AlertEngine(
        history=DetectionHistory(settings.HISTORY_RETENTION_SECONDS),
        cue=cue,
    )
    engine.subscribe(lambda alert: offer(pipeline.alert_queue, alert))

    feed = DetectionFeed(
        engine,
        totals=DetectionTotals(),
        timeline=MinuteTimeline(max_buckets=settings.TIMELINE_MAX_MINUTES),
        on_update=lambda message: offer(pipeline.broadcast_queue, message),
    )

    set_engine(engine)
    set_feed(feed)
    combined_stats: dict = {"engine": engine.stats, "websocket": ws_manager.stats}

    # FastAPI + uvicorn
    app = create_app()
    uv_config = uvicorn.Config(
        app,
        host=host,
        port=port,
        log_level="warning",
        loop="none",
    )
    uv_server = uvicorn.Server(uv_config)

    tasks = [
        asyncio.create_task(alert_consumer(shutdown_event),             name="alerts_ws"),
        asyncio.create_task(broadcast_consumer(shutdown_event),         name="broadcast_ws"),
        asyncio.create_task(stats_reporter(engine, shutdown_event),     name="stats"),
    ]

    if simulate:
        simulator = DetectionSimulator(
            feed,
            classes=settings.SIMULATOR_CLASSES,
            interval=settings.SIMULATOR_INTERVAL_SECONDS,
            max_count=settings.SIMULATOR_MAX_COUNT,
            seed=settings.SIMULATOR_SEED,
        )
        combined_stats["simulator"] = simulator.stats
        tasks.append(asyncio.create_task(simulator.run(shutdown_event), name="simulator"))

    set_pipeline_stats(combined_stats)
    tasks.append(asyncio.create_task(uv_server.serve(), name="api"))

    logger.info(
        "SocialAffluence alerts — API=http://%s:%d  simulator=%s  cue=%s",
        host, port, "on" if simulate else "off", settings.CUE_MODE,
    )

    await shutdown_event.wait()

    uv_server.should_exit = True
    for t in tasks[:-1]:
        t.cancel()
    await asyncio.gather(*tasks, return_exceptions=True)
    engine.reset()
    logger.info("Final stats — engine=%s metrics=%s", engine.stats, METRICS.as_dict())
    logger.info("SocialAffluence stopped cleanly")


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="SocialAffluence live detection alerts")
    parser.add_argument("--host", default=settings.API_HOST)
    parser.add_argument("--port", type=int, default=settings.API_PORT)
    parser.add_argument(
        "--no-simulator", action="store_false", dest="simulate",
        default=settings.SIMULATOR_ENABLED,
        help="do not start the mocked detection feed",
    )
    parser.add_argument(
        "--log-level", default=settings.LOG_LEVEL,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
    )
    return parser.parse_args()


def main() -> NoReturn:
    args = _parse_args()
    logging.basicConfig(
        level=getattr(logging, args.log_level.upper()),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )
    if not 0 < args.port < 65536:
        print(f"ERROR: invalid --port: {args.port}", file=sys.stderr)
        sys.exit(1)

    asyncio.run(run(host=args.host, port=args.port, simulate=args.simulate))
    sys.exit(0)


if __name__ == "__main__":
    main()
