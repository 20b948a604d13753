"""
api/routes/stats.py

GET /api/stats — engine counters, pipeline metrics, WebSocket connections
"""

from __future__ import annotations

from fastapi import APIRouter, Depends

from ...engine.engine import AlertEngine
from ...metrics import METRICS
from ..serializers import StatsResponse
from ..ws_manager import ws_manager

router = APIRouter(prefix="/stats", tags=["stats"])


def _get_engine() -> AlertEngine:
    from ..main import get_engine
    return get_engine()


def _get_pipeline_stats() -> dict:
    from ..main import get_pipeline_stats
    return get_pipeline_stats()


@router.get("", response_model=StatsResponse)
async def get_stats(engine: AlertEngine = Depends(_get_engine)) -> StatsResponse:
    rules = engine.list_rules()
    return StatsResponse(
        rules_total=len(rules),
        rules_enabled=sum(1 for r in rules if r.enabled),
        history_size=len(engine.history),
        triggered_alerts=len(engine.list_triggered_alerts()),
        engine=dict(engine.stats),
        metrics=METRICS.as_dict(),
        ws_connections=ws_manager.all_counts(),
        pipeline_stats=_get_pipeline_stats(),
    )
