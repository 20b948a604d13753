"""
api/routes/alerts.py

GET    /api/alerts       — triggered alerts, newest first (capped)
DELETE /api/alerts/{id}  — dismiss from the displayed list (idempotent)
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Response

from ...engine.engine import AlertEngine
from ..serializers import TriggeredAlertResponse

router = APIRouter(prefix="/alerts", tags=["alerts"])


def _get_engine() -> AlertEngine:
    from ..main import get_engine
    return get_engine()


@router.get("", response_model=list[TriggeredAlertResponse])
async def list_alerts(
    engine: AlertEngine = Depends(_get_engine),
) -> list[TriggeredAlertResponse]:
    return [TriggeredAlertResponse.from_alert(a) for a in engine.list_triggered_alerts()]


@router.delete("/{alert_id}", status_code=204)
async def dismiss_alert(alert_id: str, engine: AlertEngine = Depends(_get_engine)) -> Response:
    """Dismissal is display-only: the rule's cooldown is not re-armed."""
    engine.dismiss_alert(alert_id)
    return Response(status_code=204)
