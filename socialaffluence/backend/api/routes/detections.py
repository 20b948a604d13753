"""
api/routes/detections.py

POST /api/detections           — ingest one snapshot, return fired alerts
GET  /api/detections/totals    — cumulative counts since start
GET  /api/detections/timeline  — per-minute buckets, oldest first
"""

from __future__ import annotations

import time
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query

from ...capture.feed import DetectionFeed
from ...capture.parser import normalise_timestamp
from ...engine.errors import IngestionError
from ...models import DetectionSnapshot
from ..serializers import (
    IngestResponse,
    SnapshotRequest,
    TimelineBucketResponse,
    TotalsResponse,
    TriggeredAlertResponse,
)

router = APIRouter(prefix="/detections", tags=["detections"])


def _get_feed() -> DetectionFeed:
    from ..main import get_feed
    return get_feed()


@router.post("", response_model=IngestResponse)
async def ingest_snapshot(
    body: SnapshotRequest,
    feed: DetectionFeed = Depends(_get_feed),
) -> IngestResponse:
    try:
        timestamp = normalise_timestamp(body.timestamp, time.time())
        snapshot = DetectionSnapshot(timestamp=timestamp, per_class_counts=body.per_class_counts)
        fired = feed.ingest(snapshot)
    except IngestionError as exc:
        raise HTTPException(status_code=422, detail=str(exc))
    return IngestResponse(
        accepted=True,
        timestamp=snapshot.timestamp,
        total=snapshot.total,
        fired=[TriggeredAlertResponse.from_alert(a) for a in fired],
    )


@router.get("/totals", response_model=TotalsResponse)
async def get_totals(feed: DetectionFeed = Depends(_get_feed)) -> TotalsResponse:
    return TotalsResponse(**feed.totals.as_dict())


@router.get("/timeline", response_model=list[TimelineBucketResponse])
async def get_timeline(
    include_current: Annotated[bool, Query()] = True,
    feed: DetectionFeed = Depends(_get_feed),
) -> list[TimelineBucketResponse]:
    return [
        TimelineBucketResponse(**b.to_dict())
        for b in feed.timeline.buckets(include_current=include_current)
    ]
