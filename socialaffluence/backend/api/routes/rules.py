"""
api/routes/rules.py

GET    /api/rules              — rules in creation order
POST   /api/rules              — create a rule
GET    /api/rules/{id}         — single rule
PATCH  /api/rules/{id}         — edit a rule (partial)
POST   /api/rules/{id}/toggle  — flip enabled
DELETE /api/rules/{id}         — delete (idempotent)
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Response

from ...engine.engine import AlertEngine
from ...engine.errors import NotFoundError, ValidationError
from ..serializers import RuleCreateRequest, RuleResponse, RuleUpdateRequest

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/rules", tags=["rules"])


def _get_engine() -> AlertEngine:
    """FastAPI dependency — replaced in tests via app.dependency_overrides."""
    from ..main import get_engine
    return get_engine()


@router.get("", response_model=list[RuleResponse])
async def list_rules(engine: AlertEngine = Depends(_get_engine)) -> list[RuleResponse]:
    return [RuleResponse.from_rule(r) for r in engine.list_rules()]


@router.post("", response_model=RuleResponse, status_code=201)
async def create_rule(
    body: RuleCreateRequest,
    engine: AlertEngine = Depends(_get_engine),
) -> RuleResponse:
    try:
        rule = engine.create_rule(**body.model_dump())
    except ValidationError as exc:
        raise HTTPException(status_code=422, detail=str(exc))
    return RuleResponse.from_rule(rule)


@router.get("/{rule_id}", response_model=RuleResponse)
async def get_rule(rule_id: str, engine: AlertEngine = Depends(_get_engine)) -> RuleResponse:
    try:
        return RuleResponse.from_rule(engine.get_rule(rule_id))
    except NotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc))


@router.patch("/{rule_id}", response_model=RuleResponse)
async def update_rule(
    rule_id: str,
    body: RuleUpdateRequest,
    engine: AlertEngine = Depends(_get_engine),
) -> RuleResponse:
    """Only provided fields are changed; others remain unchanged."""
    changes = body.model_dump(exclude_none=True)
    try:
        rule = engine.update_rule(rule_id, **changes)
    except NotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc))
    except ValidationError as exc:
        raise HTTPException(status_code=422, detail=str(exc))
    return RuleResponse.from_rule(rule)


@router.post("/{rule_id}/toggle", response_model=RuleResponse)
async def toggle_rule(rule_id: str, engine: AlertEngine = Depends(_get_engine)) -> RuleResponse:
    try:
        return RuleResponse.from_rule(engine.toggle_rule(rule_id))
    except NotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc))


@router.delete("/{rule_id}", status_code=204)
async def delete_rule(rule_id: str, engine: AlertEngine = Depends(_get_engine)) -> Response:
    engine.delete_rule(rule_id)
    return Response(status_code=204)
