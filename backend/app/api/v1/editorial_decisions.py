from typing import Optional

from fastapi import APIRouter, Depends, Query

from app.core.role_matrix import DECISION_READ_ROLES, DECISION_ROLES
from app.core.roles import require_any_role
from app.models.editorial_decision import EditorialDecision
from app.schemas.editorial_decision import (
    AddRecommendationRequest,
    CreateDecisionRequest,
    UpdateDecisionRequest,
)
from app.services.editorial_decision_service import EditorialDecisionService

router = APIRouter(prefix="/editorial/decisions", tags=["Editorial Decisions"])


def get_editorial_decision_service() -> EditorialDecisionService:
    return EditorialDecisionService()


@router.get("", response_model=list[EditorialDecision])
async def list_decisions(
    status: Optional[str] = Query(default=None),
    priority: Optional[str] = Query(default=None),
    _profile: dict = Depends(require_any_role(DECISION_READ_ROLES)),
    service: EditorialDecisionService = Depends(get_editorial_decision_service),
):
    return service.list_decisions(status=status, priority=priority)


# 注意：必须注册在 /{decision_id} 之前
@router.get("/statistics")
async def get_statistics(
    _profile: dict = Depends(require_any_role(DECISION_READ_ROLES)),
    service: EditorialDecisionService = Depends(get_editorial_decision_service),
):
    return service.get_statistics()


@router.get("/{decision_id}", response_model=EditorialDecision)
async def get_decision(
    decision_id: str,
    _profile: dict = Depends(require_any_role(DECISION_READ_ROLES)),
    service: EditorialDecisionService = Depends(get_editorial_decision_service),
):
    return service.get_decision(decision_id)


@router.post("", response_model=EditorialDecision, status_code=201)
async def create_decision(
    body: CreateDecisionRequest,
    _profile: dict = Depends(require_any_role(DECISION_ROLES)),
    service: EditorialDecisionService = Depends(get_editorial_decision_service),
):
    return service.create_decision(
        article_id=body.article_id,
        priority=body.priority,
        notes=body.notes,
        assigned_to=body.assigned_to,
        due_date=body.due_date,
    )


@router.patch("/{decision_id}", response_model=EditorialDecision)
async def update_decision(
    decision_id: str,
    body: UpdateDecisionRequest,
    _profile: dict = Depends(require_any_role(DECISION_ROLES)),
    service: EditorialDecisionService = Depends(get_editorial_decision_service),
):
    return service.update_decision(
        decision_id,
        priority=body.priority,
        notes=body.notes,
        assigned_to=body.assigned_to,
        due_date=body.due_date,
        status=body.status,
    )


@router.post("/{decision_id}/recommend", response_model=EditorialDecision)
async def add_recommendation(
    decision_id: str,
    body: AddRecommendationRequest,
    _profile: dict = Depends(require_any_role(DECISION_READ_ROLES)),
    service: EditorialDecisionService = Depends(get_editorial_decision_service),
):
    return service.add_recommendation(decision_id, body.recommendation)
