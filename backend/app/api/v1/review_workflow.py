import asyncio
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Query

from app.core.role_matrix import DECISION_ROLES, EDITORIAL_ROLES, REVIEWER_ROLES
from app.core.roles import require_any_role
from app.models.editorial_decision import EditorialDecision
from app.models.review import ReviewRecord
from app.schemas.review_workflow import (
    AssignReviewerRequest,
    DeclineReviewRequest,
    MakeEditorialDecisionRequest,
    SubmitReviewRequest,
)
from app.services.review_workflow_service import ReviewWorkflowService

router = APIRouter(prefix="/review-workflow", tags=["Review Workflow"])


def get_review_workflow_service() -> ReviewWorkflowService:
    return ReviewWorkflowService()


@router.post("/assign-reviewer", response_model=ReviewRecord, status_code=201)
async def assign_reviewer(
    body: AssignReviewerRequest,
    background_tasks: BackgroundTasks,
    profile: dict = Depends(require_any_role(EDITORIAL_ROLES)),
    service: ReviewWorkflowService = Depends(get_review_workflow_service),
):
    """
    编辑为稿件指派审稿人
    """
    return service.assign_reviewer(
        article_id=body.article_id,
        reviewer_id=body.reviewer_id,
        due_date=body.due_date,
        assigned_by_id=profile["id"],
        is_anonymous=body.is_anonymous,
        instructions=body.instructions,
        background_tasks=background_tasks,
    )


@router.get("/editorial/queue", response_model=list[EditorialDecision])
async def get_editorial_queue(
    _profile: dict = Depends(require_any_role(EDITORIAL_ROLES)),
    service: ReviewWorkflowService = Depends(get_review_workflow_service),
):
    return service.get_editorial_queue()


@router.post("/editorial-decision/{decision_id}", response_model=EditorialDecision)
async def make_editorial_decision(
    decision_id: str,
    body: MakeEditorialDecisionRequest,
    background_tasks: BackgroundTasks,
    profile: dict = Depends(require_any_role(DECISION_ROLES)),
    service: ReviewWorkflowService = Depends(get_review_workflow_service),
):
    """
    主编/管理员做出最终决策，并回写稿件状态
    """
    return service.make_editorial_decision(
        decision_id=decision_id,
        decision=body.decision,
        comments=body.comments,
        editor_id=profile["id"],
        feedback_to_author=body.feedback_to_author,
        confidential_notes=body.confidential_notes,
        background_tasks=background_tasks,
    )


@router.get("/my-reviews", response_model=list[ReviewRecord])
async def get_my_reviews(
    status: Optional[str] = Query(default=None),
    profile: dict = Depends(require_any_role(REVIEWER_ROLES)),
    service: ReviewWorkflowService = Depends(get_review_workflow_service),
):
    return service.get_reviews_for_reviewer(profile["id"], status=status)


@router.get("/my-stats")
async def get_my_stats(
    profile: dict = Depends(require_any_role(REVIEWER_ROLES)),
    service: ReviewWorkflowService = Depends(get_review_workflow_service),
):
    return service.get_reviewer_stats(profile["id"])


@router.post("/reviews/{review_id}/accept", response_model=ReviewRecord)
async def accept_review(
    review_id: str,
    profile: dict = Depends(require_any_role(REVIEWER_ROLES)),
    service: ReviewWorkflowService = Depends(get_review_workflow_service),
):
    return service.accept_review(review_id=review_id, reviewer_id=profile["id"])


@router.post("/reviews/{review_id}/decline", response_model=ReviewRecord)
async def decline_review(
    review_id: str,
    body: DeclineReviewRequest,
    profile: dict = Depends(require_any_role(REVIEWER_ROLES)),
    service: ReviewWorkflowService = Depends(get_review_workflow_service),
):
    return service.decline_review(review_id=review_id, reviewer_id=profile["id"], reason=body.reason)


@router.post("/reviews/{review_id}/submit", response_model=ReviewRecord)
async def submit_review(
    review_id: str,
    body: SubmitReviewRequest,
    background_tasks: BackgroundTasks,
    profile: dict = Depends(require_any_role(REVIEWER_ROLES)),
    service: ReviewWorkflowService = Depends(get_review_workflow_service),
):
    return service.submit_review(
        review_id=review_id,
        reviewer_id=profile["id"],
        recommendation=body.recommendation,
        comments=body.comments,
        ratings=body.ratings,
        confidential_comments=body.confidential_comments,
        attachments=body.attachments,
        background_tasks=background_tasks,
    )


@router.post("/reviews/{review_id}/remind")
async def remind_reviewer(
    review_id: str,
    _profile: dict = Depends(require_any_role(EDITORIAL_ROLES)),
    service: ReviewWorkflowService = Depends(get_review_workflow_service),
):
    """
    编辑手动催办（发送提醒邮件）

    中文注释: 响应需要带回发送结果，所以同步发送；放到线程里，避免 SMTP 阻塞事件循环。
    """
    return await asyncio.to_thread(service.send_reminder, review_id)


@router.get("/articles/{article_id}/reviews", response_model=list[ReviewRecord])
async def get_article_reviews(
    article_id: str,
    _profile: dict = Depends(require_any_role(EDITORIAL_ROLES)),
    service: ReviewWorkflowService = Depends(get_review_workflow_service),
):
    return service.get_reviews_for_article(article_id)
