from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class _WireModel(BaseModel):
    # 中文注释: 线上字段为 snake_case，同时兼容旧前端的 camelCase（articleId / dueDate ...）
    model_config = ConfigDict(populate_by_name=True)


class AssignReviewerRequest(_WireModel):
    article_id: str = Field(..., min_length=1, alias="articleId")
    reviewer_id: str = Field(..., min_length=1, alias="reviewerId")
    due_date: datetime = Field(..., alias="dueDate")
    is_anonymous: Optional[bool] = Field(default=None, alias="isAnonymous")
    instructions: Optional[str] = Field(default=None, max_length=5000)


class DeclineReviewRequest(_WireModel):
    # 长度下限由服务层统一校验（400），这里只限制上限
    reason: Optional[str] = Field(default=None, max_length=5000)


class SubmitReviewRequest(_WireModel):
    recommendation: str
    comments: str = Field(..., min_length=1, max_length=20000)
    # 评分缺项/越界由服务层返回 400（Missing ratings: ...）
    ratings: dict[str, Any] = Field(default_factory=dict)
    confidential_comments: Optional[str] = Field(
        default=None, max_length=20000, alias="confidentialComments"
    )
    attachments: list[str] = Field(default_factory=list)


class MakeEditorialDecisionRequest(_WireModel):
    decision: str
    comments: str = Field(..., min_length=1, max_length=20000)
    feedback_to_author: Optional[str] = Field(default=None, max_length=20000, alias="feedbackToAuthor")
    confidential_notes: Optional[str] = Field(default=None, max_length=20000, alias="confidentialNotes")
