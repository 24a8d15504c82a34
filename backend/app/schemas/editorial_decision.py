from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


class CreateDecisionRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    article_id: str = Field(..., min_length=1, alias="articleId")
    priority: Optional[str] = None
    notes: Optional[str] = Field(default=None, max_length=5000)
    assigned_to: Optional[str] = Field(default=None, alias="assignedTo")
    due_date: Optional[datetime] = Field(default=None, alias="dueDate")


class UpdateDecisionRequest(BaseModel):
    """
    可更新字段：priority / notes / assigned_to / due_date / status（pending <-> under_review）。
    decision 字段只能通过 make_editorial_decision 写入。
    """

    model_config = ConfigDict(populate_by_name=True, extra="forbid")

    priority: Optional[str] = None
    notes: Optional[str] = Field(default=None, max_length=5000)
    assigned_to: Optional[str] = Field(default=None, alias="assignedTo")
    due_date: Optional[datetime] = Field(default=None, alias="dueDate")
    status: Optional[str] = None

    @model_validator(mode="after")
    def _at_least_one(self) -> "UpdateDecisionRequest":
        if not self.model_fields_set:
            raise ValueError("At least one field must be provided")
        return self


class AddRecommendationRequest(BaseModel):
    recommendation: str = Field(..., min_length=1)
