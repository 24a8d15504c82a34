from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field
from pydantic.config import ConfigDict


class ReviewStatus(str, Enum):
    """
    审稿记录状态。

    中文注释:
    - pending --accept--> in_progress --submit--> completed
    - pending --decline--> declined
    - pending/in_progress --overdue sweep--> overdue
    - completed / declined 为终态。
    """

    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    DECLINED = "declined"
    OVERDUE = "overdue"


TERMINAL_REVIEW_STATUSES = {ReviewStatus.COMPLETED.value, ReviewStatus.DECLINED.value}
OPEN_REVIEW_STATUSES = {ReviewStatus.PENDING.value, ReviewStatus.IN_PROGRESS.value}


class ReviewRecommendation(str, Enum):
    ACCEPT = "accept"
    MINOR_REVISION = "minor_revision"
    MAJOR_REVISION = "major_revision"
    REJECT = "reject"


RATING_FIELDS = ("originality", "methodology", "significance", "clarity", "overall")
RATING_MIN = 1
RATING_MAX = 5


class ReviewRatings(BaseModel):
    """五项评分（1..5）"""

    originality: int = Field(..., ge=RATING_MIN, le=RATING_MAX)
    methodology: int = Field(..., ge=RATING_MIN, le=RATING_MAX)
    significance: int = Field(..., ge=RATING_MIN, le=RATING_MAX)
    clarity: int = Field(..., ge=RATING_MIN, le=RATING_MAX)
    overall: int = Field(..., ge=RATING_MIN, le=RATING_MAX)


class ReviewRecord(BaseModel):
    """reviews 表中的一条审稿指派记录"""

    id: str
    article_id: str
    article_title: str
    reviewer_id: str
    reviewer_name: str
    assigned_by: str
    assigned_by_name: str
    status: ReviewStatus = ReviewStatus.PENDING
    due_date: Optional[datetime] = None
    accepted_date: Optional[datetime] = None
    declined_date: Optional[datetime] = None
    submitted_date: Optional[datetime] = None
    recommendation: Optional[ReviewRecommendation] = None
    comments: Optional[str] = None
    confidential_comments: Optional[str] = None
    ratings: Optional[ReviewRatings] = None
    is_anonymous: bool = True
    instructions: Optional[str] = None
    attachments: list[str] = Field(default_factory=list)
    last_reminded_at: Optional[datetime] = None
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)
