from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field

from app.models.article import ArticleStatus


class DecisionStatus(str, Enum):
    PENDING = "pending"
    UNDER_REVIEW = "under_review"
    DECIDED = "decided"


class DecisionType(str, Enum):
    ACCEPT = "accept"
    REJECT = "reject"
    MINOR_REVISION = "minor_revision"
    MAJOR_REVISION = "major_revision"


class Priority(str, Enum):
    LOW = "low"
    NORMAL = "normal"
    HIGH = "high"
    URGENT = "urgent"


# 数据库按字符串排序不等于优先级排序，这里给出显式 rank
PRIORITY_RANK: dict[str, int] = {
    Priority.LOW.value: 0,
    Priority.NORMAL.value: 1,
    Priority.HIGH.value: 2,
    Priority.URGENT.value: 3,
}

# 决策 -> 稿件状态
DECISION_TO_ARTICLE_STATUS: dict[str, str] = {
    DecisionType.ACCEPT.value: ArticleStatus.ACCEPTED.value,
    DecisionType.MINOR_REVISION.value: ArticleStatus.REVISION_REQUESTED.value,
    DecisionType.MAJOR_REVISION.value: ArticleStatus.REVISION_REQUESTED.value,
    DecisionType.REJECT.value: ArticleStatus.REJECTED.value,
}


class EditorialDecision(BaseModel):
    """editorial_decisions 表（每篇稿件一条）"""

    id: str
    article_id: str
    article_title: str
    author_name: str = "Unknown"
    submitted_date: datetime
    status: DecisionStatus = DecisionStatus.PENDING
    decision: Optional[DecisionType] = None
    priority: Priority = Priority.NORMAL
    due_date: Optional[datetime] = None
    assigned_to: Optional[str] = None
    assigned_to_name: Optional[str] = None
    recommendations_count: int = 0
    recommendations: list[str] = Field(default_factory=list)
    decided_date: Optional[datetime] = None
    decided_by: Optional[str] = None
    decided_by_name: Optional[str] = None
    notes: Optional[str] = None
    comments: Optional[str] = None
    feedback_to_author: Optional[str] = None
    confidential_notes: Optional[str] = None
    days_in_review: Optional[int] = None


def parse_iso(value: Any) -> datetime | None:
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, str) and value.strip():
        try:
            dt = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
        except ValueError:
            return None
    else:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt


def days_in_review(row: dict[str, Any], *, now: datetime | None = None) -> int | None:
    """
    submitted_date 到 decided_date（未决策则到 now）之间的整天数。
    """
    submitted = parse_iso(row.get("submitted_date"))
    if submitted is None:
        return None
    end = parse_iso(row.get("decided_date")) or now or datetime.now(timezone.utc)
    return max(0, (end - submitted).days)


def sort_queue(rows: list[dict[str, Any]]) -> list[dict[str, Any]]:
    """
    按优先级降序、submitted_date 升序排列（最早的高优先级在前）。
    """

    def _key(row: dict[str, Any]) -> tuple[int, str]:
        rank = PRIORITY_RANK.get(str(row.get("priority") or Priority.NORMAL.value), 1)
        return (-rank, str(row.get("submitted_date") or ""))

    return sorted(rows, key=_key)
