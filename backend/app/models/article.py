from __future__ import annotations

from enum import Enum
from typing import Any


class ArticleStatus(str, Enum):
    """
    稿件生命周期状态。

    中文注释:
    - 状态流转规则通过 allowed_next 显性给出，但审稿流程只在决策时直接写入映射后的状态，
      并不以此做强校验（由上层角色控制）。
    """

    DRAFT = "draft"
    SUBMITTED = "submitted"
    UNDER_REVIEW = "under_review"
    REVISION_REQUESTED = "revision_requested"
    ACCEPTED = "accepted"
    PUBLISHED = "published"
    REJECTED = "rejected"

    @classmethod
    def allowed_next(cls, current: str) -> set[str]:
        """
        - submitted -> under_review
        - under_review -> accepted / revision_requested / rejected
        - accepted -> published
        """
        c = (current or "").strip().lower()
        if c == cls.SUBMITTED.value:
            return {cls.UNDER_REVIEW.value}
        if c == cls.UNDER_REVIEW.value:
            return {cls.ACCEPTED.value, cls.REVISION_REQUESTED.value, cls.REJECTED.value}
        if c == cls.ACCEPTED.value:
            return {cls.PUBLISHED.value}
        return set()


# 允许指派审稿人的稿件状态
ASSIGNABLE_ARTICLE_STATUSES = {ArticleStatus.SUBMITTED.value, ArticleStatus.UNDER_REVIEW.value}


def normalize_article_status(value: str | None) -> str | None:
    if value is None:
        return None
    v = str(value).strip().lower()
    try:
        return ArticleStatus(v).value
    except ValueError:
        return None


def first_author_name(article: dict[str, Any]) -> str:
    """取第一作者姓名（缺失时返回 Unknown）。"""
    authors = article.get("authors") or []
    if not authors or not isinstance(authors[0], dict):
        return "Unknown"
    first = authors[0]
    name = f"{first.get('first_name') or ''} {first.get('last_name') or ''}".strip()
    return name or "Unknown"
