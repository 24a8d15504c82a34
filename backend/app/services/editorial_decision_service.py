from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Optional

from fastapi import HTTPException
from postgrest.exceptions import APIError

from app.lib.api_client import supabase_admin
from app.models.article import first_author_name
from app.models.editorial_decision import (
    DecisionStatus,
    DecisionType,
    Priority,
    days_in_review,
    parse_iso,
    sort_queue,
)
from app.models.review import ReviewRecommendation
from app.services.review_workflow_service import is_unique_violation, to_utc_iso
from app.services.user_service import UserService


def _enum_value(enum_cls: Any, raw: Any, label: str) -> str:
    try:
        return enum_cls(str(raw or "").strip().lower()).value
    except ValueError:
        raise HTTPException(status_code=400, detail=f"Invalid {label}: {raw}")


class EditorialDecisionService:
    """
    editorial_decisions 管理（列表 / 详情 / 手动创建 / 更新 / 追加建议 / 统计）。

    中文注释:
    - 最终决策（decision 字段、status=decided）只能走 ReviewWorkflowService.make_editorial_decision，
      这里的 update 不允许写 decision，也不允许把 status 改成 decided。
    - decided 为终态：更新与追加建议都会返回 400。
    """

    def __init__(self, *, client: Any = None, user_service: Optional[UserService] = None) -> None:
        self.client = client or supabase_admin
        self.users = user_service or UserService(self.client)

    def _now(self) -> str:
        return datetime.now(timezone.utc).isoformat()

    @staticmethod
    def _with_days(row: dict[str, Any]) -> dict[str, Any]:
        return {**row, "days_in_review": days_in_review(row)}

    def _load(self, decision_id: str) -> dict[str, Any]:
        resp = (
            self.client.table("editorial_decisions")
            .select("*")
            .eq("id", str(decision_id))
            .limit(1)
            .execute()
        )
        rows = getattr(resp, "data", None) or []
        if not rows:
            raise HTTPException(status_code=404, detail="Editorial decision not found")
        return rows[0]

    def list_decisions(self, *, status: Optional[str] = None, priority: Optional[str] = None) -> list[dict[str, Any]]:
        query = self.client.table("editorial_decisions").select("*")
        if status:
            query = query.eq("status", _enum_value(DecisionStatus, status, "status"))
        if priority:
            query = query.eq("priority", _enum_value(Priority, priority, "priority"))
        resp = query.execute()
        rows = getattr(resp, "data", None) or []
        return [self._with_days(r) for r in sort_queue(rows)]

    def get_decision(self, decision_id: str) -> dict[str, Any]:
        return self._with_days(self._load(decision_id))

    def create_decision(
        self,
        *,
        article_id: str,
        priority: Optional[str] = None,
        notes: Optional[str] = None,
        assigned_to: Optional[str] = None,
        due_date: Optional[datetime] = None,
    ) -> dict[str, Any]:
        resp = (
            self.client.table("articles")
            .select("id,title,authors")
            .eq("id", str(article_id))
            .limit(1)
            .execute()
        )
        articles = getattr(resp, "data", None) or []
        if not articles:
            raise HTTPException(status_code=404, detail="Article not found")
        article = articles[0]

        existing = (
            self.client.table("editorial_decisions")
            .select("id")
            .eq("article_id", str(article_id))
            .limit(1)
            .execute()
        )
        if getattr(existing, "data", None):
            raise HTTPException(status_code=409, detail="Editorial decision already exists for this article")

        now = self._now()
        payload: dict[str, Any] = {
            "article_id": str(article_id),
            "article_title": str(article.get("title") or ""),
            "author_name": first_author_name(article),
            "submitted_date": now,
            "status": DecisionStatus.PENDING.value,
            "priority": _enum_value(Priority, priority, "priority") if priority else Priority.NORMAL.value,
            "recommendations_count": 0,
            "recommendations": [],
            "notes": notes,
            "created_at": now,
            "updated_at": now,
        }
        if assigned_to:
            payload["assigned_to"] = str(assigned_to)
            payload["assigned_to_name"] = self.users.get_display_name(assigned_to)
        if due_date:
            payload["due_date"] = to_utc_iso(due_date)

        try:
            created = self.client.table("editorial_decisions").insert(payload).execute()
        except APIError as e:
            if is_unique_violation(e):
                raise HTTPException(
                    status_code=409, detail="Editorial decision already exists for this article"
                ) from e
            raise
        rows = getattr(created, "data", None) or [payload]
        return self._with_days(rows[0])

    def update_decision(
        self,
        decision_id: str,
        *,
        priority: Optional[str] = None,
        notes: Optional[str] = None,
        assigned_to: Optional[str] = None,
        due_date: Optional[datetime] = None,
        status: Optional[str] = None,
    ) -> dict[str, Any]:
        current = self._load(decision_id)
        if current.get("status") == DecisionStatus.DECIDED.value:
            raise HTTPException(status_code=400, detail="Editorial decision has already been made")

        updates: dict[str, Any] = {}
        if priority is not None:
            updates["priority"] = _enum_value(Priority, priority, "priority")
        if notes is not None:
            updates["notes"] = notes
        if assigned_to is not None:
            updates["assigned_to"] = str(assigned_to)
            updates["assigned_to_name"] = self.users.get_display_name(assigned_to)
        if due_date is not None:
            updates["due_date"] = to_utc_iso(due_date)
        if status is not None:
            value = _enum_value(DecisionStatus, status, "status")
            if value == DecisionStatus.DECIDED.value:
                raise HTTPException(
                    status_code=400,
                    detail="Use the editorial decision endpoint to record a decision",
                )
            updates["status"] = value
        if not updates:
            return self._with_days(current)

        updates["updated_at"] = self._now()
        resp = (
            self.client.table("editorial_decisions")
            .update(updates)
            .eq("id", str(decision_id))
            .neq("status", DecisionStatus.DECIDED.value)
            .execute()
        )
        rows = getattr(resp, "data", None) or []
        if not rows:
            raise HTTPException(status_code=400, detail="Editorial decision has already been made")
        return self._with_days(rows[0])

    def add_recommendation(self, decision_id: str, recommendation: str) -> dict[str, Any]:
        value = _enum_value(ReviewRecommendation, recommendation, "recommendation")
        current = self._load(decision_id)
        if current.get("status") == DecisionStatus.DECIDED.value:
            raise HTTPException(status_code=400, detail="Editorial decision has already been made")

        recommendations = [*list(current.get("recommendations") or []), value]
        resp = (
            self.client.table("editorial_decisions")
            .update(
                {
                    "recommendations": recommendations,
                    "recommendations_count": int(current.get("recommendations_count") or 0) + 1,
                    "updated_at": self._now(),
                }
            )
            .eq("id", str(decision_id))
            .neq("status", DecisionStatus.DECIDED.value)
            .execute()
        )
        rows = getattr(resp, "data", None) or []
        if not rows:
            raise HTTPException(status_code=400, detail="Editorial decision has already been made")
        return self._with_days(rows[0])

    def get_statistics(self) -> dict[str, Any]:
        resp = (
            self.client.table("editorial_decisions")
            .select("status,decision,submitted_date,decided_date")
            .execute()
        )
        rows = getattr(resp, "data", None) or []

        by_status = {s.value: 0 for s in DecisionStatus}
        by_decision = {d.value: 0 for d in DecisionType}
        durations: list[int] = []
        for row in rows:
            status = row.get("status")
            if status in by_status:
                by_status[status] += 1
            decision = row.get("decision")
            if decision in by_decision:
                by_decision[decision] += 1
            if status == DecisionStatus.DECIDED.value:
                submitted = parse_iso(row.get("submitted_date"))
                decided = parse_iso(row.get("decided_date"))
                if submitted and decided:
                    durations.append(max(0, (decided - submitted).days))

        return {
            "total": len(rows),
            "by_status": by_status,
            "by_decision": by_decision,
            "average_review_time": round(sum(durations) / len(durations)) if durations else 0,
        }
