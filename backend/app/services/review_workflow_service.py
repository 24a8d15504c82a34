from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Callable, Optional

from fastapi import BackgroundTasks, HTTPException
from postgrest.exceptions import APIError

from app.core.config import ReviewWorkflowConfig
from app.core.mail import EmailService
from app.core.role_matrix import is_reviewer_capable
from app.lib.api_client import supabase_admin
from app.models.article import (
    ASSIGNABLE_ARTICLE_STATUSES,
    ArticleStatus,
    first_author_name,
    normalize_article_status,
)
from app.models.editorial_decision import (
    DECISION_TO_ARTICLE_STATUS,
    DecisionStatus,
    DecisionType,
    Priority,
    parse_iso,
    sort_queue,
)
from app.models.review import (
    RATING_FIELDS,
    RATING_MAX,
    RATING_MIN,
    ReviewRecommendation,
    ReviewStatus,
)
from app.models.user import display_name
from app.services.notification_service import NotificationService
from app.services.user_service import UserService


def is_unique_violation(exc: APIError) -> bool:
    code = str(getattr(exc, "code", "") or "")
    return code == "23505" or "23505" in str(exc)


def to_utc_iso(value: datetime | str | None) -> Optional[str]:
    """naive 时间按 UTC 处理，带时区的统一换算到 UTC 后落库。"""
    if value is None:
        return None
    parsed = parse_iso(value)
    if parsed is None:
        raise HTTPException(status_code=400, detail=f"Invalid date: {value}")
    return parsed.astimezone(timezone.utc).isoformat()


class ReviewWorkflowService:
    """
    审稿流程编排：指派 -> 接受/拒绝 -> 提交 -> 汇总建议 -> 编辑决策 -> 回写稿件状态。

    中文注释:
    - 核心状态流转在这里显性可见，API 层只做鉴权与参数解析。
    - 所有前置条件失败都直接抛 HTTPException（400/403/404/409），由 FastAPI 原样返回。
    - 邮件/站内通知是 best-effort：主记录已写入后才触发，失败只打日志，不回滚。
    - 并发：指派唯一性与“每篇稿件一条决策”依赖数据库唯一索引兜底，其他写入为 last-writer-wins。
    """

    def __init__(
        self,
        *,
        client: Any = None,
        email_service: Optional[EmailService] = None,
        notification_service: Optional[NotificationService] = None,
        user_service: Optional[UserService] = None,
        config: Optional[ReviewWorkflowConfig] = None,
    ) -> None:
        self.client = client or supabase_admin
        self.config = config or ReviewWorkflowConfig.from_env()
        self.email = email_service or EmailService(workflow_config=self.config)
        self.notifications = notification_service or NotificationService(self.client)
        self.users = user_service or UserService(self.client)

    def _now(self) -> str:
        return datetime.now(timezone.utc).isoformat()

    # === 读取 helpers ===

    def _fetch_one(self, table: str, row_id: str, not_found: str) -> dict[str, Any]:
        resp = self.client.table(table).select("*").eq("id", str(row_id)).limit(1).execute()
        rows = getattr(resp, "data", None) or []
        if not rows:
            raise HTTPException(status_code=404, detail=not_found)
        return rows[0]

    def _get_article(self, article_id: str) -> dict[str, Any]:
        return self._fetch_one("articles", article_id, "Article not found")

    def _get_review(self, review_id: str) -> dict[str, Any]:
        return self._fetch_one("reviews", review_id, "Review not found")

    def _get_decision(self, decision_id: str) -> dict[str, Any]:
        return self._fetch_one("editorial_decisions", decision_id, "Editorial decision not found")

    @staticmethod
    def _ensure_owner(review: dict[str, Any], reviewer_id: str, detail: str) -> None:
        if str(review.get("reviewer_id") or "") != str(reviewer_id):
            raise HTTPException(status_code=403, detail=detail)

    @staticmethod
    def _respondable_statuses(review: dict[str, Any]) -> tuple[str, ...]:
        # 中文注释: 尚未接受就被扫描成 overdue 的记录，审稿人仍可接受/拒绝
        if review.get("accepted_date"):
            return (ReviewStatus.PENDING.value,)
        return (ReviewStatus.PENDING.value, ReviewStatus.OVERDUE.value)

    @staticmethod
    def _submittable_statuses(review: dict[str, Any]) -> tuple[str, ...]:
        # 中文注释: 已接受后被扫描成 overdue 的记录仍可提交（迟交）
        if review.get("accepted_date"):
            return (ReviewStatus.IN_PROGRESS.value, ReviewStatus.OVERDUE.value)
        return (ReviewStatus.IN_PROGRESS.value,)

    def _ensure_respondable(self, review: dict[str, Any]) -> tuple[str, ...]:
        allowed = self._respondable_statuses(review)
        if review.get("status") not in allowed:
            raise HTTPException(status_code=400, detail="Review has already been responded to")
        return allowed

    def _update_review(
        self,
        review_id: str,
        payload: dict[str, Any],
        *,
        expected_statuses: tuple[str, ...],
        conflict_detail: str,
    ) -> dict[str, Any]:
        """
        条件更新：只有当前状态仍在 expected_statuses 内时才写入。
        中文注释: 读-判断-写之间若被并发请求抢先改了状态，这里 0 行命中，按状态错误处理。
        """
        resp = (
            self.client.table("reviews")
            .update(payload)
            .eq("id", str(review_id))
            .in_("status", list(expected_statuses))
            .execute()
        )
        rows = getattr(resp, "data", None) or []
        if not rows:
            raise HTTPException(status_code=400, detail=conflict_detail)
        return rows[0]

    def _best_effort(self, label: str, fn: Callable[..., Any], **kwargs: Any) -> Any:
        try:
            return fn(**kwargs)
        except Exception as e:
            print(f"[ReviewWorkflow] {label} failed (ignored): {e}")
            return None

    def _notify(self, **kwargs: Any) -> None:
        self._best_effort("notification", self.notifications.create_notification, **kwargs)

    def _send_email(
        self,
        label: str,
        fn: Callable[..., Any],
        background_tasks: Optional[BackgroundTasks],
        **kwargs: Any,
    ) -> None:
        """
        邮件 fire-and-forget：有 BackgroundTasks 时排队到响应之后执行，否则同步 best-effort。
        """
        if background_tasks is not None:
            background_tasks.add_task(self._best_effort, label, fn, **kwargs)
            return
        self._best_effort(label, fn, **kwargs)

    # === 指派 ===

    def assign_reviewer(
        self,
        *,
        article_id: str,
        reviewer_id: str,
        due_date: datetime | str,
        assigned_by_id: str,
        is_anonymous: Optional[bool] = True,
        instructions: Optional[str] = None,
        background_tasks: Optional[BackgroundTasks] = None,
    ) -> dict[str, Any]:
        article = self._get_article(article_id)
        article_status = normalize_article_status(article.get("status"))
        if article_status not in ASSIGNABLE_ARTICLE_STATUSES:
            raise HTTPException(status_code=400, detail="Article is not available for review assignment")

        reviewer = self.users.get_profile(reviewer_id)
        if not reviewer:
            raise HTTPException(status_code=404, detail="Reviewer not found")
        if not is_reviewer_capable(reviewer.get("role")):
            raise HTTPException(status_code=400, detail="User is not authorized to review articles")

        existing = (
            self.client.table("reviews")
            .select("id")
            .eq("article_id", str(article_id))
            .eq("reviewer_id", str(reviewer_id))
            .neq("status", ReviewStatus.DECLINED.value)
            .limit(1)
            .execute()
        )
        if getattr(existing, "data", None):
            raise HTTPException(status_code=409, detail="Reviewer is already assigned to this article")

        now = self._now()
        article_title = str(article.get("title") or "")
        payload = {
            "article_id": str(article_id),
            "article_title": article_title,
            "reviewer_id": str(reviewer_id),
            "reviewer_name": display_name(reviewer),
            "assigned_by": str(assigned_by_id),
            "assigned_by_name": self.users.get_display_name(assigned_by_id),
            "status": ReviewStatus.PENDING.value,
            "due_date": to_utc_iso(due_date),
            # 中文注释: 未显式传值时默认匿名审稿；显式 False 保留
            "is_anonymous": True if is_anonymous is None else bool(is_anonymous),
            "instructions": instructions,
            "attachments": [],
            "created_at": now,
            "updated_at": now,
        }
        try:
            resp = self.client.table("reviews").insert(payload).execute()
        except APIError as e:
            # 部分唯一索引 (article_id, reviewer_id) where status <> 'declined'
            if is_unique_violation(e):
                raise HTTPException(
                    status_code=409, detail="Reviewer is already assigned to this article"
                ) from e
            raise
        rows = getattr(resp, "data", None) or []
        review = rows[0] if rows else payload

        article_updates: dict[str, Any] = {"updated_at": now}
        if article_status == ArticleStatus.SUBMITTED.value:
            article_updates["status"] = ArticleStatus.UNDER_REVIEW.value
        assigned = [str(x) for x in (article.get("assigned_reviewers") or [])]
        if str(reviewer_id) not in assigned:
            assigned.append(str(reviewer_id))
        article_updates["assigned_reviewers"] = assigned
        self.client.table("articles").update(article_updates).eq("id", str(article_id)).execute()

        reviewer_email = str(reviewer.get("email") or "").strip()
        if reviewer_email:
            self._send_email(
                "review invitation email",
                self.email.send_review_invitation,
                background_tasks,
                to_email=reviewer_email,
                reviewer_name=review.get("reviewer_name") or "Reviewer",
                article_title=article_title,
                review_id=str(review.get("id") or ""),
                due_date=review.get("due_date"),
                instructions=instructions,
            )
        self._notify(
            user_id=str(reviewer_id),
            article_id=str(article_id),
            type="review_assigned",
            title="New Review Assignment",
            message=f'You have been assigned to review "{article_title}"',
        )
        return review

    # === 查询 ===

    def get_reviews_for_article(self, article_id: str) -> list[dict[str, Any]]:
        resp = (
            self.client.table("reviews")
            .select("*")
            .eq("article_id", str(article_id))
            .order("created_at", desc=True)
            .execute()
        )
        return getattr(resp, "data", None) or []

    def get_reviews_for_reviewer(self, reviewer_id: str, status: Optional[str] = None) -> list[dict[str, Any]]:
        query = self.client.table("reviews").select("*").eq("reviewer_id", str(reviewer_id))
        if status:
            try:
                normalized = ReviewStatus(str(status).strip().lower()).value
            except ValueError:
                raise HTTPException(status_code=400, detail=f"Invalid review status: {status}")
            query = query.eq("status", normalized)
        resp = query.order("due_date").order("created_at", desc=True).execute()
        return getattr(resp, "data", None) or []

    # === 审稿人响应 ===

    def accept_review(self, *, review_id: str, reviewer_id: str) -> dict[str, Any]:
        review = self._get_review(review_id)
        self._ensure_owner(review, reviewer_id, "Not authorized to accept this review")
        allowed = self._ensure_respondable(review)

        now = self._now()
        updated = self._update_review(
            review_id,
            {"status": ReviewStatus.IN_PROGRESS.value, "accepted_date": now, "updated_at": now},
            expected_statuses=allowed,
            conflict_detail="Review has already been responded to",
        )
        self._notify(
            user_id=str(review.get("assigned_by") or ""),
            article_id=review.get("article_id"),
            type="general",
            title="Review Accepted",
            message=f'{review.get("reviewer_name")} has accepted the review for "{review.get("article_title")}"',
        )
        return updated

    def decline_review(self, *, review_id: str, reviewer_id: str, reason: Optional[str]) -> dict[str, Any]:
        review = self._get_review(review_id)
        self._ensure_owner(review, reviewer_id, "Not authorized to decline this review")
        allowed = self._ensure_respondable(review)

        cleaned = (reason or "").strip()
        min_len = self.config.decline_reason_min_length
        if len(cleaned) < min_len:
            raise HTTPException(
                status_code=400, detail=f"Decline reason must be at least {min_len} characters"
            )

        now = self._now()
        updated = self._update_review(
            review_id,
            {
                "status": ReviewStatus.DECLINED.value,
                "declined_date": now,
                "confidential_comments": cleaned,
                "comments": cleaned,
                "updated_at": now,
            },
            expected_statuses=allowed,
            conflict_detail="Review has already been responded to",
        )
        # 中文注释: 拒审不回写稿件状态，也不自动重新指派（由编辑手动处理）
        self._notify(
            user_id=str(review.get("assigned_by") or ""),
            article_id=review.get("article_id"),
            type="general",
            title="Review Declined",
            message=f'{review.get("reviewer_name")} has declined the review for "{review.get("article_title")}"',
        )
        return updated

    @staticmethod
    def _validate_ratings(ratings: Any) -> dict[str, int]:
        if hasattr(ratings, "model_dump"):
            ratings = ratings.model_dump()
        if not isinstance(ratings, dict):
            ratings = {}
        missing = [field for field in RATING_FIELDS if ratings.get(field) is None]
        if missing:
            raise HTTPException(status_code=400, detail=f"Missing ratings: {', '.join(missing)}")

        out: dict[str, int] = {}
        for field in RATING_FIELDS:
            value = ratings.get(field)
            if isinstance(value, bool) or not isinstance(value, int) or not RATING_MIN <= value <= RATING_MAX:
                raise HTTPException(
                    status_code=400,
                    detail=f"Rating '{field}' must be an integer between {RATING_MIN} and {RATING_MAX}",
                )
            out[field] = value
        return out

    def submit_review(
        self,
        *,
        review_id: str,
        reviewer_id: str,
        recommendation: str,
        comments: str,
        ratings: Any,
        confidential_comments: Optional[str] = None,
        attachments: Optional[list[str]] = None,
        background_tasks: Optional[BackgroundTasks] = None,
    ) -> dict[str, Any]:
        review = self._get_review(review_id)
        self._ensure_owner(review, reviewer_id, "Not authorized to submit this review")
        allowed = self._submittable_statuses(review)
        if review.get("status") not in allowed:
            raise HTTPException(status_code=400, detail="Review is not in progress")

        clean_ratings = self._validate_ratings(ratings)
        try:
            rec = ReviewRecommendation(str(recommendation or "").strip().lower()).value
        except ValueError:
            raise HTTPException(status_code=400, detail=f"Invalid recommendation: {recommendation}")

        now = self._now()
        updated = self._update_review(
            review_id,
            {
                "status": ReviewStatus.COMPLETED.value,
                "submitted_date": now,
                "recommendation": rec,
                "comments": comments,
                "confidential_comments": confidential_comments,
                "ratings": clean_ratings,
                "attachments": list(attachments or []),
                "updated_at": now,
            },
            expected_statuses=allowed,
            conflict_detail="Review is not in progress",
        )

        self._collect_recommendations(str(review.get("article_id")))

        assigner_id = str(review.get("assigned_by") or "")
        self._notify(
            user_id=assigner_id,
            article_id=review.get("article_id"),
            type="review_submitted",
            title="Review Completed",
            message=f'{review.get("reviewer_name")} has completed the review for "{review.get("article_title")}"',
        )
        assigner_email = self.users.get_email(assigner_id)
        if assigner_email:
            self._send_email(
                "review completed email",
                self.email.send_review_completed,
                background_tasks,
                to_email=assigner_email,
                editor_name=review.get("assigned_by_name") or "Editor",
                reviewer_name=review.get("reviewer_name") or "Reviewer",
                article_title=review.get("article_title") or "",
                article_id=str(review.get("article_id") or ""),
                recommendation=rec,
            )
        return updated

    def _collect_recommendations(self, article_id: str) -> Optional[dict[str, Any]]:
        """
        completed 审稿数达到阈值后，为稿件生成（或刷新）唯一的 editorial decision。

        中文注释:
        - 创建走 upsert(on_conflict=article_id, ignore_duplicates=True)，依赖 article_id 唯一索引，
          两个审稿人同时提交也只会生成一条。
        - 已存在且未决策时，用同一批 completed 记录刷新 recommendations（按提交时间升序）。
        """
        resp = (
            self.client.table("reviews")
            .select("id,recommendation,submitted_date")
            .eq("article_id", article_id)
            .eq("status", ReviewStatus.COMPLETED.value)
            .order("submitted_date")
            .execute()
        )
        completed = getattr(resp, "data", None) or []
        if len(completed) < self.config.decision_min_completed:
            return None

        recommendations = [str(r.get("recommendation")) for r in completed if r.get("recommendation")]
        article = self._get_article(article_id)
        now = self._now()
        payload = {
            "article_id": article_id,
            "article_title": str(article.get("title") or ""),
            "author_name": first_author_name(article),
            "submitted_date": now,
            "status": DecisionStatus.PENDING.value,
            "priority": Priority.NORMAL.value,
            "recommendations_count": len(completed),
            "recommendations": recommendations,
            "created_at": now,
            "updated_at": now,
        }
        created = (
            self.client.table("editorial_decisions")
            .upsert(payload, on_conflict="article_id", ignore_duplicates=True)
            .execute()
        )
        rows = getattr(created, "data", None) or []
        if rows:
            return rows[0]

        refreshed = (
            self.client.table("editorial_decisions")
            .update(
                {
                    "recommendations_count": len(completed),
                    "recommendations": recommendations,
                    "updated_at": now,
                }
            )
            .eq("article_id", article_id)
            .neq("status", DecisionStatus.DECIDED.value)
            .execute()
        )
        rows = getattr(refreshed, "data", None) or []
        return rows[0] if rows else None

    # === 编辑决策 ===

    def make_editorial_decision(
        self,
        *,
        decision_id: str,
        decision: str,
        comments: str,
        editor_id: str,
        feedback_to_author: Optional[str] = None,
        confidential_notes: Optional[str] = None,
        background_tasks: Optional[BackgroundTasks] = None,
    ) -> dict[str, Any]:
        try:
            value = DecisionType(str(decision or "").strip().lower()).value
        except ValueError:
            raise HTTPException(status_code=400, detail=f"Invalid decision: {decision}")

        current = self._get_decision(decision_id)
        if current.get("status") == DecisionStatus.DECIDED.value:
            raise HTTPException(status_code=400, detail="Editorial decision has already been made")
        article_id = str(current.get("article_id") or "")
        article = self._get_article(article_id)

        now = self._now()
        resp = (
            self.client.table("editorial_decisions")
            .update(
                {
                    "decision": value,
                    "comments": comments,
                    "feedback_to_author": feedback_to_author,
                    "confidential_notes": confidential_notes,
                    "status": DecisionStatus.DECIDED.value,
                    "decided_date": now,
                    "decided_by": str(editor_id),
                    "decided_by_name": self.users.get_display_name(editor_id),
                    "updated_at": now,
                }
            )
            .eq("id", str(decision_id))
            .neq("status", DecisionStatus.DECIDED.value)
            .execute()
        )
        rows = getattr(resp, "data", None) or []
        if not rows:
            raise HTTPException(status_code=400, detail="Editorial decision has already been made")
        updated = rows[0]

        article_updates: dict[str, Any] = {
            "status": DECISION_TO_ARTICLE_STATUS[value],
            "updated_at": now,
        }
        if value == DecisionType.ACCEPT.value:
            article_updates["acceptance_date"] = now
        self.client.table("articles").update(article_updates).eq("id", article_id).execute()

        article_title = str(article.get("title") or "")
        author_id = str(article.get("corresponding_author_id") or "")
        self._notify(
            user_id=author_id,
            article_id=article_id,
            type="decision_made",
            title="Editorial Decision",
            message=f'A decision has been made on your submission "{article_title}"',
        )
        author_email = self.users.get_email(author_id) or _first_author_email(article)
        if author_email:
            self._send_email(
                "decision email",
                self.email.send_decision_notification,
                background_tasks,
                to_email=author_email,
                author_name=first_author_name(article),
                article_title=article_title,
                article_id=article_id,
                decision=value,
                feedback=feedback_to_author or comments,
            )
        return updated

    def get_editorial_queue(self) -> list[dict[str, Any]]:
        # 中文注释: priority 是字符串列，数据库排序是字典序，这里按枚举 rank 在内存中排序
        resp = (
            self.client.table("editorial_decisions")
            .select("*")
            .neq("status", DecisionStatus.DECIDED.value)
            .execute()
        )
        return sort_queue(getattr(resp, "data", None) or [])

    # === 统计 ===

    def get_reviewer_stats(self, reviewer_id: str) -> dict[str, Any]:
        resp = self.client.table("reviews").select("*").eq("reviewer_id", str(reviewer_id)).execute()
        reviews = getattr(resp, "data", None) or []

        def _count(status: ReviewStatus) -> int:
            return sum(1 for r in reviews if r.get("status") == status.value)

        completed = [r for r in reviews if r.get("status") == ReviewStatus.COMPLETED.value]
        total = len(reviews)

        average_rating = 0.0
        if completed:
            overall = [float((r.get("ratings") or {}).get("overall") or 0) for r in completed]
            average_rating = round(sum(overall) / len(completed), 2)

        on_time = 0
        durations: list[int] = []
        for r in completed:
            submitted = parse_iso(r.get("submitted_date"))
            due = parse_iso(r.get("due_date"))
            if submitted and due and submitted <= due:
                on_time += 1
        for r in reviews:
            submitted = parse_iso(r.get("submitted_date"))
            accepted = parse_iso(r.get("accepted_date"))
            if submitted and accepted:
                durations.append((submitted - accepted).days)

        return {
            "total": total,
            "completed": len(completed),
            "pending": _count(ReviewStatus.PENDING),
            "in_progress": _count(ReviewStatus.IN_PROGRESS),
            "declined": _count(ReviewStatus.DECLINED),
            "overdue": _count(ReviewStatus.OVERDUE),
            "average_rating": average_rating,
            "on_time_submissions": on_time,
            "average_completion_time": round(sum(durations) / len(durations)) if durations else 0,
            "completion_rate": round(len(completed) / total * 100) if total else 0,
        }

    # === 催办 ===

    def send_reminder(self, review_id: str) -> dict[str, Any]:
        review = self._get_review(review_id)
        status = review.get("status")
        if status not in {
            ReviewStatus.PENDING.value,
            ReviewStatus.IN_PROGRESS.value,
            ReviewStatus.OVERDUE.value,
        }:
            raise HTTPException(status_code=400, detail="Review is already closed")

        reviewer_email = self.users.get_email(review.get("reviewer_id"))
        if not reviewer_email:
            raise HTTPException(status_code=400, detail="Reviewer has no email address")

        ok = self.email.send_review_reminder(
            to_email=reviewer_email,
            reviewer_name=review.get("reviewer_name") or "Reviewer",
            article_title=review.get("article_title") or "",
            review_id=str(review.get("id")),
            due_date=review.get("due_date"),
        )
        if ok:
            self.client.table("reviews").update({"last_reminded_at": self._now()}).eq(
                "id", str(review_id)
            ).execute()
        return {"success": bool(ok), "review_id": str(review_id), "reviewer_email": reviewer_email}


def _first_author_email(article: dict[str, Any]) -> Optional[str]:
    authors = article.get("authors") or []
    if authors and isinstance(authors[0], dict):
        email = str(authors[0].get("email") or "").strip()
        return email or None
    return None
