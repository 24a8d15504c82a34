from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from app.core.config import ReviewWorkflowConfig
from app.core.mail import EmailService
from app.lib.api_client import supabase_admin
from app.models.review import OPEN_REVIEW_STATUSES, ReviewStatus
from app.services.notification_service import NotificationService
from app.services.user_service import UserService


class OverdueReviewSweeper:
    """
    超期扫描：把 due_date 已过的 pending / in_progress 审稿标记为 overdue。

    中文注释:
    1) 触发方式：内部接口 /api/v1/internal/cron/overdue-reviews（外部 Cron 定时调用），进程内不自动运行。
    2) 条件更新：只在状态仍为 pending/in_progress 时写入，重复触发不会重复通知。
    3) 通知 assigner 失败只记录日志。
    """

    def __init__(self, *, client: Any = None, notification_service: Optional[NotificationService] = None):
        self.client = client or supabase_admin
        self._notifications = notification_service or NotificationService(self.client)

    def run(self, now: Optional[datetime] = None) -> Dict[str, int]:
        now = now or datetime.now(timezone.utc)

        try:
            res = (
                self.client.table("reviews")
                .select("id,article_id,article_title,reviewer_name,assigned_by,due_date,status")
                .in_("status", sorted(OPEN_REVIEW_STATUSES))
                .lt("due_date", now.isoformat())
                .execute()
            )
            rows = getattr(res, "data", None) or []
        except Exception as e:
            print(f"[OverdueSweep] query failed: {e}")
            return {"processed_count": 0, "notifications_sent": 0}

        processed_count = 0
        notifications_sent = 0
        for row in rows:
            try:
                updated = (
                    self.client.table("reviews")
                    .update({"status": ReviewStatus.OVERDUE.value, "updated_at": now.isoformat()})
                    .eq("id", row.get("id"))
                    .in_("status", sorted(OPEN_REVIEW_STATUSES))
                    .execute()
                )
            except Exception as e:
                print(f"[OverdueSweep] mark overdue failed: review_id={row.get('id')} {e}")
                continue
            if not (getattr(updated, "data", None) or []):
                continue

            processed_count += 1
            created = self._notifications.create_notification(
                user_id=str(row.get("assigned_by") or ""),
                article_id=row.get("article_id"),
                type="deadline_approaching",
                title="Review Overdue",
                message=f'The review by {row.get("reviewer_name")} for "{row.get("article_title")}" is overdue',
            )
            if created:
                notifications_sent += 1

        return {"processed_count": processed_count, "notifications_sent": notifications_sent}


class ReviewReminderScheduler:
    """
    自动催办调度器

    中文注释:
    1) 触发方式：通过内部接口 /api/v1/internal/cron/chase-reviews 手动/定时触发。
    2) 幂等性：仅处理 last_reminded_at 为空且 due_date <= now + N 小时的 pending / in_progress 任务。
    3) 失败处理：发信失败只记录日志，不抛异常；last_reminded_at 仅在发送成功后写入。
    """

    def __init__(
        self,
        *,
        client: Any = None,
        email_service: Optional[EmailService] = None,
        user_service: Optional[UserService] = None,
        config: Optional[ReviewWorkflowConfig] = None,
    ):
        self.client = client or supabase_admin
        self.config = config or ReviewWorkflowConfig.from_env()
        self._email = email_service or EmailService(workflow_config=self.config)
        self._users = user_service or UserService(self.client)

    def run(self, now: Optional[datetime] = None) -> Dict[str, int]:
        now = now or datetime.now(timezone.utc)
        threshold = now + timedelta(hours=self.config.reminder_window_hours)

        try:
            res = (
                self.client.table("reviews")
                .select("id,reviewer_id,reviewer_name,article_title,due_date,last_reminded_at")
                .in_("status", sorted(OPEN_REVIEW_STATUSES))
                .is_("last_reminded_at", "null")
                .lte("due_date", threshold.isoformat())
                .execute()
            )
            rows = getattr(res, "data", None) or []
        except Exception as e:
            print(f"[ReminderScheduler] query failed: {e}")
            return {"processed_count": 0, "emails_sent": 0}

        processed_count = 0
        emails_sent = 0
        for row in rows:
            processed_count += 1
            reviewer_email = self._users.get_email(row.get("reviewer_id"))
            if not reviewer_email:
                print(f"[ReminderScheduler] reviewer has no email, skipped: reviewer_id={row.get('reviewer_id')}")
                continue

            ok = self._email.send_review_reminder(
                to_email=reviewer_email,
                reviewer_name=row.get("reviewer_name") or "Reviewer",
                article_title=row.get("article_title") or "Manuscript",
                review_id=str(row.get("id")),
                due_date=row.get("due_date"),
            )
            if not ok:
                continue

            emails_sent += 1
            try:
                self.client.table("reviews").update({"last_reminded_at": now.isoformat()}).eq(
                    "id", row.get("id")
                ).execute()
            except Exception as e:
                # 中文注释: 仅影响幂等标记，不影响本次 Cron 调用结果
                print(f"[ReminderScheduler] write last_reminded_at failed: {e}")

        return {"processed_count": processed_count, "emails_sent": emails_sent}
