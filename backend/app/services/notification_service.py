from __future__ import annotations

from typing import Any, Dict, List, Optional
from urllib.parse import urlparse

from postgrest.exceptions import APIError

from app.lib.api_client import supabase_admin
from app.models.notification import NotificationType


class NotificationService:
    """
    通知服务：封装 notifications 表的读写

    中文注释:
    1) 写入使用 supabase_admin（service_role），避免 RLS 导致写入失败。
    2) 读取/标记已读按 user_id 过滤，用户只能看到自己的通知。
    3) create_notification 永不抛异常：通知失败不影响审稿主流程。
    """

    def __init__(self, client: Any = None) -> None:
        self.client = client or supabase_admin

    @staticmethod
    def _normalize_action_url(action_url: Optional[str]) -> Optional[str]:
        raw = str(action_url or "").strip()
        if not raw:
            return None
        if raw.startswith("/"):
            return raw
        try:
            parsed = urlparse(raw)
        except ValueError:
            return None
        if parsed.scheme not in {"http", "https"}:
            return None
        path = parsed.path or "/"
        query = f"?{parsed.query}" if parsed.query else ""
        return f"{path}{query}"

    @staticmethod
    def default_action_url(type: str, article_id: Optional[str]) -> str:
        if type in {"review_assigned", "deadline_approaching"}:
            return "/reviewer/reviews"
        if type == "review_submitted" and article_id:
            return f"/editorial/articles/{article_id}"
        if type == "decision_made" and article_id:
            return f"/author/articles/{article_id}"
        return "/notifications"

    def create_notification(
        self,
        *,
        user_id: str,
        article_id: Optional[str],
        type: NotificationType,
        title: str,
        message: str,
        action_url: Optional[str] = None,
    ) -> Optional[Dict[str, Any]]:
        if not user_id:
            return None
        try:
            normalized = self._normalize_action_url(action_url) or self.default_action_url(type, article_id)
            payload = {
                "user_id": user_id,
                "related_article_id": article_id,
                "action_url": normalized,
                "type": type,
                "title": title,
                "message": message,
                "is_read": False,
            }
            res = self.client.table("notifications").insert(payload).execute()
            rows = getattr(res, "data", None) or []
            return rows[0] if rows else None
        except APIError as e:
            # 中文注释:
            # - notifications.user_id 外键指向 user_profiles(id)；展示用的 mock 用户会触发 23503。
            # - 该情况对主流程无影响，且会造成日志刷屏；这里静默忽略。
            text = str(e).lower()
            code = str(getattr(e, "code", "") or "").lower()
            if "23503" in code or "23503" in text:
                return None
            print(f"[Notifications] create failed: {e}")
            return None
        except Exception as e:
            print(f"[Notifications] create failed: {e}")
            return None

    def list_for_user(self, *, user_id: str, limit: int = 20, unread_only: bool = False) -> List[Dict[str, Any]]:
        query = self.client.table("notifications").select("*").eq("user_id", user_id)
        if unread_only:
            query = query.eq("is_read", False)
        res = query.order("created_at", desc=True).limit(limit).execute()
        return getattr(res, "data", None) or []

    def mark_read(self, *, user_id: str, notification_id: str) -> Optional[Dict[str, Any]]:
        res = (
            self.client.table("notifications")
            .update({"is_read": True})
            .eq("id", notification_id)
            .eq("user_id", user_id)
            .execute()
        )
        rows = getattr(res, "data", None) or []
        return rows[0] if rows else None

    def unread_count(self, *, user_id: str) -> int:
        res = (
            self.client.table("notifications")
            .select("id")
            .eq("user_id", user_id)
            .eq("is_read", False)
            .execute()
        )
        return len(getattr(res, "data", None) or [])

    def mark_all_read(self, *, user_id: str) -> int:
        """
        把当前用户所有未读通知标记为已读，返回更新条数。
        """
        res = (
            self.client.table("notifications")
            .update({"is_read": True})
            .eq("user_id", user_id)
            .eq("is_read", False)
            .execute()
        )
        return len(getattr(res, "data", None) or [])
