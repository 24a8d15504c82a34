from __future__ import annotations

from typing import Any, Dict, Optional

from app.lib.api_client import supabase_admin
from app.models.user import display_name


class UserService:
    """
    用户目录只读访问（user_profiles）。

    中文注释:
    - 用户的创建/修改属于外部用户目录，本服务只负责按 id 查询 email / 姓名 / role。
    """

    _FIELDS = "id,email,first_name,last_name,role"

    def __init__(self, client: Any = None) -> None:
        self.client = client or supabase_admin

    def get_profile(self, user_id: Optional[str]) -> Optional[Dict[str, Any]]:
        if not user_id:
            return None
        resp = (
            self.client.table("user_profiles")
            .select(self._FIELDS)
            .eq("id", str(user_id))
            .limit(1)
            .execute()
        )
        rows = getattr(resp, "data", None) or []
        return rows[0] if rows else None

    def get_display_name(self, user_id: Optional[str]) -> str:
        return display_name(self.get_profile(user_id))

    def get_email(self, user_id: Optional[str]) -> Optional[str]:
        """
        只用于发信；查询失败不影响主流程。
        """
        try:
            profile = self.get_profile(user_id)
        except Exception as e:
            print(f"[Users] email lookup failed (ignored): {e}")
            return None
        email = str((profile or {}).get("email") or "").strip()
        return email or None
