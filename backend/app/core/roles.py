from typing import Callable, Iterable

from fastapi import Depends, HTTPException

from app.core.auth_utils import get_current_user
from app.core.role_matrix import can_act, normalize_role
from app.lib.api_client import supabase_admin


async def get_current_profile(current_user: dict = Depends(get_current_user)) -> dict:
    """
    获取当前用户的 profile（含单一 role）。

    中文注释:
    1) user_profiles 由用户目录维护，本服务只读，不自动创建。
    2) 查不到 profile 时按 author 处理（最低权限），保证接口返回 403 而不是 500。
    """
    user_id = current_user["id"]
    email = current_user.get("email")

    try:
        resp = (
            supabase_admin.table("user_profiles")
            .select("id,email,first_name,last_name,role")
            .eq("id", user_id)
            .limit(1)
            .execute()
        )
        rows = getattr(resp, "data", None) or []
    except Exception as e:
        print(f"[Auth] load user profile failed (ignored): {e}")
        rows = []

    if rows:
        profile = dict(rows[0])
        profile["role"] = normalize_role(profile.get("role")) or "author"
        if not profile.get("email"):
            profile["email"] = email
        return profile
    return {"id": user_id, "email": email, "role": "author"}


def require_any_role(allowed: Iterable[str]) -> Callable[[dict], dict]:
    allowed_set = frozenset(allowed)

    async def _dep(profile: dict = Depends(get_current_profile)) -> dict:
        if not can_act(profile.get("role"), allowed_set):
            raise HTTPException(status_code=403, detail="Insufficient role")
        return profile

    return _dep
