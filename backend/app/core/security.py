import secrets

from fastapi import Header, HTTPException

from app.core.config import get_admin_api_key


async def require_admin_key(x_admin_key: str | None = Header(default=None, alias="X-Admin-Key")) -> None:
    """
    /internal/cron/* 的共享密钥校验（超期扫描、自动催办）。

    中文注释: ADMIN_API_KEY 未配置时一律 401，内部接口不会因漏配而对外开放。
    """
    expected = get_admin_api_key()
    if not expected:
        raise HTTPException(status_code=401, detail="Admin key not configured")
    provided = (x_admin_key or "").strip()
    if not provided or not secrets.compare_digest(provided.encode(), expected.encode()):
        raise HTTPException(status_code=401, detail="Invalid admin key")
