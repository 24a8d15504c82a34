import os

from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt

from app.lib.api_client import supabase

# === Auth 核心配置 ===
# 中文注释:
# 1. 密钥来源于 Supabase Project Settings 中的 JWT Secret。
# 2. 使用 HTTPBearer 作为验证头；缺失 Authorization 时直接 401。
ALGORITHM = "HS256"

security = HTTPBearer(auto_error=False)


def _jwt_secret() -> str:
    return (os.environ.get("SUPABASE_JWT_SECRET") or "").strip()


async def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
) -> dict:
    """
    解码并验证 Supabase JWT Token
    返回 {"id", "email"}
    """
    if credentials is None or not credentials.credentials:
        raise HTTPException(status_code=401, detail="Not authenticated")

    token = credentials.credentials
    secret = _jwt_secret()
    try:
        # 中文注释:
        # 1. HS256 且配置了密钥：本地校验，减少外部请求。
        # 2. 其他算法（Supabase JWT Signing Keys）走 Auth API。
        header = jwt.get_unverified_header(token)
        if header.get("alg") == ALGORITHM and secret:
            payload = jwt.decode(token, secret, algorithms=[ALGORITHM], audience="authenticated")
            user_id = payload.get("sub")
            if not user_id:
                raise HTTPException(status_code=401, detail="Invalid token payload")
            return {"id": user_id, "email": payload.get("email")}
    except JWTError as e:
        print(f"[Auth] JWT verification failed: {e}")
        raise HTTPException(status_code=401, detail="Token is invalid or expired")

    try:
        response = supabase.auth.get_user(token)
        user = response.user if response else None
    except Exception as e:
        # 中文注释: Supabase 配置缺失/网络异常统一视为鉴权失败，不泄露 500
        print(f"[Auth] Supabase token fallback failed: {e}")
        raise HTTPException(status_code=401, detail="Token is invalid or expired")

    if not user:
        raise HTTPException(status_code=401, detail="Invalid token payload")
    return {"id": user.id, "email": user.email}
