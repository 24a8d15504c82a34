from typing import Any, Callable, Optional

from supabase import Client, create_client

from app.core.config import app_config


class _LazySupabaseClient:
    """
    首次访问属性时才创建 Supabase Client。

    中文注释:
    - import 阶段不校验环境变量：单测直接注入内存 client 或 patch 模块里的 supabase_admin。
    - 真实运行缺少 URL/KEY 时，在第一次查询时抛出 RuntimeError（由中间件记录为 500）。
    """

    def __init__(self, factory: Callable[[], Client], *, name: str):
        self._factory = factory
        self._name = name
        self._client: Optional[Client] = None

    def _get(self) -> Client:
        if self._client is None:
            self._client = self._factory()
        return self._client

    def __getattr__(self, item: str) -> Any:
        return getattr(self._get(), item)

    def __repr__(self) -> str:
        state = "ready" if self._client is not None else "lazy"
        return f"<{self._name} ({state})>"


def _factory(*keys: str, missing: str) -> Callable[[], Client]:
    """按顺序取第一个非空 key 创建 client。"""

    def _create() -> Client:
        if not app_config.supabase_url:
            raise RuntimeError("SUPABASE_URL is required")
        key = next((k for k in keys if k), "")
        if not key:
            raise RuntimeError(f"{missing} is required")
        return create_client(app_config.supabase_url, key)

    return _create


# === 用户态 client：仅用于 Auth API 回退校验 token ===
supabase: Client = _LazySupabaseClient(  # type: ignore[assignment]
    _factory(app_config.supabase_anon_key, missing="SUPABASE_ANON_KEY or SUPABASE_KEY"),
    name="supabase",
)

# === service_role client：articles / reviews / editorial_decisions / notifications 读写 ===
supabase_admin: Client = _LazySupabaseClient(  # type: ignore[assignment]
    _factory(
        app_config.supabase_key,
        app_config.supabase_anon_key,
        missing="SUPABASE_SERVICE_ROLE_KEY (or SUPABASE_KEY)",
    ),
    name="supabase_admin",
)
