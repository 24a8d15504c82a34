import os
from dataclasses import dataclass
from typing import Optional


def _env_bool(key: str, default: bool) -> bool:
    raw = os.environ.get(key)
    if raw is None:
        return default
    lowered = raw.strip().lower()
    return lowered in {"1", "true", "yes", "y", "on"}


def _env_int(key: str, default: int, *, min_value: int = 0) -> int:
    raw = (os.environ.get(key) or "").strip()
    try:
        value = int(raw) if raw else default
    except ValueError:
        value = default
    return max(min_value, value)


def parse_origins(*raw_values: Optional[str]) -> tuple[str, ...]:
    """
    合并若干逗号分隔的 Origin 配置：去掉末尾 /、去重并保持顺序。
    """
    origins: list[str] = []
    for raw in raw_values:
        for part in (raw or "").split(","):
            origin = part.strip().rstrip("/")
            if origin and origin not in origins:
                origins.append(origin)
    return tuple(origins)


@dataclass(frozen=True)
class AppConfig:
    """
    运行环境配置

    中文注释:
    - supabase_key 为 service_role key，只给 supabase_admin 使用。
    - supabase_anon_key 兼容 SUPABASE_ANON_KEY / SUPABASE_KEY 两个变量名，仅用于 Auth API 回退校验。
    - frontend_origins 来自 FRONTEND_ORIGIN + FRONTEND_ORIGINS，均缺省时只允许本地前端。
    """

    env: str  # 'development', 'staging', 'production'
    is_staging: bool
    supabase_url: str
    supabase_key: str
    supabase_anon_key: str
    frontend_origins: tuple[str, ...]

    @staticmethod
    def from_env() -> "AppConfig":
        env = (os.environ.get("APP_ENV") or "development").strip().lower()
        origins = parse_origins(os.environ.get("FRONTEND_ORIGIN"), os.environ.get("FRONTEND_ORIGINS"))
        return AppConfig(
            env=env,
            is_staging=env == "staging",
            supabase_url=(os.environ.get("SUPABASE_URL") or "").strip(),
            supabase_key=(os.environ.get("SUPABASE_SERVICE_ROLE_KEY") or "").strip(),
            supabase_anon_key=(
                os.environ.get("SUPABASE_ANON_KEY") or os.environ.get("SUPABASE_KEY") or ""
            ).strip(),
            frontend_origins=origins or ("http://localhost:3000",),
        )


# Global Config Instance
app_config = AppConfig.from_env()


@dataclass(frozen=True)
class ReviewWorkflowConfig:
    """
    审稿流程参数

    中文注释:
    1) decision_min_completed: 达到多少份 completed 审稿后自动生成 editorial decision（默认 2）。
    2) decline_reason_min_length: 拒审理由最短长度，所有入口统一校验。
    3) reminder_window_hours: 催办窗口，due_date 落在 now + N 小时内的任务会被提醒。
    """

    decision_min_completed: int
    decline_reason_min_length: int
    reminder_window_hours: int
    frontend_base_url: str
    journal_name: str

    @staticmethod
    def from_env() -> "ReviewWorkflowConfig":
        base_url = (os.environ.get("FRONTEND_BASE_URL") or "http://localhost:3000").strip().rstrip("/")
        return ReviewWorkflowConfig(
            decision_min_completed=_env_int("REVIEW_DECISION_MIN_COMPLETED", 2, min_value=1),
            decline_reason_min_length=_env_int("REVIEW_DECLINE_REASON_MIN_LENGTH", 20, min_value=0),
            reminder_window_hours=_env_int("REVIEW_REMINDER_WINDOW_HOURS", 24, min_value=1),
            frontend_base_url=base_url,
            journal_name=(os.environ.get("JOURNAL_NAME") or "AMHSJ").strip(),
        )


@dataclass(frozen=True)
class SMTPConfig:
    """
    SMTP 配置（从环境变量读取）

    中文注释:
    1) 该配置只存在于后端进程内，严禁泄露到前端。
    2) 允许在本地/测试环境缺省（此时邮件发送逻辑会优雅降级为“只记录日志”）。
    """

    host: str
    port: int
    user: Optional[str]
    password: Optional[str]
    from_email: str
    use_starttls: bool

    @staticmethod
    def from_env() -> Optional["SMTPConfig"]:
        host = (os.environ.get("SMTP_HOST") or "").strip()
        if not host:
            return None

        user = (os.environ.get("SMTP_USER") or "").strip() or None
        password = (os.environ.get("SMTP_PASSWORD") or "").strip() or None
        from_email = (
            os.environ.get("SMTP_FROM_EMAIL") or user or "no-reply@editorialflow.local"
        ).strip()

        return SMTPConfig(
            host=host,
            port=_env_int("SMTP_PORT", 587, min_value=1),
            user=user,
            password=password,
            from_email=from_email,
            use_starttls=_env_bool("SMTP_USE_STARTTLS", True),
        )


@dataclass(frozen=True)
class ResendConfig:
    """
    Resend API 配置（SMTP 缺省时的备用通道）
    """
    api_key: str
    sender: str

    @staticmethod
    def from_env() -> Optional["ResendConfig"]:
        api_key = (os.environ.get("RESEND_API_KEY") or "").strip()
        if not api_key:
            return None

        sender = (
            os.environ.get("EMAIL_SENDER") or "EditorialFlow <onboarding@resend.dev>"
        ).strip()
        return ResendConfig(api_key=api_key, sender=sender)


@dataclass(frozen=True)
class SentryConfig:
    enabled: bool
    dsn: str
    environment: str
    traces_sample_rate: float

    @staticmethod
    def from_env() -> "SentryConfig":
        dsn = (os.environ.get("SENTRY_DSN") or "").strip()
        raw_rate = (os.environ.get("SENTRY_TRACES_SAMPLE_RATE") or "0.0").strip()
        try:
            rate = float(raw_rate)
        except ValueError:
            rate = 0.0
        return SentryConfig(
            enabled=_env_bool("SENTRY_ENABLED", True) and bool(dsn),
            dsn=dsn,
            environment=(os.environ.get("SENTRY_ENVIRONMENT") or app_config.env).strip(),
            traces_sample_rate=min(max(rate, 0.0), 1.0),
        )


def get_admin_api_key() -> Optional[str]:
    """
    内部 Cron 接口鉴权 Key

    中文注释:
    - 仅用于 `/api/v1/internal/cron/*`，避免暴露到公网用户接口。
    """

    raw = os.environ.get("ADMIN_API_KEY")
    return raw.strip() if raw else None
