from typing import Any

from app.core.config import SentryConfig

_SENSITIVE_KEYS = {
    "password",
    "access_token",
    "refresh_token",
    "token",
    "jwt",
    "authorization",
    "cookie",
    "set-cookie",
    "x-admin-key",
    "service_role_key",
    # 审稿保密字段不应出现在错误上报中
    "confidential_comments",
    "confidential_notes",
}

_MAX_TEXT = 2000


def _scrub(value: Any) -> Any:
    """
    递归去除敏感字段与超长文本（审稿意见全文）。
    """
    if isinstance(value, str) and len(value) > _MAX_TEXT:
        return "[Filtered]"

    if isinstance(value, dict):
        out: dict[str, Any] = {}
        for k, v in value.items():
            if str(k).strip().lower() in _SENSITIVE_KEYS:
                out[str(k)] = "[Filtered]"
                continue
            out[str(k)] = _scrub(v)
        return out

    if isinstance(value, (list, tuple)):
        return [_scrub(v) for v in value]

    return value


def _before_send(event: dict[str, Any], hint: dict[str, Any]) -> dict[str, Any] | None:
    # 中文注释: 不上传请求体与 cookie；header 去掉鉴权相关项。
    request = event.get("request")
    if isinstance(request, dict):
        headers = request.get("headers")
        if isinstance(headers, dict):
            request["headers"] = {
                k: v for k, v in headers.items() if str(k).strip().lower() not in _SENSITIVE_KEYS
            }
        for field in ("cookies", "data", "body"):
            if field in request:
                request[field] = "[Filtered]"
        event["request"] = request

    for section in ("extra", "contexts"):
        obj = event.get(section)
        if isinstance(obj, dict):
            event[section] = _scrub(obj)

    return event


def init_sentry() -> bool:
    """
    初始化 Sentry。

    - 未配置 DSN / SENTRY_ENABLED=false 时直接返回 False。
    - 初始化异常由调用方 try/except 处理，不得阻塞启动。
    """
    cfg = SentryConfig.from_env()
    if not cfg.enabled or not cfg.dsn:
        return False

    import sentry_sdk
    from sentry_sdk.integrations.fastapi import FastApiIntegration

    sentry_sdk.init(
        dsn=cfg.dsn,
        environment=cfg.environment,
        traces_sample_rate=cfg.traces_sample_rate,
        integrations=[FastApiIntegration()],
        send_default_pii=False,
        max_request_body_size="never",
        before_send=_before_send,
    )
    return True
