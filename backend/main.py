from contextlib import asynccontextmanager

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

# 在应用启动前加载环境变量
load_dotenv()

_SENTRY_ENABLED = False
try:
    from app.core.sentry_init import init_sentry

    _SENTRY_ENABLED = init_sentry()
    if _SENTRY_ENABLED:
        print("[sentry] enabled")
except Exception as e:
    # 中文注释: Sentry 任何异常不得阻塞启动
    print(f"[sentry] init failed (ignored): {e}")

from app.api.v1 import editorial_decisions, internal, notifications, review_workflow
from app.core.config import ReviewWorkflowConfig, app_config
from app.core.middleware import ExceptionHandlerMiddleware, logger


@asynccontextmanager
async def lifespan(app: FastAPI):
    # 中文注释: 启动时打印一次审稿流程参数，便于排查“为什么还没生成决策/没收到催办”
    cfg = ReviewWorkflowConfig.from_env()
    logger.info(
        f"[startup] env={app_config.env} decision_min_completed={cfg.decision_min_completed} "
        f"decline_reason_min_length={cfg.decline_reason_min_length} "
        f"reminder_window_hours={cfg.reminder_window_hours}"
    )
    yield


app = FastAPI(
    title="EditorialFlow API",
    description="Peer-review workflow and editorial decision backend",
    version="1.0.0",
    lifespan=lifespan,
)

# === 中间件配置 ===
# 1. 跨域：FRONTEND_ORIGIN / FRONTEND_ORIGINS（逗号分隔），缺省 http://localhost:3000
app.add_middleware(
    CORSMiddleware,
    allow_origins=list(app_config.frontend_origins),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# 2. 统一异常处理 + 访问日志
app.add_middleware(ExceptionHandlerMiddleware)

# === 路由注册 ===
app.include_router(review_workflow.router, prefix="/api/v1")
app.include_router(editorial_decisions.router, prefix="/api/v1")
app.include_router(notifications.router, prefix="/api/v1")
app.include_router(internal.router, prefix="/api/v1")


@app.get("/")
async def root():
    return {"message": "EditorialFlow API is running", "docs": "/docs"}
