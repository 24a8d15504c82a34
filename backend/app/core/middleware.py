import logging
import time

from fastapi import HTTPException, Request
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

# === 日志配置 ===
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("editorialflow")


class ExceptionHandlerMiddleware(BaseHTTPMiddleware):
    """
    统一异常捕获中间件

    中文注释:
    - 每个请求记录一行访问日志（method / path / status / 耗时）。
    - 业务层抛出的 HTTPException 由 FastAPI 自身处理；这里兜底未处理异常，统一返回 500。
    """

    async def dispatch(self, request: Request, call_next):
        start_time = time.time()
        try:
            response = await call_next(request)
        except HTTPException as exc:
            return JSONResponse(
                status_code=exc.status_code,
                content={"detail": exc.detail, "type": "http_exception"},
            )
        except Exception as e:
            logger.error(
                f"Unhandled Exception: {request.method} {request.url.path}: {e}",
                exc_info=True,
            )
            return JSONResponse(
                status_code=500,
                content={"detail": "Internal server error", "type": "server_error"},
            )

        elapsed = time.time() - start_time
        logger.info(
            f"Method: {request.method} Path: {request.url.path} "
            f"Status: {response.status_code} Time: {elapsed:.4f}s"
        )
        return response
