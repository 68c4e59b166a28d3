"""
请求/响应访问日志中间件
只记录元数据与耗时；回调报文含密文与签名，不落日志
"""
import time

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

from core.logging_config import get_logger


logger = get_logger(__name__)


class LoggingMiddleware(BaseHTTPMiddleware):
    SKIP_PATHS = {"/health", "/docs", "/redoc", "/openapi.json"}

    async def dispatch(self, request: Request, call_next):
        if request.url.path in self.SKIP_PATHS:
            return await call_next(request)

        start_time = time.time()
        logger.info(
            "request_started",
            query=str(request.url.query) or None,
            content_type=request.headers.get("content-type"),
            user_agent=request.headers.get("user-agent"),
        )
        try:
            response = await call_next(request)
        except Exception as exc:
            duration = time.time() - start_time
            logger.error(
                "request_failed",
                duration=f"{duration:.3f}s",
                error=str(exc),
                exc_info=True,
            )
            raise

        duration = time.time() - start_time
        log = logger.warning if response.status_code >= 400 else logger.info
        log(
            "request_completed",
            status_code=response.status_code,
            duration=f"{duration:.3f}s",
        )
        response.headers["X-Process-Time"] = f"{duration:.3f}"
        return response
