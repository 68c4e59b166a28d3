"""
FastAPI应用主入口
"""
from contextlib import asynccontextmanager

from fastapi import FastAPI

from api.middleware import RequestIDMiddleware, LoggingMiddleware
from api.routes import payments as payments_routes
from core.config import settings
from core.exceptions import register_exception_handlers
from core.logging_config import get_logger, configure_logging
from core.response import success_response
from infrastructure.external.payments import shutdown_wechatpay


configure_logging()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """应用生命周期管理"""
    # 微信支付组件在首个回调时按需初始化，配置缺失不阻塞启动
    logger.info("application_startup", environment=settings.ENVIRONMENT)
    yield
    await shutdown_wechatpay()
    logger.info("application_shutdown", message="Application shutdown")


app = FastAPI(
    title=settings.PROJECT_NAME,
    version=settings.VERSION,
    debug=settings.DEBUG,
    lifespan=lifespan,
    description="微信支付 API v3 回调与平台证书服务",
)

# 中间件执行顺序：从下往上，RequestID 最先执行
app.add_middleware(LoggingMiddleware)
app.add_middleware(RequestIDMiddleware)

register_exception_handlers(app)

app.include_router(payments_routes.router, prefix=settings.API_PREFIX)


@app.get("/health", tags=["Health"])
async def health_check():
    """健康检查端点"""
    return success_response(data={"status": "healthy"}, message="ok")


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.DEBUG,
        log_level="debug" if settings.DEBUG else "info"
    )
