"""
Payments API routes.

WeChat Pay webhook endpoint. Keep this thin: verification and decryption live
in NotificationService; failures surface as PaymentProviderError and the global
handlers turn them into non-2xx responses so the gateway redelivers.
"""
from __future__ import annotations

from fastapi import APIRouter, Depends, Request

from api.dependencies import get_notification_service
from application.services.notification_service import NotificationService
from core.logging_config import get_logger
from core.response import success_response


router = APIRouter(prefix="/payments", tags=["Payments"])
logger = get_logger(__name__)


@router.post("/webhooks/wechat", summary="WeChat Pay notification")
async def wechat_webhook(
    request: Request,
    service: NotificationService = Depends(get_notification_service),
):
    # 验签基于原始字节，不能先解析再序列化
    raw_body = await request.body()
    notification = await service.handle(request.headers, raw_body)
    summary = NotificationService.summarize(notification)
    logger.info("wechatpay_webhook_accepted", **summary)
    return success_response(data=summary, message="received")
