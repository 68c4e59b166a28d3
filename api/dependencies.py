"""
API依赖项 - 微信支付回调处理服务
"""
from application.services.notification_service import NotificationService
from infrastructure.external.payments import get_wechatpay


async def get_notification_service() -> NotificationService:
    components = await get_wechatpay()
    return NotificationService(
        verifier=components.verifier,
        certificates=components.certificates,
        api_v3_key=components.credential.api_v3_key,
    )
