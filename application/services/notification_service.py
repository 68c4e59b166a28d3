"""
Application service handling inbound WeChat Pay notifications.

Order of operations is fixed: certificates are loaded first (a separate
step), then the signature is verified, and only a verified body is decrypted.
Any failure raises; nothing unverified or undecryptable reaches the caller.
"""
from __future__ import annotations

from typing import Any, Mapping, Union

from application.dtos.wechatpay import DecryptedNotification
from application.ports.certificates import CertificateProvider, NotificationVerifierPort
from core.logging_config import get_logger
from domain.wechatpay.entities import SignatureHeader
from domain.wechatpay.exceptions import InvalidSignatureError
from shared.codes.payment_codes import map_provider_status


logger = get_logger(__name__)


class NotificationService:
    def __init__(
        self,
        verifier: NotificationVerifierPort,
        certificates: CertificateProvider,
        api_v3_key: Union[bytes, str],
    ) -> None:
        self.verifier = verifier
        self.certificates = certificates
        self._api_v3_key = api_v3_key

    async def handle(self, headers: Mapping[str, Any], body: bytes) -> DecryptedNotification:
        header = SignatureHeader.from_headers(headers)
        if header is None:
            logger.warning("wechatpay_notify_rejected", reason="missing_signature_headers")
            raise InvalidSignatureError("missing Wechatpay signature headers")

        await self.certificates.auto_load_cert()

        if not self.verifier.verify(header, body):
            logger.warning("wechatpay_notify_rejected", reason="verification_failed", serial_no=header.serial_no)
            raise InvalidSignatureError("notification signature verification failed",
                                        details={"serial_no": header.serial_no})

        envelope = self.verifier.parse_envelope(body)
        notification = self.verifier.parse_notify(envelope, self._api_v3_key)
        logger.info(
            "wechatpay_notify_decrypted",
            notification_id=envelope.id,
            event_type=envelope.event_type,
            kind=notification.kind,
            out_trade_no=notification.out_trade_no,
        )
        return notification

    @staticmethod
    def summarize(notification: DecryptedNotification) -> dict[str, Any]:
        """Flat view handed back to the business layer / API response."""
        envelope = notification.envelope
        summary: dict[str, Any] = {
            "id": envelope.id,
            "event_type": envelope.event_type,
            "kind": notification.kind,
            "out_trade_no": notification.out_trade_no,
            "transaction_id": notification.result.transaction_id,
        }
        if notification.kind == "payment":
            summary["status"] = map_provider_status("wechat", notification.result.trade_state)
        else:
            summary["out_refund_no"] = notification.result.out_refund_no
            summary["status"] = map_provider_status("wechat_refund", notification.result.refund_status)
        return summary
