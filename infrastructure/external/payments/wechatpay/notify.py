"""
Webhook notification verification and decryption.

Per notification: Received -> Verified | Rejected -> Decrypted | Failed.
``verify`` never fetches certificates; load them through the store first.
"""
from __future__ import annotations

import json
import time
from typing import Callable, Optional, Union

from pydantic import ValidationError

from application.dtos.wechatpay import (
    DecryptedNotification,
    NotificationEnvelope,
    PaymentNotification,
    RefundNotification,
    RefundResult,
    TransactionResult,
)
from application.ports.certificates import CertificateProvider
from core.logging_config import get_logger
from domain.wechatpay.entities import SignatureHeader
from infrastructure.external.payments.exceptions import ParseError
from infrastructure.external.payments.wechatpay.decryptor import ResourceDecryptor
from infrastructure.external.payments.wechatpay.signing import SigningEngine


logger = get_logger(__name__)


class NotificationVerifier:
    def __init__(
        self,
        certificates: CertificateProvider,
        *,
        signer: Optional[SigningEngine] = None,
        decryptor: Optional[ResourceDecryptor] = None,
        tolerance_seconds: Optional[int] = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.certificates = certificates
        self.signer = signer or SigningEngine()
        self.decryptor = decryptor or ResourceDecryptor()
        self.tolerance_seconds = tolerance_seconds
        self._clock = clock

    def verify(self, header: SignatureHeader, raw_body: Union[bytes, str]) -> bool:
        if self.tolerance_seconds is not None and not self._timestamp_fresh(header.timestamp):
            logger.warning("wechatpay_notify_stale", serial_no=header.serial_no, timestamp=header.timestamp)
            return False

        cert = self.certificates.get(header.serial_no)
        if cert is None:
            logger.warning("wechatpay_notify_unknown_serial", serial_no=header.serial_no)
            return False

        message = self.signer.build_notify_message(header.timestamp, header.nonce, raw_body)
        verified = self.signer.verify(message, header.signature, cert.public_key)
        if not verified:
            logger.warning("wechatpay_notify_signature_mismatch", serial_no=header.serial_no)
        return verified

    def _timestamp_fresh(self, timestamp: str) -> bool:
        try:
            sent_at = int(timestamp)
        except (TypeError, ValueError):
            return False
        return abs(self._clock() - sent_at) <= self.tolerance_seconds

    @staticmethod
    def parse_envelope(raw_body: Union[bytes, str]) -> NotificationEnvelope:
        try:
            return NotificationEnvelope.model_validate_json(raw_body)
        except ValidationError as exc:
            raise ParseError("malformed notification body", details={"errors": exc.error_count()}) from exc

    def parse_notify(self, envelope: NotificationEnvelope, symmetric_key: Union[bytes, str]) -> DecryptedNotification:
        """Decrypt and deserialize; only call after ``verify`` returned True."""
        event_type = envelope.event_type.upper()
        if event_type.startswith("TRANSACTION."):
            payload_model, wrapper = TransactionResult, PaymentNotification
        elif event_type.startswith("REFUND."):
            payload_model, wrapper = RefundResult, RefundNotification
        else:
            raise ParseError(
                f"unsupported event_type: {envelope.event_type}",
                details={"event_type": envelope.event_type, "id": envelope.id},
            )

        plaintext = self.decryptor.decrypt(envelope.resource, symmetric_key)
        try:
            result = payload_model.model_validate(json.loads(plaintext))
        except (ValueError, ValidationError) as exc:
            raise ParseError(
                "decrypted notification does not match its event_type",
                details={"event_type": envelope.event_type, "id": envelope.id},
            ) from exc
        return wrapper(envelope=envelope, result=result)
