"""
WeChat Pay v3 wire DTOs (Pydantic v2): encrypted resources, certificate list,
notification envelopes and the decrypted notification payloads.
"""
from __future__ import annotations

from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


AEAD_AES_256_GCM = "AEAD_AES_256_GCM"


class EncryptedResource(BaseModel):
    """Encrypted resource envelope (`resource` / `encrypt_certificate`)."""

    algorithm: str
    nonce: str
    ciphertext: str
    associated_data: Optional[str] = None
    original_type: Optional[str] = None

    model_config = ConfigDict(frozen=True)


class CertificateItem(BaseModel):
    serial_no: str
    effective_time: str
    expire_time: str
    encrypt_certificate: EncryptedResource


class CertificateListResponse(BaseModel):
    """Body of GET /v3/certificates"""

    data: list[CertificateItem] = Field(default_factory=list)


class NotificationEnvelope(BaseModel):
    id: str
    create_time: str
    event_type: str
    summary: str = ""
    resource_type: str
    resource: EncryptedResource

    model_config = ConfigDict(frozen=True)


# Decrypted payloads

class Payer(BaseModel):
    openid: Optional[str] = None


class TransactionAmount(BaseModel):
    total: int
    payer_total: Optional[int] = None
    currency: Optional[str] = None
    payer_currency: Optional[str] = None


class TransactionResult(BaseModel):
    """支付成功通知解密后的数据"""

    appid: str
    mchid: str
    out_trade_no: str
    transaction_id: str
    trade_state: str
    trade_type: Optional[str] = None
    trade_state_desc: Optional[str] = None
    bank_type: Optional[str] = None
    attach: Optional[str] = None
    success_time: Optional[str] = None
    payer: Optional[Payer] = None
    amount: Optional[TransactionAmount] = None


class RefundAmount(BaseModel):
    total: int
    refund: int
    payer_total: Optional[int] = None
    payer_refund: Optional[int] = None
    currency: Optional[str] = None


class RefundResult(BaseModel):
    """退款结果通知解密后的数据"""

    mchid: str
    out_trade_no: str
    transaction_id: str
    out_refund_no: str
    refund_id: str
    refund_status: str
    success_time: Optional[str] = None
    user_received_account: Optional[str] = None
    amount: RefundAmount


class PaymentNotification(BaseModel):
    kind: Literal["payment"] = "payment"
    envelope: NotificationEnvelope
    result: TransactionResult

    @property
    def out_trade_no(self) -> str:
        return self.result.out_trade_no


class RefundNotification(BaseModel):
    kind: Literal["refund"] = "refund"
    envelope: NotificationEnvelope
    result: RefundResult

    @property
    def out_trade_no(self) -> str:
        return self.result.out_trade_no


DecryptedNotification = Annotated[
    Union[PaymentNotification, RefundNotification],
    Field(discriminator="kind"),
]
