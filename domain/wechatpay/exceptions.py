"""
微信支付领域异常：校验失败等与通知处理直接相关的错误

Infrastructure adapters extend PaymentProviderError for transport, crypto and
parsing failures; the application layer only depends on this module.
"""
from __future__ import annotations

from typing import Optional

from domain.common.exceptions import BusinessException
from shared.codes.payment_codes import PaymentCode


class PaymentProviderError(BusinessException):
    code_default: int = PaymentCode.PROVIDER_ERROR
    error_type_default: str = "PaymentProviderError"

    def __init__(
        self,
        message: str,
        *,
        provider: str = "wechat",
        provider_code: str | None = None,
        details: Optional[dict] = None,
    ):
        full_details = {"provider": provider}
        if provider_code is not None:
            full_details["provider_code"] = provider_code
        if details:
            full_details.update(details)
        super().__init__(
            code=self.code_default,
            message=message,
            error_type=self.error_type_default,
            details=full_details,
        )
        self.provider = provider


class InvalidSignatureError(PaymentProviderError):
    """通知签名头缺失或验签失败"""

    code_default = PaymentCode.SIGNATURE_ERROR
    error_type_default = "InvalidSignature"
