"""
Exceptions for payment providers mapped to unified BusinessException variants.

The base error and the signature rejection live in ``domain.wechatpay.exceptions``
and are re-exported here for the adapters.
"""
from __future__ import annotations

from typing import Optional

from domain.wechatpay.exceptions import InvalidSignatureError, PaymentProviderError
from shared.codes.payment_codes import PaymentCode

__all__ = [
    "PaymentProviderError",
    "MissingCredentialError",
    "SigningError",
    "InvalidSignatureError",
    "RequestError",
    "DecryptionError",
    "UnsupportedAlgorithmError",
    "ParseError",
]


class MissingCredentialError(PaymentProviderError):
    """Merchant id, serial number or private key is empty."""

    code_default = PaymentCode.MISSING_CREDENTIAL
    error_type_default = "MissingCredential"


class SigningError(PaymentProviderError):
    """Private key could not be parsed or used for RSA signing."""

    code_default = PaymentCode.SIGNING_ERROR
    error_type_default = "SigningError"


class RequestError(PaymentProviderError):
    """Transport failure or non-2xx answer from the gateway."""

    code_default = PaymentCode.REQUEST_ERROR
    error_type_default = "RequestError"

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        provider: str = "wechat",
        provider_code: str | None = None,
        details: Optional[dict] = None,
    ):
        merged = dict(details or {})
        if status_code is not None:
            merged["status_code"] = status_code
        super().__init__(message, provider=provider, provider_code=provider_code, details=merged)
        self.status_code = status_code


class DecryptionError(PaymentProviderError):
    code_default = PaymentCode.DECRYPTION_ERROR
    error_type_default = "DecryptionError"


class UnsupportedAlgorithmError(PaymentProviderError):
    code_default = PaymentCode.UNSUPPORTED_ALGORITHM
    error_type_default = "UnsupportedAlgorithm"


class ParseError(PaymentProviderError):
    """Malformed JSON, PEM or payload schema."""

    code_default = PaymentCode.PARSE_ERROR
    error_type_default = "ParseError"
