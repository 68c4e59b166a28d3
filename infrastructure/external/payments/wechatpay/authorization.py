"""
Authorization header for outbound v3 requests.
"""
from __future__ import annotations

import time
import uuid
from typing import Callable, Optional, Union

from domain.wechatpay.entities import MerchantCredential
from infrastructure.external.payments.exceptions import MissingCredentialError
from infrastructure.external.payments.wechatpay.signing import SigningEngine


SCHEMA = "WECHATPAY2-SHA256-RSA2048"


def generate_nonce() -> str:
    return uuid.uuid4().hex.upper()


def unix_timestamp() -> int:
    return int(time.time())


def format_authorization(mch_id: str, nonce: str, signature: str, timestamp: int | str, serial_no: str) -> str:
    return (
        f'{SCHEMA} mchid="{mch_id}",nonce_str="{nonce}",signature="{signature}",'
        f'timestamp="{timestamp}",serial_no="{serial_no}"'
    )


class AuthorizationHeaderBuilder:
    """Signs a request with a fresh nonce and timestamp and formats the header.

    ``clock`` and ``nonce_factory`` are injectable so tests can pin them.
    """

    def __init__(
        self,
        signer: Optional[SigningEngine] = None,
        *,
        clock: Callable[[], int] = unix_timestamp,
        nonce_factory: Callable[[], str] = generate_nonce,
    ) -> None:
        self.signer = signer or SigningEngine()
        self._clock = clock
        self._nonce_factory = nonce_factory

    def build(
        self,
        credential: MerchantCredential,
        method: str,
        url: str,
        body: Union[bytes, str] = "",
    ) -> str:
        missing = credential.missing_fields()
        if missing:
            raise MissingCredentialError(
                "merchant credential incomplete, cannot sign request",
                details={"missing": missing},
            )
        nonce = self._nonce_factory()
        timestamp = int(self._clock())
        signature = self.signer.sign(method, url, timestamp, nonce, body, credential.private_key)
        return format_authorization(credential.merchant_id, nonce, signature, timestamp, credential.serial_no)
