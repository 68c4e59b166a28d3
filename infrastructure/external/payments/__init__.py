"""
WeChat Pay components and their process-wide lifecycle.

init_wechatpay() builds one client / certificate store / verifier bundle per
process, get_wechatpay() returns it, shutdown_wechatpay() releases it.
"""
from __future__ import annotations

import asyncio
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import httpx

from core.logging_config import get_logger
from core.settings import PaymentSettings, payment_settings
from domain.wechatpay.entities import MerchantCredential
from infrastructure.external.payments.exceptions import MissingCredentialError
from infrastructure.external.payments.wechatpay import (
    CertificateStore,
    NotificationVerifier,
    WechatPayHttpClient,
)


logger = get_logger(__name__)


def load_merchant_credential(cfg: Optional[PaymentSettings] = None) -> MerchantCredential:
    """Build the merchant credential from settings; the key may be a path or inline PEM."""
    wechat = (cfg or payment_settings).wechat
    if not (wechat.mch_id and wechat.mch_cert_serial_no and wechat.private_key_path and wechat.api_v3_key):
        raise MissingCredentialError(
            "WECHAT configuration incomplete",
            details={
                "missing": [
                    name
                    for name in ("mch_id", "mch_cert_serial_no", "private_key_path", "api_v3_key")
                    if not getattr(wechat, name)
                ]
            },
        )
    raw = wechat.private_key_path
    if "-----BEGIN" in raw:
        private_key = raw
    else:
        key_path = Path(raw)
        if not key_path.is_file():
            raise MissingCredentialError("merchant private key file not found", details={"path": raw})
        private_key = key_path.read_text(encoding="utf-8")
    return MerchantCredential(
        app_id=wechat.app_id or "",
        merchant_id=wechat.mch_id,
        serial_no=wechat.mch_cert_serial_no,
        private_key=private_key,
        api_v3_key=wechat.api_v3_key,
    )


@dataclass
class WechatPayComponents:
    credential: MerchantCredential
    client: WechatPayHttpClient
    certificates: CertificateStore
    verifier: NotificationVerifier

    async def aclose(self) -> None:
        await self.client.aclose()


def create_wechatpay(
    credential: MerchantCredential,
    *,
    http_client: Optional[httpx.AsyncClient] = None,
    base_url: Optional[str] = None,
    tolerance_seconds: Optional[int] = None,
) -> WechatPayComponents:
    client = WechatPayHttpClient(credential, base_url=base_url, http_client=http_client)
    store = CertificateStore(client, credential.api_v3_key)
    verifier = NotificationVerifier(store, tolerance_seconds=tolerance_seconds)
    return WechatPayComponents(credential=credential, client=client, certificates=store, verifier=verifier)


_components: Optional[WechatPayComponents] = None
_lock = asyncio.Lock()


async def init_wechatpay(credential: Optional[MerchantCredential] = None) -> WechatPayComponents:
    global _components

    if _components is not None:
        return _components

    async with _lock:
        if _components is not None:
            return _components
        _components = create_wechatpay(
            credential or load_merchant_credential(),
            tolerance_seconds=payment_settings.webhook.tolerance_seconds,
        )
        logger.info("wechatpay_initialized", mch_id=_components.credential.merchant_id)
        return _components


async def get_wechatpay() -> WechatPayComponents:
    if _components is None:
        return await init_wechatpay()
    return _components


async def shutdown_wechatpay() -> None:
    global _components

    if _components is None:
        return
    try:
        await _components.aclose()
    finally:
        _components = None
        logger.info("wechatpay_shutdown")


__all__ = [
    "WechatPayComponents",
    "create_wechatpay",
    "load_merchant_credential",
    "init_wechatpay",
    "get_wechatpay",
    "shutdown_wechatpay",
]
