"""
WeChat Pay v3 领域值对象 - 商户凭证、平台证书、通知签名头

Keep this layer free of infrastructure dependencies: values here are plain
frozen dataclasses, built by the infrastructure adapters.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Mapping, Optional


HEADER_TIMESTAMP = "Wechatpay-Timestamp"
HEADER_NONCE = "Wechatpay-Nonce"
HEADER_SIGNATURE = "Wechatpay-Signature"
HEADER_SERIAL = "Wechatpay-Serial"


def _ensure_utc(dt: Optional[datetime]) -> Optional[datetime]:
    """确保时间为 UTC 时区"""
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def parse_rfc3339(value: Optional[str]) -> Optional[datetime]:
    """解析网关返回的 RFC3339 时间，例如 2015-05-20T13:29:35+08:00"""
    if not value:
        return None
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    return _ensure_utc(datetime.fromisoformat(text))


@dataclass(frozen=True)
class MerchantCredential:
    """
    商户身份与密钥材料

    Immutable once loaded. Secrets are excluded from repr so the value can be
    logged or put in an exception without leaking key material.
    """

    app_id: str
    merchant_id: str
    serial_no: str
    private_key: str = field(repr=False)
    api_v3_key: str = field(repr=False)

    @property
    def api_v3_key_bytes(self) -> bytes:
        return self.api_v3_key.encode("utf-8")

    def missing_fields(self) -> list[str]:
        """返回签名所需但为空的字段名"""
        missing = []
        if not self.merchant_id:
            missing.append("merchant_id")
        if not self.serial_no:
            missing.append("serial_no")
        if not self.private_key:
            missing.append("private_key")
        return missing


@dataclass(frozen=True)
class PlatformCertificate:
    """
    平台证书

    Created once the encrypted certificate has been fetched and decrypted,
    never mutated afterwards.
    """

    serial_no: str
    public_key: bytes = field(repr=False)
    effective_time: Optional[datetime] = None
    expire_time: Optional[datetime] = None

    def is_expired(self, at: Optional[datetime] = None) -> bool:
        if self.expire_time is None:
            return False
        now = _ensure_utc(at) or datetime.now(timezone.utc)
        return now >= self.expire_time

    def is_valid(self, at: Optional[datetime] = None) -> bool:
        now = _ensure_utc(at) or datetime.now(timezone.utc)
        if self.effective_time is not None and now < self.effective_time:
            return False
        return not self.is_expired(now)


@dataclass(frozen=True)
class SignatureHeader:
    """通知（或应答）签名头"""

    timestamp: str
    nonce: str
    signature: str
    serial_no: str

    @classmethod
    def from_headers(cls, headers: Mapping[str, Any]) -> Optional["SignatureHeader"]:
        """从 HTTP 头中提取签名信息；任一字段缺失时返回 None"""
        lowered = {str(k).lower(): v for k, v in headers.items()}
        values = []
        for name in (HEADER_TIMESTAMP, HEADER_NONCE, HEADER_SIGNATURE, HEADER_SERIAL):
            value = lowered.get(name.lower())
            if value is None or str(value).strip() == "":
                return None
            values.append(str(value).strip())
        timestamp, nonce, signature, serial_no = values
        return cls(timestamp=timestamp, nonce=nonce, signature=signature, serial_no=serial_no)
