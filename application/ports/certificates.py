"""
WeChat Pay ports (application/ports) exposing replaceable protocols.

Application code depends on these Protocols; infrastructure implements them
(CertificateStore, NotificationVerifier).
"""
from __future__ import annotations

from typing import Optional, Protocol, Union, runtime_checkable

from application.dtos.wechatpay import DecryptedNotification, NotificationEnvelope
from domain.wechatpay.entities import PlatformCertificate, SignatureHeader


@runtime_checkable
class CertificateProvider(Protocol):
    """Lookup is synchronous and side-effect free; loading is async IO."""

    def get(self, serial_no: str) -> Optional[PlatformCertificate]: ...

    async def auto_load_cert(self) -> None: ...


@runtime_checkable
class NotificationVerifierPort(Protocol):
    """Signature check plus decryption of a verified notification body."""

    def verify(self, header: SignatureHeader, raw_body: Union[bytes, str]) -> bool: ...

    def parse_envelope(self, raw_body: Union[bytes, str]) -> NotificationEnvelope: ...

    def parse_notify(self, envelope: NotificationEnvelope, symmetric_key: Union[bytes, str]) -> DecryptedNotification: ...
