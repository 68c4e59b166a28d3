"""
Platform certificate store.

One instance is shared by every caller in the process (see
``infrastructure.external.payments.init_wechatpay``). Lifecycle:
Empty -> Populated, back to Empty only through ``clear()``.

Reads never take the lock. Only the fetch-and-populate path is serialized,
so N concurrent ``auto_load_cert()`` calls against an empty store issue a
single request and all of them observe the populated map afterwards.
"""
from __future__ import annotations

import asyncio
from datetime import datetime, timezone
from typing import Callable, Iterator, Optional, Union

from cryptography import x509
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from pydantic import ValidationError

from application.dtos.wechatpay import CertificateItem, CertificateListResponse
from core.logging_config import get_logger
from domain.wechatpay.entities import PlatformCertificate, parse_rfc3339
from infrastructure.external.payments.exceptions import (
    DecryptionError,
    ParseError,
    PaymentProviderError,
    UnsupportedAlgorithmError,
)
from infrastructure.external.payments.wechatpay.client import WechatPayHttpClient
from infrastructure.external.payments.wechatpay.decryptor import ResourceDecryptor


logger = get_logger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CertificateStore:
    def __init__(
        self,
        client: WechatPayHttpClient,
        api_v3_key: Union[bytes, str],
        *,
        decryptor: Optional[ResourceDecryptor] = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._client = client
        self._api_v3_key = api_v3_key
        self._decryptor = decryptor or ResourceDecryptor()
        self._clock = clock
        self._certs: dict[str, PlatformCertificate] = {}
        self._lock = asyncio.Lock()
        # Bumped after every finished fetch, failed or not; waiters that queued
        # behind it share its outcome instead of fetching again
        self._attempts = 0
        self._last_error: Optional[Exception] = None

    # ---- reads (lock free) ----

    def get(self, serial_no: str) -> Optional[PlatformCertificate]:
        """Pure lookup. Unknown or expired serials yield None."""
        cert = self._certs.get(serial_no)
        if cert is None or cert.is_expired(self._clock()):
            return None
        return cert

    def __contains__(self, serial_no: object) -> bool:
        return isinstance(serial_no, str) and self.get(serial_no) is not None

    def __len__(self) -> int:
        return len(self._certs)

    def __iter__(self) -> Iterator[PlatformCertificate]:
        return iter(list(self._certs.values()))

    def serial_numbers(self) -> list[str]:
        return sorted(self._certs)

    @property
    def is_loaded(self) -> bool:
        """True when at least one unexpired certificate is cached."""
        now = self._clock()
        return any(not cert.is_expired(now) for cert in list(self._certs.values()))

    @property
    def fetch_in_progress(self) -> bool:
        return self._lock.locked()

    # ---- writes ----

    def add(self, certificate: PlatformCertificate) -> None:
        self._certs[certificate.serial_no] = certificate

    def clear(self) -> None:
        self._certs = {}
        logger.info("wechatpay_certificates_cleared")

    async def auto_load_cert(self) -> None:
        """Fetch certificates unless a valid one is already cached."""
        if self.is_loaded:
            return
        attempt = self._attempts
        async with self._lock:
            # Another caller may have fetched while we waited
            if self.is_loaded or self._finished_since(attempt):
                return
            await self._fetch_and_populate()

    async def refresh(self) -> None:
        """Force a re-fetch. Callers queued behind an in-flight fetch reuse its result."""
        attempt = self._attempts
        async with self._lock:
            if self._finished_since(attempt):
                return
            await self._fetch_and_populate()

    def _finished_since(self, attempt: int) -> bool:
        """True if a fetch completed after ``attempt``; re-raises its error if it failed."""
        if self._attempts == attempt:
            return False
        if self._last_error is not None:
            raise self._last_error
        return True

    async def _fetch_and_populate(self) -> None:
        # Cancellation is not an outcome: waiters then run their own fetch
        try:
            await self._populate()
        except Exception as exc:
            self._last_error = exc
            self._attempts += 1
            raise
        self._last_error = None
        self._attempts += 1

    async def _populate(self) -> None:
        payload = await self._client.get_certificates()
        try:
            listing = CertificateListResponse.model_validate(payload)
        except ValidationError as exc:
            raise ParseError("malformed certificate list", details={"errors": exc.error_count()}) from exc

        loaded: list[str] = []
        errors: list[PaymentProviderError] = []
        for item in listing.data:
            try:
                cert = self._build_certificate(item)
            except (DecryptionError, ParseError, UnsupportedAlgorithmError) as exc:
                logger.warning(
                    "wechatpay_certificate_rejected",
                    serial_no=item.serial_no,
                    error_type=exc.error_type,
                    error=exc.message,
                )
                errors.append(exc)
                continue
            self._certs[cert.serial_no] = cert
            loaded.append(cert.serial_no)

        self._evict_expired()
        logger.info("wechatpay_certificates_loaded", serial_nos=loaded, failed=len(errors))
        if errors:
            raise errors[0]

    def _build_certificate(self, item: CertificateItem) -> PlatformCertificate:
        pem = self._decryptor.decrypt(item.encrypt_certificate, self._api_v3_key)
        try:
            cert = x509.load_pem_x509_certificate(pem)
        except ValueError as exc:
            raise ParseError("decrypted certificate is not a PEM X.509 certificate",
                             details={"serial_no": item.serial_no}) from exc

        try:
            listed_serial = int(item.serial_no, 16)
        except ValueError as exc:
            raise ParseError("serial_no is not hexadecimal", details={"serial_no": item.serial_no}) from exc
        if cert.serial_number != listed_serial:
            raise ParseError(
                "certificate serial does not match listed serial_no",
                details={"serial_no": item.serial_no, "certificate_serial": format(cert.serial_number, "X")},
            )

        public_key = cert.public_key()
        if not isinstance(public_key, rsa.RSAPublicKey):
            raise ParseError("platform certificate key is not RSA", details={"serial_no": item.serial_no})

        try:
            effective_time = parse_rfc3339(item.effective_time)
            expire_time = parse_rfc3339(item.expire_time)
        except ValueError as exc:
            raise ParseError("invalid certificate validity time", details={"serial_no": item.serial_no}) from exc

        return PlatformCertificate(
            serial_no=item.serial_no,
            public_key=public_key.public_bytes(
                serialization.Encoding.PEM,
                serialization.PublicFormat.SubjectPublicKeyInfo,
            ),
            effective_time=effective_time,
            expire_time=expire_time,
        )

    def _evict_expired(self) -> None:
        now = self._clock()
        expired = [serial for serial, cert in self._certs.items() if cert.is_expired(now)]
        if not expired:
            return
        self._certs = {serial: cert for serial, cert in self._certs.items() if serial not in expired}
        logger.info("wechatpay_certificates_expired_evicted", serial_nos=expired)
