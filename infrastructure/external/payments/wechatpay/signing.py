"""
SHA256withRSA signing for WeChat Pay v3.

Two canonical strings exist and must not be mixed up:

- outbound requests sign ``method\\nurl\\ntimestamp\\nnonce\\nbody\\n``
- notifications and responses sign ``timestamp\\nnonce\\nbody\\n``

Every field, including the body, is followed by a newline.
"""
from __future__ import annotations

import base64
import binascii
from typing import Union

from cryptography import x509
from cryptography.exceptions import InvalidSignature, UnsupportedAlgorithm
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import padding, rsa

from infrastructure.external.payments.exceptions import SigningError


BytesOrStr = Union[bytes, str]


def _to_bytes(value: BytesOrStr) -> bytes:
    return value.encode("utf-8") if isinstance(value, str) else value


def _to_text(value: BytesOrStr) -> str:
    return value.decode("utf-8") if isinstance(value, bytes) else value


def load_private_key(private_key: BytesOrStr) -> rsa.RSAPrivateKey:
    """Load a PEM private key (PKCS#1 or PKCS#8), RSA only."""
    try:
        key = serialization.load_pem_private_key(_to_bytes(private_key), password=None)
    except (ValueError, TypeError, UnsupportedAlgorithm) as exc:
        raise SigningError("merchant private key could not be parsed") from exc
    if not isinstance(key, rsa.RSAPrivateKey):
        raise SigningError("merchant private key is not an RSA key", details={"key_type": type(key).__name__})
    return key


def load_public_key(public_key_pem: BytesOrStr) -> rsa.RSAPublicKey:
    """Load an RSA public key from a public key PEM or an X.509 certificate PEM.

    Raises ValueError for anything that is not an RSA public key.
    """
    data = _to_bytes(public_key_pem)
    if b"BEGIN CERTIFICATE" in data:
        key = x509.load_pem_x509_certificate(data).public_key()
    else:
        key = serialization.load_pem_public_key(data)
    if not isinstance(key, rsa.RSAPublicKey):
        raise ValueError("not an RSA public key")
    return key


class SigningEngine:
    """Builds canonical strings and produces/verifies RSA-SHA256 signatures."""

    @staticmethod
    def build_request_message(method: str, url: str, timestamp: int | str, nonce: str, body: BytesOrStr) -> str:
        return f"{method.upper()}\n{url}\n{timestamp}\n{nonce}\n{_to_text(body)}\n"

    @staticmethod
    def build_notify_message(timestamp: int | str, nonce: str, body: BytesOrStr) -> str:
        return f"{timestamp}\n{nonce}\n{_to_text(body)}\n"

    def sign(
        self,
        method: str,
        url: str,
        timestamp: int | str,
        nonce: str,
        body: BytesOrStr,
        private_key: BytesOrStr,
    ) -> str:
        message = self.build_request_message(method, url, timestamp, nonce, body)
        return self.sign_message(message, private_key)

    def sign_message(self, message: BytesOrStr, private_key: BytesOrStr) -> str:
        key = load_private_key(private_key)
        try:
            raw = key.sign(_to_bytes(message), padding.PKCS1v15(), hashes.SHA256())
        except (ValueError, TypeError) as exc:
            raise SigningError("RSA signing failed") from exc
        return base64.b64encode(raw).decode("ascii")

    def verify(self, message: BytesOrStr, signature: str, public_key_pem: BytesOrStr) -> bool:
        """Return False on mismatch, malformed signature or malformed key."""
        try:
            key = load_public_key(public_key_pem)
            raw = base64.b64decode(signature, validate=True)
        except (ValueError, TypeError, binascii.Error, UnsupportedAlgorithm):
            return False
        try:
            key.verify(raw, _to_bytes(message), padding.PKCS1v15(), hashes.SHA256())
        except (InvalidSignature, ValueError):
            return False
        return True
