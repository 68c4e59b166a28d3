"""
AEAD_AES_256_GCM decryption of encrypted resources (notifications, platform
certificates).

The ciphertext field is base64; its trailing 16 bytes are the GCM tag. The
``nonce`` and ``associated_data`` strings are used as raw UTF-8 bytes (IV and
AAD), exactly as sent by the gateway.
"""
from __future__ import annotations

import base64
import binascii
import json
from typing import Any, Union

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

from application.dtos.wechatpay import AEAD_AES_256_GCM, EncryptedResource
from infrastructure.external.payments.exceptions import (
    DecryptionError,
    ParseError,
    UnsupportedAlgorithmError,
)


TAG_LENGTH = 16
KEY_LENGTH = 32


class ResourceDecryptor:
    def decrypt(self, resource: EncryptedResource, symmetric_key: Union[bytes, str]) -> bytes:
        if resource.algorithm != AEAD_AES_256_GCM:
            raise UnsupportedAlgorithmError(
                f"unsupported algorithm: {resource.algorithm}",
                details={"algorithm": resource.algorithm},
            )
        key = symmetric_key.encode("utf-8") if isinstance(symmetric_key, str) else symmetric_key
        if len(key) != KEY_LENGTH:
            raise DecryptionError("api v3 key must be 32 bytes", details={"key_length": len(key)})

        try:
            raw = base64.b64decode(resource.ciphertext, validate=True)
        except (binascii.Error, ValueError) as exc:
            raise DecryptionError("ciphertext is not valid base64") from exc
        if len(raw) < TAG_LENGTH:
            raise DecryptionError("ciphertext shorter than the authentication tag")

        body, tag = raw[:-TAG_LENGTH], raw[-TAG_LENGTH:]
        iv = resource.nonce.encode("utf-8")
        aad = (resource.associated_data or "").encode("utf-8")
        try:
            decryptor = Cipher(algorithms.AES(key), modes.GCM(iv, tag)).decryptor()
            decryptor.authenticate_additional_data(aad)
            # update() output is only released after finalize() has checked the tag
            plaintext = decryptor.update(body) + decryptor.finalize()
        except InvalidTag as exc:
            raise DecryptionError("authentication tag mismatch") from exc
        except ValueError as exc:
            raise DecryptionError(f"invalid AEAD parameters: {exc}") from exc
        return plaintext

    def decrypt_text(self, resource: EncryptedResource, symmetric_key: Union[bytes, str]) -> str:
        plaintext = self.decrypt(resource, symmetric_key)
        try:
            return plaintext.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise ParseError("decrypted resource is not UTF-8") from exc

    def decrypt_json(self, resource: EncryptedResource, symmetric_key: Union[bytes, str]) -> Any:
        text = self.decrypt_text(resource, symmetric_key)
        try:
            return json.loads(text)
        except json.JSONDecodeError as exc:
            raise ParseError("decrypted resource is not valid JSON") from exc
