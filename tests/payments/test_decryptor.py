import base64

import pytest

from application.dtos.wechatpay import EncryptedResource
from infrastructure.external.payments.exceptions import (
    DecryptionError,
    ParseError,
    UnsupportedAlgorithmError,
)
from infrastructure.external.payments.wechatpay.decryptor import ResourceDecryptor

from wechat_helpers import API_V3_KEY, encrypt


def _flip(resource: EncryptedResource, index: int) -> EncryptedResource:
    raw = bytearray(base64.b64decode(resource.ciphertext))
    raw[index] ^= 0x01
    return resource.model_copy(update={"ciphertext": base64.b64encode(bytes(raw)).decode()})


def test_decrypt_round_trip():
    resource = encrypt('{"hello":"微信"}')
    assert ResourceDecryptor().decrypt(resource, API_V3_KEY) == '{"hello":"微信"}'.encode("utf-8")


def test_decrypt_accepts_bytes_key_and_missing_aad():
    resource = encrypt("plain", associated_data=None)
    assert resource.associated_data is None
    assert ResourceDecryptor().decrypt(resource, API_V3_KEY.encode()) == b"plain"


def test_decrypt_json_and_text():
    resource = encrypt('{"a": 1}')
    decryptor = ResourceDecryptor()
    assert decryptor.decrypt_text(resource, API_V3_KEY) == '{"a": 1}'
    assert decryptor.decrypt_json(resource, API_V3_KEY) == {"a": 1}


def test_decrypt_json_rejects_non_json():
    with pytest.raises(ParseError):
        ResourceDecryptor().decrypt_json(encrypt("not json"), API_V3_KEY)


def test_decrypt_text_rejects_non_utf8():
    with pytest.raises(ParseError):
        ResourceDecryptor().decrypt_text(encrypt(b"\xff\xfe\xfd"), API_V3_KEY)


def test_wrong_key_fails():
    resource = encrypt("secret")
    with pytest.raises(DecryptionError):
        ResourceDecryptor().decrypt(resource, "fedcba9876543210fedcba9876543210")


def test_wrong_nonce_fails():
    resource = encrypt("secret").model_copy(update={"nonce": "000000000000"})
    with pytest.raises(DecryptionError):
        ResourceDecryptor().decrypt(resource, API_V3_KEY)


def test_wrong_associated_data_fails():
    resource = encrypt("secret").model_copy(update={"associated_data": "transaction"})
    with pytest.raises(DecryptionError):
        ResourceDecryptor().decrypt(resource, API_V3_KEY)


def test_flipped_ciphertext_bit_fails():
    with pytest.raises(DecryptionError):
        ResourceDecryptor().decrypt(_flip(encrypt("secret"), 0), API_V3_KEY)


def test_flipped_tag_bit_fails():
    with pytest.raises(DecryptionError):
        ResourceDecryptor().decrypt(_flip(encrypt("secret"), -1), API_V3_KEY)


def test_unsupported_algorithm():
    resource = encrypt("secret", algorithm="AEAD_AES_128_GCM")
    with pytest.raises(UnsupportedAlgorithmError) as ei:
        ResourceDecryptor().decrypt(resource, API_V3_KEY)
    assert ei.value.details["algorithm"] == "AEAD_AES_128_GCM"


def test_invalid_base64_ciphertext():
    resource = encrypt("secret").model_copy(update={"ciphertext": "@@not base64@@"})
    with pytest.raises(DecryptionError):
        ResourceDecryptor().decrypt(resource, API_V3_KEY)


def test_ciphertext_shorter_than_tag():
    resource = encrypt("secret").model_copy(update={"ciphertext": base64.b64encode(b"short").decode()})
    with pytest.raises(DecryptionError):
        ResourceDecryptor().decrypt(resource, API_V3_KEY)


def test_key_must_be_32_bytes():
    with pytest.raises(DecryptionError) as ei:
        ResourceDecryptor().decrypt(encrypt("secret"), "too-short")
    assert ei.value.details["key_length"] == len("too-short")
