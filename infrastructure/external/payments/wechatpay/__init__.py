"""WeChat Pay v3 protocol core: signing, AEAD, certificates, notifications."""
from .authorization import SCHEMA, AuthorizationHeaderBuilder, format_authorization
from .certificates import CertificateStore
from .client import WechatPayHttpClient
from .decryptor import ResourceDecryptor
from .notify import NotificationVerifier
from .signing import SigningEngine

__all__ = [
    "SCHEMA",
    "AuthorizationHeaderBuilder",
    "format_authorization",
    "CertificateStore",
    "WechatPayHttpClient",
    "ResourceDecryptor",
    "NotificationVerifier",
    "SigningEngine",
]
