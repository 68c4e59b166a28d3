"""
Payment specific codes and provider status mapping.
"""
from __future__ import annotations

from enum import IntEnum


class PaymentCode(IntEnum):
    # Generic success
    SUCCESS = 0

    # Provider/Network errors (6xxxx)
    PROVIDER_ERROR = 60000
    SIGNATURE_ERROR = 60002
    REQUEST_ERROR = 60003

    # Credential / signing (61xxx)
    MISSING_CREDENTIAL = 61000
    SIGNING_ERROR = 61001

    # Encrypted resources (62xxx)
    DECRYPTION_ERROR = 62000
    UNSUPPORTED_ALGORITHM = 62001
    PARSE_ERROR = 62002


# Gateway state -> internal status (notification payloads)
PROVIDER_STATUS_TO_INTERNAL = {
    "wechat": {
        # Per trade_state
        "SUCCESS": "succeeded",
        "NOTPAY": "created",
        "USERPAYING": "pending",
        "PROCESSING": "processing",
        "EXPIRED": "expired",
        "PAYERROR": "failed",
        "CLOSED": "canceled",
        "REVOKED": "canceled",
        "REFUND": "refund_pending",
    },
    "wechat_refund": {
        # Per refund_status
        "SUCCESS": "refunded",
        "CLOSED": "refund_closed",
        "ABNORMAL": "refund_abnormal",
        "PROCESSING": "refund_pending",
    },
}


def map_provider_status(provider: str, provider_status: str) -> str:
    mapping = PROVIDER_STATUS_TO_INTERNAL.get(provider, {})
    return mapping.get(provider_status, provider_status)
