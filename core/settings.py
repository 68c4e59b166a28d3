"""
Payment-related settings using pydantic-settings v2 with nested env keys,
e.g. ``PAYMENT__WECHAT__MCH_ID`` or ``PAYMENT__TIMEOUTS__READ``.

This module is isolated so core.config.Settings stays application-wide only.
"""
from __future__ import annotations

from typing import Optional
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import BaseModel, Field


class PaymentTimeouts(BaseModel):
    connect: float = 1.0
    read: float = 3.0
    write: float = 3.0
    total: float = 5.0


class WebhookSettings(BaseModel):
    # Reject notifications whose Wechatpay-Timestamp is further away than this
    tolerance_seconds: Optional[int] = 300


class WechatSettings(BaseModel):
    app_id: Optional[str] = None
    mch_id: Optional[str] = None
    mch_cert_serial_no: Optional[str] = None
    # Path to the merchant private key PEM, or the PEM text itself
    private_key_path: Optional[str] = None
    api_v3_key: Optional[str] = None
    gateway: str = "https://api.mch.weixin.qq.com"
    certificates_path: str = "/v3/certificates"
    user_agent: str = "wechatpay-v3-gateway/1.0"


class PaymentSettings(BaseSettings):
    timeouts: PaymentTimeouts = Field(default_factory=PaymentTimeouts)
    webhook: WebhookSettings = Field(default_factory=WebhookSettings)
    wechat: WechatSettings = Field(default_factory=WechatSettings)

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="PAYMENT__",
        case_sensitive=False,
        extra="allow",
        env_nested_delimiter="__",
    )


payment_settings = PaymentSettings()
