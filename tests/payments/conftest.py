import httpx
import pytest

from domain.wechatpay.entities import MerchantCredential
from infrastructure.external.payments.wechatpay.client import WechatPayHttpClient

from wechat_helpers import (
    API_V3_KEY,
    GATEWAY,
    MCH_ID,
    MCH_SERIAL_NO,
    MERCHANT_PRIVATE_KEY,
    GatewayStub,
    new_identity,
)


@pytest.fixture(scope="session")
def platform_identity():
    return new_identity()


@pytest.fixture
def credential() -> MerchantCredential:
    return MerchantCredential(
        app_id="wxd678efh567hg6787",
        merchant_id=MCH_ID,
        serial_no=MCH_SERIAL_NO,
        private_key=MERCHANT_PRIVATE_KEY,
        api_v3_key=API_V3_KEY,
    )


@pytest.fixture
def gateway_client():
    """Factory for (WechatPayHttpClient, GatewayStub) wired through httpx.MockTransport."""

    def _make(credential: MerchantCredential, responder):
        stub = GatewayStub(responder)
        http = httpx.AsyncClient(transport=httpx.MockTransport(stub))
        return WechatPayHttpClient(credential, base_url=GATEWAY, http_client=http), stub

    return _make
