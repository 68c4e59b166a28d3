import httpx
import pytest
from fastapi.testclient import TestClient

from api.dependencies import get_notification_service
from application.services.notification_service import NotificationService
from domain.wechatpay.entities import PlatformCertificate
from infrastructure.external.payments.wechatpay.certificates import CertificateStore
from infrastructure.external.payments.wechatpay.notify import NotificationVerifier
from main import app
from shared.codes.payment_codes import PaymentCode

from wechat_helpers import (
    API_V3_KEY,
    PLATFORM_SERIAL_NO,
    TRANSACTION_PAYLOAD,
    notification_body,
    sign_notification,
)


WEBHOOK = "/api/v1/payments/webhooks/wechat"


@pytest.fixture
def client(credential, gateway_client, platform_identity):
    wx_client, _ = gateway_client(credential, lambda request: httpx.Response(500))
    store = CertificateStore(wx_client, API_V3_KEY)
    store.add(PlatformCertificate(serial_no=PLATFORM_SERIAL_NO, public_key=platform_identity.public_key_pem))
    service = NotificationService(NotificationVerifier(store), store, API_V3_KEY)

    async def _override():
        return service

    app.dependency_overrides[get_notification_service] = _override
    yield TestClient(app)
    app.dependency_overrides.clear()


def _signed_headers(identity, body):
    timestamp, nonce = "1700000000", "5K8264ILTKCH16CQ2502SI8ZNMTM67VS"
    return {
        "Wechatpay-Timestamp": timestamp,
        "Wechatpay-Nonce": nonce,
        "Wechatpay-Signature": sign_notification(identity, body, timestamp, nonce),
        "Wechatpay-Serial": PLATFORM_SERIAL_NO,
        "Content-Type": "application/json",
    }


def test_webhook_route_registered():
    paths = app.openapi()["paths"]
    assert "post" in paths[WEBHOOK]
    assert TestClient(app).get("/health").status_code == 200


def test_webhook_accepts_signed_notification(client, platform_identity):
    body = notification_body("TRANSACTION.SUCCESS", TRANSACTION_PAYLOAD)
    resp = client.post(WEBHOOK, content=body.encode("utf-8"), headers=_signed_headers(platform_identity, body))
    assert resp.status_code == 200
    payload = resp.json()
    assert payload["code"] == 0
    assert payload["data"]["out_trade_no"] == TRANSACTION_PAYLOAD["out_trade_no"]
    assert payload["data"]["status"] == "succeeded"
    assert "X-Request-ID" in resp.headers


def test_webhook_rejects_bad_signature_with_401(client, platform_identity):
    body = notification_body("TRANSACTION.SUCCESS", TRANSACTION_PAYLOAD)
    headers = _signed_headers(platform_identity, body)
    resp = client.post(WEBHOOK, content=(body + " ").encode("utf-8"), headers=headers)
    assert resp.status_code == 401
    payload = resp.json()
    assert payload["code"] == PaymentCode.SIGNATURE_ERROR
    assert payload["error"]["type"] == "InvalidSignature"


def test_webhook_missing_headers_is_401(client):
    resp = client.post(WEBHOOK, content=b"{}", headers={"Content-Type": "application/json"})
    assert resp.status_code == 401


def test_webhook_undecryptable_resource_is_400(client, platform_identity):
    body = notification_body("TRANSACTION.SUCCESS", TRANSACTION_PAYLOAD, key="ffffffffffffffffffffffffffffffff")
    resp = client.post(WEBHOOK, content=body.encode("utf-8"), headers=_signed_headers(platform_identity, body))
    assert resp.status_code == 400
    assert resp.json()["code"] == PaymentCode.DECRYPTION_ERROR


def test_health():
    resp = TestClient(app).get("/health")
    assert resp.status_code == 200
    assert resp.json()["data"] == {"status": "healthy"}
