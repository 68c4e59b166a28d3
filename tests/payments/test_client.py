import json
import re

import httpx
import pytest

from infrastructure.external.payments.exceptions import ParseError, RequestError
from infrastructure.external.payments.wechatpay.client import dump_body
from infrastructure.external.payments.wechatpay.signing import SigningEngine, load_private_key

from wechat_helpers import MERCHANT_PRIVATE_KEY


def _auth_fields(header: str) -> dict:
    return dict(re.findall(r'(\w+)="([^"]*)"', header))


def _merchant_public_pem() -> bytes:
    from cryptography.hazmat.primitives import serialization

    return load_private_key(MERCHANT_PRIVATE_KEY).public_key().public_bytes(
        serialization.Encoding.PEM,
        serialization.PublicFormat.SubjectPublicKeyInfo,
    )


def test_dump_body_is_compact_and_keeps_unicode():
    assert dump_body({"description": "商品", "amount": {"total": 1}}) == '{"description":"商品","amount":{"total":1}}'
    assert dump_body(None) == ""
    assert dump_body(b"raw") == "raw"


@pytest.mark.asyncio
async def test_request_signs_path_query_and_exact_body(credential, gateway_client):
    client, stub = gateway_client(credential, lambda request: httpx.Response(200, json={"ok": True}))

    await client.request("POST", "/v3/pay/transactions/native", params={"limit": 1}, json_body={"out_trade_no": "T1"})

    request = stub.requests[0]
    assert request.url.raw_path == b"/v3/pay/transactions/native?limit=1"
    assert request.headers["Content-Type"] == "application/json"
    assert request.headers["Accept"] == "application/json"
    fields = _auth_fields(request.headers["Authorization"])
    assert request.headers["Authorization"].startswith("WECHATPAY2-SHA256-RSA2048 ")
    assert fields["mchid"] == credential.merchant_id
    assert fields["serial_no"] == credential.serial_no
    message = SigningEngine.build_request_message(
        "POST", "/v3/pay/transactions/native?limit=1", fields["timestamp"], fields["nonce_str"], request.content
    )
    assert SigningEngine().verify(message, fields["signature"], _merchant_public_pem())
    await client.aclose()


@pytest.mark.asyncio
async def test_non_success_status_raises_request_error(credential, gateway_client):
    client, _ = gateway_client(
        credential,
        lambda request: httpx.Response(401, json={"code": "SIGN_ERROR", "message": "签名错误"}),
    )
    with pytest.raises(RequestError) as ei:
        await client.request("GET", "/v3/certificates")
    assert ei.value.status_code == 401
    assert ei.value.details["provider_code"] == "SIGN_ERROR"
    assert ei.value.message == "签名错误"


@pytest.mark.asyncio
async def test_transport_failure_raises_request_error(credential, gateway_client):
    def _boom(request):
        raise httpx.ConnectError("connection refused", request=request)

    client, _ = gateway_client(credential, _boom)
    with pytest.raises(RequestError):
        await client.request("GET", "/v3/certificates")


@pytest.mark.asyncio
async def test_no_content_is_success(credential, gateway_client):
    client, _ = gateway_client(credential, lambda request: httpx.Response(204))
    response = await client.request("POST", "/v3/pay/transactions/out-trade-no/T1/close", json_body={"mchid": "1"})
    assert response.status_code == 204


@pytest.mark.parametrize("status", [201, 202])
@pytest.mark.asyncio
async def test_any_2xx_is_success(credential, gateway_client, status):
    client, _ = gateway_client(credential, lambda request: httpx.Response(status, json={}))
    response = await client.request("POST", "/v3/refund/domestic/refunds", json_body={"out_refund_no": "R1"})
    assert response.status_code == status


@pytest.mark.asyncio
async def test_redirect_is_rejected(credential, gateway_client):
    client, _ = gateway_client(credential, lambda request: httpx.Response(302, headers={"Location": "/elsewhere"}))
    with pytest.raises(RequestError) as ei:
        await client.request("GET", "/v3/certificates")
    assert ei.value.status_code == 302


@pytest.mark.asyncio
async def test_get_certificates_rejects_non_object(credential, gateway_client):
    client, _ = gateway_client(credential, lambda request: httpx.Response(200, content=json.dumps([1, 2])))
    with pytest.raises(ParseError):
        await client.get_certificates()


@pytest.mark.asyncio
async def test_aclose_leaves_injected_client_open(credential, gateway_client):
    client, _ = gateway_client(credential, lambda request: httpx.Response(200, json={}))
    http = client.client
    await client.aclose()
    assert not http.is_closed
    await http.aclose()
