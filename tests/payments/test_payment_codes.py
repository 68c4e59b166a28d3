from core.exceptions import business_code_to_http_status
from shared.codes import BusinessCode
from shared.codes.payment_codes import PaymentCode, map_provider_status


def test_provider_status_mapping():
    assert map_provider_status("wechat", "SUCCESS") == "succeeded"
    assert map_provider_status("wechat", "NOTPAY") == "created"
    assert map_provider_status("wechat", "CLOSED") == "canceled"
    assert map_provider_status("wechat_refund", "SUCCESS") == "refunded"
    assert map_provider_status("wechat_refund", "ABNORMAL") == "refund_abnormal"
    # Unknown states pass through unchanged
    assert map_provider_status("wechat", "SOMETHING_NEW") == "SOMETHING_NEW"


def test_error_codes_map_to_http_status():
    assert business_code_to_http_status(PaymentCode.SIGNATURE_ERROR) == 401
    assert business_code_to_http_status(PaymentCode.DECRYPTION_ERROR) == 400
    assert business_code_to_http_status(PaymentCode.PARSE_ERROR) == 400
    assert business_code_to_http_status(PaymentCode.REQUEST_ERROR) == 502
    assert business_code_to_http_status(PaymentCode.MISSING_CREDENTIAL) == 500
    assert business_code_to_http_status(BusinessCode.NOT_FOUND) == 404


def test_redaction_masks_secrets():
    from core.logging_config import redact_sensitive

    event = redact_sensitive(None, "info", {
        "event": "x",
        "signature": "abcdefghijklmnop",
        "headers": {"Authorization": "WECHATPAY2 secret-value", "Accept": "application/json"},
    })
    assert event["signature"] == "abcd***mnop"
    assert "secret-value" not in event["headers"]["Authorization"]
    assert event["headers"]["Accept"] == "application/json"
