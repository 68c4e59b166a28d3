"""
Signed HTTP client for the WeChat Pay v3 API.

Shares the transport concerns of the other provider clients (lazy
``httpx.AsyncClient``, timeouts from settings, explicit ``aclose``) and adds
the v3 ``Authorization`` header. Any 2xx answer is a success; everything
else raises ``RequestError``. No retries here: retry/backoff belongs to
the transport the caller injects.
"""
from __future__ import annotations

import json
from typing import Any, Optional

import httpx

from core.logging_config import get_logger
from core.settings import PaymentTimeouts, payment_settings
from domain.wechatpay.entities import MerchantCredential
from infrastructure.external.payments.exceptions import ParseError, RequestError
from infrastructure.external.payments.wechatpay.authorization import AuthorizationHeaderBuilder


logger = get_logger(__name__)


def dump_body(payload: Any) -> str:
    """Serialize once; the exact same text is signed and sent."""
    if payload is None:
        return ""
    if isinstance(payload, (bytes, str)):
        return payload.decode("utf-8") if isinstance(payload, bytes) else payload
    return json.dumps(payload, ensure_ascii=False, separators=(",", ":"))


class WechatPayHttpClient:
    provider = "wechat"

    def __init__(
        self,
        credential: MerchantCredential,
        *,
        base_url: Optional[str] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        header_builder: Optional[AuthorizationHeaderBuilder] = None,
        timeouts: Optional[PaymentTimeouts] = None,
        user_agent: Optional[str] = None,
    ) -> None:
        cfg = payment_settings.wechat
        self.credential = credential
        self.base_url = (base_url or cfg.gateway).rstrip("/")
        self.header_builder = header_builder or AuthorizationHeaderBuilder()
        self.user_agent = user_agent or cfg.user_agent
        self._timeouts_cfg = timeouts or payment_settings.timeouts
        self._client = http_client
        self._owns_client = http_client is None

    @property
    def timeouts(self) -> httpx.Timeout:
        return httpx.Timeout(
            connect=self._timeouts_cfg.connect,
            read=self._timeouts_cfg.read,
            write=self._timeouts_cfg.write,
            timeout=self._timeouts_cfg.total,
        )

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeouts)
        return self._client

    async def aclose(self) -> None:
        """Close underlying HTTP client if we created it."""
        if self._client is not None and self._owns_client:
            try:
                await self._client.aclose()
            finally:
                self._client = None

    async def request(
        self,
        method: str,
        path: str,
        *,
        params: Optional[dict[str, Any]] = None,
        json_body: Any = None,
    ) -> httpx.Response:
        method = method.upper()
        url = httpx.URL(self.base_url + path, params=params)
        # Canonical url is path plus query, exactly as it goes on the wire
        canonical_url = url.raw_path.decode("ascii")
        body = dump_body(json_body)
        authorization = self.header_builder.build(self.credential, method, canonical_url, body)
        headers = {
            "Authorization": authorization,
            "Accept": "application/json",
            "User-Agent": self.user_agent,
        }
        if body:
            headers["Content-Type"] = "application/json"

        self._log("wechatpay_request", method=method, url=canonical_url)
        try:
            response = await self.client.request(method, url, headers=headers, content=body.encode("utf-8") if body else None)
        except httpx.HTTPError as exc:
            logger.warning("wechatpay_request_failed", method=method, url=canonical_url, error=str(exc))
            raise RequestError(f"request to {canonical_url} failed: {exc}") from exc

        if not response.is_success:
            provider_code = None
            message = f"gateway answered {response.status_code}"
            try:
                data = response.json()
                if isinstance(data, dict):
                    provider_code = data.get("code")
                    message = data.get("message") or message
            except ValueError:
                pass
            logger.warning(
                "wechatpay_request_rejected",
                method=method,
                url=canonical_url,
                status_code=response.status_code,
                provider_code=provider_code,
            )
            raise RequestError(message, status_code=response.status_code, provider_code=provider_code)

        self._log("wechatpay_response", method=method, url=canonical_url, status_code=response.status_code)
        return response

    async def get_certificates(self) -> dict[str, Any]:
        response = await self.request("GET", payment_settings.wechat.certificates_path)
        try:
            data = response.json()
        except ValueError as exc:
            raise ParseError("certificate list is not valid JSON") from exc
        if not isinstance(data, dict):
            raise ParseError("certificate list must be a JSON object")
        return data

    def _log(self, event: str, **kwargs) -> None:
        logger.info(
            event,
            provider=self.provider,
            mch_id=self.credential.merchant_id,
            **kwargs,
        )
