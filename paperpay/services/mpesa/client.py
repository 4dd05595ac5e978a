"""Daraja (Safaricom M-Pesa) HTTP client.

Every call opens its own short-lived `httpx.AsyncClient`; the gateway is only
ever reached through independent request/response calls with a per-call
timeout.
"""

import base64
from datetime import datetime, timedelta, timezone
from time import perf_counter
from typing import Callable

import httpx
from pydantic import ValidationError

from paperpay.common.config import settings
from paperpay.common.errors import GatewayAuthError, GatewayRejected, GatewayUnavailable
from paperpay.common.logging import logger
from paperpay.common.metrics import mpesa_gateway_latency_seconds
from paperpay.common.tracing import tracer
from paperpay.services.mpesa.schemas import (
    AccessTokenResponse,
    StkPushPayload,
    StkPushResponse,
    StkQueryPayload,
    StkQueryResponse,
)


TOKEN_PATH = "/oauth/v1/generate"
STK_PUSH_PATH = "/mpesa/stkpush/v1/processrequest"
STK_QUERY_PATH = "/mpesa/stkpushquery/v1/query"
# Daraja expects timestamps in East Africa Time.
EAT = timezone(timedelta(hours=3), "EAT")


class DarajaClient:
    """Credential exchange, STK push and STK query against one Daraja environment."""

    def __init__(
        self,
        consumer_key: str,
        consumer_secret: str,
        short_code: str,
        passkey: str,
        base_url: str,
        callback_url: str,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.consumer_key = consumer_key
        self.consumer_secret = consumer_secret
        self.short_code = short_code
        self.passkey = passkey
        self.base_url = base_url.rstrip("/")
        self.callback_url = callback_url
        self.timeout = timeout
        self._transport = transport
        self._clock = clock or (lambda: datetime.now(EAT))

    @classmethod
    def from_settings(cls) -> "DarajaClient":
        return cls(
            consumer_key=settings.mpesa_consumer_key,
            consumer_secret=settings.mpesa_consumer_secret,
            short_code=settings.mpesa_business_short_code,
            passkey=settings.mpesa_passkey,
            base_url=settings.mpesa_base_url,
            callback_url=settings.mpesa_callback_url,
            timeout=settings.mpesa_timeout_seconds,
        )

    def _http(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(base_url=self.base_url, timeout=self.timeout, transport=self._transport)

    def timestamp(self) -> str:
        return self._clock().strftime("%Y%m%d%H%M%S")

    def password(self, timestamp: str) -> str:
        """Time-boxed password: base64(short code + passkey + timestamp)."""

        raw = f"{self.short_code}{self.passkey}{timestamp}"
        return base64.b64encode(raw.encode("utf-8")).decode("ascii")

    async def get_access_token(self) -> str:
        """Exchange consumer key/secret for a short-lived bearer token."""

        start = perf_counter()
        async with self._http() as client:
            resp = await client.get(
                TOKEN_PATH,
                params={"grant_type": "client_credentials"},
                auth=(self.consumer_key, self.consumer_secret),
            )
        mpesa_gateway_latency_seconds.labels(service=settings.service_name, operation="token").observe(
            perf_counter() - start
        )
        if resp.status_code >= 400:
            raise GatewayAuthError(
                f"Failed to get access token: HTTP {resp.status_code} {resp.reason_phrase}",
                code=str(resp.status_code),
            )
        try:
            return AccessTokenResponse.model_validate(resp.json()).access_token
        except (ValueError, ValidationError) as exc:
            raise GatewayAuthError(f"Malformed access token response: {exc}") from exc

    async def stk_push(
        self,
        phone_number: str,
        amount: int,
        account_reference: str,
        description: str,
    ) -> StkPushResponse:
        """Send the push prompt to `phone_number` (already normalized).

        Raises `GatewayRejected` unless the gateway answers `ResponseCode == "0"`.
        """

        token = await self.get_access_token()
        timestamp = self.timestamp()
        payload = StkPushPayload(
            BusinessShortCode=self.short_code,
            Password=self.password(timestamp),
            Timestamp=timestamp,
            Amount=amount,
            PartyA=phone_number,
            PartyB=self.short_code,
            PhoneNumber=phone_number,
            CallBackURL=self.callback_url,
            AccountReference=account_reference,
            TransactionDesc=description,
        )
        start = perf_counter()
        with tracer.start_as_current_span("mpesa.stk_push"):
            async with self._http() as client:
                resp = await client.post(
                    STK_PUSH_PATH,
                    headers={"Authorization": f"Bearer {token}"},
                    json=payload.model_dump(),
                )
        mpesa_gateway_latency_seconds.labels(service=settings.service_name, operation="stk_push").observe(
            perf_counter() - start
        )
        try:
            data = StkPushResponse.model_validate(resp.json())
        except (ValueError, ValidationError) as exc:
            raise GatewayUnavailable(f"Unreadable STK push response: HTTP {resp.status_code}") from exc

        if resp.status_code >= 500 and not data.errorCode:
            raise GatewayUnavailable(f"M-Pesa gateway error: HTTP {resp.status_code}", code=str(resp.status_code))
        if resp.status_code < 400 and data.ResponseCode == "0" and data.CheckoutRequestID:
            return data
        code = data.errorCode or data.ResponseCode or str(resp.status_code)
        description_text = data.errorMessage or data.ResponseDescription or "STK Push failed"
        logger.warning("stk_push_rejected code=%s description=%s", code, description_text)
        raise GatewayRejected(code, description_text)

    async def stk_query(self, checkout_request_id: str) -> StkQueryResponse:
        """Fetch the current status of one push attempt.

        Gateway error payloads (e.g. "transaction is being processed") come
        back with `ResultCode=None` rather than raising.
        """

        token = await self.get_access_token()
        timestamp = self.timestamp()
        payload = StkQueryPayload(
            BusinessShortCode=self.short_code,
            Password=self.password(timestamp),
            Timestamp=timestamp,
            CheckoutRequestID=checkout_request_id,
        )
        start = perf_counter()
        with tracer.start_as_current_span("mpesa.stk_query"):
            async with self._http() as client:
                resp = await client.post(
                    STK_QUERY_PATH,
                    headers={"Authorization": f"Bearer {token}"},
                    json=payload.model_dump(),
                )
        mpesa_gateway_latency_seconds.labels(service=settings.service_name, operation="stk_query").observe(
            perf_counter() - start
        )
        try:
            data = StkQueryResponse.model_validate(resp.json())
        except ValueError as exc:
            raise GatewayUnavailable(f"Unreadable STK query response: HTTP {resp.status_code}") from exc
        if data.ResultCode is None and data.errorMessage and not data.ResultDesc:
            data.ResultDesc = data.errorMessage
        return data
