"""Daraja client against a simulated gateway (`httpx.MockTransport`)."""

import asyncio
import base64
import json
from datetime import datetime

import httpx
import pytest

from paperpay.common.errors import GatewayAuthError, GatewayRejected, GatewayUnavailable
from paperpay.services.mpesa.client import EAT, DarajaClient


FIXED_NOW = datetime(2026, 10, 19, 12, 0, 0, tzinfo=EAT)
EXPECTED_TIMESTAMP = "20261019120000"


def make_client(handler) -> DarajaClient:
    return DarajaClient(
        consumer_key="key",
        consumer_secret="secret",
        short_code="174379",
        passkey="pass",
        base_url="https://sandbox.safaricom.co.ke",
        callback_url="https://example.com/callback",
        transport=httpx.MockTransport(handler),
        clock=lambda: FIXED_NOW,
    )


def token_ok(request: httpx.Request) -> httpx.Response | None:
    if request.url.path == "/oauth/v1/generate":
        return httpx.Response(200, json={"access_token": "tok-123", "expires_in": "3599"})
    return None


def test_password_is_base64_of_shortcode_passkey_timestamp():
    client = make_client(lambda request: httpx.Response(500))

    assert client.timestamp() == EXPECTED_TIMESTAMP
    assert base64.b64decode(client.password(EXPECTED_TIMESTAMP)).decode() == "174379pass20261019120000"


def test_stk_push_sends_signed_request():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/oauth/v1/generate":
            seen["auth"] = request.headers["Authorization"]
            seen["grant_type"] = request.url.params["grant_type"]
            return httpx.Response(200, json={"access_token": "tok-123", "expires_in": "3599"})
        seen["bearer"] = request.headers["Authorization"]
        seen["body"] = json.loads(request.content)
        return httpx.Response(
            200,
            json={
                "MerchantRequestID": "29115-34620561-1",
                "CheckoutRequestID": "ws_CO_191020261200001",
                "ResponseCode": "0",
                "ResponseDescription": "Success. Request accepted for processing",
                "CustomerMessage": "Success. Request accepted for processing",
            },
        )

    result = asyncio.run(make_client(handler).stk_push("254712345678", 120, "PastPapers", "Past papers purchase"))

    assert result.CheckoutRequestID == "ws_CO_191020261200001"
    assert seen["auth"] == "Basic " + base64.b64encode(b"key:secret").decode()
    assert seen["grant_type"] == "client_credentials"
    assert seen["bearer"] == "Bearer tok-123"
    body = seen["body"]
    assert body["BusinessShortCode"] == "174379"
    assert body["Timestamp"] == EXPECTED_TIMESTAMP
    assert body["Password"] == base64.b64encode(b"174379pass20261019120000").decode()
    assert body["TransactionType"] == "CustomerPayBillOnline"
    assert body["Amount"] == 120
    assert body["PartyA"] == body["PhoneNumber"] == "254712345678"
    assert body["PartyB"] == "174379"
    assert body["CallBackURL"] == "https://example.com/callback"
    assert body["AccountReference"] == "PastPapers"


@pytest.mark.parametrize(
    "response",
    [
        httpx.Response(401, json={"errorMessage": "Invalid credentials"}),
        httpx.Response(200, content=b"<html>gateway down</html>"),
        httpx.Response(200, json={"expires_in": "3599"}),
    ],
)
def test_credential_exchange_failures_raise_auth_error(response):
    client = make_client(lambda request: response)

    with pytest.raises(GatewayAuthError):
        asyncio.run(client.get_access_token())


def test_stk_push_error_payload_is_surfaced_verbatim():
    def handler(request: httpx.Request) -> httpx.Response:
        return token_ok(request) or httpx.Response(
            400,
            json={
                "requestId": "ab-123",
                "errorCode": "400.002.02",
                "errorMessage": "Bad Request - Invalid PhoneNumber",
            },
        )

    with pytest.raises(GatewayRejected) as excinfo:
        asyncio.run(make_client(handler).stk_push("254712345678", 120, "ref", "desc"))

    assert excinfo.value.code == "400.002.02"
    assert excinfo.value.description == "Bad Request - Invalid PhoneNumber"


def test_stk_push_non_zero_response_code_is_rejected():
    def handler(request: httpx.Request) -> httpx.Response:
        return token_ok(request) or httpx.Response(
            200,
            json={"ResponseCode": "1", "ResponseDescription": "Unable to lock subscriber"},
        )

    with pytest.raises(GatewayRejected) as excinfo:
        asyncio.run(make_client(handler).stk_push("254712345678", 120, "ref", "desc"))

    assert excinfo.value.code == "1"


def test_stk_query_returns_result_code_as_string():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        if token_ok(request):
            return token_ok(request)
        seen["body"] = json.loads(request.content)
        return httpx.Response(
            200,
            json={
                "ResponseCode": "0",
                "CheckoutRequestID": "ws_CO_1",
                "ResultCode": 1032,
                "ResultDesc": "Request cancelled by user",
            },
        )

    result = asyncio.run(make_client(handler).stk_query("ws_CO_1"))

    assert result.ResultCode == "1032"
    assert result.ResultDesc == "Request cancelled by user"
    assert seen["body"]["CheckoutRequestID"] == "ws_CO_1"
    assert seen["body"]["Timestamp"] == EXPECTED_TIMESTAMP


def test_stk_query_processing_error_has_no_result_code():
    def handler(request: httpx.Request) -> httpx.Response:
        return token_ok(request) or httpx.Response(
            500,
            json={
                "requestId": "ab-123",
                "errorCode": "500.001.1001",
                "errorMessage": "The transaction is being processed",
            },
        )

    result = asyncio.run(make_client(handler).stk_query("ws_CO_1"))

    assert result.ResultCode is None
    assert result.ResultDesc == "The transaction is being processed"


@pytest.mark.parametrize(
    "response",
    [
        httpx.Response(503, content=b"<html>Service Unavailable</html>"),
        httpx.Response(502, json={"fault": {"faultstring": "upstream connect error"}}),
    ],
)
def test_stk_push_outage_is_unavailable_not_rejected(response):
    def handler(request: httpx.Request) -> httpx.Response:
        return token_ok(request) or response

    with pytest.raises(GatewayUnavailable):
        asyncio.run(make_client(handler).stk_push("254712345678", 120, "ref", "desc"))
