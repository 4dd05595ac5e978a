import asyncio

import httpx

from conftest import FakeGateway
from paperpay.common.errors import GatewayAuthError, GatewayRejected
from paperpay.services.mpesa.schemas import MpesaPaymentRequest
from paperpay.services.mpesa.service import PaymentInitiator


def initiate(gateway, phone_number, amount=120):
    initiator = PaymentInitiator(gateway)
    return asyncio.run(initiator.initiate(MpesaPaymentRequest(phone_number=phone_number, amount=amount)))


def test_local_number_is_normalized_and_pushed():
    gateway = FakeGateway()

    result = initiate(gateway, "0712345678", 120)

    assert result.success is True
    assert result.checkout_request_id == "ws_CO_191020261200001"
    assert gateway.push_calls == [("254712345678", 120, "PastPapers", "Past papers purchase")]


def test_invalid_phone_is_rejected_before_any_gateway_call():
    gateway = FakeGateway()

    result = initiate(gateway, "12345")

    assert result.success is False
    assert result.error_type == "InvalidPhoneFormat"
    assert gateway.push_calls == []


def test_auth_failure_becomes_tagged_result():
    result = initiate(FakeGateway(push_error=GatewayAuthError("Failed to get access token", code="401")), "0712345678")

    assert result.success is False
    assert result.error_type == "GatewayAuthError"
    assert result.error_code == "401"


def test_rejection_keeps_gateway_code_and_description():
    rejected = GatewayRejected("400.002.02", "Bad Request - Invalid Amount")

    result = initiate(FakeGateway(push_error=rejected), "0712345678")

    assert result.success is False
    assert result.error_type == "GatewayRejected"
    assert result.error_code == "400.002.02"
    assert result.message == "Bad Request - Invalid Amount"


def test_network_failure_becomes_tagged_result():
    result = initiate(FakeGateway(push_error=httpx.ConnectTimeout("timed out")), "0712345678")

    assert result.success is False
    assert result.error_type == "GatewayUnavailable"
