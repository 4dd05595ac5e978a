"""End-to-end checkout: client, poller and API wired in process."""

import asyncio

import httpx
import pytest

from conftest import FakeGateway, RecordingScheduler
from paperpay.client.checkout import CheckoutClient
from paperpay.services.api import main
from paperpay.services.mpesa.service import PaymentInitiator
from paperpay.services.sales.repository import InMemorySaleRepository
from paperpay.services.sales.service import SaleRecorder

PENDING = {"ResultCode": "1037", "ResultDesc": "DS timeout user cannot be reached"}
SUCCESS = {"ResultCode": "0", "ResultDesc": "The service request is processed successfully."}


@pytest.fixture
def repository():
    return InMemorySaleRepository()


@pytest.fixture
def wire(monkeypatch, repository):
    def _wire(gateway):
        monkeypatch.setattr(main, "gateway", gateway)
        monkeypatch.setattr(main, "initiator", PaymentInitiator(gateway))
        monkeypatch.setattr(main, "status_cache", None)
        monkeypatch.setattr(main, "sale_recorder", SaleRecorder(repository))
        return gateway

    return _wire


def make_client(scheduler, max_attempts=30):
    return CheckoutClient(
        "http://paperpay.test",
        transport=httpx.ASGITransport(app=main.app),
        scheduler=scheduler,
        max_attempts=max_attempts,
    )


def test_confirmed_payment_records_sale_and_purchases(wire, repository):
    gateway = wire(FakeGateway(query_results=[PENDING, PENDING, SUCCESS]))
    scheduler = RecordingScheduler()

    result = asyncio.run(
        make_client(scheduler).pay_with_mpesa("0712345678", 120, "buyer@example.com", [1, 2, 3], user_id=42)
    )

    assert result.state == "completed"
    assert result.attempts == 3
    assert len(gateway.query_calls) == 3
    assert scheduler.delays == [10.0, 10.0]
    assert result.sale is not None
    assert result.sale.checkout_request_id == "ws_CO_191020261200001"
    assert len(repository.list_sales()) == 1
    assert sorted(p.paper_id for p in repository.list_user_purchases(42)) == [1, 2, 3]


def test_rejected_phone_fails_without_polling(wire, repository):
    gateway = wire(FakeGateway(query_results=[SUCCESS]))

    result = asyncio.run(make_client(RecordingScheduler()).pay_with_mpesa("12345", 120, "buyer@example.com", [1]))

    assert result.state == "failed"
    assert result.error_type == "InvalidPhoneFormat"
    assert gateway.query_calls == []
    assert repository.list_sales() == []


def test_cancelled_payment_records_nothing(wire, repository):
    wire(FakeGateway(query_results=[PENDING, {"ResultCode": "1032", "ResultDesc": "Request cancelled by user"}]))

    result = asyncio.run(make_client(RecordingScheduler()).pay_with_mpesa("0712345678", 120, "buyer@example.com", [1]))

    assert result.state == "failed"
    assert result.error_type == "PollingFailure"
    assert result.message == "Request cancelled by user"
    assert repository.list_sales() == []


def test_unconfirmed_payment_times_out(wire, repository):
    gateway = wire(FakeGateway(query_results=[PENDING]))

    result = asyncio.run(
        make_client(RecordingScheduler(), max_attempts=5).pay_with_mpesa("0712345678", 120, "buyer@example.com", [1])
    )

    assert result.state == "timeout"
    assert result.error_type == "PollingTimeout"
    assert len(gateway.query_calls) == 5
    assert repository.list_sales() == []


def test_sale_failure_after_payment_is_reported_not_hidden(wire, repository, monkeypatch):
    wire(FakeGateway(query_results=[SUCCESS]))

    def broken(**kwargs):
        raise RuntimeError("database unavailable")

    monkeypatch.setattr(repository, "add_sale", broken)

    with_errors = httpx.ASGITransport(app=main.app, raise_app_exceptions=False)
    client = CheckoutClient("http://paperpay.test", transport=with_errors, scheduler=RecordingScheduler())
    result = asyncio.run(client.pay_with_mpesa("0712345678", 120, "buyer@example.com", [1]))

    assert result.state == "completed"
    assert result.sale is None
    assert result.sale_error is not None
