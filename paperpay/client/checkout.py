"""Checkout flow as the storefront runs it against the API.

Initiate an STK push, poll its status on a schedule, and record the sale once
the gateway confirms. Every checkout builds its own poller, so concurrent
checkouts never share state.
"""

from dataclasses import dataclass

import httpx

from paperpay.common.logging import logger
from paperpay.common.state_machine import FAILED
from paperpay.services.mpesa.poller import PollOutcome, Scheduler, StatusPoller
from paperpay.services.mpesa.schemas import InitiationResult, MpesaQueryResponse
from paperpay.services.sales.schemas import SaleCreateRequest, SaleRecord


@dataclass
class CheckoutResult:
    state: str
    message: str
    checkout_request_id: str | None = None
    attempts: int = 0
    error_type: str | None = None
    sale: SaleRecord | None = None
    sale_error: str | None = None

    def to_dict(self) -> dict:
        return {
            "state": self.state,
            "message": self.message,
            "checkoutRequestId": self.checkout_request_id,
            "attempts": self.attempts,
            "errorType": self.error_type,
            "sale": self.sale.model_dump(mode="json", by_alias=True) if self.sale else None,
            "saleError": self.sale_error,
        }


class CheckoutClient:
    """HTTP client for one storefront API; safe to reuse across checkouts."""

    def __init__(
        self,
        base_url: str,
        transport: httpx.AsyncBaseTransport | None = None,
        scheduler: Scheduler | None = None,
        interval_seconds: float = 10.0,
        max_attempts: int = 30,
        timeout: float = 15.0,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.transport = transport
        self.scheduler = scheduler
        self.interval_seconds = interval_seconds
        self.max_attempts = max_attempts
        self.timeout = timeout

    def _http(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(base_url=self.base_url, timeout=self.timeout, transport=self.transport)

    async def initiate(self, phone_number: str, amount: int) -> InitiationResult:
        async with self._http() as client:
            resp = await client.post("/api/payments/mpesa", json={"phoneNumber": phone_number, "amount": amount})
        if resp.status_code >= 400:
            return InitiationResult(success=False, message=f"M-Pesa payment failed: HTTP {resp.status_code}")
        return InitiationResult.model_validate(resp.json())

    async def query_status(self, checkout_request_id: str) -> MpesaQueryResponse:
        async with self._http() as client:
            resp = await client.post("/api/payments/mpesa/query", json={"checkoutRequestId": checkout_request_id})
        resp.raise_for_status()
        return MpesaQueryResponse.model_validate(resp.json())

    async def record_sale(self, req: SaleCreateRequest, user_id: int | None = None) -> SaleRecord:
        headers = {"x-user-id": str(user_id)} if user_id is not None else {}
        async with self._http() as client:
            resp = await client.post(
                "/api/sales",
                json=req.model_dump(mode="json", by_alias=True, exclude_none=True),
                headers=headers,
            )
        resp.raise_for_status()
        return SaleRecord.model_validate(resp.json())

    async def pay_with_mpesa(
        self,
        phone_number: str,
        amount: int,
        customer_email: str,
        paper_ids: list[int],
        user_id: int | None = None,
    ) -> CheckoutResult:
        """Run one M-Pesa checkout to a terminal state."""

        sale_req = SaleCreateRequest(
            customer_email=customer_email,
            paper_ids=paper_ids,
            total_amount=amount,
            payment_method="mpesa",
        )
        initiation = await self.initiate(phone_number, amount)
        if not initiation.success or not initiation.checkout_request_id:
            return CheckoutResult(state=FAILED, message=initiation.message, error_type=initiation.error_type)

        checkout_request_id = initiation.checkout_request_id
        recorded: list[SaleRecord] = []

        async def on_completed(_: PollOutcome) -> None:
            sale = await self.record_sale(
                sale_req.model_copy(update={"checkout_request_id": checkout_request_id}),
                user_id=user_id,
            )
            recorded.append(sale)

        poller = StatusPoller(
            checkout_request_id,
            self.query_status,
            on_completed=on_completed,
            scheduler=self.scheduler,
            interval_seconds=self.interval_seconds,
            max_attempts=self.max_attempts,
        )
        outcome = await poller.run()
        if outcome.completion_error:
            logger.error(
                "sale_record_failed_after_payment checkout_request_id=%s error=%s",
                checkout_request_id,
                outcome.completion_error,
            )
        return CheckoutResult(
            state=outcome.state,
            message=outcome.message,
            checkout_request_id=checkout_request_id,
            attempts=outcome.attempts,
            error_type=outcome.error.error_type if outcome.error else None,
            sale=recorded[0] if recorded else None,
            sale_error=outcome.completion_error,
        )
