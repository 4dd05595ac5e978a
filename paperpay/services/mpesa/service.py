"""Payment initiation: phone normalization + STK push, resolved to a tagged result."""

from typing import Protocol

import httpx

from paperpay.common.config import settings
from paperpay.common.errors import GatewayUnavailable, PaymentError
from paperpay.common.logging import checkout_request_id_ctx, logger
from paperpay.common.metrics import mpesa_stk_push_total
from paperpay.services.mpesa.phone import normalize_phone_number
from paperpay.services.mpesa.schemas import (
    InitiationResult,
    MpesaPaymentRequest,
    StkPushResponse,
    StkQueryResponse,
)


class MpesaGateway(Protocol):
    """What the initiator and query endpoint need from the gateway client."""

    async def stk_push(
        self, phone_number: str, amount: int, account_reference: str, description: str
    ) -> StkPushResponse: ...

    async def stk_query(self, checkout_request_id: str) -> StkQueryResponse: ...


class PaymentInitiator:
    """Starts one STK push per checkout attempt and never raises to the caller."""

    def __init__(
        self,
        gateway: MpesaGateway,
        account_reference: str = "PastPapers",
        description: str = "Past papers purchase",
        service_name: str = "paperpay-api",
    ) -> None:
        self.gateway = gateway
        self.account_reference = account_reference
        self.description = description
        self.service_name = service_name

    def _failed(self, error: PaymentError) -> InitiationResult:
        mpesa_stk_push_total.labels(service=self.service_name, outcome=error.error_type).inc()
        logger.warning("stk_push_failed error_type=%s code=%s message=%s", error.error_type, error.code, error.message)
        return InitiationResult(
            success=False,
            message=error.message,
            error_type=error.error_type,
            error_code=error.code,
        )

    async def initiate(self, req: MpesaPaymentRequest) -> InitiationResult:
        """Normalize the phone number, then push; invalid numbers never reach the gateway."""

        try:
            phone_number = normalize_phone_number(req.phone_number)
            ack = await self.gateway.stk_push(
                phone_number,
                req.amount,
                self.account_reference,
                self.description,
            )
        except PaymentError as exc:
            return self._failed(exc)
        except httpx.HTTPError as exc:
            return self._failed(GatewayUnavailable(f"M-Pesa gateway unreachable: {exc}"))

        checkout_request_id_ctx.set(ack.CheckoutRequestID)
        mpesa_stk_push_total.labels(service=self.service_name, outcome="accepted").inc()
        logger.info("stk_push_accepted checkout_request_id=%s amount=%s", ack.CheckoutRequestID, req.amount)
        return InitiationResult(
            success=True,
            checkout_request_id=ack.CheckoutRequestID,
            message=ack.CustomerMessage or ack.ResponseDescription or "STK push sent",
        )


def build_initiator(gateway: MpesaGateway) -> PaymentInitiator:
    return PaymentInitiator(
        gateway,
        account_reference=settings.mpesa_account_reference,
        description=settings.mpesa_transaction_desc,
        service_name=settings.service_name,
    )
