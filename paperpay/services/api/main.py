"""Public HTTP API consumed by the storefront checkout.

Exposes M-Pesa STK push initiation, status queries and sale recording, plus
read endpoints for sales history and the admin analytics summary. Account
authentication happens upstream; the session layer forwards the account id
in `X-User-Id`.
"""

from time import perf_counter
from uuid import uuid4

import httpx
import redis
from fastapi import FastAPI, Header, HTTPException, Request

from paperpay.common.config import settings
from paperpay.common.db import SessionLocal
from paperpay.common.errors import PaymentError
from paperpay.common.logging import checkout_request_id_ctx, configure_logging, logger, trace_id_ctx
from paperpay.common.metrics import (
    http_request_duration_seconds,
    http_requests_total,
    metrics_response,
    status_cache_hits_total,
)
from paperpay.common.startup import log_startup_config
from paperpay.common.tracing import instrument_app, setup_tracing
from paperpay.services.mpesa.cache import TerminalStatusCache
from paperpay.services.mpesa.client import DarajaClient
from paperpay.services.mpesa.schemas import (
    InitiationResult,
    MpesaPaymentRequest,
    MpesaQueryRequest,
    MpesaQueryResponse,
)
from paperpay.services.mpesa.service import build_initiator
from paperpay.services.notification.service import NotificationService
from paperpay.services.sales.repository import SqlAlchemySaleRepository
from paperpay.services.sales.schemas import (
    AnalyticsResponse,
    SaleCreateRequest,
    SaleRecord,
    UserPurchaseRecord,
)
from paperpay.services.sales.service import SaleRecorder

configure_logging(settings.service_name, settings.log_level)
setup_tracing(settings.service_name)
log_startup_config(
    settings.service_name,
    [
        "SERVICE_NAME",
        "DATABASE_DSN",
        "REDIS_URL",
        "MPESA_ENVIRONMENT",
        "MPESA_BUSINESS_SHORT_CODE",
        "MPESA_CONSUMER_KEY",
        "MPESA_CALLBACK_URL",
    ],
)
app = FastAPI(title="PaperPay Storefront API")
instrument_app(app)

gateway = DarajaClient.from_settings()
initiator = build_initiator(gateway)
sale_recorder = SaleRecorder(
    SqlAlchemySaleRepository(SessionLocal),
    notifier=NotificationService(SessionLocal),
    service_name=settings.service_name,
)
status_cache = (
    TerminalStatusCache(
        redis.Redis.from_url(settings.redis_url, decode_responses=True),
        ttl_seconds=settings.status_cache_ttl_seconds,
    )
    if settings.redis_url
    else None
)


@app.middleware("http")
async def metrics_middleware(request: Request, call_next):
    """Record request count and latency for every HTTP call."""

    start = perf_counter()
    route = request.url.path
    method = request.method
    status_code = 500
    trace_id_ctx.set(request.headers.get("x-correlation-id") or str(uuid4()))
    try:
        response = await call_next(request)
        status_code = response.status_code
        route_obj = request.scope.get("route")
        if route_obj is not None and getattr(route_obj, "path", None):
            route = route_obj.path
        return response
    finally:
        elapsed = max(0.0, perf_counter() - start)
        http_request_duration_seconds.labels(
            service=settings.service_name,
            route=route,
            method=method,
        ).observe(elapsed)
        http_requests_total.labels(
            service=settings.service_name,
            route=route,
            method=method,
            status_code=str(status_code),
        ).inc()


@app.post("/api/payments/mpesa", response_model=InitiationResult, response_model_exclude_none=True)
async def initiate_mpesa_payment(req: MpesaPaymentRequest):
    """Send an STK push to the customer's phone.

    Failures are returned as `success: false` with a reason, never as 5xx.
    """

    return await initiator.initiate(req)


@app.post("/api/payments/mpesa/query", response_model=MpesaQueryResponse)
async def query_mpesa_payment(req: MpesaQueryRequest):
    """Return the gateway's current status for one CheckoutRequestID.

    Terminal results are cached, so asking again after resolution gives the
    same answer without another gateway call.
    """

    checkout_request_id_ctx.set(req.checkout_request_id)
    if status_cache is not None:
        cached = status_cache.get(req.checkout_request_id)
        if cached is not None:
            status_cache_hits_total.labels(service=settings.service_name).inc()
            return cached

    try:
        result = await gateway.stk_query(req.checkout_request_id)
    except (PaymentError, httpx.HTTPError) as exc:
        logger.error("stk_query_failed checkout_request_id=%s error=%s", req.checkout_request_id, exc)
        raise HTTPException(status_code=502, detail="M-Pesa status query failed") from exc

    response = MpesaQueryResponse(ResultCode=result.ResultCode, ResultDesc=result.ResultDesc)
    if status_cache is not None:
        status_cache.put(req.checkout_request_id, response)
    return response


@app.post("/api/sales", response_model=SaleRecord, status_code=201)
def create_sale(req: SaleCreateRequest, x_user_id: int | None = Header(default=None)):
    """Record a paid checkout and link its papers to the signed-in account, if any."""

    if req.checkout_request_id:
        checkout_request_id_ctx.set(req.checkout_request_id)
    return sale_recorder.record(req, user_id=x_user_id)


@app.get("/api/sales", response_model=list[SaleRecord])
def list_sales():
    """All sales, newest first."""

    return sale_recorder.list_sales()


@app.get("/api/user/purchases", response_model=list[UserPurchaseRecord])
def user_purchases(x_user_id: int | None = Header(default=None)):
    """Purchase history of the signed-in account."""

    if x_user_id is None:
        raise HTTPException(status_code=401, detail="Not authenticated")
    return sale_recorder.purchase_history(x_user_id)


@app.get("/api/analytics", response_model=AnalyticsResponse)
def analytics():
    """Revenue, papers sold and the most recent sales."""

    return sale_recorder.analytics()


@app.get("/metrics")
def metrics():
    """Prometheus scrape endpoint."""

    return metrics_response()


@app.get("/health")
def health():
    """Container health probe endpoint."""

    return {"ok": True}
