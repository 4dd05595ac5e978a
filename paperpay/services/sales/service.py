"""Sale recording after a confirmed payment.

The sale row is the source of truth that the customer paid. Purchase links
and the delivery notification run afterwards in their own failure domains:
if either fails the error is logged and counted, and the sale still stands.
"""

from typing import Protocol

from paperpay.common.logging import logger
from paperpay.common.metrics import (
    notification_failures_total,
    purchase_link_failures_total,
    sales_recorded_total,
)
from paperpay.common.state_machine import COMPLETED
from paperpay.services.sales.repository import DuplicateSaleError, SaleRepository
from paperpay.services.sales.schemas import (
    AnalyticsResponse,
    SaleCreateRequest,
    SaleRecord,
    UserPurchaseRecord,
)


RECENT_SALES_LIMIT = 5


class PurchaseLinkError(RuntimeError):
    """Some papers of a sale could not be linked to the buyer's account."""

    def __init__(self, sale_id: int, failed: dict[int, Exception]) -> None:
        super().__init__(f"sale {sale_id}: could not link papers {sorted(failed)}")
        self.sale_id = sale_id
        self.failed = failed


class SaleNotifier(Protocol):
    def notify_sale(self, sale: SaleRecord) -> None: ...


class SaleRecorder:
    """Creates one sale per checkout and links its papers to the buyer's account."""

    def __init__(
        self,
        repository: SaleRepository,
        notifier: SaleNotifier | None = None,
        service_name: str = "paperpay-api",
    ) -> None:
        self.repository = repository
        self.notifier = notifier
        self.service_name = service_name

    def record(self, req: SaleCreateRequest, user_id: int | None = None) -> SaleRecord:
        """Record a completed sale; replays for the same checkout return the first sale.

        A replay still links any papers missing from the buyer's account, so a
        retry repairs a partially failed link. It never notifies twice.
        """

        existing = None
        if req.checkout_request_id:
            existing = self.repository.get_sale_by_checkout_request(req.checkout_request_id)
        if existing is None:
            try:
                sale = self.repository.add_sale(
                    customer_email=req.customer_email,
                    paper_ids=req.paper_ids,
                    total_amount=req.total_amount,
                    payment_method=req.payment_method,
                    status=COMPLETED,
                    checkout_request_id=req.checkout_request_id,
                )
            except DuplicateSaleError:
                # Concurrent replay of the same checkout won the insert.
                existing = self.repository.get_sale_by_checkout_request(req.checkout_request_id)

        if existing is not None:
            logger.info(
                "duplicate sale skipped checkout_request_id=%s sale_id=%s",
                req.checkout_request_id,
                existing.id,
            )
            self._link_safely(existing, user_id)
            return existing

        sales_recorded_total.labels(service=self.service_name, payment_method=sale.payment_method).inc()
        logger.info(
            "sale_recorded sale_id=%s payment_method=%s total_amount=%s papers=%s",
            sale.id,
            sale.payment_method,
            sale.total_amount,
            len(sale.paper_ids),
        )
        self._link_safely(sale, user_id)

        if self.notifier is not None:
            try:
                self.notifier.notify_sale(sale)
            except Exception as exc:
                notification_failures_total.labels(service=self.service_name, channel="email").inc()
                logger.exception("notification_failed sale_id=%s error=%s", sale.id, exc)
        return sale

    def _link_safely(self, sale: SaleRecord, user_id: int | None) -> None:
        if user_id is None:
            return
        try:
            self.link_purchases(sale, user_id)
        except Exception as exc:
            purchase_link_failures_total.labels(service=self.service_name).inc()
            logger.exception("purchase_link_failed sale_id=%s user_id=%s error=%s", sale.id, user_id, exc)

    def link_purchases(self, sale: SaleRecord, user_id: int) -> list[UserPurchaseRecord]:
        """Create one purchase per paper, skipping (sale, paper) pairs that already exist.

        Every paper is attempted; if any fail, `PurchaseLinkError` is raised
        afterwards naming them, and the ones that succeeded stay linked.
        """

        created = []
        failed: dict[int, Exception] = {}
        for paper_id in sale.paper_ids:
            try:
                if self.repository.find_user_purchase(sale.id, paper_id):
                    continue
                created.append(
                    self.repository.add_user_purchase(user_id=user_id, paper_id=paper_id, sale_id=sale.id)
                )
            except Exception as exc:
                logger.warning(
                    "purchase_link_paper_failed sale_id=%s paper_id=%s error=%s", sale.id, paper_id, exc
                )
                failed[paper_id] = exc
        if failed:
            raise PurchaseLinkError(sale.id, failed)
        return created

    def list_sales(self) -> list[SaleRecord]:
        return self.repository.list_sales()

    def purchase_history(self, user_id: int) -> list[UserPurchaseRecord]:
        return self.repository.list_user_purchases(user_id)

    def analytics(self) -> AnalyticsResponse:
        return AnalyticsResponse(
            total_sales=self.repository.total_sales(),
            total_papers_sold=self.repository.total_papers_sold(),
            recent_sales=self.repository.recent_sales(RECENT_SALES_LIMIT),
        )
