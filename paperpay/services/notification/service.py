"""Delivery notification for recorded sales."""

from paperpay.common.logging import logger
from paperpay.services.notification.models import NotificationLog
from paperpay.services.sales.schemas import SaleRecord


class NotificationService:
    """Writes a delivery log per sale in its own session, apart from the sale write."""

    channel = "email"

    def __init__(self, session_factory) -> None:
        self.session_factory = session_factory

    def notify_sale(self, sale: SaleRecord) -> None:
        message = f"Email sent to {sale.customer_email} with {len(sale.paper_ids)} past papers"
        with self.session_factory() as db:
            db.add(
                NotificationLog(
                    sale_id=sale.id,
                    channel=self.channel,
                    recipient=sale.customer_email,
                    message=message,
                )
            )
            db.commit()
        logger.info("notification_sent sale_id=%s channel=%s", sale.id, self.channel)
