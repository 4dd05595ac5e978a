"""Sales ledger models: one immutable sale per checkout plus per-account purchase links."""

from datetime import datetime

from sqlalchemy import JSON, DateTime, ForeignKey, Integer, String, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column

from paperpay.common.db import Base


class Sale(Base):
    """Completed (or failed) purchase of one or more past papers."""

    __tablename__ = "sales"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    customer_email: Mapped[str] = mapped_column(String(255))
    paper_ids: Mapped[list] = mapped_column(JSON)
    total_amount: Mapped[int] = mapped_column(Integer)
    payment_method: Mapped[str] = mapped_column(String(50))
    status: Mapped[str] = mapped_column(String(50), default="completed", index=True)
    # Set for M-Pesa checkouts; one sale per confirmed push attempt.
    checkout_request_id: Mapped[str | None] = mapped_column(String(255), nullable=True, unique=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())


class UserPurchase(Base):
    """Links one paper of a sale to the authenticated account that bought it."""

    __tablename__ = "user_purchases"
    __table_args__ = (UniqueConstraint("sale_id", "paper_id", name="uq_user_purchase_sale_paper"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(Integer, index=True)
    paper_id: Mapped[int] = mapped_column(Integer)
    sale_id: Mapped[int] = mapped_column(ForeignKey("sales.id"), index=True)
    purchased_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
