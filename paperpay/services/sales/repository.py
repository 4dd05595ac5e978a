"""Sales persistence behind one interface.

`SqlAlchemySaleRepository` is what the service runs on; `InMemorySaleRepository`
satisfies the same contract for local runs and tests. Both hand back pydantic
records, never ORM rows, so business logic cannot tell them apart.
"""

from datetime import datetime, timezone
from itertools import count
from typing import Protocol

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError

from paperpay.services.sales.models import Sale, UserPurchase
from paperpay.services.sales.schemas import SaleRecord, UserPurchaseRecord


class DuplicateSaleError(ValueError):
    """A sale for this CheckoutRequestID already exists."""


class SaleRepository(Protocol):
    def add_sale(
        self,
        *,
        customer_email: str,
        paper_ids: list[int],
        total_amount: int,
        payment_method: str,
        status: str,
        checkout_request_id: str | None = None,
    ) -> SaleRecord: ...

    def get_sale(self, sale_id: int) -> SaleRecord | None: ...

    def get_sale_by_checkout_request(self, checkout_request_id: str) -> SaleRecord | None: ...

    def list_sales(self) -> list[SaleRecord]: ...

    def recent_sales(self, limit: int) -> list[SaleRecord]: ...

    def total_sales(self) -> int: ...

    def total_papers_sold(self) -> int: ...

    def find_user_purchase(self, sale_id: int, paper_id: int) -> UserPurchaseRecord | None: ...

    def add_user_purchase(self, *, user_id: int, paper_id: int, sale_id: int) -> UserPurchaseRecord: ...

    def list_user_purchases(self, user_id: int) -> list[UserPurchaseRecord]: ...


class SqlAlchemySaleRepository:
    """Relational store; each call runs in its own short session."""

    def __init__(self, session_factory) -> None:
        self.session_factory = session_factory

    def add_sale(
        self,
        *,
        customer_email: str,
        paper_ids: list[int],
        total_amount: int,
        payment_method: str,
        status: str,
        checkout_request_id: str | None = None,
    ) -> SaleRecord:
        with self.session_factory() as db:
            sale = Sale(
                customer_email=customer_email,
                paper_ids=list(paper_ids),
                total_amount=total_amount,
                payment_method=payment_method,
                status=status,
                checkout_request_id=checkout_request_id,
            )
            db.add(sale)
            try:
                db.commit()
            except IntegrityError as exc:
                db.rollback()
                if checkout_request_id is not None:
                    raise DuplicateSaleError(f"duplicate checkout_request_id {checkout_request_id}") from exc
                raise
            db.refresh(sale)
            return SaleRecord.model_validate(sale)

    def get_sale(self, sale_id: int) -> SaleRecord | None:
        with self.session_factory() as db:
            sale = db.get(Sale, sale_id)
            return SaleRecord.model_validate(sale) if sale else None

    def get_sale_by_checkout_request(self, checkout_request_id: str) -> SaleRecord | None:
        with self.session_factory() as db:
            sale = db.execute(
                select(Sale).where(Sale.checkout_request_id == checkout_request_id)
            ).scalar_one_or_none()
            return SaleRecord.model_validate(sale) if sale else None

    def _newest_first(self, limit: int | None = None) -> list[SaleRecord]:
        with self.session_factory() as db:
            stmt = select(Sale).order_by(Sale.created_at.desc(), Sale.id.desc())
            if limit is not None:
                stmt = stmt.limit(limit)
            return [SaleRecord.model_validate(s) for s in db.execute(stmt).scalars().all()]

    def list_sales(self) -> list[SaleRecord]:
        return self._newest_first()

    def recent_sales(self, limit: int) -> list[SaleRecord]:
        return self._newest_first(limit)

    def total_sales(self) -> int:
        with self.session_factory() as db:
            return int(db.execute(select(func.coalesce(func.sum(Sale.total_amount), 0))).scalar_one())

    def total_papers_sold(self) -> int:
        with self.session_factory() as db:
            rows = db.execute(select(Sale.paper_ids)).scalars().all()
            return sum(len(paper_ids or []) for paper_ids in rows)

    def find_user_purchase(self, sale_id: int, paper_id: int) -> UserPurchaseRecord | None:
        with self.session_factory() as db:
            purchase = db.execute(
                select(UserPurchase).where(UserPurchase.sale_id == sale_id, UserPurchase.paper_id == paper_id)
            ).scalar_one_or_none()
            return UserPurchaseRecord.model_validate(purchase) if purchase else None

    def add_user_purchase(self, *, user_id: int, paper_id: int, sale_id: int) -> UserPurchaseRecord:
        with self.session_factory() as db:
            purchase = UserPurchase(user_id=user_id, paper_id=paper_id, sale_id=sale_id)
            db.add(purchase)
            db.commit()
            db.refresh(purchase)
            return UserPurchaseRecord.model_validate(purchase)

    def list_user_purchases(self, user_id: int) -> list[UserPurchaseRecord]:
        with self.session_factory() as db:
            purchases = db.execute(
                select(UserPurchase)
                .where(UserPurchase.user_id == user_id)
                .order_by(UserPurchase.purchased_at.desc(), UserPurchase.id.desc())
            ).scalars().all()
            return [UserPurchaseRecord.model_validate(p) for p in purchases]


class InMemorySaleRepository:
    """Dict-backed store with the same contract, ids and ordering as the SQL one."""

    def __init__(self) -> None:
        self._sales: dict[int, SaleRecord] = {}
        self._purchases: dict[int, UserPurchaseRecord] = {}
        self._sale_ids = count(1)
        self._purchase_ids = count(1)

    def add_sale(
        self,
        *,
        customer_email: str,
        paper_ids: list[int],
        total_amount: int,
        payment_method: str,
        status: str,
        checkout_request_id: str | None = None,
    ) -> SaleRecord:
        if checkout_request_id is not None and self.get_sale_by_checkout_request(checkout_request_id):
            raise DuplicateSaleError(f"duplicate checkout_request_id {checkout_request_id}")
        sale = SaleRecord(
            id=next(self._sale_ids),
            customer_email=customer_email,
            paper_ids=list(paper_ids),
            total_amount=total_amount,
            payment_method=payment_method,
            status=status,
            checkout_request_id=checkout_request_id,
            created_at=datetime.now(timezone.utc),
        )
        self._sales[sale.id] = sale
        return sale.model_copy(deep=True)

    def get_sale(self, sale_id: int) -> SaleRecord | None:
        sale = self._sales.get(sale_id)
        return sale.model_copy(deep=True) if sale else None

    def get_sale_by_checkout_request(self, checkout_request_id: str) -> SaleRecord | None:
        for sale in self._sales.values():
            if sale.checkout_request_id == checkout_request_id:
                return sale.model_copy(deep=True)
        return None

    def list_sales(self) -> list[SaleRecord]:
        ordered = sorted(self._sales.values(), key=lambda s: (s.created_at, s.id), reverse=True)
        return [s.model_copy(deep=True) for s in ordered]

    def recent_sales(self, limit: int) -> list[SaleRecord]:
        return self.list_sales()[:limit]

    def total_sales(self) -> int:
        return sum(s.total_amount for s in self._sales.values())

    def total_papers_sold(self) -> int:
        return sum(len(s.paper_ids) for s in self._sales.values())

    def find_user_purchase(self, sale_id: int, paper_id: int) -> UserPurchaseRecord | None:
        for purchase in self._purchases.values():
            if purchase.sale_id == sale_id and purchase.paper_id == paper_id:
                return purchase.model_copy()
        return None

    def add_user_purchase(self, *, user_id: int, paper_id: int, sale_id: int) -> UserPurchaseRecord:
        if sale_id not in self._sales:
            raise ValueError(f"sale {sale_id} does not exist")
        if self.find_user_purchase(sale_id, paper_id):
            raise ValueError(f"duplicate purchase for sale {sale_id} paper {paper_id}")
        purchase = UserPurchaseRecord(
            id=next(self._purchase_ids),
            user_id=user_id,
            paper_id=paper_id,
            sale_id=sale_id,
            purchased_at=datetime.now(timezone.utc),
        )
        self._purchases[purchase.id] = purchase
        return purchase.model_copy()

    def list_user_purchases(self, user_id: int) -> list[UserPurchaseRecord]:
        ordered = sorted(
            (p for p in self._purchases.values() if p.user_id == user_id),
            key=lambda p: (p.purchased_at, p.id),
            reverse=True,
        )
        return [p.model_copy() for p in ordered]
