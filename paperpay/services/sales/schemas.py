"""API request/response schemas for sales endpoints."""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, PositiveInt
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


class SaleCreateRequest(CamelModel):
    """Payload accepted by `POST /api/sales`."""

    customer_email: str = Field(min_length=3, max_length=255, pattern=r"^[^@\s]+@[^@\s]+$")
    paper_ids: list[PositiveInt] = Field(min_length=1)
    total_amount: int = Field(ge=0)
    payment_method: Literal["mpesa", "visa"]
    checkout_request_id: str | None = Field(default=None, min_length=1)


class SaleRecord(CamelModel):
    id: int
    customer_email: str
    paper_ids: list[int]
    total_amount: int
    payment_method: str
    status: str
    checkout_request_id: str | None = None
    created_at: datetime | None = None


class UserPurchaseRecord(CamelModel):
    id: int
    user_id: int
    paper_id: int
    sale_id: int
    purchased_at: datetime | None = None


class AnalyticsResponse(CamelModel):
    total_sales: int
    total_papers_sold: int
    recent_sales: list[SaleRecord]
