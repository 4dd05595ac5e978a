"""Gateway payloads and internal API schemas for M-Pesa payments.

Gateway models keep Daraja's PascalCase field names; internal API models
use camelCase aliases so the browser client keeps its existing contract.
"""

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class AccessTokenResponse(BaseModel):
    model_config = ConfigDict(extra="ignore")

    access_token: str = Field(min_length=1)
    expires_in: str | None = None


class StkPushPayload(BaseModel):
    """Body of `POST /mpesa/stkpush/v1/processrequest`."""

    BusinessShortCode: str
    Password: str
    Timestamp: str
    TransactionType: str = "CustomerPayBillOnline"
    Amount: int = Field(gt=0)
    PartyA: str
    PartyB: str
    PhoneNumber: str
    CallBackURL: str
    AccountReference: str
    TransactionDesc: str


class StkPushResponse(BaseModel):
    model_config = ConfigDict(extra="ignore", coerce_numbers_to_str=True)

    MerchantRequestID: str | None = None
    CheckoutRequestID: str | None = None
    ResponseCode: str | None = None
    ResponseDescription: str | None = None
    CustomerMessage: str | None = None
    errorCode: str | None = None
    errorMessage: str | None = None


class StkQueryPayload(BaseModel):
    """Body of `POST /mpesa/stkpushquery/v1/query`."""

    BusinessShortCode: str
    Password: str
    Timestamp: str
    CheckoutRequestID: str


class StkQueryResponse(BaseModel):
    """Status of one push attempt; `ResultCode` is absent while the gateway is still processing."""

    model_config = ConfigDict(extra="ignore", coerce_numbers_to_str=True)

    ResultCode: str | None = None
    ResultDesc: str | None = None
    CheckoutRequestID: str | None = None
    errorCode: str | None = None
    errorMessage: str | None = None


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class MpesaPaymentRequest(CamelModel):
    """Payload accepted by `POST /api/payments/mpesa`."""

    phone_number: str = Field(min_length=1)
    amount: int = Field(gt=0)


class InitiationResult(CamelModel):
    """Tagged outcome of an STK push; failures carry `error_type` instead of raising."""

    success: bool
    checkout_request_id: str | None = None
    message: str
    error_type: str | None = None
    error_code: str | None = None


class MpesaQueryRequest(CamelModel):
    checkout_request_id: str = Field(min_length=1)


class MpesaQueryResponse(BaseModel):
    ResultCode: str | None = None
    ResultDesc: str | None = None
