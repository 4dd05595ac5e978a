"""Shared fixtures: test env, in-memory SQLite, fake gateway and fake Redis."""

import os

os.environ.setdefault("DATABASE_DSN", "sqlite://")
os.environ.setdefault("MPESA_CONSUMER_KEY", "test-key")
os.environ.setdefault("MPESA_CONSUMER_SECRET", "test-secret")
os.environ.setdefault("MPESA_BUSINESS_SHORT_CODE", "174379")
os.environ.setdefault("MPESA_PASSKEY", "test-passkey")
os.environ.setdefault("MPESA_ENVIRONMENT", "sandbox")
os.environ.setdefault("MPESA_CALLBACK_URL", "https://example.com/callback")
os.environ.setdefault("REDIS_URL", "")

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from paperpay.common.db import Base
from paperpay.services.mpesa.schemas import StkPushResponse, StkQueryResponse
import paperpay.services.notification.models  # noqa: F401
import paperpay.services.sales.models  # noqa: F401


class FakeGateway:
    """Scripted stand-in for `DarajaClient` that records every call."""

    def __init__(self, query_results=None, push_error=None, checkout_request_id="ws_CO_191020261200001"):
        self.query_results = list(query_results or [])
        self.push_error = push_error
        self.checkout_request_id = checkout_request_id
        self.push_calls = []
        self.query_calls = []

    async def stk_push(self, phone_number, amount, account_reference, description):
        self.push_calls.append((phone_number, amount, account_reference, description))
        if self.push_error is not None:
            raise self.push_error
        return StkPushResponse(
            MerchantRequestID="29115-34620561-1",
            CheckoutRequestID=self.checkout_request_id,
            ResponseCode="0",
            ResponseDescription="Success. Request accepted for processing",
            CustomerMessage="Success. Request accepted for processing",
        )

    async def stk_query(self, checkout_request_id):
        self.query_calls.append(checkout_request_id)
        item = self.query_results.pop(0) if len(self.query_results) > 1 else self.query_results[0]
        if isinstance(item, Exception):
            raise item
        return StkQueryResponse(**item)


class FakeRedis:
    def __init__(self):
        self.store = {}

    def get(self, key):
        return self.store.get(key)

    def setex(self, key, ttl, value):
        self.store[key] = value


class RecordingScheduler:
    """Scheduler that never sleeps; it only remembers the requested delays."""

    def __init__(self):
        self.delays = []

    async def sleep(self, seconds):
        self.delays.append(seconds)


@pytest.fixture
def session_factory():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    factory = sessionmaker(bind=engine, autoflush=False, autocommit=False, expire_on_commit=False)
    yield factory
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def scheduler():
    return RecordingScheduler()
