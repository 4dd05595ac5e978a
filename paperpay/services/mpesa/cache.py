"""Redis cache of terminal STK query results, keyed by CheckoutRequestID."""

import json

from paperpay.common.logging import logger
from paperpay.services.mpesa.poller import PENDING_CODE
from paperpay.services.mpesa.schemas import MpesaQueryResponse


def _cache_key(checkout_request_id: str) -> str:
    return f"mpesa:status:{checkout_request_id}"


def is_terminal_result(result: MpesaQueryResponse) -> bool:
    return bool(result.ResultCode) and result.ResultCode != PENDING_CODE


class TerminalStatusCache:
    """Best-effort: Redis errors are logged and treated as a miss."""

    def __init__(self, rdb, ttl_seconds: int = 3600) -> None:
        self.rdb = rdb
        self.ttl_seconds = ttl_seconds

    def get(self, checkout_request_id: str) -> MpesaQueryResponse | None:
        try:
            cached = self.rdb.get(_cache_key(checkout_request_id))
        except Exception as exc:
            logger.warning("status_cache_read_failed: %s", exc)
            return None
        if not cached:
            return None
        return MpesaQueryResponse.model_validate(json.loads(cached))

    def put(self, checkout_request_id: str, result: MpesaQueryResponse) -> None:
        if not is_terminal_result(result):
            return
        try:
            self.rdb.setex(_cache_key(checkout_request_id), self.ttl_seconds, result.model_dump_json())
        except Exception as exc:
            logger.warning("status_cache_write_failed: %s", exc)
