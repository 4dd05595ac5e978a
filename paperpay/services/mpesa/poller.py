"""Status polling state machine for one STK push attempt.

`pending -> completed | failed | timeout`. Each poller owns exactly one
CheckoutRequestID and its own state, so concurrent checkouts share nothing.
The only suspension point is `Scheduler.sleep` between attempts; cancelling
the task running `run()` abandons the poll without telling the gateway.
"""

import asyncio
from dataclasses import dataclass
from typing import Awaitable, Callable, Protocol

from paperpay.common.errors import PaymentError, PollingFailure, PollingTimeout
from paperpay.common.logging import logger
from paperpay.common.metrics import poll_attempts_total, poll_outcomes_total
from paperpay.common.state_machine import COMPLETED, FAILED, PENDING, TIMEOUT, is_terminal, validate_transition
from paperpay.services.mpesa.schemas import MpesaQueryResponse


SUCCESS_CODE = "0"
# Gateway code for "still awaiting the customer's confirmation".
PENDING_CODE = "1037"


class Scheduler(Protocol):
    async def sleep(self, seconds: float) -> None: ...


class AsyncioScheduler:
    """Default scheduler: cooperative `asyncio.sleep` between attempts."""

    async def sleep(self, seconds: float) -> None:
        await asyncio.sleep(seconds)


@dataclass
class PollOutcome:
    checkout_request_id: str
    state: str
    attempts: int
    result_code: str | None = None
    result_desc: str | None = None
    error: PaymentError | None = None
    completion_error: str | None = None

    @property
    def message(self) -> str:
        if self.state == COMPLETED:
            return self.result_desc or "Payment completed"
        if self.error is not None:
            return self.error.message
        return self.result_desc or "Payment pending"


StatusQuery = Callable[[str], Awaitable[MpesaQueryResponse]]
CompletionHook = Callable[[PollOutcome], Awaitable[None]]


class StatusPoller:
    """Polls one CheckoutRequestID until a terminal result or the attempt budget runs out."""

    def __init__(
        self,
        checkout_request_id: str,
        query: StatusQuery,
        on_completed: CompletionHook | None = None,
        scheduler: Scheduler | None = None,
        interval_seconds: float = 10.0,
        max_attempts: int = 30,
        service_name: str = "paperpay-client",
    ) -> None:
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.checkout_request_id = checkout_request_id
        self.query = query
        self.on_completed = on_completed
        self.scheduler = scheduler or AsyncioScheduler()
        self.interval_seconds = interval_seconds
        self.max_attempts = max_attempts
        self.service_name = service_name
        self.state = PENDING
        self.attempts = 0
        self._outcome: PollOutcome | None = None

    @property
    def outcome(self) -> PollOutcome | None:
        return self._outcome

    async def _finish(self, state: str, **fields) -> PollOutcome:
        validate_transition(self.state, state)
        self.state = state
        self._outcome = PollOutcome(
            checkout_request_id=self.checkout_request_id,
            state=state,
            attempts=self.attempts,
            **fields,
        )
        poll_outcomes_total.labels(service=self.service_name, state=state).inc()
        logger.info(
            "poll_terminal checkout_request_id=%s state=%s attempts=%s",
            self.checkout_request_id,
            state,
            self.attempts,
        )
        if state == COMPLETED and self.on_completed is not None:
            try:
                await self.on_completed(self._outcome)
            except Exception as exc:
                # Payment is confirmed at the gateway; record-keeping failures must not undo that.
                logger.exception(
                    "completion_hook_failed checkout_request_id=%s error=%s",
                    self.checkout_request_id,
                    exc,
                )
                self._outcome.completion_error = str(exc)
        return self._outcome

    async def run(self) -> PollOutcome:
        """Drive the state machine to a terminal outcome.

        Re-running a finished poller returns the stored outcome without
        querying the gateway or firing `on_completed` again.
        """

        if is_terminal(self.state):
            return self._outcome

        while self.attempts < self.max_attempts:
            if self.attempts > 0:
                await self.scheduler.sleep(self.interval_seconds)
            self.attempts += 1
            poll_attempts_total.labels(service=self.service_name).inc()
            try:
                result = await self.query(self.checkout_request_id)
            except asyncio.CancelledError:
                raise
            except Exception as exc:
                logger.warning(
                    "poll_attempt_error checkout_request_id=%s attempt=%s error=%s",
                    self.checkout_request_id,
                    self.attempts,
                    exc,
                )
                continue

            code = result.ResultCode
            if code == SUCCESS_CODE:
                return await self._finish(COMPLETED, result_code=code, result_desc=result.ResultDesc)
            if code and code != PENDING_CODE:
                return await self._finish(
                    FAILED,
                    result_code=code,
                    result_desc=result.ResultDesc,
                    error=PollingFailure(code, result.ResultDesc),
                )
            logger.info(
                "poll_pending checkout_request_id=%s attempt=%s/%s code=%s",
                self.checkout_request_id,
                self.attempts,
                self.max_attempts,
                code,
            )

        return await self._finish(TIMEOUT, error=PollingTimeout(self.attempts))
