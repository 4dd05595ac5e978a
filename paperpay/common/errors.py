"""Payment error taxonomy.

Gateway-facing code raises these; the initiator and poller convert them into
tagged results so nothing reaches the HTTP layer as an uncaught exception.
"""


class PaymentError(Exception):
    """Base class for every M-Pesa checkout failure."""

    error_type = "PaymentError"

    def __init__(self, message: str, code: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.code = code


class InvalidPhoneFormat(PaymentError):
    error_type = "InvalidPhoneFormat"


class GatewayAuthError(PaymentError):
    error_type = "GatewayAuthError"


class GatewayRejected(PaymentError):
    """STK push refused; code and description are the gateway's own."""

    error_type = "GatewayRejected"

    def __init__(self, code: str | None, description: str) -> None:
        super().__init__(description, code)
        self.description = description


class GatewayUnavailable(PaymentError):
    """Network failure or timeout talking to the gateway."""

    error_type = "GatewayUnavailable"


class PollingTimeout(PaymentError):
    error_type = "PollingTimeout"

    def __init__(self, attempts: int) -> None:
        super().__init__(f"Payment verification timed out after {attempts} attempts")
        self.attempts = attempts


class PollingFailure(PaymentError):
    error_type = "PollingFailure"

    def __init__(self, result_code: str, result_desc: str | None) -> None:
        super().__init__(result_desc or "M-Pesa payment was not completed", result_code)
        self.result_code = result_code
        self.result_desc = result_desc
