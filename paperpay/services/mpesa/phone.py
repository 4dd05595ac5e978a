"""Phone number normalization for STK push requests."""

import re

from paperpay.common.errors import InvalidPhoneFormat


COUNTRY_CODE = "254"
# Safaricom mobile numbers: 254 + 7xx/1xx subscriber number.
MOBILE_NUMBER = re.compile(r"^254[17]\d{8}$")


def normalize_phone_number(raw: str) -> str:
    """Return the canonical 12-digit `2547…`/`2541…` form or raise `InvalidPhoneFormat`.

    Accepted inputs include `0712345678`, `712345678`, `254712345678` and
    `+254 712 345 678`.
    """

    digits = re.sub(r"\D", "", raw or "")
    if digits.startswith(COUNTRY_CODE):
        formatted = digits
    elif digits.startswith("0"):
        formatted = COUNTRY_CODE + digits[1:]
    elif digits.startswith(("7", "1")):
        formatted = COUNTRY_CODE + digits
    else:
        raise InvalidPhoneFormat(f"Invalid phone number format: {raw!r}")

    if not MOBILE_NUMBER.match(formatted):
        raise InvalidPhoneFormat(f"Phone number must resolve to 12 digits (2547/2541...): {raw!r}")
    return formatted
