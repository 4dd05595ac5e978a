"""Run one M-Pesa checkout against a running storefront API.

Sends the STK push, polls until the payment resolves, records the sale, and
prints the result JSON. Useful for sandbox smoke tests.
"""

import argparse
import asyncio
import json

from paperpay.client.checkout import CheckoutClient


def main() -> None:
    """CLI entrypoint for a single checkout."""

    parser = argparse.ArgumentParser(description="Pay for past papers with M-Pesa through the API.")
    parser.add_argument("--api-url", default="http://localhost:8000")
    parser.add_argument("--phone", required=True)
    parser.add_argument("--amount", type=int, required=True)
    parser.add_argument("--email", required=True)
    parser.add_argument("--paper-id", type=int, action="append", dest="paper_ids", required=True)
    parser.add_argument("--user-id", type=int, default=None)
    parser.add_argument("--interval", type=float, default=10.0)
    parser.add_argument("--max-attempts", type=int, default=30)
    args = parser.parse_args()

    client = CheckoutClient(
        args.api_url,
        interval_seconds=args.interval,
        max_attempts=args.max_attempts,
    )
    result = asyncio.run(
        client.pay_with_mpesa(
            args.phone,
            args.amount,
            args.email,
            args.paper_ids,
            user_id=args.user_id,
        )
    )
    print(json.dumps(result.to_dict(), indent=2))


if __name__ == "__main__":
    main()
