"""Fetch and print the sales analytics summary JSON."""

import argparse
import json

import httpx


def main() -> None:
    """CLI entrypoint for sales totals and recent sales."""

    parser = argparse.ArgumentParser(description="Fetch the storefront analytics endpoint.")
    parser.add_argument("--api-url", default="http://localhost:8000")
    parser.add_argument("--all", action="store_true", help="print every sale instead of the summary")
    args = parser.parse_args()

    path = "/api/sales" if args.all else "/api/analytics"
    resp = httpx.get(f"{args.api_url}{path}", timeout=10.0)
    resp.raise_for_status()
    print(json.dumps(resp.json(), indent=2))


if __name__ == "__main__":
    main()
