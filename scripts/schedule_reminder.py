"""Schedule one reminder through the HTTP API.

Useful for smoke tests of the scheduler and dispatcher end to end.
"""

import argparse
import json
from uuid import uuid4

import httpx


def main() -> None:
    """CLI entrypoint for manual reminder submission."""

    parser = argparse.ArgumentParser(description="Schedule a reminder via the scheduler API.")
    parser.add_argument("--base-url", default="http://localhost:8000")
    parser.add_argument("--api-key", default="dev-secret")
    parser.add_argument("--recipient", required=True)
    parser.add_argument("--quantity", type=int, required=True)
    parser.add_argument("--unit", default="minutes")
    parser.add_argument("body", nargs="*", help="Reminder message")
    args = parser.parse_args()

    resp = httpx.post(
        f"{args.base_url}/reminders",
        json={
            "quantity": args.quantity,
            "unit": args.unit,
            "recipient": args.recipient,
            "body": " ".join(args.body),
        },
        headers={"x-api-key": args.api_key, "x-correlation-id": str(uuid4())},
        timeout=10.0,
    )
    print(resp.status_code)
    print(json.dumps(resp.json(), indent=2))
    if resp.status_code >= 400:
        raise SystemExit(1)


if __name__ == "__main__":
    main()
