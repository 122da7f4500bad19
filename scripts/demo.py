#!/usr/bin/env python3
"""Demo: dispatch one notification per channel through the gateway.

Requires the gateway to be running, with provider base URLs configured:
    EMAIL_API_BASE_URL=... SMS_API_BASE_URL=... PUSH_API_BASE_URL=... \\
        python -m dispatch_gateway

Usage:
    python scripts/demo.py [--gateway-url URL]
"""

import argparse
import sys
import uuid

import httpx

NOTIFICATIONS = [
    {
        "title": "Welcome aboard",
        "content": "Thanks for signing up, Alice.",
        "channel": "email",
        "recipient": "alice@example.com",
    },
    {
        "title": "Order shipped",
        "content": "Order #1042 is on its way.",
        "channel": "sms",
        "recipient": "+1 (555) 010-0199",
    },
    {
        "title": "Payment failed",
        "content": "Your card was declined.",
        "channel": "push",
        "recipient": "demo-device-token",
    },
    {
        "title": "Carrier pigeon",
        "content": "This one is rejected.",
        "channel": "fax",
        "recipient": "nobody",
    },
]


def main() -> None:
    parser = argparse.ArgumentParser(description="Send demo notifications")
    parser.add_argument(
        "--gateway-url",
        default="http://localhost:8000",
        help="Dispatch gateway base URL (default: http://localhost:8000)",
    )
    args = parser.parse_args()

    # Dispatch is synchronous and may include retry backoff.
    with httpx.Client(base_url=args.gateway_url, timeout=120.0) as client:
        try:
            resp = client.get("/health")
        except httpx.ConnectError:
            print(f"Cannot connect to {args.gateway_url}")
            print("Make sure the gateway is running: python -m dispatch_gateway")
            sys.exit(1)

        if resp.status_code != 200:
            print(f"Gateway unhealthy: {resp.text}")
            sys.exit(1)

        print(f"Gateway healthy at {args.gateway_url}\n")

        for notification in NOTIFICATIONS:
            body = {"notification": {"id": str(uuid.uuid4()), **notification}}
            resp = client.post("/dispatch", json=body)
            data = resp.json()
            channel = notification["channel"]

            if "status" not in data:
                print(f"  {channel:6s} -> ERROR {resp.status_code}: {data}")
                continue

            line = f"  {channel:6s} -> {data['status']:9s} attempts={len(data['attempts'])}"
            if data["error"]:
                line += f"  {data['error']}: {data['reason']}"
            print(line)

    print(f"\nSent {len(NOTIFICATIONS)} notifications.")


if __name__ == "__main__":
    main()
