#!/usr/bin/env python3
"""Send a sample Helio ``payment_succeeded`` notification to a running instance.

Useful for checking a deployment end to end: the webhook saves the
membership, then the script queries it back.

  HELIO_WEBHOOK_SECRET=... python scripts/send_test_webhook.py \
      --base-url http://localhost:8000 --email you@example.com --plan monthly

Requires: pip install httpx
"""

from __future__ import annotations

import argparse
import json
import logging
import os
import sys
from datetime import datetime, timezone

import httpx

logger = logging.getLogger("send_test_webhook")


def main() -> None:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("--base-url", default="http://localhost:8000")
    parser.add_argument("--email")
    parser.add_argument("--wallet")
    parser.add_argument("--plan", default="monthly")
    parser.add_argument("--amount", default="9.99")
    parser.add_argument("--currency", default="USDT")
    parser.add_argument("--event", default="payment_succeeded")
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(message)s")

    secret = os.environ.get("HELIO_WEBHOOK_SECRET")
    if not secret:
        print("Error: HELIO_WEBHOOK_SECRET is not set.", file=sys.stderr)
        sys.exit(1)
    if not args.email and not args.wallet:
        print("Error: pass --email and/or --wallet.", file=sys.stderr)
        sys.exit(1)

    payload = {
        "event": args.event,
        "amount": args.amount,
        "currency": args.currency,
        "plan": args.plan,
        "email": args.email,
        "wallet": args.wallet,
        "txHash": f"test-{datetime.now(timezone.utc):%Y%m%d%H%M%S}",
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }

    with httpx.Client(base_url=args.base_url, timeout=10.0) as client:
        resp = client.post(
            "/payment-webhook",
            content=json.dumps(payload),
            headers={"X-Helio-Signature": secret, "Content-Type": "application/json"},
        )
        logger.info("Webhook -> %d %s", resp.status_code, resp.text)
        if resp.status_code != 200:
            sys.exit(1)

        params = {"email": args.email} if args.email else {"wallet": args.wallet}
        resp = client.get("/get-membership", params=params)
        logger.info("Membership -> %d %s", resp.status_code, resp.text)


if __name__ == "__main__":
    main()
