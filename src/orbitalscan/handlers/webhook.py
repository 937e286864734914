"""Payment webhook: turn a Helio ``payment_succeeded`` notification into a membership."""

from __future__ import annotations

import json
import logging
from datetime import datetime
from typing import Any

from orbitalscan.auth import WebhookSecretMissingError, authenticate_notification
from orbitalscan.config import MembershipConfig
from orbitalscan.constants import PAYMENT_SUCCEEDED_EVENT
from orbitalscan.http_types import (
    HandlerRequest,
    HandlerResponse,
    internal_error,
    json_response,
    method_not_allowed,
)
from orbitalscan.membership import (
    MembershipError,
    MembershipRecord,
    coerce_amount,
    normalize_currency,
    normalize_email,
    normalize_plan,
    normalize_wallet,
    utcnow,
)
from orbitalscan.store_backend import MembershipStore, StoreError

logger = logging.getLogger(__name__)


def _parse_payload(raw: str) -> dict[str, Any]:
    """Decode the notification body. An empty body is an empty object.

    Malformed JSON and non-object documents raise; the caller's failure
    boundary reports them as internal errors.
    """
    payload = json.loads(raw or "{}")
    if not isinstance(payload, dict):
        raise ValueError(f"Notification body is a {type(payload).__name__}, not an object.")
    return payload


async def handle_payment_webhook(
    request: HandlerRequest,
    config: MembershipConfig,
    store: MembershipStore | None,
    *,
    now: datetime | None = None,
) -> HandlerResponse:
    """Authenticate, validate and persist a payment notification.

    Flow: POST only → shared-secret check → parse JSON → ignore events other
    than ``payment_succeeded`` → normalize → validate plan and identity →
    compute expiry → one overwrite of the record keyed by identity.

    Args:
        request: The inbound HTTP request.
        config: Per-invocation configuration (webhook secret).
        store: Membership store, or None if the backend is not configured.
        now: Activation time; defaults to the current UTC time.

    Returns:
        200 ``{ok, ignored}`` for irrelevant events, 200 ``{ok, saved, key,
        plan, started_at, expires_at}`` on success, 400 for validation
        failures, 401 for bad signatures, 405 for wrong methods, 500 for
        misconfiguration, store failures and anything unexpected.

    Redelivery is not idempotent on timestamps: every delivery restarts the
    membership window at ``now``. Concurrent deliveries for one identity
    race; the last write wins.
    """
    try:
        if request.method.upper() != "POST":
            return method_not_allowed()

        try:
            authentic = authenticate_notification(config.webhook_secret, request.headers)
        except WebhookSecretMissingError:
            logger.error("Webhook secret not configured; refusing notification.")
            return json_response(500, {"ok": False, "error": "webhook_secret_missing"})
        if not authentic:
            return json_response(401, {"ok": False, "error": "unauthorized"})

        payload = _parse_payload(request.text())

        event = payload.get("event")
        if event != PAYMENT_SUCCEEDED_EVENT:
            logger.info("Ignoring webhook event %r.", event)
            return json_response(200, {"ok": True, "ignored": True})

        tx_hash = payload.get("txHash") or None
        try:
            record = MembershipRecord.activate(
                plan=normalize_plan(payload.get("plan")),
                email=normalize_email(payload.get("email")),
                wallet=normalize_wallet(payload.get("wallet")),
                started_at=now or utcnow(),
                amount=coerce_amount(payload.get("amount")),
                currency=normalize_currency(payload.get("currency")),
                tx_hash=str(tx_hash) if tx_hash is not None else None,
            )
        except MembershipError as e:
            logger.warning("Rejected payment notification: %s", e)
            return json_response(400, {"ok": False, "error": e.code, "message": str(e)})

        if store is None:
            logger.error("Membership store not configured; cannot save %s.", record.identity_key)
            return json_response(500, {"ok": False, "error": "store_not_configured"})

        try:
            await store.store_record(record.identity_key, record.to_dict())
        except StoreError as e:
            logger.error("Failed to save membership %s: %s", record.identity_key, e)
            return json_response(500, {"ok": False, "error": "store_write_failed"})

        logger.info(
            "Activated %s membership for %s until %s (tx %s).",
            record.plan, record.identity_key, record.expires_at, record.tx_hash,
        )
        return json_response(200, {
            "ok": True,
            "saved": True,
            "key": record.identity_key,
            "plan": record.plan,
            "started_at": record.started_at,
            "expires_at": record.expires_at,
        })
    except Exception:
        logger.exception("Unhandled error in payment webhook.")
        return internal_error()
