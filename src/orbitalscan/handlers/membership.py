"""Membership lookup: is this email or wallet an active member right now?"""

from __future__ import annotations

import logging
from datetime import datetime

from orbitalscan.config import MembershipConfig
from orbitalscan.http_types import (
    HandlerRequest,
    HandlerResponse,
    internal_error,
    json_response,
    method_not_allowed,
)
from orbitalscan.membership import (
    MembershipRecord,
    derive_identity_key,
    normalize_email,
    normalize_wallet,
    utcnow,
)
from orbitalscan.store_backend import MembershipStore, StoreError

logger = logging.getLogger(__name__)


async def handle_get_membership(
    request: HandlerRequest,
    config: MembershipConfig,
    store: MembershipStore | None,
    *,
    now: datetime | None = None,
) -> HandlerResponse:
    """Read-only membership check by ``email`` or ``wallet`` query parameter.

    Uses the same normalization and email-first key precedence as the
    webhook. An ``expires_at`` that does not parse counts as expired.

    Returns 200 ``{ok, active, record}`` when active, 200 ``{ok, active:
    false, reason}`` with reason ``not_found`` or ``expired`` otherwise, 400
    ``missing_param`` when neither parameter is given.
    """
    try:
        if request.method.upper() != "GET":
            return method_not_allowed()

        email = normalize_email(request.param("email"))
        wallet = normalize_wallet(request.param("wallet"))
        if not email and not wallet:
            return json_response(400, {"ok": False, "active": False, "reason": "missing_param"})

        key = derive_identity_key(email, wallet)

        if store is None:
            logger.error("Membership store not configured; cannot look up %s.", key)
            return json_response(
                500, {"ok": False, "active": False, "reason": "store_not_configured"},
            )

        try:
            data = await store.fetch_record(key)
        except StoreError as e:
            logger.error("Failed to read membership %s (%s): %s", key, config.store_namespace, e)
            return json_response(
                500, {"ok": False, "active": False, "reason": "store_unavailable"},
            )

        if data is None:
            return json_response(200, {"ok": True, "active": False, "reason": "not_found"})

        record = MembershipRecord.from_dict(data)
        if not record.is_active(now or utcnow()):
            return json_response(200, {"ok": True, "active": False, "reason": "expired"})

        return json_response(200, {"ok": True, "active": True, "record": record.to_dict()})
    except Exception:
        logger.exception("Unhandled error in membership lookup.")
        return internal_error()
