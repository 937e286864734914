"""Helio webhook authentication: shared-secret header check.

Helio sends the configured secret verbatim in ``X-Helio-Signature``; this is
a literal comparison, not an HMAC over the body. The comparison still runs
in constant time.
"""

from __future__ import annotations

import hmac
import logging
from collections.abc import Mapping

from orbitalscan.constants import SIGNATURE_HEADER

logger = logging.getLogger(__name__)


class WebhookSecretMissingError(Exception):
    """Raised when no webhook secret is configured (server misconfiguration)."""


def find_header(headers: Mapping[str, str], name: str) -> str | None:
    """Case-insensitive header lookup. Returns None when absent."""
    wanted = name.lower()
    for key, value in headers.items():
        if key.lower() == wanted:
            return value
    return None


def authenticate_notification(
    webhook_secret: str | None,
    headers: Mapping[str, str],
    *,
    header_name: str = SIGNATURE_HEADER,
) -> bool:
    """Return True if the request carries the configured shared secret.

    Raises:
        WebhookSecretMissingError: If ``webhook_secret`` is unset or blank.
            Never treated as "always authentic" or as a client error.
    """
    if not webhook_secret:
        raise WebhookSecretMissingError("HELIO_WEBHOOK_SECRET is not configured.")

    signature = find_header(headers, header_name)
    if not signature:
        logger.warning("Webhook rejected: %s header missing.", header_name)
        return False

    if not hmac.compare_digest(signature.encode(), webhook_secret.encode()):
        logger.warning("Webhook rejected: %s does not match.", header_name)
        return False
    return True
