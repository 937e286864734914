"""Membership record and the pure rules shared by both handlers.

Pure data model, no I/O. Identity normalization, key derivation and expiry
arithmetic live here so ingest and query agree on them by construction.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

from dateutil.relativedelta import relativedelta

from orbitalscan.constants import (
    DEFAULT_CURRENCY,
    PROVIDER,
    MembershipStatus,
    Plan,
)

_PLAN_DURATIONS: dict[str, relativedelta] = {
    Plan.MONTHLY.value: relativedelta(months=1),
    Plan.YEARLY.value: relativedelta(years=1),
}


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class MembershipError(Exception):
    """Base exception for membership validation failures."""

    code = "membership_error"


class InvalidPlanError(MembershipError):
    """Plan is not one of the recognized literals."""

    code = "invalid_plan"


class MissingIdentityError(MembershipError):
    """Neither an email nor a wallet was supplied."""

    code = "missing_identity"


# ---------------------------------------------------------------------------
# Normalization
# ---------------------------------------------------------------------------


def _text(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


def _identity_text(value: Any) -> str:
    # Identities must arrive as strings; numbers, lists etc. count as absent.
    if not isinstance(value, str):
        return ""
    return value.strip()


def normalize_email(value: Any) -> str | None:
    """Trim and lower-case an email. Empty or non-string input becomes None."""
    return _identity_text(value).lower() or None


def normalize_wallet(value: Any) -> str | None:
    """Trim a wallet address, preserving its case. Empty or non-string input becomes None."""
    return _identity_text(value) or None


def normalize_plan(value: Any) -> str:
    return ("" if value is None else str(value)).lower()


def normalize_currency(value: Any) -> str:
    return (_text(value) or DEFAULT_CURRENCY).upper()


def coerce_amount(value: Any) -> int | float:
    """Coerce an untrusted amount to a finite number, 0 when that fails."""
    if value is None or isinstance(value, bool):
        return 0
    if isinstance(value, (int, float)):
        number = value
    else:
        try:
            number = float(_text(value))
        except ValueError:
            return 0
    if isinstance(number, float) and not math.isfinite(number):
        return 0
    return number


def derive_identity_key(email: str | None, wallet: str | None) -> str:
    """Return the store key for an identity. Email wins when both are set.

    Both arguments must already be normalized. Wallet keys are lower-cased
    so checksummed and plain addresses resolve to the same record.
    """
    if email:
        return f"email:{email}"
    if wallet:
        return f"wallet:{wallet.lower()}"
    raise MissingIdentityError("email or wallet required")


# ---------------------------------------------------------------------------
# Time
# ---------------------------------------------------------------------------


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def compute_expiry(started_at: datetime, plan: str) -> datetime:
    """Advance ``started_at`` by one calendar month or year.

    Month-end overflow clamps to the last day of the target month, so
    Jan 31 + 1 month is Feb 28 (or 29) and Feb 29 + 1 year is Feb 28.
    """
    duration = _PLAN_DURATIONS.get(plan)
    if duration is None:
        raise InvalidPlanError(
            f"plan must be one of: {', '.join(p.value for p in Plan)}"
        )
    return started_at + duration


def parse_timestamp(value: Any) -> datetime | None:
    """Parse an ISO-8601 timestamp to an aware UTC datetime, None if invalid.

    Naive timestamps are taken to be UTC.
    """
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str) and value.strip():
        try:
            parsed = datetime.fromisoformat(value.strip())
        except ValueError:
            return None
    else:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def is_active(expires_at: Any, now: datetime) -> bool:
    """True only if ``expires_at`` parses and lies strictly after ``now``."""
    expiry = parse_timestamp(expires_at)
    if expiry is None:
        return False
    return expiry > now


# ---------------------------------------------------------------------------
# MembershipRecord
# ---------------------------------------------------------------------------


@dataclass
class MembershipRecord:
    """The single persisted entity: one active membership per identity.

    Re-ingesting for the same ``identity_key`` replaces the record outright.
    """

    identity_key: str
    plan: str
    started_at: str  # ISO datetime
    expires_at: str  # ISO datetime
    email: str | None = None
    wallet: str | None = None
    amount: int | float = 0
    currency: str = DEFAULT_CURRENCY
    tx_hash: str | None = None
    provider: str = PROVIDER
    status: str = MembershipStatus.ACTIVE.value

    @classmethod
    def activate(
        cls,
        *,
        plan: str,
        email: str | None,
        wallet: str | None,
        started_at: datetime,
        amount: int | float = 0,
        currency: str = DEFAULT_CURRENCY,
        tx_hash: str | None = None,
    ) -> MembershipRecord:
        """Build a validated active record starting at ``started_at``.

        Raises InvalidPlanError before MissingIdentityError, matching the
        order in which ingest reports them.
        """
        expires = compute_expiry(started_at, plan)
        key = derive_identity_key(email, wallet)
        return cls(
            identity_key=key,
            plan=plan,
            started_at=started_at.isoformat(),
            expires_at=expires.isoformat(),
            email=email,
            wallet=wallet,
            amount=amount,
            currency=currency,
            tx_hash=tx_hash,
        )

    def is_active(self, now: datetime) -> bool:
        return is_active(self.expires_at, now)

    def to_dict(self) -> dict[str, Any]:
        return {
            "identity_key": self.identity_key,
            "email": self.email,
            "wallet": self.wallet,
            "plan": self.plan,
            "amount": self.amount,
            "currency": self.currency,
            "tx_hash": self.tx_hash,
            "provider": self.provider,
            "status": self.status,
            "started_at": self.started_at,
            "expires_at": self.expires_at,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> MembershipRecord:
        """Rebuild a record from stored JSON. Unknown columns are ignored."""
        return cls(
            identity_key=str(data.get("identity_key", "")),
            plan=str(data.get("plan", "")),
            started_at=str(data.get("started_at") or ""),
            expires_at=str(data.get("expires_at") or ""),
            email=data.get("email"),
            wallet=data.get("wallet"),
            amount=coerce_amount(data.get("amount")),
            currency=str(data.get("currency") or DEFAULT_CURRENCY),
            tx_hash=data.get("tx_hash"),
            provider=str(data.get("provider") or PROVIDER),
            status=str(data.get("status") or MembershipStatus.ACTIVE.value),
        )
