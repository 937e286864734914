"""OrbitalScan membership: Helio crypto payments in, active memberships out.

Two stateless handlers over one membership store: a payment webhook that
activates memberships and a read-only membership query.
"""

__version__ = "0.1.0"

from orbitalscan.auth import WebhookSecretMissingError, authenticate_notification
from orbitalscan.config import MembershipConfig
from orbitalscan.constants import PROVIDER, MembershipStatus, Plan
from orbitalscan.handlers import handle_get_membership, handle_payment_webhook
from orbitalscan.http_types import HandlerRequest, HandlerResponse
from orbitalscan.membership import (
    InvalidPlanError,
    MembershipError,
    MembershipRecord,
    MissingIdentityError,
    compute_expiry,
    derive_identity_key,
)
from orbitalscan.store_backend import MembershipStore, StoreError
from orbitalscan.stores import InMemoryStore, SupabaseStore

__all__ = [
    "MembershipConfig",
    "MembershipRecord",
    "MembershipStatus",
    "Plan",
    "PROVIDER",
    "MembershipError",
    "InvalidPlanError",
    "MissingIdentityError",
    "WebhookSecretMissingError",
    "MembershipStore",
    "StoreError",
    "InMemoryStore",
    "SupabaseStore",
    "HandlerRequest",
    "HandlerResponse",
    "authenticate_notification",
    "compute_expiry",
    "derive_identity_key",
    "handle_get_membership",
    "handle_payment_webhook",
]
