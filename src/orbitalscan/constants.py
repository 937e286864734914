"""Constants for Helio-backed membership activation."""

from enum import Enum


PROVIDER = "helio"
SIGNATURE_HEADER = "X-Helio-Signature"
PAYMENT_SUCCEEDED_EVENT = "payment_succeeded"
DEFAULT_CURRENCY = "USDT"
DEFAULT_STORE_NAMESPACE = "members"


class Plan(str, Enum):
    """Billing plans a payment can activate."""

    MONTHLY = "monthly"
    YEARLY = "yearly"


class MembershipStatus(str, Enum):
    ACTIVE = "active"
