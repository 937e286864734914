from orbitalscan.handlers.membership import handle_get_membership
from orbitalscan.handlers.webhook import handle_payment_webhook

__all__ = ["handle_get_membership", "handle_payment_webhook"]
