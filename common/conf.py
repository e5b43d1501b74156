"""Access to the project's DELIVERY_HUB settings with defaults applied."""

from decimal import Decimal

from django.conf import settings

DEFAULTS = {
    "RECOMPUTE_DISPATCH_ON_EDIT": False,
    "PARTNER_COMMISSION_RATE": "0.10",
    "ORDER_ID_ATTEMPTS": 5,
    "RECENT_ORDERS_LIMIT": 10,
}


def get_setting(name: str):
    """Return a DELIVERY_HUB value, falling back to the built-in default."""
    if name not in DEFAULTS:
        raise KeyError(f"Unknown DELIVERY_HUB setting: {name}")
    configured = getattr(settings, "DELIVERY_HUB", {}) or {}
    return configured.get(name, DEFAULTS[name])


def commission_rate() -> Decimal:
    return Decimal(str(get_setting("PARTNER_COMMISSION_RATE")))
