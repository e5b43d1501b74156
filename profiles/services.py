"""Partner availability and activation.

Both flags feed the managers' pick-list of available partners, so every flip
is made under a row lock and announced to managers after commit.
"""

import logging

from django.db import transaction

from common.exceptions import NotFound, PartnerBusy, PartnerUnavailable
from orders import events, lifecycle
from orders.assignment import lock_partner

logger = logging.getLogger(__name__)


def set_partner_availability(partner, is_available: bool):
    """Partner toggles their own availability.

    Refused in either direction while the partner carries a PICKED or
    ON_ROUTE order; delivery itself puts them back online.
    """
    with transaction.atomic():
        profile = lock_partner(partner.id)
        if profile is None:
            raise NotFound("Delivery partner not found.")
        if is_available and not profile.is_active:
            raise PartnerUnavailable(
                "Deactivated partners cannot go online.", partner_id=partner.id, is_active=False
            )
        busy = lifecycle.active_deliveries(partner.id).count()
        if busy:
            detail = (
                "Cannot go online while carrying an order."
                if is_available
                else "Cannot go offline with active deliveries."
            )
            raise PartnerBusy(detail, partner_id=partner.id, active_orders=busy)
        if profile.is_available != is_available:
            profile.is_available = is_available
            profile.save(update_fields=["is_available", "updated_at"])
            events.emit_partner_availability(partner.id, is_available)
            logger.info("Partner %s set availability to %s", partner.id, is_available)
    return profile


def set_partner_active(partner_id, is_active: bool, caller=None):
    """Manager activates or deactivates a partner account.

    Deactivation also takes the partner offline and is refused while the
    partner is carrying an order.
    """
    with transaction.atomic():
        profile = lock_partner(partner_id)
        if profile is None:
            raise NotFound("Delivery partner not found.")
        changed = []
        if not is_active:
            busy = lifecycle.active_deliveries(partner_id).count()
            if busy:
                raise PartnerBusy(
                    "Cannot deactivate a partner with active deliveries.",
                    partner_id=partner_id,
                    active_orders=busy,
                )
            if profile.is_available:
                profile.is_available = False
                changed.append("is_available")
                events.emit_partner_availability(partner_id, False)
        if profile.is_active != is_active:
            profile.is_active = is_active
            changed.append("is_active")
        if changed:
            profile.save(update_fields=changed + ["updated_at"])
            logger.info(
                "Partner %s active=%s (by manager %s)",
                partner_id,
                is_active,
                getattr(caller, "id", None),
            )
    return profile
