"""Assignment coordinator: binds a delivery partner to an order.

Assignment and availability are coupled so the managers' "available
partners" list is always an accurate pick-list. Both rows are locked for the
duration of the transaction, which closes the window in which two concurrent
assignments could both see the same partner as available.
"""

import logging

from django.db import transaction

from common.exceptions import (
    InvalidState,
    NotFound,
    PartnerBusy,
    PartnerUnavailable,
    PermissionDenied,
)
from profiles.models import Profile, Role

from . import events, lifecycle
from .models import Order

logger = logging.getLogger(__name__)


def lock_order(order_pk) -> Order:
    order = Order.objects.select_for_update().filter(pk=order_pk).first()
    if order is None:
        raise NotFound("Order not found.")
    return order


def lock_partner(partner_id):
    """Locked partner profile, or None when the user is not a delivery partner."""
    return (
        Profile.objects.select_for_update()
        .filter(user_id=partner_id, role=Role.DELIVERY_PARTNER)
        .first()
    )


def ensure_owner(order, user):
    if order.restaurant_manager_id != user.id:
        raise PermissionDenied("Access denied to this order.", current_status=order.status)


def assign_partner(order_pk, partner_id, caller) -> Order:
    """Assign `partner_id` to the order owned by `caller`; return the order."""
    with transaction.atomic():
        order = lock_order(order_pk)
        ensure_owner(order, caller)
        if order.status not in lifecycle.ASSIGNABLE_STATUSES:
            raise InvalidState(
                "Order cannot be reassigned at this stage.", current_status=order.status
            )

        partner = lock_partner(partner_id)
        if partner is None:
            raise NotFound("Delivery partner not found.")
        if partner.user_id == order.delivery_partner_id:
            logger.info("Order %s already assigned to partner %s", order.order_id, partner.user_id)
            return Order.objects.select_related(
                "restaurant_manager__profile", "delivery_partner__profile", "rating"
            ).get(pk=order.pk)
        if not partner.is_active or not partner.is_available:
            raise PartnerUnavailable(
                "Partner is not available.",
                partner_id=partner.user_id,
                is_active=partner.is_active,
                is_available=partner.is_available,
            )
        busy = lifecycle.active_deliveries(partner.user_id).count()
        if busy:
            raise PartnerBusy(
                "Partner already has active deliveries.",
                partner_id=partner.user_id,
                active_orders=busy,
            )

        previous_id = order.delivery_partner_id
        order.delivery_partner_id = partner.user_id
        changed = ["delivery_partner", "updated_at"]
        if order.status == Order.Status.PENDING:
            changed += lifecycle.apply_status(order, Order.Status.PREP, Role.RESTAURANT_MANAGER)
        order.save(update_fields=changed)

        partner.is_available = False
        partner.save(update_fields=["is_available", "updated_at"])
        events.emit_partner_availability(partner.user_id, False)

        if previous_id and previous_id != partner.user_id:
            previous = lock_partner(previous_id)
            if previous is not None:
                lifecycle.release_partner(previous)
                events.emit_partner_availability(previous.user_id, True)

        logger.info(
            "Order %s assigned to partner %s by manager %s (previous: %s)",
            order.order_id,
            partner.user_id,
            caller.id,
            previous_id,
        )
        order = Order.objects.select_related(
            "restaurant_manager__profile", "delivery_partner__profile", "rating"
        ).get(pk=order.pk)
        events.emit_order_updated(order, events.PARTNER_ASSIGNED)
    return order
