"""Order operations used by the API views.

Each operation runs in one transaction with the order row (and, where a
partner is affected, the partner's profile row) locked, applies the lifecycle
rules from `orders.lifecycle`, and queues the realtime notifications for
after commit. Failures raise the domain errors in `common.exceptions`.
"""

import logging
from decimal import Decimal

from django.db import IntegrityError, transaction

from common.conf import get_setting
from common.exceptions import (
    AlreadyRated,
    InvalidState,
    NotAssigned,
    PartnerBusy,
    TerminalState,
)
from profiles.models import Role

from . import events, lifecycle
from .assignment import assign_partner, ensure_owner, lock_order, lock_partner  # noqa: F401
from .models import Order, OrderItem, OrderRating, TrackingNote

logger = logging.getLogger(__name__)

Status = Order.Status

EDITABLE_FIELDS = ("prep_time", "estimated_delivery_time", "priority")


def populated(order_pk) -> Order:
    """Reload an order with the relations the output serializer walks."""
    return (
        Order.objects.select_related(
            "restaurant_manager__profile", "delivery_partner__profile", "rating"
        )
        .prefetch_related("items", "tracking_notes__added_by__profile")
        .get(pk=order_pk)
    )


def _items_total(items) -> Decimal:
    return sum((Decimal(item["price"]) * item["quantity"] for item in items), Decimal("0"))


def create_order(manager, data) -> Order:
    """Create a PENDING order owned by `manager`."""
    data = dict(data)
    items = data.pop("items")
    address = data.pop("customer_address")
    total_amount = data.pop("total_amount", None)
    if total_amount is None:
        total_amount = _items_total(items)

    with transaction.atomic():
        order = Order.objects.create(
            restaurant_manager=manager,
            street=address["street"],
            city=address["city"],
            pincode=address["pincode"],
            total_amount=total_amount,
            status=Status.PENDING,
            **data,
        )
        OrderItem.objects.bulk_create([OrderItem(order=order, **item) for item in items])
        order = populated(order.pk)
        events.emit_order_updated(order, events.ORDER_CREATED)

    logger.info(
        "Order %s created by manager %s (total %s, prep %s min)",
        order.order_id,
        manager.id,
        order.total_amount,
        order.prep_time,
    )
    return order


def update_order_fields(order_pk, manager, changes) -> Order:
    """Manager edit of prep time, delivery estimate, priority and status."""
    with transaction.atomic():
        order = lock_order(order_pk)
        ensure_owner(order, manager)
        requested = changes.get("status")
        if lifecycle.is_terminal(order.status):
            raise TerminalState(order.status, requested)
        if order.status not in lifecycle.EDITABLE_STATUSES:
            raise InvalidState(
                "Order can no longer be edited at this stage.", current_status=order.status
            )

        changed = []
        for name in EDITABLE_FIELDS:
            if name in changes and getattr(order, name) != changes[name]:
                setattr(order, name, changes[name])
                changed.append(name)
        if "prep_time" in changed and get_setting("RECOMPUTE_DISPATCH_ON_EDIT"):
            lifecycle.recompute_dispatch_time(order)
            changed.append("dispatch_time")

        if requested and requested != order.status:
            changed += lifecycle.apply_status(order, requested, Role.RESTAURANT_MANAGER)

        if changed:
            order.save(update_fields=changed + ["updated_at"])
            if order.status == Status.CANCELLED:
                _release_assigned_partner(order)
            events.emit_order_updated(populated(order.pk), events.ORDER_UPDATED)
    return populated(order_pk)


def cancel_order(order_pk, manager) -> Order:
    """Cancel a PENDING/PREP order and free its partner, if any."""
    with transaction.atomic():
        order = lock_order(order_pk)
        ensure_owner(order, manager)
        changed = lifecycle.apply_status(order, Status.CANCELLED, Role.RESTAURANT_MANAGER)
        order.save(update_fields=changed + ["updated_at"])
        _release_assigned_partner(order)
        events.emit_order_updated(populated(order.pk), events.ORDER_CANCELLED)
    return populated(order_pk)


def _release_assigned_partner(order):
    if not order.delivery_partner_id:
        return
    profile = lock_partner(order.delivery_partner_id)
    if profile is None:
        return
    lifecycle.release_partner(profile)
    events.emit_partner_availability(profile.user_id, True)


def update_partner_order_status(order_pk, partner, requested, notes="") -> Order:
    """Status change by the assigned partner (READY -> PICKED -> ON_ROUTE -> DELIVERED)."""
    with transaction.atomic():
        order = lock_order(order_pk)
        if order.delivery_partner_id != partner.id:
            raise NotAssigned("You are not assigned to this order.", current_status=order.status)
        profile = lock_partner(partner.id)

        if requested == Status.PICKED:
            busy = lifecycle.active_deliveries(partner.id, exclude_pk=order.pk).count()
            if busy:
                raise PartnerBusy(
                    "Finish the current delivery before picking up another order.",
                    current_status=order.status,
                    active_orders=busy,
                )

        changed = lifecycle.apply_status(order, requested, Role.DELIVERY_PARTNER)
        try:
            with transaction.atomic():
                order.save(update_fields=changed + ["updated_at"])
        except IntegrityError:
            raise PartnerBusy(
                "Partner already has an active delivery.", current_status=order.status
            )

        if notes:
            TrackingNote.objects.create(order=order, note=notes, added_by=partner)

        if requested == Status.DELIVERED and profile is not None:
            lifecycle.release_partner(profile, delivered=True)
            events.emit_partner_availability(profile.user_id, True)

        events.emit_order_updated(populated(order.pk), events.STATUS_UPDATED)
    return populated(order_pk)


def submit_rating(order_pk, manager, data) -> Order:
    """Rate a delivered order once; refresh the partner's aggregate rating."""
    with transaction.atomic():
        order = lock_order(order_pk)
        ensure_owner(order, manager)
        if order.status != Status.DELIVERED:
            raise InvalidState("Can only rate completed orders.", current_status=order.status)
        if OrderRating.objects.filter(order_id=order.pk).exists():
            raise AlreadyRated("Order has already been rated.", current_status=order.status)

        rating = OrderRating.objects.create(order=order, **data)
        if order.delivery_partner_id and rating.delivery_service is not None:
            profile = lock_partner(order.delivery_partner_id)
            if profile is not None:
                lifecycle.recompute_partner_rating(profile)

        events.emit_order_updated(populated(order.pk), events.ORDER_RATED)
    logger.info("Order %s rated by manager %s", order.order_id, manager.id)
    return populated(order_pk)
