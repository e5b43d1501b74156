"""Order lifecycle engine.

Owns the status state machine: which transitions exist, which role may
trigger each one, the stage timestamps stamped on entry, and the partner side
effects of finishing or cancelling an order. Callers are expected to hold the
order and partner rows locked inside a transaction (see `orders.services`
and `orders.assignment`).
"""

import logging
from datetime import timedelta
from decimal import ROUND_HALF_UP, Decimal

from django.db.models import Avg, Count
from django.utils import timezone

from common.exceptions import InvalidTransition, PermissionDenied, TerminalState
from profiles.models import Role

from .models import Order

logger = logging.getLogger(__name__)

Status = Order.Status

# (current, requested) -> role allowed to trigger it
TRANSITIONS = {
    (Status.PENDING, Status.PREP): Role.RESTAURANT_MANAGER,
    (Status.PREP, Status.READY): Role.RESTAURANT_MANAGER,
    (Status.READY, Status.PICKED): Role.DELIVERY_PARTNER,
    (Status.PICKED, Status.ON_ROUTE): Role.DELIVERY_PARTNER,
    (Status.ON_ROUTE, Status.DELIVERED): Role.DELIVERY_PARTNER,
    (Status.PENDING, Status.CANCELLED): Role.RESTAURANT_MANAGER,
    (Status.PREP, Status.CANCELLED): Role.RESTAURANT_MANAGER,
}

TERMINAL_STATUSES = frozenset({Status.DELIVERED, Status.CANCELLED})
EDITABLE_STATUSES = frozenset({Status.PENDING, Status.PREP})
ASSIGNABLE_STATUSES = frozenset({Status.PENDING, Status.PREP, Status.READY})
ACTIVE_DELIVERY_STATUSES = (Status.PICKED, Status.ON_ROUTE)
# Statuses counted as "assigned work" for the partner success rate.
ASSIGNED_STATUSES = (
    Status.READY,
    Status.PICKED,
    Status.ON_ROUTE,
    Status.DELIVERED,
    Status.CANCELLED,
)

STAGE_TIMESTAMPS = {
    Status.PREP: "prep_started_at",
    Status.READY: "ready_at",
    Status.PICKED: "picked_at",
    Status.ON_ROUTE: "on_route_at",
    Status.DELIVERED: "delivered_at",
}


def is_terminal(status) -> bool:
    return status in TERMINAL_STATUSES


def allowed_targets(status, role=None) -> list:
    """Statuses reachable from `status`, optionally limited to one role."""
    return [
        target
        for (current, target), actor in TRANSITIONS.items()
        if current == status and (role is None or actor == role)
    ]


def check_transition(current, requested, role=None):
    """Raise unless `current -> requested` is in the table (and `role` may do it)."""
    if is_terminal(current):
        raise TerminalState(current, requested)
    actor = TRANSITIONS.get((current, requested))
    if actor is None:
        raise InvalidTransition(current, requested)
    if role is not None and actor != role:
        raise PermissionDenied(
            f"Only a {actor} may move an order from {current} to {requested}.",
            current_status=current,
            requested_status=requested,
        )


def stamp_stage(order, now=None):
    """Set the timestamp of the order's current stage if unset; return the field name."""
    field = STAGE_TIMESTAMPS.get(order.status)
    if field is None or getattr(order, field) is not None:
        return None
    setattr(order, field, now or timezone.now())
    return field


def apply_status(order, requested, role=None, now=None) -> list:
    """Validate and apply a transition in memory; return the fields to save."""
    previous = order.status
    check_transition(previous, requested, role)
    order.status = requested
    changed = ["status"]
    stamped = stamp_stage(order, now)
    if stamped:
        changed.append(stamped)
    logger.info("Order %s: %s -> %s", order.order_id, previous, requested)
    return changed


def recompute_dispatch_time(order):
    """Dispatch time = placement time + current prep time."""
    order.dispatch_time = order.order_placed_at + timedelta(minutes=order.prep_time)
    return order.dispatch_time


def release_partner(profile, delivered=False) -> list:
    """Make the partner available again; count the delivery when it completed one."""
    profile.is_available = True
    changed = ["is_available", "updated_at"]
    if delivered:
        profile.completed_deliveries += 1
        changed.append("completed_deliveries")
    profile.save(update_fields=changed)
    logger.info(
        "Partner %s released (delivered=%s, completed=%s)",
        profile.user_id,
        delivered,
        profile.completed_deliveries,
    )
    return changed


def round_rating(value) -> Decimal:
    """Round half-up to one decimal place (4.666 -> 4.7, 4.25 -> 4.3)."""
    return Decimal(str(value)).quantize(Decimal("0.1"), rounding=ROUND_HALF_UP)


def recompute_partner_rating(profile):
    """Recompute the partner's rating from every delivered, rated order.

    Full recomputation over all rated deliveries keeps the value consistent
    no matter how many times it runs. `rated_deliveries` is set to the number
    of orders that contributed; `completed_deliveries` is left alone.
    """
    summary = Order.objects.filter(
        delivery_partner_id=profile.user_id,
        status=Status.DELIVERED,
        rating__delivery_service__isnull=False,
    ).aggregate(avg=Avg("rating__delivery_service"), count=Count("id"))

    count = summary["count"] or 0
    profile.rating = round_rating(summary["avg"]) if count else Decimal("5.0")
    profile.rated_deliveries = count
    profile.save(update_fields=["rating", "rated_deliveries", "updated_at"])
    logger.info(
        "Partner %s rating recomputed: %s over %s rated deliveries",
        profile.user_id,
        profile.rating,
        count,
    )
    return profile.rating


def active_deliveries(partner_id, exclude_pk=None):
    """Orders the partner currently has picked up or on the road."""
    qs = Order.objects.filter(
        delivery_partner_id=partner_id, status__in=ACTIVE_DELIVERY_STATUSES
    )
    if exclude_pk is not None:
        qs = qs.exclude(pk=exclude_pk)
    return qs
