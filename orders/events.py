"""Realtime notifications for order and partner changes.

Events are queued with `transaction.on_commit`, so a mutation that rolls back
never notifies anyone. Payload shapes are part of the client contract.
"""

import json
import logging

from django.db import transaction
from django.utils import timezone
from rest_framework.utils.encoders import JSONEncoder

from realtime.fanout import get_fanout

from .api.serializers import OrderOutputSerializer

logger = logging.getLogger(__name__)

ORDER_CREATED = "order_created"
ORDER_UPDATED = "order_updated"
PARTNER_ASSIGNED = "partner_assigned"
STATUS_UPDATED = "status_updated"
ORDER_CANCELLED = "order_cancelled"
ORDER_RATED = "order_rated"


def order_snapshot(order) -> dict:
    """JSON-safe copy of the full order representation."""
    data = OrderOutputSerializer(order).data
    return json.loads(json.dumps(data, cls=JSONEncoder))


def order_event_payload(order, event_type=ORDER_UPDATED) -> dict:
    return {
        "orderId": order.order_id,
        "id": order.pk,
        "status": order.status,
        "deliveryPartnerId": order.delivery_partner_id,
        "restaurantManagerId": order.restaurant_manager_id,
        "eventType": event_type,
        "timestamp": timezone.now().isoformat(),
        "order": order_snapshot(order),
    }


def emit_order_updated(order, event_type=ORDER_UPDATED):
    """Queue an `order_updated` broadcast for after the current transaction."""
    payload = order_event_payload(order, event_type)

    def _send():
        get_fanout().order_updated(payload)
        logger.info("order_updated (%s) emitted for order %s", event_type, order.order_id)

    transaction.on_commit(_send)
    return payload


def emit_partner_availability(partner_id, is_available):
    """Queue a `partner_availability_updated` broadcast for after commit."""

    def _send():
        get_fanout().partner_availability_updated(partner_id, is_available)
        logger.info("Partner %s availability -> %s emitted", partner_id, is_available)

    transaction.on_commit(_send)
