"""Realtime fanout over the Channels layer.

Two kinds of addressable channel exist: a role channel per role value
(group ``role_<role>``) reaching every connected identity of that role, and a
user channel per user id (group ``user_<id>``) reaching only that user's
connections. Delivery is best-effort and at-most-once; a client that is not
connected when an event fires never sees it and has to refetch.

The fanout knows nothing about orders. Emitters hand it a ready-made,
JSON-serialisable payload.
"""

import logging
import re
from dataclasses import dataclass
from typing import Optional

from asgiref.sync import async_to_sync
from channels.layers import get_channel_layer
from django.apps import apps
from django.utils import timezone

from profiles.models import Role

logger = logging.getLogger(__name__)

ORDER_UPDATED = "order_updated"
PARTNER_AVAILABILITY_UPDATED = "partner_availability_updated"

# Channels dispatches group messages to the consumer's `realtime_event` handler.
MESSAGE_TYPE = "realtime.event"

# Channels rejects group names outside this charset or 100+ characters long.
GROUP_NAME_RE = re.compile(r"^[a-zA-Z0-9_.-]+\Z")
MAX_GROUP_NAME_LENGTH = 99


def role_group(role) -> str:
    return f"role_{role}"


def user_group(user_id) -> str:
    return f"user_{user_id}"


def valid_user_id(user_id) -> bool:
    """Whether `user_id` can name a user channel (int or plain token string)."""
    if isinstance(user_id, bool) or not isinstance(user_id, (int, str)) or user_id == "":
        return False
    name = user_group(user_id)
    return bool(GROUP_NAME_RE.match(name)) and len(name) <= MAX_GROUP_NAME_LENGTH


@dataclass(frozen=True)
class Connection:
    user_id: str
    role: str
    handle: str


class ConnectionRegistry:
    """Which identity sits behind each live connection handle."""

    def __init__(self):
        self._by_handle = {}

    def register(self, user_id, role, handle) -> Connection:
        connection = Connection(user_id=str(user_id), role=str(role), handle=handle)
        self._by_handle[handle] = connection
        return connection

    def deregister(self, handle) -> Optional[Connection]:
        return self._by_handle.pop(handle, None)

    def get(self, handle) -> Optional[Connection]:
        return self._by_handle.get(handle)

    def connections_for(self, user_id) -> list:
        user_id = str(user_id)
        return [c for c in self._by_handle.values() if c.user_id == user_id]

    def connections_with_role(self, role) -> list:
        role = str(role)
        return [c for c in self._by_handle.values() if c.role == role]

    def is_connected(self, user_id) -> bool:
        return bool(self.connections_for(user_id))

    def __len__(self):
        return len(self._by_handle)


class RealtimeFanout:
    """Routes events to role and user channels and tracks connections.

    The channel layer is resolved on each call unless one was passed in, so
    settings overrides apply without rebuilding the fanout.
    """

    def __init__(self, registry=None, channel_layer=None):
        self.registry = registry if registry is not None else ConnectionRegistry()
        self._channel_layer = channel_layer

    @property
    def channel_layer(self):
        return self._channel_layer or get_channel_layer()

    # --- transport -------------------------------------------------------

    def _message(self, event, payload) -> dict:
        return {"type": MESSAGE_TYPE, "event": event, "payload": payload}

    def _send(self, group, event, payload):
        layer = self.channel_layer
        if layer is None:
            logger.warning("No channel layer configured; dropping %s for %s", event, group)
            return False
        async_to_sync(layer.group_send)(group, self._message(event, payload))
        logger.debug("Broadcast %s to %s", event, group)
        return True

    def broadcast_to_role(self, role, event, payload):
        return self._send(role_group(role), event, payload)

    def broadcast_to_user(self, user_id, event, payload):
        return self._send(user_group(user_id), event, payload)

    async def register_connection(self, user_id, role, handle) -> Connection:
        """Join the role and user groups; replaces an earlier identity on the handle."""
        if self.registry.get(handle) is not None:
            await self.deregister_connection(handle)
        layer = self.channel_layer
        await layer.group_add(role_group(role), handle)
        await layer.group_add(user_group(user_id), handle)
        connection = self.registry.register(user_id, role, handle)
        logger.info(
            "Connection %s authenticated as user %s (%s)", handle, connection.user_id, role
        )
        return connection

    async def deregister_connection(self, handle) -> Optional[Connection]:
        connection = self.registry.deregister(handle)
        if connection is None:
            return None
        layer = self.channel_layer
        await layer.group_discard(role_group(connection.role), handle)
        await layer.group_discard(user_group(connection.user_id), handle)
        logger.info("Connection %s for user %s closed", handle, connection.user_id)
        return connection

    # --- events ----------------------------------------------------------

    def order_updated(self, payload):
        """Every manager sees every order event; the assigned partner sees their own."""
        self.broadcast_to_role(Role.RESTAURANT_MANAGER, ORDER_UPDATED, payload)
        partner_id = payload.get("deliveryPartnerId")
        if partner_id:
            self.broadcast_to_user(partner_id, ORDER_UPDATED, payload)

    def partner_availability_updated(self, partner_id, is_available):
        payload = {
            "partnerId": partner_id,
            "isAvailable": is_available,
            "timestamp": timezone.now().isoformat(),
        }
        self.broadcast_to_role(Role.RESTAURANT_MANAGER, PARTNER_AVAILABILITY_UPDATED, payload)
        return payload


def get_fanout() -> RealtimeFanout:
    """The process-wide fanout, owned by the realtime app config."""
    return apps.get_app_config("realtime").fanout
