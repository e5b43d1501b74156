"""WebSocket consumer for order and partner-availability events.

Protocol (JSON frames):

- client -> server ``{"type": "authenticate", "userId": ..., "role": ...}``
  joins the role channel and the user channel; answered with
  ``{"event": "authenticated", "data": {...}}``.
- server -> client ``{"event": <name>, "data": <payload>}`` for every event
  routed to one of the joined channels.
- anything malformed is answered with ``{"event": "error", "data": {...}}``;
  the socket stays open.
"""

import logging

from channels.generic.websocket import AsyncJsonWebsocketConsumer

from profiles.models import Role

from .fanout import get_fanout, valid_user_id

logger = logging.getLogger(__name__)


class OrderEventsConsumer(AsyncJsonWebsocketConsumer):
    """One client connection. Identity is declared once via `authenticate`."""

    async def connect(self):
        self.fanout = get_fanout()
        self.identity = None
        await self.accept()
        logger.debug("Socket %s connected", self.channel_name)

    async def disconnect(self, code):
        await self.fanout.deregister_connection(self.channel_name)
        self.identity = None

    async def receive_json(self, content, **kwargs):
        if not isinstance(content, dict):
            await self._error("Messages must be JSON objects.")
            return
        message_type = content.get("type")
        if message_type == "authenticate":
            await self._authenticate(content)
            return
        await self._error(f"Unknown message type: {message_type!r}.")

    async def _authenticate(self, content):
        user_id = content.get("userId")
        role = content.get("role")
        if user_id in (None, ""):
            await self._error("userId is required.")
            return
        if not valid_user_id(user_id):
            await self._error(
                "userId must be a number or a string of letters, digits, '_', '-' or '.'."
            )
            return
        if role not in Role.values:
            await self._error(f"Unknown role: {role!r}.", allowed=list(Role.values))
            return
        connection = await self.fanout.register_connection(user_id, role, self.channel_name)
        self.identity = connection
        await self.send_json(
            {
                "event": "authenticated",
                "data": {"userId": connection.user_id, "role": connection.role},
            }
        )

    async def _error(self, message, **extra):
        await self.send_json({"event": "error", "data": {"detail": message, **extra}})

    # --- channel layer handlers ---

    async def realtime_event(self, message):
        await self.send_json({"event": message["event"], "data": message["payload"]})
