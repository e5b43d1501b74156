"""WebSocket URL routing."""

from django.urls import re_path

from . import consumers

websocket_urlpatterns = [
    # Order and partner-availability events for managers and partners
    re_path(r"^ws/orders/$", consumers.OrderEventsConsumer.as_asgi()),
]
