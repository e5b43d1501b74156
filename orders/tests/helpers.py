from decimal import Decimal

from django.contrib.auth import get_user_model
from rest_framework.authtoken.models import Token

from orders.models import Order, OrderItem
from profiles.models import Profile, Role, VehicleType

User = get_user_model()


def create_user_with_role(username, role, **profile_fields):
    user = User.objects.create_user(username, f"{username}@example.com", "pass1234")
    if role == Role.DELIVERY_PARTNER:
        profile_fields.setdefault("vehicle_type", VehicleType.BIKE)
    Profile.create_for(user, role, phone="9876543210", **profile_fields)
    token = Token.objects.create(user=user)
    return user, token


def create_manager(username="manager"):
    return create_user_with_role(username, Role.RESTAURANT_MANAGER)


def create_partner(username="partner", **profile_fields):
    return create_user_with_role(username, Role.DELIVERY_PARTNER, **profile_fields)


def create_order(manager, partner=None, status=Order.Status.PENDING, **fields):
    fields.setdefault("customer_name", "Asha Verma")
    fields.setdefault("customer_phone", "9123456789")
    fields.setdefault("street", "12 MG Road")
    fields.setdefault("city", "Bengaluru")
    fields.setdefault("pincode", "560001")
    fields.setdefault("total_amount", Decimal("450.00"))
    fields.setdefault("prep_time", 20)
    order = Order.objects.create(
        restaurant_manager=manager,
        delivery_partner=partner,
        status=status,
        **fields,
    )
    OrderItem.objects.create(order=order, name="Paneer Tikka", quantity=2, price=Decimal("225.00"))
    return order


def order_payload(**overrides):
    payload = {
        "customer_name": "Asha Verma",
        "customer_phone": "9123456789",
        "customer_address": {"street": "12 MG Road", "city": "Bengaluru", "pincode": "560001"},
        "items": [
            {"name": "Paneer Tikka", "quantity": 2, "price": "225.00", "category": "appetizer"},
            {"name": "Masala Chai", "quantity": 1, "price": "40.00", "category": "beverage"},
        ],
        "prep_time": 20,
    }
    payload.update(overrides)
    return payload


class RecordingLayer:
    """Channel layer stand-in that records group traffic."""

    def __init__(self):
        self.sent = []
        self.added = []
        self.discarded = []

    async def group_send(self, group, message):
        self.sent.append((group, message))

    async def group_add(self, group, channel):
        self.added.append((group, channel))

    async def group_discard(self, group, channel):
        self.discarded.append((group, channel))

    def events(self, group=None):
        return [
            (g, m["event"], m["payload"])
            for g, m in self.sent
            if group is None or g == group
        ]
