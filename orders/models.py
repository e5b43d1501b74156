"""Orders app models.

Defines the Order model and its child rows: the ordered items, the
append-only tracking notes and the one-time rating. An order is owned by the
restaurant manager who created it and may be bound to one delivery partner.
Status changes go through `orders.lifecycle`; the model itself only stores
state and derives read-only views of it.
"""

import random
import time
from datetime import timedelta

from django.conf import settings
from django.core.validators import (
    MaxLengthValidator,
    MaxValueValidator,
    MinValueValidator,
    RegexValidator,
)
from django.db import models
from django.db.models import Q
from django.utils import timezone

from common.conf import get_setting
from profiles.models import phone_validator

ORDER_ID_PATTERN = r"^ORD\d{6}$"


def generate_order_id() -> str:
    """ORD + last four digits of the millisecond clock + a two-digit random pad."""
    stamp = str(int(time.time() * 1000))[-4:]
    pad = f"{random.randint(0, 99):02d}"
    return f"ORD{stamp}{pad}"


class Order(models.Model):
    """A single customer order moving through preparation and delivery."""

    class Status(models.TextChoices):
        PENDING = "PENDING", "PENDING"
        PREP = "PREP", "PREP"
        READY = "READY", "READY"
        PICKED = "PICKED", "PICKED"
        ON_ROUTE = "ON_ROUTE", "ON_ROUTE"
        DELIVERED = "DELIVERED", "DELIVERED"
        CANCELLED = "CANCELLED", "CANCELLED"

    class Priority(models.TextChoices):
        LOW = "LOW", "LOW"
        MEDIUM = "MEDIUM", "MEDIUM"
        HIGH = "HIGH", "HIGH"
        URGENT = "URGENT", "URGENT"

    # Progression shown to clients; CANCELLED sits outside it.
    STATUS_FLOW = (
        Status.PENDING,
        Status.PREP,
        Status.READY,
        Status.PICKED,
        Status.ON_ROUTE,
        Status.DELIVERED,
    )

    order_id = models.CharField(
        max_length=9,
        unique=True,
        editable=False,
        validators=[RegexValidator(ORDER_ID_PATTERN, "Order ID must be in format ORD123456.")],
    )

    customer_name = models.CharField(max_length=100)
    customer_phone = models.CharField(max_length=10, validators=[phone_validator])
    street = models.CharField(max_length=200)
    city = models.CharField(max_length=50)
    pincode = models.CharField(
        max_length=6,
        validators=[RegexValidator(r"^\d{6}$", "Pincode must be exactly 6 digits.")],
    )

    total_amount = models.DecimalField(
        max_digits=10, decimal_places=2, validators=[MinValueValidator(0)]
    )
    prep_time = models.PositiveSmallIntegerField(
        validators=[MinValueValidator(5), MaxValueValidator(120)]
    )
    estimated_delivery_time = models.PositiveSmallIntegerField(
        default=30, validators=[MinValueValidator(10), MaxValueValidator(60)]
    )
    dispatch_time = models.DateTimeField(null=True, blank=True)

    status = models.CharField(
        max_length=20, choices=Status.choices, default=Status.PENDING
    )
    priority = models.CharField(
        max_length=10, choices=Priority.choices, default=Priority.MEDIUM
    )

    restaurant_manager = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="orders_managed",
    )
    delivery_partner = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="orders_delivered",
        null=True,
        blank=True,
    )

    order_placed_at = models.DateTimeField(default=timezone.now)
    prep_started_at = models.DateTimeField(null=True, blank=True)
    ready_at = models.DateTimeField(null=True, blank=True)
    picked_at = models.DateTimeField(null=True, blank=True)
    on_route_at = models.DateTimeField(null=True, blank=True)
    delivered_at = models.DateTimeField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ("-order_placed_at", "-id")
        indexes = [
            models.Index(fields=["status"], name="order_status_idx"),
            models.Index(fields=["priority", "order_placed_at"], name="order_priority_idx"),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=["delivery_partner"],
                condition=Q(status__in=["PICKED", "ON_ROUTE"]),
                name="one_active_delivery_per_partner",
            )
        ]

    def save(self, *args, **kwargs):
        if not self.order_id:
            self.order_id = self._unique_order_id()
        if self.dispatch_time is None and self.prep_time:
            self.dispatch_time = self.order_placed_at + timedelta(minutes=self.prep_time)
        super().save(*args, **kwargs)

    @classmethod
    def _unique_order_id(cls) -> str:
        candidate = generate_order_id()
        for _ in range(max(int(get_setting("ORDER_ID_ATTEMPTS")) - 1, 0)):
            if not cls.objects.filter(order_id=candidate).exists():
                break
            candidate = generate_order_id()
        return candidate

    @property
    def total_estimated_time(self) -> int:
        return self.prep_time + self.estimated_delivery_time

    @property
    def order_age(self) -> int:
        """Minutes since the order was placed."""
        return int((timezone.now() - self.order_placed_at).total_seconds() // 60)

    def tracking_info(self) -> dict:
        if self.status in self.STATUS_FLOW:
            index = self.STATUS_FLOW.index(self.status)
            next_status = self.STATUS_FLOW[index + 1] if index + 1 < len(self.STATUS_FLOW) else None
        else:
            index, next_status = -1, None
        return {
            "current_status": self.status,
            "current_step": index + 1,
            "total_steps": len(self.STATUS_FLOW),
            "next_status": next_status,
            "is_completed": self.status == self.Status.DELIVERED,
            "estimated_completion": self.dispatch_time,
        }

    def __str__(self) -> str:
        """Readable representation for admin and debugging."""
        return f"Order<{self.order_id} {self.status}>"


class OrderItem(models.Model):
    """One line of an order (price captured at order time)."""

    class Category(models.TextChoices):
        APPETIZER = "appetizer", "appetizer"
        MAIN_COURSE = "main_course", "main_course"
        DESSERT = "dessert", "dessert"
        BEVERAGE = "beverage", "beverage"
        SIDE_DISH = "side_dish", "side_dish"

    order = models.ForeignKey(Order, on_delete=models.CASCADE, related_name="items")
    name = models.CharField(max_length=100)
    quantity = models.PositiveSmallIntegerField(
        validators=[MinValueValidator(1), MaxValueValidator(20)]
    )
    price = models.DecimalField(
        max_digits=10, decimal_places=2, validators=[MinValueValidator(0)]
    )
    category = models.CharField(
        max_length=20, choices=Category.choices, default=Category.MAIN_COURSE
    )
    special_instructions = models.CharField(max_length=200, blank=True, default="")

    class Meta:
        ordering = ("id",)

    @property
    def line_total(self):
        return self.price * self.quantity

    def __str__(self) -> str:
        return f"OrderItem<{self.order_id} {self.quantity}x {self.name}>"


class TrackingNote(models.Model):
    """Append-only log entry on an order."""

    order = models.ForeignKey(Order, on_delete=models.CASCADE, related_name="tracking_notes")
    note = models.TextField()
    timestamp = models.DateTimeField(default=timezone.now)
    added_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        related_name="tracking_notes",
        null=True,
        blank=True,
    )

    class Meta:
        ordering = ("timestamp", "id")

    def __str__(self) -> str:
        return f"TrackingNote<{self.order_id} {self.timestamp:%Y-%m-%d %H:%M}>"


class OrderRating(models.Model):
    """Feedback on a delivered order. At most one per order, never edited."""

    order = models.OneToOneField(Order, on_delete=models.CASCADE, related_name="rating")
    food_quality = models.PositiveSmallIntegerField(
        null=True, blank=True, validators=[MinValueValidator(1), MaxValueValidator(5)]
    )
    delivery_service = models.PositiveSmallIntegerField(
        null=True, blank=True, validators=[MinValueValidator(1), MaxValueValidator(5)]
    )
    overall_experience = models.PositiveSmallIntegerField(
        validators=[MinValueValidator(1), MaxValueValidator(5)]
    )
    feedback = models.TextField(blank=True, default="", validators=[MaxLengthValidator(500)])
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self) -> str:
        return f"OrderRating<{self.order_id} {self.overall_experience}>"
