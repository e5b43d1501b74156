"""Profiles app models.

Defines the Profile model that extends the base user with the operational
role (restaurant manager or delivery partner) and the partner-only fields:
vehicle, availability, rating and delivery counters. String fields default to
empty strings to avoid nulls in API responses.
"""

from decimal import Decimal

from django.conf import settings
from django.core.validators import MaxValueValidator, MinValueValidator, RegexValidator
from django.db import models


class Role(models.TextChoices):
    RESTAURANT_MANAGER = "restaurant_manager", "restaurant_manager"
    DELIVERY_PARTNER = "delivery_partner", "delivery_partner"


class VehicleType(models.TextChoices):
    BIKE = "bike", "bike"
    SCOOTER = "scooter", "scooter"
    BICYCLE = "bicycle", "bicycle"
    CAR = "car", "car"


phone_validator = RegexValidator(r"^\d{10}$", "Please enter a valid 10-digit phone number.")


def default_availability(role: str) -> bool:
    """Partners start out available; managers are never available for work."""
    if role == Role.DELIVERY_PARTNER:
        return True
    if role == Role.RESTAURANT_MANAGER:
        return False
    raise ValueError(f"Unknown role: {role!r}")


class ProfileQuerySet(models.QuerySet):
    def partners(self):
        return self.filter(role=Role.DELIVERY_PARTNER)

    def managers(self):
        return self.filter(role=Role.RESTAURANT_MANAGER)

    def available_partners(self):
        """Active partners that can be picked for a new assignment."""
        return self.partners().filter(is_active=True, is_available=True)


class Profile(models.Model):
    """
    Profile for a single user.

    The role is fixed at registration. `completed_deliveries` counts every
    delivery the partner finished, `rated_deliveries` counts the delivered
    orders that carry a delivery-service rating; `rating` is the mean of
    those ratings.
    """

    user = models.OneToOneField(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="profile",
    )
    role = models.CharField(max_length=32, choices=Role.choices)
    phone = models.CharField(max_length=10, blank=True, default="", validators=[phone_validator])
    vehicle_type = models.CharField(
        max_length=20,
        choices=VehicleType.choices,
        blank=True,
        default="",
    )
    is_active = models.BooleanField(default=True)
    is_available = models.BooleanField(default=False)
    rating = models.DecimalField(
        max_digits=2,
        decimal_places=1,
        default=Decimal("5.0"),
        validators=[MinValueValidator(Decimal("0")), MaxValueValidator(Decimal("5"))],
    )
    completed_deliveries = models.PositiveIntegerField(default=0)
    rated_deliveries = models.PositiveIntegerField(default=0)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = ProfileQuerySet.as_manager()

    class Meta:
        indexes = [
            models.Index(fields=["role"], name="profile_role_idx"),
            models.Index(fields=["role", "is_available"], name="profile_availability_idx"),
        ]

    @classmethod
    def create_for(cls, user, role, **fields):
        """Create the profile for `user` with the role's default availability."""
        fields.setdefault("is_available", default_availability(role))
        return cls.objects.create(user=user, role=role, **fields)

    @property
    def is_partner(self) -> bool:
        return self.role == Role.DELIVERY_PARTNER

    @property
    def is_manager(self) -> bool:
        return self.role == Role.RESTAURANT_MANAGER

    def __str__(self):
        """Readable representation for admin and debugging."""
        return f"Profile<{self.user_id}:{self.user.username} {self.role}>"
