"""Profiles API serializers.

Contains serializers for:
- reading a profile and partially updating it (owner-only),
- listing delivery partners and the short order rows on a partner's page,
- the availability and activation toggles.

String fields never return `null` in responses, but empty strings instead.
"""

from django.contrib.auth import get_user_model
from rest_framework import serializers

from orders.models import Order
from ..models import Profile, Role, VehicleType, phone_validator

User = get_user_model()


# ------------------------------ helpers ------------------------------

def _apply_user_updates(user, data: dict):
    for attr, val in data.items():
        setattr(user, attr, val if val is not None else "")
    if data:
        user.save(update_fields=list(data.keys()))


def _coalesce_fields(data: dict, keys: set):
    for k in keys:
        if data.get(k) is None:
            data[k] = ""


# ------------------------------ serializers ------------------------------

class ProfileDetailSerializer(serializers.ModelSerializer):
    """Read-only detail serializer (coalesces selected string fields to '')."""

    username = serializers.CharField(source="user.username", read_only=True)
    first_name = serializers.CharField(source="user.first_name", read_only=True, allow_blank=True)
    last_name = serializers.CharField(source="user.last_name", read_only=True, allow_blank=True)
    email = serializers.EmailField(source="user.email", read_only=True)

    class Meta:
        model = Profile
        fields = [
            "user",
            "username",
            "first_name",
            "last_name",
            "email",
            "role",
            "phone",
            "vehicle_type",
            "is_active",
            "is_available",
            "rating",
            "completed_deliveries",
            "rated_deliveries",
            "created_at",
        ]
        read_only_fields = fields

    _no_null = {"first_name", "last_name", "email", "phone", "vehicle_type"}

    def to_representation(self, instance: Profile):
        data = super().to_representation(instance)
        _coalesce_fields(data, self._no_null)
        return data


class ProfilePatchSerializer(serializers.ModelSerializer):
    """
    Partial update of the caller's own profile: contact fields and, for
    partners, the vehicle type. Role, availability, rating and counters are
    not writable here.
    """

    first_name = serializers.CharField(
        source="user.first_name", required=False, allow_blank=True, allow_null=True, max_length=50
    )
    last_name = serializers.CharField(
        source="user.last_name", required=False, allow_blank=True, allow_null=True, max_length=50
    )
    email = serializers.EmailField(source="user.email", required=False)
    phone = serializers.CharField(required=False, validators=[phone_validator])
    vehicle_type = serializers.ChoiceField(choices=VehicleType.choices, required=False)

    class Meta:
        model = Profile
        fields = ["user", "first_name", "last_name", "email", "phone", "vehicle_type"]
        read_only_fields = ["user"]

    def validate_email(self, value):
        qs = User.objects.filter(email__iexact=value)
        if self.instance is not None:
            qs = qs.exclude(pk=self.instance.user_id)
        if qs.exists():
            raise serializers.ValidationError("Email already in use.")
        return value

    def validate_vehicle_type(self, value):
        if self.instance is not None and self.instance.role != Role.DELIVERY_PARTNER:
            raise serializers.ValidationError("Only delivery partners have a vehicle type.")
        return value

    def update(self, instance: Profile, validated_data):
        """Handle nested user fields and normalize None -> ''."""
        _apply_user_updates(instance.user, validated_data.pop("user", {}))
        for attr, val in validated_data.items():
            setattr(instance, attr, val if val is not None else "")
        instance.save()
        return instance

    def to_representation(self, instance: Profile):
        return ProfileDetailSerializer(instance, context=self.context).data


class PartnerListSerializer(serializers.ModelSerializer):
    """Partner row for the managers' list and pick-list (no nulls)."""

    id = serializers.IntegerField(source="user_id", read_only=True)
    username = serializers.CharField(source="user.username", read_only=True)
    first_name = serializers.CharField(source="user.first_name", read_only=True, allow_blank=True)
    last_name = serializers.CharField(source="user.last_name", read_only=True, allow_blank=True)
    email = serializers.EmailField(source="user.email", read_only=True)

    class Meta:
        model = Profile
        fields = [
            "id",
            "username",
            "first_name",
            "last_name",
            "email",
            "phone",
            "vehicle_type",
            "is_active",
            "is_available",
            "rating",
            "completed_deliveries",
            "rated_deliveries",
        ]

    _no_null = {"first_name", "last_name", "email", "phone", "vehicle_type"}

    def to_representation(self, instance):
        data = super().to_representation(instance)
        _coalesce_fields(data, self._no_null)
        return data


class RecentOrderSerializer(serializers.ModelSerializer):
    """Short order row on a partner's detail page."""

    restaurant_manager = serializers.SerializerMethodField()

    class Meta:
        model = Order
        fields = [
            "id",
            "order_id",
            "status",
            "customer_name",
            "total_amount",
            "order_placed_at",
            "delivered_at",
            "restaurant_manager",
        ]

    def get_restaurant_manager(self, obj):
        manager = obj.restaurant_manager
        return {"id": manager.id, "first_name": manager.first_name, "last_name": manager.last_name}


class AvailabilitySerializer(serializers.Serializer):
    is_available = serializers.BooleanField()


class PartnerActivationSerializer(serializers.Serializer):
    is_active = serializers.BooleanField()
