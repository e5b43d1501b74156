"""Orders API serializers.

Input serializers validate the payloads of the order operations (create,
manager field updates, partner assignment, partner status updates, rating);
the output serializer returns the fully populated order, which is also the
snapshot pushed to websocket clients.
"""

from decimal import Decimal

from django.contrib.auth import get_user_model
from django.core.validators import RegexValidator
from rest_framework import serializers

from orders.models import Order, OrderItem, OrderRating, TrackingNote

User = get_user_model()

letters_and_spaces = RegexValidator(
    r"^[a-zA-Z\s]+$", "Only letters and spaces are allowed."
)
indian_mobile = RegexValidator(
    r"^[6-9]\d{9}$", "Please provide a valid 10-digit phone number."
)


# ------------------------------ nested input ------------------------------

class CustomerAddressSerializer(serializers.Serializer):
    street = serializers.CharField(min_length=5, max_length=200)
    city = serializers.CharField(min_length=2, max_length=50, validators=[letters_and_spaces])
    pincode = serializers.RegexField(r"^\d{6}$", error_messages={"invalid": "Pincode must be exactly 6 digits."})


class OrderItemSerializer(serializers.ModelSerializer):
    name = serializers.CharField(min_length=2, max_length=100)
    quantity = serializers.IntegerField(min_value=1, max_value=20)
    price = serializers.DecimalField(max_digits=10, decimal_places=2, min_value=Decimal("0"))

    class Meta:
        model = OrderItem
        fields = ["name", "quantity", "price", "category", "special_instructions"]


# ------------------------------ input ------------------------------

class OrderCreateSerializer(serializers.Serializer):
    """Input serializer for creating an order (restaurant manager only).

    `total_amount` may be omitted; it is then computed from the items.
    """

    customer_name = serializers.CharField(min_length=2, max_length=100, validators=[letters_and_spaces])
    customer_phone = serializers.CharField(validators=[indian_mobile])
    customer_address = CustomerAddressSerializer()
    items = OrderItemSerializer(many=True, allow_empty=False)
    total_amount = serializers.DecimalField(
        max_digits=10, decimal_places=2, min_value=Decimal("0"), required=False
    )
    prep_time = serializers.IntegerField(min_value=5, max_value=120)
    estimated_delivery_time = serializers.IntegerField(min_value=10, max_value=60, required=False)
    priority = serializers.ChoiceField(choices=Order.Priority.choices, required=False)

    def create(self, validated_data):
        """Delegate to the order service with the authenticated manager as owner."""
        from orders import services

        return services.create_order(self.context["request"].user, validated_data)


class OrderUpdateSerializer(serializers.Serializer):
    """Manager update of the editable fields (only while PENDING/PREP)."""

    prep_time = serializers.IntegerField(min_value=5, max_value=120, required=False)
    estimated_delivery_time = serializers.IntegerField(min_value=10, max_value=60, required=False)
    priority = serializers.ChoiceField(choices=Order.Priority.choices, required=False)
    status = serializers.ChoiceField(choices=Order.Status.choices, required=False)


class AssignPartnerSerializer(serializers.Serializer):
    partner_id = serializers.IntegerField()


class PartnerStatusSerializer(serializers.Serializer):
    """Status update by the assigned delivery partner, with an optional note."""

    status = serializers.ChoiceField(choices=Order.Status.choices)
    notes = serializers.CharField(max_length=500, required=False, allow_blank=True, default="")


class RatingCreateSerializer(serializers.ModelSerializer):
    overall_experience = serializers.IntegerField(min_value=1, max_value=5)
    food_quality = serializers.IntegerField(min_value=1, max_value=5, required=False, allow_null=True)
    delivery_service = serializers.IntegerField(min_value=1, max_value=5, required=False, allow_null=True)
    feedback = serializers.CharField(max_length=500, required=False, allow_blank=True, default="")

    class Meta:
        model = OrderRating
        fields = ["food_quality", "delivery_service", "overall_experience", "feedback"]


# ------------------------------ output ------------------------------

class UserSummarySerializer(serializers.ModelSerializer):
    """Populated view of a manager or partner on an order."""

    phone = serializers.SerializerMethodField()
    role = serializers.SerializerMethodField()
    vehicle_type = serializers.SerializerMethodField()
    rating = serializers.SerializerMethodField()

    class Meta:
        model = User
        fields = ["id", "username", "first_name", "last_name", "phone", "role", "vehicle_type", "rating"]

    def _profile(self, obj):
        return getattr(obj, "profile", None)

    def get_phone(self, obj):
        profile = self._profile(obj)
        return profile.phone if profile else ""

    def get_role(self, obj):
        profile = self._profile(obj)
        return profile.role if profile else ""

    def get_vehicle_type(self, obj):
        profile = self._profile(obj)
        return profile.vehicle_type if profile else ""

    def get_rating(self, obj):
        profile = self._profile(obj)
        if not profile or not profile.is_partner:
            return None
        return str(profile.rating)


class TrackingNoteSerializer(serializers.ModelSerializer):
    added_by = UserSummarySerializer(read_only=True)

    class Meta:
        model = TrackingNote
        fields = ["id", "note", "timestamp", "added_by"]


class OrderRatingSerializer(serializers.ModelSerializer):
    class Meta:
        model = OrderRating
        fields = ["food_quality", "delivery_service", "overall_experience", "feedback", "created_at"]


class OrderOutputSerializer(serializers.ModelSerializer):
    """Read serializer for returning a complete order representation."""

    customer_address = serializers.SerializerMethodField()
    items = OrderItemSerializer(many=True, read_only=True)
    restaurant_manager = UserSummarySerializer(read_only=True)
    delivery_partner = UserSummarySerializer(read_only=True)
    tracking_notes = TrackingNoteSerializer(many=True, read_only=True)
    rating = serializers.SerializerMethodField()
    total_estimated_time = serializers.IntegerField(read_only=True)
    order_age = serializers.IntegerField(read_only=True)

    class Meta:
        model = Order
        fields = [
            "id",
            "order_id",
            "customer_name",
            "customer_phone",
            "customer_address",
            "items",
            "total_amount",
            "prep_time",
            "estimated_delivery_time",
            "dispatch_time",
            "status",
            "priority",
            "restaurant_manager",
            "delivery_partner",
            "order_placed_at",
            "prep_started_at",
            "ready_at",
            "picked_at",
            "on_route_at",
            "delivered_at",
            "tracking_notes",
            "rating",
            "total_estimated_time",
            "order_age",
            "created_at",
            "updated_at",
        ]

    def get_customer_address(self, obj):
        return {"street": obj.street, "city": obj.city, "pincode": obj.pincode}

    def get_rating(self, obj):
        try:
            rating = obj.rating
        except OrderRating.DoesNotExist:
            return None
        return OrderRatingSerializer(rating).data


class TrackingInfoSerializer(serializers.Serializer):
    current_status = serializers.CharField()
    current_step = serializers.IntegerField()
    total_steps = serializers.IntegerField()
    next_status = serializers.CharField(allow_null=True)
    is_completed = serializers.BooleanField()
    estimated_completion = serializers.DateTimeField(allow_null=True)
