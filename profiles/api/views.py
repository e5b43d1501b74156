"""Profiles API views.

Provides endpoints to retrieve a single profile (by user id) and to update the
owner's own profile, plus the delivery-partner endpoints: the managers' partner
list and pick-list, a partner's detail page, activation by a manager, and the
partner's own availability toggle, order lists and statistics.
"""

from django.shortcuts import get_object_or_404
from rest_framework import generics, status
from rest_framework.exceptions import ValidationError
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from common import stats
from common.conf import get_setting
from common.exceptions import NotFound, PermissionDenied
from orders.api.serializers import OrderOutputSerializer
from orders.api.views import OrdersPagination, apply_order_filters
from orders.lifecycle import ACTIVE_DELIVERY_STATUSES
from orders.models import Order
from profiles import services
from ..models import Profile, VehicleType
from .permissions import IsDeliveryPartner, IsProfileOwner, IsRestaurantManager
from .serializers import (
    AvailabilitySerializer,
    PartnerActivationSerializer,
    PartnerListSerializer,
    ProfileDetailSerializer,
    ProfilePatchSerializer,
    RecentOrderSerializer,
)

PARTNER_ORDERING = ("rating", "completed_deliveries", "created_at")


# ----------------------------- helpers (module-level) -----------------------------

def _parse_bool(params, name):
    value = params.get(name)
    if value is None:
        return None
    lowered = value.lower()
    if lowered not in ("true", "false"):
        raise ValidationError({name: "Must be 'true' or 'false'."})
    return lowered == "true"


def _apply_partner_filters(qs, params):
    """Filter by activity, availability and vehicle; order by rating by default."""
    is_active = _parse_bool(params, "is_active")
    qs = qs.filter(is_active=True if is_active is None else is_active)

    is_available = _parse_bool(params, "is_available")
    if is_available is not None:
        qs = qs.filter(is_available=is_available)

    vehicle_type = params.get("vehicle_type")
    if vehicle_type:
        if vehicle_type not in VehicleType.values:
            raise ValidationError({"vehicle_type": f"Allowed values: {', '.join(VehicleType.values)}."})
        qs = qs.filter(vehicle_type=vehicle_type)

    ordering = params.get("ordering")
    if ordering:
        if ordering.lstrip("-") not in PARTNER_ORDERING:
            raise ValidationError({"ordering": f"Allowed values: {', '.join(PARTNER_ORDERING)} (prefix '-' for descending)."})
        return qs.order_by(ordering, "id")
    return qs.order_by("-rating", "id")


def _partner_or_404(pk):
    profile = Profile.objects.partners().select_related("user").filter(user_id=pk).first()
    if profile is None:
        raise NotFound("Delivery partner not found.")
    return profile


def _partner_orders(user):
    return (
        Order.objects.filter(delivery_partner=user)
        .select_related("restaurant_manager__profile", "delivery_partner__profile", "rating")
        .prefetch_related("items", "tracking_notes__added_by__profile")
    )


# --------------------------------------- profile ---------------------------------------

class ProfileView(generics.RetrieveUpdateAPIView):
    """
    API endpoint for retrieving or partially updating a single profile.

    - GET `/api/profile/{pk}/` returns the profile for the given user id (`pk`).
    - PATCH `/api/profile/{pk}/` updates only the fields provided and is restricted
      to the owner of the profile (the authenticated user with id `pk`).

    The owner is inferred from the authenticated request and never taken from
    the payload.
    """

    queryset = Profile.objects.select_related("user")
    serializer_class = ProfileDetailSerializer
    http_method_names = ["get", "patch", "head", "options"]

    def get_permissions(self):
        """Require ownership for PATCH; otherwise authentication only."""
        if self.request.method == "PATCH":
            return [IsAuthenticated(), IsProfileOwner()]
        return [IsAuthenticated()]

    def get_serializer_class(self):
        """Use the patch serializer for PATCH; the detail serializer otherwise."""
        if self.request.method == "PATCH":
            return ProfilePatchSerializer
        return ProfileDetailSerializer

    def get_object(self):
        """Return the profile by user id; PATCH additionally requires `pk` to be the caller."""
        user_id = int(self.kwargs["pk"])
        if self.request.method == "PATCH" and self.request.user.id != user_id:
            raise PermissionDenied("You are only allowed to update your own profile.")
        obj = get_object_or_404(self.queryset, user_id=user_id)
        self.check_object_permissions(self.request, obj)
        return obj


# --------------------------------------- partners ---------------------------------------

class PartnerListView(generics.ListAPIView):
    """
    GET `/api/partners/` lists delivery partners (restaurant managers only).

    Query params: `is_available`, `is_active` (defaults to active partners),
    `vehicle_type`, `ordering` (rating, completed_deliveries, created_at).
    """

    serializer_class = PartnerListSerializer
    permission_classes = [IsAuthenticated, IsRestaurantManager]

    def get_queryset(self):
        qs = Profile.objects.partners().select_related("user")
        return _apply_partner_filters(qs, self.request.query_params)


class AvailablePartnersView(generics.ListAPIView):
    """GET `/api/partners/available/`: the pick-list for assignment, best rated first."""

    serializer_class = PartnerListSerializer
    permission_classes = [IsAuthenticated, IsRestaurantManager]

    def get_queryset(self):
        return Profile.objects.available_partners().select_related("user").order_by("-rating", "id")


class PartnerDetailView(APIView):
    """GET `/api/partners/{pk}/` -> partner, lifetime stats and the most recent orders."""

    permission_classes = [IsAuthenticated]

    def get(self, request, pk: int):
        profile = _partner_or_404(pk)
        recent = (
            Order.objects.filter(delivery_partner_id=profile.user_id)
            .select_related("restaurant_manager")
            .order_by("-order_placed_at", "-id")[: get_setting("RECENT_ORDERS_LIMIT")]
        )
        data = {
            "partner": PartnerListSerializer(profile).data,
            "stats": stats.partner_summary(profile.user_id),
            "recent_orders": RecentOrderSerializer(recent, many=True).data,
        }
        return Response(data, status=status.HTTP_200_OK)


class PartnerActivationView(APIView):
    """PUT `/api/partners/{pk}/status/` {"is_active": bool} (restaurant managers only)."""

    permission_classes = [IsAuthenticated, IsRestaurantManager]

    def put(self, request, pk: int):
        serializer = PartnerActivationSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        profile = services.set_partner_active(pk, serializer.validated_data["is_active"], caller=request.user)
        return Response(PartnerListSerializer(profile).data, status=status.HTTP_200_OK)


class PartnerAvailabilityView(APIView):
    """PUT `/api/partners/availability/` {"is_available": bool} for the calling partner."""

    permission_classes = [IsAuthenticated, IsDeliveryPartner]

    def put(self, request):
        serializer = AvailabilitySerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        profile = services.set_partner_availability(request.user, serializer.validated_data["is_available"])
        return Response(PartnerListSerializer(profile).data, status=status.HTTP_200_OK)


class MyOrdersView(generics.ListAPIView):
    """GET `/api/partners/my/orders/`: the caller's assigned orders, paginated."""

    serializer_class = OrderOutputSerializer
    permission_classes = [IsAuthenticated, IsDeliveryPartner]
    pagination_class = OrdersPagination

    def get_queryset(self):
        return apply_order_filters(_partner_orders(self.request.user), self.request.query_params)


class MyActiveOrdersView(generics.ListAPIView):
    """GET `/api/partners/my/active-orders/`: orders the caller has picked up or is delivering."""

    serializer_class = OrderOutputSerializer
    permission_classes = [IsAuthenticated, IsDeliveryPartner]
    pagination_class = None

    def get_queryset(self):
        return _partner_orders(self.request.user).filter(
            status__in=ACTIVE_DELIVERY_STATUSES
        ).order_by("-order_placed_at", "-id")


class MyStatsView(APIView):
    """GET `/api/partners/my/stats/?period=today|week|month|all` for the calling partner."""

    permission_classes = [IsAuthenticated, IsDeliveryPartner]

    def get(self, request):
        period = request.query_params.get("period", "all")
        if period not in stats.PERIODS:
            raise ValidationError({"period": f"Allowed values: {', '.join(stats.PERIODS)}."})
        return Response(stats.partner_period_stats(request.user, period), status=status.HTTP_200_OK)
