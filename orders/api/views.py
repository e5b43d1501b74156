"""Orders API views.

List and create orders on the same endpoint; the list is scoped to the
authenticated user's role (a manager sees the orders they created, a partner
the orders assigned to them). The detail route reads, edits and cancels a
single order, and dedicated routes assign a partner, move a delivery forward
and rate a completed order. Mutations go through `orders.services`, which
enforces ownership, lifecycle rules and realtime notifications.
"""

from rest_framework import generics, status
from rest_framework.exceptions import ValidationError
from rest_framework.pagination import PageNumberPagination
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from common import stats
from orders import services
from orders.models import Order
from profiles.models import Role
from .permissions import CanViewOrder, IsDeliveryPartner, IsRestaurantManager
from .serializers import (
    AssignPartnerSerializer,
    OrderCreateSerializer,
    OrderOutputSerializer,
    OrderUpdateSerializer,
    PartnerStatusSerializer,
    RatingCreateSerializer,
    TrackingInfoSerializer,
)


class OrdersPagination(PageNumberPagination):
    """Page-number pagination; `limit` sets the page size."""

    page_size = 20
    page_size_query_param = "limit"
    max_page_size = 100


ORDERING_FIELDS = ("order_placed_at", "total_amount", "priority", "status", "prep_time")


# ----------------------------- helpers (module-level) -----------------------------

def _role_orders_queryset(base_qs, user):
    """Orders the user works on: created by a manager or assigned to a partner."""
    prof = getattr(user, "profile", None)
    if prof is None:
        return Order.objects.none()
    if prof.role == Role.RESTAURANT_MANAGER:
        qs = base_qs.filter(restaurant_manager=user)
    elif prof.role == Role.DELIVERY_PARTNER:
        qs = base_qs.filter(delivery_partner=user)
    else:
        raise ValueError(f"Unknown role: {prof.role!r}")
    return qs.select_related(
        "restaurant_manager__profile", "delivery_partner__profile", "rating"
    ).prefetch_related("items", "tracking_notes__added_by__profile")


def apply_order_filters(qs, params):
    """Filter by status/priority and apply ordering; raises ValidationError on bad input."""
    value = params.get("status")
    if value:
        if value not in Order.Status.values:
            raise ValidationError({"status": f"Allowed values: {', '.join(Order.Status.values)}."})
        qs = qs.filter(status=value)

    value = params.get("priority")
    if value:
        if value not in Order.Priority.values:
            raise ValidationError({"priority": f"Allowed values: {', '.join(Order.Priority.values)}."})
        qs = qs.filter(priority=value)

    ordering = params.get("ordering")
    if ordering:
        if ordering.lstrip("-") not in ORDERING_FIELDS:
            raise ValidationError({"ordering": f"Allowed values: {', '.join(ORDERING_FIELDS)} (prefix '-' for descending)."})
        return qs.order_by(ordering, "-id")
    return qs.order_by("-order_placed_at", "-id")


def _reject_unknown_fields(data, allowed):
    """Raise a 400 naming any payload keys outside `allowed`."""
    extra = set(data.keys()) - set(allowed)
    if extra:
        raise ValidationError(
            {"detail": f"Only {', '.join(sorted(allowed))} may be updated. Invalid fields: {', '.join(sorted(extra))}."}
        )


def _order_response(order, code=status.HTTP_200_OK):
    return Response(OrderOutputSerializer(order).data, status=code)


# --------------------------------------- views ---------------------------------------

class OrderListCreateAPIView(generics.ListCreateAPIView):
    """GET: paginated list of the caller's orders with filters.
    POST: create a new order (restaurant manager only).
    """

    queryset = Order.objects.all()
    pagination_class = OrdersPagination

    def get_permissions(self):
        """Manager-only on POST, otherwise just authenticated."""
        if self.request.method == "POST":
            return [IsAuthenticated(), IsRestaurantManager()]
        return [IsAuthenticated()]

    def get_serializer_class(self):
        """Use output serializer for GET and input serializer for POST."""
        return OrderOutputSerializer if self.request.method == "GET" else OrderCreateSerializer

    # --- GET ---
    def get_queryset(self):
        qs = _role_orders_queryset(super().get_queryset(), self.request.user)
        return apply_order_filters(qs, self.request.query_params)

    # --- POST ---
    def create(self, request, *args, **kwargs):
        """Validate and create a new order, returning the full order payload."""
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        order = serializer.save()
        return _order_response(order, status.HTTP_201_CREATED)


class OrderStatsAPIView(APIView):
    """GET /api/orders/stats/ -> dashboard numbers for the caller's role."""

    permission_classes = [IsAuthenticated]

    def get(self, request):
        return Response(stats.dashboard_for(request.user), status=status.HTTP_200_OK)


class OrderDetailAPIView(generics.RetrieveUpdateDestroyAPIView):
    """GET: order plus tracking info (owner manager or assigned partner).
    PATCH/PUT: edit prep time, delivery estimate, priority or status (manager).
    DELETE: cancel the order (manager).
    """

    queryset = Order.objects.select_related(
        "restaurant_manager__profile", "delivery_partner__profile", "rating"
    ).prefetch_related("items", "tracking_notes__added_by__profile")

    def get_permissions(self):
        if self.request.method in ("PATCH", "PUT", "DELETE"):
            return [IsAuthenticated(), IsRestaurantManager()]
        return [IsAuthenticated(), CanViewOrder()]

    def get_serializer_class(self):
        if self.request.method in ("PATCH", "PUT"):
            return OrderUpdateSerializer
        return OrderOutputSerializer

    def retrieve(self, request, *args, **kwargs):
        order = self.get_object()
        data = OrderOutputSerializer(order).data
        data["tracking_info"] = TrackingInfoSerializer(order.tracking_info()).data
        return Response(data, status=status.HTTP_200_OK)

    def update(self, request, *args, **kwargs):
        """Both PUT and PATCH are partial: only the given fields change."""
        _reject_unknown_fields(request.data, OrderUpdateSerializer().fields.keys())
        serializer = self.get_serializer(data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        order = services.update_order_fields(kwargs["pk"], request.user, serializer.validated_data)
        return _order_response(order)

    def destroy(self, request, *args, **kwargs):
        order = services.cancel_order(kwargs["pk"], request.user)
        return _order_response(order)


class OrderAssignAPIView(APIView):
    """POST/PUT /api/orders/{pk}/assign/ {"partner_id": <int>} (manager only)."""

    permission_classes = [IsAuthenticated, IsRestaurantManager]

    def post(self, request, pk: int):
        serializer = AssignPartnerSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        services.assign_partner(pk, serializer.validated_data["partner_id"], request.user)
        return _order_response(services.populated(pk))

    put = post


class OrderPartnerStatusAPIView(APIView):
    """PUT/PATCH /api/orders/{pk}/status/ {"status", "notes"} (assigned partner only)."""

    permission_classes = [IsAuthenticated, IsDeliveryPartner]

    def put(self, request, pk: int):
        serializer = PartnerStatusSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        order = services.update_partner_order_status(
            pk,
            request.user,
            serializer.validated_data["status"],
            notes=serializer.validated_data.get("notes", ""),
        )
        return _order_response(order)

    patch = put


class OrderRatingAPIView(APIView):
    """PUT /api/orders/{pk}/rating/ -> rate a delivered order once (manager only)."""

    permission_classes = [IsAuthenticated, IsRestaurantManager]

    def put(self, request, pk: int):
        serializer = RatingCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        order = services.submit_rating(pk, request.user, serializer.validated_data)
        return _order_response(order)
