"""Orders API permissions.

Request-level role gates and the object-level access check used by the order
endpoints. Ownership of an order is enforced again inside the order services,
so these classes only decide who may reach an endpoint at all.
"""

from rest_framework.permissions import BasePermission

from profiles.models import Role


def _role(user) -> str:
    prof = getattr(user, "profile", None)
    return getattr(prof, "role", "") if prof else ""


class IsRestaurantManager(BasePermission):
    """Allows access only to authenticated users with role 'restaurant_manager'."""

    message = "Only restaurant managers can perform this action."

    def has_permission(self, request, view):
        user = request.user
        if not user or not user.is_authenticated:
            return False
        return _role(user) == Role.RESTAURANT_MANAGER


class IsDeliveryPartner(BasePermission):
    """Allows access only to authenticated users with role 'delivery_partner'."""

    message = "Only delivery partners can perform this action."

    def has_permission(self, request, view):
        user = request.user
        if not user or not user.is_authenticated:
            return False
        return _role(user) == Role.DELIVERY_PARTNER


class CanViewOrder(BasePermission):
    """Order detail is visible to its manager and to the partner assigned to it."""

    message = "Access denied to this order."

    def has_object_permission(self, request, view, obj):
        user = request.user
        if not user or not user.is_authenticated:
            return False
        return user.id in (obj.restaurant_manager_id, obj.delivery_partner_id)
