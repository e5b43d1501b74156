from django.contrib import admin
from django.utils.html import format_html
from .models import Order, OrderItem, OrderRating, TrackingNote


class OrderItemInline(admin.TabularInline):
    model = OrderItem
    extra = 0
    readonly_fields = ("name", "quantity", "price", "category", "special_instructions")
    can_delete = False


class TrackingNoteInline(admin.TabularInline):
    model = TrackingNote
    extra = 0
    readonly_fields = ("note", "timestamp", "added_by")
    can_delete = False


@admin.register(Order)
class OrderAdmin(admin.ModelAdmin):
    """
    Read-mostly order overview:
    - list: order number, status badge, manager, partner, total, placed at
    - filter: status, priority, placed at (date hierarchy)
    - search: order number, customer name, manager and partner usernames
    Status is read-only here; lifecycle changes go through the API so that the
    partner side effects and realtime events happen.
    """
    list_display = (
        "order_id",
        "status_badge",
        "priority",
        "customer_name",
        "manager_username",
        "partner_username",
        "total_amount",
        "order_placed_at",
    )
    list_select_related = ("restaurant_manager", "delivery_partner")
    list_filter = ("status", "priority", "order_placed_at")
    date_hierarchy = "order_placed_at"
    ordering = ("-order_placed_at", "-id")
    search_fields = (
        "order_id",
        "customer_name",
        "restaurant_manager__username",
        "delivery_partner__username",
    )
    inlines = (OrderItemInline, TrackingNoteInline)

    readonly_fields = (
        "order_id",
        "status",
        "restaurant_manager",
        "delivery_partner",
        "total_amount",
        "dispatch_time",
        "order_placed_at",
        "prep_started_at",
        "ready_at",
        "picked_at",
        "on_route_at",
        "delivered_at",
        "created_at",
        "updated_at",
    )

    def status_badge(self, obj):
        color = {
            "PENDING": "#9ca3af",
            "PREP": "#f59e0b",
            "READY": "#0ea5e9",
            "PICKED": "#6366f1",
            "ON_ROUTE": "#8b5cf6",
            "DELIVERED": "#22c55e",
            "CANCELLED": "#ef4444",
        }.get(obj.status, "#9ca3af")
        return format_html(
            '<span style="display:inline-block;padding:2px 8px;border-radius:999px;'
            'font-size:12px;font-weight:600;color:#fff;background:{};">{}</span>',
            color,
            obj.status,
        )
    status_badge.short_description = "status"
    status_badge.admin_order_field = "status"

    def manager_username(self, obj):
        return obj.restaurant_manager.username if obj.restaurant_manager_id else ""
    manager_username.short_description = "manager"

    def partner_username(self, obj):
        return obj.delivery_partner.username if obj.delivery_partner_id else ""
    partner_username.short_description = "partner"


@admin.register(OrderRating)
class OrderRatingAdmin(admin.ModelAdmin):
    list_display = ("order", "overall_experience", "food_quality", "delivery_service", "created_at")
    list_select_related = ("order",)
    search_fields = ("order__order_id",)
    readonly_fields = ("order", "food_quality", "delivery_service", "overall_experience", "feedback", "created_at")
