"""Dashboard statistics for managers and delivery partners.

Everything here is a read-only aggregate over orders and profiles. Money is
returned as `Decimal` rounded to cents, delivery times in minutes (measured
from pickup to delivery) and success rates in percent.
"""

import logging
from datetime import timedelta
from decimal import Decimal

from django.db.models import Avg, Count, Sum
from django.db.models.functions import TruncDate
from django.utils import timezone

from common.conf import commission_rate
from common.exceptions import PermissionDenied
from orders.lifecycle import ACTIVE_DELIVERY_STATUSES, ASSIGNED_STATUSES, round_rating
from orders.models import Order
from profiles.models import Profile, Role

logger = logging.getLogger(__name__)

Status = Order.Status

PERIODS = ("today", "week", "month", "all")
TREND_DAYS = 7
CENTS = Decimal("0.01")


# ----------------------------- helpers (module-level) -----------------------------

def _money(value) -> Decimal:
    return (value or Decimal("0")).quantize(CENTS)


def _start_of_day(now=None):
    local = timezone.localtime(now or timezone.now())
    return local.replace(hour=0, minute=0, second=0, microsecond=0)


def period_start(period, now=None):
    """Lower bound on `delivered_at` for a named period; None for "all"."""
    if period not in PERIODS:
        raise ValueError(f"Unknown period: {period!r}")
    today = _start_of_day(now)
    if period == "today":
        return today
    if period == "week":
        return today - timedelta(days=today.weekday())
    if period == "month":
        return today.replace(day=1)
    return None


def delivered_total(qs) -> Decimal:
    return _money(qs.aggregate(total=Sum("total_amount"))["total"])


def average_delivery_minutes(qs):
    """Mean minutes from pickup to delivery over the orders that have both stamps."""
    pairs = qs.filter(picked_at__isnull=False, delivered_at__isnull=False).values_list(
        "picked_at", "delivered_at"
    )
    minutes = [(delivered - picked).total_seconds() / 60 for picked, delivered in pairs]
    if not minutes:
        return 0
    return sum(minutes) / len(minutes)


def success_rate(delivered: int, assigned: int, places: int) -> float:
    if not assigned:
        return 0
    return round(delivered / assigned * 100, places)


def _rated(partner_id):
    return Order.objects.filter(
        delivery_partner_id=partner_id,
        status=Status.DELIVERED,
        rating__delivery_service__isnull=False,
    ).aggregate(avg=Avg("rating__delivery_service"), count=Count("id"))


# ------------------------------------ dashboards ------------------------------------

def manager_dashboard(user) -> dict:
    orders = Order.objects.filter(restaurant_manager=user)
    return {
        "total_orders": orders.count(),
        "pending_orders": orders.filter(status=Status.PENDING).count(),
        "active_orders": orders.filter(
            status__in=(Status.PREP, Status.READY, Status.PICKED, Status.ON_ROUTE)
        ).count(),
        "completed_orders": orders.filter(status=Status.DELIVERED).count(),
        "total_revenue": delivered_total(orders.filter(status=Status.DELIVERED)),
        "available_partners": Profile.objects.available_partners().count(),
    }


def partner_dashboard(user) -> dict:
    profile = user.profile
    orders = Order.objects.filter(delivery_partner=user)
    delivered = orders.filter(status=Status.DELIVERED)
    today = _start_of_day()
    delivered_today = delivered.filter(delivered_at__gte=today, delivered_at__lt=today + timedelta(days=1))
    rate = commission_rate()

    total_deliveries = delivered.count()
    total_assigned = orders.filter(status__in=ASSIGNED_STATUSES).count()
    return {
        "total_deliveries": total_deliveries,
        "pending_pickups": orders.filter(status=Status.READY).count(),
        "active_deliveries": orders.filter(status__in=ACTIVE_DELIVERY_STATUSES).count(),
        "completed_today": delivered_today.count(),
        "earnings": _money(delivered_total(delivered_today) * rate),
        "total_earnings": _money(delivered_total(delivered) * rate),
        "rating": profile.rating,
        "average_delivery_time": round(average_delivery_minutes(delivered)),
        "success_rate": success_rate(total_deliveries, total_assigned, 2),
        "total_assigned": total_assigned,
        "completed_deliveries": profile.completed_deliveries,
        "rated_deliveries": profile.rated_deliveries,
    }


def dashboard_for(user) -> dict:
    """Pick the dashboard that matches the user's role."""
    profile = getattr(user, "profile", None)
    if profile is None:
        raise PermissionDenied("User has no role profile.")
    if profile.role == Role.RESTAURANT_MANAGER:
        return manager_dashboard(user)
    if profile.role == Role.DELIVERY_PARTNER:
        return partner_dashboard(user)
    raise ValueError(f"Unknown role: {profile.role!r}")


def delivery_trend(user, days=TREND_DAYS, now=None) -> list:
    """Deliveries per day over the last `days` days, oldest first."""
    since = (now or timezone.now()) - timedelta(days=days)
    rows = (
        Order.objects.filter(delivery_partner=user, status=Status.DELIVERED, delivered_at__gte=since)
        .annotate(day=TruncDate("delivered_at"))
        .values("day")
        .annotate(count=Count("id"), total_amount=Sum("total_amount"))
        .order_by("day")
    )
    return [
        {"date": row["day"].isoformat(), "count": row["count"], "total_amount": _money(row["total_amount"])}
        for row in rows
    ]


def partner_period_stats(user, period="all") -> dict:
    """Delivered work in a period plus the partner's rating and success rate."""
    start = period_start(period)
    profile = user.profile
    delivered = Order.objects.filter(delivery_partner=user, status=Status.DELIVERED)
    if start is not None:
        delivered = delivered.filter(delivered_at__gte=start)

    rated = _rated(user.id)
    average_rating = rated["avg"] if rated["avg"] is not None else profile.rating
    total_deliveries = delivered.count()
    total_assigned = Order.objects.filter(delivery_partner=user, status__in=ASSIGNED_STATUSES).count()

    logger.debug("Partner %s stats computed for period %s", user.id, period)
    return {
        "period": period,
        "stats": {
            "total_deliveries": total_deliveries,
            "total_earnings": delivered_total(delivered),
            "average_delivery_time": round(average_delivery_minutes(delivered), 1),
            "average_rating": round_rating(average_rating or 0),
            "total_rated_orders": rated["count"] or 0,
            "success_rate": success_rate(total_deliveries, total_assigned, 1),
            "total_assigned": total_assigned,
        },
        "trend": delivery_trend(user),
    }


def partner_summary(partner_id) -> dict:
    """Lifetime figures shown on a partner's detail page."""
    delivered = Order.objects.filter(delivery_partner_id=partner_id, status=Status.DELIVERED)
    rated = _rated(partner_id)
    return {
        "total_deliveries": delivered.count(),
        "average_rating": round_rating(rated["avg"]) if rated["avg"] is not None else Decimal("5.0"),
        "total_earnings": delivered_total(delivered),
    }
