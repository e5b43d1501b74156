from datetime import timedelta
from decimal import Decimal

from django.test import TestCase, override_settings
from django.urls import reverse
from django.utils import timezone
from rest_framework import status
from rest_framework.test import APITestCase

from common import stats
from orders.models import Order, OrderRating
from orders.tests.helpers import create_manager, create_order, create_partner

Status = Order.Status


def deliver(manager, partner, amount="100.00", minutes=30, delivered_at=None, **fields):
    delivered_at = delivered_at or timezone.now()
    return create_order(
        manager,
        partner,
        status=Status.DELIVERED,
        total_amount=Decimal(amount),
        picked_at=delivered_at - timedelta(minutes=minutes),
        delivered_at=delivered_at,
        **fields,
    )


class ManagerDashboardTests(APITestCase):
    def setUp(self):
        self.url = reverse("order-stats")
        self.manager, self.manager_token = create_manager()
        self.other_manager, _ = create_manager("other_manager")
        self.partner, _ = create_partner()
        self.busy, _ = create_partner("busy_partner", is_available=False)

        create_order(self.manager)
        create_order(self.manager, self.partner, status=Status.PREP)
        create_order(self.manager, self.busy, status=Status.ON_ROUTE)
        deliver(self.manager, self.partner, amount="250.00")
        deliver(self.manager, self.partner, amount="150.50")
        create_order(self.manager, status=Status.CANCELLED)
        create_order(self.other_manager)

    def test_manager_dashboard(self):
        self.client.credentials(HTTP_AUTHORIZATION=f"Token {self.manager_token.key}")
        res = self.client.get(self.url)
        self.assertEqual(res.status_code, status.HTTP_200_OK)
        self.assertEqual(res.data["total_orders"], 6)
        self.assertEqual(res.data["pending_orders"], 1)
        self.assertEqual(res.data["active_orders"], 2)
        self.assertEqual(res.data["completed_orders"], 2)
        self.assertEqual(res.data["total_revenue"], Decimal("400.50"))
        self.assertEqual(res.data["available_partners"], 1)

    def test_unauthenticated_401(self):
        res = self.client.get(self.url)
        self.assertEqual(res.status_code, status.HTTP_401_UNAUTHORIZED)


class PartnerDashboardTests(APITestCase):
    def setUp(self):
        self.url = reverse("order-stats")
        self.manager, _ = create_manager()
        self.partner, self.partner_token = create_partner()

        deliver(self.manager, self.partner, amount="200.00", minutes=20)
        deliver(self.manager, self.partner, amount="300.00", minutes=40)
        deliver(
            self.manager,
            self.partner,
            amount="1000.00",
            minutes=30,
            delivered_at=timezone.now() - timedelta(days=3),
        )
        create_order(self.manager, self.partner, status=Status.READY)
        create_order(self.manager, self.partner, status=Status.PICKED)
        create_order(self.manager, self.partner, status=Status.PREP)

    def test_partner_dashboard(self):
        self.client.credentials(HTTP_AUTHORIZATION=f"Token {self.partner_token.key}")
        res = self.client.get(self.url)
        self.assertEqual(res.status_code, status.HTTP_200_OK)
        self.assertEqual(res.data["total_deliveries"], 3)
        self.assertEqual(res.data["pending_pickups"], 1)
        self.assertEqual(res.data["active_deliveries"], 1)
        self.assertEqual(res.data["average_delivery_time"], 30)
        # 3 delivered out of 5 orders at READY or later
        self.assertEqual(res.data["total_assigned"], 5)
        self.assertEqual(res.data["success_rate"], 60.0)
        self.assertEqual(res.data["total_earnings"], Decimal("150.00"))
        self.assertEqual(res.data["rating"], Decimal("5.0"))


class PartnerPeriodStatsTests(TestCase):
    def setUp(self):
        self.manager, _ = create_manager()
        self.partner, _ = create_partner()
        now = timezone.now()
        self.recent = deliver(self.manager, self.partner, amount="100.00", minutes=10, delivered_at=now)
        self.older = deliver(
            self.manager, self.partner, amount="300.00", minutes=30, delivered_at=now - timedelta(days=40)
        )
        OrderRating.objects.create(order=self.recent, overall_experience=5, delivery_service=4)
        OrderRating.objects.create(order=self.older, overall_experience=5, delivery_service=5)

    def test_all_time(self):
        data = stats.partner_period_stats(self.partner, "all")
        self.assertEqual(data["period"], "all")
        self.assertEqual(data["stats"]["total_deliveries"], 2)
        self.assertEqual(data["stats"]["total_earnings"], Decimal("400.00"))
        self.assertEqual(data["stats"]["average_delivery_time"], 20)
        self.assertEqual(data["stats"]["average_rating"], Decimal("4.5"))
        self.assertEqual(data["stats"]["total_rated_orders"], 2)
        self.assertEqual(data["stats"]["success_rate"], 100.0)

    def test_today_only_counts_todays_deliveries(self):
        data = stats.partner_period_stats(self.partner, "today")
        self.assertEqual(data["stats"]["total_deliveries"], 1)
        self.assertEqual(data["stats"]["total_earnings"], Decimal("100.00"))

    def test_trend_covers_last_seven_days(self):
        trend = stats.partner_period_stats(self.partner)["trend"]
        self.assertEqual(len(trend), 1)
        self.assertEqual(trend[0]["count"], 1)
        self.assertEqual(trend[0]["total_amount"], Decimal("100.00"))

    def test_unknown_period_raises(self):
        with self.assertRaises(ValueError):
            stats.period_start("fortnight")

    def test_rating_falls_back_to_profile(self):
        OrderRating.objects.all().delete()
        profile = self.partner.profile
        profile.rating = Decimal("3.5")
        profile.save()
        data = stats.partner_period_stats(self.partner, "all")
        self.assertEqual(data["stats"]["average_rating"], Decimal("3.5"))

    @override_settings(DELIVERY_HUB={"PARTNER_COMMISSION_RATE": "0.20"})
    def test_commission_rate_is_configurable(self):
        self.assertEqual(stats.partner_dashboard(self.partner)["total_earnings"], Decimal("80.00"))


class PartnerSummaryTests(TestCase):
    def test_summary_defaults_to_five_stars(self):
        manager, _ = create_manager()
        partner, _ = create_partner()
        deliver(manager, partner, amount="120.00")
        summary = stats.partner_summary(partner.id)
        self.assertEqual(summary["total_deliveries"], 1)
        self.assertEqual(summary["average_rating"], Decimal("5.0"))
        self.assertEqual(summary["total_earnings"], Decimal("120.00"))
