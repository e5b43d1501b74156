from django.db import connection
from django.test.utils import CaptureQueriesContext
from django.urls import reverse
from rest_framework import status
from rest_framework.test import APITestCase

from orders.models import Order, OrderRating

from .helpers import create_manager, create_order, create_partner


class OrderListTests(APITestCase):
    def setUp(self):
        self.url = reverse("order-list")
        self.manager, self.manager_token = create_manager()
        self.other_manager, self.other_token = create_manager("other_manager")
        self.partner, self.partner_token = create_partner()

        self.pending = create_order(self.manager)
        self.urgent = create_order(self.manager, priority=Order.Priority.URGENT)
        self.assigned = create_order(self.manager, self.partner, status=Order.Status.READY)
        self.foreign = create_order(self.other_manager)

    def auth(self, token):
        self.client.credentials(HTTP_AUTHORIZATION=f"Token {token.key}")

    def ids(self, res):
        return {row["id"] for row in res.data["results"]}

    def test_manager_sees_only_own_orders(self):
        self.auth(self.manager_token)
        res = self.client.get(self.url)
        self.assertEqual(res.status_code, status.HTTP_200_OK)
        self.assertEqual(res.data["count"], 3)
        self.assertEqual(self.ids(res), {self.pending.id, self.urgent.id, self.assigned.id})

    def test_list_query_count_does_not_grow_with_rated_orders(self):
        self.auth(self.other_token)
        with CaptureQueriesContext(connection) as baseline:
            self.client.get(self.url)

        for _ in range(4):
            order = create_order(self.other_manager, self.partner, status=Order.Status.DELIVERED)
            OrderRating.objects.create(order=order, overall_experience=4, delivery_service=5)
        with CaptureQueriesContext(connection) as grown:
            res = self.client.get(self.url)

        self.assertEqual(res.data["count"], 5)
        rated = [row for row in res.data["results"] if row["rating"]]
        self.assertEqual(len(rated), 4)
        self.assertEqual(rated[0]["rating"]["delivery_service"], 5)
        self.assertEqual(len(grown), len(baseline))

    def test_partner_sees_only_assigned_orders(self):
        self.auth(self.partner_token)
        res = self.client.get(self.url)
        self.assertEqual(res.status_code, status.HTTP_200_OK)
        self.assertEqual(self.ids(res), {self.assigned.id})

    def test_filters(self):
        self.auth(self.manager_token)
        res = self.client.get(self.url, {"status": "READY"})
        self.assertEqual(self.ids(res), {self.assigned.id})
        res = self.client.get(self.url, {"priority": "URGENT"})
        self.assertEqual(self.ids(res), {self.urgent.id})

    def test_invalid_filter_400(self):
        self.auth(self.manager_token)
        for params in ({"status": "LOST"}, {"priority": "NOW"}, {"ordering": "customer_phone"}):
            with self.subTest(params=params):
                res = self.client.get(self.url, params)
                self.assertEqual(res.status_code, status.HTTP_400_BAD_REQUEST)

    def test_pagination_limit(self):
        self.auth(self.manager_token)
        res = self.client.get(self.url, {"limit": 2})
        self.assertEqual(res.data["count"], 3)
        self.assertEqual(len(res.data["results"]), 2)
        self.assertIsNotNone(res.data["next"])
        res = self.client.get(self.url, {"limit": 2, "page": 2})
        self.assertEqual(len(res.data["results"]), 1)

    def test_unauthenticated_401(self):
        res = self.client.get(self.url)
        self.assertEqual(res.status_code, status.HTTP_401_UNAUTHORIZED)


class OrderDetailGetTests(APITestCase):
    def setUp(self):
        self.manager, self.manager_token = create_manager()
        self.other_manager, self.other_token = create_manager("other_manager")
        self.partner, self.partner_token = create_partner()
        self.stranger, self.stranger_token = create_partner("stranger")
        self.order = create_order(self.manager, self.partner, status=Order.Status.PREP)
        self.url = reverse("order-detail", args=[self.order.id])

    def auth(self, token):
        self.client.credentials(HTTP_AUTHORIZATION=f"Token {token.key}")

    def test_owner_gets_order_with_tracking_info(self):
        self.auth(self.manager_token)
        res = self.client.get(self.url)
        self.assertEqual(res.status_code, status.HTTP_200_OK)
        self.assertEqual(res.data["order_id"], self.order.order_id)
        tracking = res.data["tracking_info"]
        self.assertEqual(tracking["current_status"], "PREP")
        self.assertEqual(tracking["current_step"], 2)
        self.assertEqual(tracking["total_steps"], 6)
        self.assertEqual(tracking["next_status"], "READY")
        self.assertFalse(tracking["is_completed"])

    def test_assigned_partner_can_read(self):
        self.auth(self.partner_token)
        res = self.client.get(self.url)
        self.assertEqual(res.status_code, status.HTTP_200_OK)
        self.assertEqual(res.data["delivery_partner"]["id"], self.partner.id)

    def test_other_users_forbidden_403(self):
        for token in (self.other_token, self.stranger_token):
            self.auth(token)
            res = self.client.get(self.url)
            self.assertEqual(res.status_code, status.HTTP_403_FORBIDDEN)

    def test_missing_order_404(self):
        self.auth(self.manager_token)
        res = self.client.get(reverse("order-detail", args=[999999]))
        self.assertEqual(res.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(res.data["kind"], "NotFound")
