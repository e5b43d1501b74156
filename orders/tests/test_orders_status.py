from unittest import mock

from django.db import IntegrityError, transaction
from django.urls import reverse
from rest_framework import status
from rest_framework.test import APITestCase

from orders.models import Order, TrackingNote

from .helpers import create_manager, create_order, create_partner


class PartnerStatusTests(APITestCase):
    def setUp(self):
        self.manager, self.manager_token = create_manager()
        self.partner, self.partner_token = create_partner(is_available=False)
        self.stranger, self.stranger_token = create_partner("stranger")
        self.order = create_order(self.manager, self.partner, status=Order.Status.READY)
        self.url = reverse("order-status", args=[self.order.id])

    def auth(self, token):
        self.client.credentials(HTTP_AUTHORIZATION=f"Token {token.key}")

    def move(self, new_status, **extra):
        return self.client.put(self.url, {"status": new_status, **extra}, format="json")

    def test_full_delivery_flow(self):
        self.auth(self.partner_token)
        for step in ("PICKED", "ON_ROUTE", "DELIVERED"):
            res = self.move(step)
            self.assertEqual(res.status_code, status.HTTP_200_OK, res.data)
            self.assertEqual(res.data["status"], step)

        self.order.refresh_from_db()
        self.assertIsNotNone(self.order.picked_at)
        self.assertIsNotNone(self.order.on_route_at)
        self.assertIsNotNone(self.order.delivered_at)
        self.assertLessEqual(self.order.picked_at, self.order.on_route_at)

        profile = self.partner.profile
        profile.refresh_from_db()
        self.assertTrue(profile.is_available)
        self.assertEqual(profile.completed_deliveries, 1)

    def test_patch_is_accepted(self):
        self.auth(self.partner_token)
        res = self.client.patch(self.url, {"status": "PICKED"}, format="json")
        self.assertEqual(res.status_code, status.HTTP_200_OK)

    def test_notes_are_appended_to_tracking_log(self):
        self.auth(self.partner_token)
        res = self.move("PICKED", notes="Collected from counter 3")
        self.assertEqual(res.status_code, status.HTTP_200_OK)
        self.assertEqual(len(res.data["tracking_notes"]), 1)
        note = TrackingNote.objects.get(order=self.order)
        self.assertEqual(note.note, "Collected from counter 3")
        self.assertEqual(note.added_by, self.partner)

    def test_timestamps_are_not_overwritten(self):
        self.auth(self.partner_token)
        self.move("PICKED")
        self.order.refresh_from_db()
        picked_at = self.order.picked_at
        self.move("ON_ROUTE")
        self.order.refresh_from_db()
        self.assertEqual(self.order.picked_at, picked_at)

    def test_unassigned_partner_is_not_assigned(self):
        self.auth(self.stranger_token)
        res = self.move("PICKED")
        self.assertEqual(res.status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(res.data["kind"], "NotAssigned")

    def test_partner_cannot_mark_ready(self):
        self.order.status = Order.Status.PREP
        self.order.save()
        self.auth(self.partner_token)
        res = self.move("READY")
        self.assertEqual(res.status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(res.data["kind"], "PermissionDenied")

    def test_skipping_a_stage_is_invalid_transition(self):
        self.auth(self.partner_token)
        res = self.move("DELIVERED")
        self.assertEqual(res.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(res.data["kind"], "InvalidTransition")
        self.assertEqual(res.data["current_status"], "READY")

    def test_delivered_order_is_terminal(self):
        self.order.status = Order.Status.DELIVERED
        self.order.save()
        self.auth(self.partner_token)
        res = self.move("ON_ROUTE")
        self.assertEqual(res.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(res.data["kind"], "TerminalState")

    def test_second_pickup_is_partner_busy(self):
        other = create_order(self.manager, self.partner, status=Order.Status.READY)
        self.auth(self.partner_token)
        self.assertEqual(self.move("PICKED").status_code, status.HTTP_200_OK)
        res = self.client.put(reverse("order-status", args=[other.id]), {"status": "PICKED"}, format="json")
        self.assertEqual(res.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(res.data["kind"], "PartnerBusy")
        other.refresh_from_db()
        self.assertEqual(other.status, Order.Status.READY)
        self.assertIsNone(other.picked_at)

    def test_database_allows_one_active_delivery_per_partner(self):
        create_order(self.manager, self.partner, status=Order.Status.PICKED)
        with self.assertRaises(IntegrityError), transaction.atomic():
            create_order(self.manager, self.partner, status=Order.Status.ON_ROUTE)
        create_order(self.manager, self.stranger, status=Order.Status.ON_ROUTE)
        self.assertEqual(Order.objects.filter(status__in=["PICKED", "ON_ROUTE"]).count(), 2)

    def test_constraint_violation_is_reported_as_partner_busy(self):
        other = create_order(self.manager, self.partner, status=Order.Status.READY)
        self.auth(self.partner_token)
        self.assertEqual(self.move("PICKED").status_code, status.HTTP_200_OK)

        # a racing request that passed the active-delivery check
        with mock.patch("orders.lifecycle.active_deliveries", return_value=Order.objects.none()):
            res = self.client.put(reverse("order-status", args=[other.id]), {"status": "PICKED"}, format="json")
        self.assertEqual(res.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(res.data["kind"], "PartnerBusy")
        other.refresh_from_db()
        self.assertEqual(other.status, Order.Status.READY)
        self.assertIsNone(other.picked_at)

    def test_manager_cannot_use_partner_endpoint(self):
        self.auth(self.manager_token)
        res = self.move("PICKED")
        self.assertEqual(res.status_code, status.HTTP_403_FORBIDDEN)

    def test_invalid_status_value_400(self):
        self.auth(self.partner_token)
        res = self.move("TELEPORTED")
        self.assertEqual(res.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn("status", res.data)
