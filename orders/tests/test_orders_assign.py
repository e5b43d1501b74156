from django.urls import reverse
from rest_framework import status
from rest_framework.test import APITestCase

from orders.models import Order

from .helpers import create_manager, create_order, create_partner


class OrderAssignTests(APITestCase):
    def setUp(self):
        self.manager, self.manager_token = create_manager()
        self.other_manager, self.other_token = create_manager("other_manager")
        self.partner, self.partner_token = create_partner()
        self.second, _ = create_partner("second_partner")
        self.order = create_order(self.manager)
        self.url = reverse("order-assign", args=[self.order.id])

    def auth(self, token):
        self.client.credentials(HTTP_AUTHORIZATION=f"Token {token.key}")

    def test_assign_pending_order_moves_to_prep(self):
        self.auth(self.manager_token)
        res = self.client.post(self.url, {"partner_id": self.partner.id}, format="json")
        self.assertEqual(res.status_code, status.HTTP_200_OK)
        self.assertEqual(res.data["status"], "PREP")
        self.assertEqual(res.data["delivery_partner"]["id"], self.partner.id)
        self.assertIsNotNone(res.data["prep_started_at"])
        self.partner.profile.refresh_from_db()
        self.assertFalse(self.partner.profile.is_available)

    def test_assign_ready_order_keeps_status(self):
        self.order.status = Order.Status.READY
        self.order.save()
        self.auth(self.manager_token)
        res = self.client.put(self.url, {"partner_id": self.partner.id}, format="json")
        self.assertEqual(res.status_code, status.HTTP_200_OK)
        self.assertEqual(res.data["status"], "READY")

    def test_reassignment_releases_previous_partner(self):
        self.auth(self.manager_token)
        self.client.post(self.url, {"partner_id": self.partner.id}, format="json")
        res = self.client.post(self.url, {"partner_id": self.second.id}, format="json")
        self.assertEqual(res.status_code, status.HTTP_200_OK)
        self.assertEqual(res.data["delivery_partner"]["id"], self.second.id)
        self.partner.profile.refresh_from_db()
        self.second.profile.refresh_from_db()
        self.assertTrue(self.partner.profile.is_available)
        self.assertFalse(self.second.profile.is_available)

    def test_second_assignment_of_same_partner_is_unavailable(self):
        other_order = create_order(self.manager)
        self.auth(self.manager_token)
        first = self.client.post(self.url, {"partner_id": self.partner.id}, format="json")
        self.assertEqual(first.status_code, status.HTTP_200_OK)
        res = self.client.post(
            reverse("order-assign", args=[other_order.id]), {"partner_id": self.partner.id}, format="json"
        )
        self.assertEqual(res.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(res.data["kind"], "PartnerUnavailable")
        other_order.refresh_from_db()
        self.assertIsNone(other_order.delivery_partner_id)

    def test_repeat_assignment_to_same_partner_is_a_no_op(self):
        self.auth(self.manager_token)
        first = self.client.post(self.url, {"partner_id": self.partner.id}, format="json")
        self.assertEqual(first.status_code, status.HTTP_200_OK)
        with self.captureOnCommitCallbacks() as callbacks:
            res = self.client.post(self.url, {"partner_id": self.partner.id}, format="json")
        self.assertEqual(res.status_code, status.HTTP_200_OK)
        self.assertEqual(res.data["delivery_partner"]["id"], self.partner.id)
        self.assertEqual(res.data["status"], "PREP")
        self.assertEqual(res.data["prep_started_at"], first.data["prep_started_at"])
        self.assertEqual(callbacks, [])
        self.partner.profile.refresh_from_db()
        self.assertFalse(self.partner.profile.is_available)

    def test_inactive_partner_is_unavailable(self):
        profile = self.partner.profile
        profile.is_active = False
        profile.save()
        self.auth(self.manager_token)
        res = self.client.post(self.url, {"partner_id": self.partner.id}, format="json")
        self.assertEqual(res.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(res.data["kind"], "PartnerUnavailable")

    def test_partner_with_active_delivery_is_busy(self):
        # availability flag out of sync with an order already on the road
        create_order(self.manager, self.partner, status=Order.Status.ON_ROUTE)
        self.auth(self.manager_token)
        res = self.client.post(self.url, {"partner_id": self.partner.id}, format="json")
        self.assertEqual(res.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(res.data["kind"], "PartnerBusy")
        self.assertEqual(res.data["active_orders"], 1)

    def test_picked_order_cannot_be_reassigned(self):
        order = create_order(self.manager, self.second, status=Order.Status.PICKED)
        self.auth(self.manager_token)
        res = self.client.post(
            reverse("order-assign", args=[order.id]), {"partner_id": self.partner.id}, format="json"
        )
        self.assertEqual(res.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(res.data["kind"], "InvalidState")

    def test_unknown_partner_404(self):
        self.auth(self.manager_token)
        for partner_id in (999999, self.other_manager.id):
            res = self.client.post(self.url, {"partner_id": partner_id}, format="json")
            self.assertEqual(res.status_code, status.HTTP_404_NOT_FOUND)

    def test_other_manager_403(self):
        self.auth(self.other_token)
        res = self.client.post(self.url, {"partner_id": self.partner.id}, format="json")
        self.assertEqual(res.status_code, status.HTTP_403_FORBIDDEN)
        self.partner.profile.refresh_from_db()
        self.assertTrue(self.partner.profile.is_available)

    def test_partner_cannot_assign_403(self):
        self.auth(self.partner_token)
        res = self.client.post(self.url, {"partner_id": self.partner.id}, format="json")
        self.assertEqual(res.status_code, status.HTTP_403_FORBIDDEN)

    def test_missing_partner_id_400(self):
        self.auth(self.manager_token)
        res = self.client.post(self.url, {}, format="json")
        self.assertEqual(res.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn("partner_id", res.data)
