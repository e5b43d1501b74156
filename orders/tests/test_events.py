from unittest import mock

from django.apps import apps
from django.urls import reverse
from rest_framework import status
from rest_framework.test import APITestCase

from orders import events
from orders.models import Order
from realtime.fanout import RealtimeFanout

from .helpers import RecordingLayer, create_manager, create_order, create_partner, order_payload


class OrderEventTests(APITestCase):
    def setUp(self):
        self.layer = RecordingLayer()
        patcher = mock.patch.object(
            apps.get_app_config("realtime"), "fanout", RealtimeFanout(channel_layer=self.layer)
        )
        patcher.start()
        self.addCleanup(patcher.stop)

        self.manager, self.manager_token = create_manager()
        self.partner, self.partner_token = create_partner()

    def auth(self, token):
        self.client.credentials(HTTP_AUTHORIZATION=f"Token {token.key}")

    def test_create_notifies_managers_after_commit(self):
        self.auth(self.manager_token)
        with self.captureOnCommitCallbacks(execute=True) as callbacks:
            res = self.client.post(reverse("order-list"), order_payload(), format="json")
        self.assertEqual(res.status_code, status.HTTP_201_CREATED)
        self.assertEqual(len(callbacks), 1)

        [(group, event, payload)] = self.layer.events()
        self.assertEqual(group, "role_restaurant_manager")
        self.assertEqual(event, "order_updated")
        self.assertEqual(payload["eventType"], events.ORDER_CREATED)
        self.assertEqual(payload["orderId"], res.data["order_id"])
        self.assertRegex(payload["orderId"], r"^ORD\d{6}$")
        self.assertEqual(payload["id"], res.data["id"])
        self.assertEqual(payload["status"], "PENDING")
        self.assertIsNone(payload["deliveryPartnerId"])
        self.assertEqual(payload["restaurantManagerId"], self.manager.id)
        self.assertEqual(payload["order"]["order_id"], res.data["order_id"])

    def test_assignment_notifies_partner_and_availability(self):
        order = create_order(self.manager)
        self.auth(self.manager_token)
        with self.captureOnCommitCallbacks(execute=True):
            res = self.client.post(
                reverse("order-assign", args=[order.id]), {"partner_id": self.partner.id}, format="json"
            )
        self.assertEqual(res.status_code, status.HTTP_200_OK)

        sent = self.layer.events()
        self.assertIn(
            ("role_restaurant_manager", "partner_availability_updated"),
            [(g, e) for g, e, _ in sent],
        )
        availability = [p for _, e, p in sent if e == "partner_availability_updated"]
        self.assertEqual(availability[0]["partnerId"], self.partner.id)
        self.assertFalse(availability[0]["isAvailable"])

        partner_events = self.layer.events(f"user_{self.partner.id}")
        self.assertEqual(len(partner_events), 1)
        self.assertEqual(partner_events[0][2]["eventType"], events.PARTNER_ASSIGNED)
        self.assertEqual(partner_events[0][2]["status"], "PREP")

    def test_failed_mutation_emits_nothing(self):
        order = create_order(self.manager, status=Order.Status.DELIVERED)
        self.auth(self.manager_token)
        with self.captureOnCommitCallbacks(execute=True) as callbacks:
            res = self.client.patch(reverse("order-detail", args=[order.id]), {"priority": "HIGH"}, format="json")
        self.assertEqual(res.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(callbacks, [])
        self.assertEqual(self.layer.sent, [])

    def test_delivery_announces_partner_available_again(self):
        order = create_order(self.manager, self.partner, status=Order.Status.ON_ROUTE)
        profile = self.partner.profile
        profile.is_available = False
        profile.save()
        self.auth(self.partner_token)
        with self.captureOnCommitCallbacks(execute=True):
            res = self.client.put(reverse("order-status", args=[order.id]), {"status": "DELIVERED"}, format="json")
        self.assertEqual(res.status_code, status.HTTP_200_OK)
        availability = [p for _, e, p in self.layer.events() if e == "partner_availability_updated"]
        self.assertEqual(len(availability), 1)
        self.assertTrue(availability[0]["isAvailable"])
