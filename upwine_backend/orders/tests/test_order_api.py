# orders/tests/test_order_api.py

from decimal import Decimal

from django.contrib.auth import get_user_model
from django.test import TestCase
from rest_framework.test import APIClient

from inventory.services.stock_ledger import current_available, current_period_key, reset_period
from orders.models import Order
from orders.services.order_lifecycle import create_order

User = get_user_model()


ORDER_PAYLOAD = {
    "customer_name": "Ada Obi",
    "phone": "08031234567",
    "quantity": 2,
    "delivery_type": "pickup",
    "payment_method": "cod",
}


class PublicOrderApiTests(TestCase):
    def setUp(self):
        self.client = APIClient()
        self.period = current_period_key()
        reset_period(self.period, 5)

    def test_place_order(self):
        res = self.client.post("/api/orders/", ORDER_PAYLOAD, format="json")

        self.assertEqual(res.status_code, 201)
        self.assertEqual(res.data["warnings"], [])
        self.assertEqual(Decimal(res.data["order"]["total_amount"]), Decimal("4000.00"))
        self.assertEqual(res.data["order"]["status"], "pending")
        self.assertEqual(current_available(self.period).available, 3)

    def test_client_prices_are_ignored(self):
        payload = {**ORDER_PAYLOAD, "total_amount": "1.00", "unit_price": "1.00"}

        res = self.client.post("/api/orders/", payload, format="json")

        self.assertEqual(res.status_code, 201)
        self.assertEqual(Decimal(res.data["order"]["total_amount"]), Decimal("4000.00"))

    def test_invalid_discount_is_reported_as_warning(self):
        res = self.client.post(
            "/api/orders/", {**ORDER_PAYLOAD, "discount_code": "GHOST"}, format="json"
        )

        self.assertEqual(res.status_code, 201)
        self.assertEqual(len(res.data["warnings"]), 1)
        self.assertEqual(Decimal(res.data["order"]["discount_amount"]), Decimal("0.00"))

    def test_insufficient_stock_is_409(self):
        res = self.client.post("/api/orders/", {**ORDER_PAYLOAD, "quantity": 6}, format="json")

        self.assertEqual(res.status_code, 409)
        self.assertEqual(res.data["error"]["code"], "INSUFFICIENT_STOCK")
        self.assertEqual(Order.objects.count(), 0)

    def test_delivery_without_address_is_400(self):
        res = self.client.post(
            "/api/orders/", {**ORDER_PAYLOAD, "delivery_type": "delivery"}, format="json"
        )

        self.assertEqual(res.status_code, 400)
        self.assertEqual(Order.objects.count(), 0)

    def test_track_order_case_insensitive(self):
        order = create_order(dict(ORDER_PAYLOAD)).order

        res = self.client.get(f"/api/orders/{order.order_number.lower()}/")

        self.assertEqual(res.status_code, 200)
        self.assertEqual(res.data["order_number"], order.order_number)
        self.assertNotIn("phone", res.data)

    def test_track_unknown_order(self):
        res = self.client.get("/api/orders/UPW00000000-NOPE/")

        self.assertEqual(res.status_code, 404)
        self.assertEqual(res.data["error"]["code"], "NOT_FOUND")


class AdminOrderApiTests(TestCase):
    def setUp(self):
        self.client = APIClient()
        self.admin = User.objects.create_user(username="admin", password="pass", is_staff=True)
        self.period = current_period_key()
        reset_period(self.period, 10)
        self.order = create_order(dict(ORDER_PAYLOAD)).order

    def test_requires_staff(self):
        res = self.client.get("/api/admin/orders/")
        self.assertIn(res.status_code, (401, 403))

        customer = User.objects.create_user(username="customer", password="pass")
        self.client.force_authenticate(customer)
        res = self.client.get("/api/admin/orders/")
        self.assertEqual(res.status_code, 403)

    def test_list_and_filter(self):
        create_order({**ORDER_PAYLOAD, "payment_method": "online"})
        self.client.force_authenticate(self.admin)

        res = self.client.get("/api/admin/orders/", {"payment_method": "online"})

        self.assertEqual(res.status_code, 200)
        self.assertEqual(res.data["count"], 1)
        self.assertEqual(res.data["results"][0]["payment_method"], "online")

    def test_patch_status_forward(self):
        self.client.force_authenticate(self.admin)

        res = self.client.patch(
            f"/api/admin/orders/{self.order.pk}/", {"status": "confirmed"}, format="json"
        )

        self.assertEqual(res.status_code, 200)
        self.assertEqual(res.data["status"], "confirmed")

    def test_patch_status_backwards_is_409(self):
        self.client.force_authenticate(self.admin)
        self.client.patch(f"/api/admin/orders/{self.order.pk}/", {"status": "completed"}, format="json")

        res = self.client.patch(
            f"/api/admin/orders/{self.order.pk}/", {"status": "pending"}, format="json"
        )

        self.assertEqual(res.status_code, 409)
        self.assertEqual(res.data["error"]["code"], "INVALID_TRANSITION")

    def test_patch_payment_status(self):
        self.client.force_authenticate(self.admin)

        res = self.client.patch(
            f"/api/admin/orders/{self.order.pk}/", {"payment_status": "paid"}, format="json"
        )
        self.assertEqual(res.status_code, 200)
        self.assertEqual(res.data["payment_status"], "paid")
        self.assertEqual(res.data["status"], "confirmed")

        res = self.client.patch(
            f"/api/admin/orders/{self.order.pk}/", {"payment_status": "pending"}, format="json"
        )
        self.assertEqual(res.status_code, 409)

    def test_rejected_status_change_rolls_back_payment_change(self):
        self.client.force_authenticate(self.admin)

        res = self.client.patch(
            f"/api/admin/orders/{self.order.pk}/",
            {"payment_status": "paid", "status": "pending"},
            format="json",
        )

        self.assertEqual(res.status_code, 409)
        self.order.refresh_from_db()
        self.assertEqual(self.order.payment_status, Order.PAYMENT_PENDING)
        self.assertEqual(self.order.status, Order.STATUS_PENDING)
        self.assertIsNone(self.order.paid_at)

    def test_cancel_twice(self):
        self.client.force_authenticate(self.admin)

        res = self.client.post(f"/api/admin/orders/{self.order.pk}/cancel/")
        self.assertEqual(res.status_code, 200)
        self.assertEqual(res.data["status"], "cancelled")
        self.assertEqual(current_available(self.period).available, 10)

        res = self.client.post(f"/api/admin/orders/{self.order.pk}/cancel/")
        self.assertEqual(res.status_code, 409)
        self.assertEqual(res.data["error"]["code"], "ALREADY_CANCELLED")
        self.assertEqual(current_available(self.period).available, 10)

    def test_orders_cannot_be_deleted(self):
        self.client.force_authenticate(self.admin)

        res = self.client.delete(f"/api/admin/orders/{self.order.pk}/")

        self.assertEqual(res.status_code, 405)
        self.assertTrue(Order.objects.filter(pk=self.order.pk).exists())

    def test_summary_excludes_cancelled(self):
        paid = create_order({**ORDER_PAYLOAD, "quantity": 1}).order
        cancelled = create_order({**ORDER_PAYLOAD, "quantity": 3}).order
        self.client.force_authenticate(self.admin)
        self.client.patch(f"/api/admin/orders/{paid.pk}/", {"payment_status": "paid"}, format="json")
        self.client.post(f"/api/admin/orders/{cancelled.pk}/cancel/")

        res = self.client.get("/api/admin/orders/summary/")

        self.assertEqual(res.status_code, 200)
        self.assertEqual(res.data["order_count"], 2)
        self.assertEqual(res.data["bottles_sold"], 3)
        self.assertEqual(res.data["revenue"], "2000.00")
        self.assertEqual(res.data["outstanding"], "4000.00")
        self.assertEqual(res.data["cancelled_count"], 1)
        self.assertEqual(len(res.data["series"]), 1)
