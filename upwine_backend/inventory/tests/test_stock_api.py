# inventory/tests/test_stock_api.py

from datetime import date

from django.contrib.auth import get_user_model
from django.core.management import call_command
from django.test import TestCase
from rest_framework.test import APIClient

from inventory.models import StockPeriod
from inventory.services.stock_ledger import current_period_key, reserve, reset_period

User = get_user_model()


class StockApiTests(TestCase):
    def setUp(self):
        self.client = APIClient()
        self.admin = User.objects.create_user(
            username="admin", password="pass", is_staff=True
        )
        self.period = current_period_key()
        reset_period(self.period, 20)

    def test_public_stock_shows_remaining(self):
        reserve(self.period, 5)

        res = self.client.get("/api/stock/")

        self.assertEqual(res.status_code, 200)
        self.assertEqual(res.data["available"], 15)
        self.assertTrue(res.data["in_stock"])

    def test_admin_stock_requires_staff(self):
        res = self.client.get("/api/admin/stock/")
        self.assertIn(res.status_code, (401, 403))

    def test_admin_can_reset_stock(self):
        self.client.force_authenticate(self.admin)

        res = self.client.post("/api/admin/stock/", {"bottles": 60}, format="json")

        self.assertEqual(res.status_code, 200)
        self.assertEqual(res.data["total"], 60)
        self.assertEqual(res.data["available"], 60)

    def test_admin_reset_rejects_negative(self):
        self.client.force_authenticate(self.admin)

        res = self.client.post("/api/admin/stock/", {"bottles": -1}, format="json")

        self.assertEqual(res.status_code, 400)

    def test_cron_reset_requires_secret(self):
        res = self.client.get("/api/cron/reset-stock/")
        self.assertEqual(res.status_code, 401)
        self.assertEqual(res.data["error"]["code"], "UNAUTHORIZED")

        res = self.client.get(
            "/api/cron/reset-stock/", HTTP_AUTHORIZATION="Bearer wrong"
        )
        self.assertEqual(res.status_code, 401)

    def test_cron_reset_with_secret_restores_default_allotment(self):
        reserve(self.period, 7)

        res = self.client.get(
            "/api/cron/reset-stock/", HTTP_AUTHORIZATION="Bearer cron-test-secret"
        )

        self.assertEqual(res.status_code, 200)
        self.assertTrue(res.data["success"])
        p = StockPeriod.objects.get(period_start=self.period)
        self.assertEqual(p.total_bottles, 100)
        self.assertEqual(p.available_bottles, 100)


class ResetStockCommandTests(TestCase):
    def test_command_resets_given_period(self):
        call_command("reset_stock", "--bottles", "30", "--date", "2026-03-05")

        p = StockPeriod.objects.get(period_start=date(2026, 3, 2))
        self.assertEqual(p.total_bottles, 30)
        self.assertEqual(p.available_bottles, 30)
