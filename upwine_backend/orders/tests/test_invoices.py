# orders/tests/test_invoices.py

from decimal import Decimal

from django.contrib.auth import get_user_model
from django.test import TestCase
from rest_framework.test import APIClient

from inventory.models import StockPeriod
from notifications.models import Notification
from orders.models import Invoice
from orders.services.invoices import (
    InvoiceError,
    create_invoice,
    send_invoice,
    set_invoice_status,
    update_invoice,
)

User = get_user_model()


def _invoice_data(**kwargs):
    data = {
        "customer_name": "Chidi Eze",
        "phone": "08029876543",
        "address": "5 Airport Road",
        "quantity": 10,
        "price_per_bottle": "1800",
        "delivery_fee": "2000",
        "discount": "500",
    }
    data.update(kwargs)
    return data


class InvoiceServiceTests(TestCase):
    def test_total_is_computed(self):
        invoice = create_invoice(_invoice_data())

        self.assertTrue(invoice.invoice_number.startswith("INV"))
        self.assertEqual(invoice.total_amount, Decimal("19500.00"))
        self.assertEqual(invoice.status, Invoice.STATUS_DRAFT)

    def test_invoices_do_not_touch_stock(self):
        create_invoice(_invoice_data())
        self.assertEqual(StockPeriod.objects.count(), 0)

    def test_discount_cannot_exceed_amount(self):
        with self.assertRaises(InvoiceError) as ctx:
            create_invoice(_invoice_data(quantity=1, delivery_fee="0", discount="5000"))
        self.assertEqual(ctx.exception.field, "discount")

    def test_update_recomputes_total(self):
        invoice = create_invoice(_invoice_data())

        invoice = update_invoice(invoice.pk, {"quantity": 5})

        self.assertEqual(invoice.total_amount, Decimal("10500.00"))

    def test_paid_invoice_is_locked(self):
        invoice = create_invoice(_invoice_data())
        set_invoice_status(invoice.pk, "paid")

        with self.assertRaises(InvoiceError):
            update_invoice(invoice.pk, {"quantity": 1})
        with self.assertRaises(InvoiceError):
            set_invoice_status(invoice.pk, "draft")

    def test_send_records_message_and_marks_sent(self):
        invoice = create_invoice(_invoice_data())

        invoice = send_invoice(invoice.pk)

        self.assertEqual(invoice.status, Invoice.STATUS_SENT)
        self.assertIsNotNone(invoice.sent_at)
        note = Notification.objects.get(invoice=invoice)
        self.assertEqual(note.kind, Notification.KIND_INVOICE)
        self.assertIn(f"/view-invoice/{invoice.invoice_number}", note.message)


class InvoiceApiTests(TestCase):
    def setUp(self):
        self.client = APIClient()
        self.admin = User.objects.create_user(username="admin", password="pass", is_staff=True)

    def test_admin_crud_and_send(self):
        self.client.force_authenticate(self.admin)

        res = self.client.post("/api/admin/invoices/", _invoice_data(), format="json")
        self.assertEqual(res.status_code, 201)
        self.assertEqual(Decimal(res.data["total_amount"]), Decimal("19500.00"))
        pk = res.data["id"]

        res = self.client.patch(f"/api/admin/invoices/{pk}/", {"discount": "0"}, format="json")
        self.assertEqual(res.status_code, 200)
        self.assertEqual(Decimal(res.data["total_amount"]), Decimal("20000.00"))

        res = self.client.post(f"/api/admin/invoices/{pk}/send/")
        self.assertEqual(res.status_code, 200)
        self.assertEqual(res.data["status"], "sent")

    def test_admin_only(self):
        res = self.client.post("/api/admin/invoices/", _invoice_data(), format="json")
        self.assertIn(res.status_code, (401, 403))

    def test_public_lookup_case_insensitive(self):
        invoice = create_invoice(_invoice_data())

        res = self.client.get(f"/api/invoices/{invoice.invoice_number.lower()}/")

        self.assertEqual(res.status_code, 200)
        self.assertEqual(res.data["invoice_number"], invoice.invoice_number)
        self.assertNotIn("phone", res.data)

    def test_public_lookup_unknown(self):
        res = self.client.get("/api/invoices/INV00000000-NOPE/")
        self.assertEqual(res.status_code, 404)
