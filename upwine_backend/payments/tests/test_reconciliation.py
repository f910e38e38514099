# payments/tests/test_reconciliation.py

import hashlib
import hmac
import json
import threading
import unittest
from unittest.mock import patch

from django.db import connection, connections
from django.test import TestCase, TransactionTestCase
from rest_framework.test import APIClient

from inventory.services.stock_ledger import current_period_key, reset_period
from notifications.models import Notification
from orders.models import Order
from orders.services.order_lifecycle import create_order
from payments.services.paystack import PaystackError
from payments.services.reconciliation import (
    PaymentAmountMismatchError,
    PaymentInitializationError,
    PaymentProviderError,
    PaymentReferenceNotFoundError,
    PaymentVerificationError,
    initialize_payment,
    reconcile,
)

VERIFY = "payments.services.reconciliation.verify_paystack_transaction"
INITIALIZE = "payments.services.reconciliation.paystack_initialize_transaction"
SECRET = b"sk_test_upwine"


def _verified(reference, amount_kobo, tx_status="success"):
    return {"ok": tx_status == "success", "status": tx_status, "amount": amount_kobo}


def _online_order(reference="UPW-TEST-REF-1", quantity=2):
    order = create_order(
        {
            "customer_name": "Bola Ade",
            "phone": "08035550000",
            "email": "bola@example.com",
            "quantity": quantity,
            "delivery_type": "pickup",
            "payment_method": "online",
        }
    ).order
    Order.objects.filter(pk=order.pk).update(payment_reference=reference)
    order.refresh_from_db()
    return order


def _payment_notifications(order):
    return Notification.objects.filter(
        order=order,
        kind__in=[Notification.KIND_PAYMENT_RECEIPT, Notification.KIND_ADMIN_PAYMENT_ALERT],
    )


class ReconcileTests(TestCase):
    """
    GUARANTEES:
    - an order is marked paid at most once per reference
    - receipt + shop alert are recorded exactly once
    - nothing changes unless Paystack confirms the exact amount
    """

    def setUp(self):
        reset_period(current_period_key(), 10)
        self.order = _online_order()

    def test_success_marks_paid_and_confirms(self):
        with patch(VERIFY, return_value=_verified("UPW-TEST-REF-1", 400000)):
            result = reconcile("UPW-TEST-REF-1", "callback")

        self.assertFalse(result.already_paid)
        self.assertEqual(result.order.payment_status, Order.PAYMENT_PAID)
        self.assertEqual(result.order.status, Order.STATUS_CONFIRMED)
        self.assertIsNotNone(result.order.paid_at)
        self.assertEqual(_payment_notifications(self.order).count(), 2)

    def test_second_reconcile_is_a_no_op(self):
        with patch(VERIFY, return_value=_verified("UPW-TEST-REF-1", 400000)):
            first = reconcile("UPW-TEST-REF-1", "callback")
            second = reconcile("UPW-TEST-REF-1", "webhook")

        self.assertFalse(first.already_paid)
        self.assertTrue(second.already_paid)
        self.assertEqual(_payment_notifications(self.order).count(), 2)

    def test_amount_mismatch_changes_nothing(self):
        with patch(VERIFY, return_value=_verified("UPW-TEST-REF-1", 100000)):
            with self.assertRaises(PaymentAmountMismatchError):
                reconcile("UPW-TEST-REF-1", "webhook")

        self.order.refresh_from_db()
        self.assertEqual(self.order.payment_status, Order.PAYMENT_PENDING)
        self.assertEqual(_payment_notifications(self.order).count(), 0)

    def test_unsuccessful_transaction(self):
        with patch(VERIFY, return_value=_verified("UPW-TEST-REF-1", 400000, tx_status="failed")):
            with self.assertRaises(PaymentVerificationError):
                reconcile("UPW-TEST-REF-1", "callback")

        self.order.refresh_from_db()
        self.assertEqual(self.order.payment_status, Order.PAYMENT_PENDING)

    def test_provider_timeout_is_a_failed_verification(self):
        with patch(VERIFY, side_effect=PaystackError("timed out")):
            with self.assertRaises(PaymentVerificationError):
                reconcile("UPW-TEST-REF-1", "callback")

        self.order.refresh_from_db()
        self.assertEqual(self.order.payment_status, Order.PAYMENT_PENDING)

    def test_unknown_reference(self):
        with patch(VERIFY, return_value=_verified("NOPE", 400000)):
            with self.assertRaises(PaymentReferenceNotFoundError):
                reconcile("NOPE", "webhook")

    def test_reference_lookup_is_exact(self):
        with patch(VERIFY, return_value=_verified("upw-test-ref-1", 400000)):
            with self.assertRaises(PaymentReferenceNotFoundError):
                reconcile("upw-test-ref-1", "webhook")


@unittest.skipUnless(connection.vendor == "postgresql", "needs row-level concurrency (PostgreSQL)")
class ConcurrentReconcileTests(TransactionTestCase):
    """
    Callback and webhook for the same payment arriving together.
    """

    def test_only_one_caller_marks_the_order_paid(self):
        reset_period(current_period_key(), 10)
        order = _online_order(reference="UPW-RACE-1")

        results = []
        errors = []
        barrier = threading.Barrier(2)

        def worker(source):
            try:
                barrier.wait()
                results.append(reconcile("UPW-RACE-1", source).already_paid)
            except Exception as exc:
                errors.append(exc)
            finally:
                connections.close_all()

        with patch(VERIFY, return_value=_verified("UPW-RACE-1", 400000)):
            threads = [
                threading.Thread(target=worker, args=(source,))
                for source in ("callback", "webhook")
            ]
            for t in threads:
                t.start()
            for t in threads:
                t.join()

        self.assertEqual(errors, [])
        self.assertEqual(sorted(results), [False, True])

        order.refresh_from_db()
        self.assertEqual(order.payment_status, Order.PAYMENT_PAID)
        self.assertEqual(_payment_notifications(order).count(), 2)


class InitializePaymentTests(TestCase):
    def setUp(self):
        reset_period(current_period_key(), 10)
        self.order = create_order(
            {
                "customer_name": "Bola Ade",
                "phone": "08035550000",
                "quantity": 1,
                "delivery_type": "pickup",
                "payment_method": "online",
            }
        ).order

    def test_creates_session_once(self):
        init = {"authorization_url": "https://checkout.paystack.com/abc", "reference": "x"}
        with patch(INITIALIZE, return_value=init) as mocked:
            session = initialize_payment(self.order.order_number, "bola@example.com")
            again = initialize_payment(self.order.order_number.lower(), "bola@example.com")

        self.assertEqual(mocked.call_count, 1)
        self.assertFalse(session.reused)
        self.assertTrue(again.reused)
        self.assertEqual(session.reference, again.reference)
        self.assertTrue(session.reference.startswith(f"UPW-{self.order.order_number}-"))
        self.assertEqual(mocked.call_args.kwargs["amount_naira"], self.order.total_amount)

        self.order.refresh_from_db()
        self.assertEqual(self.order.payment_reference, session.reference)
        self.assertEqual(self.order.payment_authorization_url, "https://checkout.paystack.com/abc")

    def test_provider_failure_saves_nothing(self):
        with patch(INITIALIZE, side_effect=PaystackError("boom")):
            with self.assertRaises(PaymentProviderError):
                initialize_payment(self.order.order_number, "bola@example.com")

        self.order.refresh_from_db()
        self.assertIsNone(self.order.payment_reference)

    def test_cod_orders_cannot_start_payment(self):
        cod = create_order(
            {
                "customer_name": "Bola Ade",
                "phone": "08035550000",
                "quantity": 1,
                "delivery_type": "pickup",
                "payment_method": "cod",
            }
        ).order

        with self.assertRaises(PaymentInitializationError):
            initialize_payment(cod.order_number, "bola@example.com")

    def test_email_required(self):
        with self.assertRaises(PaymentInitializationError):
            initialize_payment(self.order.order_number, "")


class PaymentApiTests(TestCase):
    def setUp(self):
        self.client = APIClient()
        reset_period(current_period_key(), 10)
        self.order = _online_order(reference="UPW-API-REF-1")

    def _webhook(self, body: dict, signature=None):
        raw = json.dumps(body).encode("utf-8")
        if signature is None:
            signature = hmac.new(SECRET, raw, hashlib.sha512).hexdigest()
        return self.client.generic(
            "POST",
            "/api/payments/webhook/",
            raw,
            content_type="application/json",
            HTTP_X_PAYSTACK_SIGNATURE=signature,
        )

    def test_callback_then_webhook_pays_once(self):
        with patch(VERIFY, return_value=_verified("UPW-API-REF-1", 400000)):
            res = self.client.get("/api/payments/callback/", {"reference": "UPW-API-REF-1"})
            self.assertEqual(res.status_code, 302)
            self.assertIn("/payment/success", res["Location"])

            res = self._webhook(
                {"event": "charge.success", "data": {"reference": "UPW-API-REF-1"}}
            )
            self.assertEqual(res.status_code, 200)
            self.assertEqual(res.data["detail"], "Already processed")

        self.order.refresh_from_db()
        self.assertEqual(self.order.payment_status, Order.PAYMENT_PAID)
        self.assertEqual(_payment_notifications(self.order).count(), 2)

    def test_bad_signature_is_rejected_without_side_effects(self):
        with patch(VERIFY) as mocked:
            res = self._webhook(
                {"event": "charge.success", "data": {"reference": "UPW-API-REF-1"}},
                signature="not-a-real-signature",
            )

        self.assertEqual(res.status_code, 400)
        self.assertEqual(res.data["error"]["code"], "INVALID_SIGNATURE")
        mocked.assert_not_called()
        self.order.refresh_from_db()
        self.assertEqual(self.order.payment_status, Order.PAYMENT_PENDING)

    def test_webhook_ignores_other_events(self):
        with patch(VERIFY) as mocked:
            res = self._webhook({"event": "transfer.success", "data": {"reference": "x"}})

        self.assertEqual(res.status_code, 200)
        mocked.assert_not_called()

    def test_verify_endpoint(self):
        with patch(VERIFY, return_value=_verified("UPW-API-REF-1", 400000)):
            res = self.client.post(
                "/api/payments/verify/", {"reference": "UPW-API-REF-1"}, format="json"
            )

        self.assertEqual(res.status_code, 200)
        self.assertTrue(res.data["success"])
        self.assertFalse(res.data["already_paid"])
        self.assertEqual(res.data["payment_status"], "paid")

    def test_verify_failures_look_the_same(self):
        with patch(VERIFY, return_value=_verified("UPW-API-REF-1", 1)):
            mismatch = self.client.post(
                "/api/payments/verify/", {"reference": "UPW-API-REF-1"}, format="json"
            )
        with patch(VERIFY, return_value=_verified("UNKNOWN", 400000)):
            unknown = self.client.post(
                "/api/payments/verify/", {"reference": "UNKNOWN"}, format="json"
            )

        for res in (mismatch, unknown):
            self.assertEqual(res.status_code, 400)
            self.assertEqual(res.data["error"]["message"], "Payment could not be verified")

    def test_callback_failure_redirects_to_failed_page(self):
        with patch(VERIFY, side_effect=PaystackError("down")):
            res = self.client.get("/api/payments/callback/", {"reference": "UPW-API-REF-1"})

        self.assertEqual(res.status_code, 302)
        self.assertIn("/payment/failed", res["Location"])

    def test_initialize_endpoint_provider_down_is_502(self):
        order = create_order(
            {
                "customer_name": "Bola Ade",
                "phone": "08035550000",
                "quantity": 1,
                "delivery_type": "pickup",
                "payment_method": "online",
            }
        ).order

        with patch(INITIALIZE, side_effect=PaystackError("down")):
            res = self.client.post(
                "/api/payments/initialize/",
                {"order_number": order.order_number, "email": "bola@example.com"},
                format="json",
            )

        self.assertEqual(res.status_code, 502)
