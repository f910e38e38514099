# payments/services/reconciliation.py

"""
PAYMENT RECONCILIATION

One entry point for both the browser callback and the Paystack webhook:

    reconcile(reference, source)
        1. verify with Paystack (timeout / transport error / non-success
           => PaymentVerificationError, nothing is touched)
        2. find the order by payment_reference (exact match)
        3. verified kobo must equal the order total in kobo
        4. conditional UPDATE ... WHERE payment_status != 'paid'
        5. only the caller that flipped the row records the receipt and
           the shop alert; everyone else gets already_paid=True

initialize_payment(order_number, email)
    Creates the Paystack session for an online order. The reference is
    written once; repeat calls return the stored authorization URL.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass

from django.db import transaction

from notifications import messages
from notifications.models import Notification
from notifications.services.outbox import admin_phone, emit
from orders.models import Order
from orders.services.order_lifecycle import mark_paid
from payments.services.paystack import (
    PaystackError,
    default_callback_url,
    paystack_initialize_transaction,
    to_kobo,
    verify_paystack_transaction,
)

logger = logging.getLogger(__name__)

SOURCE_CALLBACK = "callback"
SOURCE_WEBHOOK = "webhook"
SOURCE_VERIFY = "verify"


# ============================================================
# DOMAIN ERRORS
# ============================================================

class PaymentError(Exception):
    """Base payment failure."""


class PaymentVerificationError(PaymentError):
    pass


class PaymentAmountMismatchError(PaymentError):
    def __init__(self, *, reference: str, expected_kobo: int, paid_kobo):
        self.reference = reference
        self.expected_kobo = expected_kobo
        self.paid_kobo = paid_kobo
        super().__init__(
            f"Amount mismatch for {reference}: expected {expected_kobo} kobo, got {paid_kobo}"
        )


class PaymentReferenceNotFoundError(PaymentError):
    pass


class PaymentInitializationError(PaymentError):
    pass


class PaymentProviderError(PaymentInitializationError):
    """Paystack could not create the session (maps to 502)."""


@dataclass(frozen=True)
class ReconciliationResult:
    order: Order
    already_paid: bool


@dataclass(frozen=True)
class PaymentSession:
    order: Order
    reference: str
    authorization_url: str
    reused: bool


# ============================================================
# RECONCILE
# ============================================================

def _notify_paid(order: Order) -> None:
    emit(
        Notification.KIND_PAYMENT_RECEIPT,
        order.phone,
        messages.payment_receipt(order),
        order=order,
    )
    emit(
        Notification.KIND_ADMIN_PAYMENT_ALERT,
        admin_phone(),
        messages.admin_payment_alert(order),
        order=order,
    )


def reconcile(reference: str, source: str = SOURCE_CALLBACK) -> ReconciliationResult:
    ref = str(reference or "").strip()
    if not ref:
        raise PaymentReferenceNotFoundError("Payment reference is required")

    try:
        verify = verify_paystack_transaction(reference=ref)
    except PaystackError as exc:
        logger.warning(
            "Paystack verification failed",
            extra={"reference": ref, "source": source, "error": str(exc)},
        )
        raise PaymentVerificationError(str(exc)) from exc

    if not verify.get("ok"):
        logger.warning(
            "Payment not successful at Paystack",
            extra={"reference": ref, "source": source, "provider_status": verify.get("status")},
        )
        raise PaymentVerificationError(f"Transaction {ref} is not successful")

    order = Order.objects.filter(payment_reference=ref).first()
    if order is None:
        logger.warning("Unknown payment reference", extra={"reference": ref, "source": source})
        raise PaymentReferenceNotFoundError(f"No order for reference {ref}")

    expected = to_kobo(order.total_amount)
    paid = verify.get("amount")
    if paid != expected:
        logger.error(
            "Payment amount mismatch",
            extra={
                "reference": ref,
                "source": source,
                "expected_kobo": expected,
                "paid_kobo": paid,
                "order_number": order.order_number,
            },
        )
        raise PaymentAmountMismatchError(reference=ref, expected_kobo=expected, paid_kobo=paid)

    with transaction.atomic():
        flipped = mark_paid(order.pk)
        order.refresh_from_db()
        if flipped:
            _notify_paid(order)

    if flipped:
        logger.info(
            "Payment reconciled",
            extra={"reference": ref, "source": source, "order_number": order.order_number},
        )
    else:
        logger.info(
            "Payment already reconciled",
            extra={"reference": ref, "source": source, "order_number": order.order_number},
        )

    return ReconciliationResult(order=order, already_paid=not flipped)


# ============================================================
# INITIALIZE
# ============================================================

def _new_reference(order: Order) -> str:
    return f"UPW-{order.order_number}-{int(time.time() * 1000)}"


@transaction.atomic
def initialize_payment(order_number: str, email: str) -> PaymentSession:
    order = (
        Order.objects.select_for_update()
        .filter(order_number__iexact=str(order_number or "").strip())
        .first()
    )
    if order is None:
        raise PaymentReferenceNotFoundError(f"Order {order_number} not found")

    if order.payment_method != Order.METHOD_ONLINE:
        raise PaymentInitializationError("Order is not an online payment order")
    if order.is_paid:
        raise PaymentInitializationError("Order is already paid")
    if order.is_cancelled:
        raise PaymentInitializationError("Order is cancelled")

    if order.payment_reference and order.payment_authorization_url:
        return PaymentSession(
            order=order,
            reference=order.payment_reference,
            authorization_url=order.payment_authorization_url,
            reused=True,
        )

    reference = order.payment_reference or _new_reference(order)
    payer_email = str(email or order.email or "").strip()
    if not payer_email:
        raise PaymentInitializationError("An email address is required for online payment")

    try:
        init = paystack_initialize_transaction(
            email=payer_email,
            amount_naira=order.total_amount,
            reference=reference,
            callback_url=default_callback_url(),
            metadata={
                "order_id": str(order.pk),
                "order_number": order.order_number,
                "customer_name": order.customer_name,
                "phone": order.phone,
                "quantity": order.quantity,
            },
        )
    except PaystackError as exc:
        logger.error(
            "Paystack initialization failed",
            extra={"order_number": order.order_number, "error": str(exc)},
        )
        raise PaymentProviderError(str(exc)) from exc

    authorization_url = str(init.get("authorization_url") or "").strip()
    if not authorization_url:
        raise PaymentProviderError("Paystack did not return an authorization URL")

    order.payment_reference = reference
    order.payment_authorization_url = authorization_url
    if not order.email:
        order.email = payer_email
    order.save(update_fields=["payment_reference", "payment_authorization_url", "email", "updated_at"])

    logger.info(
        "Payment session created",
        extra={"order_number": order.order_number, "reference": reference},
    )
    return PaymentSession(
        order=order,
        reference=reference,
        authorization_url=authorization_url,
        reused=False,
    )
