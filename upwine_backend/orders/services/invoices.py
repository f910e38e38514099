# orders/services/invoices.py

"""
INVOICES

Ad-hoc invoices raised from the dashboard. They never reserve stock.

- update_invoice() only while draft/sent; total is recomputed by Invoice.save()
- send_invoice() records the WhatsApp message in the outbox and marks the
  invoice sent even if delivery happens later
"""

from __future__ import annotations

import logging
from decimal import Decimal, InvalidOperation

from django.db import transaction
from django.utils import timezone

from notifications import messages
from notifications.models import Notification
from notifications.services.outbox import emit
from orders.models import Invoice

logger = logging.getLogger(__name__)

EDITABLE_STATES = {Invoice.STATUS_DRAFT, Invoice.STATUS_SENT}

EDITABLE_FIELDS = (
    "customer_name",
    "phone",
    "email",
    "address",
    "quantity",
    "price_per_bottle",
    "delivery_fee",
    "discount",
    "notes",
    "due_date",
)


class InvoiceError(Exception):
    def __init__(self, message: str, field_name: str | None = None):
        self.message = message
        self.field = field_name
        super().__init__(message)


def _decimal(data: dict, key: str, *, default=None) -> Decimal | None:
    raw = data.get(key, default)
    if raw is None or raw == "":
        return default
    try:
        value = Decimal(str(raw))
    except (InvalidOperation, ValueError) as exc:
        raise InvoiceError(f"{key} must be a number", key) from exc
    if value < 0:
        raise InvoiceError(f"{key} cannot be negative", key)
    return value


def _apply(invoice: Invoice, data: dict) -> None:
    for key in EDITABLE_FIELDS:
        if key not in data:
            continue
        value = data[key]
        if key in ("price_per_bottle", "delivery_fee", "discount"):
            value = _decimal(data, key, default=Decimal("0.00"))
        elif key == "quantity":
            if isinstance(value, bool) or not str(value).strip().isdigit() or int(value) < 1:
                raise InvoiceError("quantity must be at least 1", "quantity")
            value = int(value)
        elif isinstance(value, str):
            value = value.strip()
        setattr(invoice, key, value)

    if not (invoice.customer_name or "").strip():
        raise InvoiceError("Customer name is required", "customer_name")
    if not (invoice.phone or "").strip():
        raise InvoiceError("Phone number is required", "phone")
    if not invoice.quantity:
        raise InvoiceError("quantity must be at least 1", "quantity")
    if invoice.price_per_bottle is None or Decimal(str(invoice.price_per_bottle)) <= 0:
        raise InvoiceError("price_per_bottle must be greater than zero", "price_per_bottle")

    total = Invoice.compute_total(
        invoice.quantity, invoice.price_per_bottle, invoice.delivery_fee, invoice.discount
    )
    if total < 0:
        raise InvoiceError("Discount cannot exceed the invoice amount", "discount")


@transaction.atomic
def create_invoice(data: dict) -> Invoice:
    invoice = Invoice()
    _apply(invoice, data or {})
    invoice.save()
    logger.info(
        "Invoice created",
        extra={"invoice_number": invoice.invoice_number, "total": str(invoice.total_amount)},
    )
    return invoice


@transaction.atomic
def update_invoice(invoice_id, data: dict) -> Invoice:
    invoice = Invoice.objects.select_for_update().get(pk=invoice_id)
    if invoice.status not in EDITABLE_STATES:
        raise InvoiceError(f"Invoice {invoice.invoice_number} is {invoice.status} and can no longer be edited")

    _apply(invoice, data or {})
    invoice.save()
    return invoice


@transaction.atomic
def set_invoice_status(invoice_id, status: str) -> Invoice:
    target = str(status or "").strip().lower()
    valid = {choice for choice, _ in Invoice.STATUS_CHOICES}
    if target not in valid:
        raise InvoiceError(f"Unknown invoice status '{status}'", "status")

    invoice = Invoice.objects.select_for_update().get(pk=invoice_id)
    if invoice.status == target:
        return invoice
    if invoice.status in (Invoice.STATUS_PAID, Invoice.STATUS_CANCELLED):
        raise InvoiceError(f"Invoice {invoice.invoice_number} is already {invoice.status}", "status")

    now = timezone.now()
    invoice.status = target
    update_fields = ["status", "updated_at"]
    if target == Invoice.STATUS_PAID:
        invoice.paid_at = now
        update_fields.append("paid_at")
    elif target == Invoice.STATUS_SENT and invoice.sent_at is None:
        invoice.sent_at = now
        update_fields.append("sent_at")
    invoice.save(update_fields=update_fields)

    logger.info("Invoice status updated", extra={"invoice_number": invoice.invoice_number, "status": target})
    return invoice


@transaction.atomic
def send_invoice(invoice_id) -> Invoice:
    invoice = Invoice.objects.select_for_update().get(pk=invoice_id)
    if invoice.status not in EDITABLE_STATES:
        raise InvoiceError(f"Invoice {invoice.invoice_number} is {invoice.status} and cannot be sent")

    emit(
        Notification.KIND_INVOICE,
        invoice.phone,
        messages.invoice_message(invoice),
        invoice=invoice,
    )

    invoice.status = Invoice.STATUS_SENT
    invoice.sent_at = timezone.now()
    invoice.save(update_fields=["status", "sent_at", "updated_at"])

    logger.info("Invoice sent", extra={"invoice_number": invoice.invoice_number})
    return invoice
