# orders/models/invoice.py

import uuid
from decimal import ROUND_HALF_UP, Decimal

from django.db import models
from django.db.models import Q
from django.utils import timezone

TWOPLACES = Decimal("0.01")


def _money(v) -> Decimal:
    if v is None or v == "":
        return Decimal("0.00")
    return Decimal(str(v)).quantize(TWOPLACES, rounding=ROUND_HALF_UP)


def generate_invoice_number() -> str:
    prefix = timezone.now().strftime("INV%Y%m%d")
    return f"{prefix}-{uuid.uuid4().hex[:6].upper()}"


class Invoice(models.Model):
    """
    Ad-hoc invoice raised by the shop (bulk / off-site orders).

    Invoices never touch the stock ledger.
    total_amount = quantity * price_per_bottle + delivery_fee - discount
    """

    STATUS_DRAFT = "draft"
    STATUS_SENT = "sent"
    STATUS_PAID = "paid"
    STATUS_CANCELLED = "cancelled"

    STATUS_CHOICES = [
        (STATUS_DRAFT, "Draft"),
        (STATUS_SENT, "Sent"),
        (STATUS_PAID, "Paid"),
        (STATUS_CANCELLED, "Cancelled"),
    ]

    invoice_number = models.CharField(max_length=32, unique=True, blank=True)

    customer_name = models.CharField(max_length=120)
    phone = models.CharField(max_length=40)
    email = models.EmailField(blank=True, default="")
    address = models.TextField(blank=True, default="")

    quantity = models.PositiveIntegerField()
    price_per_bottle = models.DecimalField(max_digits=12, decimal_places=2)
    delivery_fee = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    discount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    total_amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))

    status = models.CharField(max_length=16, choices=STATUS_CHOICES, default=STATUS_DRAFT)
    notes = models.TextField(blank=True, default="")
    due_date = models.DateField(null=True, blank=True)
    sent_at = models.DateTimeField(null=True, blank=True)
    paid_at = models.DateTimeField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at"]
        constraints = [
            models.CheckConstraint(
                condition=Q(total_amount__gte=0),
                name="invoice_total_non_negative",
            ),
        ]

    @staticmethod
    def compute_total(quantity, price_per_bottle, delivery_fee, discount) -> Decimal:
        return _money(
            _money(price_per_bottle) * Decimal(int(quantity or 0))
            + _money(delivery_fee)
            - _money(discount)
        )

    def save(self, *args, **kwargs):
        if not self.invoice_number:
            self.invoice_number = generate_invoice_number()
        self.invoice_number = self.invoice_number.upper()

        self.total_amount = self.compute_total(
            self.quantity, self.price_per_bottle, self.delivery_fee, self.discount
        )
        super().save(*args, **kwargs)

    def __str__(self):
        return f"{self.invoice_number} | {self.total_amount} | {self.status}"
