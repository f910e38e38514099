# orders/models/order.py

import uuid
from decimal import ROUND_HALF_UP, Decimal

from django.core.exceptions import ValidationError
from django.db import models
from django.db.models import Q
from django.utils import timezone

TWOPLACES = Decimal("0.01")


def _money(v) -> Decimal:
    if v is None or v == "":
        return Decimal("0.00")
    return Decimal(str(v)).quantize(TWOPLACES, rounding=ROUND_HALF_UP)


def generate_order_number() -> str:
    prefix = timezone.now().strftime("UPW%Y%m%d")
    return f"{prefix}-{uuid.uuid4().hex[:8].upper()}"


class Order(models.Model):
    """
    Customer order.

    Key rules:
    - total_amount == subtotal_amount + delivery_fee - discount_amount >= 0
      (checked on every save)
    - payment_status only moves pending -> paid
    - cancelled is terminal; stock is released exactly once on cancellation
    - payment_reference is written at most once
    - orders are never deleted
    - state changes go through orders.services.order_lifecycle and
      payments.services.reconciliation, never ad-hoc saves
    """

    STATUS_PENDING = "pending"
    STATUS_CONFIRMED = "confirmed"
    STATUS_COMPLETED = "completed"
    STATUS_DELIVERED = "delivered"
    STATUS_CANCELLED = "cancelled"

    STATUS_CHOICES = [
        (STATUS_PENDING, "Pending"),
        (STATUS_CONFIRMED, "Confirmed"),
        (STATUS_COMPLETED, "Completed"),
        (STATUS_DELIVERED, "Delivered"),
        (STATUS_CANCELLED, "Cancelled"),
    ]

    PAYMENT_PENDING = "pending"
    PAYMENT_PAID = "paid"

    PAYMENT_STATUS_CHOICES = [
        (PAYMENT_PENDING, "Pending"),
        (PAYMENT_PAID, "Paid"),
    ]

    METHOD_COD = "cod"
    METHOD_ONLINE = "online"

    PAYMENT_METHOD_CHOICES = [
        (METHOD_COD, "Cash on Delivery"),
        (METHOD_ONLINE, "Online (Paystack)"),
    ]

    DELIVERY_PICKUP = "pickup"
    DELIVERY_DELIVERY = "delivery"

    DELIVERY_TYPE_CHOICES = [
        (DELIVERY_PICKUP, "Pickup"),
        (DELIVERY_DELIVERY, "Delivery"),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    order_number = models.CharField(
        max_length=32,
        unique=True,
        blank=True,
        help_text="System-generated public order number",
    )

    # Customer
    customer_name = models.CharField(max_length=120)
    phone = models.CharField(max_length=40)
    email = models.EmailField(blank=True, default="")
    address = models.TextField(blank=True, default="")

    # Stock reservation
    quantity = models.PositiveIntegerField()
    stock_period = models.DateField(null=True, blank=True)

    # Fulfilment
    delivery_type = models.CharField(max_length=16, choices=DELIVERY_TYPE_CHOICES)
    delivery_zone = models.CharField(max_length=120, blank=True, default="")
    delivery_distance_km = models.DecimalField(
        max_digits=7, decimal_places=1, null=True, blank=True
    )
    delivery_time = models.CharField(max_length=120, blank=True, default="")

    # Discount
    discount_code = models.ForeignKey(
        "promotions.DiscountCode",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="orders",
    )
    discount_code_text = models.CharField(max_length=50, blank=True, default="")

    # Money (server authoritative)
    subtotal_amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    delivery_fee = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    discount_amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    total_amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))

    # Payment
    payment_method = models.CharField(max_length=16, choices=PAYMENT_METHOD_CHOICES)
    payment_status = models.CharField(
        max_length=16, choices=PAYMENT_STATUS_CHOICES, default=PAYMENT_PENDING
    )
    payment_reference = models.CharField(max_length=100, unique=True, null=True, blank=True)
    payment_authorization_url = models.URLField(max_length=500, blank=True, default="")
    paid_at = models.DateTimeField(null=True, blank=True)

    status = models.CharField(max_length=16, choices=STATUS_CHOICES, default=STATUS_PENDING)
    cancelled_at = models.DateTimeField(null=True, blank=True)
    notes = models.TextField(blank=True, default="")

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["status"], name="orders_orde_status_8d2c41_idx"),
            models.Index(fields=["payment_status"], name="orders_orde_payment_5b7e19_idx"),
            models.Index(fields=["created_at"], name="orders_orde_created_0f4a6e_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=Q(total_amount__gte=0),
                name="order_total_non_negative",
            ),
            models.CheckConstraint(
                condition=Q(discount_amount__gte=0) & Q(delivery_fee__gte=0),
                name="order_fee_and_discount_non_negative",
            ),
            models.CheckConstraint(
                condition=Q(quantity__gte=1),
                name="order_quantity_positive",
            ),
        ]

    # --------------------------------------------------
    # Money invariant
    # --------------------------------------------------

    @staticmethod
    def compute_total(subtotal, delivery_fee, discount) -> Decimal:
        return _money(_money(subtotal) + _money(delivery_fee) - _money(discount))

    def check_amounts(self):
        expected = self.compute_total(self.subtotal_amount, self.delivery_fee, self.discount_amount)
        if _money(self.total_amount) != expected:
            raise ValidationError(
                {"total_amount": f"total_amount must equal subtotal + delivery_fee - discount ({expected})"}
            )
        if expected < 0:
            raise ValidationError({"total_amount": "total_amount cannot be negative"})

    def clean(self):
        if self.delivery_type == self.DELIVERY_DELIVERY and not (self.address or "").strip():
            raise ValidationError({"address": "Delivery address is required for delivery orders"})
        self.check_amounts()

    def save(self, *args, **kwargs):
        if not self.order_number:
            self.order_number = generate_order_number()
        self.order_number = self.order_number.upper()

        self.check_amounts()
        super().save(*args, **kwargs)

    @property
    def is_cancelled(self) -> bool:
        return self.status == self.STATUS_CANCELLED

    @property
    def is_paid(self) -> bool:
        return self.payment_status == self.PAYMENT_PAID

    def __str__(self):
        return f"{self.order_number} | {self.total_amount} | {self.status}"


class OrderItem(models.Model):
    """
    Priced line (server-side price snapshot at order time).
    """

    order = models.ForeignKey(Order, on_delete=models.CASCADE, related_name="items")

    size = models.CharField(max_length=20)
    quantity = models.PositiveIntegerField()
    unit_price = models.DecimalField(max_digits=12, decimal_places=2)
    total_price = models.DecimalField(max_digits=12, decimal_places=2, editable=False)

    class Meta:
        ordering = ["id"]
        constraints = [
            models.CheckConstraint(
                condition=Q(quantity__gte=1),
                name="orderitem_quantity_positive",
            ),
            models.CheckConstraint(
                condition=Q(unit_price__gt=0),
                name="orderitem_unit_price_positive",
            ),
        ]

    def save(self, *args, **kwargs):
        self.total_price = _money(_money(self.unit_price) * Decimal(int(self.quantity or 0)))
        super().save(*args, **kwargs)

    def __str__(self):
        return f"{self.quantity} x {self.size} @ {self.unit_price}"
