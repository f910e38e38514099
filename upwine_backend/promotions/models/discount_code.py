# promotions/models/discount_code.py

from decimal import Decimal

from django.core.exceptions import ValidationError
from django.db import models
from django.db.models import F, Q


def normalize_code(value) -> str:
    return str(value or "").strip().upper()


class DiscountCode(models.Model):
    """
    Promotional code applied to an order total.

    Rules:
    - code is stored upper-case; lookups are case-insensitive
    - used_count moves ONLY through promotions.services.discounts
      (conditional UPDATE, never exceeds max_uses)
    """

    TYPE_PERCENTAGE = "percentage"
    TYPE_FIXED = "fixed"

    TYPE_CHOICES = [
        (TYPE_PERCENTAGE, "Percentage"),
        (TYPE_FIXED, "Fixed amount"),
    ]

    code = models.CharField(max_length=50, unique=True)
    discount_type = models.CharField(max_length=20, choices=TYPE_CHOICES)
    value = models.DecimalField(max_digits=12, decimal_places=2)

    min_order_amount = models.DecimalField(
        max_digits=12, decimal_places=2, null=True, blank=True
    )
    max_uses = models.PositiveIntegerField(null=True, blank=True)
    used_count = models.PositiveIntegerField(default=0)

    expires_at = models.DateTimeField(null=True, blank=True)
    is_active = models.BooleanField(default=True)
    description = models.TextField(blank=True, default="")

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at"]
        constraints = [
            models.CheckConstraint(
                condition=Q(value__gt=0),
                name="discountcode_value_positive",
            ),
            models.CheckConstraint(
                condition=Q(discount_type="fixed") | Q(value__lte=100),
                name="discountcode_percentage_max_100",
            ),
            models.CheckConstraint(
                condition=Q(max_uses__isnull=True) | Q(used_count__lte=F("max_uses")),
                name="discountcode_used_within_max_uses",
            ),
        ]

    def clean(self):
        if self.value is None or Decimal(str(self.value)) <= 0:
            raise ValidationError({"value": "Discount value must be greater than 0"})
        if self.discount_type == self.TYPE_PERCENTAGE and Decimal(str(self.value)) > 100:
            raise ValidationError({"value": "Percentage discount cannot exceed 100%"})

    def save(self, *args, **kwargs):
        self.code = normalize_code(self.code)
        super().save(*args, **kwargs)

    @property
    def uses_remaining(self):
        if self.max_uses is None:
            return None
        return max(int(self.max_uses) - int(self.used_count or 0), 0)

    def __str__(self):
        return f"{self.code} | {self.discount_type} {self.value}"
