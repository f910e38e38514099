# inventory/models/stock_period.py

from django.core.exceptions import ValidationError
from django.db import models
from django.db.models import F, Q


class StockPeriod(models.Model):
    """
    Bottles allotted for one inventory period (a week starting Monday, or a day).

    STOCK MODEL (IMPORTANT):
    - available_bottles is stored, not computed on read, so reservations can be
      a single conditional UPDATE (no read-modify-write race)
    - available = total - sold is enforced by a DB check constraint
    - rows are mutated ONLY through inventory.services.stock_ledger
    """

    period_start = models.DateField(unique=True)

    total_bottles = models.PositiveIntegerField(default=0)
    sold_bottles = models.PositiveIntegerField(default=0)
    available_bottles = models.PositiveIntegerField(default=0)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-period_start"]
        constraints = [
            models.CheckConstraint(
                condition=Q(available_bottles__gte=0),
                name="stockperiod_available_non_negative",
            ),
            models.CheckConstraint(
                condition=Q(sold_bottles__gte=0),
                name="stockperiod_sold_non_negative",
            ),
            models.CheckConstraint(
                condition=Q(available_bottles=F("total_bottles") - F("sold_bottles")),
                name="stockperiod_available_equals_total_minus_sold",
            ),
        ]

    def clean(self):
        total = int(self.total_bottles or 0)
        sold = int(self.sold_bottles or 0)
        if sold > total:
            raise ValidationError("sold_bottles cannot exceed total_bottles")
        if int(self.available_bottles or 0) != total - sold:
            raise ValidationError("available_bottles must equal total_bottles - sold_bottles")

    def __str__(self):
        return f"{self.period_start} | {self.available_bottles}/{self.total_bottles}"
