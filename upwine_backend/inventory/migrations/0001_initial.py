"""
MIGRATION: CREATE StockPeriod (per-period bottle allotment)
"""

from __future__ import annotations

from django.db import migrations, models


class Migration(migrations.Migration):
    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="StockPeriod",
            fields=[
                (
                    "id",
                    models.BigAutoField(
                        auto_created=True,
                        primary_key=True,
                        serialize=False,
                        verbose_name="ID",
                    ),
                ),
                ("period_start", models.DateField(unique=True)),
                ("total_bottles", models.PositiveIntegerField(default=0)),
                ("sold_bottles", models.PositiveIntegerField(default=0)),
                ("available_bottles", models.PositiveIntegerField(default=0)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={
                "ordering": ["-period_start"],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(("available_bottles__gte", 0)),
                        name="stockperiod_available_non_negative",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(("sold_bottles__gte", 0)),
                        name="stockperiod_sold_non_negative",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(
                            (
                                "available_bottles",
                                models.F("total_bottles") - models.F("sold_bottles"),
                            )
                        ),
                        name="stockperiod_available_equals_total_minus_sold",
                    ),
                ],
            },
        ),
    ]
