# inventory/admin.py
"""
Stock periods are read-only in the admin site apart from creation.

Sold/available counts move only through the stock ledger service, so editing
them by hand here would bypass the conditional updates that keep
available == total - sold.
"""

from django.contrib import admin

from inventory.models import StockPeriod


@admin.register(StockPeriod)
class StockPeriodAdmin(admin.ModelAdmin):
    list_display = (
        "period_start",
        "total_bottles",
        "sold_bottles",
        "available_bottles",
        "updated_at",
    )
    ordering = ("-period_start",)
    date_hierarchy = "period_start"
    readonly_fields = ("sold_bottles", "available_bottles", "created_at", "updated_at")

    def has_change_permission(self, request, obj=None):
        return obj is None

    def has_delete_permission(self, request, obj=None):
        return False
