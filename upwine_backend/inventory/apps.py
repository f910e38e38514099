# inventory/apps.py

"""
INVENTORY APP CONFIG

Per-period bottle allotment (the stock ledger):
- one StockPeriod row per week (or day)
- orders reserve from the current period, cancellations release back
"""

from django.apps import AppConfig


class InventoryConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "inventory"
    verbose_name = "Inventory (Stock Ledger)"
