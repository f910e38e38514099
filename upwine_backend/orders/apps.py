# orders/apps.py

"""
ORDERS APP CONFIG

Customer orders (pickup / delivery, COD / online) and ad-hoc invoices.
"""

from django.apps import AppConfig


class OrdersConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "orders"
    verbose_name = "Orders & Invoices"
