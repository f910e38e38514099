# payments/apps.py

"""
PAYMENTS APP CONFIG

Paystack session initialization and payment reconciliation
(callback + webhook). Payment state lives on orders.Order.
"""

from django.apps import AppConfig


class PaymentsConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "payments"
    verbose_name = "Payments (Paystack)"
