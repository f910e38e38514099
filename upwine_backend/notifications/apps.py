# notifications/apps.py

"""
NOTIFICATIONS APP CONFIG

Outbox for customer/admin WhatsApp messages:
- rows are written inside the business transaction
- delivery happens after commit (or via `manage.py dispatch_notifications`)
"""

from django.apps import AppConfig


class NotificationsConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "notifications"
    verbose_name = "Notifications (WhatsApp Outbox)"
