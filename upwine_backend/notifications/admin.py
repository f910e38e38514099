# notifications/admin.py

from django.contrib import admin

from notifications.models import Notification


@admin.register(Notification)
class NotificationAdmin(admin.ModelAdmin):
    list_display = ("created_at", "kind", "recipient_phone", "status", "attempts", "sent_at")
    list_filter = ("status", "kind")
    search_fields = ("recipient_phone", "order__order_number", "invoice__invoice_number")
    readonly_fields = (
        "kind",
        "recipient_phone",
        "message",
        "order",
        "invoice",
        "attempts",
        "last_error",
        "sent_at",
        "created_at",
        "updated_at",
    )

    def has_add_permission(self, request):
        return False
