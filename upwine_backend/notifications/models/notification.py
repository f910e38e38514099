# notifications/models/notification.py

from django.db import models


class Notification(models.Model):
    """
    One outbound message (outbox row).

    Lifecycle:
        pending -> sending -> sent
                           -> pending  (transient failure, retried)
                           -> failed   (gave up after MAX_ATTEMPTS)
        pending -> skipped (no recipient / no backend configured)
    """

    KIND_ORDER_CONFIRMATION = "order_confirmation"
    KIND_ADMIN_ORDER_ALERT = "admin_order_alert"
    KIND_PAYMENT_RECEIPT = "payment_receipt"
    KIND_ADMIN_PAYMENT_ALERT = "admin_payment_alert"
    KIND_ORDER_STATUS = "order_status"
    KIND_INVOICE = "invoice"

    KIND_CHOICES = [
        (KIND_ORDER_CONFIRMATION, "Order confirmation"),
        (KIND_ADMIN_ORDER_ALERT, "Admin new-order alert"),
        (KIND_PAYMENT_RECEIPT, "Payment receipt"),
        (KIND_ADMIN_PAYMENT_ALERT, "Admin payment alert"),
        (KIND_ORDER_STATUS, "Order status update"),
        (KIND_INVOICE, "Invoice"),
    ]

    STATUS_PENDING = "pending"
    STATUS_SENDING = "sending"
    STATUS_SENT = "sent"
    STATUS_FAILED = "failed"
    STATUS_SKIPPED = "skipped"

    STATUS_CHOICES = [
        (STATUS_PENDING, "Pending"),
        (STATUS_SENDING, "Sending"),
        (STATUS_SENT, "Sent"),
        (STATUS_FAILED, "Failed"),
        (STATUS_SKIPPED, "Skipped"),
    ]

    kind = models.CharField(max_length=32, choices=KIND_CHOICES)
    recipient_phone = models.CharField(max_length=40, blank=True, default="")
    message = models.TextField()

    order = models.ForeignKey(
        "orders.Order",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="notifications",
    )
    invoice = models.ForeignKey(
        "orders.Invoice",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="notifications",
    )

    status = models.CharField(max_length=16, choices=STATUS_CHOICES, default=STATUS_PENDING)
    attempts = models.PositiveIntegerField(default=0)
    last_error = models.TextField(blank=True, default="")
    sent_at = models.DateTimeField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["created_at"]
        indexes = [
            models.Index(fields=["status", "created_at"], name="notificatio_status_6c1f0e_idx"),
            models.Index(fields=["kind"], name="notificatio_kind_3a9b2d_idx"),
        ]

    def __str__(self):
        return f"{self.kind} -> {self.recipient_phone or '-'} | {self.status}"
