# notifications/services/outbox.py

"""
NOTIFICATION OUTBOX

emit():
- records a Notification row inside the caller's transaction (savepoint)
- never raises: a broken notification must not fail an order or a payment
- when NOTIFICATIONS["DISPATCH_ON_COMMIT"] is on, delivery of the new row is
  scheduled with transaction.on_commit (so rolled-back work sends nothing)

dispatch_pending():
- claims each pending row with a conditional UPDATE (pending -> sending),
  so two dispatchers never send the same row
- sent / skipped are final; failures go back to pending until MAX_ATTEMPTS
- a row left in "sending" longer than SENDING_TIMEOUT seconds (worker died
  mid-send) is put back to pending, or failed once its attempts are used up
"""

from __future__ import annotations

import logging
from datetime import timedelta

from django.conf import settings
from django.db import transaction
from django.db.models import F
from django.utils import timezone

from notifications.models import Notification
from notifications.services.whatsapp import (
    WhatsAppError,
    active_service,
    normalize_phone,
    send_whatsapp_message,
)

logger = logging.getLogger(__name__)


def _cfg() -> dict:
    cfg = getattr(settings, "NOTIFICATIONS", {}) or {}
    return cfg if isinstance(cfg, dict) else {}


def _max_attempts() -> int:
    return max(int(_cfg().get("MAX_ATTEMPTS") or 5), 1)


def _sending_timeout() -> timedelta:
    return timedelta(seconds=max(int(_cfg().get("SENDING_TIMEOUT") or 600), 1))


def admin_phone() -> str:
    shop = getattr(settings, "SHOP", {}) or {}
    return str(shop.get("ADMIN_PHONE") or "").strip()


# ============================================================
# EMIT
# ============================================================

def emit(kind: str, phone, message: str, *, order=None, invoice=None):
    """
    Record an outbound message. Returns the Notification, or None if it could
    not be recorded.
    """
    try:
        with transaction.atomic():
            notification = Notification.objects.create(
                kind=kind,
                recipient_phone=str(phone or "").strip(),
                message=message or "",
                order=order,
                invoice=invoice,
            )
    except Exception:
        logger.exception(
            "Failed to record notification",
            extra={"kind": kind, "order_id": str(getattr(order, "pk", "") or "")},
        )
        return None

    if _cfg().get("DISPATCH_ON_COMMIT"):
        pk = notification.pk
        transaction.on_commit(lambda: _dispatch_after_commit(pk))

    return notification


def _dispatch_after_commit(pk) -> None:
    try:
        dispatch_pending(ids=[pk])
    except Exception:
        # the row stays pending; the drain command picks it up
        logger.exception("Post-commit notification dispatch failed", extra={"notification_id": pk})


# ============================================================
# DISPATCH
# ============================================================

def _claim(pk) -> bool:
    return (
        Notification.objects.filter(pk=pk, status=Notification.STATUS_PENDING).update(
            status=Notification.STATUS_SENDING,
            attempts=F("attempts") + 1,
            updated_at=timezone.now(),
        )
        == 1
    )


def _finish(pk, *, status: str, error: str = "") -> None:
    fields = {"status": status, "last_error": error[:2000], "updated_at": timezone.now()}
    if status == Notification.STATUS_SENT:
        fields["sent_at"] = timezone.now()
    Notification.objects.filter(pk=pk).update(**fields)


def _retry_or_fail(notification: Notification, error: str) -> str:
    attempts = Notification.objects.values_list("attempts", flat=True).get(pk=notification.pk)
    final = attempts >= _max_attempts()
    status = Notification.STATUS_FAILED if final else Notification.STATUS_PENDING
    logger.warning(
        "Notification delivery failed",
        extra={
            "notification_id": notification.pk,
            "attempts": attempts,
            "gave_up": final,
            "error": error,
        },
    )
    _finish(notification.pk, status=status, error=error)
    return status


def deliver(notification: Notification) -> str:
    """
    Send one claimed row. Returns the resulting status.
    """
    if not normalize_phone(notification.recipient_phone):
        logger.info(
            "Notification skipped (no recipient)",
            extra={"notification_id": notification.pk, "kind": notification.kind},
        )
        _finish(notification.pk, status=Notification.STATUS_SKIPPED, error="No recipient phone")
        return Notification.STATUS_SKIPPED

    try:
        delivered = send_whatsapp_message(notification.recipient_phone, notification.message)
    except WhatsAppError as exc:
        return _retry_or_fail(notification, str(exc))
    except Exception as exc:
        # a claimed row must never stay in "sending"
        logger.exception(
            "Unexpected error while sending notification",
            extra={"notification_id": notification.pk, "kind": notification.kind},
        )
        return _retry_or_fail(notification, repr(exc))

    if not delivered:
        logger.info(
            "Notification skipped (no WhatsApp backend)",
            extra={"notification_id": notification.pk, "service": active_service()},
        )
        _finish(notification.pk, status=Notification.STATUS_SKIPPED, error="No WhatsApp backend configured")
        return Notification.STATUS_SKIPPED

    _finish(notification.pk, status=Notification.STATUS_SENT)
    return Notification.STATUS_SENT


def requeue_stale() -> int:
    """
    Put rows stuck in "sending" back in the queue. Returns how many moved.
    """
    now = timezone.now()
    stale = Notification.objects.filter(
        status=Notification.STATUS_SENDING, updated_at__lt=now - _sending_timeout()
    )
    failed = stale.filter(attempts__gte=_max_attempts()).update(
        status=Notification.STATUS_FAILED,
        last_error="Delivery interrupted",
        updated_at=now,
    )
    requeued = stale.update(status=Notification.STATUS_PENDING, updated_at=now)
    if failed or requeued:
        logger.warning(
            "Stale notifications recovered",
            extra={"requeued": requeued, "failed": failed},
        )
    return failed + requeued


def dispatch_pending(ids=None, limit: int = 50) -> dict[str, int]:
    requeue_stale()

    qs = Notification.objects.filter(status=Notification.STATUS_PENDING).order_by("created_at")
    if ids is not None:
        qs = qs.filter(pk__in=list(ids))

    counts = {
        Notification.STATUS_SENT: 0,
        Notification.STATUS_SKIPPED: 0,
        Notification.STATUS_FAILED: 0,
        Notification.STATUS_PENDING: 0,
    }

    for notification in list(qs[: max(int(limit), 0)]):
        if not _claim(notification.pk):
            continue
        status = deliver(notification)
        counts[status] = counts.get(status, 0) + 1

    return counts
