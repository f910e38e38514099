# notifications/management/commands/dispatch_notifications.py

from __future__ import annotations

from django.core.management.base import BaseCommand

from notifications.services.outbox import dispatch_pending


class Command(BaseCommand):
    help = "Deliver pending WhatsApp notifications from the outbox."

    def add_arguments(self, parser):
        parser.add_argument("--limit", type=int, default=50, help="Max rows to process (default 50)")

    def handle(self, *args, **options):
        limit = int(options.get("limit") or 50)

        counts = dispatch_pending(limit=limit)

        self.stdout.write(
            self.style.SUCCESS(
                "Notifications: "
                f"sent={counts.get('sent', 0)} "
                f"skipped={counts.get('skipped', 0)} "
                f"retry={counts.get('pending', 0)} "
                f"failed={counts.get('failed', 0)}"
            )
        )
