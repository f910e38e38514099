# inventory/management/commands/reset_stock.py

from __future__ import annotations

from datetime import datetime

from django.core.management.base import BaseCommand, CommandError

from inventory.services.stock_ledger import (
    StockLedgerError,
    current_period_key,
    default_allotment,
    reset_period,
)


def _parse_date(s: str | None):
    if not s:
        return None
    try:
        return datetime.strptime(s, "%Y-%m-%d").date()
    except ValueError:
        return None


class Command(BaseCommand):
    help = "Reset the bottle allotment for the current (or given) stock period."

    def add_arguments(self, parser):
        parser.add_argument(
            "--bottles",
            type=int,
            default=None,
            help="Total bottles for the period (default: SHOP['DEFAULT_STOCK_ALLOTMENT'])",
        )
        parser.add_argument(
            "--date",
            dest="date",
            help="Any day inside the target period, YYYY-MM-DD (default: today)",
        )

    def handle(self, *args, **options):
        raw_date = options.get("date")
        day = _parse_date(raw_date)
        if raw_date and not day:
            raise CommandError("Invalid --date. Use YYYY-MM-DD")

        period_key = current_period_key(day)
        bottles = options.get("bottles")
        if bottles is None:
            bottles = default_allotment()

        try:
            snapshot = reset_period(period_key, bottles)
        except StockLedgerError as exc:
            raise CommandError(str(exc)) from exc

        self.stdout.write(
            self.style.SUCCESS(
                f"Stock reset to {snapshot.total} bottles for period starting {snapshot.period_start.isoformat()}"
            )
        )
