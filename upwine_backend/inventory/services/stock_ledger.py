# inventory/services/stock_ledger.py

"""
STOCK LEDGER (PER-PERIOD BOTTLE ALLOTMENT)

Purpose:
- Reserve bottles for an order against the current period.
- Release bottles back when an order is cancelled.
- Reset / read the allotment for a period (admin + scheduled job).

Concurrency:
- reserve/release are single conditional UPDATEs:
    available = available - q WHERE available >= q
  and the affected-row count decides success. Two requests racing for the
  last bottle cannot both win, across processes, without an in-process lock.
- A failed reservation changes nothing (no partial decrement).

Idempotency:
- release() is NOT idempotent by itself. The order lifecycle checks the order
  is not already cancelled (under a row lock) before calling it.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, timedelta

from django.conf import settings
from django.db import IntegrityError, transaction
from django.db.models import F
from django.utils import timezone

from inventory.models import StockPeriod

logger = logging.getLogger(__name__)


# ============================================================
# DOMAIN ERRORS
# ============================================================

class StockLedgerError(Exception):
    """Base stock ledger failure."""


class InsufficientStockError(StockLedgerError):
    def __init__(self, *, requested: int, available: int):
        self.requested = requested
        self.available = available
        super().__init__(
            f"Insufficient stock. Requested: {requested}, Available: {available}"
        )


@dataclass(frozen=True)
class StockSnapshot:
    period_start: date
    available: int
    total: int
    sold: int


# ============================================================
# HELPERS
# ============================================================

def _shop_cfg() -> dict:
    cfg = getattr(settings, "SHOP", {}) or {}
    return cfg if isinstance(cfg, dict) else {}


def default_allotment() -> int:
    return int(_shop_cfg().get("DEFAULT_STOCK_ALLOTMENT", 100) or 0)


def _to_int_qty(value) -> int:
    """
    HARD RULE: quantities are whole bottles.
    """
    if isinstance(value, bool):
        raise StockLedgerError("quantity must be a whole number of bottles")

    if isinstance(value, int):
        return value

    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip())

    raise StockLedgerError("quantity must be a whole number of bottles")


def current_period_key(today: date | None = None) -> date:
    """
    Period key for "now".

    - STOCK_PERIOD="week": Monday of the current week
    - STOCK_PERIOD="day":  today
    """
    today = today or timezone.localdate()
    mode = str(_shop_cfg().get("STOCK_PERIOD") or "week").lower()
    if mode == "day":
        return today
    return today - timedelta(days=today.weekday())


def _ensure_period(period_key: date) -> StockPeriod:
    """
    Get the period row, creating it with the default allotment if missing.
    Concurrent first-access collapses on the unique period_start.
    """
    period = StockPeriod.objects.filter(period_start=period_key).first()
    if period is not None:
        return period

    allotment = default_allotment()
    try:
        with transaction.atomic():
            period, created = StockPeriod.objects.get_or_create(
                period_start=period_key,
                defaults={
                    "total_bottles": allotment,
                    "sold_bottles": 0,
                    "available_bottles": allotment,
                },
            )
    except IntegrityError:
        period = StockPeriod.objects.get(period_start=period_key)
        created = False

    if created:
        logger.info(
            "Stock period opened with default allotment",
            extra={"period_start": str(period_key), "bottles": allotment},
        )
    return period


# ============================================================
# LEDGER OPERATIONS
# ============================================================

def reserve(period_key: date, quantity) -> StockSnapshot:
    qty = _to_int_qty(quantity)
    if qty <= 0:
        raise StockLedgerError("quantity must be at least 1")

    _ensure_period(period_key)

    updated = StockPeriod.objects.filter(
        period_start=period_key,
        available_bottles__gte=qty,
    ).update(
        available_bottles=F("available_bottles") - qty,
        sold_bottles=F("sold_bottles") + qty,
        updated_at=timezone.now(),
    )

    if updated != 1:
        snapshot = current_available(period_key)
        logger.warning(
            "Stock reservation rejected",
            extra={
                "period_start": str(period_key),
                "requested": qty,
                "available": snapshot.available,
            },
        )
        raise InsufficientStockError(requested=qty, available=snapshot.available)

    logger.info(
        "Stock reserved",
        extra={"period_start": str(period_key), "quantity": qty},
    )
    return current_available(period_key)


def release(period_key: date, quantity) -> bool:
    """
    Return bottles to a period.

    Returns False when there is nothing to give back (e.g. the period was
    reset after the reservation), so available never exceeds total.
    """
    qty = _to_int_qty(quantity)
    if qty <= 0:
        return False

    updated = StockPeriod.objects.filter(
        period_start=period_key,
        sold_bottles__gte=qty,
    ).update(
        available_bottles=F("available_bottles") + qty,
        sold_bottles=F("sold_bottles") - qty,
        updated_at=timezone.now(),
    )

    if updated != 1:
        logger.warning(
            "Stock release skipped (period missing or already reset)",
            extra={"period_start": str(period_key), "quantity": qty},
        )
        return False

    logger.info(
        "Stock released",
        extra={"period_start": str(period_key), "quantity": qty},
    )
    return True


@transaction.atomic
def reset_period(period_key: date, total_bottles) -> StockSnapshot:
    total = _to_int_qty(total_bottles)
    if total < 0:
        raise StockLedgerError("total_bottles cannot be negative")

    period, _ = StockPeriod.objects.update_or_create(
        period_start=period_key,
        defaults={
            "total_bottles": total,
            "sold_bottles": 0,
            "available_bottles": total,
        },
    )

    logger.info(
        "Stock period reset",
        extra={"period_start": str(period_key), "bottles": total},
    )
    return StockSnapshot(
        period_start=period.period_start,
        available=period.available_bottles,
        total=period.total_bottles,
        sold=period.sold_bottles,
    )


def current_available(period_key: date | None = None) -> StockSnapshot:
    period_key = period_key or current_period_key()
    period = _ensure_period(period_key)
    period.refresh_from_db()
    return StockSnapshot(
        period_start=period.period_start,
        available=int(period.available_bottles),
        total=int(period.total_bottles),
        sold=int(period.sold_bottles),
    )
