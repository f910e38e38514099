# orders/services/reports.py

"""
SALES SUMMARY (dashboard)

Cancelled orders are excluded everywhere. Revenue counts only paid orders;
order counts and bottles include every non-cancelled order.
"""

from __future__ import annotations

from datetime import date, datetime, time, timedelta
from decimal import Decimal

from django.db.models import Count, Q, Sum
from django.db.models.functions import TruncDay, TruncMonth, TruncWeek
from django.utils import timezone

from orders.models import Order

PERIOD_TRUNC = {
    "day": TruncDay,
    "week": TruncWeek,
    "month": TruncMonth,
}


def _money(x) -> str:
    if x is None:
        return "0.00"
    if isinstance(x, Decimal):
        return f"{x:.2f}"
    return f"{Decimal(str(x)):.2f}"


def _day_bounds(d: date):
    tz = timezone.get_current_timezone()
    start = timezone.make_aware(datetime.combine(d, time.min), tz)
    end = start + timedelta(days=1)
    return start, end


def _orders_in_range(date_from: date | None = None, date_to: date | None = None):
    qs = Order.objects.all()
    if date_from:
        qs = qs.filter(created_at__gte=_day_bounds(date_from)[0])
    if date_to:
        qs = qs.filter(created_at__lt=_day_bounds(date_to)[1])
    return qs


def _active_orders(date_from: date | None = None, date_to: date | None = None):
    return _orders_in_range(date_from, date_to).exclude(status=Order.STATUS_CANCELLED)


def sales_summary(date_from: date | None = None, date_to: date | None = None) -> dict:
    qs = _active_orders(date_from, date_to)

    totals = qs.aggregate(
        order_count=Count("id"),
        bottles=Sum("quantity"),
        paid_count=Count("id", filter=Q(payment_status=Order.PAYMENT_PAID)),
        revenue=Sum("total_amount", filter=Q(payment_status=Order.PAYMENT_PAID)),
        outstanding=Sum("total_amount", filter=Q(payment_status=Order.PAYMENT_PENDING)),
        discounts=Sum("discount_amount"),
        delivery_fees=Sum("delivery_fee"),
    )

    by_status = {
        row["status"]: row["count"]
        for row in qs.values("status").annotate(count=Count("id")).order_by("status")
    }
    by_payment_method = [
        {
            "payment_method": row["payment_method"],
            "count": row["count"],
            "total": _money(row["total"]),
        }
        for row in qs.values("payment_method")
        .annotate(count=Count("id"), total=Sum("total_amount"))
        .order_by("payment_method")
    ]

    return {
        "date_from": date_from.isoformat() if date_from else None,
        "date_to": date_to.isoformat() if date_to else None,
        "order_count": totals["order_count"] or 0,
        "paid_count": totals["paid_count"] or 0,
        "bottles_sold": totals["bottles"] or 0,
        "revenue": _money(totals["revenue"]),
        "outstanding": _money(totals["outstanding"]),
        "discounts": _money(totals["discounts"]),
        "delivery_fees": _money(totals["delivery_fees"]),
        "cancelled_count": _orders_in_range(date_from, date_to)
        .filter(status=Order.STATUS_CANCELLED)
        .count(),
        "by_status": by_status,
        "by_payment_method": by_payment_method,
    }


def sales_by_period(
    period: str = "day",
    date_from: date | None = None,
    date_to: date | None = None,
) -> list[dict]:
    trunc = PERIOD_TRUNC.get(period)
    if trunc is None:
        raise ValueError(f"Unknown period '{period}'")

    rows = (
        _active_orders(date_from, date_to)
        .annotate(bucket=trunc("created_at"))
        .values("bucket")
        .annotate(
            order_count=Count("id"),
            bottles=Sum("quantity"),
            revenue=Sum("total_amount", filter=Q(payment_status=Order.PAYMENT_PAID)),
        )
        .order_by("bucket")
    )

    out = []
    for row in rows:
        bucket = row["bucket"]
        if isinstance(bucket, datetime):
            bucket = timezone.localtime(bucket).date() if timezone.is_aware(bucket) else bucket.date()
        out.append(
            {
                "period_start": bucket.isoformat() if bucket else None,
                "order_count": row["order_count"],
                "bottles_sold": row["bottles"] or 0,
                "revenue": _money(row["revenue"]),
            }
        )
    return out
