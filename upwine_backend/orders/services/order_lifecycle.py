# orders/services/order_lifecycle.py

"""
ORDER LIFECYCLE MANAGER

State machine:
    pending -> confirmed -> completed -> delivered     (forward only)
    pending | confirmed -> cancelled                   (terminal)

Payment:
    pending -> paid                                    (never back)

create_order() runs in ONE transaction:
    validate -> price -> delivery fee -> discount check -> reserve stock
    -> persist order + items -> redeem discount -> record notifications
An InsufficientStockError rolls everything back. A discount that cannot be
applied never blocks the order; it is reported back as a warning.

cancel_order() releases stock exactly once: the order row is locked and the
status flip is a conditional UPDATE, so a second cancel sees "cancelled".
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any

from django.conf import settings
from django.db import transaction
from django.db.models import Case, F, Value, When
from django.utils import timezone

from delivery.services.fees import fee_for_address, fee_for_zone
from inventory.services.stock_ledger import current_period_key, release, reserve
from notifications import messages
from notifications.models import Notification
from notifications.services.outbox import admin_phone, emit
from orders.models import Order, OrderItem
from promotions.services.discounts import redeem, restore, validate

logger = logging.getLogger(__name__)

TWOPLACES = Decimal("0.01")


# ============================================================
# DOMAIN ERRORS
# ============================================================

class OrderError(Exception):
    """Base order lifecycle failure."""


class OrderValidationError(OrderError):
    def __init__(self, field_name: str, message: str):
        self.field = field_name
        self.message = message
        super().__init__(f"{field_name}: {message}")


class OrderNotFoundError(OrderError):
    pass


class OrderAlreadyCancelledError(OrderError):
    pass


class InvalidOrderTransitionError(OrderError):
    pass


class InvalidPaymentTransitionError(OrderError):
    pass


# ============================================================
# STATE DEFINITIONS
# ============================================================

TERMINAL_STATES = {
    Order.STATUS_CANCELLED,
}

# position in the forward chain; cancelled is handled separately
FORWARD_ORDER = [
    Order.STATUS_PENDING,
    Order.STATUS_CONFIRMED,
    Order.STATUS_COMPLETED,
    Order.STATUS_DELIVERED,
]

CANCELLABLE_STATES = {
    Order.STATUS_PENDING,
    Order.STATUS_CONFIRMED,
}


def can_transition(*, from_status: str, to_status: str) -> bool:
    if from_status in TERMINAL_STATES:
        return False
    if to_status == Order.STATUS_CANCELLED:
        return from_status in CANCELLABLE_STATES
    if from_status not in FORWARD_ORDER or to_status not in FORWARD_ORDER:
        return False
    return FORWARD_ORDER.index(to_status) > FORWARD_ORDER.index(from_status)


def validate_transition(*, order: Order, target_status: str):
    if not can_transition(from_status=order.status, to_status=target_status):
        raise InvalidOrderTransitionError(
            f"Order {order.order_number} cannot transition from "
            f"'{order.status}' to '{target_status}'"
        )


@dataclass
class OrderPlacement:
    order: Order
    warnings: list[str] = field(default_factory=list)


# ============================================================
# HELPERS
# ============================================================

def _money(v) -> Decimal:
    if v is None or v == "":
        return Decimal("0.00")
    return Decimal(str(v)).quantize(TWOPLACES, rounding=ROUND_HALF_UP)


def _shop_cfg() -> dict:
    cfg = getattr(settings, "SHOP", {}) or {}
    return cfg if isinstance(cfg, dict) else {}


def bottle_prices() -> dict[str, Decimal]:
    raw = _shop_cfg().get("BOTTLE_PRICES") or {}
    return {str(size): _money(price) for size, price in raw.items()}


def default_bottle_size() -> str:
    return str(_shop_cfg().get("DEFAULT_BOTTLE_SIZE") or "1L")


def _clean_str(data: dict, key: str) -> str:
    return str(data.get(key) or "").strip()


def _to_int_qty(value, *, field_name: str) -> int:
    if isinstance(value, bool):
        raise OrderValidationError(field_name, "Quantity must be a whole number")
    if isinstance(value, int):
        qty = value
    elif isinstance(value, str) and value.strip().isdigit():
        qty = int(value.strip())
    else:
        raise OrderValidationError(field_name, "Quantity must be a whole number")
    if qty < 1:
        raise OrderValidationError(field_name, "Quantity must be at least 1")
    return qty


def _priced_lines(data: dict) -> list[dict[str, Any]]:
    """
    Lines priced server-side from SHOP["BOTTLE_PRICES"].
    Accepts either items=[{size, quantity}] or a flat quantity (+ optional size).
    """
    prices = bottle_prices()
    raw_items = data.get("items")

    if not raw_items:
        if data.get("quantity") in (None, ""):
            raise OrderValidationError("quantity", "Quantity must be at least 1")
        raw_items = [{"size": data.get("size") or default_bottle_size(), "quantity": data.get("quantity")}]

    if not isinstance(raw_items, (list, tuple)):
        raise OrderValidationError("items", "items must be a list")

    lines: list[dict[str, Any]] = []
    for raw in raw_items:
        raw = raw or {}
        size = str(raw.get("size") or default_bottle_size()).strip()
        if size not in prices:
            raise OrderValidationError("items", f"Unknown bottle size: {size}")

        qty = _to_int_qty(raw.get("quantity"), field_name="quantity")
        unit_price = prices[size]
        if unit_price <= 0:
            raise OrderValidationError("items", f"No price configured for size {size}")

        lines.append(
            {
                "size": size,
                "quantity": qty,
                "unit_price": unit_price,
                "total_price": _money(unit_price * qty),
            }
        )
    return lines


def _validate_customer(data: dict) -> dict[str, str]:
    customer_name = _clean_str(data, "customer_name")
    if not customer_name:
        raise OrderValidationError("customer_name", "Customer name is required")

    phone = _clean_str(data, "phone")
    if not phone:
        raise OrderValidationError("phone", "Phone number is required")

    delivery_type = _clean_str(data, "delivery_type").lower()
    if delivery_type not in (Order.DELIVERY_PICKUP, Order.DELIVERY_DELIVERY):
        raise OrderValidationError("delivery_type", "Invalid delivery type")

    payment_method = _clean_str(data, "payment_method").lower()
    if payment_method not in (Order.METHOD_COD, Order.METHOD_ONLINE):
        raise OrderValidationError("payment_method", "Payment method must be 'cod' or 'online'")

    address = _clean_str(data, "address")
    if delivery_type == Order.DELIVERY_DELIVERY and not address:
        raise OrderValidationError("address", "Delivery address is required for delivery orders")
    if delivery_type == Order.DELIVERY_PICKUP:
        address = ""

    return {
        "customer_name": customer_name,
        "phone": phone,
        "email": _clean_str(data, "email"),
        "address": address,
        "delivery_type": delivery_type,
        "payment_method": payment_method,
    }


def _delivery_quote(customer: dict, data: dict, geocoder):
    if customer["delivery_type"] == Order.DELIVERY_PICKUP:
        return None

    zone = _clean_str(data, "delivery_zone")
    if zone:
        return fee_for_zone(zone)
    return fee_for_address(customer["address"], geocoder=geocoder)


def _distance_decimal(distance_km):
    if distance_km is None:
        return None
    try:
        return Decimal(str(distance_km)).quantize(Decimal("0.1"), rounding=ROUND_HALF_UP)
    except (InvalidOperation, ValueError):
        return None


def _get_locked(order_id) -> Order:
    try:
        return Order.objects.select_for_update().get(pk=order_id)
    except (Order.DoesNotExist, ValueError) as exc:
        raise OrderNotFoundError(f"Order {order_id} not found") from exc


def notify_order_placed(order: Order) -> None:
    """
    COD customers get a confirmation now; online customers get a receipt
    once payment is verified. The shop is always alerted.
    """
    if order.payment_method == Order.METHOD_COD:
        emit(
            Notification.KIND_ORDER_CONFIRMATION,
            order.phone,
            messages.order_confirmation(order),
            order=order,
        )
    emit(
        Notification.KIND_ADMIN_ORDER_ALERT,
        admin_phone(),
        messages.admin_order_alert(order),
        order=order,
    )


# ============================================================
# CREATE
# ============================================================

def create_order(data: dict, geocoder=None) -> OrderPlacement:
    data = data or {}
    warnings: list[str] = []

    customer = _validate_customer(data)
    lines = _priced_lines(data)

    quantity = sum(line["quantity"] for line in lines)
    subtotal = _money(sum((line["total_price"] for line in lines), Decimal("0.00")))

    quote = _delivery_quote(customer, data, geocoder)
    delivery_fee = _money(quote.fee) if quote else Decimal("0.00")
    if quote and quote.approximate and quote.message:
        warnings.append(quote.message)

    discount_code = None
    discount_amount = Decimal("0.00")
    code_text = _clean_str(data, "discount_code").upper()
    if code_text:
        result = validate(code_text, subtotal + delivery_fee)
        if result.valid:
            discount_code = result.discount_code
            discount_amount = _money(result.discount_amount)
        else:
            logger.warning(
                "Discount code not applied",
                extra={"code": code_text, "reason": result.reason},
            )
            warnings.append(f"Discount code not applied: {result.message}")
            code_text = ""

    with transaction.atomic():
        period_key = current_period_key()
        reserve(period_key, quantity)

        order = Order(
            **customer,
            quantity=quantity,
            stock_period=period_key,
            delivery_zone=(quote.zone or "") if quote else "",
            delivery_distance_km=_distance_decimal(quote.distance_km) if quote else None,
            delivery_time=_clean_str(data, "delivery_time"),
            notes=_clean_str(data, "notes"),
            discount_code=discount_code,
            discount_code_text=code_text,
            subtotal_amount=subtotal,
            delivery_fee=delivery_fee,
            discount_amount=discount_amount,
            total_amount=Order.compute_total(subtotal, delivery_fee, discount_amount),
            payment_status=Order.PAYMENT_PENDING,
            status=Order.STATUS_PENDING,
        )
        order.save()

        for line in lines:
            OrderItem.objects.create(
                order=order,
                size=line["size"],
                quantity=line["quantity"],
                unit_price=line["unit_price"],
            )

        if discount_code is not None and not redeem(discount_code):
            # exhausted between validation and redemption
            order.discount_code = None
            order.discount_code_text = ""
            order.discount_amount = Decimal("0.00")
            order.total_amount = Order.compute_total(subtotal, delivery_fee, Decimal("0.00"))
            order.save(
                update_fields=[
                    "discount_code",
                    "discount_code_text",
                    "discount_amount",
                    "total_amount",
                    "updated_at",
                ]
            )
            warnings.append("Discount code not applied: usage limit reached")

        notify_order_placed(order)

    logger.info(
        "Order created",
        extra={
            "order_number": order.order_number,
            "quantity": quantity,
            "total": str(order.total_amount),
            "payment_method": order.payment_method,
        },
    )
    return OrderPlacement(order=order, warnings=warnings)


# ============================================================
# CANCEL
# ============================================================

def _restore_discount_on_cancel() -> bool:
    return bool(_shop_cfg().get("DISCOUNT_RESTORE_ON_CANCEL", False))


@transaction.atomic
def cancel_order(order_id) -> Order:
    order = _get_locked(order_id)

    if order.status == Order.STATUS_CANCELLED:
        raise OrderAlreadyCancelledError(f"Order {order.order_number} is already cancelled")

    validate_transition(order=order, target_status=Order.STATUS_CANCELLED)

    now = timezone.now()
    updated = Order.objects.filter(
        pk=order.pk,
        status__in=list(CANCELLABLE_STATES),
    ).update(status=Order.STATUS_CANCELLED, cancelled_at=now, updated_at=now)

    if updated != 1:
        raise OrderAlreadyCancelledError(f"Order {order.order_number} is already cancelled")

    if order.stock_period:
        release(order.stock_period, order.quantity)

    if order.discount_code_id and _restore_discount_on_cancel():
        restore(order.discount_code)

    order.refresh_from_db()

    if order.is_paid:
        logger.warning(
            "Paid order cancelled; refund must be handled with the payment provider",
            extra={"order_number": order.order_number, "reference": order.payment_reference},
        )

    emit(
        Notification.KIND_ORDER_STATUS,
        order.phone,
        messages.order_status_update(order),
        order=order,
    )

    logger.info("Order cancelled", extra={"order_number": order.order_number})
    return order


# ============================================================
# STATUS / PAYMENT UPDATES
# ============================================================

def update_order_status(order_id, status: str) -> Order:
    target = str(status or "").strip().lower()
    valid = {choice for choice, _ in Order.STATUS_CHOICES}
    if target not in valid:
        raise OrderValidationError("status", f"Unknown status '{status}'")

    if target == Order.STATUS_CANCELLED:
        return cancel_order(order_id)

    with transaction.atomic():
        order = _get_locked(order_id)

        if order.status == target:
            return order

        validate_transition(order=order, target_status=target)

        updated = Order.objects.filter(pk=order.pk, status=order.status).update(
            status=target, updated_at=timezone.now()
        )
        if updated != 1:
            raise InvalidOrderTransitionError(
                f"Order {order.order_number} changed while updating; retry"
            )

        order.refresh_from_db()

    logger.info(
        "Order status updated",
        extra={"order_number": order.order_number, "status": target},
    )
    return order


def mark_paid(order_id) -> bool:
    """
    pending -> paid as a single conditional UPDATE.

    Also confirms the order if it is still pending. Returns True only for the
    caller whose update actually flipped the row.
    """
    now = timezone.now()
    updated = (
        Order.objects.filter(pk=order_id)
        .exclude(payment_status=Order.PAYMENT_PAID)
        .update(
            payment_status=Order.PAYMENT_PAID,
            paid_at=now,
            updated_at=now,
            status=Case(
                When(status=Order.STATUS_PENDING, then=Value(Order.STATUS_CONFIRMED)),
                default=F("status"),
            ),
        )
    )
    if updated != 1:
        return False

    cancelled = (
        Order.objects.filter(pk=order_id, status=Order.STATUS_CANCELLED)
        .values("order_number", "payment_reference")
        .first()
    )
    if cancelled:
        # stock for this order was already released
        logger.warning(
            "Payment received for a cancelled order; refund must be handled with the payment provider",
            extra={
                "order_number": cancelled["order_number"],
                "reference": cancelled["payment_reference"],
            },
        )
    return True


def update_payment_status(order_id, payment_status: str) -> Order:
    target = str(payment_status or "").strip().lower()
    if target not in (Order.PAYMENT_PENDING, Order.PAYMENT_PAID):
        raise OrderValidationError("payment_status", f"Unknown payment status '{payment_status}'")

    with transaction.atomic():
        order = _get_locked(order_id)

        if target == Order.PAYMENT_PENDING:
            if order.payment_status == Order.PAYMENT_PAID:
                raise InvalidPaymentTransitionError(
                    f"Order {order.order_number} is already paid; payment status cannot go back"
                )
            return order

        if mark_paid(order.pk):
            logger.info("Order marked paid", extra={"order_number": order.order_number})
        order.refresh_from_db()

    return order
