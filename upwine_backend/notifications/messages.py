# notifications/messages.py

"""
WhatsApp message bodies (plain text).

Functions take the model instance and read attributes only, so this module
has no import-time dependency on the orders app.
"""

from __future__ import annotations

from decimal import Decimal

from django.conf import settings
from django.utils import timezone

RULE = "━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━"


def _shop() -> dict:
    cfg = getattr(settings, "SHOP", {}) or {}
    return cfg if isinstance(cfg, dict) else {}


def naira(amount) -> str:
    value = Decimal(str(amount or 0))
    if value == value.to_integral_value():
        return f"₦{value:,.0f}"
    return f"₦{value:,.2f}"


def _payment_label(method: str) -> str:
    return "Cash on Delivery" if method == "cod" else "Online Payment"


def _delivery_block(order) -> str:
    if order.delivery_type == "pickup":
        pickup = _shop().get("PICKUP_ADDRESS") or ""
        return f"📍 Pickup Location:\n{pickup}\n⏰ Pickup Hours: 10 AM - 6 PM\n"
    return f"🚚 Delivery Address:\n{order.address}\nOur dispatch rider will contact you before delivery.\n"


def order_confirmation(order) -> str:
    shop_name = _shop().get("NAME") or "Upwine"
    lines = [
        "🎉 Order Confirmed!",
        "",
        f"Order Number: {order.order_number}",
        f"Customer: {order.customer_name}",
        f"Quantity: {order.quantity} bottle(s)",
    ]
    if order.discount_amount and Decimal(str(order.discount_amount)) > 0:
        lines.append(f"Discount: -{naira(order.discount_amount)}")
    lines += [
        f"Total: {naira(order.total_amount)}",
        f"Payment: {_payment_label(order.payment_method)}",
        "",
    ]
    return "\n".join(lines) + "\n" + _delivery_block(order) + f"\nThank you for choosing {shop_name}! 🍷"


def admin_order_alert(order) -> str:
    lines = [
        "🆕 New Order Received!",
        "",
        f"Order #: {order.order_number}",
        f"Customer: {order.customer_name}",
        f"Phone: {order.phone}",
        f"Quantity: {order.quantity} bottle(s)",
        f"Total: {naira(order.total_amount)}",
        f"Type: {'Pickup' if order.delivery_type == 'pickup' else 'Delivery'}",
        f"Payment: {_payment_label(order.payment_method)}",
    ]
    if order.delivery_type == "delivery" and order.address:
        lines.append(f"Address: {order.address}")
    if order.discount_code_text:
        lines.append(f"Discount code: {order.discount_code_text}")
    return "\n".join(lines) + "\n"


def payment_receipt(order) -> str:
    shop_name = str(_shop().get("NAME") or "Upwine").upper()
    created = timezone.localtime(order.created_at) if order.created_at else timezone.localtime()

    out = [
        RULE,
        f"        🍷 {shop_name} RECEIPT 🍷",
        RULE,
        "",
        f"Order Number: {order.order_number}",
        f"Date: {created.strftime('%d %B %Y, %H:%M')}",
        "",
        "Customer Details:",
        f"Name: {order.customer_name}",
        f"Phone: {order.phone}",
    ]
    if order.email:
        out.append(f"Email: {order.email}")
    out += ["", RULE, "", "Order Details:"]

    for item in order.items.all():
        out.append(f"{item.quantity} x {item.size} @ {naira(item.unit_price)} = {naira(item.total_price)}")

    out.append(f"Subtotal: {naira(order.subtotal_amount)}")
    if order.delivery_fee and Decimal(str(order.delivery_fee)) > 0:
        out.append(f"Delivery Fee: {naira(order.delivery_fee)}")
    if order.discount_amount and Decimal(str(order.discount_amount)) > 0:
        out.append(f"Discount: -{naira(order.discount_amount)}")

    out += [RULE, f"TOTAL: {naira(order.total_amount)}", RULE, ""]
    out.append(f"Delivery: {'Pickup' if order.delivery_type == 'pickup' else 'Delivery'}")
    if order.delivery_type == "pickup":
        out.append(f"Location: {_shop().get('PICKUP_ADDRESS') or ''}")
    elif order.address:
        out.append(f"Address: {order.address}")

    out += [
        "",
        f"Payment Method: {_payment_label(order.payment_method)}",
        f"Payment Status: {'✅ Paid' if order.payment_status == 'paid' else 'Pending'}",
        "",
        RULE,
        "Thank you for your order!",
        "We'll contact you soon for delivery.",
        RULE,
    ]
    return "\n".join(out) + "\n"


def admin_payment_alert(order) -> str:
    return (
        "💰 Payment Received!\n\n"
        f"Order #: {order.order_number}\n"
        f"Customer: {order.customer_name}\n"
        f"Phone: {order.phone}\n"
        f"Amount: {naira(order.total_amount)}\n"
        f"Reference: {order.payment_reference or '-'}\n"
    )


def order_status_update(order) -> str:
    labels = {
        "confirmed": "has been confirmed ✅",
        "completed": "is ready 🍷",
        "delivered": "has been delivered 🚚",
        "cancelled": "has been cancelled",
    }
    what = labels.get(order.status, f"is now {order.status}")
    return f"Hello {order.customer_name}, your order {order.order_number} {what}.\n"


def invoice_url(invoice) -> str:
    base = (getattr(settings, "FRONTEND_BASE_URL", "") or "").rstrip("/")
    return f"{base}/view-invoice/{invoice.invoice_number}"


def invoice_message(invoice) -> str:
    shop_name = _shop().get("NAME") or "Upwine"
    lines = [
        f"🧾 Invoice from {shop_name}",
        "",
        f"Invoice Number: {invoice.invoice_number}",
        f"Customer: {invoice.customer_name}",
    ]
    if invoice.address:
        lines.append(f"Address: {invoice.address}")
    lines.append(f"Quantity: {invoice.quantity} bottle(s) @ {naira(invoice.price_per_bottle)}")
    if invoice.delivery_fee and Decimal(str(invoice.delivery_fee)) > 0:
        lines.append(f"Delivery Fee: {naira(invoice.delivery_fee)}")
    if invoice.discount and Decimal(str(invoice.discount)) > 0:
        lines.append(f"Discount: -{naira(invoice.discount)}")
    lines.append(f"Total: {naira(invoice.total_amount)}")
    if invoice.due_date:
        lines.append(f"Due: {invoice.due_date.strftime('%d %B %Y')}")
    if invoice.notes:
        lines.append(f"Notes: {invoice.notes}")
    lines += ["", f"View invoice: {invoice_url(invoice)}"]
    return "\n".join(lines) + "\n"
