# orders/serializers.py

from __future__ import annotations

from decimal import Decimal

from rest_framework import serializers

from orders.models import Invoice, Order, OrderItem


# ============================================================
# ORDERS
# ============================================================

class OrderLineInputSerializer(serializers.Serializer):
    size = serializers.CharField(max_length=20, required=False)
    quantity = serializers.IntegerField(min_value=1)


class OrderCreateSerializer(serializers.Serializer):
    """
    Storefront checkout payload.

    Prices and totals are never accepted from the client.
    Either `items` or a flat `quantity` (+ optional `size`) is required.
    """

    customer_name = serializers.CharField(max_length=120)
    phone = serializers.CharField(max_length=40)
    email = serializers.EmailField(required=False, allow_blank=True)
    address = serializers.CharField(required=False, allow_blank=True)
    quantity = serializers.IntegerField(min_value=1, required=False)
    size = serializers.CharField(max_length=20, required=False)
    items = OrderLineInputSerializer(many=True, required=False)
    delivery_type = serializers.ChoiceField(choices=Order.DELIVERY_TYPE_CHOICES)
    delivery_zone = serializers.CharField(max_length=120, required=False, allow_blank=True)
    delivery_time = serializers.CharField(max_length=120, required=False, allow_blank=True)
    payment_method = serializers.ChoiceField(choices=Order.PAYMENT_METHOD_CHOICES)
    discount_code = serializers.CharField(max_length=50, required=False, allow_blank=True)
    notes = serializers.CharField(required=False, allow_blank=True)

    def validate(self, attrs):
        if not attrs.get("items") and not attrs.get("quantity"):
            raise serializers.ValidationError({"quantity": "Quantity must be at least 1"})
        if attrs.get("delivery_type") == Order.DELIVERY_DELIVERY and not (attrs.get("address") or "").strip():
            raise serializers.ValidationError(
                {"address": "Delivery address is required for delivery orders"}
            )
        return attrs


class OrderItemSerializer(serializers.ModelSerializer):
    class Meta:
        model = OrderItem
        fields = ["size", "quantity", "unit_price", "total_price"]
        read_only_fields = fields


class PublicOrderSerializer(serializers.ModelSerializer):
    """
    What the customer sees on the tracking page.
    """

    items = OrderItemSerializer(many=True, read_only=True)

    class Meta:
        model = Order
        fields = [
            "order_number",
            "customer_name",
            "quantity",
            "items",
            "delivery_type",
            "delivery_zone",
            "delivery_time",
            "address",
            "subtotal_amount",
            "delivery_fee",
            "discount_amount",
            "discount_code_text",
            "total_amount",
            "payment_method",
            "payment_status",
            "status",
            "created_at",
            "paid_at",
        ]
        read_only_fields = fields


class AdminOrderSerializer(serializers.ModelSerializer):
    items = OrderItemSerializer(many=True, read_only=True)

    class Meta:
        model = Order
        fields = [
            "id",
            "order_number",
            "customer_name",
            "phone",
            "email",
            "address",
            "quantity",
            "stock_period",
            "items",
            "delivery_type",
            "delivery_zone",
            "delivery_distance_km",
            "delivery_time",
            "discount_code_text",
            "subtotal_amount",
            "delivery_fee",
            "discount_amount",
            "total_amount",
            "payment_method",
            "payment_status",
            "payment_reference",
            "paid_at",
            "status",
            "cancelled_at",
            "notes",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


class OrderUpdateSerializer(serializers.Serializer):
    """
    Admin PATCH: status and payment_status go through the lifecycle service.
    """

    status = serializers.ChoiceField(choices=Order.STATUS_CHOICES, required=False)
    payment_status = serializers.ChoiceField(choices=Order.PAYMENT_STATUS_CHOICES, required=False)

    def validate(self, attrs):
        if not attrs:
            raise serializers.ValidationError("Provide status and/or payment_status")
        return attrs


class SalesSummaryQuerySerializer(serializers.Serializer):
    date_from = serializers.DateField(required=False)
    date_to = serializers.DateField(required=False)
    period = serializers.ChoiceField(choices=["day", "week", "month"], required=False, default="day")

    def validate(self, attrs):
        date_from = attrs.get("date_from")
        date_to = attrs.get("date_to")
        if date_from and date_to and date_from > date_to:
            raise serializers.ValidationError({"date_to": "date_to must be on or after date_from"})
        return attrs


# ============================================================
# INVOICES
# ============================================================

class InvoiceSerializer(serializers.ModelSerializer):
    class Meta:
        model = Invoice
        fields = [
            "id",
            "invoice_number",
            "customer_name",
            "phone",
            "email",
            "address",
            "quantity",
            "price_per_bottle",
            "delivery_fee",
            "discount",
            "total_amount",
            "status",
            "notes",
            "due_date",
            "sent_at",
            "paid_at",
            "created_at",
            "updated_at",
        ]
        read_only_fields = [
            "id",
            "invoice_number",
            "total_amount",
            "sent_at",
            "paid_at",
            "created_at",
            "updated_at",
        ]
        extra_kwargs = {
            "price_per_bottle": {"min_value": Decimal("0.01")},
            "delivery_fee": {"min_value": Decimal("0.00")},
            "discount": {"min_value": Decimal("0.00")},
            "quantity": {"min_value": 1},
        }


class PublicInvoiceSerializer(serializers.ModelSerializer):
    class Meta:
        model = Invoice
        fields = [
            "invoice_number",
            "customer_name",
            "address",
            "quantity",
            "price_per_bottle",
            "delivery_fee",
            "discount",
            "total_amount",
            "status",
            "notes",
            "due_date",
            "created_at",
        ]
        read_only_fields = fields
