# orders/admin.py

from django.contrib import admin

from orders.models import Invoice, Order, OrderItem


# ======================================================
# ORDER ADMIN
# ======================================================


class OrderItemInline(admin.TabularInline):
    model = OrderItem
    extra = 0
    can_delete = False
    readonly_fields = ("size", "quantity", "unit_price", "total_price")

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(Order)
class OrderAdmin(admin.ModelAdmin):
    list_display = (
        "order_number",
        "customer_name",
        "phone",
        "quantity",
        "total_amount",
        "payment_method",
        "payment_status",
        "status",
        "created_at",
    )
    list_filter = ("status", "payment_status", "payment_method", "delivery_type", "created_at")
    search_fields = ("order_number", "customer_name", "phone", "payment_reference")
    inlines = [OrderItemInline]
    # money, stock and payment fields only move through the lifecycle services
    readonly_fields = (
        "order_number",
        "quantity",
        "stock_period",
        "discount_code",
        "discount_code_text",
        "subtotal_amount",
        "delivery_fee",
        "discount_amount",
        "total_amount",
        "payment_method",
        "payment_status",
        "payment_reference",
        "payment_authorization_url",
        "paid_at",
        "status",
        "cancelled_at",
        "created_at",
        "updated_at",
    )

    def has_add_permission(self, request):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


# ======================================================
# INVOICE ADMIN
# ======================================================


@admin.register(Invoice)
class InvoiceAdmin(admin.ModelAdmin):
    list_display = (
        "invoice_number",
        "customer_name",
        "quantity",
        "total_amount",
        "status",
        "due_date",
        "created_at",
    )
    list_filter = ("status", "created_at")
    search_fields = ("invoice_number", "customer_name", "phone")
    readonly_fields = ("invoice_number", "total_amount", "sent_at", "paid_at", "created_at", "updated_at")
