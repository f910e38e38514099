# promotions/admin.py

from django.contrib import admin

from promotions.models import DiscountCode


@admin.register(DiscountCode)
class DiscountCodeAdmin(admin.ModelAdmin):
    list_display = (
        "code",
        "discount_type",
        "value",
        "min_order_amount",
        "used_count",
        "max_uses",
        "expires_at",
        "is_active",
    )
    list_filter = ("discount_type", "is_active")
    search_fields = ("code", "description")
    # used_count only moves through redeem()/restore()
    readonly_fields = ("used_count", "created_at", "updated_at")
