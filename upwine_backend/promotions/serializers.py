# promotions/serializers.py

from __future__ import annotations

from decimal import Decimal

from rest_framework import serializers

from promotions.models import DiscountCode, normalize_code


class DiscountCodeSerializer(serializers.ModelSerializer):
    uses_remaining = serializers.IntegerField(read_only=True, allow_null=True)

    class Meta:
        model = DiscountCode
        fields = [
            "id",
            "code",
            "discount_type",
            "value",
            "min_order_amount",
            "max_uses",
            "used_count",
            "uses_remaining",
            "expires_at",
            "is_active",
            "description",
            "created_at",
            "updated_at",
        ]
        read_only_fields = ["id", "used_count", "created_at", "updated_at"]

    def validate_code(self, value):
        code = normalize_code(value)
        if not code:
            raise serializers.ValidationError("Discount code is required")

        qs = DiscountCode.objects.filter(code__iexact=code)
        if self.instance is not None:
            qs = qs.exclude(pk=self.instance.pk)
        if qs.exists():
            raise serializers.ValidationError("A discount code with this code already exists")
        return code

    def validate(self, attrs):
        discount_type = attrs.get(
            "discount_type", getattr(self.instance, "discount_type", None)
        )
        value = attrs.get("value", getattr(self.instance, "value", None))

        if value is None or Decimal(str(value)) <= 0:
            raise serializers.ValidationError({"value": "Discount value must be greater than 0"})
        if discount_type == DiscountCode.TYPE_PERCENTAGE and Decimal(str(value)) > 100:
            raise serializers.ValidationError({"value": "Percentage discount cannot exceed 100%"})

        max_uses = attrs.get("max_uses", getattr(self.instance, "max_uses", None))
        used = int(getattr(self.instance, "used_count", 0) or 0)
        if max_uses is not None and int(max_uses) < used:
            raise serializers.ValidationError(
                {"max_uses": f"max_uses cannot be below the {used} uses already redeemed"}
            )
        return attrs


class DiscountValidateRequestSerializer(serializers.Serializer):
    code = serializers.CharField(max_length=50)
    order_amount = serializers.DecimalField(
        max_digits=12, decimal_places=2, min_value=Decimal("0.01")
    )


class DiscountValidateResponseSerializer(serializers.Serializer):
    valid = serializers.BooleanField()
    code = serializers.CharField()
    discount = serializers.DecimalField(max_digits=12, decimal_places=2)
    reason = serializers.CharField(allow_null=True)
    message = serializers.CharField(allow_blank=True)
