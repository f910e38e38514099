# delivery/serializers.py

from __future__ import annotations

from rest_framework import serializers


class DeliveryZoneSerializer(serializers.Serializer):
    name = serializers.CharField()
    fee = serializers.DecimalField(max_digits=12, decimal_places=2)


class DeliveryFeeRequestSerializer(serializers.Serializer):
    """
    Either a named zone or a free-text address.
    """
    zone = serializers.CharField(required=False, allow_blank=True)
    address = serializers.CharField(required=False, allow_blank=True)

    def validate(self, attrs):
        zone = (attrs.get("zone") or "").strip()
        address = (attrs.get("address") or "").strip()
        if not zone and not address:
            raise serializers.ValidationError("Delivery address or zone is required")
        attrs["zone"] = zone
        attrs["address"] = address
        return attrs


class DeliveryQuoteSerializer(serializers.Serializer):
    fee = serializers.DecimalField(max_digits=12, decimal_places=2)
    distance = serializers.FloatField(allow_null=True)
    zone = serializers.CharField(allow_null=True)
    approximate = serializers.BooleanField()
    message = serializers.CharField(allow_blank=True)
