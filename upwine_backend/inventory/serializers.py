# inventory/serializers.py

from __future__ import annotations

from rest_framework import serializers


class StockSnapshotSerializer(serializers.Serializer):
    period_start = serializers.DateField()
    available = serializers.IntegerField()
    total = serializers.IntegerField()
    sold = serializers.IntegerField()


class PublicStockSerializer(serializers.Serializer):
    """
    What the storefront needs: how many bottles are left this period.
    """
    period_start = serializers.DateField()
    available = serializers.IntegerField()
    in_stock = serializers.BooleanField()


class StockResetSerializer(serializers.Serializer):
    bottles = serializers.IntegerField(min_value=0)
    period_start = serializers.DateField(required=False, allow_null=True)
