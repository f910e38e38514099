# payments/serializers.py

from rest_framework import serializers


class PaymentInitializeSerializer(serializers.Serializer):
    order_number = serializers.CharField(max_length=32)
    email = serializers.EmailField(required=False, allow_blank=True)


class PaymentInitializeResponseSerializer(serializers.Serializer):
    order_number = serializers.CharField()
    reference = serializers.CharField()
    authorization_url = serializers.URLField()
    amount = serializers.DecimalField(max_digits=12, decimal_places=2)
    currency = serializers.CharField()


class PaymentVerifySerializer(serializers.Serializer):
    reference = serializers.CharField(max_length=100)


class PaymentVerifyResponseSerializer(serializers.Serializer):
    success = serializers.BooleanField()
    already_paid = serializers.BooleanField()
    order_number = serializers.CharField()
    payment_status = serializers.CharField()
    status = serializers.CharField()
