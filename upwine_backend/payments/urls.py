# payments/urls.py
"""
Mounted under /api/ in backend/urls.py:
- POST /api/payments/initialize/
- POST /api/payments/verify/
- GET  /api/payments/callback/
- POST /api/payments/webhook/
"""

from django.urls import path

from payments.views import (
    PaymentCallbackView,
    PaymentInitializeView,
    PaymentVerifyView,
    PaystackWebhookView,
)

app_name = "payments"

urlpatterns = [
    path("payments/initialize/", PaymentInitializeView.as_view(), name="payment-initialize"),
    path("payments/verify/", PaymentVerifyView.as_view(), name="payment-verify"),
    path("payments/callback/", PaymentCallbackView.as_view(), name="payment-callback"),
    path("payments/webhook/", PaystackWebhookView.as_view(), name="paystack-webhook"),
]
