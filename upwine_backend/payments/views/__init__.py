from .paystack import (
    PaymentCallbackView,
    PaymentInitializeView,
    PaymentVerifyView,
    PaystackWebhookView,
)

__all__ = [
    "PaymentCallbackView",
    "PaymentInitializeView",
    "PaymentVerifyView",
    "PaystackWebhookView",
]
