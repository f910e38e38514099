# backend/throttling.py
"""
Anonymous throttles for the public storefront endpoints.

Rates live in REST_FRAMEWORK['DEFAULT_THROTTLE_RATES'] under the scope names.
"""

from rest_framework.throttling import AnonRateThrottle


class PublicWriteThrottle(AnonRateThrottle):
    """
    For public write endpoints (place order, initialize payment, validate code).
    """

    scope = "public_write"


class PublicPollThrottle(AnonRateThrottle):
    """
    For public read / polling endpoints (stock, order status, invoice lookup).
    """

    scope = "public_poll"


class WebhookThrottle(AnonRateThrottle):
    scope = "webhook"
