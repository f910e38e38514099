"""
PATH: backend/settings/test.py

TEST SETTINGS
- in-memory SQLite (the threaded stock test only runs on Postgres)
- notifications are recorded, never dispatched on commit
- throttles opened up so endpoint tests can post freely
- geocoding disabled (addresses fall back to the standard fee)
"""

from __future__ import annotations

from .base import *  # noqa: F403
from .base import DELIVERY, NOTIFICATIONS, PAYMENTS, REST_FRAMEWORK, SHOP, env

DEBUG = False

DATABASES = {
    "default": env.db("TEST_DATABASE_URL", default="sqlite://:memory:"),
}

PASSWORD_HASHERS = ["django.contrib.auth.hashers.MD5PasswordHasher"]

PAYMENTS = {
    "PAYSTACK": {
        **PAYMENTS["PAYSTACK"],
        "SECRET_KEY": "sk_test_upwine",
        "CALLBACK_URL": "http://testserver/payment/callback",
    }
}

SHOP = {
    **SHOP,
    "BOTTLE_PRICES": {"1L": 2000},
    "DEFAULT_BOTTLE_SIZE": "1L",
    "STOCK_PERIOD": "week",
    "DEFAULT_STOCK_ALLOTMENT": 100,
    "ADMIN_PHONE": "08030000000",
    "CRON_SECRET": "cron-test-secret",
    "DISCOUNT_RESTORE_ON_CANCEL": False,
}

NOTIFICATIONS = {
    **NOTIFICATIONS,
    "WHATSAPP_SERVICE": "none",
    "DISPATCH_ON_COMMIT": False,
}

REST_FRAMEWORK = {
    **REST_FRAMEWORK,
    "DEFAULT_THROTTLE_RATES": {
        "anon": "10000/min",
        "user": "10000/min",
        "public_poll": "10000/min",
        "public_write": "10000/min",
        "webhook": "10000/min",
    },
}

# no outbound geocoding from the test suite
DELIVERY = {
    **DELIVERY,
    "GEOCODER": "delivery.services.geocoding.NullGeocoder",
}
