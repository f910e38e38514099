"""
PATH: backend/settings/base.py

BASE SETTINGS (shared by dev + prod + test)

Operational maturity:
- Throttling on public write / poll / webhook endpoints
- Frontend redirect base (Paystack callback lands back on the storefront)
- Sentry (optional): error visibility in production
- Shop, delivery and notification knobs live in plain dicts so services
  read them with getattr(settings, ...) and tests override them per case
"""

from __future__ import annotations

import sys
from datetime import timedelta
from pathlib import Path

import environ
from corsheaders.defaults import default_headers, default_methods

# -----------------------------------------
# BASE DIRECTORY
# -----------------------------------------
BASE_DIR = Path(__file__).resolve().parent.parent.parent

# -----------------------------------------
# TEST MODE DETECTION
# -----------------------------------------
TESTING = "test" in sys.argv or "pytest" in sys.modules

# -----------------------------------------
# ENV (django-environ)
# -----------------------------------------
env = environ.Env(
    DEBUG=(bool, True),
    SECRET_KEY=(str, ""),
    TIME_ZONE=(str, "Africa/Lagos"),
    LOG_LEVEL=(str, "INFO"),
    ALLOWED_HOSTS=(list, ["localhost", "127.0.0.1"]),
    CORS_ALLOWED_ORIGINS=(list, ["http://localhost:3000"]),
    CSRF_TRUSTED_ORIGINS=(list, ["http://localhost:3000"]),
    DATABASE_URL=(str, f"sqlite:///{BASE_DIR / 'db.sqlite3'}"),
    PAYSTACK_SECRET_KEY=(str, ""),
    PAYSTACK_PUBLIC_KEY=(str, ""),
    PAYSTACK_CALLBACK_URL=(str, ""),
    PAYSTACK_TIMEOUT=(int, 25),
    # Throttling
    THROTTLE_ANON_RATE=(str, "60/min"),
    THROTTLE_USER_RATE=(str, "600/min"),
    THROTTLE_PUBLIC_POLL_RATE=(str, "120/min"),
    THROTTLE_PUBLIC_WRITE_RATE=(str, "10/min"),
    THROTTLE_WEBHOOK_RATE=(str, "600/min"),
    FRONTEND_BASE_URL=(str, "http://localhost:3000"),
    # Shop
    SHOP_NAME=(str, "Upwine"),
    PICKUP_ADDRESS=(str, "24 Tony Anenih Avenue, G.R.A, Benin City"),
    PRICE_PER_BOTTLE=(int, 2000),
    STOCK_PERIOD=(str, "week"),
    WEEKLY_STOCK=(int, 100),
    ADMIN_PHONE=(str, ""),
    CURRENCY=(str, "NGN"),
    DISCOUNT_RESTORE_ON_CANCEL=(bool, False),
    CRON_SECRET=(str, ""),
    # Delivery
    GEOCODER_TIMEOUT=(int, 8),
    GEOCODER_USER_AGENT=(str, "Upwine Delivery Calculator"),
    # Notifications (WhatsApp)
    WHATSAPP_SERVICE=(str, "none"),
    TWILIO_ACCOUNT_SID=(str, ""),
    TWILIO_AUTH_TOKEN=(str, ""),
    TWILIO_WHATSAPP_FROM=(str, ""),
    WHATSAPP_API_URL=(str, ""),
    WHATSAPP_API_TOKEN=(str, ""),
    WHATSAPP_PHONE_NUMBER_ID=(str, ""),
    GREEN_API_URL=(str, "https://api.green-api.com"),
    GREEN_API_ID_INSTANCE=(str, ""),
    GREEN_API_TOKEN_INSTANCE=(str, ""),
    NOTIFICATIONS_DISPATCH_ON_COMMIT=(bool, not TESTING),
    NOTIFICATIONS_MAX_ATTEMPTS=(int, 5),
    NOTIFICATIONS_SENDING_TIMEOUT=(int, 600),
    # Sentry (optional; enable by setting SENTRY_DSN)
    SENTRY_DSN=(str, ""),
    SENTRY_ENVIRONMENT=(str, "development"),
    SENTRY_TRACES_SAMPLE_RATE=(float, 0.0),
    SENTRY_SEND_PII=(bool, False),
)

# -----------------------------------------
# LOAD .env
# -----------------------------------------
env_file_1 = BASE_DIR / ".env"
env_file_2 = BASE_DIR.parent / ".env"

if env_file_1.exists():
    env.read_env(str(env_file_1))
elif env_file_2.exists():
    env.read_env(str(env_file_2))

# -----------------------------------------
# CORE SECURITY
# -----------------------------------------
SECRET_KEY = (env("SECRET_KEY") or "dev-insecure-change-me").strip()
DEBUG = env.bool("DEBUG")
ALLOWED_HOSTS = env.list("ALLOWED_HOSTS")

# -----------------------------------------
# I18N / TZ
# -----------------------------------------
LANGUAGE_CODE = "en-us"
TIME_ZONE = (env("TIME_ZONE") or "Africa/Lagos").strip()
USE_I18N = True
USE_TZ = True

# -----------------------------------------
# INSTALLED APPS
# -----------------------------------------
INSTALLED_APPS = [
    "corsheaders",
    "django.contrib.admin",
    "django.contrib.auth",
    "django.contrib.contenttypes",
    "django.contrib.sessions",
    "django.contrib.messages",
    "django.contrib.staticfiles",
    "rest_framework",
    "rest_framework_simplejwt",
    "drf_spectacular",
    "django_filters",
    "inventory.apps.InventoryConfig",
    "promotions.apps.PromotionsConfig",
    "delivery.apps.DeliveryConfig",
    "orders.apps.OrdersConfig",
    "payments.apps.PaymentsConfig",
    "notifications.apps.NotificationsConfig",
]

# -----------------------------------------
# MIDDLEWARE
# -----------------------------------------
MIDDLEWARE = [
    "corsheaders.middleware.CorsMiddleware",
    "django.middleware.security.SecurityMiddleware",
    "django.contrib.sessions.middleware.SessionMiddleware",
    "django.middleware.common.CommonMiddleware",
    "django.middleware.csrf.CsrfViewMiddleware",
    "django.contrib.auth.middleware.AuthenticationMiddleware",
    "django.contrib.messages.middleware.MessageMiddleware",
    "django.middleware.clickjacking.XFrameOptionsMiddleware",
]

ROOT_URLCONF = "backend.urls"
WSGI_APPLICATION = "backend.wsgi.application"
APPEND_SLASH = True

# -----------------------------------------
# TEMPLATES (required for Django admin)
# -----------------------------------------
TEMPLATES = [
    {
        "BACKEND": "django.template.backends.django.DjangoTemplates",
        "DIRS": [str(BASE_DIR / "templates")],
        "APP_DIRS": True,
        "OPTIONS": {
            "context_processors": [
                "django.template.context_processors.debug",
                "django.template.context_processors.request",
                "django.contrib.auth.context_processors.auth",
                "django.contrib.messages.context_processors.messages",
            ],
        },
    }
]

# -----------------------------------------
# REST FRAMEWORK
# -----------------------------------------
REST_FRAMEWORK = {
    "DEFAULT_AUTHENTICATION_CLASSES": (
        "rest_framework_simplejwt.authentication.JWTAuthentication",
        "rest_framework.authentication.SessionAuthentication",
    ),
    "DEFAULT_PERMISSION_CLASSES": ("rest_framework.permissions.IsAdminUser",),
    "DEFAULT_FILTER_BACKENDS": ("django_filters.rest_framework.DjangoFilterBackend",),
    "DEFAULT_PAGINATION_CLASS": "rest_framework.pagination.PageNumberPagination",
    "PAGE_SIZE": 20,
    "DEFAULT_SCHEMA_CLASS": "drf_spectacular.openapi.AutoSchema",
    "DEFAULT_THROTTLE_CLASSES": (
        "rest_framework.throttling.AnonRateThrottle",
        "rest_framework.throttling.UserRateThrottle",
    ),
    "DEFAULT_THROTTLE_RATES": {
        "anon": env("THROTTLE_ANON_RATE"),
        "user": env("THROTTLE_USER_RATE"),
        "public_poll": env("THROTTLE_PUBLIC_POLL_RATE"),
        "public_write": env("THROTTLE_PUBLIC_WRITE_RATE"),
        "webhook": env("THROTTLE_WEBHOOK_RATE"),
    },
}

# -----------------------------------------
# SIMPLE JWT (admin dashboard)
# -----------------------------------------
SIMPLE_JWT = {
    "ACCESS_TOKEN_LIFETIME": timedelta(minutes=30),
    "REFRESH_TOKEN_LIFETIME": timedelta(days=1),
    "ROTATE_REFRESH_TOKENS": True,
}

# -----------------------------------------
# DATABASE
# -----------------------------------------
DATABASES = {
    "default": env.db("DATABASE_URL"),
}

# -----------------------------------------
# FRONTEND BASE URL
# -----------------------------------------
FRONTEND_BASE_URL = (env("FRONTEND_BASE_URL") or "http://localhost:3000").strip()

# -----------------------------------------
# ADMIN PATH (see backend/urls.py)
# -----------------------------------------
ADMIN_PATH = (env("ADMIN_PATH", default="admin/") or "admin/").strip()

# -----------------------------------------
# PAYMENTS
# -----------------------------------------
PAYMENTS = {
    "PAYSTACK": {
        "PUBLIC_KEY": (env("PAYSTACK_PUBLIC_KEY") or "").strip(),
        "SECRET_KEY": (env("PAYSTACK_SECRET_KEY") or "").strip(),
        "CALLBACK_URL": (env("PAYSTACK_CALLBACK_URL") or "").strip(),
        "TIMEOUT": env.int("PAYSTACK_TIMEOUT"),
    }
}

# -----------------------------------------
# SHOP
# -----------------------------------------
SHOP = {
    "NAME": (env("SHOP_NAME") or "Upwine").strip(),
    "PICKUP_ADDRESS": (env("PICKUP_ADDRESS") or "").strip(),
    "BOTTLE_PRICES": {"1L": env.int("PRICE_PER_BOTTLE")},
    "DEFAULT_BOTTLE_SIZE": "1L",
    # "week" -> periods start on Monday; "day" -> one period per calendar day
    "STOCK_PERIOD": (env("STOCK_PERIOD") or "week").strip().lower(),
    "DEFAULT_STOCK_ALLOTMENT": env.int("WEEKLY_STOCK"),
    "ADMIN_PHONE": (env("ADMIN_PHONE") or "").strip(),
    "CURRENCY": (env("CURRENCY") or "NGN").strip(),
    "DISCOUNT_RESTORE_ON_CANCEL": env.bool("DISCOUNT_RESTORE_ON_CANCEL"),
    "CRON_SECRET": (env("CRON_SECRET") or "").strip(),
}

# -----------------------------------------
# DELIVERY
# -----------------------------------------
DELIVERY = {
    "PICKUP_COORDINATES": (6.3167, 5.6167),
    "GEOCODER": "delivery.services.geocoding.NominatimGeocoder",
    "GEOCODER_TIMEOUT": env.int("GEOCODER_TIMEOUT"),
    "GEOCODER_USER_AGENT": env("GEOCODER_USER_AGENT"),
    "GEOCODER_CITY_SUFFIX": "Benin City, Nigeria",
    "GEOCODER_COUNTRY_CODES": "ng",
}

# -----------------------------------------
# NOTIFICATIONS (WhatsApp sink)
# -----------------------------------------
NOTIFICATIONS = {
    "WHATSAPP_SERVICE": (env("WHATSAPP_SERVICE") or "none").strip().lower(),
    "DISPATCH_ON_COMMIT": env.bool("NOTIFICATIONS_DISPATCH_ON_COMMIT"),
    "MAX_ATTEMPTS": env.int("NOTIFICATIONS_MAX_ATTEMPTS"),
    "SENDING_TIMEOUT": env.int("NOTIFICATIONS_SENDING_TIMEOUT"),
    "TIMEOUT": 15,
    "TWILIO": {
        "ACCOUNT_SID": env("TWILIO_ACCOUNT_SID"),
        "AUTH_TOKEN": env("TWILIO_AUTH_TOKEN"),
        "WHATSAPP_FROM": env("TWILIO_WHATSAPP_FROM"),
    },
    "WHATSAPP_API": {
        "URL": env("WHATSAPP_API_URL"),
        "TOKEN": env("WHATSAPP_API_TOKEN"),
        "PHONE_NUMBER_ID": env("WHATSAPP_PHONE_NUMBER_ID"),
    },
    "GREEN_API": {
        "URL": env("GREEN_API_URL"),
        "ID_INSTANCE": env("GREEN_API_ID_INSTANCE"),
        "TOKEN_INSTANCE": env("GREEN_API_TOKEN_INSTANCE"),
    },
}

# -----------------------------------------
# LOGGING
# -----------------------------------------
LOG_LEVEL = (env("LOG_LEVEL") or "INFO").strip().upper()

LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "plain": {
            "format": "%(asctime)s %(levelname)s %(name)s: %(message)s",
        },
    },
    "handlers": {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "plain",
        },
    },
    "root": {
        "handlers": ["console"],
        "level": LOG_LEVEL,
    },
    "loggers": {
        "django.db.backends": {"level": "WARNING"},
    },
}

# -----------------------------------------
# SENTRY (optional)
# -----------------------------------------
SENTRY_DSN = (env("SENTRY_DSN") or "").strip()
SENTRY_ENVIRONMENT = (env("SENTRY_ENVIRONMENT") or "development").strip()
SENTRY_TRACES_SAMPLE_RATE = float(env("SENTRY_TRACES_SAMPLE_RATE"))
SENTRY_SEND_PII = env.bool("SENTRY_SEND_PII")

if SENTRY_DSN:
    import sentry_sdk
    from sentry_sdk.integrations.django import DjangoIntegration

    sentry_sdk.init(
        dsn=SENTRY_DSN,
        environment=SENTRY_ENVIRONMENT,
        integrations=[DjangoIntegration()],
        traces_sample_rate=SENTRY_TRACES_SAMPLE_RATE,
        send_default_pii=SENTRY_SEND_PII,
    )

# -----------------------------------------
# CORS / CSRF
# -----------------------------------------
CORS_ALLOWED_ORIGINS = env.list("CORS_ALLOWED_ORIGINS")
CORS_ALLOW_CREDENTIALS = True
CORS_ALLOW_METHODS = list(default_methods)
CORS_ALLOW_HEADERS = list(default_headers)

CSRF_TRUSTED_ORIGINS = env.list("CSRF_TRUSTED_ORIGINS")

# -----------------------------------------
# STATIC FILES
# -----------------------------------------
STATIC_URL = "static/"
DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

# -----------------------------------------
# SWAGGER
# -----------------------------------------
SPECTACULAR_SETTINGS = {
    "TITLE": "Upwine Backend API",
    "DESCRIPTION": "Orders, weekly stock, discount codes, delivery fees and Paystack payments",
    "VERSION": "1.0.0",
    "SERVE_INCLUDE_SCHEMA": False,
}
