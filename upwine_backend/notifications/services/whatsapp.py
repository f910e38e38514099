# notifications/services/whatsapp.py

"""
WHATSAPP SINK

Backends (settings.NOTIFICATIONS["WHATSAPP_SERVICE"]):
- "none"          nothing is sent (development)
- "twilio"        Twilio Messages API (form-encoded, basic auth)
- "whatsapp-api"  Meta WhatsApp Business Cloud API
- "green-api"     Green API

Contract:
- send_whatsapp_message() returns True when the provider accepted the message,
  False when there is nothing to do (no backend / backend not configured)
- transport or provider errors raise WhatsAppError; the outbox decides
  whether to retry
"""

from __future__ import annotations

import base64
import json
import logging
import re
from http.client import HTTPException
from typing import Any
from urllib.error import HTTPError
from urllib.parse import urlencode
from urllib.request import Request, urlopen

from django.conf import settings

logger = logging.getLogger(__name__)

TWILIO_BASE = "https://api.twilio.com/2010-04-01"
GREEN_API_BASE = "https://api.green-api.com"

SERVICE_NONE = "none"
SERVICE_TWILIO = "twilio"
SERVICE_WHATSAPP_API = "whatsapp-api"
SERVICE_GREEN_API = "green-api"


class WhatsAppError(Exception):
    """Provider rejected the message or could not be reached."""


def _cfg() -> dict:
    cfg = getattr(settings, "NOTIFICATIONS", {}) or {}
    return cfg if isinstance(cfg, dict) else {}


def active_service() -> str:
    return str(_cfg().get("WHATSAPP_SERVICE") or SERVICE_NONE).strip().lower()


def normalize_phone(phone) -> str:
    """
    Nigerian numbers to international digits:
        0803 123 4567   -> 2348031234567
        +234 803 ...    -> 234803...
    """
    digits = re.sub(r"\D", "", str(phone or ""))
    if not digits:
        return ""
    if digits.startswith("234"):
        return digits
    if digits.startswith("0"):
        return f"234{digits[1:]}"
    return f"234{digits}"


def _post(url: str, *, data: bytes, headers: dict[str, str]) -> dict[str, Any]:
    timeout = int(_cfg().get("TIMEOUT") or 15)
    req = Request(url, data=data, headers=headers, method="POST")

    try:
        with urlopen(req, timeout=timeout) as resp:
            raw = resp.read().decode("utf-8", errors="replace")
    except HTTPError as e:
        body = ""
        try:
            body = e.read().decode("utf-8", errors="replace")
        except (OSError, HTTPException):
            body = ""
        raise WhatsAppError(f"HTTP {e.code}: {body[:300] or e.reason}") from e
    except (OSError, HTTPException) as e:
        raise WhatsAppError(f"Transport error: {e!r}") from e

    try:
        parsed = json.loads(raw or "{}")
    except ValueError:
        return {"raw": raw}
    return parsed if isinstance(parsed, dict) else {"raw": parsed}


# ============================================================
# BACKENDS
# ============================================================

def _send_twilio(phone: str, message: str) -> bool:
    cfg = _cfg().get("TWILIO") or {}
    sid = str(cfg.get("ACCOUNT_SID") or "").strip()
    token = str(cfg.get("AUTH_TOKEN") or "").strip()
    sender = str(cfg.get("WHATSAPP_FROM") or "").strip()

    if not sid or not token or not sender:
        logger.warning("Twilio credentials not configured; message not sent")
        return False

    auth = base64.b64encode(f"{sid}:{token}".encode("utf-8")).decode("ascii")
    body = urlencode(
        {"From": f"whatsapp:{sender}", "To": f"whatsapp:+{phone}", "Body": message}
    ).encode("utf-8")

    result = _post(
        f"{TWILIO_BASE}/Accounts/{sid}/Messages.json",
        data=body,
        headers={
            "Authorization": f"Basic {auth}",
            "Content-Type": "application/x-www-form-urlencoded",
        },
    )
    logger.info("WhatsApp message sent via Twilio", extra={"sid": result.get("sid")})
    return True


def _send_whatsapp_api(phone: str, message: str) -> bool:
    cfg = _cfg().get("WHATSAPP_API") or {}
    url = str(cfg.get("URL") or "").strip().rstrip("/")
    token = str(cfg.get("TOKEN") or "").strip()
    phone_number_id = str(cfg.get("PHONE_NUMBER_ID") or "").strip()

    if not url or not token or not phone_number_id:
        logger.warning("WhatsApp API credentials not configured; message not sent")
        return False

    payload = {
        "messaging_product": "whatsapp",
        "to": phone,
        "type": "text",
        "text": {"body": message},
    }
    _post(
        f"{url}/{phone_number_id}/messages",
        data=json.dumps(payload).encode("utf-8"),
        headers={"Authorization": f"Bearer {token}", "Content-Type": "application/json"},
    )
    return True


def _send_green_api(phone: str, message: str) -> bool:
    cfg = _cfg().get("GREEN_API") or {}
    url = str(cfg.get("URL") or GREEN_API_BASE).strip().rstrip("/")
    instance = str(cfg.get("ID_INSTANCE") or "").strip()
    token = str(cfg.get("TOKEN_INSTANCE") or "").strip()

    if not instance or not token:
        logger.warning("Green API credentials not configured; message not sent")
        return False

    payload = {"chatId": f"{phone}@c.us", "message": message}
    _post(
        f"{url}/waInstance{instance}/sendMessage/{token}",
        data=json.dumps(payload).encode("utf-8"),
        headers={"Content-Type": "application/json"},
    )
    return True


BACKENDS = {
    SERVICE_TWILIO: _send_twilio,
    SERVICE_WHATSAPP_API: _send_whatsapp_api,
    SERVICE_GREEN_API: _send_green_api,
}


def send_whatsapp_message(phone, message: str) -> bool:
    formatted = normalize_phone(phone)
    if not formatted:
        return False

    service = active_service()
    backend = BACKENDS.get(service)
    if backend is None:
        logger.info(
            "No WhatsApp service configured; message not sent",
            extra={"phone": formatted, "preview": (message or "")[:50]},
        )
        return False

    return backend(formatted, message)
