# payments/services/paystack.py
from __future__ import annotations

import hashlib
import hmac
import json
import logging
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from http.client import HTTPException
from typing import Any
from urllib.error import HTTPError
from urllib.request import Request, urlopen

from django.conf import settings

logger = logging.getLogger(__name__)

PAYSTACK_BASE = "https://api.paystack.co"
DEFAULT_TIMEOUT = 25


class PaystackError(Exception):
    """Transport failure, timeout, or a response Paystack did not accept."""


def _paystack_cfg() -> dict:
    payments = getattr(settings, "PAYMENTS", {}) or {}
    cfg = (payments.get("PAYSTACK") or {}) if isinstance(payments, dict) else {}
    return cfg if isinstance(cfg, dict) else {}


def _get_secret_key() -> str:
    sk = (_paystack_cfg().get("SECRET_KEY") or "").strip()
    if not sk:
        raise PaystackError(
            "PAYSTACK SECRET_KEY is not configured. "
            "Expected settings.PAYMENTS['PAYSTACK']['SECRET_KEY']."
        )
    return sk


def _timeout() -> int:
    try:
        return int(_paystack_cfg().get("TIMEOUT") or DEFAULT_TIMEOUT)
    except (TypeError, ValueError):
        return DEFAULT_TIMEOUT


def default_callback_url() -> str:
    return (_paystack_cfg().get("CALLBACK_URL") or "").strip()


def to_kobo(amount_naira) -> int:
    try:
        naira = Decimal(str(amount_naira))
    except (InvalidOperation, ValueError, TypeError) as exc:
        raise ValueError("amount_naira must be a valid Decimal") from exc
    kobo = (naira * Decimal("100")).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
    return int(kobo)


def _provider_message(raw: str, fallback: str) -> str:
    try:
        parsed = json.loads(raw or "")
    except ValueError:
        parsed = None
    if isinstance(parsed, dict):
        return str(parsed.get("message") or parsed.get("error") or fallback)
    return (raw or fallback).strip()[:300]


def _request_json(method: str, url: str, *, body: dict | None = None) -> dict[str, Any]:
    """
    One Paystack round trip. Anything other than a JSON object back from
    Paystack is a PaystackError, including failures while reading the body.
    """
    sk = _get_secret_key()
    data = json.dumps(body, ensure_ascii=False).encode("utf-8") if body is not None else None

    req = Request(
        url,
        data=data,
        headers={
            "Authorization": f"Bearer {sk}",
            "Content-Type": "application/json",
            "Accept": "application/json",
            "User-Agent": "UpwineBackend/1.0 Python-urllib",
        },
        method=method,
    )

    try:
        with urlopen(req, timeout=_timeout()) as resp:
            raw = resp.read().decode("utf-8", errors="replace")
    except HTTPError as e:
        try:
            raw = e.read().decode("utf-8", errors="replace")
        except (OSError, HTTPException):
            raw = ""
        raise PaystackError(
            f"Paystack HTTPError: {e.code} {_provider_message(raw, 'Paystack rejected request')}"
        ) from e
    except (OSError, HTTPException) as e:
        # URLError and socket timeouts are OSErrors; a truncated body is an HTTPException
        raise PaystackError(f"Paystack request failed: {e!r}") from e

    try:
        parsed = json.loads(raw)
    except ValueError:
        parsed = None
    if not isinstance(parsed, dict):
        raise PaystackError(f"Paystack returned non-JSON: {(raw or '').strip()[:300]}")
    return parsed


def paystack_initialize_transaction(
    *,
    email: str,
    amount_naira: Decimal,
    reference: str,
    callback_url: str = "",
    metadata: dict | None = None,
) -> dict:
    payload: dict = {
        "email": str(email).strip(),
        "amount": to_kobo(amount_naira),
        "reference": str(reference).strip(),
        "currency": "NGN",
    }

    if callback_url:
        payload["callback_url"] = str(callback_url).strip()

    if metadata:
        payload["metadata"] = metadata

    parsed = _request_json("POST", f"{PAYSTACK_BASE}/transaction/initialize", body=payload)

    if not parsed.get("status"):
        raise PaystackError(parsed.get("message") or "Paystack init rejected")

    return parsed.get("data") or {}


def verify_paystack_signature(*, raw_body: bytes, signature: str | None) -> bool:
    if not signature:
        return False
    try:
        sk = _get_secret_key().encode("utf-8")
    except PaystackError:
        logger.error("Webhook received but Paystack secret key is not configured")
        return False
    computed = hmac.new(sk, raw_body or b"", hashlib.sha512).hexdigest()
    return hmac.compare_digest(computed, str(signature).strip())


def verify_paystack_transaction(*, reference: str) -> dict:
    """
    {"ok": bool, "status": str, "amount": int | None}

    ok is True only when Paystack answered and reports the charge as
    "success". amount is in kobo.
    """
    ref = str(reference or "").strip()
    if not ref:
        return {"ok": False, "status": "", "amount": None}

    parsed = _request_json("GET", f"{PAYSTACK_BASE}/transaction/verify/{ref}")
    data = parsed.get("data") or {}

    tx_status = str(data.get("status") or "").strip().lower()
    try:
        amount = int(data["amount"])
    except (KeyError, TypeError, ValueError):
        amount = None

    return {
        "ok": bool(parsed.get("status")) and tx_status == "success",
        "status": tx_status,
        "amount": amount,
    }
