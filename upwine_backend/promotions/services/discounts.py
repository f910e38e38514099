# promotions/services/discounts.py

"""
DISCOUNT CODE VALIDATOR / REDEEMER

validate():
- pure read; never mutates used_count
- failure reasons are checked in a fixed order:
    not_found -> inactive -> expired -> max_uses_reached -> below_minimum
- discount is in whole currency units and never exceeds the order total

redeem():
- single conditional UPDATE:
    used_count = used_count + 1
    WHERE is_active AND (max_uses IS NULL OR used_count < max_uses)
  so concurrent redemptions can never push used_count past max_uses.

restore():
- conditional decrement (used_count > 0); only used when cancellations are
  configured to give the code back.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Optional

from django.db.models import F, Q
from django.utils import timezone

from promotions.models import DiscountCode, normalize_code

logger = logging.getLogger(__name__)

TWOPLACES = Decimal("0.01")
WHOLE = Decimal("1")

REASON_NOT_FOUND = "not_found"
REASON_INACTIVE = "inactive"
REASON_EXPIRED = "expired"
REASON_MAX_USES_REACHED = "max_uses_reached"
REASON_BELOW_MINIMUM = "below_minimum"

REASON_MESSAGES = {
    REASON_NOT_FOUND: "Invalid discount code",
    REASON_INACTIVE: "This discount code is no longer active",
    REASON_EXPIRED: "This discount code has expired",
    REASON_MAX_USES_REACHED: "This discount code has reached its usage limit",
    REASON_BELOW_MINIMUM: "Order total is below the minimum for this discount code",
}


class DiscountError(Exception):
    """Base discount failure."""


@dataclass(frozen=True)
class DiscountValidation:
    valid: bool
    discount_amount: Decimal
    reason: Optional[str] = None
    discount_code: Optional[DiscountCode] = None

    @property
    def message(self) -> str:
        if self.valid:
            return ""
        return REASON_MESSAGES.get(self.reason or "", "Invalid discount code")


def _money(v) -> Decimal:
    if v is None or v == "":
        return Decimal("0.00")
    try:
        return Decimal(str(v)).quantize(TWOPLACES, rounding=ROUND_HALF_UP)
    except (InvalidOperation, ValueError, TypeError) as exc:
        raise DiscountError(f"Invalid amount: {v!r}") from exc


def _invalid(reason: str, discount_code: DiscountCode | None = None) -> DiscountValidation:
    return DiscountValidation(
        valid=False,
        discount_amount=Decimal("0.00"),
        reason=reason,
        discount_code=discount_code,
    )


def compute_discount(discount_code: DiscountCode, order_total) -> Decimal:
    total = _money(order_total)
    if total <= 0:
        return Decimal("0.00")

    value = _money(discount_code.value)

    if discount_code.discount_type == DiscountCode.TYPE_PERCENTAGE:
        raw = total * value / Decimal("100")
        amount = raw.quantize(WHOLE, rounding=ROUND_HALF_UP)
    else:
        amount = min(value, total)

    return _money(min(amount, total))


def validate(code, order_total, now=None) -> DiscountValidation:
    normalized = normalize_code(code)
    if not normalized:
        return _invalid(REASON_NOT_FOUND)

    discount_code = DiscountCode.objects.filter(code__iexact=normalized).first()
    if discount_code is None:
        return _invalid(REASON_NOT_FOUND)

    if not discount_code.is_active:
        return _invalid(REASON_INACTIVE, discount_code)

    now = now or timezone.now()
    if discount_code.expires_at and discount_code.expires_at <= now:
        return _invalid(REASON_EXPIRED, discount_code)

    if (
        discount_code.max_uses is not None
        and int(discount_code.used_count) >= int(discount_code.max_uses)
    ):
        return _invalid(REASON_MAX_USES_REACHED, discount_code)

    total = _money(order_total)
    if discount_code.min_order_amount is not None and total < _money(discount_code.min_order_amount):
        return _invalid(REASON_BELOW_MINIMUM, discount_code)

    return DiscountValidation(
        valid=True,
        discount_amount=compute_discount(discount_code, total),
        reason=None,
        discount_code=discount_code,
    )


def _code_filter(code) -> Q:
    if isinstance(code, DiscountCode):
        return Q(pk=code.pk)
    return Q(code__iexact=normalize_code(code))


def redeem(code) -> bool:
    """
    Consume one use. Returns False when the code is inactive or exhausted.
    """
    updated = (
        DiscountCode.objects.filter(_code_filter(code))
        .filter(is_active=True)
        .filter(Q(max_uses__isnull=True) | Q(used_count__lt=F("max_uses")))
        .update(used_count=F("used_count") + 1, updated_at=timezone.now())
    )

    label = code.code if isinstance(code, DiscountCode) else normalize_code(code)
    if updated != 1:
        logger.warning("Discount redemption rejected", extra={"code": label})
        return False

    logger.info("Discount redeemed", extra={"code": label})
    return True


def restore(code) -> bool:
    updated = (
        DiscountCode.objects.filter(_code_filter(code))
        .filter(used_count__gt=0)
        .update(used_count=F("used_count") - 1, updated_at=timezone.now())
    )

    label = code.code if isinstance(code, DiscountCode) else normalize_code(code)
    if updated != 1:
        logger.warning("Discount usage restore skipped", extra={"code": label})
        return False

    logger.info("Discount usage restored", extra={"code": label})
    return True
