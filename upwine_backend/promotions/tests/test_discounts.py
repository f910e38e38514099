# promotions/tests/test_discounts.py

from datetime import timedelta
from decimal import Decimal

from django.contrib.auth import get_user_model
from django.db import IntegrityError, transaction
from django.test import TestCase
from django.utils import timezone
from rest_framework.test import APIClient

from promotions.models import DiscountCode
from promotions.services.discounts import redeem, restore, validate

User = get_user_model()


def _code(**kwargs):
    defaults = {
        "code": "SAVE10",
        "discount_type": DiscountCode.TYPE_PERCENTAGE,
        "value": Decimal("10"),
    }
    defaults.update(kwargs)
    return DiscountCode.objects.create(**defaults)


class DiscountValidationTests(TestCase):
    """
    GUARANTEES:
    - 0 <= discount <= order total
    - reasons reported in a stable order
    - validate() never consumes a use
    """

    def test_fixed_code_with_minimum_met(self):
        _code(code="FLAT1500", discount_type=DiscountCode.TYPE_FIXED,
              value=Decimal("1500"), min_order_amount=Decimal("5000"))

        result = validate("flat1500", Decimal("10000"))

        self.assertTrue(result.valid)
        self.assertEqual(result.discount_amount, Decimal("1500.00"))
        self.assertIsNone(result.reason)

    def test_below_minimum(self):
        _code(code="FLAT1500", discount_type=DiscountCode.TYPE_FIXED,
              value=Decimal("1500"), min_order_amount=Decimal("5000"))

        result = validate("FLAT1500", Decimal("3000"))

        self.assertFalse(result.valid)
        self.assertEqual(result.reason, "below_minimum")
        self.assertEqual(result.discount_amount, Decimal("0.00"))

    def test_fixed_discount_is_capped_at_order_total(self):
        _code(code="BIG", discount_type=DiscountCode.TYPE_FIXED, value=Decimal("5000"))

        result = validate("BIG", Decimal("3000"))

        self.assertTrue(result.valid)
        self.assertEqual(result.discount_amount, Decimal("3000.00"))

    def test_percentage_rounds_to_whole_units_half_up(self):
        _code(code="P15", value=Decimal("15"))

        result = validate("P15", Decimal("3333"))

        # 3333 * 15% = 499.95 -> 500
        self.assertEqual(result.discount_amount, Decimal("500.00"))

    def test_full_percentage_equals_total(self):
        _code(code="FREE", value=Decimal("100"))

        result = validate("FREE", Decimal("4000"))

        self.assertEqual(result.discount_amount, Decimal("4000.00"))

    def test_unknown_and_blank_codes(self):
        self.assertEqual(validate("NOPE", Decimal("1000")).reason, "not_found")
        self.assertEqual(validate("   ", Decimal("1000")).reason, "not_found")

    def test_reason_order_inactive_before_expired(self):
        _code(code="OLD", is_active=False, expires_at=timezone.now() - timedelta(days=1))

        self.assertEqual(validate("OLD", Decimal("1000")).reason, "inactive")

    def test_expired(self):
        _code(code="OLD", expires_at=timezone.now() - timedelta(minutes=1))

        self.assertEqual(validate("OLD", Decimal("1000")).reason, "expired")

    def test_max_uses_reached(self):
        _code(code="ONCE", max_uses=1, used_count=1)

        self.assertEqual(validate("ONCE", Decimal("1000")).reason, "max_uses_reached")

    def test_validate_does_not_consume(self):
        code = _code(code="ONCE", max_uses=1)

        validate("ONCE", Decimal("1000"))
        validate("ONCE", Decimal("1000"))

        code.refresh_from_db()
        self.assertEqual(code.used_count, 0)


class DiscountRedemptionTests(TestCase):
    def test_redeem_increments(self):
        code = _code(code="MANY")

        self.assertTrue(redeem("many"))

        code.refresh_from_db()
        self.assertEqual(code.used_count, 1)

    def test_redeem_never_exceeds_max_uses(self):
        code = _code(code="TWICE", max_uses=2)

        self.assertTrue(redeem(code))
        self.assertTrue(redeem(code))
        self.assertFalse(redeem(code))

        code.refresh_from_db()
        self.assertEqual(code.used_count, 2)

    def test_redeem_inactive_code_fails(self):
        code = _code(code="OFF", is_active=False)

        self.assertFalse(redeem(code))

    def test_restore_gives_a_use_back_but_not_below_zero(self):
        code = _code(code="BACK", max_uses=1)
        redeem(code)

        self.assertTrue(restore(code))
        self.assertFalse(restore(code))

        code.refresh_from_db()
        self.assertEqual(code.used_count, 0)

    def test_db_rejects_used_count_above_max_uses(self):
        code = _code(code="CAP", max_uses=1, used_count=1)

        with self.assertRaises(IntegrityError):
            with transaction.atomic():
                DiscountCode.objects.filter(pk=code.pk).update(used_count=2)

    def test_code_is_stored_upper_case(self):
        code = _code(code="  spring ")

        self.assertEqual(code.code, "SPRING")


class DiscountApiTests(TestCase):
    def setUp(self):
        self.client = APIClient()
        self.admin = User.objects.create_user(username="admin", password="pass", is_staff=True)

    def test_public_validate(self):
        _code(code="SAVE10")

        res = self.client.post(
            "/api/discount-codes/validate/",
            {"code": "save10", "order_amount": "4000"},
            format="json",
        )

        self.assertEqual(res.status_code, 200)
        self.assertTrue(res.data["valid"])
        self.assertEqual(res.data["code"], "SAVE10")
        self.assertEqual(Decimal(str(res.data["discount"])), Decimal("400.00"))

    def test_public_validate_invalid_code_is_200_with_reason(self):
        res = self.client.post(
            "/api/discount-codes/validate/",
            {"code": "missing", "order_amount": "4000"},
            format="json",
        )

        self.assertEqual(res.status_code, 200)
        self.assertFalse(res.data["valid"])
        self.assertEqual(res.data["reason"], "not_found")

    def test_public_validate_requires_positive_amount(self):
        res = self.client.post(
            "/api/discount-codes/validate/",
            {"code": "SAVE10", "order_amount": "0"},
            format="json",
        )

        self.assertEqual(res.status_code, 400)

    def test_admin_create_normalizes_and_rejects_bad_percentage(self):
        self.client.force_authenticate(self.admin)

        res = self.client.post(
            "/api/admin/discount-codes/",
            {"code": "welcome", "discount_type": "percentage", "value": "20"},
            format="json",
        )
        self.assertEqual(res.status_code, 201)
        self.assertEqual(res.data["code"], "WELCOME")

        res = self.client.post(
            "/api/admin/discount-codes/",
            {"code": "TOOMUCH", "discount_type": "percentage", "value": "120"},
            format="json",
        )
        self.assertEqual(res.status_code, 400)

        res = self.client.post(
            "/api/admin/discount-codes/",
            {"code": "Welcome", "discount_type": "fixed", "value": "500"},
            format="json",
        )
        self.assertEqual(res.status_code, 400)

    def test_admin_endpoints_require_staff(self):
        res = self.client.get("/api/admin/discount-codes/")
        self.assertIn(res.status_code, (401, 403))
