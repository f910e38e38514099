# inventory/tests/test_stock_ledger.py

import threading
import unittest
from datetime import date

from django.db import connection, connections
from django.test import TestCase, TransactionTestCase, override_settings

from inventory.models import StockPeriod
from inventory.services.stock_ledger import (
    InsufficientStockError,
    StockLedgerError,
    current_available,
    current_period_key,
    release,
    reserve,
    reset_period,
)

MONDAY = date(2026, 3, 2)


class StockLedgerTests(TestCase):
    """
    GUARANTEES:
    - available == total - sold after every operation
    - a failed reservation changes nothing
    - release never pushes available above total
    """

    def setUp(self):
        reset_period(MONDAY, 10)

    def _assert_balanced(self):
        p = StockPeriod.objects.get(period_start=MONDAY)
        self.assertEqual(p.available_bottles, p.total_bottles - p.sold_bottles)
        return p

    def test_reserve_decrements_available(self):
        snapshot = reserve(MONDAY, 3)

        self.assertEqual(snapshot.available, 7)
        self.assertEqual(snapshot.sold, 3)
        self._assert_balanced()

    def test_reserve_more_than_available_is_rejected_without_change(self):
        with self.assertRaises(InsufficientStockError) as ctx:
            reserve(MONDAY, 11)

        self.assertEqual(ctx.exception.requested, 11)
        self.assertEqual(ctx.exception.available, 10)

        p = self._assert_balanced()
        self.assertEqual(p.available_bottles, 10)
        self.assertEqual(p.sold_bottles, 0)

    def test_reserve_exact_remaining_then_nothing_left(self):
        reserve(MONDAY, 10)

        with self.assertRaises(InsufficientStockError):
            reserve(MONDAY, 1)

        self.assertEqual(current_available(MONDAY).available, 0)

    def test_reserve_rejects_non_positive_and_fractional(self):
        for bad in (0, -1, 1.5, True, "two"):
            with self.assertRaises(StockLedgerError):
                reserve(MONDAY, bad)

    def test_release_returns_bottles(self):
        reserve(MONDAY, 4)

        self.assertTrue(release(MONDAY, 4))

        p = self._assert_balanced()
        self.assertEqual(p.available_bottles, 10)

    def test_release_after_reset_is_skipped(self):
        reserve(MONDAY, 4)
        reset_period(MONDAY, 10)

        self.assertFalse(release(MONDAY, 4))

        p = self._assert_balanced()
        self.assertEqual(p.available_bottles, 10)

    def test_reset_replaces_allotment(self):
        reserve(MONDAY, 6)

        snapshot = reset_period(MONDAY, 25)

        self.assertEqual(snapshot.total, 25)
        self.assertEqual(snapshot.sold, 0)
        self.assertEqual(snapshot.available, 25)

    def test_reset_rejects_negative(self):
        with self.assertRaises(StockLedgerError):
            reset_period(MONDAY, -5)

    @override_settings(SHOP={"DEFAULT_STOCK_ALLOTMENT": 42, "STOCK_PERIOD": "week"})
    def test_missing_period_is_created_with_default_allotment(self):
        snapshot = current_available(date(2026, 3, 9))

        self.assertEqual(snapshot.total, 42)
        self.assertEqual(snapshot.available, 42)
        self.assertTrue(StockPeriod.objects.filter(period_start=date(2026, 3, 9)).exists())


class PeriodKeyTests(TestCase):
    @override_settings(SHOP={"STOCK_PERIOD": "week"})
    def test_weekly_period_starts_on_monday(self):
        # Thursday 2026-03-05 -> Monday 2026-03-02
        self.assertEqual(current_period_key(date(2026, 3, 5)), MONDAY)
        self.assertEqual(current_period_key(MONDAY), MONDAY)

    @override_settings(SHOP={"STOCK_PERIOD": "day"})
    def test_daily_period_is_the_day_itself(self):
        self.assertEqual(current_period_key(date(2026, 3, 5)), date(2026, 3, 5))


@unittest.skipUnless(connection.vendor == "postgresql", "needs row-level concurrency (PostgreSQL)")
class ConcurrentReservationTests(TransactionTestCase):
    """
    Two customers racing for the last bottle: exactly one wins.
    """

    def test_last_bottle_goes_to_exactly_one_caller(self):
        reset_period(MONDAY, 1)

        results = []
        barrier = threading.Barrier(2)

        def worker():
            try:
                barrier.wait()
                reserve(MONDAY, 1)
                results.append("ok")
            except InsufficientStockError:
                results.append("rejected")
            finally:
                connections.close_all()

        threads = [threading.Thread(target=worker) for _ in range(2)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        self.assertEqual(sorted(results), ["ok", "rejected"])

        p = StockPeriod.objects.get(period_start=MONDAY)
        self.assertEqual(p.available_bottles, 0)
        self.assertEqual(p.sold_bottles, 1)

    def test_many_concurrent_reservations_never_oversell(self):
        reset_period(MONDAY, 5)

        results = []
        lock = threading.Lock()

        def worker():
            try:
                reserve(MONDAY, 1)
                outcome = "ok"
            except InsufficientStockError:
                outcome = "rejected"
            finally:
                connections.close_all()
            with lock:
                results.append(outcome)

        threads = [threading.Thread(target=worker) for _ in range(12)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        self.assertEqual(results.count("ok"), 5)
        p = StockPeriod.objects.get(period_start=MONDAY)
        self.assertEqual(p.available_bottles, 0)
        self.assertEqual(p.sold_bottles, 5)
