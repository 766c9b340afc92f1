# accounting/tests/test_period_registry.py

from __future__ import annotations

from datetime import date
from decimal import Decimal

from django.core.exceptions import ValidationError
from django.test import TestCase

from accounting.models.account import Account
from accounting.models.journal import JournalEntry
from accounting.services.exceptions import (
    AlreadyClosedError,
    DuplicateCodeError,
    InvalidHierarchyError,
    InvalidPeriodRangeError,
    NoPeriodDefinedError,
    OverlappingPeriodError,
    PeriodClosedError,
)
from accounting.services.period_registry import (
    assert_period_open,
    close_period,
    create_period,
    get_period_for_date,
    get_prior_period,
    is_period_open,
    list_open_periods,
)
from accounting.tests.factories import (
    JAN_END,
    JAN_START,
    balance_of,
    cr,
    dr,
    make_account,
    make_february,
    make_january,
    make_user,
    post,
)


class PeriodDefinitionTests(TestCase):
    """
    GUARANTEES:
    - start < end
    - No two periods overlap
    - A date resolves to exactly one period
    """

    def setUp(self):
        self.jan = make_january()

    def test_start_must_precede_end(self):
        with self.assertRaises(InvalidPeriodRangeError):
            create_period(code="BAD", start_date=date(2026, 3, 31), end_date=date(2026, 3, 1), fiscal_year=2026)
        with self.assertRaises(InvalidPeriodRangeError):
            create_period(code="BAD", start_date=date(2026, 3, 1), end_date=date(2026, 3, 1), fiscal_year=2026)

    def test_overlap_rejected(self):
        with self.assertRaises(OverlappingPeriodError):
            create_period(code="2026-01B", start_date=date(2026, 1, 15), end_date=date(2026, 2, 15), fiscal_year=2026)

    def test_duplicate_code_rejected(self):
        with self.assertRaises(DuplicateCodeError):
            create_period(code="2026-01", start_date=date(2027, 1, 1), end_date=date(2027, 1, 31), fiscal_year=2027)

    def test_date_resolution(self):
        feb = make_february()

        self.assertEqual(get_period_for_date(JAN_START), self.jan)
        self.assertEqual(get_period_for_date(JAN_END), self.jan)
        self.assertEqual(get_period_for_date(date(2026, 2, 1)), feb)
        self.assertEqual(get_prior_period(feb), self.jan)
        self.assertIsNone(get_prior_period(self.jan))

        with self.assertRaises(NoPeriodDefinedError):
            get_period_for_date(date(2025, 12, 31))

    def test_dates_are_immutable(self):
        self.jan.end_date = date(2026, 1, 30)
        with self.assertRaises(ValidationError):
            self.jan.save()

    def test_delete_is_refused(self):
        with self.assertRaises(ValidationError):
            self.jan.delete()


class ClosePeriodTests(TestCase):
    """
    GUARANTEES:
    - OPEN -> CLOSED exactly once, never back
    - Closed periods reject new postings
    - Optional closing entry moves P&L into retained earnings
    """

    def setUp(self):
        self.user = make_user()
        self.jan = make_january()
        self.feb = make_february()

        self.cash = make_account("1100", Account.ASSET)
        self.sales = make_account("4100", Account.REVENUE)
        self.rent = make_account("5200", Account.EXPENSE)
        self.retained = make_account("3200", Account.EQUITY)

    def test_close_marks_period_and_blocks_postings(self):
        period = close_period(self.jan.pk, closed_by=self.user)

        self.assertTrue(period.is_closed)
        self.assertEqual(period.closed_by, self.user)
        self.assertIsNotNone(period.closed_at)
        self.assertFalse(is_period_open(self.jan.pk))
        self.assertEqual(list_open_periods(), [self.feb])

        with self.assertRaises(PeriodClosedError):
            assert_period_open(date(2026, 1, 10))
        self.assertEqual(assert_period_open(date(2026, 2, 10)), self.feb)

    def test_close_twice_fails(self):
        close_period(self.jan.pk)
        with self.assertRaises(AlreadyClosedError):
            close_period(self.jan.pk)

    def test_reopen_is_refused(self):
        period = close_period(self.jan.pk)
        period.is_closed = False
        with self.assertRaises(ValidationError):
            period.save()

    def test_closing_entry_moves_profit_to_retained_earnings(self):
        post(date(2026, 1, 5), dr(self.cash, "500.00"), cr(self.sales, "500.00"))
        post(date(2026, 1, 20), dr(self.rent, "200.00"), cr(self.cash, "200.00"))

        close_period(self.jan.pk, closed_by=self.user, retained_earnings_account_id=self.retained.pk)

        self.assertEqual(balance_of(self.sales), Decimal("0.00"))
        self.assertEqual(balance_of(self.rent), Decimal("0.00"))
        self.assertEqual(balance_of(self.retained), Decimal("300.00"))
        self.assertEqual(balance_of(self.cash), Decimal("300.00"))

        closing = JournalEntry.objects.get(entry_type=JournalEntry.CLOSING)
        self.assertEqual(closing.status, JournalEntry.POSTED)
        self.assertEqual(closing.entry_date, JAN_END)
        self.assertEqual(closing.period, self.jan)
        self.assertEqual(closing.total_debit, Decimal("500.00"))

    def test_closing_without_activity_posts_nothing(self):
        close_period(self.jan.pk, retained_earnings_account_id=self.retained.pk)
        self.assertFalse(JournalEntry.objects.filter(entry_type=JournalEntry.CLOSING).exists())

    def test_retained_earnings_must_be_equity(self):
        post(date(2026, 1, 5), dr(self.cash, "500.00"), cr(self.sales, "500.00"))

        with self.assertRaises(InvalidHierarchyError):
            close_period(self.jan.pk, retained_earnings_account_id=self.cash.pk)

        self.jan.refresh_from_db()
        self.assertFalse(self.jan.is_closed)
