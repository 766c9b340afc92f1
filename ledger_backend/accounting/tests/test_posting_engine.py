# accounting/tests/test_posting_engine.py

from __future__ import annotations

import threading
from datetime import date
from decimal import Decimal
from unittest import mock, skipUnless

from django.core.exceptions import ValidationError
from django.db import DatabaseError, OperationalError, connection, connections, transaction
from django.test import TestCase, TransactionTestCase
from django.test.utils import CaptureQueriesContext

from accounting.models.account import Account
from accounting.models.journal import JournalEntry
from accounting.models.ledger import LedgerEntry
from accounting.models.period import FiscalPeriod
from accounting.services.account_registry import apply_posting as real_apply_posting
from accounting.services.exceptions import (
    CONCURRENCY,
    CONSISTENCY,
    AlreadyPostedError,
    LockTimeoutError,
    LostUpdateDetectedError,
    NoPeriodDefinedError,
    PeriodClosedError,
    PeriodNotFoundError,
    PostingHaltedError,
    UnknownAccountError,
)
from accounting.services.journal_entry_service import post_journal_entry, reverse_journal_entry
from accounting.services.ledger_service import (
    get_account_balance,
    get_account_balance_as_of,
    get_ledger_history,
    verify_account_balance,
)
from accounting.services.period_registry import close_period
from accounting.services.posting_control import resume_account_posting, resume_period_posting
from accounting.tests.factories import (
    balance_of,
    cr,
    dr,
    draft,
    make_account,
    make_february,
    make_january,
    make_user,
    post,
)

JAN_10 = date(2026, 1, 10)
JAN_20 = date(2026, 1, 20)
FEB_03 = date(2026, 2, 3)


class PostingScenarioTests(TestCase):
    """
    GUARANTEES:
    - A (ASSET) / B (REVENUE) 500 posting moves both balances to 500
    - Re-posting fails with AlreadyPosted and changes nothing
    - Posting into a closed period fails with PeriodClosed and writes nothing
    - Reversal brings both balances back to zero
    """

    def setUp(self):
        self.user = make_user()
        self.p1 = make_january()
        self.p2 = make_february()
        self.a = make_account("1100", Account.ASSET, name="A")
        self.b = make_account("4100", Account.REVENUE, name="B")

    def _post_a_b(self, amount="500.00", on=JAN_10):
        return post(on, dr(self.a, amount), cr(self.b, amount))

    def test_post_updates_balances_and_writes_rows(self):
        entry = self._post_a_b()

        self.assertEqual(entry.status, JournalEntry.POSTED)
        self.assertEqual(entry.period, self.p1)
        self.assertIsNotNone(entry.posted_at)
        self.assertEqual(balance_of(self.a), Decimal("500.00"))
        self.assertEqual(balance_of(self.b), Decimal("500.00"))

        rows = list(LedgerEntry.objects.filter(journal_entry=entry).order_by("id"))
        self.assertEqual(len(rows), 2)
        self.assertEqual([r.account_id for r in rows], [self.a.pk, self.b.pk])
        self.assertEqual([r.balance for r in rows], [Decimal("500.00"), Decimal("500.00")])
        self.assertTrue(all(r.period_id == self.p1.pk for r in rows))
        self.assertEqual(sum(r.debit for r in rows), sum(r.credit for r in rows))

    def test_repost_fails_and_changes_nothing(self):
        entry = self._post_a_b()

        with self.assertRaises(AlreadyPostedError):
            post_journal_entry(entry.pk)

        self.assertEqual(balance_of(self.a), Decimal("500.00"))
        self.assertEqual(balance_of(self.b), Decimal("500.00"))
        self.assertEqual(LedgerEntry.objects.count(), 2)

    def test_post_into_closed_period_fails(self):
        self._post_a_b()
        close_period(self.p1.pk, closed_by=self.user)

        pending = draft(JAN_20, dr(self.a, "10.00"), cr(self.b, "10.00"))
        with self.assertRaises(PeriodClosedError):
            post_journal_entry(pending.pk)

        self.assertEqual(LedgerEntry.objects.count(), 2)
        pending.refresh_from_db()
        self.assertEqual(pending.status, JournalEntry.DRAFT)

    def test_post_without_period_fails(self):
        pending = draft(date(2025, 6, 1), dr(self.a, "10.00"), cr(self.b, "10.00"))
        with self.assertRaises(NoPeriodDefinedError):
            post_journal_entry(pending.pk)
        self.assertFalse(LedgerEntry.objects.exists())

    def test_reverse_returns_balances_to_zero(self):
        entry = self._post_a_b()

        reversal = reverse_journal_entry(entry.pk, reversed_by=self.user, reversal_date=FEB_03)

        self.assertEqual(balance_of(self.a), Decimal("0.00"))
        self.assertEqual(balance_of(self.b), Decimal("0.00"))
        self.assertEqual(reversal.status, JournalEntry.POSTED)
        self.assertEqual(reversal.reversal_of_id, entry.pk)

    def test_balance_matches_opening_plus_signed_history(self):
        self._post_a_b("500.00")
        post(JAN_20, dr(self.b, "120.00"), cr(self.a, "120.00"))
        post(FEB_03, dr(self.a, "40.00"), cr(self.b, "40.00"))

        for account in (self.a, self.b):
            check = verify_account_balance(account.pk)
            self.assertTrue(check.ok)
            self.assertEqual(check.stored_balance, Decimal("420.00"))

        self.assertEqual(get_account_balance(code="1100").balance, Decimal("420.00"))
        self.assertEqual(get_account_balance_as_of(self.a.pk, on_date=JAN_20).balance, Decimal("380.00"))

        history = get_ledger_history(self.a.pk, start_date=JAN_10, end_date=JAN_20)
        self.assertEqual([row.balance for row in history], [Decimal("500.00"), Decimal("380.00")])
        self.assertEqual(history[0].period_code, "2026-01")


class PostingAtomicityTests(TestCase):
    def setUp(self):
        make_january()
        self.cash = make_account("1100", Account.ASSET, opening_balance="100.00")
        self.bank = make_account("1200", Account.ASSET)
        self.sales = make_account("4100", Account.REVENUE)

    def test_failure_on_last_line_leaves_no_trace(self):
        entry = draft(
            JAN_10,
            dr(self.cash, "30.00"),
            dr(self.bank, "70.00"),
            cr(self.sales, "100.00"),
        )
        calls = {"n": 0}

        def fail_on_last_line(account, **kwargs):
            calls["n"] += 1
            if calls["n"] == 3:
                raise RuntimeError("injected failure")
            return real_apply_posting(account, **kwargs)

        with mock.patch("accounting.services.posting.apply_posting", side_effect=fail_on_last_line):
            with self.assertRaises(RuntimeError):
                post_journal_entry(entry.pk)

        self.assertEqual(calls["n"], 3)
        self.assertFalse(LedgerEntry.objects.exists())
        self.assertEqual(balance_of(self.cash), Decimal("100.00"))
        self.assertEqual(balance_of(self.bank), Decimal("0.00"))
        self.assertEqual(balance_of(self.sales), Decimal("0.00"))

        entry.refresh_from_db()
        self.assertEqual(entry.status, JournalEntry.DRAFT)
        self.assertIsNone(entry.posted_at)

        # same entry posts cleanly once the fault is gone
        post_journal_entry(entry.pk)
        self.assertEqual(balance_of(self.cash), Decimal("130.00"))


class LockTimeoutTests(TestCase):
    def setUp(self):
        make_january()
        self.cash = make_account("1100", Account.ASSET)
        self.sales = make_account("4100", Account.REVENUE)
        self.entry = draft(JAN_10, dr(self.cash, "10.00"), cr(self.sales, "10.00"))

    def test_lock_timeout_is_typed_and_retryable(self):
        timeout = OperationalError("canceling statement due to lock timeout")
        with mock.patch("accounting.services.posting._lock_period", side_effect=timeout):
            with self.assertRaises(LockTimeoutError) as ctx:
                post_journal_entry(self.entry.pk)

        self.assertTrue(ctx.exception.retryable)
        self.assertEqual(ctx.exception.category, CONCURRENCY)
        self.assertFalse(LedgerEntry.objects.exists())

        # retry succeeds
        post_journal_entry(self.entry.pk)
        self.assertEqual(balance_of(self.cash), Decimal("10.00"))

    def test_other_operational_errors_propagate(self):
        with mock.patch(
            "accounting.services.posting._lock_period",
            side_effect=OperationalError("disk I/O error"),
        ):
            with self.assertRaises(OperationalError):
                post_journal_entry(self.entry.pk)


class ConsistencyHaltTests(TestCase):
    """
    GUARANTEES:
    - A balance that drifted from its last ledger snapshot is a lost update
    - The failure is logged CRITICAL and halts the affected account
    - Halted accounts/periods refuse further postings
    """

    def setUp(self):
        self.jan = make_january()
        self.cash = make_account("1100", Account.ASSET)
        self.bank = make_account("1200", Account.ASSET)
        self.sales = make_account("4100", Account.REVENUE)
        post(JAN_10, dr(self.cash, "50.00"), cr(self.sales, "50.00"))

    def test_lost_update_halts_account(self):
        Account.objects.filter(pk=self.cash.pk).update(current_balance=Decimal("999.00"))
        pending = draft(JAN_20, dr(self.cash, "5.00"), cr(self.sales, "5.00"))

        with self.assertLogs("accounting.services.posting", level="CRITICAL"):
            with self.assertRaises(LostUpdateDetectedError) as ctx:
                post_journal_entry(pending.pk)

        self.assertEqual(ctx.exception.category, CONSISTENCY)
        self.assertEqual(ctx.exception.account_ids, (self.cash.pk,))

        self.cash.refresh_from_db()
        self.sales.refresh_from_db()
        self.assertTrue(self.cash.posting_halted)
        self.assertFalse(self.sales.posting_halted)
        self.assertEqual(LedgerEntry.objects.count(), 2)

        other = draft(JAN_20, dr(self.cash, "1.00"), cr(self.sales, "1.00"))
        with self.assertRaises(PostingHaltedError):
            post_journal_entry(other.pk)

        # unaffected accounts keep posting
        post(JAN_20, dr(self.bank, "5.00"), cr(self.sales, "5.00"))

    def test_halted_period_refuses_postings(self):
        FiscalPeriod.objects.filter(pk=self.jan.pk).update(posting_halted=True)
        pending = draft(JAN_20, dr(self.bank, "5.00"), cr(self.sales, "5.00"))

        with self.assertRaises(PostingHaltedError) as ctx:
            post_journal_entry(pending.pk)
        self.assertEqual(ctx.exception.period_id, self.jan.pk)


class LedgerImmutabilityTests(TestCase):
    def setUp(self):
        make_january()
        self.cash = make_account("1100", Account.ASSET)
        self.sales = make_account("4100", Account.REVENUE)
        self.entry = post(JAN_10, dr(self.cash, "50.00"), cr(self.sales, "50.00"))

    def test_rows_cannot_be_modified(self):
        row = LedgerEntry.objects.filter(journal_entry=self.entry).first()
        row.description = "Tampered"
        with self.assertRaises(ValidationError):
            row.save()

    def test_rows_cannot_be_deleted(self):
        row = LedgerEntry.objects.filter(journal_entry=self.entry).first()
        with self.assertRaises(ValidationError):
            row.delete()

    def test_queryset_writes_are_blocked(self):
        with self.assertRaises(ValidationError):
            LedgerEntry.objects.filter(journal_entry=self.entry).update(description="Tampered")
        with self.assertRaises(ValidationError):
            LedgerEntry.objects.all().delete()

        self.assertEqual(LedgerEntry.objects.count(), 2)


class ResumePostingTests(TestCase):
    """
    GUARANTEES:
    - A halted period/account can be resumed by an operator
    - Every resume is logged with who cleared it and why
    - Resuming something that is not halted changes nothing
    """

    def setUp(self):
        self.operator = make_user("operator")
        self.jan = make_january()
        self.cash = make_account("1100", Account.ASSET)
        self.sales = make_account("4100", Account.REVENUE)

    def test_resume_period(self):
        FiscalPeriod.objects.filter(pk=self.jan.pk).update(posting_halted=True)
        pending = draft(JAN_20, dr(self.cash, "5.00"), cr(self.sales, "5.00"))
        with self.assertRaises(PostingHaltedError):
            post_journal_entry(pending.pk)

        with self.assertLogs("accounting.services.posting_control", level="WARNING") as logs:
            cleared = resume_period_posting(self.jan.pk, resumed_by=self.operator, reason="Ledger verified")

        self.assertTrue(cleared)
        self.assertEqual(logs.records[0].resumed_by, "operator")
        self.assertEqual(logs.records[0].reason, "Ledger verified")
        self.assertFalse(FiscalPeriod.objects.get(pk=self.jan.pk).posting_halted)

        post_journal_entry(pending.pk)
        self.assertEqual(balance_of(self.cash), Decimal("5.00"))

        self.assertFalse(resume_period_posting(self.jan.pk, resumed_by=self.operator, reason="again"))

    def test_resume_account(self):
        Account.objects.filter(pk=self.cash.pk).update(posting_halted=True)
        pending = draft(JAN_20, dr(self.cash, "5.00"), cr(self.sales, "5.00"))
        with self.assertRaises(PostingHaltedError):
            post_journal_entry(pending.pk)

        self.assertTrue(resume_account_posting(self.cash.pk, resumed_by=self.operator, reason="Checked"))

        post_journal_entry(pending.pk)
        self.assertEqual(balance_of(self.cash), Decimal("5.00"))

    def test_resume_unknown_targets(self):
        with self.assertRaises(PeriodNotFoundError):
            resume_period_posting(999999, reason="x")
        with self.assertRaises(UnknownAccountError):
            resume_account_posting(999999, reason="x")


class LockOrderTests(TestCase):
    """
    GUARANTEES:
    - Locks are taken entry -> accounts (ascending id) -> period
    """

    def setUp(self):
        make_january()
        self.cash = make_account("1100", Account.ASSET)
        self.sales = make_account("4100", Account.REVENUE)

    @staticmethod
    def _first_index(sqls, table: str) -> int:
        marker = f'FROM "{table}"'
        return next(i for i, sql in enumerate(sqls) if marker in sql)

    def test_lock_order(self):
        # higher account id first in the lines; locking must still be ascending
        entry = draft(JAN_10, cr(self.sales, "10.00"), dr(self.cash, "10.00"))
        self.assertGreater(self.sales.pk, self.cash.pk)

        with CaptureQueriesContext(connection) as ctx:
            post_journal_entry(entry.pk)
        sqls = [q["sql"] for q in ctx.captured_queries]

        entry_idx = self._first_index(sqls, "accounting_journalentry")
        account_idx = self._first_index(sqls, "accounting_account")
        period_idx = self._first_index(sqls, "accounting_fiscalperiod")

        self.assertLess(entry_idx, account_idx)
        self.assertLess(account_idx, period_idx)
        self.assertIn('ORDER BY "accounting_account"."id" ASC', sqls[account_idx])

        if connection.features.has_select_for_update:
            for idx in (entry_idx, account_idx, period_idx):
                self.assertIn("FOR UPDATE", sqls[idx])


@skipUnless(connection.vendor == "postgresql", "row-level locking needs PostgreSQL")
class ConcurrentPostingTests(TransactionTestCase):
    """
    GUARANTEES:
    - Concurrent postings sharing an account serialize on its row lock
    - No update is lost: final balance and snapshot chain account for every posting
    """

    POSTINGS = 10

    def setUp(self):
        make_january()
        self.cash = make_account("1100", Account.ASSET)
        self.sales = make_account("4100", Account.REVENUE)
        self.other = make_account("4200", Account.REVENUE)
        self.entry_ids = [
            draft(JAN_10, dr(self.cash, "1.00"), cr(self.sales if i % 2 else self.other, "1.00")).pk
            for i in range(self.POSTINGS)
        ]

    def _post_all(self, entry_ids, errors):
        try:
            for entry_id in entry_ids:
                post_journal_entry(entry_id)
        except Exception as exc:
            errors.append(exc)
        finally:
            connections.close_all()

    def test_shared_account_postings_do_not_lose_updates(self):
        errors = []
        workers = [
            threading.Thread(target=self._post_all, args=(self.entry_ids[0::2], errors)),
            threading.Thread(target=self._post_all, args=(self.entry_ids[1::2], errors)),
        ]
        for worker in workers:
            worker.start()
        for worker in workers:
            worker.join()

        self.assertEqual(errors, [])
        self.assertEqual(balance_of(self.cash), Decimal("10.00"))

        snapshots = list(
            LedgerEntry.objects.filter(account=self.cash).order_by("id").values_list("balance", flat=True)
        )
        self.assertEqual(snapshots, [Decimal(n) for n in range(1, self.POSTINGS + 1)])
        self.assertTrue(verify_account_balance(self.cash.pk).ok)


@skipUnless(connection.vendor == "postgresql", "database trigger is installed on PostgreSQL only")
class LedgerTriggerTests(TestCase):
    """
    GUARANTEES:
    - Raw SQL cannot update or delete ledger rows either
    """

    def setUp(self):
        make_january()
        self.cash = make_account("1100", Account.ASSET)
        self.sales = make_account("4100", Account.REVENUE)
        post(JAN_10, dr(self.cash, "50.00"), cr(self.sales, "50.00"))

    def _raw(self, sql: str):
        with transaction.atomic(), connection.cursor() as cursor:
            cursor.execute(sql)

    def test_raw_update_rejected(self):
        with self.assertRaises(DatabaseError):
            self._raw("UPDATE accounting_ledgerentry SET description = 'Tampered'")
        self.assertFalse(LedgerEntry.objects.filter(description="Tampered").exists())

    def test_raw_delete_rejected(self):
        with self.assertRaises(DatabaseError):
            self._raw("DELETE FROM accounting_ledgerentry")
        self.assertEqual(LedgerEntry.objects.count(), 2)
