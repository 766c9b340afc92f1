# accounting/tests/test_bank_reconciliation.py

from __future__ import annotations

from datetime import date
from decimal import Decimal

from django.core.exceptions import ValidationError
from django.test import TestCase

from accounting.models.account import Account
from accounting.models.bank import BankReconciliation
from accounting.services.bank_reconciliation_service import (
    complete_reconciliation,
    create_reconciliation,
    is_bank_account_reconciled,
    latest_completed_reconciliation,
    register_bank_account,
    start_reconciliation,
    update_reconciliation,
)
from accounting.services.exceptions import (
    AlreadyCompletedError,
    BankAccountNotFoundError,
    DuplicateCodeError,
    GroupAccountNotPostableError,
    InvalidHierarchyError,
    NotDraftError,
    NotEditableError,
    NotInProgressError,
)
from accounting.tests.factories import cr, dr, make_account, make_january, make_user, post

JAN_31 = date(2026, 1, 31)


class BankAccountRegistrationTests(TestCase):
    def setUp(self):
        self.bank_gl = make_account("1200", Account.ASSET, name="Bank")

    def test_register(self):
        bank = register_bank_account(
            account_number="0123456789",
            account_name="Operating",
            bank_name="First Bank",
            gl_account_id=self.bank_gl.pk,
            currency_code="ngn",
        )
        self.assertEqual(bank.gl_account, self.bank_gl)
        self.assertEqual(bank.currency_code, "NGN")

        with self.assertRaises(DuplicateCodeError):
            register_bank_account(
                account_number="0123456789",
                account_name="Again",
                bank_name="First Bank",
                gl_account_id=self.bank_gl.pk,
            )

    def test_gl_account_must_be_postable_asset(self):
        payable = make_account("2100", Account.LIABILITY)
        with self.assertRaises(InvalidHierarchyError):
            register_bank_account(
                account_number="1", account_name="X", bank_name="Y", gl_account_id=payable.pk
            )

        group = make_account("1000", Account.ASSET, is_group=True)
        with self.assertRaises(GroupAccountNotPostableError):
            register_bank_account(
                account_number="2", account_name="X", bank_name="Y", gl_account_id=group.pk
            )

    def test_gl_account_backs_one_bank_account(self):
        register_bank_account(account_number="1", account_name="X", bank_name="Y", gl_account_id=self.bank_gl.pk)
        with self.assertRaises(DuplicateCodeError):
            register_bank_account(account_number="2", account_name="X", bank_name="Y", gl_account_id=self.bank_gl.pk)


class ReconciliationWorkflowTests(TestCase):
    """
    GUARANTEES:
    - DRAFT -> IN_PROGRESS -> COMPLETED, nothing else
    - book_balance comes from the ledger as of the statement date
    - is_bank_account_reconciled() is the single answer to "reconciled?"
    """

    def setUp(self):
        self.user = make_user()
        make_january()
        self.bank_gl = make_account("1200", Account.ASSET, name="Bank", opening_balance="200.00")
        self.capital = make_account("3100", Account.EQUITY)
        self.bank = register_bank_account(
            account_number="0123456789",
            account_name="Operating",
            bank_name="First Bank",
            gl_account_id=self.bank_gl.pk,
        )

        post(date(2026, 1, 10), dr(self.bank_gl, "800.00"), cr(self.capital, "800.00"))
        # after the statement date; must not count
        post(JAN_31, dr(self.bank_gl, "0.01"), cr(self.capital, "0.01"))

    def test_book_balance_as_of_statement_date(self):
        rec = create_reconciliation(
            bank_account_id=self.bank.pk,
            statement_date=date(2026, 1, 15),
            statement_balance="1000.00",
        )
        self.assertTrue(rec.number.startswith("BR-"))
        self.assertEqual(rec.status, BankReconciliation.DRAFT)
        self.assertEqual(rec.book_balance, Decimal("1000.00"))

    def test_matching_statement_reconciles(self):
        rec = create_reconciliation(
            bank_account_id=self.bank.pk,
            statement_date=date(2026, 1, 15),
            statement_balance="1000.00",
        )
        start_reconciliation(rec.pk)
        done = complete_reconciliation(rec.pk, reconciled_by=self.user)

        self.assertEqual(done.status, BankReconciliation.COMPLETED)
        self.assertEqual(done.difference, Decimal("0.00"))
        self.assertEqual(done.reconciled_balance, Decimal("1000.00"))
        self.assertEqual(done.reconciled_by, self.user)
        self.assertTrue(is_bank_account_reconciled(self.bank.pk))
        self.assertEqual(latest_completed_reconciliation(self.bank.pk), done)

    def test_mismatch_is_not_reconciled(self):
        rec = create_reconciliation(
            bank_account_id=self.bank.pk,
            statement_date=date(2026, 1, 15),
            statement_balance="900.00",
        )
        start_reconciliation(rec.pk)
        done = complete_reconciliation(rec.pk)

        self.assertEqual(done.difference, Decimal("-100.00"))
        self.assertFalse(is_bank_account_reconciled(self.bank.pk))

    def test_no_reconciliation_means_not_reconciled(self):
        self.assertFalse(is_bank_account_reconciled(self.bank.pk))
        with self.assertRaises(BankAccountNotFoundError):
            is_bank_account_reconciled(999999)

    def test_draft_can_be_edited(self):
        rec = create_reconciliation(
            bank_account_id=self.bank.pk,
            statement_date=date(2026, 1, 5),
            statement_balance="1.00",
        )
        self.assertEqual(rec.book_balance, Decimal("200.00"))

        rec = update_reconciliation(rec.pk, statement_date=date(2026, 1, 15), statement_balance="1000.00")
        self.assertEqual(rec.book_balance, Decimal("1000.00"))
        self.assertEqual(rec.statement_balance, Decimal("1000.00"))

    def test_illegal_transitions(self):
        rec = create_reconciliation(
            bank_account_id=self.bank.pk,
            statement_date=date(2026, 1, 15),
            statement_balance="1000.00",
        )

        with self.assertRaises(NotInProgressError):
            complete_reconciliation(rec.pk)

        start_reconciliation(rec.pk)
        with self.assertRaises(NotDraftError):
            start_reconciliation(rec.pk)
        with self.assertRaises(NotEditableError):
            update_reconciliation(rec.pk, remarks="late")

        complete_reconciliation(rec.pk)
        with self.assertRaises(AlreadyCompletedError):
            start_reconciliation(rec.pk)
        with self.assertRaises(AlreadyCompletedError):
            complete_reconciliation(rec.pk)

    def test_completed_record_is_frozen(self):
        rec = create_reconciliation(
            bank_account_id=self.bank.pk,
            statement_date=date(2026, 1, 15),
            statement_balance="1000.00",
        )
        start_reconciliation(rec.pk)
        done = complete_reconciliation(rec.pk)

        done.remarks = "changed"
        with self.assertRaises(ValidationError):
            done.save()
        with self.assertRaises(ValidationError):
            done.delete()
