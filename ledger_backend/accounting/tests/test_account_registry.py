# accounting/tests/test_account_registry.py

from __future__ import annotations

from decimal import Decimal

from django.core.exceptions import ValidationError
from django.test import TestCase

from accounting.models.account import Account
from accounting.services.account_registry import (
    account_path,
    apply_posting,
    deactivate_account,
    get_account_by_code,
    list_children,
    move_account,
    register_account,
    signed_amount,
)
from accounting.services.exceptions import (
    VALIDATION,
    DuplicateCodeError,
    GroupAccountNotPostableError,
    HasChildrenError,
    HasOpenBalanceError,
    InvalidAmountError,
    InvalidHierarchyError,
    UnknownAccountError,
)
from accounting.tests.factories import JAN_START, cr, dr, make_account, make_january, post


class SignConventionTests(TestCase):
    """
    GUARANTEES:
    - Debit-normal types grow with debits
    - Credit-normal types grow with credits
    """

    def test_debit_normal_types(self):
        for account_type in (Account.ASSET, Account.EXPENSE):
            self.assertEqual(signed_amount(account_type, Decimal("100.00"), Decimal("30.00")), Decimal("70.00"))

    def test_credit_normal_types(self):
        for account_type in (Account.LIABILITY, Account.EQUITY, Account.REVENUE):
            self.assertEqual(signed_amount(account_type, Decimal("100.00"), Decimal("30.00")), Decimal("-70.00"))


class RegisterAccountTests(TestCase):
    """
    GUARANTEES:
    - Unique, immutable codes
    - Opening balance seeds the running balance on the natural side
    - Parents are active group accounts of the same type
    """

    def setUp(self):
        self.assets = make_account("1000", Account.ASSET, name="Assets", is_group=True)

    def test_register_seeds_current_balance_from_opening(self):
        cash = make_account("1100", Account.ASSET, parent_id=self.assets.pk, opening_balance="250.00")

        self.assertEqual(cash.current_balance, Decimal("250.00"))
        self.assertEqual(cash.opening_balance_side, Account.DEBIT)
        self.assertEqual(cash.normal_side, Account.DEBIT)

    def test_opening_on_opposite_side_is_negative(self):
        overdraft = make_account("1150", Account.ASSET, opening_balance="40.00", opening_side=Account.CREDIT)
        self.assertEqual(overdraft.current_balance, Decimal("-40.00"))

    def test_duplicate_code_rejected(self):
        make_account("1100", Account.ASSET)
        with self.assertRaises(DuplicateCodeError) as ctx:
            make_account("1100", Account.ASSET)
        self.assertEqual(ctx.exception.category, VALIDATION)

    def test_unknown_type_rejected(self):
        with self.assertRaises(InvalidHierarchyError):
            register_account(code="9000", name="Mystery", account_type="GOODWILL")

    def test_parent_must_be_group(self):
        cash = make_account("1100", Account.ASSET)
        with self.assertRaises(InvalidHierarchyError):
            make_account("1101", Account.ASSET, parent_id=cash.pk)

    def test_parent_must_share_type(self):
        with self.assertRaises(InvalidHierarchyError):
            make_account("2100", Account.LIABILITY, parent_id=self.assets.pk)

    def test_unknown_parent_rejected(self):
        with self.assertRaises(InvalidHierarchyError):
            make_account("1100", Account.ASSET, parent_id=999999)

    def test_group_cannot_carry_opening_balance(self):
        with self.assertRaises(GroupAccountNotPostableError):
            make_account("1900", Account.ASSET, is_group=True, opening_balance="10.00")

    def test_negative_opening_rejected(self):
        with self.assertRaises(InvalidAmountError):
            make_account("1100", Account.ASSET, opening_balance="-5.00")

    def test_float_opening_rejected(self):
        with self.assertRaises(InvalidAmountError):
            make_account("1100", Account.ASSET, opening_balance=10.5)

    def test_lookup_by_code(self):
        make_account("1100", Account.ASSET, name="Cash")
        self.assertEqual(get_account_by_code(" 1100 ").name, "Cash")

        with self.assertRaises(UnknownAccountError):
            get_account_by_code("0000")


class HierarchyTests(TestCase):
    def setUp(self):
        self.assets = make_account("1000", Account.ASSET, name="Assets", is_group=True)
        self.current = make_account(
            "1050", Account.ASSET, name="Current Assets", is_group=True, parent_id=self.assets.pk
        )
        self.cash = make_account("1100", Account.ASSET, name="Cash", parent_id=self.current.pk)

    def test_path_and_level(self):
        self.assertEqual(account_path(self.cash.pk), "Assets > Current Assets > Cash")
        self.assertEqual(self.cash.level(), 2)
        self.assertEqual([a.code for a in self.cash.ancestors()], ["1050", "1000"])

    def test_list_children(self):
        self.assertEqual([a.code for a in list_children(self.assets.pk)], ["1050"])

    def test_move_rejects_cycle(self):
        with self.assertRaises(InvalidHierarchyError):
            move_account(self.assets.pk, parent_id=self.current.pk)

    def test_move_rejects_self_parent(self):
        with self.assertRaises(InvalidHierarchyError):
            move_account(self.assets.pk, parent_id=self.assets.pk)

    def test_move_to_root(self):
        moved = move_account(self.current.pk, parent_id=None)
        self.assertIsNone(moved.parent_id)
        self.assertEqual(account_path(self.cash.pk), "Current Assets > Cash")


class AccountLifecycleTests(TestCase):
    """
    GUARANTEES:
    - Codes never change
    - Accounts are never deleted
    - Balance column is owned by the posting engine
    """

    def setUp(self):
        make_january()
        self.group = make_account("1300", Account.ASSET, name="Receivables", is_group=True)
        self.receivable = make_account("1310", Account.ASSET, parent_id=self.group.pk, is_control=True)
        self.sales = make_account("4100", Account.REVENUE)

    def test_code_is_immutable(self):
        self.receivable.code = "1399"
        with self.assertRaises(ValidationError):
            self.receivable.save()

    def test_delete_is_refused(self):
        with self.assertRaises(ValidationError):
            self.sales.delete()

    def test_balance_cannot_be_saved_directly(self):
        self.sales.current_balance = Decimal("10.00")
        with self.assertRaises(ValidationError):
            self.sales.save()

    def test_apply_posting_outside_engine_refused(self):
        with self.assertRaises(RuntimeError):
            apply_posting(self.sales, debit=Decimal("0.00"), credit=Decimal("5.00"))

    def test_control_account_with_balance_cannot_be_deactivated(self):
        post(JAN_START, dr(self.receivable, "75.00"), cr(self.sales, "75.00"))

        with self.assertRaises(HasOpenBalanceError):
            deactivate_account(self.receivable.pk)

    def test_group_with_active_children_cannot_be_deactivated(self):
        with self.assertRaises(HasChildrenError):
            deactivate_account(self.group.pk)

    def test_deactivate_leaf(self):
        account = deactivate_account(self.sales.pk)
        self.assertFalse(account.is_active)

        with self.assertRaises(UnknownAccountError):
            deactivate_account(999999)
