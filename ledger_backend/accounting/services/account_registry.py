# accounting/services/account_registry.py

"""
======================================================
PATH: accounting/services/account_registry.py
======================================================
ACCOUNT REGISTRY

Owns the chart-of-accounts hierarchy and each account's running balance.

Guarantees:
- Codes are unique and immutable
- Hierarchy never contains a cycle; parents are active group accounts
- signed_amount() is the ONLY implementation of the natural-side sign rule
- apply_posting() only runs inside the posting engine's write barrier
"""

from __future__ import annotations

import logging
from decimal import Decimal

from django.core.exceptions import ValidationError
from django.db import IntegrityError, transaction
from django.db.models import Q, Sum

from accounting.balance_guard import balance_writes_allowed
from accounting.models.account import Account
from accounting.services.exceptions import (
    DuplicateCodeError,
    GroupAccountNotPostableError,
    HasChildrenError,
    HasOpenBalanceError,
    InactiveAccountError,
    InvalidAmountError,
    InvalidHierarchyError,
    UnknownAccountError,
)
from accounting.services.money import ZERO, money, q2

logger = logging.getLogger(__name__)

VALID_TYPES = {code for code, _label in Account.ACCOUNT_TYPES}
VALID_SIDES = {Account.DEBIT, Account.CREDIT}


def signed_amount(account_type: str, debit, credit) -> Decimal:
    """
    Movement of a debit/credit pair on the account's natural side.

    DEBIT-normal (ASSET, EXPENSE):       debit - credit
    CREDIT-normal (LIABILITY, EQUITY, REVENUE): credit - debit
    """
    debit = debit or ZERO
    credit = credit or ZERO
    if account_type in Account.DEBIT_NORMAL_TYPES:
        return debit - credit
    return credit - debit


def get_account_by_id(account_id) -> Account:
    try:
        return Account.objects.get(pk=account_id)
    except (Account.DoesNotExist, ValueError, TypeError) as exc:
        raise UnknownAccountError(f"Account id={account_id} does not exist") from exc


def get_account_by_code(code: str) -> Account:
    code = (code or "").strip()
    try:
        return Account.objects.get(code=code)
    except Account.DoesNotExist as exc:
        raise UnknownAccountError(f"Account code={code!r} does not exist") from exc


def _resolve_parent(parent_id) -> Account | None:
    if parent_id is None:
        return None

    try:
        parent = Account.objects.get(pk=parent_id)
    except (Account.DoesNotExist, ValueError, TypeError) as exc:
        raise InvalidHierarchyError(f"Parent account id={parent_id} does not exist") from exc

    if not parent.is_active:
        raise InvalidHierarchyError(f"Parent account {parent.code} is inactive")
    if not parent.is_group:
        raise InvalidHierarchyError(f"Parent account {parent.code} is not a group account")

    try:
        parent.ancestors()
    except ValidationError as exc:
        raise InvalidHierarchyError(str(exc.messages[0])) from exc

    return parent


@transaction.atomic
def register_account(
    *,
    code: str,
    name: str,
    account_type: str,
    category: str = "",
    parent_id=None,
    is_group: bool = False,
    is_control: bool = False,
    opening_balance=None,
    opening_side: str | None = None,
) -> Account:
    code = (code or "").strip()
    account_type = (account_type or "").strip().upper()

    if account_type not in VALID_TYPES:
        raise InvalidHierarchyError(f"Unknown account type: {account_type!r}")

    if Account.objects.filter(code=code).exists():
        raise DuplicateCodeError(f"Account code {code} already exists")

    parent = _resolve_parent(parent_id)
    if parent is not None and parent.account_type != account_type:
        raise InvalidHierarchyError(
            f"Account {code} ({account_type}) cannot sit under {parent.code} ({parent.account_type})"
        )

    opening = money(opening_balance)
    if opening < 0:
        raise InvalidAmountError("Opening balance must be non-negative; use opening_side instead")
    if is_group and opening != ZERO:
        raise GroupAccountNotPostableError("Group accounts cannot carry an opening balance")

    account = Account(
        code=code,
        name=name,
        account_type=account_type,
        category=category or "",
        parent=parent,
        is_group=is_group,
        is_control=is_control,
        opening_balance=opening,
    )
    side = (opening_side or account.normal_side).strip().upper()
    if side not in VALID_SIDES:
        raise InvalidAmountError(f"Opening side must be DEBIT or CREDIT, got {opening_side!r}")
    account.opening_balance_side = side
    account.current_balance = account.signed_opening_balance

    try:
        with transaction.atomic():
            account.save()
    except IntegrityError as exc:
        raise DuplicateCodeError(f"Account code {code} already exists") from exc
    except ValidationError as exc:
        raise InvalidHierarchyError("; ".join(exc.messages)) from exc

    logger.info(
        "Account registered",
        extra={"account_code": account.code, "account_type": account.account_type},
    )
    return account


@transaction.atomic
def move_account(account_id, *, parent_id) -> Account:
    """Re-parent an account; rejects moves that would create a cycle."""
    account = Account.objects.select_for_update().get(pk=get_account_by_id(account_id).pk)
    parent = _resolve_parent(parent_id)

    if parent is not None:
        if parent.pk == account.pk:
            raise InvalidHierarchyError("Account cannot be its own parent")
        if any(a.pk == account.pk for a in parent.ancestors()):
            raise InvalidHierarchyError(
                f"Moving {account.code} under {parent.code} would create a cycle"
            )
        if parent.account_type != account.account_type:
            raise InvalidHierarchyError("Parent must have the same account type")

    account.parent = parent
    account.save(update_fields=["parent", "updated_at"])
    return account


@transaction.atomic
def deactivate_account(account_id) -> Account:
    account = Account.objects.select_for_update().filter(pk=account_id).first()
    if account is None:
        raise UnknownAccountError(f"Account id={account_id} does not exist")

    if account.is_control and account.current_balance != ZERO:
        raise HasOpenBalanceError(
            f"Control account {account.code} still carries a balance of {account.current_balance}"
        )

    if account.children.filter(is_active=True).exists():
        raise HasChildrenError(f"Account {account.code} has active child accounts")

    if account.is_active:
        account.is_active = False
        account.save(update_fields=["is_active", "updated_at"])
        logger.info("Account deactivated", extra={"account_code": account.code})

    return account


def list_children(account_id, *, active_only: bool = True) -> list[Account]:
    qs = Account.objects.filter(parent_id=account_id)
    if active_only:
        qs = qs.filter(is_active=True)
    return list(qs.order_by("code"))


def account_path(account_id) -> str:
    return get_account_by_id(account_id).full_path()


def registered_opening_totals() -> tuple[Decimal, Decimal]:
    """(debit, credit) sums of every registered opening balance; equal when the chart opens balanced."""
    totals = Account.objects.aggregate(
        debit_total=Sum("opening_balance", filter=Q(opening_balance_side=Account.DEBIT)),
        credit_total=Sum("opening_balance", filter=Q(opening_balance_side=Account.CREDIT)),
    )
    return q2(totals["debit_total"]), q2(totals["credit_total"])


def assert_postable(account: Account | None, *, account_id=None) -> Account:
    if account is None:
        raise UnknownAccountError(f"Account id={account_id} does not exist")
    if account.is_group:
        raise GroupAccountNotPostableError(f"Account {account.code} is a group account")
    if not account.is_active:
        raise InactiveAccountError(f"Account {account.code} is inactive")
    return account


def apply_posting(account: Account | None, *, debit, credit, account_id=None) -> Decimal:
    """
    Apply one debit/credit pair to a LOCKED account row and return its new balance.

    Internal to the posting engine: the caller must hold the row lock and have
    opened the balance write barrier.
    """
    if not balance_writes_allowed():
        raise RuntimeError("apply_posting() may only be called by the posting engine")

    assert_postable(account, account_id=account_id)

    account.current_balance = money(
        account.current_balance + signed_amount(account.account_type, money(debit), money(credit))
    )
    account.save(update_fields=["current_balance", "updated_at"])
    return account.current_balance
