# accounting/services/bank_reconciliation_service.py

"""
======================================================
PATH: accounting/services/bank_reconciliation_service.py
======================================================
BANK RECONCILIATION SERVICE

Matches the ledger balance of a bank's GL account against an externally
supplied statement balance.

State machine:
    DRAFT -> IN_PROGRESS -> COMPLETED (terminal)

Guarantees:
- book_balance is always derived from the ledger as of statement_date
- Only DRAFT reconciliations can be edited
- "Is this bank account reconciled?" has exactly one answer:
  is_bank_account_reconciled() reads the latest COMPLETED reconciliation
"""

from __future__ import annotations

import logging
from datetime import date

from django.db import IntegrityError, transaction
from django.utils import timezone

from accounting.models.account import Account
from accounting.models.bank import BankAccount, BankReconciliation
from accounting.services.account_registry import get_account_by_id
from accounting.services.exceptions import (
    AlreadyCompletedError,
    BankAccountNotFoundError,
    DuplicateCodeError,
    GroupAccountNotPostableError,
    InactiveAccountError,
    InvalidHierarchyError,
    NotDraftError,
    NotEditableError,
    NotInProgressError,
    ReconciliationNotFoundError,
)
from accounting.services.ledger_service import ledger_balance_as_of
from accounting.services.money import ZERO, money, q2
from accounting.services.numbering import next_reconciliation_number

logger = logging.getLogger(__name__)


# ============================================================
# BANK ACCOUNTS
# ============================================================


@transaction.atomic
def register_bank_account(
    *,
    account_number: str,
    account_name: str,
    bank_name: str,
    gl_account_id,
    branch: str = "",
    account_type: str = BankAccount.CURRENT,
    currency_code: str = "",
) -> BankAccount:
    account_number = (account_number or "").strip()
    if BankAccount.objects.filter(account_number=account_number).exists():
        raise DuplicateCodeError(f"Bank account {account_number} already exists")

    gl_account = get_account_by_id(gl_account_id)
    if gl_account.account_type != Account.ASSET:
        raise InvalidHierarchyError(f"Bank GL account {gl_account.code} must be an ASSET account")
    if gl_account.is_group:
        raise GroupAccountNotPostableError(f"Bank GL account {gl_account.code} is a group account")
    if not gl_account.is_active:
        raise InactiveAccountError(f"Bank GL account {gl_account.code} is inactive")
    if BankAccount.objects.filter(gl_account=gl_account).exists():
        raise DuplicateCodeError(f"GL account {gl_account.code} already backs a bank account")

    try:
        with transaction.atomic():
            bank_account = BankAccount.objects.create(
                account_number=account_number,
                account_name=account_name,
                bank_name=bank_name,
                branch=branch,
                account_type=account_type,
                currency_code=currency_code,
                gl_account=gl_account,
            )
    except IntegrityError as exc:
        raise DuplicateCodeError(f"Bank account {account_number} already exists") from exc

    logger.info(
        "Bank account registered",
        extra={"bank_account": bank_account.account_number, "gl_account": gl_account.code},
    )
    return bank_account


def get_bank_account(bank_account_id) -> BankAccount:
    try:
        return BankAccount.objects.select_related("gl_account").get(pk=bank_account_id)
    except (BankAccount.DoesNotExist, ValueError, TypeError) as exc:
        raise BankAccountNotFoundError(f"Bank account id={bank_account_id} does not exist") from exc


def book_balance_for(bank_account: BankAccount, statement_date: date):
    return ledger_balance_as_of(bank_account.gl_account, statement_date)


# ============================================================
# RECONCILIATIONS
# ============================================================


def get_reconciliation(reconciliation_id) -> BankReconciliation:
    try:
        return BankReconciliation.objects.select_related("bank_account").get(pk=reconciliation_id)
    except (BankReconciliation.DoesNotExist, ValueError, TypeError) as exc:
        raise ReconciliationNotFoundError(
            f"Reconciliation id={reconciliation_id} does not exist"
        ) from exc


def _lock(reconciliation_id) -> BankReconciliation:
    rec = (
        BankReconciliation.objects.select_for_update()
        .filter(pk=reconciliation_id)
        .first()
    )
    if rec is None:
        raise ReconciliationNotFoundError(f"Reconciliation id={reconciliation_id} does not exist")
    return rec


@transaction.atomic
def create_reconciliation(
    *,
    bank_account_id,
    statement_date: date,
    statement_balance,
    remarks: str = "",
) -> BankReconciliation:
    bank_account = get_bank_account(bank_account_id)

    rec = BankReconciliation.objects.create(
        number=next_reconciliation_number(),
        bank_account=bank_account,
        statement_date=statement_date,
        statement_balance=money(statement_balance),
        book_balance=book_balance_for(bank_account, statement_date),
        remarks=(remarks or "").strip(),
    )

    logger.info(
        "Bank reconciliation created",
        extra={
            "reconciliation": rec.number,
            "bank_account": bank_account.account_number,
            "statement_date": str(statement_date),
        },
    )
    return rec


@transaction.atomic
def update_reconciliation(
    reconciliation_id,
    *,
    statement_date: date | None = None,
    statement_balance=None,
    remarks: str | None = None,
) -> BankReconciliation:
    rec = _lock(reconciliation_id)
    if rec.status != BankReconciliation.DRAFT:
        raise NotEditableError(f"Reconciliation {rec.number} is {rec.status}; only DRAFT can be edited")

    if statement_date is not None:
        rec.statement_date = statement_date
        rec.book_balance = book_balance_for(rec.bank_account, statement_date)
    if statement_balance is not None:
        rec.statement_balance = money(statement_balance)
    if remarks is not None:
        rec.remarks = remarks.strip()

    rec.save()
    return rec


@transaction.atomic
def start_reconciliation(reconciliation_id) -> BankReconciliation:
    rec = _lock(reconciliation_id)
    if rec.status == BankReconciliation.COMPLETED:
        raise AlreadyCompletedError(f"Reconciliation {rec.number} is already completed")
    if rec.status != BankReconciliation.DRAFT:
        raise NotDraftError(f"Reconciliation {rec.number} is already {rec.status}")

    rec.status = BankReconciliation.IN_PROGRESS
    rec.save(update_fields=["status", "updated_at"])
    return rec


@transaction.atomic
def complete_reconciliation(reconciliation_id, *, reconciled_by=None) -> BankReconciliation:
    rec = _lock(reconciliation_id)
    if rec.status == BankReconciliation.COMPLETED:
        raise AlreadyCompletedError(f"Reconciliation {rec.number} is already completed")
    if rec.status != BankReconciliation.IN_PROGRESS:
        raise NotInProgressError(f"Reconciliation {rec.number} is {rec.status}; start it first")

    rec.book_balance = book_balance_for(rec.bank_account, rec.statement_date)
    rec.reconciled_balance = rec.statement_balance
    rec.difference = q2(rec.statement_balance - rec.book_balance)
    rec.status = BankReconciliation.COMPLETED
    rec.reconciled_by = reconciled_by
    rec.reconciled_at = timezone.now()
    rec.save()

    logger.info(
        "Bank reconciliation completed",
        extra={"reconciliation": rec.number, "difference": str(rec.difference)},
    )
    return rec


def latest_completed_reconciliation(bank_account_id, *, as_of: date | None = None):
    qs = BankReconciliation.objects.filter(
        bank_account_id=bank_account_id,
        status=BankReconciliation.COMPLETED,
    )
    if as_of is not None:
        qs = qs.filter(statement_date__lte=as_of)
    return qs.order_by("-statement_date", "-id").first()


def is_bank_account_reconciled(bank_account_id, *, as_of: date | None = None) -> bool:
    get_bank_account(bank_account_id)
    latest = latest_completed_reconciliation(bank_account_id, as_of=as_of)
    return latest is not None and latest.difference == ZERO
