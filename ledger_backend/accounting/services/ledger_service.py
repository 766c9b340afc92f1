# accounting/services/ledger_service.py

"""
LEDGER READ SERVICE

Read-only views over accounts, ledger rows and journal entries.

RULES:
- READ-ONLY: no writes, ever
- LedgerEntry is the source of truth for history; Account.current_balance is
  the engine-maintained running total and must agree with it
- Results are plain frozen records, never model instances
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal

from django.db.models import Sum

from accounting.models.account import Account
from accounting.models.journal import JournalEntry
from accounting.models.ledger import LedgerEntry
from accounting.services.account_registry import (
    get_account_by_code,
    get_account_by_id,
    signed_amount,
)
from accounting.services.exceptions import InvalidJournalLineError
from accounting.services.journal_entry_service import (
    get_journal_entry,
    get_journal_entry_by_number,
)
from accounting.services.money import ZERO, q2


@dataclass(frozen=True)
class AccountBalance:
    account_id: int
    code: str
    name: str
    account_type: str
    normal_side: str
    balance: Decimal
    as_of: date | None = None


@dataclass(frozen=True)
class LedgerRow:
    id: int
    transaction_date: date
    period_code: str
    account_code: str
    journal_number: str
    line_number: int
    description: str
    debit: Decimal
    credit: Decimal
    balance: Decimal
    source_type: str | None
    source_id: str | None


@dataclass(frozen=True)
class JournalEntryStatus:
    id: int
    number: str
    status: str
    entry_type: str
    entry_date: date
    total_debit: Decimal
    total_credit: Decimal
    period_code: str | None
    approved_at: datetime | None
    posted_at: datetime | None
    reversal_of: str | None
    reversed_by: str | None


@dataclass(frozen=True)
class BalanceCheck:
    account_id: int
    code: str
    stored_balance: Decimal
    ledger_balance: Decimal
    last_snapshot: Decimal | None

    @property
    def ok(self) -> bool:
        snapshot_ok = self.last_snapshot is None or self.last_snapshot == self.stored_balance
        return self.stored_balance == self.ledger_balance and snapshot_ok


def _resolve_account(account_id=None, code: str | None = None) -> Account:
    if account_id is not None:
        return get_account_by_id(account_id)
    if code:
        return get_account_by_code(code)
    raise InvalidJournalLineError("account_id or code is required")


def _signed_ledger_total(account: Account, qs) -> Decimal:
    totals = qs.aggregate(debit_total=Sum("debit"), credit_total=Sum("credit"))
    return q2(
        signed_amount(
            account.account_type,
            totals["debit_total"] or ZERO,
            totals["credit_total"] or ZERO,
        )
    )


def get_account_balance(account_id=None, *, code: str | None = None) -> AccountBalance:
    account = _resolve_account(account_id, code)
    return AccountBalance(
        account_id=account.pk,
        code=account.code,
        name=account.name,
        account_type=account.account_type,
        normal_side=account.normal_side,
        balance=q2(account.current_balance),
    )


def ledger_balance_as_of(account: Account, on_date: date) -> Decimal:
    """Opening balance plus the signed movement of every ledger row dated on or before on_date."""
    movement = _signed_ledger_total(
        account,
        LedgerEntry.objects.filter(account=account, transaction_date__lte=on_date),
    )
    return q2(account.signed_opening_balance + movement)


def get_account_balance_as_of(account_id=None, *, on_date: date, code: str | None = None) -> AccountBalance:
    account = _resolve_account(account_id, code)
    return AccountBalance(
        account_id=account.pk,
        code=account.code,
        name=account.name,
        account_type=account.account_type,
        normal_side=account.normal_side,
        balance=ledger_balance_as_of(account, on_date),
        as_of=on_date,
    )


def ledger_history_queryset(*, account_id=None, start_date: date | None = None, end_date: date | None = None):
    qs = LedgerEntry.objects.select_related("account", "period", "journal_entry", "journal_line")
    if account_id is not None:
        qs = qs.filter(account_id=account_id)
    if start_date is not None:
        qs = qs.filter(transaction_date__gte=start_date)
    if end_date is not None:
        qs = qs.filter(transaction_date__lte=end_date)
    return qs.order_by("id")


def get_ledger_history(
    account_id=None,
    *,
    code: str | None = None,
    start_date: date | None = None,
    end_date: date | None = None,
) -> list[LedgerRow]:
    account = _resolve_account(account_id, code)
    return [
        LedgerRow(
            id=row.pk,
            transaction_date=row.transaction_date,
            period_code=row.period.code,
            account_code=row.account.code,
            journal_number=row.journal_entry.number,
            line_number=row.journal_line.line_number,
            description=row.description,
            debit=row.debit,
            credit=row.credit,
            balance=row.balance,
            source_type=row.source_type,
            source_id=row.source_id,
        )
        for row in ledger_history_queryset(
            account_id=account.pk, start_date=start_date, end_date=end_date
        )
    ]


def entry_status(entry: JournalEntry) -> JournalEntryStatus:
    reversed_by = JournalEntry.objects.filter(reversal_of=entry).values_list("number", flat=True).first()
    return JournalEntryStatus(
        id=entry.pk,
        number=entry.number,
        status=entry.status,
        entry_type=entry.entry_type,
        entry_date=entry.entry_date,
        total_debit=entry.total_debit,
        total_credit=entry.total_credit,
        period_code=entry.period.code if entry.period_id else None,
        approved_at=entry.approved_at,
        posted_at=entry.posted_at,
        reversal_of=entry.reversal_of.number if entry.reversal_of_id else None,
        reversed_by=reversed_by,
    )


def get_journal_entry_status(entry_id=None, *, number: str | None = None) -> JournalEntryStatus:
    if entry_id is not None:
        return entry_status(get_journal_entry(entry_id))
    if number:
        return entry_status(get_journal_entry_by_number(number))
    raise InvalidJournalLineError("entry_id or number is required")


def verify_account_balance(account_id) -> BalanceCheck:
    """Compare the running balance to opening + signed ledger history and the last snapshot."""
    account = get_account_by_id(account_id)
    qs = LedgerEntry.objects.filter(account=account)
    ledger_balance = q2(account.signed_opening_balance + _signed_ledger_total(account, qs))
    last = qs.order_by("-id").values_list("balance", flat=True).first()

    return BalanceCheck(
        account_id=account.pk,
        code=account.code,
        stored_balance=q2(account.current_balance),
        ledger_balance=ledger_balance,
        last_snapshot=q2(last) if last is not None else None,
    )
