# accounting/services/posting.py

"""
======================================================
PATH: accounting/services/posting.py
======================================================
LEDGER POSTING ENGINE

The single atomic operation that turns a DRAFT journal entry into permanent
ledger rows and account balance mutations.

This module is the ONLY place allowed to:
- Create LedgerEntry rows
- Open the balance write barrier (Account.current_balance)
- Transition a JournalEntry DRAFT -> POSTED

Locking (fixed order, avoids deadlock between postings sharing accounts):
1. the journal entry
2. every distinct account, ascending id
3. the period covering the entry date

Guarantees:
- All-or-nothing: a failure on any line leaves no ledger rows, no balance change,
  and the entry still DRAFT
- Re-posting is rejected with AlreadyPostedError
- A lock wait beyond LEDGER_LOCK_TIMEOUT_MS surfaces as LockTimeoutError
- Consistency failures (lost update) are logged CRITICAL and halt the
  affected accounts/period after the rollback
"""

from __future__ import annotations

import logging

from django.conf import settings
from django.db import OperationalError, connection, transaction
from django.db.models import Max
from django.utils import timezone

from accounting.balance_guard import posting_engine_writes
from accounting.models.account import Account
from accounting.models.journal import JournalEntry
from accounting.models.ledger import LedgerEntry
from accounting.models.period import FiscalPeriod
from accounting.services.account_registry import apply_posting, assert_postable
from accounting.services.exceptions import (
    AlreadyPostedError,
    InvalidJournalLineError,
    JournalEntryNotFoundError,
    LedgerConsistencyError,
    LockTimeoutError,
    LostUpdateDetectedError,
    NoPeriodDefinedError,
    NotApprovedError,
    NotEditableError,
    PeriodClosedError,
    PostingHaltedError,
    UnbalancedEntryError,
    ZeroAmountEntryError,
)
from accounting.services.money import ZERO, q2

logger = logging.getLogger(__name__)

DEFAULT_LOCK_TIMEOUT_MS = 5000
_LOCK_TIMEOUT_MARKERS = (
    "lock timeout",
    "lock_timeout",
    "could not obtain lock",
    "lock wait timeout",
    "database is locked",
)
_LOCK_NOT_AVAILABLE_SQLSTATE = "55P03"


def _lock_timeout_ms() -> int:
    return int(getattr(settings, "LEDGER_LOCK_TIMEOUT_MS", DEFAULT_LOCK_TIMEOUT_MS))


def _set_lock_timeout() -> None:
    """Bound row-lock waits for the current transaction (PostgreSQL only)."""
    if connection.vendor != "postgresql":
        return
    with connection.cursor() as cursor:
        cursor.execute(f"SET LOCAL lock_timeout = {_lock_timeout_ms()}")


def _is_lock_timeout(exc: OperationalError) -> bool:
    cause = exc.__cause__
    code = getattr(cause, "pgcode", None) or getattr(cause, "sqlstate", None)
    if code == _LOCK_NOT_AVAILABLE_SQLSTATE:
        return True
    message = str(exc).lower()
    return any(marker in message for marker in _LOCK_TIMEOUT_MARKERS)


# ============================================================
# PRECONDITIONS
# ============================================================


def _totals(lines) -> tuple:
    if len(lines) < 2:
        raise InvalidJournalLineError("Journal entry must contain at least two lines")

    total_debit = q2(sum((line.debit for line in lines), ZERO))
    total_credit = q2(sum((line.credit for line in lines), ZERO))

    if total_debit == ZERO and total_credit == ZERO:
        raise ZeroAmountEntryError("Journal entry totals are zero")
    if total_debit != total_credit:
        raise UnbalancedEntryError(
            f"Journal entry not balanced: debits={total_debit} credits={total_credit}"
        )
    return total_debit, total_credit


def _lock_period(entry_date) -> FiscalPeriod:
    period = (
        FiscalPeriod.objects.select_for_update()
        .filter(start_date__lte=entry_date, end_date__gte=entry_date)
        .first()
    )
    if period is None:
        raise NoPeriodDefinedError(f"No fiscal period covers {entry_date}")
    if period.is_closed:
        raise PeriodClosedError(
            f"Posting blocked: {entry_date} falls inside closed period {period.code}"
        )
    if period.posting_halted:
        raise PostingHaltedError(
            f"Posting to period {period.code} is halted pending investigation",
            period_id=period.pk,
        )
    return period


def _verify_last_snapshots(accounts: dict) -> None:
    """Each locked balance must equal its last ledger snapshot (or its opening)."""
    last_ids = (
        LedgerEntry.objects.filter(account_id__in=list(accounts))
        .values("account_id")
        .annotate(last_id=Max("id"))
        .values_list("last_id", flat=True)
    )
    snapshots = dict(
        LedgerEntry.objects.filter(id__in=list(last_ids)).values_list("account_id", "balance")
    )

    drifted = []
    for account_id, account in accounts.items():
        expected = snapshots.get(account_id, account.signed_opening_balance)
        if q2(account.current_balance) != q2(expected):
            drifted.append(account_id)

    if drifted:
        raise LostUpdateDetectedError(
            f"Account balances diverge from their ledger snapshots: ids={drifted}",
            account_ids=drifted,
        )


# ============================================================
# POST
# ============================================================


def _post_locked(entry_id, *, posted_by, require_approval: bool) -> JournalEntry:
    with transaction.atomic():
        _set_lock_timeout()

        entry = JournalEntry.objects.select_for_update().filter(pk=entry_id).first()
        if entry is None:
            raise JournalEntryNotFoundError(f"Journal entry id={entry_id} does not exist")

        if entry.status in (JournalEntry.POSTED, JournalEntry.REVERSED):
            raise AlreadyPostedError(f"Journal entry {entry.number} is already posted")
        if entry.status != JournalEntry.DRAFT:
            raise NotEditableError(f"Journal entry {entry.number} is {entry.status}")
        if require_approval and not entry.is_approved:
            raise NotApprovedError(f"Journal entry {entry.number} has not been approved")

        lines = list(entry.lines.order_by("line_number"))
        total_debit, total_credit = _totals(lines)

        account_ids = sorted({line.account_id for line in lines})
        accounts = {
            a.pk: a
            for a in Account.objects.select_for_update().filter(pk__in=account_ids).order_by("pk")
        }

        period = _lock_period(entry.entry_date)

        for account_id in account_ids:
            account = assert_postable(accounts.get(account_id), account_id=account_id)
            if account.posting_halted:
                raise PostingHaltedError(
                    f"Posting to account {account.code} is halted pending investigation",
                    account_ids=[account_id],
                )

        _verify_last_snapshots(accounts)

        with posting_engine_writes():
            for line in lines:
                account = accounts[line.account_id]
                balance = apply_posting(account, debit=line.debit, credit=line.credit)
                LedgerEntry(
                    transaction_date=entry.entry_date,
                    period=period,
                    account=account,
                    journal_entry=entry,
                    journal_line=line,
                    description=(line.description or entry.description)[:255],
                    debit=line.debit,
                    credit=line.credit,
                    balance=balance,
                    source_type=entry.source_type,
                    source_id=entry.source_id,
                ).save()

        entry.status = JournalEntry.POSTED
        entry.period = period
        entry.total_debit = total_debit
        entry.total_credit = total_credit
        entry.posted_by = posted_by
        entry.posted_at = timezone.now()
        entry.save()

    return entry


def _halt_posting(exc: LedgerConsistencyError) -> None:
    with transaction.atomic():
        if exc.account_ids:
            Account.objects.filter(pk__in=exc.account_ids).update(posting_halted=True)
        if exc.period_id is not None:
            FiscalPeriod.objects.filter(pk=exc.period_id).update(posting_halted=True)


def post_entry(entry_id, *, posted_by=None, require_approval: bool = False) -> JournalEntry:
    """
    Post a DRAFT journal entry.

    Raises:
        AlreadyPostedError, NotEditableError, NotApprovedError
        UnbalancedEntryError, ZeroAmountEntryError, InvalidJournalLineError
        NoPeriodDefinedError, PeriodClosedError
        UnknownAccountError, GroupAccountNotPostableError, InactiveAccountError
        PostingHaltedError, LostUpdateDetectedError
        LockTimeoutError
    """
    try:
        entry = _post_locked(entry_id, posted_by=posted_by, require_approval=require_approval)
    except PostingHaltedError:
        raise
    except LedgerConsistencyError as exc:
        logger.critical(
            "Ledger consistency failure while posting; halting affected accounts",
            extra={
                "journal_entry_id": entry_id,
                "account_ids": list(exc.account_ids),
                "period_id": exc.period_id,
                "error": str(exc),
            },
        )
        _halt_posting(exc)
        raise
    except OperationalError as exc:
        if not _is_lock_timeout(exc):
            raise
        logger.warning(
            "Posting lock timeout",
            extra={"journal_entry_id": entry_id, "timeout_ms": _lock_timeout_ms()},
        )
        raise LockTimeoutError(
            f"Could not acquire posting locks for journal entry id={entry_id} "
            f"within {_lock_timeout_ms()}ms"
        ) from exc

    logger.info(
        "Journal entry posted",
        extra={
            "journal_entry": entry.number,
            "period": entry.period.code,
            "total": str(entry.total_debit),
        },
    )
    return entry
