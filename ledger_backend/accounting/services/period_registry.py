# accounting/services/period_registry.py

"""
======================================================
PATH: accounting/services/period_registry.py
======================================================
PERIOD REGISTRY

Owns fiscal periods and their OPEN -> CLOSED state.

Guarantees:
- Periods never overlap; a posting date resolves to exactly one period
- close_period() serializes with in-flight postings via a row lock on the period
- Optional year-end style closing entry (Revenue/Expense -> Retained Earnings)
  is posted through the regular engine before the period is locked
- No reopen path

ANTI-CIRCULAR-IMPORT RULE:
- journal_entry_service imports this module (period guard); import it lazily here.
"""

from __future__ import annotations

import logging
from datetime import date

from django.db import transaction
from django.db.models import Sum
from django.utils import timezone

from accounting.models.account import Account
from accounting.models.ledger import LedgerEntry
from accounting.models.period import FiscalPeriod
from accounting.services.exceptions import (
    AlreadyClosedError,
    DuplicateCodeError,
    InvalidHierarchyError,
    InvalidPeriodRangeError,
    NoPeriodDefinedError,
    OverlappingPeriodError,
    PeriodClosedError,
    PeriodNotFoundError,
)
from accounting.services.money import ZERO, q2

logger = logging.getLogger(__name__)

VALID_PERIOD_TYPES = {code for code, _label in FiscalPeriod.PERIOD_TYPES}


@transaction.atomic
def create_period(
    *,
    code: str,
    start_date: date,
    end_date: date,
    fiscal_year: int,
    name: str = "",
    period_type: str = FiscalPeriod.MONTH,
) -> FiscalPeriod:
    code = (code or "").strip()

    if not start_date or not end_date or start_date >= end_date:
        raise InvalidPeriodRangeError(
            f"Period start_date must be before end_date (got {start_date} → {end_date})"
        )
    if period_type not in VALID_PERIOD_TYPES:
        raise InvalidPeriodRangeError(f"Unknown period type: {period_type!r}")

    if FiscalPeriod.objects.filter(code=code).exists():
        raise DuplicateCodeError(f"Period code {code} already exists")

    overlapping = (
        FiscalPeriod.objects.filter(start_date__lte=end_date, end_date__gte=start_date)
        .order_by("start_date")
        .first()
    )
    if overlapping is not None:
        raise OverlappingPeriodError(
            f"Period {code} ({start_date} → {end_date}) overlaps {overlapping.code}"
        )

    period = FiscalPeriod.objects.create(
        code=code,
        name=name or code,
        period_type=period_type,
        start_date=start_date,
        end_date=end_date,
        fiscal_year=fiscal_year,
    )

    logger.info(
        "Fiscal period created",
        extra={"period_code": period.code, "start": str(start_date), "end": str(end_date)},
    )
    return period


def get_period(period_id) -> FiscalPeriod:
    try:
        return FiscalPeriod.objects.get(pk=period_id)
    except (FiscalPeriod.DoesNotExist, ValueError, TypeError) as exc:
        raise PeriodNotFoundError(f"Period id={period_id} does not exist") from exc


def get_period_by_code(code: str) -> FiscalPeriod:
    try:
        return FiscalPeriod.objects.get(code=(code or "").strip())
    except FiscalPeriod.DoesNotExist as exc:
        raise PeriodNotFoundError(f"Period code={code!r} does not exist") from exc


def get_period_for_date(on_date: date) -> FiscalPeriod:
    """Return the period whose [start, end] contains on_date."""
    period = FiscalPeriod.objects.filter(
        start_date__lte=on_date,
        end_date__gte=on_date,
    ).first()
    if period is None:
        raise NoPeriodDefinedError(f"No fiscal period covers {on_date}")
    return period


def get_prior_period(period: FiscalPeriod) -> FiscalPeriod | None:
    return (
        FiscalPeriod.objects.filter(end_date__lt=period.start_date)
        .order_by("-end_date")
        .first()
    )


def list_open_periods() -> list[FiscalPeriod]:
    return list(FiscalPeriod.objects.filter(is_closed=False).order_by("start_date"))


def is_period_open(period_id) -> bool:
    return not get_period(period_id).is_closed


def assert_period_open(on_date: date) -> FiscalPeriod:
    """
    Guard used before every ledger write.

    Raises:
        NoPeriodDefinedError if no period covers the date
        PeriodClosedError if the covering period is closed
    """
    period = get_period_for_date(on_date)
    if period.is_closed:
        raise PeriodClosedError(f"Posting blocked: {on_date} falls inside closed period {period.code}")
    return period


# ============================================================
# CLOSE
# ============================================================


def _closing_postings(period: FiscalPeriod, retained_earnings: Account) -> list[dict]:
    """Zero each revenue/expense account's movement for the period into retained earnings."""
    per_account = (
        LedgerEntry.objects.filter(
            period=period,
            account__account_type__in=[Account.REVENUE, Account.EXPENSE],
        )
        .values("account_id")
        .annotate(debit_total=Sum("debit"), credit_total=Sum("credit"))
        .order_by("account_id")
    )

    lines: list[dict] = []
    net_to_equity = ZERO

    for row in per_account:
        net = q2((row["debit_total"] or ZERO) - (row["credit_total"] or ZERO))
        if net == ZERO:
            continue
        # debit-heavy accounts get credited back to zero, and vice versa
        if net > 0:
            lines.append({"account_id": row["account_id"], "debit": ZERO, "credit": net})
        else:
            lines.append({"account_id": row["account_id"], "debit": -net, "credit": ZERO})
        net_to_equity += net

    if not lines:
        return []

    if net_to_equity > 0:
        lines.append({"account_id": retained_earnings.pk, "debit": net_to_equity, "credit": ZERO})
    elif net_to_equity < 0:
        lines.append({"account_id": retained_earnings.pk, "debit": ZERO, "credit": -net_to_equity})

    return lines


@transaction.atomic
def close_period(period_id, *, closed_by=None, retained_earnings_account_id=None) -> FiscalPeriod:
    """
    Close a period. Transitions OPEN -> CLOSED exactly once.

    When retained_earnings_account_id is given, the period's revenue and expense
    movement is first moved to that EQUITY account by a CLOSING journal entry.
    """
    period = get_period(period_id)
    if period.is_closed:
        raise AlreadyClosedError(f"Period {period.code} is already closed")

    closing_entry = None
    if retained_earnings_account_id is not None:
        from accounting.models.journal import JournalEntry
        from accounting.services.account_registry import get_account_by_id
        from accounting.services.journal_entry_service import (
            create_journal_entry,
            post_journal_entry,
        )

        retained = get_account_by_id(retained_earnings_account_id)
        if retained.account_type != Account.EQUITY:
            raise InvalidHierarchyError(f"Retained earnings account {retained.code} must be EQUITY")

        lines = _closing_postings(period, retained)
        if lines:
            closing_entry = create_journal_entry(
                entry_date=period.end_date,
                description=f"Period close {period.code}",
                lines=lines,
                entry_type=JournalEntry.CLOSING,
                source_type="PERIOD_CLOSE",
                source_id=str(period.pk),
                source_reference=period.code,
                created_by=closed_by,
            )
            closing_entry = post_journal_entry(
                closing_entry.pk, posted_by=closed_by, skip_approval=True
            )

    # Lock after the closing posting so lock order stays entry -> accounts -> period.
    period = FiscalPeriod.objects.select_for_update().get(pk=period.pk)
    if period.is_closed:
        raise AlreadyClosedError(f"Period {period.code} is already closed")

    period.is_closed = True
    period.closed_by = closed_by
    period.closed_at = timezone.now()
    period.save(update_fields=["is_closed", "closed_by", "closed_at"])

    logger.info(
        "Fiscal period closed",
        extra={
            "period_code": period.code,
            "closed_by": getattr(closed_by, "pk", None),
            "closing_entry": getattr(closing_entry, "number", None),
        },
    )
    return period
