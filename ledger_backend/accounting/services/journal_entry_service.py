# accounting/services/journal_entry_service.py

"""
======================================================
PATH: accounting/services/journal_entry_service.py
======================================================
JOURNAL ENTRY WORKFLOW

This module is the ONLY place allowed to:
- Create / update JournalEntry + JournalEntryLine
- Move entries through approval, cancellation and reversal
- Hand entries to the posting engine (accounting.services.posting)

State machine:
    DRAFT -> POSTED -> REVERSED
    DRAFT -> CANCELLED

Guarantees:
- At least two lines; every line has exactly one positive side
- debit == credit and both > 0 before an entry may leave DRAFT
- Lines only reference existing, active, non-group accounts
- Reversal never mutates the original's lines; it posts a new offsetting
  entry (source_type="REVERSAL") in the same transaction
"""

from __future__ import annotations

import logging
from datetime import date

from django.conf import settings
from django.db import IntegrityError, transaction
from django.utils import timezone

from accounting.models.account import Account
from accounting.models.journal import JournalEntry, JournalEntryLine
from accounting.services.account_registry import assert_postable
from accounting.services.exceptions import (
    AlreadyApprovedError,
    AlreadyReversedError,
    CannotCancelPostedError,
    DuplicateCodeError,
    InvalidJournalLineError,
    JournalEntryNotFoundError,
    NotEditableError,
    NotPostedError,
    UnbalancedEntryError,
    UnknownAccountError,
    ZeroAmountEntryError,
)
from accounting.services.money import ZERO, money, q2
from accounting.services.numbering import next_journal_number
from accounting.services.period_registry import assert_period_open
from accounting.services.posting import post_entry

logger = logging.getLogger(__name__)

VALID_ENTRY_TYPES = {code for code, _label in JournalEntry.ENTRY_TYPES}
LINE_TAGS = ("description", "cost_center", "dimension1", "dimension2")


def _approval_required() -> bool:
    return bool(getattr(settings, "LEDGER_REQUIRE_APPROVAL", False))


def _clean_text(value, max_length: int | None = None) -> str:
    text = str(value or "").strip()
    return text[:max_length] if max_length else text


def _optional_text(value) -> str | None:
    text = _clean_text(value)
    return text or None


def _resolve_line_account(line: dict) -> Account:
    account = line.get("account")
    if isinstance(account, Account):
        account = Account.objects.filter(pk=account.pk).first()
        if account is None:
            raise UnknownAccountError("Line account does not exist")
        return account

    if line.get("account_id") is not None:
        account = Account.objects.filter(pk=line["account_id"]).first()
        if account is None:
            raise UnknownAccountError(f"Account id={line['account_id']} does not exist")
        return account

    code = line.get("account_code")
    if code:
        account = Account.objects.filter(code=str(code).strip()).first()
        if account is None:
            raise UnknownAccountError(f"Account code={code!r} does not exist")
        return account

    raise InvalidJournalLineError("Line is missing an account reference")


def _normalize_lines(lines) -> tuple[list[dict], object, object]:
    """
    Validate and normalize proposed lines.

    Returns (normalized_lines, total_debit, total_credit).
    """
    if not isinstance(lines, (list, tuple)) or len(lines) < 2:
        raise InvalidJournalLineError("Journal entry must contain at least two lines")

    parsed = []
    for idx, line in enumerate(lines, start=1):
        if not isinstance(line, dict):
            raise InvalidJournalLineError(f"Line {idx} must be an object/dict")

        debit = money(line.get("debit"))
        credit = money(line.get("credit"))
        if debit < 0 or credit < 0:
            raise InvalidJournalLineError(f"Line {idx}: debit or credit cannot be negative")
        parsed.append((idx, line, debit, credit))

    total_debit = q2(sum((p[2] for p in parsed), ZERO))
    total_credit = q2(sum((p[3] for p in parsed), ZERO))

    if total_debit == ZERO and total_credit == ZERO:
        raise ZeroAmountEntryError("Journal entry totals are zero")

    normalized: list[dict] = []
    for idx, line, debit, credit in parsed:
        if debit > 0 and credit > 0:
            raise InvalidJournalLineError(f"Line {idx} cannot have both debit and credit")
        if debit == 0 and credit == 0:
            raise InvalidJournalLineError(f"Line {idx} must have either debit or credit")

        account = assert_postable(_resolve_line_account(line))

        normalized.append(
            {
                "line_number": idx,
                "account": account,
                "debit": debit,
                "credit": credit,
                **{tag: _clean_text(line.get(tag), 255 if tag == "description" else 50) for tag in LINE_TAGS},
            }
        )

    if total_debit != total_credit:
        raise UnbalancedEntryError(
            f"Journal entry not balanced: debits={total_debit} credits={total_credit}"
        )

    return normalized, total_debit, total_credit


def _write_lines(entry: JournalEntry, normalized: list[dict]) -> None:
    JournalEntryLine.objects.bulk_create(
        [JournalEntryLine(entry=entry, **line) for line in normalized]
    )


def _lock_entry(entry_id) -> JournalEntry:
    entry = JournalEntry.objects.select_for_update().filter(pk=entry_id).first()
    if entry is None:
        raise JournalEntryNotFoundError(f"Journal entry id={entry_id} does not exist")
    return entry


def _require_draft(entry: JournalEntry) -> None:
    if entry.status != JournalEntry.DRAFT:
        raise NotEditableError(
            f"Journal entry {entry.number} is {entry.status}; only DRAFT entries can change"
        )


# ============================================================
# CREATE / UPDATE
# ============================================================


@transaction.atomic
def create_journal_entry(
    *,
    entry_date: date,
    description: str,
    lines: list,
    entry_type: str = JournalEntry.MANUAL,
    source_type: str | None = None,
    source_id=None,
    source_reference: str | None = None,
    number: str | None = None,
    created_by=None,
    reversal_of: JournalEntry | None = None,
) -> JournalEntry:
    description = _clean_text(description)
    if not description:
        raise InvalidJournalLineError("Journal entry description is required")
    if entry_type not in VALID_ENTRY_TYPES:
        raise InvalidJournalLineError(f"Unknown entry type: {entry_type!r}")
    if not isinstance(entry_date, date):
        raise InvalidJournalLineError("entry_date must be a date")

    normalized, total_debit, total_credit = _normalize_lines(lines)

    number = _clean_text(number) or next_journal_number()
    if JournalEntry.objects.filter(number=number).exists():
        raise DuplicateCodeError(f"Journal entry number {number} already exists")

    try:
        with transaction.atomic():
            entry = JournalEntry.objects.create(
                number=number,
                entry_date=entry_date,
                entry_type=entry_type,
                source_type=_optional_text(source_type),
                source_id=_optional_text(source_id),
                source_reference=_optional_text(source_reference),
                description=description,
                total_debit=total_debit,
                total_credit=total_credit,
                created_by=created_by,
                reversal_of=reversal_of,
            )
    except IntegrityError as exc:
        raise DuplicateCodeError(f"Journal entry number {number} already exists") from exc

    _write_lines(entry, normalized)

    logger.info(
        "Journal entry created",
        extra={"journal_entry": entry.number, "entry_type": entry.entry_type, "total": str(total_debit)},
    )
    return entry


@transaction.atomic
def update_journal_entry(
    entry_id,
    *,
    entry_date: date | None = None,
    description: str | None = None,
    lines: list | None = None,
    source_type: str | None = None,
    source_id=None,
    source_reference: str | None = None,
) -> JournalEntry:
    """
    Edit a DRAFT entry. Lines, when given, replace the current lines wholesale.
    Any edit clears a previous submission/approval.
    """
    entry = _lock_entry(entry_id)
    _require_draft(entry)

    if entry_date is not None:
        entry.entry_date = entry_date
    if description is not None:
        entry.description = _clean_text(description)
        if not entry.description:
            raise InvalidJournalLineError("Journal entry description is required")
    if source_type is not None:
        entry.source_type = _optional_text(source_type)
    if source_id is not None:
        entry.source_id = _optional_text(source_id)
    if source_reference is not None:
        entry.source_reference = _optional_text(source_reference)

    if lines is not None:
        normalized, total_debit, total_credit = _normalize_lines(lines)
        entry.lines.all().delete()
        _write_lines(entry, normalized)
        entry.total_debit = total_debit
        entry.total_credit = total_credit

    entry.submitted_at = None
    entry.approved_by = None
    entry.approved_at = None
    entry.save()

    logger.info("Journal entry updated", extra={"journal_entry": entry.number})
    return entry


# ============================================================
# APPROVAL GATE
# ============================================================


def _assert_ready_for_review(entry: JournalEntry) -> None:
    line_count = entry.lines.count()
    if line_count < 2:
        raise InvalidJournalLineError("Journal entry must contain at least two lines")
    if entry.total_debit == ZERO and entry.total_credit == ZERO:
        raise ZeroAmountEntryError("Journal entry totals are zero")
    if not entry.is_balanced:
        raise UnbalancedEntryError(
            f"Journal entry not balanced: debits={entry.total_debit} credits={entry.total_credit}"
        )


@transaction.atomic
def submit_for_approval(entry_id) -> JournalEntry:
    entry = _lock_entry(entry_id)
    _require_draft(entry)
    if entry.is_approved:
        raise AlreadyApprovedError(f"Journal entry {entry.number} is already approved")

    _assert_ready_for_review(entry)

    entry.submitted_at = timezone.now()
    entry.save(update_fields=["submitted_at", "updated_at"])
    return entry


@transaction.atomic
def approve_journal_entry(entry_id, *, approved_by=None) -> JournalEntry:
    entry = _lock_entry(entry_id)
    _require_draft(entry)
    if entry.is_approved:
        raise AlreadyApprovedError(f"Journal entry {entry.number} is already approved")

    _assert_ready_for_review(entry)

    now = timezone.now()
    entry.submitted_at = entry.submitted_at or now
    entry.approved_by = approved_by
    entry.approved_at = now
    entry.save(update_fields=["submitted_at", "approved_by", "approved_at", "updated_at"])

    logger.info(
        "Journal entry approved",
        extra={"journal_entry": entry.number, "approved_by": getattr(approved_by, "pk", None)},
    )
    return entry


# ============================================================
# POST / CANCEL / REVERSE
# ============================================================


def post_journal_entry(entry_id, *, posted_by=None, skip_approval: bool = False) -> JournalEntry:
    """Delegate to the posting engine; DRAFT -> POSTED on success."""
    return post_entry(
        entry_id,
        posted_by=posted_by,
        require_approval=_approval_required() and not skip_approval,
    )


@transaction.atomic
def cancel_journal_entry(entry_id, *, reason: str = "") -> JournalEntry:
    entry = _lock_entry(entry_id)

    if entry.status in (JournalEntry.POSTED, JournalEntry.REVERSED):
        raise CannotCancelPostedError(
            f"Journal entry {entry.number} is {entry.status}; reverse it instead"
        )
    _require_draft(entry)

    entry.status = JournalEntry.CANCELLED
    entry.cancelled_at = timezone.now()
    entry.cancel_reason = _clean_text(reason)
    entry.save(update_fields=["status", "cancelled_at", "cancel_reason", "updated_at"])

    logger.info("Journal entry cancelled", extra={"journal_entry": entry.number})
    return entry


@transaction.atomic
def reverse_journal_entry(
    entry_id,
    *,
    reversed_by=None,
    reason: str = "",
    reversal_date: date | None = None,
) -> JournalEntry:
    """
    Post an offsetting entry (sides swapped) and mark the original REVERSED.

    The reversal is dated reversal_date or today, which must fall in an open period.
    Returns the new, POSTED reversal entry.
    """
    original = _lock_entry(entry_id)

    if original.status == JournalEntry.REVERSED or JournalEntry.objects.filter(
        reversal_of=original
    ).exists():
        raise AlreadyReversedError(f"Journal entry {original.number} is already reversed")
    if original.status != JournalEntry.POSTED:
        raise NotPostedError(
            f"Journal entry {original.number} is {original.status}; only POSTED entries can be reversed"
        )

    on_date = reversal_date or timezone.localdate()
    assert_period_open(on_date)

    swapped = [
        {
            "account_id": line.account_id,
            "debit": line.credit,
            "credit": line.debit,
            "description": line.description,
            "cost_center": line.cost_center,
            "dimension1": line.dimension1,
            "dimension2": line.dimension2,
        }
        for line in original.lines.order_by("line_number")
    ]

    description = f"Reversal of {original.number}"
    if _clean_text(reason):
        description = f"{description}: {_clean_text(reason)}"

    reversal = create_journal_entry(
        entry_date=on_date,
        description=description,
        lines=swapped,
        entry_type=JournalEntry.REVERSAL,
        source_type="REVERSAL",
        source_id=str(original.pk),
        source_reference=original.number,
        created_by=reversed_by,
        reversal_of=original,
    )
    reversal = post_entry(reversal.pk, posted_by=reversed_by)

    original.status = JournalEntry.REVERSED
    original.reversed_at = timezone.now()
    original.save(update_fields=["status", "reversed_at", "updated_at"])

    logger.info(
        "Journal entry reversed",
        extra={"journal_entry": original.number, "reversal": reversal.number},
    )
    return reversal


# ============================================================
# READS
# ============================================================


def get_journal_entry(entry_id) -> JournalEntry:
    try:
        return JournalEntry.objects.get(pk=entry_id)
    except (JournalEntry.DoesNotExist, ValueError, TypeError) as exc:
        raise JournalEntryNotFoundError(f"Journal entry id={entry_id} does not exist") from exc


def get_journal_entry_by_number(number: str) -> JournalEntry:
    try:
        return JournalEntry.objects.get(number=_clean_text(number))
    except JournalEntry.DoesNotExist as exc:
        raise JournalEntryNotFoundError(f"Journal entry number={number!r} does not exist") from exc
