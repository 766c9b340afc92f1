# PATH: accounting/services/opening_balances_service.py

"""
OPENING BALANCES SERVICE

Books a chart's opening position as one balanced OPENING_BALANCE journal
entry, posted through the posting engine like any other entry.

Responsibilities:
- Validate + normalize the raw lines
- Build postings and call create_journal_entry / post_journal_entry
- Atomic + idempotent per as-of date via source_type/source_id

No HTTP, no DRF serializers here.
"""

from __future__ import annotations

import logging
from datetime import date
from typing import Iterable

from django.db import transaction

from accounting.models.journal import JournalEntry
from accounting.services.exceptions import DuplicateCodeError, InvalidJournalLineError
from accounting.services.journal_entry_service import (
    create_journal_entry,
    post_journal_entry,
)
from accounting.services.money import ZERO, money

logger = logging.getLogger(__name__)

OPENING_BALANCE_SOURCE = "OPENING_BALANCE"

_SIDES = {"D": "debit", "DR": "debit", "DEBIT": "debit", "C": "credit", "CR": "credit", "CREDIT": "credit"}


def _postings(raw_lines: Iterable[dict]) -> list[dict]:
    postings = []
    for idx, raw in enumerate(raw_lines, start=1):
        if not isinstance(raw, dict):
            raise InvalidJournalLineError(f"Opening line {idx} must be an object/dict")

        code = str(raw.get("account_code") or "").strip()
        if not code:
            raise InvalidJournalLineError(f"Opening line {idx} is missing account_code")

        side = _SIDES.get(str(raw.get("dc") or "").strip().upper())
        if side is None:
            raise InvalidJournalLineError(f"Opening line {idx}: dc must be D or C")

        amount = money(raw.get("amount"))
        if amount <= ZERO:
            raise InvalidJournalLineError(f"Opening line {idx}: amount must be positive")

        postings.append({"account_code": code, side: amount})
    return postings


def opening_balance_entry(as_of_date: date) -> JournalEntry | None:
    return (
        JournalEntry.objects.filter(
            source_type=OPENING_BALANCE_SOURCE,
            source_id=as_of_date.isoformat(),
        )
        .exclude(status=JournalEntry.CANCELLED)
        .first()
    )


@transaction.atomic
def post_opening_balances(*, as_of_date: date, raw_lines: Iterable[dict], posted_by=None) -> JournalEntry:
    """
    Post opening balances as of a date (idempotent per date).

    raw_lines format:
      [{"account_code": "1100", "dc": "D", "amount": "500.00"}, ...]

    Debits must equal credits, exactly as for any journal entry; the date
    must fall in an open period.
    """
    if not isinstance(as_of_date, date):
        raise InvalidJournalLineError("as_of_date must be a date")

    existing = opening_balance_entry(as_of_date)
    if existing is not None:
        raise DuplicateCodeError(
            f"Opening balances as at {as_of_date.isoformat()} already exist ({existing.number})"
        )

    entry = create_journal_entry(
        entry_date=as_of_date,
        description=f"Opening Balances as at {as_of_date.isoformat()}",
        lines=_postings(raw_lines),
        entry_type=JournalEntry.OPENING_BALANCE,
        source_type=OPENING_BALANCE_SOURCE,
        source_id=as_of_date.isoformat(),
        created_by=posted_by,
    )
    entry = post_journal_entry(entry.pk, posted_by=posted_by, skip_approval=True)

    logger.info(
        "Opening balances posted",
        extra={"journal_entry": entry.number, "as_of_date": as_of_date.isoformat(), "total": str(entry.total_debit)},
    )
    return entry
