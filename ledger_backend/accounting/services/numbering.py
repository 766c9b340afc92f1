# accounting/services/numbering.py

from __future__ import annotations

from django.conf import settings
from django.db import IntegrityError, transaction

from accounting.models.bank import BankReconciliation
from accounting.models.journal import JournalEntry
from accounting.models.sequence import NumberSequence

JOURNAL_SEQUENCE = "journal_entry"
RECONCILIATION_SEQUENCE = "bank_reconciliation"


def _next_sequence_value(name: str) -> int:
    """
    Allocate the next value of a named sequence.
    Uses select_for_update to avoid concurrent duplicates.
    """
    with transaction.atomic():
        try:
            seq = NumberSequence.objects.select_for_update().get(name=name)
        except NumberSequence.DoesNotExist:
            try:
                with transaction.atomic():
                    seq = NumberSequence.objects.create(name=name, next_value=1)
            except IntegrityError:
                seq = NumberSequence.objects.select_for_update().get(name=name)

        value = seq.next_value
        seq.next_value = value + 1
        seq.save(update_fields=["next_value"])
        return value


def _format(prefix: str, value: int) -> str:
    return f"{prefix}-{value:06d}"


def _next_unused_number(sequence: str, prefix: str, model) -> str:
    """
    Allocate sequence values until one is not already taken.

    Callers may store explicit numbers in the same format, so a value the
    sequence hands out can already exist; it is skipped, never reused.
    """
    while True:
        number = _format(prefix, _next_sequence_value(sequence))
        if not model.objects.filter(number=number).exists():
            return number


def next_journal_number() -> str:
    prefix = getattr(settings, "LEDGER_JOURNAL_NUMBER_PREFIX", "JE")
    return _next_unused_number(JOURNAL_SEQUENCE, prefix, JournalEntry)


def next_reconciliation_number() -> str:
    prefix = getattr(settings, "LEDGER_RECONCILIATION_NUMBER_PREFIX", "BR")
    return _next_unused_number(RECONCILIATION_SEQUENCE, prefix, BankReconciliation)
