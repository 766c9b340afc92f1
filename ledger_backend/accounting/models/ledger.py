# accounting/models/ledger.py

"""
======================================================
PATH: accounting/models/ledger.py
======================================================
GENERAL LEDGER MODEL

One append-only fact per posted JournalEntryLine.

Guarantees:
- Immutable once created (no updates, no deletes) at instance AND queryset level
- Exactly one of debit/credit is positive
- balance is the account's natural-side balance right after this row was applied
- One ledger row per journal line (journal_line is one-to-one)
"""

from __future__ import annotations

from decimal import Decimal

from django.core.exceptions import ValidationError
from django.core.validators import MinValueValidator
from django.db import models
from django.db.models import Q

from accounting.models.account import Account
from accounting.models.journal import JournalEntry, JournalEntryLine
from accounting.models.period import FiscalPeriod


class LedgerEntryQuerySet(models.QuerySet):
    def update(self, **kwargs):
        raise ValidationError("LedgerEntry records are append-only and cannot be updated")

    def delete(self):
        raise ValidationError("LedgerEntry records are append-only and cannot be deleted")


class LedgerEntry(models.Model):
    transaction_date = models.DateField()

    period = models.ForeignKey(
        FiscalPeriod,
        on_delete=models.PROTECT,
        related_name="ledger_entries",
    )

    account = models.ForeignKey(
        Account,
        on_delete=models.PROTECT,
        related_name="ledger_entries",
    )

    journal_entry = models.ForeignKey(
        JournalEntry,
        on_delete=models.PROTECT,
        related_name="ledger_entries",
    )

    journal_line = models.OneToOneField(
        JournalEntryLine,
        on_delete=models.PROTECT,
        related_name="ledger_entry",
    )

    description = models.CharField(max_length=255, blank=True, default="")

    debit = models.DecimalField(
        max_digits=18,
        decimal_places=2,
        default=Decimal("0.00"),
        validators=[MinValueValidator(Decimal("0.00"))],
    )
    credit = models.DecimalField(
        max_digits=18,
        decimal_places=2,
        default=Decimal("0.00"),
        validators=[MinValueValidator(Decimal("0.00"))],
    )

    balance = models.DecimalField(
        max_digits=18,
        decimal_places=2,
        help_text="Account balance after this row (natural side)",
    )

    source_type = models.CharField(max_length=50, blank=True, null=True)
    source_id = models.CharField(max_length=64, blank=True, null=True)

    created_at = models.DateTimeField(auto_now_add=True)

    objects = LedgerEntryQuerySet.as_manager()

    class Meta:
        verbose_name = "Ledger Entry"
        verbose_name_plural = "Ledger Entries"
        ordering = ["id"]
        indexes = [
            models.Index(fields=["account", "id"], name="ledger_account_id_idx"),
            models.Index(fields=["account", "transaction_date"], name="ledger_account_date_idx"),
            models.Index(fields=["period", "account"], name="ledger_period_account_idx"),
            models.Index(fields=["journal_entry"], name="ledger_journal_idx"),
            models.Index(fields=["source_type", "source_id"], name="ledger_source_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=(Q(debit__gt=0) & Q(credit=0)) | (Q(debit=0) & Q(credit__gt=0)),
                name="chk_ledger_one_side",
            ),
        ]

    def __str__(self):
        side = f"Dr {self.debit}" if self.debit else f"Cr {self.credit}"
        return f"{side} → {self.account} (bal {self.balance})"

    @property
    def entry_side(self) -> str:
        return Account.DEBIT if self.debit > 0 else Account.CREDIT

    @property
    def amount(self) -> Decimal:
        return self.debit if self.debit > 0 else self.credit

    def clean(self):
        debit = self.debit or Decimal("0.00")
        credit = self.credit or Decimal("0.00")
        if (debit > 0) == (credit > 0):
            raise ValidationError("Ledger row must carry exactly one positive side")

        if self.period_id and self.period.is_closed:
            raise ValidationError("Ledger rows cannot reference a closed period")

    def save(self, *args, **kwargs):
        if self.pk:
            raise ValidationError("LedgerEntry records are immutable and cannot be modified")

        self.full_clean()
        return super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ValidationError("LedgerEntry records are immutable and cannot be deleted")
