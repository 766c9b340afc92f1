# accounting/models/journal.py

"""
======================================================
PATH: accounting/models/journal.py
======================================================
JOURNAL ENTRY MODELS

JournalEntry is the debit/credit proposal; JournalEntryLine its ordered lines.

Guarantees:
- Status moves only along TRANSITIONS (DRAFT -> POSTED | CANCELLED, POSTED -> REVERSED)
- Lines are editable only while the owning entry is DRAFT
- Once the entry leaves DRAFT, its content is frozen; only the transition
  itself (and its audit fields) may be saved
- Entries and lines are never deleted outside DRAFT
"""

from __future__ import annotations

from decimal import Decimal

from django.conf import settings
from django.core.exceptions import ValidationError
from django.core.validators import MinValueValidator
from django.db import models
from django.db.models import Q

from accounting.models.account import Account
from accounting.models.period import FiscalPeriod


class JournalEntry(models.Model):
    DRAFT = "DRAFT"
    POSTED = "POSTED"
    CANCELLED = "CANCELLED"
    REVERSED = "REVERSED"

    STATUSES = [
        (DRAFT, "Draft"),
        (POSTED, "Posted"),
        (CANCELLED, "Cancelled"),
        (REVERSED, "Reversed"),
    ]

    TRANSITIONS = {
        DRAFT: frozenset({POSTED, CANCELLED}),
        POSTED: frozenset({REVERSED}),
        CANCELLED: frozenset(),
        REVERSED: frozenset(),
    }

    MANUAL = "MANUAL"
    SYSTEM = "SYSTEM"
    OPENING_BALANCE = "OPENING_BALANCE"
    CLOSING = "CLOSING"
    ADJUSTMENT = "ADJUSTMENT"
    REVERSAL = "REVERSAL"

    ENTRY_TYPES = [
        (MANUAL, "Manual"),
        (SYSTEM, "System"),
        (OPENING_BALANCE, "Opening balance"),
        (CLOSING, "Closing"),
        (ADJUSTMENT, "Adjustment"),
        (REVERSAL, "Reversal"),
    ]

    number = models.CharField(max_length=30, unique=True)
    entry_date = models.DateField(help_text="Accounting effective date")

    entry_type = models.CharField(
        max_length=20,
        choices=ENTRY_TYPES,
        default=MANUAL,
    )

    source_type = models.CharField(
        max_length=50,
        blank=True,
        null=True,
        help_text="Originating document type (SALES_INVOICE, PURCHASE_RECEIPT, REVERSAL…)",
    )
    source_id = models.CharField(max_length=64, blank=True, null=True)
    source_reference = models.CharField(max_length=100, blank=True, null=True)

    description = models.TextField(help_text="Narrative description of the journal entry")

    total_debit = models.DecimalField(max_digits=18, decimal_places=2, default=Decimal("0.00"))
    total_credit = models.DecimalField(max_digits=18, decimal_places=2, default=Decimal("0.00"))

    status = models.CharField(max_length=10, choices=STATUSES, default=DRAFT)

    period = models.ForeignKey(
        FiscalPeriod,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="journal_entries",
        help_text="Resolved at posting time",
    )

    submitted_at = models.DateTimeField(null=True, blank=True)
    approved_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="approved_journal_entries",
    )
    approved_at = models.DateTimeField(null=True, blank=True)

    posted_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="posted_journal_entries",
    )
    posted_at = models.DateTimeField(null=True, blank=True)

    cancelled_at = models.DateTimeField(null=True, blank=True)
    cancel_reason = models.TextField(blank=True, default="")

    reversal_of = models.OneToOneField(
        "self",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="reversed_by_entry",
    )
    reversed_at = models.DateTimeField(null=True, blank=True)

    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="created_journal_entries",
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-entry_date", "-created_at"]
        indexes = [
            models.Index(fields=["entry_date"], name="journal_entry_date_idx"),
            models.Index(fields=["status"], name="journal_status_idx"),
            models.Index(fields=["source_type", "source_id"], name="journal_source_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=~Q(number=""),
                name="chk_journal_number_not_blank",
            ),
            models.CheckConstraint(
                condition=Q(total_debit__gte=0) & Q(total_credit__gte=0),
                name="chk_journal_totals_non_negative",
            ),
        ]
        verbose_name = "Journal Entry"
        verbose_name_plural = "Journal Entries"

    def __str__(self):
        return f"{self.number} – {self.entry_date} ({self.status})"

    # ----------------------------------------
    # State machine
    # ----------------------------------------

    @classmethod
    def can_transition(cls, source: str, target: str) -> bool:
        return target in cls.TRANSITIONS.get(source, frozenset())

    @property
    def is_draft(self) -> bool:
        return self.status == self.DRAFT

    @property
    def is_approved(self) -> bool:
        return self.approved_at is not None

    @property
    def is_balanced(self) -> bool:
        return self.total_debit == self.total_credit and self.total_debit > 0

    def clean(self):
        self.number = (self.number or "").strip()
        self.description = (self.description or "").strip()

        if not self.number:
            raise ValidationError("Journal entry number is required")
        if not self.description:
            raise ValidationError("Journal entry description is required")
        if self.status not in self.TRANSITIONS:
            raise ValidationError(f"Invalid journal entry status: {self.status}")

    def save(self, *args, **kwargs):
        if self.pk:
            stored_status = (
                JournalEntry.objects.filter(pk=self.pk)
                .values_list("status", flat=True)
                .first()
            )
            if stored_status is not None and stored_status != self.status:
                if not self.can_transition(stored_status, self.status):
                    raise ValidationError(
                        f"Illegal journal entry transition {stored_status} -> {self.status}"
                    )
            elif stored_status is not None and stored_status != self.DRAFT:
                raise ValidationError(
                    f"JournalEntry records are immutable once {stored_status.lower()}"
                )

        self.full_clean()
        return super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ValidationError("JournalEntry records cannot be deleted; cancel or reverse them")


class JournalEntryLineQuerySet(models.QuerySet):
    def delete(self):
        if self.exclude(entry__status=JournalEntry.DRAFT).exists():
            raise ValidationError("Lines of a non-draft journal entry cannot be deleted")
        return super().delete()

    def update(self, **kwargs):
        if self.exclude(entry__status=JournalEntry.DRAFT).exists():
            raise ValidationError("Lines of a non-draft journal entry cannot be modified")
        return super().update(**kwargs)


class JournalEntryLine(models.Model):
    entry = models.ForeignKey(
        JournalEntry,
        on_delete=models.CASCADE,
        related_name="lines",
    )
    line_number = models.PositiveIntegerField()

    account = models.ForeignKey(
        Account,
        on_delete=models.PROTECT,
        related_name="journal_lines",
    )

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

    description = models.CharField(max_length=255, blank=True, default="")
    cost_center = models.CharField(max_length=50, blank=True, default="")
    dimension1 = models.CharField(max_length=50, blank=True, default="")
    dimension2 = models.CharField(max_length=50, blank=True, default="")

    objects = JournalEntryLineQuerySet.as_manager()

    class Meta:
        ordering = ["entry", "line_number"]
        constraints = [
            models.UniqueConstraint(
                fields=["entry", "line_number"],
                name="uniq_journal_line_number",
            ),
            models.CheckConstraint(
                condition=(Q(debit__gt=0) & Q(credit=0)) | (Q(debit=0) & Q(credit__gt=0)),
                name="chk_journal_line_one_side",
            ),
        ]
        verbose_name = "Journal Entry Line"
        verbose_name_plural = "Journal Entry Lines"

    def __str__(self):
        side = f"Dr {self.debit}" if self.debit else f"Cr {self.credit}"
        return f"#{self.line_number} {side} → {self.account_id}"

    def clean(self):
        debit = self.debit or Decimal("0.00")
        credit = self.credit or Decimal("0.00")
        if (debit > 0) == (credit > 0):
            raise ValidationError("A journal line must have exactly one of debit or credit")

    def save(self, *args, **kwargs):
        if self.entry_id and self.entry.status != JournalEntry.DRAFT:
            raise ValidationError("Lines can only be changed while the entry is DRAFT")

        self.full_clean()
        return super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        if self.entry.status != JournalEntry.DRAFT:
            raise ValidationError("Lines can only be removed while the entry is DRAFT")
        return super().delete(*args, **kwargs)
