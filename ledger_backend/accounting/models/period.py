# accounting/models/period.py

"""
======================================================
PATH: accounting/models/period.py
======================================================
FISCAL PERIOD MODEL

A dated range ledger rows are booked into.

Guarantees:
- start_date < end_date
- No two periods overlap (a posting date resolves to exactly one period)
- OPEN -> CLOSED exactly once; there is no reopen path
- Periods are never deleted
"""

from __future__ import annotations

from datetime import date

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models
from django.db.models import F, Q


class FiscalPeriod(models.Model):
    MONTH = "MONTH"
    QUARTER = "QUARTER"
    YEAR = "YEAR"

    PERIOD_TYPES = [
        (MONTH, "Month"),
        (QUARTER, "Quarter"),
        (YEAR, "Year"),
    ]

    code = models.CharField(max_length=20, unique=True)
    name = models.CharField(max_length=100)

    period_type = models.CharField(
        max_length=10,
        choices=PERIOD_TYPES,
        default=MONTH,
    )

    start_date = models.DateField()
    end_date = models.DateField()
    fiscal_year = models.PositiveIntegerField()

    is_closed = models.BooleanField(default=False)
    closed_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="closed_periods",
    )
    closed_at = models.DateTimeField(null=True, blank=True)

    posting_halted = models.BooleanField(
        default=False,
        help_text="Set when a consistency check failed; blocks further postings",
    )

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["start_date"]
        verbose_name = "Fiscal Period"
        verbose_name_plural = "Fiscal Periods"
        indexes = [
            models.Index(fields=["start_date", "end_date"], name="period_dates_idx"),
            models.Index(fields=["fiscal_year"], name="period_fiscal_year_idx"),
            models.Index(fields=["is_closed"], name="period_is_closed_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=Q(start_date__lt=F("end_date")),
                name="chk_period_start_before_end",
            ),
            models.CheckConstraint(
                condition=~Q(code=""),
                name="chk_period_code_not_blank",
            ),
        ]

    def __str__(self):
        state = "closed" if self.is_closed else "open"
        return f"{self.code} ({self.start_date} → {self.end_date}, {state})"

    @property
    def is_open(self) -> bool:
        return not self.is_closed

    @property
    def duration_days(self) -> int:
        return (self.end_date - self.start_date).days + 1

    def contains(self, on_date: date) -> bool:
        return self.start_date <= on_date <= self.end_date

    def clean(self):
        self.code = (self.code or "").strip()
        self.name = (self.name or "").strip() or self.code

        if not self.code:
            raise ValidationError("Period code is required")
        if not self.start_date or not self.end_date:
            raise ValidationError("start_date and end_date are required")
        if self.start_date >= self.end_date:
            raise ValidationError("Period start_date must be before end_date")

        overlaps = FiscalPeriod.objects.filter(
            start_date__lte=self.end_date,
            end_date__gte=self.start_date,
        )
        if self.pk:
            overlaps = overlaps.exclude(pk=self.pk)
        if overlaps.exists():
            raise ValidationError("This period overlaps an existing period")

    def save(self, *args, **kwargs):
        if self.pk:
            stored = (
                FiscalPeriod.objects.filter(pk=self.pk)
                .values("is_closed", "start_date", "end_date")
                .first()
            )
            if stored is not None:
                if stored["is_closed"] and not self.is_closed:
                    raise ValidationError("Closed periods cannot be reopened")
                if (stored["start_date"], stored["end_date"]) != (self.start_date, self.end_date):
                    raise ValidationError("Period dates are immutable once created")

        self.full_clean()
        return super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ValidationError("Fiscal periods cannot be deleted")
