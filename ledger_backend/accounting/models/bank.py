# accounting/models/bank.py

"""
======================================================
PATH: accounting/models/bank.py
======================================================
BANK ACCOUNT + RECONCILIATION MODELS

Guarantees:
- A bank account is backed by exactly one ASSET ledger account (gl_account);
  its balance is never stored here, it is read from the ledger
- Reconciliation status moves DRAFT -> IN_PROGRESS -> COMPLETED only
- Completed reconciliations are frozen
"""

from __future__ import annotations

from decimal import Decimal

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models
from django.db.models import Q

from accounting.models.account import Account


class BankAccount(models.Model):
    CURRENT = "CURRENT"
    SAVINGS = "SAVINGS"
    OVERDRAFT = "OVERDRAFT"
    CASH = "CASH"

    ACCOUNT_TYPES = [
        (CURRENT, "Current"),
        (SAVINGS, "Savings"),
        (OVERDRAFT, "Overdraft"),
        (CASH, "Cash"),
    ]

    account_number = models.CharField(max_length=50, unique=True)
    account_name = models.CharField(max_length=150)
    bank_name = models.CharField(max_length=150)
    branch = models.CharField(max_length=150, blank=True, default="")

    account_type = models.CharField(max_length=10, choices=ACCOUNT_TYPES, default=CURRENT)
    currency_code = models.CharField(max_length=3, blank=True, default="")

    gl_account = models.OneToOneField(
        Account,
        on_delete=models.PROTECT,
        related_name="bank_account",
    )

    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["bank_name", "account_number"]
        verbose_name = "Bank Account"
        verbose_name_plural = "Bank Accounts"
        constraints = [
            models.CheckConstraint(
                condition=~Q(account_number=""),
                name="chk_bank_account_number_not_blank",
            ),
        ]

    def __str__(self):
        return f"{self.bank_name} {self.account_number}"

    def clean(self):
        self.account_number = (self.account_number or "").strip()
        self.account_name = (self.account_name or "").strip()
        self.bank_name = (self.bank_name or "").strip()
        self.currency_code = (self.currency_code or "").strip().upper()

        if not self.account_number:
            raise ValidationError("Bank account number is required")
        if self.gl_account_id:
            gl = self.gl_account
            if gl.account_type != Account.ASSET or gl.is_group:
                raise ValidationError("Bank GL account must be a postable ASSET account")

    def save(self, *args, **kwargs):
        self.full_clean()
        return super().save(*args, **kwargs)


class BankReconciliation(models.Model):
    DRAFT = "DRAFT"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"

    STATUSES = [
        (DRAFT, "Draft"),
        (IN_PROGRESS, "In progress"),
        (COMPLETED, "Completed"),
    ]

    TRANSITIONS = {
        DRAFT: frozenset({IN_PROGRESS}),
        IN_PROGRESS: frozenset({COMPLETED}),
        COMPLETED: frozenset(),
    }

    number = models.CharField(max_length=30, unique=True)
    bank_account = models.ForeignKey(
        BankAccount,
        on_delete=models.PROTECT,
        related_name="reconciliations",
    )

    statement_date = models.DateField()
    statement_balance = models.DecimalField(max_digits=18, decimal_places=2)
    book_balance = models.DecimalField(max_digits=18, decimal_places=2, default=Decimal("0.00"))
    reconciled_balance = models.DecimalField(max_digits=18, decimal_places=2, null=True, blank=True)
    difference = models.DecimalField(max_digits=18, decimal_places=2, null=True, blank=True)

    status = models.CharField(max_length=12, choices=STATUSES, default=DRAFT)

    reconciled_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="bank_reconciliations",
    )
    reconciled_at = models.DateTimeField(null=True, blank=True)
    remarks = models.TextField(blank=True, default="")

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-statement_date", "-id"]
        verbose_name = "Bank Reconciliation"
        verbose_name_plural = "Bank Reconciliations"
        indexes = [
            models.Index(fields=["bank_account", "statement_date"], name="bankrec_account_date_idx"),
            models.Index(fields=["status"], name="bankrec_status_idx"),
        ]

    def __str__(self):
        return f"{self.number} {self.bank_account} @ {self.statement_date} ({self.status})"

    @classmethod
    def can_transition(cls, source: str, target: str) -> bool:
        return target in cls.TRANSITIONS.get(source, frozenset())

    def save(self, *args, **kwargs):
        if self.pk:
            stored_status = (
                BankReconciliation.objects.filter(pk=self.pk)
                .values_list("status", flat=True)
                .first()
            )
            if stored_status == self.COMPLETED:
                raise ValidationError("Completed reconciliations cannot be modified")
            if stored_status is not None and stored_status != self.status:
                if not self.can_transition(stored_status, self.status):
                    raise ValidationError(
                        f"Illegal reconciliation transition {stored_status} -> {self.status}"
                    )

        self.full_clean()
        return super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        if self.status == self.COMPLETED:
            raise ValidationError("Completed reconciliations cannot be deleted")
        return super().delete(*args, **kwargs)
