# accounting/models/trial_balance.py

from __future__ import annotations

from decimal import Decimal

from django.conf import settings
from django.db import models

from accounting.models.account import Account
from accounting.models.period import FiscalPeriod


def _amount_field():
    return models.DecimalField(max_digits=18, decimal_places=2, default=Decimal("0.00"))


class TrialBalanceLine(models.Model):
    """
    Derived per-account snapshot for one period. Regenerable, never a source of truth.
    """

    period = models.ForeignKey(
        FiscalPeriod,
        on_delete=models.PROTECT,
        related_name="trial_balance_lines",
    )
    account = models.ForeignKey(
        Account,
        on_delete=models.PROTECT,
        related_name="trial_balance_lines",
    )

    opening_debit = _amount_field()
    opening_credit = _amount_field()
    period_debit = _amount_field()
    period_credit = _amount_field()
    closing_debit = _amount_field()
    closing_credit = _amount_field()

    generated_at = models.DateTimeField()
    generated_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="generated_trial_balances",
    )

    class Meta:
        ordering = ["period", "account__code"]
        verbose_name = "Trial Balance Line"
        verbose_name_plural = "Trial Balance Lines"
        constraints = [
            models.UniqueConstraint(
                fields=["period", "account"],
                name="uniq_trial_balance_period_account",
            ),
        ]

    def __str__(self):
        return f"TB {self.period_id}/{self.account_id} Dr {self.closing_debit} Cr {self.closing_credit}"
