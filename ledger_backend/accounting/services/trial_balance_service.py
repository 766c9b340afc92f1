# accounting/services/trial_balance_service.py

from __future__ import annotations

import logging
from decimal import Decimal

from django.db import transaction
from django.db.models import Q, Sum
from django.utils import timezone

from accounting.models.account import Account
from accounting.models.ledger import LedgerEntry
from accounting.models.period import FiscalPeriod
from accounting.models.trial_balance import TrialBalanceLine
from accounting.services.account_registry import registered_opening_totals, signed_amount
from accounting.services.exceptions import (
    PeriodHasNoClosedPriorPeriodError,
    TrialBalanceImbalanceError,
    UnbalancedOpeningBalancesError,
)
from accounting.services.money import ZERO, q2
from accounting.services.period_registry import get_period, get_prior_period

logger = logging.getLogger(__name__)


def _split(account: Account, natural: Decimal) -> tuple[Decimal, Decimal]:
    """Express a natural-side balance as a (debit, credit) pair, one of them zero."""
    net_debit = natural if account.is_debit_normal else -natural
    net_debit = q2(net_debit)
    if net_debit >= 0:
        return net_debit, ZERO
    return ZERO, -net_debit


def _sums_by_account(qs) -> dict:
    return {
        row["account_id"]: (q2(row["debit_total"]), q2(row["credit_total"]))
        for row in qs.values("account_id").annotate(
            debit_total=Sum("debit"), credit_total=Sum("credit")
        )
    }


class TrialBalanceService:
    """
    Per-period trial balance generator.

    Guarantees:
    - Opening = registered opening + all movement dated before the period
      (equal to the prior period's closing)
    - Period movement = ledger rows referencing the period
    - Closing = opening + movement, expressed on one side only
    - Unbalanced registered openings are refused up front (setup error, no halt)
    - sum(closing_debit) == sum(closing_credit) or nothing is stored
    - Regeneration replaces the period's rows atomically
    """

    def __init__(self, account_model=Account, ledger_model=LedgerEntry, line_model=TrialBalanceLine):
        self.Account = account_model
        self.Ledger = ledger_model
        self.Line = line_model

    def _check_carry_forward(self, period: FiscalPeriod) -> None:
        prior = get_prior_period(period)
        if prior is not None and not prior.is_closed:
            raise PeriodHasNoClosedPriorPeriodError(
                f"Cannot carry balances into {period.code}: prior period {prior.code} is still open"
            )

    def _check_registered_openings(self, period: FiscalPeriod) -> None:
        debit, credit = registered_opening_totals()
        if debit != credit:
            logger.warning(
                "Registered opening balances do not net to zero",
                extra={"period": period.code, "opening_debit": str(debit), "opening_credit": str(credit)},
            )
            raise UnbalancedOpeningBalancesError(
                f"Registered opening balances do not balance: debit={debit} credit={credit}; "
                "register the counterpart or book openings with post_opening_balances()"
            )

    def _build_lines(self, period: FiscalPeriod, *, generated_by, generated_at) -> list:
        before = _sums_by_account(self.Ledger.objects.filter(transaction_date__lt=period.start_date))
        within = _sums_by_account(self.Ledger.objects.filter(period=period))

        accounts = self.Account.objects.filter(
            Q(pk__in=set(before) | set(within)) | Q(opening_balance__gt=0)
        ).order_by("code")

        lines = []
        for account in accounts:
            prior_dr, prior_cr = before.get(account.pk, (ZERO, ZERO))
            period_dr, period_cr = within.get(account.pk, (ZERO, ZERO))

            opening = q2(account.signed_opening_balance + signed_amount(account.account_type, prior_dr, prior_cr))
            closing = q2(opening + signed_amount(account.account_type, period_dr, period_cr))

            if account.pk not in within and opening == ZERO:
                continue

            opening_dr, opening_cr = _split(account, opening)
            closing_dr, closing_cr = _split(account, closing)

            lines.append(
                self.Line(
                    period=period,
                    account=account,
                    opening_debit=opening_dr,
                    opening_credit=opening_cr,
                    period_debit=period_dr,
                    period_credit=period_cr,
                    closing_debit=closing_dr,
                    closing_credit=closing_cr,
                    generated_at=generated_at,
                    generated_by=generated_by,
                )
            )
        return lines

    def generate(self, period_id, *, generated_by=None) -> list:
        period = get_period(period_id)
        self._check_carry_forward(period)
        self._check_registered_openings(period)

        with transaction.atomic():
            lines = self._build_lines(period, generated_by=generated_by, generated_at=timezone.now())
            totals = self.totals(lines)

            if totals["closing_debit"] != totals["closing_credit"]:
                imbalance = TrialBalanceImbalanceError(
                    f"Trial balance for {period.code} does not balance: "
                    f"debit={totals['closing_debit']} credit={totals['closing_credit']}",
                    period_id=period.pk,
                )
            else:
                imbalance = None
                self.Line.objects.filter(period=period).delete()
                self.Line.objects.bulk_create(lines)

        if imbalance is not None:
            logger.critical(
                "Trial balance imbalance; halting postings to period",
                extra={
                    "period": period.code,
                    "closing_debit": str(totals["closing_debit"]),
                    "closing_credit": str(totals["closing_credit"]),
                },
            )
            FiscalPeriod.objects.filter(pk=period.pk).update(posting_halted=True)
            raise imbalance

        logger.info(
            "Trial balance generated",
            extra={"period": period.code, "accounts": len(lines), "total": str(totals["closing_debit"])},
        )
        return self.rows_for_period(period.pk)

    def rows_for_period(self, period_id) -> list:
        return list(
            self.Line.objects.filter(period_id=period_id)
            .select_related("account")
            .order_by("account__code")
        )

    @staticmethod
    def totals(lines) -> dict:
        keys = (
            "opening_debit",
            "opening_credit",
            "period_debit",
            "period_credit",
            "closing_debit",
            "closing_credit",
        )
        totals = {k: q2(sum((getattr(line, k) for line in lines), ZERO)) for k in keys}
        totals["balanced"] = totals["closing_debit"] == totals["closing_credit"]
        return totals
