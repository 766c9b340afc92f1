# accounting/services/posting_control.py

"""
POSTING CONTROL

Privileged counterpart of the posting engine's halt: clears the
posting_halted flag on a period or account once an operator has
investigated the consistency failure that set it.

Every resume is logged with who cleared the flag and why.
"""

from __future__ import annotations

import logging

from django.db import transaction

from accounting.models.account import Account
from accounting.models.period import FiscalPeriod
from accounting.services.account_registry import get_account_by_id
from accounting.services.period_registry import get_period

logger = logging.getLogger(__name__)


def _actor(user) -> str | None:
    return getattr(user, "username", None) if user is not None else None


@transaction.atomic
def resume_period_posting(period_id, *, resumed_by=None, reason: str = "") -> bool:
    """Clear the halt on a period. Returns False when it was not halted."""
    period = get_period(period_id)
    cleared = FiscalPeriod.objects.filter(pk=period.pk, posting_halted=True).update(posting_halted=False)
    if cleared:
        logger.warning(
            "Posting resumed for period",
            extra={"period": period.code, "resumed_by": _actor(resumed_by), "reason": reason},
        )
    return bool(cleared)


@transaction.atomic
def resume_account_posting(account_id, *, resumed_by=None, reason: str = "") -> bool:
    """Clear the halt on an account. Returns False when it was not halted."""
    account = get_account_by_id(account_id)
    cleared = Account.objects.filter(pk=account.pk, posting_halted=True).update(posting_halted=False)
    if cleared:
        logger.warning(
            "Posting resumed for account",
            extra={"account_code": account.code, "resumed_by": _actor(resumed_by), "reason": reason},
        )
    return bool(cleared)


def halted_periods() -> list[FiscalPeriod]:
    return list(FiscalPeriod.objects.filter(posting_halted=True).order_by("start_date"))


def halted_accounts() -> list[Account]:
    return list(Account.objects.filter(posting_halted=True).order_by("code"))
