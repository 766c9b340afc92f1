# accounting/management/commands/resume_posting.py

from __future__ import annotations

from django.contrib.auth import get_user_model
from django.core.management.base import BaseCommand, CommandError

from accounting.services.account_registry import get_account_by_code
from accounting.services.exceptions import PeriodNotFoundError, UnknownAccountError
from accounting.services.period_registry import get_period_by_code
from accounting.services.posting_control import (
    halted_accounts,
    halted_periods,
    resume_account_posting,
    resume_period_posting,
)


class Command(BaseCommand):
    help = "List halted periods/accounts, or clear a halt after investigation."

    def add_arguments(self, parser):
        target = parser.add_mutually_exclusive_group()
        target.add_argument("--period", help="Period code to resume (e.g. 2026-01).")
        target.add_argument("--account", help="Account code to resume (e.g. 1100).")
        parser.add_argument("--user", help="Username of the operator clearing the halt.")
        parser.add_argument("--reason", default="", help="Why the halt is being cleared.")

    def handle(self, *args, **options):
        period_code = options.get("period")
        account_code = options.get("account")

        if not period_code and not account_code:
            return self._list_halts()

        reason = (options.get("reason") or "").strip()
        if not reason:
            raise CommandError("--reason is required when clearing a halt")

        user = self._resolve_user(options.get("user"))

        try:
            if period_code:
                label = f"period {period_code}"
                cleared = resume_period_posting(
                    get_period_by_code(period_code).pk, resumed_by=user, reason=reason
                )
            else:
                label = f"account {account_code}"
                cleared = resume_account_posting(
                    get_account_by_code(account_code).pk, resumed_by=user, reason=reason
                )
        except (PeriodNotFoundError, UnknownAccountError) as exc:
            raise CommandError(str(exc)) from exc

        if cleared:
            self.stdout.write(self.style.SUCCESS(f"Posting resumed for {label}."))
        else:
            self.stdout.write(self.style.WARNING(f"Posting was not halted for {label}; nothing changed."))
        return None

    def _list_halts(self):
        periods = halted_periods()
        accounts = halted_accounts()

        if not periods and not accounts:
            self.stdout.write(self.style.SUCCESS("No halted periods or accounts."))
            return None

        for period in periods:
            self.stdout.write(f"[HALTED] period {period.code}")
        for account in accounts:
            self.stdout.write(f"[HALTED] account {account.code}")
        return None

    def _resolve_user(self, username):
        if not username:
            return None
        User = get_user_model()
        try:
            return User.objects.get(username=username)
        except User.DoesNotExist as exc:
            raise CommandError(f"Unknown user: {username}") from exc
