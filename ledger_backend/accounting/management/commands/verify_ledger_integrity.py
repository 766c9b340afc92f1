# accounting/management/commands/verify_ledger_integrity.py

from __future__ import annotations

from django.core.management.base import BaseCommand
from django.db.models import Count, F, Q, Sum

from accounting.models.account import Account
from accounting.models.journal import JournalEntry
from accounting.models.ledger import LedgerEntry
from accounting.services.account_registry import signed_amount
from accounting.services.ledger_service import verify_account_balance
from accounting.services.money import ZERO, q2


class Command(BaseCommand):
    help = "Verify ledger integrity (balanced entries, running balances, snapshot chain)."

    def add_arguments(self, parser):
        parser.add_argument(
            "--strict",
            action="store_true",
            help="Fail (non-zero exit) if any error is found.",
        )

    def handle(self, *args, **options):
        strict = bool(options.get("strict"))
        errors = 0

        self.stdout.write(self.style.MIGRATE_HEADING("Ledger Integrity Verification"))

        # -----------------------------
        # 1) Posted entries balance
        # -----------------------------
        posted = JournalEntry.objects.filter(
            status__in=(JournalEntry.POSTED, JournalEntry.REVERSED)
        ).annotate(line_rows=Count("lines"))

        ledger_sums = {
            row["journal_entry_id"]: row
            for row in LedgerEntry.objects.values("journal_entry_id").annotate(
                debit_total=Sum("debit"),
                credit_total=Sum("credit"),
                rows=Count("id"),
            )
        }

        unbalanced = []
        for entry in posted:
            sums = ledger_sums.get(entry.pk, {})
            debit = q2(sums.get("debit_total") or ZERO)
            credit = q2(sums.get("credit_total") or ZERO)
            if debit != credit or sums.get("rows", 0) != entry.line_rows:
                unbalanced.append((entry.number, debit, credit))

        if unbalanced:
            errors += len(unbalanced)
            self.stderr.write(self.style.ERROR(f"[FAIL] Unbalanced posted entries: {len(unbalanced)}"))
            for number, debit, credit in unbalanced[:10]:
                self.stderr.write(f"  {number} debit={debit} credit={credit}")
        else:
            self.stdout.write(self.style.SUCCESS(f"[OK] {posted.count()} posted entries balance"))

        orphans = LedgerEntry.objects.filter(
            ~Q(journal_entry__status__in=(JournalEntry.POSTED, JournalEntry.REVERSED))
        ).count()
        if orphans:
            errors += orphans
            self.stderr.write(self.style.ERROR(f"[FAIL] Ledger rows on unposted entries: {orphans}"))

        mismatched_lines = LedgerEntry.objects.exclude(
            debit=F("journal_line__debit"), credit=F("journal_line__credit")
        ).count()
        if mismatched_lines:
            errors += mismatched_lines
            self.stderr.write(self.style.ERROR(f"[FAIL] Ledger rows differing from their journal line: {mismatched_lines}"))

        # -----------------------------
        # 2) Running balances + snapshot chain
        # -----------------------------
        bad_accounts = 0
        for account in Account.objects.filter(is_group=False).order_by("code"):
            check = verify_account_balance(account.pk)
            if not check.ok:
                bad_accounts += 1
                self.stderr.write(
                    self.style.ERROR(
                        f"[FAIL] {check.code}: stored={check.stored_balance} "
                        f"ledger={check.ledger_balance} last_snapshot={check.last_snapshot}"
                    )
                )
                continue

            running = account.signed_opening_balance
            for row in LedgerEntry.objects.filter(account=account).order_by("id").only("debit", "credit", "balance"):
                running = q2(running + signed_amount(account.account_type, row.debit, row.credit))
                if running != row.balance:
                    bad_accounts += 1
                    self.stderr.write(
                        self.style.ERROR(
                            f"[FAIL] {account.code}: snapshot chain broken at ledger row {row.pk} "
                            f"(expected {running}, stored {row.balance})"
                        )
                    )
                    break

        if bad_accounts:
            errors += bad_accounts
        else:
            self.stdout.write(self.style.SUCCESS("[OK] Account balances agree with ledger history"))

        # -----------------------------
        # 3) Global debit/credit equality
        # -----------------------------
        totals = LedgerEntry.objects.aggregate(debits=Sum("debit"), credits=Sum("credit"))
        debits = q2(totals["debits"] or ZERO)
        credits = q2(totals["credits"] or ZERO)
        if debits != credits:
            errors += 1
            self.stderr.write(self.style.ERROR(f"[FAIL] Ledger not balanced: debits={debits} credits={credits}"))
        else:
            self.stdout.write(self.style.SUCCESS(f"[OK] Ledger balanced: debits={debits} credits={credits}"))

        self.stdout.write("")
        if errors == 0:
            self.stdout.write(self.style.SUCCESS("VERIFICATION PASSED"))
        else:
            self.stderr.write(self.style.ERROR(f"VERIFICATION FOUND ISSUES: {errors} problem(s)"))

        return self._exit(strict and errors > 0)

    def _exit(self, fail: bool):
        if fail:
            raise SystemExit(1)
        return None
