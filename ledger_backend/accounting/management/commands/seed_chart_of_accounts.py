# accounting/management/commands/seed_chart_of_accounts.py

from django.core.management.base import BaseCommand
from django.db import transaction

from accounting.models.account import Account
from accounting.services.account_registry import register_account

# (code, name, account_type, parent_code, is_group, is_control)
DEFAULT_CHART = [
    # ASSETS
    ("1000", "Assets", Account.ASSET, None, True, False),
    ("1100", "Cash on Hand", Account.ASSET, "1000", False, False),
    ("1200", "Bank Account", Account.ASSET, "1000", False, False),
    ("1300", "Accounts Receivable", Account.ASSET, "1000", False, True),
    # LIABILITIES
    ("2000", "Liabilities", Account.LIABILITY, None, True, False),
    ("2100", "Accounts Payable", Account.LIABILITY, "2000", False, True),
    ("2200", "VAT Payable", Account.LIABILITY, "2000", False, False),
    # EQUITY
    ("3000", "Equity", Account.EQUITY, None, True, False),
    ("3100", "Owner Capital", Account.EQUITY, "3000", False, False),
    ("3200", "Retained Earnings", Account.EQUITY, "3000", False, False),
    # REVENUE
    ("4000", "Revenue", Account.REVENUE, None, True, False),
    ("4100", "Sales Revenue", Account.REVENUE, "4000", False, False),
    ("4200", "Other Income", Account.REVENUE, "4000", False, False),
    # EXPENSES
    ("5000", "Expenses", Account.EXPENSE, None, True, False),
    ("5100", "Cost of Goods Sold", Account.EXPENSE, "5000", False, False),
    ("5200", "Operating Expenses", Account.EXPENSE, "5000", False, False),
]


class Command(BaseCommand):
    help = "Seed a default group/postable Chart of Accounts (idempotent)"

    @transaction.atomic
    def handle(self, *args, **options):
        self.stdout.write("Seeding Chart of Accounts...")

        created_count = 0
        skipped_count = 0

        for code, name, account_type, parent_code, is_group, is_control in DEFAULT_CHART:
            if Account.objects.filter(code=code).exists():
                skipped_count += 1
                continue

            parent_id = None
            if parent_code:
                parent_id = Account.objects.values_list("pk", flat=True).get(code=parent_code)

            register_account(
                code=code,
                name=name,
                account_type=account_type,
                parent_id=parent_id,
                is_group=is_group,
                is_control=is_control,
            )
            created_count += 1

        self.stdout.write(
            self.style.SUCCESS(
                f"Chart of accounts seeded ({created_count} new accounts, {skipped_count} already present)."
            )
        )
