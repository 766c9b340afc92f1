import decimal

import django.core.validators
import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


def _money(**kwargs):
    return models.DecimalField(max_digits=18, decimal_places=2, **kwargs)


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="NumberSequence",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("name", models.CharField(max_length=50, unique=True)),
                ("next_value", models.PositiveBigIntegerField(default=1)),
            ],
            options={
                "verbose_name": "Number Sequence",
                "verbose_name_plural": "Number Sequences",
            },
        ),
        migrations.CreateModel(
            name="FiscalPeriod",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("code", models.CharField(max_length=20, unique=True)),
                ("name", models.CharField(max_length=100)),
                (
                    "period_type",
                    models.CharField(
                        choices=[("MONTH", "Month"), ("QUARTER", "Quarter"), ("YEAR", "Year")],
                        default="MONTH",
                        max_length=10,
                    ),
                ),
                ("start_date", models.DateField()),
                ("end_date", models.DateField()),
                ("fiscal_year", models.PositiveIntegerField()),
                ("is_closed", models.BooleanField(default=False)),
                ("closed_at", models.DateTimeField(blank=True, null=True)),
                (
                    "posting_halted",
                    models.BooleanField(
                        default=False,
                        help_text="Set when a consistency check failed; blocks further postings",
                    ),
                ),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "closed_by",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="closed_periods",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "verbose_name": "Fiscal Period",
                "verbose_name_plural": "Fiscal Periods",
                "ordering": ["start_date"],
                "indexes": [
                    models.Index(fields=["start_date", "end_date"], name="period_dates_idx"),
                    models.Index(fields=["fiscal_year"], name="period_fiscal_year_idx"),
                    models.Index(fields=["is_closed"], name="period_is_closed_idx"),
                ],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(("start_date__lt", models.F("end_date"))),
                        name="chk_period_start_before_end",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(("code", ""), _negated=True),
                        name="chk_period_code_not_blank",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="Account",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("code", models.CharField(max_length=20, unique=True)),
                ("name", models.CharField(max_length=150)),
                (
                    "account_type",
                    models.CharField(
                        choices=[
                            ("ASSET", "Asset"),
                            ("LIABILITY", "Liability"),
                            ("EQUITY", "Equity"),
                            ("REVENUE", "Revenue"),
                            ("EXPENSE", "Expense"),
                        ],
                        max_length=20,
                    ),
                ),
                (
                    "category",
                    models.CharField(
                        blank=True,
                        default="",
                        help_text="Free classification, e.g. CURRENT_ASSET, OPERATING_EXPENSE",
                        max_length=50,
                    ),
                ),
                (
                    "is_group",
                    models.BooleanField(
                        default=False,
                        help_text="Group accounts only aggregate children and never receive postings",
                    ),
                ),
                (
                    "is_control",
                    models.BooleanField(
                        default=False,
                        help_text="Control accounts summarize a subsidiary ledger",
                    ),
                ),
                (
                    "opening_balance",
                    _money(
                        default=decimal.Decimal("0.00"),
                        validators=[django.core.validators.MinValueValidator(decimal.Decimal("0.00"))],
                    ),
                ),
                (
                    "opening_balance_side",
                    models.CharField(
                        choices=[("DEBIT", "Debit"), ("CREDIT", "Credit")],
                        default="DEBIT",
                        max_length=6,
                    ),
                ),
                (
                    "current_balance",
                    _money(
                        default=decimal.Decimal("0.00"),
                        help_text="Signed balance on the account's natural side",
                    ),
                ),
                ("is_active", models.BooleanField(default=True)),
                (
                    "posting_halted",
                    models.BooleanField(
                        default=False,
                        help_text="Set when a consistency check failed; blocks further postings",
                    ),
                ),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "parent",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="children",
                        to="accounting.account",
                    ),
                ),
            ],
            options={
                "verbose_name": "Account",
                "verbose_name_plural": "Accounts",
                "ordering": ["code"],
                "indexes": [
                    models.Index(fields=["account_type"], name="account_type_idx"),
                    models.Index(fields=["is_active"], name="account_is_active_idx"),
                    models.Index(fields=["parent"], name="account_parent_idx"),
                ],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(("code", ""), _negated=True),
                        name="chk_account_code_not_blank",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(("name", ""), _negated=True),
                        name="chk_account_name_not_blank",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(("opening_balance__gte", 0)),
                        name="chk_account_opening_non_negative",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="JournalEntry",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("number", models.CharField(max_length=30, unique=True)),
                ("entry_date", models.DateField(help_text="Accounting effective date")),
                (
                    "entry_type",
                    models.CharField(
                        choices=[
                            ("MANUAL", "Manual"),
                            ("SYSTEM", "System"),
                            ("OPENING_BALANCE", "Opening balance"),
                            ("CLOSING", "Closing"),
                            ("ADJUSTMENT", "Adjustment"),
                            ("REVERSAL", "Reversal"),
                        ],
                        default="MANUAL",
                        max_length=20,
                    ),
                ),
                (
                    "source_type",
                    models.CharField(
                        blank=True,
                        help_text="Originating document type (SALES_INVOICE, PURCHASE_RECEIPT, REVERSAL…)",
                        max_length=50,
                        null=True,
                    ),
                ),
                ("source_id", models.CharField(blank=True, max_length=64, null=True)),
                ("source_reference", models.CharField(blank=True, max_length=100, null=True)),
                ("description", models.TextField(help_text="Narrative description of the journal entry")),
                ("total_debit", _money(default=decimal.Decimal("0.00"))),
                ("total_credit", _money(default=decimal.Decimal("0.00"))),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("DRAFT", "Draft"),
                            ("POSTED", "Posted"),
                            ("CANCELLED", "Cancelled"),
                            ("REVERSED", "Reversed"),
                        ],
                        default="DRAFT",
                        max_length=10,
                    ),
                ),
                ("submitted_at", models.DateTimeField(blank=True, null=True)),
                ("approved_at", models.DateTimeField(blank=True, null=True)),
                ("posted_at", models.DateTimeField(blank=True, null=True)),
                ("cancelled_at", models.DateTimeField(blank=True, null=True)),
                ("cancel_reason", models.TextField(blank=True, default="")),
                ("reversed_at", models.DateTimeField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "period",
                    models.ForeignKey(
                        blank=True,
                        help_text="Resolved at posting time",
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="journal_entries",
                        to="accounting.fiscalperiod",
                    ),
                ),
                (
                    "approved_by",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="approved_journal_entries",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "posted_by",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="posted_journal_entries",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "created_by",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="created_journal_entries",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "reversal_of",
                    models.OneToOneField(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="reversed_by_entry",
                        to="accounting.journalentry",
                    ),
                ),
            ],
            options={
                "verbose_name": "Journal Entry",
                "verbose_name_plural": "Journal Entries",
                "ordering": ["-entry_date", "-created_at"],
                "indexes": [
                    models.Index(fields=["entry_date"], name="journal_entry_date_idx"),
                    models.Index(fields=["status"], name="journal_status_idx"),
                    models.Index(fields=["source_type", "source_id"], name="journal_source_idx"),
                ],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(("number", ""), _negated=True),
                        name="chk_journal_number_not_blank",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(("total_debit__gte", 0), ("total_credit__gte", 0)),
                        name="chk_journal_totals_non_negative",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="JournalEntryLine",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("line_number", models.PositiveIntegerField()),
                (
                    "debit",
                    _money(
                        default=decimal.Decimal("0.00"),
                        validators=[django.core.validators.MinValueValidator(decimal.Decimal("0.00"))],
                    ),
                ),
                (
                    "credit",
                    _money(
                        default=decimal.Decimal("0.00"),
                        validators=[django.core.validators.MinValueValidator(decimal.Decimal("0.00"))],
                    ),
                ),
                ("description", models.CharField(blank=True, default="", max_length=255)),
                ("cost_center", models.CharField(blank=True, default="", max_length=50)),
                ("dimension1", models.CharField(blank=True, default="", max_length=50)),
                ("dimension2", models.CharField(blank=True, default="", max_length=50)),
                (
                    "entry",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="lines",
                        to="accounting.journalentry",
                    ),
                ),
                (
                    "account",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="journal_lines",
                        to="accounting.account",
                    ),
                ),
            ],
            options={
                "verbose_name": "Journal Entry Line",
                "verbose_name_plural": "Journal Entry Lines",
                "ordering": ["entry", "line_number"],
                "constraints": [
                    models.UniqueConstraint(fields=("entry", "line_number"), name="uniq_journal_line_number"),
                    models.CheckConstraint(
                        condition=models.Q(
                            models.Q(("debit__gt", 0), ("credit", 0)),
                            models.Q(("debit", 0), ("credit__gt", 0)),
                            _connector="OR",
                        ),
                        name="chk_journal_line_one_side",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="LedgerEntry",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("transaction_date", models.DateField()),
                ("description", models.CharField(blank=True, default="", max_length=255)),
                (
                    "debit",
                    _money(
                        default=decimal.Decimal("0.00"),
                        validators=[django.core.validators.MinValueValidator(decimal.Decimal("0.00"))],
                    ),
                ),
                (
                    "credit",
                    _money(
                        default=decimal.Decimal("0.00"),
                        validators=[django.core.validators.MinValueValidator(decimal.Decimal("0.00"))],
                    ),
                ),
                ("balance", _money(help_text="Account balance after this row (natural side)")),
                ("source_type", models.CharField(blank=True, max_length=50, null=True)),
                ("source_id", models.CharField(blank=True, max_length=64, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "period",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="ledger_entries",
                        to="accounting.fiscalperiod",
                    ),
                ),
                (
                    "account",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="ledger_entries",
                        to="accounting.account",
                    ),
                ),
                (
                    "journal_entry",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="ledger_entries",
                        to="accounting.journalentry",
                    ),
                ),
                (
                    "journal_line",
                    models.OneToOneField(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="ledger_entry",
                        to="accounting.journalentryline",
                    ),
                ),
            ],
            options={
                "verbose_name": "Ledger Entry",
                "verbose_name_plural": "Ledger Entries",
                "ordering": ["id"],
                "indexes": [
                    models.Index(fields=["account", "id"], name="ledger_account_id_idx"),
                    models.Index(fields=["account", "transaction_date"], name="ledger_account_date_idx"),
                    models.Index(fields=["period", "account"], name="ledger_period_account_idx"),
                    models.Index(fields=["journal_entry"], name="ledger_journal_idx"),
                    models.Index(fields=["source_type", "source_id"], name="ledger_source_idx"),
                ],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(
                            models.Q(("debit__gt", 0), ("credit", 0)),
                            models.Q(("debit", 0), ("credit__gt", 0)),
                            _connector="OR",
                        ),
                        name="chk_ledger_one_side",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="TrialBalanceLine",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("opening_debit", _money(default=decimal.Decimal("0.00"))),
                ("opening_credit", _money(default=decimal.Decimal("0.00"))),
                ("period_debit", _money(default=decimal.Decimal("0.00"))),
                ("period_credit", _money(default=decimal.Decimal("0.00"))),
                ("closing_debit", _money(default=decimal.Decimal("0.00"))),
                ("closing_credit", _money(default=decimal.Decimal("0.00"))),
                ("generated_at", models.DateTimeField()),
                (
                    "period",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="trial_balance_lines",
                        to="accounting.fiscalperiod",
                    ),
                ),
                (
                    "account",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="trial_balance_lines",
                        to="accounting.account",
                    ),
                ),
                (
                    "generated_by",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="generated_trial_balances",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "verbose_name": "Trial Balance Line",
                "verbose_name_plural": "Trial Balance Lines",
                "ordering": ["period", "account__code"],
                "constraints": [
                    models.UniqueConstraint(
                        fields=("period", "account"),
                        name="uniq_trial_balance_period_account",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="BankAccount",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("account_number", models.CharField(max_length=50, unique=True)),
                ("account_name", models.CharField(max_length=150)),
                ("bank_name", models.CharField(max_length=150)),
                ("branch", models.CharField(blank=True, default="", max_length=150)),
                (
                    "account_type",
                    models.CharField(
                        choices=[
                            ("CURRENT", "Current"),
                            ("SAVINGS", "Savings"),
                            ("OVERDRAFT", "Overdraft"),
                            ("CASH", "Cash"),
                        ],
                        default="CURRENT",
                        max_length=10,
                    ),
                ),
                ("currency_code", models.CharField(blank=True, default="", max_length=3)),
                ("is_active", models.BooleanField(default=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "gl_account",
                    models.OneToOneField(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="bank_account",
                        to="accounting.account",
                    ),
                ),
            ],
            options={
                "verbose_name": "Bank Account",
                "verbose_name_plural": "Bank Accounts",
                "ordering": ["bank_name", "account_number"],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(("account_number", ""), _negated=True),
                        name="chk_bank_account_number_not_blank",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="BankReconciliation",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("number", models.CharField(max_length=30, unique=True)),
                ("statement_date", models.DateField()),
                ("statement_balance", _money()),
                ("book_balance", _money(default=decimal.Decimal("0.00"))),
                ("reconciled_balance", _money(blank=True, null=True)),
                ("difference", _money(blank=True, null=True)),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("DRAFT", "Draft"),
                            ("IN_PROGRESS", "In progress"),
                            ("COMPLETED", "Completed"),
                        ],
                        default="DRAFT",
                        max_length=12,
                    ),
                ),
                ("reconciled_at", models.DateTimeField(blank=True, null=True)),
                ("remarks", models.TextField(blank=True, default="")),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "bank_account",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="reconciliations",
                        to="accounting.bankaccount",
                    ),
                ),
                (
                    "reconciled_by",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="bank_reconciliations",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "verbose_name": "Bank Reconciliation",
                "verbose_name_plural": "Bank Reconciliations",
                "ordering": ["-statement_date", "-id"],
                "indexes": [
                    models.Index(fields=["bank_account", "statement_date"], name="bankrec_account_date_idx"),
                    models.Index(fields=["status"], name="bankrec_status_idx"),
                ],
            },
        ),
    ]
