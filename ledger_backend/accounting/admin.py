# accounting/admin.py

from django.contrib import admin

from accounting.models.account import Account
from accounting.models.bank import BankAccount, BankReconciliation
from accounting.models.journal import JournalEntry, JournalEntryLine
from accounting.models.ledger import LedgerEntry
from accounting.models.period import FiscalPeriod
from accounting.models.trial_balance import TrialBalanceLine


class ReadOnlyAdmin(admin.ModelAdmin):
    """All writes go through the accounting services."""

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


# ============================================================
# ACCOUNT
# ============================================================


@admin.register(Account)
class AccountAdmin(ReadOnlyAdmin):
    list_display = (
        "code",
        "name",
        "account_type",
        "parent",
        "is_group",
        "current_balance",
        "is_active",
        "posting_halted",
    )
    list_filter = ("account_type", "is_group", "is_active", "posting_halted")
    search_fields = ("code", "name")
    ordering = ("code",)

    fieldsets = (
        (
            "Account Identity",
            {
                "fields": ("code", "name", "account_type", "category", "parent"),
            },
        ),
        (
            "Balances",
            {
                "fields": ("opening_balance", "opening_balance_side", "current_balance"),
            },
        ),
        (
            "Status",
            {
                "fields": ("is_group", "is_control", "is_active", "posting_halted"),
            },
        ),
        (
            "System Fields",
            {
                "fields": ("created_at", "updated_at"),
            },
        ),
    )


# ============================================================
# FISCAL PERIOD
# ============================================================


@admin.register(FiscalPeriod)
class FiscalPeriodAdmin(ReadOnlyAdmin):
    list_display = (
        "code",
        "period_type",
        "start_date",
        "end_date",
        "fiscal_year",
        "is_closed",
        "closed_at",
        "posting_halted",
    )
    list_filter = ("period_type", "fiscal_year", "is_closed", "posting_halted")
    search_fields = ("code", "name")
    ordering = ("start_date",)


# ============================================================
# JOURNAL ENTRY (READ-ONLY)
# ============================================================


class JournalEntryLineInline(admin.TabularInline):
    model = JournalEntryLine
    extra = 0
    can_delete = False
    fields = ("line_number", "account", "debit", "credit", "description")
    readonly_fields = fields

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(JournalEntry)
class JournalEntryAdmin(ReadOnlyAdmin):
    list_display = (
        "number",
        "entry_date",
        "entry_type",
        "status",
        "total_debit",
        "total_credit",
        "period",
        "posted_at",
    )
    list_filter = ("status", "entry_type", "period")
    search_fields = ("number", "description", "source_reference")
    ordering = ("-entry_date", "-id")
    inlines = (JournalEntryLineInline,)


# ============================================================
# LEDGER ENTRY (STRICTLY IMMUTABLE)
# ============================================================


@admin.register(LedgerEntry)
class LedgerEntryAdmin(ReadOnlyAdmin):
    list_display = (
        "id",
        "transaction_date",
        "account",
        "journal_entry",
        "debit",
        "credit",
        "balance",
        "period",
    )
    list_filter = ("period", "account__account_type")
    search_fields = ("account__code", "journal_entry__number", "description")
    ordering = ("-id",)


# ============================================================
# TRIAL BALANCE
# ============================================================


@admin.register(TrialBalanceLine)
class TrialBalanceLineAdmin(ReadOnlyAdmin):
    list_display = (
        "period",
        "account",
        "opening_debit",
        "opening_credit",
        "period_debit",
        "period_credit",
        "closing_debit",
        "closing_credit",
    )
    list_filter = ("period",)
    search_fields = ("account__code",)


# ============================================================
# BANK
# ============================================================


@admin.register(BankAccount)
class BankAccountAdmin(ReadOnlyAdmin):
    list_display = ("account_number", "account_name", "bank_name", "gl_account", "is_active")
    list_filter = ("bank_name", "account_type", "is_active")
    search_fields = ("account_number", "account_name")


@admin.register(BankReconciliation)
class BankReconciliationAdmin(ReadOnlyAdmin):
    list_display = (
        "number",
        "bank_account",
        "statement_date",
        "statement_balance",
        "book_balance",
        "difference",
        "status",
    )
    list_filter = ("status", "bank_account")
    search_fields = ("number",)
    ordering = ("-statement_date",)
