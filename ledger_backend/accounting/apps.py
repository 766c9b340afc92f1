# accounting/apps.py

"""
ACCOUNTING APP CONFIG

Double-entry ledger engine:
- Chart of accounts + running balances
- Fiscal periods (open/closed)
- Journal entry workflow + atomic posting
- Trial balance + bank reconciliation
"""

from django.apps import AppConfig


class AccountingConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "accounting"
    verbose_name = "Accounting Ledger"
