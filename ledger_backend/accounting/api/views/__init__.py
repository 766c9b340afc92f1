# accounting/api/views/__init__.py

"""
accounting.api.views package

Important:
- ViewSets are defined in accounting.api.view (singular) in this codebase.
- Do NOT import accounting.api.urls from here to avoid circular imports.
"""

from accounting.api.view import AccountViewSet, JournalEntryViewSet, LedgerEntryViewSet
from accounting.api.views.accounts import AccountBalanceView
from accounting.api.views.trial_balance import TrialBalanceView

__all__ = [
    "AccountViewSet",
    "JournalEntryViewSet",
    "LedgerEntryViewSet",
    "AccountBalanceView",
    "TrialBalanceView",
]
