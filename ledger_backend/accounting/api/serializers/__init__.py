# accounting/api/serializers/__init__.py

from accounting.api.serializers.accounts import (
    AccountBalanceSerializer,
    AccountListSerializer,
)
from accounting.api.serializers.journal_entries import (
    JournalEntryLineSerializer,
    JournalEntrySerializer,
)
from accounting.api.serializers.ledger_entries import LedgerEntrySerializer
from accounting.api.serializers.trial_balance import TrialBalanceLineSerializer

__all__ = [
    "AccountListSerializer",
    "AccountBalanceSerializer",
    "JournalEntrySerializer",
    "JournalEntryLineSerializer",
    "LedgerEntrySerializer",
    "TrialBalanceLineSerializer",
]
