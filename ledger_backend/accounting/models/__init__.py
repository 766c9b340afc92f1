# accounting/models/__init__.py

"""
ACCOUNTING MODELS PACKAGE EXPORTS

Note:
- Keep this file *imports-only* (no business logic).
- Do NOT import services from models anywhere (models must stay pure).
"""

from accounting.models.account import Account
from accounting.models.bank import BankAccount, BankReconciliation
from accounting.models.journal import JournalEntry, JournalEntryLine
from accounting.models.ledger import LedgerEntry
from accounting.models.period import FiscalPeriod
from accounting.models.sequence import NumberSequence
from accounting.models.trial_balance import TrialBalanceLine

__all__ = [
    "Account",
    "FiscalPeriod",
    "JournalEntry",
    "JournalEntryLine",
    "LedgerEntry",
    "TrialBalanceLine",
    "BankAccount",
    "BankReconciliation",
    "NumberSequence",
]
