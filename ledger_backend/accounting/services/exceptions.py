"""
ACCOUNTING SERVICE ERRORS

Centralized domain errors for accounting services.

Every error carries a category so callers can tell apart:
- validation  -> fix the input, never retried
- not_found   -> referenced record does not exist
- state       -> workflow-order violation, surfaced verbatim
- consistency -> engine defect; logged CRITICAL, posting halted
- concurrency -> safe to retry with backoff
"""

VALIDATION = "validation"
NOT_FOUND = "not_found"
STATE = "state"
CONSISTENCY = "consistency"
CONCURRENCY = "concurrency"


class AccountingServiceError(Exception):
    """Base exception for all accounting service failures."""

    category = VALIDATION
    retryable = False


# ============================================================
# CATEGORY BASES
# ============================================================


class LedgerValidationError(AccountingServiceError):
    category = VALIDATION


class LedgerNotFoundError(AccountingServiceError):
    category = NOT_FOUND


class LedgerStateError(AccountingServiceError):
    category = STATE


class LedgerConsistencyError(AccountingServiceError):
    """
    Carries the accounts/period to halt so the engine can block further
    postings against them after rolling back.
    """

    category = CONSISTENCY

    def __init__(self, message: str = "", *, account_ids=(), period_id=None):
        super().__init__(message)
        self.account_ids = tuple(account_ids)
        self.period_id = period_id


class LedgerConcurrencyError(AccountingServiceError):
    category = CONCURRENCY
    retryable = True


# ============================================================
# VALIDATION
# ============================================================


class InvalidAmountError(LedgerValidationError):
    """Raised when a monetary value cannot be parsed or is a float."""


class UnbalancedEntryError(LedgerValidationError):
    """Raised when total debits differ from total credits."""


class ZeroAmountEntryError(LedgerValidationError):
    """Raised when an entry's totals are zero."""


class InvalidJournalLineError(LedgerValidationError):
    """Raised when a line is malformed (both sides, no side, negative, too few lines)."""


class InvalidHierarchyError(LedgerValidationError):
    """Raised when a parent account is unusable or would create a cycle."""


class DuplicateCodeError(LedgerValidationError):
    """Raised when a unique code or number is already taken."""


class OverlappingPeriodError(LedgerValidationError):
    """Raised when a new period overlaps an existing one."""


class InvalidPeriodRangeError(LedgerValidationError):
    """Raised when a period's start date is not before its end date."""


class GroupAccountNotPostableError(LedgerValidationError):
    """Raised when a group account is used as a posting target."""


class InactiveAccountError(LedgerValidationError):
    """Raised when a deactivated account is used as a posting target."""


# ============================================================
# NOT FOUND
# ============================================================


class UnknownAccountError(LedgerNotFoundError):
    pass


class NoPeriodDefinedError(LedgerNotFoundError):
    pass


class PeriodNotFoundError(LedgerNotFoundError):
    pass


class JournalEntryNotFoundError(LedgerNotFoundError):
    pass


class BankAccountNotFoundError(LedgerNotFoundError):
    pass


class ReconciliationNotFoundError(LedgerNotFoundError):
    pass


# ============================================================
# STATE
# ============================================================


class NotEditableError(LedgerStateError):
    """Raised when a non-DRAFT record is modified."""


class AlreadyPostedError(LedgerStateError):
    pass


class PeriodClosedError(LedgerStateError):
    pass


class AlreadyReversedError(LedgerStateError):
    pass


class NotPostedError(LedgerStateError):
    pass


class AlreadyClosedError(LedgerStateError):
    pass


class AlreadyApprovedError(LedgerStateError):
    pass


class NotApprovedError(LedgerStateError):
    pass


class CannotCancelPostedError(LedgerStateError):
    pass


class HasOpenBalanceError(LedgerStateError):
    pass


class HasChildrenError(LedgerStateError):
    pass


class PeriodHasNoClosedPriorPeriodError(LedgerStateError):
    pass


class UnbalancedOpeningBalancesError(LedgerStateError):
    """Registered opening balances do not net to zero across the chart."""


class AlreadyCompletedError(LedgerStateError):
    pass


class NotInProgressError(LedgerStateError):
    pass


class NotDraftError(LedgerStateError):
    pass


# ============================================================
# CONSISTENCY
# ============================================================


class TrialBalanceImbalanceError(LedgerConsistencyError):
    """Closing debits and credits of a period differ. Indicates an engine defect."""


class LostUpdateDetectedError(LedgerConsistencyError):
    """An account balance no longer matches its last ledger snapshot."""


class PostingHaltedError(LedgerConsistencyError):
    """Posting is halted for an account or period pending investigation."""


# ============================================================
# CONCURRENCY
# ============================================================


class LockTimeoutError(LedgerConcurrencyError):
    """Locks could not be acquired in time. Nothing was written."""
