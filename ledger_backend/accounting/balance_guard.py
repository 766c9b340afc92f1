# accounting/balance_guard.py

"""
BALANCE WRITE BARRIER

Account.current_balance may only change while the posting engine holds
this barrier open. Account.save() consults balance_writes_allowed() and
refuses any other change to the balance column.

Thread-local: concurrent request threads never see each other's barrier.
"""

from __future__ import annotations

import threading
from contextlib import contextmanager

_state = threading.local()


def _depth() -> int:
    return getattr(_state, "depth", 0)


def balance_writes_allowed() -> bool:
    return _depth() > 0


@contextmanager
def posting_engine_writes():
    """Open the barrier for the duration of one posting."""
    _state.depth = _depth() + 1
    try:
        yield
    finally:
        _state.depth = _depth() - 1
