"""
Per-loan mutual exclusion.

``apply_payment`` and ``payoff`` are read-modify-write over a loan's balance
and status. Holding the loan's lock for the whole read-transition-commit
sequence guarantees a second writer sees the first one's result. Loans never
contend with each other.
"""

import logging
import threading
from contextlib import contextmanager
from typing import Dict, Hashable, Iterator, Optional

from loan_ledger.core.constants import DEFAULT_LOCK_TIMEOUT_SECONDS
from loan_ledger.utils.error_utils import Busy

logger = logging.getLogger(__name__)


class _LockEntry:
    """A loan's lock and the number of requests holding or waiting on it."""

    __slots__ = ("lock", "users")

    def __init__(self):
        self.lock = threading.Lock()
        self.users = 0


class LoanLockRegistry:
    """
    Lock per loan id, created on first use and dropped when the last user leaves.

    Usage:
        registry = LoanLockRegistry()
        with registry.hold(loan_id, timeout=2.0):
            ...  # read, transition, commit
    """

    def __init__(self, default_timeout: float = DEFAULT_LOCK_TIMEOUT_SECONDS):
        self.default_timeout = default_timeout
        self._locks: Dict[Hashable, _LockEntry] = {}
        self._registry_lock = threading.Lock()

    def _checkout(self, loan_id: Hashable) -> _LockEntry:
        with self._registry_lock:
            entry = self._locks.get(loan_id)
            if entry is None:
                entry = _LockEntry()
                self._locks[loan_id] = entry
            entry.users += 1
            return entry

    def _checkin(self, loan_id: Hashable, entry: _LockEntry) -> None:
        with self._registry_lock:
            entry.users -= 1
            if entry.users == 0:
                del self._locks[loan_id]

    @contextmanager
    def hold(self, loan_id: Hashable, timeout: Optional[float] = None) -> Iterator[None]:
        """
        Hold the loan's lock for the duration of the block.

        Raises:
            Busy: If the lock is not acquired within ``timeout`` seconds
        """
        timeout = self.default_timeout if timeout is None else timeout
        entry = self._checkout(loan_id)
        try:
            if not entry.lock.acquire(timeout=timeout):
                logger.warning(f"Loan {loan_id} busy after waiting {timeout}s")
                raise Busy(
                    f"Loan {loan_id} is being updated by another request. Please retry",
                    details={"loan_id": loan_id, "timeout": timeout},
                )
            try:
                yield
            finally:
                entry.lock.release()
        finally:
            self._checkin(loan_id, entry)

    def is_locked(self, loan_id: Hashable) -> bool:
        with self._registry_lock:
            entry = self._locks.get(loan_id)
        return entry is not None and entry.lock.locked()


_registry: Optional[LoanLockRegistry] = None
_registry_guard = threading.Lock()


def get_lock_registry() -> LoanLockRegistry:
    """Process-wide registry used by the API."""
    global _registry
    with _registry_guard:
        if _registry is None:
            from loan_ledger.core.config import get_settings

            _registry = LoanLockRegistry(default_timeout=get_settings().lock_timeout_seconds)
        return _registry
